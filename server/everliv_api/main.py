"""Everliv Health API - FastAPI application entry point."""
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .container import AppContainer
from .errors import EverlivError
from .routes import (
    account,
    alerts,
    assistant,
    biomarkers,
    blood_tests,
    content,
    dashboard,
    profile,
    session,
    specialists,
)

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def everliv_error_handler(request: Request, exc: EverlivError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"[API] {request.method} {request.url.path} failed: {exc}")
    else:
        logger.info(f"[API] {request.method} {request.url.path} -> {exc.status_code} {exc.code}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.user_message, "code": exc.code},
    )


def create_app(container: Optional[AppContainer] = None) -> FastAPI:
    container = container or AppContainer.build()
    settings = container.settings

    app = FastAPI(
        title="Everliv Health API",
        description="Personal health tracking with AI blood test analysis",
        version="1.0.0",
    )
    app.state.container = container

    # Configure CORS for frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(EverlivError, everliv_error_handler)

    # Include routers
    app.include_router(session.router)
    app.include_router(profile.router)
    app.include_router(dashboard.router)
    app.include_router(blood_tests.router)
    app.include_router(biomarkers.router)
    app.include_router(alerts.router)
    app.include_router(assistant.router)
    app.include_router(content.router)
    app.include_router(specialists.router)
    app.include_router(account.router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint for the API."""
        return {"status": "healthy", "service": "everliv-api"}

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(),
        host=settings.api_host,
        port=settings.api_port,
    )
