"""FastAPI dependencies shared by the routers."""
from fastapi import Depends, Request

from .auth import AuthenticatedUser, get_current_user
from .container import AppContainer
from .errors import AdminRequiredError, ProRequiredError
from .models.profile import SubscriptionTier
from .models.session import SessionSnapshot
from .services.ai_gateway import GeminiGateway
from .services.biomarker_pipeline import BiomarkerPipeline
from .services.repository import HealthRepository
from .services.session import SessionService


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


def get_repository(container: AppContainer = Depends(get_container)) -> HealthRepository:
    return container.repository


def get_gateway(container: AppContainer = Depends(get_container)) -> GeminiGateway:
    return container.gateway


def get_pipeline(container: AppContainer = Depends(get_container)) -> BiomarkerPipeline:
    return container.pipeline


def get_sessions(container: AppContainer = Depends(get_container)) -> SessionService:
    return container.sessions


async def get_session(
    user: AuthenticatedUser = Depends(get_current_user),
    sessions: SessionService = Depends(get_sessions),
) -> SessionSnapshot:
    return await sessions.load(user.uid, user.name, user.email, user.avatar_url)


async def require_pro(session: SessionSnapshot = Depends(get_session)) -> SessionSnapshot:
    if session.effective_tier is not SubscriptionTier.PRO:
        raise ProRequiredError()
    return session


async def require_admin(session: SessionSnapshot = Depends(get_session)) -> SessionSnapshot:
    if not session.is_admin:
        raise AdminRequiredError()
    return session
