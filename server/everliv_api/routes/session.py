"""Session and navigation API routes."""
import json

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from ..dependencies import get_session, get_sessions
from ..models.session import NavigationItem, SessionSnapshot
from ..services.navigation import resolve_menu
from ..services.session import SessionService

router = APIRouter(prefix="/api", tags=["Session"])


@router.get("/session", response_model=SessionSnapshot)
async def get_session_snapshot(session: SessionSnapshot = Depends(get_session)):
    """Current user, profile completeness, subscription and landing route."""
    return session


@router.get("/session/stream")
async def stream_session(
    include_current: bool = Query(True, description="Send the current snapshot on connect"),
    session: SessionSnapshot = Depends(get_session),
    sessions: SessionService = Depends(get_sessions),
):
    """
    Stream session snapshots via Server-Sent Events (SSE).

    A new event is sent whenever the profile, subscription or stored data
    change for the signed-in user. The stream ends when the user wipes their
    data; clients should reconnect.

    Usage with curl:
        curl -N -H "Authorization: Bearer $TOKEN" http://localhost:8082/api/session/stream
    """
    context = sessions.registry.get(session.uid)

    async def event_generator():
        async for snapshot in context.subscribe(include_current=include_current):
            data = json.dumps(snapshot.model_dump(mode="json", by_alias=True))
            yield f"event: session\ndata: {data}\n\n"

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("/navigation", response_model=list[NavigationItem])
async def get_navigation(session: SessionSnapshot = Depends(get_session)):
    """Menu entries for the current tier; pro entries come back locked on free."""
    return resolve_menu(session.effective_tier, session.is_admin)
