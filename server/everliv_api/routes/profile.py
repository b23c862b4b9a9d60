"""Health profile API routes."""
from typing import Optional

from fastapi import APIRouter, Depends

from ..auth import AuthenticatedUser, get_current_user
from ..dependencies import get_repository, get_session, get_sessions
from ..models.profile import HealthProfile
from ..models.session import SessionSnapshot
from ..services.repository import HealthRepository
from ..services.session import SessionService

router = APIRouter(prefix="/api/profile", tags=["Profile"])


@router.get("", response_model=Optional[HealthProfile])
async def get_profile(
    session: SessionSnapshot = Depends(get_session),
):
    """Stored health profile, or null before the setup form has been completed."""
    return session.user.health_profile


@router.put("", response_model=SessionSnapshot)
async def update_profile(
    profile: HealthProfile,
    user: AuthenticatedUser = Depends(get_current_user),
    repository: HealthRepository = Depends(get_repository),
    sessions: SessionService = Depends(get_sessions),
):
    """
    Replace the health profile.

    Returns the refreshed session so the client picks up the completeness
    flag and landing route in the same round trip.
    """
    await repository.update_profile(user.uid, profile)
    return await sessions.load(user.uid, user.name, user.email, user.avatar_url)
