"""Specialists waitlist API routes."""
from fastapi import APIRouter, Depends

from ..auth import AuthenticatedUser, get_current_user
from ..dependencies import get_repository
from ..models.content import SpecialistsSubscriptionRequest
from ..services.repository import HealthRepository

router = APIRouter(prefix="/api/specialists", tags=["Specialists"])


@router.post("/subscribe", status_code=201)
async def subscribe(
    request: SpecialistsSubscriptionRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    repository: HealthRepository = Depends(get_repository),
):
    """Join the waitlist for video consultations."""
    await repository.subscribe_to_specialists(user.uid, request.email)
    return {"status": "subscribed", "email": request.email}
