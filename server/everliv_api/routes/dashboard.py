"""Dashboard API routes."""
from datetime import date

from fastapi import APIRouter, Depends

from ..dependencies import get_gateway, get_repository, require_pro
from ..models.chat import DailyTip
from ..models.session import SessionSnapshot
from ..services.ai_gateway import GeminiGateway
from ..services.repository import HealthRepository

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])


@router.get("/daily-tip", response_model=DailyTip)
async def get_daily_tip(
    session: SessionSnapshot = Depends(require_pro),
    repository: HealthRepository = Depends(get_repository),
    gateway: GeminiGateway = Depends(get_gateway),
):
    """Short personalised tip, generated once per day."""
    biomarkers = await repository.list_biomarkers(session.uid)
    tip = await gateway.get_daily_health_tip(session.uid, session.user, biomarkers)
    return DailyTip(tip=tip, date=date.today().isoformat())
