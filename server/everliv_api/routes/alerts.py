"""Biomarker alert API routes."""
import asyncio

from fastapi import APIRouter, Depends

from ..dependencies import get_repository, require_pro
from ..models.alerts import BiomarkerAlert, BiomarkerAlertStatus
from ..models.session import SessionSnapshot
from ..services.alert_evaluator import evaluate_alerts
from ..services.repository import HealthRepository

router = APIRouter(prefix="/api/alerts", tags=["Alerts"])


@router.get("", response_model=list[BiomarkerAlert])
async def get_alerts(
    session: SessionSnapshot = Depends(require_pro),
    repository: HealthRepository = Depends(get_repository),
):
    return await repository.get_alerts(session.uid)


@router.put("", response_model=list[BiomarkerAlert])
async def save_alerts(
    alerts: list[BiomarkerAlert],
    session: SessionSnapshot = Depends(require_pro),
    repository: HealthRepository = Depends(get_repository),
):
    """Replace the whole alert list."""
    return await repository.save_alerts(session.uid, alerts)


@router.get("/status", response_model=list[BiomarkerAlertStatus])
async def get_alert_status(
    session: SessionSnapshot = Depends(require_pro),
    repository: HealthRepository = Depends(get_repository),
):
    """
    Evaluate every alert against the current biomarker values.

    Nothing is stored; the triggered state is recomputed on each call.
    """
    biomarkers, alerts = await asyncio.gather(
        repository.list_biomarkers(session.uid),
        repository.get_alerts(session.uid),
    )
    return evaluate_alerts(biomarkers, alerts)


@router.put("/{name}", response_model=list[BiomarkerAlert])
async def upsert_alert(
    name: str,
    alert: BiomarkerAlert,
    session: SessionSnapshot = Depends(require_pro),
    repository: HealthRepository = Depends(get_repository),
):
    """Create or replace the alert for one biomarker."""
    alert = alert.model_copy(update={"biomarker_name": name})
    return await repository.upsert_alert(session.uid, alert)
