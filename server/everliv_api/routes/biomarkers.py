"""Biomarker API routes."""
import asyncio

from fastapi import APIRouter, Depends

from ..dependencies import get_repository, require_pro
from ..errors import DocumentNotFoundError
from ..models.biomarker import BiomarkerView
from ..models.session import SessionSnapshot
from ..services.alert_evaluator import with_alert_flags
from ..services.repository import HealthRepository

router = APIRouter(prefix="/api/biomarkers", tags=["Biomarkers"])


@router.get("", response_model=list[BiomarkerView])
async def list_biomarkers(
    session: SessionSnapshot = Depends(require_pro),
    repository: HealthRepository = Depends(get_repository),
):
    """All tracked biomarkers, sorted by name, each with its live alert flag."""
    biomarkers, alerts = await asyncio.gather(
        repository.list_biomarkers(session.uid),
        repository.get_alerts(session.uid),
    )
    return with_alert_flags(biomarkers, alerts)


@router.get("/{name}", response_model=BiomarkerView)
async def get_biomarker(
    name: str,
    session: SessionSnapshot = Depends(require_pro),
    repository: HealthRepository = Depends(get_repository),
):
    """One biomarker with its full history and recommendations."""
    biomarker, alerts = await asyncio.gather(
        repository.get_biomarker(session.uid, name),
        repository.get_alerts(session.uid),
    )
    if biomarker is None:
        raise DocumentNotFoundError(f"No biomarker {name}")
    return with_alert_flags([biomarker], alerts)[0]
