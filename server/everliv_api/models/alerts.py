"""Biomarker alert models."""
from typing import Optional

from .base import CamelModel


class BiomarkerAlert(CamelModel):
    """User-defined threshold rule, linked to a biomarker by name."""

    biomarker_name: str
    enabled: bool = False
    threshold_below: Optional[float] = None
    threshold_above: Optional[float] = None


class BiomarkerAlertStatus(CamelModel):
    """Live evaluation of an alert against the current biomarker value."""

    biomarker_name: str
    value: Optional[str] = None
    unit: str = ""
    alert: BiomarkerAlert
    triggered: bool
