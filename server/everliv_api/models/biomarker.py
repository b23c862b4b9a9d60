"""Biomarker data models."""
import math
from typing import Literal, Optional, Union

from pydantic import Field

from .base import CamelModel

BiomarkerStatus = Literal["normal", "borderline", "high", "low"]
Trend = Literal["up", "down", "stable"]


def parse_numeric(value: Union[str, float, int, None]) -> Optional[float]:
    """Parse a biomarker value; None for anything that is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


class HistoryEntry(CamelModel):
    """One recorded value of a biomarker."""

    value: float
    date: str
    source_test_id: Optional[str] = None


class AIGeneratedRecommendations(CamelModel):
    """Recommendation bundle generated for a single biomarker."""

    nutrition: list[str] = Field(default_factory=list)
    lifestyle: list[str] = Field(default_factory=list)
    supplements: list[str] = Field(default_factory=list)
    next_checkup: str = Field(default="", alias="next_checkup")


class Biomarker(CamelModel):
    """Running record for one named biomarker of a user."""

    name: str
    value: str
    unit: str = ""
    trend: Trend = "stable"
    status: BiomarkerStatus = "normal"
    last_updated: str
    description: str = ""
    range: str = ""
    history: list[HistoryEntry] = Field(default_factory=list)
    recommendations: Optional[AIGeneratedRecommendations] = None


class BiomarkerView(Biomarker):
    """Biomarker as returned to clients, with the live alert flag."""

    alert_triggered: bool = False
