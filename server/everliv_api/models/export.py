"""Full per-user data dump."""
from typing import Optional

from pydantic import Field

from .alerts import BiomarkerAlert
from .base import CamelModel
from .biomarker import Biomarker
from .blood_test import BloodTestRecord
from .chat import ChatMessage
from .profile import HealthProfile, SubscriptionStatus


class DataExport(CamelModel):
    """Export/import document. Key names are part of the download format."""

    health_profile: Optional[HealthProfile] = None
    subscription_status: Optional[SubscriptionStatus] = None
    biomarkers: list[Biomarker] = Field(default_factory=list)
    test_history: list[BloodTestRecord] = Field(default_factory=list)
    alerts: list[BiomarkerAlert] = Field(default_factory=list)
    chat_history: list[ChatMessage] = Field(default_factory=list)
    article_likes: list[str] = Field(default_factory=list)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)
