"""User, health profile and subscription models."""
from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import Field, field_validator

from .base import CamelModel

ActivityLevel = Literal["sedentary", "light", "moderate", "active", "very_active"]
Sex = Literal["male", "female", "other"]

MAX_HEALTH_GOALS = 3


class HealthProfile(CamelModel):
    """Health profile collected by the multi-step setup form."""

    age: Optional[int] = None
    sex: Optional[Sex] = None
    height: Optional[float] = None  # cm
    weight: Optional[float] = None  # kg
    activity_level: Optional[ActivityLevel] = None
    health_goals: list[str] = Field(default_factory=list)
    dietary_preferences: str = ""
    chronic_conditions: str = ""
    allergies: str = ""
    supplements: str = ""

    @field_validator("age", "sex", "height", "weight", "activity_level", mode="before")
    @classmethod
    def _blank_is_unset(cls, value):
        # Forms send "" for untouched fields
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("age", "height", "weight")
    @classmethod
    def _positive(cls, value):
        if value is not None and value <= 0:
            raise ValueError("must be a positive number")
        return value

    @field_validator("health_goals")
    @classmethod
    def _cap_goals(cls, value: list[str]) -> list[str]:
        goals = [goal.strip() for goal in value if goal and goal.strip()]
        if len(goals) > MAX_HEALTH_GOALS:
            raise ValueError(f"at most {MAX_HEALTH_GOALS} health goals can be selected")
        return goals

    @property
    def is_complete(self) -> bool:
        return self.age is not None


def is_profile_complete(profile: Optional[HealthProfile]) -> bool:
    """A profile counts as complete once the age has been filled in."""
    return profile is not None and profile.is_complete


class SubscriptionTier(str, Enum):
    FREE = "free"
    PRO = "pro"


class SubscriptionStatus(CamelModel):
    tier: SubscriptionTier = SubscriptionTier.FREE
    expires_at: Optional[datetime] = None

    def effective_tier(self, now: Optional[datetime] = None) -> SubscriptionTier:
        """Pro with a past expiry reads as free."""
        if self.tier is SubscriptionTier.PRO and self.expires_at is not None:
            now = now or datetime.now(timezone.utc)
            expires_at = self.expires_at
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)
            if expires_at <= now:
                return SubscriptionTier.FREE
        return self.tier


class User(CamelModel):
    name: str
    email: str
    avatar_url: str
    health_profile: Optional[HealthProfile] = None


class SubscriptionCallback(CamelModel):
    """Payment provider notification."""

    uid: str
    tier: SubscriptionTier
    expires_at: Optional[datetime] = None
