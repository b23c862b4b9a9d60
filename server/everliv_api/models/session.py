"""Session snapshot and navigation models."""
from typing import Optional

from .base import CamelModel
from .profile import SubscriptionStatus, SubscriptionTier, User


class NavigationItem(CamelModel):
    name: str
    href: str
    access: str
    locked: bool = False


class SessionSnapshot(CamelModel):
    """Everything the views need to know about the signed-in user."""

    uid: str
    user: User
    is_profile_complete: bool
    subscription_status: SubscriptionStatus
    effective_tier: SubscriptionTier
    is_admin: bool = False
    landing_route: str
    version: int = 0
    updated_at: Optional[str] = None
