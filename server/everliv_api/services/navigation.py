"""Menu entries gated by subscription tier."""
from dataclasses import dataclass
from enum import Enum

from ..models.profile import SubscriptionTier
from ..models.session import NavigationItem


class MenuAccess(str, Enum):
    FREE = "free"
    PRO_GATED = "pro_gated"
    ADMIN = "admin"


@dataclass(frozen=True)
class MenuEntry:
    name: str
    href: str
    access: MenuAccess


MENU = (
    MenuEntry("Dashboard", "/dashboard", MenuAccess.PRO_GATED),
    MenuEntry("AI Blood Analysis", "/blood-test", MenuAccess.PRO_GATED),
    MenuEntry("AI Assistant", "/assistant", MenuAccess.FREE),
    MenuEntry("Biomarkers", "/biomarkers", MenuAccess.PRO_GATED),
    MenuEntry("Articles", "/articles", MenuAccess.PRO_GATED),
    MenuEntry("Mindful Moments", "/mindful-moments", MenuAccess.PRO_GATED),
    MenuEntry("Specialists", "/specialists", MenuAccess.FREE),
    MenuEntry("Profile", "/profile", MenuAccess.FREE),
    MenuEntry("Content Management", "/content-management", MenuAccess.ADMIN),
)

SETUP_ROUTE = "/setup"


def is_unlocked(entry: MenuEntry, tier: SubscriptionTier, is_admin: bool = False) -> bool:
    if entry.access is MenuAccess.FREE:
        return True
    if entry.access is MenuAccess.PRO_GATED:
        return tier is SubscriptionTier.PRO
    return is_admin


def resolve_menu(tier: SubscriptionTier, is_admin: bool = False) -> list[NavigationItem]:
    """Menu for a tier. Pro entries stay visible but locked; admin entries are hidden."""
    items = []
    for entry in MENU:
        if entry.access is MenuAccess.ADMIN and not is_admin:
            continue
        items.append(
            NavigationItem(
                name=entry.name,
                href=entry.href,
                access=entry.access.value,
                locked=not is_unlocked(entry, tier, is_admin),
            )
        )
    return items


def landing_route(tier: SubscriptionTier, profile_complete: bool) -> str:
    if not profile_complete:
        return SETUP_ROUTE
    return "/dashboard" if tier is SubscriptionTier.PRO else "/assistant"
