"""Account data API routes: export, import, wipe and subscription."""
import hmac
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Header, Response

from ..auth import AuthenticatedUser, get_current_user
from ..container import AppContainer
from ..dependencies import get_container, get_repository, get_sessions
from ..errors import AuthorizationError, DomainValidationError
from ..models.export import DataExport
from ..models.profile import SubscriptionCallback, SubscriptionStatus, SubscriptionTier
from ..models.session import SessionSnapshot
from ..services.repository import HealthRepository
from ..services.session import SessionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/account", tags=["Account"])


def export_filename(today: Optional[date] = None) -> str:
    return f"everliv_health_backup_{(today or date.today()).isoformat()}.json"


@router.get("/export")
async def export_data(
    user: AuthenticatedUser = Depends(get_current_user),
    repository: HealthRepository = Depends(get_repository),
):
    """
    Download every piece of the user's data as one JSON document.

    Two exports with no writes in between are byte-identical.
    """
    export = await repository.export_all_data(user.uid)
    return Response(
        content=export.to_json(),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@router.post("/import", response_model=SessionSnapshot)
async def import_data(
    data: DataExport,
    user: AuthenticatedUser = Depends(get_current_user),
    repository: HealthRepository = Depends(get_repository),
    sessions: SessionService = Depends(get_sessions),
):
    """Restore an export; every key present in the file overwrites the stored value."""
    if not data.model_fields_set:
        raise DomainValidationError(
            "Import contained no known keys",
            user_message="The file does not look like an Everliv backup.",
        )
    await repository.import_data(user.uid, data)
    return await sessions.load(user.uid, user.name, user.email, user.avatar_url)


@router.delete("/data", response_model=SessionSnapshot)
async def delete_all_data(
    user: AuthenticatedUser = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
):
    """
    Permanently delete the user's stored data.

    The sign-in account itself and the specialists waitlist entry are kept.
    """
    await container.repository.delete_all_data(user.uid)
    container.gateway.tip_cache.clear(user.uid)
    container.sessions.registry.discard(user.uid)
    return await container.sessions.load(user.uid, user.name, user.email, user.avatar_url)


@router.post("/subscription/upgrade", response_model=SessionSnapshot)
async def upgrade_subscription(
    user: AuthenticatedUser = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
):
    """Grant Pro for the configured period (simulated checkout)."""
    expires_at = datetime.now(timezone.utc) + timedelta(days=container.settings.pro_grant_days)
    await container.repository.set_subscription(
        user.uid, SubscriptionStatus(tier=SubscriptionTier.PRO, expires_at=expires_at)
    )
    return await container.sessions.load(user.uid, user.name, user.email, user.avatar_url)


@router.post("/subscription/callback", response_model=SubscriptionStatus)
async def subscription_callback(
    callback: SubscriptionCallback,
    x_webhook_secret: Optional[str] = Header(None),
    container: AppContainer = Depends(get_container),
):
    """Payment provider notification; authenticated by a shared secret header."""
    expected = container.settings.payment_webhook_secret
    if not expected or not x_webhook_secret or not hmac.compare_digest(expected, x_webhook_secret):
        raise AuthorizationError("Invalid webhook secret")

    status = await container.repository.set_subscription(
        callback.uid, SubscriptionStatus(tier=callback.tier, expires_at=callback.expires_at)
    )
    logger.info(f"[BILLING] {callback.uid} -> {callback.tier.value}")
    await container.sessions.refresh(callback.uid)
    return status
