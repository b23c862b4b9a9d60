"""Per-user session state with explicit change notification.

Each signed-in user gets a ``SessionContext`` holding the latest
``SessionSnapshot``. Anything that changes the snapshot (profile saved,
subscription granted or expired, data wiped) publishes a new one, and every
subscriber receives it in order.
"""
import asyncio
import logging
import threading
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from ..models.profile import SubscriptionStatus, User, is_profile_complete
from ..models.session import SessionSnapshot
from .navigation import landing_route

logger = logging.getLogger(__name__)

# Ends a subscription
_CLOSED = object()


def avatar_fallback(uid: str) -> str:
    return f"https://i.pravatar.cc/150?u={uid}"


def build_snapshot(
    uid: str,
    user: User,
    subscription: SubscriptionStatus,
    is_admin: bool = False,
) -> SessionSnapshot:
    complete = is_profile_complete(user.health_profile)
    tier = subscription.effective_tier()
    return SessionSnapshot(
        uid=uid,
        user=user,
        is_profile_complete=complete,
        subscription_status=subscription,
        effective_tier=tier,
        is_admin=is_admin,
        landing_route=landing_route(tier, complete),
    )


class SessionContext:
    """Latest snapshot for one user plus its subscribers."""

    def __init__(self, uid: str, max_queue: int = 20):
        self.uid = uid
        self._snapshot: Optional[SessionSnapshot] = None
        self._subscribers: list[asyncio.Queue] = []
        self._lock = threading.Lock()
        self._max_queue = max_queue
        self._version = 0

    @property
    def snapshot(self) -> Optional[SessionSnapshot]:
        with self._lock:
            return self._snapshot

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, snapshot: SessionSnapshot) -> SessionSnapshot:
        """Store ``snapshot`` as current and push it to every subscriber."""
        with self._lock:
            self._version += 1
            snapshot = snapshot.model_copy(
                update={
                    "version": self._version,
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                }
            )
            self._snapshot = snapshot

            for queue in self._subscribers:
                _offer(queue, snapshot)

        logger.debug(f"[SESSION] {self.uid} -> v{snapshot.version}")
        return snapshot

    def close(self) -> None:
        """End every open subscription."""
        with self._lock:
            for queue in self._subscribers:
                _offer(queue, _CLOSED)
            self._subscribers.clear()

    async def subscribe(self, include_current: bool = True) -> AsyncIterator[SessionSnapshot]:
        """
        Yield snapshots as they are published, starting with the current one.

        A subscriber that falls behind loses its oldest queued snapshots, never
        the latest. The iterator ends when the context is closed.
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue)
        with self._lock:
            self._subscribers.append(queue)
            if include_current and self._snapshot is not None:
                queue.put_nowait(self._snapshot)
        try:
            while True:
                item = await queue.get()
                if item is _CLOSED:
                    return
                yield item
        finally:
            with self._lock:
                if queue in self._subscribers:
                    self._subscribers.remove(queue)


def _offer(queue: asyncio.Queue, item) -> None:
    """Put without blocking, dropping the oldest entry when the queue is full."""
    try:
        queue.put_nowait(item)
    except asyncio.QueueFull:
        queue.get_nowait()
        queue.put_nowait(item)


class SessionRegistry:
    """Owns the session contexts; created once at application start-up."""

    def __init__(self):
        self._contexts: dict[str, SessionContext] = {}
        self._lock = threading.Lock()

    def get(self, uid: str) -> SessionContext:
        with self._lock:
            context = self._contexts.get(uid)
            if context is None:
                context = SessionContext(uid)
                self._contexts[uid] = context
            return context

    def discard(self, uid: str) -> None:
        """Forget a user's context and close its open streams."""
        with self._lock:
            context = self._contexts.pop(uid, None)
        if context is not None:
            context.close()

    def __len__(self) -> int:
        with self._lock:
            return len(self._contexts)


class SessionService:
    """Builds snapshots from the repository and publishes them to the registry."""

    def __init__(self, repository, registry: Optional[SessionRegistry] = None):
        self.repository = repository
        self.registry = registry or SessionRegistry()

    async def load(self, uid: str, name: str, email: str, avatar_url: Optional[str]) -> SessionSnapshot:
        """Current snapshot for an authenticated identity; publishes when it changed."""
        doc = await self.repository.get_user_document(uid) or {}
        identity = {
            "name": name or doc.get("name") or "User",
            "email": email or doc.get("email") or "",
            "avatarUrl": avatar_url or doc.get("avatarUrl") or avatar_fallback(uid),
        }
        if any(doc.get(key) != value for key, value in identity.items()):
            await self.repository.upsert_identity(uid, identity["name"], identity["email"], identity["avatarUrl"])
        return await self.refresh(uid, identity)

    async def refresh(self, uid: str, identity: Optional[dict] = None) -> SessionSnapshot:
        doc = await self.repository.get_user_document(uid) or {}
        identity = identity or doc
        user = User(
            name=identity.get("name") or "User",
            email=identity.get("email") or "",
            avatar_url=identity.get("avatarUrl") or avatar_fallback(uid),
            health_profile=doc.get("healthProfile") or None,
        )
        subscription = await self.repository.get_subscription(uid)
        snapshot = build_snapshot(uid, user, subscription, is_admin=bool(doc.get("isAdmin")))

        context = self.registry.get(uid)
        current = context.snapshot
        if current is not None and _same_state(current, snapshot):
            return current
        return context.publish(snapshot)


def _same_state(a: SessionSnapshot, b: SessionSnapshot) -> bool:
    ignore = {"version", "updated_at"}
    return a.model_dump(exclude=ignore) == b.model_dump(exclude=ignore)
