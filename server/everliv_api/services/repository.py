"""Per-user persistence accessor over the document store.

Document layout::

    users/{uid}                          profile, subscription, admin flag
    users/{uid}/biomarkers/{name}
    users/{uid}/testHistory/{id}
    users/{uid}/settings/alerts          {"alerts": [...]}
    users/{uid}/chat/history             {"messages": [...]}
    users/{uid}/preferences/articleLikes {"likes": [...]}
    articles/{id}, meditations/{id}      shared content
    specialists_subscriptions/{uid}

Every read goes through :func:`with_retry`; writes are issued once.
"""
import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Optional, TypeVar

from ..config import Settings, get_settings
from ..database import DocumentRef, DocumentStore, WriteBatch
from ..errors import ContentAccessError, DocumentNotFoundError, PermissionDeniedError
from ..models.alerts import BiomarkerAlert
from ..models.biomarker import Biomarker
from ..models.blood_test import BloodTestRecord
from ..models.chat import ChatMessage
from ..models.content import Article, ArticleInput, Meditation, MeditationInput
from ..models.export import DataExport
from ..models.profile import HealthProfile, SubscriptionStatus, SubscriptionTier
from .retry import with_retry

logger = logging.getLogger(__name__)

T = TypeVar("T")

USERS = "users"
ARTICLES = "articles"
MEDITATIONS = "meditations"
SPECIALISTS_SUBSCRIPTIONS = "specialists_subscriptions"

# Sub-collections removed by a data wipe
USER_SUBCOLLECTIONS = ("biomarkers", "testHistory", "settings", "chat", "preferences")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class HealthRepository:
    """Repository for one document store; every call is keyed by user id."""

    def __init__(self, store: DocumentStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @staticmethod
    def user_ref(uid: str) -> DocumentRef:
        return DocumentRef(USERS, uid)

    def biomarker_ref(self, uid: str, name: str) -> DocumentRef:
        return DocumentRef(self.user_ref(uid).child("biomarkers"), name)

    def test_record_ref(self, uid: str, record_id: str) -> DocumentRef:
        return DocumentRef(self.user_ref(uid).child("testHistory"), record_id)

    def alerts_ref(self, uid: str) -> DocumentRef:
        return DocumentRef(self.user_ref(uid).child("settings"), "alerts")

    def chat_ref(self, uid: str) -> DocumentRef:
        return DocumentRef(self.user_ref(uid).child("chat"), "history")

    def likes_ref(self, uid: str) -> DocumentRef:
        return DocumentRef(self.user_ref(uid).child("preferences"), "articleLikes")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _read(self, operation: Callable[[], T], description: str) -> T:
        return await with_retry(
            operation,
            retries=self.settings.retry_attempts,
            base_delay=self.settings.retry_base_delay,
            description=description,
        )

    def batch(self) -> WriteBatch:
        return self.store.batch()

    # ------------------------------------------------------------------
    # User document
    # ------------------------------------------------------------------

    async def get_user_document(self, uid: str) -> Optional[dict]:
        return await self._read(lambda: self.store.get(self.user_ref(uid)), "user document")

    async def upsert_identity(self, uid: str, name: str, email: str, avatar_url: str) -> None:
        """Mirror identity-provider fields into the user document."""
        self.store.set(
            self.user_ref(uid),
            {"name": name, "email": email, "avatarUrl": avatar_url},
            merge=True,
        )

    async def get_profile(self, uid: str) -> Optional[HealthProfile]:
        doc = await self.get_user_document(uid)
        if not doc or not doc.get("healthProfile"):
            return None
        return HealthProfile.model_validate(doc["healthProfile"])

    async def update_profile(self, uid: str, profile: HealthProfile) -> HealthProfile:
        """Replace the stored profile as a whole."""
        payload = profile.model_dump(mode="json", by_alias=True)
        self.store.set(self.user_ref(uid), {"healthProfile": payload}, merge=True)
        logger.info(f"[REPO] Updated health profile for {uid}")
        return profile

    async def get_subscription(self, uid: str) -> SubscriptionStatus:
        doc = await self.get_user_document(uid)
        if doc and doc.get("subscriptionStatus"):
            return SubscriptionStatus.model_validate(doc["subscriptionStatus"])
        return SubscriptionStatus(tier=SubscriptionTier(self.settings.default_subscription_tier))

    async def set_subscription(self, uid: str, status: SubscriptionStatus) -> SubscriptionStatus:
        payload = status.model_dump(mode="json", by_alias=True)
        self.store.set(self.user_ref(uid), {"subscriptionStatus": payload}, merge=True)
        logger.info(f"[REPO] Subscription for {uid} set to {status.tier.value}")
        return status

    async def is_admin(self, uid: str) -> bool:
        doc = await self.get_user_document(uid)
        return bool(doc and doc.get("isAdmin"))

    # ------------------------------------------------------------------
    # Biomarkers and test history
    # ------------------------------------------------------------------

    async def list_biomarkers(self, uid: str) -> list[Biomarker]:
        collection = self.user_ref(uid).child("biomarkers")
        docs = await self._read(lambda: self.store.query(collection), "biomarkers")
        return [Biomarker.model_validate(doc.data) for doc in docs]

    async def get_biomarker(self, uid: str, name: str) -> Optional[Biomarker]:
        ref = self.biomarker_ref(uid, name)
        data = await self._read(lambda: self.store.get(ref), f"biomarker {name}")
        return Biomarker.model_validate(data) if data else None

    async def list_test_history(self, uid: str) -> list[BloodTestRecord]:
        collection = self.user_ref(uid).child("testHistory")
        docs = await self._read(
            lambda: self.store.query(collection, order_by="date"), "test history"
        )
        return [BloodTestRecord.model_validate(doc.data) for doc in docs]

    async def get_test_record(self, uid: str, record_id: str) -> BloodTestRecord:
        ref = self.test_record_ref(uid, record_id)
        data = await self._read(lambda: self.store.get(ref), f"test {record_id}")
        if data is None:
            raise DocumentNotFoundError(f"No test record {record_id}")
        return BloodTestRecord.model_validate(data)

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------

    async def get_alerts(self, uid: str) -> list[BiomarkerAlert]:
        data = await self._read(lambda: self.store.get(self.alerts_ref(uid)), "alerts")
        if not data:
            return []
        return [BiomarkerAlert.model_validate(item) for item in data.get("alerts", [])]

    async def save_alerts(self, uid: str, alerts: list[BiomarkerAlert]) -> list[BiomarkerAlert]:
        self.store.set(self.alerts_ref(uid), {"alerts": [a.to_document() for a in alerts]})
        return alerts

    async def upsert_alert(self, uid: str, alert: BiomarkerAlert) -> list[BiomarkerAlert]:
        alerts = [a for a in await self.get_alerts(uid) if a.biomarker_name != alert.biomarker_name]
        alerts.append(alert)
        return await self.save_alerts(uid, alerts)

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def get_chat_history(self, uid: str) -> list[ChatMessage]:
        data = await self._read(lambda: self.store.get(self.chat_ref(uid)), "chat history")
        if not data:
            return []
        return [ChatMessage.model_validate(item) for item in data.get("messages", [])]

    async def save_chat_history(self, uid: str, messages: list[ChatMessage]) -> None:
        """Overwrite the whole conversation."""
        self.store.set(self.chat_ref(uid), {"messages": [m.to_document() for m in messages]})

    async def append_chat_messages(self, uid: str, *messages: ChatMessage) -> list[ChatMessage]:
        history = await self.get_chat_history(uid)
        history.extend(messages)
        await self.save_chat_history(uid, history)
        return history

    async def clear_chat_history(self, uid: str) -> None:
        self.store.delete(self.chat_ref(uid))

    # ------------------------------------------------------------------
    # Article likes
    # ------------------------------------------------------------------

    async def get_article_likes(self, uid: str) -> list[str]:
        data = await self._read(lambda: self.store.get(self.likes_ref(uid)), "article likes")
        return list(data.get("likes", [])) if data else []

    async def save_article_likes(self, uid: str, likes: list[str]) -> list[str]:
        unique = list(dict.fromkeys(likes))
        self.store.set(self.likes_ref(uid), {"likes": unique})
        return unique

    async def toggle_article_like(self, uid: str, article_id: str) -> list[str]:
        likes = await self.get_article_likes(uid)
        if article_id in likes:
            likes.remove(article_id)
        else:
            likes.append(article_id)
        return await self.save_article_likes(uid, likes)

    # ------------------------------------------------------------------
    # Shared content
    # ------------------------------------------------------------------

    async def _read_content(self, operation: Callable[[], Any], description: str) -> Any:
        try:
            return await self._read(operation, description)
        except PermissionDeniedError as e:
            logger.error(f"[REPO] Permission denied reading {description}: {e}")
            raise ContentAccessError(str(e)) from e

    async def list_articles(self) -> list[Article]:
        docs = await self._read_content(
            lambda: self.store.query(ARTICLES, order_by="publishedDate", descending=True),
            "articles",
        )
        return [Article.model_validate({**doc.data, "id": doc.id}) for doc in docs]

    async def get_article(self, article_id: str) -> Article:
        data = await self._read_content(
            lambda: self.store.get(DocumentRef(ARTICLES, article_id)), f"article {article_id}"
        )
        if data is None:
            raise DocumentNotFoundError(f"No article {article_id}")
        return Article.model_validate({**data, "id": article_id})

    async def create_article(self, article: ArticleInput) -> Article:
        created = Article(
            **article.model_dump(),
            id=uuid.uuid4().hex,
        )
        if not created.published_date:
            created.published_date = utc_now_iso()
        self.store.set(DocumentRef(ARTICLES, created.id), created.to_document())
        return created

    async def update_article(self, article_id: str, article: ArticleInput) -> Article:
        updated = Article(**article.model_dump(), id=article_id)
        self.store.update(DocumentRef(ARTICLES, article_id), updated.to_document())
        return await self.get_article(article_id)

    async def delete_article(self, article_id: str) -> None:
        self.store.delete(DocumentRef(ARTICLES, article_id))

    async def list_meditations(self) -> list[Meditation]:
        docs = await self._read_content(lambda: self.store.query(MEDITATIONS, order_by="title"), "meditations")
        return [Meditation.model_validate({**doc.data, "id": doc.id}) for doc in docs]

    async def get_meditation(self, meditation_id: str) -> Meditation:
        data = await self._read_content(
            lambda: self.store.get(DocumentRef(MEDITATIONS, meditation_id)),
            f"meditation {meditation_id}",
        )
        if data is None:
            raise DocumentNotFoundError(f"No meditation {meditation_id}")
        return Meditation.model_validate({**data, "id": meditation_id})

    async def create_meditation(self, meditation: MeditationInput) -> Meditation:
        created = Meditation(**meditation.model_dump(), id=uuid.uuid4().hex)
        self.store.set(DocumentRef(MEDITATIONS, created.id), created.to_document())
        return created

    async def update_meditation(self, meditation_id: str, meditation: MeditationInput) -> Meditation:
        updated = Meditation(**meditation.model_dump(), id=meditation_id)
        self.store.update(DocumentRef(MEDITATIONS, meditation_id), updated.to_document())
        return await self.get_meditation(meditation_id)

    async def delete_meditation(self, meditation_id: str) -> None:
        self.store.delete(DocumentRef(MEDITATIONS, meditation_id))

    # ------------------------------------------------------------------
    # Specialists waitlist
    # ------------------------------------------------------------------

    async def subscribe_to_specialists(self, uid: str, email: str) -> None:
        self.store.set(
            DocumentRef(SPECIALISTS_SUBSCRIPTIONS, uid),
            {"email": email, "subscribedAt": utc_now_iso()},
        )

    # ------------------------------------------------------------------
    # Data management
    # ------------------------------------------------------------------

    async def export_all_data(self, uid: str) -> DataExport:
        profile, subscription, biomarkers, history, alerts, chat, likes = await asyncio.gather(
            self.get_profile(uid),
            self.get_subscription(uid),
            self.list_biomarkers(uid),
            self.list_test_history(uid),
            self.get_alerts(uid),
            self.get_chat_history(uid),
            self.get_article_likes(uid),
        )
        return DataExport(
            health_profile=profile,
            subscription_status=subscription,
            biomarkers=biomarkers,
            test_history=history,
            alerts=sorted(alerts, key=lambda a: a.biomarker_name),
            chat_history=chat,
            article_likes=likes,
        )

    async def import_data(self, uid: str, data: DataExport) -> None:
        """
        Overwrite the user's data with an earlier export, in one batch.

        Every key present in the upload replaces the stored value, including
        empty lists and a null profile. Absent keys are left untouched.
        """
        present = data.model_fields_set
        batch = self.batch()
        if "health_profile" in present:
            profile = data.health_profile
            batch.set(
                self.user_ref(uid),
                {"healthProfile": profile.model_dump(mode="json", by_alias=True) if profile else None},
                merge=True,
            )
        if "biomarkers" in present:
            batch.delete_collection(self.user_ref(uid).child("biomarkers"))
            for biomarker in data.biomarkers:
                batch.set(self.biomarker_ref(uid, biomarker.name), biomarker.to_document())
        if "test_history" in present:
            batch.delete_collection(self.user_ref(uid).child("testHistory"))
            for record in data.test_history:
                batch.set(self.test_record_ref(uid, record.id), record.to_document())
        if "alerts" in present:
            batch.set(self.alerts_ref(uid), {"alerts": [a.to_document() for a in data.alerts]})
        if "chat_history" in present:
            batch.set(self.chat_ref(uid), {"messages": [m.to_document() for m in data.chat_history]})
        if "article_likes" in present:
            batch.set(self.likes_ref(uid), {"likes": list(dict.fromkeys(data.article_likes))})
        batch.commit()
        logger.info(f"[REPO] Imported {sorted(present)} for {uid}")

    async def delete_all_data(self, uid: str) -> None:
        """Remove every per-user sub-collection and the user document."""
        batch = self.batch()
        for name in USER_SUBCOLLECTIONS:
            batch.delete_collection(self.user_ref(uid).child(name))
        batch.delete(self.user_ref(uid))
        batch.commit()
        logger.info(f"[REPO] Deleted all data for {uid}")
