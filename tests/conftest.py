"""
Pytest fixtures for Everliv Health API tests.
"""
import pytest
from fastapi.testclient import TestClient

from server.everliv_api.auth import create_access_token
from server.everliv_api.config import Settings
from server.everliv_api.container import AppContainer
from server.everliv_api.database import DocumentRef, DocumentStore
from server.everliv_api.errors import AIGatewayError
from server.everliv_api.main import create_app
from server.everliv_api.models.biomarker import AIGeneratedRecommendations
from server.everliv_api.models.blood_test import BloodTestAnalysis
from server.everliv_api.models.chat import SpeechAudio
from server.everliv_api.services import prompts
from server.everliv_api.services.ai_gateway import GeminiGateway
from server.everliv_api.services.repository import HealthRepository


# ============================================================================
# Fake AI gateway
# ============================================================================


class FakeGateway(GeminiGateway):
    """
    Gateway double that never touches the network.

    Canned responses are set per test; every call is recorded so tests can
    assert how often the provider would have been hit.
    """

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.analysis = BloodTestAnalysis.model_validate(
            {
                "summary": "Mostly normal results.",
                "biomarkers": [
                    {"name": "Glucose", "value": "92", "unit": "mg/dL", "range": "70-99",
                     "explanation": "Blood sugar.", "status": "normal"},
                ],
                "recommendations": ["Keep up regular exercise."],
            }
        )
        self.analysis_error = False
        self.chat_chunks = ["Hello", ", how can I help?"]
        self.chat_error = False
        self.tip = "Take a short walk after lunch."
        self.calls: list[tuple] = []

    async def analyze_blood_test(self, image_base64, mime_type, custom_biomarkers=None):
        self.calls.append(("analyze", mime_type, custom_biomarkers))
        if self.analysis_error:
            raise AIGatewayError("bad output", user_message="Failed to analyze blood test results.")
        return self.analysis

    async def get_biomarker_recommendations(self, reading):
        self.calls.append(("recommendations", reading.name))
        return AIGeneratedRecommendations(
            nutrition=[f"Nutrition advice for {reading.name}"],
            lifestyle=["Sleep well"],
            supplements=[],
            next_checkup="In 3-6 months",
        )

    async def stream_chat(self, user, biomarkers, history, message, image=None):
        self.calls.append(("chat", message, image is not None))
        for chunk in self.chat_chunks:
            yield chunk
        if self.chat_error:
            raise AIGatewayError("stream dropped", user_message=prompts.FALLBACK_CHAT_REPLY)

    async def get_daily_health_tip(self, uid, user, biomarkers):
        self.calls.append(("tip", uid))
        return self.tip

    async def synthesize_speech(self, text, meditation=False):
        self.calls.append(("speech", text, meditation))
        return SpeechAudio(audio="AAAA", mime_type="audio/L16;rate=24000")

    def count(self, kind: str) -> int:
        return sum(1 for call in self.calls if call[0] == kind)


# ============================================================================
# Store and services
# ============================================================================


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a throwaway store, with instant retries."""
    return Settings(
        data_path=str(tmp_path),
        gemini_api_key="test-key",
        jwt_secret="test-secret",
        retry_base_delay=0.0,
        payment_webhook_secret="hook-secret",
    )


@pytest.fixture
def store(settings):
    return DocumentStore(settings.store_path)


@pytest.fixture
def repository(store, settings):
    return HealthRepository(store, settings)


@pytest.fixture
def fake_gateway(settings):
    return FakeGateway(settings)


@pytest.fixture
def container(settings, store, fake_gateway):
    return AppContainer.build(settings=settings, store=store, gateway=fake_gateway)


@pytest.fixture
def sample_analysis():
    """Analysis with two numeric readings and one that cannot be merged."""
    return BloodTestAnalysis.model_validate(
        {
            "summary": "Cholesterol is slightly elevated.",
            "biomarkers": [
                {"name": "LDL Cholesterol", "value": "130", "unit": "mg/dL", "range": "<100",
                 "explanation": "Bad cholesterol.", "status": "high"},
                {"name": "Vitamin D", "value": "32.5", "unit": "ng/mL", "range": "30-100",
                 "explanation": "Bone health.", "status": "normal"},
                {"name": "HIV Screen", "value": "Non-reactive", "unit": "", "range": "",
                 "explanation": "Screening test.", "status": "normal"},
            ],
            "recommendations": ["Reduce saturated fat."],
        }
    )


# ============================================================================
# HTTP client and identities
# ============================================================================


@pytest.fixture
def app(container):
    return create_app(container)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(settings):
    """Factory returning bearer headers for a user id."""

    def _headers(uid: str = "user-1", name: str = "Test User", email: str = "test@example.com") -> dict:
        token = create_access_token(uid, name=name, email=email, settings=settings)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def make_pro(store):
    """Grant a user Pro without expiry, directly in the store."""

    def _make_pro(uid: str) -> None:
        store.set(DocumentRef("users", uid), {"subscriptionStatus": {"tier": "pro"}}, merge=True)

    return _make_pro


@pytest.fixture
def make_admin(store):
    def _make_admin(uid: str) -> None:
        store.set(DocumentRef("users", uid), {"isAdmin": True}, merge=True)

    return _make_admin


@pytest.fixture
def pro_headers(auth_headers, make_pro):
    make_pro("pro-user")
    return auth_headers("pro-user", name="Pro User", email="pro@example.com")
