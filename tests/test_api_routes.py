"""
Route tests for the Everliv Health API.

Run against the real SQLite store in a temporary directory and the fake AI
gateway from conftest.
"""
import json

import pytest

from server.everliv_api.database import DocumentRef
from server.everliv_api.services import prompts


def _events(body: str) -> list[tuple[str, dict]]:
    """Parse an SSE body into (event, data) pairs."""
    events = []
    for block in body.strip().split("\n\n"):
        lines = dict(line.split(": ", 1) for line in block.splitlines() if ": " in line)
        events.append((lines.get("event"), json.loads(lines["data"])))
    return events


ANALYSIS = {
    "summary": "Cholesterol is elevated.",
    "biomarkers": [
        {"name": "LDL Cholesterol", "value": "130", "unit": "mg/dL", "range": "<100",
         "explanation": "Bad cholesterol.", "status": "high"},
        {"name": "Hepatitis B", "value": "Negative", "unit": "", "range": "",
         "explanation": "Screening.", "status": "normal"},
    ],
    "recommendations": ["Eat more fiber."],
}


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


class TestSessionRoutes:
    def test_new_user_session(self, client, auth_headers):
        data = client.get("/api/session", headers=auth_headers("u1", name="Ann")).json()

        assert data["user"]["name"] == "Ann"
        assert data["isProfileComplete"] is False
        assert data["subscriptionStatus"]["tier"] == "free"
        assert data["effectiveTier"] == "free"
        assert data["landingRoute"] == "/setup"

    def test_navigation_for_free_user(self, client, auth_headers):
        items = {i["name"]: i for i in client.get("/api/navigation", headers=auth_headers()).json()}

        assert items["Dashboard"]["locked"] is True
        assert items["AI Assistant"]["locked"] is False
        assert "Content Management" not in items

    def test_navigation_for_pro_user(self, client, pro_headers):
        items = client.get("/api/navigation", headers=pro_headers).json()
        assert not any(i["locked"] for i in items)


class TestProfileRoutes:
    def test_profile_completes_session(self, client, auth_headers):
        headers = auth_headers()
        assert client.get("/api/profile", headers=headers).json() is None

        response = client.put(
            "/api/profile",
            json={"age": "34", "sex": "female", "height": 168, "weight": "", "healthGoals": ["Sleep"]},
            headers=headers,
        )

        assert response.status_code == 200
        session = response.json()
        assert session["isProfileComplete"] is True
        assert session["landingRoute"] == "/assistant"
        profile = client.get("/api/profile", headers=headers).json()
        assert profile["age"] == 34
        assert profile["weight"] is None

    def test_too_many_goals_rejected(self, client, auth_headers):
        response = client.put(
            "/api/profile", json={"age": 30, "healthGoals": ["a", "b", "c", "d"]}, headers=auth_headers()
        )
        assert response.status_code == 422


class TestProGating:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("get", "/api/biomarkers"),
            ("get", "/api/alerts"),
            ("get", "/api/blood-tests"),
            ("get", "/api/dashboard/daily-tip"),
            ("get", "/api/articles"),
            ("get", "/api/meditations"),
        ],
    )
    def test_free_user_gets_402(self, client, auth_headers, method, path):
        response = getattr(client, method)(path, headers=auth_headers())

        assert response.status_code == 402
        assert response.json()["code"] == "pro_required"

    def test_expired_pro_is_gated(self, client, auth_headers, store):
        store.set(
            DocumentRef("users", "u1"),
            {"subscriptionStatus": {"tier": "pro", "expiresAt": "2020-01-01T00:00:00+00:00"}},
        )

        response = client.get("/api/biomarkers", headers=auth_headers("u1"))

        assert response.status_code == 402


class TestBloodTestRoutes:
    def test_analyze_upload(self, client, pro_headers, fake_gateway):
        response = client.post(
            "/api/blood-tests/analyze",
            files={"file": ("report.png", b"\x89PNG fake image", "image/png")},
            data={"custom_biomarkers": "Ferritin"},
            headers=pro_headers,
        )

        assert response.status_code == 200
        assert response.json()["summary"] == "Mostly normal results."
        assert fake_gateway.calls[-1] == ("analyze", "image/png", "Ferritin")

    def test_analyze_rejects_non_images(self, client, pro_headers):
        response = client.post(
            "/api/blood-tests/analyze",
            files={"file": ("report.txt", b"hello", "text/plain")},
            headers=pro_headers,
        )
        assert response.status_code == 400

    def test_analyze_failure_returns_fallback_message(self, client, pro_headers, fake_gateway):
        fake_gateway.analysis_error = True

        response = client.post(
            "/api/blood-tests/analyze",
            files={"file": ("report.png", b"img", "image/png")},
            headers=pro_headers,
        )

        assert response.status_code == 502
        assert response.json() == {
            "detail": "Failed to analyze blood test results.",
            "code": "ai_unavailable",
        }

    def test_save_and_read_back(self, client, pro_headers):
        response = client.post("/api/blood-tests", json=ANALYSIS, headers=pro_headers)

        assert response.status_code == 201
        saved = response.json()
        assert saved["updatedBiomarkers"] == ["LDL Cholesterol"]
        assert saved["skippedReadings"] == ["Hepatitis B"]
        record_id = saved["record"]["id"]

        records = client.get("/api/blood-tests", headers=pro_headers).json()
        assert [r["id"] for r in records] == [record_id]
        record = client.get(f"/api/blood-tests/{record_id}", headers=pro_headers).json()
        assert len(record["analysis"]["biomarkers"]) == 2

    def test_unknown_record_is_404(self, client, pro_headers):
        response = client.get("/api/blood-tests/test-0", headers=pro_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "not_found"


class TestBiomarkerAndAlertRoutes:
    def test_alert_flag_is_live(self, client, pro_headers):
        client.post("/api/blood-tests", json=ANALYSIS, headers=pro_headers)

        biomarkers = client.get("/api/biomarkers", headers=pro_headers).json()
        assert biomarkers[0]["name"] == "LDL Cholesterol"
        assert biomarkers[0]["alertTriggered"] is False
        assert biomarkers[0]["recommendations"]["next_checkup"] == "In 3-6 months"

        response = client.put(
            "/api/alerts/LDL Cholesterol",
            json={"biomarkerName": "ignored", "enabled": True, "thresholdAbove": 100},
            headers=pro_headers,
        )
        assert response.json() == [
            {"biomarkerName": "LDL Cholesterol", "enabled": True, "thresholdBelow": None, "thresholdAbove": 100.0}
        ]

        biomarker = client.get("/api/biomarkers/LDL Cholesterol", headers=pro_headers).json()
        assert biomarker["alertTriggered"] is True
        statuses = client.get("/api/alerts/status", headers=pro_headers).json()
        assert statuses[0]["triggered"] is True

    def test_replace_alert_list(self, client, pro_headers):
        alerts = [
            {"biomarkerName": "Vitamin D", "enabled": True, "thresholdBelow": 30},
            {"biomarkerName": "LDL Cholesterol", "enabled": False},
        ]

        client.put("/api/alerts", json=alerts, headers=pro_headers)

        stored = client.get("/api/alerts", headers=pro_headers).json()
        assert [a["biomarkerName"] for a in stored] == ["Vitamin D", "LDL Cholesterol"]

    def test_unknown_biomarker_is_404(self, client, pro_headers):
        response = client.get("/api/biomarkers/Unobtainium", headers=pro_headers)
        assert response.status_code == 404


class TestAssistantRoutes:
    def test_chat_streams_and_stores_history(self, client, auth_headers):
        headers = auth_headers()

        response = client.post("/api/assistant/chat", json={"message": "Hi"}, headers=headers)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = _events(response.text)
        assert [e for e, _ in events] == ["delta", "delta", "done"]
        assert events[-1][1]["text"] == "Hello, how can I help?"

        history = client.get("/api/assistant/history", headers=headers).json()["messages"]
        assert history == [
            {"sender": "user", "text": "Hi", "image": None},
            {"sender": "ai", "text": "Hello, how can I help?", "image": None},
        ]

    def test_chat_error_stores_fallback(self, client, auth_headers, fake_gateway):
        fake_gateway.chat_chunks = []
        fake_gateway.chat_error = True
        headers = auth_headers()

        events = _events(client.post("/api/assistant/chat", json={"message": "Hi"}, headers=headers).text)

        assert [e for e, _ in events] == ["error", "done"]
        assert events[-1][1]["text"] == prompts.FALLBACK_CHAT_REPLY

    def test_analysis_command_runs_blood_test_analysis(self, client, pro_headers, fake_gateway):
        fake_gateway.chat_chunks = [prompts.ANALYZE_BLOOD_TEST_COMMAND]

        response = client.post(
            "/api/assistant/chat",
            json={"message": "Analyze my results", "image": {"data": "aW1n", "mimeType": "image/png"}},
            headers=pro_headers,
        )

        events = dict(_events(response.text))
        assert events["analysis"]["summary"] == "Mostly normal results."
        assert "Glucose: 92 mg/dL (normal)" in events["done"]["text"]
        assert fake_gateway.count("analyze") == 1

    def test_analysis_command_without_image(self, client, auth_headers, fake_gateway):
        fake_gateway.chat_chunks = [prompts.ANALYZE_BLOOD_TEST_COMMAND]

        events = dict(_events(client.post("/api/assistant/chat", json={"message": "x"}, headers=auth_headers()).text))

        assert events["done"]["text"] == "Sorry, you need to attach an image for analysis."
        assert fake_gateway.count("analyze") == 0

    def test_analysis_command_on_free_tier(self, client, auth_headers, fake_gateway):
        fake_gateway.chat_chunks = [prompts.ANALYZE_BLOOD_TEST_COMMAND]

        events = dict(
            _events(
                client.post(
                    "/api/assistant/chat",
                    json={"message": "x", "image": {"data": "aW1n"}},
                    headers=auth_headers(),
                ).text
            )
        )

        assert events["error"]["code"] == "pro_required"
        assert fake_gateway.count("analyze") == 0

    def test_empty_message_rejected(self, client, auth_headers):
        response = client.post("/api/assistant/chat", json={"message": "  "}, headers=auth_headers())
        assert response.status_code == 400

    def test_history_put_and_delete(self, client, auth_headers):
        headers = auth_headers()
        messages = [{"sender": "user", "text": "one"}, {"sender": "ai", "text": "two"}]

        client.put("/api/assistant/history", json={"messages": messages}, headers=headers)
        assert len(client.get("/api/assistant/history", headers=headers).json()["messages"]) == 2

        assert client.delete("/api/assistant/history", headers=headers).status_code == 204
        assert client.get("/api/assistant/history", headers=headers).json()["messages"] == []

    def test_speech(self, client, auth_headers):
        response = client.post("/api/assistant/speech", json={"text": "Hello"}, headers=auth_headers())

        assert response.status_code == 200
        assert response.json()["sampleRate"] == 24000


def test_daily_tip(client, pro_headers):
    data = client.get("/api/dashboard/daily-tip", headers=pro_headers).json()
    assert data["tip"] == "Take a short walk after lunch."
    assert data["date"]


class TestContentRoutes:
    ARTICLE = {"category": "Nutrition", "title": "Fiber 101", "summary": "Why fiber matters",
               "publishedDate": "2024-05-01", "content": "..."}

    def test_non_admin_cannot_write(self, client, pro_headers):
        response = client.post("/api/articles", json=self.ARTICLE, headers=pro_headers)

        assert response.status_code == 403
        assert response.json()["code"] == "admin_required"

    def test_admin_crud_and_likes(self, client, auth_headers, make_admin, make_pro):
        make_admin("admin")
        make_pro("admin")
        headers = auth_headers("admin")

        created = client.post("/api/articles", json=self.ARTICLE, headers=headers)
        assert created.status_code == 201
        article_id = created.json()["id"]

        assert [a["id"] for a in client.get("/api/articles", headers=headers).json()] == [article_id]

        liked = client.post(f"/api/articles/{article_id}/like", headers=headers).json()
        assert liked == {"likes": [article_id]}
        assert client.get("/api/articles/likes", headers=headers).json() == {"likes": [article_id]}

        updated = client.put(
            f"/api/articles/{article_id}", json={**self.ARTICLE, "title": "Fiber 102"}, headers=headers
        )
        assert updated.json()["title"] == "Fiber 102"

        assert client.delete(f"/api/articles/{article_id}", headers=headers).status_code == 204
        assert client.get(f"/api/articles/{article_id}", headers=headers).status_code == 404

    def test_like_unknown_article_is_404(self, client, pro_headers):
        response = client.post("/api/articles/missing/like", headers=pro_headers)
        assert response.status_code == 404

    def test_meditation_audio(self, client, auth_headers, make_admin, make_pro, fake_gateway):
        make_admin("admin")
        make_pro("admin")
        headers = auth_headers("admin")
        meditation = client.post(
            "/api/meditations",
            json={"title": "Calm", "duration": "5 min", "script": "Breathe in slowly."},
            headers=headers,
        ).json()

        response = client.post(f"/api/meditations/{meditation['id']}/audio", headers=headers)

        assert response.status_code == 200
        assert fake_gateway.calls[-1] == ("speech", "Breathe in slowly.", True)

    def test_content_permission_error(self, client, pro_headers, store, monkeypatch):
        from server.everliv_api.errors import PermissionDeniedError

        def denied(*args, **kwargs):
            raise PermissionDeniedError("not authorized")

        monkeypatch.setattr(store, "query", denied)

        response = client.get("/api/articles", headers=pro_headers)

        assert response.status_code == 503
        assert response.json()["code"] == "content_backend_misconfigured"


class TestAccountRoutes:
    def test_export_is_an_attachment_and_stable(self, client, pro_headers):
        client.post("/api/blood-tests", json=ANALYSIS, headers=pro_headers)

        first = client.get("/api/account/export", headers=pro_headers)
        second = client.get("/api/account/export", headers=pro_headers)

        assert first.status_code == 200
        assert "everliv_health_backup_" in first.headers["content-disposition"]
        assert first.content == second.content
        assert set(first.json()) == {
            "healthProfile", "subscriptionStatus", "biomarkers", "testHistory",
            "alerts", "chatHistory", "articleLikes",
        }

    def test_import_restores_export(self, client, pro_headers, auth_headers):
        client.post("/api/blood-tests", json=ANALYSIS, headers=pro_headers)
        exported = client.get("/api/account/export", headers=pro_headers).json()
        headers = auth_headers("u2")

        response = client.post("/api/account/import", json=exported, headers=headers)

        assert response.status_code == 200
        backup = client.get("/api/account/export", headers=headers).json()
        assert backup["biomarkers"] == exported["biomarkers"]
        assert backup["testHistory"] == exported["testHistory"]

    def test_import_clears_present_empty_keys(self, client, pro_headers):
        client.put("/api/profile", json={"age": 50}, headers=pro_headers)
        client.put("/api/alerts", json=[{"biomarkerName": "LDL Cholesterol", "enabled": True}], headers=pro_headers)

        response = client.post(
            "/api/account/import",
            json={"alerts": [], "chatHistory": [], "healthProfile": None},
            headers=pro_headers,
        )

        assert response.status_code == 200
        assert response.json()["isProfileComplete"] is False
        assert client.get("/api/alerts", headers=pro_headers).json() == []

    def test_import_rejects_unrelated_json(self, client, auth_headers):
        response = client.post("/api/account/import", json={"foo": 1}, headers=auth_headers())
        assert response.status_code == 422

    def test_wipe(self, client, pro_headers, store, container):
        client.put("/api/profile", json={"age": 50}, headers=pro_headers)
        client.post("/api/blood-tests", json=ANALYSIS, headers=pro_headers)
        client.put("/api/alerts", json=[{"biomarkerName": "LDL Cholesterol", "enabled": True}], headers=pro_headers)

        before = container.sessions.registry.get("pro-user")

        response = client.delete("/api/account/data", headers=pro_headers)

        assert response.status_code == 200
        session = response.json()
        assert session["isProfileComplete"] is False
        assert session["effectiveTier"] == "free"
        assert store.query("users/pro-user/biomarkers") == []
        assert store.query("users/pro-user/testHistory") == []
        assert store.get(DocumentRef("users/pro-user/settings", "alerts")) is None
        assert container.sessions.registry.get("pro-user") is not before

    def test_upgrade_grants_pro(self, client, auth_headers):
        headers = auth_headers()

        session = client.post("/api/account/subscription/upgrade", headers=headers).json()

        assert session["effectiveTier"] == "pro"
        assert session["subscriptionStatus"]["expiresAt"] is not None
        assert client.get("/api/biomarkers", headers=headers).status_code == 200

    def test_callback_requires_secret(self, client):
        body = {"uid": "u1", "tier": "pro"}

        assert client.post("/api/account/subscription/callback", json=body).status_code == 401
        wrong = {"X-Webhook-Secret": "nope"}
        assert client.post("/api/account/subscription/callback", json=body, headers=wrong).status_code == 401

    def test_callback_sets_tier(self, client, auth_headers, container):
        response = client.post(
            "/api/account/subscription/callback",
            json={"uid": "u1", "tier": "pro", "expiresAt": "2099-01-01T00:00:00+00:00"},
            headers={"X-Webhook-Secret": "hook-secret"},
        )

        assert response.status_code == 200
        assert container.sessions.registry.get("u1").snapshot.effective_tier.value == "pro"
        assert client.get("/api/session", headers=auth_headers("u1")).json()["effectiveTier"] == "pro"


class TestSpecialistsRoutes:
    def test_subscribe(self, client, auth_headers, store):
        response = client.post(
            "/api/specialists/subscribe", json={"email": "ann@example.com"}, headers=auth_headers("u1")
        )

        assert response.status_code == 201
        assert store.get(DocumentRef("specialists_subscriptions", "u1"))["email"] == "ann@example.com"

    def test_invalid_email(self, client, auth_headers):
        response = client.post("/api/specialists/subscribe", json={"email": "nope"}, headers=auth_headers())
        assert response.status_code == 422
