#!/usr/bin/env python3
"""
Seed the Everliv document store with a demo user and shared content.

The demo user gets a complete health profile, three historical blood tests
with the biomarkers they produced, alert thresholds, a greeting in the chat
and one liked article. Articles and meditations are shared by everyone.
A bearer token for the demo user is printed at the end.

Usage:
    pip install -e .
    EVERLIV_JWT_SECRET=... python scripts/seed_demo_data.py [uid]
"""
import asyncio
import sys
from datetime import datetime, timedelta, timezone

from server.everliv_api.auth import create_access_token
from server.everliv_api.config import get_settings
from server.everliv_api.database import DocumentStore
from server.everliv_api.models import DataExport, SubscriptionStatus
from server.everliv_api.models.content import ArticleInput, MeditationInput
from server.everliv_api.services.repository import HealthRepository

DEMO_UID = "demo-user"
DEMO_NAME = "Alex Demo"
DEMO_EMAIL = "demo@everliv.app"

DATE_1 = "2023-11-15T10:00:00+00:00"
DATE_2 = "2024-02-20T10:00:00+00:00"
DATE_3 = "2024-05-01T10:00:00+00:00"

LDL = {"name": "LDL Cholesterol", "unit": "mg/dL", "range": "0-100 mg/dL", "explanation": 'LDL is "bad" cholesterol.'}
VITAMIN_D = {"name": "Vitamin D", "unit": "ng/mL", "range": "30-100 ng/mL", "explanation": "Essential for bones."}

DEMO_DATA = {
    "healthProfile": {
        "age": 34,
        "sex": "male",
        "height": 180,
        "weight": 82,
        "activityLevel": "moderate",
        "healthGoals": ["Improve heart health", "Increase energy levels"],
        "dietaryPreferences": "Low-carb, focuses on whole foods.",
        "chronicConditions": "None reported",
        "allergies": "Seasonal pollen",
        "supplements": "Vitamin D (2000 IU), Omega-3 Fish Oil",
    },
    "testHistory": [
        {
            "id": "test-1",
            "date": DATE_1,
            "analysis": {
                "summary": "Initial test shows elevated LDL cholesterol and low Vitamin D.",
                "biomarkers": [
                    {**LDL, "value": "130", "status": "high"},
                    {**VITAMIN_D, "value": "25", "status": "low"},
                ],
                "recommendations": ["Reduce saturated fats.", "Consider Vitamin D supplement."],
            },
        },
        {
            "id": "test-2",
            "date": DATE_2,
            "analysis": {
                "summary": "Follow-up shows positive progress.",
                "biomarkers": [
                    {**LDL, "value": "110", "status": "borderline"},
                    {**VITAMIN_D, "value": "38", "status": "normal"},
                ],
                "recommendations": ["Continue current diet.", "Maintain exercise."],
            },
        },
        {
            "id": "test-3",
            "date": DATE_3,
            "analysis": {
                "summary": "Excellent results, LDL is now normal.",
                "biomarkers": [
                    {**LDL, "value": "95", "status": "normal"},
                    {**VITAMIN_D, "value": "45", "status": "normal"},
                ],
                "recommendations": ["Maintain lifestyle.", "Re-check in 6-12 months."],
            },
        },
    ],
    "biomarkers": [
        {
            "name": "LDL Cholesterol",
            "value": "95",
            "unit": "mg/dL",
            "status": "normal",
            "range": "0-100 mg/dL",
            "description": 'LDL is "bad" cholesterol.',
            "trend": "down",
            "lastUpdated": DATE_3,
            "history": [
                {"value": 130, "date": DATE_1, "sourceTestId": "test-1"},
                {"value": 110, "date": DATE_2, "sourceTestId": "test-2"},
                {"value": 95, "date": DATE_3, "sourceTestId": "test-3"},
            ],
            "recommendations": {
                "nutrition": ["Increase soluble fiber."],
                "lifestyle": ["Engage in aerobic exercise."],
                "supplements": ["Consult doctor about plant sterols."],
                "next_checkup": "In 6-12 months.",
            },
        },
        {
            "name": "Vitamin D",
            "value": "45",
            "unit": "ng/mL",
            "status": "normal",
            "range": "30-100 ng/mL",
            "description": "Essential for bone health.",
            "trend": "up",
            "lastUpdated": DATE_3,
            "history": [
                {"value": 25, "date": DATE_1, "sourceTestId": "test-1"},
                {"value": 38, "date": DATE_2, "sourceTestId": "test-2"},
                {"value": 45, "date": DATE_3, "sourceTestId": "test-3"},
            ],
            "recommendations": {
                "nutrition": ["Eat fatty fish."],
                "lifestyle": ["Get sensible sun exposure."],
                "supplements": ["Continue current supplement."],
                "next_checkup": "Annually.",
            },
        },
    ],
    "alerts": [
        {"biomarkerName": "LDL Cholesterol", "enabled": True, "thresholdAbove": 100},
        {"biomarkerName": "Vitamin D", "enabled": True, "thresholdBelow": 30},
    ],
    "chatHistory": [{"sender": "ai", "text": "Hello! How can I help you today?"}],
}

ARTICLES = [
    ArticleInput(
        category="Nutrition",
        title="The Benefits of a Mediterranean Diet",
        summary="Discover why the Mediterranean diet is consistently ranked as one of the healthiest "
        "eating patterns for heart health and longevity.",
        image_url="https://images.unsplash.com/photo-1522184216316-3c25379f9760?q=80&w=2070&auto=format&fit=crop",
        author="Dr. Emily Carter",
        author_avatar="https://randomuser.me/api/portraits/women/44.jpg",
        published_date="2024-05-15",
        content="<p>The Mediterranean diet is based on the traditional cuisines of Greece, Italy and other "
        "countries that border the Mediterranean Sea. Plant-based foods, olive oil and fish are staples.</p>"
        "<p>Try simple swaps like using olive oil instead of butter and eating fish twice a week.</p>",
    ),
    ArticleInput(
        category="Fitness",
        title="High-Intensity Interval Training (HIIT) Explained",
        summary="Learn how short bursts of intense exercise followed by brief recovery periods can "
        "significantly boost your cardiovascular fitness.",
        image_url="https://images.unsplash.com/photo-1517836357463-d25dfeac3438?q=80&w=2070&auto=format&fit=crop",
        author="Mark Johnson",
        author_avatar="https://randomuser.me/api/portraits/men/32.jpg",
        published_date="2024-05-10",
        content="<p>HIIT alternates short, intense bursts of exercise with low-intensity recovery periods. "
        "It is one of the most time-efficient ways to exercise.</p>"
        "<p>Start slowly, warm up properly and cool down afterward.</p>",
    ),
    ArticleInput(
        category="Mental Wellness",
        title="Mindfulness and Meditation for Stress Reduction",
        summary="Explore simple techniques to practice mindfulness and meditation, which can help calm "
        "your mind and reduce daily stress.",
        image_url="https://images.unsplash.com/photo-1506126613408-4e05860f5d58?q=80&w=2070&auto=format&fit=crop",
        author="Aisha Khan",
        author_avatar="https://randomuser.me/api/portraits/women/65.jpg",
        published_date="2024-04-28",
        content="<p>Mindfulness is the practice of bringing your attention to the present moment without "
        "evaluation. Even a few minutes a day can make a difference.</p>"
        "<p>The goal isn't to stop your thoughts, but to observe them without getting carried away.</p>",
    ),
]

MEDITATIONS = [
    MeditationInput(
        title="Morning Gratitude",
        duration="3 min",
        category="Morning",
        summary="Start your day with a positive mindset by focusing on what you are grateful for.",
        image_url="https://images.unsplash.com/photo-1475113548554-5a36f1f523d6?q=80&w=1280&auto=format&fit=crop",
        script="Welcome to your morning gratitude meditation. Find a comfortable seat... gently close your "
        "eyes... take a deep breath in... and slowly breathe out. Think of one thing you are grateful for "
        "this morning, and let that feeling fill you with warmth... Take one more deep breath, and as you "
        "exhale, slowly open your eyes.",
    ),
    MeditationInput(
        title="Mindful Breathing",
        duration="5 min",
        category="Relax",
        summary="A simple but powerful exercise to anchor yourself in the present moment.",
        image_url="https://images.unsplash.com/photo-1506126613408-4e05860f5d58?q=80&w=1280&auto=format&fit=crop",
        script="Let's begin our mindful breathing practice. Sit comfortably, back straight but relaxed... "
        "Notice the air entering your nostrils... and the warmer air as you breathe out... When your mind "
        "wanders, gently bring your attention back to the breath... When you are ready, open your eyes.",
    ),
    MeditationInput(
        title="Winding Down",
        duration="8 min",
        category="Sleep",
        summary="Release the tension of the day and prepare your mind and body for restful sleep.",
        image_url="https://images.unsplash.com/photo-1444210971048-6a3006adbe44?q=80&w=1280&auto=format&fit=crop",
        script="Get ready for sleep... Lie down comfortably and close your eyes... Take a soft breath in... "
        "and a long, slow breath out... Let your feet grow heavy and relaxed... let the relaxation rise "
        "through your legs... your shoulders... your jaw... Nothing to do, nowhere to go. Good night.",
    ),
]


async def seed(repository: HealthRepository, uid: str) -> dict:
    """Write the demo user and shared content. Returns counts per collection."""
    await repository.upsert_identity(uid, DEMO_NAME, DEMO_EMAIL, f"https://i.pravatar.cc/150?u={uid}")
    await repository.import_data(uid, DataExport.model_validate(DEMO_DATA))
    await repository.set_subscription(
        uid,
        SubscriptionStatus(tier="pro", expires_at=datetime.now(timezone.utc) + timedelta(days=365)),
    )
    repository.store.set(repository.user_ref(uid), {"isAdmin": True}, merge=True)

    existing = {article.title for article in await repository.list_articles()}
    articles = [await repository.create_article(a) for a in ARTICLES if a.title not in existing]
    existing = {meditation.title for meditation in await repository.list_meditations()}
    meditations = [await repository.create_meditation(m) for m in MEDITATIONS if m.title not in existing]

    liked = [a.id for a in await repository.list_articles() if a.title == ARTICLES[0].title]
    await repository.save_article_likes(uid, liked)

    return {
        "biomarkers": len(DEMO_DATA["biomarkers"]),
        "testHistory": len(DEMO_DATA["testHistory"]),
        "alerts": len(DEMO_DATA["alerts"]),
        "articles": len(articles),
        "meditations": len(meditations),
    }


def main():
    """Seed demo data into the configured store."""
    uid = sys.argv[1] if len(sys.argv) > 1 else DEMO_UID
    settings = get_settings()

    print("=" * 60)
    print("Everliv Demo Data Seeding Script")
    print("=" * 60)
    print(f"\nDocument store: {settings.store_path}")
    print(f"Demo user:      {uid}\n")

    repository = HealthRepository(DocumentStore(settings.store_path), settings)
    counts = asyncio.run(seed(repository, uid))

    for collection, count in counts.items():
        print(f"  {collection:<12} {count} written")

    print()
    print("=" * 60)
    print("Complete! Use this bearer token to call the API as the demo user:")
    print("=" * 60)
    print(create_access_token(uid, DEMO_NAME, DEMO_EMAIL, settings=settings))


if __name__ == "__main__":
    main()
