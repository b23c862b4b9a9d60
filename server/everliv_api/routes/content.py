"""Articles and Mindful Moments API routes.

Content is shared by all users. Reading it is a pro feature; writing it is
reserved for admins.
"""
from fastapi import APIRouter, Depends, Response

from ..dependencies import get_gateway, get_repository, require_admin, require_pro
from ..models.chat import SpeechAudio
from ..models.content import Article, ArticleInput, ArticleLikes, Meditation, MeditationInput
from ..models.session import SessionSnapshot
from ..services.ai_gateway import GeminiGateway
from ..services.repository import HealthRepository

router = APIRouter(prefix="/api", tags=["Content"])


# ============================================================================
# Articles
# ============================================================================


@router.get("/articles", response_model=list[Article])
async def list_articles(
    session: SessionSnapshot = Depends(require_pro),
    repository: HealthRepository = Depends(get_repository),
):
    """Articles, newest first."""
    return await repository.list_articles()


@router.get("/articles/likes", response_model=ArticleLikes)
async def get_article_likes(
    session: SessionSnapshot = Depends(require_pro),
    repository: HealthRepository = Depends(get_repository),
):
    return ArticleLikes(likes=await repository.get_article_likes(session.uid))


@router.put("/articles/likes", response_model=ArticleLikes)
async def save_article_likes(
    likes: ArticleLikes,
    session: SessionSnapshot = Depends(require_pro),
    repository: HealthRepository = Depends(get_repository),
):
    return ArticleLikes(likes=await repository.save_article_likes(session.uid, likes.likes))


@router.get("/articles/{article_id}", response_model=Article)
async def get_article(
    article_id: str,
    session: SessionSnapshot = Depends(require_pro),
    repository: HealthRepository = Depends(get_repository),
):
    return await repository.get_article(article_id)


@router.post("/articles/{article_id}/like", response_model=ArticleLikes)
async def toggle_article_like(
    article_id: str,
    session: SessionSnapshot = Depends(require_pro),
    repository: HealthRepository = Depends(get_repository),
):
    """Like the article, or remove the like if it is already there."""
    await repository.get_article(article_id)
    return ArticleLikes(likes=await repository.toggle_article_like(session.uid, article_id))


@router.post("/articles", response_model=Article, status_code=201)
async def create_article(
    article: ArticleInput,
    session: SessionSnapshot = Depends(require_admin),
    repository: HealthRepository = Depends(get_repository),
):
    return await repository.create_article(article)


@router.put("/articles/{article_id}", response_model=Article)
async def update_article(
    article_id: str,
    article: ArticleInput,
    session: SessionSnapshot = Depends(require_admin),
    repository: HealthRepository = Depends(get_repository),
):
    return await repository.update_article(article_id, article)


@router.delete("/articles/{article_id}", status_code=204)
async def delete_article(
    article_id: str,
    session: SessionSnapshot = Depends(require_admin),
    repository: HealthRepository = Depends(get_repository),
):
    await repository.delete_article(article_id)
    return Response(status_code=204)


# ============================================================================
# Meditations
# ============================================================================


@router.get("/meditations", response_model=list[Meditation])
async def list_meditations(
    session: SessionSnapshot = Depends(require_pro),
    repository: HealthRepository = Depends(get_repository),
):
    return await repository.list_meditations()


@router.get("/meditations/{meditation_id}", response_model=Meditation)
async def get_meditation(
    meditation_id: str,
    session: SessionSnapshot = Depends(require_pro),
    repository: HealthRepository = Depends(get_repository),
):
    return await repository.get_meditation(meditation_id)


@router.post("/meditations/{meditation_id}/audio", response_model=SpeechAudio)
async def meditation_audio(
    meditation_id: str,
    session: SessionSnapshot = Depends(require_pro),
    repository: HealthRepository = Depends(get_repository),
    gateway: GeminiGateway = Depends(get_gateway),
):
    """
    Narrate a meditation script.

    Audio is raw 16-bit PCM (base64); the client wraps it for playback
    using ``sampleRate`` and ``channels``.
    """
    meditation = await repository.get_meditation(meditation_id)
    return await gateway.synthesize_speech(meditation.script or meditation.summary, meditation=True)


@router.post("/meditations", response_model=Meditation, status_code=201)
async def create_meditation(
    meditation: MeditationInput,
    session: SessionSnapshot = Depends(require_admin),
    repository: HealthRepository = Depends(get_repository),
):
    return await repository.create_meditation(meditation)


@router.put("/meditations/{meditation_id}", response_model=Meditation)
async def update_meditation(
    meditation_id: str,
    meditation: MeditationInput,
    session: SessionSnapshot = Depends(require_admin),
    repository: HealthRepository = Depends(get_repository),
):
    return await repository.update_meditation(meditation_id, meditation)


@router.delete("/meditations/{meditation_id}", status_code=204)
async def delete_meditation(
    meditation_id: str,
    session: SessionSnapshot = Depends(require_admin),
    repository: HealthRepository = Depends(get_repository),
):
    await repository.delete_meditation(meditation_id)
    return Response(status_code=204)
