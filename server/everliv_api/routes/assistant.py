"""AI assistant API routes: streamed chat, history and speech."""
import asyncio
import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import StreamingResponse

from ..dependencies import get_gateway, get_repository, get_session
from ..errors import AIGatewayError
from ..models.blood_test import BloodTestAnalysis
from ..models.chat import ChatHistory, ChatMessage, ChatRequest, MessageSender, SpeechAudio, SpeechRequest
from ..models.profile import SubscriptionTier
from ..models.session import SessionSnapshot
from ..services.ai_gateway import ChatStreamAccumulator, GeminiGateway
from ..services.repository import HealthRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/assistant", tags=["Assistant"])

NO_IMAGE_REPLY = "Sorry, you need to attach an image for analysis."
UPGRADE_REPLY = "Blood test analysis is a Pro feature. Upgrade to analyze your report."
ANALYSIS_FAILED_REPLY = (
    "I'm sorry, I was unable to analyze that report. Please ensure it's a clear "
    "image of a blood test result and try again."
)


def _sse(event: str, payload: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(payload)}\n\n"


def format_analysis_for_chat(analysis: BloodTestAnalysis) -> str:
    lines = [analysis.summary, ""]
    for reading in analysis.biomarkers:
        unit = f" {reading.unit}" if reading.unit else ""
        lines.append(f"- {reading.name}: {reading.value}{unit} ({reading.status})")
    if analysis.recommendations:
        lines.append("")
        lines.extend(f"* {item}" for item in analysis.recommendations)
    return "\n".join(lines).strip()


@router.post("/chat")
async def chat(
    body: ChatRequest,
    request: Request,
    session: SessionSnapshot = Depends(get_session),
    repository: HealthRepository = Depends(get_repository),
    gateway: GeminiGateway = Depends(get_gateway),
):
    """
    Stream the assistant's reply via Server-Sent Events (SSE).

    Events:
        delta     {"text": "..."}            a chunk of the reply
        analysis  BloodTestAnalysis          the model asked for report analysis
        error     {"detail": "...", "code"}  provider failure, fallback text
        done      {"text": "..."}            the full reply as stored

    The user message and the final reply are appended to the stored
    history once the stream completes. If the client disconnects, reading
    from the provider stops and nothing is stored.
    """
    if not body.message.strip() and body.image is None:
        raise HTTPException(status_code=400, detail="Message or image is required")

    uid = session.uid
    biomarkers, history = await asyncio.gather(
        repository.list_biomarkers(uid),
        repository.get_chat_history(uid),
    )

    async def event_generator():
        accumulator = ChatStreamAccumulator()
        stream = gateway.stream_chat(session.user, biomarkers, history, body.message, body.image)
        reply = None
        try:
            async for delta in stream:
                if await request.is_disconnected():
                    logger.info(f"[CHAT] Client disconnected, dropping stream for {uid}")
                    return
                accumulator.add(delta)
                yield _sse("delta", {"text": delta})
        except AIGatewayError as e:
            reply = e.user_message
            yield _sse("error", {"detail": e.user_message, "code": e.code})
        finally:
            await stream.aclose()

        if reply is None and accumulator.is_analysis_command:
            if body.image is None:
                reply = NO_IMAGE_REPLY
            elif session.effective_tier is not SubscriptionTier.PRO:
                reply = UPGRADE_REPLY
                yield _sse("error", {"detail": UPGRADE_REPLY, "code": "pro_required"})
            else:
                try:
                    analysis = await gateway.analyze_blood_test(body.image.data, body.image.mime_type)
                except AIGatewayError:
                    reply = ANALYSIS_FAILED_REPLY
                    yield _sse("error", {"detail": reply, "code": "ai_unavailable"})
                else:
                    reply = format_analysis_for_chat(analysis)
                    yield _sse("analysis", analysis.model_dump(mode="json", by_alias=True))

        if reply is None:
            reply = accumulator.text

        await repository.append_chat_messages(
            uid,
            ChatMessage(sender=MessageSender.USER, text=body.message),
            ChatMessage(sender=MessageSender.AI, text=reply),
        )
        yield _sse("done", {"text": reply})

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("/history", response_model=ChatHistory)
async def get_history(
    session: SessionSnapshot = Depends(get_session),
    repository: HealthRepository = Depends(get_repository),
):
    return ChatHistory(messages=await repository.get_chat_history(session.uid))


@router.put("/history", response_model=ChatHistory)
async def save_history(
    history: ChatHistory,
    session: SessionSnapshot = Depends(get_session),
    repository: HealthRepository = Depends(get_repository),
):
    """Overwrite the stored conversation."""
    await repository.save_chat_history(session.uid, history.messages)
    return history


@router.delete("/history", status_code=204)
async def clear_history(
    session: SessionSnapshot = Depends(get_session),
    repository: HealthRepository = Depends(get_repository),
):
    await repository.clear_chat_history(session.uid)
    return Response(status_code=204)


@router.post("/speech", response_model=SpeechAudio)
async def speech(
    body: SpeechRequest,
    session: SessionSnapshot = Depends(get_session),
    gateway: GeminiGateway = Depends(get_gateway),
):
    """Read an assistant message aloud."""
    if not body.text.strip():
        raise HTTPException(status_code=400, detail="Text is required")
    return await gateway.synthesize_speech(body.text)
