"""
Gemini gateway.

Thin request/response wrapper around the Gemini REST API for:
- blood test image -> structured analysis
- biomarker -> recommendation bundle
- profile + biomarkers -> streamed assistant chat
- text -> speech audio
- daily health tip

There is no retry or circuit breaker here: a failed call surfaces to the
caller at once, either as an ``AIGatewayError`` or as fallback content for
the calls that have one.
"""
import json
import logging
import re
from datetime import date
from typing import Any, AsyncIterator, Iterable, Optional

import httpx
from pydantic import ValidationError

from ..config import Settings, get_settings
from ..errors import AIGatewayError
from ..models.biomarker import AIGeneratedRecommendations, Biomarker
from ..models.blood_test import BiomarkerReading, BloodTestAnalysis
from ..models.chat import ChatMessage, ImageAttachment, MessageSender, SpeechAudio
from ..models.profile import User
from . import prompts

logger = logging.getLogger(__name__)

# Only the most recent turns are replayed to the model
MAX_HISTORY_MESSAGES = 30

_RATE_RE = re.compile(r"rate=(\d+)")


def _extract_json_object(text: str) -> str:
    """Strip markdown fences or chatter around a JSON object."""
    text = (text or "").strip()
    text = re.sub(r"^```(?:json)?\s*", "", text, flags=re.IGNORECASE)
    text = re.sub(r"\s*```$", "", text)
    if text.startswith("{") and text.endswith("}"):
        return text
    match = re.search(r"\{.*\}", text, flags=re.DOTALL)
    return match.group(0) if match else text


def _response_text(data: dict) -> str:
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts)


def _history_to_contents(history: Iterable[ChatMessage]) -> list[dict]:
    """Convert stored messages to Gemini turns; the first turn must be the user's."""
    contents: list[dict] = []
    for message in list(history)[-MAX_HISTORY_MESSAGES:]:
        role = "user" if message.sender is MessageSender.USER else "model"
        if not contents and role == "model":
            continue
        if not message.text:
            continue
        if contents and contents[-1]["role"] == role:
            contents[-1]["parts"].append({"text": message.text})
        else:
            contents.append({"role": role, "parts": [{"text": message.text}]})
    return contents


class ChatStreamAccumulator:
    """Folds streamed text deltas into the full reply."""

    def __init__(self):
        self._parts: list[str] = []

    def add(self, delta: str) -> str:
        self._parts.append(delta)
        return self.text

    @property
    def text(self) -> str:
        return "".join(self._parts)

    @property
    def is_analysis_command(self) -> bool:
        return self.text.strip() == prompts.ANALYZE_BLOOD_TEST_COMMAND


class DailyTipCache:
    """Keeps one tip per user per calendar day."""

    def __init__(self):
        self._tips: dict[str, tuple[date, str]] = {}

    def get(self, uid: str, today: Optional[date] = None) -> Optional[str]:
        today = today or date.today()
        cached = self._tips.get(uid)
        if cached and cached[0] == today:
            return cached[1]
        return None

    def put(self, uid: str, tip: str, today: Optional[date] = None) -> None:
        self._tips[uid] = (today or date.today(), tip)

    def clear(self, uid: Optional[str] = None) -> None:
        if uid is None:
            self._tips.clear()
        else:
            self._tips.pop(uid, None)


class GeminiGateway:
    """Calls the Gemini REST API over httpx."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport
        self.tip_cache = DailyTipCache()

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.settings.gemini_base_url,
            timeout=self.settings.ai_timeout_seconds,
            transport=self._transport,
        )

    def _params(self, **extra) -> dict:
        if not self.settings.gemini_api_key:
            raise AIGatewayError("EVERLIV_GEMINI_API_KEY is not configured")
        return {"key": self.settings.gemini_api_key, **extra}

    async def _generate(self, model: str, body: dict) -> dict:
        params = self._params()
        try:
            async with self._client() as client:
                response = await client.post(f"/models/{model}:generateContent", params=params, json=body)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            raise AIGatewayError(
                f"Gemini returned {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise AIGatewayError(f"Gemini request failed: {e}") from e

    async def _generate_json(self, model: str, contents: Any, schema: dict) -> dict:
        data = await self._generate(
            model,
            {
                "contents": contents,
                "generationConfig": {
                    "responseMimeType": "application/json",
                    "responseSchema": schema,
                },
            },
        )
        text = _extract_json_object(_response_text(data))
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise AIGatewayError(f"Model returned invalid JSON: {text[:200]}") from e

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    async def analyze_blood_test(
        self,
        image_base64: str,
        mime_type: str,
        custom_biomarkers: Optional[str] = None,
    ) -> BloodTestAnalysis:
        """Extract a structured analysis from a blood test image."""
        contents = [
            {
                "role": "user",
                "parts": [
                    {"text": prompts.build_analysis_prompt(custom_biomarkers)},
                    {"inlineData": {"mimeType": mime_type, "data": image_base64}},
                ],
            }
        ]
        try:
            payload = await self._generate_json(self.settings.gemini_model, contents, prompts.ANALYSIS_SCHEMA)
            analysis = BloodTestAnalysis.model_validate(payload)
            if not analysis.summary:
                raise AIGatewayError("AI response did not match the expected format.")
            logger.info(f"[AI] Analysis extracted {len(analysis.biomarkers)} biomarker(s)")
            return analysis
        except (AIGatewayError, ValidationError) as e:
            logger.error(f"[AI] Error analyzing blood test: {e}")
            raise AIGatewayError(
                str(e),
                user_message="Failed to analyze blood test results. The AI model may be temporarily unavailable.",
            ) from e

    async def get_biomarker_recommendations(self, reading: BiomarkerReading) -> AIGeneratedRecommendations:
        """Recommendation bundle for one biomarker; falls back to generic advice on failure."""
        contents = [{"role": "user", "parts": [{"text": prompts.build_recommendations_prompt(reading)}]}]
        try:
            payload = await self._generate_json(self.settings.gemini_model, contents, prompts.RECOMMENDATIONS_SCHEMA)
            return AIGeneratedRecommendations.model_validate(payload)
        except (AIGatewayError, ValidationError) as e:
            logger.error(f"[AI] Error getting recommendations for {reading.name}: {e}")
            return AIGeneratedRecommendations.model_validate(prompts.FALLBACK_RECOMMENDATIONS)

    async def get_daily_health_tip(self, uid: str, user: User, biomarkers: list[Biomarker]) -> str:
        cached = self.tip_cache.get(uid)
        if cached:
            return cached
        contents = [{"role": "user", "parts": [{"text": prompts.build_daily_tip_prompt(user, biomarkers)}]}]
        try:
            data = await self._generate(self.settings.gemini_model, {"contents": contents})
            tip = _response_text(data).strip()
            if not tip:
                raise AIGatewayError("Empty tip")
        except AIGatewayError as e:
            logger.error(f"[AI] Error generating daily health tip: {e}")
            return prompts.FALLBACK_DAILY_TIP
        self.tip_cache.put(uid, tip)
        return tip

    async def stream_chat(
        self,
        user: User,
        biomarkers: list[Biomarker],
        history: list[ChatMessage],
        message: str,
        image: Optional[ImageAttachment] = None,
    ) -> AsyncIterator[str]:
        """
        Stream the assistant's reply as text deltas.

        The sequence is finite; a new request starts a new stream. Closing
        the generator early closes the upstream HTTP response.
        """
        parts: list[dict] = []
        if message:
            parts.append({"text": message})
        if image is not None:
            parts.append({"inlineData": {"mimeType": image.mime_type, "data": image.data}})
        body = {
            "systemInstruction": {
                "parts": [{"text": prompts.build_chat_system_instruction(user, biomarkers)}]
            },
            "contents": _history_to_contents(history) + [{"role": "user", "parts": parts}],
        }
        params = self._params(alt="sse")
        url = f"/models/{self.settings.gemini_model}:streamGenerateContent"

        try:
            async with self._client() as client:
                async with client.stream("POST", url, params=params, json=body) as response:
                    if response.status_code >= 400:
                        detail = (await response.aread()).decode("utf-8", "replace")[:200]
                        logger.error(f"[AI] Chat stream failed: {response.status_code} {detail}")
                        raise AIGatewayError(
                            f"Gemini returned {response.status_code}: {detail}",
                            user_message=prompts.FALLBACK_CHAT_REPLY,
                        )
                    async for line in response.aiter_lines():
                        if not line.startswith("data:"):
                            continue
                        chunk = json.loads(line[len("data:"):].strip())
                        delta = _response_text(chunk)
                        if delta:
                            yield delta
        except (httpx.HTTPError, json.JSONDecodeError) as e:
            logger.error(f"[AI] Chat stream failed: {e}")
            raise AIGatewayError(str(e), user_message=prompts.FALLBACK_CHAT_REPLY) from e

    async def synthesize_speech(self, text: str, meditation: bool = False) -> SpeechAudio:
        """Text to speech; returns base64 PCM audio."""
        spoken = prompts.build_speech_prompt(text) if meditation else text
        body = {
            "contents": [{"role": "user", "parts": [{"text": spoken}]}],
            "generationConfig": {
                "responseModalities": ["AUDIO"],
                "speechConfig": {
                    "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": self.settings.gemini_tts_voice}}
                },
            },
        }
        try:
            data = await self._generate(self.settings.gemini_tts_model, body)
        except AIGatewayError as e:
            logger.error(f"[AI] Speech synthesis failed: {e}")
            raise AIGatewayError(str(e), user_message="Could not generate audio right now.") from e

        for candidate in data.get("candidates") or []:
            for part in (candidate.get("content") or {}).get("parts") or []:
                inline = part.get("inlineData")
                if inline and inline.get("data"):
                    mime_type = inline.get("mimeType", "audio/L16;rate=24000")
                    rate = _RATE_RE.search(mime_type)
                    return SpeechAudio(
                        audio=inline["data"],
                        mime_type=mime_type,
                        sample_rate=int(rate.group(1)) if rate else 24000,
                    )
        raise AIGatewayError("No audio data in response", user_message="Could not generate audio right now.")
