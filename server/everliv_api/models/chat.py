"""Assistant chat and speech models."""
from enum import Enum
from typing import Optional

from pydantic import Field

from .base import CamelModel


class MessageSender(str, Enum):
    USER = "user"
    AI = "ai"


class ChatMessage(CamelModel):
    sender: MessageSender
    text: str
    image: Optional[str] = None


class ImageAttachment(CamelModel):
    """Base64 image sent along with a chat message."""

    data: str
    mime_type: str = "image/jpeg"


class ChatRequest(CamelModel):
    message: str = ""
    image: Optional[ImageAttachment] = None


class ChatHistory(CamelModel):
    messages: list[ChatMessage] = Field(default_factory=list)


class SpeechRequest(CamelModel):
    text: str


class SpeechAudio(CamelModel):
    """Synthesized audio; raw little-endian 16-bit PCM, base64 encoded."""

    audio: str
    mime_type: str = "audio/L16"
    sample_rate: int = 24000
    channels: int = 1


class DailyTip(CamelModel):
    tip: str
    date: str
