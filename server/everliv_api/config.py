"""Application configuration loaded from environment variables."""
import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Document store
    data_path: str = os.getenv("DATA_PATH", os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))
    store_filename: str = "everliv.db"

    @property
    def store_path(self) -> str:
        return os.path.join(self.data_path, self.store_filename)

    # API configuration
    api_host: str = "127.0.0.1"
    api_port: int = 8082
    log_level: str = "INFO"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Identity provider tokens
    jwt_secret: str  # EVERLIV_JWT_SECRET, required
    jwt_algorithm: str = "HS256"
    access_token_expire_days: int = 30

    # Generative AI provider
    gemini_api_key: Optional[str] = None
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_model: str = "gemini-2.5-flash"
    gemini_tts_model: str = "gemini-2.5-flash-preview-tts"
    gemini_tts_voice: str = "Kore"
    ai_timeout_seconds: float = 120.0

    # Store read retries
    retry_attempts: int = 3
    retry_base_delay: float = 0.5

    # Subscriptions
    default_subscription_tier: str = "free"
    pro_grant_days: int = 30
    payment_webhook_secret: Optional[str] = None

    class Config:
        env_prefix = "EVERLIV_"


@lru_cache
def get_settings() -> Settings:
    return Settings()
