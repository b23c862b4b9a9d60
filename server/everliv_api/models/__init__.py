"""Pydantic models for the Everliv Health API."""
from .alerts import BiomarkerAlert, BiomarkerAlertStatus
from .biomarker import AIGeneratedRecommendations, Biomarker, BiomarkerView, HistoryEntry
from .blood_test import BiomarkerReading, BloodTestAnalysis, BloodTestRecord, SavedTestResult
from .chat import ChatHistory, ChatMessage, ChatRequest, DailyTip, MessageSender, SpeechAudio
from .content import Article, Meditation
from .export import DataExport
from .profile import HealthProfile, SubscriptionCallback, SubscriptionStatus, SubscriptionTier, User
from .session import NavigationItem, SessionSnapshot

__all__ = [
    "AIGeneratedRecommendations",
    "Article",
    "Biomarker",
    "BiomarkerAlert",
    "BiomarkerAlertStatus",
    "BiomarkerReading",
    "BiomarkerView",
    "BloodTestAnalysis",
    "BloodTestRecord",
    "ChatHistory",
    "ChatMessage",
    "ChatRequest",
    "DailyTip",
    "DataExport",
    "HealthProfile",
    "HistoryEntry",
    "Meditation",
    "MessageSender",
    "NavigationItem",
    "SavedTestResult",
    "SessionSnapshot",
    "SpeechAudio",
    "SubscriptionCallback",
    "SubscriptionStatus",
    "SubscriptionTier",
    "User",
]
