"""API route modules."""
from .account import router as account_router
from .alerts import router as alerts_router
from .assistant import router as assistant_router
from .biomarkers import router as biomarkers_router
from .blood_tests import router as blood_tests_router
from .content import router as content_router
from .dashboard import router as dashboard_router
from .profile import router as profile_router
from .session import router as session_router
from .specialists import router as specialists_router

__all__ = [
    "account_router",
    "alerts_router",
    "assistant_router",
    "biomarkers_router",
    "blood_tests_router",
    "content_router",
    "dashboard_router",
    "profile_router",
    "session_router",
    "specialists_router",
]
