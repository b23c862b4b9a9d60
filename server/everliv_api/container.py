"""Composition root: builds the services once and hands them to the routes."""
from dataclasses import dataclass
from typing import Optional

from .config import Settings, get_settings
from .database import DocumentStore
from .services.ai_gateway import GeminiGateway
from .services.biomarker_pipeline import BiomarkerPipeline
from .services.repository import HealthRepository
from .services.session import SessionService


@dataclass
class AppContainer:
    settings: Settings
    store: DocumentStore
    repository: HealthRepository
    gateway: GeminiGateway
    pipeline: BiomarkerPipeline
    sessions: SessionService

    @classmethod
    def build(
        cls,
        settings: Optional[Settings] = None,
        store: Optional[DocumentStore] = None,
        gateway: Optional[GeminiGateway] = None,
    ) -> "AppContainer":
        settings = settings or get_settings()
        store = store or DocumentStore(settings.store_path)
        repository = HealthRepository(store, settings)
        gateway = gateway or GeminiGateway(settings)
        return cls(
            settings=settings,
            store=store,
            repository=repository,
            gateway=gateway,
            pipeline=BiomarkerPipeline(repository, gateway),
            sessions=SessionService(repository),
        )
