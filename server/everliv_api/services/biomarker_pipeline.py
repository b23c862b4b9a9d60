"""Save a blood test analysis and fold its readings into biomarker histories."""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Protocol

from ..models.biomarker import AIGeneratedRecommendations, Biomarker, HistoryEntry, Trend, parse_numeric
from ..models.blood_test import BiomarkerReading, BloodTestAnalysis, BloodTestRecord
from .repository import HealthRepository

logger = logging.getLogger(__name__)


class RecommendationSource(Protocol):
    async def get_biomarker_recommendations(self, reading: BiomarkerReading) -> AIGeneratedRecommendations:
        ...


@dataclass
class SaveResult:
    record: BloodTestRecord
    updated: list[Biomarker] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def compute_trend(new_value: float, previous: Optional[float]) -> Trend:
    if previous is None or new_value == previous:
        return "stable"
    return "up" if new_value > previous else "down"


def merge_reading(
    existing: Optional[Biomarker],
    reading: BiomarkerReading,
    value: float,
    recorded_at: str,
    source_test_id: str,
    recommendations: Optional[AIGeneratedRecommendations],
) -> Biomarker:
    """
    Fold one numeric reading into a biomarker record.

    The current fields take the newest reading as is; the history only grows.
    """
    history = list(existing.history) if existing else []
    previous = history[-1].value if history else None
    history.append(HistoryEntry(value=value, date=recorded_at, source_test_id=source_test_id))

    return Biomarker(
        name=reading.name,
        value=reading.value,
        unit=reading.unit,
        status=reading.status,
        range=reading.range,
        description=reading.explanation,
        last_updated=recorded_at,
        trend=compute_trend(value, previous),
        history=history,
        recommendations=recommendations,
    )


def new_record_id(now: datetime) -> str:
    return f"test-{int(now.timestamp() * 1000)}-{uuid.uuid4().hex[:6]}"


class BiomarkerPipeline:
    """Merge-on-save for blood test results."""

    def __init__(self, repository: HealthRepository, recommendations: RecommendationSource):
        self.repository = repository
        self.recommendations = recommendations

    async def save_test_result(
        self,
        uid: str,
        analysis: BloodTestAnalysis,
        now: Optional[datetime] = None,
    ) -> SaveResult:
        """
        Persist ``analysis`` as a new test record and update biomarker histories.

        Readings without a name or with a non-numeric value are kept in the
        record but skipped for the history merge. Recommendation calls run
        before the batch is built; the record and every biomarker upsert are
        then committed together.
        """
        now = now or datetime.now(timezone.utc)
        recorded_at = now.isoformat()
        record = BloodTestRecord(id=new_record_id(now), date=recorded_at, analysis=analysis)
        result = SaveResult(record=record)

        # Working copies, so a name repeated within one analysis folds in order
        merged: dict[str, Biomarker] = {}
        for reading in analysis.biomarkers:
            value = parse_numeric(reading.value)
            if not reading.name or value is None:
                result.skipped.append(reading.name)
                logger.debug(f"[PIPELINE] Skipping merge for {reading.name!r}={reading.value!r}")
                continue

            existing = merged.get(reading.name)
            if existing is None:
                existing = await self.repository.get_biomarker(uid, reading.name)

            recommendations = await self.recommendations.get_biomarker_recommendations(reading)
            merged[reading.name] = merge_reading(
                existing, reading, value, recorded_at, record.id, recommendations
            )

        batch = self.repository.batch()
        batch.set(self.repository.test_record_ref(uid, record.id), record.to_document())
        for name, biomarker in merged.items():
            batch.set(self.repository.biomarker_ref(uid, name), biomarker.to_document())
        batch.commit()

        result.updated = list(merged.values())
        logger.info(
            f"[PIPELINE] Saved {record.id} for {uid}: {len(result.updated)} biomarker(s) updated, "
            f"{len(result.skipped)} skipped"
        )
        return result
