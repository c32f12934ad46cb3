"""Run summaries returned by the ingestion pipeline.

Every type exposes ``to_dict()`` with JSON-ready values (ISO timestamps,
plain ints and floats), so the CLI can print or dump them unchanged.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from jobcatalog.catalog.dedup import DeduplicationStats

if TYPE_CHECKING:
    from collections.abc import Sequence

    from jobcatalog.catalog.posting import PostingRecord

HIGH_QUALITY_SCORE = 70
MEDIUM_QUALITY_SCORE = 40
RICH_DESCRIPTION_LENGTH = 100
TOP_TECHNOLOGIES = 10


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass
class IngestResult:
    """Counts and error messages for one pipeline run."""

    total: int = 0
    inserted: int = 0
    updated: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)
    started_at: datetime = field(default_factory=_now)
    finished_at: datetime | None = None
    source: str | None = None

    @property
    def duration_ms(self) -> float | None:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds() * 1000

    def add_failure(self, message: str, count: int = 1) -> None:
        self.failed += count
        self.errors.append(message)

    def finish(self) -> IngestResult:
        self.finished_at = _now()
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "inserted": self.inserted,
            "updated": self.updated,
            "failed": self.failed,
            "errors": list(self.errors),
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_ms": self.duration_ms,
            "source": self.source,
        }


@dataclass
class BatchIngestResult:
    """Aggregate of the per-sub-batch results of ``ingest_in_batches``."""

    batches: list[IngestResult] = field(default_factory=list)

    @property
    def total_processed(self) -> int:
        return sum(b.total for b in self.batches)

    @property
    def total_inserted(self) -> int:
        return sum(b.inserted for b in self.batches)

    @property
    def total_updated(self) -> int:
        return sum(b.updated for b in self.batches)

    @property
    def total_failed(self) -> int:
        return sum(b.failed for b in self.batches)

    @property
    def total_duration_ms(self) -> float:
        return sum(b.duration_ms or 0.0 for b in self.batches)

    @property
    def average_batch_duration_ms(self) -> float:
        timed = [b.duration_ms for b in self.batches if b.duration_ms]
        return sum(timed) / len(timed) if timed else 0.0

    @property
    def errors(self) -> list[str]:
        return [error for b in self.batches for error in b.errors]

    def to_dict(self) -> dict[str, Any]:
        return {
            "batches": [b.to_dict() for b in self.batches],
            "summary": {
                "total_processed": self.total_processed,
                "total_inserted": self.total_inserted,
                "total_updated": self.total_updated,
                "total_failed": self.total_failed,
                "total_duration_ms": self.total_duration_ms,
                "average_batch_duration_ms": self.average_batch_duration_ms,
            },
            "errors": self.errors,
        }


@dataclass
class QualityStats:
    average_quality_score: float = 0.0
    high_quality: int = 0
    medium_quality: int = 0
    low_quality: int = 0


@dataclass
class CompletenessStats:
    with_salary: int = 0
    with_region: int = 0
    with_experience_level: int = 0
    with_rich_description: int = 0


@dataclass
class TechnologyStats:
    distinct_technologies: int = 0
    new_technologies: int = 0
    top_technologies: list[tuple[str, int]] = field(default_factory=list)


@dataclass
class IngestStats:
    """An :class:`IngestResult` plus quality, completeness and stack statistics."""

    result: IngestResult
    quality: QualityStats = field(default_factory=QualityStats)
    completeness: CompletenessStats = field(default_factory=CompletenessStats)
    technologies: TechnologyStats = field(default_factory=TechnologyStats)
    deduplication: DeduplicationStats = field(default_factory=DeduplicationStats)

    @classmethod
    def build(
        cls,
        result: IngestResult,
        records: Sequence[PostingRecord],
        *,
        new_technologies: int,
        deduplication: DeduplicationStats,
    ) -> IngestStats:
        """Compute statistics over the records that reached the store."""
        scores = [record.quality_score for record in records]
        quality = QualityStats(
            average_quality_score=round(sum(scores) / len(scores), 1) if scores else 0.0,
            high_quality=sum(1 for s in scores if s >= HIGH_QUALITY_SCORE),
            medium_quality=sum(1 for s in scores if MEDIUM_QUALITY_SCORE <= s < HIGH_QUALITY_SCORE),
            low_quality=sum(1 for s in scores if s < MEDIUM_QUALITY_SCORE),
        )

        completeness = CompletenessStats(
            with_salary=sum(
                1 for r in records if r.salary_min is not None or r.salary_max is not None
            ),
            with_region=sum(1 for r in records if r.region_id is not None),
            with_experience_level=sum(1 for r in records if r.experience_level is not None),
            with_rich_description=sum(
                1 for r in records if len(r.description) > RICH_DESCRIPTION_LENGTH
            ),
        )

        counts: Counter[str] = Counter()
        for record in records:
            counts.update(record.technologies)
        technologies = TechnologyStats(
            distinct_technologies=len(counts),
            new_technologies=new_technologies,
            top_technologies=counts.most_common(TOP_TECHNOLOGIES),
        )

        return cls(
            result=result,
            quality=quality,
            completeness=completeness,
            technologies=technologies,
            deduplication=deduplication,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "result": self.result.to_dict(),
            "quality": vars(self.quality).copy(),
            "completeness": vars(self.completeness).copy(),
            "technologies": {
                "distinct_technologies": self.technologies.distinct_technologies,
                "new_technologies": self.technologies.new_technologies,
                "top_technologies": [
                    {"name": name, "count": count}
                    for name, count in self.technologies.top_technologies
                ],
            },
            "deduplication": self.deduplication.to_dict(),
        }
