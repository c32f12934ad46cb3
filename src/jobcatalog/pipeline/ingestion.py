"""Ingestion pipeline — raw postings → canonical catalog.

The pipeline is the only component that talks to every collaborator.
One run executes six stages strictly in order; stages 1, 4 and 5 fan
out per item with :func:`asyncio.gather` under a semaphore and join
before the next stage starts:

1. **Transform** — tags (pre-supplied or from the tagger) and the
   experience category (from the classifier) for each raw posting, then
   construction of a validated :class:`PostingRecord`
2. **Quality filter** — drop records under ``min_quality_score``
3. **Deduplicate** — :meth:`DuplicateEngine.deduplicate`
4. **Region enrichment** — resolve a region for records without one
5. **Technology resolution** — make sure every tag exists in the catalog
6. **Persist** — one :meth:`PostingStore.bulk_upsert` call

Partial failures never raise.  A posting that cannot be transformed is
counted in ``failed`` with a message in ``errors``; a failed bulk write
marks every record of that write failed with one aggregate message.
Only programmer misuse (e.g. ``batch_size < 1``) raises.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from jobcatalog.catalog.dedup import DeduplicationStats, DuplicateEngine
from jobcatalog.catalog.posting import MIN_QUALITY_SCORE, PostingRecord, dedupe_technologies
from jobcatalog.catalog.similarity import SimilarityScorer
from jobcatalog.detectors import (
    CityRegionResolver,
    PatternExperienceClassifier,
    RegexTechnologyTagger,
    categorize,
)
from jobcatalog.errors import ActionableError
from jobcatalog.pipeline.results import BatchIngestResult, IngestResult, IngestStats
from jobcatalog.pipeline.retry import RetryPolicy
from jobcatalog.sources.base import to_posted_date

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from jobcatalog.catalog.posting import ExperienceCategory
    from jobcatalog.config import Settings
    from jobcatalog.detectors.base import (
        ExperienceClassifier,
        RegionResolver,
        TechnologyTagger,
    )
    from jobcatalog.sources.base import RawPosting
    from jobcatalog.storage.base import PostingStore, TechnologyCatalog

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

DEFAULT_BATCH_SIZE = 100
DEFAULT_CALL_TIMEOUT = 10.0
DEFAULT_MAX_CONCURRENCY = 5


def _tech_key(name: str) -> str:
    return name.strip().lower()


def build_record(
    raw: RawPosting,
    technologies: Sequence[str],
    category: ExperienceCategory,
) -> PostingRecord:
    """Construct the validated record for *raw* once its detected attributes are known.

    Raises VALIDATION (or :class:`ValueError` for a malformed date) on bad input.
    """
    return PostingRecord(
        source=raw.source,
        external_id=raw.external_id,
        title=raw.title,
        company=raw.company,
        description=raw.description,
        technologies=tuple(technologies),
        location=raw.location,
        experience_category=category,
        posted_date=to_posted_date(raw.posted_date),
        is_remote=raw.is_remote,
        salary_min=raw.salary_min,
        salary_max=raw.salary_max,
        experience_level=raw.experience_level,
        source_url=raw.source_url,
    )


@dataclass
class _RunOutcome:
    """Everything one run produced; ``ingest*`` methods expose parts of it."""

    result: IngestResult
    records: list[PostingRecord]
    new_technologies: int
    deduplication: DeduplicationStats


class IngestionPipeline:
    """Drives raw postings through transform → filter → dedup → enrich → persist.

    Usage::

        pipeline = IngestionPipeline(
            tagger=RegexTechnologyTagger(),
            classifier=PatternExperienceClassifier(),
            region_resolver=CityRegionResolver(),
            technology_catalog=catalog,
            posting_store=store,
        )
        result = await pipeline.ingest(raw_postings)

    The technology cache lives as long as the pipeline instance, so a
    long-lived pipeline only asks the catalog about each name once.
    """

    def __init__(
        self,
        *,
        tagger: TechnologyTagger,
        classifier: ExperienceClassifier,
        region_resolver: RegionResolver,
        technology_catalog: TechnologyCatalog,
        posting_store: PostingStore,
        engine: DuplicateEngine | None = None,
        retry_policy: RetryPolicy | None = None,
        min_quality_score: int = MIN_QUALITY_SCORE,
        batch_size: int = DEFAULT_BATCH_SIZE,
        call_timeout: float = DEFAULT_CALL_TIMEOUT,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        categorizer: Callable[[str], str] = categorize,
    ) -> None:
        if max_concurrency < 1:
            msg = f"max_concurrency must be >= 1, got {max_concurrency}"
            raise ValueError(msg)
        self._tagger = tagger
        self._classifier = classifier
        self._region_resolver = region_resolver
        self._catalog = technology_catalog
        self._store = posting_store
        self._engine = engine or DuplicateEngine()
        self._retry = retry_policy or RetryPolicy()
        self._min_quality_score = min_quality_score
        self._batch_size = batch_size
        self._call_timeout = call_timeout
        self._max_concurrency = max_concurrency
        self._categorize = categorizer

        self._technology_cache: set[str] = set()
        self._technology_lock = asyncio.Lock()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        technology_catalog: TechnologyCatalog,
        posting_store: PostingStore,
        tagger: TechnologyTagger | None = None,
        classifier: ExperienceClassifier | None = None,
        region_resolver: RegionResolver | None = None,
    ) -> IngestionPipeline:
        """Wire a pipeline from validated settings and the shipped default detectors."""
        dedup = settings.dedup
        engine = DuplicateEngine(
            SimilarityScorer(dedup.weights, min_tech_overlap=dedup.min_tech_overlap),
            similarity_threshold=dedup.similarity_threshold,
            max_date_diff_days=dedup.max_date_diff_days,
        )
        ingestion = settings.ingestion
        return cls(
            tagger=tagger or RegexTechnologyTagger(),
            classifier=classifier or PatternExperienceClassifier(),
            region_resolver=region_resolver or CityRegionResolver(),
            technology_catalog=technology_catalog,
            posting_store=posting_store,
            engine=engine,
            retry_policy=RetryPolicy.from_config(ingestion),
            min_quality_score=settings.quality.min_score,
            batch_size=ingestion.batch_size,
            call_timeout=ingestion.call_timeout,
            max_concurrency=ingestion.max_concurrency,
        )

    # -- Public API ----------------------------------------------------------

    async def ingest(self, raw: Sequence[RawPosting]) -> IngestResult:
        """Run every stage once over *raw* and summarize the outcome."""
        outcome = await self._run(raw)
        return outcome.result

    async def ingest_with_stats(self, raw: Sequence[RawPosting]) -> IngestStats:
        """Like :meth:`ingest`, plus quality / completeness / stack statistics."""
        outcome = await self._run(raw)
        return IngestStats.build(
            outcome.result,
            outcome.records,
            new_technologies=outcome.new_technologies,
            deduplication=outcome.deduplication,
        )

    async def ingest_in_batches(
        self,
        raw: Sequence[RawPosting],
        batch_size: int | None = None,
    ) -> BatchIngestResult:
        """Run the whole pipeline on consecutive slices of *raw*.

        A slice that blows up as a whole is recorded as fully failed with
        ``"Batch <n> failed: ..."``; later slices still run.
        """
        size = self._batch_size if batch_size is None else batch_size
        if size < 1:
            msg = f"batch_size must be >= 1, got {size}"
            raise ValueError(msg)

        batches = BatchIngestResult()
        for number, start in enumerate(range(0, len(raw), size), start=1):
            chunk = raw[start : start + size]
            logger.info("Ingesting batch %d (%d postings)", number, len(chunk))
            try:
                result = await self.ingest(chunk)
            except Exception as exc:
                logger.exception("Batch %d failed", number)
                result = IngestResult(total=len(chunk), source=chunk[0].source)
                result.add_failure(
                    f"Batch {number} failed: {str(exc) or type(exc).__name__}",
                    count=len(chunk),
                )
                result.finish()
            batches.batches.append(result)

        logger.info(
            "Batch ingestion complete — %d processed, %d inserted, %d updated, %d failed",
            batches.total_processed,
            batches.total_inserted,
            batches.total_updated,
            batches.total_failed,
        )
        return batches

    async def reload_technologies(self) -> int:
        """Replace the technology cache with the catalog's current names."""
        async with self._technology_lock:
            names = await self._catalog.list_names()
            self._technology_cache = {_tech_key(name) for name in names}
            logger.info("Technology cache reloaded (%d names)", len(self._technology_cache))
            return len(self._technology_cache)

    def clear_technology_cache(self) -> None:
        self._technology_cache.clear()

    @property
    def cached_technologies(self) -> frozenset[str]:
        return frozenset(self._technology_cache)

    # -- Stages --------------------------------------------------------------

    async def _run(self, raw: Sequence[RawPosting]) -> _RunOutcome:
        result = IngestResult(total=len(raw), source=raw[0].source if raw else None)
        if not raw:
            return _RunOutcome(result.finish(), [], 0, DeduplicationStats())

        semaphore = asyncio.Semaphore(self._max_concurrency)

        # 1. Transform
        transformed = await asyncio.gather(
            *(self._transform(item, result, semaphore) for item in raw)
        )
        records = [record for record in transformed if record is not None]

        # 2. Quality filter
        kept = [r for r in records if r.meets_quality_standards(self._min_quality_score)]
        if len(kept) < len(records):
            logger.info(
                "Quality filter dropped %d of %d postings (min score %d)",
                len(records) - len(kept),
                len(records),
                self._min_quality_score,
            )

        # 3. Deduplicate
        deduplicated = self._engine.deduplicate(kept)
        dedup_stats = self._engine.deduplication_stats(kept, deduplicated)

        # 4. Region enrichment
        enriched = list(
            await asyncio.gather(
                *(self._enrich_region(record, semaphore) for record in deduplicated)
            )
        )

        # 5. Technology resolution
        new_technologies = await self._resolve_technologies(enriched, semaphore)

        # 6. Persist
        await self._persist(enriched, result)

        result.finish()
        logger.info(
            "Ingested %d postings from %s — %d inserted, %d updated, %d failed (%.0f ms)",
            result.total,
            result.source,
            result.inserted,
            result.updated,
            result.failed,
            result.duration_ms or 0.0,
        )
        return _RunOutcome(result, enriched, new_technologies, dedup_stats)

    async def _transform(
        self,
        raw: RawPosting,
        result: IngestResult,
        semaphore: asyncio.Semaphore,
    ) -> PostingRecord | None:
        async with semaphore:
            try:
                if raw.technologies:
                    tags = raw.technologies
                else:
                    tags = await self._detect(
                        self._tagger.name,
                        raw,
                        lambda: self._tagger.tag(raw.description),
                    )
                category: ExperienceCategory = await self._detect(
                    self._classifier.name,
                    raw,
                    lambda: self._classifier.classify(
                        raw.title, raw.experience_level, raw.description
                    ),
                )
            except ActionableError as exc:
                logger.warning(exc.error)
                result.add_failure(exc.error)
                return None

        technologies = dedupe_technologies(tags)
        if not technologies:
            message = f"No technologies detected for posting {raw.id}"
            logger.info(message)
            result.add_failure(message)
            return None

        try:
            return build_record(raw, technologies, category)
        except (ActionableError, ValueError, TypeError) as exc:
            reason = exc.error if isinstance(exc, ActionableError) else str(exc)
            message = f"Failed to transform posting {raw.id}: {reason}"
            logger.warning(message)
            result.add_failure(message)
            return None

    async def _detect(
        self,
        detector: str,
        raw: RawPosting,
        fn: Callable[[], Awaitable[_T]],
    ) -> _T:
        """Call a detector through the retry policy; exhaustion becomes a DETECTION error."""
        try:
            return await self._retry.call(
                fn,
                timeout=self._call_timeout,
                operation=f"{detector} on posting {raw.id}",
            )
        except Exception as exc:
            raise ActionableError.detection(
                detector=detector,
                posting_id=raw.id,
                raw_error=str(exc) or type(exc).__name__,
                attempts=self._retry.max_attempts,
            ) from exc

    async def _enrich_region(
        self,
        record: PostingRecord,
        semaphore: asyncio.Semaphore,
    ) -> PostingRecord:
        if record.region_id is not None:
            return record
        async with semaphore:
            try:
                region_id = await self._retry.call(
                    lambda: self._region_resolver.resolve(record.location),
                    timeout=self._call_timeout,
                    operation=f"{self._region_resolver.name} on {record.exact_key}",
                )
            except Exception as exc:
                logger.warning(
                    "Region resolution failed for %s (%r): %s",
                    record.exact_key,
                    record.location,
                    str(exc) or type(exc).__name__,
                )
                return record
        if region_id is None:
            return record
        return record.with_region(region_id)

    async def _resolve_technologies(
        self,
        records: Sequence[PostingRecord],
        semaphore: asyncio.Semaphore,
    ) -> int:
        """Ensure every tag exists in the catalog; return how many were created."""
        names: dict[str, str] = {}
        for record in records:
            for tech in record.technologies:
                names.setdefault(_tech_key(tech), tech)

        async with self._technology_lock:
            pending = {key: name for key, name in names.items() if key not in self._technology_cache}
        if not pending:
            return 0

        created = await asyncio.gather(
            *(self._ensure_technology(key, name, semaphore) for key, name in pending.items())
        )
        count = sum(created)
        if count:
            logger.info("Added %d new technologies to the catalog", count)
        return count

    async def _ensure_technology(
        self,
        key: str,
        name: str,
        semaphore: asyncio.Semaphore,
    ) -> bool:
        async with semaphore:
            try:
                exists = await asyncio.wait_for(self._catalog.exists(name), self._call_timeout)
                if not exists:
                    await asyncio.wait_for(
                        self._catalog.create(name, self._categorize(name)),
                        self._call_timeout,
                    )
            except Exception as exc:
                # Left out of the cache so the next run asks again
                logger.warning(
                    "Technology catalog call failed for '%s': %s",
                    name,
                    str(exc) or type(exc).__name__,
                )
                return False
        self._technology_cache.add(key)
        return not exists

    async def _persist(self, records: Sequence[PostingRecord], result: IngestResult) -> None:
        if not records:
            return
        try:
            upsert = await self._store.bulk_upsert(records)
        except Exception as exc:
            error = ActionableError.persistence(
                operation="Bulk upsert",
                count=len(records),
                raw_error=str(exc) or type(exc).__name__,
            )
            logger.error(error.error)
            result.add_failure(error.error, count=len(records))
            return
        result.inserted += upsert.inserted
        result.updated += upsert.updated
        result.failed += upsert.failed
        result.errors.extend(upsert.errors)
