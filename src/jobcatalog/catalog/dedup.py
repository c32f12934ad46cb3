"""Cross-source duplicate detection and clustering.

The same real-world posting often appears on several sources under
different external ids.  The engine collapses those into one merged
record while keeping genuinely distinct postings apart:

1. **Decision** — :meth:`DuplicateEngine.is_duplicate` runs cheap checks
   first (exact key, same source, fuzzy key, date gap) and only computes
   the full weighted similarity for the survivors.

2. **Clustering** — records are bucketed by fuzzy key in one pass.
   Inside a bucket each unconsumed record seeds a group made of every
   other unconsumed member that is a duplicate *of the seed*.  This is
   deliberately not a transitive closure: if A~B and B~C but not A~C,
   seeding from A groups {A, B} and leaves C on its own.

3. **Merge** — each group is folded into its highest-quality member
   (first seen wins ties) with :func:`~jobcatalog.catalog.posting.merge`.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING

from jobcatalog.catalog.posting import merge
from jobcatalog.catalog.similarity import SimilarityScorer, day_gap

if TYPE_CHECKING:
    from collections.abc import Sequence

    from jobcatalog.catalog.posting import PostingRecord

logger = logging.getLogger(__name__)

# analyze_similarity() reason thresholds
_STRONG_SIGNAL = 0.9
_HIGH_TECH_OVERLAP = 0.7
_CLOSE_POSTING_DAYS = 3


@dataclass
class DeduplicationStats:
    """Before/after statistics for one deduplication pass."""

    original_count: int = 0
    deduplicated_count: int = 0
    duplicates_removed: int = 0
    duplicate_rate: float = 0.0
    multi_source_count: int = 0
    multi_source_rate: float = 0.0
    average_quality_score: float = 0.0
    source_breakdown: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass
class SimilarityAnalysis:
    """Human-readable explanation of why two postings do or don't match."""

    is_duplicate: bool
    overall: float
    breakdown: dict[str, float]
    reasons: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


class DuplicateEngine:
    """Decides duplicate-ness, clusters candidates and merges clusters."""

    def __init__(
        self,
        scorer: SimilarityScorer | None = None,
        *,
        similarity_threshold: float = 0.75,
        max_date_diff_days: int = 30,
    ) -> None:
        self.scorer = scorer or SimilarityScorer()
        self.similarity_threshold = similarity_threshold
        self.max_date_diff_days = max_date_diff_days

    # -- pairwise decision ---------------------------------------------------

    def is_duplicate(self, a: PostingRecord, b: PostingRecord) -> bool:
        """Symmetric duplicate test, cheapest checks first."""
        if a.exact_key == b.exact_key:
            return True
        # Records from one source are never duplicates of each other
        if a.source == b.source:
            return False
        if a.fuzzy_key != b.fuzzy_key:
            return False
        if day_gap(a.posted_date, b.posted_date) > self.max_date_diff_days:
            return False
        return self.scorer.similarity(a, b) >= self.similarity_threshold

    def find_duplicates(
        self,
        record: PostingRecord,
        candidates: Sequence[PostingRecord],
    ) -> list[PostingRecord]:
        """Return the candidates (other than *record* itself) that duplicate it."""
        return [
            candidate
            for candidate in candidates
            if candidate is not record and self.is_duplicate(record, candidate)
        ]

    # -- clustering ----------------------------------------------------------

    def deduplicate(self, records: Sequence[PostingRecord]) -> list[PostingRecord]:
        """Collapse duplicate clusters into merged records.

        Output order follows bucket first-appearance, then seed order
        within the bucket, so a fixed input order always gives the same
        result.
        """
        if not records:
            return []

        result: list[PostingRecord] = []
        for bucket in self._group_by_fuzzy_key(records).values():
            consumed: set[int] = set()  # indices into bucket

            for i, seed in enumerate(bucket):
                if i in consumed:
                    continue
                consumed.add(i)

                group = [seed]
                for j in range(len(bucket)):
                    if j in consumed:
                        continue
                    if self.is_duplicate(seed, bucket[j]):
                        group.append(bucket[j])
                        consumed.add(j)

                if len(group) > 1:
                    logger.debug(
                        "Merging %d postings under '%s' (%s)",
                        len(group),
                        seed.fuzzy_key,
                        ", ".join(r.exact_key for r in group),
                    )
                result.append(self.merge_cluster(group))

        logger.info(
            "Deduplicated %d postings into %d (%d merged away)",
            len(records),
            len(result),
            len(records) - len(result),
        )
        return result

    def merge_cluster(self, records: Sequence[PostingRecord]) -> PostingRecord:
        """Fold a duplicate group into its highest-quality member.

        Raises :class:`ValueError` for an empty group.
        """
        if not records:
            msg = "Cannot merge an empty group of postings"
            raise ValueError(msg)
        if len(records) == 1:
            return records[0]

        primary_index = 0
        best_score = records[0].quality_score
        for index, candidate in enumerate(records[1:], start=1):
            score = candidate.quality_score
            if score > best_score:
                primary_index, best_score = index, score

        merged = records[primary_index]
        for index, other in enumerate(records):
            if index != primary_index:
                merged = merge(merged, other)
        return merged

    @staticmethod
    def _group_by_fuzzy_key(
        records: Sequence[PostingRecord],
    ) -> dict[str, list[PostingRecord]]:
        groups: dict[str, list[PostingRecord]] = {}
        for record in records:
            groups.setdefault(record.fuzzy_key, []).append(record)
        return groups

    # -- reporting -----------------------------------------------------------

    @staticmethod
    def deduplication_stats(
        original: Sequence[PostingRecord],
        deduplicated: Sequence[PostingRecord],
    ) -> DeduplicationStats:
        """Summarize how much a deduplication pass collapsed."""
        breakdown: Counter[str] = Counter()
        for record in deduplicated:
            breakdown.update(record.sources)

        multi_source = sum(1 for record in deduplicated if len(record.sources) > 1)
        removed = len(original) - len(deduplicated)
        average_quality = (
            sum(record.quality_score for record in deduplicated) / len(deduplicated)
            if deduplicated
            else 0.0
        )

        return DeduplicationStats(
            original_count=len(original),
            deduplicated_count=len(deduplicated),
            duplicates_removed=removed,
            duplicate_rate=round(removed / len(original) * 100, 2) if original else 0.0,
            multi_source_count=multi_source,
            multi_source_rate=(
                round(multi_source / len(deduplicated) * 100, 2) if deduplicated else 0.0
            ),
            average_quality_score=round(average_quality, 1),
            source_breakdown=dict(sorted(breakdown.items())),
        )

    def analyze_similarity(self, a: PostingRecord, b: PostingRecord) -> SimilarityAnalysis:
        """Explain the comparison of two postings for manual review."""
        result = self.scorer.score(a, b)

        reasons: list[str] = []
        if result.company > _STRONG_SIGNAL:
            reasons.append("Very similar company names")
        if result.title > _STRONG_SIGNAL:
            reasons.append("Very similar job titles")
        if result.location > _STRONG_SIGNAL:
            reasons.append("Same location")
        if result.technologies > _HIGH_TECH_OVERLAP:
            reasons.append("High technology overlap")
        gap = day_gap(a.posted_date, b.posted_date)
        if gap <= _CLOSE_POSTING_DAYS:
            reasons.append(f"Posted within {gap} days")

        return SimilarityAnalysis(
            is_duplicate=self.is_duplicate(a, b),
            overall=round(result.overall, 2),
            breakdown={
                "company": round(result.company, 2),
                "title": round(result.title, 2),
                "location": round(result.location, 2),
                "technologies": round(result.technologies, 2),
                "posted_date": round(result.posted_date, 2),
            },
            reasons=reasons,
        )
