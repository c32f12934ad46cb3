"""Multi-signal similarity between two postings.

Five independent signals, each in [0.0, 1.0], are combined into one
weighted score:

1. **Company** — edit-distance ratio of normalized company names
2. **Title** — edit-distance ratio of normalized titles
3. **Location** — edit-distance ratio of normalized location text
4. **Technologies** — Jaccard index of normalized technology sets,
   halved when it falls below ``min_tech_overlap``
5. **Posted date** — piecewise decay over the day gap

Every signal degrades toward 0.0 on empty input instead of raising, so
any two valid records can always be compared.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING

from jobcatalog.config import SimilarityWeights
from jobcatalog.text import normalize

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import date

    from jobcatalog.catalog.posting import PostingRecord

# Date-proximity breakpoints (days) and the score at each.
_SAME_WEEK_DAYS = 7
_SAME_MONTH_DAYS = 30
_WEEK_MAX_PENALTY = 0.3
_MONTH_START_SCORE = 0.7
_MONTH_MAX_PENALTY = 0.4
_DISTANT_SCORE = 0.3

_LOW_OVERLAP_PENALTY = 0.5


@dataclass(frozen=True)
class SimilarityResult:
    """Per-signal scores plus the weighted overall score."""

    company: float
    title: float
    location: float
    technologies: float
    posted_date: float
    overall: float

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Signal functions
# ---------------------------------------------------------------------------


def levenshtein_distance(a: str, b: str) -> int:
    """Minimum single-character insertions, deletions and substitutions.

    Classical dynamic programming, keeping two rows of the table.

    >>> levenshtein_distance("kitten", "sitting")
    3
    """
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            if char_a == char_b:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j], current[j - 1], previous[j - 1]))
        previous = current
    return previous[-1]


def string_similarity(a: str, b: str) -> float:
    """Edit-distance ratio of two already-normalized strings.

    1.0 when equal, 0.0 when either side is empty.
    """
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    return 1.0 - levenshtein_distance(a, b) / max(len(a), len(b))


def technology_overlap(
    first: Iterable[str],
    second: Iterable[str],
    *,
    min_overlap: float = 0.5,
) -> float:
    """Jaccard index of two technology lists, penalizing weak overlap.

    Both empty → 1.0; exactly one empty → 0.0.  An index below
    *min_overlap* is halved rather than cut to zero.
    """
    set_a = {key for key in (normalize(t) for t in first) if key}
    set_b = {key for key in (normalize(t) for t in second) if key}
    if not set_a and not set_b:
        return 1.0
    if not set_a or not set_b:
        return 0.0

    jaccard = len(set_a & set_b) / len(set_a | set_b)
    if jaccard < min_overlap:
        return jaccard * _LOW_OVERLAP_PENALTY
    return jaccard


def day_gap(first: date, second: date) -> int:
    return abs((first - second).days)


def date_proximity(first: date, second: date) -> float:
    """Score two posting dates by how close together they are."""
    days = day_gap(first, second)
    if days == 0:
        return 1.0
    if days <= _SAME_WEEK_DAYS:
        return 1.0 - (days / _SAME_WEEK_DAYS) * _WEEK_MAX_PENALTY
    if days <= _SAME_MONTH_DAYS:
        span = _SAME_MONTH_DAYS - _SAME_WEEK_DAYS
        return _MONTH_START_SCORE - ((days - _SAME_WEEK_DAYS) / span) * _MONTH_MAX_PENALTY
    return _DISTANT_SCORE


# ---------------------------------------------------------------------------
# Scorer
# ---------------------------------------------------------------------------


class SimilarityScorer:
    """Weighted five-signal similarity between two postings.

    Weights are relative; the overall score is divided by their total so
    it always lands in [0.0, 1.0].
    """

    def __init__(
        self,
        weights: SimilarityWeights | None = None,
        *,
        min_tech_overlap: float = 0.5,
    ) -> None:
        self.weights = weights or SimilarityWeights()
        self.min_tech_overlap = min_tech_overlap
        if self.weights.total <= 0:
            msg = "Similarity weights must have a positive total"
            raise ValueError(msg)

    def score(self, a: PostingRecord, b: PostingRecord) -> SimilarityResult:
        """Compute all five signals and the weighted overall score."""
        company = string_similarity(normalize(a.company), normalize(b.company))
        title = string_similarity(normalize(a.title), normalize(b.title))
        location = string_similarity(normalize(a.location), normalize(b.location))
        technologies = technology_overlap(
            a.technologies, b.technologies, min_overlap=self.min_tech_overlap
        )
        posted = date_proximity(a.posted_date, b.posted_date)

        w = self.weights
        weighted = (
            company * w.company
            + title * w.title
            + location * w.location
            + technologies * w.technologies
            + posted * w.posted_date
        )
        return SimilarityResult(
            company=company,
            title=title,
            location=location,
            technologies=technologies,
            posted_date=posted,
            overall=weighted / w.total,
        )

    def similarity(self, a: PostingRecord, b: PostingRecord) -> float:
        """Overall weighted similarity in [0.0, 1.0]."""
        return self.score(a, b).overall
