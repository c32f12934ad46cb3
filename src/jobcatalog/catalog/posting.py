"""Canonical posting record — identity, validation, quality and merge.

A :class:`PostingRecord` is an immutable value.  Every "change" in its
lifecycle (merging a duplicate in, resolving a region, deactivation)
produces a new record through :func:`dataclasses.replace`, which re-runs
validation, so an invalid record can never exist.

Salaries are stored in thousands of the source currency (k€ for the
French sources), matching how the source mappers normalize them.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from jobcatalog.errors import ActionableError
from jobcatalog.text import normalize

if TYPE_CHECKING:
    from collections.abc import Iterable

# ---------------------------------------------------------------------------
# Limits
# ---------------------------------------------------------------------------

MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 50_000
MIN_DESCRIPTION_LENGTH = 20
MIN_TECHNOLOGIES = 1
MAX_TECHNOLOGIES = 20
MAX_TECH_NAME_LENGTH = 50
MULTIPLE_TECHNOLOGIES = 3

RECENT_DAYS_THRESHOLD = 7
EXPIRATION_DAYS = 90
MIN_QUALITY_SCORE = 40


class ExperienceCategory(StrEnum):
    """Seniority bucket assigned by the experience classifier."""

    JUNIOR = "junior"
    MID = "mid"
    SENIOR = "senior"
    LEAD = "lead"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class QualityWeights:
    """Points awarded per completeness signal; the sum is capped at 100."""

    has_salary: int = 20
    has_region: int = 20
    has_description: int = 20
    has_multiple_technologies: int = 20
    has_experience_level: int = 15


QUALITY_WEIGHTS = QualityWeights()


def _now() -> datetime:
    return datetime.now(UTC)


def _today() -> date:
    return _now().date()


def posting_id(source: str, external_id: str) -> str:
    """Stable internal id: the same exact key always yields the same id."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"{source}:{external_id}"))


def dedupe_technologies(names: Iterable[str]) -> tuple[str, ...]:
    """Drop blanks and case-insensitive repeats, keeping the first spelling seen.

    Punctuation is significant: "C", "C++" and "C#" are three technologies.

    >>> dedupe_technologies(["React", "react ", "C++", "C#", "c++"])
    ('React', 'C++', 'C#')
    """
    seen: set[str] = set()
    result: list[str] = []
    for name in names:
        cleaned = name.strip()
        key = cleaned.lower()
        if not key or key in seen:
            continue
        seen.add(key)
        result.append(cleaned)
    return tuple(result)


# ---------------------------------------------------------------------------
# Posting record
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PostingRecord:
    """One canonical job posting.

    ``technologies`` is normalized on construction (blank and repeated
    names dropped) and ``sources`` always contains ``source``.
    ``id`` is derived from the exact key when not supplied.
    """

    source: str
    external_id: str
    title: str
    company: str
    description: str
    technologies: tuple[str, ...]
    location: str
    experience_category: ExperienceCategory
    posted_date: date
    region_id: str | None = None
    is_remote: bool = False
    salary_min: float | None = None
    salary_max: float | None = None
    experience_level: str | None = None
    source_url: str = ""
    is_active: bool = True
    sources: frozenset[str] = frozenset()
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    id: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "technologies", dedupe_technologies(self.technologies))
        object.__setattr__(self, "sources", frozenset(self.sources) | {self.source})
        if not self.id:
            object.__setattr__(self, "id", posting_id(self.source, self.external_id))
        self._validate()

    def _validate(self) -> None:
        if not self.source.strip() or not self.external_id.strip():
            raise ActionableError.validation(
                field_name="source/external_id",
                reason="both the source and the external id are required",
            )

        if not self.title.strip():
            raise ActionableError.validation(field_name="title", reason="title is required")
        if len(self.title) > MAX_TITLE_LENGTH:
            raise ActionableError.validation(
                field_name="title",
                reason=f"length {len(self.title)} exceeds {MAX_TITLE_LENGTH}",
            )

        if len(self.description) > MAX_DESCRIPTION_LENGTH:
            raise ActionableError.validation(
                field_name="description",
                reason=f"length {len(self.description)} exceeds {MAX_DESCRIPTION_LENGTH}",
            )

        if len(self.technologies) < MIN_TECHNOLOGIES:
            raise ActionableError.validation(
                field_name="technologies",
                reason="No technologies detected — at least one is required",
            )
        if len(self.technologies) > MAX_TECHNOLOGIES:
            raise ActionableError.validation(
                field_name="technologies",
                reason=f"{len(self.technologies)} technologies exceeds {MAX_TECHNOLOGIES}",
            )
        for tech in self.technologies:
            if len(tech) > MAX_TECH_NAME_LENGTH:
                raise ActionableError.validation(
                    field_name="technologies",
                    reason=f"'{tech[:20]}…' is {len(tech)} chars, max {MAX_TECH_NAME_LENGTH}",
                )

        if self.posted_date > _today():
            raise ActionableError.validation(
                field_name="posted_date",
                reason=f"{self.posted_date.isoformat()} is in the future",
            )

        if (
            self.salary_min is not None
            and self.salary_max is not None
            and self.salary_min > self.salary_max
        ):
            raise ActionableError.validation(
                field_name="salary",
                reason=f"minimum {self.salary_min} is greater than maximum {self.salary_max}",
            )

    # -- keys ----------------------------------------------------------------

    @property
    def exact_key(self) -> str:
        """``source:external_id`` — identifies one posting within one source."""
        return f"{self.source}:{self.external_id}"

    @property
    def fuzzy_key(self) -> str:
        """Normalized ``company:title`` used to bucket cross-source candidates."""
        return f"{normalize(self.company)}:{normalize(self.title)}"

    # -- quality -------------------------------------------------------------

    @property
    def quality_score(self) -> int:
        """Completeness score in [0, 100]."""
        weights = QUALITY_WEIGHTS
        score = 0
        if self.salary_min is not None or self.salary_max is not None:
            score += weights.has_salary
        if self.region_id:
            score += weights.has_region
        if len(self.description) > MIN_DESCRIPTION_LENGTH:
            score += weights.has_description
        if len(self.technologies) >= MULTIPLE_TECHNOLOGIES:
            score += weights.has_multiple_technologies
        if self.experience_level:
            score += weights.has_experience_level
        return min(score, 100)

    def meets_quality_standards(self, min_score: int = MIN_QUALITY_SCORE) -> bool:
        return self.quality_score >= min_score

    # -- derived business helpers --------------------------------------------

    @property
    def salary_midpoint(self) -> float | None:
        if self.salary_min is None or self.salary_max is None:
            return None
        return (self.salary_min + self.salary_max) / 2

    @property
    def primary_technology(self) -> str | None:
        return self.technologies[0] if self.technologies else None

    @property
    def is_senior_level(self) -> bool:
        return self.experience_category in (ExperienceCategory.SENIOR, ExperienceCategory.LEAD)

    @property
    def is_entry_level(self) -> bool:
        return self.experience_category == ExperienceCategory.JUNIOR

    def age_days(self, today: date | None = None) -> int:
        return ((today or _today()) - self.posted_date).days

    def is_recent(self, days: int = RECENT_DAYS_THRESHOLD) -> bool:
        return self.age_days() <= days

    def is_expired(self, days: int = EXPIRATION_DAYS) -> bool:
        return self.age_days() > days

    def requires_technology(self, name: str) -> bool:
        wanted = normalize(name)
        return any(normalize(tech) == wanted for tech in self.technologies)

    def matches_stack(self, names: Iterable[str]) -> bool:
        return all(self.requires_technology(name) for name in names)

    def is_from_source(self, source: str) -> bool:
        return source in self.sources

    # -- state transitions ---------------------------------------------------

    def with_region(self, region_id: str | None) -> PostingRecord:
        return replace(self, region_id=region_id)

    def deactivate(self) -> PostingRecord:
        return replace(self, is_active=False, updated_at=_now())

    def reactivate(self) -> PostingRecord:
        """Return an active copy; expired postings cannot be reactivated."""
        if self.is_expired():
            raise ActionableError.validation(
                field_name="is_active",
                reason=f"posting {self.exact_key} is older than {EXPIRATION_DAYS} days",
                suggestion="Expired postings stay inactive; ingest a fresh posting instead",
            )
        return replace(self, is_active=True, updated_at=_now())


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


def merge(base: PostingRecord, other: PostingRecord) -> PostingRecord:
    """Fold *other* into *base* and return the merged record.

    Not commutative: *base* keeps its identity, title and company, and
    only missing fields are taken from *other*.  Callers pick the
    highest-quality record of a cluster as *base*.
    """
    salary_min, salary_max = _merge_salary(base, other)

    description = base.description
    if len(other.description) > len(base.description):
        description = other.description

    source_url = base.source_url
    if other.source_url and (not base.source_url or len(other.source_url) > len(base.source_url)):
        source_url = other.source_url

    technologies = dedupe_technologies((*base.technologies, *other.technologies))

    return replace(
        base,
        sources=base.sources | other.sources,
        salary_min=salary_min,
        salary_max=salary_max,
        region_id=base.region_id if base.region_id is not None else other.region_id,
        experience_level=(
            base.experience_level if base.experience_level is not None else other.experience_level
        ),
        description=description,
        technologies=technologies[:MAX_TECHNOLOGIES],
        posted_date=max(base.posted_date, other.posted_date),
        source_url=source_url,
        updated_at=_now(),
    )


def _merge_salary(base: PostingRecord, other: PostingRecord) -> tuple[float | None, float | None]:
    """Prefer a complete range; otherwise fill the missing bound if it keeps min <= max."""
    base_complete = base.salary_min is not None and base.salary_max is not None
    other_complete = other.salary_min is not None and other.salary_max is not None
    if other_complete and not base_complete:
        return other.salary_min, other.salary_max

    low = base.salary_min if base.salary_min is not None else other.salary_min
    high = base.salary_max if base.salary_max is not None else other.salary_max
    if low is not None and high is not None and low > high:
        return base.salary_min, base.salary_max
    return low, high
