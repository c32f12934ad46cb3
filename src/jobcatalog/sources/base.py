"""Shared input contract and abstract base class for source mappers."""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any

from jobcatalog.errors import ActionableError

logger = logging.getLogger(__name__)

# Substrings that mark a posting as remote, in French and English
REMOTE_KEYWORDS: tuple[str, ...] = (
    "remote",
    "télétravail",
    "teletravail",
    "à distance",
    "full remote",
    "100% remote",
    "home office",
)


@dataclass
class RawPosting:
    """Source-agnostic input to the ingestion pipeline.

    ``posted_date`` may be a :class:`date`, a :class:`datetime` or ISO-8601
    text; the pipeline normalizes it with :func:`to_posted_date` so that a
    malformed value fails only this posting.  ``technologies`` holds tags a
    source already supplied; when non-empty the tagger is skipped.
    """

    id: str
    title: str
    company: str
    description: str
    location: str
    source: str
    external_id: str
    posted_date: date | datetime | str
    is_remote: bool = False
    salary_min: float | None = None
    salary_max: float | None = None
    experience_level: str | None = None
    source_url: str = ""
    technologies: list[str] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RawPosting:
        """Build from a JSON object using the field names above.

        ``id`` defaults to ``external_id``.  Raises PARSE when a required
        key is missing or a salary is not a number.
        """
        missing = [
            key
            for key in ("title", "company", "source", "external_id", "posted_date")
            if data.get(key) in (None, "")
        ]
        if missing:
            raise ActionableError.parse(
                source="raw posting",
                location=f"id={data.get('id') or data.get('external_id') or '?'}",
                raw_error=f"missing required field(s): {', '.join(missing)}",
            )
        external_id = str(data["external_id"])
        technologies = data.get("technologies")
        try:
            salary_min = _optional_float(data.get("salary_min"))
            salary_max = _optional_float(data.get("salary_max"))
        except (TypeError, ValueError) as exc:
            raise ActionableError.parse(
                source="raw posting",
                location=f"id={data.get('id') or external_id}, salary",
                raw_error=str(exc),
            ) from None
        return cls(
            id=str(data.get("id") or external_id),
            title=str(data["title"]),
            company=str(data["company"]),
            description=str(data.get("description") or ""),
            location=str(data.get("location") or ""),
            source=str(data["source"]),
            external_id=external_id,
            posted_date=data["posted_date"],
            is_remote=bool(data.get("is_remote", False)),
            salary_min=salary_min,
            salary_max=salary_max,
            experience_level=data.get("experience_level") or None,
            source_url=str(data.get("source_url") or ""),
            technologies=[str(t) for t in technologies] if technologies else None,
        )


def _optional_float(value: Any) -> float | None:
    if value in (None, ""):
        return None
    return float(value)


def to_posted_date(value: date | datetime | str) -> date:
    """Normalize a posting date to a calendar :class:`date` (UTC for aware datetimes).

    Raises :class:`ValueError` for text that is not ISO-8601.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        msg = "posted date is empty"
        raise ValueError(msg)
    return to_posted_date(datetime.fromisoformat(text))


def detect_remote(*texts: str | None) -> bool:
    """True if any of *texts* mentions a remote-work keyword."""
    lowered = [t.lower() for t in texts if t]
    return any(keyword in text for text in lowered for keyword in REMOTE_KEYWORDS)


def clamp_posted_date(value: str | None) -> date:
    """Parse a source timestamp, falling back to today when absent, bad or in the future."""
    today = datetime.now(UTC).date()
    if not value:
        return today
    try:
        parsed = to_posted_date(value)
    except ValueError:
        return today
    return min(parsed, today)


def dig(payload: dict[str, Any], *path: str, default: str = "") -> str:
    """Read a nested string field, returning *default* when any step is missing or empty."""
    value: Any = payload
    for key in path:
        value = value.get(key) if isinstance(value, dict) else None
    if value in (None, ""):
        return default
    return str(value)


@dataclass
class MappedBatch:
    """Postings mapped from one input, plus one message per item that could not be."""

    postings: list[RawPosting] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def extend(self, other: MappedBatch) -> None:
        self.postings.extend(other.postings)
        self.errors.extend(other.errors)


def map_payloads(
    payloads: Iterable[dict[str, Any]],
    convert: Callable[[dict[str, Any]], RawPosting],
    *,
    origin: str = "input",
) -> MappedBatch:
    """Convert each payload independently; an unusable item is logged and skipped.

    *origin* names the input (usually the file) in the skip messages.
    """
    batch = MappedBatch()
    for index, payload in enumerate(payloads):
        try:
            batch.postings.append(convert(payload))
        except ActionableError as exc:
            message = f"Skipped {origin} item {index}: {exc.error}"
            logger.warning("%s", message)
            batch.errors.append(message)
        except (TypeError, ValueError, AttributeError) as exc:
            message = f"Skipped {origin} item {index}: {exc}"
            logger.warning("%s", message)
            batch.errors.append(message)
    return batch


class SourceMapper(ABC):
    """Strategy interface turning one source-native JSON object into a :class:`RawPosting`."""

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Unique identifier string for this source."""
        ...

    @abstractmethod
    def to_raw(self, payload: dict[str, Any]) -> RawPosting:
        """Map *payload*; raises PARSE when it has no usable id."""
        ...

    def map_each(
        self, payloads: Iterable[dict[str, Any]], *, origin: str | None = None
    ) -> MappedBatch:
        """Map every payload, skipping and reporting the unusable ones."""
        return map_payloads(payloads, self.to_raw, origin=origin or self.source_name)

    def _require_id(self, payload: dict[str, Any]) -> str:
        raw_id = payload.get("id")
        if raw_id in (None, ""):
            raise ActionableError.parse(
                source=self.source_name,
                location="id",
                raw_error="posting has no id",
                suggestion=f"Drop {self.source_name} postings without an id before ingesting",
            )
        return str(raw_id)
