"""Adzuna search-result mapper.

Adzuna already reports salaries as numbers in full euros
(``salary_min`` / ``salary_max``); nested objects carry the display
names of company and location.
"""

from __future__ import annotations

from typing import Any

from jobcatalog.sources.base import RawPosting, SourceMapper, clamp_posted_date, detect_remote, dig
from jobcatalog.sources.registry import SourceMapperRegistry
from jobcatalog.sources.salary import to_thousands


@SourceMapperRegistry.register
class AdzunaMapper(SourceMapper):
    """Maps one entry of Adzuna's ``results`` array."""

    @property
    def source_name(self) -> str:
        return "adzuna"

    def to_raw(self, payload: dict[str, Any]) -> RawPosting:
        external_id = f"adzuna-{self._require_id(payload)}"
        description = dig(payload, "description")
        location = dig(payload, "location", "display_name", default="France")

        return RawPosting(
            id=external_id,
            title=dig(payload, "title", default="Sans titre"),
            company=dig(payload, "company", "display_name", default="Non spécifié"),
            description=description,
            location=location,
            source=self.source_name,
            external_id=external_id,
            posted_date=clamp_posted_date(payload.get("created")),
            is_remote=detect_remote(location, description),
            salary_min=to_thousands(_number(payload.get("salary_min"))),
            salary_max=to_thousands(_number(payload.get("salary_max"))),
            source_url=dig(payload, "redirect_url"),
        )


def _number(value: Any) -> float | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return None
