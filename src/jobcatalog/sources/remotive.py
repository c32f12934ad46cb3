"""Remotive job mapper.  Every Remotive posting is remote."""

from __future__ import annotations

from typing import Any

from jobcatalog.sources.base import RawPosting, SourceMapper, clamp_posted_date, dig
from jobcatalog.sources.registry import SourceMapperRegistry
from jobcatalog.sources.salary import parse_salary


@SourceMapperRegistry.register
class RemotiveMapper(SourceMapper):
    """Maps one entry of Remotive's ``jobs`` array."""

    @property
    def source_name(self) -> str:
        return "remotive"

    def to_raw(self, payload: dict[str, Any]) -> RawPosting:
        job_id = self._require_id(payload)
        external_id = f"remotive-{job_id}"
        salary_min, salary_max = parse_salary(dig(payload, "salary"))

        return RawPosting(
            id=external_id,
            title=dig(payload, "title", default="Remote Position"),
            company=dig(payload, "company_name", default="Company Not Specified"),
            description=dig(payload, "description"),
            location=dig(payload, "candidate_required_location", default="Remote"),
            source=self.source_name,
            external_id=external_id,
            posted_date=clamp_posted_date(payload.get("publication_date")),
            is_remote=True,
            salary_min=salary_min,
            salary_max=salary_max,
            source_url=dig(
                payload,
                "url",
                default=f"https://remotive.com/remote-jobs/{job_id}",
            ),
        )
