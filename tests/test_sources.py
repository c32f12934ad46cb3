"""Source layer tests — RawPosting contract, source mappers, registry and salary parsing.

Maps to BDD specs: TestRawPostingContract, TestPostedDateNormalization,
TestAdzunaMapping, TestFranceTravailMapping, TestRemotiveMapping,
TestMapperRegistration, TestSalaryParsing
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import pytest

from jobcatalog.errors import ActionableError, ErrorType
from jobcatalog.sources import RawPosting, SourceMapper, SourceMapperRegistry
from jobcatalog.sources.adzuna import AdzunaMapper
from jobcatalog.sources.base import (
    clamp_posted_date,
    detect_remote,
    map_payloads,
    to_posted_date,
)
from jobcatalog.sources.france_travail import FranceTravailMapper
from jobcatalog.sources.remotive import RemotiveMapper
from jobcatalog.sources.salary import parse_salary, to_thousands

if TYPE_CHECKING:
    from collections.abc import Iterator

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ADZUNA_PAYLOAD: dict[str, Any] = {
    "id": "4012345",
    "title": "Développeur Python H/F",
    "company": {"display_name": "Acme"},
    "location": {"display_name": "Paris, Ile-de-France"},
    "description": "Python and Django, télétravail partiel possible.",
    "created": "2024-05-01T10:00:00Z",
    "salary_min": 45000,
    "salary_max": 55000.0,
    "redirect_url": "https://www.adzuna.fr/details/4012345",
}

FRANCE_TRAVAIL_PAYLOAD: dict[str, Any] = {
    "id": "180ABCD",
    "intitule": "Développeur Java (H/F)",
    "entreprise": {"nom": "Banque du Nord"},
    "lieuTravail": {"libelle": "59 - Lille"},
    "description": "Maintenance applicative Java / Spring Boot.",
    "dateCreation": "2024-05-02T08:00:00.000Z",
    "salaire": {"libelle": "Annuel de 38000.0 Euros à 45000.0 Euros sur 12 mois"},
    "experienceLibelle": "5 An(s)",
}

REMOTIVE_PAYLOAD: dict[str, Any] = {
    "id": 42,
    "title": "Senior Python Engineer",
    "company_name": "Remote Co",
    "candidate_required_location": "Europe",
    "description": "<p>FastAPI services</p>",
    "publication_date": "2024-05-03T09:00:00",
    "salary": "$90k - $120k",
    "url": "https://remotive.com/remote-jobs/software-dev/senior-python-engineer-42",
}


@pytest.fixture
def _restore_registry() -> Iterator[None]:
    """Snapshot the mapper registry and restore it after the test."""
    saved = dict(SourceMapperRegistry._registry)
    yield
    SourceMapperRegistry._registry.clear()
    SourceMapperRegistry._registry.update(saved)


# ---------------------------------------------------------------------------
# TestRawPostingContract
# ---------------------------------------------------------------------------


class TestRawPostingContract:
    """REQUIREMENT: Generic JSON postings load into RawPosting with clear failures.

    WHO: The ingest CLI command reading a file without --source
    WHAT: Required keys must be present and non-empty; ``id`` defaults to
          the external id; numeric strings are accepted for salaries;
          supplied technologies are kept; a missing key or a non-numeric
          salary raises PARSE; in a batch such an item is skipped and
          reported while the rest still load
    WHY: A silently defaulted title or source would create bogus postings
         that the duplicate engine then merges into real ones
    """

    def test_minimal_posting_loads(self) -> None:
        raw = RawPosting.from_dict(
            {
                "title": "Backend Developer",
                "company": "Acme",
                "source": "linkedin",
                "external_id": "li-1",
                "posted_date": "2024-05-01",
            }
        )
        assert raw.id == "li-1"
        assert raw.description == ""
        assert raw.technologies is None
        assert raw.is_remote is False

    def test_optional_fields_are_converted(self) -> None:
        raw = RawPosting.from_dict(
            {
                "id": "custom",
                "title": "Backend Developer",
                "company": "Acme",
                "source": "linkedin",
                "external_id": "li-1",
                "posted_date": "2024-05-01",
                "salary_min": "45",
                "salary_max": 55,
                "technologies": ["Python", "Django"],
                "is_remote": True,
            }
        )
        assert raw.id == "custom"
        assert (raw.salary_min, raw.salary_max) == (45.0, 55.0)
        assert raw.technologies == ["Python", "Django"]
        assert raw.is_remote is True

    def test_missing_required_key_raises_parse(self) -> None:
        with pytest.raises(ActionableError) as exc_info:
            RawPosting.from_dict({"title": "Dev", "source": "linkedin", "posted_date": "2024-05-01"})
        assert exc_info.value.error_type == ErrorType.PARSE
        assert "company" in exc_info.value.error
        assert "external_id" in exc_info.value.error

    def test_non_numeric_salary_raises_parse(self) -> None:
        with pytest.raises(ActionableError) as exc_info:
            RawPosting.from_dict(
                {
                    "title": "Dev",
                    "company": "Acme",
                    "source": "linkedin",
                    "external_id": "li-1",
                    "posted_date": "2024-05-01",
                    "salary_min": "negotiable",
                }
            )
        assert exc_info.value.error_type == ErrorType.PARSE
        assert "salary" in exc_info.value.error

    def test_unusable_items_are_skipped_and_reported(self) -> None:
        """One bad item costs only that item; the rest of the input still maps."""
        good = {
            "title": "Dev",
            "company": "Acme",
            "source": "linkedin",
            "external_id": "li-1",
            "posted_date": "2024-05-01",
        }
        blank_title = {**good, "external_id": "li-2", "title": ""}
        bad_salary = {**good, "external_id": "li-3", "salary_max": "lots"}

        batch = map_payloads(
            [good, blank_title, bad_salary], RawPosting.from_dict, origin="postings.json"
        )

        assert [raw.external_id for raw in batch.postings] == ["li-1"]
        assert len(batch.errors) == 2
        assert batch.errors[0].startswith("Skipped postings.json item 1:")
        assert "title" in batch.errors[0]
        assert batch.errors[1].startswith("Skipped postings.json item 2:")


# ---------------------------------------------------------------------------
# TestPostedDateNormalization
# ---------------------------------------------------------------------------


class TestPostedDateNormalization:
    """REQUIREMENT: Posting dates normalize to calendar dates.

    WHO: The transform stage and every source mapper
    WHAT: Dates pass through; datetimes keep their date (UTC for aware
          ones); ISO text is parsed; anything else raises ValueError.
          Mappers clamp missing, bad or future dates to today
    WHY: The duplicate engine compares day gaps — mixed types or time
         zones would skew them by a day
    """

    def test_date_passes_through(self) -> None:
        assert to_posted_date(date(2024, 5, 1)) == date(2024, 5, 1)

    def test_aware_datetime_converts_to_utc(self) -> None:
        value = datetime(2024, 5, 1, 23, 30, tzinfo=timezone(timedelta(hours=-2)))
        assert to_posted_date(value) == date(2024, 5, 2)

    def test_iso_text_is_parsed(self) -> None:
        assert to_posted_date("2024-05-01T10:00:00Z") == date(2024, 5, 1)
        assert to_posted_date("2024-05-01") == date(2024, 5, 1)

    def test_bad_text_raises_value_error(self) -> None:
        with pytest.raises(ValueError):
            to_posted_date("last week")
        with pytest.raises(ValueError):
            to_posted_date("  ")

    def test_clamp_falls_back_to_today(self) -> None:
        today = datetime.now(timezone.utc).date()
        assert clamp_posted_date(None) == today
        assert clamp_posted_date("garbage") == today
        assert clamp_posted_date("2999-01-01") == today
        assert clamp_posted_date("2024-05-01") == date(2024, 5, 1)

    def test_detect_remote_keywords(self) -> None:
        assert detect_remote("Paris", "Télétravail 2 jours par semaine")
        assert detect_remote("Full Remote", None)
        assert not detect_remote("Lyon", "Sur site")


# ---------------------------------------------------------------------------
# TestAdzunaMapping
# ---------------------------------------------------------------------------


class TestAdzunaMapping:
    """REQUIREMENT: Adzuna results map onto RawPosting.

    WHO: The ingest command with --source adzuna
    WHAT: Nested display names become company and location; numeric
          salaries become thousands; the external id is prefixed; absent
          fields fall back to French placeholders; no id raises PARSE
    WHY: Adzuna payloads are the largest feed; a mapping slip there
         corrupts most of the catalog
    """

    def test_full_payload(self) -> None:
        raw = AdzunaMapper().to_raw(ADZUNA_PAYLOAD)
        assert raw.source == "adzuna"
        assert raw.external_id == "adzuna-4012345"
        assert raw.id == raw.external_id
        assert raw.company == "Acme"
        assert raw.location == "Paris, Ile-de-France"
        assert raw.posted_date == date(2024, 5, 1)
        assert (raw.salary_min, raw.salary_max) == (45.0, 55.0)
        assert raw.is_remote is True
        assert raw.source_url == "https://www.adzuna.fr/details/4012345"

    def test_sparse_payload_uses_placeholders(self) -> None:
        raw = AdzunaMapper().to_raw({"id": 7})
        assert raw.title == "Sans titre"
        assert raw.company == "Non spécifié"
        assert raw.location == "France"
        assert raw.salary_min is None
        assert raw.posted_date == datetime.now(timezone.utc).date()

    def test_missing_id_raises_parse(self) -> None:
        with pytest.raises(ActionableError) as exc_info:
            AdzunaMapper().to_raw({"title": "No id"})
        assert exc_info.value.error_type == ErrorType.PARSE


# ---------------------------------------------------------------------------
# TestFranceTravailMapping
# ---------------------------------------------------------------------------


class TestFranceTravailMapping:
    """REQUIREMENT: France Travail offers map onto RawPosting.

    WHO: The ingest command with --source france_travail
    WHAT: French field names are read; the salary label is parsed into a
          range in thousands; the experience label is kept; the detail URL
          is built when the offer has no origin URL
    WHY: The salary only exists as free text in this feed
    """

    def test_full_payload(self) -> None:
        raw = FranceTravailMapper().to_raw(FRANCE_TRAVAIL_PAYLOAD)
        assert raw.source == "france_travail"
        assert raw.external_id == "francetravail-180ABCD"
        assert raw.title == "Développeur Java (H/F)"
        assert raw.company == "Banque du Nord"
        assert raw.location == "59 - Lille"
        assert raw.posted_date == date(2024, 5, 2)
        assert (raw.salary_min, raw.salary_max) == (38.0, 45.0)
        assert raw.experience_level == "5 An(s)"
        assert raw.source_url == (
            "https://candidat.francetravail.fr/offres/recherche/detail/180ABCD"
        )

    def test_origin_url_is_preferred(self) -> None:
        payload = {**FRANCE_TRAVAIL_PAYLOAD, "origineOffre": {"urlOrigine": "https://x.fr/1"}}
        assert FranceTravailMapper().to_raw(payload).source_url == "https://x.fr/1"


# ---------------------------------------------------------------------------
# TestRemotiveMapping
# ---------------------------------------------------------------------------


class TestRemotiveMapping:
    """REQUIREMENT: Remotive jobs map onto RawPosting and are always remote.

    WHO: The ingest command with --source remotive
    WHAT: Every posting is remote; the free-text salary is parsed; the
          candidate location is kept; the URL defaults to the job page
    WHY: Remotive only lists remote jobs and never states it per posting
    """

    def test_full_payload(self) -> None:
        raw = RemotiveMapper().to_raw(REMOTIVE_PAYLOAD)
        assert raw.external_id == "remotive-42"
        assert raw.is_remote is True
        assert raw.location == "Europe"
        assert (raw.salary_min, raw.salary_max) == (90.0, 120.0)
        assert raw.posted_date == date(2024, 5, 3)

    def test_default_url(self) -> None:
        raw = RemotiveMapper().to_raw({"id": 9})
        assert raw.source_url == "https://remotive.com/remote-jobs/9"
        assert raw.title == "Remote Position"


# ---------------------------------------------------------------------------
# TestMapperRegistration
# ---------------------------------------------------------------------------


class TestMapperRegistration:
    """REQUIREMENT: Source mappers self-register and are looked up by name.

    WHO: The ingest and sources CLI commands
    WHAT: Importing the sources package registers every shipped mapper;
          ``get`` returns a fresh instance; an unknown name raises
          ValueError naming it; a decorated class registers under its
          ``source_name``
    WHY: Adding a source should be one new module, not edits to the CLI
    """

    def test_shipped_mappers_are_registered(self) -> None:
        assert {"adzuna", "france_travail", "remotive"} <= set(
            SourceMapperRegistry.list_registered()
        )

    def test_get_returns_new_instance(self) -> None:
        first = SourceMapperRegistry.get("adzuna")
        second = SourceMapperRegistry.get("adzuna")
        assert isinstance(first, AdzunaMapper)
        assert first is not second

    def test_unknown_name_raises(self) -> None:
        with pytest.raises(ValueError, match="monster"):
            SourceMapperRegistry.get("monster")

    @pytest.mark.usefixtures("_restore_registry")
    def test_decorator_registers_by_source_name(self) -> None:
        @SourceMapperRegistry.register
        class CustomMapper(SourceMapper):
            @property
            def source_name(self) -> str:
                return "custom"

            def to_raw(self, payload: dict[str, Any]) -> RawPosting:
                return RawPosting(
                    id=str(payload["id"]),
                    title="Custom",
                    company="Custom",
                    description="",
                    location="",
                    source="custom",
                    external_id=str(payload["id"]),
                    posted_date=date(2024, 5, 1),
                )

        mapper = SourceMapperRegistry.get("custom")
        batch = mapper.map_each([{"id": 1}, {"id": 2}])
        assert [r.id for r in batch.postings] == ["1", "2"]
        assert batch.errors == []


# ---------------------------------------------------------------------------
# TestSalaryParsing
# ---------------------------------------------------------------------------


class TestSalaryParsing:
    """REQUIREMENT: Free-text salaries become a range in thousands.

    WHO: The France Travail and Remotive mappers
    WHAT: Ranges and single figures are read in French and English
          formats (spaces, commas, k suffix, currency words); monthly and
          hourly amounts are annualized; an inverted range or text without
          numbers gives (None, None)
    WHY: A wrong number is worse than a missing one — it passes the
         quality gate and pollutes salary statistics
    """

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Annuel de 38000.0 Euros à 45000.0 Euros sur 12 mois", (38.0, 45.0)),
            ("Mensuel de 3000.0 Euros à 3500.0 Euros sur 12 mois", (36.0, 42.0)),
            ("$40k - $50k", (40.0, 50.0)),
            ("40,000 to 55,000 USD", (40.0, 55.0)),
            ("50 000 €", (50.0, 50.0)),
            ("Horaire de 15 Euros", (31.0, 31.0)),
        ],
    )
    def test_parses_common_formats(
        self, text: str, expected: tuple[float | None, float | None]
    ) -> None:
        assert parse_salary(text) == expected

    def test_inverted_range_is_rejected(self) -> None:
        assert parse_salary("60k - 50k") == (None, None)

    def test_text_without_amount(self) -> None:
        assert parse_salary("Selon profil") == (None, None)
        assert parse_salary(None) == (None, None)
        assert parse_salary("") == (None, None)

    def test_to_thousands_rounds_and_drops_tiny_values(self) -> None:
        assert to_thousands(45_400) == 45.0
        assert to_thousands(400) is None
        assert to_thousands(None) is None
