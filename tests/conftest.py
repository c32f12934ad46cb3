"""Global test configuration — shared fixtures and in-memory fakes.

This conftest provides:

1. **Shared I/O-boundary fixtures** — ``mock_embedder`` (Embedder with
   stubbed Ollama methods) and ``vector_store`` (real ChromaDB backed by
   ``tmp_path``).  Individual test files may shadow these with local
   fixtures that use different return values.

2. **Posting factories** — ``make_raw`` and ``make_record`` produce
   valid inputs with every field overridable.

3. **Pipeline fakes** — ``FakeTagger``, ``FakeClassifier``,
   ``FakeResolver``, ``InMemoryTechnologyCatalog`` and
   ``InMemoryPostingStore`` stand in for the detectors and stores so
   pipeline tests run without Ollama or ChromaDB.  They count calls and
   can be told to fail.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock

import pytest

from jobcatalog.catalog.posting import ExperienceCategory, PostingRecord
from jobcatalog.detectors.base import ExperienceClassifier, RegionResolver, TechnologyTagger
from jobcatalog.sources.base import RawPosting
from jobcatalog.storage.base import BulkUpsertResult, PostingStore, TechnologyCatalog
from jobcatalog.storage.embedder import Embedder
from jobcatalog.storage.store import VectorStore

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

# Canonical fake embedding used across test files.
EMBED_FAKE: list[float] = [0.1, 0.2, 0.3, 0.4, 0.5]

# Long enough to earn the description points of the quality score.
DESCRIPTION = "Build and run the internal platform used by every product team."

RECENT = date.today() - timedelta(days=3)


# ---------------------------------------------------------------------------
# Shared I/O-boundary fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_embedder() -> Embedder:
    """Embedder with stubbed I/O methods — no Ollama connection needed.

    Uses ``Embedder.__new__`` to create a real instance without calling
    ``__init__`` (which would create an ``ollama.AsyncClient``).
    """
    embedder = Embedder.__new__(Embedder)
    embedder.base_url = "http://localhost:11434"
    embedder.embed_model = "nomic-embed-text"
    embedder.max_retries = 3
    embedder.base_delay = 0.0
    embedder.embed = AsyncMock(return_value=EMBED_FAKE)  # type: ignore[method-assign]
    embedder.health_check = AsyncMock()  # type: ignore[method-assign]
    return embedder


@pytest.fixture
def vector_store(tmp_path: Path) -> VectorStore:
    """Real ChromaDB VectorStore backed by a per-test temp directory."""
    return VectorStore(persist_dir=str(tmp_path / "chroma"))


# ---------------------------------------------------------------------------
# Posting factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_raw():
    """Factory fixture — returns a callable that produces a RawPosting.

    Defaults describe a Python/Django posting in Paris with a salary, so
    the transformed record passes the default quality gate (40).

    Usage::

        raw = make_raw()
        raw = make_raw(source="indeed", external_id="in-1")
        raw = make_raw(technologies=None)  # let the tagger run
    """

    def _factory(**overrides: Any) -> RawPosting:
        external_id = overrides.pop("external_id", "ext-1")
        fields: dict[str, Any] = {
            "id": external_id,
            "title": "Backend Developer",
            "company": "Acme",
            "description": DESCRIPTION,
            "location": "Paris",
            "source": "linkedin",
            "external_id": external_id,
            "posted_date": RECENT,
            "salary_min": 45.0,
            "salary_max": 55.0,
            "technologies": ["Python", "Django"],
        }
        fields.update(overrides)
        return RawPosting(**fields)

    return _factory


@pytest.fixture
def make_record():
    """Factory fixture — returns a callable that produces a PostingRecord.

    Usage::

        record = make_record()
        record = make_record(source="indeed", external_id="in-1", salary_min=None)
    """

    def _factory(**overrides: Any) -> PostingRecord:
        fields: dict[str, Any] = {
            "source": "linkedin",
            "external_id": "ext-1",
            "title": "Backend Developer",
            "company": "Acme",
            "description": DESCRIPTION,
            "technologies": ("Python", "Django"),
            "location": "Paris",
            "experience_category": ExperienceCategory.MID,
            "posted_date": RECENT,
        }
        fields.update(overrides)
        return PostingRecord(**fields)

    return _factory


# ---------------------------------------------------------------------------
# Pipeline fakes
# ---------------------------------------------------------------------------


class FakeTagger(TechnologyTagger):
    """Returns fixed tags; raises the queued errors first."""

    def __init__(self, tags: list[str] | None = None, errors: list[Exception] | None = None):
        self.tags = tags if tags is not None else ["Python"]
        self.errors = list(errors or [])
        self.calls = 0

    async def tag(self, text: str) -> list[str]:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return list(self.tags)


class FakeClassifier(ExperienceClassifier):
    def __init__(
        self,
        category: ExperienceCategory = ExperienceCategory.MID,
        errors: list[Exception] | None = None,
    ):
        self.category = category
        self.errors = list(errors or [])
        self.calls = 0

    async def classify(
        self,
        title: str,
        level: str | None,
        description: str,
    ) -> ExperienceCategory:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.category


class FakeResolver(RegionResolver):
    """Looks the location up in a dict; ``fail=True`` raises on every call."""

    def __init__(self, regions: dict[str, str] | None = None, *, fail: bool = False):
        self.regions = regions if regions is not None else {"Paris": "IDF"}
        self.fail = fail
        self.calls = 0

    async def resolve(self, location: str) -> str | None:
        self.calls += 1
        if self.fail:
            msg = "resolver down"
            raise RuntimeError(msg)
        return self.regions.get(location)


class InMemoryTechnologyCatalog(TechnologyCatalog):
    def __init__(self, names: set[str] | None = None):
        self.items: dict[str, str] = {name.lower(): "other" for name in names or set()}
        self.exists_calls = 0
        self.created: list[tuple[str, str]] = []

    async def exists(self, name: str) -> bool:
        self.exists_calls += 1
        return name.strip().lower() in self.items

    async def create(self, name: str, category: str) -> None:
        key = name.strip().lower()
        if key in self.items:
            return
        self.items[key] = category
        self.created.append((name, category))

    async def list_names(self) -> set[str]:
        return set(self.items)


class InMemoryPostingStore(PostingStore):
    """Keeps records by exact key; ``fail_with`` makes every call raise."""

    def __init__(self, fail_with: Exception | None = None):
        self.records: dict[str, PostingRecord] = {}
        self.fail_with = fail_with
        self.calls: list[list[PostingRecord]] = []

    async def bulk_upsert(self, records: Sequence[PostingRecord]) -> BulkUpsertResult:
        self.calls.append(list(records))
        if self.fail_with is not None:
            raise self.fail_with
        result = BulkUpsertResult()
        for record in records:
            if record.exact_key in self.records:
                result.updated += 1
            else:
                result.inserted += 1
            self.records[record.exact_key] = record
        return result
