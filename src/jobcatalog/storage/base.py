"""Persistence contracts the ingestion pipeline writes through."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from jobcatalog.catalog.posting import PostingRecord


@dataclass
class BulkUpsertResult:
    """Outcome of one :meth:`PostingStore.bulk_upsert` call."""

    inserted: int = 0
    updated: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


class PostingStore(ABC):
    """Durable home of canonical postings.

    Contract: a record whose exact key is already stored is an update,
    never a second insert.
    """

    @abstractmethod
    async def bulk_upsert(self, records: Sequence[PostingRecord]) -> BulkUpsertResult:
        """Insert or update *records* in one call.

        Per-record problems are reported in the result; an exception means
        the call failed as a whole.
        """
        ...


class TechnologyCatalog(ABC):
    """Registry of known technology names and their categories."""

    @abstractmethod
    async def exists(self, name: str) -> bool: ...

    @abstractmethod
    async def create(self, name: str, category: str) -> None:
        """Add *name*; creating an existing name is a no-op."""
        ...

    @abstractmethod
    async def list_names(self) -> set[str]:
        """Every known technology name, used to warm the pipeline cache."""
        ...
