"""ChromaDB-backed posting store.

Each canonical posting is one document in the ``postings`` collection:

- **id** — the exact key (``source:external_id``), so re-ingesting the
  same posting overwrites it instead of adding a copy
- **document** — title, company, location, stack and description; this
  is the text that gets embedded
- **metadata** — every scalar field of the record.  Chroma metadata
  cannot hold lists or ``None``, so ``technologies`` and ``sources`` are
  JSON-encoded and empty optionals are omitted.
"""

from __future__ import annotations

import asyncio
import json
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from jobcatalog.catalog.posting import ExperienceCategory, PostingRecord
from jobcatalog.errors import ActionableError
from jobcatalog.logging import logger
from jobcatalog.storage.base import BulkUpsertResult, PostingStore

if TYPE_CHECKING:
    from collections.abc import Sequence

    from jobcatalog.storage.embedder import Embedder
    from jobcatalog.storage.store import VectorStore

POSTINGS_COLLECTION = "postings"


def posting_document(record: PostingRecord) -> str:
    """The text embedded for *record*."""
    header = "\n".join(
        part
        for part in (
            record.title,
            record.company,
            record.location,
            ", ".join(record.technologies),
        )
        if part
    )
    return f"{header}\n\n{record.description}"


def posting_metadata(record: PostingRecord) -> dict[str, Any]:
    """Flatten *record* into Chroma-compatible metadata."""
    metadata: dict[str, Any] = {
        "id": record.id,
        "source": record.source,
        "external_id": record.external_id,
        "title": record.title,
        "company": record.company,
        "location": record.location,
        "region_id": record.region_id,
        "is_remote": record.is_remote,
        "salary_min": record.salary_min,
        "salary_max": record.salary_max,
        "experience_level": record.experience_level,
        "experience_category": record.experience_category.value,
        "posted_date": record.posted_date.isoformat(),
        "source_url": record.source_url,
        "is_active": record.is_active,
        "technologies": json.dumps(list(record.technologies)),
        "sources": json.dumps(sorted(record.sources)),
        "quality_score": record.quality_score,
        "created_at": record.created_at.isoformat(),
        "updated_at": record.updated_at.isoformat(),
    }
    return {key: value for key, value in metadata.items() if value is not None}


def record_from_document(document: str, metadata: dict[str, Any]) -> PostingRecord:
    """Rebuild a :class:`PostingRecord` from a stored document and its metadata."""
    _, _, description = document.partition("\n\n")
    return PostingRecord(
        id=metadata["id"],
        source=metadata["source"],
        external_id=metadata["external_id"],
        title=metadata["title"],
        company=metadata["company"],
        description=description,
        technologies=tuple(json.loads(metadata["technologies"])),
        location=metadata.get("location", ""),
        experience_category=ExperienceCategory(metadata["experience_category"]),
        posted_date=date.fromisoformat(metadata["posted_date"]),
        region_id=metadata.get("region_id"),
        is_remote=bool(metadata.get("is_remote", False)),
        salary_min=metadata.get("salary_min"),
        salary_max=metadata.get("salary_max"),
        experience_level=metadata.get("experience_level"),
        source_url=metadata.get("source_url", ""),
        is_active=bool(metadata.get("is_active", True)),
        sources=frozenset(json.loads(metadata["sources"])),
        created_at=datetime.fromisoformat(metadata["created_at"]),
        updated_at=datetime.fromisoformat(metadata["updated_at"]),
    )


class ChromaPostingStore(PostingStore):
    """:class:`PostingStore` over a :class:`VectorStore` collection."""

    def __init__(
        self,
        store: VectorStore,
        embedder: Embedder,
        *,
        collection: str = POSTINGS_COLLECTION,
    ) -> None:
        self._store = store
        self._embedder = embedder
        self._collection = collection

    async def bulk_upsert(self, records: Sequence[PostingRecord]) -> BulkUpsertResult:
        """Embed and upsert *records*; inserted vs updated is decided by the exact key.

        A posting whose embedding fails is reported in ``errors`` and
        skipped.  A failing Chroma write raises.
        """
        result = BulkUpsertResult()
        if not records:
            return result

        # A repeated exact key in one call is an update of the first
        unique: dict[str, PostingRecord] = {}
        for record in records:
            if record.exact_key in unique:
                result.updated += 1
            unique[record.exact_key] = record

        keys = list(unique)
        existing = self._store.existing_ids(self._collection, ids=keys)
        documents = [posting_document(unique[key]) for key in keys]

        outcomes = await asyncio.gather(
            *(self._embedder.embed(doc) for doc in documents),
            return_exceptions=True,
        )

        ids: list[str] = []
        docs: list[str] = []
        embeddings: list[list[float]] = []
        metadatas: list[dict[str, Any]] = []
        for key, document, outcome in zip(keys, documents, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                err = ActionableError.from_exception(outcome, "posting-store", "embed")
                result.failed += 1
                result.errors.append(f"Failed to embed posting {key}: {err.error}")
                logger.warning("Embedding failed for posting %s: %s", key, err.error)
                continue
            ids.append(key)
            docs.append(document)
            embeddings.append(outcome)
            metadatas.append(posting_metadata(unique[key]))

        self._store.upsert_documents(
            self._collection,
            ids=ids,
            documents=docs,
            embeddings=embeddings,
            metadatas=metadatas,
        )

        for key in ids:
            if key in existing:
                result.updated += 1
            else:
                result.inserted += 1
        return result

    def get(self, exact_key: str) -> PostingRecord | None:
        """Return the stored posting for *exact_key*, or ``None``."""
        try:
            found = self._store.get_documents(self._collection, ids=[exact_key])
        except ActionableError:
            return None
        if not found["ids"]:
            return None
        return record_from_document(found["documents"][0], found["metadatas"][0])

    def count(self) -> int:
        try:
            return self._store.collection_count(self._collection)
        except ActionableError:
            return 0
