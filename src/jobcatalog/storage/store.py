"""ChromaDB collection management.

A thin wrapper around ChromaDB's persistent client used by both
Chroma-backed collaborators:

  - ``postings``     — one document per canonical posting, id = exact key
  - ``technologies`` — one document per known technology, id = lowercased name

ChromaDB is an **embedded** vector database, so the catalog lives in a
local directory and needs no server.  Embeddings are always supplied by
the caller; the collection never computes its own.
"""

from __future__ import annotations

from typing import Any

import chromadb
import chromadb.errors

from jobcatalog.errors import ActionableError, ErrorType
from jobcatalog.logging import logger


class VectorStore:
    """Manages the ChromaDB collections of the catalog.

    Usage::

        store = VectorStore(persist_dir="./data/chroma_db")
        store.get_or_create_collection("postings")
        store.upsert_documents("postings", ids=[...], documents=[...], embeddings=[...])
        existing = store.existing_ids("postings", ids=[...])
    """

    def __init__(self, persist_dir: str) -> None:
        self.persist_dir = persist_dir
        self._client = chromadb.PersistentClient(path=persist_dir)
        logger.debug("ChromaDB client initialized at %s", persist_dir)

    # -- Collection lifecycle ------------------------------------------------

    def get_or_create_collection(self, name: str) -> chromadb.Collection:
        """Return the named collection, creating it with cosine distance if needed."""
        collection = self._client.get_or_create_collection(
            name=name,
            metadata={"hnsw:space": "cosine"},
        )
        logger.debug("Collection '%s' ready (%d documents)", name, collection.count())
        return collection

    def collection_count(self, name: str) -> int:
        """Return the document count for collection *name*.

        Raises :class:`~jobcatalog.errors.ActionableError` (INDEX)
        if the collection does not exist.
        """
        return self._get_existing_collection(name).count()

    # -- Document operations -------------------------------------------------

    def upsert_documents(
        self,
        collection_name: str,
        *,
        ids: list[str],
        documents: list[str],
        embeddings: list[list[float]],
        metadatas: list[dict[str, Any]] | None = None,
    ) -> None:
        """Insert or update documents with pre-computed embeddings.

        All list arguments must have the same length.
        """
        lengths = {"ids": len(ids), "documents": len(documents), "embeddings": len(embeddings)}
        if metadatas is not None:
            lengths["metadatas"] = len(metadatas)
        if len(set(lengths.values())) > 1:
            raise ActionableError(
                error=f"Mismatched input lengths: {lengths}",
                error_type=ErrorType.VALIDATION,
                service="ChromaDB",
                suggestion="Ensure ids, documents, embeddings, and metadatas all have the same length",
            )
        if not ids:
            return

        collection = self.get_or_create_collection(collection_name)
        collection.upsert(
            ids=ids,
            documents=documents,
            embeddings=embeddings,  # type: ignore[arg-type]
            metadatas=metadatas,  # type: ignore[arg-type]
        )
        logger.info(
            "Upserted %d documents into '%s' (total: %d)",
            len(ids),
            collection_name,
            collection.count(),
        )

    def get_documents(
        self,
        collection_name: str,
        *,
        ids: list[str] | None = None,
    ) -> dict[str, Any]:
        """Retrieve documents by id (all documents when *ids* is ``None``).

        Returns ChromaDB's native dict with ``ids``, ``documents`` and
        ``metadatas``.  Raises INDEX if the collection does not exist.
        """
        collection = self._get_existing_collection(collection_name)
        result = collection.get(ids=ids, include=["documents", "metadatas"])
        return dict(result)

    def existing_ids(self, collection_name: str, *, ids: list[str]) -> set[str]:
        """Return the subset of *ids* already stored (empty for a missing collection)."""
        if not ids:
            return set()
        collection = self.get_or_create_collection(collection_name)
        return set(collection.get(ids=ids, include=[])["ids"])

    # -- Internal helpers ----------------------------------------------------

    def _get_existing_collection(self, name: str) -> chromadb.Collection:
        """Retrieve a collection that must already exist.

        Raises :class:`~jobcatalog.errors.ActionableError` (INDEX)
        if the collection has not been created.
        """
        try:
            return self._client.get_collection(name)
        except (ValueError, chromadb.errors.ChromaError):
            raise ActionableError.index(name) from None
