"""ChromaDB-backed technology catalog.

One document per technology in the ``technologies`` collection.  The
document id is the lowercased, stripped name, so "React" and "react "
are the same entry and a repeated :meth:`ChromaTechnologyCatalog.create`
is a no-op.  The first spelling stored is the one kept.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from jobcatalog.logging import logger
from jobcatalog.storage.base import TechnologyCatalog

if TYPE_CHECKING:
    from jobcatalog.storage.embedder import Embedder
    from jobcatalog.storage.store import VectorStore

TECHNOLOGIES_COLLECTION = "technologies"


def technology_key(name: str) -> str:
    return name.strip().lower()


class ChromaTechnologyCatalog(TechnologyCatalog):
    """:class:`TechnologyCatalog` over a :class:`VectorStore` collection."""

    def __init__(
        self,
        store: VectorStore,
        embedder: Embedder,
        *,
        collection: str = TECHNOLOGIES_COLLECTION,
    ) -> None:
        self._store = store
        self._embedder = embedder
        self._collection = collection

    async def exists(self, name: str) -> bool:
        key = technology_key(name)
        return key in self._store.existing_ids(self._collection, ids=[key])

    async def create(self, name: str, category: str) -> None:
        if await self.exists(name):
            return
        display = name.strip()
        embedding = await self._embedder.embed(f"{display} ({category})")
        self._store.upsert_documents(
            self._collection,
            ids=[technology_key(name)],
            documents=[display],
            embeddings=[embedding],
            metadatas=[{"name": display, "category": category}],
        )
        logger.info("Technology '%s' added to catalog as %s", display, category)

    async def list_names(self) -> set[str]:
        collection = self._store.get_or_create_collection(self._collection)
        if collection.count() == 0:
            return set()
        found = self._store.get_documents(self._collection)
        return {str(meta["name"]) for meta in found["metadatas"] if meta and "name" in meta}
