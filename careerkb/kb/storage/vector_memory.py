"""ChromaDB-backed semantic index with OpenAI embeddings.

Entries are free-text renderings of experiences, projects, achievements, and
operator notes, each carrying ``{"type": ..., "id": ...}`` metadata that
points back at the relational row (notes have no row).
"""

import uuid
from typing import Any

import chromadb

from ...core.models.knowledge import MemoryHit
from ...integrations.openai_client import OpenAIClient
from ...observability.logger import get_logger

logger = get_logger(__name__)


class ChromaVectorMemory:
    """Vector memory over a single Chroma collection (cosine space)."""

    def __init__(
        self,
        embedder: OpenAIClient,
        mode: str = "persistent",
        persist_directory: str | None = "data/chroma",
        collection_name: str = "career_memory",
    ):
        """Initialize the Chroma client and collection.

        Args:
            embedder: Client whose ``embed`` produces vectors
            mode: "memory" for an ephemeral index or "persistent" for disk storage
            persist_directory: Directory for persistent storage
            collection_name: Name of the collection
        """
        self.embedder = embedder
        self.mode = mode
        self.collection_name = collection_name
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

        if mode == "memory":
            self.client = chromadb.EphemeralClient()
        else:
            if not persist_directory:
                raise ValueError("persist_directory required for persistent mode")
            self.client = chromadb.PersistentClient(path=persist_directory)

        self.collection = self._open_collection()
        self.logger.info("vector_memory_ready", mode=mode, collection=collection_name)

    def _open_collection(self):
        return self.client.get_or_create_collection(
            name=self.collection_name,
            metadata={"hnsw:space": "cosine"},
        )

    async def add(self, text: str, metadata: dict[str, Any]) -> str:
        """Embed and store one entry.

        Args:
            text: Text rendering to index
            metadata: Scalar metadata (type, id, ...)

        Returns:
            The new entry's ID
        """
        embedding = await self.embedder.embed(text)
        memory_id = str(uuid.uuid4())
        self.collection.add(
            ids=[memory_id],
            embeddings=[embedding],
            documents=[text],
            metadatas=[metadata],
        )
        return memory_id

    async def search(self, query: str, top_k: int, min_relativity: float) -> list[MemoryHit]:
        """Return up to ``top_k`` entries whose relativity is at least ``min_relativity``.

        Relativity is ``1 - cosine distance``, so 1.0 is an exact match.
        """
        available = self.collection.count()
        if available == 0 or top_k <= 0:
            return []

        embedding = await self.embedder.embed(query)
        results = self.collection.query(
            query_embeddings=[embedding],
            n_results=min(top_k, available),
            include=["documents", "metadatas", "distances"],
        )

        hits: list[MemoryHit] = []
        ids = results.get("ids", [[]])[0]
        documents = (results.get("documents") or [[]])[0]
        metadatas = (results.get("metadatas") or [[]])[0]
        distances = (results.get("distances") or [[]])[0]
        for memory_id, document, meta, distance in zip(ids, documents, metadatas, distances):
            score = 1.0 - float(distance)
            if score < min_relativity:
                continue
            hits.append(MemoryHit(memory_id=memory_id, text=document or "", score=score, metadata=dict(meta or {})))

        self.logger.debug("vector_search_complete", top_k=top_k, returned=len(hits))
        return hits

    async def delete(self, memory_ids: list[str]) -> None:
        if not memory_ids:
            return
        self.collection.delete(ids=memory_ids)
        self.logger.info("vector_entries_deleted", count=len(memory_ids))

    async def clear(self) -> None:
        """Drop and recreate the collection."""
        self.client.delete_collection(self.collection_name)
        self.collection = self._open_collection()
        self.logger.info("vector_memory_cleared", collection=self.collection_name)
