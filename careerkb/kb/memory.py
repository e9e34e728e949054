"""Direct access to the semantic index: search, free-form notes, and note updates."""

from ..core.config.settings import PipelineSettings
from ..core.errors import InvalidInputError
from ..core.interfaces import VectorMemory
from ..core.models.enums import MemoryType
from ..core.models.results import MemorySearchItem, MemorySearchResult, MemoryWriteResult
from ..observability.logger import get_logger

logger = get_logger(__name__)

AGENT_SOURCE = "agent"
TYPE_PROBE_QUERY = "resume experience project skill achievement note goal"


class MemoryService:
    """Search and maintain semantic-index entries outside the build pipeline."""

    def __init__(self, vectors: VectorMemory, settings: PipelineSettings | None = None):
        self.vectors = vectors
        self.settings = settings or PipelineSettings()

    async def search(self, query: str, top_k: int | None = None) -> MemorySearchResult:
        """Semantic search; ``top_k`` is clamped to the configured range.

        Raises:
            InvalidInputError: If the query is empty
        """
        if not query or not query.strip():
            raise InvalidInputError("search query is empty")

        limit = top_k if top_k and top_k > 0 else self.settings.memory_search_top_k
        limit = min(limit, self.settings.memory_search_max_top_k)

        hits = await self.vectors.search(query, top_k=limit, min_relativity=self.settings.memory_min_relativity)
        items = [
            MemorySearchItem(
                content=hit.text,
                score=hit.score,
                type=hit.memory_type,
                entity_id=hit.entity_id,
                memory_id=hit.memory_id,
            )
            for hit in hits
        ]
        logger.info("memory_search_complete", top_k=limit, returned=len(items))
        return MemorySearchResult(query=query, results=items, summary=f"Found {len(items)} matching memories.")

    async def add(self, content: str, memory_type: str | None = None) -> MemoryWriteResult:
        """Store a free-form entry tagged ``{type, source: "agent"}``.

        Raises:
            InvalidInputError: If the content is empty
        """
        if not content or not content.strip():
            raise InvalidInputError("memory content is empty")

        kind = (memory_type or "").strip() or MemoryType.NOTE.value
        memory_id = await self.vectors.add(content, {"type": kind, "source": AGENT_SOURCE})
        logger.info("memory_added", memory_id=memory_id, type=kind)
        return MemoryWriteResult(memory_id=memory_id, type=kind, summary=f"Stored {kind} memory.")

    async def update(self, memory_id: str, content: str) -> MemoryWriteResult:
        """Replace an entry's text, keeping its type.

        The index cannot update in place, so the entry is deleted and re-added;
        the returned ID is the new one.

        Raises:
            InvalidInputError: If the memory ID or content is empty
        """
        if not memory_id or not memory_id.strip():
            raise InvalidInputError("memory_id is required")
        if not content or not content.strip():
            raise InvalidInputError("memory content is empty")

        kind = await self._lookup_type(memory_id)
        await self.vectors.delete([memory_id])
        new_id = await self.vectors.add(content, {"type": kind, "source": AGENT_SOURCE})

        logger.info("memory_updated", old_memory_id=memory_id, memory_id=new_id, type=kind)
        return MemoryWriteResult(memory_id=new_id, type=kind, summary=f"Updated {kind} memory.")

    async def _lookup_type(self, memory_id: str) -> str:
        """Find the entry's type with a broad probe; unknown entries count as notes."""
        hits = await self.vectors.search(
            TYPE_PROBE_QUERY,
            top_k=self.settings.memory_search_max_top_k,
            min_relativity=0.0,
        )
        for hit in hits:
            if hit.memory_id == memory_id and hit.memory_type:
                return hit.memory_type
        return MemoryType.NOTE.value
