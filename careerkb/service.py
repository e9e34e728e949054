"""Facade wiring the stores and language model into the career knowledge base operations."""

from typing import Any

from .core.config.loader import load_config, resolve_database_url
from .core.config.settings import PipelineSettings
from .core.interfaces import CompanyResearcher, LanguageModel, VectorMemory
from .core.models.dialogue import AnswerPair, EnrichAnswerResult, EnrichStartResult
from .core.models.generation import GenerateResult
from .core.models.results import (
    BuildResult,
    MemorySearchResult,
    MemoryWriteResult,
    ProfileSnapshot,
)
from .integrations.company_research import LLMCompanyResearcher
from .integrations.openai_client import create_openai_client
from .kb.builder.pipeline import MasterResumeBuilder
from .kb.dialogue.enrichment import EnrichmentDialogue
from .kb.memory import MemoryService
from .kb.profile import ProfileReader
from .kb.storage.database import Database
from .kb.storage.vector_memory import ChromaVectorMemory
from .observability.logger import configure_from_config, get_logger
from .synthesis.generator import ResumeGenerator

logger = get_logger(__name__)


class CareerKnowledgeBase:
    """Entry point for every career knowledge base operation.

    Owns the injected store handles; nothing below this class reaches for a
    global store.
    """

    def __init__(
        self,
        db: Database,
        llm: LanguageModel,
        vectors: VectorMemory,
        researcher: CompanyResearcher | None = None,
        settings: PipelineSettings | None = None,
    ):
        """Initialize the knowledge base.

        Args:
            db: Relational store (entities and graph overlay); schema is created if missing
            llm: Language model for every structured call
            vectors: Semantic index
            researcher: Optional company research collaborator for ``generate``
            settings: Truncation limits and search thresholds
        """
        self.db = db
        self.llm = llm
        self.vectors = vectors
        self.settings = settings or PipelineSettings()

        self.db.create_schema()

        self.builder = MasterResumeBuilder(db, llm, vectors, self.settings)
        self.dialogue = EnrichmentDialogue(db, llm, vectors, self.settings)
        self.generator = ResumeGenerator(db, llm, vectors, researcher, self.settings)
        self.reader = ProfileReader(db, vectors, self.settings)
        self.memory = MemoryService(vectors, self.settings)

    @classmethod
    def from_config(cls, overrides: dict[str, Any] | None = None) -> "CareerKnowledgeBase":
        """Build every collaborator from the layered configuration.

        Raises:
            ConfigurationError: If no database URL is configured or the store is unreachable
        """
        config = load_config(overrides)
        configure_from_config(config)

        db_config = config.get("database", {}) or {}
        db = Database(
            resolve_database_url(config),
            echo=bool(db_config.get("echo", False)),
            pool_size=int(db_config.get("pool_size", 5)),
        )
        db.ping()

        llm = create_openai_client(config)
        vector_config = config.get("vector", {}) or {}
        vectors = ChromaVectorMemory(
            embedder=llm,
            mode=vector_config.get("mode", "persistent"),
            persist_directory=vector_config.get("persist_directory", "data/chroma"),
            collection_name=vector_config.get("collection_name", "career_memory"),
        )
        researcher = LLMCompanyResearcher(llm) if (config.get("research", {}) or {}).get("enabled", True) else None

        logger.info("career_kb_configured", dialect=db.dialect, vector_mode=vectors.mode)
        return cls(db, llm, vectors, researcher, PipelineSettings.from_config(config))

    async def build(self, resume_text: str) -> BuildResult:
        return await self.builder.build(resume_text)

    async def enrich_start(self) -> EnrichStartResult:
        return await self.dialogue.start()

    async def enrich_answer(self, answers: list[AnswerPair]) -> EnrichAnswerResult:
        return await self.dialogue.answer(answers)

    async def generate(
        self,
        job_description: str,
        company: str | None = None,
        output_format: str = "text",
    ) -> GenerateResult:
        return await self.generator.generate(job_description, company, output_format)

    async def profile(self, section: str | None = None) -> ProfileSnapshot:
        return await self.reader.profile(section)

    async def memory_search(self, query: str, top_k: int | None = None) -> MemorySearchResult:
        return await self.memory.search(query, top_k)

    async def memory_add(self, content: str, memory_type: str | None = None) -> MemoryWriteResult:
        return await self.memory.add(content, memory_type)

    async def memory_update(self, memory_id: str, content: str) -> MemoryWriteResult:
        return await self.memory.update(memory_id, content)

    def close(self) -> None:
        self.db.dispose()
