"""Candidate retrieval for tailored resume generation.

Combines three signals into one candidate pool:
- graph lookups per requested skill (direct USED_SKILL links, achievements and
  sub-projects of the matched experiences, one IMPLIES_SKILL hop)
- semantic search over the job description
- fallbacks: any kind left empty is replaced by every stored row of that kind
"""

import asyncio
from dataclasses import dataclass, field

from pydantic import Field

from ..core.config.settings import PipelineSettings
from ..core.interfaces import VectorMemory
from ..core.models.base import CareerKBModel
from ..core.models.enums import EdgeType, MemoryType, NodeKind
from ..core.models.knowledge import (
    AchievementRecord,
    CertificationRecord,
    DomainRecord,
    EducationRecord,
    ExperienceRecord,
    MethodologyRecord,
    ProjectRecord,
    SkillRecord,
)
from ..kb.storage.database import Database
from ..kb.storage.graph_store import GraphStore
from ..kb.storage.knowledge_store import KnowledgeStore
from ..observability.logger import get_logger

logger = get_logger(__name__)


@dataclass
class MatchedIds:
    """Entity IDs collected from graph and vector lookups."""

    experiences: set[int] = field(default_factory=set)
    projects: set[int] = field(default_factory=set)
    achievements: set[int] = field(default_factory=set)

    def merge(self, other: "MatchedIds") -> None:
        self.experiences |= other.experiences
        self.projects |= other.projects
        self.achievements |= other.achievements


class CandidatePool(CareerKBModel):
    """Everything the assembler may draw on for one job description."""

    experiences: list[ExperienceRecord] = Field(default_factory=list)
    projects: list[ProjectRecord] = Field(default_factory=list)
    achievements: list[AchievementRecord] = Field(default_factory=list)
    educations: list[EducationRecord] = Field(default_factory=list)
    skills: list[SkillRecord] = Field(default_factory=list)
    certifications: list[CertificationRecord] = Field(default_factory=list)
    domains: list[DomainRecord] = Field(default_factory=list)
    methodologies: list[MethodologyRecord] = Field(default_factory=list)
    matched_experience_ids: list[int] = Field(default_factory=list, description="Before fallback")


class CandidateRetriever:
    """Selects the stored entities relevant to a set of skills and a query."""

    def __init__(self, db: Database, vectors: VectorMemory, settings: PipelineSettings | None = None):
        self.db = db
        self.vectors = vectors
        self.settings = settings or PipelineSettings()
        # SQLite connections are not shared across threads; serialize lookups there
        self._serial_lock = asyncio.Lock() if db.dialect == "sqlite" else None

    async def select(self, person_id: int, skills: list[str], query: str) -> CandidatePool:
        """Collect candidates for the given skills and free-text query.

        Args:
            person_id: Active profile
            skills: Required and nice-to-have skill names
            query: Text for the semantic search (the job description)

        Returns:
            Candidate pool with fallbacks applied
        """
        matched = MatchedIds()
        for hits in await asyncio.gather(*(self._lookup_skill(skill) for skill in skills)):
            matched.merge(hits)
        graph_experiences = len(matched.experiences)

        matched.merge(await self._semantic_matches(query))

        logger.info(
            "candidates_matched",
            skills=len(skills),
            graph_experiences=graph_experiences,
            experiences=len(matched.experiences),
            projects=len(matched.projects),
            achievements=len(matched.achievements),
        )
        return self._load_pool(person_id, matched)

    # -------------------------------------------------------------------------
    # Graph lookups
    # -------------------------------------------------------------------------

    async def _lookup_skill(self, skill: str) -> MatchedIds:
        if self._serial_lock is not None:
            async with self._serial_lock:
                return self._lookup_skill_sync(skill)
        return await asyncio.to_thread(self._lookup_skill_sync, skill)

    def _lookup_skill_sync(self, skill: str) -> MatchedIds:
        found = MatchedIds()
        if not skill.strip():
            return found

        with self.db.connect() as conn:
            graph = GraphStore(conn)
            experience_ids = graph.ids_using_skill(NodeKind.EXPERIENCE, skill)
            for exp_id in experience_ids:
                found.experiences.add(exp_id)
                found.achievements.update(
                    graph.targets(NodeKind.EXPERIENCE, exp_id, EdgeType.PRODUCED, NodeKind.ACHIEVEMENT)
                )
                found.projects.update(graph.sources(NodeKind.EXPERIENCE, exp_id, EdgeType.PART_OF, NodeKind.PROJECT))

            found.projects.update(graph.ids_using_skill(NodeKind.PROJECT, skill))
            found.experiences.update(graph.experience_ids_via_implied_skill(skill))

        logger.debug(
            "skill_lookup_complete",
            skill=skill,
            experiences=len(found.experiences),
            projects=len(found.projects),
        )
        return found

    # -------------------------------------------------------------------------
    # Semantic search
    # -------------------------------------------------------------------------

    async def _semantic_matches(self, query: str) -> MatchedIds:
        found = MatchedIds()
        if not query.strip():
            return found

        try:
            hits = await self.vectors.search(
                query,
                top_k=self.settings.retrieval_top_k,
                min_relativity=self.settings.retrieval_min_relativity,
            )
        except Exception as e:
            logger.warning("semantic_search_failed", error=str(e), error_type=type(e).__name__)
            return found

        by_type = {
            MemoryType.EXPERIENCE.value: found.experiences,
            MemoryType.PROJECT.value: found.projects,
            MemoryType.ACHIEVEMENT.value: found.achievements,
        }
        for hit in hits:
            bucket = by_type.get(hit.memory_type)
            if bucket is not None and hit.entity_id is not None:
                bucket.add(hit.entity_id)
        return found

    # -------------------------------------------------------------------------
    # Record loading
    # -------------------------------------------------------------------------

    def _load_pool(self, person_id: int, matched: MatchedIds) -> CandidatePool:
        with self.db.connect() as conn:
            kb = KnowledgeStore(conn)
            experiences = kb.experiences_by_ids(person_id, sorted(matched.experiences))
            projects = kb.projects_by_ids(person_id, sorted(matched.projects))
            achievements = kb.achievements_by_ids(person_id, sorted(matched.achievements))
            matched_experience_ids = [exp.id for exp in experiences]

            if not experiences:
                experiences = kb.list_experiences(person_id)
            if not projects:
                projects = kb.list_projects(person_id)
            if not achievements:
                achievements = kb.list_achievements(person_id)

            return CandidatePool(
                experiences=experiences,
                projects=projects,
                achievements=achievements,
                educations=kb.list_educations(person_id),
                skills=kb.list_skills(person_id),
                certifications=kb.list_certifications(person_id),
                domains=kb.list_domains(person_id),
                methodologies=kb.list_methodologies(person_id),
                matched_experience_ids=matched_experience_ids,
            )
