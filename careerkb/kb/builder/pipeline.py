"""Master resume build pipeline.

Orchestrates the full rebuild of the knowledge base from one resume:
1. Extraction call (fatal on failure)
2. Enrichment call (non-fatal; an empty enrichment is used on failure)
3. One database transaction: clear, insert entities, build the graph overlay,
   apply enrichment, link methodologies, mark the person enriched
4. After commit: replace the semantic index contents

A crash or cancellation before the commit leaves the previous knowledge base
untouched. Individual row, node, and edge failures are isolated with
savepoints, logged, and counted in ``BuildResult.partial_failures``.
"""

import time
from collections.abc import Callable
from typing import Any, TypeVar

from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from ...core.agents.extraction import (
    BuildEnrichmentAgent,
    BuildEnrichmentInput,
    ExtractionAgent,
    ExtractionInput,
)
from ...core.config.settings import PipelineSettings
from ...core.errors import InvalidInputError, PartialFailure
from ...core.interfaces import LanguageModel, VectorMemory
from ...core.models.enums import EdgeType, MemoryType, NodeKind, SkillSource
from ...core.models.extraction import EnrichmentResult, ParsedResume
from ...core.models.results import BuildResult
from ...core.resolution import (
    find_achievement_for_source,
    find_achievement_owner,
    find_experience_by_company,
)
from ...core.text import contains_fold, experience_text, project_text, truncate
from ...observability.logger import get_logger
from ..storage import database as tables
from ..storage.database import Database
from ..storage.graph_store import GraphStore
from ..storage.knowledge_store import KnowledgeStore, name_key

logger = get_logger(__name__)

T = TypeVar("T")


class _BuildWriter:
    """Write phase of one build, bound to a single open transaction."""

    def __init__(self, conn: Connection, result: BuildResult):
        self.conn = conn
        self.kb = KnowledgeStore(conn)
        self.graph = GraphStore(conn)
        self.result = result
        self.person_id = 0
        self.skill_ids: dict[str, int] = {}
        self.domain_ids: dict[str, int] = {}
        self.methodology_keys: set[str] = set()
        self.vector_entries: list[tuple[str, dict[str, Any]]] = []

    # -------------------------------------------------------------------------
    # Failure isolation
    # -------------------------------------------------------------------------

    def attempt(self, step: str, fn: Callable[..., T], *args: Any, **context: Any) -> T | None:
        """Run ``fn`` inside a savepoint; on failure roll it back, log, and count."""
        try:
            with self.conn.begin_nested():
                return fn(*args)
        except (SQLAlchemyError, PartialFailure) as e:
            self.fail(step, str(e), **context)
            return None

    def fail(self, step: str, reason: str, **context: Any) -> None:
        self.result.partial_failures += 1
        log = logger.debug if step.startswith("graph") else logger.warning
        log("build_step_failed", step=step, error=reason, **context)

    def node(self, kind: NodeKind, entity_id: int, **props: Any) -> None:
        self.attempt("graph_node", self.graph.upsert_node, kind, entity_id, props, kind=kind.value, id=entity_id)

    def edge(self, from_kind: NodeKind, from_id: int, edge_type: EdgeType, to_kind: NodeKind, to_id: int) -> None:
        self.attempt(
            "graph_edge",
            self.graph.add_edge,
            from_kind,
            from_id,
            edge_type,
            to_kind,
            to_id,
            edge=f"{from_kind.value}:{from_id}-{edge_type.value}->{to_kind.value}:{to_id}",
        )

    # -------------------------------------------------------------------------
    # Idempotent entity helpers
    # -------------------------------------------------------------------------

    def ensure_skill(
        self,
        name: str,
        category: str = "other",
        level: str = "intermediate",
        is_implicit: bool = False,
        source: str = SkillSource.RESUME.value,
    ) -> int | None:
        """Return the skill's ID, inserting it (and its node) on first sight only."""
        key = name_key(name)
        if not key:
            return None
        if key in self.skill_ids:
            return self.skill_ids[key]

        skill_id = self.attempt(
            "insert_skill",
            self.kb.upsert_skill,
            self.person_id,
            name,
            category,
            level,
            is_implicit,
            source,
            skill=name,
        )
        if skill_id is None:
            return None
        self.skill_ids[key] = skill_id
        self.node(NodeKind.SKILL, skill_id, name=name.strip())
        return skill_id

    def ensure_domain(self, name: str) -> int | None:
        key = name_key(name)
        if not key:
            return None
        if key in self.domain_ids:
            return self.domain_ids[key]
        domain_id = self.attempt("insert_domain", self.kb.upsert_domain, self.person_id, name, domain=name)
        if domain_id is None:
            return None
        self.domain_ids[key] = domain_id
        self.node(NodeKind.DOMAIN, domain_id, name=name.strip())
        return domain_id

    def add_methodology(self, name: str, description: str) -> None:
        """Insert a methodology unless one with the same name was already written."""
        key = name_key(name)
        if not key or key in self.methodology_keys:
            return
        method_id = self.attempt(
            "insert_methodology",
            self.kb.upsert_methodology,
            self.person_id,
            name,
            description,
            methodology=name,
        )
        if method_id is None:
            return
        self.methodology_keys.add(key)
        self.node(NodeKind.METHODOLOGY, method_id, name=name.strip())

    def link_tech(self, kind: NodeKind, entity_id: int, tech: list[str]) -> None:
        for name in tech:
            skill_id = self.ensure_skill(name)
            if skill_id is not None:
                self.edge(kind, entity_id, EdgeType.USED_SKILL, NodeKind.SKILL, skill_id)

    def add_project(
        self,
        name: str,
        description: str,
        url: str,
        tech: list[str],
        highlights: list[str],
        parent_experience_id: int | None,
    ) -> int | None:
        project_id = self.attempt(
            "insert_project",
            self.kb.insert_project,
            self.person_id,
            name,
            description,
            url,
            tech,
            highlights,
            parent_experience_id,
            project=name,
        )
        if project_id is None:
            return None
        self.result.projects += 1
        self.node(NodeKind.PROJECT, project_id, name=name)
        if parent_experience_id is not None:
            self.result.sub_projects += 1
            self.edge(NodeKind.PROJECT, project_id, EdgeType.PART_OF, NodeKind.EXPERIENCE, parent_experience_id)
        self.link_tech(NodeKind.PROJECT, project_id, tech)
        self.vector_entries.append(
            (
                project_text(name, description, tech, highlights),
                {"type": MemoryType.PROJECT.value, "id": project_id},
            )
        )
        return project_id

    # -------------------------------------------------------------------------
    # Write phase
    # -------------------------------------------------------------------------

    def write(self, parsed: ParsedResume, enrichment: EnrichmentResult) -> None:
        # Store-level failures here are fatal and roll the whole build back
        self.kb.clear_all()
        self.graph.clear()
        self.person_id = self.kb.insert_person(parsed.person)
        self.result.person_id = self.person_id

        for skill in parsed.skills:
            source = skill.source or (SkillSource.INFERRED.value if skill.is_implicit else SkillSource.RESUME.value)
            self.ensure_skill(skill.name, skill.category, skill.level, skill.is_implicit, source)

        self._write_experiences(parsed)

        for proj in parsed.projects:
            self.add_project(proj.name, proj.description, proj.url, proj.tech, proj.highlights, None)

        self._write_achievements(parsed)

        for edu in parsed.educations:
            if self.attempt("insert_education", self.kb.insert_education, self.person_id, edu, school=edu.school):
                self.result.educations += 1
        for cert in parsed.certifications:
            if self.attempt("insert_certification", self.kb.insert_certification, self.person_id, cert, name=cert.name):
                self.result.certifications += 1

        for domain in [*parsed.domains, *enrichment.domains]:
            self.ensure_domain(domain)
        # Parse-time descriptions win because they are written first
        for method in [*parsed.methodologies, *enrichment.methodologies]:
            self.add_methodology(method.name, method.description)

        self._apply_enrichment(enrichment)
        self._link_methodologies()

        self.kb.mark_person_enriched(self.person_id)
        self._finalize_counts()

    def _write_experiences(self, parsed: ParsedResume) -> None:
        for exp in parsed.experiences:
            exp_id = self.attempt(
                "insert_experience",
                self.kb.insert_experience,
                self.person_id,
                exp,
                company=exp.company,
            )
            if exp_id is None:
                continue

            self.attempt(
                "experience_metadata",
                self.kb.update_experience_meta,
                exp_id,
                exp.team_size,
                exp.budget_usd,
                exp.domain,
                exp.is_volunteer,
                experience_id=exp_id,
            )
            self.node(NodeKind.EXPERIENCE, exp_id, title=exp.title, company=exp.company)

            self.link_tech(NodeKind.EXPERIENCE, exp_id, exp.skills)

            if exp.domain:
                domain_id = self.ensure_domain(exp.domain)
                if domain_id is not None:
                    self.edge(NodeKind.EXPERIENCE, exp_id, EdgeType.IN_DOMAIN, NodeKind.DOMAIN, domain_id)

            for sub in exp.sub_projects:
                self.add_project(sub.name, sub.description, "", sub.tech, sub.highlights, exp_id)

            self.vector_entries.append(
                (
                    experience_text(
                        exp.title,
                        exp.company,
                        exp.start_date,
                        exp.end_date,
                        exp.domain,
                        exp.description,
                        exp.highlights,
                    ),
                    {"type": MemoryType.EXPERIENCE.value, "id": exp_id},
                )
            )

    def _write_achievements(self, parsed: ParsedResume) -> None:
        stored_experiences = self.kb.list_experiences(self.person_id)
        stored_projects = self.kb.list_projects(self.person_id)

        for achv in parsed.achievements:
            achv_id = self.attempt("insert_achievement", self.kb.insert_achievement, self.person_id, achv)
            if achv_id is None:
                continue
            self.node(NodeKind.ACHIEVEMENT, achv_id, text=achv.text)

            owner = find_achievement_owner(stored_experiences, stored_projects, achv.context)
            if owner is not None:
                owner_kind, owner_id = owner
                self.edge(owner_kind, owner_id, EdgeType.PRODUCED, NodeKind.ACHIEVEMENT, achv_id)

            self.vector_entries.append((achv.text, {"type": MemoryType.ACHIEVEMENT.value, "id": achv_id}))

    def _apply_enrichment(self, enrichment: EnrichmentResult) -> None:
        stored_achievements = self.kb.list_achievements(self.person_id)
        stored_experiences = self.kb.list_experiences(self.person_id)

        for skill in enrichment.implicit_skills:
            if not name_key(skill.name) or name_key(skill.name) in self.skill_ids:
                continue
            skill_id = self.ensure_skill(
                skill.name, skill.category, skill.level, True, SkillSource.INFERRED.value
            )
            if skill_id is None:
                continue
            self.result.implicit_skills += 1
            if not skill.source:
                continue
            achv = find_achievement_for_source(stored_achievements, skill.source)
            if achv is not None:
                self.edge(NodeKind.ACHIEVEMENT, achv.id, EdgeType.DERIVED_SKILL, NodeKind.SKILL, skill_id)

        for sub in enrichment.sub_projects:
            parent = find_experience_by_company(stored_experiences, sub.parent_experience)
            if parent is None and sub.parent_experience:
                self.fail("resolve_parent_experience", "no matching experience", hint=sub.parent_experience)
            self.add_project(
                sub.name,
                sub.description,
                "",
                sub.tech,
                sub.highlights,
                parent.id if parent else None,
            )

        for pair in enrichment.skill_adjacencies:
            from_id = self.skill_ids.get(name_key(pair.from_skill))
            if from_id is None:
                self.fail("resolve_adjacent_skill", "unknown source skill", skill=pair.from_skill)
                continue
            to_id = self.ensure_skill(pair.to_skill, is_implicit=True, source=SkillSource.INFERRED.value)
            if to_id is not None and to_id != from_id:
                self.edge(NodeKind.SKILL, from_id, EdgeType.IMPLIES_SKILL, NodeKind.SKILL, to_id)

        for pair in enrichment.career_trajectory:
            earlier = find_experience_by_company(stored_experiences, pair.from_company)
            later = find_experience_by_company(stored_experiences, pair.to_company)
            if earlier is None or later is None:
                self.fail("resolve_trajectory", "experience not found", pair=f"{pair.from_company}->{pair.to_company}")
                continue
            if earlier.id != later.id:
                self.edge(NodeKind.EXPERIENCE, earlier.id, EdgeType.EVOLVED_TO, NodeKind.EXPERIENCE, later.id)

    def _link_methodologies(self) -> None:
        methods = self.kb.list_methodologies(self.person_id)
        if not methods:
            return
        for exp in self.kb.list_experiences(self.person_id):
            body = " ".join([exp.description, *exp.highlights])
            for method in methods:
                if contains_fold(body, method.name):
                    self.edge(NodeKind.EXPERIENCE, exp.id, EdgeType.USED_METHOD, NodeKind.METHODOLOGY, method.id)

    def _finalize_counts(self) -> None:
        count = self.kb.count
        self.result.experiences = count(tables.experiences, self.person_id)
        self.result.skills = count(tables.skills, self.person_id)
        self.result.projects = count(tables.projects, self.person_id)
        self.result.achievements = count(tables.achievements, self.person_id)
        self.result.domains = count(tables.domains, self.person_id)
        self.result.methodologies = count(tables.methodologies, self.person_id)
        self.result.graph_nodes = self.graph.count_nodes()
        self.result.graph_edges = self.graph.count_edges()


class MasterResumeBuilder:
    """Builds the knowledge base from plain resume text."""

    def __init__(
        self,
        db: Database,
        llm: LanguageModel,
        vectors: VectorMemory,
        settings: PipelineSettings | None = None,
    ):
        """Initialize the builder.

        Args:
            db: Relational store holding entities and the graph overlay
            llm: Language model for the extraction and enrichment calls
            vectors: Semantic index, replaced after each successful build
            settings: Truncation limits
        """
        self.db = db
        self.vectors = vectors
        self.settings = settings or PipelineSettings()
        self.extractor = ExtractionAgent(llm)
        self.enricher = BuildEnrichmentAgent(llm)

    async def build(self, resume_text: str) -> BuildResult:
        """Parse, enrich, and store one resume, replacing all previous knowledge.

        Args:
            resume_text: Plain-text resume

        Returns:
            BuildResult with per-kind counts and a summary

        Raises:
            InvalidInputError: If the resume text is empty
            ParseError: If the extraction output violates its schema
            ConfigurationError: If the store is unreachable
        """
        if not resume_text or not resume_text.strip():
            raise InvalidInputError("resume text is empty")

        start_time = time.time()
        logger.info("build_started", resume_chars=len(resume_text))

        parsed = await self.extractor.execute(
            ExtractionInput(resume_text=truncate(resume_text, self.settings.max_resume_chars))
        )
        logger.info(
            "resume_extracted",
            experiences=len(parsed.experiences),
            skills=len(parsed.skills),
            achievements=len(parsed.achievements),
        )

        result = BuildResult()
        enrichment = await self._enrich(parsed, resume_text, result)

        with self.db.transaction() as conn:
            writer = _BuildWriter(conn, result)
            writer.write(parsed, enrichment)

        await self._replace_vectors(writer.vector_entries, result)

        result.summary = result.render_summary()
        logger.info(
            "build_complete",
            person_id=result.person_id,
            experiences=result.experiences,
            skills=result.skills,
            graph_nodes=result.graph_nodes,
            graph_edges=result.graph_edges,
            vectors_stored=result.vectors_stored,
            partial_failures=result.partial_failures,
            duration_ms=int((time.time() - start_time) * 1000),
        )
        return result

    async def _enrich(self, parsed: ParsedResume, resume_text: str, result: BuildResult) -> EnrichmentResult:
        """Run the enrichment pass; any failure degrades to an empty enrichment."""
        parsed_json = parsed.model_dump_json(by_alias=True)
        try:
            return await self.enricher.execute(
                BuildEnrichmentInput(
                    parsed_json=truncate(parsed_json, self.settings.enrichment_parsed_chars),
                    resume_text=truncate(resume_text, self.settings.enrichment_resume_chars),
                )
            )
        except Exception as e:
            failure = PartialFailure("enrichment", str(e), error_type=type(e).__name__)
            result.partial_failures += 1
            logger.warning("enrichment_skipped", step=failure.step, error=failure.reason, **failure.context)
            return EnrichmentResult()

    async def _replace_vectors(self, entries: list[tuple[str, dict[str, Any]]], result: BuildResult) -> None:
        """Swap the semantic index contents for the freshly committed build.

        When the clear fails nothing is added, so stale entries are never mixed
        with the new build; ``vectors_stored`` stays 0 and the failure is counted.
        """
        try:
            await self.vectors.clear()
        except Exception as e:
            result.partial_failures += 1
            logger.warning("vector_clear_failed", error=str(e), skipped_entries=len(entries))
            return

        for text, meta in entries:
            try:
                await self.vectors.add(text, meta)
            except Exception as e:
                result.partial_failures += 1
                logger.debug("vector_add_failed", error=str(e), error_type=type(e).__name__, **meta)
            else:
                result.vectors_stored += 1
