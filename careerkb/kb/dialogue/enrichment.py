"""Post-build enrichment dialogue.

``start`` asks the language model which gaps in the stored knowledge are worth
filling and returns its questions. ``answer`` feeds the operator's answers
back, receives typed update directives, and applies each one in its own
savepoint so a bad directive is skipped without losing the others.
"""

from typing import Any

from pydantic import ValidationError
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from ...core.agents.dialogue import DirectiveAgent, DirectiveInput, QuestionAgent, QuestionInput
from ...core.config.settings import PipelineSettings
from ...core.errors import InvalidInputError, PartialFailure
from ...core.interfaces import LanguageModel, VectorMemory
from ...core.models.dialogue import AnswerPair, Directive, EnrichAnswerResult, EnrichStartResult
from ...core.models.enums import DirectiveType, EdgeType, MemoryType, NodeKind, SkillSource
from ...core.models.knowledge import KnowledgeSnapshot
from ...core.resolution import find_achievement_by_text, find_experience_by_company
from ...core.text import project_text, truncate
from ...observability.logger import get_logger
from ..storage.database import Database
from ..storage.graph_store import GraphStore
from ..storage.knowledge_store import KnowledgeStore

logger = get_logger(__name__)


def render_knowledge_dump(snapshot: KnowledgeSnapshot) -> str:
    """Render the stored knowledge as the plain-text block the dialogue prompts embed."""
    lines = ["EXPERIENCES:"]
    for exp in snapshot.experiences:
        head = f"- {exp.title} at {exp.company} ({exp.start_date}-{exp.end_date})"
        if exp.domain:
            head += f" [{exp.domain}]"
        lines.append(head)
        if exp.description:
            lines.append(f"  {exp.description}")
        lines.extend(f"  * {highlight}" for highlight in exp.highlights)

    lines += ["", "SKILLS:"]
    for skill in snapshot.skills:
        label = f"{skill.name} (inferred)" if skill.is_implicit else skill.name
        lines.append(f"- {label} [{skill.category}, {skill.level}]")

    if snapshot.projects:
        lines += ["", "PROJECTS:"]
        lines.extend(f"- {proj.name}: {proj.description}" for proj in snapshot.projects)

    if snapshot.achievements:
        lines += ["", "ACHIEVEMENTS:"]
        for achv in snapshot.achievements:
            line = f"- {achv.text}"
            if achv.metric_numeric is not None:
                line += f" ({achv.metric_numeric:.0f} {achv.metric_unit})"
            lines.append(line)

    if snapshot.domains:
        lines += ["", "DOMAINS:"]
        lines.extend(f"- {domain.name}" for domain in snapshot.domains)

    if snapshot.methodologies:
        lines += ["", "METHODOLOGIES:"]
        lines.extend(f"- {method.name}: {method.description}" for method in snapshot.methodologies)

    return "\n".join(lines) + "\n"


class EnrichmentDialogue:
    """Question/answer loop that fills gaps in an existing knowledge base."""

    def __init__(
        self,
        db: Database,
        llm: LanguageModel,
        vectors: VectorMemory,
        settings: PipelineSettings | None = None,
    ):
        self.db = db
        self.vectors = vectors
        self.settings = settings or PipelineSettings()
        self.question_agent = QuestionAgent(llm)
        self.directive_agent = DirectiveAgent(llm)

    def _load_dump(self, limit: int) -> tuple[int, str]:
        with self.db.connect() as conn:
            kb = KnowledgeStore(conn)
            person_id = kb.require_person_id()
            snapshot = kb.snapshot(person_id)
        return person_id, truncate(render_knowledge_dump(snapshot), limit)

    async def start(self) -> EnrichStartResult:
        """Generate gap-filling questions about the stored knowledge.

        Raises:
            NotFoundError: If no master resume has been built
            ParseError: If the question output violates its schema
        """
        person_id, dump = self._load_dump(self.settings.dialogue_start_chars)
        question_set = await self.question_agent.execute(QuestionInput(knowledge_dump=dump))

        logger.info("enrichment_questions_generated", person_id=person_id, questions=len(question_set.questions))
        return EnrichStartResult(
            questions=question_set.questions,
            summary=f"Generated {len(question_set.questions)} enrichment questions across categories.",
        )

    async def answer(self, answers: list[AnswerPair]) -> EnrichAnswerResult:
        """Turn operator answers into directives and apply them.

        Args:
            answers: One or more (question_id, answer) pairs

        Returns:
            Applied and skipped directive counts

        Raises:
            InvalidInputError: If no answers are given
            NotFoundError: If no master resume has been built
            ParseError: If the directive output violates its schema
        """
        if not answers:
            raise InvalidInputError("no answers provided")

        person_id, dump = self._load_dump(self.settings.dialogue_answer_chars)
        directive_set = await self.directive_agent.execute(DirectiveInput(knowledge_dump=dump, answers=answers))

        applied = skipped = 0
        new_vectors: list[tuple[str, dict[str, Any]]] = []

        with self.db.transaction() as conn:
            applier = _DirectiveApplier(conn, person_id)
            for raw in directive_set.updates:
                try:
                    directive = Directive.model_validate(raw)
                except ValidationError as e:
                    skipped += 1
                    logger.warning("directive_invalid", error=str(e.errors()[0]["msg"]) if e.errors() else str(e))
                    continue

                try:
                    with conn.begin_nested():
                        vector_entry = applier.apply(directive)
                except (PartialFailure, SQLAlchemyError) as e:
                    skipped += 1
                    logger.warning("directive_skipped", directive_type=directive.type, error=str(e))
                    continue

                applied += 1
                if vector_entry is not None:
                    new_vectors.append(vector_entry)

            applier.kb.mark_person_enriched(person_id)

        for text, meta in new_vectors:
            try:
                await self.vectors.add(text, meta)
            except Exception as e:
                logger.debug("vector_add_failed", error=str(e), error_type=type(e).__name__, **meta)

        logger.info("enrichment_applied", person_id=person_id, applied=applied, skipped=skipped)
        return EnrichAnswerResult(
            applied=applied,
            skipped=skipped,
            summary=f"Applied {applied} enrichments from {len(answers)} answers.",
        )


class _DirectiveApplier:
    """Applies validated directives against one open transaction."""

    def __init__(self, conn: Connection, person_id: int):
        self.kb = KnowledgeStore(conn)
        self.graph = GraphStore(conn)
        self.person_id = person_id

    def apply(self, directive: Directive) -> tuple[str, dict[str, Any]] | None:
        """Apply one directive.

        Returns:
            A (text, metadata) vector entry to index after commit, if any

        Raises:
            PartialFailure: If the directive is unknown or cannot be resolved
        """
        handlers = {
            DirectiveType.ADD_SKILL.value: self._add_skill,
            DirectiveType.UPDATE_ACHIEVEMENT.value: self._update_achievement,
            DirectiveType.ADD_PROJECT.value: self._add_project,
            DirectiveType.ADD_METHODOLOGY.value: self._add_methodology,
            DirectiveType.ADD_DOMAIN.value: self._add_domain,
        }
        handler = handlers.get(directive.type)
        if handler is None:
            raise PartialFailure("directive", "unknown directive type", directive_type=directive.type)
        return handler(directive)

    def _require_name(self, directive: Directive) -> str:
        name = directive.name.strip()
        if not name:
            raise PartialFailure("directive", "missing name", directive_type=directive.type)
        return name

    def _add_skill(self, directive: Directive) -> None:
        name = self._require_name(directive)
        skill_id = self.kb.upsert_skill(
            self.person_id,
            name,
            directive.category,
            directive.level,
            is_implicit=True,
            source=SkillSource.ENRICHMENT.value,
        )
        self.graph.upsert_node(NodeKind.SKILL, skill_id, {"name": name})

    def _update_achievement(self, directive: Directive) -> None:
        achv = find_achievement_by_text(self.kb.list_achievements(self.person_id), directive.achievement_text)
        if achv is None:
            raise PartialFailure("directive", "no matching achievement", hint=directive.achievement_text)
        if not self.kb.update_achievement(achv.id, directive.new_text, directive.metric_numeric, directive.metric_unit):
            raise PartialFailure("directive", "nothing to update", achievement_id=achv.id)
        if directive.new_text:
            self.graph.upsert_node(NodeKind.ACHIEVEMENT, achv.id, {"text": directive.new_text})

    def _add_project(self, directive: Directive) -> tuple[str, dict[str, Any]]:
        name = self._require_name(directive)
        parent_id = None
        if directive.parent_experience:
            parent = find_experience_by_company(self.kb.list_experiences(self.person_id), directive.parent_experience)
            if parent is not None:
                parent_id = parent.id

        project_id = self.kb.insert_project(
            self.person_id,
            name,
            directive.description,
            tech=directive.tech,
            highlights=directive.highlights,
            parent_experience_id=parent_id,
        )
        self.graph.upsert_node(NodeKind.PROJECT, project_id, {"name": name})
        if parent_id is not None:
            self.graph.add_edge(NodeKind.PROJECT, project_id, EdgeType.PART_OF, NodeKind.EXPERIENCE, parent_id)

        text = project_text(name, directive.description, directive.tech, directive.highlights)
        return text, {"type": MemoryType.PROJECT.value, "id": project_id}

    def _add_methodology(self, directive: Directive) -> None:
        name = self._require_name(directive)
        method_id = self.kb.upsert_methodology(self.person_id, name, directive.description)
        self.graph.upsert_node(NodeKind.METHODOLOGY, method_id, {"name": name})

    def _add_domain(self, directive: Directive) -> None:
        name = self._require_name(directive)
        domain_id = self.kb.upsert_domain(self.person_id, name)
        self.graph.upsert_node(NodeKind.DOMAIN, domain_id, {"name": name})
