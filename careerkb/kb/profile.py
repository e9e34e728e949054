"""Read-only projection of the knowledge base."""

from ..core.config.settings import PipelineSettings
from ..core.errors import InvalidInputError
from ..core.interfaces import VectorMemory
from ..core.models.enums import EdgeType, NodeKind, ProfileSection
from ..core.models.knowledge import TrajectoryStep
from ..core.models.results import ProfileSnapshot
from ..observability.logger import get_logger
from .storage.database import Database
from .storage.graph_store import GraphStore
from .storage.knowledge_store import KnowledgeStore

logger = get_logger(__name__)

_SECTIONS = [section.value for section in ProfileSection]


def normalize_section(section: str | None) -> str | None:
    """Lower-case and validate a section name; empty means every section.

    Raises:
        InvalidInputError: If the name is not a known section
    """
    if section is None or not section.strip():
        return None
    value = section.strip().lower()
    if value not in _SECTIONS:
        raise InvalidInputError(f"unknown profile section {section!r}; choose one of {', '.join(_SECTIONS)}")
    return value


class ProfileReader:
    """Loads the person plus one or all sections."""

    def __init__(self, db: Database, vectors: VectorMemory, settings: PipelineSettings | None = None):
        self.db = db
        self.vectors = vectors
        self.settings = settings or PipelineSettings()

    async def profile(self, section: str | None = None) -> ProfileSnapshot:
        """Read the stored profile.

        Args:
            section: One of experiences, skills, projects, achievements,
                educations, certifications, domains, methodologies; None for all

        Returns:
            ProfileSnapshot with only the requested sections populated

        Raises:
            InvalidInputError: If the section name is unknown
            NotFoundError: If no master resume has been built
        """
        wanted = normalize_section(section)

        def include(name: ProfileSection) -> bool:
            return wanted is None or wanted == name.value

        with self.db.connect() as conn:
            kb = KnowledgeStore(conn)
            person_id = kb.require_person_id()
            snapshot = ProfileSnapshot(person=kb.get_person(person_id), section=wanted)

            if include(ProfileSection.EXPERIENCES):
                snapshot.experiences = kb.list_experiences(person_id)
                snapshot.stats.total_experiences = len(snapshot.experiences)
            if include(ProfileSection.SKILLS):
                snapshot.skills = kb.list_skills(person_id)
                snapshot.stats.total_skills = len(snapshot.skills)
            if include(ProfileSection.PROJECTS):
                snapshot.projects = kb.list_projects(person_id)
                snapshot.stats.total_projects = len(snapshot.projects)
            if include(ProfileSection.ACHIEVEMENTS):
                snapshot.achievements = kb.list_achievements(person_id)
            if include(ProfileSection.EDUCATIONS):
                snapshot.educations = kb.list_educations(person_id)
            if include(ProfileSection.CERTIFICATIONS):
                snapshot.certifications = kb.list_certifications(person_id)
            if include(ProfileSection.DOMAINS):
                snapshot.domains = kb.list_domains(person_id)
            if include(ProfileSection.METHODOLOGIES):
                snapshot.methodologies = kb.list_methodologies(person_id)

            if wanted is None:
                snapshot.trajectory = self._trajectory(GraphStore(conn), snapshot)

        if wanted is None:
            snapshot.stats.vectors_stored = await self._approximate_vector_count()

        snapshot.summary = self._summary(snapshot)
        logger.info("profile_loaded", person_id=person_id, section=wanted or "all")
        return snapshot

    @staticmethod
    def _trajectory(graph: GraphStore, snapshot: ProfileSnapshot) -> list[TrajectoryStep]:
        """Render EVOLVED_TO edges as role-to-role steps."""
        roles = {exp.id: f"{exp.title} at {exp.company}" for exp in snapshot.experiences or []}
        steps: list[TrajectoryStep] = []
        for edge in graph.edges(EdgeType.EVOLVED_TO):
            if edge.from_kind != NodeKind.EXPERIENCE.value or edge.to_kind != NodeKind.EXPERIENCE.value:
                continue
            if edge.from_id not in roles or edge.to_id not in roles:
                continue
            steps.append(
                TrajectoryStep(
                    from_experience_id=edge.from_id,
                    from_role=roles[edge.from_id],
                    to_experience_id=edge.to_id,
                    to_role=roles[edge.to_id],
                )
            )
        return steps

    async def _approximate_vector_count(self) -> int | None:
        """Count entries reachable by a broad probe query; the index has no exact count."""
        try:
            hits = await self.vectors.search(
                self.settings.profile_probe_query,
                top_k=self.settings.profile_probe_top_k,
                min_relativity=0.0,
            )
        except Exception as e:
            logger.warning("vector_probe_failed", error=str(e), error_type=type(e).__name__)
            return None
        return len(hits)

    @staticmethod
    def _summary(snapshot: ProfileSnapshot) -> str:
        name = snapshot.person.name or "unnamed profile"
        if snapshot.section:
            items = getattr(snapshot, snapshot.section) or []
            return f"Profile of {name}: {len(items)} {snapshot.section}."
        stats = snapshot.stats
        text = (
            f"Profile of {name}: {stats.total_experiences} experiences, {stats.total_skills} skills, "
            f"{stats.total_projects} projects"
        )
        if snapshot.trajectory:
            text += f", {len(snapshot.trajectory)} career step(s)"
        return text + "."
