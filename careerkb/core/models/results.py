"""Result models for build, profile, and memory operations."""

from typing import Any

from pydantic import Field

from .base import CareerKBModel
from .knowledge import (
    AchievementRecord,
    CertificationRecord,
    DomainRecord,
    EducationRecord,
    ExperienceRecord,
    MethodologyRecord,
    PersonRecord,
    ProjectRecord,
    SkillRecord,
    TrajectoryStep,
)


class BuildResult(CareerKBModel):
    """Per-kind population counts produced by one build."""

    person_id: int = 0
    experiences: int = 0
    skills: int = 0
    projects: int = 0
    achievements: int = 0
    educations: int = 0
    certifications: int = 0
    domains: int = 0
    methodologies: int = 0
    implicit_skills: int = 0
    sub_projects: int = 0
    graph_nodes: int = 0
    graph_edges: int = 0
    vectors_stored: int = 0
    partial_failures: int = 0
    summary: str = ""

    def render_summary(self) -> str:
        """Compose the human-readable summary from the counts."""
        text = (
            f"Master resume built: {self.experiences} experiences, {self.skills} skills "
            f"({self.implicit_skills} inferred), {self.projects} projects "
            f"({self.sub_projects} sub-projects), {self.achievements} achievements, "
            f"{self.educations} educations, {self.certifications} certifications, "
            f"{self.domains} domains, {self.methodologies} methodologies. "
            f"Graph: {self.graph_nodes} nodes, {self.graph_edges} edges. "
            f"Vectors: {self.vectors_stored}."
        )
        if self.partial_failures:
            text += f" {self.partial_failures} non-fatal step(s) failed; see logs."
        return text


class ProfileStats(CareerKBModel):
    total_experiences: int = 0
    total_skills: int = 0
    total_projects: int = 0
    vectors_stored: int | None = Field(None, description="Approximate; only computed for full profiles")


class ProfileSnapshot(CareerKBModel):
    """Read-only projection of the knowledge base."""

    person: PersonRecord
    section: str | None = None
    experiences: list[ExperienceRecord] | None = None
    skills: list[SkillRecord] | None = None
    projects: list[ProjectRecord] | None = None
    achievements: list[AchievementRecord] | None = None
    educations: list[EducationRecord] | None = None
    certifications: list[CertificationRecord] | None = None
    domains: list[DomainRecord] | None = None
    methodologies: list[MethodologyRecord] | None = None
    trajectory: list[TrajectoryStep] | None = None
    stats: ProfileStats = Field(default_factory=ProfileStats)
    summary: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Dump without the sections that were not requested."""
        return self.model_dump(mode="json", exclude_none=True)


class MemorySearchItem(CareerKBModel):
    content: str
    score: float
    type: str = ""
    entity_id: int | None = None
    memory_id: str


class MemorySearchResult(CareerKBModel):
    query: str
    results: list[MemorySearchItem] = Field(default_factory=list)
    summary: str = ""


class MemoryWriteResult(CareerKBModel):
    memory_id: str
    type: str
    summary: str = ""
