"""Stored knowledge-base records, as read back from the relational store."""

from datetime import datetime
from typing import Any

from pydantic import Field

from .base import CareerKBModel


class PersonRecord(CareerKBModel):
    """The single active profile owner."""

    id: int = Field(..., description="Person ID")
    name: str = Field("", description="Full name")
    email: str = Field("", description="Email address")
    phone: str = Field("", description="Phone number")
    location: str = Field("", description="Location text")
    links: dict[str, str] = Field(default_factory=dict, description="Link label -> URL")
    summary: str = Field("", description="Professional summary")
    enriched_at: datetime | None = Field(None, description="Last enrichment timestamp")
    created_at: datetime | None = Field(None, description="Creation timestamp")


class ExperienceRecord(CareerKBModel):
    """One role held by the person."""

    id: int
    person_id: int
    title: str = ""
    company: str = ""
    location: str = ""
    start_date: str = ""
    end_date: str = ""
    description: str = ""
    highlights: list[str] = Field(default_factory=list)
    team_size: int | None = None
    budget_usd: int | None = None
    domain: str = ""
    is_volunteer: bool = False


class SkillRecord(CareerKBModel):
    """A skill, unique per person by case-insensitive name."""

    id: int
    person_id: int
    name: str
    category: str = "other"
    level: str = "intermediate"
    is_implicit: bool = False
    source: str = "resume"


class ProjectRecord(CareerKBModel):
    """A standalone project or a sub-project of an experience."""

    id: int
    person_id: int
    name: str = ""
    description: str = ""
    url: str = ""
    tech: list[str] = Field(default_factory=list)
    highlights: list[str] = Field(default_factory=list)
    parent_experience_id: int | None = Field(None, description="Set for sub-projects only")

    @property
    def is_sub_project(self) -> bool:
        return self.parent_experience_id is not None


class AchievementRecord(CareerKBModel):
    """A quantified or narrative accomplishment."""

    id: int
    person_id: int
    text: str = ""
    metric: str = ""
    value: str = ""
    context: str = Field("", description="Free-text hint naming where it happened")
    metric_numeric: float | None = None
    metric_unit: str = ""


class EducationRecord(CareerKBModel):
    id: int
    person_id: int
    school: str = ""
    degree: str = ""
    field: str = ""
    start_date: str = ""
    end_date: str = ""
    gpa: str = ""
    highlights: list[str] = Field(default_factory=list)


class CertificationRecord(CareerKBModel):
    id: int
    person_id: int
    name: str = ""
    issuer: str = ""
    year: str = ""
    url: str = ""


class DomainRecord(CareerKBModel):
    id: int
    person_id: int
    name: str


class MethodologyRecord(CareerKBModel):
    id: int
    person_id: int
    name: str
    description: str = ""


class GraphNode(CareerKBModel):
    """A typed vertex keyed by (kind, entity_id)."""

    kind: str
    entity_id: int
    label: str = ""
    props: dict[str, Any] = Field(default_factory=dict)


class GraphEdge(CareerKBModel):
    """A typed, directed relationship between two graph nodes."""

    from_kind: str
    from_id: int
    edge_type: str
    to_kind: str
    to_id: int


class TrajectoryStep(CareerKBModel):
    """One EVOLVED_TO hop rendered with both roles."""

    from_experience_id: int
    from_role: str
    to_experience_id: int
    to_role: str


class MemoryHit(CareerKBModel):
    """One semantic search result."""

    memory_id: str = Field(..., description="Vector entry ID")
    text: str = Field("", description="Stored text rendering")
    score: float = Field(0.0, description="Relativity score (higher is closer)")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def memory_type(self) -> str:
        return str(self.metadata.get("type", ""))

    @property
    def entity_id(self) -> int | None:
        """Knowledge-base entity ID carried in metadata, if any."""
        raw = self.metadata.get("id")
        try:
            value = int(raw)
        except (TypeError, ValueError):
            return None
        return value or None


class KnowledgeSnapshot(CareerKBModel):
    """Everything stored for one person."""

    person: PersonRecord
    experiences: list[ExperienceRecord] = Field(default_factory=list)
    skills: list[SkillRecord] = Field(default_factory=list)
    projects: list[ProjectRecord] = Field(default_factory=list)
    achievements: list[AchievementRecord] = Field(default_factory=list)
    educations: list[EducationRecord] = Field(default_factory=list)
    certifications: list[CertificationRecord] = Field(default_factory=list)
    domains: list[DomainRecord] = Field(default_factory=list)
    methodologies: list[MethodologyRecord] = Field(default_factory=list)
