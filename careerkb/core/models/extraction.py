"""Schemas for the two build-time language-model passes (extraction and enrichment)."""

from typing import Any

from pydantic import Field, field_validator

from .base import LLMOutputModel


def _optional_int(value: Any) -> int | None:
    """Accept ints and numeric strings; anything else becomes None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    try:
        return int(float(str(value).replace(",", "").strip()))
    except ValueError:
        return None


def _optional_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).replace(",", "").strip())
    except ValueError:
        return None


# =============================================================================
# Extraction pass
# =============================================================================


class ParsedPerson(LLMOutputModel):
    """Contact block of the resume."""

    name: str = Field("", description="Full name")
    email: str = Field("", description="Email address")
    phone: str = Field("", description="Phone number")
    location: str = Field("", description="Location")
    links: dict[str, str] = Field(default_factory=dict, description="e.g. linkedin/github -> URL")
    summary: str = Field("", description="Professional summary if present")


class ParsedSubProject(LLMOutputModel):
    """An initiative, event or product nested inside one experience."""

    name: str = Field("", description="Sub-project name")
    description: str = Field("", description="What it was")
    tech: list[str] = Field(default_factory=list, description="Technologies used")
    highlights: list[str] = Field(default_factory=list, description="Key results")


class ParsedExperience(LLMOutputModel):
    """One role."""

    title: str = Field("", description="Job title")
    company: str = Field("", description="Company name")
    location: str = Field("", description="Location")
    start_date: str = Field("", description="YYYY-MM or YYYY")
    end_date: str = Field("", description="YYYY-MM or Present")
    description: str = Field("", description="Brief role description")
    highlights: list[str] = Field(default_factory=list, description="Bullet points")
    skills: list[str] = Field(default_factory=list, description="Skills used in this role")
    domain: str = Field("", description="Professional domain of the role")
    team_size: int | None = Field(None, description="Team size if mentioned")
    budget_usd: int | None = Field(None, description="Budget in USD if mentioned")
    is_volunteer: bool = Field(False, description="Unpaid/volunteer role")
    sub_projects: list[ParsedSubProject] = Field(default_factory=list, description="Nested initiatives")

    @field_validator("team_size", "budget_usd", mode="before")
    @classmethod
    def _lenient_int(cls, value: Any) -> int | None:
        return _optional_int(value)


class ParsedEducation(LLMOutputModel):
    school: str = ""
    degree: str = ""
    field: str = ""
    start_date: str = ""
    end_date: str = ""
    gpa: str = ""
    highlights: list[str] = Field(default_factory=list)


class ParsedSkill(LLMOutputModel):
    """A skill as emitted by the model; category/level are normalized on write."""

    name: str = Field("", description="Skill name")
    category: str = Field("other", description="Skill category tag")
    level: str = Field("intermediate", description="expert/advanced/intermediate/beginner")
    is_implicit: bool = Field(False, description="Inferred rather than listed")
    source: str = Field("", description="resume or inferred")


class ParsedProject(LLMOutputModel):
    name: str = ""
    description: str = ""
    url: str = ""
    tech: list[str] = Field(default_factory=list)
    highlights: list[str] = Field(default_factory=list)


class ParsedAchievement(LLMOutputModel):
    text: str = Field("", description="Achievement sentence")
    metric: str = Field("", description="Metric label")
    value: str = Field("", description="Metric value as written")
    context: str = Field("", description="Company, role or project it belongs to")
    metric_numeric: float | None = Field(None, description="Numeric metric (16000 for '16K')")
    metric_unit: str = Field("", description="Unit for metric_numeric")

    @field_validator("metric_numeric", mode="before")
    @classmethod
    def _lenient_float(cls, value: Any) -> float | None:
        return _optional_float(value)


class ParsedCertification(LLMOutputModel):
    name: str = ""
    issuer: str = ""
    year: str = ""
    url: str = ""


class ParsedMethodology(LLMOutputModel):
    name: str = Field("", description="Methodology name")
    description: str = Field("", description="Brief description")


class ParsedResume(LLMOutputModel):
    """Full output of the extraction pass."""

    person: ParsedPerson = Field(default_factory=ParsedPerson)
    experiences: list[ParsedExperience] = Field(default_factory=list)
    educations: list[ParsedEducation] = Field(default_factory=list)
    skills: list[ParsedSkill] = Field(default_factory=list)
    projects: list[ParsedProject] = Field(default_factory=list)
    achievements: list[ParsedAchievement] = Field(default_factory=list)
    certifications: list[ParsedCertification] = Field(default_factory=list)
    domains: list[str] = Field(default_factory=list)
    methodologies: list[ParsedMethodology] = Field(default_factory=list)


# =============================================================================
# Enrichment pass
# =============================================================================


class ImplicitSkill(LLMOutputModel):
    name: str = ""
    category: str = "other"
    level: str = "intermediate"
    source: str = Field("", description="Experience or achievement it was inferred from")


class EnrichmentSubProject(LLMOutputModel):
    parent_experience: str = Field("", description="Company name hint for the parent experience")
    name: str = ""
    description: str = ""
    tech: list[str] = Field(default_factory=list)
    highlights: list[str] = Field(default_factory=list)


class SkillAdjacency(LLMOutputModel):
    """Knowing ``from_skill`` implies ``to_skill``."""

    from_skill: str = Field("", alias="from")
    to_skill: str = Field("", alias="to")


class TrajectoryPair(LLMOutputModel):
    """Career evolution from an earlier company to a later one."""

    from_company: str = Field("", alias="from")
    to_company: str = Field("", alias="to")


class EnrichmentResult(LLMOutputModel):
    """Full output of the enrichment pass; empty when the pass fails."""

    implicit_skills: list[ImplicitSkill] = Field(default_factory=list)
    sub_projects: list[EnrichmentSubProject] = Field(default_factory=list)
    skill_adjacencies: list[SkillAdjacency] = Field(default_factory=list)
    career_trajectory: list[TrajectoryPair] = Field(default_factory=list)
    methodologies: list[ParsedMethodology] = Field(default_factory=list)
    domains: list[str] = Field(default_factory=list)
