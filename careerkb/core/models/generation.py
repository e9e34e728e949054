"""Schemas for tailored resume generation."""

from typing import Any

from pydantic import Field, field_validator

from .base import CareerKBModel, LLMOutputModel


class JobRequirements(LLMOutputModel):
    """Structured requirements extracted from a job description."""

    required_skills: list[str] = Field(default_factory=list)
    nice_to_have: list[str] = Field(default_factory=list)
    key_requirements: list[str] = Field(default_factory=list)
    role_title: str = Field("", description="Normalized role title")
    seniority: str = Field("", description="junior/mid/senior/lead/staff/principal")

    @property
    def all_skills(self) -> list[str]:
        """Required then nice-to-have skills, deduplicated case-insensitively."""
        seen: set[str] = set()
        ordered: list[str] = []
        for skill in [*self.required_skills, *self.nice_to_have]:
            key = skill.strip().lower()
            if key and key not in seen:
                seen.add(key)
                ordered.append(skill.strip())
        return ordered


class AssembledResume(LLMOutputModel):
    """Final assembly output."""

    resume: str = ""
    ats_score: int = Field(0, description="Estimated ATS match score 0-100")
    matched_keywords: list[str] = Field(default_factory=list)
    added_keywords: list[str] = Field(default_factory=list)
    missing_keywords: list[str] = Field(default_factory=list)

    @field_validator("ats_score", mode="before")
    @classmethod
    def _clamp_score(cls, value: Any) -> int:
        try:
            score = round(float(value))
        except (TypeError, ValueError):
            return 0
        return max(0, min(100, score))


class CompanyResearch(LLMOutputModel):
    """Company overview supplied by the research collaborator."""

    name: str = ""
    size: str = ""
    founded: str = ""
    industry: str = ""
    funding: str = ""
    tech_stack: list[str] = Field(default_factory=list)
    culture_notes: str = ""
    recent_news: list[str] = Field(default_factory=list)
    glassdoor_rating: float = 0.0
    website: str = ""
    summary: str = ""


class SelectedItems(CareerKBModel):
    """How many entities of each filtered kind went into the prompt."""

    experiences: int = 0
    projects: int = 0
    achievements: int = 0


class GenerateResult(CareerKBModel):
    """Outcome of ``generate``."""

    resume: str = ""
    ats_score: int = Field(0, ge=0, le=100)
    matched_keywords: list[str] = Field(default_factory=list)
    added_keywords: list[str] = Field(default_factory=list)
    missing_keywords: list[str] = Field(default_factory=list)
    selected_items: SelectedItems = Field(default_factory=SelectedItems)
    selected_experience_ids: list[int] = Field(default_factory=list)
    requirements: JobRequirements | None = None
    format: str = "text"
    summary: str = ""
