"""Schemas for the post-build enrichment dialogue."""

from typing import Any, Literal

from pydantic import Field, field_validator

from .base import CareerKBModel, LLMOutputModel
from .extraction import _optional_float


class EnrichQuestion(LLMOutputModel):
    """A gap-filling question put to the operator."""

    id: str = Field("", description="Question identifier (q1, q2, ...)")
    category: str = Field("role_detail", description="missing_metric/hidden_skill/role_detail/project_detail")
    question: str = Field("", description="Question text")
    context: str = Field("", description="Entity the question is about")


class QuestionSet(LLMOutputModel):
    questions: list[EnrichQuestion] = Field(default_factory=list)


class AnswerPair(CareerKBModel):
    """Operator answer to one question."""

    question_id: str = Field(..., description="ID of the answered question")
    answer: str = Field(..., description="Free-text answer")


class DirectiveSet(LLMOutputModel):
    """Raw directive list; each item is validated on its own so one bad item is skipped."""

    updates: list[dict[str, Any]] = Field(default_factory=list)


class Directive(LLMOutputModel):
    """One typed update directive.

    A single flat shape covers every directive type; fields irrelevant to
    ``type`` are ignored when the directive is applied.
    """

    type: str = Field(..., description="add_skill/update_achievement/add_project/add_methodology/add_domain")
    name: str = ""
    category: str = "other"
    level: str = "intermediate"
    description: str = ""
    achievement_text: str = Field("", description="Text used to find the achievement to update")
    new_text: str = ""
    metric_numeric: float | None = None
    metric_unit: str = ""
    parent_experience: str = Field("", description="Company hint for the new project's parent")
    tech: list[str] = Field(default_factory=list)
    highlights: list[str] = Field(default_factory=list)

    @field_validator("metric_numeric", mode="before")
    @classmethod
    def _lenient_float(cls, value: Any) -> float | None:
        return _optional_float(value)


class EnrichStartResult(CareerKBModel):
    status: Literal["questions"] = "questions"
    questions: list[EnrichQuestion] = Field(default_factory=list)
    summary: str = ""


class EnrichAnswerResult(CareerKBModel):
    status: Literal["complete"] = "complete"
    applied: int = Field(0, ge=0, description="Directives successfully applied")
    skipped: int = Field(0, ge=0, description="Directives skipped as unknown or unresolvable")
    summary: str = ""
