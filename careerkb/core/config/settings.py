"""Typed view over the ``pipeline`` section of the loaded configuration."""

from typing import Any

from pydantic import Field

from ..models.base import CareerKBModel


class PipelineSettings(CareerKBModel):
    """Truncation limits and retrieval thresholds used across the pipelines."""

    max_resume_chars: int = Field(12000, gt=0, description="Resume text sent to extraction")
    enrichment_parsed_chars: int = Field(8000, gt=0, description="Parsed JSON sent to enrichment")
    enrichment_resume_chars: int = Field(6000, gt=0, description="Resume text sent to enrichment")
    dialogue_start_chars: int = Field(8000, gt=0, description="Knowledge dump for question generation")
    dialogue_answer_chars: int = Field(6000, gt=0, description="Knowledge dump for directive generation")
    max_job_description_chars: int = Field(3000, gt=0, description="Job description sent to requirements")
    retrieval_top_k: int = Field(15, gt=0, description="Vector hits merged into retrieval")
    retrieval_min_relativity: float = Field(0.6, ge=0.0, le=1.0)
    profile_probe_query: str = Field("resume experience project skill achievement")
    profile_probe_top_k: int = Field(100, gt=0)
    memory_search_top_k: int = Field(10, gt=0)
    memory_search_max_top_k: int = Field(30, gt=0)
    memory_min_relativity: float = Field(0.5, ge=0.0, le=1.0)

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "PipelineSettings":
        return cls.model_validate(config.get("pipeline", {}) or {})
