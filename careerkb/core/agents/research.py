"""Company research agent."""

from typing import Type

from pydantic import Field

from ..models.base import CareerKBModel
from ..models.enums import AgentType
from ..models.generation import CompanyResearch
from .base import BaseAgent


class CompanyResearchInput(CareerKBModel):
    company_name: str = Field(..., min_length=1)


class CompanyResearchAgent(BaseAgent[CompanyResearchInput, CompanyResearch]):
    """Summarizes what the model knows about a prospective employer."""

    @property
    def agent_type(self) -> AgentType:
        return AgentType.COMPANY_RESEARCH

    @property
    def output_schema(self) -> Type[CompanyResearch]:
        return CompanyResearch

    def _build_prompt(self, input_data: CompanyResearchInput) -> str:
        return f"""You are a company research analyst. Give a job seeker an overview of this company.
Leave fields empty rather than guessing.

Company: {input_data.company_name}

Return a JSON object with exactly these keys:
{{
  "name": "official company name",
  "size": "employee range, e.g. 1000-5000",
  "founded": "year",
  "industry": "primary industry",
  "funding": "stage and amount, or public listing",
  "tech_stack": ["technology"],
  "culture_notes": "2-3 sentences on culture, values, remote policy",
  "recent_news": ["up to 3 notable events"],
  "glassdoor_rating": 0.0,
  "website": "url",
  "summary": "3-4 sentence overview"
}}

Return ONLY the JSON object."""
