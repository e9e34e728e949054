"""Build-time agents: structured extraction and the enrichment pass."""

from typing import Type

from pydantic import Field

from ..models.base import CareerKBModel
from ..models.enums import AgentType
from ..models.extraction import EnrichmentResult, ParsedResume
from .base import BaseAgent

SKILL_CATEGORIES = "programming_language, framework, database, cloud, devops, tool, methodology, soft_skill, other"


class ExtractionInput(CareerKBModel):
    """Input for the extraction agent."""

    resume_text: str = Field(..., description="Plain-text resume, already truncated")


class BuildEnrichmentInput(CareerKBModel):
    """Input for the build-time enrichment agent."""

    parsed_json: str = Field(..., description="Extraction output as JSON, already truncated")
    resume_text: str = Field(..., description="Original resume text, already truncated")


class ExtractionAgent(BaseAgent[ExtractionInput, ParsedResume]):
    """Parses a plain-text resume into the full entity schema."""

    @property
    def agent_type(self) -> AgentType:
        return AgentType.EXTRACTION

    @property
    def output_schema(self) -> Type[ParsedResume]:
        return ParsedResume

    def _build_prompt(self, input_data: ExtractionInput) -> str:
        return f"""Parse this resume into structured JSON. Extract every role, skill, project,
achievement, certification, and education entry; do not skip sections.

For each experience:
- list every skill or technology used in that role under "skills"
- name the professional domain (e.g. "Software Engineering", "Event Production")
- extract team_size and budget_usd when mentioned, otherwise null
- set is_volunteer to true for unpaid roles
- put distinct initiatives, events, products, or campaigns inside it under "sub_projects"

For achievements: keep the sentence in "text", name where it happened in "context"
(company, role, or project), and when a number is present set metric_numeric as a
float (16000 for "16K") with metric_unit ("tickets", "percent", "USD").

For skills: listed skills get is_implicit false and source "resume"; skills clearly
implied by the text get is_implicit true and source "inferred".
Skill categories: {SKILL_CATEGORIES}.
Skill levels: expert, advanced, intermediate, beginner (primary stack = expert,
mentioned once = intermediate).

Return a JSON object with exactly these keys:
{{
  "person": {{"name": "", "email": "", "phone": "", "location": "", "links": {{"linkedin": "url"}}, "summary": ""}},
  "experiences": [{{"title": "", "company": "", "location": "", "start_date": "YYYY-MM", "end_date": "YYYY-MM or Present",
    "description": "", "highlights": [], "skills": [], "domain": "", "team_size": null, "budget_usd": null,
    "is_volunteer": false, "sub_projects": [{{"name": "", "description": "", "tech": [], "highlights": []}}]}}],
  "educations": [{{"school": "", "degree": "", "field": "", "start_date": "", "end_date": "", "gpa": "", "highlights": []}}],
  "skills": [{{"name": "", "category": "", "level": "", "is_implicit": false, "source": "resume"}}],
  "projects": [{{"name": "", "description": "", "url": "", "tech": [], "highlights": []}}],
  "achievements": [{{"text": "", "metric": "", "value": "", "context": "", "metric_numeric": null, "metric_unit": ""}}],
  "certifications": [{{"name": "", "issuer": "", "year": "", "url": ""}}],
  "domains": [],
  "methodologies": [{{"name": "", "description": ""}}]
}}

RESUME:
{input_data.resume_text}

Return ONLY the JSON object."""


class BuildEnrichmentAgent(BaseAgent[BuildEnrichmentInput, EnrichmentResult]):
    """Infers what the resume implies but never states."""

    @property
    def agent_type(self) -> AgentType:
        return AgentType.BUILD_ENRICHMENT

    @property
    def output_schema(self) -> Type[EnrichmentResult]:
        return EnrichmentResult

    def _build_prompt(self, input_data: BuildEnrichmentInput) -> str:
        return f"""You are a career analyst. Using the parsed resume data and the original text,
surface what the resume implies but does not state. Do not repeat items already present
in the parsed data.

Return a JSON object with:
- "implicit_skills": [{{"name", "category", "level", "source"}}] where source names the
  experience or achievement the skill was inferred from. Categories: {SKILL_CATEGORIES}.
- "sub_projects": [{{"parent_experience", "name", "description", "tech", "highlights"}}]
  where parent_experience is the company name of the owning experience.
- "skill_adjacencies": [{{"from", "to"}}] where knowing "from" implies knowing "to".
- "career_trajectory": [{{"from", "to"}}] pairs of company names showing progression
  (same domain, more senior role later).
- "methodologies": [{{"name", "description"}}] approaches this person developed or relies on.
- "domains": ["..."] professional domains.

PARSED DATA:
{input_data.parsed_json}

ORIGINAL RESUME:
{input_data.resume_text}

Return ONLY the JSON object."""
