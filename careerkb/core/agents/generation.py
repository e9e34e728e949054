"""Generation agents: job-description requirements and final resume assembly."""

from typing import Type

from pydantic import Field

from ..models.base import CareerKBModel
from ..models.enums import AgentType
from ..models.generation import AssembledResume, JobRequirements
from .base import BaseAgent


class RequirementsInput(CareerKBModel):
    job_description: str = Field(..., description="Job description, already truncated")


class AssemblyInput(CareerKBModel):
    """Everything the assembler sees."""

    requirements: JobRequirements
    candidate_data: str = Field(..., description="Rendered candidate data block")
    company_context: str = Field("", description="Rendered company research, may be empty")
    output_format: str = Field("text", description="Requested output format (text, markdown, ...)")


class RequirementsAgent(BaseAgent[RequirementsInput, JobRequirements]):
    """Extracts structured requirements from a job description."""

    @property
    def agent_type(self) -> AgentType:
        return AgentType.REQUIREMENTS

    @property
    def output_schema(self) -> Type[JobRequirements]:
        return JobRequirements

    def _build_prompt(self, input_data: RequirementsInput) -> str:
        return f"""Read the job description and extract its requirements.

Return a JSON object with exactly these keys:
{{
  "required_skills": ["skill"],
  "nice_to_have": ["skill"],
  "key_requirements": ["requirement"],
  "role_title": "normalized role title",
  "seniority": "junior/mid/senior/lead/staff/principal"
}}

Skills should be short canonical names ("Go", "Kubernetes"), one per entry.

JOB DESCRIPTION:
{input_data.job_description}

Return ONLY the JSON object."""


class AssemblyAgent(BaseAgent[AssemblyInput, AssembledResume]):
    """Writes the tailored, ATS-friendly resume."""

    @property
    def agent_type(self) -> AgentType:
        return AgentType.ASSEMBLY

    @property
    def output_schema(self) -> Type[AssembledResume]:
        return AssembledResume

    def _build_prompt(self, input_data: AssemblyInput) -> str:
        req = input_data.requirements
        company_block = f"{input_data.company_context}\n\n" if input_data.company_context else ""
        return f"""You are an ATS resume writer. Write a resume tailored to the target role using
only the candidate data below.

TARGET ROLE: {req.role_title} ({req.seniority} level)
REQUIRED SKILLS: {", ".join(req.required_skills)}
NICE-TO-HAVE SKILLS: {", ".join(req.nice_to_have)}
KEY REQUIREMENTS: {"; ".join(req.key_requirements)}

CANDIDATE DATA:
{input_data.candidate_data}

{company_block}GUIDELINES:
- Plain ATS-friendly layout: no tables, columns, or graphics
- Open with a professional summary aimed at this role
- Experiences in reverse chronological order, most relevant first within each
- Result-oriented bullet points with numbers wherever the data has them
- Work every required keyword in where the data supports it; never invent experience
- Close with a skills section grouped by category
- One to two pages

FORMAT: {input_data.output_format}

Return a JSON object with exactly these keys:
{{
  "resume": "complete resume text",
  "ats_score": 0,
  "matched_keywords": [],
  "added_keywords": [],
  "missing_keywords": []
}}
ats_score is your estimated ATS match from 0 to 100.

Return ONLY the JSON object."""
