"""Enrichment dialogue agents: gap-finding questions and answer-to-directive translation."""

from typing import Type

from pydantic import Field

from ..models.base import CareerKBModel
from ..models.dialogue import AnswerPair, DirectiveSet, QuestionSet
from ..models.enums import AgentType
from .base import BaseAgent


class QuestionInput(CareerKBModel):
    knowledge_dump: str = Field(..., description="Rendered knowledge base, already truncated")


class DirectiveInput(CareerKBModel):
    knowledge_dump: str = Field(..., description="Rendered knowledge base, already truncated")
    answers: list[AnswerPair] = Field(..., min_length=1)


def format_answers(answers: list[AnswerPair]) -> str:
    return "\n".join(f"Question {pair.question_id}: {pair.answer}" for pair in answers)


class QuestionAgent(BaseAgent[QuestionInput, QuestionSet]):
    """Asks the operator for the details that would strengthen the knowledge base."""

    @property
    def agent_type(self) -> AgentType:
        return AgentType.ENRICH_QUESTIONS

    @property
    def output_schema(self) -> Type[QuestionSet]:
        return QuestionSet

    def _build_prompt(self, input_data: QuestionInput) -> str:
        return f"""You are a career coach reviewing a resume knowledge base. Ask the questions
whose answers would add the most value for ATS matching.

CURRENT RESUME DATA:
{input_data.knowledge_dump}

Generate 5 to 10 questions. Each has a category:
- "missing_metric": an achievement or role without numbers that could be quantified
- "hidden_skill": a role that probably involved skills not captured yet
- "role_detail": a role whose description is vague
- "project_detail": a project that needs outcomes or technologies

Return a JSON object:
{{"questions": [{{"id": "q1", "category": "missing_metric", "question": "...", "context": "Experience: Title at Company"}}]}}

Skip trivial questions. Return ONLY the JSON object."""


class DirectiveAgent(BaseAgent[DirectiveInput, DirectiveSet]):
    """Turns operator answers into typed knowledge-base update directives."""

    @property
    def agent_type(self) -> AgentType:
        return AgentType.ENRICH_DIRECTIVES

    @property
    def output_schema(self) -> Type[DirectiveSet]:
        return DirectiveSet

    def _build_prompt(self, input_data: DirectiveInput) -> str:
        return f"""You maintain a resume knowledge base. Given the current data and the operator's
answers, decide which updates to make.

CURRENT RESUME DATA:
{input_data.knowledge_dump}

QUESTIONS AND ANSWERS:
{format_answers(input_data.answers)}

Return a JSON object {{"updates": [...]}} where each update is one of:
{{"type": "add_skill", "name": "", "category": "", "level": ""}}
{{"type": "update_achievement", "achievement_text": "text of the achievement to change",
  "new_text": "", "metric_numeric": null, "metric_unit": ""}}
{{"type": "add_project", "parent_experience": "company name or empty", "name": "", "description": "",
  "tech": [], "highlights": []}}
{{"type": "add_methodology", "name": "", "description": ""}}
{{"type": "add_domain", "name": ""}}

Only include updates the answers clearly support; never fabricate.
Return ONLY the JSON object."""
