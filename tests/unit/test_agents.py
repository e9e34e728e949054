"""Agent output parsing and lenient LM schemas."""

import asyncio

import pytest

from careerkb.core.agents.extraction import ExtractionAgent, ExtractionInput
from careerkb.core.agents.generation import AssemblyAgent, RequirementsAgent, RequirementsInput
from careerkb.core.errors import ParseError
from careerkb.core.models.extraction import ParsedExperience, SkillAdjacency
from careerkb.core.models.generation import AssembledResume, JobRequirements
from tests.conftest import ScriptedLLM


def test_fenced_output_is_accepted():
    agent = RequirementsAgent(ScriptedLLM())
    parsed = agent.parse_output('```json\n{"required_skills": ["Go"], "role_title": "Backend"}\n```')
    assert parsed.required_skills == ["Go"]
    assert parsed.role_title == "Backend"


def test_prose_around_json_is_trimmed():
    agent = RequirementsAgent(ScriptedLLM())
    parsed = agent.parse_output('Sure! Here you go: {"seniority": "senior"} Hope this helps.')
    assert parsed.seniority == "senior"


def test_contract_violation_raises_parse_error_with_snippet():
    agent = RequirementsAgent(ScriptedLLM())
    raw = "not json " * 50
    with pytest.raises(ParseError) as exc_info:
        agent.parse_output(raw)
    assert exc_info.value.stage == "requirements"
    assert exc_info.value.raw_output == raw
    assert len(exc_info.value.raw_snippet) == 203
    assert exc_info.value.raw_snippet.endswith("...")


def test_wrong_shape_is_a_parse_error():
    agent = RequirementsAgent(ScriptedLLM())
    with pytest.raises(ParseError):
        agent.parse_output('{"required_skills": {"not": "a list"}}')


def test_null_fields_fall_back_to_defaults():
    agent = RequirementsAgent(ScriptedLLM())
    parsed = agent.parse_output('{"required_skills": null, "nice_to_have": ["Rust"], "role_title": null}')
    assert parsed.required_skills == []
    assert parsed.role_title == ""


def test_execute_sends_truncated_input_and_validates():
    llm = ScriptedLLM({"extraction": {"person": {"name": "Jane"}, "experiences": []}})
    agent = ExtractionAgent(llm)

    parsed = asyncio.run(agent.execute(ExtractionInput(resume_text="Jane Doe, engineer")))

    assert parsed.person.name == "Jane"
    assert "Jane Doe, engineer" in llm.calls("extraction")[0]


def test_execute_propagates_model_errors():
    llm = ScriptedLLM({"requirements": RuntimeError("model down")})
    with pytest.raises(RuntimeError, match="model down"):
        asyncio.run(RequirementsAgent(llm).execute(RequirementsInput(job_description="Go developer")))


def test_ats_score_is_clamped_and_rounded():
    assert AssembledResume.model_validate({"ats_score": 140}).ats_score == 100
    assert AssembledResume.model_validate({"ats_score": -3}).ats_score == 0
    assert AssembledResume.model_validate({"ats_score": "87.6"}).ats_score == 88
    assert AssembledResume.model_validate({"ats_score": "high"}).ats_score == 0


def test_assembly_agent_accepts_float_score():
    parsed = AssemblyAgent(ScriptedLLM()).parse_output('{"resume": "R", "ats_score": 91.2}')
    assert parsed.ats_score == 91


def test_lenient_numbers_on_experience():
    exp = ParsedExperience.model_validate({"team_size": "12", "budget_usd": "1,500,000"})
    assert exp.team_size == 12
    assert exp.budget_usd == 1500000
    assert ParsedExperience.model_validate({"team_size": "a few"}).team_size is None


def test_adjacency_uses_from_to_keys():
    pair = SkillAdjacency.model_validate({"from": "Kubernetes", "to": "Docker"})
    assert (pair.from_skill, pair.to_skill) == ("Kubernetes", "Docker")


def test_all_skills_dedupes_case_insensitively():
    req = JobRequirements(required_skills=["Go", "PostgreSQL"], nice_to_have=["go", "Kafka"])
    assert req.all_skills == ["Go", "PostgreSQL", "Kafka"]
