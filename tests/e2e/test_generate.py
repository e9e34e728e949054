"""Tailored resume generation: selection, company context, fallbacks."""

import asyncio

import pytest

from careerkb.core.errors import InvalidInputError, NotFoundError, ParseError
from careerkb.service import CareerKnowledgeBase
from careerkb.synthesis.generator import RAW_FALLBACK_SUMMARY
from careerkb.synthesis.retrieval import CandidateRetriever
from careerkb.kb.storage.knowledge_store import KnowledgeStore
from tests.conftest import FakeResearcher, ScriptedLLM, acme_enrichment, acme_extraction

GO_REQUIREMENTS = {
    "required_skills": ["Go"],
    "nice_to_have": ["Kafka"],
    "key_requirements": ["Payments experience"],
    "role_title": "Backend Engineer",
    "seniority": "senior",
}

ASSEMBLED = {
    "resume": "JANE DOE\nSenior Backend Engineer, Acme Corp",
    "ats_score": 85,
    "matched_keywords": ["Go"],
    "added_keywords": [],
    "missing_keywords": ["Kafka"],
}


def _build(career_kb):
    asyncio.run(career_kb.build("resume text"))


def test_generate_selects_matching_experience(career_kb, llm, database):
    _build(career_kb)
    llm.responses.update(requirements=GO_REQUIREMENTS, assembly=ASSEMBLED)

    result = asyncio.run(career_kb.generate("We need a senior Go engineer for payments."))

    with database.connect() as conn:
        kb = KnowledgeStore(conn)
        acme = kb.list_experiences(kb.require_person_id())[0]

    assert acme.id in result.selected_experience_ids
    assert isinstance(result.ats_score, int)
    assert 0 <= result.ats_score <= 100
    assert result.selected_items.experiences == 1
    assert result.selected_items.projects == 1
    assert result.selected_items.achievements == 1
    assert result.summary == (
        "Generated ATS resume for Backend Engineer (senior). Used 1 experiences, 1 projects, "
        "1 achievements. ATS score: 85/100. Matched 1/2 keywords."
    )

    prompt = llm.calls("assembly")[0]
    assert "• Senior Backend Engineer at Acme Corp (2020-01–Present)" in prompt
    assert "• Festival Ticketing [sub-project]" in prompt
    assert "=== ALL SKILLS ===" in prompt
    assert "Performance Tuning (inferred)" in prompt
    assert "FORMAT: text" in prompt


def test_out_of_range_score_is_clamped(career_kb, llm):
    _build(career_kb)
    llm.responses.update(requirements=GO_REQUIREMENTS, assembly={**ASSEMBLED, "ats_score": 250})
    assert asyncio.run(career_kb.generate("Go engineer")).ats_score == 100


def test_company_context_is_included(career_kb, llm, researcher):
    _build(career_kb)
    llm.responses.update(requirements=GO_REQUIREMENTS, assembly=ASSEMBLED)

    asyncio.run(career_kb.generate("Go engineer", company="Globex", output_format="markdown"))

    assert researcher.calls == ["Globex"]
    prompt = llm.calls("assembly")[0]
    assert "COMPANY CONTEXT (Globex):\nTech stack: Go\nIndustry: Logistics" in prompt
    assert "FORMAT: markdown" in prompt


def test_company_research_failure_is_best_effort(database, llm, vectors, settings):
    broken = FakeResearcher(error=RuntimeError("search engine down"))
    career_kb = CareerKnowledgeBase(database, llm, vectors, broken, settings)
    _build(career_kb)
    llm.responses.update(requirements=GO_REQUIREMENTS, assembly=ASSEMBLED)

    result = asyncio.run(career_kb.generate("Go engineer", company="Globex"))

    assert result.ats_score == 85
    assert "COMPANY CONTEXT" not in llm.calls("assembly")[0]


def test_unparseable_assembly_returns_raw_text(career_kb, llm):
    _build(career_kb)
    llm.responses.update(requirements=GO_REQUIREMENTS, assembly="JANE DOE\nBackend engineer with Go.")

    result = asyncio.run(career_kb.generate("Go engineer"))

    assert result.resume == "JANE DOE\nBackend engineer with Go."
    assert result.summary == RAW_FALLBACK_SUMMARY
    assert result.ats_score == 0
    assert result.selected_items.experiences == 1


def test_requirements_parse_failure_is_fatal(career_kb, llm):
    _build(career_kb)
    llm.responses["requirements"] = "no idea"
    with pytest.raises(ParseError):
        asyncio.run(career_kb.generate("Go engineer"))


def test_generate_without_profile_is_not_found(career_kb, llm):
    with pytest.raises(NotFoundError):
        asyncio.run(career_kb.generate("Go engineer"))
    assert llm.prompts == []


def test_empty_job_description_is_rejected(career_kb):
    with pytest.raises(InvalidInputError):
        asyncio.run(career_kb.generate("  "))


def test_retrieval_falls_back_to_all_experiences(career_kb, database, vectors, settings):
    _build(career_kb)
    with database.connect() as conn:
        person_id = KnowledgeStore(conn).require_person_id()

    retriever = CandidateRetriever(database, vectors, settings)
    pool = asyncio.run(retriever.select(person_id, ["Rust"], "Looking for a Rust wizard"))

    assert pool.matched_experience_ids == []
    assert [exp.company for exp in pool.experiences] == ["Acme Corp"]
    assert len(pool.projects) == 1
    assert len(pool.achievements) == 1
    assert len(pool.educations) == 1
    assert len(pool.methodologies) == 1


def test_implied_skill_hop_surfaces_experience(database, vectors, settings):
    extraction = acme_extraction()
    extraction["experiences"].append(
        {"title": "Platform Engineer", "company": "Globex", "skills": ["Docker"], "start_date": "2018"}
    )
    llm = ScriptedLLM({"extraction": extraction, "enrichment": acme_enrichment()})
    career_kb = CareerKnowledgeBase(database, llm, vectors, None, settings)
    _build(career_kb)

    with database.connect() as conn:
        person_id = KnowledgeStore(conn).require_person_id()
    pool = asyncio.run(CandidateRetriever(database, vectors, settings).select(person_id, ["kubernetes"], ""))

    assert [exp.company for exp in pool.experiences] == ["Globex"]
    assert len(pool.matched_experience_ids) == 1
