"""Profile reads and direct semantic-memory operations."""

import asyncio

import pytest

from careerkb.core.errors import InvalidInputError, NotFoundError
from careerkb.service import CareerKnowledgeBase
from tests.conftest import ScriptedLLM, acme_extraction


def test_full_profile_has_stats_and_vector_estimate(career_kb):
    asyncio.run(career_kb.build("resume text"))

    snapshot = asyncio.run(career_kb.profile())

    assert snapshot.person.name == "Jane Doe"
    assert snapshot.section is None
    assert snapshot.stats.total_experiences == 1
    assert snapshot.stats.total_skills == 6
    assert snapshot.stats.total_projects == 1
    assert snapshot.stats.vectors_stored == 3
    assert [d.name for d in snapshot.domains] == ["Fintech", "Payments"]
    assert snapshot.trajectory == []
    assert snapshot.summary == "Profile of Jane Doe: 1 experiences, 6 skills, 1 projects."


def test_single_section_omits_the_rest(career_kb):
    asyncio.run(career_kb.build("resume text"))

    snapshot = asyncio.run(career_kb.profile(" Skills "))

    assert snapshot.section == "skills"
    assert len(snapshot.skills) == 6
    assert snapshot.experiences is None
    assert snapshot.stats.vectors_stored is None
    assert snapshot.summary == "Profile of Jane Doe: 6 skills."

    data = snapshot.to_dict()
    assert "skills" in data
    assert "experiences" not in data
    assert "trajectory" not in data


def test_profile_includes_career_trajectory(database, vectors, settings):
    extraction = acme_extraction()
    extraction["experiences"].insert(0, {"title": "Junior Developer", "company": "Globex", "start_date": "2016"})
    llm = ScriptedLLM(
        {"extraction": extraction, "enrichment": {"career_trajectory": [{"from": "Globex", "to": "Acme Corp"}]}}
    )
    career_kb = CareerKnowledgeBase(database, llm, vectors, None, settings)
    asyncio.run(career_kb.build("resume text"))

    snapshot = asyncio.run(career_kb.profile())

    assert len(snapshot.trajectory) == 1
    step = snapshot.trajectory[0]
    assert step.from_role == "Junior Developer at Globex"
    assert step.to_role == "Senior Backend Engineer at Acme Corp"
    assert snapshot.summary.endswith("1 career step(s).")


def test_unknown_section_is_rejected(career_kb):
    asyncio.run(career_kb.build("resume text"))
    with pytest.raises(InvalidInputError):
        asyncio.run(career_kb.profile("hobbies"))


def test_profile_before_build_is_not_found(career_kb):
    with pytest.raises(NotFoundError):
        asyncio.run(career_kb.profile())


def test_vector_probe_failure_leaves_count_unknown(career_kb, vectors, monkeypatch):
    asyncio.run(career_kb.build("resume text"))

    async def broken_search(query, top_k, min_relativity):
        raise RuntimeError("index offline")

    monkeypatch.setattr(vectors, "search", broken_search)
    assert asyncio.run(career_kb.profile()).stats.vectors_stored is None


def test_memory_add_defaults_to_note(career_kb, vectors):
    result = asyncio.run(career_kb.memory_add("Prefers remote-first teams"))

    assert result.type == "note"
    assert vectors.entries[result.memory_id] == ("Prefers remote-first teams", {"type": "note", "source": "agent"})


def test_memory_search_clamps_top_k(career_kb):
    for i in range(40):
        asyncio.run(career_kb.memory_add(f"deploy checklist item {i}"))

    assert len(asyncio.run(career_kb.memory_search("deploy")).results) == 10
    clamped = asyncio.run(career_kb.memory_search("deploy", top_k=500))
    assert len(clamped.results) == 30
    assert clamped.summary == "Found 30 matching memories."
    assert all(item.type == "note" for item in clamped.results)


def test_memory_search_requires_query(career_kb):
    with pytest.raises(InvalidInputError):
        asyncio.run(career_kb.memory_search(""))


def test_memory_update_keeps_type_and_returns_new_id(career_kb, vectors):
    added = asyncio.run(career_kb.memory_add("Become a staff engineer", "goal"))

    updated = asyncio.run(career_kb.memory_update(added.memory_id, "Become a principal engineer"))

    assert updated.memory_id != added.memory_id
    assert updated.type == "goal"
    assert added.memory_id not in vectors.entries
    assert vectors.entries[updated.memory_id] == ("Become a principal engineer", {"type": "goal", "source": "agent"})


def test_memory_update_requires_content(career_kb):
    with pytest.raises(InvalidInputError):
        asyncio.run(career_kb.memory_update("some-id", " "))
