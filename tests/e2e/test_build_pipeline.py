"""Master resume build: population, rebuild isolation, degradation, atomicity."""

import asyncio

import pytest

from careerkb.core.errors import InvalidInputError, ParseError
from careerkb.core.models.enums import EdgeType, NodeKind
from careerkb.kb.builder.pipeline import MasterResumeBuilder
from careerkb.kb.storage.graph_store import GraphStore
from careerkb.kb.storage.knowledge_store import KnowledgeStore
from tests.conftest import ACME_RESUME_TEXT, ScriptedLLM, acme_enrichment, acme_extraction


def _build(database, llm, vectors, resume_text=ACME_RESUME_TEXT):
    return asyncio.run(MasterResumeBuilder(database, llm, vectors).build(resume_text))


def test_build_populates_entities_graph_and_vectors(database, llm, vectors):
    result = _build(database, llm, vectors)

    assert result.experiences == 1
    assert result.skills >= 1
    assert result.graph_nodes >= 2
    assert result.graph_edges >= 1
    assert result.projects == 1
    assert result.sub_projects == 1
    assert result.achievements == 1
    assert result.educations == 1
    assert result.domains == 2
    assert result.methodologies == 1
    assert result.vectors_stored == 3
    assert result.partial_failures == 0
    assert "1 experiences" in result.summary

    with database.connect() as conn:
        kb = KnowledgeStore(conn)
        graph = GraphStore(conn)
        person_id = kb.require_person_id()
        person = kb.get_person(person_id)
        assert person.name == "Jane Doe"
        assert person.enriched_at is not None

        exp = kb.list_experiences(person_id)[0]
        assert exp.team_size == 6
        assert graph.ids_using_skill(NodeKind.EXPERIENCE, "go") == [exp.id]

        achv = kb.list_achievements(person_id)[0]
        assert graph.targets(NodeKind.EXPERIENCE, exp.id, EdgeType.PRODUCED, NodeKind.ACHIEVEMENT) == [achv.id]

        sub = kb.list_projects(person_id)[0]
        assert sub.parent_experience_id == exp.id
        assert graph.sources(NodeKind.EXPERIENCE, exp.id, EdgeType.PART_OF, NodeKind.PROJECT) == [sub.id]

        method = kb.list_methodologies(person_id)[0]
        assert method.description == "Iterative delivery"
        assert graph.targets(NodeKind.EXPERIENCE, exp.id, EdgeType.USED_METHOD, NodeKind.METHODOLOGY) == [method.id]


def test_enrichment_adds_inferred_skills_and_links(database, llm, vectors):
    result = _build(database, llm, vectors)
    assert result.implicit_skills == 1

    with database.connect() as conn:
        kb = KnowledgeStore(conn)
        graph = GraphStore(conn)
        person_id = kb.require_person_id()

        tuning = kb.find_skill(person_id, "performance tuning")
        assert tuning.is_implicit and tuning.source == "inferred"
        achv = kb.list_achievements(person_id)[0]
        assert graph.targets(NodeKind.ACHIEVEMENT, achv.id, EdgeType.DERIVED_SKILL, NodeKind.SKILL) == [tuning.id]

        docker = kb.find_skill(person_id, "Docker")
        kubernetes = kb.find_skill(person_id, "Kubernetes")
        assert graph.targets(NodeKind.SKILL, kubernetes.id, EdgeType.IMPLIES_SKILL, NodeKind.SKILL) == [docker.id]
        assert docker.is_implicit
        assert not kubernetes.is_implicit


def test_rebuild_replaces_previous_knowledge(database, llm, vectors):
    _build(database, llm, vectors)

    second = acme_extraction()
    second["person"]["name"] = "Jane Q. Doe"
    second["experiences"][0]["company"] = "Globex"
    second["experiences"][0]["sub_projects"] = []
    second["achievements"] = []
    rebuilt_llm = ScriptedLLM({"extraction": second, "enrichment": {}})
    result = _build(database, rebuilt_llm, vectors)

    assert result.experiences == 1
    with database.connect() as conn:
        kb = KnowledgeStore(conn)
        graph = GraphStore(conn)
        person_id = kb.require_person_id()
        assert kb.get_person(person_id).name == "Jane Q. Doe"
        assert [exp.company for exp in kb.list_experiences(person_id)] == ["Globex"]
        assert kb.list_achievements(person_id) == []
        assert graph.count_nodes() == result.graph_nodes

    texts = [text for text, _ in vectors.entries.values()]
    assert len(texts) == result.vectors_stored
    assert not any("Acme" in text for text in texts)
    assert vectors.clears == 2


def test_failed_enrichment_degrades_gracefully(database, vectors):
    llm = ScriptedLLM({"extraction": acme_extraction(), "enrichment": "this is not json"})
    result = _build(database, llm, vectors)

    assert result.implicit_skills == 0
    assert result.partial_failures == 1
    assert result.experiences == 1
    assert result.skills == 4
    assert result.domains == 1
    assert result.methodologies == 1


def test_resume_flagged_implicit_skills_are_not_counted_as_inferred(database, vectors):
    extraction = acme_extraction()
    extraction["skills"].append({"name": "Mentoring", "category": "soft_skill", "is_implicit": True})
    llm = ScriptedLLM({"extraction": extraction, "enrichment": TimeoutError("slow model")})

    result = _build(database, llm, vectors)

    assert result.implicit_skills == 0
    assert result.partial_failures == 1
    assert result.skills == 5
    with database.connect() as conn:
        kb = KnowledgeStore(conn)
        assert kb.find_skill(kb.require_person_id(), "mentoring").is_implicit


def test_enrichment_transport_error_is_also_non_fatal(database, vectors):
    llm = ScriptedLLM({"extraction": acme_extraction(), "enrichment": TimeoutError("slow model")})
    result = _build(database, llm, vectors)
    assert result.implicit_skills == 0
    assert result.experiences == 1


def test_extraction_failure_aborts_and_keeps_previous_state(database, llm, vectors):
    _build(database, llm, vectors)
    before = dict(vectors.entries)

    broken = ScriptedLLM({"extraction": "<html>rate limited</html>"})
    with pytest.raises(ParseError) as exc_info:
        _build(database, broken, vectors)
    assert exc_info.value.stage == "extraction"

    assert vectors.entries == before
    with database.connect() as conn:
        kb = KnowledgeStore(conn)
        assert kb.list_experiences(kb.require_person_id())[0].company == "Acme Corp"


def test_crash_during_write_rolls_back_everything(database, llm, vectors, monkeypatch):
    _build(database, llm, vectors)
    before = dict(vectors.entries)

    def explode(self, person_id):
        raise RuntimeError("process killed")

    monkeypatch.setattr(KnowledgeStore, "mark_person_enriched", explode)
    changed = acme_extraction()
    changed["experiences"][0]["company"] = "Initech"
    with pytest.raises(RuntimeError):
        _build(database, ScriptedLLM({"extraction": changed, "enrichment": acme_enrichment()}), vectors)

    with database.connect() as conn:
        kb = KnowledgeStore(conn)
        person_id = kb.require_person_id()
        assert kb.list_experiences(person_id)[0].company == "Acme Corp"
        assert GraphStore(conn).count_nodes() > 0
    assert vectors.entries == before


def test_unresolvable_references_are_counted_not_fatal(database, vectors):
    enrichment = {
        "sub_projects": [{"parent_experience": "Umbrella", "name": "Orphan project"}],
        "skill_adjacencies": [{"from": "COBOL", "to": "JCL"}],
        "career_trajectory": [{"from": "Acme", "to": "Nowhere"}],
    }
    llm = ScriptedLLM({"extraction": acme_extraction(), "enrichment": enrichment})
    result = _build(database, llm, vectors)

    assert result.partial_failures == 3
    assert result.projects == 2
    assert result.sub_projects == 1
    with database.connect() as conn:
        kb = KnowledgeStore(conn)
        assert kb.find_skill(kb.require_person_id(), "JCL") is None


def test_career_trajectory_links_experiences(database, vectors):
    extraction = acme_extraction()
    extraction["experiences"].insert(
        0, {"title": "Junior Developer", "company": "Globex", "start_date": "2016", "end_date": "2019"}
    )
    enrichment = {"career_trajectory": [{"from": "globex", "to": "acme"}]}
    _build(database, ScriptedLLM({"extraction": extraction, "enrichment": enrichment}), vectors)

    with database.connect() as conn:
        kb = KnowledgeStore(conn)
        graph = GraphStore(conn)
        globex, acme = kb.list_experiences(kb.require_person_id())
        assert graph.targets(NodeKind.EXPERIENCE, globex.id, EdgeType.EVOLVED_TO, NodeKind.EXPERIENCE) == [acme.id]


def test_vector_failures_do_not_fail_the_build(database, llm, vectors):
    vectors.fail_adds = True
    result = _build(database, llm, vectors)
    assert result.vectors_stored == 0
    assert result.partial_failures == 3
    assert result.experiences == 1


def test_empty_resume_is_rejected(database, llm, vectors):
    with pytest.raises(InvalidInputError):
        _build(database, llm, vectors, resume_text="   ")
    assert llm.prompts == []


def test_long_resume_is_truncated_before_extraction(database, llm, vectors):
    _build(database, llm, vectors, resume_text="x" * 20000)
    prompt = llm.calls("extraction")[0]
    assert "x" * 12000 in prompt
    assert "x" * 12001 not in prompt


def test_failed_vector_clear_skips_the_refresh(database, llm, vectors):
    _build(database, llm, vectors)
    before = dict(vectors.entries)

    vectors.fail_clears = True
    result = _build(database, llm, vectors)

    assert result.vectors_stored == 0
    assert result.partial_failures == 1
    assert "non-fatal step(s) failed" in result.summary
    assert vectors.entries == before
    assert result.experiences == 1
