"""Shared fixtures: scripted language model, in-process vector memory, in-memory database."""

import json
import uuid
from typing import Any

import pytest

from careerkb.core.config.settings import PipelineSettings
from careerkb.core.models.generation import CompanyResearch
from careerkb.core.models.knowledge import MemoryHit
from careerkb.kb.storage.database import Database
from careerkb.service import CareerKnowledgeBase

# Distinctive phrases from each agent prompt, checked in this order
PROMPT_MARKERS = {
    "extraction": "Parse this resume into structured JSON",
    "enrichment": "surface what the resume implies",
    "questions": "Ask the questions",
    "directives": "decide which updates to make",
    "requirements": "extract its requirements",
    "assembly": "ATS resume writer",
    "research": "company research analyst",
}


class ScriptedLLM:
    """Language model fake that answers by prompt kind and records every prompt."""

    def __init__(self, responses: dict[str, Any] | None = None):
        self.responses: dict[str, Any] = dict(responses or {})
        self.prompts: list[tuple[str, str]] = []

    def kind_of(self, prompt: str) -> str:
        for kind, marker in PROMPT_MARKERS.items():
            if marker in prompt:
                return kind
        return "unknown"

    def calls(self, kind: str) -> list[str]:
        return [prompt for prompt_kind, prompt in self.prompts if prompt_kind == kind]

    async def complete(self, prompt: str) -> str:
        kind = self.kind_of(prompt)
        self.prompts.append((kind, prompt))
        response = self.responses.get(kind, "{}")
        if isinstance(response, Exception):
            raise response
        if isinstance(response, (dict, list)):
            return json.dumps(response)
        return response


class InMemoryVectorMemory:
    """Keyword-overlap stand-in for the semantic index."""

    def __init__(self):
        self.entries: dict[str, tuple[str, dict[str, Any]]] = {}
        self.fail_adds = False
        self.fail_clears = False
        self.clears = 0

    @staticmethod
    def _tokens(text: str) -> set[str]:
        return {token.strip(".,:;()[]|").lower() for token in text.split() if token.strip(".,:;()[]|")}

    async def add(self, text: str, metadata: dict[str, Any]) -> str:
        if self.fail_adds:
            raise RuntimeError("vector store unavailable")
        memory_id = str(uuid.uuid4())
        self.entries[memory_id] = (text, dict(metadata))
        return memory_id

    async def search(self, query: str, top_k: int, min_relativity: float) -> list[MemoryHit]:
        query_tokens = self._tokens(query)
        hits = []
        for memory_id, (text, metadata) in self.entries.items():
            overlap = len(query_tokens & self._tokens(text))
            score = overlap / len(query_tokens) if query_tokens else 0.0
            if score >= min_relativity:
                hits.append(MemoryHit(memory_id=memory_id, text=text, score=score, metadata=metadata))
        hits.sort(key=lambda hit: hit.score, reverse=True)
        return hits[:top_k]

    async def delete(self, memory_ids: list[str]) -> None:
        for memory_id in memory_ids:
            self.entries.pop(memory_id, None)

    async def clear(self) -> None:
        if self.fail_clears:
            raise RuntimeError("vector store unavailable")
        self.clears += 1
        self.entries.clear()


class FakeResearcher:
    def __init__(self, result: CompanyResearch | None = None, error: Exception | None = None):
        self.result = result or CompanyResearch()
        self.error = error
        self.calls: list[str] = []

    async def research(self, company_name: str) -> CompanyResearch:
        self.calls.append(company_name)
        if self.error is not None:
            raise self.error
        return self.result


ACME_RESUME_TEXT = """Jane Doe
jane@example.com | Berlin

EXPERIENCE
Senior Backend Engineer, Acme Corp (2020-01 - Present)
Built payment APIs in Go and PostgreSQL; ran the team's Scrum ceremonies.
- Cut p99 latency by 40%
- Launched the Festival Ticketing platform, selling 16K tickets

SKILLS
Go, PostgreSQL, Kubernetes
"""


def acme_extraction() -> dict[str, Any]:
    return {
        "person": {"name": "Jane Doe", "email": "jane@example.com", "location": "Berlin", "links": {}},
        "experiences": [
            {
                "title": "Senior Backend Engineer",
                "company": "Acme Corp",
                "start_date": "2020-01",
                "end_date": "Present",
                "description": "Built payment APIs in Go and PostgreSQL; ran the team's Scrum ceremonies.",
                "highlights": ["Cut p99 latency by 40%"],
                "skills": ["Go", "PostgreSQL"],
                "domain": "Fintech",
                "team_size": "6",
                "budget_usd": None,
                "is_volunteer": False,
                "sub_projects": [
                    {
                        "name": "Festival Ticketing",
                        "description": "Ticket sales platform",
                        "tech": ["Go", "Redis"],
                        "highlights": ["Sold 16K tickets"],
                    }
                ],
            }
        ],
        "educations": [{"school": "TU Berlin", "degree": "BSc", "field": "Computer Science"}],
        "skills": [
            {"name": "Go", "category": "programming_language", "level": "expert"},
            {"name": "PostgreSQL", "category": "database", "level": "advanced"},
            {"name": "Kubernetes", "category": "devops", "level": "intermediate"},
        ],
        "projects": [],
        "achievements": [
            {
                "text": "Cut p99 latency by 40%",
                "metric": "latency",
                "value": "40%",
                "context": "Acme Corp",
                "metric_numeric": 40,
                "metric_unit": "percent",
            }
        ],
        "certifications": [],
        "domains": ["Fintech"],
        "methodologies": [{"name": "Scrum", "description": "Iterative delivery"}],
    }


def acme_enrichment() -> dict[str, Any]:
    return {
        "implicit_skills": [
            {"name": "Performance Tuning", "category": "other", "level": "advanced", "source": "p99 latency"}
        ],
        "sub_projects": [],
        "skill_adjacencies": [{"from": "Kubernetes", "to": "Docker"}],
        "career_trajectory": [],
        "methodologies": [{"name": "Scrum", "description": "ignored, already present"}],
        "domains": ["Payments"],
    }


@pytest.fixture
def settings() -> PipelineSettings:
    return PipelineSettings()


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.create_schema()
    yield db
    db.dispose()


@pytest.fixture
def vectors() -> InMemoryVectorMemory:
    return InMemoryVectorMemory()


@pytest.fixture
def llm() -> ScriptedLLM:
    return ScriptedLLM({"extraction": acme_extraction(), "enrichment": acme_enrichment()})


@pytest.fixture
def researcher() -> FakeResearcher:
    return FakeResearcher(CompanyResearch(name="Globex", tech_stack=["Go"], industry="Logistics"))


@pytest.fixture
def career_kb(database, llm, vectors, researcher, settings) -> CareerKnowledgeBase:
    return CareerKnowledgeBase(database, llm, vectors, researcher, settings)
