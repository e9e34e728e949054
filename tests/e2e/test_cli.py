"""Command-line surface over a scripted knowledge base."""

import json

import pytest
from typer.testing import CliRunner

from careerkb.cli.main import app
from careerkb.core.errors import ConfigurationError
from careerkb.service import CareerKnowledgeBase
from tests.conftest import ACME_RESUME_TEXT

runner = CliRunner()


@pytest.fixture
def cli_kb(career_kb, monkeypatch):
    monkeypatch.setattr(CareerKnowledgeBase, "from_config", classmethod(lambda cls, overrides=None: career_kb))
    # Keep the in-memory database alive across commands
    monkeypatch.setattr(career_kb, "close", lambda: None)
    return career_kb


def test_build_then_profile(cli_kb, tmp_path):
    resume = tmp_path / "resume.txt"
    resume.write_text(ACME_RESUME_TEXT, encoding="utf-8")
    output = tmp_path / "out" / "build.json"

    result = runner.invoke(app, ["build", "--resume", str(resume), "--output", str(output)])
    assert result.exit_code == 0, result.output
    assert json.loads(output.read_text(encoding="utf-8"))["experiences"] == 1

    result = runner.invoke(app, ["profile", "--section", "domains"])
    assert result.exit_code == 0, result.output
    assert "Payments" in result.output


def test_profile_before_build_exits_with_error(cli_kb):
    result = runner.invoke(app, ["profile"])
    assert result.exit_code == 1
    assert "Error" in result.output


def test_enrich_answer_reads_answers_file(cli_kb, llm, tmp_path):
    runner.invoke(app, ["build", "--resume", str(_resume(tmp_path))])
    llm.responses["directives"] = {"updates": [{"type": "add_domain", "name": "Risk"}]}
    answers = tmp_path / "answers.json"
    answers.write_text(json.dumps({"answers": [{"question_id": "q1", "answer": "risk models"}]}), encoding="utf-8")

    result = runner.invoke(app, ["enrich-answer", "--file", str(answers), "--answer", "q2=also fraud"])

    assert result.exit_code == 0, result.output
    assert "Applied 1 enrichments from 2 answers." in result.output


def test_enrich_answer_rejects_malformed_pair(cli_kb):
    result = runner.invoke(app, ["enrich-answer", "--answer", "no separator"])
    assert result.exit_code == 1


def test_memory_add_and_search(cli_kb, vectors):
    result = runner.invoke(app, ["memory-add", "Mentored two interns", "--type", "achievement"])
    assert result.exit_code == 0, result.output
    assert [meta["type"] for _, meta in vectors.entries.values()] == ["achievement"]

    result = runner.invoke(app, ["memory-search", "mentored interns"])
    assert result.exit_code == 0, result.output
    assert "Found 1 matching memories." in result.output


def test_configuration_error_exits_cleanly(monkeypatch):
    def fail(cls, overrides=None):
        raise ConfigurationError("OPENAI_API_KEY is not set")

    monkeypatch.setattr(CareerKnowledgeBase, "from_config", classmethod(fail))
    result = runner.invoke(app, ["memory-search", "anything"])
    assert result.exit_code == 1
    assert "OPENAI_API_KEY" in result.output


def _resume(tmp_path):
    path = tmp_path / "resume.txt"
    path.write_text(ACME_RESUME_TEXT, encoding="utf-8")
    return path
