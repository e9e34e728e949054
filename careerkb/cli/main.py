"""CLI interface for careerkb using Typer."""

import asyncio
import json
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated, Any, TypeVar

import typer
from pydantic import BaseModel, ValidationError
from rich.console import Console
from rich.table import Table

from ..core.errors import CareerKBError
from ..core.models.dialogue import AnswerPair
from ..observability.logger import get_logger
from ..service import CareerKnowledgeBase

logger = get_logger(__name__)
console = Console()

T = TypeVar("T")

app = typer.Typer(
    name="careerkb",
    help="Career knowledge base - build once from a resume, generate tailored resumes on demand",
    add_completion=False,
)


def _run(operation: Callable[[CareerKnowledgeBase], Awaitable[T]]) -> T:
    """Open the knowledge base from config, run one operation, and close it.

    Library errors become a red message and exit code 1.
    """
    try:
        kb = CareerKnowledgeBase.from_config()
    except CareerKBError as e:
        console.print(f"[red]! Error:[/red] {e}")
        raise typer.Exit(code=1)

    try:
        return asyncio.run(operation(kb))
    except CareerKBError as e:
        logger.error("command_failed", error=str(e), error_type=type(e).__name__)
        console.print(f"[red]! Error:[/red] {e}")
        raise typer.Exit(code=1)
    finally:
        kb.close()


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (IOError, UnicodeDecodeError) as e:
        console.print(f"[red]! Error reading {path}:[/red] {e}")
        raise typer.Exit(code=1)


def _save_json(output_file: Path, model: BaseModel) -> None:
    try:
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(model.model_dump_json(indent=2), encoding="utf-8")
        console.print(f"\n[green]Output saved to:[/green] {output_file}")
    except (IOError, TypeError) as e:
        console.print(f"\n[red]! Error saving output:[/red] {e}")


def _print_json(data: Any) -> None:
    console.print_json(json.dumps(data, default=str))


@app.command()
def build(
    resume: Annotated[
        Path,
        typer.Option(
            "--resume",
            "-r",
            help="Path to a plain-text resume",
            exists=True,
            file_okay=True,
            dir_okay=False,
        ),
    ],
    output_file: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Path to save the build result JSON"),
    ] = None,
):
    """Build the knowledge base from a resume, replacing everything stored before.

    Runs extraction, enrichment, the transactional write of entities and
    graph, and finally refreshes the semantic index.
    """
    resume_text = _read_text(resume)
    console.print(f"\n[bold blue]Building master resume from:[/bold blue] {resume}")

    result = _run(lambda kb: kb.build(resume_text))

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Kind")
    table.add_column("Count", justify="right")
    for field in (
        "experiences",
        "skills",
        "implicit_skills",
        "projects",
        "sub_projects",
        "achievements",
        "educations",
        "certifications",
        "domains",
        "methodologies",
        "graph_nodes",
        "graph_edges",
        "vectors_stored",
        "partial_failures",
    ):
        table.add_row(field.replace("_", " "), str(getattr(result, field)))
    console.print(table)
    console.print(f"\n[green]>[/green] {result.summary}")

    if output_file:
        _save_json(output_file, result)


@app.command()
def enrich_start(
    output_file: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Path to save the questions JSON"),
    ] = None,
):
    """Ask the model which gaps in the knowledge base are worth filling."""
    result = _run(lambda kb: kb.enrich_start())

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", width=6)
    table.add_column("Category")
    table.add_column("Question")
    table.add_column("Context")
    for question in result.questions:
        table.add_row(question.id, question.category, question.question, question.context)
    console.print(table)
    console.print(f"\n[green]>[/green] {result.summary}")

    if output_file:
        _save_json(output_file, result)


def _parse_answers(answer: list[str] | None, answers_file: Path | None) -> list[AnswerPair]:
    pairs: list[AnswerPair] = []
    if answers_file is not None:
        try:
            raw = json.loads(_read_text(answers_file))
        except json.JSONDecodeError as e:
            console.print(f"[red]! Error:[/red] {answers_file} is not valid JSON: {e}")
            raise typer.Exit(code=1)
        if isinstance(raw, dict):
            raw = raw.get("answers", [])
        try:
            pairs.extend(AnswerPair.model_validate(item) for item in raw)
        except ValidationError as e:
            console.print(f"[red]! Error:[/red] {answers_file} has malformed answers: {e}")
            raise typer.Exit(code=1)

    for item in answer or []:
        question_id, sep, text = item.partition("=")
        if not sep or not question_id.strip():
            console.print(f"[red]! Error:[/red] --answer must look like q1=your answer, got {item!r}")
            raise typer.Exit(code=1)
        pairs.append(AnswerPair(question_id=question_id.strip(), answer=text.strip()))
    return pairs


@app.command()
def enrich_answer(
    answer: Annotated[
        list[str] | None,
        typer.Option("--answer", "-a", help="Answer as question_id=text; repeat for several"),
    ] = None,
    answers_file: Annotated[
        Path | None,
        typer.Option(
            "--file",
            "-f",
            help='JSON file: [{"question_id": "q1", "answer": "..."}]',
            exists=True,
            file_okay=True,
            dir_okay=False,
        ),
    ] = None,
):
    """Apply answers to the enrichment questions."""
    pairs = _parse_answers(answer, answers_file)
    if not pairs:
        console.print("[red]! Error:[/red] provide at least one --answer or --file")
        raise typer.Exit(code=1)

    result = _run(lambda kb: kb.enrich_answer(pairs))
    console.print(f"\n[green]>[/green] {result.summary}")
    if result.skipped:
        console.print(f"[yellow]{result.skipped} update(s) skipped; see logs[/yellow]")


@app.command()
def generate(
    job_description: Annotated[
        Path,
        typer.Option(
            "--description",
            "-d",
            help="Path to job description file",
            exists=True,
            file_okay=True,
            dir_okay=False,
        ),
    ],
    company: Annotated[str | None, typer.Option("--company", "-c", help="Employer name for company context")] = None,
    output_format: Annotated[str, typer.Option("--format", help="Output format (text, markdown)")] = "text",
    output_file: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Path to save the full result JSON"),
    ] = None,
):
    """Generate a resume tailored to a job description."""
    jd_text = _read_text(job_description)

    result = _run(lambda kb: kb.generate(jd_text, company=company, output_format=output_format))

    console.print(f"\n[bold]ATS score:[/bold] {result.ats_score}/100")
    if result.matched_keywords:
        console.print(f"[dim]Matched:[/dim] {', '.join(result.matched_keywords)}")
    if result.missing_keywords:
        console.print(f"[dim]Missing:[/dim] {', '.join(result.missing_keywords)}")
    console.print()
    console.print(result.resume, markup=False)
    console.print(f"\n[green]>[/green] {result.summary}")

    if output_file:
        _save_json(output_file, result)


@app.command()
def profile(
    section: Annotated[
        str | None,
        typer.Option("--section", "-s", help="Only this section (experiences, skills, projects, ...)"),
    ] = None,
):
    """Show what the knowledge base currently holds."""
    result = _run(lambda kb: kb.profile(section))
    _print_json(result.to_dict())
    console.print(f"\n[green]>[/green] {result.summary}")


@app.command()
def memory_search(
    query: Annotated[str, typer.Argument(help="Search query text")],
    top_k: Annotated[int, typer.Option("--top-k", "-k", help="Number of results (max 30)")] = 10,
):
    """Semantic search over the stored memories."""
    result = _run(lambda kb: kb.memory_search(query, top_k))

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score", justify="right")
    table.add_column("Type")
    table.add_column("ID", justify="right")
    table.add_column("Memory ID", style="dim")
    table.add_column("Content")
    for item in result.results:
        content = item.content[:80] + "..." if len(item.content) > 80 else item.content
        table.add_row(
            f"{item.score:.3f}",
            item.type,
            str(item.entity_id) if item.entity_id is not None else "",
            item.memory_id,
            content,
        )
    console.print(table)
    console.print(f"\n[green]>[/green] {result.summary}")


@app.command()
def memory_add(
    content: Annotated[str, typer.Argument(help="Text to remember")],
    memory_type: Annotated[str, typer.Option("--type", "-t", help="Memory type")] = "note",
):
    """Store a free-form memory."""
    result = _run(lambda kb: kb.memory_add(content, memory_type))
    console.print(f"[green]>[/green] {result.summary} [dim]{result.memory_id}[/dim]")


@app.command()
def memory_update(
    memory_id: Annotated[str, typer.Argument(help="ID of the memory to replace")],
    content: Annotated[str, typer.Argument(help="New text")],
):
    """Replace a memory's text, keeping its type."""
    result = _run(lambda kb: kb.memory_update(memory_id, content))
    console.print(f"[green]>[/green] {result.summary} New ID: [dim]{result.memory_id}[/dim]")


if __name__ == "__main__":
    app()
