"""Text helpers shared by prompts, vector renderings, and LM response handling."""

import re
from collections.abc import Iterable

_FENCE_OPEN = re.compile(r"^\s*```[a-zA-Z0-9_-]*\s*\n?")
_FENCE_CLOSE = re.compile(r"\n?\s*```\s*$")


def truncate(text: str, limit: int, suffix: str = "") -> str:
    """Cut ``text`` to at most ``limit`` characters, appending ``suffix`` when cut."""
    if limit <= 0 or len(text) <= limit:
        return text
    return text[:limit] + suffix


def strip_fences(raw: str) -> str:
    """Remove a leading ```json / ``` fence and a trailing ``` fence, if present."""
    text = raw.strip()
    text = _FENCE_OPEN.sub("", text, count=1)
    text = _FENCE_CLOSE.sub("", text, count=1)
    return text.strip()


def contains_fold(haystack: str, needle: str) -> bool:
    """Case-insensitive containment; an empty needle never matches."""
    needle = needle.strip().lower()
    return bool(needle) and needle in haystack.lower()


def join_nonempty(parts: Iterable[str], sep: str = " | ") -> str:
    return sep.join(part for part in parts if part)


def experience_text(
    title: str,
    company: str,
    start_date: str,
    end_date: str,
    domain: str,
    description: str,
    highlights: list[str],
) -> str:
    """Render an experience for the semantic index.

    Example: ``Backend Engineer at Acme (2020–2023) [Software Engineering]: built APIs | cut p99 by 40%``
    """
    head = f"{title} at {company} ({start_date}–{end_date})"
    if domain:
        head += f" [{domain}]"
    body = join_nonempty([description, *highlights])
    return f"{head}: {body}" if body else head


def project_text(name: str, description: str, tech: list[str], highlights: list[str]) -> str:
    """Render a project or sub-project for the semantic index."""
    text = f"Project {name}: {description}"
    if tech:
        text += f" [{', '.join(tech)}]"
    if highlights:
        text += " | " + " | ".join(highlights)
    return text
