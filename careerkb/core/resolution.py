"""Entity resolution for free-text hints emitted by the language model.

The model refers to existing entities by name ("acme", "the festival gig"),
never by ID. The general resolvers (``resolve`` and the ``find_experience_by_company``
and ``find_achievement_by_text`` lookups) follow the same match order:

1. Exact case-insensitive match against any of the candidate's names.
2. Substring containment in either direction (hint in name, or name in hint).

Candidates are scanned in the order given and the first match wins. Empty
hints and empty names never match. Resolution is deliberately permissive:
"Acme" also resolves to "Acme Insurance" when that comes first.

Achievement linking is stricter and one-directional: an owner matches only
when the achievement context contains its name, and an inferred skill's
source matches only when it occurs in the achievement text or context.
"""

from collections.abc import Callable, Iterable, Sequence
from typing import TypeVar

from .models.knowledge import AchievementRecord, ExperienceRecord, ProjectRecord
from .models.enums import NodeKind

T = TypeVar("T")


def _norm(value: str) -> str:
    return value.strip().lower()


def names_match_exact(name: str, hint: str) -> bool:
    name, hint = _norm(name), _norm(hint)
    return bool(name) and name == hint


def names_overlap(name: str, hint: str) -> bool:
    """Substring containment in either direction, ignoring case."""
    name, hint = _norm(name), _norm(hint)
    if not name or not hint:
        return False
    return hint in name or name in hint


def resolve(
    candidates: Sequence[T],
    hint: str,
    names: Callable[[T], Iterable[str]],
) -> T | None:
    """Resolve ``hint`` against ``candidates`` using the documented match order.

    Args:
        candidates: Entities to search, in priority order
        hint: Free-text hint from the language model
        names: Returns the names a candidate may be known by

    Returns:
        The first matching candidate, or None
    """
    if not _norm(hint):
        return None
    for candidate in candidates:
        if any(names_match_exact(name, hint) for name in names(candidate)):
            return candidate
    for candidate in candidates:
        if any(names_overlap(name, hint) for name in names(candidate)):
            return candidate
    return None


def find_experience_by_company(experiences: Sequence[ExperienceRecord], hint: str) -> ExperienceRecord | None:
    """Resolve a parent-experience or trajectory hint by company name."""
    return resolve(experiences, hint, lambda exp: [exp.company])


def find_achievement_by_text(achievements: Sequence[AchievementRecord], hint: str) -> AchievementRecord | None:
    """Resolve an achievement from (part of) its text."""
    return resolve(achievements, hint, lambda achv: [achv.text])


def find_achievement_for_source(achievements: Sequence[AchievementRecord], hint: str) -> AchievementRecord | None:
    """First achievement whose text or context contains the source hint."""
    needle = _norm(hint)
    if not needle:
        return None
    for achv in achievements:
        if needle in _norm(achv.text) or needle in _norm(achv.context):
            return achv
    return None


def _mentions(context: str, name: str) -> bool:
    name = _norm(name)
    return bool(name) and name in context


def find_achievement_owner(
    experiences: Sequence[ExperienceRecord],
    projects: Sequence[ProjectRecord],
    context: str,
) -> tuple[NodeKind, int] | None:
    """Resolve which experience or project produced an achievement.

    The context must contain the owner's name. Every experience (by company or
    title) is tried before any project (by name); there is no exact-match pass.

    Args:
        experiences: Stored experiences
        projects: Stored projects, standalone and sub-projects
        context: The achievement's context hint

    Returns:
        (node kind, entity ID) of the owner, or None when nothing matches
    """
    hint = _norm(context)
    if not hint:
        return None
    for exp in experiences:
        if _mentions(hint, exp.company) or _mentions(hint, exp.title):
            return NodeKind.EXPERIENCE, exp.id
    for proj in projects:
        if _mentions(hint, proj.name):
            return NodeKind.PROJECT, proj.id
    return None
