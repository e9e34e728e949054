"""Entity resolution match order."""

from careerkb.core.models.enums import NodeKind
from careerkb.core.models.knowledge import AchievementRecord, ExperienceRecord, ProjectRecord
from careerkb.core.resolution import (
    find_achievement_by_text,
    find_achievement_for_source,
    find_achievement_owner,
    find_experience_by_company,
    names_overlap,
    resolve,
)


def _exp(exp_id: int, company: str, title: str = "Engineer") -> ExperienceRecord:
    return ExperienceRecord(id=exp_id, person_id=1, company=company, title=title)


def test_lowercase_hint_resolves_to_full_company_name():
    experiences = [_exp(1, "Globex"), _exp(2, "Acme Corp")]
    assert find_experience_by_company(experiences, "acme").id == 2


def test_exact_match_beats_earlier_substring_match():
    experiences = [_exp(1, "Acme Insurance"), _exp(2, "Acme")]
    assert find_experience_by_company(experiences, "ACME").id == 2


def test_substring_match_works_in_both_directions():
    experiences = [_exp(1, "Acme")]
    assert find_experience_by_company(experiences, "Acme Corp, Berlin office").id == 1


def test_first_substring_match_wins():
    experiences = [_exp(1, "Acme Insurance"), _exp(2, "Acme Logistics")]
    assert find_experience_by_company(experiences, "acme").id == 1


def test_empty_hint_or_name_never_matches():
    assert find_experience_by_company([_exp(1, "Acme")], "  ") is None
    assert find_experience_by_company([_exp(1, "")], "acme") is None
    assert not names_overlap("", "")


def test_resolve_returns_none_without_candidates():
    assert resolve([], "acme", lambda item: [item]) is None


def test_achievement_lookup_by_text_fragment():
    achievements = [
        AchievementRecord(id=1, person_id=1, text="Grew revenue 3x"),
        AchievementRecord(id=2, person_id=1, text="Sold 16K festival tickets"),
    ]
    assert find_achievement_by_text(achievements, "festival tickets").id == 2


def test_achievement_source_matches_context():
    achievements = [AchievementRecord(id=7, person_id=1, text="Shipped v2", context="Acme payments team")]
    assert find_achievement_for_source(achievements, "payments").id == 7


def test_achievement_source_must_occur_in_text_or_context():
    achievements = [AchievementRecord(id=7, person_id=1, text="Shipped v2", context="payments")]
    assert find_achievement_for_source(achievements, "Acme payments team") is None


def test_achievement_owner_prefers_experience_over_project():
    experiences = [_exp(3, "Acme Corp")]
    projects = [ProjectRecord(id=9, person_id=1, name="Acme Tools")]
    assert find_achievement_owner(experiences, projects, "Acme Tools rollout at acme corp") == (NodeKind.EXPERIENCE, 3)


def test_contained_company_beats_exact_project_name():
    experiences = [_exp(3, "Acme Corp", title="Backend Engineer")]
    projects = [ProjectRecord(id=9, person_id=1, name="Checkout at Acme Corp")]
    assert find_achievement_owner(experiences, projects, "Checkout at Acme Corp") == (NodeKind.EXPERIENCE, 3)


def test_achievement_owner_needs_context_to_contain_the_name():
    experiences = [_exp(3, "Acme Corp", title="Data Engineer")]
    assert find_achievement_owner(experiences, [], "acme") is None
    assert find_achievement_owner(experiences, [], "Engineer") is None
    assert find_achievement_owner(experiences, [], " ") is None


def test_achievement_owner_falls_back_to_project_and_title():
    experiences = [_exp(3, "Acme Corp", title="Data Engineer")]
    projects = [ProjectRecord(id=9, person_id=1, name="Festival Ticketing")]
    assert find_achievement_owner(experiences, projects, "the festival ticketing launch") == (NodeKind.PROJECT, 9)
    assert find_achievement_owner(experiences, projects, "as data engineer") == (NodeKind.EXPERIENCE, 3)
    assert find_achievement_owner(experiences, projects, "unrelated") is None
