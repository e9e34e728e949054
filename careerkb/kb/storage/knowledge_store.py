"""Relational CRUD for the career knowledge base."""

from collections.abc import Sequence
from typing import Any, Type, TypeVar

from sqlalchemy import Table, delete, func, insert, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection

from ...core.errors import ConfigurationError, NotFoundError
from ...core.models.base import CareerKBModel, utc_now
from ...core.models.enums import SkillCategory, SkillLevel
from ...core.models.extraction import (
    ParsedAchievement,
    ParsedCertification,
    ParsedEducation,
    ParsedExperience,
    ParsedPerson,
)
from ...core.models.knowledge import (
    AchievementRecord,
    CertificationRecord,
    DomainRecord,
    EducationRecord,
    ExperienceRecord,
    KnowledgeSnapshot,
    MethodologyRecord,
    PersonRecord,
    ProjectRecord,
    SkillRecord,
)
from ...observability.logger import get_logger
from .database import (
    ENTITY_TABLES_DELETE_ORDER,
    achievements,
    certifications,
    domains,
    educations,
    experiences,
    methodologies,
    persons,
    projects,
    skills,
)

logger = get_logger(__name__)

R = TypeVar("R", bound=CareerKBModel)

_CATEGORIES = {c.value for c in SkillCategory}
_LEVELS = {lvl.value for lvl in SkillLevel}


def name_key(name: str) -> str:
    """Case-insensitive uniqueness key for skills, domains, and methodologies."""
    return name.strip().lower()


def normalize_category(category: str) -> str:
    value = category.strip().lower().replace(" ", "_").replace("-", "_")
    return value if value in _CATEGORIES else SkillCategory.OTHER.value


def normalize_level(level: str) -> str:
    value = level.strip().lower()
    return value if value in _LEVELS else SkillLevel.INTERMEDIATE.value


class KnowledgeStore:
    """Entity reads and writes over one connection.

    The caller owns the transaction: wrap a ``KnowledgeStore`` around the
    connection yielded by ``Database.transaction()`` for writes, or
    ``Database.connect()`` for reads.
    """

    def __init__(self, conn: Connection):
        self.conn = conn

    # =========================================================================
    # Person
    # =========================================================================

    def latest_person_id(self) -> int | None:
        """ID of the active profile (the most recently created person)."""
        return self.conn.execute(select(func.max(persons.c.id))).scalar()

    def require_person_id(self) -> int:
        """Like ``latest_person_id`` but raises when no profile exists.

        Raises:
            NotFoundError: If no master resume has been built
        """
        person_id = self.latest_person_id()
        if person_id is None:
            raise NotFoundError()
        return person_id

    def get_person(self, person_id: int) -> PersonRecord:
        row = self.conn.execute(select(persons).where(persons.c.id == person_id)).first()
        if row is None:
            raise NotFoundError(f"person {person_id} not found")
        return PersonRecord.model_validate(dict(row._mapping))

    def insert_person(self, person: ParsedPerson) -> int:
        return self._insert(
            persons,
            name=person.name,
            email=person.email,
            phone=person.phone,
            location=person.location,
            links=dict(person.links),
            summary=person.summary,
            created_at=utc_now(),
        )

    def mark_person_enriched(self, person_id: int) -> None:
        self.conn.execute(update(persons).where(persons.c.id == person_id).values(enriched_at=utc_now()))

    def clear_all(self) -> int:
        """Delete every person and all dependent entities.

        Returns:
            Number of person rows removed
        """
        removed = 0
        for table in ENTITY_TABLES_DELETE_ORDER:
            result = self.conn.execute(delete(table))
            if table is persons:
                removed = result.rowcount or 0
        logger.info("knowledge_store_cleared", persons_removed=removed)
        return removed

    # =========================================================================
    # Entity inserts
    # =========================================================================

    def insert_experience(self, person_id: int, exp: ParsedExperience) -> int:
        """Insert the core experience row; metadata is backfilled separately."""
        return self._insert(
            experiences,
            person_id=person_id,
            title=exp.title,
            company=exp.company,
            location=exp.location,
            start_date=exp.start_date,
            end_date=exp.end_date,
            description=exp.description,
            highlights=list(exp.highlights),
        )

    def update_experience_meta(
        self,
        experience_id: int,
        team_size: int | None,
        budget_usd: int | None,
        domain: str,
        is_volunteer: bool,
    ) -> None:
        self.conn.execute(
            update(experiences)
            .where(experiences.c.id == experience_id)
            .values(team_size=team_size, budget_usd=budget_usd, domain=domain, is_volunteer=is_volunteer)
        )

    def upsert_skill(
        self,
        person_id: int,
        name: str,
        category: str = "other",
        level: str = "intermediate",
        is_implicit: bool = False,
        source: str = "resume",
    ) -> int:
        """Insert a skill, or update the existing one with the same name in any casing.

        Returns:
            Skill ID
        """
        values = {
            "person_id": person_id,
            "name": name.strip(),
            "name_key": name_key(name),
            "category": normalize_category(category),
            "level": normalize_level(level),
            "is_implicit": is_implicit,
            "source": source,
        }
        return self._upsert(skills, values, update_columns=["category", "level", "is_implicit", "source"])

    def insert_project(
        self,
        person_id: int,
        name: str,
        description: str = "",
        url: str = "",
        tech: Sequence[str] = (),
        highlights: Sequence[str] = (),
        parent_experience_id: int | None = None,
    ) -> int:
        """Insert a project. The parent reference is only ever written here."""
        return self._insert(
            projects,
            person_id=person_id,
            name=name,
            description=description,
            url=url,
            tech=list(tech),
            highlights=list(highlights),
            parent_experience_id=parent_experience_id,
        )

    def insert_achievement(self, person_id: int, achv: ParsedAchievement) -> int:
        return self._insert(
            achievements,
            person_id=person_id,
            text=achv.text,
            metric=achv.metric,
            value=achv.value,
            context=achv.context,
            metric_numeric=achv.metric_numeric,
            metric_unit=achv.metric_unit,
        )

    def update_achievement(
        self,
        achievement_id: int,
        new_text: str = "",
        metric_numeric: float | None = None,
        metric_unit: str = "",
    ) -> bool:
        """Overwrite text and/or the numeric metric; empty arguments leave fields alone.

        Returns:
            True if anything was written
        """
        values: dict[str, Any] = {}
        if new_text:
            values["text"] = new_text
        if metric_numeric is not None or metric_unit:
            values["metric_numeric"] = metric_numeric
            values["metric_unit"] = metric_unit
        if not values:
            return False
        self.conn.execute(update(achievements).where(achievements.c.id == achievement_id).values(**values))
        return True

    def insert_education(self, person_id: int, edu: ParsedEducation) -> int:
        return self._insert(
            educations,
            person_id=person_id,
            school=edu.school,
            degree=edu.degree,
            field=edu.field,
            start_date=edu.start_date,
            end_date=edu.end_date,
            gpa=edu.gpa,
            highlights=list(edu.highlights),
        )

    def insert_certification(self, person_id: int, cert: ParsedCertification) -> int:
        return self._insert(
            certifications,
            person_id=person_id,
            name=cert.name,
            issuer=cert.issuer,
            year=cert.year,
            url=cert.url,
        )

    def upsert_domain(self, person_id: int, name: str) -> int:
        values = {"person_id": person_id, "name": name.strip(), "name_key": name_key(name)}
        return self._upsert(domains, values, update_columns=[])

    def upsert_methodology(self, person_id: int, name: str, description: str = "") -> int:
        """Insert a methodology; a non-empty description replaces the stored one."""
        values = {
            "person_id": person_id,
            "name": name.strip(),
            "name_key": name_key(name),
            "description": description,
        }
        return self._upsert(
            methodologies,
            values,
            update_columns=["description"],
            keep_existing_when_empty=["description"],
        )

    # =========================================================================
    # Reads
    # =========================================================================

    def list_experiences(self, person_id: int) -> list[ExperienceRecord]:
        return self._list(experiences, ExperienceRecord, person_id)

    def list_skills(self, person_id: int) -> list[SkillRecord]:
        return self._list(skills, SkillRecord, person_id)

    def list_projects(self, person_id: int) -> list[ProjectRecord]:
        return self._list(projects, ProjectRecord, person_id)

    def list_achievements(self, person_id: int) -> list[AchievementRecord]:
        return self._list(achievements, AchievementRecord, person_id)

    def list_educations(self, person_id: int) -> list[EducationRecord]:
        return self._list(educations, EducationRecord, person_id)

    def list_certifications(self, person_id: int) -> list[CertificationRecord]:
        return self._list(certifications, CertificationRecord, person_id)

    def list_domains(self, person_id: int) -> list[DomainRecord]:
        return self._list(domains, DomainRecord, person_id)

    def list_methodologies(self, person_id: int) -> list[MethodologyRecord]:
        return self._list(methodologies, MethodologyRecord, person_id)

    def experiences_by_ids(self, person_id: int, ids: Sequence[int]) -> list[ExperienceRecord]:
        return self._by_ids(experiences, ExperienceRecord, person_id, ids)

    def projects_by_ids(self, person_id: int, ids: Sequence[int]) -> list[ProjectRecord]:
        return self._by_ids(projects, ProjectRecord, person_id, ids)

    def achievements_by_ids(self, person_id: int, ids: Sequence[int]) -> list[AchievementRecord]:
        return self._by_ids(achievements, AchievementRecord, person_id, ids)

    def find_skill(self, person_id: int, name: str) -> SkillRecord | None:
        """Case-insensitive exact skill lookup."""
        row = self.conn.execute(
            select(skills).where(skills.c.person_id == person_id, skills.c.name_key == name_key(name))
        ).first()
        return SkillRecord.model_validate(dict(row._mapping)) if row else None

    def count(self, table: Table, person_id: int) -> int:
        return self.conn.execute(
            select(func.count()).select_from(table).where(table.c.person_id == person_id)
        ).scalar_one()

    def snapshot(self, person_id: int) -> KnowledgeSnapshot:
        """Load the person and every entity list."""
        return KnowledgeSnapshot(
            person=self.get_person(person_id),
            experiences=self.list_experiences(person_id),
            skills=self.list_skills(person_id),
            projects=self.list_projects(person_id),
            achievements=self.list_achievements(person_id),
            educations=self.list_educations(person_id),
            certifications=self.list_certifications(person_id),
            domains=self.list_domains(person_id),
            methodologies=self.list_methodologies(person_id),
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _insert(self, table: Table, **values: Any) -> int:
        result = self.conn.execute(insert(table).values(**values))
        return int(result.inserted_primary_key[0])

    def _upsert(
        self,
        table: Table,
        values: dict[str, Any],
        update_columns: list[str],
        keep_existing_when_empty: Sequence[str] = (),
    ) -> int:
        """INSERT ... ON CONFLICT (person_id, name_key) DO UPDATE, then read the ID back."""
        dialect = self.conn.dialect.name
        if dialect == "postgresql":
            stmt = postgresql.insert(table).values(**values)
        elif dialect == "sqlite":
            stmt = sqlite.insert(table).values(**values)
        else:
            raise ConfigurationError(f"unsupported database dialect {dialect!r}; use PostgreSQL or SQLite")

        conflict = ["person_id", "name_key"]
        if update_columns:
            set_ = {}
            for column in update_columns:
                incoming = stmt.excluded[column]
                if column in keep_existing_when_empty:
                    incoming = func.coalesce(func.nullif(incoming, ""), table.c[column])
                set_[column] = incoming
            stmt = stmt.on_conflict_do_update(index_elements=conflict, set_=set_)
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=conflict)
        self.conn.execute(stmt)

        return self.conn.execute(
            select(table.c.id).where(
                table.c.person_id == values["person_id"],
                table.c.name_key == values["name_key"],
            )
        ).scalar_one()

    def _list(self, table: Table, model: Type[R], person_id: int) -> list[R]:
        rows = self.conn.execute(select(table).where(table.c.person_id == person_id).order_by(table.c.id))
        return [model.model_validate(dict(row._mapping)) for row in rows]

    def _by_ids(self, table: Table, model: Type[R], person_id: int, ids: Sequence[int]) -> list[R]:
        if not ids:
            return []
        rows = self.conn.execute(
            select(table)
            .where(table.c.person_id == person_id, table.c.id.in_(list(ids)))
            .order_by(table.c.id)
        )
        return [model.model_validate(dict(row._mapping)) for row in rows]
