"""Relational schema and engine management (SQLAlchemy Core).

Entity tables and the property-graph overlay live in the same database so a
whole build can run inside a single transaction. SQLite (default for local
use and tests) and PostgreSQL are supported.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    event,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from ...core.errors import ConfigurationError
from ...observability.logger import get_logger

logger = get_logger(__name__)

JSONType = JSON().with_variant(JSONB(), "postgresql")

metadata = MetaData()


def _person_fk() -> Column:
    return Column("person_id", Integer, ForeignKey("persons.id", ondelete="CASCADE"), nullable=False, index=True)


persons = Table(
    "persons",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(255), nullable=False, default=""),
    Column("email", String(255), nullable=False, default=""),
    Column("phone", String(64), nullable=False, default=""),
    Column("location", String(255), nullable=False, default=""),
    Column("links", JSONType, nullable=False, default=dict),
    Column("summary", Text, nullable=False, default=""),
    Column("enriched_at", DateTime(timezone=True), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=True),
    sqlite_autoincrement=True,
)

experiences = Table(
    "experiences",
    metadata,
    Column("id", Integer, primary_key=True),
    _person_fk(),
    Column("title", String(255), nullable=False, default=""),
    Column("company", String(255), nullable=False, default=""),
    Column("location", String(255), nullable=False, default=""),
    Column("start_date", String(32), nullable=False, default=""),
    Column("end_date", String(32), nullable=False, default=""),
    Column("description", Text, nullable=False, default=""),
    Column("highlights", JSONType, nullable=False, default=list),
    Column("team_size", Integer, nullable=True),
    Column("budget_usd", BigInteger, nullable=True),
    Column("domain", String(255), nullable=False, default=""),
    Column("is_volunteer", Boolean, nullable=False, default=False),
    sqlite_autoincrement=True,
)

skills = Table(
    "skills",
    metadata,
    Column("id", Integer, primary_key=True),
    _person_fk(),
    Column("name", String(255), nullable=False),
    Column("name_key", String(255), nullable=False),
    Column("category", String(64), nullable=False, default="other"),
    Column("level", String(32), nullable=False, default="intermediate"),
    Column("is_implicit", Boolean, nullable=False, default=False),
    Column("source", String(32), nullable=False, default="resume"),
    UniqueConstraint("person_id", "name_key", name="uq_skills_person_name"),
    sqlite_autoincrement=True,
)

projects = Table(
    "projects",
    metadata,
    Column("id", Integer, primary_key=True),
    _person_fk(),
    Column("name", String(255), nullable=False, default=""),
    Column("description", Text, nullable=False, default=""),
    Column("url", String(512), nullable=False, default=""),
    Column("tech", JSONType, nullable=False, default=list),
    Column("highlights", JSONType, nullable=False, default=list),
    Column(
        "parent_experience_id",
        Integer,
        ForeignKey("experiences.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    ),
    sqlite_autoincrement=True,
)

achievements = Table(
    "achievements",
    metadata,
    Column("id", Integer, primary_key=True),
    _person_fk(),
    Column("text", Text, nullable=False, default=""),
    Column("metric", String(255), nullable=False, default=""),
    Column("value", String(255), nullable=False, default=""),
    Column("context", String(512), nullable=False, default=""),
    Column("metric_numeric", Float, nullable=True),
    Column("metric_unit", String(64), nullable=False, default=""),
    sqlite_autoincrement=True,
)

educations = Table(
    "educations",
    metadata,
    Column("id", Integer, primary_key=True),
    _person_fk(),
    Column("school", String(255), nullable=False, default=""),
    Column("degree", String(255), nullable=False, default=""),
    Column("field", String(255), nullable=False, default=""),
    Column("start_date", String(32), nullable=False, default=""),
    Column("end_date", String(32), nullable=False, default=""),
    Column("gpa", String(32), nullable=False, default=""),
    Column("highlights", JSONType, nullable=False, default=list),
    sqlite_autoincrement=True,
)

certifications = Table(
    "certifications",
    metadata,
    Column("id", Integer, primary_key=True),
    _person_fk(),
    Column("name", String(255), nullable=False, default=""),
    Column("issuer", String(255), nullable=False, default=""),
    Column("year", String(16), nullable=False, default=""),
    Column("url", String(512), nullable=False, default=""),
    sqlite_autoincrement=True,
)

domains = Table(
    "domains",
    metadata,
    Column("id", Integer, primary_key=True),
    _person_fk(),
    Column("name", String(255), nullable=False),
    Column("name_key", String(255), nullable=False),
    UniqueConstraint("person_id", "name_key", name="uq_domains_person_name"),
    sqlite_autoincrement=True,
)

methodologies = Table(
    "methodologies",
    metadata,
    Column("id", Integer, primary_key=True),
    _person_fk(),
    Column("name", String(255), nullable=False),
    Column("name_key", String(255), nullable=False),
    Column("description", Text, nullable=False, default=""),
    UniqueConstraint("person_id", "name_key", name="uq_methodologies_person_name"),
    sqlite_autoincrement=True,
)

graph_nodes = Table(
    "graph_nodes",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("kind", String(16), nullable=False),
    Column("entity_id", Integer, nullable=False),
    Column("label", String(512), nullable=False, default=""),
    Column("props", JSONType, nullable=False, default=dict),
    UniqueConstraint("kind", "entity_id", name="uq_graph_nodes_key"),
    sqlite_autoincrement=True,
)

graph_edges = Table(
    "graph_edges",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("from_kind", String(16), nullable=False),
    Column("from_id", Integer, nullable=False),
    Column("edge_type", String(32), nullable=False),
    Column("to_kind", String(16), nullable=False),
    Column("to_id", Integer, nullable=False),
    UniqueConstraint("from_kind", "from_id", "edge_type", "to_kind", "to_id", name="uq_graph_edges_key"),
    sqlite_autoincrement=True,
)

# Children before parents, so deletes never trip a foreign key
ENTITY_TABLES_DELETE_ORDER = (
    achievements,
    projects,
    skills,
    educations,
    certifications,
    domains,
    methodologies,
    experiences,
    persons,
)


def _install_sqlite_hooks(engine: Engine) -> None:
    """Make pysqlite honor SAVEPOINT and foreign keys.

    pysqlite's own transaction handling swallows SAVEPOINT semantics, so the
    driver is put in autocommit mode and BEGIN is emitted by SQLAlchemy.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Connection) -> None:
        conn.exec_driver_sql("BEGIN")


class Database:
    """Owns the SQLAlchemy engine and hands out connections and transactions."""

    def __init__(self, url: str, echo: bool = False, pool_size: int = 5):
        """Create the engine.

        Args:
            url: SQLAlchemy database URL (sqlite:///path.db, postgresql+psycopg://...)
            echo: Log every SQL statement
            pool_size: Connection pool size (ignored for SQLite)

        Raises:
            ConfigurationError: If the URL cannot be parsed
        """
        try:
            parsed = make_url(url)
        except SQLAlchemyError as e:
            raise ConfigurationError(f"invalid database URL: {e}") from e

        self.url = url
        self.dialect = parsed.get_backend_name()

        kwargs: dict[str, Any] = {"echo": echo}
        if self.dialect == "sqlite":
            kwargs["connect_args"] = {"check_same_thread": False}
            if parsed.database in (None, "", ":memory:"):
                # One shared connection, or every checkout would see an empty database
                kwargs["poolclass"] = StaticPool
            else:
                Path(parsed.database).expanduser().parent.mkdir(parents=True, exist_ok=True)
        else:
            kwargs.update(pool_size=pool_size, pool_pre_ping=True, pool_recycle=3600)

        self.engine = create_engine(url, **kwargs)
        if self.dialect == "sqlite":
            _install_sqlite_hooks(self.engine)

        logger.info("database_engine_created", dialect=self.dialect)

    def create_schema(self) -> None:
        """Create all tables that do not exist yet.

        Raises:
            ConfigurationError: If the database is unreachable
        """
        try:
            metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            logger.error("database_unreachable", dialect=self.dialect, error=str(e))
            raise ConfigurationError(f"resume database unreachable: {e}") from e
        logger.info("database_schema_ready", tables=len(metadata.tables))

    def ping(self) -> None:
        """Round-trip a trivial query.

        Raises:
            ConfigurationError: If the database is unreachable
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise ConfigurationError(f"resume database unreachable: {e}") from e

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Yield a connection inside a transaction.

        Commits on normal exit; rolls back on any exception, including
        ``asyncio.CancelledError``.
        """
        with self.engine.begin() as conn:
            yield conn

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        """Yield a connection for reads (rolled back on close)."""
        with self.engine.connect() as conn:
            yield conn

    def dispose(self) -> None:
        self.engine.dispose()
