"""Property-graph overlay stored as node and edge tables.

Nodes are keyed by (kind, entity_id) and mirror rows of the entity tables;
edges are typed and directed. Every value reaches the database as a bound
parameter, so labels and properties taken from resume text are never
interpolated into SQL.
"""

from collections.abc import Mapping
from typing import Any

from sqlalchemy import and_, delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection

from ...core.errors import ConfigurationError, PartialFailure
from ...core.models.enums import EdgeType, NodeKind
from ...core.models.knowledge import GraphEdge, GraphNode
from ...observability.logger import get_logger
from .database import graph_edges, graph_nodes

logger = get_logger(__name__)

LABEL_PROPS = ("name", "title", "text")
MAX_LABEL_CHARS = 512


def _kind(value: NodeKind | str) -> str:
    return value.value if isinstance(value, NodeKind) else str(value)


def _edge(value: EdgeType | str) -> str:
    return value.value if isinstance(value, EdgeType) else str(value)


class GraphStore:
    """Node/edge upserts and short traversals over one connection."""

    def __init__(self, conn: Connection):
        self.conn = conn

    def _insert(self, table):
        dialect = self.conn.dialect.name
        if dialect == "postgresql":
            return postgresql.insert(table)
        if dialect == "sqlite":
            return sqlite.insert(table)
        raise ConfigurationError(f"unsupported database dialect {dialect!r}; use PostgreSQL or SQLite")

    # =========================================================================
    # Writes
    # =========================================================================

    def upsert_node(self, kind: NodeKind | str, entity_id: int, props: Mapping[str, Any]) -> None:
        """Create the node or overwrite its properties.

        The label is denormalized from the first of name/title/text present.

        Args:
            kind: Node kind
            entity_id: ID of the mirrored entity row
            props: Property map; replaces any previous properties wholesale
        """
        label = next((str(props[key]) for key in LABEL_PROPS if props.get(key)), "")
        values = {
            "kind": _kind(kind),
            "entity_id": entity_id,
            "label": label[:MAX_LABEL_CHARS],
            "props": dict(props),
        }
        stmt = self._insert(graph_nodes).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["kind", "entity_id"],
            set_={"label": stmt.excluded.label, "props": stmt.excluded.props},
        )
        self.conn.execute(stmt)

    def add_edge(
        self,
        from_kind: NodeKind | str,
        from_id: int,
        edge_type: EdgeType | str,
        to_kind: NodeKind | str,
        to_id: int,
    ) -> bool:
        """Add a typed edge between two existing nodes; re-adding is a no-op.

        Returns:
            True if the edge is new, False if it already existed

        Raises:
            PartialFailure: If either endpoint node does not exist
        """
        from_kind, to_kind, edge_type = _kind(from_kind), _kind(to_kind), _edge(edge_type)
        for kind, entity_id in ((from_kind, from_id), (to_kind, to_id)):
            if not self.has_node(kind, entity_id):
                raise PartialFailure(
                    "graph_edge",
                    "endpoint node missing",
                    edge_type=edge_type,
                    missing=f"{kind}:{entity_id}",
                )

        stmt = (
            self._insert(graph_edges)
            .values(from_kind=from_kind, from_id=from_id, edge_type=edge_type, to_kind=to_kind, to_id=to_id)
            .on_conflict_do_nothing(index_elements=["from_kind", "from_id", "edge_type", "to_kind", "to_id"])
        )
        return (self.conn.execute(stmt).rowcount or 0) > 0

    def clear(self) -> None:
        self.conn.execute(delete(graph_edges))
        self.conn.execute(delete(graph_nodes))
        logger.info("graph_cleared")

    # =========================================================================
    # Point reads
    # =========================================================================

    def has_node(self, kind: NodeKind | str, entity_id: int) -> bool:
        found = self.conn.execute(
            select(graph_nodes.c.id).where(graph_nodes.c.kind == _kind(kind), graph_nodes.c.entity_id == entity_id)
        ).first()
        return found is not None

    def get_node(self, kind: NodeKind | str, entity_id: int) -> GraphNode | None:
        row = self.conn.execute(
            select(graph_nodes).where(graph_nodes.c.kind == _kind(kind), graph_nodes.c.entity_id == entity_id)
        ).first()
        return GraphNode.model_validate(dict(row._mapping)) if row else None

    def count_nodes(self) -> int:
        return self.conn.execute(select(func.count()).select_from(graph_nodes)).scalar_one()

    def count_edges(self) -> int:
        return self.conn.execute(select(func.count()).select_from(graph_edges)).scalar_one()

    def edges(self, edge_type: EdgeType | str | None = None) -> list[GraphEdge]:
        stmt = select(graph_edges).order_by(graph_edges.c.id)
        if edge_type is not None:
            stmt = stmt.where(graph_edges.c.edge_type == _edge(edge_type))
        return [GraphEdge.model_validate(dict(row._mapping)) for row in self.conn.execute(stmt)]

    # =========================================================================
    # Traversals (return entity IDs)
    # =========================================================================

    def targets(self, from_kind: NodeKind, from_id: int, edge_type: EdgeType, to_kind: NodeKind) -> list[int]:
        """(from)-[edge_type]->(to:to_kind) one hop forward."""
        stmt = select(graph_edges.c.to_id).where(
            graph_edges.c.from_kind == _kind(from_kind),
            graph_edges.c.from_id == from_id,
            graph_edges.c.edge_type == _edge(edge_type),
            graph_edges.c.to_kind == _kind(to_kind),
        )
        return self._ids(stmt)

    def sources(self, to_kind: NodeKind, to_id: int, edge_type: EdgeType, from_kind: NodeKind) -> list[int]:
        """(from:from_kind)-[edge_type]->(to) one hop backward."""
        stmt = select(graph_edges.c.from_id).where(
            graph_edges.c.to_kind == _kind(to_kind),
            graph_edges.c.to_id == to_id,
            graph_edges.c.edge_type == _edge(edge_type),
            graph_edges.c.from_kind == _kind(from_kind),
        )
        return self._ids(stmt)

    def skill_node_id(self, skill_name: str) -> int | None:
        """Entity ID of the Skill node labelled ``skill_name`` (case-insensitive)."""
        return self.conn.execute(
            select(graph_nodes.c.entity_id)
            .where(
                graph_nodes.c.kind == NodeKind.SKILL.value,
                func.lower(graph_nodes.c.label) == skill_name.strip().lower(),
            )
            .order_by(graph_nodes.c.entity_id)
            .limit(1)
        ).scalar()

    def ids_using_skill(self, kind: NodeKind, skill_name: str) -> list[int]:
        """(x:kind)-[:USED_SKILL]->(s:Skill {name ~ skill_name})."""
        skill = graph_nodes.alias("skill")
        stmt = (
            select(graph_edges.c.from_id)
            .join(
                skill,
                and_(
                    skill.c.kind == graph_edges.c.to_kind,
                    skill.c.entity_id == graph_edges.c.to_id,
                ),
            )
            .where(
                graph_edges.c.from_kind == _kind(kind),
                graph_edges.c.edge_type == EdgeType.USED_SKILL.value,
                graph_edges.c.to_kind == NodeKind.SKILL.value,
                func.lower(skill.c.label) == skill_name.strip().lower(),
            )
        )
        return self._ids(stmt)

    def experience_ids_via_implied_skill(self, skill_name: str) -> list[int]:
        """Two hops: (s:Skill {name})-[:IMPLIES_SKILL]->(t:Skill)<-[:USED_SKILL]-(e:Exp)."""
        implies = graph_edges.alias("implies")
        used = graph_edges.alias("used")
        skill = graph_nodes.alias("skill")
        stmt = (
            select(used.c.from_id)
            .select_from(implies)
            .join(
                skill,
                and_(skill.c.kind == implies.c.from_kind, skill.c.entity_id == implies.c.from_id),
            )
            .join(
                used,
                and_(used.c.to_kind == implies.c.to_kind, used.c.to_id == implies.c.to_id),
            )
            .where(
                implies.c.edge_type == EdgeType.IMPLIES_SKILL.value,
                implies.c.from_kind == NodeKind.SKILL.value,
                func.lower(skill.c.label) == skill_name.strip().lower(),
                used.c.edge_type == EdgeType.USED_SKILL.value,
                used.c.from_kind == NodeKind.EXPERIENCE.value,
            )
        )
        return self._ids(stmt)

    def _ids(self, stmt) -> list[int]:
        return sorted({int(value) for value in self.conn.execute(stmt.distinct()).scalars()})
