"""Graph overlay: idempotent upserts, endpoint checks, traversals."""

import pytest

from careerkb.core.errors import PartialFailure
from careerkb.core.models.enums import EdgeType, NodeKind
from careerkb.kb.storage.graph_store import GraphStore


def test_node_upsert_is_idempotent_and_overwrites_props(database):
    with database.transaction() as conn:
        graph = GraphStore(conn)
        graph.upsert_node(NodeKind.SKILL, 1, {"name": "Go"})
        graph.upsert_node(NodeKind.SKILL, 1, {"name": "Golang"})

        assert graph.count_nodes() == 1
        node = graph.get_node(NodeKind.SKILL, 1)
        assert node.label == "Golang"
        assert node.props == {"name": "Golang"}


def test_same_entity_id_under_different_kinds_are_distinct_nodes(database):
    with database.transaction() as conn:
        graph = GraphStore(conn)
        graph.upsert_node(NodeKind.SKILL, 1, {"name": "Go"})
        graph.upsert_node(NodeKind.EXPERIENCE, 1, {"title": "Engineer", "company": "Acme"})
        assert graph.count_nodes() == 2
        assert graph.get_node(NodeKind.EXPERIENCE, 1).label == "Engineer"


def test_edge_requires_both_endpoints(database):
    with database.transaction() as conn:
        graph = GraphStore(conn)
        graph.upsert_node(NodeKind.EXPERIENCE, 1, {"title": "Engineer"})
        with pytest.raises(PartialFailure) as exc_info:
            graph.add_edge(NodeKind.EXPERIENCE, 1, EdgeType.USED_SKILL, NodeKind.SKILL, 99)
        assert exc_info.value.context["missing"] == "Skill:99"
        assert graph.count_edges() == 0


def test_duplicate_edge_is_a_noop(database):
    with database.transaction() as conn:
        graph = GraphStore(conn)
        graph.upsert_node(NodeKind.EXPERIENCE, 1, {"title": "Engineer"})
        graph.upsert_node(NodeKind.SKILL, 2, {"name": "Go"})

        assert graph.add_edge(NodeKind.EXPERIENCE, 1, EdgeType.USED_SKILL, NodeKind.SKILL, 2) is True
        assert graph.add_edge(NodeKind.EXPERIENCE, 1, EdgeType.USED_SKILL, NodeKind.SKILL, 2) is False
        assert graph.count_edges() == 1


def test_traversals_return_entity_ids(database):
    with database.transaction() as conn:
        graph = GraphStore(conn)
        graph.upsert_node(NodeKind.EXPERIENCE, 1, {"title": "Engineer"})
        graph.upsert_node(NodeKind.EXPERIENCE, 2, {"title": "Lead"})
        graph.upsert_node(NodeKind.SKILL, 10, {"name": "Kubernetes"})
        graph.upsert_node(NodeKind.SKILL, 11, {"name": "Docker"})
        graph.upsert_node(NodeKind.ACHIEVEMENT, 5, {"text": "Cut costs"})
        graph.add_edge(NodeKind.EXPERIENCE, 1, EdgeType.USED_SKILL, NodeKind.SKILL, 10)
        graph.add_edge(NodeKind.EXPERIENCE, 2, EdgeType.USED_SKILL, NodeKind.SKILL, 11)
        graph.add_edge(NodeKind.SKILL, 10, EdgeType.IMPLIES_SKILL, NodeKind.SKILL, 11)
        graph.add_edge(NodeKind.EXPERIENCE, 1, EdgeType.PRODUCED, NodeKind.ACHIEVEMENT, 5)

        assert graph.ids_using_skill(NodeKind.EXPERIENCE, "kubernetes") == [1]
        assert graph.experience_ids_via_implied_skill("KUBERNETES") == [2]
        assert graph.targets(NodeKind.EXPERIENCE, 1, EdgeType.PRODUCED, NodeKind.ACHIEVEMENT) == [5]
        assert graph.skill_node_id("docker") == 11


def test_labels_with_quotes_are_stored_verbatim(database):
    label = "O'Reilly \"Go\" $$ MATCH (n) DETACH DELETE n"
    with database.transaction() as conn:
        graph = GraphStore(conn)
        graph.upsert_node(NodeKind.SKILL, 1, {"name": label})
        assert graph.get_node(NodeKind.SKILL, 1).label == label
        assert graph.skill_node_id(label) == 1


def test_clear_removes_nodes_and_edges(database):
    with database.transaction() as conn:
        graph = GraphStore(conn)
        graph.upsert_node(NodeKind.EXPERIENCE, 1, {"title": "Engineer"})
        graph.upsert_node(NodeKind.SKILL, 2, {"name": "Go"})
        graph.add_edge(NodeKind.EXPERIENCE, 1, EdgeType.USED_SKILL, NodeKind.SKILL, 2)
        graph.clear()
        assert graph.count_nodes() == 0
        assert graph.count_edges() == 0
