import networkx as nx
import polars as pl
import pytest

from npamodels.data.graph import (
    BackboneGraph,
    build_backbone_graph,
    get_graph_summary,
)
from npamodels.models.schema import InteractionRecord


def _edges(rows):
    src, direction, tgt = zip(*rows) if rows else ((), (), ())
    return pl.DataFrame(
        {"SOURCE_NODE": list(src), "DIRECTION": list(direction), "TARGET_NODE": list(tgt)},
        schema={"SOURCE_NODE": pl.String, "DIRECTION": pl.Int8, "TARGET_NODE": pl.String},
    )


def test_build_backbone_graph_weights_edges_by_direction():
    graph = build_backbone_graph(_edges([("A", 1, "B"), ("B", -1, "C")]))

    assert set(graph.nodes) == {"A", "B", "C"}
    assert graph.number_of_edges() == 2
    assert graph.weight("A", "B") == 1
    assert graph.weight("C", "B") == -1
    assert graph.degree("B") == 2


def test_build_backbone_graph_later_duplicate_overwrites_weight():
    graph = build_backbone_graph(_edges([("A", 1, "B"), ("B", -1, "A")]))

    assert graph.number_of_edges() == 1
    assert graph.weight("A", "B") == -1
    assert graph.degree("A") == 1


def test_build_backbone_graph_self_loop_counts_twice_toward_degree():
    graph = build_backbone_graph(_edges([("A", 1, "A"), ("A", 1, "B")]))

    assert graph.self_loops() == ("A",)
    assert graph.degree("A") == 3
    assert graph.degree("B") == 1
    assert graph.number_of_edges() == 2


def test_build_backbone_graph_empty_input_gives_empty_graph():
    graph = build_backbone_graph(_edges([]))

    assert graph.number_of_nodes() == 0
    assert graph.number_of_edges() == 0
    assert get_graph_summary(graph)["max_degree"] == 0


def test_build_backbone_graph_accepts_records():
    records = [InteractionRecord("A", "B", 1), InteractionRecord("B", "C", -1)]

    assert build_backbone_graph(records) == build_backbone_graph(_edges([("A", 1, "B"), ("B", -1, "C")]))


def test_backbone_graph_is_frozen():
    graph = build_backbone_graph(_edges([("A", 1, "B")]))

    with pytest.raises(nx.NetworkXError):
        graph._graph.add_edge("B", "C", weight=1)

    copy = graph.to_networkx()
    copy.add_edge("B", "C", weight=1)
    assert graph.number_of_edges() == 1


def test_backbone_graph_equality_ignores_edge_orientation_and_order():
    a = BackboneGraph.from_edges([("A", "B", 1), ("B", "C", -1)])
    b = BackboneGraph.from_edges([("C", "B", -1), ("B", "A", 1)])
    c = BackboneGraph.from_edges([("A", "B", -1), ("B", "C", -1)])

    assert a == b
    assert a != c


def test_get_graph_summary_counts_signs_and_degrees():
    graph = build_backbone_graph(_edges([("A", 1, "B"), ("A", -1, "C"), ("A", -1, "D")]))

    summary = get_graph_summary(graph)

    assert summary["total_nodes"] == 4
    assert summary["total_edges"] == 3
    assert summary["positive_edges"] == 1
    assert summary["negative_edges"] == 2
    assert summary["max_degree"] == 3
    assert summary["mean_degree"] == pytest.approx(1.5)
    assert summary["self_loops"] == 0
