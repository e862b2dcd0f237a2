"""
Backbone graph construction.

The backbone graph is an undirected weighted view of the cleaned
interaction edges, used for degree and other structural statistics.
"""

import networkx as nx
import numpy as np
import polars as pl
from typing import Dict, Iterable, Tuple, Union

from ..models.schema import InteractionRecord


Edge = Tuple[str, str, int]


class BackboneGraph:
    """
    Immutable undirected graph over backbone nodes.

    Each interaction becomes an edge weighted by its direction. A pair seen
    twice keeps the weight of the later row. A self-loop counts twice toward
    its node's degree.
    """

    def __init__(self, graph: nx.Graph):
        self._graph = nx.freeze(graph)

    @classmethod
    def from_edges(cls, edges: Iterable[Edge]) -> 'BackboneGraph':
        graph = nx.Graph()
        for source, target, weight in edges:
            graph.add_edge(source, target, weight=int(weight))
        return cls(graph)

    @property
    def nodes(self) -> Tuple[str, ...]:
        return tuple(self._graph.nodes)

    def number_of_nodes(self) -> int:
        return self._graph.number_of_nodes()

    def number_of_edges(self) -> int:
        return self._graph.number_of_edges()

    def has_edge(self, u: str, v: str) -> bool:
        return self._graph.has_edge(u, v)

    def weight(self, u: str, v: str) -> int:
        return self._graph[u][v]['weight']

    def degree(self, node: str) -> int:
        return self._graph.degree(node)

    def degrees(self) -> Dict[str, int]:
        return dict(self._graph.degree())

    def edges(self) -> Tuple[Edge, ...]:
        return tuple((u, v, d['weight']) for u, v, d in self._graph.edges(data=True))

    def self_loops(self) -> Tuple[str, ...]:
        return tuple(u for u, _ in nx.selfloop_edges(self._graph))

    def to_networkx(self) -> nx.Graph:
        """Return a mutable copy of the underlying graph."""
        return nx.Graph(self._graph)

    def _canonical_edges(self) -> frozenset:
        return frozenset(
            (frozenset((u, v)), w) for u, v, w in self.edges()
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BackboneGraph):
            return NotImplemented
        return (
            set(self._graph.nodes) == set(other._graph.nodes)
            and self._canonical_edges() == other._canonical_edges()
        )

    def __hash__(self) -> int:
        return hash((frozenset(self._graph.nodes), self._canonical_edges()))

    def __repr__(self) -> str:
        return f'BackboneGraph(nodes={self.number_of_nodes()}, edges={self.number_of_edges()})'


def build_backbone_graph(
    edges: Union[pl.DataFrame, Iterable[InteractionRecord]],
) -> BackboneGraph:
    """
    Build the backbone graph from cleaned interactions.

    Args:
        edges: Cleaned edge table (SOURCE_NODE, DIRECTION, TARGET_NODE) or
            a sequence of InteractionRecord.

    Returns:
        BackboneGraph; empty input gives an empty graph.
    """
    if isinstance(edges, pl.DataFrame):
        triples = edges.select(['SOURCE_NODE', 'TARGET_NODE', 'DIRECTION']).iter_rows()
    else:
        triples = ((e.source, e.target, e.direction) for e in edges)
    return BackboneGraph.from_edges(triples)


def get_graph_summary(graph: BackboneGraph) -> Dict:
    """
    Get a summary of the backbone graph structure.

    Args:
        graph: BackboneGraph object.

    Returns:
        Dictionary with node/edge counts, sign balance and degree statistics.
    """
    degrees = np.asarray(list(graph.degrees().values()), dtype=np.int64)
    weights = np.asarray([w for _, _, w in graph.edges()], dtype=np.int64)

    return {
        'total_nodes': graph.number_of_nodes(),
        'total_edges': graph.number_of_edges(),
        'self_loops': len(graph.self_loops()),
        'positive_edges': int((weights > 0).sum()),
        'negative_edges': int((weights < 0).sum()),
        'max_degree': int(degrees.max()) if degrees.size else 0,
        'mean_degree': float(degrees.mean()) if degrees.size else 0.0,
        'median_degree': float(np.median(degrees)) if degrees.size else 0.0,
    }


def print_graph_summary(graph: BackboneGraph):
    """Print a formatted summary of the backbone graph."""
    summary = get_graph_summary(graph)

    print("=" * 60)
    print("BACKBONE GRAPH SUMMARY")
    print("=" * 60)
    print(f"\nNodes: {summary['total_nodes']:,}")
    print(f"Edges: {summary['total_edges']:,} "
          f"(+{summary['positive_edges']:,} / -{summary['negative_edges']:,})")
    if summary['self_loops']:
        print(f"Self-loops: {summary['self_loops']:,}")
    print(f"Degree: max {summary['max_degree']}, mean {summary['mean_degree']:.2f}, "
          f"median {summary['median_degree']:.1f}")
    print("=" * 60)
