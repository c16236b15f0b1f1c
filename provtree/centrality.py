"""
provtree/centrality.py - Node Centrality Measures

Computed on the networkx export of a graph, keyed by node index:
- betweenness_centrality: fraction of shortest paths through each node
- dangalchev_closeness_centrality: sum over reachable u != v of 2^-d(v, u)

GraphDirection picks which way edges are followed.
"""

from typing import Dict

import networkx as nx

from .constants import GraphDirection
from .graph import BaseGraph


def _simple_view(graph: BaseGraph, direction: GraphDirection) -> nx.Graph:
    multi = graph.to_networkx(direction)
    return nx.Graph(multi) if direction is GraphDirection.UNDIRECTED else nx.DiGraph(multi)


def betweenness_centrality(
    graph: BaseGraph,
    direction: GraphDirection = GraphDirection.DIRECTED,
    normalized: bool = False,
) -> Dict[int, float]:
    """Unweighted betweenness centrality of every node."""
    g = _simple_view(graph, direction)
    return {int(k): float(v) for k, v in nx.betweenness_centrality(g, normalized=normalized).items()}


def dangalchev_closeness_centrality(
    graph: BaseGraph,
    direction: GraphDirection = GraphDirection.DIRECTED,
) -> Dict[int, float]:
    """Dangalchev closeness: unreachable nodes contribute nothing."""
    g = _simple_view(graph, direction)
    result: Dict[int, float] = {}
    for v, lengths in nx.all_pairs_shortest_path_length(g):
        result[int(v)] = float(sum(2.0 ** -d for u, d in lengths.items() if u != v))
    return result
