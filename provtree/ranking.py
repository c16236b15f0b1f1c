"""
provtree/ranking.py - ProvRank and SubRank

Undamped random-walk importance score over all graph nodes.

Each round:
    X        = (sum of scores of nodes without outgoing edges) / N
    aux[v]   = sum of score[u] over every edge u -> v  (multi-edges count)
    score[v] = (X + aux[v]) / sum over all nodes of (X + aux)

Scores start at 1/N. There is no damping factor; sink nodes spread their
whole score evenly over every node.

SubRank is the acyclic companion score: the fraction of the graph that lies
upstream of each node.
"""

import time
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Set

import numpy as np

from receipts import emit_receipt

from .constants import DEFAULT_RANK_ITERATIONS
from .errors import InvalidGraphError
from .graph import BaseGraph, BaseNode
from .jobs import CancellationToken, JobObserver, poll


class ProvRank:
    """Iterative importance ranking of a graph's nodes."""

    name = "ProvRank"

    def __init__(self, graph: BaseGraph, iterations: int = DEFAULT_RANK_ITERATIONS):
        if iterations < 0:
            raise ValueError("iterations must be non-negative")
        self.graph = graph
        self.iterations = iterations
        # Sum of scores after each normalization, for inspection
        self.sums: List[float] = []

    def run(
        self,
        observer: Optional[JobObserver] = None,
        token: Optional[CancellationToken] = None,
    ) -> Dict[str, Any]:
        """Compute ranks, write them to node.rank, and return a receipt."""
        start = time.perf_counter()
        nodes = self.graph.nodes
        n = len(nodes)
        self.sums = []

        if n == 0:
            return emit_receipt("rank", {"nodes": 0, "iterations": 0, "elapsed_ms": 0.0})

        for node in nodes:
            node.aux = 0.0

        sources = np.fromiter((e.source.index for e in self.graph.edges), dtype=np.int64,
                              count=len(self.graph.edges))
        targets = np.fromiter((e.target.index for e in self.graph.edges), dtype=np.int64,
                              count=len(self.graph.edges))
        sinks = np.array([len(node.outgoing) == 0 for node in nodes], dtype=bool)
        rank = np.full(n, 1.0 / n)

        if observer is not None:
            observer.set_range(0, self.iterations)

        for i in range(self.iterations):
            poll(token)
            if observer is not None:
                observer.set_progress(i)

            x = rank[sinks].sum() / n
            aux = np.zeros(n)
            np.add.at(aux, targets, rank[sources])
            new = x + aux
            total = new.sum()
            rank = new / total
            self.sums.append(float(rank.sum()))

        if observer is not None:
            observer.set_progress(self.iterations)
            observer.make_indeterminate()

        for node, r in zip(nodes, rank):
            node.rank = float(r)
        self.graph.has_rank = True
        self.graph.update_rank_statistics()

        return emit_receipt("rank", {
            "nodes": n,
            "edges": len(self.graph.edges),
            "iterations": self.iterations,
            "rank_min": self.graph.stat.rank_min,
            "rank_max": self.graph.stat.rank_max,
            "elapsed_ms": round((time.perf_counter() - start) * 1000, 3),
        })

    def top(self, k: int = 10) -> List[Any]:
        """The k highest ranked nodes, ties by index."""
        return sorted(self.graph.nodes, key=lambda v: (-v.rank, v.index))[:k]


def rank_graph(graph: BaseGraph, iterations: int = DEFAULT_RANK_ITERATIONS) -> Dict[str, Any]:
    """Convenience wrapper: run ProvRank to completion."""
    return ProvRank(graph, iterations).run()


# =============================================================================
# SubRank
# =============================================================================

class SubRank:
    """
    Share of the graph each node depends on.

    subrank(n) = |ancestors(n) + {n}| / N, computed in one topological sweep
    that hands each node's ancestor set down its outgoing edges. Hidden nodes
    score a flat 1/N but still pass their ancestors on. The graph must be
    acyclic: self-loops and cycles raise InvalidGraphError and leave the
    previous scores in place.
    """

    name = "SubRank"

    def __init__(self, graph: BaseGraph):
        self.graph = graph

    def run(
        self,
        observer: Optional[JobObserver] = None,
        token: Optional[CancellationToken] = None,
    ) -> Dict[str, Any]:
        """Compute scores, write them to node.subrank, and return a receipt."""
        start = time.perf_counter()
        nodes = self.graph.nodes
        n = len(nodes)
        if n == 0:
            return emit_receipt("subrank", {"nodes": 0, "elapsed_ms": 0.0})

        for e in self.graph.edges:
            if e.source is e.target:
                raise InvalidGraphError(f"The graph contains a self-loop at node {e.source.index}")

        pending = [len(node.incoming) for node in nodes]
        ancestors: Dict[int, Set[int]] = {}
        active: Deque[BaseNode] = deque()
        for node in nodes:
            if not node.incoming:
                active.append(node)
                ancestors[node.index] = set()

        if observer is not None:
            observer.set_range(0, n)

        scores = [0.0] * n
        processed = 0
        while active:
            poll(token)
            v = active.popleft()
            processed += 1
            subgraph = ancestors.pop(v.index)
            subgraph.add(v.index)
            scores[v.index] = len(subgraph) / n if v.visible else 1.0 / n

            for e in v.outgoing:
                m = e.target.index
                pending[m] -= 1
                if m in ancestors:
                    ancestors[m] |= subgraph
                else:
                    ancestors[m] = set(subgraph)
                if pending[m] == 0:
                    active.append(e.target)

            if observer is not None:
                observer.set_progress(processed)

        if processed != n:
            raise InvalidGraphError(
                f"The graph contains a cycle ({n - processed} nodes unreachable in topological order)"
            )

        if observer is not None:
            observer.make_indeterminate()

        for node, s in zip(nodes, scores):
            node.subrank = s
        self.graph.has_subrank = True
        self.graph.update_subrank_statistics()

        return emit_receipt("subrank", {
            "nodes": n,
            "edges": len(self.graph.edges),
            "sources": sum(1 for node in nodes if not node.incoming),
            "subrank_min": self.graph.stat.subrank_min,
            "subrank_max": self.graph.stat.subrank_max,
            "elapsed_ms": round((time.perf_counter() - start) * 1000, 3),
        })

    def top(self, k: int = 10) -> List[Any]:
        """The k nodes with the highest SubRank, ties by index."""
        return sorted(self.graph.nodes, key=lambda v: (-v.subrank, v.index))[:k]


def subrank_graph(graph: BaseGraph) -> Dict[str, Any]:
    """Convenience wrapper: run SubRank to completion."""
    return SubRank(graph).run()
