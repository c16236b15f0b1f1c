"""
provtree/timestamps.py - Timestamp Clustering Summarizer

Splits flat groups into time-contiguous clusters, recursively, aiming for
leaf clusters of min_nodes_per_cluster..max_nodes_per_cluster members.

Per group:
1. Eligible children, optionally processes only and optionally skipping
   untimestamped nodes. With keep_versions_together only first versions are
   clustered; aux of each clustered node is stamped with its latest version's time.
2. Sort by time, ties by node identity.
3. Search a threshold multiplier so the gap clustering yields a cluster
   count inside the desired band (warn on shortfall, keep going).
4. Cut the sorted list wherever the gap from the last break time exceeds
   the threshold.
5. Merge undersized clusters into their closer neighbour; chunk a lone
   oversized cluster into near-equal contiguous pieces.
6. Re-attach later versions next to their first version.
7. Label each cluster after its member with the highest visible out-degree.
8. Queue clusters still above the maximum.
"""

import math
import warnings
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from receipts import emit_receipt

from .constants import ObjectType
from .graph import BaseGraph, SummaryGroup
from .jobs import CancellationToken, JobObserver, ProgressTracker, poll
from .prov import ProvGraph, ProvNode
from .summarizer import GraphSummarizer
from .tree_ops import assign_unassigned, remove_singleton_summaries
from .types_config import TimestampConfig, TIMESTAMPS_PROCESSES_ONLY


class TimestampsSummarizer(GraphSummarizer):
    """Adaptive time-gap clustering."""

    name = "Timestamps"
    requires_prov_graph = True

    def __init__(self, config: Optional[TimestampConfig] = None):
        self.config = config or TimestampConfig()
        self.shortfalls: List[Dict[str, Any]] = []

    # =========================================================================
    # Time helpers
    # =========================================================================

    def node_time(self, node: ProvNode) -> float:
        return node.time if self.config.use_adjusted_time else node.time_unadjusted

    def base_threshold(self, graph: ProvGraph) -> float:
        """Average time gap per node over the whole graph."""
        if not graph.nodes:
            return 1.0
        offset = graph.time_base if self.config.use_adjusted_time else 0.0
        return (graph.stat.time_unadjusted_max - offset) / len(graph.nodes)

    def eligible_nodes(self, summary: SummaryGroup) -> Tuple[List[ProvNode], List[ProvNode]]:
        """(all eligible children, the ones to cluster), stamping aux."""
        work: List[ProvNode] = []
        for n in summary.children:
            if n.is_group or not isinstance(n, ProvNode):
                continue
            if self.config.processes_only and (n.obj is None or n.obj.type is not ObjectType.PROCESS):
                continue
            if self.config.untimestamped_later and n.time == 0:
                continue
            work.append(n)

        nodes: List[ProvNode] = []
        for n in work:
            if self.config.keep_versions_together and n.prev is not None:
                continue
            latest = n
            while latest.next is not None:
                latest = latest.next
            n.aux = self.node_time(latest)
            nodes.append(n)

        nodes.sort(key=lambda n: (self.node_time(n),) + n.sort_key())
        return work, nodes

    # =========================================================================
    # Gap clustering
    # =========================================================================

    def cluster_count(self, nodes: List[ProvNode], threshold: float) -> int:
        if not nodes:
            return 0
        last = self.node_time(nodes[0])
        count = 1
        for n in nodes:
            dt = self.node_time(n) - last
            if dt > threshold:
                last = n.aux
                count += 1
            if self.config.use_break_times:
                last = n.aux
        return count

    def search_multiplier(self, nodes: List[ProvNode], base: float) -> Tuple[float, int, bool]:
        """Return (multiplier, cluster count, converged)."""
        lo, hi = self.config.cluster_band
        m = self.config.initial_multiplier
        for _ in range(self.config.max_retries):
            count = self.cluster_count(nodes, m * base)
            if count < lo:
                m *= 2
            elif count > hi:
                m *= 0.5
            else:
                return m, count, True
        return m, self.cluster_count(nodes, m * base), False

    def partition(self, nodes: List[ProvNode], threshold: float) -> List[List[ProvNode]]:
        clusters: List[List[ProvNode]] = [[]]
        last = self.node_time(nodes[0])
        for n in nodes:
            dt = self.node_time(n) - last
            if self.config.use_break_times:
                last = n.aux
            if dt > threshold:
                clusters.append([])
                last = n.aux
            clusters[-1].append(n)
        return clusters

    def enforce_bounds(self, clusters: List[List[ProvNode]]) -> List[List[ProvNode]]:
        """Merge undersized clusters; chunk a lone oversized one."""
        lo = self.config.min_nodes_per_cluster
        hi = self.config.max_nodes_per_cluster
        t = self.node_time

        while len(clusters) > 1:
            i = next((k for k, c in enumerate(clusters) if len(c) < lo), None)
            if i is None:
                break
            left = t(clusters[i][0]) - t(clusters[i - 1][-1]) if i > 0 else math.inf
            right = t(clusters[i + 1][0]) - t(clusters[i][-1]) if i + 1 < len(clusters) else math.inf
            small = clusters.pop(i)
            if left <= right:
                clusters[i - 1].extend(small)
            else:
                clusters[i] = small + clusters[i]

        if len(clusters) == 1 and len(clusters[0]) > hi:
            only = clusters[0]
            pieces = np.array_split(np.arange(len(only)), math.ceil(len(only) / hi))
            clusters = [[only[j] for j in piece] for piece in pieces]
        return clusters

    # =========================================================================
    # One group
    # =========================================================================

    def summarize_group(self, graph: ProvGraph, summary: SummaryGroup, base: float) -> List[SummaryGroup]:
        """Cluster one group. Returns the clusters still above the maximum."""
        work, nodes = self.eligible_nodes(summary)
        if not nodes:
            return []

        m, count, converged = self.search_multiplier(nodes, base)
        lo, hi = self.config.cluster_band
        # Fewer nodes than the lower band can never converge
        if not converged and len(nodes) >= lo:
            warnings.warn(
                f"Timestamps: threshold search reached the retry limit; count = {count}, "
                f"wanted {lo}..{hi}",
                RuntimeWarning, stacklevel=4,
            )
            self.shortfalls.append(emit_receipt("threshold_search_shortfall", {
                "group": summary.index,
                "nodes": len(nodes),
                "multiplier": m,
                "count": count,
                "band": [lo, hi],
            }))

        clusters = self.enforce_bounds(self.partition(nodes, m * base))

        created: List[SummaryGroup] = []
        for cluster in clusters:
            s = graph.new_group(summary)
            for n in cluster:
                s.move_from_parent(n)
            created.append(s)

        if self.config.keep_versions_together:
            owners = set(created)
            for n in work:
                if n.prev is None:
                    continue
                first = n.first_version()
                if first.parent in owners and n.parent is summary:
                    first.parent.move_from_ancestor(n)

        for s in created:
            best = None
            best_degree = -1
            for n in s.children:
                if n.is_group:
                    continue
                degree = sum(1 for e in n.outgoing if e.target.visible)
                if degree > best_degree:
                    best_degree = degree
                    best = n
            if best is not None:
                s.label = best.label

        if len(created) > 1:
            return [s for s in created if s.child_count() > self.config.max_nodes_per_cluster]
        return []

    def _run(
        self,
        graph: BaseGraph,
        observer: Optional[JobObserver],
        token: Optional[CancellationToken],
    ) -> Dict[str, Any]:
        self.shortfalls = []
        base = self.base_threshold(graph)
        progress = ProgressTracker(observer, 0)

        worklist: List[SummaryGroup] = [graph.root]
        processed = 0
        while worklist:
            poll(token)
            summary = worklist.pop()
            worklist.extend(reversed(self.summarize_group(graph, summary, base)))
            processed += 1
            progress.update(processed)

        assign_unassigned(graph)
        remove_singleton_summaries(graph)

        return {
            "base_threshold": base,
            "groups_processed": processed,
            "shortfalls": len(self.shortfalls),
        }


class ProcessesOnlyTimestampsSummarizer(TimestampsSummarizer):
    """Timestamp clustering restricted to process nodes."""

    name = "Timestamps (Processes Only)"

    def __init__(self, config: Optional[TimestampConfig] = None):
        super().__init__(config or TIMESTAMPS_PROCESSES_ONLY)
        if not self.config.processes_only:
            self.config = replace(self.config, processes_only=True)
