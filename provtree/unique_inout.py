"""
provtree/unique_inout.py - Unique-In/Out Summarizer

Pulls a hub node together with the neighbours that connect only to it:
producers with exactly one visible outgoing and no visible incoming edge,
and consumers with exactly one visible incoming and no visible outgoing edge.
Candidates are materialized greedily, largest first.
"""

from typing import Any, Dict, List, Optional

from .graph import BaseGraph, BaseNode, SummaryGroup
from .jobs import CancellationToken, JobObserver
from .summarizer import GraphSummarizer, each_group
from .types_config import UniqueInOutConfig


def hub_candidates(sn: SummaryGroup, threshold: int) -> Dict[BaseNode, List[BaseNode]]:
    """Map each qualifying hub among sn's children to [hub, leaves...]."""
    candidates: Dict[BaseNode, List[BaseNode]] = {}
    size = sn.child_count()
    for n in sn.children:
        if n.is_group or n.parent is not sn or not n.visible:
            continue
        incoming = n.visible_incoming_nodes()
        outgoing = n.visible_outgoing_nodes()
        if len(incoming) + len(outgoing) < threshold:
            continue

        members = [n]
        for x in sorted(incoming, key=lambda m: m.sort_key()):
            if x.parent is not sn:
                continue
            if len(x.visible_outgoing_nodes()) != 1 or x.visible_incoming_nodes():
                continue
            members.append(x)
        for x in sorted(outgoing, key=lambda m: m.sort_key()):
            if x.parent is not sn:
                continue
            if len(x.visible_incoming_nodes()) != 1 or x.visible_outgoing_nodes():
                continue
            members.append(x)

        if len(members) >= threshold + 1 and len(members) != size:
            candidates[n] = members
    return candidates


class UniqueInOutSummarizer(GraphSummarizer):
    """Group hubs with their exclusive producers and consumers."""

    name = "Unique In/Out Relationships"

    def __init__(self, config: Optional[UniqueInOutConfig] = None):
        self.config = config or UniqueInOutConfig()

    def _run(
        self,
        graph: BaseGraph,
        observer: Optional[JobObserver],
        token: Optional[CancellationToken],
    ) -> Dict[str, Any]:
        hubs: List[str] = []

        for sn in each_group(graph, observer, token):
            candidates = hub_candidates(sn, self.config.threshold)

            while candidates:
                best = max(candidates, key=lambda h: len(candidates[h]))
                members = candidates.pop(best)
                s = graph.new_group(sn, best.label)
                for n in members:
                    candidates.pop(n, None)
                    if n.parent is not sn:
                        continue
                    s.move_from_ancestor(n)
                hubs.append(best.label)

        return {"hubs": hubs}
