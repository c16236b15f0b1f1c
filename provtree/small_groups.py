"""
provtree/small_groups.py - Small-Groups Fallback Summarizer

Any group with more than node_threshold visible children or more than
edge_threshold internal edges is chopped into consecutive subgroups, each
filled until it reaches either threshold. Stops once the parent is back
under both thresholds, or after max_iterations seeds.
"""

from typing import Any, Dict, Optional

from .graph import BaseGraph, SummaryGroup
from .jobs import CancellationToken, JobObserver, poll
from .summarizer import GraphSummarizer, each_group
from .types_config import SmallGroupsConfig


class SmallGroupsSummarizer(GraphSummarizer):
    """Bounded-size grouping for anything still too large."""

    name = "Small Groups"

    def __init__(self, config: Optional[SmallGroupsConfig] = None):
        self.config = config or SmallGroupsConfig()

    def too_large(self, group: SummaryGroup) -> bool:
        nt = self.config.node_threshold
        if group.visible_child_count(limit=nt) > nt:
            return True
        return len(group.internal_edges()) > self.config.edge_threshold

    def _run(
        self,
        graph: BaseGraph,
        observer: Optional[JobObserver],
        token: Optional[CancellationToken],
    ) -> Dict[str, Any]:
        nt = self.config.node_threshold
        et = self.config.edge_threshold
        capped = 0

        for sn in each_group(graph, observer, token):
            iterations = 0
            while self.too_large(sn):
                if iterations >= self.config.max_iterations:
                    capped += 1
                    break
                iterations += 1
                poll(token)

                pivot = next((c for c in sn.children if c.visible), None)
                if pivot is None:
                    break
                group = graph.new_group(sn)
                group.move_from_parent(pivot)

                for n in sn.children:
                    if n is group or not n.visible:
                        continue
                    if group.child_count() >= nt or len(group.internal_edges()) >= et:
                        break
                    group.move_from_parent(n)

        return {"capped_groups": capped}
