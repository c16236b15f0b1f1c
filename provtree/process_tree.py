"""
provtree/process_tree.py - Process Tree Summarizer

Lowers the process timeline into the containment tree: one group per process
holding all of its versions, nested following the parent-process links, then
orphans are assigned and singleton groups collapsed.
"""

from typing import Any, Dict, Optional

from .graph import BaseGraph, SummaryGroup
from .jobs import CancellationToken, JobObserver, ProgressTracker, poll
from .prov import PObject, ProvGraph
from .summarizer import GraphSummarizer
from .timeline import TimelineEvent, compute_process_timeline
from .tree_ops import assign_unassigned, remove_singleton_summaries


def lower_timeline(
    graph: ProvGraph,
    timeline: TimelineEvent[PObject],
    observer: Optional[JobObserver] = None,
    token: Optional[CancellationToken] = None,
) -> Dict[int, SummaryGroup]:
    """
    Create one group per process under the root and nest them following the
    timeline. Returns the groups keyed by process fd.
    """
    root = graph.root
    processes = graph.processes()
    progress = ProgressTracker(observer, len(processes))

    groups: Dict[int, SummaryGroup] = {}
    for count, obj in enumerate(processes):
        progress.update(count)
        poll(token)
        group = graph.new_group(root, obj.short_name)
        groups[obj.fd] = group
        for n in obj.versions:
            if n.parent is not root:
                root.move_from_descendant(n)
            group.move_from_parent(n)

    # Post-order so a child group is nested before its parent moves
    stack = [(timeline, False)]
    while stack:
        event, expanded = stack.pop()
        if not expanded:
            stack.append((event, True))
            stack.extend((sub, False) for sub in reversed(event.subevents))
            continue
        if event.value is None:
            continue
        summary = groups[event.value.fd]
        for sub in event.subevents:
            summary.move_from_parent(groups[sub.value.fd])

    return groups


class ProcessTreeSummarizer(GraphSummarizer):
    """Group every process with its versions, nested by parent process."""

    name = "Process Tree"
    requires_prov_graph = True

    def __init__(self) -> None:
        self.timeline: Optional[TimelineEvent[PObject]] = None

    def _run(
        self,
        graph: BaseGraph,
        observer: Optional[JobObserver],
        token: Optional[CancellationToken],
    ) -> Dict[str, Any]:
        self.timeline = compute_process_timeline(graph)
        groups = lower_timeline(graph, self.timeline, observer, token)
        orphans = assign_unassigned(graph)
        collapsed = remove_singleton_summaries(graph)
        return {
            "processes": len(groups),
            "orphans_assigned": orphans,
            "singletons_removed": collapsed,
        }
