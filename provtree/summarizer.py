"""
provtree/summarizer.py - Summarizer Contract

Every strategy derives from GraphSummarizer and implements _run(). The public
summarize() call:
1. checks the graph type (InvalidGraphError before any mutation)
2. opens the summarization bracket
3. runs the strategy
4. always closes the bracket, even on cancellation or failure
5. returns a receipt describing the run
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, Optional

from receipts import emit_receipt

from .errors import InvalidGraphError
from .graph import BaseGraph, SummaryGroup
from .jobs import CancellationToken, JobObserver, ProgressTracker, poll
from .prov import ProvGraph
from .tree_ops import collect_summary_groups


class GraphSummarizer(ABC):
    """Base class of all summarization strategies."""

    name = "Summarizer"
    requires_prov_graph = False

    def summarize(
        self,
        graph: BaseGraph,
        observer: Optional[JobObserver] = None,
        token: Optional[CancellationToken] = None,
    ) -> Dict[str, Any]:
        if self.requires_prov_graph and not isinstance(graph, ProvGraph):
            raise InvalidGraphError(f"{self.name} needs a ProvGraph, got {type(graph).__name__}")
        if not isinstance(graph, BaseGraph):
            raise InvalidGraphError(f"{self.name} needs a graph, got {type(graph).__name__}")

        start = time.perf_counter()
        first_new_index = graph._next_group_index
        graph.summarization_begin()
        try:
            details = self._run(graph, observer, token) or {}
        finally:
            graph.summarization_end()

        return emit_receipt("summary", {
            "strategy": self.name,
            "nodes": len(graph.nodes),
            "groups": len(graph.groups),
            "groups_created": graph._next_group_index - first_new_index,
            "elapsed_ms": round((time.perf_counter() - start) * 1000, 3),
            **details,
        })

    @abstractmethod
    def _run(
        self,
        graph: BaseGraph,
        observer: Optional[JobObserver],
        token: Optional[CancellationToken],
    ) -> Optional[Dict[str, Any]]:
        """Restructure the containment tree. Called inside the bracket."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def each_group(
    graph: BaseGraph,
    observer: Optional[JobObserver],
    token: Optional[CancellationToken],
) -> Iterator[SummaryGroup]:
    """
    Walk a snapshot of the groups that exist now, reporting progress and
    polling the token once per group. Groups created while walking are not
    visited; groups unlinked while walking are skipped.
    """
    groups = collect_summary_groups(graph.root)
    progress = ProgressTracker(observer, len(groups))
    for count, group in enumerate(groups):
        progress.update(count)
        poll(token)
        if group is not graph.root and group.parent is None:
            continue
        yield group
