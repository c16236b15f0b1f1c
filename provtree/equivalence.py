"""
provtree/equivalence.py - Equivalence-Based Summarizer

Generic pairwise clustering: within every existing group, children that a
SummaryChecker says can be grouped with a pivot are pulled into a new
subgroup together with the pivot. Each group is reworked until a full pass
creates nothing new.

Built-in checkers:
- HashChecker: same index modulo a constant (synthetic, for testing)
- ConsecutiveIndexChecker: same index bucket of a fixed size (synthetic)
- SameConnectedNodesChecker: identical degrees and neighbour sets
- RegexChecker: both labels fully match a pattern; labels the group
"""

import re
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from .constants import DEFAULT_CONSECUTIVE_SIZE, DEFAULT_HASH_CONSTANT
from .graph import BaseGraph, Element, SummaryGroup
from .jobs import CancellationToken, JobObserver, poll
from .summarizer import GraphSummarizer, each_group
from .types_config import EquivalenceConfig


# =============================================================================
# Predicate protocols
# =============================================================================

@runtime_checkable
class SummaryChecker(Protocol):
    def can_group(self, a: Element, b: Element) -> bool: ...


@runtime_checkable
class SummaryLabeler(Protocol):
    def label(self, group: SummaryGroup) -> None: ...


# =============================================================================
# Built-in checkers
# =============================================================================

class HashChecker:
    """Group nodes whose indices agree modulo `constant`."""

    def __init__(self, constant: int = DEFAULT_HASH_CONSTANT):
        if constant <= 0:
            raise ValueError("constant must be positive")
        self.constant = constant

    def can_group(self, a: Element, b: Element) -> bool:
        if a.is_group or b.is_group:
            return False
        return a.index % self.constant == b.index % self.constant


class ConsecutiveIndexChecker:
    """Group nodes whose indices fall into the same block of `size`."""

    def __init__(self, size: int = DEFAULT_CONSECUTIVE_SIZE):
        if size <= 0:
            raise ValueError("size must be positive")
        self.size = size

    def can_group(self, a: Element, b: Element) -> bool:
        if a.is_group or b.is_group:
            return False
        return a.index // self.size == b.index // self.size


class SameConnectedNodesChecker:
    """
    Structural equivalence: same in/out degree and the same sets of source
    and target nodes.
    """

    def can_group(self, a: Element, b: Element) -> bool:
        if a.is_group or b.is_group:
            return False
        if len(a.incoming) != len(b.incoming) or len(a.outgoing) != len(b.outgoing):
            return False
        return a.incoming_nodes() == b.incoming_nodes() and a.outgoing_nodes() == b.outgoing_nodes()


class RegexChecker:
    """Group nodes whose labels both fully match `pattern`."""

    def __init__(self, pattern: str, label: str):
        self.pattern = re.compile(pattern)
        self.group_label = label

    def can_group(self, a: Element, b: Element) -> bool:
        if a.is_group or b.is_group:
            return False
        return (self.pattern.fullmatch(a.label) is not None
                and self.pattern.fullmatch(b.label) is not None)

    def label(self, group: SummaryGroup) -> None:
        group.label = self.group_label


def checker_from_config(config: EquivalenceConfig) -> SummaryChecker:
    """Build the built-in checker named by an EquivalenceConfig."""
    if config.checker == "hash":
        return HashChecker(config.hash_constant)
    if config.checker == "consecutive":
        return ConsecutiveIndexChecker(config.consecutive_size)
    if config.checker == "same_connected_nodes":
        return SameConnectedNodesChecker()
    if config.checker == "regex":
        return RegexChecker(config.pattern, config.label)
    raise ValueError(f"Unknown equivalence checker: {config.checker}")


# =============================================================================
# Summarizer
# =============================================================================

class EquivalenceSummarizer(GraphSummarizer):
    """Pairwise equivalence clustering driven by a SummaryChecker."""

    name = "Equivalence"

    def __init__(self, checker: SummaryChecker):
        self.checker = checker

    def __repr__(self) -> str:
        return f"EquivalenceSummarizer({type(self.checker).__name__})"

    def _run(
        self,
        graph: BaseGraph,
        observer: Optional[JobObserver],
        token: Optional[CancellationToken],
    ) -> Dict[str, Any]:
        labeler = self.checker if isinstance(self.checker, SummaryLabeler) else None
        passes = 0

        for sn in each_group(graph, observer, token):
            groups_created = 1
            while groups_created > 0:
                groups_created = 0
                passes += 1
                nodes = sn.children

                for i, pivot in enumerate(nodes):
                    if not pivot.visible or pivot.parent is not sn:
                        continue
                    poll(token)

                    group: Optional[SummaryGroup] = None
                    for n in nodes[i + 1:]:
                        if n.parent is not sn or not n.visible:
                            continue
                        if self.checker.can_group(pivot, n):
                            if group is None:
                                groups_created += 1
                                group = graph.new_group(sn)
                                group.move_from_parent(pivot)
                            group.move_from_parent(n)

                    if group is not None and labeler is not None:
                        labeler.label(group)

        return {"checker": type(self.checker).__name__, "passes": passes}
