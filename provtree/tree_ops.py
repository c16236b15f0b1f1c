"""
provtree/tree_ops.py - Containment Tree Restructuring Utilities

Shared post-processing passes used by the summarizers:
- common_ancestor: lowest element containing two tree elements
- collect_summary_groups: snapshot of all groups below a root
- assign_unassigned: pull root-level orphans into their neighbours' group
- remove_small_summaries / remove_singleton_summaries: dissolve undersized groups
- check_consistency: verify the containment tree, raise TreeInvariantError

The move primitives themselves live on SummaryGroup (provtree/graph.py).
All passes here except check_consistency must run inside a summarization.
"""

from typing import List, Optional

import networkx as nx

from .errors import TreeInvariantError
from .graph import BaseGraph, Element, SummaryGroup


def common_ancestor(a: Element, b: Element) -> Optional[Element]:
    """
    Nearest element containing both a and b. An element is its own ancestor,
    so common_ancestor(n, n) is n. None if they live in different trees.
    """
    seen = set()
    x: Optional[Element] = a
    while x is not None:
        seen.add(id(x))
        x = x.parent
    y: Optional[Element] = b
    while y is not None:
        if id(y) in seen:
            return y
        y = y.parent
    return None


def collect_summary_groups(root: SummaryGroup) -> List[SummaryGroup]:
    """Snapshot of every group reachable from root, root first."""
    return root.collect_groups()


def assign_unassigned(graph: BaseGraph) -> int:
    """
    Move connected nodes sitting directly under the root into the lowest
    group containing all their non-root-level neighbours.

    Repeats until no node moves. Returns the number of moves.
    """
    root = graph.root
    moves = 0
    done = False
    while not done:
        done = True
        for n in graph.nodes:
            if n.parent is not root:
                continue
            if not n.incoming and not n.outgoing:
                continue

            c: Optional[Element] = None
            neighbours = [e.source for e in n.incoming] + [e.target for e in n.outgoing]
            for x in neighbours:
                if x.parent is root:
                    continue
                c = x if c is None else common_ancestor(x, c)

            if c is None:
                continue
            if not c.is_group:
                c = c.parent
            if c is None or c is root:
                continue

            c.move_from_ancestor(n)
            moves += 1
            done = False
    return moves


def remove_small_summaries(graph: BaseGraph, threshold: int) -> int:
    """
    Dissolve every group with at most `threshold` visible children into its
    parent, until no group qualifies. The root is never removed; when it
    qualifies itself, its child groups are dissolved into it instead.

    Returns the number of groups removed.
    """
    root = graph.root
    removed = 0
    done = False
    while not done:
        done = True
        for s in collect_summary_groups(root):
            if s is not root and s.parent is None:
                continue  # unlinked earlier in this pass
            if s.visible_child_count(limit=threshold) > threshold:
                continue

            if s is root:
                for child in s.children:
                    if child.is_group:
                        for x in child.children:
                            s.move_from_child(x)
                            done = False
                continue

            parent = s.parent
            for child in s.children:
                parent.move_from_child(child)
            s.unlink_empty()
            removed += 1
            done = False
    return removed


def remove_singleton_summaries(graph: BaseGraph) -> int:
    """Dissolve groups with at most one visible child."""
    return remove_small_summaries(graph, 1)


def check_consistency(graph: BaseGraph) -> None:
    """
    Verify the containment tree.

    Checks parent/child back references, that the tree is an arborescence
    rooted at graph.root, and that every raw node appears exactly once.
    Raises TreeInvariantError on the first violation found.
    """
    root = graph.root
    if root.parent is not None:
        raise TreeInvariantError("The root group has a parent")

    for group in collect_summary_groups(root):
        if group.graph is not graph:
            raise TreeInvariantError(f"{group!r} belongs to another graph")
        for child in group.children:
            if child.parent is not group:
                raise TreeInvariantError(
                    f"{child!r} is listed under {group!r} but points to {child.parent!r}"
                )

    tree = graph.containment_tree()
    if tree.number_of_nodes() > 1 and not nx.is_arborescence(tree):
        raise TreeInvariantError("The containment structure is not a tree")

    nodes = root.collect_nodes()
    if len(nodes) != len(graph.nodes) or len({id(n) for n in nodes}) != len(nodes):
        raise TreeInvariantError(
            f"Containment tree holds {len(nodes)} node entries for {len(graph.nodes)} graph nodes"
        )
    for n in graph.nodes:
        if not root.contains(n):
            raise TreeInvariantError(f"{n!r} is not reachable from the root")
