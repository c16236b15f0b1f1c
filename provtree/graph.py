"""
provtree/graph.py - Graph Model and Containment Tree

The generic half of the graph model:

- BaseNode: a raw graph node with ordered incoming/outgoing edges, a visibility
  flag, a scratch `aux` slot and an importance `rank`
- Edge / SummaryEdge: typed directed edges, and collapsed edges between groups
- SummaryGroup: a node of the containment tree. Its children are raw nodes or
  other groups. The move primitives here are the only way membership changes.
- BaseGraph: owns nodes, edges, the root group and the summarization bracket

Central invariant: every raw node and every group except the root has exactly
one parent group, and following parents always ends at the root.
Membership changes are only allowed between summarization_begin() and
summarization_end().
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import (
    Any, Callable, Dict, Iterator, List, Optional, Protocol, Set, Union,
)

import networkx as nx
import numpy as np

from .constants import EdgeType, GraphDirection
from .errors import TreeInvariantError


# =============================================================================
# Nodes and Edges
# =============================================================================

@dataclass(eq=False)
class BaseNode:
    """A raw graph node. Identity is the object itself; `index` is dense."""
    index: int = -1
    label: str = ""
    visible: bool = True
    aux: float = 0.0
    rank: float = 0.0
    subrank: float = 0.0
    incoming: List["Edge"] = field(default_factory=list, repr=False)
    outgoing: List["Edge"] = field(default_factory=list, repr=False)
    parent: Optional["SummaryGroup"] = field(default=None, repr=False)

    is_group = False

    def incoming_nodes(self) -> Set["BaseNode"]:
        return {e.source for e in self.incoming}

    def outgoing_nodes(self) -> Set["BaseNode"]:
        return {e.target for e in self.outgoing}

    def visible_incoming_nodes(self) -> Set["BaseNode"]:
        return {e.source for e in self.incoming if e.source.visible}

    def visible_outgoing_nodes(self) -> Set["BaseNode"]:
        return {e.target for e in self.outgoing if e.target.visible}

    @property
    def depth(self) -> int:
        return _depth(self)

    def sort_key(self) -> tuple:
        """Stable identity ordering used to break ties."""
        return (self.index,)


@dataclass(eq=False)
class Edge:
    """A typed, directed edge between two raw nodes."""
    source: BaseNode
    target: BaseNode
    type: EdgeType = EdgeType.DATA
    label: str = ""

    def __repr__(self) -> str:
        return f"Edge({self.source.index}->{self.target.index}, {self.type.value})"


@dataclass(eq=False)
class SummaryEdge:
    """Collapsed edge between two children of a group, one of them a group."""
    source: Union[BaseNode, "SummaryGroup"]
    target: Union[BaseNode, "SummaryGroup"]
    edges: List[Edge] = field(default_factory=list)
    type: EdgeType = EdgeType.COMPOUND


Element = Union[BaseNode, "SummaryGroup"]


def _depth(element: Element) -> int:
    d = 0
    p = element.parent
    while p is not None:
        d += 1
        p = p.parent
    return d


# =============================================================================
# Summary Groups
# =============================================================================

class SummaryGroup:
    """
    A node of the containment tree.

    Children are kept in insertion order. The set of internal edges is computed
    lazily and dropped whenever a direct child is added or removed.
    """

    is_group = True

    def __init__(self, graph: "BaseGraph", index: int, label: str = ""):
        self.graph = graph
        self.index = index
        self.label = label
        self.visible = True
        self.parent: Optional[SummaryGroup] = None
        self._children: Dict[Element, None] = {}
        self._internal_edges: Optional[List[Union[Edge, SummaryEdge]]] = None

    def __repr__(self) -> str:
        return f"SummaryGroup(index={self.index}, label={self.label!r}, children={len(self._children)})"

    # --- read side ---

    @property
    def children(self) -> List[Element]:
        """Snapshot of the direct children."""
        return list(self._children)

    def child_count(self) -> int:
        return len(self._children)

    def has_child(self, element: Element) -> bool:
        return element in self._children

    def visible_child_count(self, limit: Optional[int] = None) -> int:
        """Count visible children, stopping early once `limit` is exceeded."""
        count = 0
        for child in self._children:
            if child.visible:
                count += 1
                if limit is not None and count > limit:
                    break
        return count

    @property
    def depth(self) -> int:
        return _depth(self)

    def contains(self, element: Element) -> bool:
        """True if element is this group or lies anywhere below it."""
        a: Optional[Element] = element
        while a is not None:
            if a is self:
                return True
            a = a.parent
        return False

    def contained_in(self, element: Element) -> Optional[Element]:
        """Return the direct child of this group whose subtree holds element."""
        a: Optional[Element] = element
        while a is not None:
            if a.parent is self:
                return a
            a = a.parent
        return None

    def collect_groups(self, out: Optional[List["SummaryGroup"]] = None) -> List["SummaryGroup"]:
        """Pre-order list of this group and every group below it."""
        if out is None:
            out = []
        seen: Set[int] = set()
        stack: List[SummaryGroup] = [self]
        while stack:
            g = stack.pop()
            if id(g) in seen:
                continue
            seen.add(id(g))
            out.append(g)
            stack.extend(reversed([c for c in g._children if c.is_group]))
        return out

    def collect_nodes(self, out: Optional[List[BaseNode]] = None) -> List[BaseNode]:
        """Every raw node below this group, in tree order."""
        if out is None:
            out = []
        stack: List[Element] = [self]
        while stack:
            x = stack.pop()
            if x.is_group:
                stack.extend(reversed(list(x._children)))
            else:
                out.append(x)
        return out

    def count_groups(self) -> int:
        return len(self.collect_groups())

    def internal_edges(self) -> List[Union[Edge, SummaryEdge]]:
        """
        Edges between distinct direct children of this group.

        Raw-to-raw edges are returned as they are. Edges with a group endpoint
        are collapsed into one SummaryEdge per (source child, target child).
        Edges inside a single child group are not internal to this level.
        """
        if self._internal_edges is not None:
            return self._internal_edges

        result: List[Union[Edge, SummaryEdge]] = []
        collapsed: Dict[tuple, SummaryEdge] = {}

        for node in self.collect_nodes():
            for e in node.outgoing:
                f = self.contained_in(e.source)
                t = self.contained_in(e.target)
                if f is None or t is None:
                    continue
                if f is e.source and t is e.target:
                    result.append(e)
                    continue
                if f is t:
                    continue
                key = (id(f), id(t))
                se = collapsed.get(key)
                if se is None:
                    se = SummaryEdge(f, t)
                    collapsed[key] = se
                    result.append(se)
                se.edges.append(e)

        self._internal_edges = result
        return result

    # --- write side (requires an active summarization) ---

    def _require_active(self) -> None:
        if not self.graph.summarizing:
            raise TreeInvariantError(
                "Trying to modify a summary group while summarization is not in progress"
            )

    def _add_child(self, element: Element) -> None:
        self._require_active()
        element.parent = self
        self._children[element] = None
        self._internal_edges = None

    def _remove_child(self, element: Element) -> None:
        self._require_active()
        if element not in self._children:
            raise TreeInvariantError(f"{element!r} is not a child of {self!r}")
        del self._children[element]
        element.parent = None
        self._internal_edges = None

    def move_from_parent(self, element: Element) -> None:
        """Move a direct child of this group's parent into this group."""
        if element is self:
            raise TreeInvariantError("A group cannot contain itself")
        if self.parent is None or element.parent is not self.parent:
            raise TreeInvariantError(
                f"Trying to add {element!r} that is not in the parent's collection"
            )
        self.parent._remove_child(element)
        self._add_child(element)

    def move_from_ancestor(self, element: Element) -> None:
        """Lower an element owned by any ancestor of this group into it."""
        if element is self or element.parent is self:
            return
        # Groups between the owner of element and this group, innermost first
        path: List[SummaryGroup] = []
        a: Optional[SummaryGroup] = self
        while a is not None and a is not element.parent:
            if a is element:
                raise TreeInvariantError(f"{element!r} is an ancestor of {self!r}")
            path.append(a)
            a = a.parent
        if a is None:
            raise TreeInvariantError(
                f"Trying to add {element!r} that is not in the collection of any ancestor"
            )
        for group in reversed(path):
            group.move_from_parent(element)

    def move_from_child(self, element: Element) -> None:
        """Promote an element from one of this group's child groups."""
        source = element.parent
        if source is None or source.parent is not self:
            raise TreeInvariantError(
                f"Trying to add {element!r} that is not in this group's child collections"
            )
        source._remove_child(element)
        self._add_child(element)

    def move_from_descendant(self, element: Element) -> None:
        """Promote an element from anywhere below this group to a direct child."""
        if element is self or not self.contains(element):
            raise TreeInvariantError(f"{element!r} is not below {self!r}")
        while element.parent is not self:
            element.parent.parent.move_from_child(element)

    def unlink_empty(self) -> None:
        """Detach this (empty, non-root) group from the tree."""
        if self._children:
            raise TreeInvariantError("Not empty")
        if self is self.graph.root:
            raise TreeInvariantError("The root group cannot be unlinked")
        if self.parent is not None:
            self.parent._remove_child(self)
        self.graph._forget_group(self)


# =============================================================================
# Summarization listeners
# =============================================================================

class SummaryListener(Protocol):
    """Host callbacks around a summarization transaction."""

    def summarization_begin(self, graph: "BaseGraph") -> None: ...

    def summarization_end(self, graph: "BaseGraph") -> None: ...


# =============================================================================
# Statistics
# =============================================================================

@dataclass
class GraphStat:
    """Cached graph statistics. Time fields are only filled for ProvGraph."""
    time_unadjusted_min: float = 0.0
    time_unadjusted_max: float = 0.0
    indegree_min: int = 0
    indegree_max: int = 0
    outdegree_min: int = 0
    outdegree_max: int = 0
    degree_min: int = 0
    degree_max: int = 0
    depth_min: int = 0
    depth_max: int = 0
    rank_min: float = 0.0
    rank_max: float = 0.0
    rank_jump_min: float = 0.0
    rank_jump_max: float = 0.0
    rank_log_jump_min: float = 0.0
    rank_log_jump_max: float = 0.0
    rank_mean_log_jump_min: float = 0.0
    rank_mean_log_jump_max: float = 0.0
    rank_quantiles: Dict[str, float] = field(default_factory=dict)
    subrank_min: float = 0.0
    subrank_max: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)


def structure_statistics(stat: GraphStat, nodes: List[BaseNode]) -> None:
    """Fill degree and depth ranges from the current graph."""
    if not nodes:
        stat.indegree_min = stat.indegree_max = 0
        stat.outdegree_min = stat.outdegree_max = 0
        stat.degree_min = stat.degree_max = 0
        stat.depth_min = stat.depth_max = 0
        return
    indeg = np.array([len(n.incoming) for n in nodes])
    outdeg = np.array([len(n.outgoing) for n in nodes])
    depth = np.array([n.depth for n in nodes])
    stat.indegree_min, stat.indegree_max = int(indeg.min()), int(indeg.max())
    stat.outdegree_min, stat.outdegree_max = int(outdeg.min()), int(outdeg.max())
    deg = indeg + outdeg
    stat.degree_min, stat.degree_max = int(deg.min()), int(deg.max())
    stat.depth_min, stat.depth_max = int(depth.min()), int(depth.max())


def rank_statistics(
    stat: GraphStat,
    nodes: List[BaseNode],
    eligible: Callable[[BaseNode], bool] = lambda n: True,
) -> None:
    """
    Fill rank min/max, jump ranges and quantiles.

    A jump is measured along every outgoing edge between two eligible nodes
    with a positive rank: rank(target) - rank(source), and the same on a log
    scale. The mean log jump is taken per source node.
    """
    ranked = [n for n in nodes if n.rank > 0 and eligible(n)]
    stat.rank_quantiles = {}
    if not ranked:
        stat.rank_min = stat.rank_max = 0.0
        stat.rank_jump_min = stat.rank_jump_max = 0.0
        stat.rank_log_jump_min = stat.rank_log_jump_max = 0.0
        stat.rank_mean_log_jump_min = stat.rank_mean_log_jump_max = 0.0
        return

    ranks = np.array([n.rank for n in ranked])
    stat.rank_min, stat.rank_max = float(ranks.min()), float(ranks.max())
    q = np.quantile(ranks, [0.05, 0.5, 0.95])
    stat.rank_quantiles = {"p05": float(q[0]), "p50": float(q[1]), "p95": float(q[2])}

    jumps: List[float] = []
    log_jumps: List[float] = []
    mean_log_jumps: List[float] = []
    for n in ranked:
        per_node: List[float] = []
        for e in n.outgoing:
            m = e.target
            if m.rank > 0 and eligible(m):
                jumps.append(m.rank - n.rank)
                per_node.append(float(np.log(m.rank) - np.log(n.rank)))
        if per_node:
            log_jumps.extend(per_node)
            mean_log_jumps.append(float(np.mean(per_node)))

    if jumps:
        stat.rank_jump_min, stat.rank_jump_max = float(min(jumps)), float(max(jumps))
        stat.rank_log_jump_min, stat.rank_log_jump_max = float(min(log_jumps)), float(max(log_jumps))
        stat.rank_mean_log_jump_min = float(min(mean_log_jumps))
        stat.rank_mean_log_jump_max = float(max(mean_log_jumps))
    else:
        stat.rank_jump_min = stat.rank_jump_max = 0.0
        stat.rank_log_jump_min = stat.rank_log_jump_max = 0.0
        stat.rank_mean_log_jump_min = stat.rank_mean_log_jump_max = 0.0


def subrank_statistics(
    stat: GraphStat,
    nodes: List[BaseNode],
    eligible: Callable[[BaseNode], bool] = lambda n: True,
) -> None:
    """Fill the SubRank range."""
    values = [n.subrank for n in nodes if n.subrank > 0 and eligible(n)]
    if values:
        stat.subrank_min, stat.subrank_max = min(values), max(values)
    else:
        stat.subrank_min = stat.subrank_max = 0.0


# =============================================================================
# Base Graph
# =============================================================================

class BaseGraph:
    """
    Generic graph with a containment tree of summary groups.

    Nodes are attached to the root group as they are added. Restructuring the
    tree is bracketed by summarization_begin() / summarization_end().
    """

    def __init__(self) -> None:
        self.nodes: List[BaseNode] = []
        self.edges: List[Edge] = []
        self.groups: Dict[int, SummaryGroup] = {}
        self.summarizing = False
        self.has_rank = False
        self.has_subrank = False
        self.stat = GraphStat()
        self._next_group_index = 0
        self._listeners: List[SummaryListener] = []
        self.root = self._make_group("root")

    # --- construction ---

    def _make_group(self, label: str = "") -> SummaryGroup:
        group = SummaryGroup(self, self._next_group_index, label)
        self.groups[group.index] = group
        self._next_group_index += 1
        return group

    def _forget_group(self, group: SummaryGroup) -> None:
        self.groups.pop(group.index, None)

    def add_node(self, node: BaseNode) -> BaseNode:
        """Register a node and attach it to the root group."""
        node.index = len(self.nodes)
        self.nodes.append(node)
        node.parent = self.root
        self.root._children[node] = None
        self.root._internal_edges = None
        return node

    def create_node(self, label: str = "", visible: bool = True) -> BaseNode:
        return self.add_node(BaseNode(label=label, visible=visible))

    def add_edge(
        self,
        source: BaseNode,
        target: BaseNode,
        type: EdgeType = EdgeType.DATA,
        label: str = "",
    ) -> Edge:
        edge = Edge(source, target, type, label)
        source.outgoing.append(edge)
        target.incoming.append(edge)
        self.edges.append(edge)
        for g in (source.parent, target.parent):
            a = g
            while a is not None:
                a._internal_edges = None
                a = a.parent
        return edge

    def new_group(self, parent: SummaryGroup, label: str = "") -> SummaryGroup:
        """Create an empty group under `parent`."""
        if parent.graph is not self:
            raise TreeInvariantError("The parent group belongs to another graph")
        parent._require_active()
        group = self._make_group(label)
        parent._add_child(group)
        return group

    # --- summarization bracket ---

    def add_listener(self, listener: SummaryListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: SummaryListener) -> None:
        self._listeners.remove(listener)

    def summarization_begin(self) -> None:
        self.summarizing = True
        for listener in list(self._listeners):
            listener.summarization_begin(self)

    def summarization_end(self) -> None:
        self.summarizing = False
        self.update_statistics()
        for listener in list(self._listeners):
            listener.summarization_end(self)

    @contextmanager
    def summarization(self) -> Iterator["BaseGraph"]:
        """Context manager form of the begin/end bracket."""
        self.summarization_begin()
        try:
            yield self
        finally:
            self.summarization_end()

    # --- queries ---

    def summary_groups(self) -> List[SummaryGroup]:
        return self.root.collect_groups()

    def visible_nodes(self) -> List[BaseNode]:
        return [n for n in self.nodes if n.visible]

    # --- statistics ---

    def update_statistics(self) -> None:
        structure_statistics(self.stat, self.nodes)
        self.update_rank_statistics()
        self.update_subrank_statistics()

    def update_rank_statistics(self) -> None:
        rank_statistics(self.stat, self.nodes)

    def update_subrank_statistics(self) -> None:
        subrank_statistics(self.stat, self.nodes)

    # --- networkx views ---

    def to_networkx(self, direction: GraphDirection = GraphDirection.DIRECTED) -> nx.MultiDiGraph:
        """
        Export the topology keyed by node index.

        Each node carries its BaseNode under "node"; each edge its Edge under
        "edge". INVERTED flips every edge, UNDIRECTED returns a MultiGraph.
        """
        g: Any = nx.MultiGraph() if direction is GraphDirection.UNDIRECTED else nx.MultiDiGraph()
        for n in self.nodes:
            g.add_node(n.index, node=n, label=n.label)
        for e in self.edges:
            if direction is GraphDirection.INVERTED:
                g.add_edge(e.target.index, e.source.index, edge=e, type=e.type.value)
            else:
                g.add_edge(e.source.index, e.target.index, edge=e, type=e.type.value)
        return g

    def containment_tree(self) -> nx.DiGraph:
        """
        Export the containment tree as a DiGraph of ("group", i) / ("node", i)
        keys with parent -> child edges.
        """
        tree = nx.DiGraph()
        for group in self.root.collect_groups():
            key = ("group", group.index)
            tree.add_node(key, element=group)
            for child in group._children:
                ckey = ("group", child.index) if child.is_group else ("node", child.index)
                tree.add_node(ckey, element=child)
                tree.add_edge(key, ckey)
        return tree
