"""
provtree/prov.py - Provenance Graph Specialization

ProvGraph adds the provenance layer on top of BaseGraph:
- PObject: the logical entity behind a version chain (one process, one file)
- ProvNode: one version of an object, with a raw timestamp and prev/next links
- time base: the smallest set raw timestamp, subtracted to get adjusted times

Raw timestamps below MIN_TIMESTAMP count as "not set"; such nodes report an
adjusted time of 0.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from .constants import MIN_TIMESTAMP, ObjectType
from .graph import (
    BaseGraph, BaseNode, rank_statistics, structure_statistics, subrank_statistics,
)


# =============================================================================
# Objects
# =============================================================================

@dataclass(eq=False)
class PObject:
    """Logical entity behind a version chain."""
    fd: int
    name: Optional[str] = None
    type: ObjectType = ObjectType.ARTIFACT
    parent_fd: Optional[int] = None
    first_time: Optional[float] = None
    _versions: Dict[int, "ProvNode"] = field(default_factory=dict, repr=False)

    @property
    def short_name(self) -> str:
        """Basename of the name; the label of a lone version when unnamed."""
        if self.name is None:
            if len(self._versions) == 1:
                return next(iter(self._versions.values())).label
            return "<null>"
        return self.name.rsplit("/", 1)[-1]

    @property
    def versions(self) -> List["ProvNode"]:
        return [self._versions[v] for v in sorted(self._versions)]

    @property
    def latest_version(self) -> Optional[int]:
        return max(self._versions) if self._versions else None

    def node(self, version: int) -> Optional["ProvNode"]:
        return self._versions.get(version)

    def latest_node(self) -> Optional["ProvNode"]:
        v = self.latest_version
        return None if v is None else self._versions[v]

    @property
    def is_process(self) -> bool:
        return self.type is ObjectType.PROCESS


# =============================================================================
# Nodes
# =============================================================================

@dataclass(eq=False)
class ProvNode(BaseNode):
    """One version of a PObject."""
    obj: Optional[PObject] = field(default=None, repr=False)
    version: int = 0
    time_unadjusted: float = 0.0
    prev: Optional["ProvNode"] = field(default=None, repr=False)
    next: Optional["ProvNode"] = field(default=None, repr=False)
    graph: Optional["ProvGraph"] = field(default=None, repr=False)

    @property
    def has_time(self) -> bool:
        return self.time_unadjusted >= MIN_TIMESTAMP

    @property
    def time(self) -> float:
        """Adjusted time: raw timestamp minus the graph's time base."""
        if not self.has_time:
            return 0.0
        base = self.graph.time_base if self.graph is not None else 0.0
        return self.time_unadjusted - base

    def first_version(self) -> "ProvNode":
        n = self
        while n.prev is not None:
            n = n.prev
        return n

    def sort_key(self) -> tuple:
        fd = self.obj.fd if self.obj is not None else -1
        return (fd, self.version, self.index)


# =============================================================================
# Provenance Graph
# =============================================================================

class ProvGraph(BaseGraph):
    """BaseGraph with objects, version chains and timestamps."""

    def __init__(self) -> None:
        self.objects: Dict[int, PObject] = {}
        self.time_base = 0.0
        super().__init__()

    def add_object(
        self,
        fd: int,
        name: Optional[str] = None,
        type: ObjectType = ObjectType.ARTIFACT,
        parent_fd: Optional[int] = None,
        first_time: Optional[float] = None,
    ) -> PObject:
        if fd in self.objects:
            raise ValueError(f"Object {fd} already exists")
        obj = PObject(fd, name, type, parent_fd, first_time)
        self.objects[fd] = obj
        return obj

    def add_version(
        self,
        obj: Union[PObject, int],
        version: int = 0,
        time: float = 0.0,
        label: Optional[str] = None,
        visible: bool = True,
    ) -> ProvNode:
        """Add one version of an object and link it into the version chain."""
        if not isinstance(obj, PObject):
            obj = self.objects[obj]
        if version in obj._versions:
            raise ValueError(f"Object {obj.fd} already has version {version}")
        if label is None:
            base = obj.name.rsplit("/", 1)[-1] if obj.name else str(obj.fd)
            label = f"{base}:{version}"

        node = ProvNode(label=label, visible=visible, obj=obj, version=version,
                        time_unadjusted=float(time), graph=self)
        self.add_node(node)
        obj._versions[version] = node

        chain = obj.versions
        i = chain.index(node)
        node.prev = chain[i - 1] if i > 0 else None
        node.next = chain[i + 1] if i + 1 < len(chain) else None
        if node.prev is not None:
            node.prev.next = node
        if node.next is not None:
            node.next.prev = node

        if node.has_time:
            if self.stat.time_unadjusted_max == 0 or node.time_unadjusted > self.stat.time_unadjusted_max:
                self.stat.time_unadjusted_max = node.time_unadjusted
            if self.stat.time_unadjusted_min == 0 or node.time_unadjusted < self.stat.time_unadjusted_min:
                self.stat.time_unadjusted_min = node.time_unadjusted
            self.time_base = self.stat.time_unadjusted_min
        return node

    def processes(self) -> List[PObject]:
        return [o for o in self.objects.values() if o.is_process]

    # --- statistics ---

    def update_statistics(self) -> None:
        times = [n.time_unadjusted for n in self.nodes if n.has_time]
        if times:
            self.stat.time_unadjusted_min = min(times)
            self.stat.time_unadjusted_max = max(times)
        else:
            self.stat.time_unadjusted_min = self.stat.time_unadjusted_max = 0.0
        self.time_base = self.stat.time_unadjusted_min
        structure_statistics(self.stat, self.nodes)
        self.update_rank_statistics()
        self.update_subrank_statistics()

    def update_rank_statistics(self) -> None:
        rank_statistics(self.stat, self.nodes, eligible=_is_named)

    def update_subrank_statistics(self) -> None:
        subrank_statistics(self.stat, self.nodes, eligible=_is_named)


def _is_named(node: BaseNode) -> bool:
    obj = getattr(node, "obj", None)
    return obj is not None and obj.name is not None
