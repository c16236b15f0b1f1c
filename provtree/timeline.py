"""
provtree/timeline.py - Process Timeline Reconstruction

TimelineEvent is a transient interval [start, finish] tied to one object
(None for the synthetic root), with ordered sub-events.

compute_process_timeline() builds the tree of process lifetimes:
1. one event per process: start = first-seen time, finish = latest version time
2. finish extended by the source time of CONTROL edges into any version
3. events linked by parent process; unknown parents and cycles go to the root
4. processes without a start time are nudged just after their parent's start
5. bounds propagated bottom-up so every ancestor covers its descendants
6. sub-events sorted by (start, name)
"""

from typing import Any, Dict, Generic, Iterator, List, Optional, TypeVar

from .constants import TIMELINE_EPSILON, EdgeType
from .prov import PObject, ProvGraph

T = TypeVar("T")


class TimelineEvent(Generic[T]):
    """One interval of the timeline tree."""

    def __init__(self, value: Optional[T], start: float, finish: float, name: Optional[str] = None):
        self.value = value
        self.start = start
        self.finish = finish
        self._name = name
        self.parent: Optional["TimelineEvent[T]"] = None
        self.subevents: List["TimelineEvent[T]"] = []

    @property
    def name(self) -> str:
        if self._name is not None:
            return self._name
        return str(self.value)

    @property
    def duration(self) -> float:
        return self.finish - self.start

    def add_sub_event(self, event: "TimelineEvent[T]") -> None:
        event.parent = self
        self.subevents.append(event)

    def sort_sub_events(self) -> None:
        """Sort sub-events by (start, name), recursively."""
        stack = [self]
        while stack:
            e = stack.pop()
            e.subevents.sort(key=lambda x: (x.start, x.name))
            stack.extend(e.subevents)

    def walk(self) -> Iterator["TimelineEvent[T]"]:
        """Pre-order traversal, this event first."""
        stack = [self]
        while stack:
            e = stack.pop()
            yield e
            stack.extend(reversed(e.subevents))

    def is_ancestor_of(self, event: "TimelineEvent[T]") -> bool:
        x: Optional[TimelineEvent[T]] = event
        while x is not None:
            if x is self:
                return True
            x = x.parent
        return False

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        stack = [(self, out)]
        while stack:
            e, d = stack.pop()
            d.update(name=e.name, start=e.start, finish=e.finish, subevents=[])
            for sub in e.subevents:
                child: Dict[str, Any] = {}
                d["subevents"].append(child)
                stack.append((sub, child))
        return out

    def __repr__(self) -> str:
        return f"TimelineEvent({self.name!r}, {self.start}, {self.finish})"


def _event_name(obj: PObject) -> str:
    return f"{obj.short_name}[{obj.fd}]"


def compute_process_timeline(graph: ProvGraph) -> TimelineEvent[PObject]:
    """Build the process lifetime tree of a graph."""
    base = graph.time_base
    sentinel = graph.stat.time_unadjusted_max - base

    events: Dict[int, TimelineEvent[PObject]] = {}
    for obj in graph.processes():
        start = obj.first_time - base if obj.first_time is not None else sentinel
        latest = obj.latest_node()
        finish = latest.time if latest is not None and latest.has_time else start
        events[obj.fd] = TimelineEvent(obj, start, finish, name=_event_name(obj))

    for event in events.values():
        for n in event.value.versions:
            for e in n.incoming:
                if e.type is not EdgeType.CONTROL:
                    continue
                t = e.source.time if hasattr(e.source, "time") else 0.0
                if t > event.finish:
                    event.finish = t

    root: TimelineEvent[PObject] = TimelineEvent(None, 0.0, 0.0, name="")
    for event in events.values():
        pfd = event.value.parent_fd
        parent = events.get(pfd) if pfd is not None else None
        if parent is None or event.is_ancestor_of(parent):
            parent = root
        parent.add_sub_event(event)

    for event in root.walk():
        if event is not root and event.start == sentinel:
            event.start = event.parent.start + TIMELINE_EPSILON

    _propagate_bounds(root)
    root.sort_sub_events()
    return root


def _propagate_bounds(root: TimelineEvent) -> None:
    """Post-order: widen each event to cover all of its sub-events."""
    order = list(root.walk())
    for event in reversed(order):
        for sub in event.subevents:
            if sub.start < event.start:
                event.start = sub.start
            if sub.finish > event.finish:
                event.finish = sub.finish
