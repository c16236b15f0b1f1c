"""
provtree/graph_io.py - Graph Input

Builds a ProvGraph from a networkx graph or a networkx node-link JSON file.

Node attributes (all optional):
    fd, version, name, type, time, parent_fd, first_time, label, visible
Edge attributes:
    type  ("data", "control", "version", "compound", "other")

Nodes without an fd get an object of their own. Timestamps are raw.
"""

import json
from pathlib import Path
from typing import Any, Dict, Union

import networkx as nx

from .constants import EdgeType, ObjectType
from .prov import ProvGraph, ProvNode


def _object_type(value: Any) -> ObjectType:
    if isinstance(value, ObjectType):
        return value
    if value is None:
        return ObjectType.ARTIFACT
    try:
        return ObjectType(str(value).lower())
    except ValueError:
        return ObjectType.OTHER


def _edge_type(value: Any) -> EdgeType:
    if isinstance(value, EdgeType):
        return value
    if value is None:
        return EdgeType.DATA
    try:
        return EdgeType(str(value).lower())
    except ValueError:
        return EdgeType.OTHER


def from_networkx(g: nx.Graph) -> ProvGraph:
    """Convert a networkx (multi)digraph into a ProvGraph."""
    graph = ProvGraph()
    explicit = [a["fd"] for _, a in g.nodes(data=True) if a.get("fd") is not None]
    next_fd = max((int(fd) for fd in explicit), default=-1) + 1

    mapping: Dict[Any, ProvNode] = {}
    for key, attrs in g.nodes(data=True):
        fd = attrs.get("fd")
        if fd is None:
            fd = next_fd
            next_fd += 1
        fd = int(fd)

        obj = graph.objects.get(fd)
        if obj is None:
            first_time = attrs.get("first_time")
            parent_fd = attrs.get("parent_fd")
            obj = graph.add_object(
                fd,
                name=attrs.get("name"),
                type=_object_type(attrs.get("type")),
                parent_fd=int(parent_fd) if parent_fd is not None else None,
                first_time=float(first_time) if first_time is not None else None,
            )

        label = attrs.get("label")
        mapping[key] = graph.add_version(
            obj,
            version=int(attrs.get("version", 0)),
            time=float(attrs.get("time", 0.0)),
            label=str(label) if label is not None else None,
            visible=bool(attrs.get("visible", True)),
        )

    for u, v, attrs in g.edges(data=True):
        graph.add_edge(mapping[u], mapping[v], _edge_type(attrs.get("type")), str(attrs.get("label", "")))

    graph.update_statistics()
    return graph


def load_node_link(path: Union[str, Path]) -> ProvGraph:
    """Load a node-link JSON document ("links" or "edges" key)."""
    with open(path, "r") as f:
        data = json.load(f)
    if not isinstance(data, dict) or "nodes" not in data:
        raise ValueError(f"{path}: not a node-link document")
    edges_key = "edges" if "edges" in data else "links"
    data.setdefault(edges_key, [])
    data.setdefault("directed", True)
    data.setdefault("multigraph", True)
    g = nx.node_link_graph(data, edges=edges_key)
    return from_networkx(g)
