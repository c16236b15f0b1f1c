"""
tests/test_graph_io.py - Tests for graph input

Validates:
- networkx graphs become ProvGraphs with objects and version chains
- Type strings are parsed leniently
- Node-link JSON files with either edge key
"""

import json

import networkx as nx
import pytest

from provtree import EdgeType, ObjectType, check_consistency, from_networkx, load_node_link


# =============================================================================
# TEST: from_networkx
# =============================================================================

class TestFromNetworkx:
    """Tests for from_networkx."""

    def test_objects_and_versions(self):
        """Nodes sharing an fd become versions of one object."""
        g = nx.DiGraph()
        g.add_node("p0", fd=1, version=0, name="/bin/sh", type="Process", time=1.0)
        g.add_node("p1", fd=1, version=1, time=4.0)
        g.add_node("f", fd=2, name="/tmp/out", time=2.0)
        g.add_edge("p0", "f")
        g.add_edge("p0", "p1", type="version")

        graph = from_networkx(g)
        sh = graph.objects[1]
        assert sh.type is ObjectType.PROCESS
        assert [n.version for n in sh.versions] == [0, 1]
        assert sh.versions[0].next is sh.versions[1]
        assert graph.objects[2].type is ObjectType.ARTIFACT
        assert graph.time_base == 1.0
        assert [e.type for e in graph.edges] == [EdgeType.DATA, EdgeType.VERSION]
        check_consistency(graph)

    def test_missing_fds_are_assigned(self):
        """Nodes without an fd get fresh fds above the explicit ones."""
        g = nx.DiGraph()
        g.add_node("a", fd=5)
        g.add_node("b")
        g.add_node("c")
        graph = from_networkx(g)
        assert sorted(graph.objects) == [5, 6, 7]

    def test_unknown_types(self):
        """Unrecognized type strings map to OTHER."""
        g = nx.MultiDiGraph()
        g.add_node(0, type="daemon")
        g.add_node(1)
        g.add_edge(0, 1, type="weird")
        g.add_edge(0, 1, type="CONTROL")
        graph = from_networkx(g)
        assert graph.objects[0].type is ObjectType.OTHER
        assert [e.type for e in graph.edges] == [EdgeType.OTHER, EdgeType.CONTROL]

    def test_labels_and_visibility(self):
        """Explicit labels and visibility flags are kept."""
        g = nx.DiGraph()
        g.add_node(0, label="custom", visible=False)
        graph = from_networkx(g)
        assert graph.nodes[0].label == "custom"
        assert graph.nodes[0].visible is False


# =============================================================================
# TEST: load_node_link
# =============================================================================

class TestLoadNodeLink:
    """Tests for load_node_link."""

    def _write(self, tmp_path, data):
        path = tmp_path / "graph.json"
        path.write_text(json.dumps(data))
        return path

    def test_links_key(self, tmp_path):
        """The classic "links" key is accepted."""
        path = self._write(tmp_path, {
            "directed": True, "multigraph": True, "graph": {},
            "nodes": [{"id": "a", "name": "/a.txt", "time": 1.0}, {"id": "b"}],
            "links": [{"source": "a", "target": "b", "type": "data"}],
        })
        graph = load_node_link(path)
        assert len(graph.nodes) == 2
        assert len(graph.edges) == 1
        assert graph.nodes[0].label == "a.txt:0"

    def test_edges_key_and_defaults(self, tmp_path):
        """The newer "edges" key works and graph flags default to directed."""
        path = self._write(tmp_path, {
            "nodes": [{"id": 1}, {"id": 2}],
            "edges": [{"source": 2, "target": 1}],
        })
        graph = load_node_link(path)
        assert graph.edges[0].source is graph.nodes[1]
        assert graph.edges[0].type is EdgeType.DATA

    def test_not_node_link(self, tmp_path):
        """Documents without nodes are rejected."""
        path = self._write(tmp_path, {"foo": 1})
        with pytest.raises(ValueError):
            load_node_link(path)
