"""
tests/conftest.py - Shared graph builders for provtree tests
"""

import pytest

from provtree import BaseGraph, EdgeType, ObjectType, ProvGraph


@pytest.fixture
def flat_graph():
    """Factory: BaseGraph with n nodes labeled n0..n{n-1} and the given edges."""
    def build(n, edges=()):
        g = BaseGraph()
        nodes = [g.create_node(f"n{i}") for i in range(n)]
        for a, b in edges:
            g.add_edge(nodes[a], nodes[b])
        return g
    return build


@pytest.fixture
def log_graph():
    """
    Factory: writer process -> n .log artifacts -> reader process.

    Every log file has exactly the writer as input and the reader as output.
    """
    def build(n_logs):
        g = ProvGraph()
        writer = g.add_version(g.add_object(0, "/bin/writer", ObjectType.PROCESS), time=1.0)
        reader = g.add_version(g.add_object(1, "/bin/reader", ObjectType.PROCESS), time=3.0)
        for i in range(n_logs):
            obj = g.add_object(10 + i, f"/var/log/{chr(ord('a') + i)}.log")
            n = g.add_version(obj, time=2.0)
            g.add_edge(writer, n)
            g.add_edge(n, reader)
        return g
    return build


@pytest.fixture
def timed_graph():
    """Factory: ProvGraph with one single-version artifact per raw timestamp."""
    def build(times, type=ObjectType.ARTIFACT, first_fd=0):
        g = ProvGraph()
        for i, t in enumerate(times):
            obj = g.add_object(first_fd + i, f"/tmp/f{first_fd + i}", type)
            g.add_version(obj, time=t)
        return g
    return build


@pytest.fixture
def process_graph():
    """
    init -> sh -> cc process tree, an orphan process with an unknown parent,
    and an artifact written by cc.

    Raw times: init 1; sh 2 and 6; cc 3; orphan 4; time base 1.
    """
    g = ProvGraph()
    init = g.add_object(1, "/sbin/init", ObjectType.PROCESS, first_time=1.0)
    sh = g.add_object(2, "/bin/sh", ObjectType.PROCESS, parent_fd=1, first_time=2.0)
    cc = g.add_object(3, "/usr/bin/cc", ObjectType.PROCESS, parent_fd=2, first_time=3.0)
    orphan = g.add_object(4, "/usr/bin/orphan", ObjectType.PROCESS, parent_fd=99)
    out = g.add_object(5, "/tmp/a.out")

    init_v0 = g.add_version(init, 0, time=1.0)
    g.add_version(sh, 0, time=2.0)
    g.add_version(sh, 1, time=6.0)
    cc_v0 = g.add_version(cc, 0, time=3.0)
    g.add_version(orphan, 0, time=4.0)
    out_v0 = g.add_version(out, 0, time=3.5)

    g.add_edge(cc_v0, init_v0, EdgeType.CONTROL)
    g.add_edge(cc_v0, out_v0, EdgeType.DATA)
    return g


@pytest.fixture
def snapshot():
    """Function returning a comparable nested tuple of a containment tree."""
    def snap(group):
        return (
            group.label,
            tuple(snap(c) if c.is_group else ("node", c.index) for c in group.children),
        )
    return snap
