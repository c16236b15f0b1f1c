"""
tests/test_small_groups.py - Tests for the small-groups fallback summarizer

Validates:
- Oversized flat groups are cut into groups of node_threshold
- The internal-edge threshold also triggers splitting
- Groups under both thresholds are untouched
- The iteration cap is honoured and reported
"""

import pytest

from provtree import (
    CancellationToken,
    JobCanceled,
    SmallGroupsConfig,
    SmallGroupsSummarizer,
    check_consistency,
)


# =============================================================================
# TEST: SmallGroupsSummarizer
# =============================================================================

class TestSmallGroupsSummarizer:
    """Tests for SmallGroupsSummarizer."""

    def test_thousand_isolated_nodes(self, flat_graph):
        """1000 isolated nodes become five groups of 200."""
        g = flat_graph(1000)
        receipt = SmallGroupsSummarizer().summarize(g)
        children = g.root.children
        assert len(children) == 5
        assert all(c.is_group and c.child_count() == 200 for c in children)
        assert receipt["groups_created"] == 5
        assert receipt["capped_groups"] == 0
        check_consistency(g)

    def test_groups_are_consecutive(self, flat_graph):
        """Each group takes a contiguous run of the original children."""
        g = flat_graph(1000)
        SmallGroupsSummarizer().summarize(g)
        for k, group in enumerate(g.root.children):
            assert [n.index for n in group.children] == list(range(200 * k, 200 * (k + 1)))

    def test_small_graph_untouched(self, flat_graph, snapshot):
        """A group under both thresholds is left alone."""
        g = flat_graph(50, edges=[(i, i + 1) for i in range(49)])
        before = snapshot(g.root)
        SmallGroupsSummarizer().summarize(g)
        assert snapshot(g.root) == before

    def test_edge_threshold(self, flat_graph):
        """A 40-node chain with an edge threshold of 10 is cut into 11-node groups."""
        g = flat_graph(40, edges=[(i, i + 1) for i in range(39)])
        SmallGroupsSummarizer(SmallGroupsConfig(edge_threshold=10)).summarize(g)
        groups = [c for c in g.root.children if c.is_group]
        raw = [c for c in g.root.children if not c.is_group]
        assert [s.child_count() for s in groups] == [11, 11, 11]
        assert len(raw) == 7
        assert len(g.root.internal_edges()) <= 10
        check_consistency(g)

    def test_hidden_children_do_not_count(self, flat_graph, snapshot):
        """Hidden children are neither counted nor moved."""
        g = flat_graph(250)
        for n in g.nodes[:60]:
            n.visible = False
        before = snapshot(g.root)
        SmallGroupsSummarizer().summarize(g)
        assert snapshot(g.root) == before

    def test_iteration_cap(self, flat_graph):
        """Seeding stops at max_iterations and the group is reported."""
        g = flat_graph(1000)
        receipt = SmallGroupsSummarizer(SmallGroupsConfig(max_iterations=2)).summarize(g)
        assert receipt["groups_created"] == 2
        assert receipt["capped_groups"] == 1
        check_consistency(g)

    def test_cancellation(self, flat_graph):
        """A cancelled token stops the pass with JobCanceled."""
        g = flat_graph(300)
        token = CancellationToken()
        token.cancel()
        with pytest.raises(JobCanceled):
            SmallGroupsSummarizer().summarize(g, token=token)
        assert g.root.child_count() == 300
