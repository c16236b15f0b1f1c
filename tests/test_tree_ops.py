"""
tests/test_tree_ops.py - Tests for containment tree utilities

Validates:
- common_ancestor over nodes and groups
- assign_unassigned moves connected root-level orphans
- remove_small_summaries / remove_singleton_summaries dissolve groups
- check_consistency accepts valid trees and rejects corrupted ones
"""

import pytest

from provtree import (
    BaseGraph,
    TreeInvariantError,
    assign_unassigned,
    check_consistency,
    collect_summary_groups,
    common_ancestor,
    remove_singleton_summaries,
    remove_small_summaries,
)


# =============================================================================
# TEST: common_ancestor
# =============================================================================

class TestCommonAncestor:
    """Tests for common_ancestor."""

    def test_element_is_own_ancestor(self, flat_graph):
        """common_ancestor(n, n) is n."""
        g = flat_graph(1)
        n = g.nodes[0]
        assert common_ancestor(n, n) is n

    def test_siblings_share_group(self, flat_graph):
        """Two nodes in the same group have that group as ancestor."""
        g = flat_graph(3)
        with g.summarization():
            group = g.new_group(g.root, "g")
            group.move_from_parent(g.nodes[0])
            group.move_from_parent(g.nodes[1])
        assert common_ancestor(g.nodes[0], g.nodes[1]) is group
        assert common_ancestor(g.nodes[0], g.nodes[2]) is g.root

    def test_group_and_its_member(self, flat_graph):
        """A group is the common ancestor of itself and anything below it."""
        g = flat_graph(1)
        with g.summarization():
            outer = g.new_group(g.root, "outer")
            inner = g.new_group(outer, "inner")
            inner.move_from_ancestor(g.nodes[0])
        assert common_ancestor(outer, g.nodes[0]) is outer
        assert common_ancestor(g.nodes[0], inner) is inner

    def test_different_graphs(self, flat_graph):
        """Elements of different graphs have no common ancestor."""
        a = flat_graph(1)
        b = flat_graph(1)
        assert common_ancestor(a.nodes[0], b.nodes[0]) is None


# =============================================================================
# TEST: assign_unassigned
# =============================================================================

class TestAssignUnassigned:
    """Tests for assign_unassigned."""

    def test_orphan_joins_neighbours_group(self, flat_graph):
        """An orphan connected to two grouped nodes joins their group."""
        g = flat_graph(3, edges=[(2, 0), (2, 1)])
        with g.summarization():
            group = g.new_group(g.root, "g")
            group.move_from_parent(g.nodes[0])
            group.move_from_parent(g.nodes[1])
            moves = assign_unassigned(g)
        assert moves == 1
        assert g.nodes[2].parent is group

    def test_orphan_joins_lowest_common_group(self, flat_graph):
        """Neighbours in sibling subgroups pull the orphan into their parent."""
        g = flat_graph(3, edges=[(0, 2), (2, 1)])
        with g.summarization():
            outer = g.new_group(g.root, "outer")
            left = g.new_group(outer, "left")
            right = g.new_group(outer, "right")
            left.move_from_ancestor(g.nodes[0])
            right.move_from_ancestor(g.nodes[1])
            assign_unassigned(g)
        assert g.nodes[2].parent is outer

    def test_root_level_neighbours_are_ignored(self, flat_graph):
        """Nodes connected only to other root-level nodes stay put."""
        g = flat_graph(3, edges=[(0, 1), (1, 2)])
        with g.summarization():
            moves = assign_unassigned(g)
        assert moves == 0
        assert all(n.parent is g.root for n in g.nodes)

    def test_isolated_nodes_stay(self, flat_graph):
        """Nodes without edges are never moved."""
        g = flat_graph(2)
        with g.summarization():
            group = g.new_group(g.root, "g")
            group.move_from_parent(g.nodes[0])
            assert assign_unassigned(g) == 0
        assert g.nodes[1].parent is g.root

    def test_chain_reaches_fixpoint(self, flat_graph):
        """A chain of orphans is pulled in one by one until nothing moves."""
        g = flat_graph(4, edges=[(0, 1), (1, 2), (2, 3)])
        with g.summarization():
            group = g.new_group(g.root, "g")
            group.move_from_parent(g.nodes[0])
            moves = assign_unassigned(g)
        assert moves == 3
        assert all(n.parent is group for n in g.nodes)


# =============================================================================
# TEST: remove_small_summaries
# =============================================================================

class TestRemoveSmallSummaries:
    """Tests for dissolving undersized groups."""

    def test_singleton_dissolved(self, flat_graph):
        """A group with one child is replaced by that child."""
        g = flat_graph(3)
        with g.summarization():
            group = g.new_group(g.root, "g")
            group.move_from_parent(g.nodes[0])
            removed = remove_singleton_summaries(g)
        assert removed == 1
        assert g.nodes[0].parent is g.root
        assert group.index not in g.groups
        check_consistency(g)

    def test_hidden_children_do_not_count(self, flat_graph):
        """A group whose children are all hidden is dissolved."""
        g = flat_graph(4)
        with g.summarization():
            group = g.new_group(g.root, "g")
            for n in g.nodes[:3]:
                group.move_from_parent(n)
                n.visible = False
            remove_singleton_summaries(g)
        assert len(g.groups) == 1
        assert g.root.child_count() == 4

    def test_root_absorbs_its_only_group(self, flat_graph):
        """When the root itself is too small its child groups are flattened."""
        g = flat_graph(5)
        with g.summarization():
            group = g.new_group(g.root, "g")
            for n in g.nodes:
                group.move_from_parent(n)
            removed = remove_singleton_summaries(g)
        assert removed == 1
        assert g.root.children == g.nodes
        assert collect_summary_groups(g.root) == [g.root]

    def test_nested_chain_collapses(self, flat_graph):
        """Nested single-child groups collapse all the way up."""
        g = flat_graph(3)
        with g.summarization():
            a = g.new_group(g.root, "a")
            b = g.new_group(a, "b")
            c = g.new_group(b, "c")
            c.move_from_ancestor(g.nodes[0])
            c.move_from_ancestor(g.nodes[1])
            remove_singleton_summaries(g)
        assert [x.label for x in g.summary_groups()] == ["root", "c"]
        assert g.nodes[0].parent is c
        check_consistency(g)

    def test_threshold(self, flat_graph):
        """Groups at or below the threshold are dissolved, larger ones kept."""
        g = flat_graph(10)
        with g.summarization():
            small = g.new_group(g.root, "small")
            big = g.new_group(g.root, "big")
            for n in g.nodes[:3]:
                small.move_from_parent(n)
            for n in g.nodes[3:7]:
                big.move_from_parent(n)
            removed = remove_small_summaries(g, 3)
        assert removed == 1
        assert small.index not in g.groups
        assert big.child_count() == 4

    def test_idempotent(self, flat_graph, snapshot):
        """A second pass changes nothing."""
        g = flat_graph(6)
        with g.summarization():
            a = g.new_group(g.root, "a")
            b = g.new_group(a, "b")
            b.move_from_ancestor(g.nodes[0])
            a.move_from_parent(g.nodes[1])
            a.move_from_parent(g.nodes[2])
            remove_singleton_summaries(g)
            first = snapshot(g.root)
            assert remove_singleton_summaries(g) == 0
        assert snapshot(g.root) == first


# =============================================================================
# TEST: check_consistency
# =============================================================================

class TestCheckConsistency:
    """Tests for check_consistency."""

    def test_fresh_graph_is_consistent(self, flat_graph):
        """A newly built graph passes."""
        check_consistency(flat_graph(5, edges=[(0, 1)]))
        check_consistency(BaseGraph())

    def test_nested_tree_is_consistent(self, flat_graph):
        """A tree built with the move primitives passes."""
        g = flat_graph(4)
        with g.summarization():
            a = g.new_group(g.root, "a")
            b = g.new_group(a, "b")
            b.move_from_ancestor(g.nodes[0])
            a.move_from_parent(g.nodes[1])
        check_consistency(g)

    def test_duplicate_membership_detected(self, flat_graph):
        """A node listed under two groups is rejected."""
        g = flat_graph(2)
        with g.summarization():
            group = g.new_group(g.root, "g")
        group._children[g.nodes[0]] = None
        with pytest.raises(TreeInvariantError):
            check_consistency(g)

    def test_missing_node_detected(self, flat_graph):
        """A node dropped from the tree is rejected."""
        g = flat_graph(2)
        del g.root._children[g.nodes[1]]
        with pytest.raises(TreeInvariantError):
            check_consistency(g)
