"""
tests/test_tree.py
==================
Pytest test suite for the Tree container: key assignment, the array
snapshot of the linked structure, name lookups, sequence attachment,
renaming, teardown and very deep trees.

Tree fixtures
-------------
  balanced_4leaf.tree
      ((A:0.1,B:0.2)AB:0.5,(C:0.3,D:0.4)CD:0.6)root;

      key   name   parent  lm  rm  pre  post  leaves
        0   root     -1     2   6    1    -1       4
        1   AB        0     2   3    2     5       2
        2   A         1     2   2    3     3       1
        3   B         1     3   3    4     1       1
        4   CD        0     5   6    5     0       2
        5   C         4     5   5    6     6       1
        6   D         4     6   6   -1     4       1
"""

import logging
import os
import sys

import numpy as np
import pytest

_TREES_DIR = os.path.join(os.path.dirname(__file__), "trees")

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from phytree import FastaItem, Tree, TreeNode, parse_fasta, use_strategy


def load_tree(filename: str, strategy=None) -> Tree:
    """Load a NEWICK file from tests/trees/ and return a linked Tree."""
    with open(os.path.join(_TREES_DIR, filename)) as fh:
        return Tree.from_newick(fh.read().strip(), strategy=strategy)


def caterpillar_newick(n_internal: int) -> str:
    """A maximally unbalanced tree with *n_internal* internal nodes."""
    parts = [f"(L{i}:1," for i in range(n_internal)]
    parts.append(f"L{n_internal}:1")
    parts.append("):1" * n_internal)
    return "".join(parts) + ";"


@pytest.fixture(scope="module")
def balanced():
    return load_tree("balanced_4leaf.tree")


# ======================================================================== #
# 1. Construction and arrays                                                #
# ======================================================================== #


class TestArrays:
    def test_sizes(self, balanced):
        assert balanced.n_nodes == 7
        assert balanced.n_leaves == 4
        assert len(balanced) == 7
        assert repr(balanced) == "Tree(7 nodes, 4 leaves)"

    def test_iteration_is_key_order(self, balanced):
        assert [n.key for n in balanced] == list(range(7))

    def test_parent(self, balanced):
        np.testing.assert_array_equal(balanced.parent, [-1, 0, 1, 1, 0, 4, 4])

    def test_distance(self, balanced):
        np.testing.assert_allclose(
            balanced.distance, [0.0, 0.5, 0.1, 0.2, 0.6, 0.3, 0.4]
        )

    def test_depth(self, balanced):
        np.testing.assert_array_equal(balanced.depth, [1, 2, 3, 3, 2, 3, 3])

    def test_extreme_leaves(self, balanced):
        np.testing.assert_array_equal(balanced.leftmost_leaf, [2, 2, 2, 3, 5, 5, 6])
        np.testing.assert_array_equal(balanced.rightmost_leaf, [6, 3, 2, 3, 6, 5, 6])

    def test_traversal_links(self, balanced):
        np.testing.assert_array_equal(balanced.preorder_next, [1, 2, 3, 4, 5, 6, -1])
        np.testing.assert_array_equal(balanced.postorder_next, [-1, 5, 3, 1, 0, 6, 4])

    def test_number_leaves(self, balanced):
        np.testing.assert_array_equal(balanced.number_leaves, [4, 2, 1, 1, 2, 1, 1])

    def test_is_leaf(self, balanced):
        np.testing.assert_array_equal(
            balanced.is_leaf, [False, False, True, True, False, True, True]
        )

    def test_dtypes(self, balanced):
        assert balanced.parent.dtype == np.int32
        assert balanced.distance.dtype == np.float64
        assert balanced.is_leaf.dtype == bool

    def test_subtree_leaf_keys(self, balanced):
        np.testing.assert_array_equal(balanced.subtree_leaf_keys("AB"), [2, 3])
        np.testing.assert_array_equal(balanced.subtree_leaf_keys(0), [2, 3, 5, 6])
        np.testing.assert_array_equal(balanced.subtree_leaf_keys("D"), [6])

    def test_nodes_know_their_tree(self, balanced):
        assert all(node.tree is balanced for node in balanced.nodes)

    def test_built_from_nodes(self):
        root = TreeNode("R")
        inner = TreeNode("I", 1.0)
        root.add_child(inner)
        inner.add_child(TreeNode("X", 0.5))
        inner.add_child(TreeNode("Y", 0.5))
        root.add_child(TreeNode("Z", 2.0))
        tree = Tree(root)
        assert [n.name for n in tree.nodes] == ["R", "I", "X", "Y", "Z"]
        assert tree.root.leaf_count() == 3

    def test_logs_summary(self, caplog):
        with caplog.at_level(logging.INFO, logger="phytree"):
            load_tree("balanced_4leaf.tree")
        messages = [r.getMessage() for r in caplog.records]
        assert any("7 nodes, 4 leaves, height 3" in m for m in messages)


# ======================================================================== #
# 2. Lookups                                                                #
# ======================================================================== #


class TestLookup:
    def test_by_key(self, balanced):
        assert balanced.node(4).name == "CD"
        assert balanced.node(np.int32(2)).name == "A"

    def test_by_name(self, balanced):
        assert balanced.node("C").key == 5

    def test_by_node(self, balanced):
        node = balanced.nodes[3]
        assert balanced.node(node) is node

    def test_unknown_name(self, balanced):
        with pytest.raises(KeyError):
            balanced.node("nope")

    def test_key_out_of_range(self, balanced):
        with pytest.raises(IndexError):
            balanced.node(7)
        with pytest.raises(IndexError):
            balanced.node(-1)

    def test_leaves(self, balanced):
        assert [n.name for n in balanced.leaves] == ["A", "B", "C", "D"]

    def test_duplicate_names_first_wins(self, caplog):
        tree = Tree.from_newick("(A:1,(A:2,B:3):1);")
        with caplog.at_level(logging.WARNING):
            assert tree.node("A").key == 1
        assert any("Duplicate node name 'A'" in r.getMessage() for r in caplog.records)


# ======================================================================== #
# 3. Sequences                                                              #
# ======================================================================== #


class TestAttachSequences:
    def test_mapping(self):
        tree = load_tree("balanced_4leaf.tree")
        n = tree.attach_sequences({"A": FastaItem("a", "MKV"), "D": FastaItem("d", "GG")})
        assert n == 2
        assert tree.node("A").seq_string == "MKV"
        assert tree.node("B").seq_string == ""

    def test_records_by_accession(self):
        tree = load_tree("balanced_4leaf.tree")
        records = parse_fasta(">sp|A|first\nMKV\n>sp|C|third\nGGG\n")
        assert tree.attach_sequences(records) == 2
        assert tree.node("C").sequence.header == "sp|C|third"

    def test_records_with_key(self):
        tree = load_tree("balanced_4leaf.tree")
        records = [FastaItem("x B", "MKV")]
        tree.attach_sequences(records, key=lambda r: r.header.split()[1])
        assert tree.node("B").seq_string == "MKV"

    def test_unknown_name(self):
        tree = load_tree("balanced_4leaf.tree")
        with pytest.raises(KeyError):
            tree.attach_sequences({"Z": FastaItem("z", "MKV")})


# ======================================================================== #
# 4. Renaming                                                               #
# ======================================================================== #


class TestRename:
    NEWICK = "(sp|P12345|2|note:1,(sp|onlytwofields:1,B:1)sp|Q9|1|x:1);"

    def test_long_names_are_shortened(self):
        tree = Tree.from_newick(self.NEWICK)
        tree.rename_from_long_to_simple()
        names = [n.name for n in tree.nodes]
        assert names == ["", "P12345_2", "Q9_1", "sp|onlytwofields", "B"]

    def test_malformed_name_warns(self, caplog):
        tree = Tree.from_newick(self.NEWICK)
        with caplog.at_level(logging.WARNING):
            tree.rename_from_long_to_simple()
        messages = [r.getMessage() for r in caplog.records]
        assert "Unexpected name format: sp|onlytwofields" in messages

    def test_index_follows_renames(self):
        tree = Tree.from_newick(self.NEWICK)
        assert tree.node("B").key == 4  # builds the name index
        tree.rename_from_long_to_simple()
        assert tree.node("P12345_2").key == 1
        assert tree.node("Q9_1").key == 2
        with pytest.raises(KeyError):
            tree.node("sp|P12345|2|note")

    def test_index_built_after_renames(self):
        tree = Tree.from_newick(self.NEWICK)
        tree.rename_from_long_to_simple()
        assert tree.node("Q9_1").key == 2

    def test_rename_collision_keeps_existing(self, caplog):
        tree = Tree.from_newick("(sp|P1|2|x:1,P1_2:1);")
        tree.node("P1_2")
        with caplog.at_level(logging.WARNING):
            tree.rename_from_long_to_simple()
        assert tree.node("P1_2").key == 2
        assert any("Duplicate node name" in r.getMessage() for r in caplog.records)

    def test_subtree_rename(self):
        tree = Tree.from_newick(self.NEWICK)
        tree.node("sp|Q9|1|x").rename_from_long_to_simple()
        assert tree.nodes[1].name == "sp|P12345|2|note"
        assert tree.nodes[2].name == "Q9_1"


# ======================================================================== #
# 5. Teardown                                                               #
# ======================================================================== #


class TestClose:
    def test_close_releases_links(self):
        tree = load_tree("balanced_4leaf.tree")
        root = tree.root
        leaf = tree.node("A")
        tree.close()
        assert tree.nodes == []
        assert root.children == []
        assert leaf.parent is None
        assert leaf.tree is None
        assert leaf.preorder_next is None


# ======================================================================== #
# 6. Very deep trees                                                        #
# ======================================================================== #


@pytest.mark.deep
class TestDeepTrees:
    N_INTERNAL = 10000

    @pytest.fixture(scope="class")
    def deep(self):
        return Tree.from_newick(caterpillar_newick(self.N_INTERNAL))

    def test_auto_selects_iterative(self, deep):
        assert deep.strategy == "iterative"

    def test_shape(self, deep):
        assert deep.n_nodes == 2 * self.N_INTERNAL + 1
        assert deep.n_leaves == self.N_INTERNAL + 1
        assert int(deep.depth.max()) == self.N_INTERNAL + 1

    def test_metrics(self, deep):
        assert deep.root.subtree_height() == self.N_INTERNAL + 1
        assert deep.root.leaf_count() == self.N_INTERNAL + 1
        assert deep.root.leaf_count_with_pattern("MK") == 0

    def test_walks(self, deep):
        assert sum(1 for _ in deep.root.iter_postorder()) == deep.n_nodes
        assert sum(1 for _ in deep.root.iter_leaves()) == deep.n_leaves

    def test_newick_round_trip(self, deep):
        text = deep.to_newick()
        assert text.startswith("(L0:1.0,(L1:1.0,")
        assert Tree.from_newick(text).n_nodes == deep.n_nodes

    def test_sampling(self, deep):
        selected = deep.min_distance_sample(min_dist=0.0)
        assert len(selected) == self.N_INTERNAL + 1

    def test_forced_iterative_strategy(self):
        with use_strategy("iterative"):
            tree = Tree.from_newick(caterpillar_newick(50))
        assert tree.strategy == "iterative"
