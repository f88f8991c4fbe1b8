"""
tests/test_newick.py
====================
Pytest test suite for NEWICK / NHX writing and reading.
"""

import os
import sys

import pytest

_TREES_DIR = os.path.join(os.path.dirname(__file__), "trees")

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from phytree import Tree, TreeNode, format_newick, parse_newick, to_newick


STRATEGIES = ["recursive", "iterative"]

TREE_FILES = [
    "balanced_4leaf.tree",
    "caterpillar_4leaf.tree",
    "star_3leaf.tree",
    "multifurcating_6leaf.tree",
]


def load_tree(filename: str) -> Tree:
    """Load a NEWICK file from tests/trees/ and return a linked Tree."""
    with open(os.path.join(_TREES_DIR, filename)) as fh:
        return Tree.from_newick(fh.read().strip())


def build_star() -> Tree:
    root = TreeNode("R")
    root.add_child(TreeNode("A", 1.0))
    root.add_child(TreeNode("B", 2.0))
    root.add_child(TreeNode("C", 3.0))
    return Tree(root)


# ======================================================================== #
# 1. Writing                                                                #
# ======================================================================== #


class TestToNewick:
    @pytest.mark.parametrize("strategy", STRATEGIES)
    def test_star(self, strategy):
        tree = build_star()
        assert to_newick(tree.root, strategy=strategy) == "(A:1.0,B:2.0,C:3.0)R:0.0"

    @pytest.mark.parametrize("strategy", STRATEGIES)
    def test_highlight(self, strategy):
        tree = build_star()
        tree.node("B").has_pattern = True
        text = to_newick(tree.root, with_colors=True, strategy=strategy)
        assert text == "(A:1.0,B[&&NHX:COLOR=1]:2.0,C:3.0)R:0.0"

    def test_highlight_needs_with_colors(self):
        tree = build_star()
        tree.node("B").has_pattern = True
        assert "NHX" not in to_newick(tree.root)

    def test_leaf(self):
        tree = build_star()
        assert to_newick(tree.node("C")) == "C:3.0"

    def test_subtree(self):
        tree = load_tree("balanced_4leaf.tree")
        assert to_newick(tree.node("CD")) == "(C:0.3,D:0.4)CD:0.6"

    def test_names_are_stripped(self):
        root = TreeNode(" R ")
        root.add_child(TreeNode(" A", 1.0))
        tree = Tree(root)
        assert to_newick(tree.root) == "(A:1.0)R:0.0"

    def test_tree_adds_terminator(self):
        assert build_star().to_newick() == "(A:1.0,B:2.0,C:3.0)R:0.0;"

    def test_root_distance_reset(self):
        root = TreeNode("R", 5.0)
        root.add_child(TreeNode("A", 1.0))
        assert Tree(root).to_newick() == "(A:1.0)R:0.0;"

    @pytest.mark.parametrize("filename", TREE_FILES)
    def test_strategies_agree(self, filename):
        tree = load_tree(filename)
        recursive = to_newick(tree.root, strategy="recursive")
        iterative = to_newick(tree.root, strategy="iterative")
        assert recursive == iterative

    @pytest.mark.parametrize("filename", TREE_FILES)
    def test_reparse_gives_same_text(self, filename):
        text = load_tree(filename).to_newick()
        assert Tree.from_newick(text).to_newick() == text


# ======================================================================== #
# 2. Reading                                                                #
# ======================================================================== #


class TestParseNewick:
    def test_multifurcation_is_kept(self):
        root = parse_newick("((A:1,B:1,C:1):1,D:1,(E:1,F:1):1);")
        assert root.number_children() == 3
        assert [c.name for c in root.children[0].children] == ["A", "B", "C"]

    def test_internal_names_and_lengths(self):
        root = parse_newick("((A:0.1,B:0.2)AB:0.5,C:0.3)root;")
        assert root.name == "root"
        ab = root.children[0]
        assert ab.name == "AB"
        assert ab.dist_from_parent == pytest.approx(0.5)
        assert ab.children[1].dist_from_parent == pytest.approx(0.2)

    def test_missing_lengths_default_to_zero(self):
        root = parse_newick("(A,B);")
        assert [c.dist_from_parent for c in root.children] == [0.0, 0.0]

    def test_semicolon_is_optional(self):
        root = parse_newick("(A:1,B:2)")
        assert root.number_children() == 2

    def test_whitespace_is_ignored(self):
        root = parse_newick(" ( A : 1 ,\n B : 2 ) R ;\n")
        assert [c.name for c in root.children] == ["A", "B"]
        assert root.children[1].dist_from_parent == 2.0

    def test_scientific_notation(self):
        root = parse_newick("(A:1e-3,B:2.5E2);")
        assert root.children[0].dist_from_parent == pytest.approx(0.001)
        assert root.children[1].dist_from_parent == pytest.approx(250.0)

    def test_nhx_color_sets_highlight(self):
        root = parse_newick("(A[&&NHX:COLOR=1]:1,B[&&NHX:S=human]:2);")
        assert root.children[0].has_pattern
        assert not root.children[1].has_pattern

    def test_comment_after_length(self):
        root = parse_newick("(A:1[&&NHX:COLOR=1],B:2[note]);")
        assert root.children[0].has_pattern
        assert root.children[0].dist_from_parent == 1.0

    def test_result_is_unlinked(self):
        root = parse_newick("(A:1,B:2);")
        assert not root.is_linked
        root.add_child(TreeNode("C"))
        assert root.number_children() == 3

    def test_single_leaf(self):
        tree = Tree.from_newick("A;")
        assert tree.n_nodes == 1
        assert tree.root.is_leaf()
        assert tree.to_newick() == "A:0.0;"

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "   ;",
            "(A:1,B:2",
            "(A:1,B:2));",
            "(A:1,,B:2);",
            "(A:1,B:2,);",
            "();",
            "(A:1,B:2)R;C;",
            "(A:1,B:2)(C:1);",
            "(A:x,B:2);",
            "(A:-1,B:2);",
            "(A[&&NHX:COLOR=1:1,B:2);",
            "(A:1;B:2);",
        ],
    )
    def test_malformed(self, text):
        with pytest.raises(ValueError):
            parse_newick(text)


class TestFormatNewick:
    def test_adds_semicolon(self):
        assert format_newick("(A:1,B:1)") == "(A:1,B:1);"

    def test_strips_whitespace(self):
        assert format_newick("  (A:1,B:1);\n") == "(A:1,B:1);"
