"""
_newick.py
==========
NEWICK / NHX reading and writing for ``TreeNode`` graphs.

Public API
----------
  parse_newick(newick_string) -> TreeNode
      Build an (unlinked) node graph.  Arbitrary multifurcation is kept
      as-is; child order follows the text.

  to_newick(node, with_colors=False, strategy=None) -> str
      Serialize a linked subtree (no trailing ';').

Output grammar
--------------
  Subtree   := Leaf | "(" Subtree ("," Subtree)* ")" NodeLabel
  Leaf      := NodeLabel
  NodeLabel := Name ["[&&NHX:COLOR=1]"] ":" Distance

Names are written stripped of surrounding whitespace; the NHX color tag is
written only for nodes whose ``has_pattern`` flag is set, and only when
``with_colors`` is requested.  Distances use ``repr(float)``.

Input
-----
Leaf and internal labels, ``:length`` and ``[...]`` comments are all
optional and may appear in either order after a label.  A comment of the
form ``&&NHX:...:COLOR=1...`` sets ``has_pattern``; other comments are
ignored.  Quoted labels are not supported.
"""

from typing import Optional

from ._node import TreeNode
from ._utils import format_distance


NHX_HIGHLIGHT = "[&&NHX:COLOR=1]"

# Characters that end a label or a branch length.
_DELIMITERS = frozenset("(),:;[ \t\r\n")
_WHITESPACE = frozenset(" \t\r\n")


# ============================================================================ #
# Writing
# ============================================================================ #


def node_label(node: TreeNode, with_colors: bool = False) -> str:
    """Return ``name[NHX]:distance`` for one node."""
    name = node.name.strip()
    if with_colors and node.has_pattern:
        name += NHX_HIGHLIGHT
    return f"{name}:{format_distance(node.dist_from_parent)}"


def to_newick(
    node: TreeNode, with_colors: bool = False, strategy: Optional[str] = None
) -> str:
    """
    Serialize the subtree under *node* to NEWICK text.

    Parameters
    ----------
    node : TreeNode
        Root of the subtree.  Must be linked.
    with_colors : bool, default False
        Emit ``[&&NHX:COLOR=1]`` after the names of highlighted nodes.
    strategy : str or None
        'recursive', 'iterative', 'auto' or None.

    Returns
    -------
    str
        NEWICK text without a trailing semicolon.

    Examples
    --------
    >>> tree = Tree.from_newick('(A:1,B:2,C:3)R;')
    >>> to_newick(tree.root)
    '(A:1.0,B:2.0,C:3.0)R:0.0'
    """
    if node._resolve(strategy) == "recursive":
        return _to_newick_recursive(node, with_colors)

    # The stack holds nodes still to expand and literal text to emit.
    out = []
    stack = [node]
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            out.append(item)
            continue
        if item.is_leaf():
            out.append(node_label(item, with_colors))
            continue
        out.append("(")
        stack.append(")" + node_label(item, with_colors))
        children = item.children
        for k in range(len(children) - 1, -1, -1):
            stack.append(children[k])
            if k:
                stack.append(",")
    return "".join(out)


def _to_newick_recursive(node: TreeNode, with_colors: bool) -> str:
    if node.is_leaf():
        return node_label(node, with_colors)
    inner = ",".join(_to_newick_recursive(c, with_colors) for c in node.children)
    return "(" + inner + ")" + node_label(node, with_colors)


# ============================================================================ #
# Reading
# ============================================================================ #


def parse_newick(newick_string: str) -> TreeNode:
    """
    Parse *newick_string* into a node graph and return its root.

    Iterative, stack-based character scan; no recursion, so arbitrarily
    deep trees parse fine.  The returned graph is not linked yet: wrap it
    in ``Tree`` (or call ``link_structure``) before querying it.

    Parameters
    ----------
    newick_string : str
        NEWICK text; the trailing ';' is optional.

    Returns
    -------
    TreeNode
        The root.  Missing branch lengths are 0.0.

    Raises
    ------
    ValueError
        On empty input, unbalanced parentheses, empty subtrees, text after
        the root, unterminated comments, or invalid/negative branch lengths.
    """
    s = newick_string.strip()
    n_chars = len(s)
    if n_chars > 0 and s[n_chars - 1] == ";":
        n_chars -= 1
    if n_chars == 0 or not s[:n_chars].strip():
        raise ValueError("Empty NEWICK string.")

    root = None
    open_nodes = []
    expect_subtree = True

    def attach(node: TreeNode, pos: int) -> None:
        nonlocal root
        if open_nodes:
            open_nodes[-1].add_child(node)
        elif root is None:
            root = node
        else:
            raise ValueError(f"Unexpected text after the root at position {pos}.")

    i = 0
    while i < n_chars:
        c = s[i]

        if c in _WHITESPACE:
            i += 1
            continue

        if c == "(":
            if not expect_subtree:
                raise ValueError(f"Unexpected '(' at position {i}.")
            node = TreeNode()
            attach(node, i)
            open_nodes.append(node)
            i += 1
            continue

        if c == ",":
            if not open_nodes or expect_subtree:
                raise ValueError(f"Unexpected ',' at position {i}.")
            expect_subtree = True
            i += 1
            continue

        if c == ")":
            if not open_nodes:
                raise ValueError(f"Unbalanced ')' at position {i}.")
            if expect_subtree:
                raise ValueError(f"Empty subtree before ')' at position {i}.")
            node = open_nodes.pop()
            i = _read_node_suffix(s, i + 1, n_chars, node)
            continue

        if c == ";":
            raise ValueError(f"Unexpected ';' at position {i}.")

        # Leaf
        if not expect_subtree:
            raise ValueError(f"Unexpected character {c!r} at position {i}.")
        node = TreeNode()
        attach(node, i)
        i = _read_node_suffix(s, i, n_chars, node)
        expect_subtree = False

    if open_nodes:
        raise ValueError(f"Unbalanced '(': {len(open_nodes)} subtree(s) left open.")
    if root is None or expect_subtree:
        raise ValueError("NEWICK string ends where a subtree was expected.")
    return root


def _read_node_suffix(s: str, i: int, n_chars: int, node: TreeNode) -> int:
    """
    Read ``name``, ``[comment]`` and ``:length`` for *node* starting at *i*;
    return the index just past them.
    """
    while i < n_chars and s[i] in _WHITESPACE:
        i += 1
    j = i
    while j < n_chars and s[j] not in _DELIMITERS:
        j += 1
    node.name = s[i:j]
    i = j

    while True:
        while i < n_chars and s[i] in _WHITESPACE:
            i += 1

        if i < n_chars and s[i] == "[":
            end = s.find("]", i, n_chars)
            if end == -1:
                raise ValueError(f"Unterminated '[' comment at position {i}.")
            _apply_comment(node, s[i + 1 : end])
            i = end + 1

        elif i < n_chars and s[i] == ":":
            i += 1
            while i < n_chars and s[i] in _WHITESPACE:
                i += 1
            j = i
            while j < n_chars and s[j] not in _DELIMITERS:
                j += 1
            try:
                distance = float(s[i:j])
            except ValueError:
                raise ValueError(
                    f"Invalid branch length {s[i:j]!r} at position {i}."
                ) from None
            if distance < 0.0:
                raise ValueError(
                    f"Negative branch length {distance} at position {i}."
                )
            node.dist_from_parent = distance
            i = j

        else:
            return i


def _apply_comment(node: TreeNode, comment: str) -> None:
    if not comment.startswith("&&NHX"):
        return
    tags = comment[len("&&NHX") :].split(":")
    if "COLOR=1" in tags:
        node.has_pattern = True
