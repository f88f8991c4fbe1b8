"""
_node.py
========
A node of a rooted phylogenetic tree with ordered children, extreme-leaf
links, preorder/postorder traversal links and lazily cached subtree metrics.

Public API
----------
  TreeNode(name='', dist_from_parent=0.0, sequence=None)
  .add_child(child)

  Linking passes (run once, in this order, by ``link_structure``):
  .set_extreme_leaves()          bottom-up, O(1) per node
  .link_nodes_in_preorder()      any order, needs extreme leaves
  .link_nodes_in_postorder()     any order, needs extreme leaves
  .compute_subtree_sizes()       whole-subtree pass

  Link-following walks:
  .iter_preorder() / .iter_postorder() / .iter_leaves()

  Cached metrics:
  .subtree_height() / .leaf_count() / .leaf_count_with_pattern(p)

  Uncached queries:
  .disordered_pattern_leaf_count(p, threshold)
  .collect_sequences() / .or_query_string(p)
  .rename_from_long_to_simple()

  Text rendering:
  .draw_subtree(with_seq=False, with_dists=False)

Ownership
---------
Each node owns its ``children`` list.  ``parent``, ``leftmost_leaf``,
``rightmost_leaf``, ``preorder_next``, ``postorder_next`` and ``tree`` are
plain back-references; teardown is whole-tree (``Tree.close``).

Traversal links
---------------
The preorder chain starts at the root and ends at the tree's last leaf.
Internal nodes point to their first child; the rightmost leaf of child i
points to child i+1, so a walk leaves a finished subtree straight into the
next one.

The postorder chain starts at the root's leftmost leaf and ends at the root.
Child i points to the leftmost leaf of child i+1; the last child points to
its parent.

Within any subtree both chains are contiguous: the subtree of N is
``N .. N.rightmost_leaf`` in preorder and ``N.leftmost_leaf .. N`` in
postorder.  The iterative strategy relies on this to evaluate every
recursive metric without recursion.
"""

from typing import Dict, Iterator, List, Optional

from ._logging import log_malformed_header, log_rename
from ._strategy import resolve_strategy
from ._utils import format_distance, is_long_name, simplify_long_name


class TreeStructureError(RuntimeError):
    """
    Raised when a node is used in a way its linking state does not allow:
    querying links or metrics before the linking passes ran, or attaching
    children after they ran.
    """


class TreeNode:
    """
    One node of a rooted, ordered, possibly multifurcating tree.

    Attributes
    ----------
    key              : int       Preorder index within the tree (root = 0).
    name, label      : str       Node name (usually leaves only) and short label.
    depth            : int       Root is at depth 1.
    dist_from_parent : float     Branch length to the parent; 0.0 for the root.
    children         : list[TreeNode]
    parent           : TreeNode | None
    leftmost_leaf, rightmost_leaf : TreeNode | None   (after linking)
    preorder_next, postorder_next : TreeNode | None   (after linking)
    number_leaves    : int | None   Leaf count (after ``compute_subtree_sizes``).
    sequence         : FastaItem | None
    has_pattern      : bool      Highlight flag for NHX output.
    tree             : Tree | None   Owning container, notified on rename.
    """

    def __init__(
        self,
        name: str = "",
        dist_from_parent: float = 0.0,
        sequence=None,
        tree=None,
    ) -> None:
        self.children: List["TreeNode"] = []
        self.parent: Optional["TreeNode"] = None
        self.tree = tree

        self.key: int = 0
        self.name = name
        self.label = ""
        self.depth: int = 0
        self.dist_from_parent = float(dist_from_parent)
        self.sequence = sequence
        self.has_pattern = False
        self._bcn_score = 0.0

        self.leftmost_leaf: Optional["TreeNode"] = None
        self.rightmost_leaf: Optional["TreeNode"] = None
        self.preorder_next: Optional["TreeNode"] = None
        self.postorder_next: Optional["TreeNode"] = None
        self.number_leaves: Optional[int] = None

        # Lazily computed; None means "not computed yet".
        self._subtree_height: Optional[int] = None
        self._leaf_count: Optional[int] = None
        self._pattern_counts: Dict[str, int] = {}

    def __repr__(self) -> str:
        return f"TreeNode('{self.name}')"

    def __str__(self) -> str:
        return f"{self.name}({self.key} @ {self.depth})"

    def __lt__(self, other: "TreeNode") -> bool:
        return self.key < other.key

    # ================================================================== #
    # Structure                                                            #
    # ================================================================== #

    def add_child(self, child: "TreeNode") -> None:
        """
        Append *child* to the end of the child list and set its parent.

        There is no removal; attachment is permanent.

        Raises
        ------
        TreeStructureError
            If this node has already been linked.
        """
        if self.leftmost_leaf is not None:
            raise TreeStructureError(
                f"Cannot add a child to {self!r}: the tree has already been "
                f"linked and is structurally frozen."
            )
        self.children.append(child)
        child.parent = self

    def is_leaf(self) -> bool:
        return not self.children

    def is_root(self) -> bool:
        return self.parent is None

    def number_children(self) -> int:
        return len(self.children)

    def child(self, i: int) -> Optional["TreeNode"]:
        """Return the *i*-th child, or None if *i* is out of range."""
        if 0 <= i < len(self.children):
            return self.children[i]
        return None

    def first_child(self) -> "TreeNode":
        return self.children[0]

    def last_child(self) -> "TreeNode":
        return self.children[-1]

    @property
    def is_linked(self) -> bool:
        """True once the extreme-leaf and leaf-count passes reached this node."""
        return self.leftmost_leaf is not None and self.number_leaves is not None

    def _require_linked(self) -> None:
        if not self.is_linked:
            raise TreeStructureError(
                f"{self!r} has not been linked; run link_structure() on the "
                f"root (or build the tree through Tree) first."
            )

    @property
    def min_key(self) -> int:
        """Smallest key in this subtree, which is this node's own key."""
        return self.key

    @property
    def max_key(self) -> int:
        """Largest key in this subtree: the key of the rightmost leaf."""
        self._require_linked()
        return self.rightmost_leaf.key

    @property
    def bcn_score(self) -> float:
        """
        Best-corresponding-node score in [0, 1], assigned by an external
        tree-comparison step.
        """
        return self._bcn_score

    @bcn_score.setter
    def bcn_score(self, value: float) -> None:
        value = float(value)
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"bcn_score must lie in [0, 1], got {value}.")
        self._bcn_score = value

    @property
    def seq_string(self) -> str:
        """Sequence residues, or '' when no sequence is attached."""
        if self.sequence is None:
            return ""
        return self.sequence.sequence

    def has_sequence_pattern(self, pattern: str) -> bool:
        """True if this node's sequence contains *pattern* literally."""
        if self.sequence is None:
            return pattern == ""
        return self.sequence.contains(pattern)

    # ================================================================== #
    # Linking passes                                                       #
    # ================================================================== #

    def set_extreme_leaves(self) -> None:
        """
        Set ``leftmost_leaf`` and ``rightmost_leaf``.  Must run on children
        before parents, which makes the whole pass O(n).
        """
        if self.is_leaf():
            self.leftmost_leaf = self
            self.rightmost_leaf = self
            return
        self.leftmost_leaf = self.children[0].leftmost_leaf
        self.rightmost_leaf = self.children[-1].rightmost_leaf

    def link_nodes_in_preorder(self) -> None:
        """Root->leaf links, depth first in the direction of the leftmost leaf."""
        if self.is_leaf():
            return
        children = self.children
        self.preorder_next = children[0]
        for i in range(len(children) - 1):
            children[i].rightmost_leaf.preorder_next = children[i + 1]

    def link_nodes_in_postorder(self) -> None:
        """Leaf->root links, starting at the leftmost leaf of the tree."""
        if self.is_leaf():
            return
        children = self.children
        for i in range(len(children) - 1):
            children[i].postorder_next = children[i + 1].leftmost_leaf
        children[-1].postorder_next = self

    def compute_subtree_sizes(
        self, strategy: Optional[str] = None, size_hint: int = 0
    ) -> int:
        """
        Set ``number_leaves`` on every node of this subtree in one
        bottom-up pass and return the value for this node.

        Only ``children`` is used, so this works before the other passes.

        Parameters
        ----------
        strategy : str or None
            'recursive', 'iterative', 'auto' or None (see ``resolve_strategy``).
        size_hint : int
            Upper bound on the subtree height, used by 'auto'.
        """
        if resolve_strategy(strategy, size_hint) == "recursive":
            return self._compute_subtree_sizes_recursive()

        for node in postorder_by_children(self):
            if node.is_leaf():
                node.number_leaves = 1
            else:
                node.number_leaves = sum(c.number_leaves for c in node.children)
        return self.number_leaves

    def _compute_subtree_sizes_recursive(self) -> int:
        if self.is_leaf():
            self.number_leaves = 1
        else:
            self.number_leaves = sum(
                c._compute_subtree_sizes_recursive() for c in self.children
            )
        return self.number_leaves

    # ================================================================== #
    # Link-following walks                                                 #
    # ================================================================== #

    def iter_preorder(self) -> Iterator["TreeNode"]:
        """Yield this subtree in preorder by following ``preorder_next``."""
        self._require_linked()
        last = self.rightmost_leaf
        node = self
        while True:
            yield node
            if node is last:
                return
            node = node.preorder_next

    def iter_postorder(self) -> Iterator["TreeNode"]:
        """Yield this subtree in postorder by following ``postorder_next``."""
        self._require_linked()
        node = self.leftmost_leaf
        while True:
            yield node
            if node is self:
                return
            node = node.postorder_next

    def iter_leaves(self) -> Iterator["TreeNode"]:
        """Yield the leaves of this subtree from left to right."""
        for node in self.iter_preorder():
            if node.is_leaf():
                yield node

    # ================================================================== #
    # Cached metrics                                                       #
    # ================================================================== #

    def _resolve(self, strategy: Optional[str]) -> str:
        self._require_linked()
        return resolve_strategy(strategy, self.number_leaves)

    def subtree_height(self, strategy: Optional[str] = None) -> int:
        """
        Number of nodes on the longest path from this node down to a leaf:
        1 for leaves, ``1 + max(child heights)`` otherwise.  Cached.
        """
        if self._resolve(strategy) == "recursive":
            return self._subtree_height_recursive()

        if self._subtree_height is None:
            for node in self.iter_postorder():
                if node._subtree_height is None:
                    if node.is_leaf():
                        node._subtree_height = 1
                    else:
                        node._subtree_height = 1 + max(
                            c._subtree_height for c in node.children
                        )
        return self._subtree_height

    def _subtree_height_recursive(self) -> int:
        if self._subtree_height is None:
            if self.is_leaf():
                self._subtree_height = 1
            else:
                self._subtree_height = 1 + max(
                    c._subtree_height_recursive() for c in self.children
                )
        return self._subtree_height

    def leaf_count(self, strategy: Optional[str] = None) -> int:
        """Number of leaves in this subtree.  Cached."""
        if self._resolve(strategy) == "recursive":
            return self._leaf_count_recursive()

        if self._leaf_count is None:
            for node in self.iter_postorder():
                if node._leaf_count is None:
                    if node.is_leaf():
                        node._leaf_count = 1
                    else:
                        node._leaf_count = sum(
                            c._leaf_count for c in node.children
                        )
        return self._leaf_count

    def _leaf_count_recursive(self) -> int:
        if self._leaf_count is None:
            if self.is_leaf():
                self._leaf_count = 1
            else:
                self._leaf_count = sum(
                    c._leaf_count_recursive() for c in self.children
                )
        return self._leaf_count

    def leaf_count_with_pattern(
        self, pattern: str, strategy: Optional[str] = None
    ) -> int:
        """
        Number of leaves in this subtree whose sequence contains *pattern*.

        Each pattern is computed once per node and cached; sequences must not
        change after the first query for a pattern.
        """
        if self._resolve(strategy) == "recursive":
            return self._leaf_count_with_pattern_recursive(pattern)

        if pattern not in self._pattern_counts:
            for node in self.iter_postorder():
                if pattern not in node._pattern_counts:
                    if node.is_leaf():
                        count = int(node.has_sequence_pattern(pattern))
                    else:
                        count = sum(
                            c._pattern_counts[pattern] for c in node.children
                        )
                    node._pattern_counts[pattern] = count
        return self._pattern_counts[pattern]

    def _leaf_count_with_pattern_recursive(self, pattern: str) -> int:
        count = self._pattern_counts.get(pattern)
        if count is None:
            if self.is_leaf():
                count = int(self.has_sequence_pattern(pattern))
            else:
                count = sum(
                    c._leaf_count_with_pattern_recursive(pattern)
                    for c in self.children
                )
            self._pattern_counts[pattern] = count
        return count

    # ================================================================== #
    # Uncached pattern queries                                             #
    # ================================================================== #

    def _is_disordered_pattern_leaf(self, pattern: str, threshold: float) -> bool:
        seq = self.sequence
        return (
            seq is not None
            and seq.has_disorder_probs
            and seq.contains(pattern)
            and seq.has_disordered_pattern(pattern, threshold)
        )

    def disordered_pattern_leaf_count(
        self, pattern: str, threshold: float, strategy: Optional[str] = None
    ) -> int:
        """
        Number of leaves whose sequence has disorder probabilities, contains
        *pattern*, and has an occurrence of it judged disordered at
        *threshold*.  Recomputed on every call.
        """
        if self._resolve(strategy) == "recursive":
            return self._disordered_pattern_leaf_count_recursive(pattern, threshold)
        return sum(
            1
            for leaf in self.iter_leaves()
            if leaf._is_disordered_pattern_leaf(pattern, threshold)
        )

    def _disordered_pattern_leaf_count_recursive(
        self, pattern: str, threshold: float
    ) -> int:
        if self.is_leaf():
            return int(self._is_disordered_pattern_leaf(pattern, threshold))
        return sum(
            c._disordered_pattern_leaf_count_recursive(pattern, threshold)
            for c in self.children
        )

    def collect_sequences(self, into: Optional[list] = None) -> list:
        """
        Append the sequence of every leaf of this subtree, left to right, to
        *into* (a new list if None) and return it.  Leaves without a
        sequence are skipped.
        """
        result = [] if into is None else into
        for leaf in self.iter_leaves():
            if leaf.sequence is not None:
                result.append(leaf.sequence)
        return result

    def or_query_string(self, pattern: Optional[str] = None) -> str:
        """
        Build a search-engine disjunction of leaf accessions:
        ``' OR acc1 OR acc2 ...'`` for every leaf whose sequence contains
        *pattern*, or for every leaf when *pattern* is None.
        """
        parts = []
        for leaf in self.iter_leaves():
            if leaf.sequence is None:
                continue
            if pattern is None or leaf.sequence.contains(pattern):
                parts.append(" OR " + leaf.sequence.accession)
        return "".join(parts)

    # ================================================================== #
    # Renaming                                                             #
    # ================================================================== #

    def rename_from_long_to_simple(self) -> None:
        """
        Shorten ``sp|<IDENTIFIER>|<FRAGMENT>|<NOTES>`` names to
        ``<IDENTIFIER>_<FRAGMENT>`` throughout this subtree, children first.

        Names with fewer than three ``|`` fields are left unchanged and a
        warning is logged.  Each rename is reported to the owning tree via
        ``tree.rename_node(node, old_name, new_name)``.
        """
        for node in postorder_by_children(self):
            old_name = node.name
            if not is_long_name(old_name):
                continue
            new_name = simplify_long_name(old_name)
            if new_name is None:
                log_malformed_header(old_name)
                continue
            node.name = new_name
            log_rename(old_name, new_name)
            if node.tree is not None:
                node.tree.rename_node(node, old_name, new_name)

    # ================================================================== #
    # Text rendering                                                       #
    # ================================================================== #

    def draw_subtree(
        self, with_seq: bool = False, with_dists: bool = False, level: int = 0
    ) -> str:
        """
        Render this subtree as indented text, one node per two lines.

        Each node gets a ``|`` connector line (followed by its branch length
        when *with_dists*) and a `` -- name`` line; internal nodes end the
        name line with `` --``, leaves with their residues in parentheses
        when *with_seq* and a sequence is attached.  Every level below
        *level* is indented by eight more spaces.

        Works on unlinked trees.

        Examples
        --------
        >>> print(Tree.from_newick('(A:1,B:2)R;').root.draw_subtree(with_dists=True))
        | 0.0
         -- R --
                | 1.0
                 -- A
                | 2.0
                 -- B
        <BLANKLINE>
        """
        lines = []
        stack = [(self, level)]
        while stack:
            node, node_level = stack.pop()
            indent = " " * (8 * node_level)
            if with_dists:
                lines.append(f"{indent}| {format_distance(node.dist_from_parent)}")
            else:
                lines.append(f"{indent}|")

            row = f"{indent} -- {node.name}"
            if node.is_leaf():
                if with_seq and node.sequence is not None:
                    row += f" ({node.seq_string})"
            else:
                row += " --"
                stack.extend((c, node_level + 1) for c in reversed(node.children))
            lines.append(row)
        return "".join(line + "\n" for line in lines)


# ====================================================================== #
# Whole-tree helpers                                                       #
# ====================================================================== #


def postorder_by_children(root: TreeNode) -> Iterator[TreeNode]:
    """
    Yield the subtree of *root* in postorder using an explicit stack over
    ``children``.  Works on unlinked trees.
    """
    stack = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if expanded or not node.children:
            yield node
            continue
        stack.append((node, True))
        for child in reversed(node.children):
            stack.append((child, False))


def preorder_by_children(root: TreeNode) -> Iterator[TreeNode]:
    """
    Yield the subtree of *root* in preorder using an explicit stack over
    ``children``.  Works on unlinked trees.
    """
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def link_structure(
    root: TreeNode, strategy: Optional[str] = None, size_hint: int = 0
) -> str:
    """
    Run the four linking passes over the tree below *root*, in the only
    valid order:

      1. extreme leaves      (bottom-up)
      2. preorder links      (needs 1)
      3. postorder links     (needs 1)
      4. subtree leaf counts (bottom-up)

    Parameters
    ----------
    root : TreeNode
    strategy : str or None
        'recursive', 'iterative', 'auto' or None.
    size_hint : int
        Upper bound on tree height (the node count is safe), used by 'auto'.

    Returns
    -------
    str
        The strategy actually used.
    """
    resolved = resolve_strategy(strategy, size_hint)

    if resolved == "recursive":
        _set_extreme_leaves_recursive(root)
        _apply_top_down(root, TreeNode.link_nodes_in_preorder)
        _apply_top_down(root, TreeNode.link_nodes_in_postorder)
    else:
        nodes = list(postorder_by_children(root))
        for node in nodes:
            node.set_extreme_leaves()
        for node in nodes:
            node.link_nodes_in_preorder()
        for node in nodes:
            node.link_nodes_in_postorder()

    root.compute_subtree_sizes(strategy=resolved)
    return resolved


def _set_extreme_leaves_recursive(node: TreeNode) -> None:
    for child in node.children:
        _set_extreme_leaves_recursive(child)
    node.set_extreme_leaves()


def _apply_top_down(node: TreeNode, link) -> None:
    link(node)
    for child in node.children:
        _apply_top_down(child, link)
