"""
_tree.py
========
The owning container of a ``TreeNode`` graph: assigns preorder keys and
depths, runs the linking passes in their required order, keeps a name
index up to date across renames, and exposes the linked structure as a set
of parallel numpy arrays indexed by key.

Public API
----------
  Tree(root, strategy=None)
  Tree.from_newick(newick_string, strategy=None)

  .node(key_or_name)
  .subtree_leaf_keys(node)
  .rename_node(node, old_name, new_name)      [callback from TreeNode]
  .rename_from_long_to_simple()
  .to_newick(with_colors=False, strategy=None)
  .min_distance_sample(...) / .blast_fasta_string(...)
  .close()

Arrays - linked structure (indexed by key, -1 = none)
-----------------------------------------------------
parent         : int32  [n_nodes]
distance       : float64[n_nodes]   Branch length to parent; 0.0 for root.
depth          : int32  [n_nodes]   Root is 1.
leftmost_leaf  : int32  [n_nodes]
rightmost_leaf : int32  [n_nodes]
preorder_next  : int32  [n_nodes]
postorder_next : int32  [n_nodes]
number_leaves  : int32  [n_nodes]
is_leaf        : bool   [n_nodes]

Because keys are assigned in preorder, the subtree of node k occupies the
contiguous key range ``k .. rightmost_leaf[k]``.  The arrays are a
read-only snapshot; the tree cannot change after construction.
"""

import logging
from typing import List, Optional, Union

import numpy as np

from ._logging import log_duplicate_name, log_tree_summary
from ._newick import parse_newick, to_newick
from ._node import TreeNode, TreeStructureError, link_structure, preorder_by_children
from ._sampler import blast_fasta_string, min_distance_sample
from ._utils import format_newick


logger = logging.getLogger(__name__)


class Tree:
    """
    A rooted, ordered phylogenetic tree built from linked ``TreeNode``s.

    Attributes (all read-only after construction)
    ----------------------------------------------
    root      : TreeNode
    nodes     : list[TreeNode]   Node with key k at index k (preorder).
    n_nodes   : int
    n_leaves  : int
    strategy  : str   Traversal strategy used for the linking passes.
    """

    # ================================================================== #
    # Construction                                                         #
    # ================================================================== #

    def __init__(self, root: TreeNode, strategy: Optional[str] = None) -> None:
        """
        Take ownership of the unlinked graph under *root* and link it.

        The root's ``dist_from_parent`` is reset to 0.0.

        Parameters
        ----------
        root : TreeNode
            Root of a graph built with ``add_child``; it must not have a
            parent.
        strategy : str or None
            Traversal strategy for the linking passes.

        Raises
        ------
        ValueError
            If *root* has a parent.
        TreeStructureError
            If the graph has already been linked.
        """
        if root.parent is not None:
            raise ValueError(f"{root!r} has a parent and cannot be a tree root.")
        if root.is_linked:
            raise TreeStructureError(f"{root!r} is already linked into a tree.")

        self.root = root
        root.dist_from_parent = 0.0
        self._assign_keys()

        self.n_nodes: int = len(self.nodes)
        self.strategy: str = link_structure(root, strategy, size_hint=self.n_nodes)
        self._build_arrays()
        self.n_leaves: int = int(np.count_nonzero(self.is_leaf))

        # Name index: built lazily on first name-based query.
        self._name_index: dict = None  # type: ignore[assignment]

        log_tree_summary(
            self.n_nodes, self.n_leaves, int(self.depth.max()), self.strategy
        )

    @classmethod
    def from_newick(cls, newick_string: str, strategy: Optional[str] = None) -> "Tree":
        """
        Parse *newick_string* (see ``parse_newick``) and link the result.

        Raises
        ------
        ValueError
            If the NEWICK text is malformed.
        """
        return cls(parse_newick(newick_string), strategy=strategy)

    def __len__(self) -> int:
        return self.n_nodes

    def __iter__(self):
        return iter(self.nodes)

    def __repr__(self) -> str:
        return f"Tree({self.n_nodes} nodes, {self.n_leaves} leaves)"

    # ================================================================== #
    # Public methods                                                       #
    # ================================================================== #

    def node(self, node: Union[int, str, TreeNode]) -> TreeNode:
        """
        Return the node for a key, a name, or a node of this tree.

        Raises
        ------
        KeyError
            If no node has that name.
        IndexError
            If the key is out of range.
        """
        if isinstance(node, TreeNode):
            return node
        key = self._resolve_key(node)
        if not 0 <= key < self.n_nodes:
            raise IndexError(f"Key {key} out of range for {self.n_nodes} nodes.")
        return self.nodes[key]

    @property
    def leaves(self) -> List[TreeNode]:
        return [self.nodes[k] for k in np.flatnonzero(self.is_leaf)]

    def subtree_leaf_keys(self, node: Union[int, str, TreeNode]) -> np.ndarray:
        """
        Keys of the leaves below *node*, ascending (left to right).

        Uses preorder key contiguity: no traversal is needed.

        Returns
        -------
        int64 array
        """
        key = self.node(node).key
        keys = np.arange(key, int(self.rightmost_leaf[key]) + 1)
        return keys[self.is_leaf[keys]]

    def attach_sequences(self, records, key=None) -> int:
        """
        Attach sequence records to the nodes with matching names.

        Must be done before any pattern query: cached pattern counts are
        never invalidated.

        Parameters
        ----------
        records : dict[str, FastaItem] or iterable of FastaItem
            A name -> record mapping, or records to match by *key*.
        key : callable or None
            Maps a record to a node name; defaults to the record's
            accession.  Ignored for mappings.

        Returns
        -------
        int
            Number of records attached.

        Raises
        ------
        KeyError
            If a record names no node of this tree.
        """
        if isinstance(records, dict):
            pairs = records.items()
        else:
            get_name = key if key is not None else (lambda r: r.accession)
            pairs = ((get_name(r), r) for r in records)

        n_attached = 0
        for name, record in pairs:
            self.node(name).sequence = record
            n_attached += 1
        logger.debug("Attached %d sequence record(s)", n_attached)
        return n_attached

    def rename_node(self, node: TreeNode, old_name: str, new_name: str) -> None:
        """
        Record that *node* was renamed from *old_name* to *new_name*.

        Called by ``TreeNode.rename_from_long_to_simple``; keeps the name
        index consistent.
        """
        if self._name_index is None:
            return
        if self._name_index.get(old_name) == node.key:
            del self._name_index[old_name]
        if new_name == "":
            return
        other = self._name_index.get(new_name)
        if other is not None and other != node.key:
            log_duplicate_name(new_name, other, node.key)
            return
        self._name_index[new_name] = node.key

    def rename_from_long_to_simple(self) -> None:
        """Shorten every ``sp|ID|FRAGMENT|...`` node name in the tree."""
        self.root.rename_from_long_to_simple()

    def to_newick(self, with_colors: bool = False, strategy: Optional[str] = None) -> str:
        """Serialize the whole tree, terminated by ';'."""
        return format_newick(to_newick(self.root, with_colors, strategy))

    def min_distance_sample(
        self,
        node: Union[int, str, TreeNode, None] = None,
        pattern: Optional[str] = None,
        min_dist: float = 0.0,
        strategy: Optional[str] = None,
    ):
        """Run ``min_distance_sample`` on *node* (the root by default)."""
        start = self.root if node is None else self.node(node)
        return min_distance_sample(start, pattern, min_dist, strategy)

    def blast_fasta_string(
        self,
        node: Union[int, str, TreeNode, None] = None,
        pattern: Optional[str] = None,
        min_dist: float = 0.0,
        strategy: Optional[str] = None,
    ) -> str:
        """Run ``blast_fasta_string`` on *node* (the root by default)."""
        start = self.root if node is None else self.node(node)
        return blast_fasta_string(start, pattern, min_dist, strategy)

    def close(self) -> None:
        """
        Tear the whole tree down: drop every child list and back-reference
        so the nodes can be collected independently of each other.
        """
        for node in self.nodes:
            node.children = []
            node.parent = None
            node.tree = None
            node.leftmost_leaf = None
            node.rightmost_leaf = None
            node.preorder_next = None
            node.postorder_next = None
        self.nodes = []
        self._name_index = None
        logger.debug("Closed tree with %d nodes", self.n_nodes)

    # ================================================================== #
    # Private instance methods                                             #
    # ================================================================== #

    def _assign_keys(self) -> None:
        """
        **Private.**  Number the nodes in preorder (root = 0), set depths
        (root = 1) and the back-reference to this tree.

        Populates
        ---------
        self.nodes
        """
        nodes = []
        for key, node in enumerate(preorder_by_children(self.root)):
            node.key = key
            node.depth = 1 if node.parent is None else node.parent.depth + 1
            node.tree = self
            nodes.append(node)
        self.nodes = nodes

    def _build_arrays(self) -> None:
        """
        **Private.**  Snapshot the linked structure into parallel arrays.

        Populates
        ---------
        self.parent, self.distance, self.depth, self.leftmost_leaf,
        self.rightmost_leaf, self.preorder_next, self.postorder_next,
        self.number_leaves, self.is_leaf
        """
        n_nodes = len(self.nodes)

        def key_of(other: Optional[TreeNode]) -> int:
            return -1 if other is None else other.key

        parent = np.full(n_nodes, -1, dtype=np.int32)
        distance = np.zeros(n_nodes, dtype=np.float64)
        depth = np.zeros(n_nodes, dtype=np.int32)
        leftmost_leaf = np.full(n_nodes, -1, dtype=np.int32)
        rightmost_leaf = np.full(n_nodes, -1, dtype=np.int32)
        preorder_next = np.full(n_nodes, -1, dtype=np.int32)
        postorder_next = np.full(n_nodes, -1, dtype=np.int32)
        number_leaves = np.zeros(n_nodes, dtype=np.int32)
        is_leaf = np.zeros(n_nodes, dtype=bool)

        for node in self.nodes:
            k = node.key
            parent[k] = key_of(node.parent)
            distance[k] = node.dist_from_parent
            depth[k] = node.depth
            leftmost_leaf[k] = node.leftmost_leaf.key
            rightmost_leaf[k] = node.rightmost_leaf.key
            preorder_next[k] = key_of(node.preorder_next)
            postorder_next[k] = key_of(node.postorder_next)
            number_leaves[k] = node.number_leaves
            is_leaf[k] = node.is_leaf()

        self.parent = parent
        self.distance = distance
        self.depth = depth
        self.leftmost_leaf = leftmost_leaf
        self.rightmost_leaf = rightmost_leaf
        self.preorder_next = preorder_next
        self.postorder_next = postorder_next
        self.number_leaves = number_leaves
        self.is_leaf = is_leaf

    def _resolve_key(self, node: Union[int, str]) -> int:
        """
        **Private.**  Return the integer key for *node*.

        Integers (including numpy integers) are returned as plain ``int``;
        strings are looked up in the lazily built name index.

        Raises
        ------
        KeyError   if *node* is a string not present in the tree.
        """
        if isinstance(node, (int, np.integer)):
            return int(node)
        if self._name_index is None:
            self._build_name_index()
        if node not in self._name_index:
            raise KeyError(f"No node with name '{node}' found in tree.")
        return self._name_index[node]

    def _build_name_index(self) -> None:
        """
        **Private.**  Build and cache ``self._name_index``: a dict mapping
        each non-empty node name to its key.  For duplicated names the
        first node in preorder wins and a warning is logged.
        """
        idx = {}
        for node in self.nodes:
            name = node.name
            if name != "":
                if name in idx:
                    log_duplicate_name(name, idx[name], node.key)
                    continue
                idx[name] = node.key
        self._name_index = idx
