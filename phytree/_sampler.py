"""
_sampler.py
===========
Greedy minimum-distance sampling of leaves, used to build a small but
diverse query set (e.g. for BLAST) from the sequences of a subtree.

Public API
----------
  min_distance_sample(node, pattern=None, min_dist=0.0, strategy=None)
      -> list[SampledLeaf]
  blast_fasta_string(node, pattern=None, min_dist=0.0, strategy=None)
      -> str

Algorithm
---------
One bottom-up pass, no backtracking.  Every result item carries the leaf's
own branch length plus the branch lengths of the nodes above it where a
merge took place.  Nodes that only pass a single result up (unary nodes,
or nodes with one non-empty child result) add nothing.

  Leaf      [(sequence, dist_from_parent)] if it matches *pattern*, else [].

  Internal  Scan the child results left to right, skipping empty ones.
            The first non-empty result is adopted as-is.  From the second
            non-empty result, a candidate is kept if it is farther than
            *min_dist* from at least one already accepted item
            (``candidate.distance + item.distance > min_dist``).  The kept
            candidates are appended, every item's distance grows by the
            node's own ``dist_from_parent``, and the scan stops there:
            results of any further children are not considered at this
            node.  When no second non-empty result exists, the adopted
            result is passed up unchanged.

The result is deterministic for a fixed child order and favours leftmost
subtrees; there is no optimality guarantee.
"""

from typing import Iterable, List, Optional

from ._logging import log_sampling_summary
from ._sequence import FASTA_ROW_WIDTH


class SampledLeaf:
    """
    One selected leaf during sampling.

    Attributes
    ----------
    sequence : FastaItem
        The leaf's sequence record.
    distance : float
        Accumulated branch length used in the distance test; grows in
        place at every node where a merge takes place.
    """

    __slots__ = ("sequence", "distance")

    def __init__(self, sequence, distance: float) -> None:
        self.sequence = sequence
        self.distance = float(distance)

    def __repr__(self) -> str:
        return f"SampledLeaf({self.sequence!r}, {self.distance!r})"


# ============================================================================ #
# Public API
# ============================================================================ #


def min_distance_sample(
    node,
    pattern: Optional[str] = None,
    min_dist: float = 0.0,
    strategy: Optional[str] = None,
) -> List[SampledLeaf]:
    """
    Select leaves of the subtree under *node* that match *pattern* and are
    spread apart by more than *min_dist* in summed branch length.

    Parameters
    ----------
    node : TreeNode
        Root of the subtree to sample.  Must be linked.
    pattern : str or None
        Only leaves whose sequence contains *pattern* are candidates.  None
        makes every leaf a candidate.
    min_dist : float
        Minimum path length required between a new candidate and at least
        one accepted leaf.
    strategy : str or None
        'recursive', 'iterative', 'auto' or None.

    Returns
    -------
    list[SampledLeaf]
        Selected leaves, leftmost subtree first.  Distances include
        *node*'s own ``dist_from_parent`` when two child results were
        merged at *node*.

    Raises
    ------
    TreeStructureError
        If *node* has not been linked.
    """
    resolved = node._resolve(strategy)

    if resolved == "recursive":
        selected = _sample_recursive(node, pattern, min_dist)
    else:
        selected = _sample_iterative(node, pattern, min_dist)

    log_sampling_summary(node.number_leaves, len(selected), min_dist, pattern, resolved)
    return selected


def blast_fasta_string(
    node,
    pattern: Optional[str] = None,
    min_dist: float = 0.0,
    strategy: Optional[str] = None,
    width: int = FASTA_ROW_WIDTH,
) -> str:
    """
    Run ``min_distance_sample`` and format the selected sequences as FASTA:
    the header row, then the sequence rows of at most *width* residues,
    each line terminated by a newline.

    Leaves without an attached sequence are left out of the text.
    """
    lines = []
    for item in min_distance_sample(node, pattern, min_dist, strategy):
        if item.sequence is None:
            continue
        lines.append(item.sequence.header_row)
        lines.extend(item.sequence.sequence_rows(width))
    return "".join(line + "\n" for line in lines)


# ============================================================================ #
# Implementation
# ============================================================================ #


def _leaf_result(leaf, pattern: Optional[str]) -> List[SampledLeaf]:
    if pattern is None or leaf.has_sequence_pattern(pattern):
        return [SampledLeaf(leaf.sequence, leaf.dist_from_parent)]
    return []


def _merge_child_results(
    node, child_results: Iterable[List[SampledLeaf]], min_dist: float
) -> List[SampledLeaf]:
    """
    Combine the children's results at *node*.  *child_results* is consumed
    lazily and only up to the second non-empty result.

    Distances grow by ``node.dist_from_parent`` only when a second result
    was merged; a lone adopted result is returned as it came.
    """
    accepted: List[SampledLeaf] = []
    for result in child_results:
        if not result:
            continue
        if not accepted:
            accepted = list(result)
            continue

        to_add = [
            candidate
            for candidate in result
            if any(
                candidate.distance + item.distance > min_dist for item in accepted
            )
        ]
        accepted.extend(to_add)
        for item in accepted:
            item.distance += node.dist_from_parent
        break

    return accepted


def _sample_recursive(node, pattern, min_dist) -> List[SampledLeaf]:
    if node.is_leaf():
        return _leaf_result(node, pattern)
    return _merge_child_results(
        node,
        (_sample_recursive(child, pattern, min_dist) for child in node.children),
        min_dist,
    )


def _sample_iterative(node, pattern, min_dist) -> List[SampledLeaf]:
    # Postorder guarantees every child's result exists before its parent.
    results = {}
    for current in node.iter_postorder():
        if current.is_leaf():
            results[id(current)] = _leaf_result(current, pattern)
        else:
            child_results = [results.pop(id(c)) for c in current.children]
            results[id(current)] = _merge_child_results(
                current, child_results, min_dist
            )
    return results[id(node)]
