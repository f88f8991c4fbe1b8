"""
_logging.py
===========
Logging functions for phytree.

All functions in this module have NO side effects except logging. They take
computed data as parameters and format/emit log messages.

This separation ensures:
- Logging can be easily disabled/mocked in tests
- Computation is separate from presentation
- Clear boundaries between analysis and reporting
"""

import logging
from typing import Optional


logger = logging.getLogger(__name__)


# ============================================================================ #
# Tree Construction Logging
# ============================================================================ #


def log_tree_summary(
    n_nodes: int, n_leaves: int, height: int, strategy: str
) -> None:
    """
    Log the shape of a freshly linked tree at INFO level.

    Parameters
    ----------
    n_nodes : int
        Total number of nodes.
    n_leaves : int
        Number of leaves.
    height : int
        Subtree height of the root (a single leaf has height 1).
    strategy : str
        Traversal strategy used for the linking passes.
    """
    logger.info(
        "Linked tree: %d nodes, %d leaves, height %d (%s traversal)",
        n_nodes,
        n_leaves,
        height,
        strategy,
    )
    if n_nodes > 1 and n_nodes - n_leaves < n_leaves - 1:
        logger.info(
            "  %d multifurcating internal node(s) worth of extra children",
            (n_leaves - 1) - (n_nodes - n_leaves),
        )


def log_duplicate_name(name: str, first_key: int, other_key: int) -> None:
    """
    Warn that two nodes share a name; the name index keeps the first one.

    Parameters
    ----------
    name : str
        The duplicated name.
    first_key, other_key : int
        Keys of the indexed node and of the node that was not indexed.
    """
    logger.warning(
        "Duplicate node name '%s' at keys %d and %d; lookups by name "
        "return key %d.",
        name,
        first_key,
        other_key,
        first_key,
    )


# ============================================================================ #
# Rename Logging
# ============================================================================ #


def log_malformed_header(name: str) -> None:
    """
    Warn about a long node name that cannot be shortened.

    Parameters
    ----------
    name : str
        The offending name, left unchanged by the caller.
    """
    logger.warning("Unexpected name format: %s", name)
    logger.warning(
        "Expecting headers like: >sp|<IDENTIFIER>|<IDX OF FRAGMENT>|<NOTES>"
    )


def log_rename(old_name: str, new_name: str) -> None:
    """Log one node rename at DEBUG level."""
    logger.debug("Renamed node '%s' -> '%s'", old_name, new_name)


# ============================================================================ #
# Sampler Logging
# ============================================================================ #


def log_sampling_summary(
    n_leaves: int,
    n_selected: int,
    min_dist: float,
    pattern: Optional[str],
    strategy: str,
) -> None:
    """
    Log the outcome of one minimum-distance sampling run at INFO level.

    Parameters
    ----------
    n_leaves : int
        Number of leaves in the sampled subtree.
    n_selected : int
        Number of leaves selected.
    min_dist : float
        Minimum pairwise branch-length distance requested.
    pattern : str or None
        Sequence pattern filter, or None when every leaf is a candidate.
    strategy : str
        Traversal strategy used.
    """
    filter_str = f"pattern {pattern!r}" if pattern is not None else "no pattern"
    logger.info(
        "Sampled %d of %d leaves (min_dist=%g, %s, %s traversal)",
        n_selected,
        n_leaves,
        min_dist,
        filter_str,
        strategy,
    )
