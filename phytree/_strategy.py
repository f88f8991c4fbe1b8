"""
_strategy.py
============
Traversal strategy detection and selection for phytree.

Every algorithm that walks a subtree (the linking passes, the cached
metrics, the pattern counts, the sampler and the serializer) exists in two
interchangeable forms:

  'recursive'   Plain depth-first recursion over ``node.children``.  Fast
                and easy to read, but limited by the interpreter's
                recursion limit (tree height must stay well below
                ``sys.getrecursionlimit()``).
  'iterative'   Explicit-stack or link-following walks (postorder /
                preorder chains).  No recursion; safe on caterpillar trees
                of any height.

Both forms return identical results.  'auto' picks one per call from the
size of the subtree being processed.

Functions in this module have NO side effects - they only resolve names.
Logging is done by the calling code, not here.
"""

import sys
from typing import List, Optional


STRATEGIES = ("recursive", "iterative")


# ============================================================================ #
# Strategy Queries (No Side Effects)
# ============================================================================ #


def get_available_strategies() -> List[str]:
    """
    Get list of available traversal strategies.

    Returns
    -------
    list[str]
        ``['recursive', 'iterative']``.  Both are pure Python and always
        available; the list is returned for symmetry with ``resolve_strategy``.
    """
    return list(STRATEGIES)


def recursion_budget() -> int:
    """
    Largest subtree size that 'auto' still hands to the recursive strategy.

    A quarter of the interpreter's recursion limit leaves room for the
    caller's own frames and for the two to three frames each recursive
    metric uses per tree level.

    Returns
    -------
    int
    """
    return sys.getrecursionlimit() // 4


def resolve_strategy(strategy: Optional[str], size_hint: int = 0) -> str:
    """
    Resolve a strategy specification to an actual strategy.

    Parameters
    ----------
    strategy : str or None
        Strategy specification:
        - None: use the active ``use_strategy`` override, else 'auto'
        - 'auto': 'iterative' if *size_hint* exceeds ``recursion_budget()``,
          'recursive' otherwise
        - 'recursive', 'iterative': use that strategy
    size_hint : int, default 0
        Upper bound on the height of the subtree being processed (the leaf
        or node count is a safe choice).

    Returns
    -------
    str
        'recursive' or 'iterative'.

    Raises
    ------
    ValueError
        If *strategy* is not a known name.

    Examples
    --------
    >>> resolve_strategy('iterative')
    'iterative'

    >>> resolve_strategy('auto', size_hint=10)
    'recursive'

    >>> resolve_strategy('auto', size_hint=10**6)
    'iterative'
    """
    if strategy is None:
        from ._context import get_strategy_override

        strategy = get_strategy_override() or "auto"

    if strategy == "auto":
        return "iterative" if size_hint > recursion_budget() else "recursive"

    if strategy not in STRATEGIES:
        raise ValueError(
            f"Strategy '{strategy}' not available. "
            f"Available strategies: auto, {', '.join(STRATEGIES)}"
        )

    return strategy
