"""
_context.py
===========
Context managers for phytree.

Provides clean, Pythonic context managers for temporarily changing state:
- Logging control (suppress/change levels)
- Traversal strategy selection (force recursive or iterative walks)

All context managers properly restore state on exit, even if exceptions occur.
"""

import logging
from contextlib import contextmanager
from typing import Optional


# Module-level state for strategy override
_strategy_override = None


# ============================================================================ #
# Logging Context Managers
# ============================================================================ #


@contextmanager
def suppress_logger(logger_name: str, level: int = logging.CRITICAL):
    """
    Temporarily change a logger's level.

    Useful for silencing one module, e.g. the rename warnings emitted while
    normalizing a large tree.

    Parameters
    ----------
    logger_name : str
        Name of the logger to suppress (e.g., 'phytree._node')
    level : int, default logging.CRITICAL
        Temporary logging level.

    Yields
    ------
    None
        Control is yielded back to the with-block.

    Examples
    --------
    >>> with suppress_logger('phytree._node'):
    ...     tree.rename_from_long_to_simple()

    >>> with suppress_logger('phytree._tree', logging.WARNING):
    ...     tree = Tree.from_newick(nwk)

    Notes
    -----
    - Exception-safe: Logger level restored even if exception raised
    - Nesting-safe: Can nest multiple suppress_logger contexts
    """
    logger = logging.getLogger(logger_name)
    original_level = logger.level

    try:
        logger.setLevel(level)
        yield
    finally:
        logger.setLevel(original_level)


@contextmanager
def quiet(level: int = logging.CRITICAL):
    """
    Temporarily suppress all phytree logging.

    Every module logger lives under the 'phytree' namespace, so raising the
    level of that parent logger silences construction summaries, sampler
    summaries and rename warnings at once.

    Parameters
    ----------
    level : int, default logging.CRITICAL
        Temporary logging level for the 'phytree' logger.

    Yields
    ------
    None

    Examples
    --------
    >>> with quiet():
    ...     tree = Tree.from_newick(nwk)

    >>> with quiet(logging.WARNING):
    ...     tree.rename_from_long_to_simple()
    """
    with suppress_logger("phytree", level):
        yield


# ============================================================================ #
# Strategy Context Managers
# ============================================================================ #


@contextmanager
def use_strategy(strategy: str):
    """
    Temporarily force a traversal strategy for every phytree operation
    called without an explicit ``strategy=`` argument.

    Parameters
    ----------
    strategy : str
        'recursive', 'iterative' or 'auto'.

    Yields
    ------
    None

    Raises
    ------
    ValueError
        If *strategy* is not a known name.

    Examples
    --------
    >>> with use_strategy('iterative'):
    ...     tree = Tree.from_newick(very_deep_newick)
    ...     text = tree.to_newick()

    Notes
    -----
    - **Not thread-safe**: Uses module-level state.  Pass ``strategy=``
      directly to the operation instead when threads are involved.
    - Original behavior restored on exit
    """
    global _strategy_override

    from ._strategy import get_available_strategies

    available = get_available_strategies()

    if strategy != "auto" and strategy not in available:
        raise ValueError(
            f"Strategy '{strategy}' not available. "
            f"Available strategies: auto, {', '.join(available)}"
        )

    original_override = _strategy_override

    try:
        _strategy_override = strategy
        yield
    finally:
        _strategy_override = original_override


def get_strategy_override() -> Optional[str]:
    """
    Get the current strategy override, if any.

    Returns
    -------
    str or None
        Current strategy override, or None if no override active.

    Examples
    --------
    >>> get_strategy_override()
    None

    >>> with use_strategy('iterative'):
    ...     print(get_strategy_override())
    iterative
    """
    return _strategy_override
