"""
_utils.py
=========
General-purpose utility functions for phytree.

These are standalone functions that don't depend on the main classes
and could be useful in multiple contexts.
"""

from typing import List, Optional


def split_header_fields(header: str) -> List[str]:
    """
    Split a pipe-delimited sequence header into its fields.

    Trailing empty fields are dropped, so ``'sp|P12345|'`` has two fields,
    not three.  Empty fields in the middle are kept.

    Parameters
    ----------
    header : str
        Header text such as ``'sp|P12345|2|note'``.

    Returns
    -------
    list[str]

    Examples
    --------
    >>> split_header_fields('sp|P12345|2|note')
    ['sp', 'P12345', '2', 'note']

    >>> split_header_fields('sp|P12345||')
    ['sp', 'P12345']

    >>> split_header_fields('sp||2')
    ['sp', '', '2']
    """
    fields = header.split("|")
    while fields and fields[-1] == "":
        fields.pop()
    return fields


def is_long_name(name: str) -> bool:
    """
    True if *name* looks like a long ``sp|<IDENTIFIER>|<FRAGMENT>|...``
    header that ``simplify_long_name`` should try to shorten.
    """
    return name.startswith("sp") and "|" in name


def simplify_long_name(name: str) -> Optional[str]:
    """
    Shorten a ``sp|<IDENTIFIER>|<FRAGMENT_INDEX>|<NOTES>`` header to
    ``<IDENTIFIER>_<FRAGMENT_INDEX>``.

    Parameters
    ----------
    name : str
        Long header.  Callers check ``is_long_name`` first.

    Returns
    -------
    str or None
        The short name, or None if the header has fewer than three fields.

    Examples
    --------
    >>> simplify_long_name('sp|P12345|2|note')
    'P12345_2'

    >>> simplify_long_name('sp|onlytwofields') is None
    True
    """
    fields = split_header_fields(name)
    if len(fields) < 3:
        return None
    return f"{fields[1]}_{fields[2]}"


def format_distance(distance: float) -> str:
    """
    Render a branch length the way NEWICK output writes it.

    Uses Python's shortest round-tripping float representation, so integer
    lengths keep a trailing ``.0``.

    Examples
    --------
    >>> format_distance(1)
    '1.0'

    >>> format_distance(0.25)
    '0.25'
    """
    return repr(float(distance))


def format_newick(newick: str) -> str:
    """
    Format a NEWICK string for consistent representation.

    Ensures the NEWICK string:
    - Ends with a semicolon
    - Has no leading/trailing whitespace

    Examples
    --------
    >>> format_newick('((A:1,B:1):1,(C:1,D:1):1)')
    '((A:1,B:1):1,(C:1,D:1):1);'

    >>> format_newick('  ((A:1,B:1):1);  ')
    '((A:1,B:1):1);'
    """
    newick = newick.strip()
    if not newick.endswith(";"):
        newick += ";"
    return newick
