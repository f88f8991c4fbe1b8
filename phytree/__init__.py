"""
phytree
=======

Phylogenetic tree nodes with traversal links, cached subtree metrics,
sequence-pattern statistics and greedy minimum-distance leaf sampling for
building representative sequence subsets.

Main Classes
------------
Tree : Owning container; builds from NEWICK and links the node graph
TreeNode : Tree node with extreme-leaf and preorder/postorder links
FastaItem : Sequence record with optional disorder probabilities

Algorithms
----------
min_distance_sample : Greedy diverse-leaf selection under a distance bound
blast_fasta_string : Same, formatted as FASTA text
to_newick / parse_newick : NEWICK/NHX writing and reading
link_structure : Run the four linking passes on an unlinked graph

Context Managers
----------------
quiet : Suppress phytree logging
suppress_logger : Suppress a specific logger
use_strategy : Force the recursive or iterative traversal strategy

Examples
--------
Basic usage:

>>> from phytree import Tree, FastaItem
>>> tree = Tree.from_newick('((A:1,B:1):1,(C:1,D:1):1);')
>>> tree.root.leaf_count()
4
>>> tree.to_newick()
'((A:1.0,B:1.0):1.0,(C:1.0,D:1.0):1.0):0.0;'

Representative sampling:

>>> tree.attach_sequences({n: FastaItem(n, 'MKV') for n in 'ABCD'})
4
>>> [s.sequence.header for s in tree.min_distance_sample(min_dist=1.5)]
['A', 'B', 'C', 'D']

Very deep trees:

>>> from phytree import use_strategy
>>> with use_strategy('iterative'):
...     tree = Tree.from_newick(caterpillar_newick)
"""

__version__ = "0.1.0"
__license__ = "MIT"

# Main classes
from ._tree import Tree
from ._node import TreeNode, TreeStructureError, link_structure
from ._sequence import FastaItem, parse_fasta

# Algorithms
from ._sampler import SampledLeaf, min_distance_sample, blast_fasta_string
from ._newick import to_newick, parse_newick

# Context managers (user-facing utilities)
from ._context import (
    suppress_logger,
    quiet,
    use_strategy,
)

# Utilities (generally useful functions)
from ._utils import (
    format_newick,
    simplify_long_name,
)

# Strategy information
from ._strategy import get_available_strategies, resolve_strategy

# Public API
__all__ = [
    # Main classes
    "Tree",
    "TreeNode",
    "TreeStructureError",
    "FastaItem",
    # Algorithms
    "link_structure",
    "min_distance_sample",
    "blast_fasta_string",
    "SampledLeaf",
    "to_newick",
    "parse_newick",
    "parse_fasta",
    # Context managers
    "suppress_logger",
    "quiet",
    "use_strategy",
    # Utilities
    "format_newick",
    "simplify_long_name",
    # Strategy information
    "get_available_strategies",
    "resolve_strategy",
    # Version info
    "__version__",
]
