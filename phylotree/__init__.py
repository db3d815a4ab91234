"""Rooted phylogenetic trees: node model, Newick codec, traversal and topology."""

from phylotree.exceptions import (
    AmbiguousNodeError,
    DisconnectedNodesError,
    NewickError,
    NodeNotFoundError,
    TreeError,
)
from phylotree.tree import Node
from phylotree.resolver import resolve_nodes
from phylotree.topology import get_common_ancestor, get_distance, prune
from phylotree.parser import parse_newick, write_newick
from phylotree.config import set_float_format

__version__ = "0.1.0"

__all__ = [
    "Node",
    "parse_newick",
    "write_newick",
    "resolve_nodes",
    "get_common_ancestor",
    "get_distance",
    "prune",
    "set_float_format",
    "TreeError",
    "NewickError",
    "NodeNotFoundError",
    "AmbiguousNodeError",
    "DisconnectedNodesError",
]
