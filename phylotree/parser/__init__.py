"""
Newick format codec for phylogenetic trees.

This module converts between Newick text held in memory and node
hierarchies. No file or network I/O is performed here.
"""

from .formats import NEWICK_FORMATS, NewickFormat, Policy, get_format
from .newick_parser import parse_newick, parse_metadata, split_token
from .newick_writer import format_node, write_newick

__all__ = [
    "NEWICK_FORMATS",
    "NewickFormat",
    "Policy",
    "get_format",
    "parse_newick",
    "parse_metadata",
    "split_token",
    "format_node",
    "write_newick",
]
