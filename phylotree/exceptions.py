"""
Custom exceptions for tree construction, parsing and manipulation.
"""

from __future__ import annotations
from typing import Iterable, List


class TreeError(Exception):
    """Base exception for all tree operation errors."""

    pass


class NewickError(TreeError):
    """Raised when Newick text is malformed or violates the selected format."""

    def __init__(self, message: str):
        message += (
            "\nYou may want to check other newick loading flags like "
            "'format' or 'quoted_names'."
        )
        super().__init__(message)


class NodeNotFoundError(TreeError, ValueError):
    """Raised when one or more nodes cannot be found in a tree."""

    def __init__(self, message: str, names: Iterable[str] = ()):
        super().__init__(message)
        self.names: List[str] = list(names)


class AmbiguousNodeError(TreeError):
    """Raised when a node name matches more than one node."""

    def __init__(self, name: str):
        super().__init__(f"Ambiguous node name: {name}")
        self.name = name


class DisconnectedNodesError(TreeError):
    """Raised when target nodes do not share any ancestor."""

    pass
