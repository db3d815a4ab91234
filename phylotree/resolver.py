"""
Resolution of mixed node/name collections against a tree.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Union

from phylotree.exceptions import AmbiguousNodeError, NodeNotFoundError, TreeError
from phylotree.tree import Node

logger = logging.getLogger(__name__)

NodeOrName = Union[Node, str]


def resolve_nodes(root: Node, items: Iterable[NodeOrName]) -> List[Node]:
    """
    Translate a collection of nodes and node names into node references.

    Names are looked up with a single traversal of the tree under ``root``.
    Node references are checked and passed through unchanged. The result
    keeps first-seen order and never contains the same node twice, even if
    it was given twice (directly, by name, or both).

    Args:
        root: Tree in which names are looked up
        items: Nodes and/or node names

    Returns:
        List of distinct nodes

    Raises:
        AmbiguousNodeError: If a requested name matches more than one node
        NodeNotFoundError: If any requested name matches no node
        TreeError: If an item is neither a Node nor a string
    """
    items = list(items)
    for item in items:
        if not isinstance(item, (Node, str)):
            raise TreeError(f"Invalid target node: {item!r}")

    name2node: Dict[str, Optional[Node]] = {
        item: None for item in items if isinstance(item, str)
    }
    if name2node:
        for node in root.traverse():
            if node.name in name2node:
                if name2node[node.name] is not None:
                    raise AmbiguousNodeError(node.name)
                name2node[node.name] = node

        missing = [name for name, node in name2node.items() if node is None]
        if missing:
            raise NodeNotFoundError(f"Node names not found: {missing}", missing)

    resolved: List[Node] = []
    seen = set()
    for item in items:
        node = name2node[item] if isinstance(item, str) else item
        if node in seen:
            logger.debug("Dropping duplicate target %r", node)
            continue
        seen.add(node)
        resolved.append(node)
    return resolved
