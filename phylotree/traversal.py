"""
Traversal engine for node hierarchies.

Every function here is a generator: each call builds a fresh, independent
iterator over the subtree rooted at the given node. The trees are finite, so
all sequences terminate. Mutating a tree while one of these iterators is
being consumed is not supported.

A custom ``is_leaf_fn`` may be supplied to treat some internal nodes as
terminal; their descendants are then never visited.
"""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING, Callable, Deque, Iterator, List, Optional, Tuple

from phylotree.exceptions import TreeError

if TYPE_CHECKING:
    from phylotree.tree import Node

IsLeafFn = Optional[Callable[["Node"], bool]]

STRATEGIES = ("preorder", "postorder", "levelorder")


def _is_leaf(node: Node, is_leaf_fn: IsLeafFn) -> bool:
    if is_leaf_fn is not None and is_leaf_fn(node):
        return True
    return not node.children


def iter_preorder(node: Node, is_leaf_fn: IsLeafFn = None) -> Iterator[Node]:
    """Yield each node before its children, children in stored order."""
    stack: List[Node] = [node]
    while stack:
        current = stack.pop()
        yield current
        if not _is_leaf(current, is_leaf_fn):
            # Reverse so the first child is popped first
            stack.extend(reversed(current.children))


def iter_postorder(node: Node, is_leaf_fn: IsLeafFn = None) -> Iterator[Node]:
    """Yield each node after all of its descendants."""
    for is_postorder, current in iter_prepostorder(node, is_leaf_fn):
        if is_postorder or _is_leaf(current, is_leaf_fn):
            yield current


def iter_levelorder(node: Node, is_leaf_fn: IsLeafFn = None) -> Iterator[Node]:
    """Yield nodes breadth-first; nodes at equal depth keep sibling order."""
    queue: Deque[Node] = deque([node])
    while queue:
        current = queue.popleft()
        yield current
        if not _is_leaf(current, is_leaf_fn):
            queue.extend(current.children)


def iter_prepostorder(
    node: Node, is_leaf_fn: IsLeafFn = None
) -> Iterator[Tuple[bool, Node]]:
    """
    Visit every node twice: once when entering it and once when leaving it.

    Leaves (including nodes collapsed by ``is_leaf_fn``) are visited once.

    Yields:
        Tuples ``(is_postorder, node)``. ``is_postorder`` is False when a node
        is entered and True when an internal node is left.
    """
    # Stack entries: (node, index of the next child to descend into)
    stack: List[Tuple[Node, int]] = [(node, 0)]
    while stack:
        current, child_index = stack.pop()
        if child_index == 0:
            yield False, current
            if _is_leaf(current, is_leaf_fn):
                continue
        if child_index < len(current.children):
            stack.append((current, child_index + 1))
            stack.append((current.children[child_index], 0))
        else:
            yield True, current


def traverse(
    node: Node, strategy: str = "levelorder", is_leaf_fn: IsLeafFn = None
) -> Iterator[Node]:
    """
    Iterate over the subtree rooted at ``node``, including ``node`` itself.

    Args:
        node: Start of the traversal
        strategy: One of "preorder", "postorder" or "levelorder"
        is_leaf_fn: Optional predicate marking nodes as terminal

    Returns:
        A new iterator of nodes

    Raises:
        TreeError: If the strategy is unknown
    """
    if strategy == "preorder":
        return iter_preorder(node, is_leaf_fn)
    elif strategy == "postorder":
        return iter_postorder(node, is_leaf_fn)
    elif strategy == "levelorder":
        return iter_levelorder(node, is_leaf_fn)
    raise TreeError(
        f"Unknown traversal strategy '{strategy}'. Expected one of {STRATEGIES}"
    )


def iter_descendants(
    node: Node, strategy: str = "levelorder", is_leaf_fn: IsLeafFn = None
) -> Iterator[Node]:
    """Iterate over the subtree rooted at ``node``, excluding ``node`` itself."""
    for current in traverse(node, strategy, is_leaf_fn):
        if current is not node:
            yield current


def iter_leaves(node: Node, is_leaf_fn: IsLeafFn = None) -> Iterator[Node]:
    """Iterate over the terminal nodes under ``node`` in preorder."""
    for current in iter_preorder(node, is_leaf_fn):
        if _is_leaf(current, is_leaf_fn):
            yield current
