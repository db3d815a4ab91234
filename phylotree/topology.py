"""
Structural queries and algorithms on node hierarchies.

This module provides:
- Ancestor iteration and root-ward paths
- Common ancestor of an arbitrary number of nodes
- Path distances between two nodes
- Pruning a tree down to the minimal topology connecting a set of nodes
"""

from __future__ import annotations

import logging
from typing import (
    Dict,
    FrozenSet,
    Iterable,
    Iterator,
    List,
    Optional,
    Set,
    Tuple,
    Union,
    cast,
)

from phylotree.exceptions import DisconnectedNodesError, NodeNotFoundError, TreeError
from phylotree.resolver import NodeOrName, resolve_nodes
from phylotree.tree import Node

logger = logging.getLogger(__name__)

PathMap = Dict[Node, List[Node]]


# =============================================================================
# ANCESTORS AND PATHS
# =============================================================================


def iter_ancestors(node: Node) -> Iterator[Node]:
    """Yield the parent, grandparent, ... of ``node`` up to the root."""
    current: Optional[Node] = node.parent
    while current is not None:
        yield current
        current = current.parent


def get_path_to_root(node: Node) -> List[Node]:
    """
    Collect all nodes from ``node`` up to its root.

    Returns:
        List of nodes from ``node`` to the root (both inclusive)
    """
    return [node, *iter_ancestors(node)]


# =============================================================================
# COMMON ANCESTOR
# =============================================================================


def get_common_ancestor(
    targets: Iterable[Node], with_paths: bool = False
) -> Union[Node, Tuple[Node, PathMap]]:
    """
    Find the nearest common ancestor of a set of nodes.

    The root-ward path of the first target is used as the probe sequence: the
    first node on it that also lies on the path of every other target is the
    common ancestor. A single target is its own common ancestor.

    Args:
        targets: Nodes whose common ancestor is requested
        with_paths: Also return each target's root-ward path

    Returns:
        The common ancestor, or a tuple ``(ancestor, paths)`` when
        ``with_paths`` is set. ``paths`` maps each target to the list of
        nodes from the target up to the root (empty for a single target).

    Raises:
        TreeError: If no targets are given
        DisconnectedNodesError: If the targets share no ancestor
    """
    targets = list(targets)
    if not targets:
        raise TreeError("At least one target node is required")

    if len(targets) == 1:
        return (targets[0], {}) if with_paths else targets[0]

    paths: PathMap = {}
    path_sets: Dict[Node, Set[Node]] = {}
    for target in targets:
        path = get_path_to_root(target)
        paths[target] = path
        path_sets[target] = set(path)

    reference = paths[targets[0]]
    common: Optional[Node] = None
    for candidate in reference:
        if all(candidate in path_set for path_set in path_sets.values()):
            common = candidate
            break

    if common is None:
        raise DisconnectedNodesError("Nodes are not connected!")

    if with_paths:
        return common, paths
    return common


# =============================================================================
# DISTANCES
# =============================================================================


def get_distance(source: Node, target: Node, topology_only: bool = False) -> float:
    """
    Distance between two nodes along the path through their common ancestor.

    Args:
        source: First node
        target: Second node
        topology_only: Count edges instead of summing branch lengths

    Returns:
        Sum of branch lengths (or number of edges) on the connecting path
    """
    ancestor = cast(Node, get_common_ancestor([source, target]))

    distance = 0.0
    for start in (source, target):
        current = start
        while current is not ancestor:
            distance += 1 if topology_only else current.length
            # A common ancestor exists, so the walk cannot leave the tree
            current = current.parent  # type: ignore[assignment]
    return distance


# =============================================================================
# PRUNING
# =============================================================================


def _waypoint_visitors(
    paths: PathMap,
) -> Tuple[Dict[Node, Set[Node]], Dict[Node, int]]:
    """
    Record, for every node on some target path, which targets pass through
    it (a target passes through itself) and how deep it sits (edges from the
    root).
    """
    visitors: Dict[Node, Set[Node]] = {}
    depth: Dict[Node, int] = {}
    for target, path in paths.items():
        path_length = len(path)
        for index, visited in enumerate(path):
            depth.setdefault(visited, path_length - 1 - index)
            visitors.setdefault(visited, set()).add(target)
    return visitors, depth


def prune(
    root: Node,
    nodes: Iterable[NodeOrName],
    preserve_branch_length: bool = False,
) -> Node:
    """
    Reduce the tree under ``root`` to the minimal topology that connects the
    requested nodes. ``root`` is always conserved, as is every requested
    node.

    Internal nodes lying on the paths of exactly the same group of requested
    nodes are redundant; only the deepest of them (closest to the leaves) is
    kept as a branching point. Everything else is deleted in postorder,
    splicing children into the parent.

    Args:
        root: Root of the subtree to prune (modified in place)
        nodes: Nodes or node names to retain
        preserve_branch_length: Fold the lengths of deleted nodes into the
            remaining branches so that distances are kept

    Returns:
        ``root``

    Raises:
        TreeError: If no nodes are requested
        NodeNotFoundError: If a name cannot be resolved, or a node does not
            belong to the subtree under ``root``
    """
    to_keep = resolve_nodes(root, nodes)
    outside = [node for node in to_keep if not root.contains(node)]
    if outside:
        raise NodeNotFoundError(
            f"Nodes not found under {root!r}: {outside}",
            [node.name for node in outside],
        )
    _, paths = get_common_ancestor(to_keep, with_paths=True)  # type: ignore[misc]

    keep: Set[Node] = set(to_keep)
    keep.add(root)

    visitors, depth = _waypoint_visitors(paths)

    groups: Dict[FrozenSet[Node], List[Node]] = {}
    for node, seeds in visitors.items():
        # Only nodes joining at least two requested nodes are branching points
        if len(seeds) > 1:
            groups.setdefault(frozenset(seeds), []).append(node)

    for group in groups.values():
        if keep.isdisjoint(group):
            keep.add(max(group, key=depth.__getitem__))

    removed = 0
    for node in list(root.iter_descendants("postorder")):
        if node not in keep:
            # No cascade: requested nodes stay even with a single child
            node.delete(
                prevent_non_bifurcating=False,
                preserve_branch_length=preserve_branch_length,
            )
            removed += 1

    logger.debug("Pruned %d nodes, %d retained", removed, len(keep))
    return root
