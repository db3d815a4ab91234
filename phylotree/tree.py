from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional, Self, Tuple, Union

from phylotree import config
from phylotree import traversal
from phylotree.exceptions import NodeNotFoundError, TreeError
from phylotree.traversal import IsLeafFn

logger = logging.getLogger(__name__)


class Node:
    """
    A node of a rooted phylogenetic tree.

    A tree is simply its root node. Each node owns its ordered ``children``;
    ``parent`` is a plain back reference kept consistent by the mutators
    (a node is in ``p.children`` exactly when ``node.parent is p``).

    Besides ``name``, ``length`` (distance to the parent) and ``support``,
    arbitrary metadata can be stored in the ``features`` mapping.

    Nodes compare and hash by identity.
    """

    __slots__ = (
        "_children",
        "_parent",
        "name",
        "_length",
        "_support",
        "features",
    )

    name: str
    features: Dict[str, Any]

    def __init__(
        self,
        name: Optional[str] = None,
        length: Optional[float] = None,
        support: Optional[float] = None,
        children: Optional[Iterable[Self]] = None,
        features: Optional[Dict[str, Any]] = None,
    ):
        self._parent: Optional[Self] = None
        self._children: List[Self] = []
        self.name = name if name is not None else config.DEFAULT_NAME
        self.length = length if length is not None else config.DEFAULT_LENGTH
        self.support = support if support is not None else config.DEFAULT_SUPPORT
        # Fresh containers per instance
        self.features = dict(features) if features is not None else {}
        if children is not None:
            self.children = list(children)

    @classmethod
    def from_newick(
        cls, newick: str, format: int = 0, quoted_names: bool = False
    ) -> "Node":
        """
        Build a tree from Newick text already held in memory.

        Args:
            newick: Newick string terminated by ';'
            format: Newick format code (0-9 or 100)
            quoted_names: Allow single-quoted labels

        Returns:
            The root node of the parsed tree
        """
        from phylotree.parser.newick_parser import parse_newick

        return parse_newick(newick, format=format, quoted_names=quoted_names)

    # ------------------------------------------------------------------------
    # Validated attributes
    # ------------------------------------------------------------------------

    @property
    def parent(self) -> Optional[Self]:
        return self._parent

    @parent.setter
    def parent(self, value: Optional[Self]) -> None:
        if value is not None and not isinstance(value, Node):
            raise TreeError("Node parent must be a Node or None")
        if value is self._parent:
            return
        if value is None:
            self.detach()
        else:
            # Keeps value.children in sync with the back reference
            value.add_child(self)

    @property
    def children(self) -> List[Self]:
        return self._children

    @children.setter
    def children(self, value: Union[List[Self], Tuple[Self, ...]]) -> None:
        if not isinstance(value, (list, tuple)) or not all(
            isinstance(child, Node) for child in value
        ):
            raise TreeError("Node children must be a list of Node instances")
        new_children = list(value)
        if len({id(child) for child in new_children}) != len(new_children):
            raise TreeError("Node children must not contain the same node twice")
        lineage = [self, *self.iter_ancestors()]
        for child in new_children:
            if any(child is node for node in lineage):
                raise TreeError(f"Cannot add {child!r} below itself")
        for old in self._children:
            if old._parent is self and not any(old is c for c in new_children):
                old._parent = None
        for child in new_children:
            if child._parent is not None and child._parent is not self:
                child.detach()
            child._parent = self
        self._children = new_children

    @property
    def length(self) -> float:
        return self._length

    @length.setter
    def length(self, value: float) -> None:
        try:
            self._length = float(value)
        except (TypeError, ValueError):
            raise TreeError(f"Node length must be a float number, got {value!r}")

    # Alias used throughout the phylogenetics literature
    dist = length

    @property
    def support(self) -> float:
        return self._support

    @support.setter
    def support(self, value: float) -> None:
        try:
            self._support = float(value)
        except (TypeError, ValueError):
            raise TreeError(f"Node support must be a float number, got {value!r}")

    # ------------------------------------------------------------------------
    # Features
    # ------------------------------------------------------------------------

    def add_feature(self, key: str, value: Any) -> None:
        self.features[key] = value

    def add_features(self, **features: Any) -> None:
        self.features.update(features)

    def get_feature(self, key: str, default: Any = None) -> Any:
        return self.features.get(key, default)

    def has_feature(self, key: str) -> bool:
        return key in self.features

    def del_feature(self, key: str) -> None:
        """Remove a feature; unknown keys are ignored."""
        self.features.pop(key, None)

    # ------------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------------

    def __repr__(self) -> str:
        return f"Node('{self.name}')"

    def __bool__(self) -> bool:
        # __len__ counts leaves; a node is always truthy
        return True

    def __len__(self) -> int:
        return sum(1 for _ in self.iter_leaves())

    def __iter__(self) -> Iterator[Self]:
        return iter(self._children)

    def __contains__(self, item: Union[Self, str]) -> bool:
        return self.contains(item)

    # ------------------------------------------------------------------------
    # Basic structure queries
    # ------------------------------------------------------------------------

    def is_leaf(self) -> bool:
        return len(self._children) == 0

    def is_internal(self) -> bool:
        return bool(self._children)

    def is_root(self) -> bool:
        return self._parent is None

    def get_tree_root(self) -> Self:
        cur = self
        while cur._parent is not None:
            cur = cur._parent
        return cur

    def get_children(self) -> List[Self]:
        """Return an independent list of the node's children."""
        return list(self._children)

    def get_sisters(self) -> List[Self]:
        """Return an independent list of the node's siblings."""
        if self._parent is None:
            return []
        return [ch for ch in self._parent._children if ch is not self]

    # ------------------------------------------------------------------------
    # Structural mutation
    # ------------------------------------------------------------------------

    def add_child(
        self,
        child: Optional[Self] = None,
        name: Optional[str] = None,
        length: Optional[float] = None,
        support: Optional[float] = None,
    ) -> Self:
        """
        Append a child node, creating an empty one if none is given.

        ``name``, ``length`` and ``support`` override the child's values only
        when truthy.

        Returns:
            The attached child
        """
        if child is None:
            child = type(self)()
        elif not isinstance(child, Node):
            raise TreeError(f"Cannot add {child!r} as a child: not a Node")
        # Only a node with children can be an ancestor of self
        if child is self or (child._children and child.contains(self)):
            raise TreeError(f"Cannot add {child!r} below itself")
        if child._parent is not None:
            # A node is never shared between two parents
            child.detach()

        if name:
            child.name = name
        if length:
            child.length = length
        if support:
            child.support = support

        child._parent = self
        self._children.append(child)
        return child

    def remove_child(self, child: Self) -> Self:
        """
        Detach a direct child from this node.

        Returns:
            The removed child, now a root

        Raises:
            NodeNotFoundError: If ``child`` is not a direct child
        """
        for index, existing in enumerate(self._children):
            if existing is child:
                del self._children[index]
                child._parent = None
                return child
        raise NodeNotFoundError(f"Child not found: {child!r}")

    def add_sister(
        self,
        sister: Optional[Self] = None,
        name: Optional[str] = None,
        length: Optional[float] = None,
    ) -> Self:
        """Add a sibling through the parent node."""
        if self._parent is None:
            raise TreeError("A parent node is required to add a sister")
        return self._parent.add_child(sister, name=name, length=length)

    def remove_sister(self, sister: Optional[Self] = None) -> Optional[Self]:
        """
        Remove a sibling. Without an argument the first sister is removed.

        Returns:
            The removed node, or None if there was no sister to remove
        """
        if self._parent is None:
            raise TreeError("A parent node is required to remove a sister")
        if sister is None:
            sisters = self.get_sisters()
            if not sisters:
                return None
            sister = sisters[0]
        return self._parent.remove_child(sister)

    def detach(self) -> Self:
        """
        Cut this node (with its whole subtree) from its parent.

        The detached node can be re-attached anywhere with ``add_child``.
        """
        if self._parent is not None:
            self._parent.remove_child(self)
        return self

    def delete(
        self,
        prevent_non_bifurcating: bool = True,
        preserve_branch_length: bool = False,
    ) -> None:
        """
        Remove this node from the tree, handing its children to its parent.

        The children take the deleted node's place among its siblings, so the
        order of the remaining nodes is kept.

        Args:
            prevent_non_bifurcating: If the parent is left with fewer than two
                children, delete it as well (recursively), so that no
                single-child internal nodes are created
            preserve_branch_length: Add the deleted node's length to its only
                child, or to the parent when there are several children

        Example:
            ``(C,(B,A)H)root;`` with ``H.delete()`` gives ``(C,B,A)root;``.
        """
        parent = self._parent
        if parent is None:
            return

        if preserve_branch_length:
            if len(self._children) == 1:
                self._children[0].length += self.length
            elif len(self._children) > 1:
                parent.length += self.length

        index = next(i for i, ch in enumerate(parent._children) if ch is self)
        moved = self._children
        self._children = []
        for child in moved:
            child._parent = parent
        parent._children[index : index + 1] = moved
        self._parent = None
        logger.debug("Deleted %r, moved %d children to %r", self, len(moved), parent)

        if prevent_non_bifurcating and len(parent._children) < 2:
            parent.delete(prevent_non_bifurcating, preserve_branch_length)

    def swap_children(self) -> None:
        """Reverse the order of all children in place."""
        if len(self._children) >= 2:
            self._children.reverse()

    def copy(self) -> Self:
        """
        Return a deep copy of the subtree rooted at this node.

        The copy is a new root; features are copied shallowly.
        """
        clones: Dict[Node, Node] = {}
        for node in traversal.iter_preorder(self):
            # Skip __init__; every slot is assigned below
            clone = object.__new__(type(node))
            clone.name = node.name
            clone._length = node._length
            clone._support = node._support
            clone.features = dict(node.features)
            clone._children = []
            clone._parent = None
            if node is not self:
                parent_clone = clones[node._parent]  # type: ignore[index]
                clone._parent = parent_clone
                parent_clone._children.append(clone)
            clones[node] = clone
        return clones[self]  # type: ignore[return-value]

    # ------------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------------

    def traverse(
        self, strategy: str = "levelorder", is_leaf_fn: IsLeafFn = None
    ) -> Iterator[Self]:
        """
        Iterate over all nodes of this subtree, this node included.

        Args:
            strategy: "levelorder" (default), "preorder" or "postorder"
            is_leaf_fn: Optional predicate; nodes for which it returns True
                are treated as leaves and their descendants are skipped
        """
        return traversal.traverse(self, strategy, is_leaf_fn)

    def iter_prepostorder(
        self, is_leaf_fn: IsLeafFn = None
    ) -> Iterator[Tuple[bool, Self]]:
        return traversal.iter_prepostorder(self, is_leaf_fn)

    def iter_descendants(
        self, strategy: str = "levelorder", is_leaf_fn: IsLeafFn = None
    ) -> Iterator[Self]:
        return traversal.iter_descendants(self, strategy, is_leaf_fn)

    def get_descendants(
        self, strategy: str = "levelorder", is_leaf_fn: IsLeafFn = None
    ) -> List[Self]:
        return list(self.iter_descendants(strategy, is_leaf_fn))

    def iter_leaves(self, is_leaf_fn: IsLeafFn = None) -> Iterator[Self]:
        return traversal.iter_leaves(self, is_leaf_fn)

    def get_leaves(self, is_leaf_fn: IsLeafFn = None) -> List[Self]:
        return list(self.iter_leaves(is_leaf_fn))

    def iter_leaf_names(self, is_leaf_fn: IsLeafFn = None) -> Iterator[str]:
        for leaf in self.iter_leaves(is_leaf_fn):
            yield leaf.name

    def get_leaf_names(self, is_leaf_fn: IsLeafFn = None) -> List[str]:
        return list(self.iter_leaf_names(is_leaf_fn))

    def iter_search_nodes(self, **conditions: Any) -> Iterator[Self]:
        """
        Yield nodes whose attributes or features match all given conditions.

        Example:
            ``tree.iter_search_nodes(name="A", color="red")``
        """
        for node in self.traverse():
            if all(node._lookup(key) == value for key, value in conditions.items()):
                yield node

    def search_nodes(self, **conditions: Any) -> List[Self]:
        return list(self.iter_search_nodes(**conditions))

    def get_leaves_by_name(self, name: str) -> List[Self]:
        return [leaf for leaf in self.iter_leaves() if leaf.name == name]

    def _lookup(self, key: str) -> Any:
        if key in ("name", "length", "dist", "support"):
            return getattr(self, key)
        return self.features.get(key)

    def contains(self, item: Union[Self, str]) -> bool:
        """
        Check whether a node, or a node with the given name, is part of this
        subtree. The node itself counts as part of its subtree.
        """
        if isinstance(item, Node):
            current: Optional[Node] = item
            while current is not None:
                if current is self:
                    return True
                current = current._parent
            return False
        if isinstance(item, str):
            return any(node.name == item for node in self.traverse("preorder"))
        raise TreeError(f"Invalid target node: {item!r}")

    # ------------------------------------------------------------------------
    # Topology algorithms
    # ------------------------------------------------------------------------

    def iter_ancestors(self) -> Iterator[Self]:
        from phylotree.topology import iter_ancestors

        return iter_ancestors(self)  # type: ignore[return-value]

    def get_ancestors(self) -> List[Self]:
        return list(self.iter_ancestors())

    def get_common_ancestor(
        self, targets: Iterable[Union[Self, str]], with_paths: bool = False
    ) -> Any:
        """
        Return the nearest common ancestor of ``targets``.

        Names are resolved against the root of the tree containing this node.
        With ``with_paths`` a tuple ``(ancestor, paths)`` is returned, where
        ``paths`` maps each target to its list of nodes up to the root.
        """
        from phylotree.resolver import resolve_nodes
        from phylotree.topology import get_common_ancestor

        nodes = resolve_nodes(self.get_tree_root(), targets)
        return get_common_ancestor(nodes, with_paths=with_paths)

    def get_distance(
        self,
        target: Union[Self, str],
        target2: Optional[Union[Self, str]] = None,
        topology_only: bool = False,
    ) -> float:
        """
        Distance from this node to ``target``, or between ``target`` and
        ``target2`` when both are given.
        """
        from phylotree.resolver import resolve_nodes
        from phylotree.topology import get_distance

        items = [target] if target2 is None else [target, target2]
        root = self.get_tree_root()
        resolved = [resolve_nodes(root, [item])[0] for item in items]
        if target2 is None:
            return get_distance(self, resolved[0], topology_only)
        return get_distance(resolved[0], resolved[1], topology_only)

    def prune(
        self, nodes: Iterable[Union[Self, str]], preserve_branch_length: bool = False
    ) -> None:
        """
        Reduce this subtree to the minimal topology connecting ``nodes``
        (node references or names). This node is always kept.
        """
        from phylotree.topology import prune

        prune(self, nodes, preserve_branch_length=preserve_branch_length)

    # ------------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------------

    def to_newick(
        self,
        format: int = 0,
        quoted_names: bool = False,
        compact: bool = True,
        show_internal_names: bool = True,
        format_root_node: bool = True,
        features: Optional[List[str]] = None,
        is_leaf_fn: IsLeafFn = None,
    ) -> str:
        """Serialize this subtree as Newick text (see ``write_newick``)."""
        from phylotree.parser.newick_writer import write_newick

        return write_newick(
            self,
            format=format,
            quoted_names=quoted_names,
            compact=compact,
            show_internal_names=show_internal_names,
            format_root_node=format_root_node,
            features=features,
            is_leaf_fn=is_leaf_fn,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Nested dictionary view, as consumed by visualization layers."""
        return {
            "name": self.name,
            "length": self.length,
            "support": self.support,
            "features": dict(self.features),
            "children": [child.to_dict() for child in self._children],
        }
