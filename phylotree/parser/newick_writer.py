"""
Newick serialization of node hierarchies.
"""

import math
import re
from typing import List, Optional

from phylotree import config
from phylotree.parser.formats import NAME, NAME_OR_SUPPORT, SUPPORT, NewickFormat, get_format
from phylotree.traversal import IsLeafFn
from phylotree.tree import Node

# Characters that cannot appear in an unquoted label
_ILLEGAL_NEWICK_CHARS_RE = re.compile(r"[:;(),\[\]\t\n\r=]")

# Written for required leaf names that are empty, so the output can be read back
PLACEHOLDER_NAME = "NoName"


def _format_number(value: float, compact: bool) -> str:
    formatter = config.get_float_format() if compact else config.FIXED_FLOAT_FORMATTER
    return formatter % value


def _reads_as_support(label: str) -> bool:
    try:
        value = float(label)
    except ValueError:
        return False
    return math.isfinite(value) and value >= 0


def _format_name(name: str, quoted_names: bool) -> str:
    if quoted_names:
        return "'" + name.replace("'", "''") + "'"
    return _ILLEGAL_NEWICK_CHARS_RE.sub("_", name)


def _features_string(node: Node, features: Optional[List[str]]) -> str:
    """Build an NHX comment for the requested features ([] means all)."""
    if features is None:
        return ""
    keys = list(node.features) if not features else [k for k in features if k in node.features]
    if not keys:
        return ""
    fields = [
        f"{key}={_ILLEGAL_NEWICK_CHARS_RE.sub('_', str(node.features[key]))}"
        for key in keys
    ]
    return "[&&NHX:" + ":".join(fields) + "]"


def format_node(
    node: Node,
    is_leaf: bool,
    fmt: NewickFormat,
    compact: bool = True,
    quoted_names: bool = False,
    show_internal_names: bool = True,
) -> str:
    """
    Write the ``label:length`` part of a single node.

    Args:
        node: Node to format
        is_leaf: Use the leaf rules of the format (otherwise internal ones)
        fmt: Active format
        compact: Shortest number formatting instead of fixed decimals
        quoted_names: Quote names instead of replacing reserved characters
        show_internal_names: Write names of internal nodes

    Returns:
        The label and length text of the node
    """
    label_rule = fmt.label_rule(is_leaf)
    length_rule = fmt.length_rule(is_leaf)
    write_name = is_leaf or show_internal_names

    if not is_leaf and label_rule.required and label_rule.attribute == NAME:
        if not (node.name and write_name):
            # Written as an unlabelled clade, which every format accepts
            return ""

    label = ""
    if label_rule.attribute == NAME:
        if write_name:
            name = node.name
            if not name and label_rule.required:
                name = PLACEHOLDER_NAME
            label = _format_name(name, quoted_names) if name else ""
    elif label_rule.attribute == SUPPORT:
        label = _format_number(node.support, compact)
    elif label_rule.attribute == NAME_OR_SUPPORT:
        if node.name and write_name:
            # A bare number here would be read back as a support value
            quote = quoted_names or _reads_as_support(node.name)
            label = _format_name(node.name, quote)
        else:
            label = _format_number(node.support, compact)

    length = ""
    if length_rule.allowed:
        length = ":" + _format_number(node.length, compact)

    return label + length


def write_newick(
    root: Node,
    format: int = 0,
    quoted_names: bool = False,
    compact: bool = True,
    show_internal_names: bool = True,
    format_root_node: bool = True,
    features: Optional[List[str]] = None,
    is_leaf_fn: IsLeafFn = None,
) -> str:
    """
    Serialize the subtree rooted at ``root`` as Newick text.

    Children are written in their stored order.

    Args:
        root: Root of the subtree to write
        format: Format code (0-9 or 100) deciding which fields are written
        quoted_names: Wrap names in single quotes (``'`` doubled inside)
        compact: Format numbers with the compact formatter (``%0.6g`` by
            default) instead of fixed ``%0.6f``
        show_internal_names: Write the names of internal nodes
        format_root_node: Write the label and length of the root
        features: Feature keys written as NHX comments; ``[]`` writes all
        is_leaf_fn: Predicate marking collapsed nodes, written as leaves

    Returns:
        Newick text terminated by ';'
    """
    fmt = get_format(format)
    newick: List[str] = []

    def is_leaf(node: Node) -> bool:
        return (is_leaf_fn is not None and is_leaf_fn(node)) or not node.children

    for is_postorder, node in root.iter_prepostorder(is_leaf_fn=is_leaf_fn):
        if is_postorder:
            newick.append(")")
            if node is not root or format_root_node:
                newick.append(
                    format_node(
                        node, False, fmt, compact, quoted_names, show_internal_names
                    )
                )
                newick.append(_features_string(node, features))
        else:
            if node is not root and node is not node.parent.children[0]:  # type: ignore[union-attr]
                newick.append(",")
            if is_leaf(node):
                if node is not root or format_root_node:
                    newick.append(
                        format_node(
                            node, True, fmt, compact, quoted_names, show_internal_names
                        )
                    )
                    newick.append(_features_string(node, features))
            else:
                newick.append("(")

    newick.append(";")
    return "".join(newick)
