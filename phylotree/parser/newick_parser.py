import ast
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from phylotree.exceptions import NewickError
from phylotree.parser.formats import (
    LENGTH,
    NAME,
    NAME_OR_SUPPORT,
    SUPPORT,
    FieldRule,
    NewickFormat,
    get_format,
)
from phylotree.tree import Node

logger = logging.getLogger(__name__)

# Characters dropped anywhere outside quoted labels and metadata
_SKIPPED_CHARS = "\n\r\t"


# ===================================================================
# 1. METADATA PROCESSING FUNCTIONS
# ===================================================================


def split_token(token: str) -> Tuple[str, Any]:
    """
    Split a metadata token into key and value parts.

    Args:
        token: A string token in format "key=value"

    Returns:
        Tuple of (key, parsed_value). Values are read as Python literals
        (numbers, quoted strings) when possible and kept as strings otherwise.
        A token without "=" is a flag and maps to True.
    """
    if "=" not in token:
        return token, True
    key, value = token.split("=", 1)
    try:
        parsed_value = ast.literal_eval(value)
    except (ValueError, SyntaxError):
        parsed_value = value
    return key, parsed_value


def parse_metadata(data: str) -> Dict[str, Any]:
    """
    Parse the content of a ``[...]`` comment into a dictionary.

    Handles NHX (``&&NHX:key1=value1:key2=value2``) and generic
    ``key1=value1,key2=value2`` comments.
    """
    data = data.strip()
    if data.startswith("&&NHX"):
        tokens = data[len("&&NHX") :].split(":")
    else:
        tokens = data.replace(";", ",").replace(" ", ",").split(",")

    metadata: Dict[str, Any] = {}
    for token in tokens:
        token = token.strip()
        if token:
            key, value = split_token(token)
            metadata[key] = value
    return metadata


# ===================================================================
# 2. NODE SECTION PROCESSING
# ===================================================================


@dataclass
class _Section:
    """Raw text read for one node: ``label:length[metadata]``."""

    label: List[str] = field(default_factory=list)
    length: Optional[List[str]] = None
    quoted: bool = False
    features: Dict[str, Any] = field(default_factory=dict)

    def label_text(self) -> str:
        text = "".join(self.label)
        return text if self.quoted else text.strip()

    def has_label(self) -> bool:
        return self.quoted or bool(self.label_text())

    def is_empty(self) -> bool:
        return not self.has_label() and self.length is None and not self.features


def _as_float(text: str) -> Optional[float]:
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _parse_number(text: str, field_name: str) -> float:
    value = _as_float(text)
    if value is None:
        raise NewickError(f"Invalid {field_name} value '{text}': not a number")
    if value < 0:
        raise NewickError(f"Invalid {field_name} value '{text}': negative")
    return value


def _assign_label(node: Node, section: _Section, rule: FieldRule) -> None:
    label = section.label_text()
    if rule.attribute == NAME:
        node.name = label
    elif rule.attribute == SUPPORT:
        node.support = _parse_number(label, "support")
    elif rule.attribute == NAME_OR_SUPPORT:
        value = None if section.quoted else _as_float(label)
        if value is not None and value >= 0:
            node.support = value
        else:
            node.name = label


def flush_section(
    node: Node, section: _Section, fmt: NewickFormat, is_root: bool
) -> None:
    """
    Interpret the raw text read for ``node`` according to the format rules.

    Args:
        node: The node the section belongs to
        section: Raw label/length/metadata text
        fmt: The active format
        is_root: Whether ``node`` is the tree root (its length is optional)

    Raises:
        NewickError: If a field is forbidden, missing or not numeric
    """
    is_leaf = not node.children
    kind = "leaf" if is_leaf else "internal"
    node.features.update(section.features)

    has_label = section.has_label()
    has_length = section.length is not None

    if not is_leaf and not has_label and not has_length:
        # Unlabelled clade, accepted in every format
        return

    label_rule = fmt.label_rule(is_leaf)
    length_rule = fmt.length_rule(is_leaf)

    if has_label:
        if not label_rule.allowed:
            raise NewickError(
                f"Unexpected {kind} label '{section.label_text()}': "
                f"format {fmt.code} ({fmt.description}) does not allow it"
            )
        _assign_label(node, section, label_rule)
    elif label_rule.required:
        if is_leaf and not has_length:
            raise NewickError("Empty leaf node found")
        raise NewickError(f"Missing {kind} label required by format {fmt.code}")

    if has_length:
        length_text = "".join(section.length or []).strip()
        if not length_rule.allowed:
            raise NewickError(
                f"Unexpected {kind} branch length ':{length_text}': "
                f"format {fmt.code} ({fmt.description}) does not allow it"
            )
        node.length = _parse_number(length_text, LENGTH)
    elif length_rule.required and not is_root:
        raise NewickError(
            f"Missing {kind} branch length required by format {fmt.code}"
            + (f" for node '{node.name}'" if node.name else "")
        )


# ===================================================================
# 3. NODE STACK MANAGEMENT FUNCTIONS
# ===================================================================


def create_new_node(stack: List[Node]) -> Node:
    """Attach a new empty child to the top of the stack and push it."""
    parent = stack[-1]
    new_node = parent.add_child()
    stack.append(new_node)
    return new_node


def close_node(stack: List[Node]) -> Node:
    """
    Pop the current node from the stack.

    Raises:
        NewickError: If only the root is left, i.e. parentheses do not match
    """
    if len(stack) <= 1:
        raise NewickError("Parentheses do not match. Broken tree structure?")
    return stack.pop()


# ===================================================================
# 4. CORE PARSING FUNCTION
# ===================================================================


def _fragment(text: str, index: int) -> str:
    start = max(0, index - 20)
    return text[start : index + 20]


def _parse_newick(text: str, fmt: NewickFormat, quoted_names: bool) -> Node:
    """
    Build a tree from Newick text, processing it character by character.

    The tree is built on a fresh root which only becomes reachable to the
    caller when the whole string has been read successfully.
    """
    root = Node()
    stack: List[Node] = [root]
    section = _Section()
    meta_buffer: List[str] = []
    mode = "character_reader"
    return_mode = mode
    finished_at: Optional[int] = None

    index = 0
    while index < len(text):
        char = text[index]

        if mode == "quoted_reader":
            if char == "'":
                if index + 1 < len(text) and text[index + 1] == "'":
                    section.label.append("'")
                    index += 1
                else:
                    section.quoted = True
                    mode = "character_reader"
            else:
                section.label.append(char)

        elif mode == "metadata_reader":
            if char == "]":
                section.features.update(parse_metadata("".join(meta_buffer)))
                meta_buffer.clear()
                mode = return_mode
            else:
                meta_buffer.append(char)

        elif char in _SKIPPED_CHARS:
            pass

        elif char == "(":
            if not section.is_empty() or stack[-1].children:
                raise NewickError(
                    f"Unexpected '(' after node data at: '{_fragment(text, index)}'"
                )
            create_new_node(stack)
            section = _Section()
            mode = "character_reader"

        elif char == ",":
            flush_section(stack[-1], section, fmt, is_root=len(stack) == 1)
            if len(stack) <= 1:
                raise NewickError(
                    f"Unexpected ',' outside parentheses at: '{_fragment(text, index)}'"
                )
            close_node(stack)
            create_new_node(stack)
            section = _Section()
            mode = "character_reader"

        elif char == ")":
            flush_section(stack[-1], section, fmt, is_root=len(stack) == 1)
            close_node(stack)
            # Data that follows belongs to the node that was just closed
            section = _Section()
            mode = "character_reader"

        elif char == ":":
            if section.length is not None:
                raise NewickError(
                    f"Unexpected ':' at: '{_fragment(text, index)}'"
                )
            section.length = []
            mode = "length_reader"

        elif char == "[":
            return_mode = mode
            mode = "metadata_reader"

        elif char == "]":
            raise NewickError(f"Unexpected ']' at: '{_fragment(text, index)}'")

        elif char == ";":
            flush_section(stack[-1], section, fmt, is_root=len(stack) == 1)
            if len(stack) != 1:
                raise NewickError("Parentheses do not match. Broken tree structure?")
            finished_at = index
            break

        elif char == "'" and quoted_names and mode == "character_reader":
            if section.has_label():
                raise NewickError(
                    f"Unexpected quote inside label at: '{_fragment(text, index)}'"
                )
            section.label.clear()
            mode = "quoted_reader"

        elif mode == "length_reader":
            section.length.append(char)  # type: ignore[union-attr]

        else:
            if section.quoted and not char.isspace():
                raise NewickError(
                    f"Unexpected text after quoted label at: '{_fragment(text, index)}'"
                )
            section.label.append(char)

        index += 1

    if mode == "quoted_reader":
        raise NewickError("Unterminated quoted label")
    if mode == "metadata_reader":
        raise NewickError("Unterminated '[' comment")
    if finished_at is None:
        raise NewickError("Newick string must be terminated by ';'")
    trailing = text[finished_at + 1 :].strip()
    if trailing:
        raise NewickError(f"Unexpected text after ';': '{trailing[:40]}'")

    return root


# ===================================================================
# 5. PUBLIC API FUNCTIONS
# ===================================================================


def parse_newick(text: str, format: int = 0, quoted_names: bool = False) -> Node:
    """
    Parse a Newick string into a tree.

    Args:
        text: Newick text terminated by ';'
        format: Format code (0-9 or 100) selecting which labels and branch
            lengths are required, optional or forbidden
        quoted_names: Read single-quoted labels, which may contain reserved
            characters; ``''`` inside quotes is a literal quote

    Returns:
        The root node of the tree

    Raises:
        NewickError: If the text is empty, malformed or violates the format
    """
    if not isinstance(text, str):
        raise NewickError(f"Newick input must be a string, got {type(text).__name__}")
    if not text.strip():
        raise NewickError("Empty newick string")

    fmt = get_format(format)
    root = _parse_newick(text.strip(), fmt, quoted_names)
    logger.debug(
        "Parsed newick tree with %d nodes (format %d)",
        sum(1 for _ in root.traverse("preorder")),
        fmt.code,
    )
    return root
