"""
Newick format codes.

Each code defines, for leaves and for internal nodes, how the label written
before ``:`` and the number written after it are read and written:

    ... ,leaf_label:leaf_length)internal_label:internal_length ...

Example tree in each format:

    0   (A:0.35,(B:0.72,(D:0.6,G:0.12)1:0.64)0.9:0.56);
    1   (A:0.35,(B:0.72,(D:0.6,G:0.12)E:0.64)C:0.56);
    2   (A:0.35,(B:0.72,(D:0.6,G:0.12)1:0.64)0.9:0.56);
    3   (A:0.35,(B:0.72,(D:0.6,G:0.12)E:0.64)C:0.56);
    4   (A:0.35,(B:0.72,(D:0.6,G:0.12)));
    5   (A:0.35,(B:0.72,(D:0.6,G:0.12):0.64):0.56);
    6   (A,(B,(D,G):0.64):0.56);
    7   (A:0.35,(B:0.72,(D:0.6,G:0.12)E)C);
    8   (A,(B,(D,G)E)C);
    9   (A,(B,(D,G)));
    100 (,(,(,)));
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from phylotree.exceptions import NewickError


class Policy(Enum):
    REQUIRED = "required"
    OPTIONAL = "optional"
    ABSENT = "absent"


# Attribute names a field can be stored in
NAME = "name"
SUPPORT = "support"
LENGTH = "length"
# Format 0 internal labels: a number is a support value, anything else a name
NAME_OR_SUPPORT = "name_or_support"


@dataclass(frozen=True)
class FieldRule:
    attribute: Optional[str]
    policy: Policy

    @property
    def allowed(self) -> bool:
        return self.policy is not Policy.ABSENT

    @property
    def required(self) -> bool:
        return self.policy is Policy.REQUIRED


@dataclass(frozen=True)
class NewickFormat:
    code: int
    description: str
    leaf_label: FieldRule
    leaf_length: FieldRule
    internal_label: FieldRule
    internal_length: FieldRule

    def label_rule(self, is_leaf: bool) -> FieldRule:
        return self.leaf_label if is_leaf else self.internal_label

    def length_rule(self, is_leaf: bool) -> FieldRule:
        return self.leaf_length if is_leaf else self.internal_length


def _rule(attribute: Optional[str], policy: Policy) -> FieldRule:
    return FieldRule(attribute, policy)


_REQ = Policy.REQUIRED
_OPT = Policy.OPTIONAL
_ABSENT = _rule(None, Policy.ABSENT)

NEWICK_FORMATS: Dict[int, NewickFormat] = {
    0: NewickFormat(
        0,
        "flexible with support values",
        _rule(NAME, _OPT),
        _rule(LENGTH, _OPT),
        _rule(NAME_OR_SUPPORT, _OPT),
        _rule(LENGTH, _OPT),
    ),
    1: NewickFormat(
        1,
        "flexible with internal node names",
        _rule(NAME, _OPT),
        _rule(LENGTH, _OPT),
        _rule(NAME, _OPT),
        _rule(LENGTH, _OPT),
    ),
    2: NewickFormat(
        2,
        "all branches + leaf names + internal supports",
        _rule(NAME, _REQ),
        _rule(LENGTH, _REQ),
        _rule(SUPPORT, _REQ),
        _rule(LENGTH, _REQ),
    ),
    3: NewickFormat(
        3,
        "all branches + all names",
        _rule(NAME, _REQ),
        _rule(LENGTH, _REQ),
        _rule(NAME, _REQ),
        _rule(LENGTH, _REQ),
    ),
    4: NewickFormat(
        4,
        "leaf branches + leaf names",
        _rule(NAME, _REQ),
        _rule(LENGTH, _REQ),
        _ABSENT,
        _ABSENT,
    ),
    5: NewickFormat(
        5,
        "internal and leaf branches + leaf names",
        _rule(NAME, _REQ),
        _rule(LENGTH, _REQ),
        _ABSENT,
        _rule(LENGTH, _REQ),
    ),
    6: NewickFormat(
        6,
        "internal branches + leaf names",
        _rule(NAME, _REQ),
        _ABSENT,
        _ABSENT,
        _rule(LENGTH, _REQ),
    ),
    7: NewickFormat(
        7,
        "leaf branches + all names",
        _rule(NAME, _REQ),
        _rule(LENGTH, _REQ),
        _rule(NAME, _REQ),
        _ABSENT,
    ),
    8: NewickFormat(
        8,
        "all names",
        _rule(NAME, _REQ),
        _ABSENT,
        _rule(NAME, _REQ),
        _ABSENT,
    ),
    9: NewickFormat(
        9,
        "leaf names",
        _rule(NAME, _REQ),
        _ABSENT,
        _ABSENT,
        _ABSENT,
    ),
    100: NewickFormat(
        100,
        "topology only",
        _ABSENT,
        _ABSENT,
        _ABSENT,
        _ABSENT,
    ),
}


def get_format(code: int) -> NewickFormat:
    """
    Look up a format code.

    Raises:
        NewickError: If the code is not one of the documented formats
    """
    try:
        return NEWICK_FORMATS[code]
    except (KeyError, TypeError):
        raise NewickError(
            f"Unsupported newick format {code!r}. "
            f"Expected one of {sorted(NEWICK_FORMATS)}"
        )
