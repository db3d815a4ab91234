"""
Default values shared by the node model and the Newick codec.
"""

from contextvars import ContextVar

DEFAULT_LENGTH: float = 1.0
DEFAULT_SUPPORT: float = 1.0
DEFAULT_NAME: str = ""

# Number formatting used when writing Newick text
FLOAT_FORMATTER: str = "%0.6g"
FIXED_FLOAT_FORMATTER: str = "%0.6f"

_FLOAT_FORMATTER: ContextVar[str] = ContextVar("_FLOAT_FORMATTER", default=FLOAT_FORMATTER)


def set_float_format(formatter: str) -> None:
    """
    Set the %-style formatter used for lengths and supports in compact output.

    Scientific notation (``%e``) or any other custom format is allowed, as long
    as it produces no character reserved by the Newick grammar.

    Args:
        formatter: A %-style format string, e.g. ``"%0.10f"``

    Raises:
        ValueError: If the formatter cannot format a float
    """
    try:
        formatter % 1.0
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid float formatter {formatter!r}: {e}")
    _FLOAT_FORMATTER.set(formatter)


def get_float_format() -> str:
    """Return the formatter currently used for compact output."""
    return _FLOAT_FORMATTER.get()
