"""Lenient parsers for raw (usually string) values read from XML or JSON."""

import math
from typing import Any

MISSING = "<missing>"

_TRUE_WORDS = frozenset(["true", "t", "yes", "y"])


def parse_list(p: Any, default: Any = None) -> Any:
    """Return the first entry of a list, or ``default`` if there is none."""
    if default is None:
        default = []

    if not isinstance(p, list) or len(p) == 0:
        return default

    return p[0]


def parse_string(s: Any, default: str = MISSING) -> str:
    """Convert a value to a string, ``default`` for ``None``."""
    if s is None:
        return default

    return str(s)


def parse_number(n: Any, default: Any = None) -> Any:
    """Parse an int or float, returning ``default`` when ``n`` is not numeric.

    Integral strings parse to ``int``, everything else numeric to ``float``.
    Booleans are not numbers.
    """
    if isinstance(n, bool) or n is None:
        return default

    if isinstance(n, (int, float)):
        return default if isinstance(n, float) and math.isnan(n) else n

    if not isinstance(n, str):
        return default

    text = n.strip()
    try:
        return int(text)
    except ValueError:
        pass

    try:
        value = float(text)
    except ValueError:
        return default

    return default if math.isnan(value) else value


def parse_bool(b: Any) -> bool:
    """Parse a boolean from a bool, a number or a yes/no style word."""
    if isinstance(b, bool):
        return b

    number = parse_number(b)
    if number is not None:
        return bool(number)

    if isinstance(b, str):
        return b.strip().lower() in _TRUE_WORDS

    return False
