"""Value rules shared by operators and built-in functions.

Values are plain JSON-like Python objects: None, bool, int, float, str,
list and dict.
"""

from __future__ import annotations

import json
import math
from typing import Any

_ASCII_LOWER = str.maketrans("ABCDEFGHIJKLMNOPQRSTUVWXYZ", "abcdefghijklmnopqrstuvwxyz")


def ascii_fold(s: str) -> str:
    """Lower-case ASCII letters only.

    >>> ascii_fold("Hello World")
    'hello world'
    """
    return s.translate(_ASCII_LOWER)


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_truthy(value: Any) -> bool:
    """The one truthiness rule used everywhere.

    None, False, 0, NaN and '' are falsy. Everything else is truthy,
    empty lists and dicts included.

    >>> [is_truthy(v) for v in (None, False, 0, "", [], "false")]
    [False, False, False, False, True, True]
    """
    if value is None or value is False:
        return False
    if is_number(value):
        return value != 0 and not (isinstance(value, float) and math.isnan(value))
    if isinstance(value, str):
        return value != ""
    return True


def values_equal(left: Any, right: Any) -> bool:
    """Equality used by ``==``, ``!=`` and ``contains`` on arrays.

    Strings compare ignoring ASCII case. Numbers compare by value. Other
    values must have the same type and value, so ``true != 1``.

    >>> values_equal("Hello", "hello")
    True
    >>> values_equal(True, 1)
    False
    """
    if isinstance(left, str) and isinstance(right, str):
        return ascii_fold(left) == ascii_fold(right)
    if is_number(left) and is_number(right):
        return left == right
    if type(left) is not type(right):
        return False
    return left == right


def to_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), sort_keys=True, default=str)


def to_text(value: Any) -> str:
    """Canonical text form, used for templating and string functions.

    >>> [to_text(v) for v in (None, True, 42, 2.0, "x", ["a", 1])]
    ['', 'true', '42', '2', 'x', '["a",1]']
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (int, str)):
        return str(value)
    return to_json(value)
