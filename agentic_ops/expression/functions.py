"""Built-in expression functions.

Names are case-sensitive. Each entry records its arity so calls can be
checked before evaluation.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional

from agentic_ops.expression.errors import EvalError
from agentic_ops.expression.values import ascii_fold, to_json, to_text, values_equal

_FORMAT_RE = re.compile(r"\{\{|\}\}|\{(\d+)\}")


def builtin_contains(haystack: Any, needle: Any) -> bool:
    """Substring test for strings, membership test for arrays.

    A null haystack or needle never matches a string, so an unset value
    doesn't turn into the empty substring.

    >>> builtin_contains("Hello World", "world")
    True
    >>> builtin_contains(["a", "b"], "B")
    True
    >>> builtin_contains("Hello World", None)
    False
    """
    if isinstance(haystack, list):
        return any(values_equal(item, needle) for item in haystack)
    if haystack is None or needle is None:
        return False
    return ascii_fold(to_text(needle)) in ascii_fold(to_text(haystack))


def builtin_starts_with(value: Any, prefix: Any) -> bool:
    if value is None or prefix is None:
        return False
    return ascii_fold(to_text(value)).startswith(ascii_fold(to_text(prefix)))


def builtin_ends_with(value: Any, suffix: Any) -> bool:
    if value is None or suffix is None:
        return False
    return ascii_fold(to_text(value)).endswith(ascii_fold(to_text(suffix)))


def builtin_format(template: Any, *args: Any) -> str:
    """Positional substitution: ``format('{0} {1}', 'a', 'b')``.

    ``{{`` and ``}}`` produce literal braces.

    >>> builtin_format("Hello {0}", "World")
    'Hello World'
    """
    def _replace(m: re.Match) -> str:
        if m.group(1) is None:
            return m.group(0)[0]
        index = int(m.group(1))
        if index >= len(args):
            raise EvalError(f"format(): no argument for placeholder {{{index}}}")
        return to_text(args[index])

    return _FORMAT_RE.sub(_replace, to_text(template))


def builtin_join(value: Any, separator: Any = ",") -> str:
    """Join array items with a separator (default ``,``).

    >>> builtin_join(["a", "b", "c"])
    'a,b,c'
    """
    if isinstance(value, list):
        return to_text(separator).join(to_text(item) for item in value)
    return to_text(value)


def builtin_to_json(value: Any) -> str:
    """
    >>> builtin_to_json({"key": "value"})
    '{"key":"value"}'
    """
    return to_json(value)


def builtin_from_json(value: Any) -> Any:
    try:
        return json.loads(to_text(value))
    except (json.JSONDecodeError, ValueError) as e:
        raise EvalError(f"fromJSON(): invalid JSON: {e}") from e


def builtin_always() -> bool:
    return True


@dataclass(frozen=True)
class Function:
    name: str
    impl: Callable[..., Any]
    min_args: int
    max_args: Optional[int]  # None means variadic

    def check_arity(self, count: int) -> None:
        if count < self.min_args or (self.max_args is not None and count > self.max_args):
            if self.max_args is None:
                expected = f"at least {self.min_args}"
            elif self.min_args == self.max_args:
                expected = str(self.min_args)
            else:
                expected = f"{self.min_args} to {self.max_args}"
            raise EvalError(f"{self.name}() takes {expected} argument(s), got {count}")


FUNCTIONS: dict[str, Function] = {
    f.name: f
    for f in (
        Function("contains", builtin_contains, 2, 2),
        Function("startsWith", builtin_starts_with, 2, 2),
        Function("endsWith", builtin_ends_with, 2, 2),
        Function("format", builtin_format, 1, None),
        Function("join", builtin_join, 1, 2),
        Function("toJSON", builtin_to_json, 1, 1),
        Function("fromJSON", builtin_from_json, 1, 1),
        Function("always", builtin_always, 0, 0),
    )
}


def lookup(name: str, arg_count: int) -> Function:
    """Find a function and check the call's arity."""
    func = FUNCTIONS.get(name)
    if func is None:
        raise EvalError(f"Unknown function {name}()")
    func.check_arity(arg_count)
    return func
