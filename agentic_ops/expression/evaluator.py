"""Expression evaluation against an explicit context.

The evaluator keeps no state between calls: everything it reads comes
from the `Context` handed to it, and a parsed tree is never modified.

>>> ctx = Context(event={"file": {"path": "src/main.go"}}, env={"CI": "true"})
>>> ctx.evaluate("endsWith(event.file.path, '.GO') && env.CI == 'TRUE'")
True
>>> ctx.evaluate_string("editing ${{ event.file.path }}")
'editing src/main.go'
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterator, Optional, Union

from agentic_ops.expression import functions
from agentic_ops.expression.errors import EvalError
from agentic_ops.expression.parser import Binary, Call, Literal, Node, Not, PropertyPath, parse
from agentic_ops.expression.values import is_number, is_truthy, to_text, values_equal

TEMPLATE_OPEN = "${{"
TEMPLATE_CLOSE = "}}"

_RELATIONAL = {
    "<": lambda a, b: a < b,
    ">": lambda a, b: a > b,
    "<=": lambda a, b: a <= b,
    ">=": lambda a, b: a >= b,
}


def template_spans(text: str) -> Iterator[tuple[int, int, str]]:
    """Yield ``(start, end, expression)`` for each ``${{ ... }}`` span.

    The closing ``}}`` is searched outside single-quoted literals, so a
    string argument may contain braces. An unclosed ``${{`` is left as
    plain text.

    >>> [e for _, _, e in template_spans("${{ a }}-${{ format('{0}}}', b) }}")]
    ['a', "format('{0}}}', b)"]
    """
    start = text.find(TEMPLATE_OPEN)
    while start != -1:
        i = start + len(TEMPLATE_OPEN)
        in_string = False
        while i < len(text):
            ch = text[i]
            # an escaped '' toggles twice
            if ch == "'":
                in_string = not in_string
            elif not in_string and text.startswith(TEMPLATE_CLOSE, i):
                break
            i += 1
        else:
            return
        yield start, i + len(TEMPLATE_CLOSE), text[start + len(TEMPLATE_OPEN):i].strip()
        start = text.find(TEMPLATE_OPEN, i + len(TEMPLATE_CLOSE))


class Context:
    """Evaluation scope with two namespaces: ``event`` and ``env``."""

    def __init__(self, event: Optional[Mapping[str, Any]] = None, env: Optional[Mapping[str, str]] = None):
        self.event: Mapping[str, Any] = event if event is not None else {}
        self.env: Mapping[str, str] = env if env is not None else {}

    def __repr__(self):
        return f"Context(event keys={sorted(self.event)}, env keys={sorted(self.env)})"

    def resolve(self, parts: tuple[str, ...]) -> Any:
        """Walk a dotted path. Any miss along the way gives None."""
        namespaces = {"event": self.event, "env": self.env}
        current: Any = namespaces.get(parts[0])
        for part in parts[1:]:
            if isinstance(current, Mapping):
                current = current.get(part)
            elif isinstance(current, list) and part.isascii() and part.isdigit():
                index = int(part)
                current = current[index] if index < len(current) else None
            else:
                return None
            if current is None:
                return None
        return current

    def evaluate(self, expression: Union[str, Node]) -> Any:
        return evaluate(expression, self)

    def evaluate_bool(self, expression: Union[str, Node]) -> bool:
        return is_truthy(evaluate(expression, self))

    def evaluate_string(self, text: str) -> str:
        """Replace every ``${{ expr }}`` span with its evaluated text.

        Text outside the spans is kept as-is; a string without spans comes
        back unchanged.
        """
        if TEMPLATE_OPEN not in text:
            return text
        out: list[str] = []
        last = 0
        for start, end, expression in template_spans(text):
            out.append(text[last:start])
            out.append(to_text(evaluate(expression, self)))
            last = end
        out.append(text[last:])
        return "".join(out)


def evaluate(expression: Union[str, Node], context: Context) -> Any:
    """Evaluate expression text (or an already parsed tree)."""
    node = parse(expression) if isinstance(expression, str) else expression
    try:
        return _eval(node, context)
    except RecursionError:
        raise EvalError("Expression nested too deeply to evaluate") from None


def _eval(node: Node, ctx: Context) -> Any:
    if isinstance(node, Literal):
        return node.value
    if isinstance(node, PropertyPath):
        return ctx.resolve(node.parts)
    if isinstance(node, Not):
        return not is_truthy(_eval(node.operand, ctx))
    if isinstance(node, Binary):
        return _eval_binary(node, ctx)
    if isinstance(node, Call):
        func = functions.lookup(node.name, len(node.args))
        return func.impl(*(_eval(arg, ctx) for arg in node.args))
    raise EvalError(f"Unsupported expression node {node!r}")


def _eval_binary(node: Binary, ctx: Context) -> Any:
    op = node.op
    if op == "&&":
        return is_truthy(_eval(node.left, ctx)) and is_truthy(_eval(node.right, ctx))
    if op == "||":
        return is_truthy(_eval(node.left, ctx)) or is_truthy(_eval(node.right, ctx))

    left = _eval(node.left, ctx)
    right = _eval(node.right, ctx)
    if op == "==":
        return values_equal(left, right)
    if op == "!=":
        return not values_equal(left, right)

    compare = _RELATIONAL.get(op)
    if compare is None:
        raise EvalError(f"Unknown operator {op!r}")
    if not (is_number(left) and is_number(right)):
        raise EvalError(
            f"Operator {op!r} needs two numbers, got {to_text(left)!r} and {to_text(right)!r}"
        )
    return compare(left, right)


def _check_calls(node: Node) -> None:
    if isinstance(node, Call):
        functions.lookup(node.name, len(node.args))
        for arg in node.args:
            _check_calls(arg)
    elif isinstance(node, Binary):
        _check_calls(node.left)
        _check_calls(node.right)
    elif isinstance(node, Not):
        _check_calls(node.operand)


def validate_expression(expression: str) -> Node:
    """Parse and check function names and arity without evaluating.

    Raises ParseError or EvalError on the first problem. Meant for
    authoring-time checks, where a broken expression should be reported
    instead of silently failing to match.
    """
    node = parse(expression)
    _check_calls(node)
    return node


def validate_template(text: str) -> None:
    """Validate every ``${{ }}`` span of a template string."""
    for _, _, expression in template_spans(text):
        validate_expression(expression)
