"""Expression language for trigger conditions and ``${{ }}`` templates.

Literals (``true``, ``false``, ``null``, integers, ``'strings'``), dotted
paths into the ``event`` and ``env`` namespaces, ``!``, ``==``, ``!=``,
``<``, ``>``, ``<=``, ``>=``, ``&&``, ``||`` and a fixed set of functions.
"""

from agentic_ops.expression.errors import EvalError, ExpressionError, ParseError
from agentic_ops.expression.evaluator import (
    Context,
    evaluate,
    template_spans,
    validate_expression,
    validate_template,
)
from agentic_ops.expression.functions import FUNCTIONS
from agentic_ops.expression.lexer import Token, TokenType, tokenize
from agentic_ops.expression.parser import Binary, Call, Literal, Node, Not, PropertyPath, parse
from agentic_ops.expression.values import is_truthy, to_text, values_equal

__all__ = [
    "Binary",
    "Call",
    "Context",
    "EvalError",
    "ExpressionError",
    "FUNCTIONS",
    "Literal",
    "Node",
    "Not",
    "ParseError",
    "PropertyPath",
    "Token",
    "TokenType",
    "evaluate",
    "is_truthy",
    "parse",
    "template_spans",
    "to_text",
    "tokenize",
    "validate_expression",
    "validate_template",
    "values_equal",
]
