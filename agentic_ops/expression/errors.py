"""Expression engine errors."""

from typing import Optional


class ExpressionError(Exception):
    """Base class for expression failures."""


class ParseError(ExpressionError):
    """Malformed expression text: bad token, unbalanced parens, trailing input."""

    def __init__(self, message: str, position: Optional[int] = None):
        self.position = position
        if position is not None:
            message = f"{message} (at position {position})"
        super().__init__(message)


class EvalError(ExpressionError):
    """Well-formed expression that can't be evaluated.

    Unknown function, wrong number of arguments, comparing non-numbers
    with a relational operator, invalid JSON and the like.
    """
