"""Recursive-descent parser for trigger expressions.

Precedence, lowest first::

    or        := and ( '||' and )*
    and       := equality ( '&&' equality )*
    equality  := relational ( ( '==' | '!=' ) relational )*
    relational:= unary ( ( '<' | '>' | '<=' | '>=' ) unary )*
    unary     := '!' unary | primary
    primary   := literal | path | call | '(' or ')'

The tree is immutable, so one parsed expression can be evaluated against
any number of contexts.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Union

from agentic_ops.expression.errors import ParseError
from agentic_ops.expression.lexer import Token, TokenType, tokenize


@dataclass(frozen=True)
class Literal:
    value: Union[bool, None, int, str]


@dataclass(frozen=True)
class PropertyPath:
    parts: tuple[str, ...]

    def __str__(self):
        return ".".join(self.parts)


@dataclass(frozen=True)
class Not:
    operand: "Node"


@dataclass(frozen=True)
class Binary:
    op: str
    left: "Node"
    right: "Node"


@dataclass(frozen=True)
class Call:
    name: str
    args: tuple["Node", ...]


Node = Union[Literal, PropertyPath, Not, Binary, Call]

_KEYWORDS = {"true": True, "false": False, "null": None}

_EQUALITY = {TokenType.EQ, TokenType.NE}
_RELATIONAL = {TokenType.LT, TokenType.GT, TokenType.LE, TokenType.GE}

# Deepest chain of "!", parentheses and call arguments accepted
MAX_NESTING = 64


class Parser:
    """Builds a `Node` tree from a token list."""

    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.pos = 0
        self.depth = 0

    def _current(self) -> Token:
        return self.tokens[self.pos]

    def _peek(self, offset: int = 1) -> Token:
        pos = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[pos]

    def _descend(self, token: Token) -> None:
        self.depth += 1
        if self.depth > MAX_NESTING:
            raise ParseError(f"Expression nested more than {MAX_NESTING} levels deep", token.position)

    def _advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.type != TokenType.EOF:
            self.pos += 1
        return token

    def _expect(self, token_type: TokenType, what: str) -> Token:
        token = self._current()
        if token.type != token_type:
            found = "end of expression" if token.type == TokenType.EOF else repr(token.value)
            raise ParseError(f"Expected {what}, found {found}", token.position)
        return self._advance()

    def parse(self) -> Node:
        if self._current().type == TokenType.EOF:
            raise ParseError("Empty expression", 0)
        node = self._parse_or()
        token = self._current()
        if token.type != TokenType.EOF:
            if token.type == TokenType.RPAREN:
                raise ParseError("Unbalanced ')'", token.position)
            raise ParseError(f"Unexpected token {token.value!r}", token.position)
        return node

    def _parse_or(self) -> Node:
        node = self._parse_and()
        while self._current().type == TokenType.OR:
            self._advance()
            node = Binary("||", node, self._parse_and())
        return node

    def _parse_and(self) -> Node:
        node = self._parse_equality()
        while self._current().type == TokenType.AND:
            self._advance()
            node = Binary("&&", node, self._parse_equality())
        return node

    def _parse_equality(self) -> Node:
        node = self._parse_relational()
        while self._current().type in _EQUALITY:
            op = self._advance().value
            node = Binary(op, node, self._parse_relational())
        return node

    def _parse_relational(self) -> Node:
        node = self._parse_unary()
        while self._current().type in _RELATIONAL:
            op = self._advance().value
            node = Binary(op, node, self._parse_unary())
        return node

    def _parse_unary(self) -> Node:
        if self._current().type == TokenType.NOT:
            self._descend(self._advance())
            node = Not(self._parse_unary())
            self.depth -= 1
            return node
        return self._parse_primary()

    def _parse_primary(self) -> Node:
        token = self._current()

        if token.type == TokenType.STRING:
            self._advance()
            return Literal(token.value)
        if token.type == TokenType.NUMBER:
            self._advance()
            try:
                return Literal(int(token.value))
            except ValueError:
                raise ParseError(f"Invalid number {token.value!r}", token.position) from None
        if token.type == TokenType.LPAREN:
            self._descend(self._advance())
            node = self._parse_or()
            self._expect(TokenType.RPAREN, "')'")
            self.depth -= 1
            return node
        if token.type == TokenType.IDENTIFIER:
            if self._peek().type == TokenType.LPAREN:
                return self._parse_call()
            if token.value in _KEYWORDS:
                self._advance()
                return Literal(_KEYWORDS[token.value])
            return self._parse_path()

        if token.type == TokenType.EOF:
            raise ParseError("Unexpected end of expression", token.position)
        raise ParseError(f"Unexpected token {token.value!r}", token.position)

    def _parse_path(self) -> PropertyPath:
        parts = [self._advance().value]
        while self._current().type == TokenType.DOT:
            self._advance()
            token = self._current()
            # allow numeric segments for list indexes: event.commit.files.0.path
            if token.type not in (TokenType.IDENTIFIER, TokenType.NUMBER):
                raise ParseError("Expected property name after '.'", token.position)
            parts.append(self._advance().value)
        return PropertyPath(tuple(parts))

    def _parse_call(self) -> Call:
        name = self._advance().value
        self._descend(self._advance())  # (
        args: list[Node] = []
        if self._current().type != TokenType.RPAREN:
            args.append(self._parse_or())
            while self._current().type == TokenType.COMMA:
                self._advance()
                args.append(self._parse_or())
        self._expect(TokenType.RPAREN, f"')' to close call to {name}()")
        self.depth -= 1
        return Call(name, tuple(args))


@lru_cache(maxsize=256)
def parse(text: str) -> Node:
    """Parse expression text into a tree. Results are cached per string."""
    return Parser(tokenize(text)).parse()
