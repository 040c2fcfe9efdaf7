"""Tokenizer for trigger expressions.

Handles: identifiers, single-quoted strings, integers, operators,
parentheses, commas and dots.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from agentic_ops.expression.errors import ParseError


class TokenType(Enum):
    IDENTIFIER = auto()  # event, env, contains, true, null
    STRING = auto()      # 'quoted string'
    NUMBER = auto()      # 42
    DOT = auto()         # .
    COMMA = auto()       # ,
    LPAREN = auto()      # (
    RPAREN = auto()      # )
    NOT = auto()         # !
    AND = auto()         # &&
    OR = auto()          # ||
    EQ = auto()          # ==
    NE = auto()          # !=
    LT = auto()          # <
    GT = auto()          # >
    LE = auto()          # <=
    GE = auto()          # >=
    EOF = auto()


@dataclass(frozen=True)
class Token:
    """A single token and its offset in the expression text."""
    type: TokenType
    value: str
    position: int

    def __repr__(self):
        return f"Token({self.type.name}, {self.value!r}, @{self.position})"


_DIGITS = "0123456789"

# Longest operators first
_OPERATORS = [
    ("&&", TokenType.AND),
    ("||", TokenType.OR),
    ("==", TokenType.EQ),
    ("!=", TokenType.NE),
    ("<=", TokenType.LE),
    (">=", TokenType.GE),
    ("<", TokenType.LT),
    (">", TokenType.GT),
    ("!", TokenType.NOT),
    ("(", TokenType.LPAREN),
    (")", TokenType.RPAREN),
    (",", TokenType.COMMA),
    (".", TokenType.DOT),
]


class Lexer:
    """
    Tokenizer for expression text.

    Usage:
        tokens = Lexer("event.file.path == 'x'").tokenize()
    """

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.length = len(source)

    @staticmethod
    def _is_ident_start(ch: str) -> bool:
        return ch == "_" or ch.isalpha()

    @staticmethod
    def _is_ident_cont(ch: str) -> bool:
        # '-' is allowed inside names (env.MY-VAR); there is no minus operator
        return ch == "_" or ch == "-" or ch.isalnum()

    def tokenize(self) -> list[Token]:
        tokens: list[Token] = []
        while True:
            token = self._next_token()
            tokens.append(token)
            if token.type == TokenType.EOF:
                return tokens

    def _next_token(self) -> Token:
        while self.pos < self.length and self.source[self.pos].isspace():
            self.pos += 1
        if self.pos >= self.length:
            return Token(TokenType.EOF, "", self.pos)

        start = self.pos
        ch = self.source[start]

        if ch == "'":
            return self._read_string()
        if ch in _DIGITS:
            while self.pos < self.length and self.source[self.pos] in _DIGITS:
                self.pos += 1
            if self.pos < self.length and self._is_ident_start(self.source[self.pos]):
                raise ParseError(f"Invalid number {self.source[start:self.pos + 1]!r}", start)
            return Token(TokenType.NUMBER, self.source[start:self.pos], start)
        if self._is_ident_start(ch):
            while self.pos < self.length and self._is_ident_cont(self.source[self.pos]):
                self.pos += 1
            return Token(TokenType.IDENTIFIER, self.source[start:self.pos], start)

        for text, token_type in _OPERATORS:
            if self.source.startswith(text, start):
                self.pos += len(text)
                return Token(token_type, text, start)

        raise ParseError(f"Unexpected character {ch!r}", start)

    def _read_string(self) -> Token:
        """Read a single-quoted string. '' inside the string is a literal quote."""
        start = self.pos
        self.pos += 1
        chars: list[str] = []
        while self.pos < self.length:
            ch = self.source[self.pos]
            if ch == "'":
                if self.source.startswith("''", self.pos):
                    chars.append("'")
                    self.pos += 2
                    continue
                self.pos += 1
                return Token(TokenType.STRING, "".join(chars), start)
            chars.append(ch)
            self.pos += 1
        raise ParseError("Unterminated string literal", start)


def tokenize(source: str) -> list[Token]:
    """Tokenize expression text, ending with an EOF token."""
    return Lexer(source).tokenize()
