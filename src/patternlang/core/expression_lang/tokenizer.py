"""
Tokenizer for the patternlang pipeline language.

Converts pipeline source text into a stream of typed tokens terminated by
``END``. The lexer never fails: an unrecognised character ends the stream
(the ``END`` token then carries that character so the parser can report
it).
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from enum import StrEnum, auto


class TokenKind(StrEnum):
    """Token types for the pipeline language."""

    END = auto()

    # Values
    IDENT = auto()
    STRING = auto()
    NUMBER = auto()  # numbers, signed numbers, decimals and #hex colours

    # Operators
    PIPE = auto()
    CARET = auto()
    PLUS = auto()
    MINUS = auto()
    ASTERISK = auto()
    SLASH = auto()
    PERCENT = auto()

    # Punctuation
    LPAREN = auto()
    RPAREN = auto()
    EQUALS = auto()
    COMMA = auto()


class Token:
    """A single token from the pipeline lexer."""

    __slots__ = ("kind", "literal", "pos", "end")

    def __init__(self, kind: TokenKind, literal: str, pos: int, end: int | None = None) -> None:
        self.kind = kind
        self.literal = literal
        self.pos = pos
        self.end = pos + len(literal) if end is None else end

    def __repr__(self) -> str:
        return f"Token({self.kind}, {self.literal!r}, pos={self.pos})"


_WHITESPACE = " \t\n\r"

_SINGLE_CHAR: dict[str, TokenKind] = {
    "|": TokenKind.PIPE,
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
    "=": TokenKind.EQUALS,
    "^": TokenKind.CARET,
    "+": TokenKind.PLUS,
    "*": TokenKind.ASTERISK,
    "/": TokenKind.SLASH,
    "%": TokenKind.PERCENT,
    ",": TokenKind.COMMA,
}


def _is_letter(c: str) -> bool:
    return c.isalpha() or c == "_"


def _is_digit(c: str) -> bool:
    return c.isdecimal()


class Lexer:
    """
    Pull-based lexer over a source string.

    ``next_token()`` returns tokens one at a time; once ``END`` has been
    returned every further call returns ``END`` again. ``reset()`` restarts
    from the beginning of the source.
    """

    def __init__(self, source: str) -> None:
        self.source = source
        self.pos = 0
        self._done = False

    def reset(self) -> None:
        self.pos = 0
        self._done = False

    def __iter__(self) -> Iterator[Token]:
        """Yield the remaining tokens, ``END`` included."""
        while True:
            tok = self.next_token()
            yield tok
            if tok.kind == TokenKind.END:
                return

    def next_token(self) -> Token:
        source = self.source
        n = len(source)

        if self._done:
            return Token(TokenKind.END, "", n)

        while self.pos < n and source[self.pos] in _WHITESPACE:
            self.pos += 1

        if self.pos >= n:
            return self._finish(Token(TokenKind.END, "", n))

        start = self.pos
        c = source[start]

        if c in _SINGLE_CHAR:
            self.pos += 1
            return Token(_SINGLE_CHAR[c], c, start)

        if c == '"':
            return self._read_string(start)

        if _is_letter(c):
            return self._read_while(start, TokenKind.IDENT, _is_ident_char)

        if c == "-":
            # -5 and -.5 are values; anything else is the minus operator
            nxt = source[start + 1] if start + 1 < n else ""
            if nxt and (_is_digit(nxt) or nxt == "."):
                return self._read_while(start, TokenKind.NUMBER, _is_value_char)
            self.pos += 1
            return Token(TokenKind.MINUS, c, start)

        if _is_digit(c) or c in ".#":
            return self._read_while(start, TokenKind.NUMBER, _is_value_char)

        # Unknown character: terminate the stream at this position
        return self._finish(Token(TokenKind.END, c, start))

    def _finish(self, tok: Token) -> Token:
        self._done = True
        self.pos = len(self.source)
        return tok

    def _read_while(self, start: int, kind: TokenKind, accept: Callable[[str], bool]) -> Token:
        i = start + 1
        n = len(self.source)
        while i < n and accept(self.source[i]):
            i += 1
        self.pos = i
        return Token(kind, self.source[start:i], start)

    def _read_string(self, start: int) -> Token:
        """Read a double-quoted string; an unterminated string closes at end of input."""
        close = self.source.find('"', start + 1)
        if close == -1:
            self.pos = len(self.source)
            return Token(TokenKind.STRING, self.source[start + 1 :], start, end=self.pos)
        self.pos = close + 1
        return Token(TokenKind.STRING, self.source[start + 1 : close], start, end=self.pos)


def _is_ident_char(c: str) -> bool:
    return _is_letter(c) or _is_digit(c)


def _is_value_char(c: str) -> bool:
    return _is_letter(c) or _is_digit(c) or c in ".-#"


def tokenize(source: str) -> list[Token]:
    """Tokenize a pipeline string into a list of tokens ending with ``END``."""
    return list(Lexer(source))
