"""
Pratt parser for the patternlang pipeline language.

Grammar (precedence low to high):
    expr     → pipe
    pipe     → xor ("|" xor)*
    xor      → sum ("^" sum)*
    sum      → prod (("+" | "-") prod)*
    prod     → atom (("*" | "/" | "%") atom)*
    atom     → IDENT arg* | NUMBER | STRING | "(" expr ")"
    arg      → IDENT "=" argvalue | argvalue
    argvalue → IDENT | NUMBER | STRING | "(" expr ")"

All binary levels are left-associative. A command greedily consumes
arguments until it reaches an operator, ``)``, ``,`` or the end of input.
``(expr)`` is a Group in expression position and a SubExpression in
argument position.
"""

from __future__ import annotations

from enum import IntEnum

from patternlang.core.errors import (
    EmptyExpressionError,
    ParseError,
    UnclosedParenError,
    UnexpectedTokenError,
    UnknownOperatorError,
)
from patternlang.core.expression_lang.tokenizer import Token, TokenKind, tokenize
from patternlang.core.ir.expressions import (
    Arg,
    Binary,
    BinaryOp,
    Command,
    Group,
    KeyValue,
    Literal,
    Node,
    Pipeline,
    SubExpression,
)


class Precedence(IntEnum):
    """Binding power of each level; higher binds tighter."""

    LOWEST = 0
    PIPE = 1
    XOR = 2
    SUM = 3
    PRODUCT = 4
    CALL = 5


_INFIX_PRECEDENCE: dict[TokenKind, Precedence] = {
    TokenKind.PIPE: Precedence.PIPE,
    TokenKind.CARET: Precedence.XOR,
    TokenKind.PLUS: Precedence.SUM,
    TokenKind.MINUS: Precedence.SUM,
    TokenKind.ASTERISK: Precedence.PRODUCT,
    TokenKind.SLASH: Precedence.PRODUCT,
    TokenKind.PERCENT: Precedence.PRODUCT,
}

_BINARY_OPS: dict[TokenKind, BinaryOp] = {
    TokenKind.CARET: BinaryOp.XOR,
    TokenKind.PLUS: BinaryOp.ADD,
    TokenKind.MINUS: BinaryOp.SUB,
    TokenKind.ASTERISK: BinaryOp.MUL,
    TokenKind.SLASH: BinaryOp.DIV,
    TokenKind.PERCENT: BinaryOp.MOD,
}

# Tokens that can begin a command argument; everything else ends the list.
_ARG_START = frozenset({TokenKind.IDENT, TokenKind.NUMBER, TokenKind.STRING, TokenKind.LPAREN})

# Value lexemes that glue together when nothing separates them (out.png).
_GLUEABLE = frozenset({TokenKind.IDENT, TokenKind.NUMBER})


class _Parser:
    """Precedence-climbing parser over a token list."""

    def __init__(self, tokens: list[Token], source: str) -> None:
        self.tokens = tokens
        self.source = source
        self.pos = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.pos]

    def peek(self, offset: int = 0) -> Token:
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return self.tokens[-1]  # END

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return tok

    def at_end(self) -> bool:
        tok = self.current
        return tok.kind == TokenKind.END and not tok.literal

    # -- Errors --

    def error(self, cls: type[ParseError], message: str, tok: Token) -> ParseError:
        return cls(message, tok.pos, self.source)

    def unexpected(self, tok: Token) -> ParseError:
        """Build the error for a token that has no rule at this point."""
        if tok.kind == TokenKind.END:
            if tok.literal:
                return self.error(UnexpectedTokenError, f"unexpected character {tok.literal!r}", tok)
            return self.error(UnexpectedTokenError, "unexpected end of input", tok)
        if tok.kind in (TokenKind.EQUALS, TokenKind.COMMA):
            return self.error(UnknownOperatorError, f"{tok.literal!r} is not an operator", tok)
        return self.error(UnexpectedTokenError, f"unexpected token {tok.literal!r}", tok)

    def expect_close(self, opening: Token) -> None:
        if self.current.kind == TokenKind.RPAREN:
            self.advance()
            return
        if self.at_end():
            raise self.error(UnclosedParenError, "unclosed '('", opening)
        raise self.unexpected(self.current)

    # -- Expressions --

    def parse_expression(self, min_precedence: Precedence = Precedence.LOWEST) -> Node:
        left = self.parse_prefix()

        while True:
            tok = self.current
            precedence = _INFIX_PRECEDENCE.get(tok.kind)
            if precedence is None or precedence <= min_precedence:
                return left
            self.advance()
            right = self.parse_expression(precedence)
            left = self.parse_infix(tok, left, right)

    def parse_prefix(self) -> Node:
        tok = self.current

        if tok.kind == TokenKind.IDENT:
            return self.parse_command()

        if tok.kind in (TokenKind.NUMBER, TokenKind.STRING):
            self.advance()
            return Literal(value=tok.literal)

        if tok.kind == TokenKind.LPAREN:
            self.advance()
            inner = self.parse_expression()
            self.expect_close(tok)
            return Group(inner=inner)

        raise self.unexpected(tok)

    def parse_infix(self, tok: Token, left: Node, right: Node) -> Node:
        if tok.kind == TokenKind.PIPE:
            if isinstance(left, Pipeline):
                return left.append(right)
            return Pipeline(nodes=(left, right))
        return Binary(left=left, op=_BINARY_OPS[tok.kind], right=right)

    # -- Commands and arguments --

    def parse_command(self) -> Command:
        """IDENT arg*"""
        name_tok = self.advance()
        args: list[Arg] = []
        while self.current.kind in _ARG_START:
            args.append(self.parse_arg())
        return Command(name=name_tok.literal, args=tuple(args))

    def parse_arg(self) -> Arg:
        """IDENT '=' argvalue | argvalue"""
        tok = self.current
        if tok.kind == TokenKind.IDENT and self.peek(1).kind == TokenKind.EQUALS:
            self.advance()  # key
            self.advance()  # =
            return KeyValue(key=tok.literal, value=self.parse_arg_value())
        return self.parse_arg_value()

    def parse_arg_value(self) -> Literal | SubExpression:
        """'(' expr ')' | IDENT | NUMBER | STRING"""
        tok = self.current

        if tok.kind == TokenKind.LPAREN:
            self.advance()
            inner = self.parse_expression()
            self.expect_close(tok)
            return SubExpression(node=inner)

        if tok.kind == TokenKind.STRING:
            self.advance()
            return Literal(value=tok.literal)

        if tok.kind in _GLUEABLE:
            self.advance()
            text, end = tok.literal, tok.end
            while self.current.kind in _GLUEABLE and self.current.pos == end:
                nxt = self.advance()
                text += nxt.literal
                end = nxt.end
            return Literal(value=text)

        raise self.unexpected(tok)


def parse(source: str) -> Node:
    """Parse a pipeline string into an expression tree.

    Args:
        source: Pipeline text (e.g., "checkers black white | zoom 10")

    Returns:
        Root node of the parsed tree.

    Raises:
        EmptyExpressionError: If the source is blank.
        ParseError: If the source is not a well-formed pipeline.
    """
    tokens = tokenize(source)

    parser = _Parser(tokens, source)
    if parser.at_end():
        raise EmptyExpressionError("empty expression", parser.current.pos, source)

    node = parser.parse_expression()

    # Ensure all tokens consumed
    if not parser.at_end():
        raise parser.unexpected(parser.current)

    return node
