"""
Expression tree types for patternlang pipelines.

A parsed pipeline is a tree of five node kinds:

- Command: ``checkers red blue`` (a registered operation and its arguments)
- Pipeline: ``a | b | c`` (left-to-right composition, always flat)
- Binary: ``a ^ b``, ``a + b`` ... (infix operator application)
- Group: ``(a | b)`` in expression position (transparent)
- Literal: ``0.5`` or ``"red"`` in expression position (a nullary atom)

Command arguments are a separate union:

- Literal: a raw token text
- KeyValue: ``mask=(...)`` or ``size=4``
- SubExpression: ``(circle red blue)`` evaluated and passed by handle

All nodes are frozen; ``render()`` (and ``str()``) give back source text
that parses to an equivalent tree.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------


class BinaryOp(StrEnum):
    """Infix operators and their place in the precedence table."""

    XOR = "^"
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"

    @property
    def command_name(self) -> str:
        """Registry name of the command that implements this operator."""
        return OPERATOR_COMMANDS[self]


OPERATOR_COMMANDS: dict[BinaryOp, str] = {
    BinaryOp.XOR: "op_xor",
    BinaryOp.ADD: "op_add",
    BinaryOp.SUB: "op_sub",
    BinaryOp.MUL: "op_mul",
    BinaryOp.DIV: "op_div",
    BinaryOp.MOD: "op_mod",
}


# ---------------------------------------------------------------------------
# Lexeme shapes (used to decide whether a literal can render bare)
# ---------------------------------------------------------------------------


def _is_ident_char(c: str) -> bool:
    return c.isalpha() or c.isdecimal() or c == "_"


def _is_value_char(c: str) -> bool:
    return _is_ident_char(c) or c in ".-#"


def is_identifier(text: str) -> bool:
    """True if ``text`` lexes as exactly one IDENT token."""
    if not text or not (text[0].isalpha() or text[0] == "_"):
        return False
    return all(_is_ident_char(c) for c in text[1:])


def is_value_lexeme(text: str) -> bool:
    """True if ``text`` lexes as exactly one NUMBER token."""
    if not text:
        return False
    first = text[0]
    if first == "-":
        if len(text) < 2 or not (text[1].isdecimal() or text[1] == "."):
            return False
    elif not (first.isdecimal() or first in ".#"):
        return False
    return all(_is_value_char(c) for c in text[1:])


def _quote(text: str) -> str:
    return f'"{text}"'


# ---------------------------------------------------------------------------
# Node types
# ---------------------------------------------------------------------------


class Literal(BaseModel):
    """
    A raw token text.

    Appears as a command argument (``checkers red blue``) or, for
    NUMBER/STRING tokens, as a nullary atom in expression position
    (``(checkers red blue) * 0.5``).
    """

    value: str = Field(description="Token text with any quotes stripped")

    model_config = ConfigDict(frozen=True)

    def render(self) -> str:
        # An identifier-shaped atom must be quoted or it would re-parse as a command.
        if is_value_lexeme(self.value):
            return self.value
        return _quote(self.value)

    def render_arg(self) -> str:
        if is_identifier(self.value) or is_value_lexeme(self.value):
            return self.value
        return _quote(self.value)

    def __str__(self) -> str:
        return self.render()


class SubExpression(BaseModel):
    """
    A parenthesised expression in argument position.

    The evaluator materialises it and passes the handler a ``@img:N``
    handle instead of the tree.
    """

    node: Node

    model_config = ConfigDict(frozen=True)

    def render(self) -> str:
        return f"({self.node.render()})"

    def render_arg(self) -> str:
        return self.render()

    def __str__(self) -> str:
        return self.render()


class KeyValue(BaseModel):
    """``key=value`` argument; the value is never itself a KeyValue."""

    key: str
    value: Literal | SubExpression

    model_config = ConfigDict(frozen=True)

    @field_validator("key")
    @classmethod
    def _key_is_identifier(cls, v: str) -> str:
        if not is_identifier(v):
            raise ValueError(f"key must be an identifier, got {v!r}")
        return v

    def render(self) -> str:
        return f"{self.key}={self.value.render_arg()}"

    def render_arg(self) -> str:
        return self.render()

    def __str__(self) -> str:
        return self.render()


class Command(BaseModel):
    """A single operation invocation: ``name arg1 key=value (sub)``."""

    name: str = Field(description="Registry name of the operation")
    args: tuple[Arg, ...] = Field(default=(), description="Arguments in source order")

    model_config = ConfigDict(frozen=True)

    def render(self) -> str:
        return " ".join([self.name, *(arg.render_arg() for arg in self.args)])

    def __str__(self) -> str:
        return self.render()


class Pipeline(BaseModel):
    """
    Left-to-right composition: ``a | b | c``.

    Always flat: chained pipes append to one node list rather than nest.
    """

    nodes: tuple[Node, ...] = Field(description="Stages in evaluation order")

    model_config = ConfigDict(frozen=True)

    @field_validator("nodes")
    @classmethod
    def _flat_and_long_enough(cls, v: tuple[Node, ...]) -> tuple[Node, ...]:
        if len(v) < 2:
            raise ValueError("a pipeline needs at least two stages")
        if any(isinstance(n, Pipeline) for n in v):
            raise ValueError("pipeline stages cannot themselves be pipelines")
        return v

    def append(self, node: Node) -> Pipeline:
        """Return a new pipeline with ``node`` as its last stage."""
        return Pipeline(nodes=(*self.nodes, node))

    def render(self) -> str:
        return " | ".join(n.render() for n in self.nodes)

    def __str__(self) -> str:
        return self.render()


class Binary(BaseModel):
    """Infix operator application: ``left op right``."""

    left: Node
    op: BinaryOp
    right: Node

    model_config = ConfigDict(frozen=True)

    def render(self) -> str:
        return f"{_operand(self.left)} {self.op.value} {_operand(self.right)}"

    def __str__(self) -> str:
        return self.render()


class Group(BaseModel):
    """A parenthesised expression in expression position."""

    inner: Node

    model_config = ConfigDict(frozen=True)

    def render(self) -> str:
        return f"({self.inner.render()})"

    def __str__(self) -> str:
        return self.render()


def _operand(node: Node) -> str:
    # Groups already carry their own parentheses.
    if isinstance(node, Group):
        return node.render()
    return f"({node.render()})"


# ---------------------------------------------------------------------------
# Union types
# ---------------------------------------------------------------------------

Node = Command | Pipeline | Binary | Group | Literal

Arg = Literal | KeyValue | SubExpression

# Rebuild models for recursive forward references
SubExpression.model_rebuild()
KeyValue.model_rebuild()
Command.model_rebuild()
Pipeline.model_rebuild()
Binary.model_rebuild()
Group.model_rebuild()


# ---------------------------------------------------------------------------
# Structural helpers
# ---------------------------------------------------------------------------


def strip_groups(node: Node) -> Node:
    """
    Remove every Group wrapper from a tree.

    Groups are semantically transparent, so two trees that differ only in
    grouping evaluate identically. ``render()`` parenthesises Binary
    operands, which re-parse as Groups; comparing stripped trees is how
    round-trips are checked.
    """
    if isinstance(node, Group):
        return strip_groups(node.inner)
    if isinstance(node, Pipeline):
        stages: list[Node] = []
        for child in node.nodes:
            stripped = strip_groups(child)
            # (a | b) | c composes exactly like a | b | c
            if isinstance(stripped, Pipeline):
                stages.extend(stripped.nodes)
            else:
                stages.append(stripped)
        return Pipeline(nodes=tuple(stages))
    if isinstance(node, Binary):
        return Binary(left=strip_groups(node.left), op=node.op, right=strip_groups(node.right))
    if isinstance(node, Command):
        return Command(name=node.name, args=tuple(_strip_arg(a) for a in node.args))
    return node


def _strip_arg(arg: Arg) -> Arg:
    if isinstance(arg, SubExpression):
        return SubExpression(node=strip_groups(arg.node))
    if isinstance(arg, KeyValue) and isinstance(arg.value, SubExpression):
        return KeyValue(key=arg.key, value=SubExpression(node=strip_groups(arg.value.node)))
    return arg


def structurally_equal(a: Node, b: Node) -> bool:
    """Compare two trees ignoring Group wrappers."""
    return strip_groups(a) == strip_groups(b)
