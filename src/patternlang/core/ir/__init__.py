"""
patternlang intermediate representation.

Parsed pipelines are trees of the frozen pydantic models defined in
``patternlang.core.ir.expressions``.
"""

from .expressions import (
    OPERATOR_COMMANDS,
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
    is_identifier,
    is_value_lexeme,
    strip_groups,
    structurally_equal,
)

__all__ = [
    "OPERATOR_COMMANDS",
    "Arg",
    "Binary",
    "BinaryOp",
    "Command",
    "Group",
    "KeyValue",
    "Literal",
    "Node",
    "Pipeline",
    "SubExpression",
    "is_identifier",
    "is_value_lexeme",
    "strip_groups",
    "structurally_equal",
]
