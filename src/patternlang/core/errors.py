"""
Error types for patternlang lexing, parsing, evaluation and configuration.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Optional


class ErrorKind(StrEnum):
    """Stable identifiers for every error the engine can surface."""

    LEX_ERROR = "lex_error"
    PARSE_ERROR = "parse_error"
    UNEXPECTED_TOKEN = "unexpected_token"
    UNCLOSED_PAREN = "unclosed_paren"
    EMPTY_EXPRESSION = "empty_expression"
    UNKNOWN_OPERATOR = "unknown_operator"
    EVAL_ERROR = "eval_error"
    UNKNOWN_COMMAND = "unknown_command"
    OPERATOR_NOT_IMPLEMENTED = "operator_not_implemented"
    MISSING_INPUT = "missing_input"
    BAD_ARGUMENT = "bad_argument"
    UNKNOWN_HANDLE = "unknown_handle"
    EMPTY_RESULT = "empty_result"
    COMMAND_FAILED = "command_failed"
    REGISTRY_ERROR = "registry_error"
    CONFIG_ERROR = "config_error"


class PatternError(Exception):
    """Base exception for all patternlang errors."""

    kind: ErrorKind = ErrorKind.EVAL_ERROR

    def __init__(self, message: str, context: Optional["ErrorContext"] = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}\n{self.message}"
        return self.message


# =============================================================================
# Lexing and parsing
# =============================================================================


class LexError(PatternError):
    """
    Reserved for malformed lexemes.

    The lexer is total (every input yields a token stream), so nothing in
    the engine raises this today.
    """

    kind = ErrorKind.LEX_ERROR


class ParseError(PatternError):
    """
    Raised when pipeline source text cannot be parsed.

    Examples:
    - A token with no prefix rule (``a | | b``)
    - An unmatched ``(``
    - Blank input
    """

    kind = ErrorKind.PARSE_ERROR

    def __init__(self, message: str, pos: int = 0, source: str | None = None):
        self.pos = pos
        context = ErrorContext(source=source, pos=pos) if source is not None else None
        super().__init__(message, context)


class UnexpectedTokenError(ParseError):
    kind = ErrorKind.UNEXPECTED_TOKEN


class UnclosedParenError(ParseError):
    kind = ErrorKind.UNCLOSED_PAREN


class EmptyExpressionError(ParseError):
    kind = ErrorKind.EMPTY_EXPRESSION


class UnknownOperatorError(ParseError):
    """A punctuation token (``=`` or ``,``) found where an infix operator belongs."""

    kind = ErrorKind.UNKNOWN_OPERATOR


# =============================================================================
# Evaluation
# =============================================================================


class EvalError(PatternError):
    """
    Raised when a parsed expression cannot be evaluated.

    ``command`` names the command that failed, when one is known. The
    evaluator fills it in for errors raised inside handlers.
    """

    kind = ErrorKind.EVAL_ERROR

    def __init__(self, message: str, command: str | None = None):
        self.command = command
        super().__init__(message)

    def _format_message(self) -> str:
        if self.command:
            return f"{self.command}: {self.message}"
        return self.message

    def with_command(self, command: str) -> "EvalError":
        """Attach a command name if the error does not carry one yet."""
        if self.command is None:
            self.command = command
            self.args = (self._format_message(),)
        return self


class UnknownCommandError(EvalError):
    kind = ErrorKind.UNKNOWN_COMMAND

    def __init__(self, name: str):
        super().__init__("unknown command", command=name)


class InvalidOperatorError(EvalError):
    kind = ErrorKind.UNKNOWN_OPERATOR

    def __init__(self, op: str):
        self.op = op
        super().__init__(f"unknown operator {op}")


class OperatorNotImplementedError(EvalError):
    kind = ErrorKind.OPERATOR_NOT_IMPLEMENTED

    def __init__(self, op: str, command: str):
        self.op = op
        super().__init__(f"operator {op} not implemented", command=command)


class MissingInputError(EvalError):
    """A handler needs an input image but was called without one."""

    kind = ErrorKind.MISSING_INPUT


class BadArgumentError(EvalError):
    """Argument count, shape or value is wrong for the handler."""

    kind = ErrorKind.BAD_ARGUMENT


class UnknownHandleError(EvalError):
    kind = ErrorKind.UNKNOWN_HANDLE

    def __init__(self, handle: str, command: str | None = None):
        self.handle = handle
        super().__init__(f"handle not found: {handle}", command=command)


class EmptyResultError(EvalError):
    kind = ErrorKind.EMPTY_RESULT


class CommandFailedError(EvalError):
    """Wraps a non-patternlang exception raised from inside a handler."""

    kind = ErrorKind.COMMAND_FAILED


# =============================================================================
# Registry and configuration
# =============================================================================


class RegistryError(PatternError):
    """
    Raised on invalid registry use.

    Examples:
    - Registering a name twice
    - Registering while an evaluation holds the registry
    - Registering something that is not callable
    """

    kind = ErrorKind.REGISTRY_ERROR


class ConfigError(PatternError):
    kind = ErrorKind.CONFIG_ERROR


@dataclass
class ErrorContext:
    """
    Source location for a parse error.

    Attributes:
        source: The full pipeline source text
        pos: 0-based character offset of the offending token
    """

    source: str
    pos: int

    @property
    def line(self) -> int:
        """1-indexed line of ``pos``."""
        return self.source.count("\n", 0, self.pos) + 1

    @property
    def column(self) -> int:
        """1-indexed column of ``pos``."""
        line_start = self.source.rfind("\n", 0, self.pos) + 1
        return self.pos - line_start + 1

    def format(self) -> str:
        """
        Format error context as a human-readable string.

        Returns:
            Formatted string like ``1:12`` followed by the source line and a
            caret under the offending column.
        """
        return f"{self.line}:{self.column}\n{self._format_snippet()}"

    def _format_snippet(self) -> str:
        lines = self.source.split("\n")
        text = lines[self.line - 1] if self.line - 1 < len(lines) else ""
        prefix = f"{self.line:4d} | "
        marker = " " * (len(prefix) + self.column - 1) + "^"
        return f"{prefix}{text}\n{marker}"
