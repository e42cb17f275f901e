"""Core patternlang functionality: IR, lexer, parser, registry, evaluator, configuration."""

from . import ir
from .errors import (
    ErrorContext,
    ErrorKind,
    EvalError,
    ParseError,
    PatternError,
)
from .expression_lang import CommandRegistry, EvalContext, evaluate, parse, run
from .manifest import PatternManifest, load_manifest

__all__ = [
    "ir",
    "PatternError",
    "ParseError",
    "EvalError",
    "ErrorContext",
    "ErrorKind",
    "CommandRegistry",
    "EvalContext",
    "evaluate",
    "parse",
    "run",
    "PatternManifest",
    "load_manifest",
]
