"""
patternlang - a small pipeline language for composing image patterns.

    from patternlang import build_default_registry, run

    image = run("checkers black white size=8 | zoom 2 ^ circle red blue", build_default_registry())
"""

from __future__ import annotations

from ._version import get_version
from .core import ir
from .core.errors import (
    CommandFailedError,
    ConfigError,
    EvalError,
    LexError,
    ParseError,
    PatternError,
    RegistryError,
)
from .core.expression_lang import (
    HANDLE_PREFIX,
    CommandRegistry,
    EvalContext,
    current_context,
    evaluate,
    execute_steps,
    parse,
    run,
    tokenize,
)
from .ops import build_default_registry, register_builtin_commands

__version__ = get_version()

__all__ = [
    "__version__",
    "ir",
    "HANDLE_PREFIX",
    "CommandRegistry",
    "EvalContext",
    "build_default_registry",
    "current_context",
    "evaluate",
    "execute_steps",
    "parse",
    "register_builtin_commands",
    "run",
    "tokenize",
    "PatternError",
    "LexError",
    "ParseError",
    "EvalError",
    "CommandFailedError",
    "RegistryError",
    "ConfigError",
]
