"""
patternlang pipeline expression language.

Lexer, Pratt parser, command registry and evaluator.

Usage:
    from patternlang.core.expression_lang import EvalContext, evaluate, parse

    tree = parse("checkers black white | zoom 10")
    image = evaluate(tree, EvalContext(registry), seed)
"""

from patternlang.core.expression_lang.evaluator import (
    HANDLE_PREFIX,
    EvalContext,
    current_context,
    evaluate,
    execute_steps,
    run,
)
from patternlang.core.expression_lang.parser import parse
from patternlang.core.expression_lang.registry import CommandHandler, CommandRegistry
from patternlang.core.expression_lang.tokenizer import Lexer, Token, TokenKind, tokenize

__all__ = [
    "HANDLE_PREFIX",
    "CommandHandler",
    "CommandRegistry",
    "EvalContext",
    "Lexer",
    "Token",
    "TokenKind",
    "current_context",
    "evaluate",
    "execute_steps",
    "parse",
    "run",
    "tokenize",
]
