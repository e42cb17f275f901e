"""
Tree-walking evaluator for patternlang pipelines.

Every node evaluates to an image. Commands dispatch to the registry;
operators dispatch to their ``op_*`` commands; sub-expression arguments are
evaluated eagerly, stored in the context's handle table and handed to the
command as ``@img:N`` strings.

Evaluation is synchronous and strictly ordered: pipeline stages left to
right, binary operands left before right, arguments in source order. The
first error aborts the whole evaluation.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from contextvars import ContextVar
from types import MappingProxyType

from PIL.Image import Image

from patternlang.core.errors import (
    CommandFailedError,
    EmptyExpressionError,
    EmptyResultError,
    EvalError,
    InvalidOperatorError,
    OperatorNotImplementedError,
    PatternError,
    UnknownCommandError,
    UnknownHandleError,
)
from patternlang.core.expression_lang.parser import parse
from patternlang.core.expression_lang.registry import CommandHandler, CommandRegistry
from patternlang.core.ir.expressions import (
    OPERATOR_COMMANDS,
    Arg,
    Binary,
    Command,
    Group,
    KeyValue,
    Literal,
    Node,
    Pipeline,
    SubExpression,
)

logger = logging.getLogger(__name__)

HANDLE_PREFIX = "@img:"

# Literal atoms in expression position (``x * 0.5``) evaluate through this command.
LITERAL_COMMAND = "const"


class EvalContext:
    """
    State for one top-level evaluation.

    Holds the registry and the handle table: a counter plus a mapping from
    ``@img:N`` to the image it names. Handles stay valid until the context
    is discarded or cleared.
    """

    def __init__(self, registry: CommandRegistry) -> None:
        self.registry = registry
        self.counter = 0
        self._images: dict[str, Image] = {}

    def register_image(self, image: Image) -> str:
        """Store ``image`` and return its new handle."""
        handle = f"{HANDLE_PREFIX}{self.counter}"
        self.counter += 1
        self._images[handle] = image
        logger.debug("Registered %s", handle)
        return handle

    def lookup_image(self, handle: str) -> Image | None:
        """Return the image for ``handle``, or None if it is not a known handle."""
        if not handle.startswith(HANDLE_PREFIX):
            return None
        return self._images.get(handle)

    register = register_image
    lookup = lookup_image

    def resolve_image(self, arg: str) -> Image:
        """
        Resolve a handle argument to its image.

        Accepts a bare handle (``@img:3``) or a keyword argument whose value
        is a handle (``mask=@img:3``).

        Raises:
            UnknownHandleError: If the argument does not name a stored image.
        """
        handle = arg
        if not arg.startswith(HANDLE_PREFIX) and "=" in arg:
            handle = arg.split("=", 1)[1]
        image = self.lookup_image(handle)
        if image is None:
            raise UnknownHandleError(handle)
        return image

    @property
    def handles(self) -> Mapping[str, Image]:
        """Read-only view of the handle table."""
        return MappingProxyType(self._images)

    def clear(self) -> None:
        """Drop every stored image. The counter keeps counting."""
        self._images.clear()


_current_context: ContextVar[EvalContext | None] = ContextVar("current_eval_context", default=None)


def current_context() -> EvalContext:
    """
    Return the context of the evaluation currently running.

    Command handlers use this to resolve handle arguments.

    Raises:
        EvalError: If called outside evaluate().
    """
    ctx = _current_context.get()
    if ctx is None:
        raise EvalError("no evaluation is running")
    return ctx


def evaluate(tree: Node, context: EvalContext, seed: Image | None = None) -> Image:
    """Evaluate an expression tree.

    Args:
        tree: Parsed expression tree.
        context: Evaluation context (registry and handle table).
        seed: Initial input image, e.g. a blank canvas; may be None.

    Returns:
        The final image.

    Raises:
        EvalError: If any command, operator or handle fails.
    """
    token = _current_context.set(context)
    try:
        with context.registry.locked():
            return _interpret(tree, context, seed)
    finally:
        _current_context.reset(token)


def run(source: str, registry: CommandRegistry, seed: Image | None = None) -> Image:
    """Parse ``source`` and evaluate it in a fresh context."""
    tree = parse(source)
    return evaluate(tree, EvalContext(registry), seed)


def execute_steps(
    steps: Iterable[tuple[str, Sequence[str]]],
    context: EvalContext,
    seed: Image | None = None,
) -> Image:
    """
    Run a flat list of ``(command, args)`` stages.

    Equivalent to evaluating a pipeline of commands whose arguments are
    all literals.
    """
    commands = [
        Command(name=name, args=tuple(Literal(value=a) for a in args)) for name, args in steps
    ]
    if not commands:
        raise EmptyExpressionError("empty pipeline")
    tree: Node = commands[0] if len(commands) == 1 else Pipeline(nodes=tuple(commands))
    return evaluate(tree, context, seed)


def _interpret(node: Node, ctx: EvalContext, image: Image | None) -> Image:
    """Dispatch evaluation to the appropriate handler."""
    if isinstance(node, Command):
        return _interpret_command(node, ctx, image)

    if isinstance(node, Pipeline):
        return _interpret_pipeline(node, ctx, image)

    if isinstance(node, Binary):
        return _interpret_binary(node, ctx, image)

    if isinstance(node, Group):
        return _interpret(node.inner, ctx, image)

    if isinstance(node, Literal):
        return _interpret_literal(node, ctx, image)

    raise EvalError(f"Unknown node type: {type(node).__name__}")


def _interpret_command(node: Command, ctx: EvalContext, image: Image | None) -> Image:
    handler = ctx.registry.get(node.name)
    if handler is None:
        raise UnknownCommandError(node.name)

    args = [_resolve_arg(arg, ctx, image) for arg in node.args]
    return _invoke(node.name, handler, args, image)


def _resolve_arg(arg: Arg, ctx: EvalContext, image: Image | None) -> str:
    """Turn an argument node into the string the handler receives."""
    if isinstance(arg, Literal):
        return arg.value

    if isinstance(arg, SubExpression):
        return ctx.register_image(_interpret(arg.node, ctx, image))

    if isinstance(arg, KeyValue):
        return f"{arg.key}={_resolve_arg(arg.value, ctx, image)}"

    raise EvalError(f"Unknown argument type: {type(arg).__name__}")


def _interpret_pipeline(node: Pipeline, ctx: EvalContext, image: Image | None) -> Image:
    current = image
    for stage in node.nodes:
        current = _interpret(stage, ctx, current)
    return current


def _interpret_binary(node: Binary, ctx: EvalContext, image: Image | None) -> Image:
    """Evaluate both operands on the incoming image, then run the operator command."""
    left = _interpret(node.left, ctx, image)
    right = _interpret(node.right, ctx, image)

    command = OPERATOR_COMMANDS.get(node.op)
    if command is None:
        raise InvalidOperatorError(str(node.op))

    handler = ctx.registry.get(command)
    if handler is None:
        raise OperatorNotImplementedError(node.op.value, command)

    handle = ctx.register_image(right)
    return _invoke(command, handler, [handle], left)


def _interpret_literal(node: Literal, ctx: EvalContext, image: Image | None) -> Image:
    handler = ctx.registry.get(LITERAL_COMMAND)
    if handler is None:
        raise UnknownCommandError(LITERAL_COMMAND)
    return _invoke(LITERAL_COMMAND, handler, [node.value], image)


def _invoke(name: str, handler: CommandHandler, args: list[str], image: Image | None) -> Image:
    logger.debug("Running %s %s", name, args)
    try:
        result = handler(args, image)
    except EvalError as e:
        e.with_command(name)
        raise
    except PatternError:
        raise
    except Exception as e:
        raise CommandFailedError(str(e) or type(e).__name__, command=name) from e

    if result is None:
        raise EmptyResultError("command returned no image", command=name)
    return result
