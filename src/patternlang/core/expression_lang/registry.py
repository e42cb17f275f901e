"""
Command registry for patternlang.

Commands are plain callables keyed by name. Every handler receives the
resolved argument strings and the current input image and returns a new
image:

    def zoom(args: Sequence[str], image: Image | None) -> Image: ...

Infix operators are ordinary commands too: ``a ^ b`` runs the command
registered as ``op_xor`` (see ``BinaryOp.command_name``).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from typing import TypeAlias

from PIL.Image import Image

from patternlang.core.errors import RegistryError

logger = logging.getLogger(__name__)

CommandHandler: TypeAlias = Callable[[Sequence[str], Image | None], Image]


class CommandRegistry:
    """
    Registry of named command handlers.

    Supports:
    - Manual registration via insert() / register()
    - Decorator registration via command()
    - Lookup by name

    The registry is mutable while commands are being registered. An
    evaluation holds it via locked(); registering during that window is an
    error.
    """

    def __init__(self) -> None:
        self._commands: dict[str, CommandHandler] = {}
        self._lock_depth = 0

    def register(self, name: str, handler: CommandHandler, *, replace: bool = False) -> None:
        """
        Register a command handler.

        Args:
            name: Command name as written in pipelines
            handler: Callable taking (args, image) and returning an image
            replace: Overwrite an existing registration instead of failing

        Raises:
            RegistryError: If the name is taken, the handler is not callable,
                or an evaluation currently holds the registry
        """
        if self._lock_depth:
            raise RegistryError(f"Cannot register '{name}' while an evaluation is running")

        if not callable(handler):
            raise RegistryError(f"Handler for '{name}' must be callable")

        if name in self._commands and not replace:
            raise RegistryError(f"Command '{name}' is already registered")

        self._commands[name] = handler
        logger.debug("Registered command %s", name)

    def insert(self, name: str, handler: CommandHandler) -> None:
        """Insert or overwrite a handler."""
        self.register(name, handler, replace=True)

    def command(self, name: str | None = None) -> Callable[[CommandHandler], CommandHandler]:
        """
        Decorator form of register().

            @registry.command("checkers")
            def checkers(args, image): ...

        Without a name the function's own name is used.
        """

        def decorator(fn: CommandHandler) -> CommandHandler:
            self.register(name or fn.__name__, fn)
            return fn

        return decorator

    def get(self, name: str) -> CommandHandler | None:
        """Return the handler registered under ``name``, or None."""
        return self._commands.get(name)

    def list_commands(self) -> list[str]:
        """Registered command names, sorted."""
        return sorted(self._commands)

    @property
    def is_locked(self) -> bool:
        return self._lock_depth > 0

    @contextmanager
    def locked(self) -> Iterator[CommandRegistry]:
        """Hold the registry read-only for the duration of the block."""
        self._lock_depth += 1
        try:
            yield self
        finally:
            self._lock_depth -= 1

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def __len__(self) -> int:
        return len(self._commands)

    def __iter__(self) -> Iterator[str]:
        return iter(self.list_commands())
