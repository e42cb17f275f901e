"""
Built-in commands.

    from patternlang.ops import build_default_registry

    registry = build_default_registry()
    image = run("checkers red blue | zoom 2", registry)
"""

from __future__ import annotations

from patternlang.core.expression_lang.registry import CommandRegistry
from patternlang.core.manifest import RenderConfig

from . import compose, filters, generators, sinks

_MODULES = (generators, filters, compose, sinks)


def register_builtin_commands(registry: CommandRegistry, config: RenderConfig | None = None) -> None:
    """Register every built-in command on ``registry``."""
    config = config or RenderConfig()
    for module in _MODULES:
        module.register(registry, config)


def build_default_registry(config: RenderConfig | None = None) -> CommandRegistry:
    """Create a registry holding the built-in commands."""
    registry = CommandRegistry()
    register_builtin_commands(registry, config)
    return registry


__all__ = [
    "build_default_registry",
    "register_builtin_commands",
]
