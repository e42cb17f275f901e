"""
patternlang CLI utilities.

Shared helpers used across CLI modules.
"""

from __future__ import annotations

import platform
from dataclasses import replace
from pathlib import Path

import typer
from rich.console import Console

from patternlang._version import get_version
from patternlang.core.expression_lang.registry import CommandRegistry
from patternlang.core.manifest import PatternManifest, RenderConfig
from patternlang.ops import build_default_registry

console = Console()


def version_callback(value: bool) -> None:
    """Display version and environment information."""
    if value:
        typer.echo(f"patternlang version {get_version()}")
        typer.echo("")
        typer.echo("Environment:")
        typer.echo(f"  Python:        {platform.python_implementation()} {platform.python_version()}")
        typer.echo(f"  Platform:      {platform.system()} {platform.release()}")
        typer.echo(f"  Location:      {Path(__file__).parent.parent}")
        raise typer.Exit()


def get_manifest(ctx: typer.Context) -> PatternManifest:
    """Manifest loaded by the main callback (defaults when run without one)."""
    if isinstance(ctx.obj, PatternManifest):
        return ctx.obj
    return PatternManifest()


def make_registry(render: RenderConfig, **overrides: object) -> CommandRegistry:
    """Build the default registry with render settings overridden for this run."""
    return build_default_registry(replace(render, **overrides) if overrides else render)


def print_error(prefix: str, error: Exception) -> None:
    typer.echo(f"{prefix}: {error}", err=True)
