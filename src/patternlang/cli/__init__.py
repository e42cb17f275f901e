"""
patternlang CLI Package.

- render.py: run, render, repl
- inspect.py: parse, commands
- utils.py: Shared utilities
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer

from patternlang.cli.inspect import commands_command, parse_command
from patternlang.cli.render import render_command, repl_command, run_command
from patternlang.cli.utils import print_error, version_callback
from patternlang.core.errors import ConfigError
from patternlang.core.manifest import LOG_LEVELS, resolve_manifest

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

app = typer.Typer(
    help="""patternlang - compose image patterns from pipelines

Example:
  patternlang render -e "checkers black white | zoom 4 ^ circle red blue" -o out.png
""",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and environment information",
    ),
    config: Path | None = typer.Option(  # noqa: B008
        None,
        "--config",
        "-c",
        help="Path to pattern.toml (default: ./pattern.toml if present)",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help=f"Logging level: {', '.join(LOG_LEVELS)}",
    ),
) -> None:
    """patternlang CLI main callback for global options."""
    try:
        manifest = resolve_manifest(config)
    except ConfigError as e:
        print_error("Config error", e)
        raise typer.Exit(code=1)

    level = (log_level or manifest.logging.level).upper()
    if level not in LOG_LEVELS:
        print_error("Error", ValueError(f"invalid log level {log_level!r}"))
        raise typer.Exit(code=2)

    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger("patternlang").setLevel(level)
    ctx.obj = manifest


app.command(name="run")(run_command)
app.command(name="render")(render_command)
app.command(name="repl")(repl_command)
app.command(name="parse")(parse_command)
app.command(name="commands")(commands_command)


def main() -> None:
    """Entry point for the ``patternlang`` console script."""
    app()


__all__ = ["app", "main"]
