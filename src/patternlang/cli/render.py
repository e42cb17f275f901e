"""
Evaluation commands: run, render, repl.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import typer
from PIL import Image

from patternlang.cli.utils import console, get_manifest, make_registry, print_error
from patternlang.core.errors import ConfigError, ParseError, PatternError
from patternlang.core.expression_lang import CommandRegistry, EvalContext, evaluate, parse
from patternlang.core.manifest import parse_size
from patternlang.ops.sinks import save_image

logger = logging.getLogger(__name__)

EXIT_WORDS = ("exit", "quit")
PROMPT = "> "


def _evaluate_source(source: str, registry: CommandRegistry, seed: Image.Image | None) -> Image.Image:
    """Parse and evaluate ``source`` in a fresh context."""
    tree = parse(source)
    logger.debug("Parsed %s", tree.render())
    return evaluate(tree, EvalContext(registry), seed)


def run_command(
    ctx: typer.Context,
    pipeline: str = typer.Argument(..., help="Pipeline expression to evaluate"),
) -> None:
    """
    Evaluate a pipeline once with no seed image.

    Use the ``save`` command inside the pipeline to write output, e.g.
    ``patternlang run "checkers red blue | save out.png"``.
    """
    manifest = get_manifest(ctx)
    registry = make_registry(manifest.render)

    try:
        image = _evaluate_source(pipeline, registry, None)
    except ParseError as e:
        print_error("Parse error", e)
        raise typer.Exit(code=1)
    except PatternError as e:
        print_error("Error", e)
        raise typer.Exit(code=1)

    width, height = image.size
    console.print(f"[green]OK[/green] {width}x{height}", highlight=False)


def render_command(
    ctx: typer.Context,
    expression: str = typer.Option(..., "--expression", "-e", help="Pipeline expression"),
    output: Path | None = typer.Option(  # noqa: B008
        None, "--output", "-o", help="Output file (default: render.output from pattern.toml)"
    ),
    size: str | None = typer.Option(None, "--size", "-s", help="Canvas size as WIDTHxHEIGHT"),
    seed: int | None = typer.Option(None, "--seed", help="Default seed for noise generators"),
) -> None:
    """
    Render an expression onto a blank canvas and write the result.
    """
    render = get_manifest(ctx).render

    overrides: dict[str, object] = {}
    try:
        if size is not None:
            overrides["width"], overrides["height"] = parse_size(size)
    except ConfigError as e:
        print_error("Error", e)
        raise typer.Exit(code=1)
    if seed is not None:
        overrides["seed"] = seed

    registry = make_registry(render, **overrides)
    width = overrides.get("width", render.width)
    height = overrides.get("height", render.height)
    canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))  # type: ignore[arg-type]
    target = output or Path(render.output)

    try:
        image = _evaluate_source(expression, registry, canvas)
        save_image(image, target)
    except ParseError as e:
        print_error("Parse error", e)
        raise typer.Exit(code=1)
    except PatternError as e:
        print_error("Error", e)
        raise typer.Exit(code=1)
    except OSError as e:
        print_error("Error writing output", e)
        raise typer.Exit(code=1)

    console.print(f"[green]Saved[/green] {target} ({image.width}x{image.height})", highlight=False)


def repl_command(ctx: typer.Context) -> None:
    """
    Interactive prompt: evaluate one pipeline per line.

    Each line runs in a fresh context, so handles never leak between lines.
    Errors are reported and the prompt continues. ``exit`` or ``quit`` leaves.
    """
    registry = make_registry(get_manifest(ctx).render)

    while True:
        typer.echo(PROMPT, nl=False)
        line = sys.stdin.readline()
        if not line:
            typer.echo("")
            break

        source = line.strip()
        if source in EXIT_WORDS:
            break
        if not source:
            continue

        try:
            image = _evaluate_source(source, registry, None)
        except PatternError as e:
            print_error("Error", e)
            continue

        typer.echo(f"{image.width}x{image.height}")
