"""
Inspection commands: parse, commands.
"""

from __future__ import annotations

import typer
from rich.table import Table

from patternlang.cli.utils import console, get_manifest, make_registry, print_error
from patternlang.core.errors import ParseError
from patternlang.core.expression_lang import parse, tokenize
from patternlang.core.ir.expressions import OPERATOR_COMMANDS


def parse_command(
    expression: str = typer.Argument(..., help="Pipeline expression to parse"),
    tokens: bool = typer.Option(False, "--tokens", "-t", help="Also print the token stream"),
) -> None:
    """
    Parse an expression and print its canonical form.
    """
    if tokens:
        table = Table(title="Tokens")
        table.add_column("Pos", justify="right", style="dim")
        table.add_column("Kind")
        table.add_column("Literal")
        for token in tokenize(expression):
            table.add_row(str(token.pos), token.kind.name, repr(token.literal))
        console.print(table)

    try:
        tree = parse(expression)
    except ParseError as e:
        print_error("Parse error", e)
        raise typer.Exit(code=1)

    typer.echo(tree.render())


def commands_command(ctx: typer.Context) -> None:
    """
    List the registered commands.
    """
    registry = make_registry(get_manifest(ctx).render)
    names = registry.list_commands()

    table = Table(title="Commands")
    table.add_column("Name")
    table.add_column("Operator", style="dim")
    operators = {command: op.value for op, command in OPERATOR_COMMANDS.items()}
    for name in names:
        table.add_row(name, operators.get(name, ""))

    console.print(table)
    console.print(f"\n[dim]{len(names)} command(s)[/dim]")
