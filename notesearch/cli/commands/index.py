"""Index inspection CLI commands."""

import json

import click
from rich.markup import escape
from rich.table import Table

from notesearch.models import Category


@click.command()
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)
@click.pass_context
def stats(ctx: click.Context, output_format: str) -> None:
    """Show index statistics."""
    console = ctx.obj.console
    statistics = ctx.obj.engine.get_statistics()

    if output_format == "json":
        click.echo(json.dumps({**statistics, "root": str(ctx.obj.root)}, indent=2))
        return

    if not statistics["document_count"]:
        console.print(f"[yellow]No notes found under {escape(str(ctx.obj.root))}[/yellow]")
        return

    console.print("\n[bold]Index Statistics[/bold]\n")

    table = Table()
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Root", escape(str(ctx.obj.root)))
    table.add_row("Indexed notes", str(statistics["document_count"]))
    for category in Category:
        table.add_row(category.label, str(statistics["categories"][category.value]))

    console.print(table)
