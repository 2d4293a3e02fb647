"""Search and suggestion CLI commands."""

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from notesearch.models import (
    Category,
    FacetType,
    Operator,
    SearchQuery,
    SearchResponse,
    SearchResult,
    SortField,
    SortOrder,
    to_json,
)


def get_engine(ctx):
    """Get the search engine from context."""
    return ctx.obj.engine


def _default_limit(ctx) -> int:
    config = ctx.obj.config or {}
    return (config.get("search") or {}).get("limit", 20)


@click.command()
@click.argument("query", required=False)
@click.option("--tag", "-t", "tags", multiple=True, help="Require or score a tag")
@click.option(
    "--category",
    type=click.Choice([category.value for category in Category]),
    help="Restrict to a PARA category",
)
@click.option("--title", help="Match against note titles")
@click.option("--content", help="Match against note content")
@click.option(
    "--operator",
    type=click.Choice([operator.value for operator in Operator], case_sensitive=False),
    default="AND",
    help="How criteria are combined",
)
@click.option("--limit", "-n", type=int, default=None, help="Maximum results to show")
@click.option("--offset", type=int, default=0, help="Skip first N results")
@click.option(
    "--sort",
    "-s",
    type=click.Choice([field.value for field in SortField]),
    default="relevance",
    help="Sort order",
)
@click.option("--ascending", is_flag=True, help="Sort ascending")
@click.option(
    "--facet",
    "facets",
    multiple=True,
    type=click.Choice([facet.value for facet in FacetType]),
    help="Show facet counts",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["table", "list", "json"]),
    default="table",
    help="Output format",
)
@click.option("--no-snippets", is_flag=True, help="Do not show content snippets")
@click.option("--suggest", "with_suggestions", is_flag=True, help="Show suggestions")
@click.pass_context
def search(ctx: click.Context, query: str | None, **kwargs) -> None:
    """Search notes.

    Supports query syntax:
    - Boolean: python AND testing, react OR vue, NOT draft, -draft
    - Phrases: "exact phrase"
    - Fields: title:roadmap, tag:work, content:"meeting notes"
    - Wildcards: test*, te?t
    - Grouping: (react OR vue) AND testing
    """
    console = ctx.obj.console
    engine = get_engine(ctx)

    search_query = SearchQuery(
        raw_query=query,
        tags=list(kwargs["tags"]) or None,
        title=kwargs["title"],
        content=kwargs["content"],
        category=Category(kwargs["category"]) if kwargs["category"] else None,
        operator=Operator(kwargs["operator"].upper()),
        limit=kwargs["limit"] if kwargs["limit"] is not None else _default_limit(ctx),
        offset=kwargs["offset"],
        sort_by=SortField(kwargs["sort"]),
        sort_order=SortOrder.ASC if kwargs["ascending"] else SortOrder.DESC,
        facets=[FacetType(facet) for facet in kwargs["facets"]] or None,
        include_snippets=not kwargs["no_snippets"],
        include_suggestions=kwargs["with_suggestions"],
    )

    response = engine.search(search_query)

    if kwargs["output_format"] == "json":
        click.echo(to_json(response).decode())
        return

    _display_results(console, response, query or "", kwargs["output_format"])
    if response.facets:
        _display_facets(console, response)
    if response.suggestions:
        _display_suggestions(console, response)


@click.command()
@click.argument("prefix")
@click.option("--limit", "-n", type=int, default=10, help="Maximum suggestions")
@click.pass_context
def suggest(ctx: click.Context, prefix: str, limit: int) -> None:
    """Suggest completions and corrections for PREFIX."""
    console = ctx.obj.console
    suggestions = get_engine(ctx).suggest(prefix, limit)

    if not suggestions:
        console.print(f"[yellow]No suggestions for '{escape(prefix)}'[/yellow]")
        return

    table = Table()
    table.add_column("Suggestion", style="cyan")
    table.add_column("Type")
    table.add_column("Score", justify="right")
    for suggestion in suggestions:
        table.add_row(escape(suggestion.text), suggestion.type.value, str(suggestion.score))
    console.print(table)


@click.command()
@click.argument("path")
@click.option("--limit", "-n", type=int, default=10, help="Maximum similar notes")
@click.pass_context
def similar(ctx: click.Context, path: str, limit: int) -> None:
    """Find notes similar to the note at PATH."""
    console = ctx.obj.console
    engine = get_engine(ctx)

    if engine.get_document(path) is None:
        console.print(f"[red]Note not found:[/red] {escape(path)}")
        ctx.exit(1)

    results = engine.find_similar(path, limit)
    if not results:
        console.print(f"[yellow]No notes similar to '{escape(path)}'[/yellow]")
        return

    console.print(f"\nNotes similar to [cyan]{escape(path)}[/cyan]:")
    _display_results_table(console, results)


def _display_results(
    console: Console, response: SearchResponse, query: str, output_format: str
) -> None:
    """Display search results in the specified format."""
    if response.total_count == 0:
        console.print(f"\n[yellow]No results found for '{escape(query)}'[/yellow]")
        return

    timing = f" ({response.execution_time:.0f}ms)"
    noun = "result" if response.total_count == 1 else "results"
    console.print(f"\nFound [green]{response.total_count}[/green] {noun}{timing}")

    if output_format == "table":
        _display_results_table(console, response.results)
    else:
        _display_results_list(console, response.results)


def _display_results_table(console: Console, results: list[SearchResult]) -> None:
    """Display results in table format."""
    table = Table()
    table.add_column("Path", style="cyan", overflow="fold")
    table.add_column("Title", overflow="ellipsis", max_width=40)
    table.add_column("Category")
    table.add_column("Tags", overflow="ellipsis", max_width=30)
    table.add_column("Score", justify="right")

    for result in results:
        table.add_row(
            escape(result.path),
            escape(result.title),
            result.category.label,
            escape(", ".join(result.tags)),
            f"{result.relevance_score:.0f}",
        )

    console.print(table)


def _display_results_list(console: Console, results: list[SearchResult]) -> None:
    """Display results in list format with snippets."""
    for i, result in enumerate(results, 1):
        console.print(
            f"\n[cyan]{i}.[/cyan] {escape(result.title)} "
            f"([green]{result.relevance_score:.0f}[/green])"
        )
        console.print(f"   [dim]{escape(result.path)}[/dim]")
        if result.snippet:
            snippet = escape(result.snippet)
            console.print(Panel(_highlight(snippet), border_style="blue"))


def _highlight(snippet: str) -> str:
    """Turn ``**match**`` markers into Rich markup."""
    parts = snippet.split("**")
    return "".join(
        f"[yellow]{part}[/yellow]" if i % 2 else part for i, part in enumerate(parts)
    )


def _display_facets(console: Console, response: SearchResponse) -> None:
    """Display search facets."""
    console.print("\n[bold]Refine by:[/bold]")

    for facet in response.facets or []:
        console.print(f"\n  [cyan]{facet.field.value}:[/cyan]")
        for value in facet.values[:5]:
            console.print(f"    {escape(value.label)} ({value.count})")


def _display_suggestions(console: Console, response: SearchResponse) -> None:
    """Display search suggestions."""
    console.print("\n[bold]Suggestions:[/bold]")
    for suggestion in response.suggestions or []:
        console.print(f"  • [cyan]{escape(suggestion.text)}[/cyan] ({suggestion.type.value})")
