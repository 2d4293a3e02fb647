"""Main CLI entry point and application setup."""

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path

import click
from click.exceptions import Exit
from rich.console import Console
from rich.markup import escape

from notesearch import __version__
from notesearch.cli.commands import index, search
from notesearch.config import load_config
from notesearch.engine import SearchEngine, SearchEngineBuilder
from notesearch.errors import SearchError


@dataclass
class Context:
    """CLI context that holds shared resources."""

    engine: SearchEngine
    console: Console
    root: Path
    config: dict | None = None
    debug: bool = False


def setup_logging(
    verbose: bool = False, quiet: bool = False, debug: bool = False
) -> None:
    """Configure logging based on CLI flags."""
    if quiet:
        level = logging.WARNING
    elif verbose or debug:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s"
        if not debug
        else "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_console(no_color: bool = False, width: int | None = None) -> Console:
    """Create Rich console with appropriate settings."""
    return Console(
        no_color=no_color,
        width=width or 120,
        highlight=not no_color,
        color_system=None if no_color else "auto",
    )


def get_root(root: Path | None, config: dict) -> Path:
    """Resolve the knowledge base root directory."""
    if root:
        return root
    if configured := config.get("root"):
        return Path(configured).expanduser()
    return Path(os.getcwd())


class NoteSearchGroup(click.Group):
    """Custom group that reports errors without tracebacks."""

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except KeyboardInterrupt:
            console = getattr(ctx.obj, "console", None) if ctx.obj else None
            if console:
                console.print("[yellow]Interrupted[/yellow]")
            ctx.exit(130)
        except (click.ClickException, click.Abort, Exit, SystemExit):
            raise
        except Exception as e:
            debug = getattr(ctx.obj, "debug", False) if ctx.obj else False
            if debug:
                raise
            message = f"{e} ({e.kind})" if isinstance(e, SearchError) else str(e)
            console = getattr(ctx.obj, "console", None) if ctx.obj else None
            if console:
                console.print(f"[red]Error:[/red] {escape(message)}")
            else:
                click.echo(f"Error: {message}", err=True)
            ctx.exit(1)


@click.group(cls=NoteSearchGroup)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-error output")
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.option("--debug", is_flag=True, help="Enable debug mode with full tracebacks")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file",
)
@click.option(
    "--root",
    "-r",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Knowledge base root directory",
)
@click.version_option(
    version=__version__, prog_name="notesearch", message="notesearch version %(version)s"
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    no_color: bool,
    debug: bool,
    config: Path | None,
    root: Path | None,
) -> None:
    """Search a PARA-organized markdown knowledge base.

    Queries support boolean operators, phrases, field prefixes and
    wildcards.
    """
    setup_logging(verbose=verbose, quiet=quiet, debug=debug)
    console = create_console(no_color=no_color)

    try:
        config_data = load_config(config)
    except ValueError as e:
        if debug:
            raise
        click.echo(f"Error loading config file: {e}", err=True)
        ctx.exit(1)

    notes_root = get_root(root, config_data)

    try:
        engine = SearchEngineBuilder().with_config(config_data).with_root(notes_root).build()
        engine.initialize()
    except Exception as e:
        if debug:
            raise
        console.print(f"[red]Error initializing index:[/red] {escape(str(e))}")
        ctx.exit(1)

    ctx.obj = Context(
        engine=engine,
        console=console,
        root=notes_root,
        config=config_data,
        debug=debug,
    )


cli.add_command(search.search)
cli.add_command(search.suggest)
cli.add_command(search.similar)
cli.add_command(index.stats)


def main() -> None:
    """Main entry point for the CLI application."""
    try:
        cli()
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
