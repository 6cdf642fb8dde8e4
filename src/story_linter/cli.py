"""Command-line interface for Story Linter."""

import logging
import signal
import sys
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from story_linter import __version__

console = Console()
err_console = Console(stderr=True)


def setup_logging(verbose: bool) -> None:
    """Route library logging to stderr through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False, rich_tracebacks=True)],
        force=True,
    )


def load_settings():
    from story_linter.config import get_settings

    try:
        return get_settings()
    except ValidationError as e:
        raise click.UsageError(f"Invalid STORY_LINTER_* environment setting: {e.errors()[0]['msg']}")


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """Story Linter - Consistency checks for interlinked story documents."""
    pass


@main.command()
@click.argument("root", type=click.Path(file_okay=False, path_type=Path))
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Configuration file (default: .story-linter.yml at the root)")
@click.option("--format", "-f", "output_format", type=click.Choice(["human", "json"]),
              help="Output format")
@click.option("--fail-on", type=click.Choice(["error", "warning", "never"]),
              help="Lowest severity that makes the exit code non-zero")
@click.option("--jobs", "-j", type=click.IntRange(min=1), help="Worker threads")
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.option("--verbose", "-v", is_flag=True, help="Log progress to stderr")
@click.pass_context
def check(
    ctx: click.Context,
    root: Path,
    config_path: Optional[Path],
    output_format: Optional[str],
    fail_on: Optional[str],
    jobs: Optional[int],
    no_color: bool,
    verbose: bool,
) -> None:
    """Check a story directory and report diagnostics.

    Exit codes: 0 clean, 1 findings at or above --fail-on, 2 usage or
    fatal error, 3 cancelled.
    """
    from story_linter.cancel import CancelToken
    from story_linter.engine import Engine
    from story_linter.report import HumanReporter, JsonReporter

    settings = load_settings()
    output_format = output_format or settings.format
    fail_on = fail_on or settings.fail_on
    jobs = jobs or settings.jobs
    no_color = no_color or settings.no_color

    setup_logging(verbose)

    if output_format == "json":
        reporter = JsonReporter(sys.stdout)
    else:
        reporter = HumanReporter(Console(no_color=no_color, highlight=False))

    token = CancelToken()
    previous = signal.getsignal(signal.SIGINT)
    signal.signal(signal.SIGINT, lambda signum, frame: token.cancel())
    try:
        outcome = Engine(root, config_path=config_path, jobs=jobs, cancel=token).run(reporter)
    finally:
        signal.signal(signal.SIGINT, previous)

    code = outcome.exit_code(fail_on)
    if code == 3:
        err_console.print("[yellow]Cancelled[/yellow]")
    ctx.exit(code)


def _prepare(root: Path, config_path: Optional[Path]):
    from story_linter.engine import Engine
    from story_linter.errors import FatalError

    try:
        with console.status("Loading story..."):
            return Engine(root, config_path=config_path).prepare()
    except FatalError as e:
        err_console.print(f"[red]✗[/red] {e.diagnostic.summary()}")
        sys.exit(2)


@main.command()
@click.argument("root", type=click.Path(file_okay=False, path_type=Path))
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Configuration file")
def entities(root: Path, config_path: Optional[Path]) -> None:
    """Show every named entity and where it is introduced."""
    prepared = _prepare(root, config_path)
    store = prepared.store

    table = Table(title="Entities")
    table.add_column("Entity", style="cyan")
    table.add_column("Mentions", style="green", justify="right")
    table.add_column("Documents", justify="right")
    table.add_column("Introduced", style="dim")

    for entry in sorted(store.entities, key=lambda e: e.canonical):
        docs = {m.document for m in entry.mentions}
        if entry.introduction:
            intro = entry.introduction
            where = f"{store.location(intro.document, intro.position)} ({intro.cue})"
        else:
            where = "[red]never[/red]"
        table.add_row(entry.display_name, str(len(entry.mentions)), str(len(docs)), where)

    console.print(table)
    console.print(f"\n[bold]Total entities:[/bold] {len(store.entities):,}")

    if store.typo_suspects:
        console.print("\n[bold]Suspected typos:[/bold]")
        for suspect in store.typo_suspects:
            console.print(f"  {suspect.suspect} → {suspect.intended} [dim](distance {suspect.distance})[/dim]")


@main.command()
@click.argument("root", type=click.Path(file_okay=False, path_type=Path))
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Configuration file")
def graph(root: Path, config_path: Optional[Path]) -> None:
    """Show the document link graph."""
    from story_linter.validators import entry_ids

    prepared = _prepare(root, config_path)
    store = prepared.store
    reachable = store.links.reachable_from(entry_ids(prepared.config))

    table = Table(title="Link Graph")
    table.add_column("Document", style="cyan")
    table.add_column("Out", style="green", justify="right")
    table.add_column("In", style="green", justify="right")
    table.add_column("Broken", justify="right")
    table.add_column("Reachable")

    for doc in store.documents:
        outbound = store.links.outbound(doc.id)
        broken = sum(1 for l in outbound if not l.external and not l.is_resolvable)
        table.add_row(
            doc.path,
            str(len(outbound)),
            str(len(store.links.inbound(doc.id))),
            f"[red]{broken}[/red]" if broken else "0",
            "[green]yes[/green]" if doc.id in reachable else "[yellow]orphan[/yellow]",
        )

    console.print(table)
    console.print(f"\n[bold]Documents:[/bold] {len(store):,}")
    console.print(f"[bold]Links:[/bold] {store.links.graph.number_of_edges():,}")


if __name__ == "__main__":
    main()
