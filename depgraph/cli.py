"""Typer-based CLI for depgraph static dependency analysis."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from . import __version__
from .errors import DepGraphError, IndexBuildCancelled
from .graph_export import export_dot
from .impact import parse_line_range
from .models import ImpactResult
from .orchestrator import IndexOrchestrator

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="depgraph: static dependency and impact analysis for Swift projects.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"depgraph v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Log indexing progress and warnings."),
):
    """depgraph: find what depends on a range of lines before you change it."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


def _fail(err: DepGraphError) -> typer.Exit:
    err_console.print(f"[bold red]Error:[/bold red] {escape(err.message)}", soft_wrap=True)
    return typer.Exit(code=err.exit_code)


def _build_with_progress(orchestrator: IndexOrchestrator):
    if not sys.stderr.isatty():
        return orchestrator.index()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=err_console,
        transient=True,
    ) as progress:
        task = progress.add_task("Indexing...", total=None)

        def _advance(rel_path: str, done: int, total: int) -> None:
            progress.update(task, completed=done, total=total, description=escape(rel_path))

        return orchestrator.index(progress=_advance)


@app.command("index")
def index_project(path: Path = typer.Option(Path("."), "--path", "-p", help="Project root directory.")):
    """Scan a project and write its index to [bold].depgraph/index.db[/bold]."""
    try:
        orchestrator = IndexOrchestrator(path)
        _, index_path = _build_with_progress(orchestrator)
    except KeyboardInterrupt:
        raise _fail(IndexBuildCancelled("Index build cancelled; nothing was saved."))
    except DepGraphError as err:
        raise _fail(err)

    stats = orchestrator.indexer.last_stats
    logger.info("%s", ", ".join(f"{k}={v}" for k, v in stats.summary().items()))
    typer.echo(str(index_path))


@app.command("impact")
def impact(
    file: str = typer.Argument(..., help="File to analyse, relative to the project root."),
    lines: str = typer.Option(..., "--lines", "-l", help="Inclusive line range, START:END."),
    path: Path = typer.Option(Path("."), "--path", "-p", help="Project root directory."),
    table: bool = typer.Option(False, "--table", help="Render tables instead of JSON."),
):
    """Show what the given lines define, use, and who depends on them."""
    try:
        line_start, line_end = parse_line_range(lines)
        result = IndexOrchestrator(path).impact(file, line_start, line_end)
    except DepGraphError as err:
        raise _fail(err)

    if table:
        _render_impact(result)
    else:
        typer.echo(json.dumps(result.to_dict(), indent=2))


def _render_impact(result: ImpactResult) -> None:
    console.print(f"[bold]{escape(result.file)}[/bold] lines {result.line_start}-{result.line_end}")

    defined = Table(title="Defined in range", show_header=True)
    defined.add_column("Symbol", style="cyan")
    defined.add_column("Kind")
    defined.add_column("Lines", justify="right")
    defined.add_column("Usages", justify="right")
    for decl in result.defined:
        defined.add_row(
            escape(decl.name),
            decl.kind.value,
            f"{decl.start_line}-{decl.end_line}",
            str(len(result.usages.get(decl.name, []))),
        )
    console.print(defined)

    referenced = Table(title="Referenced in range", show_header=True)
    referenced.add_column("Symbol", style="cyan")
    referenced.add_column("Line", justify="right")
    for ref in result.referenced:
        referenced.add_row(escape(ref.name), str(ref.line))
    console.print(referenced)

    files = Table(title="Files", show_header=True)
    files.add_column("Relation", style="magenta")
    files.add_column("File")
    for dep in result.dependencies:
        files.add_row("depends on", escape(dep))
    for impacted in result.impacted_files:
        files.add_row("impacted", escape(impacted))
    console.print(files)

    if result.conformers:
        conformers = Table(title="Conforming types", show_header=True)
        conformers.add_column("Type", style="cyan")
        conformers.add_column("Conformer")
        conformers.add_column("File")
        for name, edges in result.conformers.items():
            for edge in edges:
                conformers.add_row(escape(name), escape(edge.subtype), escape(edge.file_path))
        console.print(conformers)


@app.command("symbols")
def symbols(
    file: str = typer.Argument(..., help="File to list, relative to the project root."),
    path: Path = typer.Option(Path("."), "--path", "-p", help="Project root directory."),
    top_level_only: bool = typer.Option(False, "--top-level", help="Only declarations not nested in another."),
):
    """List the declarations of one file with their line spans."""
    try:
        declarations = IndexOrchestrator(path).symbols(file, top_level_only=top_level_only)
    except DepGraphError as err:
        raise _fail(err)

    if not declarations:
        typer.echo("No declarations found.")
        raise typer.Exit(code=0)

    for decl in declarations:
        indent = "  " * decl.depth
        typer.echo(f"{decl.start_line:>5}-{decl.end_line:<5} {indent}{decl.kind.value} {decl.name}")


@app.command("status")
def status(path: Path = typer.Option(Path("."), "--path", "-p", help="Project root directory.")):
    """Show where the index lives and whether it is stale."""
    try:
        info = IndexOrchestrator(path).status()
    except DepGraphError as err:
        raise _fail(err)

    typer.echo(f"Index: {info['path']}")
    if not info["exists"]:
        typer.echo("No index yet. Run 'depgraph index' to build one.")
        raise typer.Exit(code=0)

    typer.echo(f"Indexed at: {info['indexed_at']}")
    typer.echo(
        f"Files: {info['files']} | Symbols: {info['symbols']} | "
        f"References: {info['references']} | Conformances: {info['conformances']}"
    )
    typer.echo(f"Stale: {'yes' if info['stale'] else 'no'}")


@app.command("conformances")
def conformances(
    type_name: str = typer.Argument(..., help="Type or protocol name."),
    path: Path = typer.Option(Path("."), "--path", "-p", help="Project root directory."),
):
    """Show the supertypes of a type and the types conforming to it."""
    try:
        edges = IndexOrchestrator(path).conformances(type_name)
    except DepGraphError as err:
        raise _fail(err)

    typer.echo(f"{type_name} conforms to:")
    for edge in edges["supertypes"]:
        typer.echo(f"  {edge.subtype} -> {edge.supertype}  ({edge.file_path})")
    if not edges["supertypes"]:
        typer.echo("  (nothing)")

    typer.echo(f"Conforming to {type_name}:")
    for edge in edges["conformers"]:
        typer.echo(f"  {edge.subtype} -> {edge.supertype}  ({edge.file_path})")
    if not edges["conformers"]:
        typer.echo("  (nothing)")


@app.command("export-graph")
def export_graph(
    path: Path = typer.Option(Path("."), "--path", "-p", help="Project root directory."),
    output: Path = typer.Option(Path("depgraph.dot"), "--output", "-o", help="DOT file to write."),
    focus: str = typer.Option("", "--focus", help="Only files whose path contains this text, plus neighbours."),
):
    """Export the file dependency graph as Graphviz DOT."""
    try:
        index = IndexOrchestrator(path).load_index()
    except DepGraphError as err:
        raise _fail(err)

    try:
        export_dot(index, output, focus=focus)
    except OSError as exc:
        raise _fail(DepGraphError(f"Cannot write graph to '{output}': {exc.strerror or exc}", path=str(output)))
    typer.echo(f"Exported graph to {output}")


if __name__ == "__main__":
    app()
