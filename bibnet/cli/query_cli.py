# bibnet/cli/query_cli.py

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from bibnet.api.query import knowledge_paths, paper_views, top_authors, top_keywords
from bibnet.cli.common import console, load_store_or_exit, report_errors
from bibnet.graph.schema import NodeLabel

app = typer.Typer(help="Read/query utilities over a saved bibnet store.")

GRAPH_FILE = typer.Option(None, "--graph-file", "-g", help="Saved store to read.")


@app.command("papers")
@report_errors
def cmd_papers(
    graph_file: Optional[Path] = GRAPH_FILE,
    limit: int = typer.Option(50, "--limit", "-n", min=1),
):
    """
    List papers with authors, journal and year, most recent first.
    """
    store = load_store_or_exit(graph_file)

    table = Table(title="Papers")
    table.add_column("Year", justify="right")
    table.add_column("Title", style="bold")
    table.add_column("Authors")
    table.add_column("Journal")
    table.add_column("DOI")
    for view in paper_views(store)[:limit]:
        table.add_row(
            str(view.year) if view.year is not None else "n.d.",
            view.title or "",
            ", ".join(view.authors),
            view.journal or "",
            view.doi,
        )
    console.print(table)


@app.command("authors")
@report_errors
def cmd_authors(
    graph_file: Optional[Path] = GRAPH_FILE,
    limit: int = typer.Option(5, "--limit", "-n", min=1),
):
    """
    Most prolific authors.
    """
    store = load_store_or_exit(graph_file)
    table = Table(title="Top authors")
    table.add_column("Author", style="bold")
    table.add_column("Papers", justify="right")
    for row in top_authors(store, limit):
        table.add_row(row.key, str(row.papers))
    console.print(table)


@app.command("keywords")
@report_errors
def cmd_keywords(
    graph_file: Optional[Path] = GRAPH_FILE,
    limit: int = typer.Option(10, "--limit", "-n", min=1),
):
    """
    Most common keywords.
    """
    store = load_store_or_exit(graph_file)
    table = Table(title="Top keywords")
    table.add_column("Keyword", style="bold")
    table.add_column("Papers", justify="right")
    for row in top_keywords(store, limit):
        table.add_row(row.key, str(row.papers))
    console.print(table)


@app.command("paths")
@report_errors
def cmd_paths(
    graph_file: Optional[Path] = GRAPH_FILE,
    start: Optional[str] = typer.Option(
        None, "--from", help="DOI of the starting paper. Defaults to the most recent one."
    ),
    max_depth: int = typer.Option(3, "--max-depth", min=1),
    limit: int = typer.Option(3, "--limit", "-n", min=1),
):
    """
    Chains of potential citations starting from one paper.
    """
    store = load_store_or_exit(graph_file)
    handle = store.get(NodeLabel.PAPER, start) if start else None

    paths = knowledge_paths(store, start=handle, max_depth=max_depth, limit=limit)
    if not paths:
        console.print("[yellow]No potential citation chains found.[/yellow]")
        return

    for path in paths:
        console.print(" -> ".join(path.titles))
