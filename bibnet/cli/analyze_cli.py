# bibnet/cli/analyze_cli.py

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple

import typer
from rich.table import Table

from bibnet.analytics import (
    LouvainConfig,
    PageRankConfig,
    SimilarityConfig,
    louvain,
    node_similarity,
    pagerank,
)
from bibnet.api.query import community_members, ranked_entities, similar_pairs
from bibnet.cli.common import console, load_store_or_exit, report_errors
from bibnet.config.settings import settings
from bibnet.graph.projection import ProjectedGraph, project
from bibnet.graph.schema import EdgeType, NodeLabel, Orientation
from bibnet.graph.store import GraphStore

app = typer.Typer(help="Run graph analytics over a projection of a saved store.")


# ---------------------------------------------------------------------------
# Shared options
# ---------------------------------------------------------------------------

GRAPH_FILE = typer.Option(None, "--graph-file", "-g", help="Saved store to analyse.")
LABEL = typer.Option(NodeLabel.RESEARCHER, "--label", "-l", help="Node label to project.")
RELS = typer.Option(
    [EdgeType.COLLABORATED],
    "--rel",
    "-r",
    help="Relationship type(s) to fold into the projection (repeatable).",
)
ORIENTATION = typer.Option(Orientation.UNDIRECTED, "--orientation", "-o")
WEIGHT_KEY = typer.Option(
    "weight",
    "--weight-key",
    "-w",
    help="Edge property used as weight. Pass an empty string for unweighted.",
)


def _project(
    graph_file: Optional[Path],
    label: NodeLabel,
    rels: List[EdgeType],
    orientation: Orientation,
    weight_key: Optional[str],
) -> Tuple[GraphStore, ProjectedGraph]:
    store = load_store_or_exit(graph_file)
    graph = project(store, label, rels, orientation, weight_key or None)
    if graph.node_count == 0:
        console.print(
            f"[yellow]Empty projection:[/yellow] no {label.value} nodes joined by "
            f"{', '.join(r.value for r in rels)}."
        )
        raise typer.Exit(code=0)

    console.print(
        f"Projected [bold]{graph.node_count}[/bold] {label.value} nodes, "
        f"[bold]{graph.relationship_count}[/bold] relationships ({orientation.value})"
    )
    return store, graph


def _warn_approximate(converged: bool, name: str) -> None:
    if not converged:
        console.print(f"[yellow]{name} hit its iteration cap; results are approximate.[/yellow]")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command("pagerank")
@report_errors
def cmd_pagerank(
    graph_file: Optional[Path] = GRAPH_FILE,
    label: NodeLabel = LABEL,
    rels: List[EdgeType] = RELS,
    orientation: Orientation = ORIENTATION,
    weight_key: str = WEIGHT_KEY,
    damping: Optional[float] = typer.Option(None, "--damping", help="Damping factor."),
    max_iterations: Optional[int] = typer.Option(None, "--max-iterations", min=1),
    tolerance: Optional[float] = typer.Option(None, "--tolerance", min=0.0),
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Rows to display."),
):
    """
    Rank nodes by PageRank centrality.
    """
    store, graph = _project(graph_file, label, rels, orientation, weight_key)

    overrides = {
        k: v
        for k, v in dict(
            damping_factor=damping, max_iterations=max_iterations, tolerance=tolerance
        ).items()
        if v is not None
    }
    result = pagerank(graph, PageRankConfig.from_settings(settings, **overrides))

    table = Table(title=f"PageRank ({result.iterations} iterations)")
    table.add_column("#", justify="right")
    table.add_column(label.value, style="bold")
    table.add_column("Score", justify="right")
    for rank, entity in enumerate(ranked_entities(store, graph, result, limit), start=1):
        table.add_row(str(rank), entity.key, f"{entity.score:.4f}")
    console.print(table)
    _warn_approximate(result.converged, "PageRank")


@app.command("louvain")
@report_errors
def cmd_louvain(
    graph_file: Optional[Path] = GRAPH_FILE,
    label: NodeLabel = LABEL,
    rels: List[EdgeType] = RELS,
    orientation: Orientation = ORIENTATION,
    weight_key: str = WEIGHT_KEY,
    max_levels: Optional[int] = typer.Option(None, "--max-levels", min=1),
    max_iterations: Optional[int] = typer.Option(None, "--max-iterations", min=1),
    show_attribute: Optional[str] = typer.Option(
        None,
        "--show",
        help="Node attribute to print next to each member, e.g. 'speciality'.",
    ),
):
    """
    Detect communities with Louvain modularity optimisation.
    """
    store, graph = _project(graph_file, label, rels, orientation, weight_key)

    overrides = {
        k: v
        for k, v in dict(max_levels=max_levels, max_iterations=max_iterations).items()
        if v is not None
    }
    result = louvain(graph, LouvainConfig.from_settings(settings, **overrides))

    console.print(
        f"[bold]{result.community_count}[/bold] communities, "
        f"modularity {result.modularity:.4f}"
    )
    for view in community_members(store, graph, result):
        console.print(f"\n[bold]Community {view.community_id}[/bold]")
        for key, attrs in zip(view.members, view.attributes):
            extra = attrs.get(show_attribute) if show_attribute else None
            console.print(f"- {key}" + (f" ({extra})" if extra else ""))
    _warn_approximate(result.converged, "Louvain")


@app.command("similarity")
@report_errors
def cmd_similarity(
    graph_file: Optional[Path] = GRAPH_FILE,
    label: NodeLabel = LABEL,
    rels: List[EdgeType] = RELS,
    orientation: Orientation = ORIENTATION,
    weight_key: str = WEIGHT_KEY,
    top_k: Optional[int] = typer.Option(10, "--top-k", "-k", min=1),
    cutoff: Optional[float] = typer.Option(None, "--cutoff", min=0.0),
    weighted: bool = typer.Option(False, "--weighted", help="Use weighted Jaccard."),
):
    """
    List the most similar node pairs by neighbor overlap.
    """
    _, graph = _project(graph_file, label, rels, orientation, weight_key)

    overrides = {"top_k": top_k, "weighted": weighted}
    if cutoff is not None:
        overrides["similarity_cutoff"] = cutoff
    result = node_similarity(graph, SimilarityConfig.from_settings(settings, **overrides))

    table = Table(title="Node similarity (Jaccard)")
    table.add_column(f"{label.value} A", style="bold")
    table.add_column(f"{label.value} B", style="bold")
    table.add_column("Similarity", justify="right")
    for pair in similar_pairs(graph, result):
        table.add_row(pair.key_a, pair.key_b, f"{pair.similarity:.4f}")
    console.print(table)
