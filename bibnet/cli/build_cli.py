# bibnet/cli/build_cli.py

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer
from rich.table import Table

from bibnet.cli.common import console, load_store_or_exit, report_errors
from bibnet.config.settings import settings
from bibnet.graph.inference import DEFAULT_RULE_ORDER, INFERENCE_RULES, run_inference
from bibnet.graph.io import load_store, save_store
from bibnet.graph.store import GraphStore
from bibnet.ingest.pipeline import ingest_bundle, load_bundle

app = typer.Typer(help="Build a store from record bundles: ingest -> infer -> save.")


def _print_inference(results) -> None:
    table = Table(title="Inference")
    table.add_column("Rule", style="bold")
    table.add_column("Created", justify="right")
    table.add_column("Strengthened", justify="right")
    table.add_column("Skipped", justify="right")
    for name, stats in results.items():
        table.add_row(name, str(stats.created), str(stats.strengthened), str(stats.skipped))
    console.print(table)


def _check_rules(rules: List[str]) -> List[str]:
    unknown = [r for r in rules if r not in INFERENCE_RULES]
    if unknown:
        console.print(
            f"[red]Unknown rule(s):[/red] {', '.join(unknown)}. "
            f"Available: {', '.join(INFERENCE_RULES)}"
        )
        raise typer.Exit(code=1)
    return rules


@app.command("run")
@report_errors
def run_build(
    records: Path = typer.Argument(..., help="JSON record bundle (papers, researchers, collaborations)."),
    graph_file: Optional[Path] = typer.Option(
        None,
        "--graph-file",
        "-g",
        help="Where to save the store. Defaults to settings.default_graph_file.",
    ),
    rules: Optional[List[str]] = typer.Option(
        None,
        "--rule",
        help="Inference rule to run (repeatable). Defaults to all rules.",
    ),
    append: bool = typer.Option(
        False,
        "--append",
        help="Add to the existing store at --graph-file instead of starting fresh.",
    ),
    skip_inference: bool = typer.Option(
        False,
        "--skip-inference",
        help="Only ingest; derive relationships later with `bibnet build infer`.",
    ),
):
    """
    Ingest a record bundle, derive relationships and save the store.
    """
    target = graph_file or settings.default_graph_file
    rule_names = _check_rules(list(rules) if rules else list(DEFAULT_RULE_ORDER))

    console.rule("[bold cyan]bibnet build[/bold cyan]")

    if append and Path(target).exists():
        store = load_store(target)
        console.print(f"Appending to existing store [bold]{target}[/bold]")
    else:
        store = GraphStore()

    bundle = load_bundle(records)
    stats = ingest_bundle(store, bundle)
    console.print(
        f"Ingested [bold]{stats.papers}[/bold] papers "
        f"({stats.skipped} skipped), [bold]{stats.researchers}[/bold] researchers, "
        f"[bold]{stats.collaborations}[/bold] collaborations"
    )

    if not skip_inference:
        _print_inference(run_inference(store, rule_names))

    path = save_store(store, target)
    console.print(
        f"[green]Store saved to [bold]{path}[/bold] "
        f"({store.node_count()} nodes, {store.edge_count()} relationships)[/green]"
    )


@app.command("infer")
@report_errors
def run_infer(
    rules: List[str] = typer.Option(
        ...,
        "--rule",
        help="Inference rule to run (repeatable). Each rule should run once per build.",
    ),
    graph_file: Optional[Path] = typer.Option(
        None, "--graph-file", "-g", help="Store to update in place."
    ),
):
    """
    Run specific inference rules against a saved store, e.g. to retry a rule
    that failed during `build run`.
    """
    target = graph_file or settings.default_graph_file
    rule_names = _check_rules(list(rules))
    store = load_store_or_exit(target)
    _print_inference(run_inference(store, rule_names))

    path = save_store(store, target)
    console.print(f"[green]Store saved to [bold]{path}[/bold][/green]")
