# bibnet/cli/common.py

from __future__ import annotations

import logging
from functools import wraps
from pathlib import Path
from typing import Callable, Optional, TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from bibnet.config.settings import settings
from bibnet.errors import BibnetError
from bibnet.graph.io import load_latest_store, load_store
from bibnet.graph.store import GraphStore

console = Console()

_F = TypeVar("_F", bound=Callable)


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def load_store_or_exit(graph_file: Optional[Path]) -> GraphStore:
    """
    Load a saved store.

    If --graph-file is provided, that exact file is loaded.
    Otherwise, we try to load the latest snapshot from settings.graph_dir.
    """
    if graph_file is not None:
        path = Path(graph_file)
        if not path.exists():
            console.print(f"[red]Graph file not found:[/red] {path}")
            raise typer.Exit(code=1)
        return load_store(path)

    store = load_latest_store(settings.graph_dir)
    if store is None:
        console.print(
            f"[red]No graph found in {settings.graph_dir}.[/red]\n"
            "Run `bibnet build run` first, or pass --graph-file."
        )
        raise typer.Exit(code=1)
    return store


def report_errors(func: _F) -> _F:
    """Turn bibnet errors into a red message and exit code 1."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except BibnetError as exc:
            logging.getLogger("bibnet.cli").debug("Command failed", exc_info=exc)
            console.print(f"[red]Error:[/red] {escape(exc.log_message())}")
            raise typer.Exit(code=1)

    return wrapper  # type: ignore[return-value]
