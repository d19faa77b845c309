# bibnet/cli/main.py

from __future__ import annotations

from typing import Optional

import typer

from bibnet.cli import analyze_cli, build_cli, query_cli
from bibnet.cli.common import configure_logging

app = typer.Typer(help="CLI tools for the bibliographic property graph.")

app.add_typer(build_cli.app, name="build")
app.add_typer(analyze_cli.app, name="analyze")
app.add_typer(query_cli.app, name="query")


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Override settings.LOG_LEVEL (e.g. DEBUG)."
    ),
):
    configure_logging(log_level)


if __name__ == "__main__":
    app()
