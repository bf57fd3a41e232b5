"""Main CLI entrypoint using Typer."""

from __future__ import annotations

import logging

import typer

from marginflow import __version__
from marginflow.cli.margins import margins_app
from marginflow.cli.vignettes import vignettes_app

app = typer.Typer(
    name="marginflow",
    help="Marginal predictions and pairwise comparisons for regression models.",
    add_completion=False,
)

# Add subcommands
app.add_typer(margins_app, name="margins")
app.add_typer(vignettes_app, name="vignettes")

# Logging setup
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"marginflow {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase log output (-v: info, -vv: debug).",
    ),
):
    """marginflow: marginal predictions and contrasts for regression models."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.getLogger("marginflow").setLevel(level)


if __name__ == "__main__":
    app()
