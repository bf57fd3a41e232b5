"""CLI commands for building the tutorial vignettes."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional
import typer

logger = logging.getLogger(__name__)

vignettes_app = typer.Typer(
    name="vignettes",
    help="Build the tutorial documents.",
    add_completion=False,
)


@vignettes_app.command("list")
def list_cmd():
    """List available vignettes."""
    from marginflow.vignettes import list_vignettes

    for info in list_vignettes():
        typer.echo(f"{info['name']:<28} {info['title']}")
        typer.echo(f"{'':<28} {info['summary']}")


@vignettes_app.command("build")
def build_cmd(
    name: Optional[str] = typer.Argument(None, help="Vignette to build (default: all)."),
    outdir: Path = typer.Option(Path("docs/vignettes"), "--outdir", help="Output directory."),
    fig_format: str = typer.Option("png", "--fig-format", help="Figure format: png, svg, or pdf."),
    fig_width: float = typer.Option(7.0, "--fig-width", help="Figure width in inches."),
    fig_height: float = typer.Option(4.5, "--fig-height", help="Figure height in inches."),
    dpi: int = typer.Option(160, "--dpi", help="Figure DPI."),
):
    """
    Execute vignettes and render them to Markdown with figures.

    Examples:
        marginflow vignettes build --outdir docs/vignettes

        marginflow vignettes build difference_in_differences --fig-format svg
    """
    from marginflow.config import RenderConfig
    from marginflow.vignettes import build_all, build_vignette

    try:
        render = RenderConfig(
            fig_width=fig_width,
            fig_height=fig_height,
            fig_dpi=dpi,
            fig_format=fig_format,
        )
        if name is None:
            paths = build_all(outdir, render=render)
        else:
            paths = {name: build_vignette(name, outdir, render=render)}
    except Exception as e:
        typer.secho(f"\n✗ Build failed: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.secho(f"\n✓ Built {len(paths)} vignette(s)", fg=typer.colors.GREEN)
    for path in paths.values():
        typer.echo(f"  • {path}")
