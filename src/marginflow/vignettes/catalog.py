"""Registry of vignettes and build entry points."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

import matplotlib

from marginflow.config import RenderConfig
from marginflow.vignettes import (
    difference_in_differences,
    introduction_comparisons,
    link_and_response_scale,
    switching_engines,
)
from marginflow.vignettes.document import Notebook, render_markdown

logger = logging.getLogger(__name__)

VIGNETTES = {
    module.SLUG: module
    for module in (
        introduction_comparisons,
        difference_in_differences,
        switching_engines,
        link_and_response_scale,
    )
}


def list_vignettes() -> List[Dict[str, str]]:
    """Name, title and summary of every vignette, in reading order."""
    return [
        {"name": slug, "title": module.TITLE, "summary": module.SUMMARY}
        for slug, module in VIGNETTES.items()
    ]


def build_vignette(name: str, outdir: Path, render: Optional[RenderConfig] = None) -> Path:
    """Execute one vignette and render it to ``outdir/<name>.md``.

    Raises:
        ValueError: If the vignette name is unknown
    """
    if name not in VIGNETTES:
        raise ValueError(f"Unknown vignette: {name}. Available: {list(VIGNETTES)}")

    module = VIGNETTES[name]
    outdir = Path(outdir)
    # figures are written to files, never shown
    matplotlib.use("Agg")
    nb = Notebook(slug=module.SLUG, title=module.TITLE, render=render, outdir=outdir)
    logger.info(f"Building vignette '{name}'")
    module.build(nb)
    return render_markdown(nb.document(), outdir)


def build_all(outdir: Path, render: Optional[RenderConfig] = None) -> Dict[str, Path]:
    """Build every vignette plus an ``index.md`` linking them."""
    outdir = Path(outdir)
    paths = {name: build_vignette(name, outdir, render) for name in VIGNETTES}

    lines = ["# marginflow vignettes", ""]
    for info in list_vignettes():
        lines.append(f"- [{info['title']}]({paths[info['name']].name}): {info['summary']}")
    index = outdir / "index.md"
    index.write_text("\n".join(lines) + "\n", encoding="utf-8")

    return paths
