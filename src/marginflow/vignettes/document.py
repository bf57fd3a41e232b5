"""Minimal literate-document builder for vignettes.

A :class:`Notebook` runs code chunks in one shared namespace and records, per
chunk, the source, captured stdout, the value of a trailing expression, and
any matplotlib figures left open. :func:`render_markdown` turns the recorded
blocks into a Markdown file with YAML front matter.
"""

from __future__ import annotations

import ast
import contextlib
from dataclasses import dataclass, field
from datetime import datetime
import io
import logging
from pathlib import Path
import textwrap
from typing import Any, Dict, List, Optional

import matplotlib.pyplot as plt
from matplotlib.axes import Axes
from matplotlib.figure import Figure
import pandas as pd

from marginflow import __version__
from marginflow.config import RenderConfig
from marginflow.margins import ContrastResult, Predictions
from marginflow.yaml_utils import dumps_yaml

logger = logging.getLogger(__name__)

FIGURE_DIR = "figures"


@dataclass
class Block:
    """One rendered piece of a document: prose or an executed code chunk."""

    kind: str
    source: str
    output: str = ""
    figures: List[str] = field(default_factory=list)
    evaluated: bool = True


@dataclass
class Document:
    """Executed vignette ready to be rendered."""

    slug: str
    title: str
    blocks: List[Block]
    render: RenderConfig
    metadata: Dict[str, Any] = field(default_factory=dict)


def display_value(value: Any) -> str:
    """Text shown for the trailing expression of a chunk ("" for nothing)."""
    if value is None or isinstance(value, (Figure, Axes)):
        return ""
    if isinstance(value, pd.DataFrame):
        with pd.option_context("display.width", 120, "display.max_columns", 20):
            return value.to_string(index=False)
    if isinstance(value, pd.Series):
        return value.to_string()
    if isinstance(value, (Predictions, ContrastResult)):
        return str(value)
    return repr(value)


class Notebook:
    """Executes vignette chunks and collects their output.

    Args:
        slug: File-name stem of the document
        title: Document title
        render: Figure settings
        outdir: Directory the document is rendered to; figures are saved to
            ``outdir/figures``. When None, figures are closed unsaved.

    Chunks see the figure settings as the name ``render``.
    """

    def __init__(
        self,
        slug: str,
        title: str,
        render: Optional[RenderConfig] = None,
        outdir: Optional[Path] = None,
    ):
        self.slug = slug
        self.title = title
        self.render = render or RenderConfig()
        self.outdir = Path(outdir) if outdir is not None else None
        self.namespace: Dict[str, Any] = {"__name__": f"vignette_{slug}", "render": self.render}
        self.blocks: List[Block] = []
        self.metadata: Dict[str, Any] = {}
        self._n_figures = 0

    def text(self, markdown: str) -> None:
        self.blocks.append(Block(kind="text", source=textwrap.dedent(markdown).strip()))

    def code(self, source: str, evaluate: bool = True, expect_error: bool = False) -> Any:
        """Run a chunk and record it.

        Args:
            source: Python source of the chunk
            evaluate: If False, show the source without running it
            expect_error: If True, the chunk must raise; the error message
                becomes its output

        Returns:
            Value of the trailing expression (None if there is none)

        Raises:
            RuntimeError: If ``expect_error`` is set and the chunk runs cleanly
        """
        source = textwrap.dedent(source).strip()
        if not evaluate:
            self.blocks.append(Block(kind="code", source=source, evaluated=False))
            return None

        buffer = io.StringIO()
        value = None
        error = None
        with contextlib.redirect_stdout(buffer):
            try:
                value = self._execute(source)
            except Exception as e:
                if not expect_error:
                    plt.close("all")
                    raise
                error = e

        if expect_error and error is None:
            raise RuntimeError(f"Chunk in '{self.slug}' was expected to fail:\n{source}")

        pieces = [buffer.getvalue().rstrip()]
        if error is not None:
            pieces.append(f"{type(error).__name__}: {error}")
        else:
            pieces.append(display_value(value))
        output = "\n".join(p for p in pieces if p)

        self.blocks.append(
            Block(kind="code", source=source, output=output, figures=self._collect_figures())
        )
        return value

    def _execute(self, source: str) -> Any:
        tree = ast.parse(source, mode="exec")
        last = None
        if tree.body and isinstance(tree.body[-1], ast.Expr):
            last = ast.Expression(tree.body.pop().value)

        exec(compile(tree, f"<{self.slug}>", "exec"), self.namespace)
        if last is None:
            return None
        return eval(compile(last, f"<{self.slug}>", "eval"), self.namespace)

    def _collect_figures(self) -> List[str]:
        from marginflow.margins.viz import save_figure

        paths = []
        for num in plt.get_fignums():
            fig = plt.figure(num)
            if self.outdir is None:
                plt.close(fig)
                continue
            self._n_figures += 1
            name = f"{self.slug}-{self._n_figures:02d}"
            path = save_figure(fig, self.outdir / FIGURE_DIR / name, self.render)
            paths.append(path.relative_to(self.outdir).as_posix())
        return paths

    def document(self) -> Document:
        return Document(
            slug=self.slug,
            title=self.title,
            blocks=list(self.blocks),
            render=self.render,
            metadata=dict(self.metadata),
        )


def render_markdown(doc: Document, outdir: Path) -> Path:
    """Write a document as Markdown with YAML front matter.

    Returns:
        Path to the written ``<slug>.md``
    """
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    front = {
        "title": doc.title,
        "generated": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        "marginflow_version": __version__,
        **doc.metadata,
        "figures": doc.render.to_dict(),
    }

    lines = ["---", dumps_yaml(front).rstrip(), "---", "", f"# {doc.title}", ""]
    for block in doc.blocks:
        if block.kind == "text":
            lines.extend([block.source, ""])
            continue
        lines.extend(["```python", block.source, "```", ""])
        if block.output:
            lines.extend(["```", block.output, "```", ""])
        for fig in block.figures:
            lines.extend([f"![]({fig})", ""])

    path = outdir / f"{doc.slug}.md"
    path.write_text("\n".join(lines), encoding="utf-8")
    logger.info(f"Wrote vignette {path}")
    return path
