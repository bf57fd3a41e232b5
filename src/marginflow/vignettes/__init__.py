"""Tutorial documents built by executing example code."""

from marginflow.vignettes.document import Notebook, Document, render_markdown
from marginflow.vignettes.catalog import VIGNETTES, list_vignettes, build_vignette, build_all

__all__ = [
    "Notebook",
    "Document",
    "render_markdown",
    "VIGNETTES",
    "list_vignettes",
    "build_vignette",
    "build_all",
]
