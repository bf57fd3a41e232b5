"""Rendering configuration shared by plots, reports and vignettes."""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Tuple

FIGURE_FORMATS = ("png", "svg", "pdf")
SEABORN_STYLES = ("whitegrid", "darkgrid", "white", "dark", "ticks")
SEABORN_CONTEXTS = ("paper", "notebook", "talk", "poster")


@dataclass
class RenderConfig:
    """Configuration for figure rendering.

    Attributes:
        fig_width: Figure width in inches (default: 7.0)
        fig_height: Figure height in inches (default: 4.5)
        fig_dpi: Figure DPI for raster output (default: 160)
        fig_format: Output format, one of png, svg, pdf (default: png)
        style: Seaborn style name (default: whitegrid)
        context: Seaborn plotting context (default: notebook)
        palette: Seaborn palette used for groups (default: colorblind)
    """

    fig_width: float = 7.0
    fig_height: float = 4.5
    fig_dpi: int = 160
    fig_format: str = "png"
    style: str = "whitegrid"
    context: str = "notebook"
    palette: str = "colorblind"

    def __post_init__(self):
        """Validate configuration."""
        self.fig_format = self.fig_format.lower().lstrip(".")

        if self.fig_width <= 0 or self.fig_height <= 0:
            raise ValueError(
                f"Figure size must be positive, got {self.fig_width}x{self.fig_height}"
            )

        if self.fig_dpi < 10:
            raise ValueError(f"fig_dpi must be >= 10, got {self.fig_dpi}")

        if self.fig_format not in FIGURE_FORMATS:
            raise ValueError(
                f"fig_format must be one of {list(FIGURE_FORMATS)}, got {self.fig_format}"
            )

        if self.style not in SEABORN_STYLES:
            raise ValueError(f"style must be one of {list(SEABORN_STYLES)}, got {self.style}")

        if self.context not in SEABORN_CONTEXTS:
            raise ValueError(
                f"context must be one of {list(SEABORN_CONTEXTS)}, got {self.context}"
            )

    @property
    def figsize(self) -> Tuple[float, float]:
        return (self.fig_width, self.fig_height)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
