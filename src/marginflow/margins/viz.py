"""Plots of predictions and contrasts (annotated differences, forest plots)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple
import warnings

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns

from marginflow.config import RenderConfig
from marginflow.margins.contrasts import ContrastResult
from marginflow.margins.predictions import Predictions
from marginflow.margins.reports import significance_stars
from marginflow.margins.terms import format_level

logger = logging.getLogger(__name__)

# Suppress seaborn/pandas FutureWarnings
warnings.filterwarnings("ignore", category=FutureWarning, module="seaborn")

DODGE_WIDTH = 0.5


def apply_theme(render: RenderConfig) -> None:
    sns.set_theme(style=render.style, context=render.context)


def group_colors(levels: List[str], palette: str = "colorblind") -> Dict[str, tuple]:
    """Map group levels to colors from a seaborn palette."""
    colors = sns.color_palette(palette, n_colors=max(len(levels), 1))
    return {lvl: colors[i] for i, lvl in enumerate(levels)}


def _new_axes(render: RenderConfig, ax):
    if ax is not None:
        return ax.figure, ax
    apply_theme(render)
    fig, ax = plt.subplots(figsize=render.figsize, dpi=render.fig_dpi)
    return fig, ax


def categorical_positions(table: pd.DataFrame, x: str, group: Optional[str]) -> np.ndarray:
    """x coordinates of each table row: level index plus a dodge offset per group."""
    x_levels = list(dict.fromkeys(table[x].map(format_level)))
    base = table[x].map(format_level).map({lvl: i for i, lvl in enumerate(x_levels)})
    base = base.to_numpy(dtype=float)
    if group is None:
        return base

    g_levels = list(dict.fromkeys(table[group].map(format_level)))
    k = len(g_levels)
    if k == 1:
        return base
    offsets = np.linspace(-DODGE_WIDTH / 2, DODGE_WIDTH / 2, k)
    g_index = table[group].map(format_level).map({lvl: i for i, lvl in enumerate(g_levels)})
    return base + offsets[g_index.to_numpy(dtype=int)]


def plot_predictions(
    pred: Predictions,
    render: Optional[RenderConfig] = None,
    ax=None,
    connect: bool = False,
):
    """Plot predicted values with confidence intervals.

    Categorical x: points with error bars, dodged by the second focal term.
    Numeric x: lines with confidence ribbons, one per level of the second
    focal term. Further focal terms are not drawn separately and a warning
    is logged; filter the prediction table first.

    Args:
        pred: Predictions to plot
        render: Rendering options
        ax: Existing axes to draw on
        connect: Connect points of the same group (categorical x only)

    Returns:
        matplotlib Figure
    """
    if len(pred.terms) > 2:
        logger.warning(
            f"Only the first two focal terms are plotted; {pred.terms[2:]} are overlaid "
            "in the same panel. Filter the prediction table to one level of each."
        )

    render = render or RenderConfig()
    fig, ax = _new_axes(render, ax)

    table = pred.table
    x = pred.terms[0]
    group = pred.terms[1] if len(pred.terms) > 1 else None
    g_levels = list(dict.fromkeys(table[group].map(format_level))) if group else [None]
    colors = group_colors([str(g) for g in g_levels], render.palette)

    if x in pred.numeric_terms:
        for lvl in g_levels:
            sub = table if lvl is None else table[table[group].map(format_level) == lvl]
            color = colors[str(lvl)]
            ax.plot(sub[x], sub["predicted"], color=color, label=lvl)
            ax.fill_between(
                sub[x].to_numpy(dtype=float),
                sub["conf_low"],
                sub["conf_high"],
                color=color,
                alpha=0.2,
                linewidth=0,
            )
    else:
        positions = categorical_positions(table, x, group)
        for lvl in g_levels:
            mask = np.ones(len(table), dtype=bool)
            if lvl is not None:
                mask = (table[group].map(format_level) == lvl).to_numpy()
            sub = table[mask]
            color = colors[str(lvl)]
            ax.errorbar(
                positions[mask],
                sub["predicted"],
                yerr=[sub["predicted"] - sub["conf_low"], sub["conf_high"] - sub["predicted"]],
                fmt="o-" if connect else "o",
                color=color,
                capsize=4,
                label=lvl,
            )
        x_levels = list(dict.fromkeys(table[x].map(format_level)))
        ax.set_xticks(range(len(x_levels)))
        ax.set_xticklabels(x_levels)

    if group is not None:
        ax.legend(title=group, frameon=False)

    ylabel = pred.response if pred.scale == "response" else f"{pred.response} (link)"
    ax.set_xlabel(x)
    ax.set_ylabel(ylabel)
    ax.set_title(f"Predicted values of {pred.response}")
    fig.tight_layout()
    return fig


def _pair_rows(contrasts: ContrastResult) -> List[Tuple[int, int, int]]:
    """(contrast row, focal row i, focal row j) for simple differences b_i - b_j."""
    if contrasts.weights is None or contrasts.slope is not None:
        return []
    out = []
    for r, w in enumerate(contrasts.weights):
        nz = np.flatnonzero(np.abs(w) > 1e-12)
        if len(nz) == 2 and np.isclose(w[nz].sum(), 0.0) and np.isclose(np.abs(w[nz]), 1).all():
            i = int(nz[w[nz] > 0][0])
            j = int(nz[w[nz] < 0][0])
            out.append((r, i, j))
    return out


def plot_contrasts(
    pred: Predictions,
    contrasts: ContrastResult,
    render: Optional[RenderConfig] = None,
    ax=None,
    max_brackets: int = 6,
    alpha: float = 0.05,
):
    """Predictions annotated with brackets for the tested differences.

    Each bracket connects two predictions compared by a contrast and is
    labelled with the estimated difference and significance stars. At most
    ``max_brackets`` contrasts are drawn, smallest p-values first.

    Raises:
        ValueError: If the contrasts are not simple differences of the
            plotted predictions
    """
    if pred.terms[0] in pred.numeric_terms:
        raise ValueError("Annotated contrasts need a categorical first focal term")

    focal = contrasts.focal
    if focal is None or sorted(focal.columns) != sorted(pred.terms):
        raise ValueError(
            "Contrasts must be computed for the same focal terms as the predictions "
            f"({pred.terms})"
        )

    pairs = _pair_rows(contrasts)
    if not pairs:
        raise ValueError("Annotated plots need pairwise-type comparisons of predictions")

    render = render or RenderConfig()
    fig = plot_predictions(pred, render=render, ax=ax)
    ax = fig.axes[0] if ax is None else ax

    table = pred.table
    group = pred.terms[1] if len(pred.terms) > 1 else None
    positions = categorical_positions(table, pred.terms[0], group)

    def _key(frame: pd.DataFrame, idx: int) -> tuple:
        return tuple(format_level(frame.loc[idx, t]) for t in pred.terms)

    row_of = {_key(table, i): i for i in table.index}
    missing = [_key(focal, i) for i in focal.index if _key(focal, i) not in row_of]
    if missing:
        raise ValueError(f"Contrast levels not present in the predictions: {missing}")

    p_values = contrasts.table["p_value"].to_numpy()
    pairs = sorted(pairs, key=lambda t: p_values[t[0]])[:max_brackets]

    span = float(table["conf_high"].max() - table["conf_low"].min()) or 1.0
    level = float(table["conf_high"].max()) + 0.05 * span
    for r, i, j in sorted(pairs, key=lambda t: abs(t[1] - t[2])):
        a, b = row_of[_key(focal, i)], row_of[_key(focal, j)]
        x1, x2 = sorted((positions[a], positions[b]))
        tick = 0.02 * span
        ax.plot([x1, x1, x2, x2], [level - tick, level, level, level - tick], color="black", lw=1)
        est = contrasts.table.loc[r, "estimate"]
        stars = significance_stars(p_values[r]) if p_values[r] < alpha else "n.s."
        ax.text((x1 + x2) / 2, level + tick / 2, f"{est:.2f} {stars}", ha="center", va="bottom")
        level += 0.1 * span

    ax.set_ylim(top=level + 0.05 * span)
    fig.tight_layout()
    return fig


def plot_contrast_estimates(
    contrasts: ContrastResult,
    render: Optional[RenderConfig] = None,
    ax=None,
):
    """Forest plot of contrast estimates with confidence intervals."""
    render = render or RenderConfig()
    fig, ax = _new_axes(render, ax)

    table = contrasts.table
    labels = [
        " | ".join(str(table.loc[i, c]) for c in contrasts.label_cols) for i in table.index
    ]
    y = np.arange(len(table))[::-1]

    colors = sns.color_palette(render.palette, n_colors=2)
    point_colors = [colors[1] if p < 0.05 else colors[0] for p in table["p_value"]]
    ax.hlines(y, table["conf_low"], table["conf_high"], color=point_colors, lw=2)
    ax.scatter(table["estimate"], y, color=point_colors, zorder=3)
    ax.axvline(contrasts.null_value, color="grey", ls="--", lw=1)

    if contrasts.scale in ("exp", "odds_ratios"):
        ax.set_xscale("log")

    ax.set_yticks(y)
    ax.set_yticklabels(labels)
    ax.set_xlabel(contrasts.estimate_label)
    ax.set_title(f"Contrasts of {contrasts.response}")
    fig.tight_layout()
    return fig


def save_figure(fig, path: Path, render: Optional[RenderConfig] = None) -> Path:
    """Save a figure with the configured format and DPI, then close it."""
    render = render or RenderConfig()
    path = Path(path).with_suffix(f".{render.fig_format}")
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=render.fig_dpi, bbox_inches="tight")
    plt.close(fig)
    return path
