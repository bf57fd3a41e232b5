"""Formatting helpers and report tables for predictions and contrasts."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from marginflow import __version__


def format_p_value(p: float) -> str:
    """APA-like p-value string: "< .001", ".042", "0.31"."""
    if p is None or not np.isfinite(p):
        return "NA"
    if p < 0.001:
        return "< .001"
    if p < 0.1:
        return f"{p:.3f}".lstrip("0")
    return f"{p:.2f}"


def significance_stars(p: float) -> str:
    """*** p<.001, ** p<.01, * p<.05, . p<.1"""
    if p is None or not np.isfinite(p):
        return ""
    if p < 0.001:
        return "***"
    if p < 0.01:
        return "**"
    if p < 0.05:
        return "*"
    if p < 0.1:
        return "."
    return ""


def format_interval(low: float, high: float, digits: int = 2) -> str:
    return f"[{low:.{digits}f}, {high:.{digits}f}]"


def format_value(value: Any, digits: int = 2) -> str:
    if isinstance(value, (float, np.floating)):
        if float(value).is_integer() and abs(value) < 1e6:
            return str(int(value))
        return f"{float(value):.{digits}f}"
    return str(value)


def format_estimate_table(
    df: pd.DataFrame,
    label_cols: List[str],
    estimate_col: str,
    estimate_label: str,
    ci_level: float,
    digits: int = 2,
    with_p: bool = True,
) -> pd.DataFrame:
    """Display table: labels, estimate, CI, and (optionally) p-value.

    Returns:
        DataFrame of strings ready for printing
    """
    ci_label = f"{int(round(ci_level * 100))}% CI"
    out = pd.DataFrame({col: df[col].map(lambda v: format_value(v, digits)) for col in label_cols})
    out[estimate_label] = df[estimate_col].map(lambda v: f"{v:.{digits}f}")
    out[ci_label] = [
        format_interval(lo, hi, digits) for lo, hi in zip(df["conf_low"], df["conf_high"])
    ]
    if with_p:
        out["p"] = df["p_value"].map(format_p_value)
    return out


def build_run_manifest(
    formula: str,
    family: str,
    data_source: str,
    n_obs: int,
    terms: List[str],
    by: Optional[List[str]],
    test: Optional[str],
    margin: str,
    scale: str,
    engine: str,
    p_adjust: Optional[str],
    ci_level: float,
) -> pd.DataFrame:
    """Build run manifest sheet.

    Returns:
        DataFrame with metadata about the analysis run
    """
    rows = [
        {"parameter": "data", "value": data_source},
        {"parameter": "formula", "value": formula},
        {"parameter": "family", "value": family},
        {"parameter": "n_obs", "value": n_obs},
        {"parameter": "terms", "value": ", ".join(terms)},
        {"parameter": "by", "value": ", ".join(by) if by else ""},
        {"parameter": "test", "value": test if test is not None else "none"},
        {"parameter": "margin", "value": margin},
        {"parameter": "scale", "value": scale},
        {"parameter": "engine", "value": engine},
        {"parameter": "p_adjust", "value": p_adjust or "none"},
        {"parameter": "ci_level", "value": ci_level},
        {"parameter": "timestamp", "value": datetime.now().strftime("%Y-%m-%d %H:%M:%S")},
        {"parameter": "package_version", "value": __version__},
    ]
    return pd.DataFrame(rows, columns=["parameter", "value"])


def add_significance_column(df: pd.DataFrame) -> pd.DataFrame:
    """Copy of a contrast table with a ``signif`` column of stars."""
    out = df.copy()
    out["signif"] = out["p_value"].map(significance_stars)
    return out


def write_csv_outputs(outdir: Path, tables: Dict[str, pd.DataFrame]) -> Dict[str, Path]:
    """Write each non-empty table to ``<outdir>/<name>.csv``."""
    outdir.mkdir(parents=True, exist_ok=True)
    paths = {}
    for name, df in tables.items():
        if df is None or df.empty:
            continue
        path = outdir / f"{name}.csv"
        df.to_csv(path, index=False)
        paths[name] = path
    return paths
