"""Tests for report formatting and the Excel workbook."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from marginflow.margins.excel import write_margins_workbook
from marginflow.margins.reports import (
    add_significance_column,
    build_run_manifest,
    format_p_value,
    significance_stars,
    write_csv_outputs,
)


@pytest.mark.parametrize(
    "p, expected",
    [(0.0001, "< .001"), (0.042, ".042"), (0.31, "0.31"), (np.nan, "NA")],
)
def test_format_p_value(p, expected):
    assert format_p_value(p) == expected


@pytest.mark.parametrize(
    "p, expected",
    [(0.0001, "***"), (0.005, "**"), (0.03, "*"), (0.07, "."), (0.5, "")],
)
def test_significance_stars(p, expected):
    assert significance_stars(p) == expected


def test_add_significance_column():
    df = pd.DataFrame({"p_value": [0.001, 0.2]})
    out = add_significance_column(df)
    assert list(out["signif"]) == ["**", ""]
    assert "signif" not in df.columns


def test_manifest_and_workbook(temp_outdir):
    manifest = build_run_manifest(
        formula="y ~ g",
        family="gaussian",
        data_source="synthetic:did",
        n_obs=10,
        terms=["g"],
        by=None,
        test=None,
        margin="mean_reference",
        scale="response",
        engine="statsmodels",
        p_adjust=None,
        ci_level=0.95,
    )
    values = dict(zip(manifest["parameter"], manifest["value"]))
    assert values["test"] == "none"
    assert values["p_adjust"] == "none"

    contrasts = pd.DataFrame({"g": ["a-b"], "estimate": [1.0], "p_value": [0.01]})
    path = write_margins_workbook(temp_outdir, manifest, contrasts, contrasts, contrasts)
    assert path.name == "margins_results.xlsx"
    assert path.exists()


def test_write_csv_outputs_skips_empty(temp_outdir):
    paths = write_csv_outputs(
        temp_outdir, {"full": pd.DataFrame({"a": [1]}), "empty": pd.DataFrame()}
    )
    assert set(paths) == {"full"}
    assert (temp_outdir / "full.csv").exists()
