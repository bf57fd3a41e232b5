from __future__ import annotations

from pathlib import Path

import pandas as pd
import yaml
from typer.testing import CliRunner

from marginflow.cli.main import app


def test_cli_version_flag() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "marginflow" in result.stdout


def test_cli_synth(tmp_path: Path) -> None:
    runner = CliRunner()
    out = tmp_path / "did.csv"
    result = runner.invoke(app, ["margins", "synth", "did", "--out", str(out), "--n", "50"])
    assert result.exit_code == 0, result.stdout
    assert len(pd.read_csv(out)) == 50


def test_cli_synth_unknown_dataset(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["margins", "synth", "nope", "--out", str(tmp_path / "x.csv")])
    assert result.exit_code == 1


def test_cli_predict(tmp_path: Path) -> None:
    runner = CliRunner()
    out = tmp_path / "pred.csv"
    result = runner.invoke(
        app,
        [
            "margins",
            "predict",
            "--dataset",
            "treatment",
            "--formula",
            "outcome ~ grp * episode + sex",
            "--terms",
            "episode",
            "--terms",
            "grp",
            "--out",
            str(out),
        ],
    )
    assert result.exit_code == 0, result.stdout
    assert "# Predicted values of outcome" in result.stdout
    assert len(pd.read_csv(out)) == 6


def test_cli_test_interaction() -> None:
    runner = CliRunner()
    result = runner.invoke(
        app,
        [
            "margins",
            "test",
            "--dataset",
            "did",
            "--formula",
            "score ~ treatment * time",
            "--terms",
            "treatment",
            "--terms",
            "time",
            "--test",
            "interaction",
        ],
    )
    assert result.exit_code == 0, result.stdout
    assert "difference-in-differences" in result.stdout


def test_cli_test_refuses_exp_slope() -> None:
    runner = CliRunner()
    result = runner.invoke(
        app,
        [
            "margins",
            "test",
            "--dataset",
            "binary",
            "--family",
            "binomial",
            "--formula",
            "outcome ~ grp + hours",
            "--terms",
            "hours",
            "--scale",
            "exp",
        ],
    )
    assert result.exit_code == 1


def test_cli_run_with_config(tmp_path: Path) -> None:
    config = tmp_path / "analysis.yaml"
    config.write_text(
        yaml.safe_dump(
            {
                "data": {"dataset": "did"},
                "model": {"formula": "score ~ treatment * time"},
                "margins": {"terms": ["time"], "by": ["treatment"]},
                "output": {"outdir": "out", "make_plots": False},
            }
        ),
        encoding="utf-8",
    )
    runner = CliRunner()
    result = runner.invoke(app, ["margins", "run", "--config", str(config)])
    assert result.exit_code == 0, result.stdout
    assert (tmp_path / "out" / "margins_results.xlsx").exists()
    assert (tmp_path / "out" / "contrasts.csv").exists()


def test_cli_run_requires_formula() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["margins", "run", "--dataset", "did"])
    assert result.exit_code == 1


def test_cli_vignettes_list() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["vignettes", "list"])
    assert result.exit_code == 0
    assert "difference_in_differences" in result.stdout


def test_cli_vignettes_build(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        app,
        [
            "vignettes",
            "build",
            "difference_in_differences",
            "--outdir",
            str(tmp_path),
            "--fig-format",
            "svg",
            "--dpi",
            "40",
        ],
    )
    assert result.exit_code == 0, result.stdout
    assert (tmp_path / "difference_in_differences.md").exists()
    assert list((tmp_path / "figures").glob("*.svg"))


def test_cli_vignettes_bad_format(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        app, ["vignettes", "build", "--outdir", str(tmp_path), "--fig-format", "bmp"]
    )
    assert result.exit_code == 1
