"""CLI commands for predictions and contrasts."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, List
import typer

logger = logging.getLogger(__name__)

margins_app = typer.Typer(
    name="margins",
    help="Marginal predictions, contrasts and pairwise comparisons.",
    add_completion=False,
)

DATA_HELP = "Data file (.csv, .tsv, .parquet) or a directory of parquet chunks."
DATASET_HELP = "Name of a synthetic dataset instead of --data (treatment, binary, did, care)."
TERMS_HELP = "Focal term, repeatable (e.g. --terms grp --terms 'age [meansd]')."
MARGIN_HELP = "mean_reference, mean_mode, marginalmeans, or empirical."


def _load_model(data: Optional[Path], dataset: Optional[str], seed: Optional[int], formula: str, family: str):
    from marginflow.data import load_table, make_dataset
    from marginflow.models import fit_model

    if (data is None) == (dataset is None):
        raise ValueError("Give exactly one of --data or --dataset")
    df = load_table(data) if data is not None else make_dataset(dataset, seed=seed)
    return fit_model(formula, df, family=family)


@margins_app.command("predict")
def predict_cmd(
    formula: str = typer.Option(..., "--formula", "-f", help="Model formula, e.g. 'y ~ grp * x'."),
    terms: List[str] = typer.Option(..., "--terms", "-t", help=TERMS_HELP),
    data: Optional[Path] = typer.Option(None, "--data", help=DATA_HELP),
    dataset: Optional[str] = typer.Option(None, "--dataset", help=DATASET_HELP),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for synthetic datasets."),
    family: str = typer.Option("gaussian", "--family", help="gaussian, binomial, or poisson."),
    margin: str = typer.Option("mean_reference", "--margin", help=MARGIN_HELP),
    scale: str = typer.Option("response", "--scale", help="response or link."),
    engine: str = typer.Option("statsmodels", "--engine", help="statsmodels or marginaleffects."),
    ci_level: float = typer.Option(0.95, "--ci-level", help="Confidence level."),
    out: Optional[Path] = typer.Option(None, "--out", help="Write the prediction table to CSV."),
):
    """
    Print marginal predictions for focal terms.

    Examples:
        marginflow margins predict --dataset treatment \\
            --formula "outcome ~ grp * episode + sex" --terms episode --terms grp
    """
    from marginflow.margins import predict_response

    try:
        model = _load_model(data, dataset, seed, formula, family)
        pred = predict_response(
            model, terms, margin=margin, scale=scale, ci_level=ci_level, engine=engine
        )
        typer.echo(pred.format())
        if out is not None:
            out.parent.mkdir(parents=True, exist_ok=True)
            pred.to_frame().to_csv(out, index=False)
            typer.echo(f"\n  Predictions: {out}")
    except Exception as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


@margins_app.command("test")
def test_cmd(
    formula: str = typer.Option(..., "--formula", "-f", help="Model formula."),
    terms: List[str] = typer.Option(..., "--terms", "-t", help=TERMS_HELP),
    data: Optional[Path] = typer.Option(None, "--data", help=DATA_HELP),
    dataset: Optional[str] = typer.Option(None, "--dataset", help=DATASET_HELP),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for synthetic datasets."),
    family: str = typer.Option("gaussian", "--family", help="gaussian, binomial, or poisson."),
    by: Optional[List[str]] = typer.Option(None, "--by", help="Compare within levels of this term (repeatable)."),
    test: str = typer.Option(
        "pairwise",
        "--test",
        help="pairwise, consecutive, reference, contrast, interaction, none, or an equation like 'b1 = b2'.",
    ),
    margin: str = typer.Option("mean_reference", "--margin", help=MARGIN_HELP),
    scale: str = typer.Option("response", "--scale", help="response, link, exp, or odds_ratios."),
    engine: str = typer.Option("statsmodels", "--engine", help="statsmodels or marginaleffects."),
    p_adjust: Optional[str] = typer.Option(None, "--p-adjust", help="holm, bonferroni, sidak, fdr_bh, fdr_by, hommel."),
    ci_level: float = typer.Option(0.95, "--ci-level", help="Confidence level."),
    out: Optional[Path] = typer.Option(None, "--out", help="Write the contrast table to CSV."),
):
    """
    Test differences between predictions (pairwise comparisons, contrasts,
    slopes, difference-in-differences).

    Examples:
        marginflow margins test --dataset did \\
            --formula "score ~ treatment * time" \\
            --terms treatment --terms time --test interaction

        marginflow margins test --dataset binary --family binomial \\
            --formula "outcome ~ grp + education + hours" \\
            --terms grp --scale odds_ratios
    """
    from marginflow.margins import test_predictions

    try:
        model = _load_model(data, dataset, seed, formula, family)
        result = test_predictions(
            model,
            terms,
            by=by or None,
            test=test,
            margin=margin,
            scale=scale,
            engine=engine,
            p_adjust=p_adjust,
            ci_level=ci_level,
        )
        typer.echo(result.format())
        if out is not None:
            out.parent.mkdir(parents=True, exist_ok=True)
            result.to_frame().to_csv(out, index=False)
            typer.echo(f"\n  Contrasts: {out}")
    except Exception as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


@margins_app.command("run")
def run_cmd(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML analysis file."),
    formula: Optional[str] = typer.Option(None, "--formula", "-f", help="Model formula."),
    terms: Optional[List[str]] = typer.Option(None, "--terms", "-t", help=TERMS_HELP),
    data: Optional[Path] = typer.Option(None, "--data", help=DATA_HELP),
    dataset: Optional[str] = typer.Option(None, "--dataset", help=DATASET_HELP),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for synthetic datasets."),
    family: str = typer.Option("gaussian", "--family", help="gaussian, binomial, or poisson."),
    by: Optional[List[str]] = typer.Option(None, "--by", help="Compare within levels of this term (repeatable)."),
    test: str = typer.Option("pairwise", "--test", help="Comparison type or hypothesis equation."),
    margin: str = typer.Option("mean_reference", "--margin", help=MARGIN_HELP),
    scale: str = typer.Option("response", "--scale", help="response, link, exp, or odds_ratios."),
    engine: str = typer.Option("statsmodels", "--engine", help="statsmodels or marginaleffects."),
    p_adjust: Optional[str] = typer.Option(None, "--p-adjust", help="Multiplicity adjustment."),
    ci_level: float = typer.Option(0.95, "--ci-level", help="Confidence level."),
    outdir: Path = typer.Option(Path("derived/margins"), "--outdir", help="Output directory."),
    no_xlsx: bool = typer.Option(False, "--no-xlsx", help="Skip the Excel workbook."),
    no_plots: bool = typer.Option(False, "--no-plots", help="Skip figures."),
):
    """
    Run a complete analysis: fit, predict, test, and write tables, an Excel
    workbook and figures.

    Either give a YAML analysis file with --config, or the model and terms
    as options.

    Examples:
        marginflow margins run --config analysis.yaml

        marginflow margins run --dataset treatment \\
            --formula "outcome ~ grp * episode + sex" \\
            --terms grp --by episode --p-adjust holm --outdir derived/margins
    """
    from marginflow.margins import run_margins, run_margins_from_config
    from marginflow.margins.analysis_file import load_analysis_config

    try:
        if config is not None:
            typer.echo(f"Loading analysis file {config}...")
            results = run_margins_from_config(load_analysis_config(config))
        else:
            if not formula or not terms:
                raise ValueError("--formula and --terms are required without --config")
            results = run_margins(
                formula=formula,
                terms=terms,
                outdir=outdir,
                data_path=data,
                dataset=dataset,
                family=family,
                by=by or None,
                test=test,
                margin=margin,
                scale=scale,
                engine=engine,
                p_adjust=p_adjust,
                ci_level=ci_level,
                seed=seed,
                write_xlsx=not no_xlsx,
                make_plots=not no_plots,
            )

        typer.secho(f"\n✓ Analysis complete!", fg=typer.colors.GREEN)
        typer.echo(f"  Output directory: {results['outdir']}")
        if results["workbook"]:
            typer.echo(f"  Workbook: {results['workbook']}")
        typer.echo(f"  Predictions: {len(results['predictions'])}")
        typer.echo(f"  Contrasts: {len(results['contrasts'])}")
    except Exception as e:
        typer.secho(f"\n✗ Analysis failed: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


@margins_app.command("synth")
def synth_cmd(
    name: str = typer.Argument(..., help="Synthetic dataset (treatment, binary, did, care)."),
    out: Path = typer.Option(..., "--out", "-o", help="Output CSV path."),
    n: Optional[int] = typer.Option(None, "--n", help="Number of rows."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed."),
):
    """Write a synthetic example dataset to CSV."""
    from marginflow.data import make_dataset

    try:
        df = make_dataset(name, n=n, seed=seed)
    except ValueError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    out.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out, index=False)
    typer.echo(f"Wrote {len(df)} rows to {out}")
