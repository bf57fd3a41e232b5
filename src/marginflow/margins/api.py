"""Public API for a complete predictions + contrasts analysis run."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from marginflow.config import RenderConfig
from marginflow.data import load_table, make_dataset
from marginflow.models import fit_model, coefficient_table
from marginflow.margins.config import MarginsConfig
from marginflow.margins.predictions import predict_response
from marginflow.margins.contrasts import test_predictions
from marginflow.margins import reports
from marginflow.margins.excel import write_margins_workbook

logger = logging.getLogger(__name__)


def run_margins(
    formula: str,
    terms: List[str],
    outdir: Path | str,
    data_path: Optional[Path | str] = None,
    dataset: Optional[str] = None,
    family: str = "gaussian",
    by: Optional[List[str]] = None,
    test: Optional[str] = "pairwise",
    margin: str = "mean_reference",
    scale: str = "response",
    engine: str = "statsmodels",
    p_adjust: Optional[str] = None,
    ci_level: float = 0.95,
    condition: Optional[Dict[str, Any]] = None,
    seed: Optional[int] = None,
    write_xlsx: bool = True,
    make_plots: bool = True,
    render: Optional[RenderConfig] = None,
) -> Dict[str, Any]:
    """Fit a model, compute predictions and contrasts, and write all outputs.

    Args:
        formula: Model formula, e.g. "outcome ~ grp * episode + sex"
        terms: Focal terms
        outdir: Output directory
        data_path: Input CSV / Parquet (exclusive with dataset)
        dataset: Synthetic dataset name (exclusive with data_path)
        family: gaussian, binomial, or poisson
        by: Terms within whose levels comparisons are made
        test: Comparison type (see test_predictions)
        margin: Margin option for non-focal predictors
        scale: response, link, exp, or odds_ratios
        engine: statsmodels or marginaleffects
        p_adjust: Multiplicity adjustment
        ci_level: Confidence level
        condition: Fixed values for non-focal predictors
        seed: Seed for synthetic datasets
        write_xlsx: Whether to write margins_results.xlsx
        make_plots: Whether to render figures
        render: Figure rendering options

    Returns:
        Dictionary with results and output paths

    Example:
        >>> from marginflow.margins import run_margins
        >>> results = run_margins(
        ...     formula="outcome ~ grp * episode + sex",
        ...     terms=["grp", "episode"],
        ...     dataset="treatment",
        ...     outdir="derived/margins",
        ... )
        >>> print(results["contrasts"])
    """
    config = MarginsConfig(
        formula=formula,
        outdir=Path(outdir),
        terms=list(terms),
        data_path=Path(data_path) if data_path else None,
        dataset=dataset,
        family=family,
        by=by,
        test=test,
        margin=margin,
        scale=scale,
        engine=engine,
        p_adjust=p_adjust,
        ci_level=ci_level,
        condition=condition,
        seed=seed,
        write_xlsx=write_xlsx,
        make_plots=make_plots,
        render=render or RenderConfig(),
    )
    return run_margins_from_config(config)


def run_margins_from_config(config: MarginsConfig) -> Dict[str, Any]:
    """Run an analysis from a MarginsConfig object.

    Args:
        config: MarginsConfig object

    Returns:
        Dictionary with keys: model, predictions, contrasts, outdir, csv,
        workbook, figures
    """
    print(f"Loading data from {config.data_source}...")
    if config.data_path is not None:
        df = load_table(config.data_path)
    else:
        df = make_dataset(config.dataset, seed=config.seed)

    print(f"[1/4] Fitting {config.family} model: {config.formula}")
    model = fit_model(config.formula, df, family=config.family)
    print(f"  • Observations: {model.nobs}")

    print("[2/4] Computing marginal predictions...")
    pred_scale = "link" if config.scale == "link" else "response"
    pred = predict_response(
        model,
        config.terms + list(config.by or []),
        margin=config.margin,
        scale=pred_scale,
        ci_level=config.ci_level,
        engine=config.engine,
        condition=config.condition,
    )

    print(f"[3/4] Testing predictions (test={config.test or 'none'})...")
    contrasts = test_predictions(
        model,
        config.terms,
        by=config.by,
        test=config.test,
        margin=config.margin,
        scale=config.scale,
        engine=config.engine,
        p_adjust=config.p_adjust,
        ci_level=config.ci_level,
        condition=config.condition,
    )
    print(f"  • Contrasts: {len(contrasts)} ({len(contrasts.significant())} with p < .05)")

    print("[4/4] Writing outputs...")
    outdir = config.outdir
    coefficients = coefficient_table(model, config.ci_level)
    contrast_table = reports.add_significance_column(contrasts.to_frame())

    csv_paths = reports.write_csv_outputs(
        outdir,
        {
            "coefficients": coefficients,
            "predictions": pred.to_frame(),
            "contrasts": contrast_table,
        },
    )
    for path in csv_paths.values():
        print(f"  • {path}")

    workbook = None
    if config.write_xlsx:
        manifest = reports.build_run_manifest(
            formula=config.formula,
            family=config.family,
            data_source=config.data_source,
            n_obs=model.nobs,
            terms=config.terms,
            by=config.by,
            test=config.test,
            margin=config.margin,
            scale=config.scale,
            engine=contrasts.engine,
            p_adjust=config.p_adjust,
            ci_level=config.ci_level,
        )
        workbook = write_margins_workbook(
            outdir, manifest, coefficients, pred.to_frame(), contrast_table
        )
        print(f"  • {workbook}")

    figures: Dict[str, Path] = {}
    if config.make_plots:
        figures = _write_figures(pred, contrasts, outdir / "figures", config.render)
        for path in figures.values():
            print(f"  • {path}")

    print("\n✓ Analysis complete.")

    return {
        "model": model,
        "predictions": pred,
        "contrasts": contrasts,
        "outdir": outdir,
        "csv": csv_paths,
        "workbook": workbook,
        "figures": figures,
    }


def _write_figures(pred, contrasts, fig_dir: Path, render: RenderConfig) -> Dict[str, Path]:
    from marginflow.margins.viz import (
        plot_predictions,
        plot_contrasts,
        plot_contrast_estimates,
        save_figure,
    )

    figures = {
        "predictions": save_figure(
            plot_predictions(pred, render=render), fig_dir / "predictions", render
        ),
        "contrast_estimates": save_figure(
            plot_contrast_estimates(contrasts, render=render),
            fig_dir / "contrast_estimates",
            render,
        ),
    }

    try:
        fig = plot_contrasts(pred, contrasts, render=render)
    except ValueError as e:
        logger.info(f"Skipping annotated contrast plot: {e}")
    else:
        figures["contrasts_annotated"] = save_figure(fig, fig_dir / "contrasts_annotated", render)

    return figures
