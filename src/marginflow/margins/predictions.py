"""Marginal predictions for focal terms."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd

from marginflow.backends.registry import get_engine
from marginflow.models import FittedModel
from marginflow.margins.config import PREDICTION_SCALES, validate_ci_level
from marginflow.margins.grid import build_reference_grid
from marginflow.margins.reports import format_estimate_table, format_value
from marginflow.margins.terms import FocalTerm, parse_terms

logger = logging.getLogger(__name__)


@dataclass
class Predictions:
    """Predicted values for each combination of focal-term values.

    Attributes:
        table: Focal columns plus predicted, std_error, conf_low, conf_high
        terms: Focal term names, in the order given
        response: Name of the response variable
        margin: Margin option used for non-focal predictors
        scale: "response" or "link"
        engine: Engine that produced the estimates
        ci_level: Confidence level of the intervals
        typical: Values at which non-focal predictors were held
        averaged: Non-focal predictors averaged over
        numeric_terms: Focal terms that are numeric predictors
    """

    table: pd.DataFrame
    terms: List[str]
    response: str
    margin: str
    scale: str
    engine: str
    ci_level: float
    typical: Dict[str, Any] = field(default_factory=dict)
    averaged: List[str] = field(default_factory=list)
    numeric_terms: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.table)

    def to_frame(self) -> pd.DataFrame:
        return self.table.copy()

    def format(self, digits: int = 2) -> str:
        """Text rendering with a header and an "Adjusted for" footer."""
        scale_note = " (link scale)" if self.scale == "link" else ""
        lines = [f"# Predicted values of {self.response}{scale_note}", ""]

        display = format_estimate_table(
            self.table,
            label_cols=self.terms,
            estimate_col="predicted",
            estimate_label="Predicted",
            ci_level=self.ci_level,
            digits=digits,
            with_p=False,
        )
        lines.append(display.to_string(index=False))

        notes = [f"* {k} = {format_value(v, digits)}" for k, v in self.typical.items()]
        if self.averaged:
            notes.append(f"* averaged over: {', '.join(self.averaged)}")
        if notes:
            lines.extend(["", "Adjusted for:"] + notes)
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.format()

    def plot(self, render=None, ax=None):
        """Plot predictions; see :func:`marginflow.margins.viz.plot_predictions`."""
        from marginflow.margins.viz import plot_predictions

        return plot_predictions(self, render=render, ax=ax)


def predict_response(
    model: FittedModel,
    terms: Union[str, FocalTerm, Sequence[Union[str, FocalTerm]]],
    margin: str = "mean_reference",
    scale: str = "response",
    ci_level: float = 0.95,
    engine: Optional[str] = "statsmodels",
    condition: Optional[Dict[str, Any]] = None,
) -> Predictions:
    """Compute marginal predictions for one or more focal terms.

    Args:
        model: Fitted model from :func:`marginflow.models.fit_model`
        terms: Focal term selection(s), e.g. "grp" or ["age [meansd]", "grp"]
        margin: mean_reference, mean_mode, marginalmeans, or empirical
        scale: "response" (default) or "link"
        ci_level: Confidence level (default: 0.95)
        engine: statsmodels (default) or marginaleffects
        condition: Fixed values for non-focal predictors

    Returns:
        Predictions

    Example:
        >>> model = fit_model("outcome ~ grp * episode + sex", make_treatment_data())
        >>> pred = predict_response(model, ["episode", "grp"])
        >>> print(pred)
    """
    scale = scale.lower()
    if scale not in PREDICTION_SCALES:
        raise ValueError(f"scale must be one of {list(PREDICTION_SCALES)}, got {scale}")
    ci_level = validate_ci_level(ci_level)

    parsed = parse_terms(terms)
    if not parsed:
        raise ValueError("At least one focal term is required")

    grid = build_reference_grid(model, parsed, margin, condition)
    eng = get_engine(engine)
    estimates = eng.predict(model, grid, scale, ci_level)

    table = pd.concat([grid.focal, estimates], axis=1)
    logger.info(
        f"Predicted {len(table)} rows for {[t.name for t in parsed]} "
        f"(margin={grid.margin}, engine={eng.name}, scale={scale})"
    )

    return Predictions(
        table=table,
        terms=[t.name for t in parsed],
        response=model.response,
        margin=grid.margin,
        scale=scale,
        engine=eng.name,
        ci_level=ci_level,
        typical=grid.typical,
        averaged=grid.averaged,
        numeric_terms=[t.name for t in parsed if model.kind(t.name) == "numeric"],
    )
