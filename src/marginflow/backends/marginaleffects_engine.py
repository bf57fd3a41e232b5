"""Engine delegating predictions and linear hypotheses to marginaleffects."""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from marginflow.backends.base import Engine, Estimates
from marginflow.models import FittedModel
from marginflow.margins.grid import FOCAL_ID, ReferenceGrid

logger = logging.getLogger(__name__)

try:
    import marginaleffects
    import polars as pl

    HAS_MARGINALEFFECTS = True
except ImportError:
    HAS_MARGINALEFFECTS = False


class MarginaleffectsEngine(Engine):
    """Row predictions from ``marginaleffects.predictions``.

    Every focal quantity is a linear combination of row predictions (equal
    weights for averaging, +-1/step for slopes), so the whole request is sent
    as one weight matrix through the ``hypothesis`` argument. Estimates are on
    the response scale, so averaging always happens there, never on the link
    scale before back-transformation. Link-scale requests on GLMs are refused.
    """

    name = "marginaleffects"

    def __init__(self):
        if not HAS_MARGINALEFFECTS:
            raise ImportError(
                "The marginaleffects engine requires the marginaleffects and polars packages.\n"
                "Install with: pip install marginflow[marginaleffects]"
            )

    def _newdata(self, model: FittedModel, rows: pd.DataFrame) -> "pl.DataFrame":
        frame = rows.drop(columns=[FOCAL_ID]).reset_index(drop=True)
        # string columns are rejected; factors travel as categoricals with the model's levels
        for var in frame.columns:
            if model.kind(var) == "categorical" and not pd.api.types.is_numeric_dtype(model.data[var]):
                frame[var] = pd.Categorical(frame[var], categories=model.levels(var))
        frame[model.response] = model.data[model.response].iloc[0]
        return pl.from_pandas(frame)

    def combine(
        self, model: FittedModel, grid: ReferenceGrid, L: np.ndarray, scale: str
    ) -> Estimates:
        # predictions() has no prediction-type switch; statsmodels GLMs predict the mean
        if scale == "link" and model.is_glm:
            raise ValueError(
                "The marginaleffects engine only reports response-scale estimates for "
                f"{model.family} models. Use engine='statsmodels' for scale='link' and for "
                "exponentiated contrasts (exp, odds_ratios)."
            )

        L = np.atleast_2d(L)
        if grid.slope is None:
            rows = grid.rows
            weights = L @ grid.weights
        else:
            lo, hi = grid.slope_rows()
            rows = pd.concat([lo, hi], ignore_index=True)
            weights = L @ np.hstack([-grid.weights, grid.weights]) / grid.step

        logger.debug(f"marginaleffects: {len(rows)} rows, {weights.shape[0]} combinations")
        out = marginaleffects.predictions(
            model.results,
            newdata=self._newdata(model, rows),
            hypothesis=weights.T,
        )
        return Estimates(
            estimate=np.asarray(out["estimate"].to_numpy(), dtype=float),
            std_error=np.asarray(out["std_error"].to_numpy(), dtype=float),
        )
