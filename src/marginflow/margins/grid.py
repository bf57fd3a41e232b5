"""Reference grids: which rows are predicted and how they are averaged.

The margin option decides what happens to the non-focal predictors:

- ``mean_reference``: numeric at their mean, factors at the reference level
- ``mean_mode``: numeric at their mean, factors at their most frequent level
- ``marginalmeans``: numeric at their mean, factors crossed over all levels
  and averaged with equal weights on the link scale
- ``empirical``: every observed row is predicted with the focal values
  substituted (counterfactual data) and the predictions are averaged on the
  response scale
"""

from __future__ import annotations

from dataclasses import dataclass, field
import itertools
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from marginflow.models import FittedModel
from marginflow.margins.terms import FocalTerm, resolve_values

logger = logging.getLogger(__name__)

MARGINS = ("mean_reference", "mean_mode", "marginalmeans", "empirical")

FOCAL_ID = "_focal_id"


def validate_margin(margin: str) -> str:
    margin = margin.lower()
    if margin not in MARGINS:
        raise ValueError(f"margin must be one of {list(MARGINS)}, got {margin}")
    return margin


@dataclass
class ReferenceGrid:
    """Prediction rows and the averaging that maps them to focal combinations.

    Attributes:
        focal: One row per focal-value combination (columns = focal terms)
        rows: Rows passed to the model, tagged with their focal row id
        weights: Averaging matrix of shape (n_focal, n_rows)
        average_on: Scale on which rows are averaged ("link" or "response")
        margin: Margin option used to build the grid
        typical: Values at which non-focal predictors were held
        averaged: Non-focal predictors averaged over instead of held fixed
        slope: Numeric predictor whose slope is evaluated, if any
        step: Finite-difference step for the slope
    """

    focal: pd.DataFrame
    rows: pd.DataFrame
    weights: np.ndarray
    average_on: str
    margin: str
    typical: Dict[str, Any] = field(default_factory=dict)
    averaged: List[str] = field(default_factory=list)
    slope: Optional[str] = None
    step: float = 0.0

    @property
    def n_focal(self) -> int:
        return len(self.focal)

    @property
    def focal_names(self) -> List[str]:
        return list(self.focal.columns)

    def slope_rows(self) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """Rows shifted half a step below and above the slope variable."""
        if self.slope is None:
            raise ValueError("Grid was not built for a slope")
        lo = self.rows.copy()
        hi = self.rows.copy()
        lo[self.slope] = lo[self.slope] - self.step / 2
        hi[self.slope] = hi[self.slope] + self.step / 2
        return lo, hi


def _mode(values: pd.Series) -> Any:
    mode = values.mode(dropna=True)
    return mode.iloc[0]


def _averaging_weights(focal_ids: np.ndarray, n_focal: int) -> np.ndarray:
    weights = np.zeros((n_focal, len(focal_ids)))
    for g in range(n_focal):
        mask = focal_ids == g
        weights[g, mask] = 1.0 / mask.sum()
    return weights


def _focal_frame(model: FittedModel, terms: Sequence[FocalTerm]) -> pd.DataFrame:
    if not terms:
        return pd.DataFrame(index=pd.RangeIndex(1))
    values = [resolve_values(t, model) for t in terms]
    combos = list(itertools.product(*values))
    return pd.DataFrame(combos, columns=[t.name for t in terms])


def build_reference_grid(
    model: FittedModel,
    terms: Sequence[FocalTerm],
    margin: str = "mean_reference",
    condition: Optional[Dict[str, Any]] = None,
    slope: Optional[str] = None,
) -> ReferenceGrid:
    """Build the reference grid for a set of focal terms.

    Args:
        model: Fitted model
        terms: Parsed focal terms
        margin: Strategy for non-focal predictors (see MARGINS)
        condition: Fixed values for non-focal predictors
        slope: Numeric predictor whose slope is requested; it is treated as
            non-focal (held at its mean, or observed values for "empirical")

    Returns:
        ReferenceGrid

    Raises:
        ValueError: If margin, condition or slope are invalid
    """
    margin = validate_margin(margin)
    condition = dict(condition or {})
    focal_names = [t.name for t in terms]

    unknown = [k for k in condition if k not in model.variables]
    if unknown:
        raise ValueError(f"condition refers to non-predictors: {unknown}")

    overlap = [k for k in condition if k in focal_names or k == slope]
    if overlap:
        raise ValueError(f"condition cannot fix focal terms: {overlap}")

    if slope is not None:
        if slope in focal_names:
            raise ValueError(f"Slope variable '{slope}' cannot also be a grouping term")
        if model.kind(slope) != "numeric":
            raise ValueError(f"Slopes require a numeric predictor, '{slope}' is categorical")

    focal = _focal_frame(model, terms)
    n_focal = len(focal)
    base = focal.copy()
    base[FOCAL_ID] = np.arange(n_focal)

    others = [v for v in model.variables if v not in focal_names and v not in condition]
    typical: Dict[str, Any] = dict(condition)
    averaged: List[str] = []

    if margin == "empirical":
        observed = model.data[others].reset_index(drop=True)
        rows = base.merge(observed, how="cross")
        for key, value in condition.items():
            rows[key] = value
        averaged = list(others)
        average_on = "response"
    else:
        for var in others:
            if model.kind(var) == "numeric":
                typical[var] = float(model.data[var].mean())
            elif margin == "mean_reference":
                typical[var] = model.reference_level(var)
            elif margin == "mean_mode":
                typical[var] = _mode(model.data[var])
            else:
                averaged.append(var)

        rows = base
        if averaged:
            crossed = pd.DataFrame(
                list(itertools.product(*[model.levels(v) for v in averaged])),
                columns=averaged,
            )
            rows = rows.merge(crossed, how="cross")
        for key, value in typical.items():
            rows[key] = value
        average_on = "link" if margin == "marginalmeans" else "response"

    rows = rows.sort_values(FOCAL_ID, kind="stable").reset_index(drop=True)
    weights = _averaging_weights(rows[FOCAL_ID].to_numpy(), n_focal)

    step = 0.0
    if slope is not None:
        sd = float(model.data[slope].std(ddof=1))
        step = 1e-4 * sd if np.isfinite(sd) and sd > 0 else 1e-4

    logger.debug(
        f"Reference grid ({margin}): {n_focal} focal rows, {len(rows)} prediction rows"
    )

    return ReferenceGrid(
        focal=focal.reset_index(drop=True),
        rows=rows,
        weights=weights,
        average_on=average_on,
        margin=margin,
        typical=typical,
        averaged=averaged,
        slope=slope,
        step=step,
    )
