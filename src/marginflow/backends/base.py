"""Engine interface shared by the estimation backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Tuple

import numpy as np
import pandas as pd
from scipy import stats

from marginflow.models import FittedModel

if TYPE_CHECKING:
    from marginflow.margins.grid import ReferenceGrid

SCALES = ("response", "link")


@dataclass
class Estimates:
    """Point estimates and standard errors of linear combinations."""

    estimate: np.ndarray
    std_error: np.ndarray


def reference_distribution(model: FittedModel) -> Tuple[str, float]:
    """Distribution used for tests: ("t", df_resid) for OLS, ("z", inf) otherwise."""
    if model.use_t:
        return "t", model.df_resid
    return "z", np.inf


def critical_value(model: FittedModel, ci_level: float) -> float:
    q = 1 - (1 - ci_level) / 2
    dist, df = reference_distribution(model)
    if dist == "t":
        return float(stats.t.ppf(q, df))
    return float(stats.norm.ppf(q))


def two_sided_pvalue(statistic: np.ndarray, model: FittedModel) -> np.ndarray:
    dist, df = reference_distribution(model)
    statistic = np.abs(np.asarray(statistic, dtype=float))
    if dist == "t":
        return 2 * stats.t.sf(statistic, df)
    return 2 * stats.norm.sf(statistic)


class Engine(ABC):
    """Computes focal-level quantities of a reference grid and their combinations."""

    name: str = ""

    @abstractmethod
    def combine(
        self, model: FittedModel, grid: ReferenceGrid, L: np.ndarray, scale: str
    ) -> Estimates:
        """Estimate ``L @ g`` where g holds one quantity per focal row.

        g is the (averaged) prediction, or the slope when the grid carries a
        slope variable, on the requested scale.
        """

    def predict(
        self, model: FittedModel, grid: ReferenceGrid, scale: str, ci_level: float
    ) -> pd.DataFrame:
        """Predictions with symmetric Wald confidence intervals."""
        est = self.combine(model, grid, np.eye(grid.n_focal), scale)
        crit = critical_value(model, ci_level)
        return pd.DataFrame(
            {
                "predicted": est.estimate,
                "std_error": est.std_error,
                "conf_low": est.estimate - crit * est.std_error,
                "conf_high": est.estimate + crit * est.std_error,
            }
        )
