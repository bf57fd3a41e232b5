"""Delta-method engine built on the statsmodels parameter covariance."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Tuple

import numpy as np
import pandas as pd

from marginflow.backends.base import Engine, Estimates, critical_value
from marginflow.models import FittedModel

if TYPE_CHECKING:
    from marginflow.margins.grid import ReferenceGrid

logger = logging.getLogger(__name__)


class StatsmodelsEngine(Engine):
    """Predictions and contrasts from ``results.params`` and ``cov_params()``.

    Gradients with respect to the coefficients are analytic: the design
    matrix from patsy times the derivative of the inverse link.
    """

    name = "statsmodels"

    def _quantities(
        self, model: FittedModel, grid: ReferenceGrid, rows: pd.DataFrame, scale: str
    ) -> Tuple[np.ndarray, np.ndarray]:
        X = model.design_matrix(rows)
        eta = X @ model.params
        W = grid.weights

        if scale == "link" or grid.average_on == "link":
            eta_g = W @ eta
            jac = W @ X
            if scale == "link":
                return eta_g, jac
            return model.linkinv(eta_g), model.mu_eta(eta_g)[:, None] * jac

        mu = model.linkinv(eta)
        return W @ mu, W @ (model.mu_eta(eta)[:, None] * X)

    def focal_quantities(
        self, model: FittedModel, grid: ReferenceGrid, scale: str
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Focal-level values and their jacobian with respect to the coefficients."""
        if grid.slope is None:
            return self._quantities(model, grid, grid.rows, scale)

        lo, hi = grid.slope_rows()
        g_lo, jac_lo = self._quantities(model, grid, lo, scale)
        g_hi, jac_hi = self._quantities(model, grid, hi, scale)
        return (g_hi - g_lo) / grid.step, (jac_hi - jac_lo) / grid.step

    def combine(
        self, model: FittedModel, grid: ReferenceGrid, L: np.ndarray, scale: str
    ) -> Estimates:
        g, jac = self.focal_quantities(model, grid, scale)
        L = np.atleast_2d(L)
        grad = L @ jac
        cov = grad @ model.vcov @ grad.T
        return Estimates(
            estimate=L @ g,
            std_error=np.sqrt(np.clip(np.diag(cov), 0.0, None)),
        )

    def predict(
        self, model: FittedModel, grid: ReferenceGrid, scale: str, ci_level: float
    ) -> pd.DataFrame:
        """Predictions; response-scale intervals are back-transformed from the link scale.

        Back-transformation applies whenever the focal prediction is a
        monotone function of a link-scale quantity: no averaging, or
        averaging on the link scale.
        """
        single_row = bool(np.allclose(grid.weights.max(axis=1), 1.0))
        transform = (
            scale == "response"
            and model.is_glm
            and grid.slope is None
            and (single_row or grid.average_on == "link")
        )
        if not transform:
            return super().predict(model, grid, scale, ci_level)

        eye = np.eye(grid.n_focal)
        link = self.combine(model, grid, eye, "link")
        response = self.combine(model, grid, eye, "response")
        crit = critical_value(model, ci_level)
        return pd.DataFrame(
            {
                "predicted": model.linkinv(link.estimate),
                "std_error": response.std_error,
                "conf_low": model.linkinv(link.estimate - crit * link.std_error),
                "conf_high": model.linkinv(link.estimate + crit * link.std_error),
            }
        )
