"""Regression model fitting on top of statsmodels formulas."""

from marginflow.models.fitting import (
    FAMILIES,
    FittedModel,
    fit_model,
    coefficient_table,
)

__all__ = ["FAMILIES", "FittedModel", "fit_model", "coefficient_table"]
