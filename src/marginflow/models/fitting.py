"""Fit linear and generalized linear models from formulas.

Models are fitted with ``statsmodels.formula.api``; the returned
:class:`FittedModel` keeps the complete-case model frame together with the
variable metadata needed to build reference grids for predictions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import re
from typing import Any, List, Set, Tuple

import numpy as np
import pandas as pd
import statsmodels.api as sm
import statsmodels.formula.api as smf
from patsy import ModelDesc, build_design_matrices

logger = logging.getLogger(__name__)

FAMILIES = ("gaussian", "binomial", "poisson")

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_.]*")


def _identifiers(code: str, columns: List[str]) -> List[str]:
    found = []
    for token in _IDENTIFIER.findall(code):
        if token in columns and token not in found:
            found.append(token)
    return found


def _formula_variables(formula: str, columns: List[str]) -> Tuple[str, List[str], Set[str]]:
    """Extract response, predictor columns, and C()-wrapped predictors from a formula."""
    desc = ModelDesc.from_formula(formula)

    lhs_codes = [f.code for term in desc.lhs_termlist for f in term.factors]
    if not lhs_codes:
        raise ValueError(f"Formula has no response: {formula}")

    response_cols = _identifiers(" ".join(lhs_codes), columns)
    if not response_cols:
        raise KeyError(f"Response '{lhs_codes[0]}' not found in data columns")

    variables: List[str] = []
    categorical: Set[str] = set()
    for term in desc.rhs_termlist:
        for factor in term.factors:
            names = _identifiers(factor.code, columns)
            if not names:
                raise KeyError(f"Formula term '{factor.code}' does not reference any data column")
            if factor.code.replace(" ", "").startswith("C("):
                categorical.update(names)
            for name in names:
                if name not in variables:
                    variables.append(name)

    return response_cols[0], variables, categorical


def _make_family(family: str):
    if family == "binomial":
        return sm.families.Binomial()
    if family == "poisson":
        return sm.families.Poisson()
    raise ValueError(f"Unsupported GLM family: {family}")


@dataclass
class FittedModel:
    """A fitted regression model plus the metadata used for predictions.

    Attributes:
        results: statsmodels results object
        formula: Model formula
        family: One of gaussian, binomial, poisson
        response: Response column name
        variables: Predictor column names in formula order
        data: Complete-case model frame used for fitting
        categorical_terms: Numeric columns wrapped in C() in the formula
    """

    results: Any
    formula: str
    family: str
    response: str
    variables: List[str]
    data: pd.DataFrame
    categorical_terms: Set[str] = field(default_factory=set)

    @property
    def nobs(self) -> int:
        return int(self.results.nobs)

    @property
    def params(self) -> np.ndarray:
        return np.asarray(self.results.params, dtype=float)

    @property
    def vcov(self) -> np.ndarray:
        return np.asarray(self.results.cov_params(), dtype=float)

    @property
    def use_t(self) -> bool:
        return bool(getattr(self.results, "use_t", False))

    @property
    def df_resid(self) -> float:
        return float(self.results.df_resid)

    @property
    def design_info(self):
        data = self.results.model.data
        if not hasattr(data, "design_info"):
            raise RuntimeError(
                "Fitted model carries no patsy design info; marginflow needs the "
                "patsy-based formula API of statsmodels 0.14 (pip install 'statsmodels<0.15')"
            )
        return data.design_info

    @property
    def is_glm(self) -> bool:
        return self.family != "gaussian"

    @property
    def link_name(self) -> str:
        if not self.is_glm:
            return "identity"
        return type(self.results.model.family.link).__name__.lower()

    def kind(self, var: str) -> str:
        """Return "numeric" or "categorical" for a predictor."""
        if var not in self.data.columns:
            raise KeyError(f"Variable '{var}' is not part of the model")
        col = self.data[var]
        if var in self.categorical_terms:
            return "categorical"
        if pd.api.types.is_bool_dtype(col) or not pd.api.types.is_numeric_dtype(col):
            return "categorical"
        return "numeric"

    def levels(self, var: str) -> List[Any]:
        """Levels of a categorical predictor, in the order patsy codes them."""
        col = self.data[var]
        if isinstance(col.dtype, pd.CategoricalDtype):
            return list(col.cat.categories)
        return sorted(col.dropna().unique().tolist())

    def reference_level(self, var: str) -> Any:
        """Level a categorical predictor is coded against.

        Read from patsy's contrast coding, so ``C(x, Treatment('b'))`` gives
        ``'b'``. Falls back to the first level when the factor is fully coded
        (no level has an all-zero contrast row).
        """
        levels = self.levels(var)
        info = self.design_info
        for factor, factor_info in info.factor_infos.items():
            if factor_info.type != "categorical" or var not in _identifiers(factor.code, [var]):
                continue
            for subterms in info.term_codings.values():
                for subterm in subterms:
                    contrast = subterm.contrast_matrices.get(factor)
                    if contrast is None:
                        continue
                    zero_rows = np.flatnonzero(~np.asarray(contrast.matrix).any(axis=1))
                    if len(zero_rows) == 1:
                        return factor_info.categories[zero_rows[0]]
        return levels[0]

    def design_matrix(self, frame: pd.DataFrame) -> np.ndarray:
        """Build the model design matrix for new data."""
        (matrix,) = build_design_matrices([self.design_info], frame)
        return np.asarray(matrix, dtype=float)

    def linkinv(self, eta: np.ndarray) -> np.ndarray:
        if not self.is_glm:
            return np.asarray(eta, dtype=float)
        return self.results.model.family.link.inverse(eta)

    def mu_eta(self, eta: np.ndarray) -> np.ndarray:
        """Derivative of the inverse link with respect to the linear predictor."""
        if not self.is_glm:
            return np.ones_like(np.asarray(eta, dtype=float))
        return self.results.model.family.link.inverse_deriv(eta)

    def linkfun(self, mu: np.ndarray) -> np.ndarray:
        if not self.is_glm:
            return np.asarray(mu, dtype=float)
        return self.results.model.family.link(mu)


def fit_model(formula: str, data: pd.DataFrame, family: str = "gaussian") -> FittedModel:
    """Fit a linear or generalized linear model.

    Args:
        formula: patsy formula, e.g. ``"outcome ~ grp * episode + sex"``
        data: Input dataframe
        family: gaussian (OLS), binomial (logit link), or poisson (log link)

    Returns:
        FittedModel

    Raises:
        ValueError: If the family is unknown or the formula has no response
        KeyError: If formula variables are missing from the data
    """
    family = family.lower()
    if family not in FAMILIES:
        raise ValueError(f"family must be one of {list(FAMILIES)}, got {family}")

    columns = [str(c) for c in data.columns]
    response, variables, categorical = _formula_variables(formula, columns)

    model_data = data[[response] + variables].dropna()
    n_dropped = len(data) - len(model_data)
    if n_dropped:
        logger.info(f"Dropped {n_dropped} rows with missing values in model variables")
    model_data = model_data.reset_index(drop=True)

    if family == "gaussian":
        results = smf.ols(formula, data=model_data).fit()
    else:
        results = smf.glm(formula, data=model_data, family=_make_family(family)).fit()

    logger.info(f"Fitted {family} model '{formula}' on {len(model_data)} rows")

    return FittedModel(
        results=results,
        formula=formula,
        family=family,
        response=response,
        variables=variables,
        data=model_data,
        categorical_terms=categorical,
    )


def coefficient_table(model: FittedModel, ci_level: float = 0.95) -> pd.DataFrame:
    """Coefficient estimates with standard errors, tests, and confidence intervals.

    Returns:
        DataFrame with columns: term, estimate, std_error, statistic, p_value,
        conf_low, conf_high
    """
    res = model.results
    ci = res.conf_int(alpha=1 - ci_level)
    return pd.DataFrame(
        {
            "term": list(res.params.index),
            "estimate": res.params.to_numpy(),
            "std_error": res.bse.to_numpy(),
            "statistic": res.tvalues.to_numpy(),
            "p_value": res.pvalues.to_numpy(),
            "conf_low": ci.iloc[:, 0].to_numpy(),
            "conf_high": ci.iloc[:, 1].to_numpy(),
        }
    )
