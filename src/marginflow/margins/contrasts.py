"""Pairwise comparisons, contrasts, slopes and difference-in-differences.

All tests are linear combinations ``L @ g`` of the focal-level quantities
``g`` of a reference grid (predictions, or slopes for a numeric focal term
given without values). This module only builds ``L`` and the labels; the
engines estimate the combinations and their standard errors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import itertools
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from statsmodels.stats.multitest import multipletests

from marginflow.backends.base import critical_value, reference_distribution, two_sided_pvalue
from marginflow.backends.registry import get_engine
from marginflow.models import FittedModel
from marginflow.margins.config import (
    CONTRAST_SCALES,
    is_hypothesis_string,
    validate_ci_level,
    validate_p_adjust,
    validate_test,
)
from marginflow.margins.grid import build_reference_grid
from marginflow.margins.hypothesis import hypothesis_weights
from marginflow.margins.reports import format_estimate_table
from marginflow.margins.terms import FocalTerm, format_level, parse_terms

logger = logging.getLogger(__name__)

_TITLES = {
    None: "Hypothesis tests",
    "pairwise": "Pairwise comparisons",
    "consecutive": "Consecutive contrasts",
    "reference": "Comparisons with the reference level",
    "contrast": "Contrasts against the average",
    "interaction": "Interaction contrasts (difference-in-differences)",
}


@dataclass
class ContrastResult:
    """One row per tested difference.

    Attributes:
        table: Label columns, then estimate, std_error, statistic, df,
            p_value, conf_low, conf_high
        label_cols: Columns describing each contrast
        test: Test type (None, named test, or hypothesis equation)
        scale: response, link, exp, or odds_ratios
        engine: Engine that produced the estimates
        margin: Margin option used for non-focal predictors
        p_adjust: Multiplicity adjustment method (None = unadjusted)
        ci_level: Confidence level of the intervals
        response: Name of the response variable
        slope: Numeric focal term whose slope was tested, if any
        typical: Values at which non-focal predictors were held
        focal: Focal rows the contrasts are built from
        weights: Contrast matrix over the focal rows
    """

    table: pd.DataFrame
    label_cols: List[str]
    test: Optional[str]
    scale: str
    engine: str
    margin: str
    p_adjust: Optional[str]
    ci_level: float
    response: str
    slope: Optional[str] = None
    typical: Dict[str, Any] = field(default_factory=dict)
    focal: Optional[pd.DataFrame] = None
    weights: Optional[np.ndarray] = None

    def __len__(self) -> int:
        return len(self.table)

    def to_frame(self) -> pd.DataFrame:
        return self.table.copy()

    def significant(self, alpha: float = 0.05) -> pd.DataFrame:
        """Rows with p_value below alpha."""
        return self.table[self.table["p_value"] < alpha].reset_index(drop=True)

    @property
    def estimate_label(self) -> str:
        if self.scale in ("exp", "odds_ratios"):
            return "Ratio"
        if self.slope is not None:
            return "Slope"
        return "Contrast"

    @property
    def null_value(self) -> float:
        return 1.0 if self.scale in ("exp", "odds_ratios") else 0.0

    def format(self, digits: int = 2) -> str:
        title = _TITLES.get(self.test, "Hypothesis test")
        if self.slope is not None:
            title = f"{title}: slope of {self.slope}"
        lines = [f"# {title}", ""]

        display = format_estimate_table(
            self.table,
            label_cols=self.label_cols,
            estimate_col="estimate",
            estimate_label=self.estimate_label,
            ci_level=self.ci_level,
            digits=digits,
        )
        lines.append(display.to_string(index=False))

        notes = []
        if self.scale == "link":
            notes.append("Contrasts are presented on the link scale.")
        elif self.scale in ("exp", "odds_ratios"):
            notes.append("Contrasts are exponentiated link-scale differences (ratios).")
        if self.p_adjust:
            notes.append(f"p-values are adjusted using the {self.p_adjust} method.")
        if notes:
            lines.extend([""] + notes)
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.format()

    def plot(self, render=None, ax=None):
        """Forest plot; see :func:`marginflow.margins.viz.plot_contrast_estimates`."""
        from marginflow.margins.viz import plot_contrast_estimates

        return plot_contrast_estimates(self, render=render, ax=ax)


def _pairs(n: int, test: str) -> List[Tuple[int, int]]:
    """Index pairs (i, j) meaning b_i - b_j within a stratum."""
    if test == "pairwise":
        return list(itertools.combinations(range(n), 2))
    if test == "consecutive":
        return [(i + 1, i) for i in range(n - 1)]
    if test == "reference":
        return [(i, 0) for i in range(1, n)]
    raise ValueError(f"Not a pairwise-type test: {test}")


def _strata(focal: pd.DataFrame, by: List[str]) -> List[Tuple[Dict[str, Any], List[int]]]:
    if not by:
        return [({}, list(range(len(focal))))]
    out = []
    for key, sub in focal.groupby(by, sort=False):
        key = key if isinstance(key, tuple) else (key,)
        out.append((dict(zip(by, key)), list(sub.index)))
    return out


def build_contrast_matrix(
    focal: pd.DataFrame,
    compare: List[str],
    by: List[str],
    test: Optional[str],
) -> Tuple[np.ndarray, np.ndarray, pd.DataFrame]:
    """Weights, constant offsets, and labels for a test over focal rows.

    Args:
        focal: Focal rows of the reference grid
        compare: Columns whose levels are compared
        by: Columns within whose levels comparisons are made
        test: None, a named test, or a hypothesis equation

    Returns:
        Tuple of (L with one row per contrast, offsets, label frame)

    Raises:
        ValueError: If the test cannot be formed from the focal rows
    """
    n = len(focal)

    if test is None:
        labels = pd.DataFrame(
            {c: focal[c].map(format_level) for c in compare + by}, index=focal.index
        )
        return np.eye(n), np.zeros(n), labels

    if is_hypothesis_string(test):
        w, const = hypothesis_weights(test, n)
        return w[None, :], np.array([const]), pd.DataFrame({"hypothesis": [test]})

    rows: List[np.ndarray] = []
    labels: List[Dict[str, str]] = []

    for by_values, idx in _strata(focal, by):
        by_labels = {c: format_level(v) for c, v in by_values.items()}
        sub = focal.loc[idx, compare]
        level = {i: [format_level(v) for v in sub.loc[i]] for i in idx}

        if test == "interaction":
            if len(compare) != 2:
                raise ValueError(
                    "Interaction contrasts need exactly two categorical focal terms "
                    f"(besides 'by'), got {compare}"
                )
            a_levels = list(dict.fromkeys(sub[compare[0]]))
            b_levels = list(dict.fromkeys(sub[compare[1]]))
            cell = {(r[compare[0]], r[compare[1]]): i for i, r in sub.iterrows()}
            for a1, a2 in itertools.combinations(a_levels, 2):
                for b1, b2 in itertools.combinations(b_levels, 2):
                    w = np.zeros(n)
                    w[cell[(a1, b1)]] += 1
                    w[cell[(a2, b1)]] -= 1
                    w[cell[(a1, b2)]] -= 1
                    w[cell[(a2, b2)]] += 1
                    rows.append(w)
                    labels.append(
                        {
                            compare[0]: f"{format_level(a1)}-{format_level(a2)}",
                            compare[1]: f"{format_level(b1)}-{format_level(b2)}",
                            **by_labels,
                        }
                    )
            continue

        if len(idx) < 2:
            raise ValueError(f"'{test}' needs at least two estimates to compare, got {len(idx)}")

        if test == "contrast":
            k = len(idx)
            for i in idx:
                w = np.zeros(n)
                w[idx] = -1.0 / k
                w[i] += 1.0
                rows.append(w)
                labels.append({**dict(zip(compare, level[i])), **by_labels})
            continue

        for a, b in _pairs(len(idx), test):
            i, j = idx[a], idx[b]
            w = np.zeros(n)
            w[i], w[j] = 1.0, -1.0
            rows.append(w)
            labels.append(
                {
                    **{c: f"{li}-{lj}" for c, li, lj in zip(compare, level[i], level[j])},
                    **by_labels,
                }
            )

    if not rows:
        raise ValueError(f"No contrasts could be formed for test '{test}'")

    label_frame = pd.DataFrame(labels, columns=compare + by)
    return np.vstack(rows), np.zeros(len(rows)), label_frame


def test_predictions(
    model: FittedModel,
    terms: Union[str, FocalTerm, Sequence[Union[str, FocalTerm]]],
    by: Union[str, FocalTerm, Sequence[Union[str, FocalTerm]], None] = None,
    test: Optional[str] = "pairwise",
    margin: str = "mean_reference",
    scale: str = "response",
    engine: Optional[str] = "statsmodels",
    p_adjust: Optional[str] = None,
    ci_level: float = 0.95,
    condition: Optional[Dict[str, Any]] = None,
) -> ContrastResult:
    """Test differences between predictions (or slopes) of focal terms.

    A numeric first focal term given without values (e.g. "hours") is
    treated as a slope: its slope is estimated for each combination of the
    remaining focal terms, and those slopes are compared.

    Args:
        model: Fitted model
        terms: Focal terms whose predictions are compared
        by: Focal terms within whose levels comparisons are made
        test: None (each estimate against zero), "pairwise", "consecutive",
            "reference", "contrast", "interaction", or an equation such as
            "b1 = b2"
        margin: mean_reference, mean_mode, marginalmeans, or empirical
        scale: "response", "link", or "exp" / "odds_ratios" (exponentiated
            link-scale contrasts)
        engine: statsmodels (default) or marginaleffects
        p_adjust: Multiplicity adjustment (holm, bonferroni, sidak, fdr_bh,
            fdr_by, hommel) or None
        ci_level: Confidence level (default: 0.95)
        condition: Fixed values for non-focal predictors

    Returns:
        ContrastResult

    Raises:
        ValueError: For invalid arguments, including an exponentiated scale
            for slopes of a numeric focal term
    """
    scale = scale.lower()
    if scale not in CONTRAST_SCALES:
        raise ValueError(f"scale must be one of {list(CONTRAST_SCALES)}, got {scale}")
    exponentiate = scale in ("exp", "odds_ratios")
    engine_scale = "response" if scale == "response" else "link"

    test = validate_test(test)
    p_adjust = validate_p_adjust(p_adjust)
    ci_level = validate_ci_level(ci_level)

    focal_terms = parse_terms(terms)
    by_terms = parse_terms(by)
    if not focal_terms:
        raise ValueError("At least one focal term is required")
    parse_terms(focal_terms + by_terms)

    slope = None
    group_terms = focal_terms
    first = focal_terms[0]
    if (
        first.name in model.variables
        and model.kind(first.name) == "numeric"
        and not first.has_selection
    ):
        slope = first.name
        group_terms = focal_terms[1:]
        if exponentiate:
            raise ValueError(
                f"scale='{scale}' is not available for slopes of the numeric focal term "
                f"'{slope}'. Use scale='link' or scale='response', or give values, "
                f"e.g. '{slope} [10, 20]'."
            )
        if not group_terms and not by_terms and test is not None and not is_hypothesis_string(test):
            logger.info(f"Single slope of '{slope}': testing it against zero")
            test = None

    grid = build_reference_grid(model, group_terms + by_terms, margin, condition, slope)
    compare = [t.name for t in group_terms]
    by_names = [t.name for t in by_terms]

    L, offset, labels = build_contrast_matrix(grid.focal, compare, by_names, test)
    if slope is not None and labels.columns.empty:
        labels.insert(0, "term", slope)

    eng = get_engine(engine)
    est = eng.combine(model, grid, L, engine_scale)
    estimate = est.estimate + offset
    std_error = est.std_error

    with np.errstate(divide="ignore", invalid="ignore"):
        statistic = np.where(std_error > 0, estimate / std_error, np.nan)
    p_value = two_sided_pvalue(statistic, model)
    if p_adjust is not None and len(p_value) > 1:
        finite = np.isfinite(p_value)
        adjusted = p_value.copy()
        adjusted[finite] = multipletests(p_value[finite], method=p_adjust)[1]
        p_value = adjusted

    crit = critical_value(model, ci_level)
    conf_low = estimate - crit * std_error
    conf_high = estimate + crit * std_error
    if exponentiate:
        std_error = np.exp(estimate) * std_error
        estimate, conf_low, conf_high = np.exp(estimate), np.exp(conf_low), np.exp(conf_high)

    _, df = reference_distribution(model)
    table = labels.reset_index(drop=True).copy()
    table["estimate"] = estimate
    table["std_error"] = std_error
    table["statistic"] = statistic
    table["df"] = df
    table["p_value"] = p_value
    table["conf_low"] = conf_low
    table["conf_high"] = conf_high

    logger.info(
        f"Tested {len(table)} contrasts (test={test}, scale={scale}, engine={eng.name}, "
        f"margin={grid.margin})"
    )

    return ContrastResult(
        table=table,
        label_cols=list(labels.columns),
        test=test,
        scale=scale,
        engine=eng.name,
        margin=grid.margin,
        p_adjust=p_adjust,
        ci_level=ci_level,
        response=model.response,
        slope=slope,
        typical=grid.typical,
        focal=grid.focal,
        weights=L,
    )


# Public API name, not a pytest test function
test_predictions.__test__ = False
