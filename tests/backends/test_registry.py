"""Tests for engine selection and the shared test distribution."""

from __future__ import annotations

import numpy as np
import pytest
from scipy import stats

from marginflow.backends import ENGINE_NAMES, available_engines, get_engine
from marginflow.backends.base import critical_value, reference_distribution, two_sided_pvalue
from marginflow.backends.marginaleffects_engine import HAS_MARGINALEFFECTS


def test_default_engine():
    assert get_engine().name == "statsmodels"
    assert get_engine(None).name == "statsmodels"
    assert get_engine("StatsModels").name == "statsmodels"


def test_unknown_engine():
    with pytest.raises(ValueError, match="Unsupported engine"):
        get_engine("stata")


def test_available_engines():
    engines = available_engines()
    assert set(engines) == set(ENGINE_NAMES)
    assert engines["statsmodels"] is True
    assert engines["marginaleffects"] is HAS_MARGINALEFFECTS


@pytest.mark.skipif(HAS_MARGINALEFFECTS, reason="marginaleffects is installed")
def test_missing_marginaleffects_has_install_hint():
    with pytest.raises(ImportError, match="pip install marginflow\\[marginaleffects\\]"):
        get_engine("marginaleffects")


def test_t_distribution_for_ols(treatment_model):
    dist, df = reference_distribution(treatment_model)
    assert dist == "t"
    assert df == treatment_model.df_resid
    assert critical_value(treatment_model, 0.95) == pytest.approx(stats.t.ppf(0.975, df))


def test_normal_distribution_for_glm(logit_model):
    assert reference_distribution(logit_model)[0] == "z"
    assert critical_value(logit_model, 0.90) == pytest.approx(stats.norm.ppf(0.95))
    np.testing.assert_allclose(two_sided_pvalue(np.array([1.96]), logit_model), [0.05], atol=1e-3)


def test_combine_identity_matches_predict(treatment_model):
    from marginflow.margins.grid import build_reference_grid
    from marginflow.margins.terms import parse_terms

    engine = get_engine("statsmodels")
    grid = build_reference_grid(treatment_model, parse_terms("episode"))
    est = engine.combine(treatment_model, grid, np.eye(grid.n_focal), "response")
    table = engine.predict(treatment_model, grid, "response", 0.95)
    np.testing.assert_allclose(est.estimate, table["predicted"])
    np.testing.assert_allclose(est.std_error, table["std_error"])
