"""Tests for model fitting."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest
from patsy import DesignInfo

from marginflow.data import make_treatment_data
from marginflow.models import coefficient_table, fit_model


def test_gaussian_model(treatment_model):
    assert treatment_model.family == "gaussian"
    assert treatment_model.response == "outcome"
    assert treatment_model.variables == ["grp", "episode", "sex", "age"]
    assert treatment_model.use_t
    assert treatment_model.link_name == "identity"
    assert treatment_model.nobs == 200


def test_binomial_model(logit_model):
    assert logit_model.is_glm
    assert not logit_model.use_t
    assert logit_model.link_name == "logit"
    eta = np.array([-1.0, 0.0, 2.0])
    np.testing.assert_allclose(logit_model.linkfun(logit_model.linkinv(eta)), eta)


def test_poisson_model():
    rng = np.random.default_rng(3)
    df = pd.DataFrame({"x": rng.normal(size=100), "g": rng.choice(["a", "b"], size=100)})
    df["y"] = rng.poisson(np.exp(0.5 + 0.3 * df["x"]))
    model = fit_model("y ~ x + g", df, family="poisson")
    assert model.link_name == "log"


def test_kind_and_levels(treatment_model, did_model):
    assert treatment_model.kind("grp") == "categorical"
    assert treatment_model.kind("age") == "numeric"
    assert treatment_model.levels("episode") == ["1", "2", "3"]
    assert did_model.levels("time") == ["pre", "post"]
    with pytest.raises(KeyError):
        treatment_model.kind("missing")


def test_wrapped_numeric_is_categorical():
    df = make_treatment_data()
    df["episode"] = df["episode"].astype(int)
    model = fit_model("outcome ~ grp + C(episode)", df)
    assert model.kind("episode") == "categorical"
    assert model.levels("episode") == [1, 2, 3]


def test_rows_with_missing_values_dropped():
    df = make_treatment_data(n=50)
    df.loc[[0, 1, 2], "age"] = np.nan
    model = fit_model("outcome ~ grp + age", df)
    assert model.nobs == 47
    assert len(model.data) == 47


def test_unknown_family(treatment_df):
    with pytest.raises(ValueError, match="family must be one of"):
        fit_model("outcome ~ grp", treatment_df, family="gamma")


def test_missing_variable(treatment_df):
    with pytest.raises(KeyError):
        fit_model("outcome ~ grp + income", treatment_df)


def test_missing_response(treatment_df):
    with pytest.raises(ValueError, match="no response"):
        fit_model("~ grp", treatment_df)


def test_coefficient_table(treatment_model):
    table = coefficient_table(treatment_model)
    assert list(table.columns) == [
        "term", "estimate", "std_error", "statistic", "p_value", "conf_low", "conf_high"
    ]
    assert table["term"].iloc[0] == "Intercept"
    assert (table["conf_low"] < table["estimate"]).all()


def test_design_matrix_reproduces_fitted_exog(treatment_model, logit_model):
    for model in (treatment_model, logit_model):
        assert isinstance(model.design_info, DesignInfo)
        np.testing.assert_allclose(model.design_matrix(model.data), model.results.model.exog)
