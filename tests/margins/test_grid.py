"""Tests for reference grids and margin options."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from marginflow.margins import predict_response
from marginflow.margins.grid import FOCAL_ID, build_reference_grid
from marginflow.margins.terms import parse_terms
from marginflow.models import fit_model


def test_mean_reference(treatment_model):
    grid = build_reference_grid(treatment_model, parse_terms("grp"), "mean_reference")
    assert grid.n_focal == 2
    assert len(grid.rows) == 2
    assert grid.typical["sex"] == "female"
    assert grid.typical["age"] == pytest.approx(treatment_model.data["age"].mean())
    assert grid.typical["episode"] == "1"
    np.testing.assert_allclose(grid.weights, np.eye(2))


def test_mean_mode(treatment_model):
    grid = build_reference_grid(treatment_model, parse_terms("grp"), "mean_mode")
    assert grid.typical["sex"] == treatment_model.data["sex"].mode().iloc[0]


def test_marginalmeans_crosses_factor_levels(treatment_model):
    grid = build_reference_grid(treatment_model, parse_terms("grp"), "marginalmeans")
    assert set(grid.averaged) == {"episode", "sex"}
    assert len(grid.rows) == 2 * 3 * 2
    assert grid.average_on == "link"
    np.testing.assert_allclose(grid.weights.sum(axis=1), 1.0)
    np.testing.assert_allclose(grid.weights[0][grid.weights[0] > 0], 1 / 6)


def test_empirical_uses_observed_rows(treatment_model):
    grid = build_reference_grid(treatment_model, parse_terms(["grp", "episode"]), "empirical")
    assert len(grid.rows) == 6 * treatment_model.nobs
    assert grid.average_on == "response"
    assert (grid.rows.groupby(FOCAL_ID).size() == treatment_model.nobs).all()


def test_condition(treatment_model):
    grid = build_reference_grid(
        treatment_model, parse_terms("grp"), "mean_reference", condition={"sex": "male", "age": 30}
    )
    assert (grid.rows["sex"] == "male").all()
    assert (grid.rows["age"] == 30).all()
    assert grid.typical["sex"] == "male"


def test_condition_errors(treatment_model):
    with pytest.raises(ValueError, match="non-predictors"):
        build_reference_grid(treatment_model, parse_terms("grp"), condition={"income": 1})
    with pytest.raises(ValueError, match="cannot fix focal"):
        build_reference_grid(treatment_model, parse_terms("grp"), condition={"grp": "control"})


def test_invalid_margin(treatment_model):
    with pytest.raises(ValueError, match="margin must be one of"):
        build_reference_grid(treatment_model, parse_terms("grp"), "average")


def test_slope_grid(treatment_model):
    grid = build_reference_grid(treatment_model, parse_terms("grp"), slope="age")
    lo, hi = grid.slope_rows()
    np.testing.assert_allclose(hi["age"] - lo["age"], grid.step)
    assert grid.step > 0


def test_slope_must_be_numeric(treatment_model):
    with pytest.raises(ValueError, match="numeric predictor"):
        build_reference_grid(treatment_model, parse_terms("episode"), slope="sex")


def test_mean_reference_uses_custom_treatment_reference(treatment_df):
    model = fit_model("outcome ~ C(sex, Treatment('male')) + grp", treatment_df)
    assert model.reference_level("sex") == "male"

    grid = build_reference_grid(model, parse_terms("grp"), "mean_reference")
    assert grid.typical["sex"] == "male"

    pred = predict_response(model, "grp")
    expected = model.results.predict(
        pd.DataFrame({"sex": ["male", "male"], "grp": ["control", "treatment"]})
    )
    np.testing.assert_allclose(pred.table["predicted"], np.asarray(expected))


def test_reference_level_defaults_to_first_level(treatment_model):
    assert treatment_model.reference_level("sex") == "female"
    assert treatment_model.reference_level("episode") == "1"
