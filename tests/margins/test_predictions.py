"""Tests for marginal predictions."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from marginflow.margins import predict_response


def test_mean_reference_matches_model_predict(treatment_model):
    pred = predict_response(treatment_model, ["episode", "grp"])
    assert len(pred) == 6
    assert list(pred.table.columns[:2]) == ["episode", "grp"]

    newdata = pred.table[["episode", "grp"]].copy()
    newdata["sex"] = "female"
    newdata["age"] = treatment_model.data["age"].mean()
    expected = treatment_model.results.predict(newdata)
    np.testing.assert_allclose(pred.table["predicted"], expected)


def test_confidence_intervals_match_statsmodels(treatment_model):
    pred = predict_response(treatment_model, "grp")
    newdata = pd.DataFrame(
        {
            "grp": ["control", "treatment"],
            "episode": "1",
            "sex": "female",
            "age": treatment_model.data["age"].mean(),
        }
    )
    frame = treatment_model.results.get_prediction(newdata).summary_frame(alpha=0.05)
    np.testing.assert_allclose(pred.table["std_error"], frame["mean_se"])
    np.testing.assert_allclose(pred.table["conf_low"], frame["mean_ci_lower"])
    np.testing.assert_allclose(pred.table["conf_high"], frame["mean_ci_upper"])


def test_marginalmeans_averages_factor_levels(treatment_model):
    pred = predict_response(treatment_model, "grp", margin="marginalmeans")
    age = treatment_model.data["age"].mean()
    cells = pd.DataFrame(
        [
            {"grp": g, "episode": e, "sex": s, "age": age}
            for g in ["control", "treatment"]
            for e in ["1", "2", "3"]
            for s in ["female", "male"]
        ]
    )
    cells["fit"] = treatment_model.results.predict(cells)
    expected = cells.groupby("grp", sort=True)["fit"].mean().to_numpy()
    np.testing.assert_allclose(pred.table["predicted"], expected)
    assert set(pred.averaged) == {"episode", "sex"}


def test_empirical_is_counterfactual_average(additive_model):
    pred = predict_response(additive_model, "grp", margin="empirical")
    data = additive_model.data
    expected = [
        additive_model.results.predict(data.assign(grp=level)).mean()
        for level in ["control", "treatment"]
    ]
    np.testing.assert_allclose(pred.table["predicted"], expected)


def test_glm_response_intervals_stay_in_unit_interval(logit_model):
    pred = predict_response(logit_model, ["education", "grp"])
    assert ((pred.table["conf_low"] > 0) & (pred.table["conf_high"] < 1)).all()
    assert (pred.table["conf_low"] < pred.table["predicted"]).all()
    assert (pred.table["predicted"] < pred.table["conf_high"]).all()


def test_link_scale_is_log_odds(logit_model):
    response = predict_response(logit_model, "grp")
    link = predict_response(logit_model, "grp", scale="link")
    np.testing.assert_allclose(logit_model.linkinv(link.table["predicted"]), response.table["predicted"])


def test_numeric_focal_term(treatment_model):
    pred = predict_response(treatment_model, ["age [30, 50, 70]", "grp"])
    assert len(pred) == 6
    assert pred.numeric_terms == ["age"]


def test_format_has_header_and_footer(treatment_model):
    text = predict_response(treatment_model, "grp").format()
    assert text.startswith("# Predicted values of outcome")
    assert "Adjusted for:" in text
    assert "sex = female" in text
    assert "95% CI" in text


@pytest.mark.parametrize(
    "kwargs, match",
    [
        ({"scale": "odds_ratios"}, "scale must be one of"),
        ({"ci_level": 1.5}, "ci_level"),
        ({"margin": "typical"}, "margin must be one of"),
        ({"engine": "stata"}, "Unsupported engine"),
    ],
)
def test_invalid_arguments(treatment_model, kwargs, match):
    with pytest.raises(ValueError, match=match):
        predict_response(treatment_model, "grp", **kwargs)


def test_no_terms(treatment_model):
    with pytest.raises(ValueError, match="At least one focal term"):
        predict_response(treatment_model, [])
