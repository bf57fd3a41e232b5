"""Agreement between the marginaleffects and statsmodels engines."""

from __future__ import annotations

import numpy as np
import pytest

pytest.importorskip("marginaleffects")
pl = pytest.importorskip("polars")

from marginflow.backends import get_engine
from marginflow.margins import predict_response, test_predictions
from marginflow.margins.grid import FOCAL_ID, build_reference_grid
from marginflow.margins.terms import parse_terms
from marginflow.models import fit_model


def test_predictions_agree_for_linear_model(treatment_model):
    sm = predict_response(treatment_model, ["episode", "grp"])
    me = predict_response(treatment_model, ["episode", "grp"], engine="marginaleffects")
    assert me.engine == "marginaleffects"
    np.testing.assert_allclose(me.table["predicted"], sm.table["predicted"], rtol=1e-6)
    np.testing.assert_allclose(me.table["std_error"], sm.table["std_error"], rtol=1e-3)


def test_pairwise_agrees(treatment_model):
    sm = test_predictions(treatment_model, "grp", by="episode")
    me = test_predictions(treatment_model, "grp", by="episode", engine="marginaleffects")
    np.testing.assert_allclose(me.table["estimate"], sm.table["estimate"], rtol=1e-6)
    np.testing.assert_allclose(me.table["std_error"], sm.table["std_error"], rtol=1e-3)


def test_interaction_agrees(did_model):
    result = test_predictions(
        did_model, ["treatment", "time"], test="interaction", engine="marginaleffects"
    )
    name = "treatment[T.treated]:time[T.post]"
    assert result.table.loc[0, "estimate"] == pytest.approx(did_model.results.params[name], rel=1e-6)


def test_empirical_risk_difference_agrees(logit_model):
    sm = test_predictions(logit_model, "grp", margin="empirical")
    me = test_predictions(logit_model, "grp", margin="empirical", engine="marginaleffects")
    np.testing.assert_allclose(me.table["estimate"], sm.table["estimate"], rtol=1e-5)
    np.testing.assert_allclose(me.table["std_error"], sm.table["std_error"], rtol=1e-2)


def test_slope_agrees(care_model):
    sm = test_predictions(care_model, ["hours", "dependency"], test=None)
    me = test_predictions(care_model, ["hours", "dependency"], test=None, engine="marginaleffects")
    np.testing.assert_allclose(me.table["estimate"], sm.table["estimate"], rtol=1e-4)


def test_factor_columns_reach_marginaleffects_as_categoricals(treatment_df):
    model = fit_model("outcome ~ grp + sex", treatment_df)
    sm = predict_response(model, "grp")
    me = predict_response(model, "grp", engine="marginaleffects")
    np.testing.assert_allclose(me.table["predicted"], sm.table["predicted"], rtol=1e-6)

    engine = get_engine("marginaleffects")
    grid = build_reference_grid(model, parse_terms("grp"), "mean_reference")
    newdata = engine._newdata(model, grid.rows)
    assert newdata.schema["grp"] == pl.Categorical
    assert newdata.schema["sex"] == pl.Categorical
    assert FOCAL_ID not in newdata.columns


def test_link_scale_on_linear_model_equals_response(treatment_model):
    sm = test_predictions(treatment_model, "grp", scale="link")
    me = test_predictions(treatment_model, "grp", scale="link", engine="marginaleffects")
    np.testing.assert_allclose(me.table["estimate"], sm.table["estimate"], rtol=1e-6)


@pytest.mark.parametrize("scale", ["link", "odds_ratios"])
def test_link_based_scales_refused_for_glm(logit_model, scale):
    with pytest.raises(ValueError, match="only reports response-scale estimates"):
        test_predictions(logit_model, "grp", scale=scale, engine="marginaleffects")


def test_link_predictions_refused_for_glm(logit_model):
    with pytest.raises(ValueError, match="engine='statsmodels'"):
        predict_response(logit_model, "grp", scale="link", engine="marginaleffects")


def test_response_scale_predictions_agree_for_glm(logit_model):
    sm = predict_response(logit_model, "grp", margin="empirical")
    me = predict_response(logit_model, "grp", margin="empirical", engine="marginaleffects")
    np.testing.assert_allclose(me.table["predicted"], sm.table["predicted"], rtol=1e-6)
