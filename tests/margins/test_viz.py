"""Tests for prediction and contrast plots."""

from __future__ import annotations

import logging

import pytest

from marginflow.config import RenderConfig
from marginflow.margins import predict_response, test_predictions
from marginflow.margins.viz import (
    categorical_positions,
    plot_contrast_estimates,
    plot_contrasts,
    plot_predictions,
    save_figure,
)


def test_plot_categorical_predictions(treatment_model):
    pred = predict_response(treatment_model, ["episode", "grp"])
    fig = plot_predictions(pred)
    ax = fig.axes[0]
    assert ax.get_title() == "Predicted values of outcome"
    assert [t.get_text() for t in ax.get_xticklabels()] == ["1", "2", "3"]
    assert ax.get_legend() is not None


def test_plot_numeric_predictions(care_model):
    pred = predict_response(care_model, ["hours", "dependency"])
    fig = pred.plot()
    assert len(fig.axes[0].lines) == 4


def test_dodged_positions(treatment_model):
    pred = predict_response(treatment_model, ["episode", "grp"])
    pos = categorical_positions(pred.table, "episode", "grp")
    assert len(set(pos)) == 6
    assert pos[0] < pos[1] < pos[2] < pos[3]


def test_annotated_contrasts(treatment_model):
    pred = predict_response(treatment_model, ["episode", "grp"])
    contrasts = test_predictions(treatment_model, "grp", by="episode")
    fig = plot_contrasts(pred, contrasts)
    labels = [t.get_text() for t in fig.axes[0].texts]
    assert len(labels) == 3


def test_annotated_contrasts_limit(treatment_model):
    pred = predict_response(treatment_model, ["episode", "grp"])
    contrasts = test_predictions(treatment_model, ["episode", "grp"])
    fig = plot_contrasts(pred, contrasts, max_brackets=4)
    assert len(fig.axes[0].texts) == 4


def test_annotated_contrasts_need_matching_terms(treatment_model):
    pred = predict_response(treatment_model, ["episode", "grp"])
    contrasts = test_predictions(treatment_model, "grp")
    with pytest.raises(ValueError, match="same focal terms"):
        plot_contrasts(pred, contrasts)


def test_annotated_contrasts_reject_interaction(did_model):
    pred = predict_response(did_model, ["treatment", "time"])
    contrasts = test_predictions(did_model, ["treatment", "time"], test="interaction")
    with pytest.raises(ValueError, match="pairwise-type"):
        plot_contrasts(pred, contrasts)


def test_forest_plot_log_scale_for_ratios(logit_model):
    result = test_predictions(logit_model, "education", scale="odds_ratios")
    fig = plot_contrast_estimates(result)
    ax = fig.axes[0]
    assert ax.get_xscale() == "log"
    assert ax.get_xlabel() == "Ratio"


def test_save_figure_format(tmp_path, treatment_model):
    render = RenderConfig(fig_format="svg", fig_dpi=72)
    fig = plot_predictions(predict_response(treatment_model, "grp"), render=render)
    path = save_figure(fig, tmp_path / "figs" / "pred", render)
    assert path.suffix == ".svg"
    assert path.exists()


def test_third_focal_term_logs_warning(treatment_model, caplog):
    pred = predict_response(treatment_model, ["episode", "grp", "sex"])
    with caplog.at_level(logging.WARNING, logger="marginflow.margins.viz"):
        plot_predictions(pred)
    assert "Only the first two focal terms are plotted" in caplog.text
    assert "'sex'" in caplog.text


def test_two_focal_terms_do_not_warn(treatment_model, caplog):
    pred = predict_response(treatment_model, ["episode", "grp"])
    with caplog.at_level(logging.WARNING, logger="marginflow.margins.viz"):
        plot_predictions(pred)
    assert "focal terms are plotted" not in caplog.text
