"""Pytest configuration and fixtures."""

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pytest

from marginflow.data import make_binary_data, make_care_data, make_did_data, make_treatment_data
from marginflow.models import fit_model


@pytest.fixture(autouse=True)
def close_figures():
    """Close figures left open by a test."""
    yield
    plt.close("all")


@pytest.fixture
def treatment_df():
    return make_treatment_data()


@pytest.fixture
def treatment_model(treatment_df):
    """Linear model with a grp x episode interaction."""
    return fit_model("outcome ~ grp * episode + sex + age", treatment_df)


@pytest.fixture
def additive_model(treatment_df):
    """Linear model without interactions."""
    return fit_model("outcome ~ grp + episode + sex + age", treatment_df)


@pytest.fixture
def did_model():
    return fit_model("score ~ treatment * time", make_did_data())


@pytest.fixture
def logit_model():
    return fit_model("outcome ~ grp + education + hours", make_binary_data(), family="binomial")


@pytest.fixture
def care_model():
    return fit_model("burden ~ hours * dependency + sex", make_care_data())


@pytest.fixture
def temp_outdir(tmp_path):
    """Provide temporary output directory."""
    outdir = tmp_path / "derived"
    outdir.mkdir()
    return outdir
