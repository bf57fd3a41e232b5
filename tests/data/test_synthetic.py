"""Tests for the synthetic example datasets."""

from __future__ import annotations

import pandas as pd
import pytest

from marginflow.data import SYNTHETIC_DATASETS, make_dataset, make_did_data, make_treatment_data


@pytest.mark.parametrize("name", sorted(SYNTHETIC_DATASETS))
def test_datasets_are_reproducible(name):
    a = make_dataset(name)
    b = make_dataset(name)
    pd.testing.assert_frame_equal(a, b)


def test_seed_changes_data():
    a = make_treatment_data(seed=1)
    b = make_treatment_data(seed=2)
    assert not a["outcome"].equals(b["outcome"])


def test_treatment_columns():
    df = make_treatment_data(n=50)
    assert list(df.columns) == ["outcome", "grp", "episode", "sex", "age"]
    assert len(df) == 50
    assert set(df["episode"]) <= {"1", "2", "3"}


def test_did_categories_are_ordered():
    df = make_did_data()
    assert list(df["time"].cat.categories) == ["pre", "post"]
    assert list(df["treatment"].cat.categories) == ["control", "treated"]


def test_make_dataset_n_and_seed():
    df = make_dataset("binary", n=40, seed=5)
    assert len(df) == 40
    assert set(df["outcome"].unique()) <= {0, 1}


def test_unknown_dataset():
    with pytest.raises(ValueError, match="Unknown synthetic dataset"):
        make_dataset("nope")


def test_too_few_rows():
    with pytest.raises(ValueError, match="n must be >= 10"):
        make_dataset("did", n=5)
