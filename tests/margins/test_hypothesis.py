"""Tests for hypothesis equations."""

from __future__ import annotations

import numpy as np
import pytest

from marginflow.margins.config import is_hypothesis_string
from marginflow.margins.hypothesis import hypothesis_weights


def test_simple_equation():
    w, c = hypothesis_weights("b1 = b2", 3)
    np.testing.assert_allclose(w, [1, -1, 0])
    assert c == 0


def test_difference_in_differences():
    w, c = hypothesis_weights("(b4 - b3) = (b2 - b1)", 4)
    np.testing.assert_allclose(w, [1, -1, -1, 1])


def test_coefficients_and_constants():
    w, c = hypothesis_weights("2*b1 - b2/2 = 3", 2)
    np.testing.assert_allclose(w, [2, -0.5])
    assert c == -3


def test_without_equals_tests_against_zero():
    w, c = hypothesis_weights("b2 + b3", 3)
    np.testing.assert_allclose(w, [0, 1, 1])


@pytest.mark.parametrize(
    "expr, match",
    [
        ("b1 * b2 = 0", "linear combination"),
        ("b5 = b1", "out of range"),
        ("x1 = b1", "Unknown name"),
        ("b1 = = b2", "at most one"),
        ("b1 = (b2", "Invalid hypothesis"),
        ("1 = 2", "does not reference"),
    ],
)
def test_invalid(expr, match):
    with pytest.raises(ValueError, match=match):
        hypothesis_weights(expr, 3)


def test_is_hypothesis_string():
    assert is_hypothesis_string("b1 = b2")
    assert not is_hypothesis_string("pairwise")
    assert not is_hypothesis_string(None)
