"""Marginal predictions, contrasts and their reports."""

from marginflow.margins.config import MarginsConfig
from marginflow.margins.predictions import Predictions, predict_response
from marginflow.margins.contrasts import ContrastResult, test_predictions, build_contrast_matrix
from marginflow.margins.api import run_margins, run_margins_from_config

__all__ = [
    "MarginsConfig",
    "Predictions",
    "predict_response",
    "ContrastResult",
    "test_predictions",
    "build_contrast_matrix",
    "run_margins",
    "run_margins_from_config",
]
