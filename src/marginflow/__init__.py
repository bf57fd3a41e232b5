"""
marginflow: marginal predictions and pairwise contrasts for regression models.

This package provides:
- Focal-term selection and reference grids with several margin strategies
- Marginal predictions with confidence intervals on response or link scale
- Pairwise comparisons, contrasts, slopes and difference-in-differences
- Two interchangeable estimation engines (statsmodels, marginaleffects)
- Annotated plots, Excel/CSV reports and tutorial vignettes
- CLI tools
"""

__version__ = "0.1.0"

from marginflow.config import RenderConfig
from marginflow.models import FittedModel, fit_model
from marginflow.margins.predictions import Predictions, predict_response
from marginflow.margins.contrasts import ContrastResult, test_predictions

__all__ = [
    "__version__",
    "RenderConfig",
    "FittedModel",
    "fit_model",
    "Predictions",
    "predict_response",
    "ContrastResult",
    "test_predictions",
]
