"""Configuration dataclasses for the margins subsystem."""

from __future__ import annotations

from dataclasses import dataclass, field
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from marginflow.backends.registry import ENGINE_NAMES
from marginflow.config import RenderConfig
from marginflow.models import FAMILIES
from marginflow.margins.grid import MARGINS

PREDICTION_SCALES = ("response", "link")
CONTRAST_SCALES = ("response", "link", "exp", "odds_ratios")
TESTS = ("pairwise", "consecutive", "reference", "contrast", "interaction")
P_ADJUST_METHODS = ("holm", "bonferroni", "sidak", "fdr_bh", "fdr_by", "hommel")


def validate_ci_level(ci_level: float) -> float:
    if not 0 < ci_level < 1:
        raise ValueError(f"ci_level must be in (0, 1), got {ci_level}")
    return float(ci_level)


def validate_p_adjust(p_adjust: Optional[str]) -> Optional[str]:
    """Normalize a p-value adjustment method; None and "none" mean no adjustment."""
    if p_adjust is None or p_adjust.lower() == "none":
        return None
    p_adjust = p_adjust.lower()
    if p_adjust not in P_ADJUST_METHODS:
        raise ValueError(
            f"p_adjust must be one of {list(P_ADJUST_METHODS)} or None, got {p_adjust}"
        )
    return p_adjust


def is_hypothesis_string(test: Optional[str]) -> bool:
    """True for equations like "b1 = b2" rather than named tests."""
    return isinstance(test, str) and re.search(r"\bb\d+\b", test) is not None


def validate_test(test: Optional[str]) -> Optional[str]:
    if test is None or test.lower() == "none":
        return None
    if is_hypothesis_string(test):
        return test
    test = test.lower()
    if test not in TESTS:
        raise ValueError(
            f"test must be one of {list(TESTS)}, None, or a hypothesis such as 'b1 = b2', got {test}"
        )
    return test


@dataclass
class MarginsConfig:
    """Configuration for a predictions + contrasts analysis run.

    Attributes:
        formula: Model formula (patsy syntax)
        outdir: Output directory for tables and figures
        terms: Focal terms, e.g. ["grp", "episode [1, 3]"]
        data_path: Input table (CSV / Parquet); exclusive with dataset
        dataset: Name of a synthetic dataset; exclusive with data_path
        family: gaussian, binomial, or poisson
        by: Optional focal terms within which comparisons are made
        test: Comparison type, None, or a hypothesis equation
        margin: How non-focal predictors are handled
        scale: Contrast scale (response, link, exp, odds_ratios)
        engine: statsmodels or marginaleffects
        p_adjust: Multiplicity adjustment (None = unadjusted)
        ci_level: Confidence level for intervals (default: 0.95)
        condition: Fixed values for non-focal predictors
        seed: Seed for synthetic datasets
        write_xlsx: Whether to write the Excel workbook (default: True)
        make_plots: Whether to render figures (default: True)
        render: Figure rendering options
    """

    formula: str
    outdir: Path
    terms: List[str]
    data_path: Optional[Path] = None
    dataset: Optional[str] = None
    family: str = "gaussian"
    by: Optional[List[str]] = None
    test: Optional[str] = "pairwise"
    margin: str = "mean_reference"
    scale: str = "response"
    engine: str = "statsmodels"
    p_adjust: Optional[str] = None
    ci_level: float = 0.95
    condition: Optional[Dict[str, Any]] = None
    seed: Optional[int] = None
    write_xlsx: bool = True
    make_plots: bool = True
    render: RenderConfig = field(default_factory=RenderConfig)

    def __post_init__(self):
        """Validate configuration."""
        self.outdir = Path(self.outdir)

        if (self.data_path is None) == (self.dataset is None):
            raise ValueError("Exactly one of data_path or dataset must be given")

        if self.data_path is not None:
            self.data_path = Path(self.data_path)
            if not self.data_path.exists():
                raise FileNotFoundError(f"Data file not found: {self.data_path}")

        if isinstance(self.terms, str):
            self.terms = [self.terms]
        if not self.terms:
            raise ValueError("At least one focal term is required")

        if isinstance(self.by, str):
            self.by = [self.by]

        self.family = self.family.lower()
        if self.family not in FAMILIES:
            raise ValueError(f"family must be one of {list(FAMILIES)}, got {self.family}")

        self.margin = self.margin.lower()
        if self.margin not in MARGINS:
            raise ValueError(f"margin must be one of {list(MARGINS)}, got {self.margin}")

        self.scale = self.scale.lower()
        if self.scale not in CONTRAST_SCALES:
            raise ValueError(f"scale must be one of {list(CONTRAST_SCALES)}, got {self.scale}")

        self.engine = (self.engine or "statsmodels").lower()
        if self.engine not in ENGINE_NAMES:
            raise ValueError(f"engine must be one of {list(ENGINE_NAMES)}, got {self.engine}")

        self.test = validate_test(self.test)
        self.p_adjust = validate_p_adjust(self.p_adjust)
        self.ci_level = validate_ci_level(self.ci_level)

    @property
    def data_source(self) -> str:
        if self.data_path is not None:
            return str(self.data_path)
        return f"synthetic:{self.dataset}"
