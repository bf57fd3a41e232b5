"""
Data access for marginflow.

Tables can be loaded from disk (CSV, Parquet, Parquet dataset directories) or
synthesized with fixed seeds for the examples and vignettes.

Example usage:
    from marginflow.data import load_table, make_dataset

    df = load_table(Path("survey.parquet"))
    demo = make_dataset("treatment", seed=123)
"""

from marginflow.data.loaders import DataFormat, load_table, infer_format, validate_parquet_available
from marginflow.data.synthetic import (
    SYNTHETIC_DATASETS,
    make_dataset,
    make_treatment_data,
    make_binary_data,
    make_did_data,
    make_care_data,
)

__all__ = [
    "DataFormat",
    "load_table",
    "infer_format",
    "validate_parquet_available",
    "SYNTHETIC_DATASETS",
    "make_dataset",
    "make_treatment_data",
    "make_binary_data",
    "make_did_data",
    "make_care_data",
]
