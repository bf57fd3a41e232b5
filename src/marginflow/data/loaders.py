"""Reading analysis tables from disk.

Delimited text (``.csv``, ``.tsv``) is read with pandas. Parquet files and
directories of Parquet chunks go through pyarrow, which is an optional
dependency (``pip install marginflow[parquet]``).
"""

from __future__ import annotations

from enum import Enum
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pandas as pd

logger = logging.getLogger(__name__)


class DataFormat(str, Enum):
    """On-disk table formats understood by :func:`load_table`."""

    CSV = "csv"
    TSV = "tsv"
    PARQUET = "parquet"
    PARQUET_DATASET = "parquet_dataset"

    @classmethod
    def from_path(cls, path: Path) -> DataFormat:
        """Format implied by a path: a directory is a Parquet dataset,
        otherwise the file suffix decides.

        Raises:
            ValueError: For unknown suffixes
        """
        path = Path(path)
        if path.is_dir():
            return cls.PARQUET_DATASET

        by_suffix = {".csv": cls.CSV, ".tsv": cls.TSV, ".parquet": cls.PARQUET}
        fmt = by_suffix.get(path.suffix.lower())
        if fmt is None:
            raise ValueError(
                f"Cannot infer data format from path: {path}. "
                f"Expected one of {sorted(by_suffix)} or a directory of parquet files."
            )
        return fmt

    @property
    def needs_pyarrow(self) -> bool:
        return self in (DataFormat.PARQUET, DataFormat.PARQUET_DATASET)


def validate_parquet_available() -> None:
    """Raise ImportError with an install hint when pyarrow is missing."""
    try:
        import pyarrow  # noqa: F401
    except ImportError as e:
        raise ImportError(
            "Reading parquet data requires pyarrow.\n"
            "Install with: pip install marginflow[parquet]"
        ) from e


def infer_format(path: Path) -> DataFormat:
    return DataFormat.from_path(path)


def _read_delimited(sep: str) -> Callable[[Path, Optional[List[str]]], pd.DataFrame]:
    def read(path: Path, columns: Optional[List[str]]) -> pd.DataFrame:
        return pd.read_csv(path, sep=sep, usecols=columns)

    return read


def _read_parquet(path: Path, columns: Optional[List[str]]) -> pd.DataFrame:
    import pyarrow.parquet as pq

    return pq.read_table(path, columns=columns).to_pandas()


def _read_parquet_dir(path: Path, columns: Optional[List[str]]) -> pd.DataFrame:
    import pyarrow.dataset as ds

    # hidden and metadata files (_SUCCESS, .crc) are not data
    chunks = [
        f for f in sorted(path.rglob("*.parquet")) if not f.name.startswith((".", "_"))
    ]
    if not chunks:
        raise ValueError(f"No parquet files found in {path}")

    logger.info(f"Reading {len(chunks)} parquet chunks from {path}")
    dataset = ds.dataset([str(f) for f in chunks], format="parquet")
    try:
        return dataset.to_table(columns=columns).to_pandas()
    except Exception as e:
        raise ValueError(f"Could not combine parquet chunks in {path}: {e}") from e


_READERS: Dict[DataFormat, Callable[[Path, Optional[List[str]]], pd.DataFrame]] = {
    DataFormat.CSV: _read_delimited(","),
    DataFormat.TSV: _read_delimited("\t"),
    DataFormat.PARQUET: _read_parquet,
    DataFormat.PARQUET_DATASET: _read_parquet_dir,
}


def load_table(path: Path, columns: Optional[List[str]] = None) -> pd.DataFrame:
    """Load an analysis table.

    Args:
        path: ``.csv``, ``.tsv`` or ``.parquet`` file, or a directory of
            parquet chunks
        columns: Optional subset of columns to read

    Returns:
        DataFrame with one row per observation

    Raises:
        FileNotFoundError: If the path does not exist
        ValueError: If the format cannot be inferred or no data is found
        ImportError: If a parquet source is given without pyarrow installed

    Example:
        >>> df = load_table(Path("survey.csv"), columns=["outcome", "grp"])
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")

    fmt = infer_format(path)
    if fmt.needs_pyarrow:
        validate_parquet_available()

    df = _READERS[fmt](path, columns)
    logger.info(f"Loaded {len(df)} rows x {df.shape[1]} columns from {path} ({fmt.value})")
    return df
