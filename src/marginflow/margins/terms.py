"""Focal-term selection strings.

A focal term names a model predictor and, optionally, the values at which it
is evaluated::

    "grp"                      all levels of a factor
    "grp [control, treatment]" selected levels
    "age [30, 50, 70]"         explicit numeric values
    "age [meansd]"             mean - sd, mean, mean + sd
    "age [minmax]"             minimum and maximum
    "age [quart]"              min, quartiles, max
    "age [all]"                every observed value
    "age [20:60 by=10]"        a range (step defaults to 1)

Numeric terms without brackets use all observed values when there are at
most ten of them, else a pretty range of tick values.
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Any, List, Optional, Sequence, Tuple, Union

import numpy as np
from matplotlib.ticker import MaxNLocator

from marginflow.models import FittedModel

SHORTCUTS = ("meansd", "minmax", "quart", "all")
MAX_UNIQUE_NUMERIC = 10

_TERM = re.compile(r"^\s*([^\[\]\s]+)\s*(?:\[(.*)\])?\s*$")
_RANGE = re.compile(r"^(-?[\d.]+)\s*:\s*(-?[\d.]+)(?:\s+by\s*=\s*([\d.]+))?$")


@dataclass(frozen=True)
class FocalTerm:
    """A parsed focal-term selection."""

    name: str
    values: Optional[Tuple[str, ...]] = None
    shortcut: Optional[str] = None
    value_range: Optional[Tuple[float, float, float]] = None

    @property
    def has_selection(self) -> bool:
        return (
            self.values is not None
            or self.shortcut is not None
            or self.value_range is not None
        )


def parse_term(text: str) -> FocalTerm:
    """Parse a focal-term selection string.

    Raises:
        ValueError: If the string is malformed
    """
    if not isinstance(text, str) or not text.strip():
        raise ValueError(f"Focal term must be a non-empty string, got {text!r}")

    match = _TERM.match(text)
    if match is None:
        raise ValueError(f"Malformed focal term: {text!r}")

    name, inner = match.group(1), match.group(2)
    if inner is None:
        return FocalTerm(name=name)

    inner = inner.strip()
    if not inner:
        raise ValueError(f"Empty value selection in focal term: {text!r}")

    if inner.lower() in SHORTCUTS:
        return FocalTerm(name=name, shortcut=inner.lower())

    range_match = _RANGE.match(inner)
    if range_match is not None:
        start, stop = float(range_match.group(1)), float(range_match.group(2))
        step = float(range_match.group(3)) if range_match.group(3) else 1.0
        if step <= 0 or stop < start:
            raise ValueError(f"Invalid range in focal term: {text!r}")
        return FocalTerm(name=name, value_range=(start, stop, step))

    values = tuple(v.strip().strip("'\"") for v in inner.split(","))
    if any(not v for v in values):
        raise ValueError(f"Empty value in focal term: {text!r}")
    return FocalTerm(name=name, values=values)


def parse_terms(terms: Union[str, FocalTerm, Sequence[Union[str, FocalTerm]], None]) -> List[FocalTerm]:
    """Parse one or several focal terms; duplicated names are rejected."""
    if terms is None:
        return []
    if isinstance(terms, (str, FocalTerm)):
        terms = [terms]

    parsed = [t if isinstance(t, FocalTerm) else parse_term(t) for t in terms]
    names = [t.name for t in parsed]
    duplicated = sorted({n for n in names if names.count(n) > 1})
    if duplicated:
        raise ValueError(f"Focal terms listed more than once: {duplicated}")
    return parsed


def pretty_range(x: np.ndarray, nbins: int = 10) -> List[float]:
    """Rounded tick values spanning the observed range of x."""
    lo, hi = float(np.min(x)), float(np.max(x))
    if lo == hi:
        return [lo]

    ticks = MaxNLocator(nbins=nbins, steps=[1, 2, 2.5, 5, 10]).tick_values(lo, hi)
    tol = (hi - lo) * 1e-9
    inside = [float(t) for t in ticks if lo - tol <= t <= hi + tol]
    if len(inside) < 2:
        return [lo, hi]
    return inside


def _numeric_values(term: FocalTerm, x: np.ndarray) -> List[float]:
    if term.values is not None:
        try:
            return [float(v) for v in term.values]
        except ValueError as e:
            raise ValueError(f"Non-numeric value for numeric term '{term.name}': {e}") from e

    if term.value_range is not None:
        start, stop, step = term.value_range
        return [float(v) for v in np.arange(start, stop + step / 2, step)]

    if term.shortcut == "meansd":
        m, s = float(np.mean(x)), float(np.std(x, ddof=1))
        return [m - s, m, m + s]
    if term.shortcut == "minmax":
        return [float(np.min(x)), float(np.max(x))]
    if term.shortcut == "quart":
        return sorted({float(q) for q in np.quantile(x, [0.0, 0.25, 0.5, 0.75, 1.0])})

    unique = np.unique(x)
    if term.shortcut == "all" or len(unique) <= MAX_UNIQUE_NUMERIC:
        return [float(v) for v in unique]
    return pretty_range(x)


def resolve_values(term: FocalTerm, model: FittedModel) -> List[Any]:
    """Concrete values at which a focal term is evaluated.

    Raises:
        ValueError: If the term is not a model predictor or the selection does
            not fit the predictor type
    """
    if term.name not in model.variables:
        raise ValueError(
            f"Focal term '{term.name}' is not a predictor of the model. "
            f"Available: {model.variables}"
        )

    if model.kind(term.name) == "numeric":
        x = model.data[term.name].to_numpy(dtype=float)
        return _numeric_values(term, x)

    if term.value_range is not None or term.shortcut not in (None, "all"):
        raise ValueError(
            f"Value selection for '{term.name}' is only valid for numeric predictors"
        )

    levels = model.levels(term.name)
    if term.values is None:
        return levels

    # both the raw string form (1.0) and the display form (1) select a level
    lookup = {format_level(level): level for level in levels}
    lookup.update({str(level): level for level in levels})
    unknown = [v for v in term.values if v not in lookup]
    if unknown:
        raise ValueError(
            f"Unknown levels for '{term.name}': {unknown}. "
            f"Available: {[format_level(level) for level in levels]}"
        )
    return [lookup[v] for v in term.values]


def format_level(value: Any) -> str:
    """Compact display form of a focal value."""
    if isinstance(value, (float, np.floating)):
        if float(value).is_integer():
            return str(int(value))
        return f"{float(value):.4g}"
    return str(value)
