"""Engine registry."""

from __future__ import annotations

from typing import Dict, Optional

from marginflow.backends.base import Engine

ENGINE_NAMES = ("statsmodels", "marginaleffects")


def _normalize(name: Optional[str]) -> str:
    if not name:
        return "statsmodels"
    name = name.lower()
    if name not in ENGINE_NAMES:
        raise ValueError(f"Unsupported engine: {name}. Available: {list(ENGINE_NAMES)}")
    return name


def get_engine(name: Optional[str] = None) -> Engine:
    """Instantiate an engine by name (statsmodels when None).

    Raises:
        ValueError: If the engine name is unknown
        ImportError: If the engine's library is not installed
    """
    name = _normalize(name)
    if name == "marginaleffects":
        from marginflow.backends.marginaleffects_engine import MarginaleffectsEngine

        return MarginaleffectsEngine()

    from marginflow.backends.statsmodels_engine import StatsmodelsEngine

    return StatsmodelsEngine()


def available_engines() -> Dict[str, bool]:
    """Map each engine name to whether its library can be imported."""
    from marginflow.backends.marginaleffects_engine import HAS_MARGINALEFFECTS

    return {"statsmodels": True, "marginaleffects": HAS_MARGINALEFFECTS}
