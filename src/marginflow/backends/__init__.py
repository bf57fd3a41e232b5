"""Estimation engines for predictions and contrasts."""

from marginflow.backends.base import Engine, Estimates, SCALES
from marginflow.backends.registry import get_engine, available_engines, ENGINE_NAMES

__all__ = ["Engine", "Estimates", "SCALES", "get_engine", "available_engines", "ENGINE_NAMES"]
