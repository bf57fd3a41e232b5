"""Pydantic models for YAML analysis files.

Example file::

    data:
      dataset: treatment        # or: path: data/visits.csv
      seed: 123
    model:
      formula: outcome ~ grp * episode + sex
      family: gaussian
    margins:
      terms: [episode, grp]
      test: pairwise
      margin: mean_reference
      scale: response
      engine: statsmodels
      p_adjust: holm
    output:
      outdir: derived/margins
    figures:
      format: svg
      dpi: 200

Relative paths are resolved against the directory of the YAML file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from marginflow.config import RenderConfig
from marginflow.margins.config import MarginsConfig
from marginflow.yaml_utils import load_yaml


class DataSection(BaseModel):
    """Where the analysis data comes from."""

    model_config = {"extra": "forbid"}

    path: Optional[str] = None
    dataset: Optional[str] = None
    seed: Optional[int] = None

    @model_validator(mode="after")
    def _one_source(self) -> "DataSection":
        if (self.path is None) == (self.dataset is None):
            raise ValueError("data: give exactly one of 'path' or 'dataset'")
        return self


class ModelSection(BaseModel):
    """Regression model."""

    model_config = {"extra": "forbid"}

    formula: str
    family: Literal["gaussian", "binomial", "poisson"] = "gaussian"


class MarginsSection(BaseModel):
    """Predictions and comparisons."""

    model_config = {"extra": "forbid"}

    terms: List[str]
    by: Optional[List[str]] = None
    test: Optional[str] = "pairwise"
    margin: Literal["mean_reference", "mean_mode", "marginalmeans", "empirical"] = "mean_reference"
    scale: Literal["response", "link", "exp", "odds_ratios"] = "response"
    engine: Literal["statsmodels", "marginaleffects"] = "statsmodels"
    p_adjust: Optional[str] = None
    ci_level: float = 0.95
    condition: Optional[Dict[str, Any]] = None

    @field_validator("terms", "by", mode="before")
    @classmethod
    def _as_list(cls, value: Union[str, List[str], None]) -> Optional[List[str]]:
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("terms")
    @classmethod
    def _non_empty(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("at least one focal term is required")
        return value

    @field_validator("ci_level")
    @classmethod
    def _ci_range(cls, value: float) -> float:
        if not 0 < value < 1:
            raise ValueError("must be in (0, 1)")
        return value


class OutputSection(BaseModel):
    """Output locations and switches."""

    model_config = {"extra": "forbid"}

    outdir: str = "derived/margins"
    write_xlsx: bool = True
    make_plots: bool = True


class FiguresSection(BaseModel):
    """Figure rendering settings."""

    model_config = {"extra": "forbid"}

    width: float = 7.0
    height: float = 4.5
    dpi: int = 160
    format: Literal["png", "svg", "pdf"] = "png"
    style: str = "whitegrid"
    context: str = "notebook"
    palette: str = "colorblind"

    def to_render_config(self) -> RenderConfig:
        return RenderConfig(
            fig_width=self.width,
            fig_height=self.height,
            fig_dpi=self.dpi,
            fig_format=self.format,
            style=self.style,
            context=self.context,
            palette=self.palette,
        )


class AnalysisFile(BaseModel):
    """Top-level analysis file."""

    model_config = {"protected_namespaces": (), "extra": "forbid"}

    data: DataSection
    model: ModelSection
    margins: MarginsSection
    output: OutputSection = Field(default_factory=OutputSection)
    figures: FiguresSection = Field(default_factory=FiguresSection)

    @classmethod
    def load(cls, path: Path) -> "AnalysisFile":
        """Load and validate an analysis file."""
        try:
            return cls.model_validate(load_yaml(path))
        except ValidationError as e:
            raise ValueError(f"Invalid analysis file {path}:\n{e}") from e

    def to_config(self, base_dir: Optional[Path] = None) -> MarginsConfig:
        """Convert to a MarginsConfig, resolving relative paths against base_dir."""
        base_dir = Path(base_dir) if base_dir is not None else Path.cwd()

        def _resolve(p: str) -> Path:
            path = Path(p).expanduser()
            return path if path.is_absolute() else base_dir / path

        m = self.margins
        return MarginsConfig(
            formula=self.model.formula,
            outdir=_resolve(self.output.outdir),
            terms=list(m.terms),
            data_path=_resolve(self.data.path) if self.data.path else None,
            dataset=self.data.dataset,
            family=self.model.family,
            by=m.by,
            test=m.test,
            margin=m.margin,
            scale=m.scale,
            engine=m.engine,
            p_adjust=m.p_adjust,
            ci_level=m.ci_level,
            condition=m.condition,
            seed=self.data.seed,
            write_xlsx=self.output.write_xlsx,
            make_plots=self.output.make_plots,
            render=self.figures.to_render_config(),
        )


def load_analysis_config(path: Path) -> MarginsConfig:
    """Read a YAML analysis file into a validated MarginsConfig.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file fails validation
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Analysis file not found: {path}")
    return AnalysisFile.load(path).to_config(base_dir=path.parent)
