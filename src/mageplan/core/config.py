from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, model_validator


class ScreeningBasis(str, Enum):
    """Which population fraction the colony screening requirement is computed from."""

    exact = "exact"
    at_least = "at_least"


class ModelConfig(BaseModel):
    n_loci: int = 3

    # Grid the table is evaluated over.
    cycles: List[int] = Field(default_factory=lambda: list(range(1, 11)))
    replacement_frequencies: List[float] = Field(default_factory=lambda: [0.05, 0.1, 0.2])

    @model_validator(mode="after")
    def _validate(self) -> "ModelConfig":
        if self.n_loci < 1:
            raise ValueError(f"n_loci must be >= 1, got {self.n_loci}.")
        if not self.cycles:
            raise ValueError("At least one cycle count is required.")
        bad_cycles = [c for c in self.cycles if c < 1]
        if bad_cycles:
            raise ValueError(f"Cycle counts must be positive. Got: {bad_cycles}")
        if len(set(self.cycles)) != len(self.cycles):
            raise ValueError(f"Cycle counts must be unique. Got: {self.cycles}")
        if not self.replacement_frequencies:
            raise ValueError("At least one replacement frequency is required.")
        bad_freqs = [r for r in self.replacement_frequencies if not 0.0 < r < 1.0]
        if bad_freqs:
            raise ValueError(f"Replacement frequencies must lie in (0, 1). Got: {bad_freqs}")
        if len(set(self.replacement_frequencies)) != len(self.replacement_frequencies):
            raise ValueError(
                f"Replacement frequencies must be unique. Got: {self.replacement_frequencies}"
            )
        return self


class ScreeningConfig(BaseModel):
    confidence: float = 0.95
    basis: ScreeningBasis = ScreeningBasis.exact

    @model_validator(mode="after")
    def _validate(self) -> "ScreeningConfig":
        if not 0.0 < self.confidence < 1.0:
            raise ValueError(f"Screening confidence must lie in (0, 1), got {self.confidence}.")
        return self


class ChartConfig(BaseModel):
    """Fixed axis, label and layout settings shared by every chart."""

    facet_columns: int = Field(default=4, ge=1)
    facet_width: float = 3.6
    facet_height: float = 3.0
    dpi: int = 200
    colormap: str = "viridis"

    frequency_label: str = "Allelic replacement frequency"
    cycles_label: str = "MAGE cycles"
    replacements_label: str = "Allelic replacements per clone"
    prevalence_label: str = "Prevalence"
    screening_label: str = "Colonies to screen"

    prevalence_title: str = "Genotype prevalence after N MAGE cycles"
    screening_title: str = "Colonies to screen to isolate a genotype"

    screening_log_scale: bool = True

    def figsize(self, n_facets: int) -> Tuple[float, float]:
        ncols = min(self.facet_columns, max(n_facets, 1))
        nrows = -(-max(n_facets, 1) // ncols)
        return self.facet_width * ncols, self.facet_height * nrows + 0.6


class ProjectConfig(BaseModel):
    project_name: str = "mage"

    model: ModelConfig = Field(default_factory=ModelConfig)
    screening: ScreeningConfig = Field(default_factory=ScreeningConfig)
    charts: ChartConfig = Field(default_factory=ChartConfig)

    # Optional path to a precomputed table, resolved relative to the working directory.
    table_path: Optional[str] = None

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ProjectConfig":
        path = Path(path)
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls.model_validate(data or {})
