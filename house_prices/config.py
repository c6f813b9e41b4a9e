"""Configuration management using Pydantic models.

This module defines all configuration for the house price model comparison.
Configuration is loaded from YAML files and validated at startup.

Usage:
    from house_prices.config import load_config
    config = load_config("configs/default.yaml")
"""

from pathlib import Path
from typing import Literal

import numpy as np
import yaml
from pydantic import BaseModel, Field, field_validator

TargetTransformName = Literal["raw", "log"]


class PathConfig(BaseModel):
    """Paths to the input tables and output artifacts."""

    sold_table: Path = Field(
        default=Path("data/sold.csv"), description="Table of sold houses (has target)"
    )
    new_table: Path = Field(
        default=Path("data/new.csv"), description="Table of houses to price (no target)"
    )
    output_file: Path = Field(
        default=Path("outputs/predictions.csv"), description="Predicted prices output"
    )
    results_dir: Path = Field(
        default=Path("outputs"), description="Directory for the ranked R² table and model"
    )

    @field_validator("sold_table", "new_table", "output_file", "results_dir")
    @classmethod
    def ensure_path(cls, v: Path | str) -> Path:
        """Convert string to Path if needed."""
        return Path(v) if isinstance(v, str) else v


class SchemaConfig(BaseModel):
    """Column roles of the input tables."""

    id_column: str = Field(default="id", description="Identifier column, copied to output")
    target_column: str = Field(default="price", description="Sale price column")
    predictors: list[str] | None = Field(
        default=None,
        description="Predictor columns (None = every numeric non-id, non-target column)",
    )
    price_column: str = Field(
        default="predicted_price", description="Name of the predicted price column"
    )
    drop_policy: Literal["training", "union"] = Field(
        default="training",
        description="Which dependent-column drop set is applied to both tables",
    )


class SplitConfig(BaseModel):
    """Configuration for the train/hold-out split."""

    train_fraction: float = Field(
        default=0.65, gt=0, lt=1, description="Fraction of rows used for training"
    )
    seed: int = Field(default=42, description="Random seed for the split and all fits")
    min_holdout: int = Field(
        default=2, ge=2, description="Minimum number of hold-out rows"
    )


class OLSConfig(BaseModel):
    """Configuration for ordinary least squares."""

    enabled: bool = True
    cv_folds: int = Field(default=10, ge=2, description="Folds for stability CV")


class ElasticNetConfig(BaseModel):
    """Configuration for the elastic-net mixing sweep."""

    enabled: bool = True
    alpha_step: float = Field(
        default=0.05, gt=0, le=1, description="Step of the mixing grid over [0, 1]"
    )
    cv_folds: int = Field(default=10, ge=2, description="Folds for the λ search")
    n_lambdas: int = Field(default=100, ge=2, description="Length of the λ path")
    lambda_min_ratio: float = Field(
        default=1e-4, gt=0, lt=1, description="Smallest λ as a fraction of λ_max"
    )
    max_iter: int = Field(default=10000, ge=1, description="Coordinate descent iterations")

    @field_validator("alpha_step")
    @classmethod
    def step_divides_unit(cls, v: float) -> float:
        """The grid must land exactly on 1, so the step has to divide it."""
        n_steps = round(1.0 / v)
        if abs(n_steps * v - 1.0) > 1e-9:
            raise ValueError(f"alpha_step must divide 1 evenly, got {v}")
        return v

    def mixing_grid(self) -> list[float]:
        """Mixing values from 0 (ridge) to 1 (lasso), both ends included."""
        n_steps = int(round(1.0 / self.alpha_step))
        grid = np.linspace(0.0, 1.0, n_steps + 1)
        return [round(float(a), 10) for a in grid]


class RandomForestConfig(BaseModel):
    """Configuration for the random forest grid."""

    enabled: bool = True
    n_trees_grid: list[int] = Field(
        default=[1, 2, 5, 10, 50, 100, 500, 1000, 5000, 15000],
        description="Tree counts to try",
    )
    min_leaf_grid: list[int] = Field(
        default=[5, 10, 25, 50, 100, 200, 400],
        description="Minimum observations per leaf to try",
    )
    sample_fraction: float = Field(
        default=0.5, gt=0, le=1, description="Rows subsampled (without replacement) per tree"
    )
    honesty: bool = Field(
        default=False, description="Honest splitting (not supported; must stay False)"
    )

    @field_validator("n_trees_grid", "min_leaf_grid")
    @classmethod
    def positive_grid(cls, v: list[int]) -> list[int]:
        """Grid values must be positive integers."""
        if any(x < 1 for x in v):
            raise ValueError("grid values must be >= 1")
        return v

    @field_validator("honesty")
    @classmethod
    def honesty_disabled(cls, v: bool) -> bool:
        """Only the non-honest forest is implemented."""
        if v:
            raise ValueError("honest forests are not supported")
        return v


class SearchConfig(BaseModel):
    """How grid cells are executed."""

    executor: Literal["sequential", "joblib"] = Field(
        default="sequential", description="Grid execution strategy"
    )
    n_jobs: int = Field(default=-1, description="Workers for the joblib executor")
    transforms: list[TargetTransformName] = Field(
        default=["raw", "log"], description="Target transforms to evaluate"
    )


class Config(BaseModel):
    """Root configuration model combining all config sections."""

    paths: PathConfig = Field(default_factory=PathConfig)
    schema_: SchemaConfig = Field(default_factory=SchemaConfig, alias="schema")
    split: SplitConfig = Field(default_factory=SplitConfig)
    ols: OLSConfig = Field(default_factory=OLSConfig)
    elastic_net: ElasticNetConfig = Field(default_factory=ElasticNetConfig)
    random_forest: RandomForestConfig = Field(default_factory=RandomForestConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_file: Path | None = None

    model_config = {"populate_by_name": True}


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from YAML file.

    Args:
        config_path: Path to YAML config file. If None, uses defaults.

    Returns:
        Validated Config object.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValidationError: If config values are invalid.
    """
    if config_path is None:
        return Config()

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw_config = yaml.safe_load(f)

    return Config.model_validate(raw_config or {})


def save_config(config: Config, config_path: str | Path) -> None:
    """Save configuration to YAML file.

    Args:
        config: Config object to save.
        config_path: Destination path.
    """
    path = Path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    config_dict = config.model_dump(by_alias=True)

    def convert_paths(d: dict) -> dict:
        """Recursively convert Path objects to strings."""
        for key, value in d.items():
            if isinstance(value, Path):
                d[key] = str(value)
            elif isinstance(value, dict):
                d[key] = convert_paths(value)
        return d

    config_dict = convert_paths(config_dict)

    with open(path, "w") as f:
        yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)
