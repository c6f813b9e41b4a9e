"""House price model comparison.

Compares ordinary least squares, a cross-validated elastic-net sweep and
a subsampled random forest grid on one train/hold-out split of a table
of sold houses, on both the raw and the log sale price. The variant with
the highest hold-out R² is refit and used to price a table of new houses.

Key Features:
- Automatic removal of linearly dependent predictors
- One shared split and one SST per target transform, so every R² is comparable
- Declarative grid search, sequential or parallel with joblib
- Deterministic per-cell seeds

Usage:
    from house_prices.config import load_config
    from house_prices.pipeline import ComparisonPipeline

Example:
    >>> config = load_config("configs/default.yaml")
    >>> result = ComparisonPipeline(config).run(sold_df, new_df)
    >>> print(result.summary())
"""

__version__ = "0.1.0"

# Main configuration
from house_prices.config import Config, load_config

# Convenience imports
from house_prices.exceptions import DomainError, HousePriceError, InvalidArgumentError
from house_prices.pipeline import ComparisonPipeline, PipelineResult, run_from_config

__all__ = [
    # Version
    "__version__",
    # Config
    "Config",
    "load_config",
    # Errors
    "HousePriceError",
    "DomainError",
    "InvalidArgumentError",
    # High-level API
    "ComparisonPipeline",
    "PipelineResult",
    "run_from_config",
]
