"""Model implementations for house price prediction.

Provides linear (OLS, elastic-net) and ensemble (random forest) models
with a consistent interface, plus the grid search and family trainers
that evaluate them on the shared split.
"""

from house_prices.models.base import (
    BaseModel,
    CrossValidationResult,
    LinearModel,
    ModelResult,
    cross_validate,
)
from house_prices.models.ensemble import RandomForestModel, default_mtry
from house_prices.models.grid import GridSearch, GridTask, derive_seed, run_task
from house_prices.models.regression import (
    ElasticNetCVModel,
    OLSModel,
    lambda_path,
)
from house_prices.models.training import (
    ElasticNetTrainer,
    FamilyTrainer,
    ModelBuilder,
    OLSTrainer,
    RandomForestTrainer,
    TrainingContext,
    build_trainers,
)

__all__ = [
    # Base
    "BaseModel",
    "LinearModel",
    "ModelResult",
    "CrossValidationResult",
    "cross_validate",
    # Regression
    "OLSModel",
    "ElasticNetCVModel",
    "lambda_path",
    # Ensemble
    "RandomForestModel",
    "default_mtry",
    # Grid
    "GridSearch",
    "GridTask",
    "derive_seed",
    "run_task",
    # Training
    "ModelBuilder",
    "TrainingContext",
    "FamilyTrainer",
    "OLSTrainer",
    "ElasticNetTrainer",
    "RandomForestTrainer",
    "build_trainers",
]
