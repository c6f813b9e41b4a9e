"""Hold-out evaluation and model selection.

Provides the shared-SST R² evaluator, the results table and the
selection of the winning variant.
"""

from house_prices.evaluation.metrics import (
    HoldoutEvaluator,
    RegressionMetrics,
    compute_regression_metrics,
    r_squared,
)
from house_prices.evaluation.selection import (
    FAMILY_COMPLEXITY,
    ModelVariant,
    ResultsTable,
    VariantResult,
    best_by_transform,
    retrain_and_predict,
    select_best,
)

__all__ = [
    # Metrics
    "HoldoutEvaluator",
    "RegressionMetrics",
    "compute_regression_metrics",
    "r_squared",
    # Selection
    "FAMILY_COMPLEXITY",
    "ModelVariant",
    "ResultsTable",
    "VariantResult",
    "best_by_transform",
    "retrain_and_predict",
    "select_best",
]
