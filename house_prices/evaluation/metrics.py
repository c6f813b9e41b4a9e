"""Hold-out evaluation metrics.

The comparison statistic is hold-out R² = 1 - SSR/SST. SST depends only
on the hold-out target, so it is computed once per target transform by a
:class:`HoldoutEvaluator` and shared by every model evaluated against
that transform.
"""

from dataclasses import dataclass, field

import numpy as np
import pandas as pd
from sklearn.metrics import mean_absolute_error, mean_squared_error

from house_prices.exceptions import InvalidArgumentError

# SST at or below this is treated as a constant hold-out target.
_MIN_SST = 1e-12


class HoldoutEvaluator:
    """R² against one fixed hold-out target.

    Example:
        >>> evaluator = HoldoutEvaluator(y_holdout)
        >>> evaluator.r_squared(model.predict(X_holdout))
    """

    def __init__(self, y_true: pd.Series | np.ndarray, name: str = "raw"):
        """Compute the hold-out mean and SST once.

        Args:
            y_true: Hold-out target, in the order predictions will come in.
            name: Label of the target transform.

        Raises:
            InvalidArgumentError: If the hold-out has fewer than two rows or
                no variance.
        """
        self.name = name
        self._y = np.asarray(y_true, dtype=float)
        if self._y.ndim != 1 or len(self._y) < 2:
            raise InvalidArgumentError(
                f"Hold-out target needs at least 2 observations, got {len(self._y)}"
            )
        self._mean = float(self._y.mean())
        self._sst = float(np.sum((self._y - self._mean) ** 2))
        if self._sst <= _MIN_SST:
            raise InvalidArgumentError(
                f"Hold-out target '{name}' has no variance (SST={self._sst:.3g})"
            )

    @property
    def y_true(self) -> np.ndarray:
        return self._y.copy()

    @property
    def mean(self) -> float:
        return self._mean

    @property
    def sst(self) -> float:
        return self._sst

    def _check(self, y_pred: pd.Series | np.ndarray) -> np.ndarray:
        y_pred = np.asarray(y_pred, dtype=float)
        if y_pred.shape != self._y.shape:
            raise InvalidArgumentError(
                f"Shape mismatch: y_true {self._y.shape} vs y_pred {y_pred.shape}"
            )
        return y_pred

    def ssr(self, y_pred: pd.Series | np.ndarray) -> float:
        """Sum of squared residuals."""
        y_pred = self._check(y_pred)
        return float(np.sum((self._y - y_pred) ** 2))

    def r_squared(self, y_pred: pd.Series | np.ndarray) -> float:
        """Hold-out R². Not clamped: negative means worse than the mean."""
        return 1.0 - self.ssr(y_pred) / self._sst

    def metrics(self, y_pred: pd.Series | np.ndarray) -> "RegressionMetrics":
        """R² plus error summaries for reporting."""
        y_pred = self._check(y_pred)
        return RegressionMetrics(
            r_squared=self.r_squared(y_pred),
            rmse=float(np.sqrt(mean_squared_error(self._y, y_pred))),
            mae=float(mean_absolute_error(self._y, y_pred)),
            median_ae=float(np.median(np.abs(self._y - y_pred))),
            n_samples=len(self._y),
        )


def r_squared(y_true: pd.Series | np.ndarray, y_pred: pd.Series | np.ndarray) -> float:
    """One-off hold-out R² (builds a throwaway evaluator)."""
    return HoldoutEvaluator(y_true).r_squared(y_pred)


@dataclass
class RegressionMetrics:
    """Container for regression evaluation metrics.

    Attributes:
        r_squared: Coefficient of determination (R²).
        rmse: Root mean squared error.
        mae: Mean absolute error.
        median_ae: Median absolute error.
        n_samples: Number of samples evaluated.
    """

    r_squared: float
    rmse: float
    mae: float
    median_ae: float | None = None
    n_samples: int = 0
    additional: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary."""
        result = {
            "r_squared": self.r_squared,
            "rmse": self.rmse,
            "mae": self.mae,
            "n_samples": self.n_samples,
        }
        if self.median_ae is not None:
            result["median_ae"] = self.median_ae
        result.update(self.additional)
        return result

    def __repr__(self) -> str:
        return f"R²={self.r_squared:.4f}, RMSE={self.rmse:.4f}, MAE={self.mae:.4f}"


def compute_regression_metrics(
    y_true: pd.Series | np.ndarray,
    y_pred: pd.Series | np.ndarray,
) -> RegressionMetrics:
    """Compute regression metrics for a prediction vector.

    Args:
        y_true: True target values.
        y_pred: Predicted values.

    Returns:
        RegressionMetrics with all computed metrics.
    """
    return HoldoutEvaluator(y_true).metrics(y_pred)
