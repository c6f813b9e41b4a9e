"""Base classes for models.

Defines the interface that all models must implement, providing
consistency across the OLS, elastic-net and random forest families.
"""

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
from loguru import logger

from house_prices.evaluation.metrics import HoldoutEvaluator, RegressionMetrics


@dataclass
class ModelResult:
    """Container for model evaluation results.

    Attributes:
        model_name: Name/identifier for the model.
        metrics: Hold-out metrics.
        predictions: Model predictions on evaluation set.
        metadata: Additional model-specific values.
    """

    model_name: str
    metrics: RegressionMetrics
    predictions: pd.Series | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def r_squared(self) -> float:
        return self.metrics.r_squared

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "model_name": self.model_name,
            **self.metrics.to_dict(),
            "metadata": self.metadata,
        }

    def __repr__(self) -> str:
        return f"ModelResult({self.model_name}: {self.metrics!r})"


class BaseModel(ABC):
    """Abstract base class for all models.

    Provides consistent interface for training, prediction, and evaluation.
    All models must implement fit(), predict(), and get_feature_importance().

    Example:
        >>> model = RandomForestModel(n_estimators=500, min_samples_leaf=5)
        >>> model.fit(X_train, y_train)
        >>> predictions = model.predict(X_holdout)
        >>> result = model.evaluate(X_holdout, evaluator)
    """

    def __init__(self, name: str | None = None):
        """Initialize model.

        Args:
            name: Model name/identifier.
        """
        self._name = name or self.__class__.__name__
        self._is_fitted = False
        self._feature_names: list[str] = []

    @property
    def name(self) -> str:
        """Get model name."""
        return self._name

    @property
    def is_fitted(self) -> bool:
        """Check if model has been trained."""
        return self._is_fitted

    @property
    def feature_names(self) -> list[str]:
        """Get feature names used in training."""
        return self._feature_names.copy()

    @abstractmethod
    def fit(
        self,
        X: pd.DataFrame,
        y: pd.Series,
    ) -> "BaseModel":
        """Train the model.

        Args:
            X: Feature matrix.
            y: Target values.

        Returns:
            Self for method chaining.
        """
        pass

    @abstractmethod
    def predict(self, X: pd.DataFrame) -> pd.Series:
        """Make predictions.

        Args:
            X: Feature matrix.

        Returns:
            Predicted values.

        Raises:
            ValueError: If model has not been fitted.
        """
        pass

    @abstractmethod
    def get_feature_importance(self) -> dict[str, float]:
        """Get feature importance scores.

        Returns:
            Dictionary mapping feature names to importance scores.
        """
        pass

    def evaluate(
        self,
        X: pd.DataFrame,
        evaluator: HoldoutEvaluator,
    ) -> ModelResult:
        """Evaluate model on the hold-out rows behind ``evaluator``.

        Args:
            X: Hold-out feature matrix, rows in the evaluator's order.
            evaluator: Evaluator holding the hold-out target and its SST.

        Returns:
            ModelResult with metrics and predictions.
        """
        self._check_fitted()

        predictions = self.predict(X)
        return ModelResult(
            model_name=self.name,
            metrics=evaluator.metrics(predictions),
            predictions=predictions,
        )

    def describe(self) -> dict[str, Any]:
        """Fitted values worth recording next to the hold-out R²."""
        return {}

    def _check_fitted(self) -> None:
        """Raise error if model not fitted."""
        if not self._is_fitted:
            raise ValueError(
                f"{self.name} has not been fitted. Call fit() first."
            )

    def _prediction_series(self, values: np.ndarray, X: pd.DataFrame) -> pd.Series:
        return pd.Series(values, index=X.index, name="prediction")

    def save(self, path: Path) -> None:
        """Save model to disk.

        Args:
            path: Path to save model.
        """
        import joblib

        self._check_fitted()
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(self, path)
        logger.info(f"Saved {self.name} to {path}")

    @classmethod
    def load(cls, path: Path) -> "BaseModel":
        """Load model from disk.

        Args:
            path: Path to saved model.

        Returns:
            Loaded model instance.
        """
        import joblib

        model = joblib.load(path)
        logger.info(f"Loaded {model.name} from {path}")
        return model


class LinearModel(BaseModel):
    """Base class for linear models (OLS, elastic-net).

    Adds coefficient access; importance is the absolute coefficient.
    """

    @abstractmethod
    def get_coefficients(self) -> dict[str, float]:
        """Get model coefficients.

        Returns:
            Dictionary mapping feature names to coefficients.
        """
        pass

    def get_feature_importance(self) -> dict[str, float]:
        """Feature importance as absolute coefficient values."""
        coeffs = self.get_coefficients()
        return {k: abs(v) for k, v in coeffs.items()}

    def n_nonzero(self, tol: float = 1e-10) -> int:
        """Number of coefficients not shrunk to zero."""
        return sum(abs(v) > tol for v in self.get_coefficients().values())


@dataclass
class CrossValidationResult:
    """Results from cross-validation.

    Attributes:
        model_name: Name of the model.
        cv_scores: R² scores for each fold.
        mean_score: Mean R² across folds.
        std_score: Standard deviation of R² across folds.
    """

    model_name: str
    cv_scores: list[float]
    mean_score: float
    std_score: float

    def __repr__(self) -> str:
        return (
            f"CrossValidationResult({self.model_name}: "
            f"R²={self.mean_score:.4f} ± {self.std_score:.4f})"
        )


def cross_validate(
    model: BaseModel,
    X: pd.DataFrame,
    y: pd.Series,
    cv: int = 10,
    random_state: int = 42,
) -> CrossValidationResult:
    """K-fold cross-validation of an unfitted model.

    Each fold fits a fresh copy, so ``model`` itself is left untouched.

    Args:
        model: Model to evaluate.
        X: Feature matrix.
        y: Target values.
        cv: Number of folds.
        random_state: Random seed for the fold assignment.

    Returns:
        CrossValidationResult with per-fold R².
    """
    from sklearn.model_selection import KFold

    kfold = KFold(n_splits=cv, shuffle=True, random_state=random_state)
    scores = []

    for fold_idx, (train_idx, val_idx) in enumerate(kfold.split(X)):
        X_train, X_val = X.iloc[train_idx], X.iloc[val_idx]
        y_train, y_val = y.iloc[train_idx], y.iloc[val_idx]

        fold_model = copy.deepcopy(model)
        fold_model.fit(X_train, y_train)
        result = fold_model.evaluate(X_val, HoldoutEvaluator(y_val))

        scores.append(result.r_squared)
        logger.debug(f"Fold {fold_idx + 1}: R²={result.r_squared:.4f}")

    return CrossValidationResult(
        model_name=model.name,
        cv_scores=scores,
        mean_score=float(np.mean(scores)),
        std_score=float(np.std(scores)),
    )
