"""Random forest model for price prediction.

The forest used in the grid search differs from scikit-learn's default
``RandomForestRegressor`` in how rows are sampled: each tree sees a
subsample drawn *without* replacement (half the training rows by
default) instead of a bootstrap sample. The same subsample both places
the splits and fills the leaves (no honest splitting). At each node
``round(sqrt(p))`` predictors are tried.

This is a bagged ensemble of randomized decision trees, built with
``BaggingRegressor`` so the subsample can be drawn without replacement.
"""

import math
from typing import Any

import numpy as np
import pandas as pd
from loguru import logger
from sklearn.ensemble import BaggingRegressor
from sklearn.tree import DecisionTreeRegressor

from house_prices.models.base import BaseModel


def default_mtry(n_features: int) -> int:
    """Split candidates per node: ``round(sqrt(p))``, at least 1."""
    return max(1, int(round(math.sqrt(n_features))))


class RandomForestModel(BaseModel):
    """Subsampled random forest regression model.

    Tree count and minimum leaf size are the two grid-searched
    hyperparameters; the subsample fraction and split candidates are fixed.

    Example:
        >>> model = RandomForestModel(n_estimators=500, min_samples_leaf=10)
        >>> model.fit(X_train, y_train)
    """

    def __init__(
        self,
        n_estimators: int = 500,
        min_samples_leaf: int = 5,
        sample_fraction: float = 0.5,
        max_features: int | None = None,
        n_jobs: int | None = None,
        random_state: int = 42,
        name: str | None = None,
    ):
        """Initialize Random Forest model.

        Args:
            n_estimators: Number of trees.
            min_samples_leaf: Minimum observations per leaf.
            sample_fraction: Fraction of rows drawn (without replacement)
                for each tree.
            max_features: Predictors tried per split. None means
                ``round(sqrt(p))`` resolved at fit time.
            n_jobs: Parallel jobs for fitting trees.
            random_state: Random seed.
            name: Model name.
        """
        super().__init__(
            name or f"RandomForest(trees={n_estimators}, leaf={min_samples_leaf})"
        )

        self._params = {
            "n_estimators": n_estimators,
            "min_samples_leaf": min_samples_leaf,
            "sample_fraction": sample_fraction,
            "max_features": max_features,
            "n_jobs": n_jobs,
            "random_state": random_state,
        }
        self._mtry: int | None = None
        self._model: BaggingRegressor | None = None

    @property
    def mtry(self) -> int | None:
        """Predictors tried per split (set after fit)."""
        return self._mtry

    def fit(self, X: pd.DataFrame, y: pd.Series) -> "RandomForestModel":
        """Fit Random Forest model."""
        self._feature_names = list(X.columns)
        params = self._params
        self._mtry = params["max_features"] or default_mtry(X.shape[1])

        tree = DecisionTreeRegressor(
            min_samples_leaf=params["min_samples_leaf"],
            max_features=self._mtry,
        )
        self._model = BaggingRegressor(
            estimator=tree,
            n_estimators=params["n_estimators"],
            max_samples=params["sample_fraction"],
            bootstrap=False,
            n_jobs=params["n_jobs"],
            random_state=params["random_state"],
        )
        self._model.fit(X.to_numpy(dtype=float), np.asarray(y, dtype=float))
        self._is_fitted = True

        logger.debug(
            f"Fitted {self.name} with {len(self._feature_names)} features, "
            f"mtry={self._mtry}"
        )
        return self

    def predict(self, X: pd.DataFrame) -> pd.Series:
        """Make predictions."""
        self._check_fitted()
        predictions = self._model.predict(X.to_numpy(dtype=float))
        return self._prediction_series(predictions, X)

    def get_feature_importance(self) -> dict[str, float]:
        """Mean impurity-based importance across trees."""
        self._check_fitted()
        importance = np.mean(
            [tree.feature_importances_ for tree in self._model.estimators_], axis=0
        )
        return dict(zip(self._feature_names, importance))

    def describe(self) -> dict[str, Any]:
        return {"mtry": self._mtry}
