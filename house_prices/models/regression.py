"""Linear regression models.

Implements OLS and the cross-validated elastic-net used in the mixing
sweep. In the elastic-net, ``alpha`` follows the glmnet convention: it is
the L1/L2 mixing weight (0 = ridge, 1 = lasso), and ``lambda`` is the
penalty strength. scikit-learn calls these ``l1_ratio`` and ``alpha``.
"""

from typing import Any

import numpy as np
import pandas as pd
from loguru import logger
from sklearn.linear_model import ElasticNetCV, LinearRegression
from sklearn.model_selection import KFold
from sklearn.preprocessing import StandardScaler

from house_prices.exceptions import InvalidArgumentError
from house_prices.models.base import LinearModel

# Smallest mixing weight used to size the λ path, so the ridge end of the
# sweep still gets a finite λ_max.
_MIN_MIXING_FOR_PATH = 1e-3


class OLSModel(LinearModel):
    """Ordinary Least Squares regression model.

    Has no hyperparameters; fitted on every conditioned predictor.

    Example:
        >>> model = OLSModel()
        >>> model.fit(X_train, y_train)
        >>> print(model.get_coefficients())
    """

    def __init__(
        self,
        fit_intercept: bool = True,
        name: str | None = None,
    ):
        """Initialize OLS model.

        Args:
            fit_intercept: Whether to fit intercept.
            name: Model name.
        """
        super().__init__(name or "OLS")
        self._fit_intercept = fit_intercept
        self._model: LinearRegression | None = None
        self._intercept: float = 0.0

    def fit(self, X: pd.DataFrame, y: pd.Series) -> "OLSModel":
        """Fit OLS model.

        Args:
            X: Feature matrix.
            y: Target values.

        Returns:
            Self.
        """
        self._feature_names = list(X.columns)

        self._model = LinearRegression(fit_intercept=self._fit_intercept)
        self._model.fit(X, y)

        self._intercept = float(self._model.intercept_)
        self._is_fitted = True

        logger.debug(
            f"Fitted {self.name} with {len(self._feature_names)} features, "
            f"intercept={self._intercept:.4f}"
        )
        return self

    def predict(self, X: pd.DataFrame) -> pd.Series:
        """Make predictions.

        Args:
            X: Feature matrix.

        Returns:
            Predictions.
        """
        self._check_fitted()
        return self._prediction_series(self._model.predict(X), X)

    def get_coefficients(self) -> dict[str, float]:
        """Get model coefficients.

        Returns:
            Feature name to coefficient mapping.
        """
        self._check_fitted()
        return dict(zip(self._feature_names, self._model.coef_))


def lambda_path(
    X: np.ndarray,
    y: np.ndarray,
    mixing: float,
    n_lambdas: int = 100,
    lambda_min_ratio: float = 1e-4,
) -> np.ndarray:
    """Decreasing penalty path from λ_max to ``λ_max * lambda_min_ratio``.

    λ_max is the smallest penalty that zeroes every coefficient of a
    lasso-weighted fit on standardized ``X``; for mixing weights near
    zero the weight is floored so the ridge end gets a usable path.

    Args:
        X: Standardized feature matrix.
        y: Target values.
        mixing: L1/L2 mixing weight in [0, 1].
        n_lambdas: Number of path values.
        lambda_min_ratio: Ratio between the last and first λ.

    Returns:
        Array of ``n_lambdas`` penalties, largest first.
    """
    n = X.shape[0]
    yc = y - y.mean()
    lambda_max = np.max(np.abs(X.T @ yc)) / (n * max(mixing, _MIN_MIXING_FOR_PATH))
    if not np.isfinite(lambda_max) or lambda_max <= 0:
        lambda_max = 1.0
    return np.geomspace(lambda_max, lambda_max * lambda_min_ratio, n_lambdas)


class ElasticNetCVModel(LinearModel):
    """Elastic-net with a cross-validated penalty at fixed mixing weight.

    Predictors are standardized inside the model. ``fit`` runs k-fold CV
    over the λ path on the data it is given (the training split only),
    keeps λ_min (lowest mean fold MSE) and refits at it.

    Example:
        >>> model = ElasticNetCVModel(mixing=0.5)
        >>> model.fit(X_train, y_train)
        >>> model.lambda_min, model.n_nonzero()
    """

    def __init__(
        self,
        mixing: float = 0.5,
        cv_folds: int = 10,
        n_lambdas: int = 100,
        lambda_min_ratio: float = 1e-4,
        max_iter: int = 10000,
        random_state: int = 42,
        name: str | None = None,
    ):
        """Initialize elastic-net model.

        Args:
            mixing: L1/L2 mixing weight α in [0, 1].
            cv_folds: Folds for the λ search.
            n_lambdas: Length of the λ path.
            lambda_min_ratio: Smallest λ as a fraction of λ_max.
            max_iter: Maximum coordinate descent iterations.
            random_state: Seed for the fold assignment.
            name: Model name.

        Raises:
            InvalidArgumentError: If ``mixing`` is outside [0, 1].
        """
        if not 0.0 <= mixing <= 1.0:
            raise InvalidArgumentError(f"mixing must be in [0, 1], got {mixing}")
        super().__init__(name or f"ElasticNet(α={mixing:.2f})")
        self._mixing = mixing
        self._cv_folds = cv_folds
        self._n_lambdas = n_lambdas
        self._lambda_min_ratio = lambda_min_ratio
        self._max_iter = max_iter
        self._random_state = random_state
        self._scaler: StandardScaler | None = None
        self._model: ElasticNetCV | None = None

    @property
    def mixing(self) -> float:
        return self._mixing

    @property
    def lambda_min(self) -> float:
        """Penalty selected by cross-validation."""
        self._check_fitted()
        return float(self._model.alpha_)

    def fit(self, X: pd.DataFrame, y: pd.Series) -> "ElasticNetCVModel":
        """Select λ by k-fold CV and refit at λ_min."""
        self._feature_names = list(X.columns)

        self._scaler = StandardScaler()
        X_std = self._scaler.fit_transform(X)
        y_arr = np.asarray(y, dtype=float)

        lambdas = lambda_path(
            X_std, y_arr, self._mixing, self._n_lambdas, self._lambda_min_ratio
        )
        folds = KFold(
            n_splits=min(self._cv_folds, len(y_arr)),
            shuffle=True,
            random_state=self._random_state,
        )
        self._model = ElasticNetCV(
            l1_ratio=self._mixing,
            alphas=lambdas,
            cv=folds,
            max_iter=self._max_iter,
        )
        self._model.fit(X_std, y_arr)
        self._is_fitted = True

        logger.debug(
            f"Fitted {self.name}: λ_min={self.lambda_min:.4g}, "
            f"{self.n_nonzero()}/{len(self._feature_names)} non-zero coefficients"
        )
        return self

    def predict(self, X: pd.DataFrame) -> pd.Series:
        """Make predictions."""
        self._check_fitted()
        X_std = self._scaler.transform(X)
        return self._prediction_series(self._model.predict(X_std), X)

    def get_coefficients(self) -> dict[str, float]:
        """Coefficients on the standardized predictors."""
        self._check_fitted()
        return dict(zip(self._feature_names, self._model.coef_))

    def describe(self) -> dict[str, Any]:
        return {"lambda_min": self.lambda_min, "n_nonzero": self.n_nonzero()}
