"""Feature conditioning before any regression is fitted.

Two jobs:

- Remove exactly linearly dependent predictor columns so every model
  receives a full column rank matrix. Dependencies are resolved by
  dropping columns, never raised as errors.
- Build the raw-price and log-price target vectors from one sold table.
  A non-positive price makes the log branch invalid (``DomainError``)
  but leaves the raw branch usable.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

import numpy as np
import pandas as pd
from loguru import logger

from house_prices.exceptions import DomainError, InvalidArgumentError


class TargetTransform(str, Enum):
    """Scale the sale price is modeled on."""

    RAW = "raw"
    LOG = "log"

    def inverse(self, values: np.ndarray | pd.Series) -> np.ndarray:
        """Map model output back to prices."""
        values = np.asarray(values, dtype=float)
        return np.exp(values) if self is TargetTransform.LOG else values


def _check_finite(X: pd.DataFrame) -> np.ndarray:
    values = X.to_numpy(dtype=float)
    if not np.isfinite(values).all():
        bad = X.columns[~np.isfinite(values).all(axis=0)].tolist()
        raise InvalidArgumentError(f"Non-finite values in predictor columns: {bad}")
    return values


def find_dependent_columns(X: pd.DataFrame, tol: float | None = None) -> list[str]:
    """Find the columns to drop so the remaining matrix has full column rank.

    Columns are scanned left to right; a column is kept only if it
    raises the rank of the columns kept so far. The number of dropped
    columns therefore equals ``n_columns - rank(X)``, and earlier
    columns win over later ones.

    Columns are scaled to unit norm first so wildly different units
    (square metres next to euros) do not distort the rank tolerance.

    Args:
        X: Numeric feature matrix.
        tol: Singular value threshold passed to ``numpy.linalg.matrix_rank``.

    Returns:
        Names of the dependent columns, in table order.
    """
    values = _check_finite(X)
    norms = np.linalg.norm(values, axis=0)

    kept: list[int] = []
    dropped: list[str] = []
    for j, name in enumerate(X.columns):
        if norms[j] == 0:
            dropped.append(name)
            continue
        candidate = values[:, kept + [j]] / norms[kept + [j]]
        if np.linalg.matrix_rank(candidate, tol=tol) == len(kept) + 1:
            kept.append(j)
        else:
            dropped.append(name)

    return dropped


def drop_dependent_columns(
    X: pd.DataFrame, tol: float | None = None
) -> tuple[pd.DataFrame, list[str]]:
    """Drop linearly dependent columns.

    Returns:
        Tuple of (full-rank matrix, dropped column names).
    """
    dropped = find_dependent_columns(X, tol=tol)
    if dropped:
        logger.warning(
            f"Rank deficiency: dropping {len(dropped)} dependent column(s) {dropped}"
        )
    return X.drop(columns=dropped), dropped


def log_target(y: pd.Series) -> pd.Series:
    """Natural log of the sale price.

    Raises:
        DomainError: If any price is non-positive or missing.
    """
    values = y.to_numpy(dtype=float)
    invalid = ~(values > 0)
    if invalid.any():
        raise DomainError(
            f"log undefined for {int(invalid.sum())} non-positive sale price(s), "
            f"e.g. {values[invalid][:3].tolist()}"
        )
    return pd.Series(np.log(values), index=y.index, name=f"log_{y.name}")


@dataclass
class ConditionedData:
    """Output of :class:`DataConditioner`.

    Attributes:
        X_train: Full-rank sold-table predictors.
        X_new: New-table predictors with the same columns as ``X_train``.
        y_raw: Raw sale prices.
        y_log: Log sale prices, or None when the log branch was aborted.
        dropped_columns: Columns removed from both tables.
        new_table_dependencies: Dependencies detected in the new table.
        log_error: Message of the DomainError that aborted the log branch.
    """

    X_train: pd.DataFrame
    X_new: pd.DataFrame
    y_raw: pd.Series
    y_log: pd.Series | None
    dropped_columns: list[str] = field(default_factory=list)
    new_table_dependencies: list[str] = field(default_factory=list)
    log_error: str | None = None

    @property
    def targets(self) -> dict[TargetTransform, pd.Series]:
        """Available targets keyed by transform."""
        out = {TargetTransform.RAW: self.y_raw}
        if self.y_log is not None:
            out[TargetTransform.LOG] = self.y_log
        return out


class DataConditioner:
    """Make predictors full rank and build both target vectors.

    Dependencies are detected in the sold and new tables independently.
    With ``drop_policy="training"`` the sold-table drop set is applied to
    both so the models see one schema; dependencies found only in the
    new table are reported. With ``drop_policy="union"`` every column
    dependent in either table is removed from both.

    Example:
        >>> conditioner = DataConditioner()
        >>> data = conditioner.condition(X_sold, y_sold, X_new)
        >>> data.X_train.shape[1] == np.linalg.matrix_rank(data.X_train)
        True
    """

    def __init__(
        self,
        drop_policy: Literal["training", "union"] = "training",
        tol: float | None = None,
    ):
        """Initialize conditioner.

        Args:
            drop_policy: Which drop set to apply to both tables.
            tol: Rank tolerance, see :func:`find_dependent_columns`.
        """
        if drop_policy not in ("training", "union"):
            raise InvalidArgumentError(f"Unknown drop policy: {drop_policy}")
        self.drop_policy = drop_policy
        self.tol = tol

    def condition(
        self,
        X_sold: pd.DataFrame,
        y: pd.Series,
        X_new: pd.DataFrame,
    ) -> ConditionedData:
        """Condition the sold and new tables.

        Args:
            X_sold: Sold-table predictors.
            y: Sold-table sale prices.
            X_new: New-table predictors (same columns as ``X_sold``).

        Returns:
            ConditionedData.

        Raises:
            InvalidArgumentError: On row-count or column mismatch.
        """
        if len(X_sold) != len(y):
            raise InvalidArgumentError(
                f"Feature matrix has {len(X_sold)} rows but target has {len(y)}"
            )
        if list(X_sold.columns) != list(X_new.columns):
            raise InvalidArgumentError(
                "Sold and new tables must share the same predictor columns"
            )

        X_train, train_drop = drop_dependent_columns(X_sold, tol=self.tol)
        new_drop = find_dependent_columns(X_new, tol=self.tol)

        extra = [c for c in new_drop if c not in train_drop]
        if extra and self.drop_policy == "union":
            logger.warning(f"Dropping new-table dependent column(s) {extra} from both tables")
            X_train = X_train.drop(columns=extra)
        elif extra:
            logger.warning(
                f"New table has additional dependent column(s) {extra}; "
                "kept so both tables share the training schema"
            )
        dropped = [c for c in X_sold.columns if c not in X_train.columns]

        y_log = None
        log_error = None
        try:
            y_log = log_target(y)
        except DomainError as exc:
            log_error = str(exc)
            logger.error(f"Log-target branch aborted: {exc}")

        logger.info(
            f"Conditioned data: {len(X_train):,} sold rows, {len(X_new):,} new rows, "
            f"{X_train.shape[1]} predictors"
        )

        return ConditionedData(
            X_train=X_train,
            X_new=X_new.drop(columns=dropped),
            y_raw=y.astype(float).rename(y.name),
            y_log=y_log,
            dropped_columns=dropped,
            new_table_dependencies=new_drop,
            log_error=log_error,
        )
