"""Deterministic train/hold-out split.

The split is computed once from the conditioned sold table and reused by
every model family so their hold-out R² values are comparable.
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd
from loguru import logger

from house_prices.exceptions import InvalidArgumentError


@dataclass(frozen=True)
class HoldoutSplit:
    """Disjoint training and hold-out row positions.

    Attributes:
        train_idx: Sorted training row positions.
        holdout_idx: Sorted hold-out row positions (the complement).
        n: Total number of rows.
        seed: Seed the split was drawn with.
    """

    train_idx: np.ndarray
    holdout_idx: np.ndarray
    n: int
    seed: int

    @property
    def n_train(self) -> int:
        return len(self.train_idx)

    @property
    def n_holdout(self) -> int:
        return len(self.holdout_idx)

    def apply(
        self, X: pd.DataFrame, y: pd.Series
    ) -> tuple[pd.DataFrame, pd.DataFrame, pd.Series, pd.Series]:
        """Slice a feature matrix and target by position.

        Returns:
            Tuple of (X_train, X_holdout, y_train, y_holdout).

        Raises:
            InvalidArgumentError: If the inputs do not have ``n`` rows.
        """
        if len(X) != self.n or len(y) != self.n:
            raise InvalidArgumentError(
                f"Split covers {self.n} rows but got X={len(X)}, y={len(y)}"
            )
        return (
            X.iloc[self.train_idx],
            X.iloc[self.holdout_idx],
            y.iloc[self.train_idx],
            y.iloc[self.holdout_idx],
        )


def make_split(
    n: int,
    train_fraction: float = 0.65,
    seed: int = 42,
    min_holdout: int = 2,
) -> HoldoutSplit:
    """Draw ``round(train_fraction * n)`` training rows without replacement.

    Args:
        n: Number of rows.
        train_fraction: Fraction of rows used for training, in (0, 1).
        seed: Random seed. Same seed and ``n`` give the same split.
        min_holdout: Minimum hold-out size; smaller hold-outs would make
            the R² denominator degenerate.

    Returns:
        HoldoutSplit.

    Raises:
        InvalidArgumentError: On a fraction outside (0, 1), ``n < 2``,
            an empty training set or a hold-out smaller than ``min_holdout``.
    """
    if not 0 < train_fraction < 1:
        raise InvalidArgumentError(
            f"train_fraction must be in (0, 1), got {train_fraction}"
        )
    if n < 2:
        raise InvalidArgumentError(f"Need at least 2 rows to split, got {n}")

    n_train = int(round(train_fraction * n))
    n_holdout = n - n_train
    if n_train < 1:
        raise InvalidArgumentError(
            f"Training set would be empty (n={n}, fraction={train_fraction})"
        )
    if n_holdout < min_holdout:
        raise InvalidArgumentError(
            f"Hold-out set would have {n_holdout} row(s), need at least {min_holdout}"
        )

    rng = np.random.default_rng(seed)
    train_idx = np.sort(rng.choice(n, size=n_train, replace=False))
    mask = np.ones(n, dtype=bool)
    mask[train_idx] = False
    holdout_idx = np.flatnonzero(mask)

    logger.info(
        f"Split data: {n_train:,} train, {n_holdout:,} hold-out "
        f"({train_fraction*100:.0f}% train, seed={seed})"
    )
    return HoldoutSplit(train_idx=train_idx, holdout_idx=holdout_idx, n=n, seed=seed)
