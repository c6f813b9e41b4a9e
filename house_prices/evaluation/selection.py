"""Ranking of model variants and selection of the winner.

Every grid cell produces one :class:`VariantResult`. The results are
collected in a :class:`ResultsTable`, ranked by hold-out R² on the price
scale, and the best variant is refit on the training split to price the
new table.

Ranking uses price-space R²: log-target predictions are exponentiated and
scored against the raw hold-out prices, so every family and transform is
judged by the same SST. The R² in the model's own target space is kept
alongside for reporting.

Tie-breaking when several variants share the maximal R²:
    1. fewer tuned hyperparameters wins (OLS, then elastic-net, then
       random forest);
    2. otherwise the variant that entered the table first wins.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

import numpy as np
import pandas as pd
from loguru import logger

from house_prices.data.conditioning import TargetTransform
from house_prices.exceptions import InvalidArgumentError

# Tuned hyperparameters per family, used to break R² ties.
FAMILY_COMPLEXITY: dict[str, int] = {
    "ols": 0,
    "elastic_net": 1,
    "random_forest": 2,
}

# R² values closer than this are considered tied.
TIE_TOLERANCE = 1e-12


@dataclass(frozen=True)
class ModelVariant:
    """A (family, hyperparameters, target transform) triple.

    Attributes:
        family: Model family, a key of ``FAMILY_COMPLEXITY``.
        transform: Target transform the variant is trained on.
        params: Hyperparameters as sorted (name, value) pairs.
    """

    family: str
    transform: TargetTransform
    params: tuple[tuple[str, Any], ...] = ()

    @classmethod
    def create(
        cls, family: str, transform: TargetTransform | str, **params: Any
    ) -> "ModelVariant":
        return cls(family, TargetTransform(transform), tuple(sorted(params.items())))

    @property
    def params_dict(self) -> dict[str, Any]:
        return dict(self.params)

    @property
    def complexity(self) -> int:
        return FAMILY_COMPLEXITY.get(self.family, len(self.params))

    @property
    def label(self) -> str:
        params = ", ".join(f"{k}={v}" for k, v in self.params)
        return f"{self.family}[{self.transform.value}]({params})"


@dataclass
class VariantResult:
    """Hold-out outcome of one model variant.

    Attributes:
        variant: The evaluated variant.
        r_squared: Hold-out R² of the predicted prices, NaN if the fit
            failed. This is the value selection compares.
        warnings: Warnings raised while fitting this cell.
        metadata: Family-specific extras (seed, selected λ, ...).
        transform_r_squared: Hold-out R² in the variant's target space
            (log R² for log variants). None means same as ``r_squared``.
    """

    variant: ModelVariant
    r_squared: float
    warnings: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    transform_r_squared: float | None = None

    @property
    def target_r_squared(self) -> float:
        """R² on the scale the model was trained on."""
        if self.transform_r_squared is None:
            return self.r_squared
        return self.transform_r_squared

    @property
    def is_valid(self) -> bool:
        """Whether the result can take part in selection."""
        return bool(np.isfinite(self.r_squared))

    def __repr__(self) -> str:
        return f"VariantResult({self.variant.label}: R²={self.r_squared:.4f})"


class ResultsTable:
    """Append-only collection of variant results.

    The table grows while grid searches run and becomes read-only once
    :meth:`freeze` is called.

    Example:
        >>> table = ResultsTable()
        >>> table.extend(search_results)
        >>> table.freeze()
        >>> table.to_frame().head()
    """

    def __init__(self, results: list[VariantResult] | None = None):
        self._results: list[VariantResult] = []
        self._frozen = False
        if results:
            self.extend(results)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def add(self, result: VariantResult) -> None:
        """Append one result.

        Raises:
            RuntimeError: If the table is frozen.
        """
        if self._frozen:
            raise RuntimeError("ResultsTable is frozen")
        self._results.append(result)

    def extend(self, results: list[VariantResult]) -> None:
        for result in results:
            self.add(result)

    def freeze(self) -> "ResultsTable":
        self._frozen = True
        return self

    def __len__(self) -> int:
        return len(self._results)

    def __iter__(self) -> Iterator[VariantResult]:
        return iter(self._results)

    def filter(
        self,
        family: str | None = None,
        transform: TargetTransform | str | None = None,
    ) -> list[VariantResult]:
        """Results matching a family and/or transform, in insertion order."""
        out = self._results
        if family is not None:
            out = [r for r in out if r.variant.family == family]
        if transform is not None:
            transform = TargetTransform(transform)
            out = [r for r in out if r.variant.transform is transform]
        return list(out)

    def to_frame(self) -> pd.DataFrame:
        """Ranked table: one row per variant, best price-space R² first.

        NaN R² rows sort last. ``target_r_squared`` is the R² on the
        variant's own target scale.
        """
        rows = []
        for order, result in enumerate(self._results):
            rows.append({
                "family": result.variant.family,
                "transform": result.variant.transform.value,
                **result.variant.params_dict,
                "r_squared": result.r_squared,
                "target_r_squared": result.target_r_squared,
                "n_warnings": len(result.warnings),
                "order": order,
            })
        df = pd.DataFrame(rows)
        if df.empty:
            return df
        df["complexity"] = df["family"].map(FAMILY_COMPLEXITY)
        df = df.sort_values(
            ["r_squared", "complexity", "order"],
            ascending=[False, True, True],
            na_position="last",
        )
        return df.drop(columns=["complexity"]).reset_index(drop=True)

    def pivot(
        self,
        family: str,
        transform: TargetTransform | str,
        index: str,
        columns: str,
    ) -> pd.DataFrame:
        """2-D R² table for a two-parameter family.

        Example:
            >>> table.pivot("random_forest", "log", "n_trees", "min_leaf")
        """
        rows = [
            {**r.variant.params_dict, "r_squared": r.r_squared}
            for r in self.filter(family, transform)
        ]
        if not rows:
            return pd.DataFrame()
        return pd.DataFrame(rows).pivot(index=index, columns=columns, values="r_squared")


def select_best(results: ResultsTable | list[VariantResult]) -> VariantResult:
    """Pick the variant with the highest finite price-space hold-out R².

    Ties (within ``TIE_TOLERANCE``) go to the family with fewer tuned
    hyperparameters, then to the earliest result.

    Raises:
        InvalidArgumentError: If no result has a finite R².
    """
    candidates = [(order, r) for order, r in enumerate(results) if r.is_valid]
    if not candidates:
        raise InvalidArgumentError("No model variant produced a finite hold-out R²")

    top = max(r.r_squared for _, r in candidates)
    tied = [(order, r) for order, r in candidates if top - r.r_squared <= TIE_TOLERANCE]
    _, best = min(tied, key=lambda item: (item[1].variant.complexity, item[0]))

    if len(tied) > 1:
        logger.info(
            f"{len(tied)} variants tied at R²={top:.6f}; chose {best.variant.label}"
        )
    return best


def best_by_transform(
    results: ResultsTable, family: str
) -> dict[TargetTransform, VariantResult]:
    """Best valid result of one family for each target transform."""
    out = {}
    for transform in TargetTransform:
        subset = [r for r in results.filter(family, transform) if r.is_valid]
        if subset:
            out[transform] = select_best(subset)
    return out


def retrain_and_predict(
    best: VariantResult,
    build_model: Callable[[ModelVariant, int], Any],
    X_train: pd.DataFrame,
    targets: dict[TargetTransform, pd.Series],
    X_new: pd.DataFrame,
) -> tuple[Any, pd.Series]:
    """Refit the selected variant on the training split and price new rows.

    The refit uses the same training rows and seed as the evaluated cell;
    the hold-out rows are not added back. Log-space predictions are
    exponentiated.

    Args:
        best: Selected result.
        build_model: Factory returning an unfitted model for a variant
            and seed.
        X_train: Training-split predictors.
        targets: Training-split targets keyed by transform.
        X_new: New-table predictors.

    Returns:
        Tuple of (refit model, predicted prices indexed like ``X_new``).
    """
    variant = best.variant
    seed = best.metadata.get("seed", 0)
    model = build_model(variant, seed)
    model.fit(X_train, targets[variant.transform])

    raw = model.predict(X_new)
    prices = variant.transform.inverse(raw)
    logger.info(
        f"Retrained {variant.label} on {len(X_train):,} rows; "
        f"priced {len(X_new):,} new rows (median={np.median(prices):,.0f})"
    )
    return model, pd.Series(prices, index=X_new.index, name="predicted_price")
