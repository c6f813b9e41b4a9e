"""Declarative grid search over model variants.

A grid search is a list of independent tasks, one per grid cell:
build a fresh model for the variant, fit it on the training split,
predict the hold-out split and score it against the shared evaluator.
Tasks share no mutable state, so they can run one after another or in
parallel worker processes with the same results.

Each cell gets its own seed from :func:`derive_seed`, a function of the
base seed and the cell index only. Execution order therefore never
changes the outcome.
"""

import warnings
from dataclasses import dataclass
from typing import Callable, Literal

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from loguru import logger
from sklearn.exceptions import ConvergenceWarning

from house_prices.evaluation.metrics import HoldoutEvaluator
from house_prices.evaluation.selection import ModelVariant, VariantResult
from house_prices.exceptions import InvalidArgumentError
from house_prices.models.base import BaseModel
from house_prices.utils.logging import ProgressLogger

BuildModel = Callable[[ModelVariant, int], BaseModel]

# Warning categories attached to a cell's result instead of being re-emitted.
_CELL_WARNINGS = (ConvergenceWarning, RuntimeWarning)

# Numeric failures that void a single cell without stopping the search.
_CELL_FAILURES = (ValueError, FloatingPointError, np.linalg.LinAlgError)


def derive_seed(base: int, cell_index: int) -> int:
    """Deterministic per-cell seed.

    Args:
        base: Base seed of the run.
        cell_index: Position of the cell in its grid.

    Returns:
        A 32-bit seed that depends only on ``(base, cell_index)``.
    """
    state = np.random.SeedSequence([base, cell_index]).generate_state(1)
    return int(state[0])


@dataclass(frozen=True)
class GridTask:
    """One grid cell: a variant plus its position and seed."""

    variant: ModelVariant
    cell_index: int
    seed: int


def run_task(
    task: GridTask,
    build_model: BuildModel,
    X_train: pd.DataFrame,
    y_train: pd.Series,
    X_holdout: pd.DataFrame,
    evaluator: HoldoutEvaluator,
    price_evaluator: HoldoutEvaluator | None = None,
) -> VariantResult:
    """Fit, predict and score a single grid cell.

    With a ``price_evaluator`` the predictions are mapped back to prices
    before scoring, so log and raw cells share one R² scale. The R² from
    ``evaluator`` is kept as the target-space score.

    Convergence and runtime warnings raised during the fit are attached
    to the result. A numeric failure yields an R² of NaN plus the error
    message, so one bad cell does not abort the grid.

    Returns:
        VariantResult for the cell.
    """
    metadata = {"seed": task.seed, "cell_index": task.cell_index}
    cell_warnings: list[str] = []
    r2 = target_r2 = float("nan")

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", ConvergenceWarning)
        try:
            model = build_model(task.variant, task.seed)
            model.fit(X_train, y_train)
            predicted = model.predict(X_holdout)
            target_r2 = evaluator.r_squared(predicted)
            if price_evaluator is None:
                r2 = target_r2
            else:
                r2 = price_evaluator.r_squared(task.variant.transform.inverse(predicted))
            metadata.update(model.describe())
        except InvalidArgumentError:
            raise
        except _CELL_FAILURES as exc:
            cell_warnings.append(f"{type(exc).__name__}: {exc}")
            logger.warning(f"{task.variant.label} failed: {exc}")

    for w in caught:
        if issubclass(w.category, _CELL_WARNINGS):
            cell_warnings.append(f"{w.category.__name__}: {w.message}")
        else:
            warnings.warn(w.message, w.category)

    if cell_warnings:
        logger.debug(f"{task.variant.label}: {len(cell_warnings)} warning(s)")

    return VariantResult(
        variant=task.variant,
        r_squared=r2,
        warnings=cell_warnings,
        metadata=metadata,
        transform_r_squared=target_r2,
    )


class GridSearch:
    """Runs grid tasks with a pluggable execution strategy.

    Results always come back in task order, whichever executor is used.

    Example:
        >>> search = GridSearch(executor="joblib", n_jobs=4)
        >>> results = search.run(variants, builder, X_tr, y_tr, X_ho, evaluator, seed=42)
    """

    def __init__(
        self,
        executor: Literal["sequential", "joblib"] = "sequential",
        n_jobs: int = -1,
        description: str = "Grid search",
    ):
        """Initialize grid search.

        Args:
            executor: ``"sequential"`` or ``"joblib"`` (process pool).
            n_jobs: Workers for the joblib executor.
            description: Label used in progress logs.
        """
        if executor not in ("sequential", "joblib"):
            raise InvalidArgumentError(f"Unknown executor: {executor}")
        self.executor = executor
        self.n_jobs = n_jobs
        self.description = description

    @staticmethod
    def tasks(variants: list[ModelVariant], seed: int) -> list[GridTask]:
        """One task per variant, each with its derived seed.

        Raises:
            InvalidArgumentError: If the grid is empty.
        """
        if not variants:
            raise InvalidArgumentError("Hyperparameter grid is empty")
        return [
            GridTask(variant=v, cell_index=i, seed=derive_seed(seed, i))
            for i, v in enumerate(variants)
        ]

    def run(
        self,
        variants: list[ModelVariant],
        build_model: BuildModel,
        X_train: pd.DataFrame,
        y_train: pd.Series,
        X_holdout: pd.DataFrame,
        evaluator: HoldoutEvaluator,
        seed: int = 42,
        price_evaluator: HoldoutEvaluator | None = None,
    ) -> list[VariantResult]:
        """Evaluate every variant on the shared split.

        Args:
            variants: Grid cells to evaluate.
            build_model: Factory returning an unfitted model for a
                variant and seed. Must be picklable for ``"joblib"``.
            X_train: Training-split predictors.
            y_train: Training-split target.
            X_holdout: Hold-out predictors.
            evaluator: Evaluator for the hold-out target.
            seed: Base seed for :func:`derive_seed`.
            price_evaluator: Evaluator for hold-out prices. When given,
                cells are ranked by price-space R².

        Returns:
            One VariantResult per variant, in variant order.
        """
        if len(X_train) != len(y_train):
            raise InvalidArgumentError(
                f"Training matrix has {len(X_train)} rows but target has {len(y_train)}"
            )
        tasks = self.tasks(variants, seed)
        logger.info(f"{self.description}: {len(tasks)} cell(s), executor={self.executor}")

        if self.executor == "joblib":
            results = Parallel(n_jobs=self.n_jobs)(
                delayed(run_task)(
                    task, build_model, X_train, y_train, X_holdout, evaluator, price_evaluator
                )
                for task in tasks
            )
        else:
            progress = ProgressLogger(total=len(tasks), description=self.description)
            results = []
            for task in tasks:
                results.append(
                    run_task(
                        task, build_model, X_train, y_train, X_holdout, evaluator,
                        price_evaluator,
                    )
                )
                progress.update()
            progress.finish()

        n_failed = sum(not r.is_valid for r in results)
        if n_failed:
            logger.warning(f"{self.description}: {n_failed} cell(s) without a valid R²")
        return list(results)
