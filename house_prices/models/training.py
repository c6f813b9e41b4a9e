"""Model family trainers.

Each trainer owns one model family and turns its configuration into a
list of grid cells per target transform, runs them through a
:class:`~house_prices.models.grid.GridSearch` on the shared split, and
reports the family's tables.

    - :class:`OLSTrainer`: a single cell per transform, plus 10-fold CV
      stability scores on the training split.
    - :class:`ElasticNetTrainer`: one cell per mixing weight α.
    - :class:`RandomForestTrainer`: one cell per (tree count, leaf size).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import pandas as pd
from loguru import logger

from house_prices.config import Config, ElasticNetConfig, RandomForestConfig
from house_prices.data.conditioning import TargetTransform
from house_prices.evaluation.metrics import HoldoutEvaluator
from house_prices.evaluation.selection import (
    ModelVariant,
    ResultsTable,
    VariantResult,
    best_by_transform,
)
from house_prices.exceptions import InvalidArgumentError
from house_prices.models.base import BaseModel, CrossValidationResult, cross_validate
from house_prices.models.ensemble import RandomForestModel
from house_prices.models.grid import GridSearch
from house_prices.models.regression import ElasticNetCVModel, OLSModel
from house_prices.utils.logging import LogContext


class ModelBuilder:
    """Builds an unfitted model for a variant and cell seed.

    A plain class (not a closure) so it pickles into joblib workers.

    Args:
        config: Full configuration.
        tree_n_jobs: Parallel jobs inside each forest fit.
    """

    def __init__(self, config: Config | None = None, tree_n_jobs: int | None = None):
        self.config = config or Config()
        self.tree_n_jobs = tree_n_jobs

    def __call__(self, variant: ModelVariant, seed: int) -> BaseModel:
        params = variant.params_dict

        if variant.family == "ols":
            return OLSModel()

        elif variant.family == "elastic_net":
            en = self.config.elastic_net
            # Folds are seeded with the run seed, not the cell seed, so all
            # mixing weights are compared on identical folds.
            return ElasticNetCVModel(
                mixing=params["mixing"],
                cv_folds=en.cv_folds,
                n_lambdas=en.n_lambdas,
                lambda_min_ratio=en.lambda_min_ratio,
                max_iter=en.max_iter,
                random_state=self.config.split.seed,
            )

        elif variant.family == "random_forest":
            return RandomForestModel(
                n_estimators=params["n_trees"],
                min_samples_leaf=params["min_leaf"],
                sample_fraction=self.config.random_forest.sample_fraction,
                n_jobs=self.tree_n_jobs,
                random_state=seed,
            )

        else:
            raise ValueError(f"Unknown model family: {variant.family}")


@dataclass
class TrainingContext:
    """Everything a trainer needs from the shared split.

    Attributes:
        X_train: Training-split predictors.
        X_holdout: Hold-out predictors.
        y_train: Training-split target per transform.
        evaluators: Hold-out evaluator per transform (SST computed once).
        seed: Base seed of the run.
        price_evaluator: Evaluator for hold-out prices that ranks every
            transform on one scale. Defaults to the raw evaluator.
    """

    X_train: pd.DataFrame
    X_holdout: pd.DataFrame
    y_train: dict[TargetTransform, pd.Series]
    evaluators: dict[TargetTransform, HoldoutEvaluator]
    seed: int = 42
    transforms: list[TargetTransform] = field(default_factory=list)
    price_evaluator: HoldoutEvaluator | None = None

    def __post_init__(self) -> None:
        if self.price_evaluator is None:
            self.price_evaluator = self.evaluators.get(TargetTransform.RAW)
        if not self.transforms:
            self.transforms = list(self.y_train)
        for transform in self.transforms:
            if transform not in self.y_train or transform not in self.evaluators:
                raise InvalidArgumentError(f"No target for transform '{transform.value}'")
            if len(self.y_train[transform]) != len(self.X_train):
                raise InvalidArgumentError(
                    f"Training matrix has {len(self.X_train)} rows but "
                    f"'{transform.value}' target has {len(self.y_train[transform])}"
                )


class FamilyTrainer(ABC):
    """Runs the grid of one model family for every target transform."""

    family: str = ""

    def __init__(self, builder: ModelBuilder, search: GridSearch | None = None):
        """Initialize trainer.

        Args:
            builder: Model factory shared by all trainers.
            search: Grid execution strategy.
        """
        self.builder = builder
        self.search = search or GridSearch()

    @abstractmethod
    def variants(self, transform: TargetTransform) -> list[ModelVariant]:
        """Grid cells for one target transform."""
        pass

    def run(self, ctx: TrainingContext) -> list[VariantResult]:
        """Evaluate the family's grid for every transform in ``ctx``."""
        results: list[VariantResult] = []
        for transform in ctx.transforms:
            with LogContext(family=self.family, transform=transform.value):
                self.search.description = f"{self.family}/{transform.value}"
                cell_results = self.search.run(
                    self.variants(transform),
                    self.builder,
                    ctx.X_train,
                    ctx.y_train[transform],
                    ctx.X_holdout,
                    ctx.evaluators[transform],
                    seed=ctx.seed,
                    price_evaluator=ctx.price_evaluator,
                )
                results.extend(cell_results)
        return results

    def report(self, table: ResultsTable) -> None:
        """Log the best cell of this family per transform."""
        for transform, best in best_by_transform(table, self.family).items():
            logger.info(
                f"Best {self.family} [{transform.value}]: {best.variant.label} "
                f"R²={best.r_squared:.4f}"
            )


class OLSTrainer(FamilyTrainer):
    """Ordinary least squares on all conditioned predictors.

    Besides the hold-out score, k-fold CV on the training split measures
    how stable the fit is. OLS has nothing to tune, so the CV scores are
    reported only.
    """

    family = "ols"

    def __init__(
        self,
        builder: ModelBuilder,
        search: GridSearch | None = None,
        cv_folds: int = 10,
    ):
        super().__init__(builder, search)
        self.cv_folds = cv_folds
        self.cv_results: dict[TargetTransform, CrossValidationResult] = {}

    def variants(self, transform: TargetTransform) -> list[ModelVariant]:
        return [ModelVariant.create(self.family, transform)]

    def run(self, ctx: TrainingContext) -> list[VariantResult]:
        results = super().run(ctx)
        for transform in ctx.transforms:
            cv_result = cross_validate(
                OLSModel(),
                ctx.X_train,
                ctx.y_train[transform],
                cv=min(self.cv_folds, len(ctx.X_train)),
                random_state=ctx.seed,
            )
            self.cv_results[transform] = cv_result
            logger.info(
                f"OLS [{transform.value}] cross-validation: R²={cv_result.mean_score:.4f} ± "
                f"{cv_result.std_score:.4f}"
            )
        return results


class ElasticNetTrainer(FamilyTrainer):
    """Sweep of the elastic-net mixing weight α over [0, 1].

    For each α the penalty λ is chosen by CV inside the training split;
    the hold-out split is only used for the final score.
    """

    family = "elastic_net"

    def __init__(
        self,
        builder: ModelBuilder,
        search: GridSearch | None = None,
        config: ElasticNetConfig | None = None,
        mixing_grid: list[float] | None = None,
    ):
        super().__init__(builder, search)
        config = config or ElasticNetConfig()
        self.mixing_grid = mixing_grid if mixing_grid is not None else config.mixing_grid()
        if not self.mixing_grid:
            raise InvalidArgumentError("Elastic-net mixing grid is empty")
        if any(not 0.0 <= a <= 1.0 for a in self.mixing_grid):
            raise InvalidArgumentError(f"Mixing weights must be in [0, 1]: {self.mixing_grid}")

    def variants(self, transform: TargetTransform) -> list[ModelVariant]:
        return [
            ModelVariant.create(self.family, transform, mixing=a)
            for a in self.mixing_grid
        ]

    def alpha_table(self, table: ResultsTable) -> pd.DataFrame:
        """Hold-out R² by mixing weight (rows) and transform (columns)."""
        rows = [
            {
                "mixing": r.variant.params_dict["mixing"],
                "transform": r.variant.transform.value,
                "r_squared": r.r_squared,
            }
            for r in table.filter(self.family)
        ]
        if not rows:
            return pd.DataFrame()
        return pd.DataFrame(rows).pivot(index="mixing", columns="transform", values="r_squared")


class RandomForestTrainer(FamilyTrainer):
    """2-D grid of tree count × minimum leaf size.

    This is the expensive part of the comparison: one forest per cell,
    per transform. Cells are independent and parallelize cleanly.
    """

    family = "random_forest"

    def __init__(
        self,
        builder: ModelBuilder,
        search: GridSearch | None = None,
        config: RandomForestConfig | None = None,
    ):
        super().__init__(builder, search)
        config = config or RandomForestConfig()
        self.n_trees_grid = list(config.n_trees_grid)
        self.min_leaf_grid = list(config.min_leaf_grid)
        if not self.n_trees_grid or not self.min_leaf_grid:
            raise InvalidArgumentError("Random forest grid is empty")

    def variants(self, transform: TargetTransform) -> list[ModelVariant]:
        return [
            ModelVariant.create(self.family, transform, n_trees=n_trees, min_leaf=min_leaf)
            for n_trees in self.n_trees_grid
            for min_leaf in self.min_leaf_grid
        ]

    def tables(self, table: ResultsTable) -> dict[TargetTransform, pd.DataFrame]:
        """R² tables indexed by tree count (rows) and leaf size (columns)."""
        out = {}
        for transform in TargetTransform:
            grid = table.pivot(self.family, transform, index="n_trees", columns="min_leaf")
            if not grid.empty:
                out[transform] = grid
        return out

    def report(self, table: ResultsTable) -> None:
        for transform, best in best_by_transform(table, self.family).items():
            params = best.variant.params_dict
            logger.info(
                f"Best random forest [{transform.value}]: R²={best.r_squared:.4f} at "
                f"n_trees={params['n_trees']}, min_leaf={params['min_leaf']}"
            )


def build_trainers(
    config: Config,
    search: GridSearch | None = None,
    include_forest: bool = True,
) -> list[FamilyTrainer]:
    """Trainers for every enabled family, in comparison order.

    Grids are validated here so an empty grid fails before any fit.
    """
    search = search or GridSearch(config.search.executor, config.search.n_jobs)
    tree_n_jobs = config.search.n_jobs if search.executor == "sequential" else None
    builder = ModelBuilder(config, tree_n_jobs=tree_n_jobs)

    trainers: list[FamilyTrainer] = []
    if config.ols.enabled:
        trainers.append(OLSTrainer(builder, search, cv_folds=config.ols.cv_folds))
    if config.elastic_net.enabled:
        trainers.append(ElasticNetTrainer(builder, search, config.elastic_net))
    if config.random_forest.enabled and include_forest:
        trainers.append(RandomForestTrainer(builder, search, config.random_forest))

    if not trainers:
        raise InvalidArgumentError("No model family enabled")
    return trainers
