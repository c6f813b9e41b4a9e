"""End-to-end model comparison pipeline.

Orchestrates the full run on one sold table and one new table:

    schema -> conditioning -> split -> OLS / elastic-net / random forest
    (per target transform) -> hold-out R² -> selection -> retrain -> prices

Usage:
    from house_prices.config import load_config
    from house_prices.pipeline import run_from_config

    result = run_from_config(load_config("configs/default.yaml"))
    print(result.summary())
"""

from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd
import pandera as pa
from loguru import logger

from house_prices.config import Config
from house_prices.data.conditioning import ConditionedData, DataConditioner, TargetTransform
from house_prices.data.loaders import load_table, write_predictions
from house_prices.data.schemas import TableSchema
from house_prices.data.splitting import HoldoutSplit, make_split
from house_prices.evaluation.metrics import HoldoutEvaluator, RegressionMetrics
from house_prices.evaluation.selection import (
    ResultsTable,
    VariantResult,
    retrain_and_predict,
    select_best,
)
from house_prices.exceptions import InvalidArgumentError
from house_prices.models.base import BaseModel, CrossValidationResult
from house_prices.models.grid import GridSearch
from house_prices.models.training import (
    ElasticNetTrainer,
    OLSTrainer,
    RandomForestTrainer,
    TrainingContext,
    build_trainers,
)
from house_prices.utils.logging import log_model_metrics

RESULTS_FILENAME = "model_comparison.csv"
MODEL_FILENAME = "best_model.pkl"


@dataclass
class PipelineResult:
    """Everything produced by one comparison run.

    Attributes:
        results: Frozen table of every evaluated variant.
        best: Selected variant.
        predictions: New-table identifiers and predicted prices.
        model: Selected variant refit on the training split.
        best_metrics: Hold-out metrics of the refit model on the price scale.
        conditioned: Conditioned sold/new predictors and targets.
        split: Train/hold-out split shared by all families.
        schema: Resolved column roles.
        ols_cv: OLS cross-validation per transform.
        elastic_net_table: Hold-out R² by mixing weight and transform.
        forest_tables: Hold-out R² grid per transform.
    """

    results: ResultsTable
    best: VariantResult
    predictions: pd.DataFrame
    model: BaseModel
    best_metrics: RegressionMetrics
    conditioned: ConditionedData
    split: HoldoutSplit
    schema: TableSchema
    ols_cv: dict[TargetTransform, CrossValidationResult] = field(default_factory=dict)
    elastic_net_table: pd.DataFrame | None = None
    forest_tables: dict[TargetTransform, pd.DataFrame] = field(default_factory=dict)

    def summary(self, top: int = 10) -> str:
        """Human-readable summary of the run."""
        lines = [
            f"Predictors: {self.conditioned.X_train.shape[1]} "
            f"(dropped: {self.conditioned.dropped_columns or 'none'})",
            f"Split: {self.split.n_train} train / {self.split.n_holdout} hold-out "
            f"(seed={self.split.seed})",
            f"Variants evaluated: {len(self.results)}",
        ]
        if self.conditioned.log_error:
            lines.append(f"Log target unavailable: {self.conditioned.log_error}")
        for transform, cv in self.ols_cv.items():
            lines.append(
                f"OLS CV [{transform.value}]: R²={cv.mean_score:.4f} ± {cv.std_score:.4f}"
            )

        lines.append("")
        lines.append(f"Top {top} by hold-out price R² (target-scale R² in brackets):")
        ranked = self.results.to_frame().head(top)
        for _, row in ranked.iterrows():
            params = {
                k: row[k] for k in ("mixing", "n_trees", "min_leaf")
                if k in row and pd.notna(row[k])
            }
            param_str = ", ".join(f"{k}={v:g}" for k, v in params.items())
            lines.append(
                f"  {row['family']:<14} {row['transform']:<4} "
                f"R²={row['r_squared']:.4f} [{row['target_r_squared']:.4f}]  {param_str}"
            )

        lines.append("")
        lines.append(f"Selected: {self.best.variant.label} (R²={self.best.r_squared:.4f})")
        lines.append(f"Priced {len(self.predictions):,} new houses")
        return "\n".join(lines)


class ComparisonPipeline:
    """Compare model families on one split and price the new table.

    Example:
        >>> pipeline = ComparisonPipeline(config)
        >>> result = pipeline.run(sold_df, new_df)
        >>> result.predictions.head()
    """

    def __init__(
        self,
        config: Config | None = None,
        include_forest: bool = True,
        search: GridSearch | None = None,
    ):
        """Initialize pipeline.

        Args:
            config: Configuration. Defaults are used when None.
            include_forest: Whether to run the random forest grid.
            search: Grid execution strategy. Built from ``config.search``
                when None.
        """
        self.config = config or Config()
        self.include_forest = include_forest
        self.search = search or GridSearch(
            self.config.search.executor, self.config.search.n_jobs
        )

    def resolve_schema(self, sold_df: pd.DataFrame) -> TableSchema:
        cfg = self.config.schema_
        return TableSchema.infer(
            sold_df, cfg.id_column, cfg.target_column, cfg.predictors
        )

    def prepare(
        self, sold_df: pd.DataFrame, new_df: pd.DataFrame
    ) -> tuple[TableSchema, pd.Series, ConditionedData]:
        """Validate both tables and condition their predictors.

        Returns:
            Tuple of (schema, new-table identifiers, conditioned data).

        Raises:
            InvalidArgumentError: If either table fails validation.
        """
        schema = self.resolve_schema(sold_df)
        try:
            sold_df = schema.validate(sold_df, require_target=True)
            new_df = schema.validate(new_df, require_target=False)
        except pa.errors.SchemaError as exc:
            raise InvalidArgumentError(f"Table failed validation: {exc}") from exc

        _, X_sold, y = schema.split(sold_df)
        new_ids, X_new, _ = schema.split(new_df)

        conditioner = DataConditioner(drop_policy=self.config.schema_.drop_policy)
        conditioned = conditioner.condition(X_sold, y, X_new)
        return schema, new_ids, conditioned

    def _transforms(self, conditioned: ConditionedData) -> list[TargetTransform]:
        requested = [TargetTransform(t) for t in self.config.search.transforms]
        available = conditioned.targets
        transforms = [t for t in requested if t in available]
        for t in requested:
            if t not in available:
                logger.warning(f"Skipping '{t.value}' target: {conditioned.log_error}")
        if not transforms:
            raise InvalidArgumentError("No usable target transform")
        return transforms

    def run(self, sold_df: pd.DataFrame, new_df: pd.DataFrame) -> PipelineResult:
        """Run the full comparison.

        Args:
            sold_df: Sold table with identifier, predictors and price.
            new_df: New table with identifier and the same predictors.

        Returns:
            PipelineResult.
        """
        logger.info("Starting model comparison")
        schema, new_ids, conditioned = self.prepare(sold_df, new_df)

        split_cfg = self.config.split
        split = make_split(
            len(conditioned.X_train),
            train_fraction=split_cfg.train_fraction,
            seed=split_cfg.seed,
            min_holdout=split_cfg.min_holdout,
        )

        transforms = self._transforms(conditioned)
        X_train, X_holdout, _, price_holdout = split.apply(
            conditioned.X_train, conditioned.y_raw
        )
        price_evaluator = HoldoutEvaluator(price_holdout, name="price")

        y_train: dict[TargetTransform, pd.Series] = {}
        evaluators: dict[TargetTransform, HoldoutEvaluator] = {}
        for transform in transforms:
            _, _, y_tr, y_ho = split.apply(conditioned.X_train, conditioned.targets[transform])
            y_train[transform] = y_tr
            if transform is TargetTransform.RAW:
                evaluators[transform] = price_evaluator
            else:
                evaluators[transform] = HoldoutEvaluator(y_ho, name=transform.value)

        ctx = TrainingContext(
            X_train=X_train,
            X_holdout=X_holdout,
            y_train=y_train,
            evaluators=evaluators,
            seed=split.seed,
            transforms=transforms,
            price_evaluator=price_evaluator,
        )

        trainers = build_trainers(self.config, self.search, self.include_forest)
        table = ResultsTable()
        for trainer in trainers:
            table.extend(trainer.run(ctx))
        table.freeze()
        for trainer in trainers:
            trainer.report(table)

        best = select_best(table)
        logger.info(f"Selected {best.variant.label} with hold-out R²={best.r_squared:.4f}")

        model, prices = retrain_and_predict(
            best, trainers[0].builder, ctx.X_train, ctx.y_train, conditioned.X_new
        )
        best_metrics = price_evaluator.metrics(
            best.variant.transform.inverse(model.predict(ctx.X_holdout))
        )
        log_model_metrics(
            best.variant.label,
            best_metrics.r_squared,
            rmse=best_metrics.rmse,
            mae=best_metrics.mae,
        )

        predictions = pd.DataFrame({
            schema.id_column: new_ids.to_numpy(),
            self.config.schema_.price_column: prices.to_numpy(),
        })

        result = PipelineResult(
            results=table,
            best=best,
            predictions=predictions,
            model=model,
            best_metrics=best_metrics,
            conditioned=conditioned,
            split=split,
            schema=schema,
        )
        for trainer in trainers:
            if isinstance(trainer, OLSTrainer):
                result.ols_cv = dict(trainer.cv_results)
            elif isinstance(trainer, ElasticNetTrainer):
                result.elastic_net_table = trainer.alpha_table(table)
            elif isinstance(trainer, RandomForestTrainer):
                result.forest_tables = trainer.tables(table)

        logger.info("Model comparison complete")
        return result


def run_from_config(
    config: Config,
    include_forest: bool = True,
    save_model: bool = False,
) -> PipelineResult:
    """Load the configured tables, run the comparison and write outputs.

    Writes the predictions to ``paths.output_file`` and the ranked R²
    table to ``paths.results_dir``.

    Args:
        config: Configuration.
        include_forest: Whether to run the random forest grid.
        save_model: Also persist the refit best model with joblib.

    Returns:
        PipelineResult.
    """
    paths = config.paths
    sold_df = load_table(paths.sold_table)
    new_df = load_table(paths.new_table)

    result = ComparisonPipeline(config, include_forest=include_forest).run(sold_df, new_df)

    write_predictions(
        result.predictions[result.schema.id_column],
        result.predictions[config.schema_.price_column],
        paths.output_file,
        id_column=result.schema.id_column,
        price_column=config.schema_.price_column,
    )

    results_dir = Path(paths.results_dir)
    results_dir.mkdir(parents=True, exist_ok=True)
    results_path = results_dir / RESULTS_FILENAME
    result.results.to_frame().to_csv(results_path, index=False)
    logger.info(f"Wrote {len(result.results)} variant results to {results_path}")

    if save_model:
        result.model.save(results_dir / MODEL_FILENAME)

    return result
