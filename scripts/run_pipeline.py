#!/usr/bin/env python3
"""Main CLI entry point for the house price model comparison.

This script provides a command-line interface for running the full
comparison, from loading the sold and new tables through the model
grids to writing predicted prices.

Usage:
    python scripts/run_pipeline.py run --config configs/default.yaml
    python scripts/run_pipeline.py run --skip-forest --n-jobs 4
    python scripts/run_pipeline.py inspect --sold data/sold.csv --new data/new.csv
    python scripts/run_pipeline.py init-config configs/my_run.yaml
"""

from pathlib import Path
from typing import Optional

import typer
from loguru import logger

app = typer.Typer(
    name="house-prices",
    help="Compare OLS, elastic-net and random forest house price models",
    add_completion=False,
)


def _load(config_path: Optional[Path], sold: Optional[Path], new: Optional[Path]):
    from house_prices.config import load_config

    config = load_config(config_path)
    if sold is not None:
        config.paths.sold_table = sold
    if new is not None:
        config.paths.new_table = new
    return config


@app.command()
def run(
    config_path: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="Path to configuration file",
    ),
    sold: Optional[Path] = typer.Option(
        None,
        "--sold", "-s",
        help="Sold houses table (overrides config)",
    ),
    new: Optional[Path] = typer.Option(
        None,
        "--new", "-n",
        help="New houses table (overrides config)",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Predicted prices CSV (overrides config)",
    ),
    skip_forest: bool = typer.Option(
        False,
        "--skip-forest",
        help="Skip the random forest grid",
    ),
    n_jobs: Optional[int] = typer.Option(
        None,
        "--n-jobs", "-j",
        help="Run grid cells in parallel with this many workers",
    ),
    save_model: bool = typer.Option(
        False,
        "--save-model",
        help="Persist the selected model next to the results table",
    ),
) -> None:
    """Run the full comparison and price the new table.

    Steps:
    1. Load and validate both tables
    2. Drop linearly dependent predictors
    3. Split the sold table once
    4. Evaluate every model variant on the hold-out rows
    5. Refit the best variant and write predicted prices
    """
    from house_prices.pipeline import run_from_config
    from house_prices.utils.logging import setup_logging

    config = _load(config_path, sold, new)
    if output is not None:
        config.paths.output_file = output
    if n_jobs is not None:
        config.search.executor = "joblib"
        config.search.n_jobs = n_jobs

    setup_logging(level=config.log_level, log_file=config.log_file)
    logger.info("Starting house price comparison")

    result = run_from_config(config, include_forest=not skip_forest, save_model=save_model)

    typer.echo("\n" + "=" * 50)
    typer.echo("Comparison Complete")
    typer.echo("=" * 50)
    typer.echo(result.summary())
    typer.echo(f"\nPredictions saved to {config.paths.output_file}")


@app.command("init-config")
def init_config(
    path: Path = typer.Argument(
        Path("configs/default.yaml"),
        help="Where to write the default configuration",
    ),
    force: bool = typer.Option(
        False,
        "--force", "-f",
        help="Overwrite an existing file",
    ),
) -> None:
    """Write the default configuration to a YAML file."""
    from house_prices.config import Config, save_config

    if path.exists() and not force:
        typer.echo(f"{path} already exists (use --force to overwrite)")
        raise typer.Exit(code=1)

    save_config(Config(), path)
    typer.echo(f"Wrote default configuration to {path}")


@app.command()
def inspect(
    config_path: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="Path to configuration file",
    ),
    sold: Optional[Path] = typer.Option(
        None,
        "--sold", "-s",
        help="Sold houses table (overrides config)",
    ),
    new: Optional[Path] = typer.Option(
        None,
        "--new", "-n",
        help="New houses table (overrides config)",
    ),
) -> None:
    """Report schema, dependent columns and split sizes without training."""
    from house_prices.data.loaders import load_table
    from house_prices.data.splitting import make_split
    from house_prices.pipeline import ComparisonPipeline
    from house_prices.utils.logging import setup_logging

    config = _load(config_path, sold, new)
    setup_logging(level="WARNING")

    pipeline = ComparisonPipeline(config)
    schema, new_ids, conditioned = pipeline.prepare(
        load_table(config.paths.sold_table), load_table(config.paths.new_table)
    )
    split = make_split(
        len(conditioned.X_train),
        train_fraction=config.split.train_fraction,
        seed=config.split.seed,
        min_holdout=config.split.min_holdout,
    )

    typer.echo("\nTable Summary:")
    typer.echo("=" * 40)
    typer.echo(f"Identifier: {schema.id_column}")
    typer.echo(f"Target: {schema.target_column}")
    typer.echo(f"Predictors ({len(schema.predictors)}): {', '.join(schema.predictors)}")
    typer.echo(f"Sold rows: {len(conditioned.X_train):,}")
    typer.echo(f"New rows: {len(new_ids):,}")

    typer.echo(f"\nDependent columns dropped ({config.schema_.drop_policy} policy):")
    for col in conditioned.dropped_columns or ["none"]:
        typer.echo(f"  {col}")
    extra = [c for c in conditioned.new_table_dependencies if c not in conditioned.dropped_columns]
    if extra:
        typer.echo(f"Dependent in new table only: {', '.join(extra)}")

    typer.echo(f"\nLog target: {'available' if conditioned.y_log is not None else 'unavailable'}")
    if conditioned.log_error:
        typer.echo(f"  {conditioned.log_error}")

    typer.echo(
        f"\nSplit: {split.n_train:,} train / {split.n_holdout:,} hold-out (seed={split.seed})"
    )


if __name__ == "__main__":
    app()
