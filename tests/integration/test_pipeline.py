"""End-to-end tests for the model comparison pipeline."""

import importlib.util
from pathlib import Path

import numpy as np
import pandas as pd
import pytest
from typer.testing import CliRunner

from house_prices.config import Config, load_config, save_config
from house_prices.data.conditioning import TargetTransform
from house_prices.evaluation.metrics import r_squared
from house_prices.exceptions import InvalidArgumentError
from house_prices.models.base import BaseModel
from house_prices.models.regression import OLSModel
from house_prices.pipeline import (
    MODEL_FILENAME,
    RESULTS_FILENAME,
    ComparisonPipeline,
    run_from_config,
)
from house_prices.utils.logging import setup_logging

pytestmark = pytest.mark.integration


@pytest.fixture(autouse=True)
def restore_logging():
    """CLI commands reconfigure loguru on a stream the runner closes."""
    yield
    setup_logging(level="INFO")


def _load_cli():
    path = Path(__file__).parents[2] / "scripts" / "run_pipeline.py"
    spec = importlib.util.spec_from_file_location("run_pipeline", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module.app


def _with_paths(config: Config, directory: Path) -> Config:
    config.paths.sold_table = directory / "sold.csv"
    config.paths.new_table = directory / "new.csv"
    config.paths.output_file = directory / "out" / "predictions.csv"
    config.paths.results_dir = directory / "out"
    return config


class TestComparisonPipeline:
    """Tests for ComparisonPipeline."""

    def test_full_run(self, small_config, sold_table, new_table):
        """Every family runs on both transforms and the new table is priced."""
        result = ComparisonPipeline(small_config).run(sold_table, new_table)

        # 1 OLS + 3 mixing weights + 4 forest cells, per transform
        assert len(result.results) == 2 * (1 + 3 + 4)
        assert result.results.frozen
        assert result.conditioned.dropped_columns == ["living_area"]
        assert result.split.n_train == 65
        assert result.split.n_holdout == 35

        predictions = result.predictions
        assert list(predictions.columns) == ["id", "predicted_price"]
        assert list(predictions["id"]) == list(new_table["id"])
        assert np.all(np.isfinite(predictions["predicted_price"]))

    def test_best_has_max_r2(self, small_config, sold_table, new_table):
        """The selected variant has the highest hold-out R²."""
        result = ComparisonPipeline(small_config).run(sold_table, new_table)
        valid = [r.r_squared for r in result.results if r.is_valid]
        assert result.best.r_squared == max(valid)

    def test_refit_reproduces_holdout_score(self, small_config, sold_table, new_table):
        """Refitting the winner with its seed gives the evaluated model back."""
        result = ComparisonPipeline(small_config).run(sold_table, new_table)
        assert result.best_metrics.r_squared == pytest.approx(result.best.r_squared)

    def test_log_variants_ranked_on_prices(self, small_config, sold_table, new_table):
        """Log models are ranked by the R² of their exponentiated predictions."""
        result = ComparisonPipeline(small_config, include_forest=False).run(
            sold_table, new_table
        )
        conditioned, split = result.conditioned, result.split
        X_tr, X_ho, y_tr, y_ho = split.apply(conditioned.X_train, conditioned.y_log)
        _, _, _, prices = split.apply(conditioned.X_train, conditioned.y_raw)

        log_ols = result.results.filter("ols", TargetTransform.LOG)[0]
        fitted = OLSModel().fit(X_tr, y_tr)
        assert log_ols.r_squared == pytest.approx(
            r_squared(prices, np.exp(fitted.predict(X_ho)))
        )
        assert log_ols.target_r_squared == pytest.approx(r_squared(y_ho, fitted.predict(X_ho)))

    def test_ols_scores(self, small_config, sold_table, new_table):
        """OLS beats the hold-out mean and reports CV stability."""
        result = ComparisonPipeline(small_config).run(sold_table, new_table)
        for r in result.results.filter("ols"):
            assert r.r_squared >= 0
        assert set(result.ols_cv) == {TargetTransform.RAW, TargetTransform.LOG}

    def test_family_tables(self, small_config, sold_table, new_table):
        """Per-family R² tables are exposed."""
        result = ComparisonPipeline(small_config).run(sold_table, new_table)
        assert list(result.elastic_net_table.index) == [0.0, 0.5, 1.0]
        assert result.forest_tables[TargetTransform.RAW].shape == (2, 2)
        assert "Selected:" in result.summary()

    def test_non_positive_price_keeps_raw_branch(self, small_config, sold_table, new_table):
        """A zero price disables the log models only."""
        sold = sold_table.copy()
        sold.loc[0, "price"] = 0.0

        result = ComparisonPipeline(small_config, include_forest=False).run(sold, new_table)

        assert result.conditioned.y_log is None
        assert {r.variant.transform for r in result.results} == {TargetTransform.RAW}
        assert len(result.results) == 1 + 3

    def test_deterministic(self, small_config, sold_table, new_table):
        """Two runs with the same seed agree exactly."""
        a = ComparisonPipeline(small_config).run(sold_table, new_table)
        b = ComparisonPipeline(small_config).run(sold_table, new_table)
        assert [r.r_squared for r in a.results] == [r.r_squared for r in b.results]
        pd.testing.assert_frame_equal(a.predictions, b.predictions)

    def test_missing_target_column(self, small_config, sold_table, new_table):
        """A sold table without the price column is invalid."""
        with pytest.raises(InvalidArgumentError):
            ComparisonPipeline(small_config).run(sold_table.drop(columns=["price"]), new_table)

    def test_missing_predictor_value(self, small_config, sold_table, new_table):
        """Missing predictor values abort before training."""
        new = new_table.copy()
        new.loc[2, "age"] = np.nan
        with pytest.raises(InvalidArgumentError):
            ComparisonPipeline(small_config).run(sold_table, new)


class TestRunFromConfig:
    """Tests for run_from_config."""

    def test_writes_outputs(self, small_config, table_files: Path, new_table):
        """Predictions, ranked results and the model are written."""
        config = _with_paths(small_config, table_files)

        result = run_from_config(config, include_forest=False, save_model=True)

        predictions = pd.read_csv(config.paths.output_file)
        assert list(predictions["id"]) == list(new_table["id"])

        ranked = pd.read_csv(config.paths.results_dir / RESULTS_FILENAME)
        assert len(ranked) == len(result.results)
        assert ranked["r_squared"].iloc[0] == pytest.approx(result.best.r_squared)

        model = BaseModel.load(config.paths.results_dir / MODEL_FILENAME)
        assert model.is_fitted


class TestCLI:
    """Tests for the command-line interface."""

    def test_init_config(self, tmp_path: Path):
        """init-config writes a loadable default configuration."""
        path = tmp_path / "config.yaml"
        result = CliRunner().invoke(_load_cli(), ["init-config", str(path)])

        assert result.exit_code == 0
        assert load_config(path) == Config()

    def test_init_config_refuses_overwrite(self, tmp_path: Path):
        """An existing file is kept unless forced."""
        path = tmp_path / "config.yaml"
        path.write_text("split:\n  seed: 1\n")
        result = CliRunner().invoke(_load_cli(), ["init-config", str(path)])
        assert result.exit_code == 1

    def test_inspect(self, table_files: Path):
        """inspect reports dependent columns and split sizes."""
        result = CliRunner().invoke(
            _load_cli(),
            [
                "inspect",
                "--sold", str(table_files / "sold.csv"),
                "--new", str(table_files / "new.csv"),
            ],
        )
        assert result.exit_code == 0
        assert "living_area" in result.output
        assert "65 train / 35 hold-out" in result.output

    @pytest.mark.slow
    def test_run(self, small_config, table_files: Path):
        """run executes the comparison and writes predictions."""
        config = _with_paths(small_config, table_files)
        config_path = table_files / "config.yaml"
        save_config(config, config_path)

        result = CliRunner().invoke(
            _load_cli(), ["run", "--config", str(config_path), "--skip-forest"]
        )

        assert result.exit_code == 0, result.output
        assert "Comparison Complete" in result.output
        assert config.paths.output_file.exists()
