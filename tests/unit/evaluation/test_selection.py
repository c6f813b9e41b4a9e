"""Tests for ranking and selecting model variants."""

import numpy as np
import pandas as pd
import pytest

from house_prices.data.conditioning import TargetTransform
from house_prices.evaluation.selection import (
    ModelVariant,
    ResultsTable,
    VariantResult,
    best_by_transform,
    retrain_and_predict,
    select_best,
)
from house_prices.exceptions import InvalidArgumentError
from house_prices.models.regression import OLSModel


def _result(family: str, r2: float, transform: str = "raw", **params) -> VariantResult:
    return VariantResult(ModelVariant.create(family, transform, **params), r2)


class TestModelVariant:
    """Tests for ModelVariant."""

    def test_params_sorted_and_hashable(self):
        """Parameter order does not matter for equality."""
        a = ModelVariant.create("random_forest", "log", n_trees=5, min_leaf=10)
        b = ModelVariant.create("random_forest", "log", min_leaf=10, n_trees=5)
        assert a == b
        assert hash(a) == hash(b)
        assert a.params_dict == {"min_leaf": 10, "n_trees": 5}

    def test_complexity_order(self):
        """OLS is simplest, random forest most complex."""
        ols = ModelVariant.create("ols", "raw")
        enet = ModelVariant.create("elastic_net", "raw", mixing=0.5)
        rf = ModelVariant.create("random_forest", "raw", n_trees=5, min_leaf=5)
        assert ols.complexity < enet.complexity < rf.complexity

    def test_label(self):
        """Labels name the family, transform and parameters."""
        variant = ModelVariant.create("elastic_net", TargetTransform.LOG, mixing=0.25)
        assert variant.label == "elastic_net[log](mixing=0.25)"


class TestSelectBest:
    """Tests for select_best."""

    def test_highest_r2_wins(self):
        """The best hold-out R² is selected."""
        results = [
            _result("ols", 0.70),
            _result("elastic_net", 0.82, mixing=0.5),
            _result("random_forest", 0.78, n_trees=5, min_leaf=5),
        ]
        assert select_best(results).variant.family == "elastic_net"

    def test_tie_goes_to_simpler_family(self):
        """Equal R² prefers fewer tuned hyperparameters."""
        results = [
            _result("random_forest", 0.8, n_trees=5, min_leaf=5),
            _result("elastic_net", 0.8, mixing=0.5),
            _result("ols", 0.8),
        ]
        assert select_best(results).variant.family == "ols"

    def test_tie_within_family_goes_to_first(self):
        """Within one family, the earliest result wins a tie."""
        results = [
            _result("elastic_net", 0.8, mixing=0.0),
            _result("elastic_net", 0.8, mixing=1.0),
        ]
        assert select_best(results).variant.params_dict["mixing"] == 0.0

    def test_nan_excluded(self):
        """Failed cells never win."""
        results = [_result("elastic_net", float("nan"), mixing=0.5), _result("ols", -0.1)]
        assert select_best(results).variant.family == "ols"

    def test_no_valid_result(self):
        """Selection needs at least one finite R²."""
        with pytest.raises(InvalidArgumentError):
            select_best([_result("ols", float("nan"))])

    def test_best_by_transform(self):
        """Best of a family is reported per transform."""
        table = ResultsTable([
            _result("elastic_net", 0.5, "raw", mixing=0.0),
            _result("elastic_net", 0.6, "raw", mixing=1.0),
            _result("elastic_net", 0.7, "log", mixing=0.0),
        ])
        best = best_by_transform(table, "elastic_net")
        assert best[TargetTransform.RAW].variant.params_dict["mixing"] == 1.0
        assert best[TargetTransform.LOG].variant.params_dict["mixing"] == 0.0

    def test_ranks_on_price_scale(self):
        """A better log-scale fit loses when its prices fit worse."""
        raw = VariantResult(ModelVariant.create("ols", "raw"), 0.944)
        log = VariantResult(
            ModelVariant.create("ols", "log"), 0.941, transform_r_squared=0.950
        )
        assert select_best([log, raw]) is raw
        assert log.target_r_squared == 0.950
        assert raw.target_r_squared == 0.944


class TestResultsTable:
    """Tests for ResultsTable."""

    def test_frozen_table_rejects_additions(self):
        """A frozen table is read-only."""
        table = ResultsTable([_result("ols", 0.5)]).freeze()
        assert table.frozen
        with pytest.raises(RuntimeError):
            table.add(_result("ols", 0.6))

    def test_to_frame_ranked(self):
        """Rows are ranked by R², NaN last."""
        table = ResultsTable([
            _result("ols", 0.5),
            _result("elastic_net", float("nan"), mixing=0.5),
            _result("random_forest", 0.9, n_trees=5, min_leaf=5),
        ])
        df = table.to_frame()
        assert list(df["family"]) == ["random_forest", "ols", "elastic_net"]
        assert {"mixing", "n_trees", "min_leaf", "r_squared"} <= set(df.columns)

    def test_to_frame_keeps_target_scale_r2(self):
        """Log rows carry their log-scale R² next to the price R²."""
        table = ResultsTable([
            VariantResult(ModelVariant.create("ols", "log"), 0.6, transform_r_squared=0.9),
            _result("ols", 0.8),
        ])
        df = table.to_frame()
        assert list(df["transform"]) == ["raw", "log"]
        assert list(df["target_r_squared"]) == [0.8, 0.9]

    def test_filter(self):
        """Test filtering by family and transform."""
        table = ResultsTable([
            _result("ols", 0.5, "raw"),
            _result("ols", 0.6, "log"),
            _result("elastic_net", 0.7, "log", mixing=0.5),
        ])
        assert len(table.filter("ols")) == 2
        assert len(table.filter(transform="log")) == 2
        assert len(table.filter("ols", TargetTransform.LOG)) == 1

    def test_pivot(self):
        """Two-parameter grids pivot into a 2-D table."""
        table = ResultsTable([
            _result("random_forest", 0.1 * i + 0.01 * j, "raw", n_trees=n, min_leaf=m)
            for i, n in enumerate([5, 10])
            for j, m in enumerate([5, 25, 50])
        ])
        grid = table.pivot("random_forest", "raw", "n_trees", "min_leaf")
        assert grid.shape == (2, 3)
        assert grid.loc[10, 50] == pytest.approx(0.12)


class TestRetrainAndPredict:
    """Tests for retrain_and_predict."""

    def test_log_predictions_exponentiated(self, linear_data):
        """Log-space models price on the original scale."""
        X, y = linear_data
        y_pos = np.exp(y / 10)
        targets = {
            TargetTransform.RAW: y_pos,
            TargetTransform.LOG: np.log(y_pos),
        }
        best = VariantResult(ModelVariant.create("ols", "log"), 0.99, metadata={"seed": 1})

        model, prices = retrain_and_predict(
            best, lambda variant, seed: OLSModel(), X, targets, X.iloc[:5]
        )

        assert model.is_fitted
        assert prices.name == "predicted_price"
        np.testing.assert_allclose(prices.to_numpy(), y_pos.iloc[:5].to_numpy(), rtol=1e-8)

    def test_seed_passed_to_builder(self, linear_data):
        """The refit uses the evaluated cell's seed."""
        X, y = linear_data
        seen = []

        def build(variant, seed):
            seen.append(seed)
            return OLSModel()

        best = VariantResult(ModelVariant.create("ols", "raw"), 0.9, metadata={"seed": 123})
        retrain_and_predict(best, build, X, {TargetTransform.RAW: y}, X)
        assert seen == [123]

    def test_index_follows_new_table(self, linear_data):
        """Predictions are indexed like the new rows."""
        X, y = linear_data
        X_new = X.iloc[10:20]
        best = VariantResult(ModelVariant.create("ols", "raw"), 0.9)
        _, prices = retrain_and_predict(
            best, lambda v, s: OLSModel(), X, {TargetTransform.RAW: y}, X_new
        )
        assert isinstance(prices, pd.Series)
        assert list(prices.index) == list(X_new.index)
