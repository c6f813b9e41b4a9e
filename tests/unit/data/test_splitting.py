"""Tests for the train/hold-out split."""

import numpy as np
import pandas as pd
import pytest

from house_prices.data.splitting import make_split
from house_prices.exceptions import InvalidArgumentError


class TestMakeSplit:
    """Tests for make_split."""

    def test_sizes(self):
        """65% of 100 rows go to training."""
        split = make_split(100, train_fraction=0.65, seed=42)
        assert split.n_train == 65
        assert split.n_holdout == 35

    def test_partition(self):
        """Training and hold-out rows are disjoint and cover every row."""
        split = make_split(100, seed=42)
        assert len(np.intersect1d(split.train_idx, split.holdout_idx)) == 0
        combined = np.sort(np.concatenate([split.train_idx, split.holdout_idx]))
        np.testing.assert_array_equal(combined, np.arange(100))

    def test_deterministic(self):
        """Same seed and size give the same split."""
        a = make_split(100, seed=42)
        b = make_split(100, seed=42)
        np.testing.assert_array_equal(a.train_idx, b.train_idx)
        np.testing.assert_array_equal(a.holdout_idx, b.holdout_idx)

    def test_seed_changes_split(self):
        """A different seed gives a different split."""
        a = make_split(100, seed=42)
        b = make_split(100, seed=43)
        assert not np.array_equal(a.train_idx, b.train_idx)

    def test_indices_sorted(self):
        """Row positions come back in table order."""
        split = make_split(50, seed=1)
        assert np.all(np.diff(split.train_idx) > 0)
        assert np.all(np.diff(split.holdout_idx) > 0)

    @pytest.mark.parametrize("fraction", [0.0, 1.0, -0.1, 1.5])
    def test_fraction_out_of_range(self, fraction: float):
        """Fractions outside (0, 1) are invalid."""
        with pytest.raises(InvalidArgumentError):
            make_split(100, train_fraction=fraction)

    def test_too_few_rows(self):
        """A single row cannot be split."""
        with pytest.raises(InvalidArgumentError):
            make_split(1)

    def test_holdout_too_small(self):
        """A hold-out below the minimum size is rejected."""
        with pytest.raises(InvalidArgumentError, match="Hold-out"):
            make_split(10, train_fraction=0.95)

    def test_apply(self, sample_features: pd.DataFrame, sample_target: pd.Series):
        """apply slices rows by position."""
        split = make_split(len(sample_features), seed=42)
        X_tr, X_ho, y_tr, y_ho = split.apply(sample_features, sample_target)

        assert len(X_tr) == len(y_tr) == 65
        assert len(X_ho) == len(y_ho) == 35
        assert list(X_tr.index) == list(y_tr.index)
        np.testing.assert_array_equal(X_ho.index.to_numpy(), split.holdout_idx)

    def test_apply_row_mismatch(self, sample_features: pd.DataFrame, sample_target: pd.Series):
        """apply refuses inputs of the wrong length."""
        split = make_split(len(sample_features) - 1, seed=42)
        with pytest.raises(InvalidArgumentError):
            split.apply(sample_features, sample_target)
