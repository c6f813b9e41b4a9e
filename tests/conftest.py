"""Pytest fixtures for testing the house price model comparison.

Provides reusable synthetic house tables for unit and integration tests.
"""

from pathlib import Path

import numpy as np
import pandas as pd
import pytest


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================


def _make_houses(n: int, seed: int, start_id: int = 1) -> pd.DataFrame:
    """Houses with five informative predictors and one duplicated column."""
    rng = np.random.default_rng(seed)
    sqm = rng.uniform(40, 200, n)
    rooms = rng.integers(1, 6, n).astype(float)
    age = rng.uniform(0, 80, n)
    dist_center = rng.uniform(0.5, 30, n)
    garden = rng.uniform(0, 300, n)

    price = (
        120_000
        + 2_500 * sqm
        + 8_000 * rooms
        - 600 * age
        - 2_000 * dist_center
        + 100 * garden
        + rng.normal(0, 15_000, n)
    )

    return pd.DataFrame({
        "id": np.arange(start_id, start_id + n),
        "sqm": sqm,
        "rooms": rooms,
        "age": age,
        "dist_center": dist_center,
        "garden": garden,
        # Exact copy of sqm: rank deficient by one
        "living_area": sqm.copy(),
        "price": price,
    })


@pytest.fixture
def sold_table() -> pd.DataFrame:
    """100 sold houses with a positive price."""
    return _make_houses(100, seed=42)


@pytest.fixture
def new_table() -> pd.DataFrame:
    """20 new houses to price (no price column)."""
    return _make_houses(20, seed=7, start_id=1001).drop(columns=["price"])


@pytest.fixture
def predictor_columns() -> list[str]:
    """Predictor columns of the sample tables, in table order."""
    return ["sqm", "rooms", "age", "dist_center", "garden", "living_area"]


@pytest.fixture
def sample_features(sold_table: pd.DataFrame, predictor_columns: list[str]) -> pd.DataFrame:
    """Full-rank predictor matrix (duplicate removed)."""
    return sold_table[predictor_columns].drop(columns=["living_area"])


@pytest.fixture
def sample_target(sold_table: pd.DataFrame) -> pd.Series:
    """Raw sale prices."""
    return sold_table["price"].rename("price")


@pytest.fixture
def linear_data() -> tuple[pd.DataFrame, pd.Series]:
    """Small exactly linear data set (no noise)."""
    rng = np.random.default_rng(0)
    X = pd.DataFrame(rng.normal(size=(60, 3)), columns=["a", "b", "c"])
    y = pd.Series(5.0 + 2.0 * X["a"] - 3.0 * X["b"] + 0.5 * X["c"], name="y")
    return X, y


# =============================================================================
# CONFIG FIXTURES
# =============================================================================


@pytest.fixture
def small_config():
    """Configuration with grids small enough for fast tests."""
    from house_prices.config import Config

    return Config.model_validate({
        "ols": {"cv_folds": 5},
        "elastic_net": {"alpha_step": 0.5, "cv_folds": 5, "n_lambdas": 20},
        "random_forest": {"n_trees_grid": [5, 20], "min_leaf_grid": [5, 10]},
    })


# =============================================================================
# MODEL FIXTURES
# =============================================================================


@pytest.fixture
def trained_ols_model(sample_features: pd.DataFrame, sample_target: pd.Series):
    """Create a fitted OLS model."""
    from house_prices.models.regression import OLSModel

    model = OLSModel()
    model.fit(sample_features, sample_target)
    return model


@pytest.fixture
def trained_rf_model(sample_features: pd.DataFrame, sample_target: pd.Series):
    """Create a fitted random forest."""
    from house_prices.models.ensemble import RandomForestModel

    model = RandomForestModel(n_estimators=20, min_samples_leaf=5)
    model.fit(sample_features, sample_target)
    return model


# =============================================================================
# INTEGRATION TEST HELPERS
# =============================================================================


@pytest.fixture
def table_files(tmp_path: Path, sold_table: pd.DataFrame, new_table: pd.DataFrame) -> Path:
    """Write the sample tables to CSV and return their directory."""
    sold_table.to_csv(tmp_path / "sold.csv", index=False)
    new_table.to_csv(tmp_path / "new.csv", index=False)
    return tmp_path


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
