"""Tests for configuration module."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from house_prices.config import (
    Config,
    ElasticNetConfig,
    RandomForestConfig,
    SplitConfig,
    load_config,
    save_config,
)


class TestConfig:
    """Tests for the Config class."""

    def test_default_config(self):
        """Test that default config loads without errors."""
        config = Config()
        assert config.split.train_fraction == 0.65
        assert config.split.seed == 42
        assert config.schema_.id_column == "id"
        assert config.search.transforms == ["raw", "log"]

    def test_split_config_validation(self):
        """Test that fractions outside (0, 1) are rejected."""
        with pytest.raises(ValidationError):
            SplitConfig(train_fraction=1.0)
        with pytest.raises(ValidationError):
            SplitConfig(train_fraction=0.0)

    def test_mixing_grid_default(self):
        """Default mixing grid runs from 0 to 1 in steps of 0.05."""
        grid = ElasticNetConfig().mixing_grid()
        assert len(grid) == 21
        assert grid[0] == 0.0
        assert grid[-1] == 1.0
        assert grid[10] == 0.5

    def test_mixing_grid_coarse(self):
        """A step of 0.5 gives ridge, the midpoint and lasso."""
        assert ElasticNetConfig(alpha_step=0.5).mixing_grid() == [0.0, 0.5, 1.0]

    def test_mixing_step_must_divide_unit(self):
        """Steps that overshoot or fall short of 1 are rejected."""
        with pytest.raises(ValidationError, match="divide 1"):
            ElasticNetConfig(alpha_step=0.3)
        with pytest.raises(ValidationError):
            ElasticNetConfig(alpha_step=0.7)
        assert len(ElasticNetConfig(alpha_step=0.1).mixing_grid()) == 11

    def test_forest_grid_defaults(self):
        """Test random forest grid defaults."""
        config = RandomForestConfig()
        assert len(config.n_trees_grid) == 10
        assert len(config.min_leaf_grid) == 7
        assert config.sample_fraction == 0.5

    def test_forest_grid_rejects_non_positive(self):
        """Grid values must be >= 1."""
        with pytest.raises(ValidationError):
            RandomForestConfig(min_leaf_grid=[0, 5])

    def test_honesty_rejected(self):
        """Honest forests are not supported."""
        with pytest.raises(ValidationError):
            RandomForestConfig(honesty=True)

    def test_unknown_executor_rejected(self):
        """Test that unknown executors are rejected."""
        with pytest.raises(ValidationError):
            Config.model_validate({"search": {"executor": "threads"}})

    def test_load_config_nonexistent(self):
        """Test loading non-existent config file."""
        with pytest.raises(FileNotFoundError):
            load_config("nonexistent.yaml")

    def test_load_config_none(self):
        """Test loading with None returns defaults."""
        config = load_config(None)
        assert isinstance(config, Config)

    def test_save_load_roundtrip(self, tmp_path: Path):
        """Saved config loads back with the same values."""
        config = Config.model_validate({
            "schema": {"target_column": "sale_price", "drop_policy": "union"},
            "split": {"seed": 7},
        })
        path = tmp_path / "config.yaml"
        save_config(config, path)

        loaded = load_config(path)
        assert loaded.schema_.target_column == "sale_price"
        assert loaded.schema_.drop_policy == "union"
        assert loaded.split.seed == 7
        assert loaded.paths.sold_table == Path("data/sold.csv")

    def test_default_yaml_matches_defaults(self):
        """The shipped default YAML describes the default configuration."""
        path = Path(__file__).parents[2] / "configs" / "default.yaml"
        config = load_config(path)
        assert config == Config()
