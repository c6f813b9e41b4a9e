"""Loading, validation, conditioning and splitting of the house tables."""

from house_prices.data.conditioning import (
    ConditionedData,
    DataConditioner,
    TargetTransform,
    drop_dependent_columns,
    find_dependent_columns,
    log_target,
)
from house_prices.data.loaders import load_table, write_predictions
from house_prices.data.schemas import ColumnRole, ColumnSpec, TableSchema
from house_prices.data.splitting import HoldoutSplit, make_split

__all__ = [
    # Conditioning
    "ConditionedData",
    "DataConditioner",
    "TargetTransform",
    "drop_dependent_columns",
    "find_dependent_columns",
    "log_target",
    # Loaders
    "load_table",
    "write_predictions",
    # Schemas
    "ColumnRole",
    "ColumnSpec",
    "TableSchema",
    # Splitting
    "HoldoutSplit",
    "make_split",
]
