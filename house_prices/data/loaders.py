"""Data loading utilities for the sold and new house tables."""

from pathlib import Path

import numpy as np
import pandas as pd
from loguru import logger

from house_prices.exceptions import InvalidArgumentError


def load_table(path: str | Path, sep: str = ",") -> pd.DataFrame:
    """Load a house table from CSV.

    Args:
        path: Path to the CSV file.
        sep: Field separator.

    Returns:
        DataFrame with column names stripped of surrounding whitespace.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file holds no rows.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Table not found at {path}")

    logger.info(f"Loading table from {path}")
    df = pd.read_csv(path, sep=sep, encoding="utf-8")
    df.columns = df.columns.str.strip()

    if df.empty:
        raise ValueError(f"Loaded table from '{path}' is empty")

    logger.info(f"Loaded {len(df):,} rows and {len(df.columns)} columns")
    return df


def write_predictions(
    ids: pd.Series,
    prices: pd.Series | np.ndarray,
    path: str | Path,
    id_column: str = "id",
    price_column: str = "predicted_price",
) -> pd.DataFrame:
    """Write predicted prices next to the unchanged identifiers.

    Rows are written in the order given, which is the row order of the
    new table.

    Args:
        ids: Identifier column of the new table.
        prices: Predicted sale prices, one per identifier.
        path: Destination CSV path.
        id_column: Output identifier column name.
        price_column: Output price column name.

    Returns:
        The two-column DataFrame that was written.

    Raises:
        InvalidArgumentError: If ids and prices differ in length.
    """
    prices = np.asarray(prices, dtype=float)
    if len(ids) != len(prices):
        raise InvalidArgumentError(
            f"Got {len(ids)} identifiers but {len(prices)} predictions"
        )

    out = pd.DataFrame({
        id_column: ids.to_numpy(),
        price_column: prices,
    })

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    out.to_csv(path, index=False)
    logger.info(f"Wrote {len(out):,} predictions to {path}")
    return out
