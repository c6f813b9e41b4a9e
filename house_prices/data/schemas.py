"""Table schema descriptor and pandera validation.

The sold and new tables share one logical schema: an identifier column,
the sale price target (sold table only) and an ordered list of numeric
predictors. The schema is resolved once when the tables are loaded, and
every later step works from the resolved descriptor instead of looking
columns up by name.

Usage:
    from house_prices.data.schemas import TableSchema

    schema = TableSchema.infer(sold_df, id_column="id", target_column="price")
    schema.validate(sold_df)
    ids, X, y = schema.split(sold_df)
"""

from dataclasses import dataclass
from enum import Enum

import numpy as np
import pandas as pd
import pandera as pa
from loguru import logger

from house_prices.exceptions import InvalidArgumentError


class ColumnRole(str, Enum):
    """Role a column plays in the modeling tables."""

    IDENTIFIER = "identifier"
    TARGET = "target"
    PREDICTOR = "predictor"


@dataclass(frozen=True)
class ColumnSpec:
    """A named column and its role."""

    name: str
    role: ColumnRole


@dataclass(frozen=True)
class TableSchema:
    """Ordered column roles shared by the sold and new tables.

    Attributes:
        columns: Column specs in table order. Exactly one identifier,
            at most one target, at least one predictor.
    """

    columns: tuple[ColumnSpec, ...]

    def __post_init__(self) -> None:
        roles = [c.role for c in self.columns]
        if roles.count(ColumnRole.IDENTIFIER) != 1:
            raise InvalidArgumentError("Schema needs exactly one identifier column")
        if roles.count(ColumnRole.TARGET) > 1:
            raise InvalidArgumentError("Schema allows at most one target column")
        if ColumnRole.PREDICTOR not in roles:
            raise InvalidArgumentError("Schema needs at least one predictor column")
        names = [c.name for c in self.columns]
        if len(set(names)) != len(names):
            raise InvalidArgumentError(f"Duplicate column names in schema: {names}")

    @classmethod
    def infer(
        cls,
        df: pd.DataFrame,
        id_column: str,
        target_column: str,
        predictors: list[str] | None = None,
    ) -> "TableSchema":
        """Resolve column roles from a sold table.

        Args:
            df: Sold table (must contain identifier and target).
            id_column: Identifier column name.
            target_column: Sale price column name.
            predictors: Explicit predictor list. When None, every numeric
                column except the identifier and target is used, in
                table order.

        Returns:
            Resolved TableSchema.

        Raises:
            InvalidArgumentError: If a named column is missing.
        """
        for col in [id_column, target_column, *(predictors or [])]:
            if col not in df.columns:
                raise InvalidArgumentError(f"Column '{col}' not found in table")

        if predictors is None:
            exclude = {id_column, target_column}
            predictors = [
                col for col in df.select_dtypes(include=[np.number]).columns
                if col not in exclude
            ]
            skipped = [
                col for col in df.columns
                if col not in exclude and col not in predictors
            ]
            if skipped:
                logger.warning(f"Ignoring non-numeric columns: {skipped}")

        columns = (
            ColumnSpec(id_column, ColumnRole.IDENTIFIER),
            ColumnSpec(target_column, ColumnRole.TARGET),
            *(ColumnSpec(p, ColumnRole.PREDICTOR) for p in predictors),
        )
        schema = cls(columns)
        logger.info(
            f"Resolved schema: id='{id_column}', target='{target_column}', "
            f"{len(predictors)} predictors"
        )
        return schema

    @property
    def id_column(self) -> str:
        """Identifier column name."""
        return next(c.name for c in self.columns if c.role is ColumnRole.IDENTIFIER)

    @property
    def target_column(self) -> str | None:
        """Target column name, if the schema has one."""
        return next(
            (c.name for c in self.columns if c.role is ColumnRole.TARGET), None
        )

    @property
    def predictors(self) -> list[str]:
        """Predictor column names in order."""
        return [c.name for c in self.columns if c.role is ColumnRole.PREDICTOR]

    def to_pandera(self, require_target: bool = True) -> pa.DataFrameSchema:
        """Build a pandera schema for a table with these roles.

        Args:
            require_target: Whether the target column must be present
                (True for the sold table, False for the new table).

        Returns:
            pandera DataFrameSchema. Extra columns are allowed.
        """
        columns: dict[str, pa.Column] = {
            self.id_column: pa.Column(nullable=False, unique=True),
        }
        for name in self.predictors:
            columns[name] = pa.Column(float, nullable=False, coerce=True)
        if require_target and self.target_column is not None:
            columns[self.target_column] = pa.Column(float, nullable=False, coerce=True)

        return pa.DataFrameSchema(columns, strict=False, name="HousePriceTable")

    def validate(self, df: pd.DataFrame, require_target: bool = True) -> pd.DataFrame:
        """Validate a table against the schema.

        Args:
            df: Table to validate.
            require_target: See :meth:`to_pandera`.

        Returns:
            Validated DataFrame (numeric columns coerced to float).

        Raises:
            pandera.errors.SchemaError: If validation fails.
        """
        return self.to_pandera(require_target).validate(df)

    def split(
        self, df: pd.DataFrame
    ) -> tuple[pd.Series, pd.DataFrame, pd.Series | None]:
        """Split a table into identifier, predictors and target.

        Args:
            df: Sold or new table.

        Returns:
            Tuple of (ids, X, y). ``y`` is None when the table has no
            target column. The row index is reset to 0..n-1 so positional
            split indices line up with labels.
        """
        df = df.reset_index(drop=True)
        ids = df[self.id_column]
        X = df[self.predictors].astype(float)
        target = self.target_column
        y = df[target].astype(float) if target is not None and target in df.columns else None
        return ids, X, y
