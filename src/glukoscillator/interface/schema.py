"""Base Schema Infrastructure.

This module defines the base types, enums, and schema builder classes
used to describe the tabular (polars) views of parsed glucose data.
"""

import polars as pl
from enum import Enum
from typing import Dict, Any, List, Union, Type, TypedDict, NotRequired

from glukoscillator.interface.cgm_interface import MalformedDataError


class EnumLiteral(str, Enum):
    """
    A general base class for string-based enums that behave like literals.
    Ensures compatibility with str comparisons and retains enum benefits.
    """
    def __new__(cls, value, *args, **kwargs):
        obj = str.__new__(cls, value)
        obj._value_ = value
        return obj

    def __str__(self):
        # String representation directly returns the value
        return self.value

    def __eq__(self, other):
        # Allow direct comparison with strings
        if isinstance(other, str):
            return self.value == other
        return super().__eq__(other)

    def __hash__(self):
        # Use the hash of the value to behave like a string in hashable contexts
        return hash(self.value)

    def __repr__(self):
        # For print statements and serialization
        return self.value


class ColumnSchema(TypedDict):
    """Schema definition for a single column."""
    name: str
    dtype: Union[Type[pl.DataType], pl.DataType]
    description: str
    unit: NotRequired[str]
    constraints: NotRequired[Dict[str, Any]]


class FrameSchemaDefinition:
    """Schema definition for a polars frame produced by this package.

    Holds the ordered column list and derives the polars dtype mapping,
    cast expressions and a lightweight validation routine from it.
    """

    def __init__(
        self,
        columns: List[ColumnSchema],
        primary_key: List[str] | None = None
    ) -> None:
        """Initialize schema definition.

        Args:
            columns: Ordered column definitions
            primary_key: Optional list of field names that form the primary key
        """
        self.columns = columns
        self.primary_key = primary_key

    def get_polars_schema(self) -> Dict[str, pl.DataType]:
        """Get Polars dtype schema dictionary.

        Returns:
            Dictionary mapping column names to Polars data types
        """
        return {col["name"]: col["dtype"] for col in self.columns}

    def get_column_names(self) -> List[str]:
        """Get list of all column names in schema order."""
        return [col["name"] for col in self.columns]

    def get_cast_expressions(self) -> List[pl.Expr]:
        """Get Polars expressions for casting columns.

        Returns:
            List of pl.col().cast() expressions for use with df.with_columns()
        """
        return [pl.col(col["name"]).cast(col["dtype"]) for col in self.columns]

    def empty_frame(self) -> pl.DataFrame:
        """Create an empty frame with this schema."""
        return pl.DataFrame(schema=self.get_polars_schema())

    def validate_dataframe(self, df: pl.DataFrame, enforce: bool = False) -> pl.DataFrame:
        """Check that a frame carries every schema column.

        Args:
            df: Frame to validate
            enforce: If True, cast columns to the schema dtypes and reorder them

        Returns:
            The frame (cast and reordered when enforce is set)

        Raises:
            MalformedDataError: If required columns are missing or casting fails
        """
        missing = [name for name in self.get_column_names() if name not in df.columns]
        if missing:
            raise MalformedDataError(f"Missing required columns: {missing}")

        if not enforce:
            return df

        try:
            return df.with_columns(self.get_cast_expressions()).select(self.get_column_names())
        except pl.exceptions.PolarsError as e:
            raise MalformedDataError(f"Failed to cast frame to schema: {e}")

    def describe(self) -> List[Dict[str, Any]]:
        """Describe the columns as plain dictionaries (name, type, description, unit)."""
        fields = []
        for col in self.columns:
            field = {
                "name": col["name"],
                "type": str(col["dtype"]),
                "description": col["description"],
            }
            if col.get("unit"):
                field["unit"] = col["unit"]
            if col.get("constraints"):
                field["constraints"] = col["constraints"]
            fields.append(field)
        return fields
