"""Canonical frame schemas.

Readings are always stored in mg/dL regardless of the export's unit.
"""

import polars as pl
from glukoscillator.interface.schema import ColumnSchema, FrameSchemaDefinition


READING_COLUMNS: list[ColumnSchema] = [
    {
        "name": "timestamp",
        "dtype": pl.Datetime("us"),
        "description": "Local wall-clock time of the reading",
    },
    {
        "name": "value",
        "dtype": pl.Float64,
        "description": "Glucose value in canonical units",
        "unit": "mg/dL",
        "constraints": {"minimum": 0},
    },
    {
        "name": "record_type",
        "dtype": pl.Utf8,
        "description": "Reading origin (historic or scan)",
        "constraints": {"enum": ["historic", "scan"]},
    },
]

DAY_STATS_COLUMNS: list[ColumnSchema] = [
    {
        "name": "date_key",
        "dtype": pl.Utf8,
        "description": "Calendar day (YYYY-MM-DD)",
    },
    {
        "name": "count",
        "dtype": pl.UInt32,
        "description": "Number of readings in the day",
    },
    {
        "name": "min",
        "dtype": pl.Float64,
        "description": "Lowest reading of the day",
        "unit": "mg/dL",
    },
    {
        "name": "max",
        "dtype": pl.Float64,
        "description": "Highest reading of the day",
        "unit": "mg/dL",
    },
    {
        "name": "avg",
        "dtype": pl.Float64,
        "description": "Arithmetic mean of the day's readings",
        "unit": "mg/dL",
    },
    {
        "name": "time_in_range",
        "dtype": pl.Float64,
        "description": "Share of readings within the target range",
        "unit": "%",
        "constraints": {"minimum": 0, "maximum": 100},
    },
]

READING_SCHEMA = FrameSchemaDefinition(columns=READING_COLUMNS, primary_key=None)
DAY_STATS_SCHEMA = FrameSchemaDefinition(columns=DAY_STATS_COLUMNS, primary_key=["date_key"])
