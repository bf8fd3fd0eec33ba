"""Interface package for glucose export processing.

This package provides base interfaces, enums and constants shared by the pipeline.
"""

from glukoscillator.interface.schema import (
    EnumLiteral,
    ColumnSchema,
    FrameSchemaDefinition,
)
from glukoscillator.interface.cgm_interface import (
    GlucoseUnit,
    RecordType,
    NormalizationPolicy,
    ExportParser,
    WaveformSynthesizer,
    UnknownFormatError,
    MalformedDataError,
    CSVRow,
    MGDL_PER_MMOL,
    TARGET_RANGE_LOW,
    TARGET_RANGE_HIGH,
    PHYSIOLOGICAL_MIN,
    PHYSIOLOGICAL_MAX,
    WAVETABLE_SIZE,
    DEFAULT_NUM_PARTIALS,
    DEFAULT_SMOOTHING_PASSES,
    DEFAULT_DISPLAY_POINTS,
    to_pandas,
    to_polars,
)

__all__ = [
    # Schema definitions
    "EnumLiteral",
    "ColumnSchema",
    "FrameSchemaDefinition",
    # Core interfaces
    "ExportParser",
    "WaveformSynthesizer",
    # Enums
    "GlucoseUnit",
    "RecordType",
    "NormalizationPolicy",
    # Exceptions
    "UnknownFormatError",
    "MalformedDataError",
    # Types
    "CSVRow",
    # Constants
    "MGDL_PER_MMOL",
    "TARGET_RANGE_LOW",
    "TARGET_RANGE_HIGH",
    "PHYSIOLOGICAL_MIN",
    "PHYSIOLOGICAL_MAX",
    "WAVETABLE_SIZE",
    "DEFAULT_NUM_PARTIALS",
    "DEFAULT_SMOOTHING_PASSES",
    "DEFAULT_DISPLAY_POINTS",
    # Conversion utilities
    "to_pandas",
    "to_polars",
]
