"""Abstract Base Class interface for the glucose-to-wavetable pipeline.

Separated into two concerns:
- ExportParser: Vendor export parsing to a canonical dataset (decode, rows, readings)
- WaveformSynthesizer: Dataset-agnostic waveform synthesis (wavetable, partials)
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Union, TYPE_CHECKING
from enum import Enum
import polars as pl

# Check pandas availability
try:
    import pyarrow as pa
    import pandas as pd
    _PANDAS_AVAILABLE = True
except ImportError:
    _PANDAS_AVAILABLE = False

if TYPE_CHECKING:
    import numpy as np
    from glukoscillator.dataset import DailyRecord, GlucoseDataset

MGDL_PER_MMOL = 18.0182  # mg/dL per mmol/L

TARGET_RANGE_LOW = 70.0  # mg/dL, inclusive
TARGET_RANGE_HIGH = 180.0  # mg/dL, inclusive
PHYSIOLOGICAL_MIN = 40.0  # mg/dL, absolute clamp for cross-day normalization
PHYSIOLOGICAL_MAX = 400.0  # mg/dL

WAVETABLE_SIZE = 2048  # power of two for harmonic analysis
DEFAULT_NUM_PARTIALS = 64
DEFAULT_SMOOTHING_PASSES = 2
DEFAULT_DISPLAY_POINTS = 200

# Rows are plain header -> value mappings
CSVRow = Dict[str, str]


class GlucoseUnit(Enum):
    """Glucose measurement units found in exports."""
    MG_DL = "mg/dL"
    MMOL_L = "mmol/L"


class RecordType(Enum):
    """Origin of a reading inside the export."""
    HISTORIC = "historic"  # periodic sensor record
    SCAN = "scan"  # on-demand scan


class NormalizationPolicy(Enum):
    """How glucose values are mapped onto the [-1, 1] amplitude range."""
    DAY_RELATIVE = "day"  # the day's own min/max
    PHYSIOLOGICAL = "physiological"  # fixed clamp range shared by all days


class MalformedDataError(ValueError):
    """Raised when data cannot be decoded or does not match its schema."""
    pass


class UnknownFormatError(ValueError):
    """Raised when no header line can be located in the export."""
    pass


class ExportParser(ABC):
    """Abstract base class for CGM export parsing.

    This interface handles:
    - Stage 1: Preprocessing raw data (BOM removal, encoding fixes)
    - Stage 2: Row extraction (header detection, quote-aware splitting)
    - Stage 3: Reading normalization and day aggregation into a dataset

    After stage 3, data is a GlucoseDataset and can be passed to a WaveformSynthesizer.
    """

    # ===== STAGE 1: Preprocess Raw Data =====

    @classmethod
    @abstractmethod
    def decode_raw_data(cls, raw_data: Union[bytes, str]) -> str:
        """Remove BOM marks, encoding artifacts, and other junk from raw input.

        Args:
            raw_data: Raw file contents (bytes or string)

        Returns:
            Cleaned string data ready for row extraction
        """
        pass

    # ===== STAGE 2: Row Extraction =====

    @classmethod
    @abstractmethod
    def extract_rows(cls, text_data: str) -> tuple[List[str], List[CSVRow]]:
        """Split export text into header and rows.

        Args:
            text_data: Preprocessed string data

        Returns:
            Tuple of (header names, rows as header -> value mappings)

        Raises:
            UnknownFormatError: If no header line can be located
        """
        pass

    # ===== STAGE 3: Canonical Dataset =====

    @classmethod
    @abstractmethod
    def parse_to_dataset(cls, text_data: str) -> "GlucoseDataset":
        """Parse export text into a day-bucketed dataset of canonical readings.

        Individual malformed rows are dropped; they never fail the parse.

        Args:
            text_data: Preprocessed string data

        Returns:
            GlucoseDataset with per-day statistics computed

        Raises:
            UnknownFormatError: If no header line can be located
        """
        pass


class WaveformSynthesizer(ABC):
    """Abstract base class for turning a day of readings into an oscillator waveform.

    This class operates only on DailyRecord values, regardless of export vendor.
    """

    @abstractmethod
    def generate_wavetable(self, record: "DailyRecord") -> "np.ndarray":
        """Build the fixed-length single-cycle waveform for one day.

        Args:
            record: Day to synthesize

        Returns:
            Array of amplitude samples in [-1, 1]
        """
        pass

    @abstractmethod
    def compute_partials(self, wavetable: "np.ndarray") -> "np.ndarray":
        """Compute fundamental-normalized harmonic magnitudes of a waveform.

        Args:
            wavetable: Single-cycle waveform

        Returns:
            Array of harmonic magnitudes, first element is the fundamental
        """
        pass

# ============================================================================
# Compatibility Layer: Output Adapters
# ============================================================================

def to_pandas(df: pl.DataFrame) -> "pd.DataFrame":
    """Convert polars DataFrame to pandas.

    Raises:
        ImportError: If pandas and pyarrow are not installed
    """
    if not _PANDAS_AVAILABLE:
        raise ImportError(
            "pandas and pyarrow are required for this function. "
        )
    return df.to_pandas()

def to_polars(df: "pd.DataFrame") -> pl.DataFrame:
    """Convert pandas DataFrame to polars.

    Raises:
        ImportError: If arrow and pandas are not installed
    """
    if not _PANDAS_AVAILABLE:
        raise ImportError(
            "pandas and pyarrow are required for this function. "
        )
    return pl.from_pandas(df)
