"""FreeStyle Libre (LibreView) export format constants.

LibreView CSVs start with a few metadata lines (patient name, export date),
followed by the header row and one data row per record. Column names vary by
region and unit, so every lookup goes through the preference tables below.
"""

from typing import Tuple
from glukoscillator.interface.schema import EnumLiteral


class LibreColumn(EnumLiteral):
    """Known LibreView column names."""
    DEVICE = "Device"
    SERIAL_NUMBER = "Serial Number"
    DEVICE_TIMESTAMP = "Device Timestamp"
    RECORD_TYPE = "Record Type"
    HISTORIC_GLUCOSE_MGDL = "Historic Glucose mg/dL"
    HISTORIC_GLUCOSE_MMOL = "Historic Glucose mmol/L"
    SCAN_GLUCOSE_MGDL = "Scan Glucose mg/dL"
    SCAN_GLUCOSE_MMOL = "Scan Glucose mmol/L"
    HISTORIC_GLUCOSE_MGDL_PAREN = "Historic Glucose (mg/dL)"
    HISTORIC_GLUCOSE_MMOL_PAREN = "Historic Glucose (mmol/L)"
    SCAN_GLUCOSE_MGDL_PAREN = "Scan Glucose (mg/dL)"
    SCAN_GLUCOSE_MMOL_PAREN = "Scan Glucose (mmol/L)"


# Header detection: first line (of the first N) containing all keywords, lowercase
HEADER_SEARCH_LINES = 10
HEADER_KEYWORDS: Tuple[str, ...] = ("device", "timestamp")

# Unit detection: substring of the lowercased header text
MMOL_UNIT_MARKER = "mmol/l"

# Glucose columns, tried in order; a match needs a non-empty value in the row
GLUCOSE_COLUMN_PREFERENCE: Tuple[str, ...] = (
    LibreColumn.HISTORIC_GLUCOSE_MGDL,
    LibreColumn.HISTORIC_GLUCOSE_MMOL,
    LibreColumn.SCAN_GLUCOSE_MGDL,
    LibreColumn.SCAN_GLUCOSE_MMOL,
    LibreColumn.HISTORIC_GLUCOSE_MGDL_PAREN,
    LibreColumn.HISTORIC_GLUCOSE_MMOL_PAREN,
    LibreColumn.SCAN_GLUCOSE_MGDL_PAREN,
    LibreColumn.SCAN_GLUCOSE_MMOL_PAREN,
)
GLUCOSE_COLUMN_FRAGMENTS: Tuple[str, ...] = ("historic glucose", "scan glucose")
SCAN_COLUMN_MARKER = "scan"

# Timestamp columns, tried in order; fallback is any name containing the fragment
TIMESTAMP_COLUMN_PREFERENCE: Tuple[str, ...] = (
    LibreColumn.DEVICE_TIMESTAMP,
    "Timestamp",
    "Time",
    "Date/Time",
)
TIMESTAMP_COLUMN_FRAGMENT = "timestamp"

# Meter out-of-range markers (below / above the sensor's measurable range)
OUT_OF_RANGE_SENTINELS: Tuple[str, ...] = ("Lo", "Hi")

DEFAULT_DEVICE_NAME = "Unknown Device"
DEFAULT_SERIAL_NUMBER = ""
