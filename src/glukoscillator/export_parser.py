"""LibreView export parser working on text data."""

import logging
import math
import re
from base64 import b64decode
from collections import Counter
from pathlib import Path
from typing import List, Optional, Sequence, Union

from glukoscillator.dataset import GlucoseDataset, Reading
from glukoscillator.day_aggregator import DayAggregator
from glukoscillator.formats.libre import (
    DEFAULT_DEVICE_NAME,
    DEFAULT_SERIAL_NUMBER,
    GLUCOSE_COLUMN_FRAGMENTS,
    GLUCOSE_COLUMN_PREFERENCE,
    HEADER_KEYWORDS,
    HEADER_SEARCH_LINES,
    MMOL_UNIT_MARKER,
    OUT_OF_RANGE_SENTINELS,
    SCAN_COLUMN_MARKER,
    TIMESTAMP_COLUMN_FRAGMENT,
    TIMESTAMP_COLUMN_PREFERENCE,
    LibreColumn,
)
from glukoscillator.interface.cgm_interface import (
    MGDL_PER_MMOL,
    CSVRow,
    ExportParser,
    GlucoseUnit,
    MalformedDataError,
    RecordType,
    UnknownFormatError,
)
from glukoscillator.timestamps import resolve_timestamp

logger = logging.getLogger(__name__)

# Common encoding artifacts and their fixes
UTF8_BOM = b'\xef\xbb\xbf'
ENCODING_ARTIFACTS = {
    # Double-encoded BOM in quotes: "ïººº¿"
    b'\x22\xc3\xaf\xc2\xbb\xc2\xbf\x22': UTF8_BOM,
    # Triple-encoded BOM
    b'\x22\xc3\x83\xc2\xaf\xc3\x82\xc2\xbb\xc3\x82\xc2\xbf\x22': UTF8_BOM,
    # Double-encoded BOM without quotes
    b'\xc3\xaf\xc2\xbb\xc2\xbf': UTF8_BOM,
    # Quoted BOM (some systems do this)
    b'\x22\xef\xbb\xbf\x22': UTF8_BOM,
}

LINE_BREAK = re.compile(r"\r?\n")


def split_csv_line(line: str) -> List[str]:
    """Split one CSV line on commas outside double quotes.

    Quote characters only toggle the in-quotes state and are dropped from
    the output, so ``"1,5"`` becomes the single field ``1,5``.
    """
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == ',' and not in_quotes:
            fields.append(''.join(current))
            current = []
        else:
            current.append(char)
    fields.append(''.join(current))

    return fields


class LibreViewParser(ExportParser):
    """Main export parser implementing the ExportParser interface.

    This class orchestrates the parsing pipeline from raw data to a dataset:
    1. Decode raw data (remove BOM, fix encoding)
    2. Extract rows (locate header among metadata lines, split fields)
    3. Resolve unit and columns, normalize readings, aggregate days

    Malformed rows are dropped one by one; only a missing header fails the parse.
    """

    # ===== STAGE 1: Preprocess Raw Data =====

    @classmethod
    def decode_raw_data(cls, raw_data: Union[bytes, str]) -> str:
        """Remove BOM marks, encoding artifacts, and other junk from raw input.

        Args:
            raw_data: Raw file contents (bytes or string)

        Returns:
            Cleaned string data ready for row extraction
        """
        # If already a string, return as-is
        if isinstance(raw_data, str):
            return raw_data

        # Normalize encoding artifacts
        normalized = raw_data
        for corrupted_pattern, proper_bom in ENCODING_ARTIFACTS.items():
            if normalized.startswith(corrupted_pattern):
                normalized = proper_bom + normalized[len(corrupted_pattern):]
                break

        # Decode with utf-8-sig to handle BOM
        return normalized.decode('utf-8-sig', errors='replace')

    # ===== STAGE 2: Row Extraction =====

    @staticmethod
    def find_header_index(lines: Sequence[str]) -> int:
        """Locate the header line among leading metadata lines.

        Args:
            lines: Export lines

        Returns:
            Index of the first of the first HEADER_SEARCH_LINES lines containing all header keywords

        Raises:
            UnknownFormatError: If no such line exists
        """
        for index, line in enumerate(lines[:HEADER_SEARCH_LINES]):
            lowered = line.lower()
            if all(keyword in lowered for keyword in HEADER_KEYWORDS):
                return index

        raise UnknownFormatError(
            f"No header line found in the first {HEADER_SEARCH_LINES} lines. "
            f"Sample lines: {list(lines[:3])}"
        )

    @classmethod
    def extract_rows(cls, text_data: str) -> tuple[List[str], List[CSVRow]]:
        """Split export text into header and rows.

        Lines whose field count differs from the header's are dropped.

        Args:
            text_data: Preprocessed string data

        Returns:
            Tuple of (header names, rows as header -> value mappings)

        Raises:
            UnknownFormatError: If no header line can be located
        """
        lines = LINE_BREAK.split(text_data.strip())
        header_index = cls.find_header_index(lines)
        headers = [name.strip() for name in split_csv_line(lines[header_index])]

        rows: List[CSVRow] = []
        dropped = 0
        for line in lines[header_index + 1:]:
            values = split_csv_line(line)
            if len(values) != len(headers):
                dropped += 1
                continue
            rows.append({name: value.strip() for name, value in zip(headers, values)})

        if dropped:
            logger.debug(f"Dropped {dropped} line(s) with a field count other than {len(headers)}")
        return headers, rows

    # ===== Column Resolution =====

    @staticmethod
    def detect_unit(headers: Sequence[str]) -> GlucoseUnit:
        """Detect the export unit from header text (mg/dL unless mmol/L is named)."""
        if MMOL_UNIT_MARKER in ' '.join(headers).lower():
            return GlucoseUnit.MMOL_L
        return GlucoseUnit.MG_DL

    @staticmethod
    def find_glucose_column(row: CSVRow) -> Optional[str]:
        """Find the column holding this row's glucose value.

        Known names are tried in preference order, then any column whose name
        contains a glucose fragment. Only columns with a non-empty value match.
        """
        for column in GLUCOSE_COLUMN_PREFERENCE:
            if row.get(column):
                return str(column)

        for name, value in row.items():
            lowered = name.lower()
            if value and any(fragment in lowered for fragment in GLUCOSE_COLUMN_FRAGMENTS):
                return name

        return None

    @staticmethod
    def find_timestamp_column(row: CSVRow) -> Optional[str]:
        """Find the timestamp column name: known names first, then any name containing 'timestamp'."""
        for column in TIMESTAMP_COLUMN_PREFERENCE:
            if column in row:
                return str(column)

        for name in row:
            if TIMESTAMP_COLUMN_FRAGMENT in name.lower():
                return name

        return None

    @staticmethod
    def record_type_for_column(column: str) -> RecordType:
        if SCAN_COLUMN_MARKER in column.lower():
            return RecordType.SCAN
        return RecordType.HISTORIC

    # ===== Reading Normalization =====

    @staticmethod
    def parse_glucose_value(value: str) -> Optional[float]:
        """Parse a glucose field; sentinel, empty and non-numeric values give None."""
        if not value or value in OUT_OF_RANGE_SENTINELS:
            return None
        try:
            number = float(value)
        except ValueError:
            return None
        if not math.isfinite(number):
            return None
        return number

    @classmethod
    def normalize_readings(cls, rows: Sequence[CSVRow], unit: GlucoseUnit) -> List[Reading]:
        """Convert rows into canonical readings sorted by timestamp.

        Args:
            rows: Extracted rows
            unit: Source unit of the export

        Returns:
            Readings in mg/dL, ascending by timestamp (ties keep source order)
        """
        if not rows:
            return []

        timestamp_column = cls.find_timestamp_column(rows[0])
        factor = MGDL_PER_MMOL if unit == GlucoseUnit.MMOL_L else 1.0

        readings: List[Reading] = []
        skipped: Counter = Counter()
        for row in rows:
            glucose_column = cls.find_glucose_column(row)
            if glucose_column is None or timestamp_column is None:
                skipped["unresolved column"] += 1
                continue

            raw_value = cls.parse_glucose_value(row[glucose_column])
            if raw_value is None:
                skipped["invalid glucose"] += 1
                continue

            # conversion can overflow a finite raw value
            value = raw_value * factor
            if not math.isfinite(value):
                skipped["invalid glucose"] += 1
                continue

            timestamp = resolve_timestamp(row.get(timestamp_column, ''))
            if timestamp is None:
                skipped["invalid timestamp"] += 1
                continue

            readings.append(Reading(
                timestamp=timestamp,
                value=value,
                record_type=cls.record_type_for_column(glucose_column),
            ))

        # list.sort is stable: equal timestamps keep file order
        readings.sort(key=lambda reading: reading.timestamp)

        for reason, count in skipped.items():
            logger.debug(f"Skipped {count} row(s): {reason}")
        logger.info(f"Normalized {len(readings)} readings from {len(rows)} rows")
        return readings

    # ===== STAGE 3: Canonical Dataset =====

    @classmethod
    def parse_to_dataset(cls, text_data: str) -> GlucoseDataset:
        """Parse export text into a day-bucketed dataset of canonical readings.

        Args:
            text_data: Preprocessed string data

        Returns:
            GlucoseDataset with per-day statistics computed

        Raises:
            UnknownFormatError: If no header line can be located
        """
        headers, rows = cls.extract_rows(text_data)
        unit = cls.detect_unit(headers)

        first_row = rows[0] if rows else {}
        device_name = first_row.get(LibreColumn.DEVICE) or DEFAULT_DEVICE_NAME
        serial_number = first_row.get(LibreColumn.SERIAL_NUMBER) or DEFAULT_SERIAL_NUMBER

        readings = cls.normalize_readings(rows, unit)
        days = DayAggregator.aggregate(readings)

        return GlucoseDataset(
            days=days,
            unit=unit,
            device_name=device_name,
            serial_number=serial_number,
        )

    # ===== Convenience Methods =====

    @classmethod
    def parse_from_bytes(cls, raw_data: bytes) -> GlucoseDataset:
        """Convenience method to parse raw bytes directly to a dataset.

        Args:
            raw_data: Raw file contents as bytes

        Returns:
            GlucoseDataset

        Raises:
            UnknownFormatError: If no header line can be located
        """
        return cls.parse_to_dataset(cls.decode_raw_data(raw_data))

    @classmethod
    def parse_from_string(cls, text_data: str) -> GlucoseDataset:
        """Convenience method to parse an already decoded string."""
        return cls.parse_to_dataset(text_data)

    @classmethod
    def parse_file(cls, file_path: Union[str, Path]) -> GlucoseDataset:
        """Parse a CGM export from a file path.

        Args:
            file_path: Path to the export (CSV)

        Returns:
            GlucoseDataset

        Raises:
            FileNotFoundError: If file doesn't exist
            UnknownFormatError: If no header line can be located
        """
        file_path = Path(file_path)
        with open(file_path, 'rb') as f:
            raw_data = f.read()

        return cls.parse_from_bytes(raw_data)

    @classmethod
    def parse_base64(cls, base64_data: str) -> GlucoseDataset:
        """Parse a CGM export from a base64 encoded string.

        Useful for web API endpoints that receive base64 encoded CSV data.

        Args:
            base64_data: Base64 encoded CSV data string

        Returns:
            GlucoseDataset

        Raises:
            MalformedDataError: If base64 decoding fails
            UnknownFormatError: If no header line can be located
        """
        try:
            raw_data = b64decode(base64_data, validate=True)
        except ValueError as e:
            raise MalformedDataError(f"Failed to decode base64 data: {e}")

        return cls.parse_from_bytes(raw_data)
