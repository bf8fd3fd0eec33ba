"""Tests for LibreViewParser implementation."""

import base64
import math
from datetime import datetime

import numpy as np
import pytest

from glukoscillator import LibreViewParser, WavetableSynthesizer
from glukoscillator.export_parser import split_csv_line
from glukoscillator.features import compute_volatility
from glukoscillator.interface.cgm_interface import (
    MGDL_PER_MMOL,
    GlucoseUnit,
    MalformedDataError,
    RecordType,
    UnknownFormatError,
)

METADATA_LINE = "Glucose Data,Generated on,06-02-2024 09:00 UTC,Generated by,Test User"
MGDL_HEADER = "Device,Serial Number,Device Timestamp,Record Type,Historic Glucose mg/dL,Scan Glucose mg/dL"
MMOL_HEADER = "Device,Serial Number,Device Timestamp,Record Type,Historic Glucose mmol/L,Scan Glucose mmol/L"


def make_export(header: str, rows: list, metadata: bool = True) -> str:
    lines = ([METADATA_LINE] if metadata else []) + [header] + rows
    return "\r\n".join(lines) + "\r\n"


@pytest.fixture
def mgdl_export() -> str:
    """Two days of mg/dL readings, one scan, one sensor-out-of-range row."""
    return make_export(MGDL_HEADER, [
        "FreeStyle LibreLink,ABC-123,01-06-2024 08:00,0,110,",
        "FreeStyle LibreLink,ABC-123,01-06-2024 08:15,0,Lo,",
        "FreeStyle LibreLink,ABC-123,01-06-2024 08:20,1,,150",
        "FreeStyle LibreLink,ABC-123,01-06-2024 08:30,0,190,",
        "FreeStyle LibreLink,ABC-123,02-06-2024 07:45,0,95,",
    ])


@pytest.fixture
def mmol_export() -> str:
    return make_export(MMOL_HEADER, [
        "FreeStyle Libre 3,XYZ-9,2024-06-01 08:00,0,5.5,",
        "FreeStyle Libre 3,XYZ-9,2024-06-01 08:15,0,6.0,",
    ])


class TestCSVSplitting:
    """Test quote-aware line splitting."""

    def test_plain_fields(self):
        assert split_csv_line("a,b,,c") == ["a", "b", "", "c"]

    def test_comma_inside_quotes_is_kept(self):
        """Quotes toggle the in-quotes state and are dropped from the field."""
        assert split_csv_line('x,"1,5",y') == ["x", "1,5", "y"]


class TestRowExtraction:
    """Test header detection and row extraction."""

    def test_header_after_metadata_lines(self, mgdl_export):
        headers, rows = LibreViewParser.extract_rows(mgdl_export)

        assert headers[0] == "Device"
        assert "Device Timestamp" in headers
        assert len(rows) == 5
        assert rows[0]["Historic Glucose mg/dL"] == "110"

    def test_header_on_first_line(self):
        text = make_export(MGDL_HEADER, ["Libre,1,01-06-2024 08:00,0,120,"], metadata=False)
        headers, rows = LibreViewParser.extract_rows(text)
        assert len(headers) == 6
        assert len(rows) == 1

    def test_field_count_mismatch_is_dropped(self):
        text = make_export(MGDL_HEADER, [
            "Libre,1,01-06-2024 08:00,0,120,",
            "Libre,1,01-06-2024 08:15,0,120",
            "Libre,1,01-06-2024 08:30,0,120,,extra",
        ])
        _, rows = LibreViewParser.extract_rows(text)
        assert len(rows) == 1

    def test_values_and_headers_are_trimmed(self):
        text = make_export(" Device , Device Timestamp , Historic Glucose mg/dL ", [
            " Libre , 01-06-2024 08:00 , 120 ",
        ])
        headers, rows = LibreViewParser.extract_rows(text)
        assert headers == ["Device", "Device Timestamp", "Historic Glucose mg/dL"]
        assert rows[0]["Historic Glucose mg/dL"] == "120"

    def test_missing_header_raises(self):
        text = "\n".join(["just,some,numbers"] * 12)
        with pytest.raises(UnknownFormatError):
            LibreViewParser.extract_rows(text)

    def test_header_beyond_search_window_raises(self):
        text = make_export(MGDL_HEADER, ["Libre,1,01-06-2024 08:00,0,120,"], metadata=False)
        text = "\n".join(["metadata"] * 10) + "\n" + text
        with pytest.raises(UnknownFormatError):
            LibreViewParser.extract_rows(text)


class TestColumnResolution:
    """Test unit detection and column lookups."""

    def test_unit_detection(self):
        assert LibreViewParser.detect_unit(MGDL_HEADER.split(",")) == GlucoseUnit.MG_DL
        assert LibreViewParser.detect_unit(MMOL_HEADER.split(",")) == GlucoseUnit.MMOL_L

    def test_historic_column_preferred(self):
        row = {"Historic Glucose mg/dL": "100", "Scan Glucose mg/dL": "140"}
        assert LibreViewParser.find_glucose_column(row) == "Historic Glucose mg/dL"

    def test_empty_historic_falls_through_to_scan(self):
        row = {"Historic Glucose mg/dL": "", "Scan Glucose mg/dL": "140"}
        assert LibreViewParser.find_glucose_column(row) == "Scan Glucose mg/dL"

    def test_fragment_fallback(self):
        row = {"Historic Glucose [mg/dL]": "100"}
        assert LibreViewParser.find_glucose_column(row) == "Historic Glucose [mg/dL]"

    def test_no_glucose_column(self):
        assert LibreViewParser.find_glucose_column({"Notes": "lunch"}) is None

    def test_timestamp_column_lookup(self):
        assert LibreViewParser.find_timestamp_column({"Device Timestamp": ""}) == "Device Timestamp"
        assert LibreViewParser.find_timestamp_column({"Local Timestamp (UTC)": ""}) == "Local Timestamp (UTC)"
        assert LibreViewParser.find_timestamp_column({"Notes": ""}) is None

    def test_record_type_for_column(self):
        assert LibreViewParser.record_type_for_column("Scan Glucose mg/dL") == RecordType.SCAN
        assert LibreViewParser.record_type_for_column("Historic Glucose mg/dL") == RecordType.HISTORIC


class TestGlucoseValues:
    """Test glucose value parsing."""

    @pytest.mark.parametrize("raw", ["", "Lo", "Hi", "n/a", "nan", "inf", "5,5"])
    def test_rejected_values(self, raw):
        assert LibreViewParser.parse_glucose_value(raw) is None

    def test_accepted_values(self):
        assert LibreViewParser.parse_glucose_value("120") == 120.0
        assert LibreViewParser.parse_glucose_value("5.5") == 5.5


class TestReadingNormalization:
    """Test conversion of rows into canonical readings."""

    def test_mgdl_readings(self, mgdl_export):
        dataset = LibreViewParser.parse_from_string(mgdl_export)
        readings = dataset.all_readings()

        assert [r.value for r in readings] == [110.0, 150.0, 190.0, 95.0]
        assert readings[1].record_type == RecordType.SCAN
        assert readings[0].record_type == RecordType.HISTORIC
        assert readings[0].timestamp == datetime(2024, 6, 1, 8, 0)

    def test_mmol_conversion(self, mmol_export):
        dataset = LibreViewParser.parse_from_string(mmol_export)

        assert dataset.unit == GlucoseUnit.MMOL_L
        values = [r.value for r in dataset.all_readings()]
        assert values[0] == pytest.approx(5.5 * MGDL_PER_MMOL)
        assert values[1] == pytest.approx(6.0 * MGDL_PER_MMOL)

    def test_readings_sorted_by_timestamp(self):
        text = make_export(MGDL_HEADER, [
            "Libre,1,01-06-2024 09:00,0,130,",
            "Libre,1,01-06-2024 08:00,0,110,",
            "Libre,1,01-06-2024 08:30,0,120,",
        ])
        dataset = LibreViewParser.parse_from_string(text)
        assert [r.value for r in dataset.all_readings()] == [110.0, 120.0, 130.0]

    def test_equal_timestamps_keep_file_order(self):
        text = make_export(MGDL_HEADER, [
            "Libre,1,01-06-2024 09:00,0,130,",
            "Libre,1,01-06-2024 08:00,0,111,",
            "Libre,1,01-06-2024 08:00,0,112,",
        ])
        dataset = LibreViewParser.parse_from_string(text)
        readings = dataset.get_day("2024-06-01").readings

        assert [r.value for r in readings] == [111.0, 112.0, 130.0]
        assert readings[0].timestamp == readings[1].timestamp

    def test_overflowing_mmol_value_dropped(self):
        """A finite mmol/L value whose mg/dL conversion overflows is not kept."""
        text = make_export(MMOL_HEADER, [
            "Libre,1,2024-06-01 08:00,0,1e307,",
            "Libre,1,2024-06-01 08:15,0,5.5,",
        ])
        dataset = LibreViewParser.parse_from_string(text)
        day = dataset.get_day("2024-06-01")

        assert dataset.reading_count == 1
        assert day.stats.max == pytest.approx(5.5 * MGDL_PER_MMOL)
        assert math.isfinite(day.stats.avg)
        assert math.isfinite(compute_volatility(day.readings))

    def test_year_below_1000_does_not_abort_parse(self):
        text = "Device Timestamp,Historic Glucose mg/dL\n01-06-2024 10:00,120\n01-06-0500 10:00,130"
        dataset = LibreViewParser.parse_from_string(text)

        assert dataset.available_dates() == ["0500-06-01", "2024-06-01"]
        assert dataset.get_day("0500-06-01").stats.avg == 130.0
        assert dataset.get_day("2024-06-01").stats.avg == 120.0

    def test_unparseable_timestamp_dropped(self):
        text = make_export(MGDL_HEADER, [
            "Libre,1,01-06-2024 08:00,0,110,",
            "Libre,1,not a time,0,120,",
            "Libre,1,31-02-2024 08:00,0,130,",
        ])
        dataset = LibreViewParser.parse_from_string(text)
        assert dataset.reading_count == 1


class TestDatasetMetadata:
    """Test device metadata and day bucketing of a parsed export."""

    def test_device_and_serial(self, mgdl_export):
        dataset = LibreViewParser.parse_from_string(mgdl_export)
        assert dataset.device_name == "FreeStyle LibreLink"
        assert dataset.serial_number == "ABC-123"

    def test_default_device_name(self):
        text = make_export("Device Timestamp,Historic Glucose mg/dL", ["01-06-2024 08:00,120"])
        dataset = LibreViewParser.parse_from_string(text)
        assert dataset.device_name == "Unknown Device"
        assert dataset.serial_number == ""

    def test_days_bucketed(self, mgdl_export):
        dataset = LibreViewParser.parse_from_string(mgdl_export)

        assert dataset.available_dates() == ["2024-06-01", "2024-06-02"]
        first_day = dataset.get_day("2024-06-01")
        assert len(first_day.readings) == 3
        assert first_day.stats.min == 110.0
        assert first_day.stats.max == 190.0
        assert first_day.stats.avg == pytest.approx(150.0)
        assert first_day.stats.time_in_range == pytest.approx(200.0 / 3)

    def test_header_only_export(self):
        dataset = LibreViewParser.parse_from_string(make_export(MGDL_HEADER, []))
        assert dataset.days == {}
        assert dataset.stats_frame().height == 0


class TestConvenienceMethods:
    """Test convenience parsing methods."""

    def test_parse_from_bytes_with_bom(self, mgdl_export):
        raw = b"\xef\xbb\xbf" + mgdl_export.encode("utf-8")
        dataset = LibreViewParser.parse_from_bytes(raw)
        assert dataset.reading_count == 4

    def test_parse_from_bytes_with_double_encoded_bom(self, mgdl_export):
        raw = b"\xc3\xaf\xc2\xbb\xc2\xbf" + mgdl_export.encode("utf-8")
        assert LibreViewParser.decode_raw_data(raw) == mgdl_export

    def test_parse_file(self, tmp_path, mgdl_export):
        path = tmp_path / "export.csv"
        path.write_text(mgdl_export, encoding="utf-8")

        dataset = LibreViewParser.parse_file(path)
        assert dataset.reading_count == 4

    def test_parse_base64(self, mgdl_export):
        encoded = base64.b64encode(mgdl_export.encode("utf-8")).decode("ascii")
        dataset = LibreViewParser.parse_base64(encoded)
        assert dataset.available_dates() == ["2024-06-01", "2024-06-02"]

    def test_parse_base64_invalid(self):
        with pytest.raises(MalformedDataError):
            LibreViewParser.parse_base64("not base64 at all!!")


class TestEndToEndPipeline:
    """Test the whole path from export text to wavetable."""

    def test_single_reading_export(self):
        text = "Device Timestamp,Historic Glucose mg/dL\n01-06-2024 10:00,120"
        dataset = LibreViewParser.parse_from_string(text)

        assert dataset.available_dates() == ["2024-06-01"]
        day = dataset.get_day("2024-06-01")
        assert (day.stats.min, day.stats.max, day.stats.avg, day.stats.time_in_range) == (
            120.0, 120.0, 120.0, 100.0,
        )

        wavetable = WavetableSynthesizer().generate_wavetable(day)
        assert wavetable.shape == (2048,)
        assert np.all(wavetable == 0.0)

    def test_flat_day(self):
        text = make_export(MGDL_HEADER, [
            "Libre,1,01-06-2024 08:00,0,120,",
            "Libre,1,01-06-2024 08:15,0,120,",
        ])
        dataset = LibreViewParser.parse_from_string(text)
        day = dataset.get_day("2024-06-01")

        assert day.stats.min == 120.0
        assert day.stats.max == 120.0
        assert day.stats.avg == 120.0
        assert day.stats.time_in_range == 100.0

        wavetable = WavetableSynthesizer().generate_wavetable(day)
        assert wavetable.shape == (2048,)
        assert np.all(wavetable == 0.0)

    def test_render_all_days(self, mgdl_export):
        dataset = LibreViewParser.parse_from_string(mgdl_export)
        rendered = WavetableSynthesizer().render_all(dataset)

        for date_key in rendered.available_dates():
            wavetable = rendered.get_day(date_key).wavetable
            assert wavetable.shape == (2048,)
            assert np.all(np.abs(wavetable) <= 1.0)
