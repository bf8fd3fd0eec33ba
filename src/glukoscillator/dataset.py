"""Typed models for canonical readings, days and parsed exports."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

import numpy as np
import polars as pl

from glukoscillator.formats.unified import DAY_STATS_SCHEMA, READING_SCHEMA
from glukoscillator.interface.cgm_interface import GlucoseUnit, RecordType


@dataclass(frozen=True)
class Reading:
    """One glucose measurement in canonical units (mg/dL)."""

    timestamp: datetime
    value: float
    record_type: RecordType = RecordType.HISTORIC


@dataclass(frozen=True)
class DayStats:
    """Descriptive statistics of one calendar day (mg/dL, TIR in percent)."""

    min: float
    max: float
    avg: float
    time_in_range: float


EMPTY_DAY_STATS = DayStats(min=0.0, max=0.0, avg=0.0, time_in_range=0.0)


@dataclass(frozen=True)
class DailyRecord:
    """All readings of one calendar day plus their eagerly computed stats.

    The wavetable is filled in by a synthesis step; use ``with_wavetable``
    to get a copy carrying it. Recomputing it from ``readings`` always
    yields the same result.
    """

    date_key: str
    readings: Tuple[Reading, ...]
    stats: DayStats
    wavetable: Optional[np.ndarray] = field(default=None, compare=False, repr=False)

    @property
    def values(self) -> List[float]:
        """Glucose values in chronological order."""
        return [r.value for r in self.readings]

    def with_wavetable(self, wavetable: np.ndarray) -> DailyRecord:
        """Return a copy of this record with the wavetable attached."""
        return replace(self, wavetable=wavetable)


@dataclass
class GlucoseDataset:
    """Parsed export: day buckets plus device metadata.

    ``unit`` is the unit of the source file; readings are always mg/dL.
    """

    days: Dict[str, DailyRecord]
    unit: GlucoseUnit = GlucoseUnit.MG_DL
    device_name: str = "Unknown Device"
    serial_number: str = ""

    def available_dates(self) -> List[str]:
        """Date keys in ascending order."""
        return sorted(self.days)

    def get_day(self, date_key: str) -> Optional[DailyRecord]:
        return self.days.get(date_key)

    def all_readings(self) -> List[Reading]:
        """Readings of every day, chronologically."""
        readings: List[Reading] = []
        for date_key in self.available_dates():
            readings.extend(self.days[date_key].readings)
        return readings

    @property
    def reading_count(self) -> int:
        return sum(len(day.readings) for day in self.days.values())

    def with_days(self, days: Dict[str, DailyRecord]) -> GlucoseDataset:
        """Return a copy of this dataset with a replaced day mapping."""
        return replace(self, days=days)

    def to_frame(self) -> pl.DataFrame:
        """All readings as a polars frame (READING_SCHEMA)."""
        return readings_to_frame(self.all_readings())

    def stats_frame(self) -> pl.DataFrame:
        """Per-day statistics as a polars frame (DAY_STATS_SCHEMA), sorted by day."""
        rows = [
            {
                "date_key": date_key,
                "count": len(self.days[date_key].readings),
                "min": self.days[date_key].stats.min,
                "max": self.days[date_key].stats.max,
                "avg": self.days[date_key].stats.avg,
                "time_in_range": self.days[date_key].stats.time_in_range,
            }
            for date_key in self.available_dates()
        ]
        if not rows:
            return DAY_STATS_SCHEMA.empty_frame()
        return pl.DataFrame(rows, schema=DAY_STATS_SCHEMA.get_polars_schema())


def readings_to_frame(readings: List[Reading]) -> pl.DataFrame:
    """Convert readings to a polars frame with the canonical reading schema."""
    return pl.DataFrame(
        {
            "timestamp": [r.timestamp for r in readings],
            "value": [r.value for r in readings],
            "record_type": [r.record_type.value for r in readings],
        },
        schema=READING_SCHEMA.get_polars_schema(),
    )


def format_date_for_display(date_key: str) -> str:
    """Format a YYYY-MM-DD key for display, e.g. ``Sat, Jun 1, 2024``."""
    day = date.fromisoformat(date_key)
    return f"{day:%a}, {day:%b} {day.day}, {day.year}"
