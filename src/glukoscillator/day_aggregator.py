"""Calendar-day bucketing and per-day statistics."""

import logging
from datetime import datetime
from typing import Dict, List, Sequence

import polars as pl

from glukoscillator.dataset import (
    EMPTY_DAY_STATS,
    DailyRecord,
    DayStats,
    Reading,
    readings_to_frame,
)
from glukoscillator.interface.cgm_interface import TARGET_RANGE_HIGH, TARGET_RANGE_LOW

logger = logging.getLogger(__name__)


def format_date_key(timestamp: datetime) -> str:
    """Zero-padded ``YYYY-MM-DD`` key, years below 1000 included."""
    return f"{timestamp.year:04d}-{timestamp.month:02d}-{timestamp.day:02d}"


def day_stats_expressions() -> List[pl.Expr]:
    """Aggregation expressions producing DayStats columns from a ``value`` column."""
    return [
        pl.col("value").count().cast(pl.UInt32).alias("count"),
        pl.col("value").min().alias("min"),
        pl.col("value").max().alias("max"),
        pl.col("value").mean().alias("avg"),
        (
            pl.col("value").is_between(TARGET_RANGE_LOW, TARGET_RANGE_HIGH, closed="both").sum()
            / pl.col("value").count()
            * 100.0
        ).alias("time_in_range"),
    ]


def compute_day_stats(values: Sequence[float]) -> DayStats:
    """Compute min/max/mean/time-in-range of a value list.

    An empty list yields all-zero stats rather than NaN.
    """
    if len(values) == 0:
        return EMPTY_DAY_STATS

    row = pl.DataFrame({"value": list(values)}, schema={"value": pl.Float64}).select(
        day_stats_expressions()
    ).row(0, named=True)
    return DayStats(
        min=row["min"],
        max=row["max"],
        avg=row["avg"],
        time_in_range=row["time_in_range"],
    )


class DayAggregator:
    """Groups canonical readings into calendar-day records.

    Days are keyed by the local date of each reading (``YYYY-MM-DD``).
    Buckets are created on a day's first reading, so no empty day is ever
    produced. Input order within a day is preserved; callers pass readings
    already sorted by timestamp.
    """

    @staticmethod
    def date_key(reading: Reading) -> str:
        return format_date_key(reading.timestamp)

    @classmethod
    def bucket_readings(cls, readings: Sequence[Reading]) -> Dict[str, List[Reading]]:
        """Split readings into per-day lists, keeping their order."""
        buckets: Dict[str, List[Reading]] = {}
        for reading in readings:
            buckets.setdefault(cls.date_key(reading), []).append(reading)
        return buckets

    @classmethod
    def stats_frame(cls, readings: Sequence[Reading]) -> pl.DataFrame:
        """Per-day statistics of the readings as a polars frame."""
        frame = readings_to_frame(list(readings))
        return (
            frame
            .with_columns([
                pl.Series("date_key", [cls.date_key(r) for r in readings], dtype=pl.Utf8),
            ])
            .group_by("date_key", maintain_order=True)
            .agg(day_stats_expressions())
        )

    @classmethod
    def aggregate(cls, readings: Sequence[Reading]) -> Dict[str, DailyRecord]:
        """Build one DailyRecord per calendar day.

        Args:
            readings: Canonical readings in ascending timestamp order

        Returns:
            Mapping of date key to DailyRecord with stats computed
        """
        buckets = cls.bucket_readings(readings)
        if not buckets:
            return {}

        stats_by_day = {
            row["date_key"]: DayStats(
                min=row["min"],
                max=row["max"],
                avg=row["avg"],
                time_in_range=row["time_in_range"],
            )
            for row in cls.stats_frame(readings).iter_rows(named=True)
        }

        days = {
            date_key: DailyRecord(
                date_key=date_key,
                readings=tuple(day_readings),
                stats=stats_by_day[date_key],
            )
            for date_key, day_readings in buckets.items()
        }
        logger.debug(f"Aggregated {len(readings)} readings into {len(days)} day(s)")
        return days
