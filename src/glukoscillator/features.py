"""Glucose-shape descriptors and their normalized [0, 1] control curves.

All functions are pure. The breakpoints in ``GLUCOSE_THRESHOLDS`` define
how raw statistics map onto control values; downstream parameter mapping
relies on them staying exactly as they are.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Union

import polars as pl

from glukoscillator.dataset import DailyRecord, Reading

# Thresholds for normalizing glucose stats (mg/dL, TIR in percent)
GLUCOSE_THRESHOLDS = {
    "volatility": {
        "low": 20.0,   # standard deviation considered stable
        "high": 40.0,  # standard deviation considered volatile
    },
    "average": {
        "low": 100.0,
        "target": 120.0,
        "high": 150.0,
    },
    "time_in_range": {
        "full_scale": 100.0,
    },
}


class GlucoseStat(Enum):
    """Statistics that have a normalization curve."""
    VOLATILITY = "volatility"
    AVERAGE = "average"
    TIME_IN_RANGE = "time_in_range"


@dataclass(frozen=True)
class GlucoseFeatureDescriptor:
    """Summary of one or more days used to drive parameter choices."""
    min: float
    max: float
    avg: float
    time_in_range: float
    volatility: float


@dataclass(frozen=True)
class NormalizedFeatures:
    """Descriptor statistics mapped onto [0, 1]."""
    volatility: float
    average: float
    time_in_range: float


NEUTRAL_DESCRIPTOR = GlucoseFeatureDescriptor(
    min=70.0,
    max=180.0,
    avg=120.0,
    time_in_range=70.0,
    volatility=25.0,
)

ValueSource = Union[Sequence[Reading], Sequence[float]]


def _values(source: ValueSource) -> pl.Series:
    values = [item.value if isinstance(item, Reading) else item for item in source]
    return pl.Series("value", values, dtype=pl.Float64)


def compute_volatility(source: ValueSource) -> float:
    """Population standard deviation of the values; 0 for fewer than two."""
    values = _values(source)
    if len(values) < 2:
        return 0.0
    return float(values.std(ddof=0))


def compute_rate_of_change(source: ValueSource) -> float:
    """Mean absolute difference between consecutive values; 0 for fewer than two."""
    values = _values(source)
    if len(values) < 2:
        return 0.0
    return float(values.diff().abs().mean())


def describe_day(record: DailyRecord) -> GlucoseFeatureDescriptor:
    """Descriptor of one day: its stats plus the volatility of its readings."""
    return GlucoseFeatureDescriptor(
        min=record.stats.min,
        max=record.stats.max,
        avg=record.stats.avg,
        time_in_range=record.stats.time_in_range,
        volatility=compute_volatility(record.readings),
    )


def combine_descriptors(
    descriptors: Sequence[GlucoseFeatureDescriptor],
) -> GlucoseFeatureDescriptor:
    """Merge several days into one descriptor.

    min/max are the extremes across days; avg, time in range and volatility
    are plain means of the per-day values. No input gives the neutral
    default and a single descriptor is returned as is.
    """
    if len(descriptors) == 0:
        return NEUTRAL_DESCRIPTOR
    if len(descriptors) == 1:
        return descriptors[0]

    count = len(descriptors)
    return GlucoseFeatureDescriptor(
        min=min(d.min for d in descriptors),
        max=max(d.max for d in descriptors),
        avg=sum(d.avg for d in descriptors) / count,
        time_in_range=sum(d.time_in_range for d in descriptors) / count,
        volatility=sum(d.volatility for d in descriptors) / count,
    )


def _clamp_unit(value: float) -> float:
    return min(1.0, max(0.0, value))


def normalize_volatility(value: float) -> float:
    """0 at or below 20 mg/dL standard deviation, 1 at or above 40, linear between."""
    low = GLUCOSE_THRESHOLDS["volatility"]["low"]
    high = GLUCOSE_THRESHOLDS["volatility"]["high"]
    return _clamp_unit((value - low) / (high - low))


def normalize_average(value: float) -> float:
    """Piecewise linear through 100 -> 0, 120 -> 0.5, 150 -> 1, clamped outside."""
    low = GLUCOSE_THRESHOLDS["average"]["low"]
    target = GLUCOSE_THRESHOLDS["average"]["target"]
    high = GLUCOSE_THRESHOLDS["average"]["high"]

    if value <= low:
        return 0.0
    if value >= high:
        return 1.0
    if value <= target:
        return 0.5 * (value - low) / (target - low)
    return 0.5 + 0.5 * (value - target) / (high - target)


def normalize_time_in_range(value: float) -> float:
    return _clamp_unit(value / GLUCOSE_THRESHOLDS["time_in_range"]["full_scale"])


_CURVES = {
    GlucoseStat.VOLATILITY: normalize_volatility,
    GlucoseStat.AVERAGE: normalize_average,
    GlucoseStat.TIME_IN_RANGE: normalize_time_in_range,
}


def normalize_glucose_stat(value: float, stat: GlucoseStat) -> float:
    """Map a raw statistic onto [0, 1] with the curve for ``stat``."""
    return _CURVES[stat](value)


def normalize_descriptor(descriptor: GlucoseFeatureDescriptor) -> NormalizedFeatures:
    return NormalizedFeatures(
        volatility=normalize_volatility(descriptor.volatility),
        average=normalize_average(descriptor.avg),
        time_in_range=normalize_time_in_range(descriptor.time_in_range),
    )
