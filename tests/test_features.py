"""Tests for glucose descriptors and normalization curves."""

from datetime import datetime, timedelta

import pytest

from glukoscillator.dataset import Reading
from glukoscillator.day_aggregator import DayAggregator
from glukoscillator.features import (
    NEUTRAL_DESCRIPTOR,
    GlucoseFeatureDescriptor,
    GlucoseStat,
    combine_descriptors,
    compute_rate_of_change,
    compute_volatility,
    describe_day,
    normalize_average,
    normalize_descriptor,
    normalize_glucose_stat,
    normalize_time_in_range,
    normalize_volatility,
)


@pytest.fixture
def sample_descriptors() -> list:
    return [
        GlucoseFeatureDescriptor(min=80.0, max=160.0, avg=110.0, time_in_range=90.0, volatility=15.0),
        GlucoseFeatureDescriptor(min=60.0, max=220.0, avg=150.0, time_in_range=50.0, volatility=45.0),
    ]


class TestVolatility:
    """Test standard deviation and rate of change."""

    def test_population_std(self):
        # mean 5, squared deviations sum to 32 over 8 values
        assert compute_volatility([2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0]) == pytest.approx(2.0)

    def test_fewer_than_two(self):
        assert compute_volatility([]) == 0.0
        assert compute_volatility([120.0]) == 0.0

    def test_accepts_readings(self):
        base_time = datetime(2024, 6, 1, 8, 0)
        readings = [
            Reading(timestamp=base_time + timedelta(minutes=15 * i), value=v)
            for i, v in enumerate([100.0, 140.0])
        ]
        assert compute_volatility(readings) == pytest.approx(20.0)

    def test_rate_of_change(self):
        assert compute_rate_of_change([100.0, 110.0, 105.0, 125.0]) == pytest.approx(35.0 / 3)
        assert compute_rate_of_change([100.0]) == 0.0


class TestDescriptors:
    """Test building and combining descriptors."""

    def test_describe_day(self):
        base_time = datetime(2024, 6, 1, 8, 0)
        readings = [
            Reading(timestamp=base_time + timedelta(minutes=15 * i), value=v)
            for i, v in enumerate([100.0, 140.0, 180.0])
        ]
        record = DayAggregator.aggregate(readings)["2024-06-01"]
        descriptor = describe_day(record)

        assert descriptor.min == 100.0
        assert descriptor.max == 180.0
        assert descriptor.avg == pytest.approx(140.0)
        assert descriptor.time_in_range == 100.0
        assert descriptor.volatility == pytest.approx(compute_volatility(record.values))

    def test_combine_empty_is_neutral(self):
        assert combine_descriptors([]) == NEUTRAL_DESCRIPTOR

    def test_combine_single_is_identity(self, sample_descriptors):
        assert combine_descriptors(sample_descriptors[:1]) is sample_descriptors[0]

    def test_combine_many(self, sample_descriptors):
        combined = combine_descriptors(sample_descriptors)

        assert combined.min == 60.0
        assert combined.max == 220.0
        assert combined.avg == pytest.approx(130.0)
        assert combined.time_in_range == pytest.approx(70.0)
        assert combined.volatility == pytest.approx(30.0)


class TestNormalizationCurves:
    """Test the [0, 1] control curves."""

    @pytest.mark.parametrize("value,expected", [
        (0.0, 0.0), (20.0, 0.0), (30.0, 0.5), (40.0, 1.0), (80.0, 1.0),
    ])
    def test_volatility(self, value, expected):
        assert normalize_volatility(value) == pytest.approx(expected)

    @pytest.mark.parametrize("value,expected", [
        (60.0, 0.0), (100.0, 0.0), (110.0, 0.25), (120.0, 0.5), (135.0, 0.75), (150.0, 1.0), (300.0, 1.0),
    ])
    def test_average(self, value, expected):
        assert normalize_average(value) == pytest.approx(expected)

    @pytest.mark.parametrize("value,expected", [
        (-5.0, 0.0), (0.0, 0.0), (70.0, 0.7), (100.0, 1.0), (120.0, 1.0),
    ])
    def test_time_in_range(self, value, expected):
        assert normalize_time_in_range(value) == pytest.approx(expected)

    def test_dispatch_by_stat(self):
        assert normalize_glucose_stat(30.0, GlucoseStat.VOLATILITY) == pytest.approx(0.5)
        assert normalize_glucose_stat(120.0, GlucoseStat.AVERAGE) == pytest.approx(0.5)
        assert normalize_glucose_stat(50.0, GlucoseStat.TIME_IN_RANGE) == pytest.approx(0.5)

    def test_normalize_neutral_descriptor(self):
        normalized = normalize_descriptor(NEUTRAL_DESCRIPTOR)

        assert normalized.volatility == pytest.approx(0.25)
        assert normalized.average == pytest.approx(0.5)
        assert normalized.time_in_range == pytest.approx(0.7)
