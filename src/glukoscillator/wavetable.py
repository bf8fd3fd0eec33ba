"""Wavetable synthesis: a day's glucose curve as a single-cycle waveform.

The day's readings are normalized to [-1, 1], resampled to a fixed table
size, smoothed with a circular kernel (the table is played as a repeating
cycle, so its ends wrap), and analysed into harmonic partials for
oscillators that are built from Fourier coefficients.
"""

import logging
from typing import Dict, Sequence

import numpy as np

from glukoscillator.dataset import DailyRecord, GlucoseDataset
from glukoscillator.interface.cgm_interface import (
    DEFAULT_DISPLAY_POINTS,
    DEFAULT_NUM_PARTIALS,
    DEFAULT_SMOOTHING_PASSES,
    PHYSIOLOGICAL_MAX,
    PHYSIOLOGICAL_MIN,
    WAVETABLE_SIZE,
    NormalizationPolicy,
    WaveformSynthesizer,
)

logger = logging.getLogger(__name__)

# 3-point kernel weights (previous, current, next)
SMOOTHING_KERNEL = (0.25, 0.5, 0.25)


def normalize_day_relative(values: Sequence[float]) -> np.ndarray:
    """Map the values' own [min, max] onto [-1, 1]; a flat sequence maps to zeros."""
    data = np.asarray(values, dtype=np.float64)
    if data.size == 0:
        return data

    low = data.min()
    value_range = data.max() - low
    if value_range == 0:
        return np.zeros_like(data)

    return (data - low) / value_range * 2.0 - 1.0


def normalize_physiological(
    values: Sequence[float],
    low: float = PHYSIOLOGICAL_MIN,
    high: float = PHYSIOLOGICAL_MAX,
) -> np.ndarray:
    """Clamp values to the physiological range and map that range onto [-1, 1]."""
    data = np.clip(np.asarray(values, dtype=np.float64), low, high)
    return (data - low) / (high - low) * 2.0 - 1.0


def resample(values: np.ndarray, target_size: int) -> np.ndarray:
    """Linearly resample to ``target_size`` points.

    Sample ``i`` reads the virtual source index ``i * len(values) / target_size``;
    the upper neighbour is clamped to the last source index.
    """
    if values.size == 0:
        return np.zeros(target_size, dtype=np.float64)

    if values.size == target_size:
        return values

    positions = np.arange(target_size) * (values.size / target_size)
    # np.interp holds the last value past the final index, same as clamping the neighbour
    return np.interp(positions, np.arange(values.size), values)


def smooth_circular(wavetable: np.ndarray, passes: int = DEFAULT_SMOOTHING_PASSES) -> np.ndarray:
    """Apply ``passes`` rounds of the circular 3-point weighted moving average."""
    previous_weight, current_weight, next_weight = SMOOTHING_KERNEL
    smoothed = np.asarray(wavetable, dtype=np.float64)
    for _ in range(passes):
        smoothed = (
            previous_weight * np.roll(smoothed, 1)
            + current_weight * smoothed
            + next_weight * np.roll(smoothed, -1)
        )
    return smoothed


def harmonic_partials(wavetable: np.ndarray, num_partials: int = DEFAULT_NUM_PARTIALS) -> np.ndarray:
    """Harmonic magnitudes 1..num_partials, scaled so the fundamental is 1.

    Magnitude k is ``sqrt(re_k**2 + im_k**2) / (N / 2)`` with ``re_k`` and
    ``im_k`` the cosine and sine sums at harmonic k. A silent table has a
    zero fundamental and is returned unscaled (all zeros).
    """
    data = np.asarray(wavetable, dtype=np.float64)
    size = data.size
    if size == 0 or num_partials <= 0:
        return np.zeros(max(num_partials, 0), dtype=np.float64)

    harmonics = np.arange(1, num_partials + 1)[:, np.newaxis]
    angles = 2.0 * np.pi * harmonics * np.arange(size) / size
    real = np.cos(angles) @ data
    imag = np.sin(angles) @ data
    magnitudes = np.sqrt(real * real + imag * imag) / (size / 2)

    fundamental = magnitudes[0] if magnitudes[0] != 0 else 1.0
    return magnitudes / fundamental


def waveform_for_display(wavetable: np.ndarray, points: int = DEFAULT_DISPLAY_POINTS) -> np.ndarray:
    """Strided projection of a wavetable for plotting (``floor(i * len / points)``)."""
    data = np.asarray(wavetable)
    if points <= 0 or data.size == 0:
        return np.zeros(0, dtype=np.float64)
    indices = np.floor(np.arange(points) * (data.size / points)).astype(int)
    return data[indices]


class WavetableSynthesizer(WaveformSynthesizer):
    """Implementation of WaveformSynthesizer for daily glucose curves.

    Every generated table has exactly ``size`` samples in [-1, 1], whatever
    the number of readings in the day (including none).
    """

    def __init__(
        self,
        size: int = WAVETABLE_SIZE,
        num_partials: int = DEFAULT_NUM_PARTIALS,
        smoothing_passes: int = DEFAULT_SMOOTHING_PASSES,
        normalization: NormalizationPolicy = NormalizationPolicy.DAY_RELATIVE,
    ):
        """Initialize the synthesizer.

        Args:
            size: Wavetable length in samples (default: 2048)
            num_partials: Number of harmonics to analyse (default: 64)
            smoothing_passes: Rounds of circular smoothing (default: 2)
            normalization: Value-to-amplitude mapping (default: day-relative)
        """
        self.size = size
        self.num_partials = num_partials
        self.smoothing_passes = smoothing_passes
        self.normalization = normalization

    def normalize(self, values: Sequence[float]) -> np.ndarray:
        if self.normalization == NormalizationPolicy.PHYSIOLOGICAL:
            return normalize_physiological(values)
        return normalize_day_relative(values)

    def generate_wavetable(self, record: DailyRecord) -> np.ndarray:
        """Build the single-cycle waveform for one day.

        Args:
            record: Day to synthesize

        Returns:
            Array of ``size`` samples in [-1, 1]; silence for a day without readings
        """
        if not record.readings:
            return np.zeros(self.size, dtype=np.float64)

        normalized = self.normalize(record.values)
        wavetable = resample(normalized, self.size)
        return smooth_circular(wavetable, self.smoothing_passes)

    def compute_partials(self, wavetable: np.ndarray) -> np.ndarray:
        """Compute fundamental-normalized harmonic magnitudes of a waveform."""
        return harmonic_partials(wavetable, self.num_partials)

    def render_day(self, record: DailyRecord) -> DailyRecord:
        """Return the record with a freshly generated wavetable attached."""
        return record.with_wavetable(self.generate_wavetable(record))

    def render_all(self, dataset: GlucoseDataset) -> GlucoseDataset:
        """Return a dataset whose every day carries its wavetable."""
        days: Dict[str, DailyRecord] = {
            date_key: self.render_day(record) for date_key, record in dataset.days.items()
        }
        logger.debug(f"Rendered {len(days)} wavetable(s) of {self.size} samples")
        return dataset.with_days(days)
