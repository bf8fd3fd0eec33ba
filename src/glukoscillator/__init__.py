"""glukoscillator - Turn CGM exports into daily oscillator wavetables.

This package parses continuous-glucose-monitor exports (LibreView CSV),
buckets readings into calendar days with descriptive statistics, renders
each day as a single-cycle waveform with harmonic partials, and derives
normalized glucose descriptors for parameter mapping.

Main Components:
    LibreViewParser: Parse an export to a day-bucketed GlucoseDataset
    WavetableSynthesizer: Render days as 2048-sample wavetables and partials
    features: Volatility, rate of change and [0, 1] control curves

Quick Start:
    >>> from glukoscillator import LibreViewParser, WavetableSynthesizer
    >>>
    >>> dataset = LibreViewParser.parse_file("data/libreview_export.csv")
    >>> synthesizer = WavetableSynthesizer()
    >>> day = dataset.get_day(dataset.available_dates()[-1])
    >>> wavetable = synthesizer.generate_wavetable(day)
    >>> partials = synthesizer.compute_partials(wavetable)
"""

from glukoscillator.dataset import DailyRecord, DayStats, GlucoseDataset, Reading
from glukoscillator.export_parser import LibreViewParser
from glukoscillator.wavetable import WavetableSynthesizer

__version__ = "0.1.0"

__all__ = [
    "LibreViewParser",
    "WavetableSynthesizer",
    "GlucoseDataset",
    "DailyRecord",
    "DayStats",
    "Reading",
    "__version__",
]
