"""Effect catalogue and glucose-driven parameter choices.

The audio engine owns the effects themselves; this module only describes
them. Each effect has its own frozen parameter dataclass (tagged with a
class-level ``effect_id``), so a parameter set can be checked against the
effect it is meant for.
"""

import random
from dataclasses import dataclass, fields, replace
from typing import ClassVar, Dict, List, Optional, Tuple, Union

from glukoscillator.features import (
    GlucoseFeatureDescriptor,
    NormalizedFeatures,
    normalize_descriptor,
)
from glukoscillator.interface.schema import EnumLiteral


class EffectId(EnumLiteral):
    """Effects known to the synthesis engine."""
    COMPRESSOR = "compressor"
    EQ3 = "eq3"
    BITCRUSHER = "bitcrusher"
    DISTORTION = "distortion"
    AUTOWAH = "autowah"
    AUTOFILTER = "autofilter"
    PHASER = "phaser"
    CHORUS = "chorus"
    TREMOLO = "tremolo"
    VIBRATO = "vibrato"
    FREQSHIFT = "freqshift"
    PITCHSHIFT = "pitchshift"
    DELAY = "delay"
    REVERB = "reverb"
    STEREOWIDENER = "stereowidener"


# Signal chain order
DEFAULT_EFFECT_ORDER: Tuple[EffectId, ...] = tuple(EffectId)

EFFECT_DISPLAY_NAMES: Dict[EffectId, str] = {
    EffectId.COMPRESSOR: "Compressor",
    EffectId.EQ3: "EQ3",
    EffectId.BITCRUSHER: "BitCrusher",
    EffectId.DISTORTION: "Distortion",
    EffectId.AUTOWAH: "Auto-Wah",
    EffectId.AUTOFILTER: "AutoFilter",
    EffectId.PHASER: "Phaser",
    EffectId.CHORUS: "Chorus",
    EffectId.TREMOLO: "Tremolo",
    EffectId.VIBRATO: "Vibrato",
    EffectId.FREQSHIFT: "FreqShift",
    EffectId.PITCHSHIFT: "PitchShift",
    EffectId.DELAY: "Delay",
    EffectId.REVERB: "Reverb",
    EffectId.STEREOWIDENER: "Stereo Wide",
}


@dataclass(frozen=True)
class EffectParams:
    """Common base of all effect parameter sets."""
    effect_id: ClassVar[EffectId]
    enabled: bool = False


@dataclass(frozen=True)
class CompressorParams(EffectParams):
    effect_id: ClassVar[EffectId] = EffectId.COMPRESSOR
    threshold: float = -24.0  # dB
    ratio: float = 4.0
    attack: float = 0.003  # seconds
    release: float = 0.25  # seconds


@dataclass(frozen=True)
class EQ3Params(EffectParams):
    effect_id: ClassVar[EffectId] = EffectId.EQ3
    low: float = 0.0  # dB
    mid: float = 0.0
    high: float = 0.0


@dataclass(frozen=True)
class BitCrusherParams(EffectParams):
    effect_id: ClassVar[EffectId] = EffectId.BITCRUSHER
    bits: int = 8
    wet: float = 0.5


@dataclass(frozen=True)
class DistortionParams(EffectParams):
    effect_id: ClassVar[EffectId] = EffectId.DISTORTION
    amount: float = 0.3
    wet: float = 0.5


@dataclass(frozen=True)
class AutoWahParams(EffectParams):
    effect_id: ClassVar[EffectId] = EffectId.AUTOWAH
    base_frequency: float = 200.0  # Hz
    octaves: float = 4.0
    sensitivity: float = 0.0  # dB
    wet: float = 0.5


@dataclass(frozen=True)
class AutoFilterParams(EffectParams):
    effect_id: ClassVar[EffectId] = EffectId.AUTOFILTER
    frequency: float = 2.0  # Hz
    depth: float = 0.6
    octaves: float = 2.0
    wet: float = 0.5


@dataclass(frozen=True)
class PhaserParams(EffectParams):
    effect_id: ClassVar[EffectId] = EffectId.PHASER
    frequency: float = 1.0  # Hz
    octaves: float = 2.0
    wet: float = 0.4


@dataclass(frozen=True)
class ChorusParams(EffectParams):
    effect_id: ClassVar[EffectId] = EffectId.CHORUS
    frequency: float = 1.5  # Hz
    depth: float = 0.5
    wet: float = 0.3


@dataclass(frozen=True)
class TremoloParams(EffectParams):
    effect_id: ClassVar[EffectId] = EffectId.TREMOLO
    frequency: float = 5.0  # Hz
    depth: float = 0.6
    wet: float = 0.5


@dataclass(frozen=True)
class VibratoParams(EffectParams):
    effect_id: ClassVar[EffectId] = EffectId.VIBRATO
    frequency: float = 5.0  # Hz
    depth: float = 0.2
    wet: float = 0.4


@dataclass(frozen=True)
class FreqShiftParams(EffectParams):
    effect_id: ClassVar[EffectId] = EffectId.FREQSHIFT
    frequency: float = 0.0  # Hz
    wet: float = 0.3


@dataclass(frozen=True)
class PitchShiftParams(EffectParams):
    effect_id: ClassVar[EffectId] = EffectId.PITCHSHIFT
    pitch: float = 0.0  # semitones
    wet: float = 0.4


@dataclass(frozen=True)
class DelayParams(EffectParams):
    effect_id: ClassVar[EffectId] = EffectId.DELAY
    time: float = 0.25  # seconds
    feedback: float = 0.4
    wet: float = 0.3


@dataclass(frozen=True)
class ReverbParams(EffectParams):
    effect_id: ClassVar[EffectId] = EffectId.REVERB
    decay: float = 1.5  # seconds
    wet: float = 0.3


@dataclass(frozen=True)
class StereoWidenerParams(EffectParams):
    effect_id: ClassVar[EffectId] = EffectId.STEREOWIDENER
    width: float = 0.5
    wet: float = 0.5


AnyEffectParams = Union[
    CompressorParams, EQ3Params, BitCrusherParams, DistortionParams,
    AutoWahParams, AutoFilterParams, PhaserParams, ChorusParams,
    TremoloParams, VibratoParams, FreqShiftParams, PitchShiftParams,
    DelayParams, ReverbParams, StereoWidenerParams,
]

PARAMS_BY_EFFECT: Dict[EffectId, type] = {
    cls.effect_id: cls
    for cls in (
        CompressorParams, EQ3Params, BitCrusherParams, DistortionParams,
        AutoWahParams, AutoFilterParams, PhaserParams, ChorusParams,
        TremoloParams, VibratoParams, FreqShiftParams, PitchShiftParams,
        DelayParams, ReverbParams, StereoWidenerParams,
    )
}

# Musically sensible (min, max) per parameter
PARAMETER_RANGES: Dict[EffectId, Dict[str, Tuple[float, float]]] = {
    EffectId.COMPRESSOR: {"threshold": (-30.0, -10.0), "ratio": (2.0, 8.0)},
    EffectId.EQ3: {"low": (-12.0, 12.0), "mid": (-12.0, 12.0), "high": (-12.0, 12.0)},
    EffectId.BITCRUSHER: {"bits": (4.0, 12.0), "wet": (0.0, 0.8)},
    EffectId.DISTORTION: {"amount": (0.0, 0.6), "wet": (0.0, 0.8)},
    EffectId.AUTOWAH: {
        "base_frequency": (100.0, 800.0),
        "octaves": (2.0, 6.0),
        "sensitivity": (0.0, 0.0),
        "wet": (0.0, 0.8),
    },
    EffectId.AUTOFILTER: {
        "frequency": (0.5, 8.0),
        "depth": (0.2, 1.0),
        "octaves": (1.0, 4.0),
        "wet": (0.0, 0.8),
    },
    EffectId.PHASER: {"frequency": (0.5, 8.0), "octaves": (1.0, 3.0), "wet": (0.0, 0.7)},
    EffectId.CHORUS: {"frequency": (0.5, 4.0), "depth": (0.2, 0.8), "wet": (0.0, 0.6)},
    EffectId.TREMOLO: {"frequency": (2.0, 12.0), "depth": (0.3, 1.0), "wet": (0.0, 0.8)},
    EffectId.VIBRATO: {"frequency": (2.0, 10.0), "depth": (0.1, 0.5), "wet": (0.0, 0.7)},
    EffectId.FREQSHIFT: {"frequency": (-500.0, 500.0), "wet": (0.0, 0.6)},
    EffectId.PITCHSHIFT: {"pitch": (-12.0, 12.0), "wet": (0.0, 0.8)},
    EffectId.DELAY: {"time": (0.1, 0.5), "feedback": (0.2, 0.6), "wet": (0.0, 0.5)},
    EffectId.REVERB: {"decay": (0.5, 3.0), "wet": (0.1, 0.5)},
    EffectId.STEREOWIDENER: {"width": (0.0, 1.0), "wet": (0.0, 1.0)},
}

# Effect categories for glucose-driven selection
EFFECT_CATEGORIES: Dict[str, Tuple[EffectId, ...]] = {
    # chaotic, aggressive
    "high_volatility": (EffectId.BITCRUSHER, EffectId.DISTORTION, EffectId.FREQSHIFT),
    # smooth, ambient
    "low_volatility": (EffectId.REVERB, EffectId.CHORUS, EffectId.PHASER),
    # modulation
    "high_average": (EffectId.TREMOLO, EffectId.VIBRATO),
    # stabilizing
    "low_average": (EffectId.COMPRESSOR, EffectId.EQ3),
    # filtering
    "poor_tir": (EffectId.AUTOWAH, EffectId.AUTOFILTER),
    # spacious
    "good_tir": (EffectId.STEREOWIDENER, EffectId.DELAY, EffectId.PITCHSHIFT),
}

# Raw-stat bands for categories (mg/dL, TIR in percent)
CATEGORY_THRESHOLDS = {
    "volatility": {"high": 40.0, "low": 20.0},
    "average": {"high": 150.0, "low": 100.0},
    "time_in_range": {"good": 70.0, "poor": 50.0},
}

RANDOM_JITTER = 0.15  # max deviation of the scaling factor when randomizing


@dataclass(frozen=True)
class ADSREnvelope:
    """Amplitude envelope; times in seconds, sustain as a 0-1 level."""
    attack: float
    decay: float
    sustain: float
    release: float


DEFAULT_ENVELOPE = ADSREnvelope(attack=0.02, decay=0.1, sustain=0.7, release=0.3)

ENVELOPE_RANGES: Dict[str, Tuple[float, float]] = {
    "attack": (0.005, 0.3),
    "decay": (0.05, 0.5),
    "sustain": (0.3, 0.9),
    "release": (0.1, 1.0),
}


def scale_in_range(factor: float, low: float, high: float) -> float:
    """Linear position ``factor`` (0-1) between ``low`` and ``high``."""
    return low + factor * (high - low)


def default_params(effect_id: EffectId) -> AnyEffectParams:
    """Parameter set of an effect with its default values (disabled)."""
    return PARAMS_BY_EFFECT[EffectId(effect_id)]()


def params_for_effect(
    effect_id: EffectId,
    intensity: float,
    rng: Optional[random.Random] = None,
    enabled: bool = True,
) -> AnyEffectParams:
    """Scale an effect's ranged parameters by ``intensity`` (0-1).

    With ``rng`` given, each parameter's factor is jittered by up to
    RANDOM_JITTER around the intensity (then clamped to [0, 1]).
    """
    params = default_params(effect_id)
    integer_fields = {f.name for f in fields(params) if f.type in (int, "int")}

    values = {}
    for name, (low, high) in PARAMETER_RANGES[params.effect_id].items():
        factor = intensity
        if rng is not None:
            factor += rng.uniform(-RANDOM_JITTER, RANDOM_JITTER)
        value = scale_in_range(min(1.0, max(0.0, factor)), low, high)
        values[name] = round(value) if name in integer_fields else value

    return replace(params, enabled=enabled, **values)


def _categories_for(descriptor: GlucoseFeatureDescriptor) -> List[str]:
    volatility = CATEGORY_THRESHOLDS["volatility"]
    average = CATEGORY_THRESHOLDS["average"]
    tir = CATEGORY_THRESHOLDS["time_in_range"]

    categories = []
    if descriptor.volatility >= volatility["high"]:
        categories.append("high_volatility")
    elif descriptor.volatility <= volatility["low"]:
        categories.append("low_volatility")

    if descriptor.avg >= average["high"]:
        categories.append("high_average")
    elif descriptor.avg <= average["low"]:
        categories.append("low_average")

    if descriptor.time_in_range < tir["poor"]:
        categories.append("poor_tir")
    elif descriptor.time_in_range >= tir["good"]:
        categories.append("good_tir")

    return categories


def select_effects(descriptor: GlucoseFeatureDescriptor) -> List[EffectId]:
    """Effects whose category band the descriptor falls in, in chain order."""
    chosen = {
        effect_id
        for category in _categories_for(descriptor)
        for effect_id in EFFECT_CATEGORIES[category]
    }
    return [effect_id for effect_id in DEFAULT_EFFECT_ORDER if effect_id in chosen]


def _category_intensity(category: str, normalized: NormalizedFeatures) -> float:
    if category == "high_volatility":
        return normalized.volatility
    if category == "low_volatility":
        return 1.0 - normalized.volatility
    if category == "high_average":
        return normalized.average
    if category == "low_average":
        return 1.0 - normalized.average
    if category == "good_tir":
        return normalized.time_in_range
    return 1.0 - normalized.time_in_range


def glucose_driven_chain(
    descriptor: GlucoseFeatureDescriptor,
    rng: Optional[random.Random] = None,
) -> List[AnyEffectParams]:
    """Enabled parameter sets for the selected effects, in chain order.

    Each effect is scaled by how deep the descriptor sits in the band that
    selected it.
    """
    normalized = normalize_descriptor(descriptor)
    intensities: Dict[EffectId, float] = {}
    for category in _categories_for(descriptor):
        for effect_id in EFFECT_CATEGORIES[category]:
            intensities[effect_id] = _category_intensity(category, normalized)

    return [
        params_for_effect(effect_id, intensities[effect_id], rng=rng)
        for effect_id in DEFAULT_EFFECT_ORDER
        if effect_id in intensities
    ]


def envelope_from_features(normalized: NormalizedFeatures) -> ADSREnvelope:
    """Shape the amplitude envelope from normalized glucose features.

    Volatile days get sharp attacks and long decays, high time in range
    sustains louder, and higher averages release sooner.
    """
    return ADSREnvelope(
        attack=scale_in_range(1.0 - normalized.volatility, *ENVELOPE_RANGES["attack"]),
        decay=scale_in_range(normalized.volatility, *ENVELOPE_RANGES["decay"]),
        sustain=scale_in_range(normalized.time_in_range, *ENVELOPE_RANGES["sustain"]),
        release=scale_in_range(1.0 - normalized.average, *ENVELOPE_RANGES["release"]),
    )
