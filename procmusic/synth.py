"""
Waveform synthesis.

1. Oscillators: sine, square, triangle and sawtooth over a time axis
2. Envelope: linear fade-in/fade-out to suppress clicks
3. Quantization: truncation to signed 16-bit samples

Everything here is a pure function of its inputs and safe to call from
several threads at once.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from types import MappingProxyType
from typing import Callable, TypeAlias

import numpy as np
from numpy.typing import NDArray

from .config import SAMPLE_RATE, SampleBuffer, ToneSpec, Waveform, pitch_frequency
from .errors import InvalidDurationError

FloatArray: TypeAlias = NDArray[np.float64]
OscFn: TypeAlias = Callable[[float, FloatArray], FloatArray]

# Half of the int16 ceiling, leaving headroom when tones are summed.
AMPLITUDE_CEILING = 16384.0
FADE_SECONDS = 0.01

_INT16_MIN = float(np.iinfo(np.int16).min)
_INT16_MAX = float(np.iinfo(np.int16).max)


# =============================================================================
# OSCILLATORS
# =============================================================================


def oscillator_sine(freq: float, t: FloatArray) -> FloatArray:
    return np.sin(2 * np.pi * freq * t)


def oscillator_square(freq: float, t: FloatArray) -> FloatArray:
    """Hard one-bit square, no band limiting."""
    return np.sign(np.sin(2 * np.pi * freq * t))


def oscillator_triangle(freq: float, t: FloatArray) -> FloatArray:
    return (2 / np.pi) * np.arcsin(np.sin(2 * np.pi * freq * t))


def oscillator_sawtooth(freq: float, t: FloatArray) -> FloatArray:
    """Centered sawtooth in [-1, 1)."""
    cycles = t * freq
    return 2 * (cycles - np.floor(cycles + 0.5))


WAVEFORMS: Mapping[Waveform, OscFn] = MappingProxyType(
    {
        "sine": oscillator_sine,
        "square": oscillator_square,
        "triangle": oscillator_triangle,
        "sawtooth": oscillator_sawtooth,
    }
)


# =============================================================================
# HELPERS
# =============================================================================


def sample_count(duration: float, sample_rate: int = SAMPLE_RATE) -> int:
    """Number of samples for ``duration`` seconds; rejects non-positive durations."""
    if not math.isfinite(duration) or duration <= 0:
        raise InvalidDurationError(duration)
    return int(round(duration * sample_rate))


def time_axis(n: int, sample_rate: int = SAMPLE_RATE) -> FloatArray:
    return np.arange(n, dtype=np.float64) / sample_rate


def tone_envelope(
    n: int, sample_rate: int = SAMPLE_RATE, fade_seconds: float = FADE_SECONDS
) -> FloatArray:
    """Linear fade-in and fade-out, clamped to [0, 1].

    Tones shorter than two fades get a triangular envelope instead of an
    inverted one.
    """
    if n <= 0:
        return np.zeros(0, dtype=np.float64)
    fade = fade_seconds * sample_rate
    idx = np.arange(n, dtype=np.float64)
    envelope = np.minimum(idx / fade, (n - idx) / fade)
    return np.clip(envelope, 0.0, 1.0)


def quantize(signal: FloatArray) -> SampleBuffer:
    """Truncate toward zero into int16 (not rounded; output must be reproducible)."""
    return np.clip(np.trunc(signal), _INT16_MIN, _INT16_MAX).astype(np.int16)


def silence(seconds: float, sample_rate: int = SAMPLE_RATE) -> SampleBuffer:
    n = max(0, int(round(seconds * sample_rate)))
    return np.zeros(n, dtype=np.int16)


# =============================================================================
# TONES
# =============================================================================


def synthesize(spec: ToneSpec, sample_rate: int = SAMPLE_RATE) -> SampleBuffer:
    """Render one tone to quantized samples.

    The buffer holds ``round(duration * sample_rate)`` samples and no sample
    exceeds ``16384 * volume`` in magnitude.
    """
    n = sample_count(spec.duration, sample_rate)
    t = time_axis(n, sample_rate)
    oscillator = WAVEFORMS[spec.waveform]
    amplitude = AMPLITUDE_CEILING * spec.volume
    wave = oscillator(pitch_frequency(spec.pitch), t)
    return quantize(amplitude * wave * tone_envelope(n, sample_rate))
