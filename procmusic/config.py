from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any, Literal

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import InvalidConfigError

_LOGGER = logging.getLogger("procmusic.config")

SAMPLE_RATE = 22_050

Pitch = Literal[
    "c4", "d4", "e4", "f4", "g4", "a4", "b4",
    "c5", "d5", "e5", "f5", "g5", "a5", "b5",
]  # fmt: skip
ScaleName = Literal["major", "minor", "pentatonic", "blues"]
Waveform = Literal["sine", "square", "triangle", "sawtooth"]

SampleBuffer = NDArray[np.int16]

# Integer-tempered frequencies (Hz), two octaves from middle C.
PITCH_FREQS: Mapping[Pitch, float] = MappingProxyType(
    {
        "c4": 262.0,
        "d4": 294.0,
        "e4": 330.0,
        "f4": 349.0,
        "g4": 392.0,
        "a4": 440.0,
        "b4": 494.0,
        "c5": 523.0,
        "d5": 587.0,
        "e5": 659.0,
        "f5": 698.0,
        "g5": 784.0,
        "a5": 880.0,
        "b5": 988.0,
    }
)

SCALE_PITCHES: Mapping[ScaleName, tuple[Pitch, ...]] = MappingProxyType(
    {
        "major": ("c4", "d4", "e4", "f4", "g4", "a4", "b4"),
        "minor": ("a4", "b4", "c5", "d5", "e5", "f5", "g5"),
        "pentatonic": ("c4", "d4", "e4", "g4", "a4", "c5", "d5"),
        "blues": ("c4", "e4", "f4", "g4", "a4", "c5"),
    }
)


def pitch_frequency(pitch: Pitch) -> float:
    try:
        return PITCH_FREQS[pitch]
    except KeyError as exc:
        raise InvalidConfigError(
            f"Unknown pitch: {pitch!r}. Valid: {list(PITCH_FREQS.keys())}"
        ) from exc


def scale_pitches(scale: ScaleName) -> tuple[Pitch, ...]:
    try:
        return SCALE_PITCHES[scale]
    except KeyError as exc:
        raise InvalidConfigError(
            f"Unknown scale: {scale!r}. Valid: {list(SCALE_PITCHES.keys())}"
        ) from exc


class ToneSpec(BaseModel):
    """Everything needed to synthesize one note; no hidden state."""

    pitch: Pitch
    # Checked by the synthesizer so callers get InvalidDurationError.
    duration: float
    volume: float = Field(ge=0.0, le=1.0)
    waveform: Waveform = "sine"

    model_config = ConfigDict(frozen=True, extra="forbid")


class MusicStyle(BaseModel):
    """Immutable snapshot of the active scale and tempo."""

    scale: ScaleName = "major"
    tempo_bpm: float = Field(default=220.0, gt=0.0)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def beat_seconds(self) -> float:
        return 60.0 / self.tempo_bpm


class GeneratedTrack(BaseModel):
    path: Path
    sample_rate: int
    sample_count: int
    byte_size: int

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def duration_seconds(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return self.sample_count / self.sample_rate


_ENV_FIELDS: Mapping[str, str] = MappingProxyType(
    {
        "PROCMUSIC_OUTPUT_DIR": "output_dir",
        "PROCMUSIC_CYCLE_INTERVAL": "cycle_interval",
        "PROCMUSIC_RETENTION_LIMIT": "retention_limit",
        "PROCMUSIC_NOTE_COUNT": "phrase_note_count",
    }
)


class GeneratorSettings(BaseModel):
    """Knobs for the background generation loop."""

    sample_rate: int = Field(default=SAMPLE_RATE, gt=0)
    output_dir: Path = Path(".")
    phrase_note_count: int = Field(default=12, ge=0)
    # Must exceed the time the sink needs to consume one track.
    cycle_interval: float = Field(default=6.0, gt=0.0)
    retention_limit: int = Field(default=5, ge=0)
    error_backoff: float = Field(default=1.0, ge=0.0)
    duration_hint: float = Field(default=8.0, ge=0.0)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> "GeneratorSettings":
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {}
        for key, field_name in _ENV_FIELDS.items():
            raw = env.get(key)
            if raw:
                data[field_name] = raw
        data.update(overrides)
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            _LOGGER.warning("Rejected generator settings: %s", exc)
            raise InvalidConfigError(str(exc)) from exc


def coerce_style(scale: ScaleName, tempo_bpm: float) -> MusicStyle:
    try:
        return MusicStyle(scale=scale, tempo_bpm=tempo_bpm)
    except ValidationError as exc:
        raise InvalidConfigError(str(exc)) from exc
