from __future__ import annotations

import itertools
import logging
import threading
import time
from pathlib import Path

import numpy as np

from .audio import encode_wav
from .config import SAMPLE_RATE, GeneratedTrack, Pitch, SampleBuffer, ToneSpec, Waveform
from .errors import InvalidConfigError
from .style import StyleModel
from .synth import quantize, sample_count, silence, synthesize, time_axis

_LOGGER = logging.getLogger("procmusic.composer")

# Phrase
PHRASE_NOTE_SCALE = 0.7
NOTE_GAP_SECONDS = 0.02
PHRASE_WAVEFORMS: tuple[Waveform, Waveform] = ("sine", "triangle")

# Rhythm
BEATS_PER_MEASURE = 4
KICK_PITCH: Pitch = "c4"
SNARE_PITCH: Pitch = "g4"
KICK_VOLUME = 0.8
SNARE_VOLUME = 0.4
HIT_FRACTION = 0.3
RHYTHM_WAVEFORM: Waveform = "square"

# Ambient: (frequency Hz, weight) partials, A3/E4/A4
AMBIENT_PARTIALS: tuple[tuple[float, float], ...] = ((220.0, 0.3), (330.0, 0.2), (440.0, 0.15))
AMBIENT_AMPLITUDE = 8192.0
AMBIENT_LEVEL = 0.5
AMBIENT_FADE_SECONDS = 1.0
# Shorter beds have no room for both fades and are rendered silent.
AMBIENT_MIN_SECONDS = 2 * AMBIENT_FADE_SECONDS

PHRASE_PREFIX = "procedural_phrase"
RHYTHM_PREFIX = "procedural_rhythm"
AMBIENT_PREFIX = "simple_ambient"

_id_lock = threading.Lock()
_id_counter = itertools.count()


def unique_track_id() -> str:
    """Nanosecond timestamp plus a process-wide counter; never repeats within a process."""
    with _id_lock:
        return f"{time.time_ns()}_{next(_id_counter):06d}"


def _concat(parts: list[SampleBuffer]) -> SampleBuffer:
    if not parts:
        return np.zeros(0, dtype=np.int16)
    return np.concatenate(parts).astype(np.int16, copy=False)


def _require_count(name: str, value: int) -> int:
    if value < 0:
        raise InvalidConfigError(f"{name} must be >= 0, got {value}")
    return int(value)


class Composer:
    """Builds phrases, rhythms and ambient beds and writes each to its own WAV file."""

    def __init__(
        self,
        style_model: StyleModel | None = None,
        *,
        sample_rate: int = SAMPLE_RATE,
        output_dir: str | Path = ".",
    ) -> None:
        self.style_model = style_model or StyleModel()
        self.sample_rate = sample_rate
        self.output_dir = Path(output_dir)

    # -------------------------------------------------------------------------
    # Buffers
    # -------------------------------------------------------------------------

    def compose_phrase(self, note_count: int = 8) -> SampleBuffer:
        note_count = _require_count("note_count", note_count)
        # Pinned for the whole phrase; style changes land on the next one.
        style = self.style_model.style
        gap = silence(NOTE_GAP_SECONDS, self.sample_rate)
        parts: list[SampleBuffer] = []
        for index in range(note_count):
            spec = ToneSpec(
                pitch=self.style_model.random_pitch(style),
                duration=style.beat_seconds
                * self.style_model.random_tempo_jitter()
                * PHRASE_NOTE_SCALE,
                volume=self.style_model.random_volume(),
                waveform=PHRASE_WAVEFORMS[index % 2],
            )
            parts.append(synthesize(spec, self.sample_rate))
            parts.append(gap)
        return _concat(parts)

    def compose_rhythm(self, measures: int = 4) -> SampleBuffer:
        measures = _require_count("measures", measures)
        beat_seconds = self.style_model.beat_duration()
        kick = self._percussive_beat(KICK_PITCH, KICK_VOLUME, beat_seconds)
        snare = self._percussive_beat(SNARE_PITCH, SNARE_VOLUME, beat_seconds)
        measure = [kick] + [snare] * (BEATS_PER_MEASURE - 1)
        return _concat(measure * measures)

    def compose_ambient(self, duration: float = 10.0) -> SampleBuffer:
        """Three-partial sine drone with 1 s fades.

        Beds shorter than two fades come back as silence of the requested length.
        """
        n = sample_count(duration, self.sample_rate)
        if duration < AMBIENT_MIN_SECONDS:
            return np.zeros(n, dtype=np.int16)
        t = time_axis(n, self.sample_rate)
        drone = np.zeros(n, dtype=np.float64)
        for freq, weight in AMBIENT_PARTIALS:
            drone += weight * np.sin(2 * np.pi * freq * t)
        fade = np.minimum(t, duration - t) / AMBIENT_FADE_SECONDS
        envelope = AMBIENT_LEVEL * np.clip(fade, 0.0, 1.0)
        return quantize(drone * AMBIENT_AMPLITUDE * envelope)

    def _percussive_beat(self, pitch: Pitch, volume: float, beat_seconds: float) -> SampleBuffer:
        hit = synthesize(
            ToneSpec(
                pitch=pitch,
                duration=beat_seconds * HIT_FRACTION,
                volume=volume,
                waveform=RHYTHM_WAVEFORM,
            ),
            self.sample_rate,
        )
        # Beat length is rounded once so measures never drift.
        beat_samples = int(round(beat_seconds * self.sample_rate))
        rest = np.zeros(max(0, beat_samples - hit.size), dtype=np.int16)
        return _concat([hit, rest])

    # -------------------------------------------------------------------------
    # Files
    # -------------------------------------------------------------------------

    def generate_phrase(self, note_count: int = 8) -> GeneratedTrack:
        return self._write(PHRASE_PREFIX, self.compose_phrase(note_count))

    def generate_rhythm(self, measures: int = 4) -> GeneratedTrack:
        return self._write(RHYTHM_PREFIX, self.compose_rhythm(measures))

    def generate_ambient(self, duration: float = 10.0) -> GeneratedTrack:
        return self._write(AMBIENT_PREFIX, self.compose_ambient(duration))

    def _write(self, prefix: str, samples: SampleBuffer) -> GeneratedTrack:
        path = self.output_dir / f"{prefix}_{unique_track_id()}.wav"
        track = encode_wav(samples, self.sample_rate, path)
        _LOGGER.info("Wrote %s (%.2fs)", path.name, track.duration_seconds)
        return track
