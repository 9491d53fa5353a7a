from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

import numpy as np

from .config import MusicStyle, Pitch, ScaleName, coerce_style, scale_pitches

_LOGGER = logging.getLogger("procmusic.style")

TEMPO_JITTER_RANGE = (0.8, 1.5)
VOLUME_RANGE = (0.6, 0.9)


@dataclass(frozen=True, slots=True)
class _StyleSnapshot:
    style: MusicStyle
    pool: tuple[Pitch, ...]


def _snapshot(style: MusicStyle) -> _StyleSnapshot:
    return _StyleSnapshot(style=style, pool=scale_pitches(style.scale))


class StyleModel:
    """Active scale and tempo, plus the random draws the composer needs.

    The style and its pitch pool live in one immutable snapshot that is
    replaced wholesale, so readers never see a pool from one scale paired
    with the bound of another.
    """

    def __init__(
        self,
        style: MusicStyle | None = None,
        *,
        rng: np.random.Generator | None = None,
        seed: int | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._current = _snapshot(style or MusicStyle())
        self._rng = rng if rng is not None else np.random.default_rng(seed)

    @property
    def style(self) -> MusicStyle:
        return self._current.style

    def set_style(self, scale: ScaleName, tempo_bpm: float) -> MusicStyle:
        snapshot = _snapshot(coerce_style(scale, tempo_bpm))
        with self._lock:
            self._current = snapshot
        _LOGGER.debug("Style set to %s @ %.1f BPM", scale, tempo_bpm)
        return snapshot.style

    def set_scale(self, scale: ScaleName) -> MusicStyle:
        with self._lock:
            snapshot = _snapshot(coerce_style(scale, self._current.style.tempo_bpm))
            self._current = snapshot
        return snapshot.style

    def set_tempo(self, tempo_bpm: float) -> MusicStyle:
        with self._lock:
            snapshot = _snapshot(coerce_style(self._current.style.scale, tempo_bpm))
            self._current = snapshot
        return snapshot.style

    def pitch_pool(self) -> tuple[Pitch, ...]:
        return self._current.pool

    def beat_duration(self) -> float:
        return self._current.style.beat_seconds

    def random_pitch(self, style: MusicStyle | None = None) -> Pitch:
        """Uniform draw from the current pool, or from ``style``'s pool when pinned."""
        with self._lock:
            pool = scale_pitches(style.scale) if style is not None else self._current.pool
            return pool[int(self._rng.integers(0, len(pool)))]

    def random_tempo_jitter(self) -> float:
        low, high = TEMPO_JITTER_RANGE
        with self._lock:
            return float(self._rng.uniform(low, high))

    def random_volume(self) -> float:
        low, high = VOLUME_RANGE
        with self._lock:
            return float(self._rng.uniform(low, high))
