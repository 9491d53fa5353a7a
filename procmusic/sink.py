from __future__ import annotations

import logging
from pathlib import Path
from queue import Empty, Queue
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from .config import GeneratedTrack

_LOGGER = logging.getLogger("procmusic.sink")


class TrackReference(BaseModel):
    """What a playback sink receives: where the file is and how to play it."""

    path: Path
    duration_hint: float
    sample_rate: int

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def from_track(cls, track: GeneratedTrack, *, duration_hint: float) -> "TrackReference":
        return cls(path=track.path, duration_hint=duration_hint, sample_rate=track.sample_rate)


@runtime_checkable
class PlaybackSink(Protocol):
    """Audio output collaborator. ``push`` must return without waiting for playback."""

    def push(self, reference: TrackReference) -> None:
        ...


class QueueSink:
    """Collects references in a thread-safe queue for a host mixer to pick up."""

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: Queue[TrackReference] = Queue(maxsize=maxsize)

    def push(self, reference: TrackReference) -> None:
        self._queue.put_nowait(reference)

    def drain(self) -> list[TrackReference]:
        drained: list[TrackReference] = []
        while True:
            try:
                drained.append(self._queue.get_nowait())
            except Empty:
                return drained

    def __len__(self) -> int:
        return self._queue.qsize()


class LoggingSink:
    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or _LOGGER

    def push(self, reference: TrackReference) -> None:
        self._logger.info(
            "Track ready: %s (%d Hz, ~%.1fs)",
            reference.path,
            reference.sample_rate,
            reference.duration_hint,
        )
