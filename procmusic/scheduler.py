from __future__ import annotations

import logging
import threading
import weakref
from typing import Literal

from .composer import Composer
from .config import GeneratedTrack, GeneratorSettings, MusicStyle, ScaleName
from .errors import CleanupError, InvalidConfigError
from .logging_utils import generation_context, log_exception
from .sink import PlaybackSink, TrackReference
from .style import StyleModel

_LOGGER = logging.getLogger("procmusic.scheduler")
_THREAD_NAME = "procmusic-generation"

SchedulerState = Literal["idle", "running", "stopping"]


def _delete_tracks(tracks: list[GeneratedTrack], lock: threading.Lock) -> list[CleanupError]:
    """Empty ``tracks`` and unlink every file in it, collecting per-file failures."""
    with lock:
        doomed = list(tracks)
        tracks.clear()
    failures: list[CleanupError] = []
    for track in doomed:
        try:
            track.path.unlink(missing_ok=True)
        except OSError as exc:
            error = CleanupError(track.path, exc.strerror or str(exc))
            failures.append(error)
            _LOGGER.warning("%s", error)
    if doomed:
        _LOGGER.debug("Cleaned up %d tracks (%d failed)", len(doomed), len(failures))
    return failures


def _release(
    stop_event: threading.Event,
    tracks: list[GeneratedTrack],
    lock: threading.Lock,
) -> None:
    # Runs when the scheduler is garbage collected or at interpreter exit.
    stop_event.set()
    _delete_tracks(tracks, lock)


class GenerationScheduler:
    """Background loop that keeps producing phrases and hands them to a sink.

    One daemon thread runs the loop. ``start``/``stop``/style changes may be
    called from any other thread; ``stop`` joins the loop before deleting the
    files it produced. Files still registered when the scheduler is garbage
    collected, or when the interpreter exits, are deleted as well.

    Usage:
        with GenerationScheduler(QueueSink(), settings=settings) as scheduler:
            scheduler.set_music_style("pentatonic", 90)
            ...
    """

    def __init__(
        self,
        sink: PlaybackSink | None = None,
        *,
        style: MusicStyle | None = None,
        settings: GeneratorSettings | None = None,
        composer: Composer | None = None,
    ) -> None:
        self.settings = settings or GeneratorSettings()
        self._composer = composer or Composer(
            StyleModel(style),
            sample_rate=self.settings.sample_rate,
            output_dir=self.settings.output_dir,
        )
        self._sink = sink
        self._lock = threading.Lock()
        self._registry_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._state: SchedulerState = "idle"
        self._tracks: list[GeneratedTrack] = []
        self._cycle_interval = self.settings.cycle_interval
        self._cycle_count = 0
        self._failure_count = 0
        self.current_time = 0.0
        self.next_play_time = 0.0
        self._finalizer = weakref.finalize(
            self, _release, self._stop_event, self._tracks, self._registry_lock
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Spawn the loop thread unless one is already running.

        A loop that is still winding down after ``stop`` is joined first; from
        inside the loop thread itself the call is ignored.
        """
        with self._lock:
            if self._state == "running":
                return
            previous = self._thread
        if previous is not None and previous is not threading.current_thread():
            previous.join()
        with self._lock:
            if self._state == "running" or (self._thread is not None and self._thread.is_alive()):
                return
            self._stop_event.clear()
            thread = threading.Thread(target=self._run, name=_THREAD_NAME, daemon=True)
            self._thread = thread
            self._state = "running"
            thread.start()
        _LOGGER.info("Generation loop started (interval=%.1fs)", self._cycle_interval)

    def stop(self) -> list[CleanupError]:
        """Signal the loop, wait for it to exit and delete every registered file.

        Called from the loop thread (e.g. by a sink), the loop is left to
        finish its current cycle and marks itself idle on the way out.
        """
        with self._lock:
            thread = self._thread
            if thread is not None:
                self._state = "stopping"
            self._stop_event.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join()
            with self._lock:
                if self._thread is thread:
                    self._thread = None
                    self._state = "idle"
        if thread is None:
            with self._lock:
                self._state = "idle"
        else:
            _LOGGER.info("Generation loop stopped after %d cycles", self._cycle_count)
        return self.cleanup()

    def close(self) -> None:
        self.stop()

    def __enter__(self) -> "GenerationScheduler":
        self.start()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.stop()

    # -------------------------------------------------------------------------
    # External inputs
    # -------------------------------------------------------------------------

    def update(self, delta_time: float) -> None:
        with self._lock:
            self.current_time += delta_time

    def set_music_style(self, scale: ScaleName, tempo_bpm: float) -> MusicStyle:
        """Swap the style; the loop picks it up on its next cycle."""
        return self._composer.style_model.set_style(scale, tempo_bpm)

    def set_playback_interval(self, seconds: float) -> None:
        """Set the time between generated phrases, effective from the next wait."""
        if not seconds > 0:
            raise InvalidConfigError(f"playback interval must be > 0, got {seconds!r}")
        with self._lock:
            self.next_play_time = self.current_time + seconds
            self._cycle_interval = float(seconds)

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == "running"

    @property
    def composer(self) -> Composer:
        return self._composer

    @property
    def cycle_interval(self) -> float:
        return self._cycle_interval

    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    @property
    def failure_count(self) -> int:
        return self._failure_count

    @property
    def tracks(self) -> list[GeneratedTrack]:
        with self._registry_lock:
            return list(self._tracks)

    # -------------------------------------------------------------------------
    # Loop
    # -------------------------------------------------------------------------

    def _run(self) -> None:
        attempt = 0
        try:
            while not self._stop_event.is_set():
                attempt += 1
                with generation_context(attempt):
                    try:
                        self._cycle()
                    except Exception as exc:
                        self._failure_count += 1
                        log_exception("Generation cycle", exc, logger=_LOGGER)
                        _LOGGER.debug("Retrying in %.1fs", self.settings.error_backoff)
                        self._stop_event.wait(self.settings.error_backoff)
        finally:
            with self._lock:
                if self._thread is threading.current_thread():
                    self._thread = None
                    self._state = "idle"

    def _cycle(self) -> None:
        self._composer.output_dir.mkdir(parents=True, exist_ok=True)
        track = self._composer.generate_phrase(self.settings.phrase_note_count)
        # Registered before the handoff so a failing sink cannot orphan the file.
        with self._registry_lock:
            self._tracks.append(track)
        if self._sink is not None:
            self._sink.push(
                TrackReference.from_track(track, duration_hint=self.settings.duration_hint)
            )
        self._cycle_count += 1

        if self._stop_event.wait(self._cycle_interval):
            return
        with self._registry_lock:
            over_limit = len(self._tracks) > self.settings.retention_limit
        if over_limit:
            self.cleanup()

    def cleanup(self) -> list[CleanupError]:
        """Delete every registered file and clear the registry.

        A failure on one file is logged and collected; the rest are still tried.
        """
        return _delete_tracks(self._tracks, self._registry_lock)
