from __future__ import annotations

from pathlib import Path


class ProcMusicError(Exception):
    """Base error for the procmusic library."""


class InvalidConfigError(ProcMusicError):
    """Raised when a style, setting or container header cannot be validated."""


class InvalidDurationError(ProcMusicError):
    """Raised when a tone or ambient bed is requested with a non-positive duration."""

    def __init__(self, duration: float) -> None:
        super().__init__(f"duration must be > 0 seconds, got {duration!r}")
        self.duration = duration


class EncodeError(ProcMusicError):
    """Raised when an audio container cannot be written."""

    IO_FAILURE = "io_failure"

    def __init__(self, path: str | Path, message: str, *, reason: str = IO_FAILURE) -> None:
        super().__init__(f"{reason}: {path}: {message}")
        self.path = Path(path)
        self.reason = reason


class CleanupError(ProcMusicError):
    """Raised (or collected) when a generated file cannot be deleted."""

    def __init__(self, path: str | Path, message: str) -> None:
        super().__init__(f"failed to remove {path}: {message}")
        self.path = Path(path)
