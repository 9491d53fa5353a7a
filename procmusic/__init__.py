from __future__ import annotations

from .audio import HEADER_SIZE, WavHeader, encode_wav, parse_wav_header, read_track
from .composer import Composer
from .config import (
    SAMPLE_RATE,
    GeneratedTrack,
    GeneratorSettings,
    MusicStyle,
    Pitch,
    SampleBuffer,
    ScaleName,
    ToneSpec,
    Waveform,
)
from .errors import (
    CleanupError,
    EncodeError,
    InvalidConfigError,
    InvalidDurationError,
    ProcMusicError,
)
from .logging_utils import configure_logging as _configure_logging
from .scheduler import GenerationScheduler
from .sink import LoggingSink, PlaybackSink, QueueSink, TrackReference
from .style import StyleModel
from .synth import synthesize

__all__ = [
    "HEADER_SIZE",
    "SAMPLE_RATE",
    "CleanupError",
    "Composer",
    "EncodeError",
    "GeneratedTrack",
    "GenerationScheduler",
    "GeneratorSettings",
    "InvalidConfigError",
    "InvalidDurationError",
    "LoggingSink",
    "MusicStyle",
    "Pitch",
    "PlaybackSink",
    "ProcMusicError",
    "QueueSink",
    "SampleBuffer",
    "ScaleName",
    "StyleModel",
    "ToneSpec",
    "TrackReference",
    "WavHeader",
    "Waveform",
    "encode_wav",
    "parse_wav_header",
    "read_track",
    "synthesize",
]

__version__ = "0.1.0"

_configure_logging()
del _configure_logging
