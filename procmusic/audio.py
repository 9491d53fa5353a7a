from __future__ import annotations

import contextlib
import logging
import struct
from pathlib import Path

import numpy as np
import soundfile as sf  # type: ignore[import]
from numpy.typing import ArrayLike
from pydantic import BaseModel, ConfigDict

from .config import SAMPLE_RATE, GeneratedTrack, SampleBuffer
from .errors import EncodeError, InvalidConfigError

_LOGGER = logging.getLogger("procmusic.audio")

# RIFF/WAVE, one 16-byte PCM fmt chunk, then the data chunk header.
_HEADER_STRUCT = struct.Struct("<4sI4s4sIHHIIHH4sI")
HEADER_SIZE = _HEADER_STRUCT.size
_FMT_CHUNK_SIZE = 16
_PCM_FORMAT = 1
_CHANNELS = 1
_BITS_PER_SAMPLE = 16
_BLOCK_ALIGN = _CHANNELS * _BITS_PER_SAMPLE // 8


class WavHeader(BaseModel):
    file_size: int
    fmt_size: int
    audio_format: int
    channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bits_per_sample: int
    data_size: int

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def sample_count(self) -> int:
        return self.data_size // self.block_align


def build_wav_header(sample_count: int, sample_rate: int = SAMPLE_RATE) -> bytes:
    """Canonical 44-byte header for mono 16-bit PCM."""
    data_size = sample_count * _BLOCK_ALIGN
    return _HEADER_STRUCT.pack(
        b"RIFF",
        HEADER_SIZE - 8 + data_size,
        b"WAVE",
        b"fmt ",
        _FMT_CHUNK_SIZE,
        _PCM_FORMAT,
        _CHANNELS,
        sample_rate,
        sample_rate * _BLOCK_ALIGN,
        _BLOCK_ALIGN,
        _BITS_PER_SAMPLE,
        b"data",
        data_size,
    )


def parse_wav_header(data: bytes) -> WavHeader:
    if len(data) < HEADER_SIZE:
        raise InvalidConfigError(f"WAV header needs {HEADER_SIZE} bytes, got {len(data)}")
    (
        riff,
        file_size,
        wave,
        fmt,
        fmt_size,
        audio_format,
        channels,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        data_tag,
        data_size,
    ) = _HEADER_STRUCT.unpack_from(data)
    if (riff, wave, fmt, data_tag) != (b"RIFF", b"WAVE", b"fmt ", b"data"):
        raise InvalidConfigError("not a canonical RIFF/WAVE header")
    if (audio_format, channels, bits_per_sample) != (_PCM_FORMAT, _CHANNELS, _BITS_PER_SAMPLE):
        raise InvalidConfigError(
            f"unsupported format: code={audio_format} channels={channels} bits={bits_per_sample}"
        )
    return WavHeader(
        file_size=file_size,
        fmt_size=fmt_size,
        audio_format=audio_format,
        channels=channels,
        sample_rate=sample_rate,
        byte_rate=byte_rate,
        block_align=block_align,
        bits_per_sample=bits_per_sample,
        data_size=data_size,
    )


def encode_wav(
    samples: SampleBuffer | ArrayLike,
    sample_rate: int,
    destination: str | Path,
) -> GeneratedTrack:
    """Write ``samples`` as a mono 16-bit PCM WAV file.

    Raises EncodeError when the destination cannot be opened or written.
    """

    pcm = np.ascontiguousarray(samples, dtype="<i2").reshape(-1)
    target = Path(destination)
    header = build_wav_header(pcm.size, sample_rate)
    try:
        with target.open("wb") as handle:
            handle.write(header)
            handle.write(pcm.tobytes())
    except OSError as exc:
        # Never leave a truncated file behind.
        with contextlib.suppress(OSError):
            target.unlink(missing_ok=True)
        raise EncodeError(target, exc.strerror or str(exc)) from exc

    track = GeneratedTrack(
        path=target,
        sample_rate=sample_rate,
        sample_count=int(pcm.size),
        byte_size=HEADER_SIZE + int(pcm.nbytes),
    )
    _LOGGER.debug("Encoded %d samples to %s", track.sample_count, target)
    return track


def read_track(path: str | Path) -> tuple[SampleBuffer, int]:
    """Decode a track back to int16 samples with libsndfile."""
    data, sample_rate = sf.read(str(path), dtype="int16", always_2d=False)
    return np.asarray(data, dtype=np.int16).reshape(-1), int(sample_rate)
