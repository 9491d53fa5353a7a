from pathlib import Path

import pytest
from pydantic import ValidationError

from procmusic.config import (
    PITCH_FREQS,
    SAMPLE_RATE,
    SCALE_PITCHES,
    GeneratedTrack,
    GeneratorSettings,
    MusicStyle,
    ToneSpec,
    coerce_style,
    pitch_frequency,
    scale_pitches,
)
from procmusic.errors import InvalidConfigError


def test_settings_defaults() -> None:
    settings = GeneratorSettings()
    assert settings.sample_rate == SAMPLE_RATE == 22_050
    assert settings.phrase_note_count == 12
    assert settings.cycle_interval == 6.0
    assert settings.retention_limit == 5
    assert settings.error_backoff == 1.0
    assert settings.duration_hint == 8.0


def test_settings_from_env_mapping(tmp_path: Path) -> None:
    environ = {
        "PROCMUSIC_OUTPUT_DIR": str(tmp_path),
        "PROCMUSIC_CYCLE_INTERVAL": "2.5",
        "PROCMUSIC_RETENTION_LIMIT": "3",
        "PROCMUSIC_NOTE_COUNT": "",
    }
    settings = GeneratorSettings.from_env(environ)
    assert settings.output_dir == tmp_path
    assert settings.cycle_interval == 2.5
    assert settings.retention_limit == 3
    assert settings.phrase_note_count == 12


def test_settings_overrides_beat_env() -> None:
    settings = GeneratorSettings.from_env(
        {"PROCMUSIC_CYCLE_INTERVAL": "2.5"}, cycle_interval=0.5
    )
    assert settings.cycle_interval == 0.5


@pytest.mark.parametrize(
    "environ",
    [
        {"PROCMUSIC_CYCLE_INTERVAL": "0"},
        {"PROCMUSIC_CYCLE_INTERVAL": "soon"},
        {"PROCMUSIC_RETENTION_LIMIT": "-1"},
    ],
)
def test_settings_from_env_rejects_invalid(environ: dict[str, str]) -> None:
    with pytest.raises(InvalidConfigError):
        GeneratorSettings.from_env(environ)


def test_settings_are_frozen() -> None:
    settings = GeneratorSettings()
    with pytest.raises(ValidationError):
        settings.cycle_interval = 1.0  # type: ignore[misc]


def test_tone_spec_volume_bounds() -> None:
    assert ToneSpec(pitch="c4", duration=0.1, volume=1.0).waveform == "sine"
    with pytest.raises(ValidationError):
        ToneSpec(pitch="c4", duration=0.1, volume=1.5)
    with pytest.raises(ValidationError):
        ToneSpec(pitch="h4", duration=0.1, volume=0.5)  # type: ignore[arg-type]


def test_music_style_beat_seconds() -> None:
    assert MusicStyle().beat_seconds == pytest.approx(60.0 / 220.0)
    assert MusicStyle(tempo_bpm=120).beat_seconds == pytest.approx(0.5)


@pytest.mark.parametrize("tempo", [0.0, -60.0])
def test_coerce_style_rejects_tempo(tempo: float) -> None:
    with pytest.raises(InvalidConfigError):
        coerce_style("major", tempo)


def test_coerce_style_rejects_unknown_scale() -> None:
    with pytest.raises(InvalidConfigError):
        coerce_style("lydian", 120.0)  # type: ignore[arg-type]


def test_pitch_table() -> None:
    assert pitch_frequency("a4") == 440.0
    assert pitch_frequency("c4") == 262.0
    assert pitch_frequency("b5") == 988.0
    assert len(PITCH_FREQS) == 14
    with pytest.raises(InvalidConfigError):
        pitch_frequency("c9")  # type: ignore[arg-type]


def test_scale_pools_are_known_pitches() -> None:
    for scale, pool in SCALE_PITCHES.items():
        assert 3 <= len(pool) <= 7, scale
        assert set(pool) <= set(PITCH_FREQS)
    assert scale_pitches("blues") == ("c4", "e4", "f4", "g4", "a4", "c5")
    with pytest.raises(InvalidConfigError):
        scale_pitches("dorian")  # type: ignore[arg-type]


def test_generated_track_duration(tmp_path: Path) -> None:
    track = GeneratedTrack(
        path=tmp_path / "x.wav", sample_rate=22_050, sample_count=44_100, byte_size=88_244
    )
    assert track.duration_seconds == 2.0
