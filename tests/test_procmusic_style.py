import threading

import pytest

from procmusic.config import SCALE_PITCHES, MusicStyle
from procmusic.errors import InvalidConfigError
from procmusic.style import TEMPO_JITTER_RANGE, VOLUME_RANGE, StyleModel


def test_default_style_is_major() -> None:
    model = StyleModel(seed=0)
    assert model.style == MusicStyle(scale="major", tempo_bpm=220.0)
    assert model.pitch_pool() == SCALE_PITCHES["major"]


@pytest.mark.parametrize("scale", list(SCALE_PITCHES))
def test_draws_stay_in_new_pool(scale: str) -> None:
    model = StyleModel(MusicStyle(scale="major"), seed=1)
    for _ in range(50):
        model.random_pitch()

    model.set_scale(scale)  # type: ignore[arg-type]

    pool = set(SCALE_PITCHES[scale])  # type: ignore[index]
    draws = [model.random_pitch() for _ in range(1000)]
    assert set(draws) <= pool


def test_draws_cover_whole_pool() -> None:
    model = StyleModel(MusicStyle(scale="blues"), seed=3)
    draws = {model.random_pitch() for _ in range(1000)}
    assert draws == set(SCALE_PITCHES["blues"])


def test_concurrent_scale_changes_never_leak_bad_pitches() -> None:
    model = StyleModel(seed=5)
    valid = set().union(*SCALE_PITCHES.values())
    scales = ["major", "blues", "minor", "pentatonic"]
    stop = threading.Event()
    errors: list[BaseException] = []

    def _writer() -> None:
        index = 0
        while not stop.is_set():
            model.set_scale(scales[index % len(scales)])  # type: ignore[arg-type]
            index += 1

    writer = threading.Thread(target=_writer)
    writer.start()
    try:
        for _ in range(2000):
            try:
                pitch = model.random_pitch()
            except BaseException as exc:  # pragma: no cover - failure path
                errors.append(exc)
                break
            assert pitch in valid
    finally:
        stop.set()
        writer.join()

    assert errors == []
    model.set_scale("blues")
    assert {model.random_pitch() for _ in range(1000)} <= set(SCALE_PITCHES["blues"])


def test_pinned_style_pool_wins() -> None:
    model = StyleModel(MusicStyle(scale="minor"), seed=2)
    pinned = MusicStyle(scale="pentatonic")
    draws = {model.random_pitch(pinned) for _ in range(500)}
    assert draws <= set(SCALE_PITCHES["pentatonic"])


def test_jitter_and_volume_ranges() -> None:
    model = StyleModel(seed=11)
    jitters = [model.random_tempo_jitter() for _ in range(1000)]
    volumes = [model.random_volume() for _ in range(1000)]
    assert all(TEMPO_JITTER_RANGE[0] <= j < TEMPO_JITTER_RANGE[1] for j in jitters)
    assert all(VOLUME_RANGE[0] <= v < VOLUME_RANGE[1] for v in volumes)


def test_seeded_models_repeat() -> None:
    first = StyleModel(seed=42)
    second = StyleModel(seed=42)
    assert [first.random_pitch() for _ in range(20)] == [second.random_pitch() for _ in range(20)]


def test_set_tempo_keeps_scale() -> None:
    model = StyleModel(MusicStyle(scale="blues", tempo_bpm=100.0))
    style = model.set_tempo(60.0)
    assert style == MusicStyle(scale="blues", tempo_bpm=60.0)
    assert model.beat_duration() == pytest.approx(1.0)


def test_set_style_replaces_both() -> None:
    model = StyleModel()
    model.set_style("pentatonic", 70.0)
    assert model.style == MusicStyle(scale="pentatonic", tempo_bpm=70.0)
    assert model.pitch_pool() == SCALE_PITCHES["pentatonic"]


@pytest.mark.parametrize("tempo", [0.0, -10.0])
def test_rejects_bad_tempo(tempo: float) -> None:
    model = StyleModel()
    with pytest.raises(InvalidConfigError):
        model.set_tempo(tempo)
    assert model.style.tempo_bpm == 220.0


def test_rejects_unknown_scale() -> None:
    model = StyleModel()
    with pytest.raises(InvalidConfigError):
        model.set_scale("lydian")  # type: ignore[arg-type]
    assert model.pitch_pool() == SCALE_PITCHES["major"]
