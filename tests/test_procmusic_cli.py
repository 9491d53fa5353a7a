from pathlib import Path

import pytest

from procmusic.audio import read_track
from procmusic.cli import build_parser, main


@pytest.fixture(autouse=True)
def _isolated_logs(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("PROCMUSIC_LOG_DIR", str(tmp_path / "logs"))


@pytest.mark.parametrize(
    ("argv", "prefix"),
    [
        (["phrase", "--notes", "3"], "procedural_phrase_"),
        (["rhythm", "--measures", "1"], "procedural_rhythm_"),
        (["ambient", "--duration", "0.5"], "simple_ambient_"),
    ],
)
def test_single_commands_write_one_file(tmp_path: Path, argv: list[str], prefix: str) -> None:
    out = tmp_path / "out"
    out.mkdir()
    code = main([*argv, "--output-dir", str(out), "--seed", "7"])

    assert code == 0
    files = list(out.glob("*.wav"))
    assert len(files) == 1
    assert files[0].name.startswith(prefix)
    samples, sample_rate = read_track(files[0])
    assert sample_rate == 22_050
    assert samples.size > 0


def test_run_cleans_up_after_itself(tmp_path: Path) -> None:
    out = tmp_path / "run"
    code = main(
        ["run", "--seconds", "0.3", "--interval", "0.05", "--output-dir", str(out)]
    )
    assert code == 0
    assert out.is_dir()
    assert list(out.glob("*.wav")) == []


def test_invalid_tempo_returns_error(tmp_path: Path) -> None:
    code = main(["phrase", "--tempo", "-5", "--output-dir", str(tmp_path)])
    assert code == 1
    assert list(tmp_path.glob("*.wav")) == []


def test_missing_output_dir_returns_error(tmp_path: Path) -> None:
    code = main(["phrase", "--output-dir", str(tmp_path / "missing")])
    assert code == 1


def test_parser_rejects_unknown_scale() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args(["phrase", "--scale", "lydian"])
