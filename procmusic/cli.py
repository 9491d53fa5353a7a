from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path
from typing import get_args

from rich.console import Console

from .composer import Composer
from .config import GeneratedTrack, GeneratorSettings, ScaleName, coerce_style
from .logging_utils import configure_logging, log_exception
from .scheduler import GenerationScheduler
from .sink import LoggingSink
from .style import StyleModel

_LOGGER = logging.getLogger("procmusic.cli")
_CONSOLE = Console()


def _add_style_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--scale", choices=list(get_args(ScaleName)), default="major")
    parser.add_argument("--tempo", type=float, default=220.0, help="Beats per minute.")
    parser.add_argument("--output-dir", type=Path, default=Path("."))
    parser.add_argument("--seed", type=int, default=None)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="procmusic")
    sub = parser.add_subparsers(dest="command", required=True)

    phrase = sub.add_parser("phrase", help="Write one melodic phrase.")
    phrase.add_argument("--notes", type=int, default=8)
    _add_style_args(phrase)

    rhythm = sub.add_parser("rhythm", help="Write a kick/snare pattern.")
    rhythm.add_argument("--measures", type=int, default=4)
    _add_style_args(rhythm)

    ambient = sub.add_parser("ambient", help="Write an ambient drone.")
    ambient.add_argument("--duration", type=float, default=10.0)
    _add_style_args(ambient)

    run = sub.add_parser("run", help="Run the generation loop for a while.")
    run.add_argument("--seconds", type=float, default=30.0)
    run.add_argument("--interval", type=float, default=None, help="Seconds between phrases.")
    _add_style_args(run)
    return parser


def _composer(args: argparse.Namespace, settings: GeneratorSettings | None = None) -> Composer:
    style = StyleModel(coerce_style(args.scale, args.tempo), seed=args.seed)
    if settings is None:
        return Composer(style, output_dir=args.output_dir)
    return Composer(style, sample_rate=settings.sample_rate, output_dir=settings.output_dir)


def _report(track: GeneratedTrack) -> None:
    _CONSOLE.print(
        f"Wrote {track.path} ({track.duration_seconds:.2f}s, sr={track.sample_rate})"
    )


def _run_loop(args: argparse.Namespace) -> None:
    overrides: dict[str, object] = {"output_dir": args.output_dir}
    if args.interval is not None:
        overrides["cycle_interval"] = args.interval
    settings = GeneratorSettings.from_env(**overrides)
    scheduler = GenerationScheduler(
        LoggingSink(),
        settings=settings,
        composer=_composer(args, settings),
    )
    with scheduler:
        try:
            time.sleep(args.seconds)
        except KeyboardInterrupt:
            _CONSOLE.print("Interrupted, cleaning up")
    _CONSOLE.print(
        f"Generated {scheduler.cycle_count} phrases ({scheduler.failure_count} failed cycles)"
    )


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    try:
        parser = build_parser()
        args = parser.parse_args(argv)

        if args.command == "phrase":
            _report(_composer(args).generate_phrase(args.notes))
            return 0
        if args.command == "rhythm":
            _report(_composer(args).generate_rhythm(args.measures))
            return 0
        if args.command == "ambient":
            _report(_composer(args).generate_ambient(args.duration))
            return 0
        if args.command == "run":
            _run_loop(args)
            return 0

        parser.print_help()
        return 1
    except Exception as exc:
        log_exception("procmusic CLI", exc, logger=_LOGGER)
        _CONSOLE.print(f"[bold red]procmusic failed:[/bold red] {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
