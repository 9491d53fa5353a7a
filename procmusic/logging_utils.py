"""
Logging setup for procmusic.

Console records go through rich and show tracebacks only when
``PROCMUSIC_DEBUG`` is set; the log file always gets the full traceback.
Records emitted inside ``generation_context`` carry the cycle number of the
thread that produced them, so interleaved loop and host output can be told
apart in the file.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOG_DIR_ENV = "PROCMUSIC_LOG_DIR"
DEBUG_ENV = "PROCMUSIC_DEBUG"
LOG_FILE = "procmusic.log"

_PACKAGE_LOGGER = "procmusic"
_FILE_FORMAT = "%(asctime)s %(levelname)-7s [%(threadName)s cycle=%(cycle)s] %(name)s: %(message)s"
_FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_NO_CYCLE = "-"
_OWNED = "_procmusic_owned"

# New threads start with an empty context, so the value is per thread.
_cycle: ContextVar[str] = ContextVar("procmusic_cycle", default=_NO_CYCLE)
_log_path: Path | None = None
_configured = False


def get_log_dir() -> Path:
    configured = os.environ.get(LOG_DIR_ENV)
    if configured:
        return Path(configured).expanduser()
    return Path.home() / ".cache" / "procmusic" / "logs"


def get_log_path() -> Path:
    return get_log_dir() / LOG_FILE


@contextmanager
def generation_context(cycle: int) -> Iterator[None]:
    """Tag every record logged by this thread with ``cycle`` until exit."""
    token = _cycle.set(str(cycle))
    try:
        yield
    finally:
        _cycle.reset(token)


class CycleFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.cycle = _cycle.get()
        return True


class ConsoleFormatter(logging.Formatter):
    """Message-only formatter that drops exception text unless asked for it."""

    def __init__(self, *, show_tracebacks: bool = False) -> None:
        super().__init__("%(message)s")
        self.show_tracebacks = show_tracebacks

    def format(self, record: logging.LogRecord) -> str:
        if record.exc_info and not self.show_tracebacks:
            # Copy so the file handler still sees exc_info on the shared record.
            record = logging.makeLogRecord({**record.__dict__, "exc_info": None, "exc_text": None})
        return super().format(record)


def _owned(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _OWNED, True)
    handler.addFilter(CycleFilter())
    return handler


def configure_logging(*, force: bool = False) -> Path | None:
    """Attach the console and file handlers to the ``procmusic`` logger.

    Runs once per process unless ``force`` is set, in which case handlers
    installed by a previous call are replaced (handlers added by a host
    application are left alone). Returns the log file path, or None when the
    file handler could not be opened.
    """

    global _configured, _log_path
    if _configured and not force:
        return _log_path

    logger = logging.getLogger(_PACKAGE_LOGGER)
    logger.setLevel(logging.DEBUG)
    for handler in [h for h in logger.handlers if getattr(h, _OWNED, False)]:
        logger.removeHandler(handler)
        handler.close()

    debug = bool(os.environ.get(DEBUG_ENV))
    if force or not logging.getLogger().handlers:
        console = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=False,
        )
        console.setLevel(logging.DEBUG if debug else logging.INFO)
        console.setFormatter(ConsoleFormatter(show_tracebacks=debug))
        logger.addHandler(_owned(console))

    _log_path = None
    path = get_log_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
    except OSError as exc:
        logger.warning("File logging disabled (%s): %s", path, exc)
    else:
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATE_FORMAT))
        logger.addHandler(_owned(file_handler))
        _log_path = path

    logger.propagate = True
    _configured = True
    return _log_path


def log_exception(
    context: str,
    exc: BaseException,
    *,
    logger: logging.Logger | None = None,
) -> None:
    """Report ``exc`` once: a one-line error on the console, the traceback in the file."""

    (logger or logging.getLogger(_PACKAGE_LOGGER)).error(
        "%s failed: %s: %s",
        context,
        type(exc).__name__,
        exc,
        exc_info=(type(exc), exc, exc.__traceback__),
    )
