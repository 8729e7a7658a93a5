from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from tempfile import gettempdir
from typing import Any

from pythonjsonlogger import jsonlogger

from .settings import settings

LOGGER_NAME = "mobility_router"
LOG_FILE_NAME = "router.log.jsonl"


def _parse_level(name: str | None) -> int:
    level = logging.getLevelName(str(name or "INFO").strip().upper())
    return level if isinstance(level, int) else logging.INFO


def _candidate_log_dirs(out_dir: str) -> Iterator[Path]:
    if out_dir:
        yield Path(out_dir) / "logs"
    yield Path.cwd() / "out" / "logs"
    yield Path(gettempdir()) / "mobility-router" / "logs"


def _resolve_log_dir(out_dir: str) -> Path | None:
    """First candidate directory that accepts a probe file."""
    for log_dir in _candidate_log_dirs(out_dir):
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            probe = log_dir / ".writetest"
            probe.touch(exist_ok=True)
            probe.unlink(missing_ok=True)
        except OSError:
            continue
        return log_dir
    return None


def configure_logger(*, level: str | None = None, log_dir: Path | None = None) -> logging.Logger:
    """(Re)build the JSON handlers of the ``mobility_router`` logger.

    Events go to stderr and, when a writable directory is found, to
    ``router.log.jsonl``. Calling again replaces the handlers.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(_parse_level(level or settings.log_level))
    logger.propagate = False
    formatter = jsonlogger.JsonFormatter("%(levelname)s %(name)s %(message)s", timestamp=True)

    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    logger.addHandler(stream)

    target_dir = log_dir if log_dir is not None else _resolve_log_dir(settings.out_dir)
    if target_dir is not None:
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(target_dir / LOG_FILE_NAME, encoding="utf-8")
        except OSError:
            file_handler = None
        if file_handler is not None:
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    logger._configured = True  # type: ignore[attr-defined]
    return logger


def get_logger() -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    if getattr(logger, "_configured", False):
        return logger
    return configure_logger()


def _emit(level: int, event: str, fields: dict[str, Any]) -> None:
    # The event name doubles as the message so plain-text tails stay readable.
    get_logger().log(level, event, extra={"event": event, **fields})


def log_event(event: str, **fields: Any) -> None:
    _emit(logging.INFO, event, fields)


def log_warning(event: str, **fields: Any) -> None:
    _emit(logging.WARNING, event, fields)
