from __future__ import annotations

import logging
from pathlib import Path
from tempfile import gettempdir
from typing import Any

from pythonjsonlogger import jsonlogger

from .settings import settings

LOGGER_NAME = "map_router"
LOG_FILENAME = "map_router.log.jsonl"

_LOGGER: logging.Logger | None = None


def _level_from_name(name: str) -> int:
    level = logging.getLevelName(str(name or "").upper())
    return level if isinstance(level, int) else logging.INFO


def _writable_dir(path: Path) -> bool:
    try:
        path.mkdir(parents=True, exist_ok=True)
        marker = path / ".write-check"
        marker.touch(exist_ok=True)
        marker.unlink(missing_ok=True)
    except OSError:
        return False
    return True


def log_dir_for(out_dir: str) -> Path | None:
    """First writable log directory: OUT_DIR/logs, ./out/logs, then the temp dir."""
    for candidate in (
        Path(out_dir) / "logs",
        Path.cwd() / "out" / "logs",
        Path(gettempdir()) / "map-router" / "logs",
    ):
        if _writable_dir(candidate):
            return candidate
    return None


def _formatter() -> logging.Formatter:
    return jsonlogger.JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s",
        rename_fields={"asctime": "ts", "levelname": "level"},
    )


def get_logger() -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    # handlers are attached once per process
    if getattr(logger, "_map_router_ready", False):
        return logger

    logger.setLevel(_level_from_name(settings.log_level))
    logger.propagate = False
    formatter = _formatter()

    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    logger.addHandler(stream)

    log_dir = log_dir_for(settings.out_dir)
    if log_dir is not None:
        try:
            file_handler = logging.FileHandler(log_dir / LOG_FILENAME, encoding="utf-8")
        except OSError:
            file_handler = None
        if file_handler is not None:
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    logger._map_router_ready = True  # type: ignore[attr-defined]
    return logger


def log_event(event: str, *, level: int = logging.INFO, **fields: Any) -> None:
    """Emit one JSON line whose message and ``event`` key are both ``event``."""
    global _LOGGER
    if _LOGGER is None:
        _LOGGER = get_logger()
    _LOGGER.log(level, event, extra={"event": event, **fields})
