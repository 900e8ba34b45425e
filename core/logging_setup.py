"""Logging configuration for the taskboard service.

Console handler always; a file handler too when a log directory is
configured. Handlers installed here are tagged so that calling
setup_logging() twice (app reload, tests) replaces them instead of
stacking duplicates, and handlers owned by someone else are left alone.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Sequence

_HANDLER_TAG = "_taskboard_handler"

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s [%(request_id)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class _DefaultFields(logging.Filter):
    """Guarantee the fields LOG_FORMAT references."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = "-"
        return True


class _ThirdPartyNoiseFilter(logging.Filter):
    """Keep our own loggers; let third-party loggers through at WARNING+."""

    OWN_PREFIXES = ("api", "core", "patterns", "verticals", "scripts")

    def filter(self, record: logging.LogRecord) -> bool:
        root_name = record.name.split(".", 1)[0]
        if root_name in self.OWN_PREFIXES:
            return True
        # Access logs are emitted by the server itself.
        if record.name.startswith("uvicorn"):
            return record.levelno >= logging.INFO
        return record.levelno >= logging.WARNING


def setup_logging(
    *,
    level: str | int = logging.INFO,
    log_dir: str | Path | None = None,
    filters: Sequence[logging.Filter] = (),
) -> None:
    """Install console (and optional file) handlers on the root logger.

    Extra filters run on every installed handler before formatting, e.g.
    one that stamps the current request id.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(min(level, logging.DEBUG) if log_dir is not None else level)

    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            root.removeHandler(handler)
            handler.close()

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(fmt)
    console.addFilter(_ThirdPartyNoiseFilter())
    for extra in filters:
        console.addFilter(extra)
    console.addFilter(_DefaultFields())
    setattr(console, _HANDLER_TAG, True)
    root.addHandler(console)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(log_dir / "taskboard.log"), encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(fmt)
        for extra in filters:
            file_handler.addFilter(extra)
        file_handler.addFilter(_DefaultFields())
        setattr(file_handler, _HANDLER_TAG, True)
        root.addHandler(file_handler)

    logging.captureWarnings(True)
