"""Structured logging setup and per-run log capture."""

from __future__ import annotations

import logging
import sys
import threading
from typing import Callable

ROOT_LOGGER = "dronerecon"


def setup_logging(level: str = "INFO") -> None:
    """Configure structured logging with consistent format."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


class RunLogCollector(logging.Handler):
    """Collects every message of one pipeline run as plain lines.

    Each record is also forwarded to ``on_log`` (if given), which is how a
    presentation layer shows live progress without the core knowing about it.
    Debug records are kept out of the run log, and so are records emitted by
    any thread other than the one that entered the collector, so overlapping
    runs in one process keep separate logs.
    """

    _level_lock = threading.Lock()
    _active = 0
    _saved_level = logging.NOTSET

    def __init__(self, on_log: Callable[[str], None] | None = None, level: int = logging.INFO):
        super().__init__(level=level)
        self.on_log = on_log
        self.lines: list[str] = []
        self.thread_id: int | None = None

    def emit(self, record: logging.LogRecord) -> None:
        if record.thread != self.thread_id:
            return
        try:
            message = record.getMessage()
        except Exception:
            self.handleError(record)
            return
        for line in message.splitlines() or [""]:
            self.lines.append(line)
            if self.on_log is not None:
                self.on_log(line)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    def __enter__(self) -> RunLogCollector:
        self.thread_id = threading.get_ident()
        logger = logging.getLogger(ROOT_LOGGER)
        cls = type(self)
        with cls._level_lock:
            if cls._active == 0:
                cls._saved_level = logger.level
            cls._active += 1
            if logger.getEffectiveLevel() > self.level:
                logger.setLevel(self.level)
            logger.addHandler(self)
        return self

    def __exit__(self, *exc_info) -> None:
        logger = logging.getLogger(ROOT_LOGGER)
        cls = type(self)
        with cls._level_lock:
            logger.removeHandler(self)
            cls._active -= 1
            # the level is restored once the last overlapping run is done
            if cls._active == 0:
                logger.setLevel(cls._saved_level)
