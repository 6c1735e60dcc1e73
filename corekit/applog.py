"""Application-wide logging: rotating file output, optional console, backtrace."""

from __future__ import annotations

import logging
import sys
import threading
from collections import deque
from logging.handlers import RotatingFileHandler
from pathlib import Path

__all__ = [
    "LOGGER_NAME",
    "DEFAULT_LOG_PATH",
    "DEFAULT_MAX_FILE_SIZE",
    "DEFAULT_MAX_FILES",
    "BACKTRACE_SIZE",
    "init_logging",
    "shutdown_logging",
    "get_logger",
]

LOGGER_NAME = "App"
DEFAULT_LOG_PATH = "./Logs/setup.log"
DEFAULT_MAX_FILE_SIZE = 1024 * 1024 * 5
DEFAULT_MAX_FILES = 3
BACKTRACE_SIZE = 32

_PATTERN = "[%(short_level)s] [%(thread)d] [%(asctime)s.%(msecs)03d] %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_BACKTRACE_START = "****************** Backtrace Start ******************"
_BACKTRACE_END = "****************** Backtrace End ********************"

_LEVEL_NAMES = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warning",
    logging.ERROR: "error",
    logging.CRITICAL: "critical",
}


class _Formatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__(_PATTERN, datefmt=_DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        record.short_level = _LEVEL_NAMES.get(record.levelno, record.levelname.lower())
        return super().format(record)


class _BacktraceHandler(logging.Handler):
    """Keeps the most recent records so they can be written out on demand."""

    def __init__(self, capacity: int) -> None:
        super().__init__(logging.DEBUG)
        self._records: deque[logging.LogRecord] = deque(maxlen=capacity)

    def emit(self, record: logging.LogRecord) -> None:
        self._records.append(record)

    def dump(self, targets: list[logging.Handler]) -> None:
        if not self._records:
            return
        records = [
            _marker(_BACKTRACE_START),
            *self._records,
            _marker(_BACKTRACE_END),
        ]
        self._records.clear()
        for handler in targets:
            handler.acquire()
            try:
                for record in records:
                    handler.emit(record)
            finally:
                handler.release()


def _marker(text: str) -> logging.LogRecord:
    return logging.makeLogRecord(
        {"name": LOGGER_NAME, "levelno": logging.INFO, "levelname": "INFO", "msg": text}
    )


class _LogState:
    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.outputs: list[logging.Handler] = []
        self.backtrace: _BacktraceHandler | None = None

    @property
    def active(self) -> bool:
        return self.backtrace is not None

    def detach(self, logger: logging.Logger) -> None:
        for handler in [*self.outputs, self.backtrace]:
            if handler is None:
                continue
            logger.removeHandler(handler)
            handler.close()
        self.outputs = []
        self.backtrace = None
        logger.setLevel(logging.NOTSET)
        logger.propagate = True


_state = _LogState()


def init_logging(
    path: str | Path = DEFAULT_LOG_PATH,
    max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    max_files: int = DEFAULT_MAX_FILES,
    console_out: bool = False,
) -> None:
    """Configure the application logger; calling it again restarts logging."""
    if max_file_size <= 0:
        raise ValueError("max_file_size must be greater than zero")
    if max_files < 0:
        raise ValueError("max_files must not be negative")

    with _state.lock:
        logger = logging.getLogger(LOGGER_NAME)
        if _state.active:
            logger.info("[Log Manager]: Restart Log Manager.")
            _state.detach(logger)

        log_path = Path(path)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            print(f"Failed to create log directory: {exc}", file=sys.stderr)

        formatter = _Formatter()
        outputs: list[logging.Handler] = [
            RotatingFileHandler(
                log_path, maxBytes=max_file_size, backupCount=max_files, encoding="utf-8"
            )
        ]
        if console_out:
            outputs.append(logging.StreamHandler(sys.stdout))
        for handler in outputs:
            handler.setLevel(logging.INFO)
            handler.setFormatter(formatter)
            logger.addHandler(handler)

        backtrace = _BacktraceHandler(BACKTRACE_SIZE)
        logger.addHandler(backtrace)
        logger.setLevel(logging.DEBUG)
        logger.propagate = False

        _state.outputs = outputs
        _state.backtrace = backtrace
        logger.info("[Log Manager]: Log Manager initialized successfully.")


def shutdown_logging() -> None:
    """Write out the backtrace and release every log handler."""
    with _state.lock:
        if not _state.active:
            return
        logger = logging.getLogger(LOGGER_NAME)
        assert _state.backtrace is not None
        _state.backtrace.dump(_state.outputs)
        _state.detach(logger)


def get_logger() -> logging.Logger:
    """Return the application logger.

    Before :func:`init_logging` it has no handlers of its own and passes
    records on to the root logger.
    """
    return logging.getLogger(LOGGER_NAME)