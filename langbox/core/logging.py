"""
Structured execution log.

Components log through the standard ``logging`` module and attach structured
data with ``extra={"context": {...}}``. ``JsonLinesHandler`` persists every
record as one JSON line; ``RichHandler`` optionally mirrors records to the
console.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from .config import Settings

ROOT_LOGGER_NAME = "langbox"

_LEVEL_NAMES = {
    logging.CRITICAL: "ERROR",
    logging.ERROR: "ERROR",
    logging.WARNING: "WARN",
    logging.INFO: "INFO",
    logging.DEBUG: "DEBUG",
}

_installed_handlers: list[logging.Handler] = []


@dataclass(slots=True)
class LogEvent:
    """One persisted log record."""

    level: str
    timestamp: str
    message: str
    logger: str
    pid: int
    context: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: logging.LogRecord) -> "LogEvent":
        context = getattr(record, "context", None)
        return cls(
            level=_LEVEL_NAMES.get(record.levelno, record.levelname),
            timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            message=record.getMessage(),
            logger=record.name,
            pid=record.process or os.getpid(),
            context=dict(context) if isinstance(context, dict) else {},
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class JsonLinesHandler(logging.Handler):
    """Append-only JSON-lines sink safe for concurrent writers."""

    def __init__(self, path: Path, level: int = logging.DEBUG):
        super().__init__(level)
        self.path = Path(path).expanduser()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._write_lock = threading.Lock()

    def emit(self, record: logging.LogRecord) -> None:
        try:
            event = LogEvent.from_record(record)
            # Serialize first, then append the whole line in one write.
            line = json.dumps(event.to_dict(), default=str) + "\n"
            with self._write_lock:
                with open(self.path, "a", encoding="utf-8") as f:
                    f.write(line)
        except Exception:
            self.handleError(record)


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the langbox namespace."""
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def setup_logging(
    settings: Settings | None = None,
    *,
    log_path: Path | None = None,
    log_to_console: bool | None = None,
    level: int = logging.DEBUG,
) -> logging.Logger:
    """
    Configure the langbox log sinks.

    Explicit keyword arguments win over ``settings``. Calling this again
    replaces the handlers installed by the previous call.

    Returns:
        The package root logger.
    """
    if log_path is None and settings is not None:
        log_path = settings.log_path
    if log_to_console is None:
        log_to_console = bool(settings.log_to_console) if settings is not None else False

    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in _installed_handlers:
        root.removeHandler(handler)
        handler.close()
    _installed_handlers.clear()

    if log_path is not None:
        _installed_handlers.append(JsonLinesHandler(log_path))
    if log_to_console:
        _installed_handlers.append(
            RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=False)
        )

    for handler in _installed_handlers:
        root.addHandler(handler)
    root.setLevel(level)
    return root
