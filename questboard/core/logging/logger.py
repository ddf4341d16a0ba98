"""
Structured logging for Questboard.

Every record leaving the process is enriched with the progression context it
was emitted under (user, task, operation, correlation id) so one task
completion can be followed across the reward, level, badge and milestone
steps.

Layout
------
- ``LogContext`` binds context through a ContextVar; safe across asyncio tasks.
- ``ContextFilter`` copies that context onto each record.
- ``JSONFormatter`` renders one JSON object per line (production default).
- Records pass through a bounded ``QueueHandler`` so handlers doing I/O never
  block the event loop; a full queue drops records rather than waiting.
- Optional daily rotating JSON file under ``Config.LOGS_DIR``.

``setup_logging()`` runs on import and is idempotent.
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional

from questboard.core.config.config import Config

_PLACEHOLDER = "N/A"

_log_context: ContextVar[Dict[str, Any]] = ContextVar("questboard_log_context", default={})


@dataclass(frozen=True, slots=True)
class LoggerConfig:
    """Logging settings resolved from ``Config`` at setup time."""

    TEXT_FORMAT: str = "%(asctime)s %(levelname)-8s [%(component)s] %(name)s: %(message)s"
    DATE_FORMAT: str = "%Y-%m-%dT%H:%M:%S"
    FILE_NAME: str = "questboard.json.log"
    FILE_BACKUPS: int = 7
    QUEUE_SIZE: int = 10_000

    @property
    def level(self) -> int:
        name = Config.LOG_LEVEL if isinstance(Config.LOG_LEVEL, str) else "INFO"
        level = logging.getLevelName(name.upper())
        return level if isinstance(level, int) else logging.INFO

    @property
    def json_output(self) -> bool:
        # Unset means "JSON in production only"
        if Config.LOG_JSON is None:
            return Config.is_production()
        return bool(Config.LOG_JSON)

    @property
    def log_file(self) -> Optional[Path]:
        if not Config.LOG_TO_FILE:
            return None
        return Path(Config.LOGS_DIR).resolve() / self.FILE_NAME


LOGGER_CONFIG = LoggerConfig()


# ============================================================================
# Filters & Formatters
# ============================================================================


class ContextFilter(logging.Filter):
    """Attach the active ``LogContext`` to every record."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        context = _log_context.get()

        for key in ("user_id", "task_id", "correlation_id"):
            setattr(record, key, context.get(key) or _PLACEHOLDER)
        # "questboard.modules.progression.service" -> "questboard"
        record.component = context.get("component") or record.name.partition(".")[0]
        if not hasattr(record, "operation"):
            record.operation = context.get("operation", _PLACEHOLDER)
        return True


# Attributes every LogRecord carries; anything else came in via ``extra=``
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


class JSONFormatter(logging.Formatter):
    """One JSON object per record: context at top level, ``extra=`` under "extra"."""

    CONTEXT_ATTRS = ("user_id", "task_id", "correlation_id", "component", "operation")

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        payload.update(
            (attr, value)
            for attr in self.CONTEXT_ATTRS
            if (value := getattr(record, attr, None)) not in (None, _PLACEHOLDER)
        )

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS
            and key not in self.CONTEXT_ATTRS
            and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra

        return json.dumps(payload, ensure_ascii=False, default=str)


class DroppingQueueHandler(QueueHandler):
    """Queue handler that never blocks the caller."""

    dropped = 0

    def enqueue(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            DroppingQueueHandler.dropped += 1


# ============================================================================
# Setup
# ============================================================================

_listener: Optional[QueueListener] = None
_queue_handler: Optional[DroppingQueueHandler] = None


def _build_handlers() -> List[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    if LOGGER_CONFIG.json_output:
        console.setFormatter(JSONFormatter())
    else:
        console.setFormatter(
            logging.Formatter(LOGGER_CONFIG.TEXT_FORMAT, datefmt=LOGGER_CONFIG.DATE_FORMAT)
        )
    handlers: List[logging.Handler] = [console]

    log_file = LOGGER_CONFIG.log_file
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        rotating = TimedRotatingFileHandler(
            log_file,
            when="midnight",
            backupCount=LOGGER_CONFIG.FILE_BACKUPS,
            encoding="utf-8",
            utc=True,
        )
        rotating.setFormatter(JSONFormatter())
        handlers.append(rotating)

    for handler in handlers:
        handler.setLevel(LOGGER_CONFIG.level)
    return handlers


def setup_logging() -> None:
    """Install the queue handler on the root logger once."""
    global _listener, _queue_handler

    if _queue_handler is not None:
        return

    log_queue: queue.Queue[logging.LogRecord] = queue.Queue(LOGGER_CONFIG.QUEUE_SIZE)
    _listener = QueueListener(log_queue, *_build_handlers(), respect_handler_level=True)
    _listener.start()

    _queue_handler = DroppingQueueHandler(log_queue)
    _queue_handler.addFilter(ContextFilter())

    root = logging.getLogger()
    root.setLevel(LOGGER_CONFIG.level)
    root.addHandler(_queue_handler)

    for noisy in ("asyncio", "sqlalchemy.engine", "testcontainers"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging initialized",
        extra={
            "environment": Config.ENVIRONMENT,
            "log_level": logging.getLevelName(LOGGER_CONFIG.level),
            "json": LOGGER_CONFIG.json_output,
            "log_file": str(LOGGER_CONFIG.log_file) if LOGGER_CONFIG.log_file else None,
        },
    )


def shutdown_logging() -> None:
    """Flush queued records and detach the handler."""
    global _listener, _queue_handler

    if _listener is not None:
        _listener.stop()
        _listener = None
    if _queue_handler is not None:
        logging.getLogger().removeHandler(_queue_handler)
        _queue_handler.close()
        _queue_handler = None


# ============================================================================
# Public API
# ============================================================================


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


class LogContext:
    """
    Bind progression context to every record emitted inside the block.

    Nested contexts inherit the outer values; a new correlation id is minted
    unless one is passed in. Works as ``with`` and ``async with``.

    >>> async with LogContext(user_id="u-1", task_id="t-9", operation="task_completion"):
    ...     log.info("Rewards computed")
    """

    def __init__(
        self,
        user_id: Optional[str] = None,
        task_id: Optional[str] = None,
        component: Optional[str] = None,
        operation: Optional[str] = None,
        correlation_id: Optional[str] = None,
        **extra: Any,
    ) -> None:
        bound = {
            "user_id": user_id,
            "task_id": task_id,
            "component": component,
            "operation": operation,
        }
        self.context: Dict[str, Any] = {**_log_context.get(), **extra}
        self.context.update(
            (key, str(value) if key in ("user_id", "task_id") else value)
            for key, value in bound.items()
            if value is not None
        )
        self.context["correlation_id"] = correlation_id or uuid.uuid4().hex[:8]
        self._token: Optional[Token[Dict[str, Any]]] = None

    def __enter__(self) -> LogContext:
        self._token = _log_context.set(self.context)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> LogContext:
        return self.__enter__()

    async def __aexit__(self, *exc_info: Any) -> None:
        self.__exit__(*exc_info)


def get_log_context() -> Dict[str, Any]:
    return dict(_log_context.get())


def set_log_context(**context: Any) -> None:
    """Merge values into the current context without a ``with`` block."""
    merged = dict(_log_context.get())
    merged.update((key, str(value)) for key, value in context.items() if value is not None)
    _log_context.set(merged)


def clear_log_context() -> None:
    _log_context.set({})


setup_logging()
