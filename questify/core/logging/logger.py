"""
Questify logging.

Every module logs through `get_logger(__name__)`. Records are enriched from
a ContextVar bound by `LogContext`, so everything logged while one engine
operation runs carries the same user_id, operation and correlation_id.

Output goes to stdout: JSON in production (or when LOG_JSON is set), plain
or colored text otherwise. LOG_TO_FILE adds a JSON file under LOGS_DIR that
rotates at midnight.
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import TimedRotatingFileHandler
from typing import Any, Dict, List, Optional

from questify.core.config.config import Config

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_NAME = "questify.json.log"

_log_context: ContextVar[Dict[str, Any]] = ContextVar("questify_log_context", default={})


class ContextFilter(logging.Filter):
    """Copy the bound log context onto each record, with N/A defaults."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        bound = _log_context.get({})
        record.user_id = bound.get("user_id", "N/A")
        record.correlation_id = bound.get("correlation_id") or "N/A"
        record.component = bound.get("component") or record.name.partition(".")[0]
        if not hasattr(record, "operation"):
            record.operation = bound.get("operation", "N/A")
        return True


class ColoredFormatter(logging.Formatter):
    LEVEL_COLORS = {
        "DEBUG": "\033[90m",
        "INFO": "\033[94m",
        "WARNING": "\033[93m",
        "ERROR": "\033[91m",
        "CRITICAL": "\033[1;91m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        plain = record.levelname
        color = self.LEVEL_COLORS.get(plain)
        if color:
            record.levelname = f"{color}{plain}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = plain


class JSONFormatter(logging.Formatter):
    """One JSON object per record; `extra=` fields are nested under "extra"."""

    # Attributes every LogRecord has, never reported as extra
    STANDARD_ATTRS = frozenset(
        vars(logging.LogRecord("", 0, "", 0, "", None, None))
    ) | {"message", "asctime", "taskName"}

    CONTEXT_ATTRS = ("user_id", "operation", "component", "correlation_id")

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        for attr in self.CONTEXT_ATTRS:
            value = getattr(record, attr, None)
            if value is not None and value != "N/A":
                data[attr] = value
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in self.STANDARD_ATTRS
            and key not in self.CONTEXT_ATTRS
            and not key.startswith("_")
        }
        if extra:
            data["extra"] = extra
        return json.dumps(data, ensure_ascii=False, default=str)


# ============================================================================
# SETUP
# ============================================================================


def _level() -> int:
    name = Config.LOG_LEVEL if isinstance(Config.LOG_LEVEL, str) else "INFO"
    return getattr(logging, name.upper(), logging.INFO)


def _json_output() -> bool:
    if Config.LOG_JSON is None:
        return Config.ENVIRONMENT.lower() == "production"
    return bool(Config.LOG_JSON)


def _console_formatter() -> logging.Formatter:
    if _json_output():
        return JSONFormatter()
    if Config.LOG_COLORS and sys.stdout.isatty():
        return ColoredFormatter(CONSOLE_FORMAT, DATE_FORMAT)
    return logging.Formatter(CONSOLE_FORMAT, DATE_FORMAT)


def setup_logging() -> None:
    """Install the questify handlers on the root logger. Idempotent."""
    root = logging.getLogger()
    if getattr(root, "_questify_logging", False):
        return

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    handlers[0].setFormatter(_console_formatter())

    if Config.LOG_TO_FILE:
        Config.LOGS_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            Config.LOGS_DIR / LOG_FILE_NAME,
            when="midnight",
            backupCount=1,
            encoding="utf-8",
            utc=True,
        )
        file_handler.setFormatter(JSONFormatter())
        handlers.append(file_handler)

    level = _level()
    root.setLevel(level)
    for handler in handlers:
        handler.setLevel(level)
        handler.addFilter(ContextFilter())
        root.addHandler(handler)

    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    root._questify_logging = True  # type: ignore[attr-defined]

    logging.getLogger(__name__).debug(
        "Logging initialized",
        extra={"json": _json_output(), "to_file": Config.LOG_TO_FILE},
    )


# ============================================================================
# PUBLIC API
# ============================================================================


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


class LogContext:
    """
    Bind user/operation context for every record logged inside the block.

    Works as both a sync and async context manager:

        async with LogContext(user_id="u-1", operation="complete_task"):
            ...
    """

    def __init__(
        self,
        user_id: Optional[str] = None,
        component: Optional[str] = None,
        operation: Optional[str] = None,
        correlation_id: Optional[str] = None,
        **extra: Any,
    ) -> None:
        self.context: Dict[str, Any] = {
            "user_id": "N/A" if user_id is None else str(user_id),
            "component": component,
            "operation": operation,
            "correlation_id": correlation_id or uuid.uuid4().hex[:8],
            **extra,
        }
        self._token: Optional[Token[Dict[str, Any]]] = None

    def __enter__(self) -> "LogContext":
        self._token = _log_context.set(self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _log_context.reset(self._token)

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def get_log_context() -> Dict[str, Any]:
    return dict(_log_context.get({}))


def set_log_context(**fields: Any) -> None:
    """Merge `fields` into the current context; None values are ignored."""
    merged = dict(_log_context.get({}))
    for key, value in fields.items():
        if value is not None:
            merged[key] = str(value) if key == "user_id" else value
    _log_context.set(merged)


def clear_log_context() -> None:
    _log_context.set({})


setup_logging()
