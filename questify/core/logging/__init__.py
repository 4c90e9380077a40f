"""
Questify logging: `get_logger`, `LogContext` and the log context helpers.
"""

from questify.core.logging.logger import (
    LogContext,
    clear_log_context,
    get_log_context,
    get_logger,
    set_log_context,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "LogContext",
    "get_log_context",
    "set_log_context",
    "clear_log_context",
]
