"""Structured logging module: context-aware logging for stream lifecycles."""

from .logger import (
    BoundLogger,
    ConsoleRenderer,
    JsonRenderer,
    LogEntry,
    NoOpRenderer,
    Renderer,
    configure_logging,
    get_logger,
    log_context,
)

__all__ = [
    "BoundLogger",
    "ConsoleRenderer",
    "JsonRenderer",
    "LogEntry",
    "NoOpRenderer",
    "Renderer",
    "configure_logging",
    "get_logger",
    "log_context",
]
