"""Structured logging for stream lifecycles.

Every combinator logs through a BoundLogger carrying the stream it drives, so
exhaustion, cancellation batches and limit hits can be traced per stream:

    12:30:45.120 [debug] early_zip: stream exhausted index=1 sources=3
    {"timestamp": "...", "level": "debug", "stream": "early_zip", "event": "stream exhausted", ...}

The level is resolved on every call, so ``configure_logging(level="DEBUG")``
takes effect for loggers created at import time.

Quick Start:
    >>> configure_logging(format="console", level="DEBUG")  # omitted args come from settings
    >>> log = get_logger("streamkit.zip").bind_stream("early_zip", sources=3)
    >>> log.debug("cancelling sources", reason="Stream at index 0 ended")
"""

from __future__ import annotations

import logging
import sys
import time
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, TextIO

import orjson

from streamkit.foundation.config import get_settings
from streamkit.foundation.errors import JsonDict, JsonValue

if TYPE_CHECKING:
    from types import TracebackType

# Fields added by log_context, visible to every logger in the current task
_log_context: ContextVar[JsonDict] = ContextVar("log_context", default={})


@dataclass(slots=True)
class BoundLogger:
    """Logger with bound context. bind() returns a new logger; the original is unchanged."""

    context: JsonDict = field(default_factory=dict)

    def bind(self, **kw: JsonValue) -> BoundLogger:
        return BoundLogger(context={**self.context, **kw})

    def bind_stream(self, name: str, **kw: JsonValue) -> BoundLogger:
        """Bind the stream or stage name plus any per-stream fields (source count, limit)."""
        return self.bind(stream=name, **kw)

    def _log(self, level: int, event: str, **kw: JsonValue) -> None:
        if level < _current_level():
            return
        merged = {**_log_context.get(), **self.context, **kw}
        stream = merged.pop("stream", None)
        _get_renderer().render(LogEntry(time.time(), logging.getLevelName(level).lower(), event,
                                        None if stream is None else str(stream), merged))

    def debug(self, event: str, **kw: JsonValue) -> None: self._log(logging.DEBUG, event, **kw)
    def warning(self, event: str, **kw: JsonValue) -> None: self._log(logging.WARNING, event, **kw)


@dataclass(slots=True)
class LogEntry:
    timestamp: float
    level: str
    event: str
    stream: str | None
    context: JsonDict


# ─────────────────────────────────────────────────────────────────────────────
# Renderers
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(slots=True)
class ConsoleRenderer:
    """Human-readable output: ``time [level] stream: event key=value ...``."""

    output: TextIO = field(default_factory=lambda: sys.stderr)
    colors: bool | None = None  # None = auto-detect

    def __post_init__(self) -> None:
        if self.colors is None:
            self.colors = getattr(self.output, "isatty", lambda: False)()

    def render(self, entry: LogEntry) -> None:
        c = _COLORS if self.colors else _NO_COLORS
        ts = datetime.fromtimestamp(entry.timestamp, tz=UTC).strftime("%H:%M:%S.%f")[:-3]
        level_color = _LEVEL_COLORS.get(entry.level, c["dim"]) if self.colors else ""
        parts = [f"{c['dim']}{ts}{c['reset']}", f"{level_color}[{entry.level}]{c['reset']}"]
        if entry.stream is not None:
            parts.append(f"{c['cyan']}{entry.stream}:{c['reset']}")
        parts.append(f"{c['bold']}{entry.event}{c['reset']}")
        parts += [f"{k}={_format_value(v, c)}" for k, v in sorted(entry.context.items())]
        print(" ".join(parts), file=self.output)


@dataclass(slots=True)
class JsonRenderer:
    """JSON Lines output for log aggregation."""

    output: TextIO = field(default_factory=lambda: sys.stdout)

    def render(self, entry: LogEntry) -> None:
        record = {"timestamp": datetime.fromtimestamp(entry.timestamp, tz=UTC).isoformat(),
                  "level": entry.level, "stream": entry.stream, "event": entry.event, **entry.context}
        print(orjson.dumps(record, option=orjson.OPT_NON_STR_KEYS, default=str).decode(), file=self.output)


@dataclass(slots=True)
class NoOpRenderer:
    """Silent renderer for testing."""

    def render(self, entry: LogEntry) -> None:
        pass


Renderer = ConsoleRenderer | JsonRenderer | NoOpRenderer

_renderer: ContextVar[Renderer | None] = ContextVar("log_renderer", default=None)
_level: ContextVar[int | None] = ContextVar("log_level", default=None)


def configure_logging(
    format: str | None = None,  # noqa: A002 - shadows builtin but matches stdlib
    level: str | None = None,
    *,
    output: TextIO | None = None,
    colors: bool | None = None,
) -> Renderer:
    """Configure stream logging. Format: "console" (human), "json" (machine), "none".

    Arguments left as None are read from LoggingSettings (STREAMKIT_LOG_*).
    """
    settings = get_settings().logging
    format = format or settings.format  # noqa: A001
    _level.set(getattr(logging, (level or settings.level).upper(), logging.INFO))
    match format:
        case "console":
            renderer: Renderer = ConsoleRenderer(output=output or sys.stderr,
                                                 colors=colors if colors is not None else settings.colors)
        case "json": renderer = JsonRenderer(output=output or sys.stdout)
        case "none": renderer = NoOpRenderer()
        case _: raise ValueError(f"Unknown format: {format}. Use 'console', 'json', or 'none'")
    _renderer.set(renderer)
    return renderer


def get_logger(name: str | None = None, **initial_context: JsonValue) -> BoundLogger:
    """Get a logger with optional initial context. Name is added to context as 'logger'."""
    return BoundLogger(context={**initial_context, **({"logger": name} if name else {})})


def _current_level() -> int:
    if (level := _level.get()) is None:
        level = getattr(logging, get_settings().logging.level, logging.INFO)
    return level


def _get_renderer() -> Renderer:
    if (renderer := _renderer.get()) is None:
        _renderer.set(renderer := ConsoleRenderer())
    return renderer


class log_context:
    """Context manager adding fields to every entry logged within the scope (e.g. a pipeline id)."""

    __slots__ = ("_ctx", "_token")

    def __init__(self, **kw: JsonValue) -> None:
        self._ctx: JsonDict = dict(kw)
        self._token: object | None = None

    def __enter__(self) -> log_context:
        self._token = _log_context.set({**_log_context.get(), **self._ctx})
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None,
                 exc_tb: TracebackType | None) -> None:
        if self._token is not None:
            _log_context.reset(self._token)  # type: ignore[arg-type]


_COLORS = {"reset": "\033[0m", "bold": "\033[1m", "dim": "\033[2m", "yellow": "\033[33m",
           "blue": "\033[34m", "cyan": "\033[36m"}
_NO_COLORS = {k: "" for k in _COLORS}
_LEVEL_COLORS = {"debug": _COLORS["dim"], "warning": _COLORS["yellow"]}


def _format_value(v: object, c: dict[str, str]) -> str:
    match v:
        case str(): return f'{c["yellow"]}"{v}"{c["reset"]}'
        case bool(): return f'{c["blue"]}{str(v).lower()}{c["reset"]}'
        case int() | float(): return f'{c["blue"]}{v}{c["reset"]}'
        case _: return repr(v)
