"""Bounded log sink passed explicitly to components that log."""

from __future__ import annotations

import collections
import logging
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List

from basin.canonical_json import canonical_dumps


LogEntry = Dict[str, Any]

DEFAULT_MAX_ENTRIES = 100


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _format(event: str, context: dict) -> str:
    if not context:
        return event
    parts = " ".join(f"{key}={value}" for key, value in context.items())
    return f"{event} {parts}"


def _plain(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


class LogSink:
    """Named logger plus a bounded in-memory buffer of recent entries.

    Every entry goes to the stdlib logger ``basin.<name>`` right away. While
    the sink is active (between ``init()`` and ``clear()``) entries are also
    kept in the buffer until ``flush()``. Once the buffer holds
    ``max_entries`` items the oldest entry is dropped. Child sinks log under
    their own name but share the parent's buffer and lifecycle.
    """

    def __init__(self, name: str, max_entries: int = DEFAULT_MAX_ENTRIES, level: int | str | None = None) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.name = name
        self.logger = logging.getLogger(f"basin.{name}")
        if level is not None:
            self.logger.setLevel(level)
        self._root = self
        self._max_entries = max_entries
        self._entries: Deque[LogEntry] = collections.deque(maxlen=max_entries)
        self._active = False

    @property
    def active(self) -> bool:
        return self._root._active

    @property
    def max_entries(self) -> int:
        return self._root._max_entries

    def init(self) -> "LogSink":
        root = self._root
        root._entries.clear()
        root._active = True
        return self

    def child(self, name: str) -> "LogSink":
        sink = LogSink(f"{self.name}.{name}", self._root._max_entries)
        sink._root = self._root
        return sink

    def _emit(self, level: int, event: str, context: dict) -> None:
        self.logger.log(level, _format(event, context))
        root = self._root
        if not root._active:
            return
        root._entries.append(
            {
                "at": _now(),
                "logger": self.name,
                "level": logging.getLevelName(level).lower(),
                "event": event,
                "context": {key: _plain(value) for key, value in context.items()},
            }
        )

    def debug(self, event: str, **context: Any) -> None:
        self._emit(logging.DEBUG, event, context)

    def info(self, event: str, **context: Any) -> None:
        self._emit(logging.INFO, event, context)

    def warning(self, event: str, **context: Any) -> None:
        self._emit(logging.WARNING, event, context)

    def error(self, event: str, **context: Any) -> None:
        self._emit(logging.ERROR, event, context)

    def entries(self) -> List[LogEntry]:
        return list(self._root._entries)

    def flush(self) -> List[LogEntry]:
        root = self._root
        drained = list(root._entries)
        root._entries.clear()
        for entry in drained:
            self.logger.debug("log_flush entry=%s", canonical_dumps(entry))
        return drained

    def clear(self) -> None:
        root = self._root
        root._entries.clear()
        root._active = False
