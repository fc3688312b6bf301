"""Diagnostic event channel between the build core and its callers.

The core never installs handlers of its own: callers hand a sink to the
orchestrator and decide how (or whether) events are displayed.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections import deque
from typing import Callable, Deque, Iterable, List, Optional

from .models import Diagnostic, Severity

DiagnosticSink = Callable[[Diagnostic], None]

_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


class CollectingSink:
    """Keeps every event in emission order."""

    def __init__(self) -> None:
        self.events: List[Diagnostic] = []
        self._lock = threading.Lock()

    def __call__(self, diagnostic: Diagnostic) -> None:
        with self._lock:
            self.events.append(diagnostic)

    def codes(self) -> List[str]:
        return [event.code for event in self.events]


class QueueSink:
    """Pushes events onto a queue for a UI panel to drain, keeping a bounded history."""

    def __init__(self, events: "queue.Queue[Diagnostic] | None" = None, history: int = 50) -> None:
        self.queue: "queue.Queue[Diagnostic]" = events if events is not None else queue.Queue()
        self._history: Deque[Diagnostic] = deque(maxlen=history)
        self._lock = threading.Lock()

    def __call__(self, diagnostic: Diagnostic) -> None:
        with self._lock:
            self._history.append(diagnostic)
        self.queue.put_nowait(diagnostic)

    def drain(self) -> List[Diagnostic]:
        drained: List[Diagnostic] = []
        while True:
            try:
                drained.append(self.queue.get_nowait())
            except queue.Empty:
                return drained

    @property
    def history(self) -> List[Diagnostic]:
        with self._lock:
            return list(self._history)


class LoggingSink:
    """Forwards events to a logger, at the level matching their severity unless one is fixed."""

    def __init__(self, logger: logging.Logger, level: Optional[int] = None) -> None:
        self.logger = logger
        self.level = level

    def __call__(self, diagnostic: Diagnostic) -> None:
        level = self.level if self.level is not None else _LOG_LEVELS[diagnostic.severity]
        self.logger.log(level, "%s", diagnostic.format())


class FanoutSink:
    def __init__(self, sinks: Iterable[Optional[DiagnosticSink]]) -> None:
        self.sinks = [sink for sink in sinks if sink is not None]

    def __call__(self, diagnostic: Diagnostic) -> None:
        for sink in self.sinks:
            sink(diagnostic)


def null_sink(diagnostic: Diagnostic) -> None:
    """Discard an event."""


__all__ = [
    "CollectingSink",
    "DiagnosticSink",
    "FanoutSink",
    "LoggingSink",
    "QueueSink",
    "null_sink",
]
