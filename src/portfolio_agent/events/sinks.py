from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Protocol, Union

from portfolio_agent.config.logging import get_logger, log_json
from portfolio_agent.core.models import Initialized, Refined

Notification = Union[Initialized, Refined]

logger = get_logger(__name__)


class EventSink(Protocol):
    def emit(self, notification: Notification) -> None: ...


class LoggingEventSink:
    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or get_logger("portfolio_agent.events")

    def emit(self, notification: Notification) -> None:
        log_json(self._logger, logging.INFO, "notification", **notification.to_dict())


class RecordingEventSink:
    def __init__(self) -> None:
        self.events: List[Notification] = []

    def emit(self, notification: Notification) -> None:
        self.events.append(notification)

    def topics(self) -> List[str]:
        return [e.topic for e in self.events]


class JsonlEventSink:
    """Append-only notification ledger, one JSON object per line."""

    def __init__(self, path: str) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def emit(self, notification: Notification) -> None:
        with self._path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(notification.to_dict(), ensure_ascii=False) + "\n")


class CompositeEventSink:
    def __init__(self, *sinks: EventSink) -> None:
        self._sinks = list(sinks)

    def emit(self, notification: Notification) -> None:
        for s in self._sinks:
            try:
                s.emit(notification)
            except Exception:
                logger.exception("event_sink_failed sink=%s topic=%s", type(s).__name__, notification.topic)
