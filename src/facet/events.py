"""Router lifecycle events.

Every call through the router emits one ``handler`` event per invoked
handler and exactly one ``success`` or ``error`` event at the end. Events
are frozen, so listeners may keep them::

    def log_slow(event: ApiEvent) -> None:
        if event.duration > 0.5:
            print(event.kind, event.path, event.duration)

    router = Router(listeners=[log_slow])
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from facet._internal.invoke import invoke
from facet._internal.types import Schema
from facet.http.request import Request

logger = logging.getLogger("facet.events")


class EventKind(StrEnum):
    HANDLER = "handler"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class ApiEvent:
    """One lifecycle event. ``schema`` is None when no route matched."""

    kind: EventKind
    path: str
    pattern: str | None
    schema: Schema | None
    request: Request
    started: float
    ended: float
    error: BaseException | None = field(default=None, compare=False)

    @property
    def duration(self) -> float:
        return self.ended - self.started


type Listener = Callable[[ApiEvent], Any]


def now() -> float:
    return time.perf_counter()


class EventEmitter:
    """Fan events out to listeners. A failing listener is logged, never raised."""

    __slots__ = ("_listeners",)

    def __init__(self, listeners: list[Listener] | None = None) -> None:
        self._listeners: list[Listener] = list(listeners or ())

    def add(self, listener: Listener) -> None:
        self._listeners.append(listener)

    async def emit(self, event: ApiEvent) -> None:
        for listener in self._listeners:
            try:
                await invoke(listener, event)
            except Exception:
                logger.exception("Event listener %r failed on %s event", listener, event.kind)
