from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from .models import Cancellable, Room

logger = logging.getLogger(__name__)


@dataclass(slots=True, eq=False)
class Connection:
    sid: str
    identity: str
    origin: str = ""
    room_code: str | None = None
    outbox: asyncio.Queue = field(default_factory=asyncio.Queue)


class Broadcaster(Protocol):
    def send(self, sid: str, event: str, payload: Any) -> None: ...

    def broadcast(self, room: Room, event: str, payload: Any) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable: ...


class ConnectionHub:
    """Process-wide table of live connections.

    Publishing never awaits: each message lands on the connection's outbox
    and the transport's writer task drains it.
    """

    def __init__(self) -> None:
        self._connections: dict[str, Connection] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def register(self, connection: Connection) -> None:
        self._connections[connection.sid] = connection

    def unregister(self, sid: str) -> Connection | None:
        return self._connections.pop(sid, None)

    def get(self, sid: str) -> Connection | None:
        return self._connections.get(sid)

    def send(self, sid: str, event: str, payload: Any) -> None:
        connection = self._connections.get(sid)
        if connection is None:
            return
        connection.outbox.put_nowait({"type": event, "data": payload})

    def broadcast(self, room: Room, event: str, payload: Any) -> None:
        for sid in list(room.participants):
            self.send(sid, event, payload)


class AsyncioScheduler:
    """Deferred callbacks on the running event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable:
        loop = asyncio.get_running_loop()
        return loop.call_later(delay, _guarded, callback)


def _guarded(callback: Callable[[], None]) -> None:
    try:
        callback()
    except Exception:
        logger.error("Scheduled callback %r failed", callback, exc_info=True)
