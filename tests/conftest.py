from __future__ import annotations

from typing import Any, Callable

import pytest

from auction_sim.config import Settings
from auction_sim.hub import ConnectionHub
from auction_sim.models import Lot, Room, RoomConfig
from auction_sim.registry import RoomRegistry


class FakeTime:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ManualHandle:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Runs deferred callbacks only when the test moves fake time forward."""

    def __init__(self, clock: FakeTime) -> None:
        self.clock = clock
        self._seq = 0
        self._queue: list[tuple[float, int, ManualHandle, Callable[[], None]]] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle()
        self._seq += 1
        self._queue.append((self.clock.now + delay, self._seq, handle, callback))
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for _, _, handle, _ in self._queue if not handle.cancelled)

    def advance(self, seconds: float) -> None:
        target = self.clock.now + seconds
        while True:
            live = [entry for entry in self._queue if not entry[2].cancelled and entry[0] <= target]
            if not live:
                break
            entry = min(live, key=lambda e: (e[0], e[1]))
            self._queue.remove(entry)
            self.clock.now = max(self.clock.now, entry[0])
            entry[3]()
        self._queue = [entry for entry in self._queue if not entry[2].cancelled]
        self.clock.now = target

    def run_pending(self) -> None:
        self.advance(0)


class Recorder:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str, Any]] = []
        self.broadcasts: list[tuple[str, Any]] = []

    def send(self, sid: str, event: str, payload: Any) -> None:
        self.sent.append((sid, event, payload))

    def broadcast(self, room: Room, event: str, payload: Any) -> None:
        self.broadcasts.append((event, payload))

    def events(self) -> list[str]:
        return [event for event, _ in self.broadcasts]

    def last(self, event: str) -> Any:
        for name, payload in reversed(self.broadcasts):
            if name == event:
                return payload
        raise AssertionError(f"{event} was never broadcast")

    def clear(self) -> None:
        self.sent.clear()
        self.broadcasts.clear()


@pytest.fixture
def fake_time() -> FakeTime:
    return FakeTime()


@pytest.fixture
def scheduler(fake_time: FakeTime) -> ManualScheduler:
    return ManualScheduler(fake_time)


@pytest.fixture
def settings() -> Settings:
    return Settings(timer_seconds=10, tick_interval=1.0, sale_cooldown_seconds=4.0, max_teams=10, default_budget=1000)


@pytest.fixture
def registry(settings: Settings, fake_time: FakeTime) -> RoomRegistry:
    return RoomRegistry(settings, now=fake_time)


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def hub() -> ConnectionHub:
    return ConnectionHub()


@pytest.fixture
def make_lot() -> Callable[..., Lot]:
    def _make(
        name: str,
        role: str = "batter",
        base_price: int = 100,
        player_type: str = "Indian",
        batting: float = 60.0,
        bowling: float = 40.0,
    ) -> Lot:
        return Lot(
            name=name,
            role=role,
            base_price=base_price,
            increment=10,
            batting=batting,
            bowling=bowling,
            player_type=player_type,
        )

    return _make


@pytest.fixture
def lobby_room(registry: RoomRegistry) -> Room:
    """Two-team room with both teams claimed: host owns T0, 'bob' owns T1."""
    room = registry.create_room(
        "ROOM1",
        "1234",
        RoomConfig(team_count=3, starting_budget=1000),
        admin_identity="host",
        admin_connection="sid-host",
        admin_origin="10.0.0.1",
    )
    room.participants.add("sid-bob")
    for team, identity, sid in ((room.teams[0], "host", "sid-host"), (room.teams[1], "bob", "sid-bob")):
        team.claimed = True
        team.owner_identity = identity
        team.owner_connection = sid
    return room
