from __future__ import annotations

import logging
import time
from typing import Callable

from .clock import AuctionClock
from .config import DEFAULT_TEAM_NAMES, Settings
from .exceptions import BadSecret, RoomAlreadyExists, RoomNotFound, ValidationError
from .models import Room, RoomConfig, Team

logger = logging.getLogger(__name__)


def default_team_name(index: int) -> str:
    if index < len(DEFAULT_TEAM_NAMES):
        return DEFAULT_TEAM_NAMES[index]
    return f"Team {index + 1}"


def build_lobby_teams(config: RoomConfig) -> list[Team]:
    return [
        Team(
            key=f"T{idx}",
            name=default_team_name(idx),
            budget=config.starting_budget,
            starting_budget=config.starting_budget,
        )
        for idx in range(config.team_count)
    ]


class RoomRegistry:
    def __init__(self, settings: Settings, now: Callable[[], float] = time.monotonic) -> None:
        self.settings = settings
        self._now = now
        self._rooms: dict[str, Room] = {}

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, code: object) -> bool:
        return code in self._rooms

    def get(self, code: str | None) -> Room | None:
        if code is None:
            return None
        return self._rooms.get(code)

    def require(self, code: str | None) -> Room:
        room = self.get(code)
        if room is None:
            raise RoomNotFound(code or "")
        return room

    def create_room(
        self,
        code: str,
        secret: str,
        config: RoomConfig,
        admin_identity: str,
        admin_connection: str,
        admin_origin: str = "",
    ) -> Room:
        code = code.strip()
        if not code:
            raise ValidationError("Room code is required")
        if code in self._rooms:
            raise RoomAlreadyExists(code)
        if not 2 <= config.team_count <= self.settings.max_teams:
            raise ValidationError(f"Team count must be between 2 and {self.settings.max_teams}")
        if config.starting_budget <= 0:
            raise ValidationError("Starting budget must be positive")

        room = Room(
            code=code,
            secret=secret,
            config=config,
            clock=AuctionClock(self.settings.timer_seconds, now=self._now),
            admin_identity=admin_identity,
            admin_connection=admin_connection,
            admin_origin=admin_origin,
            teams=build_lobby_teams(config),
        )
        room.participants.add(admin_connection)
        self._rooms[code] = room
        logger.info("Created room %s with %d team slots", code, config.team_count)
        return room

    def join_room(self, code: str, secret: str) -> Room:
        room = self._rooms.get(code.strip())
        if room is None:
            raise RoomNotFound(code)
        if room.secret != secret:
            raise BadSecret("Invalid Credentials")
        return room

    def drop_participant(self, room: Room, connection_id: str) -> None:
        room.participants.discard(connection_id)
        room.reclaim_requests.pop(connection_id, None)
        for team in room.teams:
            if team.owner_connection == connection_id:
                team.owner_connection = None
        if room.admin_connection == connection_id:
            room.admin_connection = None

    def destroy_if_empty(self, room: Room) -> bool:
        if room.participants or room.auction_active:
            return False
        room.cancel_scheduled()
        if self._rooms.get(room.code) is room:
            del self._rooms[room.code]
        logger.info("Destroyed empty room %s", room.code)
        return True

    def shutdown(self) -> None:
        for room in list(self._rooms.values()):
            room.cancel_scheduled()
        self._rooms.clear()
