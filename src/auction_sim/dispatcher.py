from __future__ import annotations

import logging
import random
from typing import Any, Callable, Mapping

import pydantic

from . import events, lobby
from .auction import AuctionEngine
from .config import Settings
from .exceptions import AuctionError, StateConflictError
from .hub import Connection, ConnectionHub, Scheduler
from .models import Room, RoomConfig
from .payloads import lobby_payload, room_joined_payload, serialize_teams, sync_payload
from .pool import build_default_lots
from .registry import RoomRegistry
from .squads import SquadAssembly

logger = logging.getLogger(__name__)

Handler = Callable[[Connection, Mapping[str, Any]], None]


class EventDispatcher:
    def __init__(
        self,
        registry: RoomRegistry,
        hub: ConnectionHub,
        scheduler: Scheduler,
        settings: Settings,
        rng_factory: Callable[[], random.Random] = random.Random,
    ) -> None:
        self.registry = registry
        self.hub = hub
        self.scheduler = scheduler
        self.settings = settings
        self.rng_factory = rng_factory
        self._handlers: dict[str, Handler] = {
            events.CREATE_ROOM: self._create_room,
            events.JOIN_ROOM: self._join_room,
            events.REQUEST_SYNC: self._request_sync,
            events.CLAIM_TEAM: self._claim_team,
            events.RECLAIM_TEAM: self._reclaim_team,
            events.REQUEST_MANUAL_RECLAIM: self._request_manual_reclaim,
            events.RECLAIM_DECISION: self._reclaim_decision,
            events.RENAME_TEAM: self._rename_team,
            events.START_AUCTION: self._start_auction,
            events.PLACE_BID: self._place_bid,
            events.TOGGLE_TIMER: self._toggle_timer,
            events.FINALIZE_SALE: self._finalize_sale,
            events.END_AUCTION: self._end_auction,
            events.SUBMIT_SQUAD: self._submit_squad,
            events.REQUEST_SIMULATION: self._request_simulation,
            events.PING: self._ping,
        }

    def connect(self, connection: Connection) -> None:
        self.hub.register(connection)
        logger.debug("Connection %s opened for %s", connection.sid, connection.identity)

    def disconnect(self, connection: Connection) -> None:
        self.hub.unregister(connection.sid)
        self._leave_room(connection)
        logger.debug("Connection %s closed", connection.sid)

    def handle(self, connection: Connection, message: Any) -> None:
        event = message.get("type") if isinstance(message, Mapping) else None
        handler = self._handlers.get(event) if isinstance(event, str) else None
        if handler is None:
            logger.debug("Ignoring unknown event %r from %s", event, connection.sid)
            return
        try:
            handler(connection, message)
        except pydantic.ValidationError:
            logger.warning("Malformed %s from %s", event, connection.sid)
            self._notify(connection, f"Malformed {event} request")
        except StateConflictError as exc:
            logger.debug("Ignored %s from %s: %s", event, connection.sid, exc.message)
        except AuctionError as exc:
            logger.warning("Rejected %s from %s: %s", event, connection.sid, exc.message)
            self._notify(connection, exc.message)
        except Exception:
            logger.error("Handler for %s failed", event, exc_info=True)
            self._notify(connection, "Something went wrong on the server")

    def _notify(self, connection: Connection, message: str) -> None:
        self.hub.send(connection.sid, events.ERROR_NOTICE, {"message": message})

    def _room_of(self, connection: Connection) -> Room:
        return self.registry.require(connection.room_code)

    def _engine(self, room: Room) -> AuctionEngine:
        return AuctionEngine(room, self.hub, self.scheduler, self.settings, on_idle=self.registry.destroy_if_empty)

    def _squads(self, room: Room) -> SquadAssembly:
        return SquadAssembly(room, self.hub, self.scheduler, rng_factory=self.rng_factory)

    def _leave_room(self, connection: Connection) -> None:
        room = self.registry.get(connection.room_code)
        connection.room_code = None
        if room is None:
            return
        self.registry.drop_participant(room, connection.sid)
        if not self.registry.destroy_if_empty(room):
            self.hub.broadcast(room, events.LOBBY_UPDATE, lobby_payload(room))

    def _enter_room(self, connection: Connection, room: Room) -> None:
        if connection.room_code is not None and connection.room_code != room.code:
            self._leave_room(connection)
        room.participants.add(connection.sid)
        connection.room_code = room.code

    def _create_room(self, connection: Connection, message: Mapping[str, Any]) -> None:
        request = events.CreateRoomRequest.model_validate(message)
        config = RoomConfig(
            team_count=request.team_count,
            starting_budget=request.budget or self.settings.default_budget,
        )
        room = self.registry.create_room(
            request.room,
            request.secret,
            config,
            admin_identity=connection.identity,
            admin_connection=connection.sid,
            admin_origin=connection.origin,
        )
        self._enter_room(connection, room)
        self.hub.send(connection.sid, events.ROOM_CREATED, {"room": room.code, "teams": serialize_teams(room)})
        self.hub.broadcast(room, events.LOBBY_UPDATE, lobby_payload(room))

    def _join_room(self, connection: Connection, message: Mapping[str, Any]) -> None:
        request = events.JoinRoomRequest.model_validate(message)
        room = self.registry.join_room(request.room, request.secret)
        self._enter_room(connection, room)
        is_admin = lobby.recover_authority(room, connection)
        team = lobby.rebind_owner(room, connection)
        logger.info("Connection %s joined room %s (host=%s)", connection.sid, room.code, is_admin)

        self.hub.send(connection.sid, events.ROOM_JOINED, room_joined_payload(room, is_admin))
        if team is not None:
            self.hub.send(connection.sid, events.TEAM_CLAIMED, {"team_key": team.key})
        self.hub.broadcast(room, events.LOBBY_UPDATE, lobby_payload(room))

    def _request_sync(self, connection: Connection, message: Mapping[str, Any]) -> None:
        room = self._room_of(connection)
        payload = sync_payload(room)
        payload["is_admin"] = room.is_admin(connection.sid)
        owned = room.team_owned_by(connection.identity)
        payload["my_team"] = owned.key if owned else None
        self.hub.send(connection.sid, events.STATE_SYNC, payload)

    def _claim_team(self, connection: Connection, message: Mapping[str, Any]) -> None:
        request = events.TeamRequest.model_validate(message)
        room = self._room_of(connection)
        team = lobby.claim_team(room, connection, request.team_key)
        self.hub.send(connection.sid, events.TEAM_CLAIMED, {"team_key": team.key})
        self.hub.broadcast(room, events.LOBBY_UPDATE, lobby_payload(room))

    def _reclaim_team(self, connection: Connection, message: Mapping[str, Any]) -> None:
        request = events.TeamRequest.model_validate(message)
        room = self._room_of(connection)
        team = lobby.reclaim_team(room, connection, request.team_key)
        self.hub.send(connection.sid, events.TEAM_CLAIMED, {"team_key": team.key})

    def _request_manual_reclaim(self, connection: Connection, message: Mapping[str, Any]) -> None:
        request = events.TeamRequest.model_validate(message)
        room = self._room_of(connection)
        team = lobby.request_manual_reclaim(room, connection, request.team_key)
        self.hub.send(
            room.admin_connection,
            events.RECLAIM_REQUESTED,
            {"team_key": team.key, "team_name": team.name, "requester_id": connection.sid},
        )

    def _reclaim_decision(self, connection: Connection, message: Mapping[str, Any]) -> None:
        request = events.ReclaimDecisionRequest.model_validate(message)
        room = self._room_of(connection)
        team = lobby.decide_reclaim(room, connection, request.requester_id, request.team_key, request.approved)
        if team is None:
            self.hub.send(request.requester_id, events.ERROR_NOTICE, {"message": "Host denied your reclaim request."})
            return
        self.hub.send(request.requester_id, events.TEAM_CLAIMED, {"team_key": team.key})
        self.hub.broadcast(room, events.LOBBY_UPDATE, lobby_payload(room))

    def _rename_team(self, connection: Connection, message: Mapping[str, Any]) -> None:
        request = events.RenameTeamRequest.model_validate(message)
        room = self._room_of(connection)
        lobby.rename_team(room, connection, request.team_key, request.name)
        self.hub.broadcast(room, events.LOBBY_UPDATE, lobby_payload(room))

    def _start_auction(self, connection: Connection, message: Mapping[str, Any]) -> None:
        request = events.StartAuctionRequest.model_validate(message)
        room = self._room_of(connection)
        if request.queue is None:
            lots = build_default_lots()
        else:
            lots = [item.to_lot() for item in request.queue]
        self._engine(room).start_auction(connection.sid, lots)

    def _place_bid(self, connection: Connection, message: Mapping[str, Any]) -> None:
        request = events.PlaceBidRequest.model_validate(message)
        room = self._room_of(connection)
        self._engine(room).place_bid(connection.sid, connection.identity, request.team_key, request.amount)

    def _toggle_timer(self, connection: Connection, message: Mapping[str, Any]) -> None:
        self._engine(self._room_of(connection)).toggle_timer(connection.sid)

    def _finalize_sale(self, connection: Connection, message: Mapping[str, Any]) -> None:
        self._engine(self._room_of(connection)).finalize_sale(connection.sid)

    def _end_auction(self, connection: Connection, message: Mapping[str, Any]) -> None:
        self._engine(self._room_of(connection)).end_auction(connection.sid)

    def _submit_squad(self, connection: Connection, message: Mapping[str, Any]) -> None:
        request = events.SubmitSquadRequest.model_validate(message)
        room = self._room_of(connection)
        self._squads(room).submit(
            connection.sid,
            connection.identity,
            request.team_key,
            request.starters,
            request.reserve,
            request.captain,
        )

    def _request_simulation(self, connection: Connection, message: Mapping[str, Any]) -> None:
        self._squads(self._room_of(connection)).request_simulation(connection.sid)

    def _ping(self, connection: Connection, message: Mapping[str, Any]) -> None:
        self.hub.send(connection.sid, events.PONG, {})
