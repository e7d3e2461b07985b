from __future__ import annotations

import logging
import random
from typing import Callable, Sequence

from . import events
from .auction import transition
from .config import MAX_OVERSEAS_IN_XI, MIN_WICKETKEEPERS_IN_XI, STARTING_XI_SIZE
from .engine import Lineup
from .exceptions import AuthorizationError, StateConflictError, ValidationError
from .hub import Broadcaster, Scheduler
from .league import simulate_tournament
from .models import Phase, Room, Squad, Team
from .payloads import tournament_payload

logger = logging.getLogger(__name__)


def build_squad(team: Team, starters: Sequence[str], reserve: str | None, captain: str) -> Squad:
    if len(starters) != STARTING_XI_SIZE:
        raise ValidationError(f"Pick exactly {STARTING_XI_SIZE} starters")
    if len(set(starters)) != len(starters):
        raise ValidationError("A player can only be picked once")

    entries = []
    for name in starters:
        entry = team.player(name)
        if entry is None:
            raise ValidationError(f"{name} is not in your squad")
        entries.append(entry)

    if sum(1 for e in entries if e.is_overseas) > MAX_OVERSEAS_IN_XI:
        raise ValidationError(f"MAX {MAX_OVERSEAS_IN_XI} FOREIGN PLAYERS ALLOWED IN PLAYING XI")
    if sum(1 for e in entries if e.is_wicketkeeper) < MIN_WICKETKEEPERS_IN_XI:
        raise ValidationError("Pick at least one wicketkeeper")

    if not reserve:
        raise ValidationError("Pick an impact player")
    if team.player(reserve) is None:
        raise ValidationError(f"{reserve} is not in your squad")
    if reserve in starters:
        raise ValidationError("The impact player cannot also start")
    if captain not in starters:
        raise ValidationError("Captain must be in the playing XI")

    return Squad(starters=tuple(starters), reserve=reserve, captain=captain)


def auto_squad(team: Team) -> Squad | None:
    """First eleven bought bat in purchase order; the twelfth is the reserve."""
    if not team.roster:
        return None
    starters = tuple(entry.name for entry in team.roster[:STARTING_XI_SIZE])
    reserve = team.roster[STARTING_XI_SIZE].name if len(team.roster) > STARTING_XI_SIZE else None
    return Squad(starters=starters, reserve=reserve, captain=starters[0], auto_filled=True)


def lineup_for(team: Team, squad: Squad) -> Lineup:
    players = [entry for entry in (team.player(name) for name in squad.starters) if entry is not None]
    reserve = team.player(squad.reserve) if squad.reserve else None
    return Lineup(key=team.key, name=team.name, players=players, reserve=reserve, captain=squad.captain)


class SquadAssembly:
    def __init__(
        self,
        room: Room,
        broadcaster: Broadcaster,
        scheduler: Scheduler,
        rng_factory: Callable[[], random.Random] = random.Random,
    ) -> None:
        self.room = room
        self.broadcaster = broadcaster
        self.scheduler = scheduler
        self.rng_factory = rng_factory

    def progress(self) -> dict[str, int]:
        return {"submitted": len(self.room.squads), "total": len(self.room.claimed_teams())}

    def submit(
        self,
        connection_id: str,
        identity: str,
        team_key: str,
        starters: Sequence[str],
        reserve: str | None,
        captain: str,
    ) -> Squad:
        room = self.room
        if room.phase is not Phase.SQUAD_SELECTION:
            raise StateConflictError("Squad selection is not open")
        team = room.team(team_key)
        if not team.controlled_by(connection_id, identity):
            raise AuthorizationError("Authorization Failed")
        if team.key in room.squads:
            raise ValidationError("Squad already submitted")

        squad = build_squad(team, starters, reserve, captain)
        room.squads[team.key] = squad
        progress = self.progress()
        logger.info("Room %s: %s submitted (%d/%d)", room.code, team.key, progress["submitted"], progress["total"])
        self.broadcaster.broadcast(room, events.SQUAD_SUBMISSION_PROGRESS, {**progress, "team_key": team.key})

        if progress["submitted"] >= progress["total"] and room.simulation_handle is None:
            room.simulation_handle = self.scheduler.call_later(0, self._auto_simulate)
        return squad

    def request_simulation(self, connection_id: str) -> None:
        room = self.room
        room.require_admin(connection_id)
        if room.phase is not Phase.SQUAD_SELECTION:
            raise StateConflictError("Squad selection is not open")
        self.run()

    def _auto_simulate(self) -> None:
        room = self.room
        room.simulation_handle = None
        if room.phase is not Phase.SQUAD_SELECTION:
            return
        if len(room.squads) < len(room.claimed_teams()):
            return
        try:
            self.run()
        except ValidationError as exc:
            logger.warning("Room %s simulation refused: %s", room.code, exc.message)
            self.broadcaster.broadcast(room, events.ERROR_NOTICE, {"message": exc.message})

    def _fill_squads(self) -> dict[str, Squad]:
        squads = {}
        for team in self.room.claimed_teams():
            squad = self.room.squads.get(team.key) or auto_squad(team)
            if squad is not None:
                squads[team.key] = squad
        return squads

    def run(self) -> None:
        room = self.room
        squads = self._fill_squads()
        lineups = [lineup_for(room.team(key), squad) for key, squad in squads.items()]
        lineups = [lineup for lineup in lineups if lineup.players]
        if len(lineups) < 2:
            raise ValidationError("Need at least 2 teams with players to simulate")
        room.squads.update(squads)
        if room.simulation_handle is not None:
            room.simulation_handle.cancel()
            room.simulation_handle = None

        logger.info("Room %s simulating tournament for %d teams", room.code, len(lineups))
        result = simulate_tournament(lineups, rng=self.rng_factory())
        room.result = result
        transition(room, Phase.COMPLETED)
        self.broadcaster.broadcast(room, events.TOURNAMENT_RESULT, tournament_payload(result))
