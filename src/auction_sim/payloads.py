"""JSON-ready payload builders for outbound events."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from .engine import InningsResult, MatchResult
from .league import TournamentResult
from .models import Lot, RosterEntry, Room, Team


def serialize_lot(lot: Lot | None) -> dict[str, Any] | None:
    if lot is None:
        return None
    return {
        "name": lot.name,
        "role": lot.role,
        "category": lot.category,
        "player_type": lot.player_type,
        "base_price": lot.base_price,
        "increment": lot.increment,
        "batting": lot.batting,
        "bowling": lot.bowling,
        "luck": lot.luck,
        "status": lot.status.value,
        "sold_price": lot.sold_price,
        "sold_to": lot.sold_to,
    }


def serialize_roster_entry(entry: RosterEntry) -> dict[str, Any]:
    return asdict(entry)


def serialize_team(team: Team) -> dict[str, Any]:
    return {
        "key": team.key,
        "name": team.name,
        "budget": team.budget,
        "spent": team.spent,
        "claimed": team.claimed,
        "owner": team.owner_identity,
        "connected": team.owner_connection is not None,
        "roster": [serialize_roster_entry(e) for e in team.roster],
    }


def serialize_teams(room: Room) -> list[dict[str, Any]]:
    return [serialize_team(t) for t in room.teams]


def lobby_payload(room: Room) -> dict[str, Any]:
    return {"teams": serialize_teams(room), "participant_count": len(room.participants)}


def lot_payload(room: Room) -> dict[str, Any]:
    return {
        "lot": serialize_lot(room.current_lot),
        "current_bid": room.current_bid,
        "lot_number": room.lot_number,
    }


def sync_payload(room: Room) -> dict[str, Any]:
    return {
        "room": room.code,
        "phase": room.phase.value,
        "teams": serialize_teams(room),
        "queue": [serialize_lot(lot) for lot in room.queue],
        "lot_index": room.lot_index,
        "current_lot": serialize_lot(room.current_lot),
        "current_bid": room.current_bid,
        "current_bidder": room.current_bidder,
        "timer": room.clock.remaining(),
        "timer_paused": room.clock.paused,
        "participant_count": len(room.participants),
        "submitted_squads": sorted(room.squads),
        "result": tournament_payload(room.result) if room.result else None,
    }


def room_joined_payload(room: Room, is_admin: bool) -> dict[str, Any]:
    payload = sync_payload(room)
    payload["is_admin"] = is_admin
    return payload


def serialize_innings(innings: InningsResult) -> dict[str, Any]:
    payload = asdict(innings)
    payload["overs"] = innings.overs
    for card, raw in zip(innings.bowling, payload["bowling"]):
        raw["overs"] = card.overs
        raw["economy"] = card.economy
    return payload


def serialize_match(match: MatchResult) -> dict[str, Any]:
    payload = asdict(match)
    payload["score1"] = match.score1
    payload["score2"] = match.score2
    payload["first_innings"] = serialize_innings(match.first_innings)
    payload["second_innings"] = serialize_innings(match.second_innings)
    return payload


def tournament_payload(result: TournamentResult) -> dict[str, Any]:
    return {
        "champion": {"key": result.champion_key, "name": result.champion},
        "runner_up": {"key": result.runner_up_key, "name": result.runner_up},
        "standings": [asdict(row) for row in result.standings],
        "league_matches": [serialize_match(m) for m in result.league_matches],
        "playoffs": [serialize_match(m) for m in result.playoffs],
        "player_stats": [{**asdict(s), "mvp_points": s.mvp_points} for s in result.player_stats],
        "orange_cap": asdict(result.orange_cap) if result.orange_cap else None,
        "purple_cap": asdict(result.purple_cap) if result.purple_cap else None,
        "most_valuable": asdict(result.most_valuable) if result.most_valuable else None,
        "captains": dict(result.captains),
    }
