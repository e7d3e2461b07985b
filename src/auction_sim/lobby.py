from __future__ import annotations

import logging

from .exceptions import AuthorizationError, StateConflictError, ValidationError
from .hub import Connection
from .identity import is_guest
from .models import Phase, ReclaimRequest, Room, Team

logger = logging.getLogger(__name__)


def recover_authority(room: Room, connection: Connection) -> bool:
    """Hand host authority to a joining connection when it is the host returning.

    The identity token is authoritative. The origin fingerprint is only
    consulted while no live connection holds authority, and never for guests.
    """
    if room.is_admin(connection.sid):
        return True

    if connection.identity == room.admin_identity:
        matched_by = "identity"
    elif (
        room.admin_connection is None
        and connection.origin
        and connection.origin == room.admin_origin
        and not is_guest(connection.identity)
    ):
        matched_by = "origin"
        room.admin_identity = connection.identity
    else:
        return False

    stale = room.admin_connection
    room.admin_connection = connection.sid
    if connection.origin:
        room.admin_origin = connection.origin
    logger.info(
        "Room %s host authority restored to %s by %s (replacing %s)",
        room.code,
        connection.sid,
        matched_by,
        stale,
    )
    return True


def rebind_owner(room: Room, connection: Connection) -> Team | None:
    team = room.team_owned_by(connection.identity)
    if team is not None:
        team.owner_connection = connection.sid
    return team


def claim_team(room: Room, connection: Connection, team_key: str) -> Team:
    team = room.team(team_key)
    owned = room.team_owned_by(connection.identity)
    if owned is not None and owned is not team:
        raise ValidationError("You already own a team!")
    if team.claimed and team.owner_identity != connection.identity:
        raise ValidationError("Team already taken")
    if not team.claimed and room.phase is not Phase.LOBBY:
        raise ValidationError("Teams can only be claimed in the lobby")

    team.claimed = True
    team.owner_identity = connection.identity
    team.owner_connection = connection.sid
    logger.info("Room %s: %s claimed %s", room.code, connection.identity, team.key)
    return team


def reclaim_team(room: Room, connection: Connection, team_key: str) -> Team:
    team = room.team(team_key)
    if not team.claimed or team.owner_identity != connection.identity:
        raise AuthorizationError("You do not own this team")
    team.owner_connection = connection.sid
    return team


def request_manual_reclaim(room: Room, connection: Connection, team_key: str) -> Team:
    """Queue a reclaim for the host to approve, for owners who lost their token."""
    team = room.team(team_key)
    if not team.claimed:
        raise ValidationError("Team is not claimed yet")
    if team.owner_identity == connection.identity:
        raise ValidationError("You already own this team")
    if room.team_owned_by(connection.identity) is not None:
        raise ValidationError("You already own a team!")
    if room.admin_connection is None:
        raise ValidationError("The host is not connected")
    room.reclaim_requests[connection.sid] = ReclaimRequest(team_key=team.key, identity=connection.identity)
    logger.info("Room %s: %s asked the host for %s", room.code, connection.identity, team.key)
    return team


def decide_reclaim(room: Room, connection: Connection, requester_id: str, team_key: str, approved: bool) -> Team | None:
    room.require_admin(connection.sid)
    request = room.reclaim_requests.get(requester_id)
    if request is None or request.team_key != team_key:
        raise StateConflictError("No pending reclaim request")
    del room.reclaim_requests[requester_id]
    if not approved:
        logger.info("Room %s: host denied %s the team %s", room.code, request.identity, team_key)
        return None

    team = room.team(team_key)
    owned = room.team_owned_by(request.identity)
    if owned is not None and owned is not team:
        raise ValidationError("That player already owns a team")
    previous = team.owner_identity
    team.claimed = True
    team.owner_identity = request.identity
    team.owner_connection = requester_id
    logger.info("Room %s: host moved %s from %s to %s", room.code, team.key, previous, request.identity)
    return team


def rename_team(room: Room, connection: Connection, team_key: str, name: str) -> Team:
    room.require_admin(connection.sid)
    if room.phase is not Phase.LOBBY:
        raise ValidationError("Teams can only be renamed in the lobby")
    name = name.strip()
    if not name:
        raise ValidationError("Team name cannot be empty")
    team = room.team(team_key)
    team.name = name
    return team
