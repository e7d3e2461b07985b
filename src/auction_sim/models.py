from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Protocol

from .clock import AuctionClock
from .config import (
    BALLS_PER_OVER,
    BOWLING_ROLE_MARKERS,
    OVERSEAS_TYPES,
    POINTS_PER_WIN,
    WICKETKEEPER_ROLES,
)
from .exceptions import AuthorizationError, StateConflictError, TeamNotFound, ValidationError

if TYPE_CHECKING:
    from .league import TournamentResult


class Phase(str, Enum):
    LOBBY = "lobby"
    ACTIVE = "active"
    SELLING = "selling"
    SQUAD_SELECTION = "squad_selection"
    COMPLETED = "completed"


class LotStatus(str, Enum):
    PENDING = "pending"
    SOLD = "sold"
    UNSOLD = "unsold"


class Cancellable(Protocol):
    def cancel(self) -> None: ...


def is_wicketkeeper_role(role: str) -> bool:
    return role.lower() in WICKETKEEPER_ROLES


def is_bowling_role(role: str) -> bool:
    lowered = role.lower()
    if is_wicketkeeper_role(lowered):
        return False
    return any(marker in lowered for marker in BOWLING_ROLE_MARKERS)


@dataclass(slots=True)
class Lot:
    name: str
    role: str
    base_price: int
    increment: int
    batting: float = 50.0
    bowling: float = 50.0
    luck: float = 50.0
    player_type: str = "Domestic"
    category: str = ""
    status: LotStatus = LotStatus.PENDING
    sold_price: int = 0
    sold_to: str | None = None

    @property
    def is_resolved(self) -> bool:
        return self.status is not LotStatus.PENDING

    def resolve(self, team_key: str | None, price: int) -> None:
        if self.is_resolved:
            raise StateConflictError(f"Lot {self.name} already {self.status.value}")
        if team_key is None:
            self.status = LotStatus.UNSOLD
            self.sold_price = 0
        else:
            self.status = LotStatus.SOLD
            self.sold_price = price
            self.sold_to = team_key


@dataclass(frozen=True, slots=True)
class RosterEntry:
    name: str
    role: str
    price: int
    batting: float = 50.0
    bowling: float = 50.0
    luck: float = 50.0
    player_type: str = "Domestic"

    @classmethod
    def from_lot(cls, lot: Lot, price: int) -> RosterEntry:
        return cls(
            name=lot.name,
            role=lot.role,
            price=price,
            batting=lot.batting,
            bowling=lot.bowling,
            luck=lot.luck,
            player_type=lot.player_type,
        )

    @property
    def is_overseas(self) -> bool:
        return self.player_type.lower() in OVERSEAS_TYPES

    @property
    def is_wicketkeeper(self) -> bool:
        return is_wicketkeeper_role(self.role)

    @property
    def can_bowl(self) -> bool:
        return is_bowling_role(self.role)


@dataclass(slots=True)
class Team:
    key: str
    name: str
    budget: int
    starting_budget: int
    claimed: bool = False
    owner_identity: str | None = None
    owner_connection: str | None = None
    roster: list[RosterEntry] = field(default_factory=list)

    @property
    def spent(self) -> int:
        return sum(entry.price for entry in self.roster)

    def player(self, name: str) -> RosterEntry | None:
        for entry in self.roster:
            if entry.name == name:
                return entry
        return None

    def controlled_by(self, connection_id: str, identity: str) -> bool:
        """True when the caller owns this team, re-binding a reconnected owner."""
        if self.owner_connection is not None and self.owner_connection == connection_id:
            return True
        if self.owner_identity is not None and self.owner_identity == identity:
            self.owner_connection = connection_id
            return True
        return False

    def add_purchase(self, lot: Lot, price: int) -> RosterEntry:
        if price < 0:
            raise ValidationError("Price cannot be negative")
        if price > self.budget:
            raise ValidationError("No Budget!")
        entry = RosterEntry.from_lot(lot, price)
        self.roster.append(entry)
        self.budget -= price
        return entry

    def reset_for_auction(self) -> None:
        self.roster = []
        self.budget = self.starting_budget


@dataclass(frozen=True, slots=True)
class Squad:
    starters: tuple[str, ...]
    reserve: str | None
    captain: str
    auto_filled: bool = False


@dataclass(frozen=True, slots=True)
class ReclaimRequest:
    team_key: str
    identity: str


@dataclass(slots=True)
class RoomConfig:
    team_count: int
    starting_budget: int


@dataclass(slots=True)
class Room:
    code: str
    secret: str
    config: RoomConfig
    clock: AuctionClock
    admin_identity: str
    admin_connection: str | None = None
    admin_origin: str = ""
    teams: list[Team] = field(default_factory=list)
    participants: set[str] = field(default_factory=set)
    queue: list[Lot] = field(default_factory=list)
    lot_index: int = 0
    current_lot: Lot | None = None
    current_bid: int = 0
    current_bidder: str | None = None
    phase: Phase = Phase.LOBBY
    squads: dict[str, Squad] = field(default_factory=dict)
    # requester connection id -> pending host-approved reclaim
    reclaim_requests: dict[str, ReclaimRequest] = field(default_factory=dict)
    result: TournamentResult | None = None
    timer_handle: Cancellable | None = None
    advance_handle: Cancellable | None = None
    simulation_handle: Cancellable | None = None

    ACTIVE_PHASES: ClassVar[frozenset[Phase]] = frozenset({Phase.ACTIVE, Phase.SELLING})

    @property
    def auction_active(self) -> bool:
        return self.phase in self.ACTIVE_PHASES

    @property
    def lot_number(self) -> int:
        return self.lot_index + 1

    def is_admin(self, connection_id: str) -> bool:
        return self.admin_connection is not None and self.admin_connection == connection_id

    def require_admin(self, connection_id: str) -> None:
        if not self.is_admin(connection_id):
            raise AuthorizationError("Only the host can do that")

    def team(self, key: str) -> Team:
        for team in self.teams:
            if team.key == key:
                return team
        raise TeamNotFound(key)

    def team_owned_by(self, identity: str) -> Team | None:
        for team in self.teams:
            if team.owner_identity == identity:
                return team
        return None

    def claimed_teams(self) -> list[Team]:
        return [t for t in self.teams if t.claimed]

    def cancel_timer(self) -> None:
        if self.timer_handle is not None:
            self.timer_handle.cancel()
            self.timer_handle = None

    def cancel_scheduled(self) -> None:
        self.cancel_timer()
        for attr in ("advance_handle", "simulation_handle"):
            handle = getattr(self, attr)
            if handle is not None:
                handle.cancel()
                setattr(self, attr, None)


@dataclass(slots=True)
class TeamRecord:
    key: str
    name: str
    played: int = 0
    won: int = 0
    lost: int = 0
    runs_scored: int = 0
    balls_faced: int = 0
    runs_conceded: int = 0
    balls_bowled: int = 0

    @property
    def points(self) -> int:
        return self.won * POINTS_PER_WIN

    @property
    def net_run_rate(self) -> float:
        if self.balls_faced <= 0 or self.balls_bowled <= 0:
            return 0.0
        scored = self.runs_scored / (self.balls_faced / BALLS_PER_OVER)
        conceded = self.runs_conceded / (self.balls_bowled / BALLS_PER_OVER)
        return scored - conceded

    def register_match(
        self,
        runs_for: int,
        balls_faced: int,
        runs_against: int,
        balls_bowled: int,
        won: bool,
    ) -> None:
        self.played += 1
        if won:
            self.won += 1
        else:
            self.lost += 1
        self.runs_scored += runs_for
        self.balls_faced += balls_faced
        self.runs_conceded += runs_against
        self.balls_bowled += balls_bowled
