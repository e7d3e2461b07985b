"""Wire event names and inbound message models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from .models import Lot, LotStatus

# Inbound
CREATE_ROOM = "create_room"
JOIN_ROOM = "join_room"
REQUEST_SYNC = "request_sync"
CLAIM_TEAM = "claim_team"
RECLAIM_TEAM = "reclaim_team"
REQUEST_MANUAL_RECLAIM = "request_manual_reclaim"
RECLAIM_DECISION = "reclaim_decision"
RENAME_TEAM = "rename_team"
START_AUCTION = "start_auction"
PLACE_BID = "place_bid"
TOGGLE_TIMER = "toggle_timer"
FINALIZE_SALE = "finalize_sale"
END_AUCTION = "end_auction"
SUBMIT_SQUAD = "submit_squad"
REQUEST_SIMULATION = "request_simulation"
PING = "ping"

# Outbound
ROOM_CREATED = "room_created"
ROOM_JOINED = "room_joined"
LOBBY_UPDATE = "lobby_update"
AUCTION_STARTED = "auction_started"
LOT_UPDATE = "lot_update"
BID_UPDATE = "bid_update"
TIMER_TICK = "timer_tick"
TIMER_STATUS = "timer_status"
TIMER_ENDED = "timer_ended"
SALE_FINALIZED = "sale_finalized"
TEAM_CLAIMED = "team_claimed"
RECLAIM_REQUESTED = "reclaim_requested"
STATE_SYNC = "state_sync"
SQUAD_SUBMISSION_PROGRESS = "squad_submission_progress"
SQUAD_SELECTION_OPENED = "squad_selection_opened"
TOURNAMENT_RESULT = "tournament_result"
ERROR_NOTICE = "error_notice"
PONG = "pong"


class CreateRoomRequest(BaseModel):
    room: str = Field(min_length=1, max_length=32)
    secret: str = ""
    team_count: int = Field(ge=2)
    budget: int | None = Field(default=None, gt=0)


class JoinRoomRequest(BaseModel):
    room: str = Field(min_length=1, max_length=32)
    secret: str = ""


class TeamRequest(BaseModel):
    team_key: str


class ReclaimDecisionRequest(BaseModel):
    team_key: str
    requester_id: str
    approved: bool


class RenameTeamRequest(BaseModel):
    team_key: str
    name: str = Field(min_length=1, max_length=40)


class LotSpec(BaseModel):
    name: str = Field(min_length=1)
    role: str = "Batter"
    base_price: int = Field(ge=0)
    increment: int = Field(default=0, ge=0)
    batting: float = Field(default=50.0, ge=0, le=100)
    bowling: float = Field(default=50.0, ge=0, le=100)
    luck: float = Field(default=50.0, ge=0, le=100)
    player_type: str = "Domestic"
    category: str = ""
    status: LotStatus = LotStatus.PENDING

    def to_lot(self) -> Lot:
        return Lot(
            name=self.name,
            role=self.role,
            base_price=self.base_price,
            increment=self.increment,
            batting=self.batting,
            bowling=self.bowling,
            luck=self.luck,
            player_type=self.player_type,
            category=self.category,
            status=self.status,
        )


class StartAuctionRequest(BaseModel):
    queue: list[LotSpec] | None = None


class PlaceBidRequest(BaseModel):
    team_key: str
    amount: int = Field(gt=0)


class SubmitSquadRequest(BaseModel):
    team_key: str
    starters: list[str]
    reserve: str | None = None
    captain: str
