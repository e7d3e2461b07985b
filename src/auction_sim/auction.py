from __future__ import annotations

import logging
from typing import Callable

from . import events
from .config import Settings
from .exceptions import AuthorizationError, StateConflictError, ValidationError
from .hub import Broadcaster, Scheduler
from .models import Lot, Phase, Room
from .payloads import lot_payload, serialize_lot, serialize_team, serialize_teams

logger = logging.getLogger(__name__)

_TRANSITIONS: dict[Phase, frozenset[Phase]] = {
    Phase.LOBBY: frozenset({Phase.ACTIVE}),
    Phase.ACTIVE: frozenset({Phase.SELLING, Phase.SQUAD_SELECTION}),
    Phase.SELLING: frozenset({Phase.ACTIVE, Phase.SQUAD_SELECTION}),
    Phase.SQUAD_SELECTION: frozenset({Phase.COMPLETED}),
    Phase.COMPLETED: frozenset(),
}


def transition(room: Room, new_phase: Phase) -> None:
    """Move the room to a new phase. Leaving ACTIVE always stops the ticker."""
    if new_phase not in _TRANSITIONS[room.phase]:
        raise StateConflictError(f"Cannot move from {room.phase.value} to {new_phase.value}")
    if new_phase is not Phase.ACTIVE:
        room.cancel_timer()
    logger.debug("Room %s: %s -> %s", room.code, room.phase.value, new_phase.value)
    room.phase = new_phase


class AuctionEngine:
    def __init__(
        self,
        room: Room,
        broadcaster: Broadcaster,
        scheduler: Scheduler,
        settings: Settings,
        on_idle: Callable[[Room], object] | None = None,
    ) -> None:
        self.room = room
        self.broadcaster = broadcaster
        self.scheduler = scheduler
        self.settings = settings
        # Called once bidding ends in a room nobody is connected to.
        self.on_idle = on_idle

    def _emit(self, event: str, payload) -> None:
        self.broadcaster.broadcast(self.room, event, payload)

    def start_auction(self, connection_id: str, lots: list[Lot]) -> None:
        room = self.room
        room.require_admin(connection_id)
        if room.phase is not Phase.LOBBY:
            raise StateConflictError("Auction already started")
        claimed = room.claimed_teams()
        if not claimed:
            raise ValidationError("Claim at least one team before starting")

        for team in claimed:
            team.reset_for_auction()
        room.teams = claimed
        room.queue = list(lots)
        room.lot_index = 0
        room.current_lot = None
        room.current_bidder = None
        room.squads.clear()
        room.result = None
        transition(room, Phase.ACTIVE)

        logger.info("Room %s auction started: %d teams, %d lots", room.code, len(claimed), len(room.queue))
        self._emit(
            events.AUCTION_STARTED,
            {"teams": serialize_teams(room), "queue": [serialize_lot(lot) for lot in room.queue]},
        )
        self._open_next_lot()

    def place_bid(self, connection_id: str, identity: str, team_key: str, amount: int) -> None:
        room = self.room
        if room.phase is not Phase.ACTIVE or room.current_lot is None:
            raise StateConflictError("No lot open for bidding")
        if room.clock.paused:
            raise StateConflictError("Bidding is paused")
        if room.clock.expired:
            raise StateConflictError("Bidding has closed on this lot")

        team = room.team(team_key)
        if not team.controlled_by(connection_id, identity):
            raise AuthorizationError("Authorization Failed")
        if room.current_bidder == team.key:
            raise StateConflictError(f"{team.name} already holds the high bid")
        if amount > team.budget:
            raise ValidationError("No Budget!")
        if room.current_bidder is None:
            if amount < room.current_bid:
                raise ValidationError("Bid too low!")
        elif amount <= room.current_bid:
            raise ValidationError("Bid too low!")

        room.current_bid = amount
        room.current_bidder = team.key
        logger.debug("Room %s: %s bids %d for %s", room.code, team.key, amount, room.current_lot.name)
        self._emit(
            events.BID_UPDATE,
            {"amount": amount, "team_key": team.key, "team_name": team.name, "lot_number": room.lot_number},
        )
        self._start_clock()

    def toggle_timer(self, connection_id: str) -> bool:
        room = self.room
        room.require_admin(connection_id)
        if room.phase is not Phase.ACTIVE or room.current_lot is None:
            raise StateConflictError("No lot on the clock")
        paused = room.clock.toggle()
        logger.info("Room %s timer %s", room.code, "paused" if paused else "resumed")
        self._emit(events.TIMER_STATUS, {"paused": paused, "remaining": room.clock.remaining()})
        return paused

    def finalize_sale(self, connection_id: str) -> None:
        self.room.require_admin(connection_id)
        self._process_sale("host")

    def end_auction(self, connection_id: str) -> None:
        room = self.room
        room.require_admin(connection_id)
        if not room.auction_active:
            raise StateConflictError("No auction in progress")
        if room.advance_handle is not None:
            room.advance_handle.cancel()
            room.advance_handle = None
        logger.info("Room %s auction ended by host at lot %d", room.code, room.lot_number)
        self._open_squad_selection()

    def _process_sale(self, source: str) -> None:
        room = self.room
        lot = room.current_lot
        if room.phase is not Phase.ACTIVE or lot is None:
            raise StateConflictError("No sale in progress")

        transition(room, Phase.SELLING)
        room.clock.stop()
        self._emit(events.TIMER_ENDED, {"lot_number": room.lot_number})

        buyer = None
        if room.current_bidder is not None:
            buyer = room.team(room.current_bidder)
            buyer.add_purchase(lot, room.current_bid)
        lot.resolve(buyer.key if buyer else None, room.current_bid)

        if buyer is not None:
            logger.info("Room %s: %s sold to %s for %d (%s)", room.code, lot.name, buyer.key, room.current_bid, source)
        else:
            logger.info("Room %s: %s unsold (%s)", room.code, lot.name, source)
        self._emit(
            events.SALE_FINALIZED,
            {
                "lot": serialize_lot(lot),
                "sold": buyer is not None,
                "buyer": serialize_team(buyer) if buyer else None,
                "price": lot.sold_price,
                "teams": serialize_teams(room),
            },
        )
        room.advance_handle = self.scheduler.call_later(self.settings.sale_cooldown_seconds, self._advance_after_sale)

    def _advance_after_sale(self) -> None:
        room = self.room
        room.advance_handle = None
        if room.phase is not Phase.SELLING:
            return
        room.lot_index += 1
        room.current_lot = None
        room.current_bidder = None
        self._open_next_lot()

    def _open_next_lot(self) -> None:
        room = self.room
        while room.lot_index < len(room.queue) and room.queue[room.lot_index].is_resolved:
            room.lot_index += 1
        if room.lot_index >= len(room.queue):
            self._open_squad_selection()
            return

        if room.phase is Phase.SELLING:
            transition(room, Phase.ACTIVE)
        lot = room.queue[room.lot_index]
        room.current_lot = lot
        room.current_bid = lot.base_price
        room.current_bidder = None
        self._emit(events.LOT_UPDATE, lot_payload(room))
        self._start_clock()

    def _open_squad_selection(self) -> None:
        room = self.room
        transition(room, Phase.SQUAD_SELECTION)
        room.clock.stop()
        room.current_lot = None
        room.current_bidder = None
        logger.info("Room %s squad selection opened", room.code)
        self._emit(events.SQUAD_SELECTION_OPENED, {"teams": serialize_teams(room)})
        if not room.participants and self.on_idle is not None:
            self.on_idle(room)

    def _start_clock(self) -> None:
        room = self.room
        room.cancel_timer()
        room.clock.restart()
        self._emit(events.TIMER_TICK, {"remaining": room.clock.remaining()})
        self._emit(events.TIMER_STATUS, {"paused": False, "remaining": room.clock.remaining()})
        self._schedule_tick()

    def _schedule_tick(self) -> None:
        self.room.timer_handle = self.scheduler.call_later(self.settings.tick_interval, self._tick)

    def _tick(self) -> None:
        room = self.room
        room.timer_handle = None
        if room.phase is not Phase.ACTIVE or not room.clock.running:
            return
        if not room.clock.paused:
            remaining = room.clock.remaining()
            self._emit(events.TIMER_TICK, {"remaining": remaining})
            if remaining <= 0:
                self._process_sale("clock")
                return
        self._schedule_tick()
