import pytest

from auction_sim import events
from auction_sim.auction import AuctionEngine, transition
from auction_sim.exceptions import AuthorizationError, StateConflictError, ValidationError
from auction_sim.models import LotStatus, Phase, RoomConfig


def _engine(room, recorder, scheduler, settings) -> AuctionEngine:
    return AuctionEngine(room, recorder, scheduler, settings)


def _started(lobby_room, recorder, scheduler, settings, lots) -> AuctionEngine:
    engine = _engine(lobby_room, recorder, scheduler, settings)
    engine.start_auction("sid-host", lots)
    return engine


def test_start_requires_host(lobby_room, recorder, scheduler, settings, make_lot) -> None:
    engine = _engine(lobby_room, recorder, scheduler, settings)
    with pytest.raises(AuthorizationError):
        engine.start_auction("sid-bob", [make_lot("A")])
    assert lobby_room.phase is Phase.LOBBY


def test_start_needs_a_claimed_team(registry, recorder, scheduler, settings, make_lot) -> None:
    room = registry.create_room("EMPTY", "", RoomConfig(2, 1000), "host", "sid-host")
    with pytest.raises(ValidationError):
        _engine(room, recorder, scheduler, settings).start_auction("sid-host", [make_lot("A")])


def test_start_opens_first_lot_at_base_price(lobby_room, recorder, scheduler, settings, make_lot) -> None:
    _started(lobby_room, recorder, scheduler, settings, [make_lot("A", base_price=100), make_lot("B")])

    assert lobby_room.phase is Phase.ACTIVE
    assert [t.key for t in lobby_room.teams] == ["T0", "T1"]
    assert lobby_room.current_lot.name == "A"
    assert lobby_room.current_bid == 100
    assert lobby_room.current_bidder is None
    assert recorder.events()[:4] == [
        events.AUCTION_STARTED,
        events.LOT_UPDATE,
        events.TIMER_TICK,
        events.TIMER_STATUS,
    ]
    assert recorder.last(events.TIMER_STATUS)["paused"] is False
    assert recorder.last(events.LOT_UPDATE)["lot_number"] == 1


def test_start_resets_rosters_and_budgets(lobby_room, recorder, scheduler, settings, make_lot) -> None:
    team = lobby_room.teams[0]
    team.add_purchase(make_lot("Old"), 300)
    _started(lobby_room, recorder, scheduler, settings, [make_lot("A")])
    assert team.roster == []
    assert team.budget == 1000


def test_start_skips_resolved_lots(lobby_room, recorder, scheduler, settings, make_lot) -> None:
    done = make_lot("Done")
    done.status = LotStatus.UNSOLD
    _started(lobby_room, recorder, scheduler, settings, [done, make_lot("Fresh")])
    assert lobby_room.current_lot.name == "Fresh"
    assert lobby_room.lot_index == 1


def test_opening_bid_may_equal_base(lobby_room, recorder, scheduler, settings, make_lot) -> None:
    engine = _started(lobby_room, recorder, scheduler, settings, [make_lot("A", base_price=100)])
    engine.place_bid("sid-bob", "bob", "T1", 100)
    assert lobby_room.current_bid == 100
    assert lobby_room.current_bidder == "T1"
    assert recorder.last(events.BID_UPDATE)["team_key"] == "T1"


def test_opening_bid_below_base_rejected(lobby_room, recorder, scheduler, settings, make_lot) -> None:
    engine = _started(lobby_room, recorder, scheduler, settings, [make_lot("A", base_price=100)])
    with pytest.raises(ValidationError, match="Bid too low!"):
        engine.place_bid("sid-bob", "bob", "T1", 90)


def test_following_bid_must_exceed_current(lobby_room, recorder, scheduler, settings, make_lot) -> None:
    engine = _started(lobby_room, recorder, scheduler, settings, [make_lot("A", base_price=100)])
    engine.place_bid("sid-bob", "bob", "T1", 150)
    with pytest.raises(ValidationError, match="Bid too low!"):
        engine.place_bid("sid-host", "host", "T0", 150)
    assert lobby_room.current_bidder == "T1"


def test_high_bidder_cannot_outbid_itself(lobby_room, recorder, scheduler, settings, make_lot) -> None:
    engine = _started(lobby_room, recorder, scheduler, settings, [make_lot("A")])
    engine.place_bid("sid-bob", "bob", "T1", 150)
    with pytest.raises(StateConflictError):
        engine.place_bid("sid-bob", "bob", "T1", 200)
    assert lobby_room.current_bid == 150


def test_bid_for_someone_elses_team_rejected(lobby_room, recorder, scheduler, settings, make_lot) -> None:
    engine = _started(lobby_room, recorder, scheduler, settings, [make_lot("A")])
    with pytest.raises(AuthorizationError, match="Authorization Failed"):
        engine.place_bid("sid-bob", "bob", "T0", 150)


def test_reconnected_owner_can_bid_by_identity(lobby_room, recorder, scheduler, settings, make_lot) -> None:
    engine = _started(lobby_room, recorder, scheduler, settings, [make_lot("A")])
    lobby_room.teams[1].owner_connection = None
    engine.place_bid("sid-bob-2", "bob", "T1", 150)
    assert lobby_room.teams[1].owner_connection == "sid-bob-2"


def test_bid_over_budget_rejected(lobby_room, recorder, scheduler, settings, make_lot) -> None:
    engine = _started(lobby_room, recorder, scheduler, settings, [make_lot("A")])
    with pytest.raises(ValidationError, match="No Budget!"):
        engine.place_bid("sid-bob", "bob", "T1", 1001)


def test_bid_while_paused_is_ignored(lobby_room, recorder, scheduler, settings, make_lot) -> None:
    engine = _started(lobby_room, recorder, scheduler, settings, [make_lot("A")])
    engine.toggle_timer("sid-host")
    with pytest.raises(StateConflictError):
        engine.place_bid("sid-bob", "bob", "T1", 150)


def test_bid_after_deadline_before_tick_is_ignored(lobby_room, recorder, scheduler, settings, make_lot, fake_time) -> None:
    engine = _started(lobby_room, recorder, scheduler, settings, [make_lot("A")])
    fake_time.advance(10.5)
    with pytest.raises(StateConflictError):
        engine.place_bid("sid-bob", "bob", "T1", 150)


def test_accepted_bid_restarts_clock(lobby_room, recorder, scheduler, settings, make_lot) -> None:
    engine = _started(lobby_room, recorder, scheduler, settings, [make_lot("A")])
    scheduler.advance(7)
    assert lobby_room.clock.remaining() == 3
    engine.place_bid("sid-bob", "bob", "T1", 150)
    assert lobby_room.clock.remaining() == 10
    scheduler.advance(9)
    assert lobby_room.phase is Phase.ACTIVE
    scheduler.advance(1)
    assert lobby_room.phase is Phase.SELLING


def test_ticks_count_down(lobby_room, recorder, scheduler, settings, make_lot) -> None:
    _started(lobby_room, recorder, scheduler, settings, [make_lot("A")])
    recorder.clear()
    scheduler.advance(3)
    ticks = [payload["remaining"] for event, payload in recorder.broadcasts if event == events.TIMER_TICK]
    assert ticks == [9, 8, 7]


@pytest.mark.regression
def test_expiry_sells_to_high_bidder(lobby_room, recorder, scheduler, settings, make_lot) -> None:
    lot = make_lot("Star", base_price=100)
    engine = _started(lobby_room, recorder, scheduler, settings, [lot, make_lot("Next")])
    engine.place_bid("sid-host", "host", "T0", 150)
    engine.place_bid("sid-bob", "bob", "T1", 200)
    scheduler.advance(10)

    bob = lobby_room.team("T1")
    assert lobby_room.phase is Phase.SELLING
    assert bob.budget == 800
    assert [e.name for e in bob.roster] == ["Star"]
    assert bob.roster[0].price == 200
    assert lobby_room.team("T0").budget == 1000
    assert lot.status is LotStatus.SOLD
    assert lot.sold_to == "T1"

    sale = recorder.last(events.SALE_FINALIZED)
    assert sale["sold"] is True
    assert sale["buyer"]["key"] == "T1"
    assert sale["price"] == 200
    assert events.TIMER_ENDED in recorder.events()

    scheduler.advance(settings.sale_cooldown_seconds)
    assert lobby_room.phase is Phase.ACTIVE
    assert lobby_room.current_lot.name == "Next"
    assert lobby_room.lot_index == 1


def test_expiry_without_bids_marks_unsold(lobby_room, recorder, scheduler, settings, make_lot) -> None:
    lot = make_lot("Nobody")
    _started(lobby_room, recorder, scheduler, settings, [lot, make_lot("Next")])
    scheduler.advance(10)
    assert lot.status is LotStatus.UNSOLD
    assert all(t.budget == 1000 and not t.roster for t in lobby_room.teams)
    assert recorder.last(events.SALE_FINALIZED)["sold"] is False


@pytest.mark.regression
def test_pause_freezes_countdown(lobby_room, recorder, scheduler, settings, make_lot) -> None:
    engine = _started(lobby_room, recorder, scheduler, settings, [make_lot("A"), make_lot("B")])
    engine.place_bid("sid-bob", "bob", "T1", 150)
    scheduler.advance(3)
    assert engine.toggle_timer("sid-host") is True
    assert recorder.last(events.TIMER_STATUS)["paused"] is True

    scheduler.advance(100)
    assert lobby_room.phase is Phase.ACTIVE
    assert lobby_room.clock.remaining() == 7

    assert engine.toggle_timer("sid-host") is False
    scheduler.advance(6)
    assert lobby_room.phase is Phase.ACTIVE
    scheduler.advance(1)
    assert lobby_room.phase is Phase.SELLING
    assert lobby_room.team("T1").roster[0].name == "A"


def test_only_host_toggles_timer(lobby_room, recorder, scheduler, settings, make_lot) -> None:
    engine = _started(lobby_room, recorder, scheduler, settings, [make_lot("A")])
    with pytest.raises(AuthorizationError):
        engine.toggle_timer("sid-bob")


def test_finalize_is_idempotent_per_lot(lobby_room, recorder, scheduler, settings, make_lot) -> None:
    engine = _started(lobby_room, recorder, scheduler, settings, [make_lot("A"), make_lot("B")])
    engine.place_bid("sid-bob", "bob", "T1", 150)
    engine.finalize_sale("sid-host")
    with pytest.raises(StateConflictError):
        engine.finalize_sale("sid-host")
    scheduler.advance(10)

    bob = lobby_room.team("T1")
    assert [e.name for e in bob.roster] == ["A"]
    assert bob.budget == 850
    assert recorder.events().count(events.SALE_FINALIZED) == 1
    assert lobby_room.current_lot.name == "B"


def test_host_finalize_stops_ticks(lobby_room, recorder, scheduler, settings, make_lot) -> None:
    engine = _started(lobby_room, recorder, scheduler, settings, [make_lot("A"), make_lot("B")])
    engine.finalize_sale("sid-host")
    assert lobby_room.timer_handle is None
    recorder.clear()
    scheduler.advance(3)
    assert events.TIMER_TICK not in recorder.events()


def test_last_lot_opens_squad_selection(lobby_room, recorder, scheduler, settings, make_lot) -> None:
    engine = _started(lobby_room, recorder, scheduler, settings, [make_lot("Only")])
    engine.place_bid("sid-host", "host", "T0", 100)
    scheduler.advance(10 + settings.sale_cooldown_seconds)

    assert lobby_room.phase is Phase.SQUAD_SELECTION
    assert lobby_room.current_lot is None
    assert lobby_room.timer_handle is None
    assert scheduler.pending == 0
    assert events.SQUAD_SELECTION_OPENED in recorder.events()


def test_empty_queue_goes_straight_to_squad_selection(lobby_room, recorder, scheduler, settings) -> None:
    _started(lobby_room, recorder, scheduler, settings, [])

    assert lobby_room.phase is Phase.SQUAD_SELECTION
    assert recorder.events() == [events.AUCTION_STARTED, events.SQUAD_SELECTION_OPENED]
    assert events.LOT_UPDATE not in recorder.events()
    assert scheduler.pending == 0


@pytest.mark.regression
def test_abandoned_room_is_removed_once_bidding_ends(lobby_room, registry, recorder, scheduler, settings, make_lot) -> None:
    engine = AuctionEngine(lobby_room, recorder, scheduler, settings, on_idle=registry.destroy_if_empty)
    engine.start_auction("sid-host", [make_lot("Only")])
    for sid in ("sid-host", "sid-bob"):
        registry.drop_participant(lobby_room, sid)
    assert not registry.destroy_if_empty(lobby_room)

    scheduler.advance(60)
    assert lobby_room.phase is Phase.SQUAD_SELECTION
    assert scheduler.pending == 0
    assert "ROOM1" not in registry


def test_occupied_room_survives_end_of_bidding(lobby_room, registry, recorder, scheduler, settings, make_lot) -> None:
    engine = AuctionEngine(lobby_room, recorder, scheduler, settings, on_idle=registry.destroy_if_empty)
    engine.start_auction("sid-host", [make_lot("Only")])
    registry.drop_participant(lobby_room, "sid-bob")

    scheduler.advance(60)
    assert lobby_room.phase is Phase.SQUAD_SELECTION
    assert "ROOM1" in registry


def test_end_auction_cancels_pending_advance(lobby_room, recorder, scheduler, settings, make_lot) -> None:
    engine = _started(lobby_room, recorder, scheduler, settings, [make_lot("A"), make_lot("B")])
    engine.finalize_sale("sid-host")
    engine.end_auction("sid-host")

    assert lobby_room.phase is Phase.SQUAD_SELECTION
    assert scheduler.pending == 0
    scheduler.advance(30)
    assert lobby_room.phase is Phase.SQUAD_SELECTION
    assert lobby_room.queue[1].status is LotStatus.PENDING


def test_end_auction_outside_bidding_is_conflict(lobby_room, recorder, scheduler, settings) -> None:
    engine = _engine(lobby_room, recorder, scheduler, settings)
    with pytest.raises(StateConflictError):
        engine.end_auction("sid-host")


def test_bids_rejected_after_auction_ends(lobby_room, recorder, scheduler, settings, make_lot) -> None:
    engine = _started(lobby_room, recorder, scheduler, settings, [make_lot("A")])
    engine.end_auction("sid-host")
    with pytest.raises(StateConflictError):
        engine.place_bid("sid-bob", "bob", "T1", 500)


def test_invalid_transition_rejected(lobby_room) -> None:
    with pytest.raises(StateConflictError):
        transition(lobby_room, Phase.COMPLETED)
    assert lobby_room.phase is Phase.LOBBY


@pytest.mark.regression
def test_full_auction_conserves_budget(lobby_room, recorder, scheduler, settings, make_lot) -> None:
    lots = [make_lot(f"P{i}", base_price=50) for i in range(6)]
    engine = _started(lobby_room, recorder, scheduler, settings, lots)
    for idx in range(len(lots)):
        bidder = ("sid-host", "host", "T0") if idx % 2 == 0 else ("sid-bob", "bob", "T1")
        if idx != 5:
            engine.place_bid(*bidder, 50 + idx * 10)
        scheduler.advance(10 + settings.sale_cooldown_seconds)

    assert lobby_room.phase is Phase.SQUAD_SELECTION
    for team in lobby_room.teams:
        assert team.budget + team.spent == team.starting_budget
        assert team.budget >= 0
    sold = [lot for lot in lots if lot.status is LotStatus.SOLD]
    assert len(sold) == 5
    assert lots[5].status is LotStatus.UNSOLD
    owners = [lot.sold_to for lot in sold]
    assert owners == ["T0", "T1", "T0", "T1", "T0"]
