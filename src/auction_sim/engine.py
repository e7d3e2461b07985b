from __future__ import annotations

import random
from dataclasses import dataclass, field

from .config import (
    BALLS_PER_OVER,
    BOWLER_BALL_QUOTA,
    DEATH_OVERS_START,
    IMPACT_SUB_AFTER_WICKETS,
    MAX_LEGAL_BALLS,
    MAX_WICKETS,
    MIN_BOWLING_OPTIONS,
    OVERS_PER_INNINGS,
    PITCH_PROFILES,
    POWERPLAY_OVERS,
)
from .models import RosterEntry

WIDE = "wide"
NO_BALL = "no-ball"

POWERPLAY = "powerplay"
MIDDLE = "middle"
DEATH = "death"


@dataclass(frozen=True, slots=True)
class Pitch:
    name: str
    run_boost: int
    luck_shift: int


PITCHES: tuple[Pitch, ...] = tuple(
    Pitch(name=name, run_boost=boost, luck_shift=shift) for name, (boost, shift) in PITCH_PROFILES.items()
)
BALANCED_PITCH = next(p for p in PITCHES if p.run_boost == 0 and p.luck_shift == 0)


@dataclass(slots=True)
class Lineup:
    """One side as it takes the field: batting order, impact reserve, captain."""

    key: str
    name: str
    players: list[RosterEntry]
    reserve: RosterEntry | None = None
    captain: str = ""


@dataclass(frozen=True, slots=True)
class Delivery:
    runs: int
    wicket: bool = False
    extra: str | None = None
    boundary: bool = False

    @property
    def legal(self) -> bool:
        return self.extra is None


@dataclass(frozen=True, slots=True)
class BallEvent:
    over: int
    ball: int
    batter: str
    bowler: str
    runs: int
    extra: str | None
    wicket: bool
    free_hit: bool


@dataclass(frozen=True, slots=True)
class BattingCard:
    name: str
    runs: int
    balls: int
    fours: int
    sixes: int
    status: str


@dataclass(frozen=True, slots=True)
class BowlingCard:
    name: str
    balls: int
    runs: int
    wickets: int

    @property
    def overs(self) -> str:
        return f"{self.balls // BALLS_PER_OVER}.{self.balls % BALLS_PER_OVER}"

    @property
    def economy(self) -> float:
        if self.balls <= 0:
            return 0.0
        return round(self.runs / (self.balls / BALLS_PER_OVER), 2)


@dataclass(frozen=True, slots=True)
class InningsResult:
    team_key: str
    team_name: str
    score: int
    wickets: int
    wicket_cap: int
    legal_balls: int
    all_out: bool
    target: int | None
    batting: tuple[BattingCard, ...]
    bowling: tuple[BowlingCard, ...]
    ball_log: tuple[BallEvent, ...]

    @property
    def overs(self) -> str:
        return f"{self.legal_balls // BALLS_PER_OVER}.{self.legal_balls % BALLS_PER_OVER}"

    @property
    def balls_for_run_rate(self) -> int:
        # An all-out side is charged its full allocation.
        return MAX_LEGAL_BALLS if self.all_out else self.legal_balls


@dataclass(frozen=True, slots=True)
class MatchResult:
    stage: str
    team1_key: str
    team1_name: str
    team2_key: str
    team2_name: str
    pitch: str
    first_innings: InningsResult
    second_innings: InningsResult
    winner_key: str
    winner_name: str
    loser_key: str
    loser_name: str
    margin: str
    tied: bool
    top_scorer: str
    top_score: int
    best_bowler: str
    best_wickets: int

    @property
    def score1(self) -> str:
        return f"{self.first_innings.score}/{self.first_innings.wickets}"

    @property
    def score2(self) -> str:
        return f"{self.second_innings.score}/{self.second_innings.wickets}"


@dataclass(slots=True)
class _BatterTally:
    name: str
    runs: int = 0
    balls: int = 0
    fours: int = 0
    sixes: int = 0
    status: str = "dnb"

    def freeze(self) -> BattingCard:
        return BattingCard(self.name, self.runs, self.balls, self.fours, self.sixes, self.status)


@dataclass(slots=True)
class _BowlerTally:
    name: str
    balls: int = 0
    runs: int = 0
    wickets: int = 0

    def freeze(self) -> BowlingCard:
        return BowlingCard(self.name, self.balls, self.runs, self.wickets)


@dataclass(slots=True)
class _InningsState:
    order: list[RosterEntry]
    cards: list[_BatterTally]
    striker: int | None
    non_striker: int | None
    next_in: int
    max_wickets: int
    target: int | None
    score: int = 0
    wickets: int = 0
    legal_balls: int = 0
    free_hit: bool = False
    impact_used: bool = False
    log: list[BallEvent] = field(default_factory=list)

    def finished(self) -> bool:
        if self.striker is None or self.wickets >= self.max_wickets:
            return True
        if self.legal_balls >= MAX_LEGAL_BALLS:
            return True
        return self.target is not None and self.score >= self.target


def innings_phase(over: int) -> str:
    if over < POWERPLAY_OVERS:
        return POWERPLAY
    if over >= DEATH_OVERS_START:
        return DEATH
    return MIDDLE


def chase_pressure(score: int, legal_balls: int, target: int | None) -> int:
    modifier = 0
    if target is not None:
        balls_left = MAX_LEGAL_BALLS - legal_balls
        runs_left = target - score
        if balls_left > 0:
            required_rate = runs_left / (balls_left / BALLS_PER_OVER)
            if required_rate > 10:
                modifier += 1
            if required_rate > 12:
                modifier += 2
    # Soft cap: collapses become likely past 260.
    if score > 260:
        modifier += 2
    return modifier


def roll_factor(bowler: RosterEntry, phase: str, pitch: Pitch, modifier: int, rng: random.Random) -> int:
    factor = rng.randint(1, 10) + modifier + pitch.luck_shift
    if bowler.bowling > 85:
        factor += 2
    elif bowler.bowling > 75:
        factor += 1
    if phase == DEATH:
        factor += 1
    elif phase == POWERPLAY:
        factor -= 1
    if rng.random() < bowler.bowling / 100:
        factor += 1
    return max(1, factor)


def outcome_for(factor: int, batter: RosterEntry, bowler: RosterEntry, pitch: Pitch, rng: random.Random) -> Delivery:
    """Map an adjusted factor through the outcome thresholds."""
    if factor >= 9:
        return Delivery(runs=0, wicket=True)
    if factor >= 7:
        return Delivery(runs=6 if rng.random() < batter.batting / 100 else 4, boundary=True)
    if factor >= 5:
        return Delivery(runs=4 if rng.random() < 0.5 else 6, boundary=True)
    if factor <= 1:
        return Delivery(runs=1, extra=WIDE if rng.random() < 0.7 else NO_BALL)

    if factor == 4:
        runs = 2 if rng.random() < 0.5 else 3
    elif factor == 3:
        runs = 1
    else:
        runs = 0
    runs = min(3, max(0, runs + pitch.run_boost))
    if bowler.bowling > 85:
        runs = max(0, runs - 1)
    return Delivery(runs=runs)


def bowl_delivery(
    batter: RosterEntry,
    bowler: RosterEntry,
    phase: str,
    pitch: Pitch,
    modifier: int,
    rng: random.Random,
) -> Delivery:
    factor = roll_factor(bowler, phase, pitch, modifier, rng)
    return outcome_for(factor, batter, bowler, pitch, rng)


def bowling_pool(players: list[RosterEntry]) -> list[RosterEntry]:
    specialists = [p for p in players if p.can_bowl]
    if len(specialists) >= MIN_BOWLING_OPTIONS:
        return specialists
    lower_order = players[5:]
    return lower_order if lower_order else players[:5]


def _has_quota(bowler: RosterEntry, balls_by_bowler: dict[str, int]) -> bool:
    return balls_by_bowler.get(bowler.name, 0) + BALLS_PER_OVER <= BOWLER_BALL_QUOTA


def pick_bowler(
    pool: list[RosterEntry],
    everyone: list[RosterEntry],
    balls_by_bowler: dict[str, int],
    over: int,
    previous: str | None = None,
) -> RosterEntry | None:
    """Rotate through the pool, skipping anyone whose quota is spent."""
    rotation = [pool[(over + step) % len(pool)] for step in range(len(pool))] if pool else []
    for candidates in (rotation, everyone):
        fresh = [p for p in candidates if _has_quota(p, balls_by_bowler)]
        if not fresh:
            continue
        for candidate in fresh:
            if candidate.name != previous:
                return candidate
        return fresh[0]
    return None


def _swap_strike(state: _InningsState) -> None:
    if state.striker is not None and state.non_striker is not None:
        state.striker, state.non_striker = state.non_striker, state.striker


def _bring_in_impact(state: _InningsState, reserve: RosterEntry | None) -> None:
    if reserve is None or state.impact_used or state.wickets < IMPACT_SUB_AFTER_WICKETS:
        return
    last = len(state.order) - 1
    # Any index below next_in has already walked out.
    if last < 2 or last < state.next_in or state.cards[last].status != "dnb":
        return
    state.order[last] = reserve
    state.cards[last] = _BatterTally(reserve.name)
    state.impact_used = True


def simulate_innings(
    batting: Lineup,
    bowling: Lineup,
    pitch: Pitch = BALANCED_PITCH,
    rng: random.Random | None = None,
    target: int | None = None,
) -> InningsResult:
    rng = rng or random.Random()
    order = list(batting.players)
    cards = [_BatterTally(p.name) for p in order]
    for idx in range(min(2, len(cards))):
        cards[idx].status = "not out"

    state = _InningsState(
        order=order,
        cards=cards,
        striker=0 if order else None,
        non_striker=1 if len(order) > 1 else None,
        next_in=2,
        max_wickets=max(1, min(MAX_WICKETS, len(order) - 1)),
        target=target,
    )

    fielders = list(bowling.players)
    pool = bowling_pool(fielders)
    balls_by_bowler: dict[str, int] = {}
    bowler_cards: dict[str, _BowlerTally] = {}
    previous_bowler: str | None = None

    for over in range(OVERS_PER_INNINGS):
        if state.finished():
            break
        bowler = pick_bowler(pool, fielders, balls_by_bowler, over, previous_bowler)
        if bowler is None:
            break
        previous_bowler = bowler.name
        tally = bowler_cards.setdefault(bowler.name, _BowlerTally(bowler.name))
        phase = innings_phase(over)

        legal_in_over = 0
        while legal_in_over < BALLS_PER_OVER and not state.finished():
            striker_idx = state.striker
            batter = state.order[striker_idx]
            batter_card = state.cards[striker_idx]
            modifier = chase_pressure(state.score, state.legal_balls, state.target)
            delivery = bowl_delivery(batter, bowler, phase, pitch, modifier, rng)

            on_free_hit = state.free_hit
            if delivery.wicket and on_free_hit:
                delivery = Delivery(runs=0)

            state.score += delivery.runs
            tally.runs += delivery.runs

            if delivery.legal:
                legal_in_over += 1
                state.legal_balls += 1
                batter_card.balls += 1
                tally.balls += 1
                balls_by_bowler[bowler.name] = balls_by_bowler.get(bowler.name, 0) + 1
                state.free_hit = False
                batter_card.runs += delivery.runs
                if delivery.boundary and delivery.runs == 4:
                    batter_card.fours += 1
                elif delivery.boundary and delivery.runs == 6:
                    batter_card.sixes += 1
            elif delivery.extra == NO_BALL:
                state.free_hit = True

            state.log.append(
                BallEvent(
                    over=over,
                    ball=legal_in_over if delivery.legal else legal_in_over + 1,
                    batter=batter.name,
                    bowler=bowler.name,
                    runs=delivery.runs,
                    extra=delivery.extra,
                    wicket=delivery.wicket,
                    free_hit=on_free_hit,
                )
            )

            if delivery.wicket:
                state.wickets += 1
                tally.wickets += 1
                batter_card.status = "out"
                if state.next_in < len(state.order):
                    state.striker = state.next_in
                    state.cards[state.next_in].status = "not out"
                    state.next_in += 1
                else:
                    state.striker = None
            elif delivery.legal and delivery.runs % 2 == 1:
                _swap_strike(state)

        if legal_in_over == BALLS_PER_OVER:
            _swap_strike(state)
        _bring_in_impact(state, batting.reserve)

    return InningsResult(
        team_key=batting.key,
        team_name=batting.name,
        score=state.score,
        wickets=state.wickets,
        wicket_cap=state.max_wickets,
        legal_balls=state.legal_balls,
        all_out=state.wickets >= state.max_wickets,
        target=target,
        batting=tuple(card.freeze() for card in state.cards),
        bowling=tuple(card.freeze() for card in bowler_cards.values()),
        ball_log=tuple(state.log),
    )


def simulate_match(
    team1: Lineup,
    team2: Lineup,
    stage: str = "League",
    rng: random.Random | None = None,
    pitch: Pitch | None = None,
) -> MatchResult:
    """Team 1 bats first. A level score goes to the side batting first."""
    rng = rng or random.Random()
    pitch = pitch or rng.choice(PITCHES)

    first = simulate_innings(team1, team2, pitch, rng)
    second = simulate_innings(team2, team1, pitch, rng, target=first.score + 1)

    tied = first.score == second.score
    if second.score > first.score:
        winner, loser = team2, team1
        margin = f"{second.wicket_cap - second.wickets} wkts"
    else:
        winner, loser = team1, team2
        margin = f"{first.score - second.score} runs"

    best_bat = max((*first.batting, *second.batting), key=lambda c: c.runs, default=None)
    best_bowl = max((*first.bowling, *second.bowling), key=lambda c: c.wickets, default=None)

    return MatchResult(
        stage=stage,
        team1_key=team1.key,
        team1_name=team1.name,
        team2_key=team2.key,
        team2_name=team2.name,
        pitch=pitch.name,
        first_innings=first,
        second_innings=second,
        winner_key=winner.key,
        winner_name=winner.name,
        loser_key=loser.key,
        loser_name=loser.name,
        margin=margin,
        tied=tied,
        top_scorer=best_bat.name if best_bat else "-",
        top_score=best_bat.runs if best_bat else 0,
        best_bowler=best_bowl.name if best_bowl else "-",
        best_wickets=best_bowl.wickets if best_bowl else 0,
    )
