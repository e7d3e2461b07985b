from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field

from .config import (
    BALLS_PER_OVER,
    MVP_POINTS_PER_FOUR,
    MVP_POINTS_PER_SIX,
    MVP_POINTS_PER_WICKET,
)
from .engine import InningsResult, Lineup, MatchResult, simulate_match
from .models import TeamRecord
from .schedule import build_round_robin

logger = logging.getLogger(__name__)

QUALIFIER_1 = "Qualifier 1"
ELIMINATOR = "Eliminator"
QUALIFIER_2 = "Qualifier 2"
FINAL = "Final"


@dataclass(frozen=True, slots=True)
class StandingRow:
    position: int
    key: str
    name: str
    played: int
    won: int
    lost: int
    points: int
    net_run_rate: float
    runs_scored: int
    runs_conceded: int
    overs_faced: str
    overs_bowled: str


@dataclass(frozen=True, slots=True)
class PlayerStats:
    name: str
    team_key: str
    team_name: str
    matches: int
    runs: int
    balls: int
    fours: int
    sixes: int
    wickets: int
    runs_conceded: int
    balls_bowled: int

    @property
    def mvp_points(self) -> int:
        return (
            self.runs
            + self.fours * MVP_POINTS_PER_FOUR
            + self.sixes * MVP_POINTS_PER_SIX
            + self.wickets * MVP_POINTS_PER_WICKET
        )


@dataclass(frozen=True, slots=True)
class Award:
    name: str
    team_name: str
    value: int


@dataclass(frozen=True, slots=True)
class TournamentResult:
    champion_key: str
    champion: str
    runner_up_key: str
    runner_up: str
    standings: tuple[StandingRow, ...]
    league_matches: tuple[MatchResult, ...]
    playoffs: tuple[MatchResult, ...]
    player_stats: tuple[PlayerStats, ...]
    orange_cap: Award | None
    purple_cap: Award | None
    most_valuable: Award | None
    captains: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class _PlayerTracker:
    name: str
    team_key: str
    team_name: str
    matches: int = 0
    runs: int = 0
    balls: int = 0
    fours: int = 0
    sixes: int = 0
    wickets: int = 0
    runs_conceded: int = 0
    balls_bowled: int = 0

    def freeze(self) -> PlayerStats:
        return PlayerStats(
            name=self.name,
            team_key=self.team_key,
            team_name=self.team_name,
            matches=self.matches,
            runs=self.runs,
            balls=self.balls,
            fours=self.fours,
            sixes=self.sixes,
            wickets=self.wickets,
            runs_conceded=self.runs_conceded,
            balls_bowled=self.balls_bowled,
        )


def _overs(balls: int) -> str:
    return f"{balls // BALLS_PER_OVER}.{balls % BALLS_PER_OVER}"


class TournamentSimulator:
    """Double round robin league followed by a playoff bracket."""

    def __init__(self, lineups: list[Lineup], rng: random.Random | None = None) -> None:
        if len(lineups) < 2:
            raise ValueError("A tournament needs at least two sides")
        self.lineups = list(lineups)
        self._rng = rng or random.Random()
        self._by_key = {lineup.key: lineup for lineup in self.lineups}
        self._records = {lineup.key: TeamRecord(key=lineup.key, name=lineup.name) for lineup in self.lineups}
        self._players: dict[tuple[str, str], _PlayerTracker] = {}
        for lineup in self.lineups:
            for player in lineup.players:
                self._tracker(lineup, player.name)

    def _tracker(self, lineup: Lineup, name: str) -> _PlayerTracker:
        key = (lineup.key, name)
        row = self._players.get(key)
        if row is None:
            row = _PlayerTracker(name=name, team_key=lineup.key, team_name=lineup.name)
            self._players[key] = row
        return row

    def get_standings(self) -> list[TeamRecord]:
        # sorted() is stable, so level sides keep their entry order.
        return sorted(
            self._records.values(),
            key=lambda r: (r.points, r.net_run_rate),
            reverse=True,
        )

    def _accumulate_innings(self, innings: InningsResult, batting: Lineup, bowling: Lineup) -> None:
        for card in innings.batting:
            if card.status == "dnb":
                continue
            row = self._tracker(batting, card.name)
            row.runs += card.runs
            row.balls += card.balls
            row.fours += card.fours
            row.sixes += card.sixes
        for card in innings.bowling:
            row = self._tracker(bowling, card.name)
            row.wickets += card.wickets
            row.runs_conceded += card.runs
            row.balls_bowled += card.balls

    def _accumulate_match(self, result: MatchResult) -> None:
        team1 = self._by_key[result.team1_key]
        team2 = self._by_key[result.team2_key]
        self._accumulate_innings(result.first_innings, team1, team2)
        self._accumulate_innings(result.second_innings, team2, team1)
        appeared: set[tuple[str, str]] = set()
        for lineup in (team1, team2):
            for player in lineup.players:
                appeared.add((lineup.key, player.name))
        for innings, lineup in ((result.first_innings, team1), (result.second_innings, team2)):
            for card in innings.batting:
                appeared.add((lineup.key, card.name))
        for key in appeared:
            if key in self._players:
                self._players[key].matches += 1

    def _record_league_match(self, result: MatchResult) -> None:
        first, second = result.first_innings, result.second_innings
        self._records[result.team1_key].register_match(
            runs_for=first.score,
            balls_faced=first.balls_for_run_rate,
            runs_against=second.score,
            balls_bowled=second.balls_for_run_rate,
            won=result.winner_key == result.team1_key,
        )
        self._records[result.team2_key].register_match(
            runs_for=second.score,
            balls_faced=second.balls_for_run_rate,
            runs_against=first.score,
            balls_bowled=first.balls_for_run_rate,
            won=result.winner_key == result.team2_key,
        )

    def _play(self, first: Lineup, second: Lineup, stage: str) -> MatchResult:
        result = simulate_match(first, second, stage=stage, rng=self._rng)
        self._accumulate_match(result)
        logger.debug(
            "%s: %s %s vs %s %s, %s won by %s",
            stage,
            result.team1_name,
            result.score1,
            result.team2_name,
            result.score2,
            result.winner_name,
            result.margin,
        )
        return result

    def _run_league(self) -> list[MatchResult]:
        matches: list[MatchResult] = []
        for number, (first, second) in enumerate(build_round_robin(self.lineups, games_per_matchup=2), start=1):
            result = self._play(first, second, f"Match {number}")
            self._record_league_match(result)
            matches.append(result)
        return matches

    def _run_playoffs(self, seeds: list[Lineup]) -> list[MatchResult]:
        if len(seeds) < 4:
            return [self._play(seeds[0], seeds[1], FINAL)]

        q1 = self._play(seeds[0], seeds[1], QUALIFIER_1)
        eliminator = self._play(seeds[2], seeds[3], ELIMINATOR)
        q2 = self._play(self._by_key[q1.loser_key], self._by_key[eliminator.winner_key], QUALIFIER_2)
        final = self._play(self._by_key[q1.winner_key], self._by_key[q2.winner_key], FINAL)
        return [q1, eliminator, q2, final]

    def _standing_rows(self) -> list[StandingRow]:
        return [
            StandingRow(
                position=idx,
                key=rec.key,
                name=rec.name,
                played=rec.played,
                won=rec.won,
                lost=rec.lost,
                points=rec.points,
                net_run_rate=round(rec.net_run_rate, 3),
                runs_scored=rec.runs_scored,
                runs_conceded=rec.runs_conceded,
                overs_faced=_overs(rec.balls_faced),
                overs_bowled=_overs(rec.balls_bowled),
            )
            for idx, rec in enumerate(self.get_standings(), start=1)
        ]

    def run(self) -> TournamentResult:
        league_matches = self._run_league()
        seeds = [self._by_key[rec.key] for rec in self.get_standings()]
        playoffs = self._run_playoffs(seeds)
        final = playoffs[-1]

        stats = [row.freeze() for row in self._players.values()]
        orange = max(stats, key=lambda s: s.runs, default=None)
        purple = max(stats, key=lambda s: s.wickets, default=None)
        mvp = max(stats, key=lambda s: s.mvp_points, default=None)

        logger.info(
            "Tournament complete: %s beat %s in the final (%d league matches)",
            final.winner_name,
            final.loser_name,
            len(league_matches),
        )
        return TournamentResult(
            champion_key=final.winner_key,
            champion=final.winner_name,
            runner_up_key=final.loser_key,
            runner_up=final.loser_name,
            standings=tuple(self._standing_rows()),
            league_matches=tuple(league_matches),
            playoffs=tuple(playoffs),
            player_stats=tuple(stats),
            orange_cap=Award(orange.name, orange.team_name, orange.runs) if orange else None,
            purple_cap=Award(purple.name, purple.team_name, purple.wickets) if purple else None,
            most_valuable=Award(mvp.name, mvp.team_name, mvp.mvp_points) if mvp else None,
            captains={lineup.key: lineup.captain for lineup in self.lineups},
        )


def simulate_tournament(lineups: list[Lineup], rng: random.Random | None = None) -> TournamentResult:
    return TournamentSimulator(lineups, rng=rng).run()
