from __future__ import annotations

from typing import Iterable, TypeVar

T = TypeVar("T")


def _single_round_days(teams: list[T]) -> list[list[tuple[T, T]]]:
    """Build one full round-robin split into match days."""
    if len(teams) < 2:
        return []

    # Circle method: each side plays at most once per day.
    rotating: list[T | None] = list(teams)
    if len(rotating) % 2 == 1:
        rotating.append(None)

    rounds = len(rotating) - 1
    half = len(rotating) // 2
    days: list[list[tuple[T, T]]] = []

    for round_idx in range(rounds):
        day_games: list[tuple[T, T]] = []
        for idx in range(half):
            first = rotating[idx]
            second = rotating[-(idx + 1)]
            if first is None or second is None:
                continue
            # Alternate who bats first by round.
            if round_idx % 2 == 1:
                first, second = second, first
            day_games.append((first, second))
        days.append(day_games)

        # Keep first fixed, rotate the rest.
        rotating = [rotating[0], rotating[-1], *rotating[1:-1]]

    return days


def build_round_robin_days(teams: Iterable[T], games_per_matchup: int = 2) -> list[list[tuple[T, T]]]:
    team_list = list(teams)
    if len(team_list) < 2 or games_per_matchup < 1:
        return []

    base_days = _single_round_days(team_list)
    season_days: list[list[tuple[T, T]]] = []
    for matchup_index in range(games_per_matchup):
        flip = matchup_index % 2 == 1
        for day in base_days:
            season_days.append([(b, a) for a, b in day] if flip else list(day))
    return season_days


def build_round_robin(teams: Iterable[T], games_per_matchup: int = 2) -> list[tuple[T, T]]:
    """Every ordered pairing once per two legs; the first-named side bats first."""
    return [game for day in build_round_robin_days(teams, games_per_matchup) for game in day]
