from collections import Counter

from auction_sim.schedule import build_round_robin, build_round_robin_days


def test_round_robin_count() -> None:
    games = build_round_robin(["A", "B", "C", "D"], games_per_matchup=2)
    assert len(games) == 12


def test_each_ordered_pair_once() -> None:
    teams = ["A", "B", "C", "D", "E"]
    games = build_round_robin(teams, games_per_matchup=2)
    assert len(games) == 20
    assert Counter(games) == Counter((a, b) for a in teams for b in teams if a != b)


def test_nobody_plays_twice_in_a_day() -> None:
    for day in build_round_robin_days(["A", "B", "C", "D", "E", "F"]):
        sides = [team for game in day for team in game]
        assert len(sides) == len(set(sides))


def test_two_teams_meet_twice() -> None:
    assert build_round_robin(["A", "B"]) == [("A", "B"), ("B", "A")]


def test_too_few_teams() -> None:
    assert build_round_robin(["A"]) == []
