from __future__ import annotations

import random

from .models import Lot
from .names import NameGenerator

MARQUEE_PRICE = 20_000_000
CAPPED_INCREMENT = 2_500_000
FOREIGN_PRICE = 15_000_000
INDIAN_PRICE = 10_000_000
DOMESTIC_PRICE = 2_500_000
DOMESTIC_INCREMENT = 500_000

# (set name, role)
CATEGORIES: tuple[tuple[str, str], ...] = (
    ("Batters", "batter"),
    ("All-Rounders", "allrounder"),
    ("Wicketkeepers", "wk"),
    ("Fast Bowlers", "fast"),
    ("Spinners", "spinner"),
)
MARQUEE_ROLES: tuple[str, ...] = ("batter", "bowler", "allrounder", "wk")


def _sample_quality(rng: random.Random, tier_plan: list[tuple[float, float, float]]) -> float:
    roll = rng.random()
    cumulative = 0.0
    for weight, low, high in tier_plan:
        cumulative += weight
        if roll <= cumulative:
            return rng.uniform(low, high)
    return rng.uniform(tier_plan[-1][1], tier_plan[-1][2])


def _ratings(role: str, quality: float, rng: random.Random) -> tuple[float, float, float]:
    """Batting, bowling and luck on a 0-100 scale for a role."""
    lowered = role.lower()
    if "all" in lowered:
        batting = 60 + quality * 25
        bowling = 60 + quality * 25
    elif any(marker in lowered for marker in ("bowl", "fast", "spin")):
        batting = 20 + quality * 30
        bowling = 70 + quality * 20
    else:
        batting = 40 + quality * 40
        bowling = 10 + quality * 40
    luck = 50 + rng.random() * 40
    return round(batting), round(bowling), round(luck)


def _make_lot(
    name_gen: NameGenerator,
    rng: random.Random,
    role: str,
    player_type: str,
    set_name: str,
    base_price: int,
    increment: int,
    tiers: list[tuple[float, float, float]],
) -> Lot:
    quality = _sample_quality(rng, tiers)
    batting, bowling, luck = _ratings(role, quality, rng)
    return Lot(
        name=name_gen.next_name(overseas=player_type == "Foreign"),
        role=role,
        base_price=base_price,
        increment=increment,
        batting=batting,
        bowling=bowling,
        luck=luck,
        player_type=player_type,
        category=set_name,
    )


def build_default_lots(
    seed: int | None = None,
    marquee_per_role: int = 2,
    foreign_per_category: int = 6,
    indian_per_category: int = 10,
    domestic_per_role: int = 15,
) -> list[Lot]:
    """Marquee set first, then each capped category, then the domestic set.

    Lots are shuffled within their set only, so set order is preserved.
    """
    rng = random.Random(seed)
    name_gen = NameGenerator(seed=seed)
    star_tiers = [(0.45, 0.85, 1.00), (0.55, 0.70, 0.85)]
    capped_tiers = [(0.10, 0.80, 1.00), (0.35, 0.60, 0.80), (0.55, 0.35, 0.60)]
    domestic_tiers = [(0.05, 0.60, 0.80), (0.45, 0.35, 0.60), (0.50, 0.10, 0.35)]

    queue: list[Lot] = []
    marquee = [
        _make_lot(
            name_gen,
            rng,
            role,
            rng.choice(["Foreign", "Indian"]),
            "Marquee Set",
            MARQUEE_PRICE,
            CAPPED_INCREMENT,
            star_tiers,
        )
        for role in MARQUEE_ROLES
        for _ in range(marquee_per_role)
    ]
    rng.shuffle(marquee)
    queue.extend(marquee)

    for set_name, role in CATEGORIES:
        capped = [
            _make_lot(name_gen, rng, role, "Foreign", f"{set_name} (Foreign)", FOREIGN_PRICE, CAPPED_INCREMENT, capped_tiers)
            for _ in range(foreign_per_category)
        ]
        capped.extend(
            _make_lot(name_gen, rng, role, "Indian", f"{set_name} (Indian)", INDIAN_PRICE, CAPPED_INCREMENT, capped_tiers)
            for _ in range(indian_per_category)
        )
        rng.shuffle(capped)
        queue.extend(capped)

    domestic = [
        _make_lot(name_gen, rng, role, "Uncapped", "Domestic Set", DOMESTIC_PRICE, DOMESTIC_INCREMENT, domestic_tiers)
        for role in ("batter", "bowler")
        for _ in range(domestic_per_role)
    ]
    rng.shuffle(domestic)
    queue.extend(domestic)
    return queue
