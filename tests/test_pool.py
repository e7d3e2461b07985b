from auction_sim.models import LotStatus
from auction_sim.pool import DOMESTIC_PRICE, MARQUEE_PRICE, build_default_lots


def test_pool_shape() -> None:
    lots = build_default_lots(seed=4)
    assert len(lots) == 8 + 5 * 16 + 30
    assert all(lot.base_price == MARQUEE_PRICE for lot in lots[:8])
    assert all(lot.base_price == DOMESTIC_PRICE for lot in lots[-30:])
    assert all(lot.status is LotStatus.PENDING for lot in lots)


def test_names_unique_and_ratings_in_range() -> None:
    lots = build_default_lots(seed=11)
    assert len({lot.name for lot in lots}) == len(lots)
    for lot in lots:
        assert 0 <= lot.batting <= 100
        assert 0 <= lot.bowling <= 100
        assert 0 <= lot.luck <= 100


def test_seed_is_repeatable() -> None:
    assert [lot.name for lot in build_default_lots(seed=3)] == [lot.name for lot in build_default_lots(seed=3)]
