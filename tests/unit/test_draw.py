"""Weighted drop selection tests."""

import random
import re
from collections import Counter

import pytest

from gameplug.loyalty.draw import generate_coupon_code, select_drop, total_weight, validate_drop_table

STARTER_DROPS = [
    {"type": "points", "rarity": "common", "weight": 50, "points_amount": 20},
    {"type": "points", "rarity": "common", "weight": 30, "points_amount": 50},
    {"type": "coupon", "rarity": "rare", "weight": 15, "discount_percent": 5},
    {"type": "coupon", "rarity": "epic", "weight": 4, "discount_percent": 15},
    {"type": "nothing", "rarity": "common", "weight": 1},
]


class TestSelectDrop:
    """Roulette-wheel selection over the stored drop order."""

    @pytest.mark.parametrize(
        ("r", "index"),
        [(0, 0), (49, 0), (50, 1), (79, 1), (80, 2), (94, 2), (95, 3), (98, 3), (99, 4)],
    )
    def test_cumulative_boundaries(self, r, index):
        """r picks the first drop whose cumulative weight exceeds it."""
        assert select_drop(STARTER_DROPS, lambda _n: r) is STARTER_DROPS[index]

    def test_draws_below_total_weight(self):
        seen = []

        def randbelow(n):
            seen.append(n)
            return 0

        select_drop(STARTER_DROPS, randbelow)
        assert seen == [100]

    def test_zero_weight_never_selected(self):
        drops = [{"type": "points", "weight": 0}, {"type": "nothing", "weight": 5}]
        for r in range(5):
            assert select_drop(drops, lambda _n, r=r: r) is drops[1]

    def test_rarity_does_not_bias(self):
        """Two drops with equal weight but different rarity share probability equally."""
        drops = [
            {"type": "points", "rarity": "common", "weight": 1},
            {"type": "points", "rarity": "legendary", "weight": 1},
        ]
        rng = random.Random(7)
        counts = Counter(select_drop(drops, rng.randrange)["rarity"] for _ in range(20_000))
        assert abs(counts["common"] / 20_000 - 0.5) < 0.02

    def test_distribution_matches_weights(self):
        """100k seeded draws land within 1% of weight / total for every drop."""
        rng = random.Random(20260301)
        n = 100_000
        counts = Counter(id(select_drop(STARTER_DROPS, rng.randrange)) for _ in range(n))
        for drop in STARTER_DROPS:
            expected = drop["weight"] / 100
            assert abs(counts[id(drop)] / n - expected) < 0.01

    def test_default_rng_is_csprng_and_in_range(self):
        for _ in range(1000):
            assert select_drop(STARTER_DROPS) in STARTER_DROPS


class TestValidateDropTable:
    """Malformed tables are rejected before any draw."""

    def test_empty_table(self):
        with pytest.raises(ValueError, match="empty"):
            validate_drop_table([])

    def test_zero_total_weight(self):
        with pytest.raises(ValueError, match="probability"):
            validate_drop_table([{"type": "points", "weight": 0}])

    def test_negative_weight(self):
        with pytest.raises(ValueError, match="non-negative"):
            validate_drop_table([{"type": "points", "weight": -1}, {"type": "nothing", "weight": 5}])

    def test_select_drop_rejects_empty(self):
        with pytest.raises(ValueError):
            select_drop([])

    def test_total_weight(self):
        assert total_weight(STARTER_DROPS) == 100


class TestCouponCode:
    """GP- prefix plus eight uppercase hex characters."""

    def test_format(self):
        assert re.fullmatch(r"GP-[0-9A-F]{8}", generate_coupon_code())

    def test_custom_prefix(self):
        assert generate_coupon_code("XY-").startswith("XY-")

    def test_codes_vary(self):
        assert len({generate_coupon_code() for _ in range(50)}) > 45
