"""Unit tests for the Tier enumeration."""

from decimal import Decimal

import pytest

from receiptmint.domain.receipt import Tier


class TestTierForTotal:
    """Tier boundaries: lower bounds are inclusive."""

    @pytest.mark.parametrize(
        ("total", "expected"),
        [
            ("0.01", Tier.STANDARD),
            ("12.20", Tier.STANDARD),
            ("49.99", Tier.STANDARD),
            ("50.00", Tier.PREMIUM),
            ("199.99", Tier.PREMIUM),
            ("200.00", Tier.LUXURY),
            ("499.99", Tier.LUXURY),
            ("500.00", Tier.ULTRA),
            ("1000000", Tier.ULTRA),
        ],
    )
    def test_boundaries(self, total, expected):
        assert Tier.for_total(Decimal(total)) is expected


class TestTierOrdering:
    def test_tiers_are_ordered_by_threshold(self):
        assert Tier.STANDARD < Tier.PREMIUM < Tier.LUXURY < Tier.ULTRA
        assert sorted([Tier.ULTRA, Tier.STANDARD, Tier.LUXURY, Tier.PREMIUM]) == [
            Tier.STANDARD,
            Tier.PREMIUM,
            Tier.LUXURY,
            Tier.ULTRA,
        ]

    def test_thresholds(self):
        assert Tier.PREMIUM.threshold == Decimal("50")
        assert Tier.LUXURY.threshold == Decimal("200")
        assert Tier.ULTRA.threshold == Decimal("500")

    def test_comparison_with_other_types_is_unsupported(self):
        with pytest.raises(TypeError):
            _ = Tier.STANDARD < 1
