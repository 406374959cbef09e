"""Receipt tier enumeration."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from functools import total_ordering


@total_ordering
class Tier(Enum):
    """Receipt tier, ordered by ascending monetary threshold.

    The lower bound of each tier is inclusive: a total that sits exactly on a
    threshold belongs to the higher tier.
    """

    STANDARD = "STANDARD"
    PREMIUM = "PREMIUM"
    LUXURY = "LUXURY"
    ULTRA = "ULTRA"

    @property
    def threshold(self) -> Decimal:
        return _THRESHOLDS[self]

    @property
    def rank(self) -> int:
        return _ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Tier):
            return NotImplemented
        return self.rank < other.rank

    @classmethod
    def for_total(cls, total: Decimal) -> Tier:
        for tier in reversed(_ORDER):
            if total >= tier.threshold:
                return tier
        return cls.STANDARD


_ORDER: tuple[Tier, ...] = (Tier.STANDARD, Tier.PREMIUM, Tier.LUXURY, Tier.ULTRA)

_THRESHOLDS: dict[Tier, Decimal] = {
    Tier.STANDARD: Decimal("0"),
    Tier.PREMIUM: Decimal("50"),
    Tier.LUXURY: Decimal("200"),
    Tier.ULTRA: Decimal("500"),
}
