"""Tier and category classification of transaction records."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from receiptmint.domain.receipt.value_objects import (
    Classification,
    LineItem,
    Tier,
)

# Merchant-name keyword groups; a merchant may match several groups
KEYWORD_GROUPS: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (("restaurant", "cafe", "bar", "grill"), ("food", "dining")),
    (("market", "grocery", "supermarket"), ("grocery",)),
    (("electronics", "tech", "digital", "computer"), ("electronics", "tech")),
    (("apparel", "clothing", "fashion", "wear"), ("fashion", "clothing")),
)

FALLBACK_CATEGORIES: frozenset[str] = frozenset({"receipt", "general"})


class ReceiptClassifier:
    """Pure classification of a validated transaction.

    No I/O and no failure modes: invalid input (e.g. a negative total) must
    be rejected before calling ``classify``.
    """

    def classify(
        self,
        total: Decimal | float | str,
        merchant_name: str,
        items: Iterable[LineItem] = (),
    ) -> Classification:
        amount = total if isinstance(total, Decimal) else Decimal(str(total))
        return Classification(
            tier=Tier.for_total(amount),
            categories=self.categories_for(merchant_name),
        )

    def categories_for(self, merchant_name: str) -> frozenset[str]:
        name = merchant_name.lower()
        tags: set[str] = set()
        for keywords, group_tags in KEYWORD_GROUPS:
            if any(keyword in name for keyword in keywords):
                tags.update(group_tags)
        return frozenset(tags) if tags else FALLBACK_CATEGORIES
