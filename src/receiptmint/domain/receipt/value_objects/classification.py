"""Classification result value object."""

from typing import NamedTuple

from receiptmint.domain.receipt.value_objects.tier import Tier


class Classification(NamedTuple):
    """Tier and category tags assigned to a transaction."""

    tier: Tier
    categories: frozenset[str]

    def sorted_categories(self) -> list[str]:
        return sorted(self.categories)
