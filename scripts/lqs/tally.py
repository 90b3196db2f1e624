"""
Per-lead-source counters shared by the pipeline and activity aggregators.

Quoted and sold households are tracked as id sets so a household counts
once per stage no matter how many quote or sale rows it has.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Set

from models.lqs_models import SaleRecord
from scripts.lib.utils import percent


@dataclass
class SourceTally:
    leads: int = 0
    quoted_household_ids: Set[str] = field(default_factory=set)
    sold_household_ids: Set[str] = field(default_factory=set)
    premium_cents: int = 0
    quoted_policies: int = 0
    quoted_items: int = 0
    written_policies: int = 0
    written_items: int = 0
    # household id -> distinct product types sold
    products_by_household: Dict[str, Set[str]] = field(default_factory=dict)

    @property
    def quoted_households(self) -> int:
        return len(self.quoted_household_ids)

    @property
    def sold_households(self) -> int:
        return len(self.sold_household_ids)

    @property
    def bundled_households(self) -> int:
        return sum(1 for products in self.products_by_household.values() if len(products) >= 2)

    def add_sales(self, household_id: str, sales: Iterable[SaleRecord]) -> None:
        """Record sold household, premium, written counts and products."""
        self.sold_household_ids.add(household_id)
        products = self.products_by_household.setdefault(household_id, set())
        for sale in sales:
            self.premium_cents += sale.premium_cents
            self.written_policies += sale.policies_sold
            self.written_items += sale.items_sold
            if sale.product_type:
                products.add(sale.product_type)


def tally_for(tallies: Dict[Optional[str], SourceTally], source_id: Optional[str]) -> SourceTally:
    """Get or create the tally for a lead source (None = unattributed)."""
    if source_id not in tallies:
        tallies[source_id] = SourceTally()
    return tallies[source_id]


def bundle_ratio(tallies: Iterable[SourceTally]) -> Optional[float]:
    """Share of sold households (across tallies) with 2+ product types."""
    sold = bundled = 0
    for tally in tallies:
        sold += len(tally.products_by_household)
        bundled += tally.bundled_households
    return percent(bundled, sold)
