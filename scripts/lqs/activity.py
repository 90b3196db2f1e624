"""
LQS Analytics — Activity Aggregator (Activity Mode)
=====================================================

Counts what happened inside a date window, independent of current status:

  leads_received  households whose lead date falls in the window
  quotes_created  distinct households with a quote dated in the window
  sales_closed    distinct households with a sale dated in the window

Premium is summed over every in-window sale row (a household selling
several policies contributes each one). Quotes and sales are attributed to
their household's lead source. No quote/close rate is derived here: the
three counts describe different households.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from models.lqs_models import DateRange, HouseholdRecord, QuoteRecord, SaleRecord
from scripts.lib.logger import setup_logger
from scripts.lqs.tally import SourceTally, tally_for

logger = setup_logger(__name__)


@dataclass
class ActivityTotals:
    leads_received: int = 0
    quotes_created: int = 0
    sales_closed: int = 0
    premium_sold_cents: int = 0
    quoted_policies: int = 0
    quoted_items: int = 0
    written_policies: int = 0
    written_items: int = 0
    by_source: Dict[Optional[str], SourceTally] = field(default_factory=dict)


def filter_leads_in_window(
    households: Iterable[HouseholdRecord], date_range: DateRange,
) -> List[HouseholdRecord]:
    """Keep households whose lead date (received, else created) is in the window."""
    return [h for h in households if date_range.contains(h.lead_date)]


def aggregate_activity(
    leads: Sequence[HouseholdRecord],
    quotes: Sequence[QuoteRecord],
    sales: Sequence[SaleRecord],
) -> ActivityTotals:
    """Aggregate in-window leads, quotes and sales per lead source."""
    totals = ActivityTotals()
    quoted_ids = set()
    sold_ids = set()

    for lead in leads:
        tally_for(totals.by_source, lead.lead_source_id).leads += 1

    for quote in quotes:
        tally = tally_for(totals.by_source, quote.lead_source_id)
        if quote.household_id:
            quoted_ids.add(quote.household_id)
            tally.quoted_household_ids.add(quote.household_id)
        tally.quoted_policies += 1
        tally.quoted_items += quote.items_quoted

    for sale in sales:
        tally = tally_for(totals.by_source, sale.lead_source_id)
        if sale.household_id:
            sold_ids.add(sale.household_id)
            tally.add_sales(sale.household_id, [sale])
        else:
            tally.premium_cents += sale.premium_cents
            tally.written_policies += sale.policies_sold
            tally.written_items += sale.items_sold

    totals.leads_received = len(leads)
    totals.quotes_created = len(quoted_ids)
    totals.sales_closed = len(sold_ids)
    totals.premium_sold_cents = sum(s.premium_cents for s in sales)
    totals.quoted_policies = len(quotes)
    totals.quoted_items = sum(q.items_quoted for q in quotes)
    totals.written_policies = sum(s.policies_sold for s in sales)
    totals.written_items = sum(s.items_sold for s in sales)

    logger.info(
        "Activity: %d leads, %d quoted households, %d sold households",
        totals.leads_received, totals.quotes_created, totals.sales_closed,
    )
    return totals
