"""
LQS Analytics — Household Funnel (Pipeline Mode)
==================================================

Walks every household once and places it in exactly one funnel bucket by
its *current* status:

  open    status == 'lead' (or any status outside the funnel)
  quoted  status == 'quoted'
  sold    status == 'sold'

Rates use cumulative totals (quoted includes sold). Premium counts only
sales of households whose current status is sold.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from models.lqs_models import STATUS_QUOTED, STATUS_SOLD, HouseholdRecord
from scripts.lib.logger import setup_logger
from scripts.lib.utils import percent
from scripts.lqs.tally import SourceTally, tally_for

logger = setup_logger(__name__)


@dataclass
class PipelineFunnel:
    open_leads: int = 0
    quoted_households: int = 0
    sold_households: int = 0
    total_leads: int = 0
    total_quoted: int = 0
    total_sold: int = 0
    premium_sold_cents: int = 0
    quote_rate: float = 0.0
    close_rate: float = 0.0
    by_source: Dict[Optional[str], SourceTally] = field(default_factory=dict)


def unique_households(households: Iterable[HouseholdRecord]) -> List[HouseholdRecord]:
    """Drop repeated ids (offset pages can overlap while rows are being inserted)."""
    seen = set()
    unique = []
    for household in households:
        if household.id in seen:
            continue
        seen.add(household.id)
        unique.append(household)
    return unique


def aggregate_pipeline(households: Iterable[HouseholdRecord]) -> PipelineFunnel:
    """Classify households by current status and tally them per lead source."""
    funnel = PipelineFunnel()
    households = unique_households(households)

    for household in households:
        status = household.status
        tally = tally_for(funnel.by_source, household.lead_source_id)
        tally.leads += 1

        # Every quote on the household counts toward quoted volume
        tally.quoted_policies += len(household.quotes)
        tally.quoted_items += sum(q.items_quoted for q in household.quotes)

        if status == STATUS_SOLD:
            funnel.sold_households += 1
            tally.quoted_household_ids.add(household.id)
            tally.add_sales(household.id, household.sales)
        elif status == STATUS_QUOTED:
            funnel.quoted_households += 1
            tally.quoted_household_ids.add(household.id)
        else:
            # lead, or a status outside the funnel
            funnel.open_leads += 1

    funnel.total_leads = len(households)
    funnel.total_quoted = funnel.quoted_households + funnel.sold_households
    funnel.total_sold = funnel.sold_households
    funnel.premium_sold_cents = sum(t.premium_cents for t in funnel.by_source.values())
    funnel.quote_rate = percent(funnel.total_quoted, funnel.total_leads, default=0.0)
    funnel.close_rate = percent(funnel.total_sold, funnel.total_quoted, default=0.0)

    logger.info(
        "Pipeline funnel: %d households (%d open, %d quoted, %d sold) across %d sources",
        funnel.total_leads, funnel.open_leads, funnel.quoted_households,
        funnel.sold_households, len(funnel.by_source),
    )
    return funnel
