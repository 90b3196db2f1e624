"""
LQS Analytics — Producer Detail
=================================

Drill-down for one team member (or unassigned work):

  quotedBy  households the producer quoted
  soldBy    households the producer sold

Once the household set is resolved, each household's *full* quote and sale
history is aggregated, whoever created the rows, to show total activity on
the households this producer touched. Produces a summary, lead-source and
product-type breakdowns and a trend series (weekly for windows up to 90
days, monthly otherwise).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from models.lqs_models import (
    UNASSIGNED,
    UNKNOWN,
    DateRange,
    HouseholdRecord,
    LeadSourceRecord,
    ProducerDetailData,
    ProducerHouseholdRow,
    ProducerLeadSourceBreakdown,
    ProducerQuoteDetail,
    ProducerSaleDetail,
    ProducerSummary,
    ProducerViewMode,
    ProductTypeBreakdown,
    TeamMemberRecord,
    TrendDataPoint,
)
from scripts.lib.errors import InvalidViewModeError
from scripts.lib.logger import setup_logger
from scripts.lib.utils import percent
from scripts.lqs.date_window import period_key, period_label, use_weekly_buckets
from scripts.lqs.record_source import LqsRecordSource, fetch_concurrently
from scripts.lqs.spend import lead_source_name

logger = setup_logger(__name__)

OTHER_PRODUCT = "Other"


def parse_view_mode(value) -> ProducerViewMode:
    if isinstance(value, ProducerViewMode):
        return value
    try:
        return ProducerViewMode(value)
    except ValueError:
        raise InvalidViewModeError(str(value), [m.value for m in ProducerViewMode]) from None


def _member_name(team_member_id: Optional[str], names: Dict[str, str]) -> Optional[str]:
    if not team_member_id:
        return None
    return names.get(team_member_id, UNKNOWN)


def build_household_row(
    household: HouseholdRecord,
    source_names: Dict[str, str],
    member_names: Dict[str, str],
) -> ProducerHouseholdRow:
    quotes = [
        ProducerQuoteDetail(
            quote_date=q.quote_date,
            product_type=q.product_type,
            items_quoted=q.items_quoted,
            premium_cents=q.premium_cents,
            team_member_name=_member_name(q.team_member_id, member_names),
        )
        for q in household.quotes
    ]
    sales = [
        ProducerSaleDetail(
            sale_date=s.sale_date,
            product_type=s.product_type,
            items_sold=s.items_sold,
            policies_sold=s.policies_sold,
            premium_cents=s.premium_cents,
            team_member_name=_member_name(s.team_member_id, member_names),
        )
        for s in household.sales
    ]
    return ProducerHouseholdRow(
        id=household.id,
        first_name=household.first_name,
        last_name=household.last_name,
        status=household.status,
        lead_received_date=household.lead_received_date,
        lead_source_id=household.lead_source_id,
        lead_source_name=lead_source_name(household.lead_source_id, source_names),
        quoted_policies=len(quotes),
        quoted_items=sum(q.items_quoted for q in quotes),
        quoted_premium_cents=sum(q.premium_cents for q in quotes),
        sold_policies=sum(s.policies_sold for s in sales),
        sold_items=sum(s.items_sold for s in sales),
        sold_premium_cents=sum(s.premium_cents for s in sales),
        quotes=quotes,
        sales=sales,
    )


def _summary(rows: List[ProducerHouseholdRow]) -> ProducerSummary:
    quoted = sum(1 for r in rows if r.quoted_policies > 0)
    sold = sum(1 for r in rows if r.sold_policies > 0)
    return ProducerSummary(
        total_households=len(rows),
        quoted_households=quoted,
        sold_households=sold,
        close_ratio=percent(sold, quoted),
        quoted_premium_cents=sum(r.quoted_premium_cents for r in rows),
        sold_premium_cents=sum(r.sold_premium_cents for r in rows),
    )


def _by_lead_source(rows: List[ProducerHouseholdRow]) -> List[ProducerLeadSourceBreakdown]:
    groups: Dict[Optional[str], ProducerLeadSourceBreakdown] = {}
    for row in rows:
        entry = groups.get(row.lead_source_id)
        if entry is None:
            entry = groups[row.lead_source_id] = ProducerLeadSourceBreakdown(
                lead_source_id=row.lead_source_id,
                lead_source_name=row.lead_source_name,
            )
        entry.total_households += 1
        if row.quoted_policies > 0:
            entry.quoted_households += 1
        if row.sold_policies > 0:
            entry.sold_households += 1
            entry.premium_cents += row.sold_premium_cents

    breakdown = list(groups.values())
    for entry in breakdown:
        entry.close_ratio = percent(entry.sold_households, entry.quoted_households)
    breakdown.sort(key=lambda e: e.premium_cents, reverse=True)
    return breakdown


def _by_product_type(rows: List[ProducerHouseholdRow]) -> List[ProductTypeBreakdown]:
    groups: Dict[str, ProductTypeBreakdown] = {}

    def entry_for(product_type: Optional[str]) -> ProductTypeBreakdown:
        key = product_type or OTHER_PRODUCT
        if key not in groups:
            groups[key] = ProductTypeBreakdown(product_type=key)
        return groups[key]

    for row in rows:
        for quote in row.quotes:
            entry = entry_for(quote.product_type)
            entry.quoted_count += 1
            entry.quoted_premium_cents += quote.premium_cents
        for sale in row.sales:
            entry = entry_for(sale.product_type)
            entry.sold_count += 1
            entry.sold_premium_cents += sale.premium_cents

    breakdown = list(groups.values())
    for entry in breakdown:
        entry.close_ratio = percent(entry.sold_count, entry.quoted_count)
    breakdown.sort(key=lambda e: e.sold_premium_cents, reverse=True)
    return breakdown


@dataclass
class _Period:
    quoted: Set[str] = field(default_factory=set)
    sold: Set[str] = field(default_factory=set)
    premium_cents: int = 0


def build_trend(rows: Iterable[ProducerHouseholdRow], date_range: Optional[DateRange]) -> List[TrendDataPoint]:
    """Quoted/sold households and premium per observed week or month."""
    weekly = use_weekly_buckets(date_range)
    periods: Dict[str, _Period] = {}

    for row in rows:
        for quote in row.quotes:
            if quote.quote_date:
                key = period_key(quote.quote_date, weekly)
                periods.setdefault(key, _Period()).quoted.add(row.id)
        for sale in row.sales:
            if sale.sale_date:
                period = periods.setdefault(period_key(sale.sale_date, weekly), _Period())
                period.sold.add(row.id)
                period.premium_cents += sale.premium_cents

    return [
        TrendDataPoint(
            period_key=key,
            period_label=period_label(key, weekly),
            quoted_households=len(period.quoted),
            sold_households=len(period.sold),
            premium_cents=period.premium_cents,
        )
        for key, period in sorted(periods.items())
    ]


def compute_producer_detail(
    households: Iterable[HouseholdRecord],
    team_member_id: Optional[str],
    view_mode: ProducerViewMode,
    date_range: Optional[DateRange] = None,
    lead_sources: Iterable[LeadSourceRecord] = (),
    team_members: Iterable[TeamMemberRecord] = (),
) -> ProducerDetailData:
    """Pure computation of the producer drill-down from fetched households."""
    source_names = {s.id: s.name for s in lead_sources}
    member_names = {m.id: m.name for m in team_members}

    seen = set()
    rows = []
    for household in households:
        if household.id not in seen:
            seen.add(household.id)
            rows.append(build_household_row(household, source_names, member_names))

    if team_member_id is None:
        member_name = UNASSIGNED
    else:
        member_name = member_names.get(team_member_id, UNKNOWN)

    return ProducerDetailData(
        team_member_id=team_member_id,
        team_member_name=member_name,
        view_mode=view_mode,
        summary=_summary(rows),
        by_lead_source=_by_lead_source(rows),
        by_product_type=_by_product_type(rows),
        trend_data=build_trend(rows, date_range),
        households=rows,
    )


def load_producer_detail(
    agency_id: str,
    team_member_id: Optional[str],
    view_mode,
    date_range: Optional[DateRange] = None,
    source: LqsRecordSource = None,
) -> ProducerDetailData:
    """
    Fetch and compute one producer's drill-down.

    Args:
        agency_id: Agency the producer belongs to.
        team_member_id: Team member id, or None for unassigned quotes/sales.
        view_mode: "quotedBy" or "soldBy".
        date_range: Optional window applied to the quotes/sales that
            select households.
        source: Record source (default: Supabase-backed for agency_id).

    Raises:
        InvalidViewModeError: unknown view mode.
        DataFetchError: any fetch failed.
    """
    view_mode = parse_view_mode(view_mode)
    source = source or LqsRecordSource(agency_id)

    fetched = fetch_concurrently({
        "team_members": source.team_members,
        "lead_sources": source.lead_sources,
        "household_ids": lambda: source.producer_household_ids(team_member_id, view_mode, date_range),
    })
    team_members = fetched["team_members"]
    lead_sources = fetched["lead_sources"]
    household_ids = fetched["household_ids"]
    households = source.households_by_ids(household_ids) if household_ids else []

    logger.info(
        "Producer detail (%s) for %s: %d households",
        view_mode.value, team_member_id or "unassigned", len(households),
    )
    return compute_producer_detail(
        households, team_member_id, view_mode, date_range, lead_sources, team_members,
    )
