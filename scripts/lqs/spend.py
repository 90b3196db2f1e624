"""
LQS Analytics — Spend Joiner
==============================

Sums monthly marketing spend per lead source and joins it onto the
per-source tallies to produce ROI rows:

  commission_earned = premium_cents * commission_rate / 100
  roi               = commission_earned / spend_cents     (None without spend)
  cost_per_sale     = spend_cents / sold households       (None without sales)
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from models.lqs_models import (
    UNATTRIBUTED,
    UNKNOWN,
    LeadSourceRecord,
    LeadSourceRoiRow,
    MarketingBucketRecord,
    SpendRecord,
)
from scripts.lib.utils import apply_rate, percent, safe_div
from scripts.lqs.tally import SourceTally


def aggregate_spend(rows: Iterable[SpendRecord]) -> Tuple[Dict[Optional[str], int], int]:
    """Spend cents per lead source, and the overall total."""
    by_source: Dict[Optional[str], int] = {}
    for row in rows:
        by_source[row.lead_source_id] = by_source.get(row.lead_source_id, 0) + row.total_spend_cents
    return by_source, sum(by_source.values())


def lead_source_name(source_id: Optional[str], names: Dict[str, str]) -> str:
    if source_id is None:
        return UNATTRIBUTED
    return names.get(source_id, UNKNOWN)


def overall_roi(commission_earned: float, total_spend_cents: int) -> Optional[float]:
    return safe_div(commission_earned, total_spend_cents)


def build_roi_row(
    source_id: Optional[str],
    tally: SourceTally,
    spend_cents: int,
    commission_rate: float,
    lead_sources: Dict[str, LeadSourceRecord],
    bucket_names: Dict[str, str],
) -> LeadSourceRoiRow:
    """Join one source's tally with its spend."""
    source = lead_sources.get(source_id) if source_id else None
    bucket_id = source.bucket_id if source else None
    commission = apply_rate(tally.premium_cents, commission_rate)
    quoted = tally.quoted_households
    sold = tally.sold_households

    return LeadSourceRoiRow(
        lead_source_id=source_id,
        lead_source_name=source.name if source else lead_source_name(source_id, {}),
        spend_cents=spend_cents,
        total_leads=tally.leads,
        total_quotes=quoted,
        total_sales=sold,
        premium_cents=tally.premium_cents,
        commission_earned=commission,
        roi=safe_div(commission, spend_cents),
        cost_per_sale=safe_div(spend_cents, sold),
        bucket_id=bucket_id,
        bucket_name=bucket_names.get(bucket_id) if bucket_id else None,
        quoted_policies=tally.quoted_policies,
        quoted_items=tally.quoted_items,
        written_policies=tally.written_policies,
        written_items=tally.written_items,
        cost_per_quoted_household=safe_div(spend_cents, quoted),
        cost_per_quoted_policy=safe_div(spend_cents, tally.quoted_policies),
        cost_per_quoted_item=safe_div(spend_cents, tally.quoted_items),
        household_acq_cost=safe_div(spend_cents, sold),
        policy_acq_cost=safe_div(spend_cents, tally.written_policies),
        item_acq_cost=safe_div(spend_cents, tally.written_items),
        close_ratio=percent(sold, quoted),
        bundle_ratio=percent(tally.bundled_households, sold),
    )


def join_spend(
    tallies: Dict[Optional[str], SourceTally],
    spend_by_source: Dict[Optional[str], int],
    commission_rate: float,
    lead_sources: Iterable[LeadSourceRecord],
    buckets: Iterable[MarketingBucketRecord] = (),
) -> List[LeadSourceRoiRow]:
    """Build one ROI row per tallied lead source, highest premium first."""
    sources_by_id = {s.id: s for s in lead_sources}
    bucket_names = {b.id: b.name for b in buckets}

    rows = [
        build_roi_row(
            source_id, tally, spend_by_source.get(source_id, 0),
            commission_rate, sources_by_id, bucket_names,
        )
        for source_id, tally in tallies.items()
    ]
    rows.sort(key=lambda r: r.premium_cents, reverse=True)
    return rows
