"""
LQS Analytics — Lead Source ROI
=================================

Entry point for the agency ROI report. The report mode is picked once from
the date range:

  PipelineInputs  all households, classified by current status
  ActivityInputs  leads / quotes / sales that happened inside the window

and each mode is computed by its own function. Spend and commission are
joined the same way for both.

Usage:
    from scripts.lqs.roi_analytics import load_roi_analytics
    from scripts.lqs.date_window import date_range_from_preset

    report = load_roi_analytics(agency_id, date_range_from_preset("last30"))
    report.summary.overall_roi
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Union

from models.lqs_models import (
    DateRange,
    HouseholdRecord,
    LeadSourceRecord,
    MarketingBucketRecord,
    QuoteRecord,
    ReportMode,
    RoiAnalytics,
    RoiSummary,
    SaleRecord,
    SpendRecord,
)
from scripts.lib.logger import setup_logger
from scripts.lib.utils import apply_rate
from scripts.lqs.activity import aggregate_activity
from scripts.lqs.date_window import classify_window
from scripts.lqs.pipeline_funnel import aggregate_pipeline
from scripts.lqs.record_source import DEFAULT_COMMISSION_RATE, LqsRecordSource, fetch_concurrently
from scripts.lqs.spend import aggregate_spend, join_spend, overall_roi
from scripts.lqs.tally import bundle_ratio

logger = setup_logger(__name__)


@dataclass(frozen=True)
class ReferenceData:
    """Inputs shared by both modes."""
    lead_sources: Sequence[LeadSourceRecord] = ()
    buckets: Sequence[MarketingBucketRecord] = ()
    spend: Sequence[SpendRecord] = ()
    commission_rate: float = DEFAULT_COMMISSION_RATE


@dataclass(frozen=True)
class PipelineInputs:
    households: Sequence[HouseholdRecord] = ()


@dataclass(frozen=True)
class ActivityInputs:
    date_range: DateRange
    leads: Sequence[HouseholdRecord] = ()
    quotes: Sequence[QuoteRecord] = ()
    sales: Sequence[SaleRecord] = ()


ReportInputs = Union[PipelineInputs, ActivityInputs]


def _pipeline_report(inputs: PipelineInputs, reference: ReferenceData) -> RoiAnalytics:
    funnel = aggregate_pipeline(inputs.households)
    spend_by_source, total_spend = aggregate_spend(reference.spend)
    commission = apply_rate(funnel.premium_sold_cents, reference.commission_rate)
    tallies = funnel.by_source.values()

    summary = RoiSummary(
        is_activity_view=False,
        open_leads=funnel.open_leads,
        quoted_households=funnel.quoted_households,
        sold_households=funnel.sold_households,
        quote_rate=funnel.quote_rate,
        close_rate=funnel.close_rate,
        premium_sold_cents=funnel.premium_sold_cents,
        commission_earned=commission,
        commission_rate=reference.commission_rate,
        total_spend_cents=total_spend,
        overall_roi=overall_roi(commission, total_spend),
        total_leads=funnel.total_leads,
        total_quoted=funnel.total_quoted,
        total_sold=funnel.total_sold,
        total_quoted_policies=sum(t.quoted_policies for t in tallies),
        total_quoted_items=sum(t.quoted_items for t in tallies),
        total_written_policies=sum(t.written_policies for t in tallies),
        total_written_items=sum(t.written_items for t in tallies),
        bundle_ratio=bundle_ratio(tallies),
    )
    rows = join_spend(
        funnel.by_source, spend_by_source, reference.commission_rate,
        reference.lead_sources, reference.buckets,
    )
    return RoiAnalytics(summary=summary, by_lead_source=rows)


def _activity_report(inputs: ActivityInputs, reference: ReferenceData) -> RoiAnalytics:
    totals = aggregate_activity(inputs.leads, inputs.quotes, inputs.sales)
    spend_by_source, total_spend = aggregate_spend(reference.spend)
    commission = apply_rate(totals.premium_sold_cents, reference.commission_rate)

    summary = RoiSummary(
        is_activity_view=True,
        leads_received=totals.leads_received,
        quotes_created=totals.quotes_created,
        sales_closed=totals.sales_closed,
        quote_rate=None,
        close_rate=None,
        premium_sold_cents=totals.premium_sold_cents,
        commission_earned=commission,
        commission_rate=reference.commission_rate,
        total_spend_cents=total_spend,
        overall_roi=overall_roi(commission, total_spend),
        total_leads=totals.leads_received,
        total_quoted=totals.quotes_created,
        total_sold=totals.sales_closed,
        total_quoted_policies=totals.quoted_policies,
        total_quoted_items=totals.quoted_items,
        total_written_policies=totals.written_policies,
        total_written_items=totals.written_items,
        bundle_ratio=bundle_ratio(totals.by_source.values()),
    )
    rows = join_spend(
        totals.by_source, spend_by_source, reference.commission_rate,
        reference.lead_sources, reference.buckets,
    )
    return RoiAnalytics(summary=summary, by_lead_source=rows)


def compute_roi_analytics(inputs: ReportInputs, reference: ReferenceData) -> RoiAnalytics:
    """Pure computation from fetched records to the ROI report."""
    if isinstance(inputs, ActivityInputs):
        return _activity_report(inputs, reference)
    return _pipeline_report(inputs, reference)


def load_roi_analytics(
    agency_id: str,
    date_range: Optional[DateRange] = None,
    source: LqsRecordSource = None,
) -> RoiAnalytics:
    """
    Fetch an agency's records and compute its ROI report.

    Reference data and the mode's records are independent, so they are
    fetched concurrently.

    Args:
        agency_id: Agency to report on.
        date_range: None for the pipeline snapshot, a window for activity.
        source: Record source (default: Supabase-backed for agency_id).

    Returns:
        RoiAnalytics with summary and per-lead-source rows.

    Raises:
        DataFetchError: any fetch failed; no partial report is built.
    """
    source = source or LqsRecordSource(agency_id)
    mode = classify_window(date_range)
    logger.info("Building %s ROI report for agency %s", mode.value, agency_id)

    loaders = {
        "lead_sources": source.lead_sources,
        "buckets": source.marketing_buckets,
        "spend": lambda: source.spend(date_range),
        "commission_rate": source.commission_rate,
    }
    if mode is ReportMode.PIPELINE:
        loaders["households"] = source.households
    else:
        loaders["leads"] = lambda: source.leads_received(date_range)
        loaders["quotes"] = lambda: source.quotes_created(date_range)
        loaders["sales"] = lambda: source.sales_closed(date_range)
    fetched = fetch_concurrently(loaders)

    reference = ReferenceData(
        lead_sources=fetched["lead_sources"],
        buckets=fetched["buckets"],
        spend=fetched["spend"],
        commission_rate=fetched["commission_rate"],
    )
    inputs: ReportInputs
    if mode is ReportMode.PIPELINE:
        inputs = PipelineInputs(households=fetched["households"])
    else:
        inputs = ActivityInputs(
            date_range=date_range,
            leads=fetched["leads"],
            quotes=fetched["quotes"],
            sales=fetched["sales"],
        )
    return compute_roi_analytics(inputs, reference)
