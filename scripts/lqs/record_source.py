"""
LQS Analytics — Record Source
===============================

Typed, read-only loaders for one agency's LQS records. Every loader goes
through the paginated fetch helpers in scripts.lib.supabase_client, so a
failing page raises DataFetchError and nothing partial is returned.

Tables:
  lqs_households            households with embedded quotes/sales
  lqs_quotes / lqs_sales    activity rows with embedded household source
  lead_source_monthly_spend monthly spend per lead source
  lead_sources, marketing_buckets, team_members, agencies
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from models.lqs_models import (
    DateRange,
    HouseholdRecord,
    LeadSourceRecord,
    MarketingBucketRecord,
    ProducerViewMode,
    QuoteRecord,
    SaleRecord,
    SpendRecord,
    TeamMemberRecord,
)
from scripts.lib.errors import SchemaValidationError
from scripts.lib.logger import setup_logger
from scripts.lib.supabase_client import (
    IN_BATCH_SIZE,
    MAX_FETCH,
    PAGE_SIZE,
    fetch_all_pages,
    fetch_in_batches,
    fetch_rows,
    fetch_single,
)
from scripts.lqs.activity import filter_leads_in_window
from scripts.lqs.date_window import spend_month_bounds

logger = setup_logger(__name__)

# Used when the agency has no commission rate configured
DEFAULT_COMMISSION_RATE = 22.0

PIPELINE_HOUSEHOLD_SELECT = (
    "id, status, lead_source_id, created_at, lead_received_date, "
    "sales:lqs_sales(sale_date, premium_cents, policies_sold, items_sold, product_type), "
    "quotes:lqs_quotes(quote_date, premium_cents, items_quoted, product_type)"
)
LEAD_SELECT = "id, lead_source_id, lead_received_date, created_at"
QUOTE_ACTIVITY_SELECT = (
    "household_id, quote_date, premium_cents, items_quoted, product_type, "
    "household:lqs_households(lead_source_id)"
)
SALE_ACTIVITY_SELECT = (
    "household_id, sale_date, premium_cents, policies_sold, items_sold, product_type, "
    "household:lqs_households(lead_source_id)"
)
PRODUCER_HOUSEHOLD_SELECT = (
    "id, first_name, last_name, status, lead_received_date, lead_source_id, "
    "quotes:lqs_quotes(quote_date, product_type, items_quoted, premium_cents, team_member_id), "
    "sales:lqs_sales(sale_date, product_type, items_sold, policies_sold, premium_cents, team_member_id)"
)

# Producer detail fetches full households, so it uses smaller pages
PRODUCER_PAGE_SIZE = 500
PRODUCER_MAX_FETCH = 5000

# Independent loaders run side by side on this many threads
FETCH_WORKERS = 4

RecordT = TypeVar("RecordT", bound=BaseModel)


def parse_rows(model: Type[RecordT], rows: Iterable[Dict], table: str) -> List[RecordT]:
    """Validate fetched rows into typed records."""
    try:
        return [model(**row) for row in rows]
    except ValidationError as e:
        logger.error("Unexpected row shape in %s: %s", table, e)
        raise SchemaValidationError(f"Unexpected row shape in {table}: {e}", table=table) from e


def fetch_concurrently(loaders: Dict[str, Callable[[], Any]]) -> Dict[str, Any]:
    """
    Run independent loaders in parallel and return their results by name.

    The first loader to fail cancels the ones not yet started and its
    exception is re-raised, so callers never see a partial result set.
    """
    results: Dict[str, Any] = {}
    with ThreadPoolExecutor(max_workers=FETCH_WORKERS) as executor:
        futures = {executor.submit(fn): name for name, fn in loaders.items()}
        for future in as_completed(futures):
            try:
                results[futures[future]] = future.result()
            except Exception:
                for pending in futures:
                    pending.cancel()
                raise
    return results


def _between(column: str, date_range: DateRange) -> list:
    return [
        ("gte", column, date_range.start.isoformat()),
        ("lte", column, date_range.end.isoformat()),
    ]


def lead_window_expression(date_range: DateRange) -> str:
    """PostgREST or-filter: received in window, or no received date and created in window."""
    start = date_range.start.isoformat()
    end = date_range.end.isoformat()
    next_day = (date_range.end + timedelta(days=1)).isoformat()
    return (
        f"and(lead_received_date.gte.{start},lead_received_date.lte.{end}),"
        f"and(lead_received_date.is.null,created_at.gte.{start},created_at.lt.{next_day})"
    )


class LqsRecordSource:
    """Loads one agency's LQS records from Supabase."""

    def __init__(self, agency_id: str, client=None):
        self.agency_id = agency_id
        self.client = client

    @property
    def _agency(self) -> list:
        return [("eq", "agency_id", self.agency_id)]

    # ─── Reference data ─────────────────────────────────────

    def commission_rate(self) -> float:
        row = fetch_single(
            "agencies", "default_commission_rate",
            [("eq", "id", self.agency_id)], client=self.client,
        )
        rate = (row or {}).get("default_commission_rate")
        return float(rate) if rate is not None else DEFAULT_COMMISSION_RATE

    def lead_sources(self) -> List[LeadSourceRecord]:
        rows = fetch_rows("lead_sources", "id, name, bucket_id", self._agency, client=self.client)
        return parse_rows(LeadSourceRecord, rows, "lead_sources")

    def marketing_buckets(self) -> List[MarketingBucketRecord]:
        rows = fetch_rows(
            "marketing_buckets", "id, name", self._agency,
            order_by="order_index", client=self.client,
        )
        return parse_rows(MarketingBucketRecord, rows, "marketing_buckets")

    def team_members(self) -> List[TeamMemberRecord]:
        rows = fetch_rows("team_members", "id, name", self._agency, client=self.client)
        return parse_rows(TeamMemberRecord, rows, "team_members")

    def spend(self, date_range: Optional[DateRange] = None) -> List[SpendRecord]:
        """Monthly spend rows, limited to months overlapping the window."""
        filters = list(self._agency)
        if date_range:
            first, last = spend_month_bounds(date_range)
            filters += [("gte", "month", first.isoformat()), ("lte", "month", last.isoformat())]
        rows = fetch_all_pages(
            "lead_source_monthly_spend", "lead_source_id, total_spend_cents, month",
            filters, order_by="month", client=self.client,
        )
        return parse_rows(SpendRecord, rows, "lead_source_monthly_spend")

    # ─── Pipeline Mode ──────────────────────────────────────

    def households(self) -> List[HouseholdRecord]:
        """Every household of the agency with its quotes and sales."""
        rows = fetch_all_pages(
            "lqs_households", PIPELINE_HOUSEHOLD_SELECT, self._agency,
            page_size=PAGE_SIZE, max_rows=MAX_FETCH, order_by="id", client=self.client,
        )
        return parse_rows(HouseholdRecord, rows, "lqs_households")

    # ─── Activity Mode ──────────────────────────────────────

    def leads_received(self, date_range: DateRange) -> List[HouseholdRecord]:
        """Households whose lead date (received, else created) is in the window."""
        filters = self._agency + [("or", "", lead_window_expression(date_range))]
        rows = fetch_all_pages(
            "lqs_households", LEAD_SELECT, filters, order_by="id", client=self.client,
        )
        return filter_leads_in_window(parse_rows(HouseholdRecord, rows, "lqs_households"), date_range)

    def quotes_created(self, date_range: DateRange) -> List[QuoteRecord]:
        rows = fetch_all_pages(
            "lqs_quotes", QUOTE_ACTIVITY_SELECT,
            self._agency + _between("quote_date", date_range),
            order_by="id", client=self.client,
        )
        return parse_rows(QuoteRecord, rows, "lqs_quotes")

    def sales_closed(self, date_range: DateRange) -> List[SaleRecord]:
        rows = fetch_all_pages(
            "lqs_sales", SALE_ACTIVITY_SELECT,
            self._agency + _between("sale_date", date_range),
            order_by="id", client=self.client,
        )
        return parse_rows(SaleRecord, rows, "lqs_sales")

    # ─── Producer detail ────────────────────────────────────

    def producer_household_ids(
        self,
        team_member_id: Optional[str],
        view_mode: ProducerViewMode,
        date_range: Optional[DateRange] = None,
    ) -> List[str]:
        """Distinct household ids quoted (or sold) by a team member, in first-seen order."""
        if view_mode == ProducerViewMode.QUOTED_BY:
            table, date_column = "lqs_quotes", "quote_date"
        else:
            table, date_column = "lqs_sales", "sale_date"

        filters = list(self._agency)
        if team_member_id is None:
            filters.append(("is", "team_member_id", "null"))
        else:
            filters.append(("eq", "team_member_id", team_member_id))
        if date_range:
            filters += _between(date_column, date_range)

        rows = fetch_all_pages(
            table, "household_id", filters,
            page_size=PRODUCER_PAGE_SIZE, order_by="id", client=self.client,
        )
        return list(dict.fromkeys(r["household_id"] for r in rows if r.get("household_id")))

    def households_by_ids(self, household_ids: Sequence[str]) -> List[HouseholdRecord]:
        rows = fetch_in_batches(
            "lqs_households", "id", household_ids,
            select=PRODUCER_HOUSEHOLD_SELECT, filters=self._agency,
            batch_size=IN_BATCH_SIZE, max_rows=PRODUCER_MAX_FETCH, client=self.client,
        )
        return parse_rows(HouseholdRecord, rows, "lqs_households")
