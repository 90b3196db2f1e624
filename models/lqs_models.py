"""
LQS Analytics — Pydantic Models
================================

Read-only record shapes fetched from the store (households with nested
quotes and sales, activity rows, spend, reference data) and the result
shapes returned to the dashboard (ROI analytics, producer detail).

Records are frozen value objects; nested quotes/sales are tuples.
"""
from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from scripts.lib.utils import count_or_one, to_cents, to_date

# Household statuses the funnel cares about
STATUS_QUOTED = "quoted"
STATUS_SOLD = "sold"

UNATTRIBUTED = "Unattributed"
UNKNOWN = "Unknown"
UNASSIGNED = "Unassigned"


class ReportMode(str, Enum):
    PIPELINE = "pipeline"
    ACTIVITY = "activity"


class ProducerViewMode(str, Enum):
    QUOTED_BY = "quotedBy"
    SOLD_BY = "soldBy"


class _Record(BaseModel):
    """Immutable row; unknown columns are ignored."""
    model_config = ConfigDict(frozen=True, extra="ignore")


def lift_household_source(data: Any) -> Any:
    """Copy an embedded `household.lead_source_id` onto the row."""
    if isinstance(data, dict) and "lead_source_id" not in data:
        household = data.get("household")
        if isinstance(household, list):
            household = household[0] if household else None
        if isinstance(household, dict):
            data = {**data, "lead_source_id": household.get("lead_source_id")}
    return data


# ─── Date range ─────────────────────────────────────────────

class DateRange(_Record):
    """Inclusive calendar-date reporting window."""
    start: date
    end: date

    @property
    def span_days(self) -> int:
        return (self.end - self.start).days

    def contains(self, day: Optional[date]) -> bool:
        return day is not None and self.start <= day <= self.end


# ─── Store records ──────────────────────────────────────────

class QuoteRecord(_Record):
    household_id: Optional[str] = None
    quote_date: Optional[date] = None
    premium_cents: int = 0
    items_quoted: int = 1
    product_type: Optional[str] = None
    team_member_id: Optional[str] = None
    # Parent household's source, present on activity rows
    lead_source_id: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def embedded_source(cls, data):
        return lift_household_source(data)

    @field_validator("quote_date", mode="before")
    @classmethod
    def coerce_date(cls, v):
        return to_date(v)

    @field_validator("premium_cents", mode="before")
    @classmethod
    def coerce_cents(cls, v):
        return to_cents(v)

    @field_validator("items_quoted", mode="before")
    @classmethod
    def coerce_items(cls, v):
        return count_or_one(v)


class SaleRecord(_Record):
    household_id: Optional[str] = None
    sale_date: Optional[date] = None
    premium_cents: int = 0
    items_sold: int = 1
    policies_sold: int = 1
    product_type: Optional[str] = None
    team_member_id: Optional[str] = None
    lead_source_id: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def embedded_source(cls, data):
        return lift_household_source(data)

    @field_validator("sale_date", mode="before")
    @classmethod
    def coerce_date(cls, v):
        return to_date(v)

    @field_validator("premium_cents", mode="before")
    @classmethod
    def coerce_cents(cls, v):
        return to_cents(v)

    @field_validator("items_sold", "policies_sold", mode="before")
    @classmethod
    def coerce_counts(cls, v):
        return count_or_one(v)


class HouseholdRecord(_Record):
    """A lead/customer household with its quote and sale history."""
    id: str
    status: Optional[str] = None
    lead_source_id: Optional[str] = None
    lead_received_date: Optional[date] = None
    created_at: Optional[datetime] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    quotes: Tuple[QuoteRecord, ...] = ()
    sales: Tuple[SaleRecord, ...] = ()

    @field_validator("lead_received_date", mode="before")
    @classmethod
    def coerce_date(cls, v):
        return to_date(v)

    @field_validator("quotes", "sales", mode="before")
    @classmethod
    def coerce_nested(cls, v):
        return v or ()

    @property
    def lead_date(self) -> Optional[date]:
        """Date the lead was received, falling back to creation."""
        if self.lead_received_date is not None:
            return self.lead_received_date
        return self.created_at.date() if self.created_at else None


class SpendRecord(_Record):
    lead_source_id: Optional[str] = None
    month: date
    total_spend_cents: int = 0

    @field_validator("month", mode="before")
    @classmethod
    def coerce_month(cls, v):
        return to_date(v)

    @field_validator("total_spend_cents", mode="before")
    @classmethod
    def coerce_cents(cls, v):
        return to_cents(v)


class LeadSourceRecord(_Record):
    id: str
    name: str
    bucket_id: Optional[str] = None


class MarketingBucketRecord(_Record):
    id: str
    name: str


class TeamMemberRecord(_Record):
    id: str
    name: str


# ─── ROI analytics results ──────────────────────────────────

class LeadSourceRoiRow(BaseModel):
    """ROI metrics for one lead source."""
    lead_source_id: Optional[str] = None
    lead_source_name: str
    spend_cents: int = 0
    total_leads: int = 0
    total_quotes: int = 0
    total_sales: int = 0
    premium_cents: int = 0
    commission_earned: float = 0.0
    roi: Optional[float] = None
    cost_per_sale: Optional[float] = None
    bucket_id: Optional[str] = None
    bucket_name: Optional[str] = None
    quoted_policies: int = 0
    quoted_items: int = 0
    written_policies: int = 0
    written_items: int = 0
    cost_per_quoted_household: Optional[float] = None
    cost_per_quoted_policy: Optional[float] = None
    cost_per_quoted_item: Optional[float] = None
    household_acq_cost: Optional[float] = None
    policy_acq_cost: Optional[float] = None
    item_acq_cost: Optional[float] = None
    close_ratio: Optional[float] = None
    bundle_ratio: Optional[float] = None


class RoiSummary(BaseModel):
    """
    Agency-level ROI summary.

    Pipeline fields (open_leads, quoted_households, sold_households,
    quote_rate, close_rate) and activity fields (leads_received,
    quotes_created, sales_closed) are mutually exclusive; the fields of
    the other mode stay at 0 / None.
    """
    is_activity_view: bool = False
    # Pipeline view
    open_leads: int = 0
    quoted_households: int = 0
    sold_households: int = 0
    quote_rate: Optional[float] = None
    close_rate: Optional[float] = None
    # Activity view
    leads_received: int = 0
    quotes_created: int = 0
    sales_closed: int = 0
    # Common
    premium_sold_cents: int = 0
    commission_earned: float = 0.0
    commission_rate: float = 0.0
    total_spend_cents: int = 0
    overall_roi: Optional[float] = None
    total_leads: int = 0
    total_quoted: int = 0
    total_sold: int = 0
    total_quoted_policies: int = 0
    total_quoted_items: int = 0
    total_written_policies: int = 0
    total_written_items: int = 0
    bundle_ratio: Optional[float] = None


class RoiAnalytics(BaseModel):
    summary: RoiSummary
    by_lead_source: List[LeadSourceRoiRow] = Field(default_factory=list)


# ─── Producer detail results ────────────────────────────────

class ProducerQuoteDetail(BaseModel):
    quote_date: Optional[date] = None
    product_type: Optional[str] = None
    items_quoted: int = 1
    premium_cents: int = 0
    team_member_name: Optional[str] = None


class ProducerSaleDetail(BaseModel):
    sale_date: Optional[date] = None
    product_type: Optional[str] = None
    items_sold: int = 1
    policies_sold: int = 1
    premium_cents: int = 0
    team_member_name: Optional[str] = None


class ProducerHouseholdRow(BaseModel):
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    status: Optional[str] = None
    lead_received_date: Optional[date] = None
    lead_source_id: Optional[str] = None
    lead_source_name: str = UNATTRIBUTED
    quoted_policies: int = 0
    quoted_items: int = 0
    quoted_premium_cents: int = 0
    sold_policies: int = 0
    sold_items: int = 0
    sold_premium_cents: int = 0
    quotes: List[ProducerQuoteDetail] = Field(default_factory=list)
    sales: List[ProducerSaleDetail] = Field(default_factory=list)


class ProducerSummary(BaseModel):
    total_households: int = 0
    quoted_households: int = 0
    sold_households: int = 0
    close_ratio: Optional[float] = None
    quoted_premium_cents: int = 0
    sold_premium_cents: int = 0


class ProducerLeadSourceBreakdown(BaseModel):
    lead_source_id: Optional[str] = None
    lead_source_name: str
    total_households: int = 0
    quoted_households: int = 0
    sold_households: int = 0
    premium_cents: int = 0
    close_ratio: Optional[float] = None


class ProductTypeBreakdown(BaseModel):
    product_type: str
    quoted_count: int = 0
    sold_count: int = 0
    quoted_premium_cents: int = 0
    sold_premium_cents: int = 0
    close_ratio: Optional[float] = None


class TrendDataPoint(BaseModel):
    period_key: str
    period_label: str
    quoted_households: int = 0
    sold_households: int = 0
    premium_cents: int = 0


class ProducerDetailData(BaseModel):
    team_member_id: Optional[str] = None
    team_member_name: str
    view_mode: ProducerViewMode
    summary: ProducerSummary
    by_lead_source: List[ProducerLeadSourceBreakdown] = Field(default_factory=list)
    by_product_type: List[ProductTypeBreakdown] = Field(default_factory=list)
    trend_data: List[TrendDataPoint] = Field(default_factory=list)
    households: List[ProducerHouseholdRow] = Field(default_factory=list)
