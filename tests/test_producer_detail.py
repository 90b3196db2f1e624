"""Tests for the producer drill-down."""

from datetime import date

import pytest

from models.lqs_models import DateRange, ProducerViewMode
from scripts.lib.errors import DataFetchError, InvalidViewModeError
from scripts.lqs.producer_detail import load_producer_detail
from scripts.lqs.record_source import LqsRecordSource

from conftest import AGENCY_ID, FakeSupabase, build_tables, household_row, quote_row, sale_row

JAN = DateRange(start=date(2025, 1, 1), end=date(2025, 1, 31))


@pytest.fixture
def producer_agency():
    households = [
        # D: two quotes by the same producer in the window
        household_row(
            "hh-d", "sold", lead_source_id="src-x", first_name="Dana", last_name="Diaz",
            quotes=[
                quote_row("2025-01-06", 80000, "Auto", team_member_id="tm-1"),
                quote_row("2025-01-07", 50000, "Home", items_quoted=2, team_member_id="tm-1"),
            ],
            sales=[
                sale_row("2025-01-20", 80000, "Auto", team_member_id="tm-2"),
                sale_row("2025-01-21", 50000, "Home", team_member_id="tm-2"),
            ],
        ),
        household_row(
            "hh-e", "quoted",
            quotes=[quote_row("2025-01-15", 30000, None, team_member_id="tm-1")],
        ),
        household_row(
            "hh-f", "quoted", lead_source_id="src-x",
            quotes=[quote_row("2025-01-16", 10000, "Auto")],
        ),
        household_row(
            "hh-g", "quoted",
            quotes=[quote_row("2024-11-02", 40000, "Auto", team_member_id="tm-1")],
        ),
    ]
    return FakeSupabase(build_tables(
        households,
        lead_sources=[{"id": "src-x", "name": "Web Leads"}],
        team_members=[{"id": "tm-1", "name": "Pat Producer"}, {"id": "tm-2", "name": "Sam Seller"}],
    ))


def _detail(client, team_member_id, view_mode, date_range=JAN):
    return load_producer_detail(
        AGENCY_ID, team_member_id, view_mode, date_range,
        source=LqsRecordSource(AGENCY_ID, client),
    )


class TestQuotedBy:
    def test_household_with_two_quotes_counted_once(self, producer_agency):
        detail = _detail(producer_agency, "tm-1", "quotedBy")
        assert detail.team_member_name == "Pat Producer"
        assert detail.view_mode is ProducerViewMode.QUOTED_BY
        assert [h.id for h in detail.households] == ["hh-d", "hh-e"]
        assert detail.summary.quoted_households == 2
        assert detail.summary.sold_households == 1
        assert detail.summary.close_ratio == 50.0

    def test_full_history_of_resolved_households(self, producer_agency):
        d = _detail(producer_agency, "tm-1", "quotedBy").households[0]
        assert d.quoted_policies == 2
        assert d.quoted_items == 3
        assert d.quoted_premium_cents == 130000
        assert d.sold_premium_cents == 130000
        assert d.lead_source_name == "Web Leads"
        assert {s.team_member_name for s in d.sales} == {"Sam Seller"}

    def test_breakdowns(self, producer_agency):
        detail = _detail(producer_agency, "tm-1", ProducerViewMode.QUOTED_BY)
        by_source = {b.lead_source_name: b for b in detail.by_lead_source}
        assert by_source["Web Leads"].premium_cents == 130000
        assert by_source["Unattributed"].premium_cents == 0
        assert by_source["Unattributed"].close_ratio == 0.0

        by_product = {p.product_type: p for p in detail.by_product_type}
        assert by_product["Auto"].quoted_count == 1
        assert by_product["Auto"].sold_count == 1
        assert by_product["Other"].quoted_premium_cents == 30000
        assert by_product["Other"].close_ratio == 0.0
        assert detail.by_product_type[0].product_type == "Auto"

    def test_weekly_trend_for_short_window(self, producer_agency):
        trend = _detail(producer_agency, "tm-1", "quotedBy").trend_data
        assert [p.period_key for p in trend] == ["2025-01-06", "2025-01-13", "2025-01-20"]
        assert trend[0].quoted_households == 1
        assert trend[0].period_label == "Jan 6"
        assert trend[1].quoted_households == 1
        assert trend[2].sold_households == 1
        assert trend[2].premium_cents == 130000

    def test_monthly_trend_without_window(self, producer_agency):
        detail = _detail(producer_agency, "tm-1", "quotedBy", date_range=None)
        assert [h.id for h in detail.households] == ["hh-d", "hh-e", "hh-g"]
        assert [p.period_key for p in detail.trend_data] == ["2024-11", "2025-01"]


class TestSoldByAndUnassigned:
    def test_sold_by(self, producer_agency):
        detail = _detail(producer_agency, "tm-2", "soldBy")
        assert [h.id for h in detail.households] == ["hh-d"]
        assert detail.summary.sold_premium_cents == 130000

    def test_unassigned_quotes(self, producer_agency):
        detail = _detail(producer_agency, None, "quotedBy")
        assert detail.team_member_name == "Unassigned"
        assert [h.id for h in detail.households] == ["hh-f"]
        (query,) = producer_agency.calls_to("lqs_quotes")
        assert ("is", "team_member_id", "null") in query.filters

    def test_unknown_member_and_no_households(self, producer_agency):
        detail = _detail(producer_agency, "tm-404", "soldBy")
        assert detail.team_member_name == "Unknown"
        assert detail.households == []
        assert detail.summary.close_ratio is None
        assert detail.trend_data == []
        assert producer_agency.calls_to("lqs_households") == []


class TestErrors:
    def test_invalid_view_mode(self, producer_agency):
        with pytest.raises(InvalidViewModeError):
            _detail(producer_agency, "tm-1", "writtenBy")

    def test_household_fetch_error(self, producer_agency):
        producer_agency.fail_tables.add("lqs_households")
        with pytest.raises(DataFetchError):
            _detail(producer_agency, "tm-1", "quotedBy")
