"""End-to-end ROI report tests against the in-memory store."""

from datetime import date

import pytest

from models.lqs_models import DateRange
from scripts.lib.errors import DataFetchError, SchemaValidationError
from scripts.lqs.record_source import LqsRecordSource, fetch_concurrently, lead_window_expression
from scripts.lqs.roi_analytics import load_roi_analytics

from conftest import AGENCY_ID, FakeSupabase, build_tables, household_row, quote_row, sale_row

MARCH = DateRange(start=date(2024, 3, 1), end=date(2024, 3, 31))


def _report(client, date_range=None):
    return load_roi_analytics(AGENCY_ID, date_range, source=LqsRecordSource(AGENCY_ID, client))


class TestPipelineReport:
    def test_abc_scenario(self, abc_agency):
        summary = _report(abc_agency).summary
        assert summary.is_activity_view is False
        assert summary.open_leads == 1
        assert summary.quoted_households == 1
        assert summary.sold_households == 1
        assert summary.premium_sold_cents == 200000
        assert summary.commission_rate == 20.0
        assert summary.commission_earned == 40000
        assert summary.total_spend_cents == 50000
        assert summary.overall_roi == 0.8

    def test_mode_exclusivity(self, abc_agency):
        summary = _report(abc_agency).summary
        assert (summary.leads_received, summary.quotes_created, summary.sales_closed) == (0, 0, 0)
        assert summary.quote_rate == pytest.approx(200 / 3)
        assert summary.close_rate == 50.0

    def test_lead_source_rows(self, abc_agency):
        rows = _report(abc_agency).by_lead_source
        assert [r.lead_source_name for r in rows] == ["Web Leads", "Unattributed"]
        web = rows[0]
        assert web.bucket_name == "Digital"
        assert web.total_leads == 1
        assert web.total_sales == 1
        assert web.roi == 0.8
        assert web.cost_per_sale == 50000
        unattributed = rows[1]
        assert unattributed.spend_cents == 0
        assert unattributed.roi is None
        assert unattributed.cost_per_sale is None

    def test_report_is_idempotent(self, abc_agency):
        assert _report(abc_agency) == _report(abc_agency)

    def test_default_commission_rate(self):
        tables = build_tables([household_row("h1", "sold", sales=[sale_row("2024-01-01", 1000)])])
        tables["agencies"] = []
        summary = _report(FakeSupabase(tables)).summary
        assert summary.commission_rate == 22.0
        assert summary.commission_earned == 220.0
        assert summary.overall_roi is None

    def test_households_paged_by_id(self, abc_agency):
        _report(abc_agency)
        (query,) = abc_agency.calls_to("lqs_households")
        assert query.order_by == "id"
        assert query.row_range == (0, 999)
        assert ("eq", "agency_id", AGENCY_ID) in query.filters


class TestActivityReport:
    def test_abc_scenario_window_with_only_the_sale(self, abc_agency):
        summary = _report(abc_agency, MARCH).summary
        assert summary.is_activity_view is True
        assert summary.leads_received == 0
        assert summary.quotes_created == 0
        assert summary.sales_closed == 1
        assert summary.premium_sold_cents == 200000
        assert summary.commission_earned == 40000
        assert summary.overall_roi == 0.8

    def test_mode_exclusivity(self, abc_agency):
        summary = _report(abc_agency, MARCH).summary
        assert (summary.open_leads, summary.quoted_households, summary.sold_households) == (0, 0, 0)
        assert summary.quote_rate is None
        assert summary.close_rate is None

    def test_quotes_and_leads_in_window(self, abc_agency):
        january = DateRange(start=date(2024, 1, 1), end=date(2024, 1, 31))
        summary = _report(abc_agency, january).summary
        assert summary.leads_received == 3
        assert summary.quotes_created == 2
        assert summary.sales_closed == 0
        assert summary.total_spend_cents == 0

    def test_window_filters_sent_to_store(self, abc_agency):
        _report(abc_agency, MARCH)
        (sales_query,) = abc_agency.calls_to("lqs_sales")
        assert ("gte", "sale_date", "2024-03-01") in sales_query.filters
        assert ("lte", "sale_date", "2024-03-31") in sales_query.filters
        (spend_query,) = abc_agency.calls_to("lead_source_monthly_spend")
        assert ("gte", "month", "2024-03-01") in spend_query.filters
        (leads_query,) = abc_agency.calls_to("lqs_households")
        assert ("or", None, lead_window_expression(MARCH)) in leads_query.filters

    def test_second_quote_in_window_does_not_change_count(self):
        households = [household_row("h1", "quoted", quotes=[
            quote_row("2024-03-02", 1000), quote_row("2024-03-09", 1200),
        ])]
        summary = _report(FakeSupabase(build_tables(households)), MARCH).summary
        assert summary.quotes_created == 1
        assert summary.total_quoted_policies == 2


class TestFailures:
    @pytest.mark.parametrize("table", ["lqs_households", "lead_source_monthly_spend", "lead_sources"])
    def test_fetch_error_aborts_report(self, abc_agency, table):
        abc_agency.fail_tables.add(table)
        with pytest.raises(DataFetchError):
            _report(abc_agency)

    def test_activity_fetch_error_aborts_report(self, abc_agency):
        abc_agency.fail_tables.add("lqs_sales")
        with pytest.raises(DataFetchError):
            _report(abc_agency, MARCH)

    def test_malformed_rows_rejected(self):
        tables = build_tables([])
        tables["lead_sources"] = [{"agency_id": AGENCY_ID, "id": "x"}]
        with pytest.raises(SchemaValidationError) as exc:
            _report(FakeSupabase(tables))
        assert exc.value.details["table"] == "lead_sources"


class TestFetchConcurrently:
    def test_results_keyed_by_loader(self):
        results = fetch_concurrently({"a": lambda: 1, "b": lambda: [2, 3], "c": lambda: None})
        assert results == {"a": 1, "b": [2, 3], "c": None}

    def test_failure_is_reraised(self):
        def failing():
            raise DataFetchError("Query on lqs_sales failed", source="lqs_sales")

        with pytest.raises(DataFetchError) as exc:
            fetch_concurrently({"ok": lambda: 1, "sales": failing})
        assert exc.value.details["source"] == "lqs_sales"

    def test_report_fetches_each_table_once(self, abc_agency):
        _report(abc_agency, MARCH)
        tables = sorted(q.table for q in abc_agency.calls)
        assert tables == sorted([
            "agencies", "lead_source_monthly_spend", "lead_sources", "lqs_households",
            "lqs_quotes", "lqs_sales", "marketing_buckets",
        ])
