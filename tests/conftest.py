"""Shared fixtures: an in-memory stand-in for the supabase query builder."""

from itertools import count
from types import SimpleNamespace

import pytest


class FakeQuery:
    """Records the PostgREST builder calls and evaluates them over dict rows."""

    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.filters = []
        self.order_by = None
        self.desc = False
        self.row_range = None
        self.row_limit = None

    def select(self, columns):
        self.columns = columns
        return self

    def _add(self, op, column, value):
        self.filters.append((op, column, value))
        return self

    def eq(self, column, value):
        return self._add("eq", column, value)

    def neq(self, column, value):
        return self._add("neq", column, value)

    def gt(self, column, value):
        return self._add("gt", column, value)

    def gte(self, column, value):
        return self._add("gte", column, value)

    def lt(self, column, value):
        return self._add("lt", column, value)

    def lte(self, column, value):
        return self._add("lte", column, value)

    def in_(self, column, values):
        return self._add("in", column, list(values))

    def is_(self, column, value):
        return self._add("is", column, value)

    def or_(self, expression):
        # Recorded only; callers re-filter or-expressions in memory
        return self._add("or", None, expression)

    def order(self, column, desc=False):
        self.order_by, self.desc = column, desc
        return self

    def range(self, start, end):
        self.row_range = (start, end)
        return self

    def limit(self, n):
        self.row_limit = n
        return self

    def _matches(self, row):
        for op, column, value in self.filters:
            if op == "or":
                continue
            actual = row.get(column)
            if op == "eq" and actual != value:
                return False
            if op == "neq" and actual == value:
                return False
            if op == "in" and actual not in value:
                return False
            if op == "is" and value == "null" and actual is not None:
                return False
            if op in ("gt", "gte", "lt", "lte"):
                if actual is None:
                    return False
                actual, value = str(actual), str(value)
                if op == "gt" and not actual > value:
                    return False
                if op == "gte" and not actual >= value:
                    return False
                if op == "lt" and not actual < value:
                    return False
                if op == "lte" and not actual <= value:
                    return False
        return True

    def execute(self):
        self.client.calls.append(self)
        if self.table in self.client.fail_tables:
            raise RuntimeError(f"connection reset while reading {self.table}")

        rows = [r for r in self.client.tables.get(self.table, []) if self._matches(r)]
        if self.order_by:
            rows.sort(key=lambda r: str(r.get(self.order_by) or ""), reverse=self.desc)
        if self.row_range:
            rows = rows[self.row_range[0]:self.row_range[1] + 1]
        elif self.row_limit:
            rows = rows[:self.row_limit]
        return SimpleNamespace(data=rows)


class FakeSupabase:
    """Minimal supabase client: client.table(name).select(...)...execute()."""

    def __init__(self, tables=None):
        self.tables = {name: list(rows) for name, rows in (tables or {}).items()}
        self.calls = []
        self.fail_tables = set()

    def table(self, name):
        return FakeQuery(self, name)

    def calls_to(self, table):
        return [q for q in self.calls if q.table == table]


# ─── Row builders ───────────────────────────────────────────

AGENCY_ID = "agency-1"

_ids = count(1)


def quote_row(quote_date, premium_cents, product_type="Auto", items_quoted=1, team_member_id=None):
    return {
        "quote_date": quote_date,
        "premium_cents": premium_cents,
        "product_type": product_type,
        "items_quoted": items_quoted,
        "team_member_id": team_member_id,
    }


def sale_row(sale_date, premium_cents, product_type="Auto", policies_sold=1, items_sold=1,
             team_member_id=None):
    return {
        "sale_date": sale_date,
        "premium_cents": premium_cents,
        "product_type": product_type,
        "policies_sold": policies_sold,
        "items_sold": items_sold,
        "team_member_id": team_member_id,
    }


def household_row(household_id, status, lead_source_id=None, lead_received_date=None,
                  created_at="2024-01-02T15:00:00+00:00", quotes=(), sales=(),
                  first_name=None, last_name=None):
    return {
        "id": household_id,
        "agency_id": AGENCY_ID,
        "status": status,
        "lead_source_id": lead_source_id,
        "lead_received_date": lead_received_date,
        "created_at": created_at,
        "first_name": first_name,
        "last_name": last_name,
        "quotes": list(quotes),
        "sales": list(sales),
    }


def build_tables(households, lead_sources=(), spend=(), team_members=(), buckets=(),
                 commission_rate=None):
    """Lay households out the way the store holds them, with child rows and embeds."""
    quotes, sales = [], []
    for h in households:
        embed = {"lead_source_id": h["lead_source_id"]}
        for q in h["quotes"]:
            quotes.append({
                **q, "id": f"q{next(_ids):05d}", "agency_id": AGENCY_ID,
                "household_id": h["id"], "household": embed,
            })
        for s in h["sales"]:
            sales.append({
                **s, "id": f"s{next(_ids):05d}", "agency_id": AGENCY_ID,
                "household_id": h["id"], "household": embed,
            })

    return {
        "lqs_households": list(households),
        "lqs_quotes": quotes,
        "lqs_sales": sales,
        "lead_sources": [{"agency_id": AGENCY_ID, **s} for s in lead_sources],
        "marketing_buckets": [{"agency_id": AGENCY_ID, **b} for b in buckets],
        "team_members": [{"agency_id": AGENCY_ID, **m} for m in team_members],
        "lead_source_monthly_spend": [{"agency_id": AGENCY_ID, **s} for s in spend],
        "agencies": [{"id": AGENCY_ID, "default_commission_rate": commission_rate}],
    }


@pytest.fixture
def abc_agency():
    """Households A (lead), B (quoted, $1000 quote), C (sold $2000 via source X)."""
    households = [
        household_row("hh-a", "lead", lead_received_date="2024-01-02"),
        household_row(
            "hh-b", "quoted", lead_received_date="2024-01-03",
            quotes=[quote_row("2024-01-10", 100000)],
        ),
        household_row(
            "hh-c", "sold", lead_source_id="src-x", lead_received_date="2024-01-04",
            quotes=[quote_row("2024-01-11", 200000)],
            sales=[sale_row("2024-03-15", 200000)],
        ),
    ]
    return FakeSupabase(build_tables(
        households,
        lead_sources=[{"id": "src-x", "name": "Web Leads", "bucket_id": "bkt-1"}],
        buckets=[{"id": "bkt-1", "name": "Digital", "order_index": 1}],
        spend=[{"lead_source_id": "src-x", "month": "2024-03-01", "total_spend_cents": 50000}],
        commission_rate=20,
    ))
