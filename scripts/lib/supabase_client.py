"""
Supabase Client Helper for the LQS analytics engine.
Provides the connection and read-only paginated query functions.

Usage:
    from scripts.lib.supabase_client import get_client, fetch_all_pages, fetch_in_batches

    rows = fetch_all_pages(
        "lqs_quotes",
        select="household_id, quote_date, premium_cents",
        filters=[("eq", "agency_id", agency_id), ("gte", "quote_date", "2025-01-01")],
    )

Filters are (operator, column, value) tuples. Supported operators:
    eq, neq, gt, gte, lt, lte  - comparison
    in                         - value is a list of ids
    is                         - value is "null" / "true" / "false"
    or                         - column is ignored, value is a PostgREST or-expression
"""
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from dotenv import load_dotenv

from scripts.lib.errors import ConfigError, DataFetchError
from scripts.lib.logger import setup_logger

logger = setup_logger(__name__)

# Load .env from project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(PROJECT_ROOT / ".env")

SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
SUPABASE_KEY = (
    os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "")
    or os.environ.get("SUPABASE_KEY", "")
)

# PostgREST caps responses at 1000 rows by default
PAGE_SIZE = 1000
MAX_FETCH = 20000
# Keeps "IN" filters well under URL length limits
IN_BATCH_SIZE = 50

Filter = Tuple[str, str, Any]

_client = None


def get_client():
    """Create and return a Supabase client (singleton)."""
    global _client
    if _client is not None:
        return _client

    if not SUPABASE_URL or not SUPABASE_KEY:
        raise ConfigError(
            "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set in .env",
            setting="SUPABASE_URL",
        )

    from supabase import create_client
    try:
        _client = create_client(SUPABASE_URL, SUPABASE_KEY)
    except Exception as e:
        logger.error("Supabase client could not be created for %s: %s", SUPABASE_URL, e)
        raise ConfigError(
            f"Invalid Supabase settings: {e}", setting="SUPABASE_URL",
        ) from e
    logger.info("Supabase client connected to %s", SUPABASE_URL)
    return _client


COMPARISON_OPS = ("eq", "neq", "gt", "gte", "lt", "lte")
FILTER_OPS = COMPARISON_OPS + ("in", "is", "or")


def _check_filters(filters: Optional[Iterable[Filter]]) -> None:
    """Reject unknown operators before any request is made."""
    for op, _column, _value in filters or ():
        if op not in FILTER_OPS:
            raise ValueError(f"Unsupported filter operator: {op}")


def _apply_filters(query, filters: Optional[Iterable[Filter]]):
    """Apply (operator, column, value) filters to a query builder."""
    for op, column, value in filters or ():
        if op == "or":
            query = query.or_(value)
        elif op == "in":
            query = query.in_(column, list(value))
        elif op == "is":
            query = query.is_(column, value)
        else:
            query = getattr(query, op)(column, value)
    return query


def _execute(
    client,
    table: str,
    select: str,
    filters: Optional[Sequence[Filter]] = None,
    order_by: str = None,
    desc: bool = False,
    row_range: Tuple[int, int] = None,
    limit: int = None,
) -> List[Dict]:
    """
    Build and run one query.

    An unknown filter operator raises ValueError up front; anything raised
    while building or executing the request (including undecodable
    responses) is re-raised as DataFetchError.
    """
    _check_filters(filters)
    page_start = row_range[0] if row_range else None
    try:
        query = _apply_filters(client.table(table).select(select), filters)
        if order_by:
            query = query.order(order_by, desc=desc)
        if row_range:
            query = query.range(row_range[0], row_range[1])
        elif limit:
            query = query.limit(limit)
        result = query.execute()
        return result.data or []
    except Exception as e:
        logger.error("Supabase query failed on %s (offset %s): %s", table, page_start, e)
        raise DataFetchError(
            f"Query on {table} failed: {e}", source=table, page_start=page_start,
        ) from e


def fetch_rows(
    table: str,
    select: str = "*",
    filters: Sequence[Filter] = None,
    order_by: str = None,
    desc: bool = False,
    client=None,
) -> List[Dict]:
    """
    Run a single unpaginated query (small reference tables).

    Args:
        table: Table name.
        select: Columns to select (PostgREST select syntax).
        filters: (operator, column, value) filters.
        order_by: Column to order by.
        desc: Descending order.
        client: Supabase client (default: shared singleton).

    Returns:
        List of row dicts.
    """
    client = client or get_client()
    return _execute(client, table, select, filters, order_by=order_by, desc=desc)


def fetch_single(
    table: str,
    select: str = "*",
    filters: Sequence[Filter] = None,
    client=None,
) -> Optional[Dict]:
    """Fetch the first matching row, or None when nothing matches."""
    client = client or get_client()
    rows = _execute(client, table, select, filters, limit=1)
    return rows[0] if rows else None


def fetch_all_pages(
    table: str,
    select: str = "*",
    filters: Sequence[Filter] = None,
    page_size: int = PAGE_SIZE,
    max_rows: int = MAX_FETCH,
    order_by: str = None,
    client=None,
) -> List[Dict]:
    """
    Fetch every matching row, one page at a time.

    Stops on an empty page, a short page, or once max_rows have been
    requested. Hitting max_rows truncates silently (logged as a warning);
    a failing page raises DataFetchError and discards what was collected.

    Args:
        table: Table name.
        select: Columns to select, embedded relations allowed.
        filters: (operator, column, value) filters.
        page_size: Rows per request.
        max_rows: Hard cap on rows fetched.
        order_by: Column giving pages a stable order.
        client: Supabase client (default: shared singleton).

    Returns:
        Concatenated list of row dicts.
    """
    client = client or get_client()
    rows: List[Dict] = []

    for start in range(0, max_rows, page_size):
        page = _execute(
            client, table, select, filters,
            order_by=order_by, row_range=(start, start + page_size - 1),
        )
        if not page:
            break
        rows.extend(page)
        if len(page) < page_size:
            break
    else:
        logger.warning(
            "Fetch cap reached on %s: %d rows returned, further rows ignored",
            table, len(rows),
        )

    logger.debug("Fetched %d rows from %s", len(rows), table)
    return rows


def _batched(items: list, size: int):
    """Yield successive batches from a list."""
    for i in range(0, len(items), size):
        yield items[i : i + size]


def fetch_in_batches(
    table: str,
    column: str,
    values: Sequence[Any],
    select: str = "*",
    filters: Sequence[Filter] = None,
    batch_size: int = IN_BATCH_SIZE,
    max_rows: int = MAX_FETCH,
    client=None,
) -> List[Dict]:
    """
    Fetch rows whose column is in values, chunking the IN filter.

    Args:
        table: Table name.
        column: Column matched by the IN filter.
        values: Values to match (e.g. household ids).
        select: Columns to select.
        filters: Extra filters applied to every batch.
        batch_size: Values per IN filter.
        max_rows: Stop issuing batches once this many rows are collected.
        client: Supabase client (default: shared singleton).

    Returns:
        Concatenated list of row dicts.
    """
    client = client or get_client()
    rows: List[Dict] = []
    values = list(values)

    for batch in _batched(values, batch_size):
        if len(rows) >= max_rows:
            logger.warning(
                "Fetch cap reached on %s: %d rows returned, remaining ids skipped",
                table, len(rows),
            )
            break
        batch_filters = list(filters or ()) + [("in", column, batch)]
        rows.extend(_execute(client, table, select, batch_filters))

    logger.debug("Fetched %d rows from %s for %d ids", len(rows), table, len(values))
    return rows
