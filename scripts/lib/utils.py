"""
Utility functions for the LQS analytics engine.
Zero-safe ratios, cents arithmetic, date coercion, and atomic JSON writes.

Usage:
    from scripts.lib.utils import safe_div, percent, apply_rate, atomic_write_json
"""
import json
import os
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional

from scripts.lib.logger import setup_logger

logger = setup_logger(__name__)


# ---------------------------------------------------------------------------
# Ratios
# ---------------------------------------------------------------------------

def safe_div(numerator: float, denominator: float, default: Optional[float] = None) -> Optional[float]:
    """Zero-safe division. Returns default when the denominator is 0 or None."""
    if not denominator:
        return default
    return numerator / denominator


def percent(part: float, whole: float, default: Optional[float] = None) -> Optional[float]:
    """part / whole * 100, or default when whole is 0."""
    if not whole:
        return default
    return part / whole * 100


# ---------------------------------------------------------------------------
# Currency (integer cents)
# ---------------------------------------------------------------------------

def to_cents(val: Any) -> int:
    """Coerce a stored cents value to int, treating null/blank as 0."""
    if val is None or val == "":
        return 0
    try:
        return int(round(float(val)))
    except (ValueError, TypeError):
        return 0


def apply_rate(cents: int, rate_percent: float) -> float:
    """Apply a percentage rate to a cents amount (e.g. commission on premium)."""
    return cents * rate_percent / 100


def count_or_one(val: Any) -> int:
    """Item/policy counts default to 1 when missing or zero."""
    try:
        count = int(val) if val is not None else 0
    except (ValueError, TypeError):
        count = 0
    return count or 1


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

def to_date(val: Any) -> Optional[date]:
    """Coerce a date, datetime, or ISO string ('YYYY-MM-DD...') to a date."""
    if val is None or val == "":
        return None
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    if isinstance(val, str):
        try:
            return date.fromisoformat(val[:10])
        except ValueError:
            return None
    return None


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------

def atomic_write_json(data: Dict, file_path: str | Path, indent: int = 2) -> bool:
    """
    Write JSON data to file atomically using temp file + rename.

    Args:
        data: Dictionary to serialize as JSON.
        file_path: Target file path.
        indent: JSON indentation level.

    Returns:
        True if successful, False otherwise.
    """
    file_path = Path(file_path)
    temp_path = file_path.with_suffix(file_path.suffix + ".tmp")

    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)

        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=indent, default=str)

        os.replace(temp_path, file_path)
        logger.debug("Atomically wrote JSON to %s", file_path)
        return True

    except OSError as e:
        logger.error("Failed to write JSON to %s: %s", file_path, e)
        if temp_path.exists():
            temp_path.unlink()
        return False
