"""
LQS ROI Report
================
Builds the lead-source ROI report (or a producer drill-down) for one agency
from the LQS tables in Supabase and prints it as JSON.

Without a window the report is the current pipeline snapshot; with
--start/--end or --preset it counts the activity inside that window.

Usage:
    python scripts/lqs_roi_report.py --agency-id <uuid>
    python scripts/lqs_roi_report.py --agency-id <uuid> --preset last30
    python scripts/lqs_roi_report.py --agency-id <uuid> --start 2025-01-01 --end 2025-03-31
    python scripts/lqs_roi_report.py --agency-id <uuid> --team-member <uuid> --view-mode soldBy
    python scripts/lqs_roi_report.py --agency-id <uuid> --output data/processed/lqs_roi.json
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(BASE_DIR))

load_dotenv(BASE_DIR / ".env")

from models.lqs_models import ProducerViewMode  # noqa: E402
from scripts.lib.errors import LqsError  # noqa: E402
from scripts.lib.logger import setup_logger  # noqa: E402
from scripts.lib.utils import atomic_write_json  # noqa: E402
from scripts.lqs.date_window import (  # noqa: E402
    DATE_RANGE_PRESETS,
    date_range_from_preset,
    make_date_range,
)
from scripts.lqs.producer_detail import load_producer_detail  # noqa: E402
from scripts.lqs.roi_analytics import load_roi_analytics  # noqa: E402

logger = setup_logger("lqs_roi_report")


def _parse_args(argv=None):
    parser = argparse.ArgumentParser(description="LQS lead-source ROI report")
    parser.add_argument("--agency-id", required=True, help="Agency to report on")
    parser.add_argument("--start", help="Window start (YYYY-MM-DD)")
    parser.add_argument("--end", help="Window end (YYYY-MM-DD)")
    parser.add_argument("--preset", choices=DATE_RANGE_PRESETS, help="Named date range")
    parser.add_argument(
        "--team-member",
        help="Producer drill-down for this team member id ('unassigned' for none)",
    )
    parser.add_argument(
        "--view-mode",
        choices=[m.value for m in ProducerViewMode],
        default=ProducerViewMode.QUOTED_BY.value,
        help="Producer drill-down: households quoted or sold by the producer",
    )
    parser.add_argument("--output", help="Write JSON to this file instead of stdout")
    return parser.parse_args(argv)


def build_report(args) -> dict:
    """Run the requested report and return it as JSON-ready data."""
    if args.preset:
        date_range = date_range_from_preset(args.preset)
    else:
        date_range = make_date_range(args.start, args.end)

    if args.team_member:
        member_id = None if args.team_member == "unassigned" else args.team_member
        report = load_producer_detail(args.agency_id, member_id, args.view_mode, date_range)
    else:
        report = load_roi_analytics(args.agency_id, date_range)
    return report.model_dump(mode="json")


def main(argv=None) -> int:
    """Main entry point."""
    args = _parse_args(argv)
    logger.info("LQS report starting for agency %s", args.agency_id)

    try:
        data = build_report(args)
    except LqsError as e:
        logger.error("LQS report failed: %s", e)
        return 1

    if args.output:
        if not atomic_write_json(data, args.output):
            return 1
        logger.info("  Report written to %s", args.output)
    else:
        print(json.dumps(data, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
