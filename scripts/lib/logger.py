"""
Logging for the LQS analytics engine.

Every engine module, the API router and the report CLI log through
`setup_logger`, so fetch warnings (cap truncation), fetch failures and
aggregation sizes land in one format on stdout and in a daily file under
logs/.

Environment:
    LOG_LEVEL    engine log level (default INFO)
    LOG_TO_FILE  "false" keeps logs on stdout only (default "true")

Paged fetches issue one HTTP request per page; the HTTP client libraries
under supabase-py log each request at INFO, so they are held at WARNING.

Usage:
    from scripts.lib.logger import setup_logger
    logger = setup_logger(__name__)
    logger.warning("Fetch cap reached on %s", table)
"""
import logging
import os
import sys
from datetime import datetime
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
LOG_DIR = PROJECT_ROOT / "logs"
LOG_FILE_SUFFIX = "lqs_analytics.log"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Per-request chatter from the store's HTTP stack
NOISY_LIBRARIES = ("httpx", "httpcore", "hpack", "postgrest")


def _quiet_http_libraries() -> None:
    for name in NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)


def log_file_path(log_dir: Path = None, day: datetime = None) -> Path:
    """Daily log file, e.g. logs/20250131_lqs_analytics.log."""
    day = day or datetime.now()
    return Path(log_dir or LOG_DIR) / f"{day.strftime('%Y%m%d')}_{LOG_FILE_SUFFIX}"


def setup_logger(
    name: str,
    level: str = None,
    log_to_file: bool = None,
    log_dir: Path = None,
) -> logging.Logger:
    """
    Return the named logger, attaching handlers on first use.

    Args:
        name: Logger name, usually the module's __name__.
        level: Overrides LOG_LEVEL.
        log_to_file: Overrides LOG_TO_FILE.
        log_dir: Directory for the daily file (default: project_root/logs).
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    _quiet_http_libraries()

    level = level or os.environ.get("LOG_LEVEL", "INFO")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if log_to_file is None:
        log_to_file = os.environ.get("LOG_TO_FILE", "true").lower() == "true"

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_to_file:
        log_file = log_file_path(log_dir)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
