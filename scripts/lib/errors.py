"""
Custom error classes for the LQS analytics engine.
Structured error handling with error codes across all modules.

Hierarchy:
    LqsError
    ├── DataError
    │   ├── ConfigError
    │   ├── SchemaValidationError
    │   └── DataFetchError
    └── AnalyticsError
        ├── InvalidDateRangeError
        └── InvalidViewModeError
"""


class LqsError(Exception):
    """Base exception for all LQS analytics errors."""

    def __init__(self, message: str, code: str = "UNKNOWN", details: dict = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(f"[{code}] {message}")


# --- Data Errors ---

class DataError(LqsError):
    """Base class for data access errors."""
    pass


class ConfigError(DataError):
    """Missing or invalid configuration."""

    def __init__(self, message: str, setting: str = None):
        super().__init__(
            message, code="CONFIG_ERROR",
            details={"setting": setting},
        )


class SchemaValidationError(DataError):
    """A fetched row doesn't match the expected record shape."""

    def __init__(self, message: str, table: str = None):
        super().__init__(
            message, code="SCHEMA_INVALID", details={"table": table},
        )


class DataFetchError(DataError):
    """Failed to fetch records from the store."""

    def __init__(self, message: str, source: str = None, page_start: int = None):
        super().__init__(
            message, code="DATA_FETCH_FAILED",
            details={"source": source, "page_start": page_start},
        )


# --- Analytics Errors ---

class AnalyticsError(LqsError):
    """Invalid analytics request."""
    pass


class InvalidDateRangeError(AnalyticsError):
    """Date range is malformed or ends before it starts."""

    def __init__(self, message: str, start=None, end=None):
        super().__init__(
            message, code="INVALID_DATE_RANGE",
            details={"start": str(start) if start else None,
                     "end": str(end) if end else None},
        )


class InvalidViewModeError(AnalyticsError):
    """Unknown producer view mode or date preset."""

    def __init__(self, value: str, allowed: list):
        super().__init__(
            f"Unsupported value '{value}'. Expected one of: {', '.join(allowed)}",
            code="INVALID_VIEW_MODE",
            details={"value": value, "allowed": allowed},
        )
