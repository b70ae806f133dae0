"""LeadHub — Error Taxonomy.

Remote errors come from the Meta client; store errors are raw SQLAlchemy
exceptions classified here into transient (retry), schema-missing (degrade
to empty) and fatal (abort).
"""

from sqlalchemy import exc as sa_exc

# Meta error codes that signal throttling
RATE_LIMIT_ERROR_CODES = frozenset({4, 17, 32, 613})

_SCHEMA_MISSING_MARKERS = (
    "no such table",
    "no such column",
    "does not exist",
    "undefinedtable",
    "undefinedcolumn",
    "42p01",
    "42703",
    "pgrst205",
)

_TRANSIENT_MARKERS = (
    "timeout",
    "timed out",
    "connection reset",
    "connection refused",
    "econnreset",
    "server closed the connection",
    "bad gateway",
    "gateway",
    "502",
    "503",
    "504",
    "database is locked",
)


class MetaAPIError(Exception):
    """Raised when Meta API returns an error."""

    def __init__(self, message: str, status_code: int = 0, error_code: int = 0):
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)


class MetaRateLimitError(MetaAPIError):
    """Throttling persisted through every backoff attempt."""


class StorePayloadTooLarge(ValueError):
    """A single write carried more rows than the store accepts."""


class SyncAlreadyRunning(Exception):
    """A run was requested while another one is in flight."""

    def __init__(self, progress):
        self.progress = progress
        super().__init__("Sync already running")


def is_rate_limit_error(error_code: int, status_code: int = 0) -> bool:
    return error_code in RATE_LIMIT_ERROR_CODES or status_code == 429


def is_schema_missing_error(error: BaseException) -> bool:
    """Expected table or column absent: feature not yet provisioned."""
    if not isinstance(error, sa_exc.DBAPIError):
        return False
    message = str(error).lower()
    return any(marker in message for marker in _SCHEMA_MISSING_MARKERS)


def is_transient_store_error(error: BaseException) -> bool:
    """Timeouts, gateway errors and dropped connections are worth retrying."""
    if is_schema_missing_error(error):
        return False
    if isinstance(
        error,
        (sa_exc.TimeoutError, sa_exc.DisconnectionError, TimeoutError, ConnectionError),
    ):
        return True
    if isinstance(error, sa_exc.DBAPIError) and error.connection_invalidated:
        return True
    if isinstance(error, (sa_exc.OperationalError, sa_exc.InterfaceError)):
        message = str(error).lower()
        return any(marker in message for marker in _TRANSIENT_MARKERS)
    return False
