"""Time utilities for consistent timestamp handling."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware).

    Used as the default payment_date when the desk does not supply one.
    """
    return datetime.now(timezone.utc)
