"""Time helpers.

Timestamps are stored as naive UTC datetimes, matching the DateTime columns.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
