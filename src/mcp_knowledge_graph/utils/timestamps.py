"""ISO-8601 timestamp helpers.

Graph records store timestamps as UTC ISO strings with millisecond precision
and a ``Z`` suffix, so plain string comparison orders them chronologically.
"""

import logging
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


def now_iso() -> str:
    """Current UTC time as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    return to_iso(datetime.now(timezone.utc))


def to_iso(dt: datetime) -> str:
    """Format a datetime as a UTC ISO string (naive values are taken as UTC)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: str) -> datetime | None:
    """Parse an ISO string to an aware UTC datetime; ``None`` if unparseable."""
    try:
        dt = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        logger.warning(f"Failed to parse timestamp '{value}'")
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt
