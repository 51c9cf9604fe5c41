"""UTC clock helpers.

Every timestamp in the service is a **naive** UTC datetime. Daily aggregates
are cut at local midnight, converted back into that same naive UTC frame.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current UTC time as a naive (tzinfo=None) datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utcfromtimestamp(ts: float) -> datetime:
    """Convert a POSIX timestamp to a naive UTC datetime."""
    return datetime.fromtimestamp(ts, tz=timezone.utc).replace(tzinfo=None)


def local_midnight_utc(now: datetime | None = None) -> datetime:
    """Start of the current local day, expressed as naive UTC."""
    local_now = (now.replace(tzinfo=timezone.utc) if now else datetime.now(timezone.utc)).astimezone()
    midnight = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.astimezone(timezone.utc).replace(tzinfo=None)
