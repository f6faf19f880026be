"""Time Utilities for UTC management"""

from datetime import datetime, timezone


def get_utc_now() -> datetime:
    """
    Returns a naive UTC datetime.
    Matches the DB schema (TIMESTAMP WITHOUT TIME ZONE).
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def start_of_month(now: datetime) -> datetime:
    """First instant of the month containing `now` (used by the stats endpoints)"""
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
