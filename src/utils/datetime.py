# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities.

All timestamps are timezone-aware UTC. Analytics days are UTC calendar
dates, so a session recorded at 23:30 local time may land on the next
day for children west of Greenwich.

Usage:
    from src.utils.datetime import utc_now, utc_date

    today = utc_date(utc_now())
"""

from datetime import date, datetime, timezone
from typing import Callable

# Injected wherever "now" matters so reports are reproducible in tests.
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Ensure a datetime is timezone-aware UTC.

    Naive datetimes are assumed to already be UTC.

    Args:
        dt: A naive or aware datetime.

    Returns:
        Timezone-aware UTC datetime.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_date(dt: datetime) -> date:
    """Return the UTC calendar date of a timestamp."""
    return ensure_utc(dt).date()
