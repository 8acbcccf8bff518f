# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Numeric helpers shared by the analytics generators.

Every helper is total: empty input yields 0.0 rather than raising or
producing NaN, so reports for children with no activity come out zeroed.
"""

import math
from datetime import date, timedelta
from typing import Sequence, TypeVar

T = TypeVar("T")


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0.0 for an empty sequence."""
    if not values:
        return 0.0
    return sum(values) / len(values)


def pstdev(values: Sequence[float]) -> float:
    """Population standard deviation, 0.0 for an empty sequence."""
    if not values:
        return 0.0
    avg = mean(values)
    return math.sqrt(sum((v - avg) ** 2 for v in values) / len(values))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves rounding towards +infinity.

    Python's round() uses banker's rounding (round(2.5) == 2); report
    values need 2.5 -> 3 and 78.5 -> 79.
    """
    return int(math.floor(value + 0.5))


def round_to(value: float, digits: int) -> float:
    """Round half-up to a fixed number of decimal places."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def percent_change(old: float, new: float) -> float:
    """Relative change from old to new in percent, 0.0 when old is zero."""
    if old == 0:
        return 0.0
    return (new - old) / old * 100


def split_halves(items: Sequence[T]) -> tuple[list[T], list[T]]:
    """Split at floor(n/2): the first half is the smaller one for odd n."""
    mid = len(items) // 2
    return list(items[:mid]), list(items[mid:])


def clamp(value: float, low: float, high: float) -> float:
    """Limit value to the closed interval [low, high]."""
    return max(low, min(high, value))


def ratio_percent(part: float, whole: float) -> float:
    """Share of part in whole in percent, 0.0 when whole is zero."""
    if whole == 0:
        return 0.0
    return part / whole * 100


def consecutive_active_days(active_days: set[date], today: date, lookback_days: int = 30) -> int:
    """Length of the most recent run of active days, looking back from today.

    Inactive days before the run starts are skipped, so a child who has not
    studied yet today keeps yesterday's streak. Only ``lookback_days`` days
    are inspected.
    """
    streak = 0
    for offset in range(lookback_days):
        if today - timedelta(days=offset) in active_days:
            streak += 1
        elif streak > 0:
            break
    return streak
