# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Incremental daily aggregation of learning sessions.

Each processed session is folded into the child's ``learning_analytics``
row for the processing day (UTC). Averages are maintained as online
means so the row never needs the day's raw sessions.

Usage:
    from src.domains.analytics import SessionAggregator

    aggregator = SessionAggregator(store, event_bus=get_event_bus())
    daily = await aggregator.process_session(session)
"""

import asyncio
import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Any

from src.domains.analytics.records import DailyAnalyticsRecord, LearningSessionRecord
from src.domains.analytics.stats import mean, round_half_up, round_to
from src.domains.analytics.store import AnalyticsStore
from src.infrastructure.events import EventBus, EventTypes
from src.utils.datetime import Clock, utc_date, utc_now

logger = logging.getLogger(__name__)

# Weights of the per-session engagement score.
COMPLETION_WEIGHT = 0.4
DURATION_WEIGHT = 0.3
POINTS_WEIGHT = 0.3
# Durations and points at or above these saturate their component.
FULL_DURATION_MINUTES = 30
FULL_POINTS = 100

WEEKLY_WINDOW_DAYS = 7


def session_engagement(session: LearningSessionRecord) -> float:
    """Engagement score of a single session, in [0, 100]."""
    duration_part = min(session.duration_minutes / FULL_DURATION_MINUTES, 1) * 100
    points_part = min(session.points_earned / FULL_POINTS, 1) * 100
    return (
        COMPLETION_WEIGHT * session.completion_percentage
        + DURATION_WEIGHT * duration_part
        + POINTS_WEIGHT * points_part
    )


def online_mean(current: float, count: int, value: float) -> float:
    """Fold one value into a mean over ``count`` previous values."""
    return (current * count + value) / (count + 1)


def weekly_rollup(rows: list[DailyAnalyticsRecord]) -> dict[str, Any]:
    """Summarize a trailing window of daily rows."""
    subjects: set[str] = set()
    for row in rows:
        subjects.update(row.subjects_studied)

    return {
        "total_time_minutes": sum(r.total_session_time_minutes for r in rows),
        "total_sessions": sum(r.sessions_completed for r in rows),
        "average_score": round_half_up(mean([r.average_score_percentage for r in rows])),
        "days_active": len(rows),
        "subjects_covered": sorted(subjects),
    }


class DailyLocks:
    """Process-wide registry of per-(child, day) locks.

    Every aggregator in the process shares one registry, so concurrent
    requests folding into the same daily row take turns.
    """

    def __init__(self) -> None:
        self._locks: defaultdict[tuple[str, date], asyncio.Lock] = defaultdict(asyncio.Lock)

    def __len__(self) -> int:
        return len(self._locks)

    def lock_for(self, child_id: str, day: date) -> asyncio.Lock:
        # Locks for past days are no longer contended.
        for key in [k for k in self._locks if k[1] < day and not self._locks[k].locked()]:
            del self._locks[key]
        return self._locks[(child_id, day)]


_daily_locks: DailyLocks | None = None


def get_daily_locks() -> DailyLocks:
    """Get the process-wide daily lock registry."""
    global _daily_locks
    if _daily_locks is None:
        _daily_locks = DailyLocks()
    return _daily_locks


def reset_daily_locks() -> None:
    """Drop the lock registry; each test runs on its own event loop."""
    global _daily_locks
    _daily_locks = None


class SessionAggregator:
    """Folds sessions into per-day analytics rows.

    Updates for the same (child, day) are serialized with a lock from the
    process-wide registry and committed before it is released, so concurrent
    requests cannot lose each other's contribution to the running averages.

    Attributes:
        retention_days: Days of per-day trend entries kept on the row.
    """

    def __init__(
        self,
        store: AnalyticsStore,
        event_bus: EventBus | None = None,
        clock: Clock = utc_now,
        retention_days: int = 30,
        locks: DailyLocks | None = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            store: Persistence collaborator.
            event_bus: Bus notified after each processed session.
            clock: Source of "now"; the processing day is its UTC date.
            retention_days: Days of per-day trend entries to keep.
            locks: Lock registry; the process-wide one when omitted.
        """
        self._store = store
        self._event_bus = event_bus
        self._clock = clock
        self.retention_days = retention_days
        self._locks = locks if locks is not None else get_daily_locks()

    async def process_session(self, session: LearningSessionRecord) -> DailyAnalyticsRecord:
        """Fold a session into today's analytics row and publish an event.

        Args:
            session: The finished session.

        Returns:
            The persisted daily row.

        Raises:
            InvalidRecordError: If the session is out of range.
        """
        session.validate()
        today = utc_date(self._clock())

        async with self._locks.lock_for(session.child_id, today):
            existing = await self._store.get_daily_analytics(session.child_id, today)
            updated = self._fold(existing, session, today)

            week_rows = await self._store.list_daily_analytics(
                session.child_id,
                today - timedelta(days=WEEKLY_WINDOW_DAYS - 1),
                today,
            )
            week_rows = [r for r in week_rows if r.analysis_date != today] + [updated]
            updated.weekly_progress = weekly_rollup(week_rows)

            saved = await self._store.upsert_daily_analytics(updated)
            # The next holder must read this row, not the pre-commit one.
            await self._store.commit()

        logger.info(
            "Processed session: child=%s, subject=%s, sessions_today=%d",
            session.child_id,
            session.subject,
            saved.sessions_completed,
        )

        if self._event_bus is not None:
            await self._event_bus.publish(
                EventTypes.Analytics.SESSION_PROCESSED,
                {
                    "child_id": session.child_id,
                    "session_id": session.id,
                    "subject": session.subject,
                    "duration_minutes": session.duration_minutes,
                    "completion_percentage": session.completion_percentage,
                    "points_earned": session.points_earned,
                    "analysis_date": today.isoformat(),
                },
            )

        return saved

    def _fold(
        self,
        existing: DailyAnalyticsRecord | None,
        session: LearningSessionRecord,
        today: date,
    ) -> DailyAnalyticsRecord:
        current = existing or DailyAnalyticsRecord(child_id=session.child_id, analysis_date=today)
        count = current.sessions_completed

        total_time = current.total_session_time_minutes + session.duration_minutes
        sessions = count + 1

        subjects = list(current.subjects_studied)
        if session.subject not in subjects:
            subjects.append(session.subject)

        velocity = round_to(sessions / (total_time / 60), 2) if total_time > 0 else 0.0

        daily_trends = dict(current.performance_trends.get("daily", {}))
        daily_trends[today.isoformat()] = {
            "completion_percentage": session.completion_percentage,
            "duration_minutes": session.duration_minutes,
            "points_earned": session.points_earned,
        }
        cutoff = (today - timedelta(days=self.retention_days)).isoformat()
        daily_trends = {day: v for day, v in sorted(daily_trends.items()) if day >= cutoff}

        return DailyAnalyticsRecord(
            id=current.id,
            child_id=session.child_id,
            analysis_date=today,
            total_session_time_minutes=total_time,
            sessions_completed=sessions,
            average_score_percentage=round_to(
                online_mean(current.average_score_percentage, count, session.completion_percentage),
                2,
            ),
            subjects_studied=subjects,
            learning_velocity=velocity,
            engagement_score=round_to(
                online_mean(current.engagement_score, count, session_engagement(session)),
                2,
            ),
            performance_trends={**current.performance_trends, "daily": daily_trends},
            weekly_progress=current.weekly_progress,
        )
