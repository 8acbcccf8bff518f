# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- An in-memory analytics store
- A fixed clock
- Factories for sessions, quiz results and daily rows
"""

import asyncio
import copy
import dataclasses
from collections.abc import Callable, Generator
from datetime import date, datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

import pytest

from src.core.config import clear_settings_cache
from src.domains.analytics.aggregator import reset_daily_locks
from src.domains.analytics.records import (
    ChildProfile,
    DailyAnalyticsRecord,
    LearningSessionRecord,
    QuizResultRecord,
)
from src.infrastructure.events import reset_event_bus

FIXED_NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)
TODAY = FIXED_NOW.date()
CHILD_ID = "child-1"


# =============================================================================
# In-memory store
# =============================================================================


class InMemoryAnalyticsStore:
    """AnalyticsStore keeping everything in lists and dicts.

    Reads and writes yield to the event loop once, so concurrent callers
    interleave the way they would against a real database.
    """

    def __init__(self) -> None:
        self.profiles: dict[str, ChildProfile] = {}
        self.sessions: list[LearningSessionRecord] = []
        self.quizzes: list[QuizResultRecord] = []
        self.daily: dict[tuple[str, date], DailyAnalyticsRecord] = {}
        self.upsert_count = 0
        self.commit_count = 0

    async def get_child_profile(self, child_id: str) -> ChildProfile | None:
        await asyncio.sleep(0)
        return self.profiles.get(child_id)

    async def list_sessions(
        self,
        child_id: str,
        since: datetime,
        until: datetime,
        *,
        newest_first: bool = True,
    ) -> list[LearningSessionRecord]:
        await asyncio.sleep(0)
        rows = [
            s for s in self.sessions if s.child_id == child_id and since <= s.created_at <= until
        ]
        return sorted(rows, key=lambda s: s.created_at, reverse=newest_first)

    async def list_quiz_results(
        self,
        child_id: str,
        since: datetime,
        until: datetime,
        *,
        newest_first: bool = True,
    ) -> list[QuizResultRecord]:
        await asyncio.sleep(0)
        rows = [
            q for q in self.quizzes if q.child_id == child_id and since <= q.created_at <= until
        ]
        return sorted(rows, key=lambda q: q.created_at, reverse=newest_first)

    async def list_daily_analytics(
        self,
        child_id: str,
        since: date,
        until: date,
    ) -> list[DailyAnalyticsRecord]:
        await asyncio.sleep(0)
        rows = [
            copy.deepcopy(row)
            for (owner, day), row in self.daily.items()
            if owner == child_id and since <= day <= until
        ]
        return sorted(rows, key=lambda r: r.analysis_date)

    async def get_daily_analytics(self, child_id: str, day: date) -> DailyAnalyticsRecord | None:
        await asyncio.sleep(0)
        row = self.daily.get((child_id, day))
        return copy.deepcopy(row) if row is not None else None

    async def upsert_daily_analytics(self, record: DailyAnalyticsRecord) -> DailyAnalyticsRecord:
        await asyncio.sleep(0)
        stored = copy.deepcopy(record)
        stored.id = stored.id or str(uuid4())
        self.daily[(stored.child_id, stored.analysis_date)] = stored
        self.upsert_count += 1
        return copy.deepcopy(stored)

    async def insert_session(self, session: LearningSessionRecord) -> LearningSessionRecord:
        session.id = session.id or str(uuid4())
        self.sessions.append(session)
        return session

    async def update_session(
        self,
        session_id: str,
        values: dict[str, Any],
    ) -> LearningSessionRecord | None:
        await asyncio.sleep(0)
        for index, session in enumerate(self.sessions):
            if session.id == session_id:
                self.sessions[index] = dataclasses.replace(session, **values)
                return copy.deepcopy(self.sessions[index])
        return None

    async def insert_quiz_result(self, result: QuizResultRecord) -> QuizResultRecord:
        result.id = result.id or str(uuid4())
        self.quizzes.append(result)
        return result

    async def commit(self) -> None:
        self.commit_count += 1


# =============================================================================
# Core fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_singletons() -> Generator[None, None, None]:
    """Reset cached settings, the event bus and the daily locks around each test."""
    clear_settings_cache()
    reset_event_bus()
    reset_daily_locks()
    yield
    clear_settings_cache()
    reset_event_bus()
    reset_daily_locks()


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """Clock frozen at FIXED_NOW."""
    return lambda: FIXED_NOW


@pytest.fixture
def profile() -> ChildProfile:
    """Profile of the child used across tests."""
    return ChildProfile(id=CHILD_ID, name="Ada", age=8, interests=["space", "animals"])


@pytest.fixture
def store(profile: ChildProfile) -> InMemoryAnalyticsStore:
    """In-memory store that knows the test child."""
    store = InMemoryAnalyticsStore()
    store.profiles[profile.id] = profile
    return store


# =============================================================================
# Record factories
# =============================================================================


@pytest.fixture
def make_session() -> Callable[..., LearningSessionRecord]:
    """Factory for sessions relative to FIXED_NOW."""

    def factory(
        days_ago: int = 0,
        hour: int = 10,
        subject: str = "math",
        duration: int = 20,
        completion: float = 80,
        points: int = 50,
        **overrides: Any,
    ) -> LearningSessionRecord:
        created_at = datetime(TODAY.year, TODAY.month, TODAY.day, hour, tzinfo=timezone.utc)
        fields: dict[str, Any] = {
            "child_id": CHILD_ID,
            "subject": subject,
            "duration_minutes": duration,
            "completion_percentage": completion,
            "points_earned": points,
            "created_at": created_at - timedelta(days=days_ago),
        }
        fields.update(overrides)
        return LearningSessionRecord(**fields)

    return factory


@pytest.fixture
def make_quiz() -> Callable[..., QuizResultRecord]:
    """Factory for quiz results relative to FIXED_NOW."""

    def factory(
        score: int = 80,
        days_ago: int = 0,
        hour: int = 11,
        quiz_type: str = "math",
        **overrides: Any,
    ) -> QuizResultRecord:
        created_at = datetime(TODAY.year, TODAY.month, TODAY.day, hour, tzinfo=timezone.utc)
        fields: dict[str, Any] = {
            "child_id": CHILD_ID,
            "quiz_type": quiz_type,
            "total_questions": 10,
            "correct_answers": score // 10,
            "score_percentage": score,
            "created_at": created_at - timedelta(days=days_ago),
        }
        fields.update(overrides)
        return QuizResultRecord(**fields)

    return factory


@pytest.fixture
def make_daily() -> Callable[..., DailyAnalyticsRecord]:
    """Factory for daily analytics rows relative to TODAY."""

    def factory(
        days_ago: int = 0,
        score: float = 70,
        minutes: int = 30,
        sessions: int = 1,
        engagement: float = 70,
        subjects: list[str] | None = None,
        **overrides: Any,
    ) -> DailyAnalyticsRecord:
        fields: dict[str, Any] = {
            "child_id": CHILD_ID,
            "analysis_date": TODAY - timedelta(days=days_ago),
            "total_session_time_minutes": minutes,
            "sessions_completed": sessions,
            "average_score_percentage": score,
            "subjects_studied": subjects if subjects is not None else ["math"],
            "engagement_score": engagement,
        }
        fields.update(overrides)
        return DailyAnalyticsRecord(**fields)

    return factory


@pytest.fixture
def seed_daily(
    store: InMemoryAnalyticsStore,
) -> Callable[[list[DailyAnalyticsRecord]], None]:
    """Put daily rows straight into the store."""

    def seed(rows: list[DailyAnalyticsRecord]) -> None:
        for row in rows:
            store.daily[(row.child_id, row.analysis_date)] = row

    return seed


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (HTTP layer)"
    )
