# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Collaborator contracts for the analytics generators.

The generators depend on these protocols only. ``SQLAnalyticsStore`` in
``repository.py`` is the production store; tests use an in-memory one.
"""

from datetime import date, datetime
from typing import Any, Protocol

from src.domains.analytics.records import (
    ChildProfile,
    DailyAnalyticsRecord,
    LearningSessionRecord,
    QuizResultRecord,
)


class AnalyticsStore(Protocol):
    """Persistence operations used by analytics.

    Range queries are inclusive of ``since`` and ``until``.
    """

    async def get_child_profile(self, child_id: str) -> ChildProfile | None: ...

    async def list_sessions(
        self,
        child_id: str,
        since: datetime,
        until: datetime,
        *,
        newest_first: bool = True,
    ) -> list[LearningSessionRecord]: ...

    async def list_quiz_results(
        self,
        child_id: str,
        since: datetime,
        until: datetime,
        *,
        newest_first: bool = True,
    ) -> list[QuizResultRecord]: ...

    async def list_daily_analytics(
        self,
        child_id: str,
        since: date,
        until: date,
    ) -> list[DailyAnalyticsRecord]:
        """Return daily rows ordered by date ascending."""
        ...

    async def get_daily_analytics(
        self,
        child_id: str,
        day: date,
    ) -> DailyAnalyticsRecord | None: ...

    async def upsert_daily_analytics(
        self,
        record: DailyAnalyticsRecord,
    ) -> DailyAnalyticsRecord:
        """Insert or replace the row keyed by (child_id, analysis_date) atomically."""
        ...

    async def insert_session(self, session: LearningSessionRecord) -> LearningSessionRecord: ...

    async def update_session(
        self,
        session_id: str,
        values: dict[str, Any],
    ) -> LearningSessionRecord | None:
        """Apply ``values`` to a stored session; None when it does not exist."""
        ...

    async def insert_quiz_result(self, result: QuizResultRecord) -> QuizResultRecord: ...

    async def commit(self) -> None:
        """Make everything written so far durable."""
        ...


class ContentGenerator(Protocol):
    """Generative text provider used for recommendations."""

    async def generate(self, prompt: str) -> str: ...
