# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy implementation of the analytics store.

Usage:
    async with get_session() as db:
        store = SQLAnalyticsStore(db)
        sessions = await store.list_sessions(child_id, since, until)

The caller's session scope owns the transaction; only the aggregator commits
early, through ``commit``. Statements on the shared AsyncSession are
serialized and each runs inside a savepoint.
"""

import asyncio
import logging
from datetime import date, datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import Executable, Result, and_, asc, desc, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.analytics.records import (
    ChildProfile,
    DailyAnalyticsRecord,
    LearningSessionRecord,
    QuizResultRecord,
)
from src.infrastructure.database.models.analytics import (
    ChildProfileModel,
    LearningAnalyticsModel,
    LearningSessionModel,
    QuizResultModel,
)
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

_DAILY_FIELDS = (
    "total_session_time_minutes",
    "sessions_completed",
    "average_score_percentage",
    "subjects_studied",
    "learning_velocity",
    "engagement_score",
    "performance_trends",
    "weekly_progress",
)


def _session_to_record(row: LearningSessionModel) -> LearningSessionRecord:
    return LearningSessionRecord(
        id=row.id,
        child_id=row.child_id,
        subject=row.subject,
        topic=row.topic,
        session_type=row.session_type,
        duration_minutes=row.duration_minutes,
        completion_percentage=float(row.completion_percentage),
        points_earned=row.points_earned,
        created_at=row.created_at,
    )


def _quiz_to_record(row: QuizResultModel) -> QuizResultRecord:
    return QuizResultRecord(
        id=row.id,
        child_id=row.child_id,
        quiz_type=row.quiz_type,
        total_questions=row.total_questions,
        correct_answers=row.correct_answers,
        score_percentage=row.score_percentage,
        created_at=row.created_at,
    )


def _daily_to_record(row: LearningAnalyticsModel) -> DailyAnalyticsRecord:
    return DailyAnalyticsRecord(
        id=row.id,
        child_id=row.child_id,
        analysis_date=row.analysis_date,
        total_session_time_minutes=row.total_session_time_minutes,
        sessions_completed=row.sessions_completed,
        average_score_percentage=float(row.average_score_percentage),
        subjects_studied=list(row.subjects_studied or []),
        learning_velocity=float(row.learning_velocity),
        engagement_score=float(row.engagement_score),
        performance_trends=dict(row.performance_trends or {}),
        weekly_progress=dict(row.weekly_progress or {}),
    )


class SQLAnalyticsStore:
    """AnalyticsStore backed by PostgreSQL through an AsyncSession."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db
        # AsyncSession does not allow concurrent operations.
        self._lock = asyncio.Lock()

    async def _execute(self, stmt: Executable) -> Result:
        async with self._lock:
            # A failing statement rolls back to its savepoint only, leaving the
            # shared transaction usable for other reports.
            async with self._db.begin_nested():
                return await self._db.execute(stmt)

    async def _add(self, row: object) -> None:
        async with self._lock:
            async with self._db.begin_nested():
                self._db.add(row)
                await self._db.flush()

    async def commit(self) -> None:
        async with self._lock:
            await self._db.commit()

    async def get_child_profile(self, child_id: str) -> ChildProfile | None:
        result = await self._execute(
            select(ChildProfileModel).where(ChildProfileModel.id == child_id)
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return ChildProfile(
            id=row.id,
            name=row.name,
            age=row.age,
            interests=list(row.interests or []),
            learning_preferences=dict(row.learning_preferences or {}),
        )

    async def list_sessions(
        self,
        child_id: str,
        since: datetime,
        until: datetime,
        *,
        newest_first: bool = True,
    ) -> list[LearningSessionRecord]:
        order = desc if newest_first else asc
        result = await self._execute(
            select(LearningSessionModel)
            .where(
                and_(
                    LearningSessionModel.child_id == child_id,
                    LearningSessionModel.created_at >= since,
                    LearningSessionModel.created_at <= until,
                )
            )
            .order_by(order(LearningSessionModel.created_at))
        )
        return [_session_to_record(row) for row in result.scalars().all()]

    async def list_quiz_results(
        self,
        child_id: str,
        since: datetime,
        until: datetime,
        *,
        newest_first: bool = True,
    ) -> list[QuizResultRecord]:
        order = desc if newest_first else asc
        result = await self._execute(
            select(QuizResultModel)
            .where(
                and_(
                    QuizResultModel.child_id == child_id,
                    QuizResultModel.created_at >= since,
                    QuizResultModel.created_at <= until,
                )
            )
            .order_by(order(QuizResultModel.created_at))
        )
        return [_quiz_to_record(row) for row in result.scalars().all()]

    async def list_daily_analytics(
        self,
        child_id: str,
        since: date,
        until: date,
    ) -> list[DailyAnalyticsRecord]:
        result = await self._execute(
            select(LearningAnalyticsModel)
            .where(
                and_(
                    LearningAnalyticsModel.child_id == child_id,
                    LearningAnalyticsModel.analysis_date >= since,
                    LearningAnalyticsModel.analysis_date <= until,
                )
            )
            .order_by(asc(LearningAnalyticsModel.analysis_date))
        )
        return [_daily_to_record(row) for row in result.scalars().all()]

    async def get_daily_analytics(self, child_id: str, day: date) -> DailyAnalyticsRecord | None:
        result = await self._execute(
            select(LearningAnalyticsModel).where(
                and_(
                    LearningAnalyticsModel.child_id == child_id,
                    LearningAnalyticsModel.analysis_date == day,
                )
            )
        )
        row = result.scalar_one_or_none()
        return _daily_to_record(row) if row is not None else None

    async def upsert_daily_analytics(self, record: DailyAnalyticsRecord) -> DailyAnalyticsRecord:
        """Write the row with a single INSERT ... ON CONFLICT DO UPDATE."""
        now = utc_now()
        values = {name: getattr(record, name) for name in _DAILY_FIELDS}
        stmt = insert(LearningAnalyticsModel).values(
            id=record.id or str(uuid4()),
            child_id=record.child_id,
            analysis_date=record.analysis_date,
            created_at=now,
            updated_at=now,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            constraint="uq_learning_analytics_child_date",
            set_={**{name: stmt.excluded[name] for name in _DAILY_FIELDS}, "updated_at": now},
        ).returning(LearningAnalyticsModel)
        # The row may already be in the identity map from get_daily_analytics.
        stmt = stmt.execution_options(populate_existing=True)

        result = await self._execute(stmt)
        row = result.scalar_one()
        logger.debug(
            "Upserted daily analytics: child=%s, date=%s",
            record.child_id,
            record.analysis_date,
        )
        return _daily_to_record(row)

    async def insert_session(self, session: LearningSessionRecord) -> LearningSessionRecord:
        row = LearningSessionModel(
            id=session.id or str(uuid4()),
            child_id=session.child_id,
            subject=session.subject,
            topic=session.topic,
            session_type=session.session_type,
            duration_minutes=session.duration_minutes,
            completion_percentage=session.completion_percentage,
            points_earned=session.points_earned,
            created_at=session.created_at,
        )
        await self._add(row)
        session.id = row.id
        return session

    async def update_session(
        self,
        session_id: str,
        values: dict[str, Any],
    ) -> LearningSessionRecord | None:
        stmt = (
            update(LearningSessionModel)
            .where(LearningSessionModel.id == session_id)
            .values(**values, updated_at=utc_now())
            .returning(LearningSessionModel)
            .execution_options(populate_existing=True)
        )
        result = await self._execute(stmt)
        row = result.scalar_one_or_none()
        if row is None:
            return None
        logger.debug("Updated learning session: id=%s, fields=%s", session_id, sorted(values))
        return _session_to_record(row)

    async def insert_quiz_result(self, result: QuizResultRecord) -> QuizResultRecord:
        row = QuizResultModel(
            id=result.id or str(uuid4()),
            child_id=result.child_id,
            quiz_type=result.quiz_type,
            total_questions=result.total_questions,
            correct_answers=result.correct_answers,
            score_percentage=result.score_percentage,
            created_at=result.created_at,
        )
        await self._add(row)
        result.id = row.id
        return result
