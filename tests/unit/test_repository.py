# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the SQLAlchemy analytics store (mocked session)."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from src.domains.analytics.records import DailyAnalyticsRecord, LearningSessionRecord
from src.domains.analytics.repository import SQLAnalyticsStore
from src.domains.analytics.service import AnalyticsService
from src.infrastructure.database.models import (
    ChildProfileModel,
    LearningAnalyticsModel,
    LearningSessionModel,
)

DAY = date(2025, 3, 15)


def result_with(*, one=None, rows=None) -> MagicMock:
    result = MagicMock()
    result.scalar_one_or_none.return_value = one
    result.scalar_one.return_value = one
    result.scalars.return_value.all.return_value = rows or []
    return result


@pytest.fixture
def db() -> MagicMock:
    savepoint = MagicMock()
    savepoint.__aenter__ = AsyncMock(return_value=savepoint)
    savepoint.__aexit__ = AsyncMock(return_value=False)
    db = MagicMock()
    db.begin_nested = MagicMock(return_value=savepoint)
    db.execute = AsyncMock()
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    return db


class AbortingSession:
    """AsyncSession stand-in with PostgreSQL's aborted-transaction rule.

    The first statement fails. Until a savepoint is rolled back, every later
    statement in the transaction fails as well.
    """

    def __init__(self, profile: ChildProfileModel) -> None:
        self.statements = 0
        self.aborted = False
        self._result = result_with(one=profile)

    @asynccontextmanager
    async def begin_nested(self) -> AsyncIterator[None]:
        try:
            yield
        except Exception:
            self.aborted = False
            raise

    async def execute(self, stmt: object) -> MagicMock:
        if self.aborted:
            raise RuntimeError("current transaction is aborted")
        self.statements += 1
        if self.statements == 1:
            self.aborted = True
            raise RuntimeError("statement failed")
        return self._result


def analytics_row() -> LearningAnalyticsModel:
    return LearningAnalyticsModel(
        id="row-1",
        child_id="child-1",
        analysis_date=DAY,
        total_session_time_minutes=30,
        sessions_completed=1,
        average_score_percentage=Decimal("80.00"),
        subjects_studied=["math"],
        learning_velocity=Decimal("2.00"),
        engagement_score=Decimal("92.00"),
        performance_trends={},
        weekly_progress={"total_sessions": 1},
    )


class TestSQLAnalyticsStore:
    """Tests for SQLAnalyticsStore."""

    @pytest.mark.asyncio
    async def test_missing_profile(self, db) -> None:
        """Test an unknown child returns None."""
        db.execute.return_value = result_with(one=None)

        assert await SQLAnalyticsStore(db).get_child_profile("nobody") is None

    @pytest.mark.asyncio
    async def test_profile_converted(self, db) -> None:
        """Test ORM rows are converted to domain records."""
        db.execute.return_value = result_with(
            one=ChildProfileModel(
                id="child-1", name="Ada", age=8, interests=["space"], learning_preferences={}
            )
        )

        profile = await SQLAnalyticsStore(db).get_child_profile("child-1")

        assert profile.name == "Ada"
        assert profile.interests == ["space"]

    @pytest.mark.asyncio
    async def test_sessions_converted(self, db) -> None:
        """Test numeric columns become floats."""
        db.execute.return_value = result_with(
            rows=[
                LearningSessionModel(
                    id="s-1",
                    child_id="child-1",
                    subject="math",
                    topic="",
                    session_type="lesson",
                    duration_minutes=20,
                    completion_percentage=Decimal("85.50"),
                    points_earned=40,
                    created_at=datetime(2025, 3, 15, 10, tzinfo=timezone.utc),
                )
            ]
        )

        sessions = await SQLAnalyticsStore(db).list_sessions(
            "child-1",
            datetime(2025, 3, 8, tzinfo=timezone.utc),
            datetime(2025, 3, 15, 12, tzinfo=timezone.utc),
        )

        assert sessions[0].completion_percentage == 85.5
        assert isinstance(sessions[0].completion_percentage, float)

    @pytest.mark.asyncio
    async def test_upsert_uses_on_conflict(self, db) -> None:
        """Test the daily row is written with a single upsert statement."""
        db.execute.return_value = result_with(one=analytics_row())
        record = DailyAnalyticsRecord(
            child_id="child-1",
            analysis_date=DAY,
            total_session_time_minutes=30,
            sessions_completed=1,
            average_score_percentage=80.0,
            subjects_studied=["math"],
            learning_velocity=2.0,
            engagement_score=92.0,
        )

        saved = await SQLAnalyticsStore(db).upsert_daily_analytics(record)

        stmt = db.execute.call_args.args[0]
        sql = str(stmt.compile(dialect=postgresql.dialect()))
        assert "ON CONFLICT ON CONSTRAINT uq_learning_analytics_child_date DO UPDATE" in sql
        assert saved.id == "row-1"
        assert saved.average_score_percentage == 80.0
        assert saved.weekly_progress == {"total_sessions": 1}

    @pytest.mark.asyncio
    async def test_insert_session_assigns_id(self, db) -> None:
        """Test inserted sessions receive an identifier."""
        session = LearningSessionRecord(
            child_id="child-1",
            subject="math",
            duration_minutes=20,
            completion_percentage=80,
            points_earned=10,
            created_at=datetime(2025, 3, 15, 10, tzinfo=timezone.utc),
        )

        stored = await SQLAnalyticsStore(db).insert_session(session)

        assert stored.id is not None
        db.add.assert_called_once()
        db.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_statements_run_in_savepoints(self, db) -> None:
        """Test every statement is wrapped in its own savepoint."""
        db.execute.return_value = result_with(rows=[])
        store = SQLAnalyticsStore(db)

        await store.list_quiz_results(
            "child-1",
            datetime(2025, 3, 8, tzinfo=timezone.utc),
            datetime(2025, 3, 15, 12, tzinfo=timezone.utc),
        )
        await store.get_daily_analytics("child-1", DAY)

        assert db.begin_nested.call_count == 2

    @pytest.mark.asyncio
    async def test_failed_statement_does_not_poison_other_reports(self, clock) -> None:
        """Test one failing query fails one report, not the whole batch."""
        db = AbortingSession(
            ChildProfileModel(
                id="child-1", name="Ada", age=8, interests=[], learning_preferences={}
            )
        )
        service = AnalyticsService(SQLAnalyticsStore(db), clock=clock)

        result = await service.generate_all_reports("child-1", "week")

        assert [e.error for e in result.errors] == ["statement failed"]
        reports = (result.learning_report, result.progress_report, result.insights)
        assert sum(r is not None for r in reports) == 2

    @pytest.mark.asyncio
    async def test_update_session(self, db) -> None:
        """Test an update returns the refreshed session."""
        db.execute.return_value = result_with(
            one=LearningSessionModel(
                id="s-1",
                child_id="child-1",
                subject="math",
                topic="",
                session_type="lesson",
                duration_minutes=20,
                completion_percentage=Decimal("100.00"),
                points_earned=40,
                created_at=datetime(2025, 3, 15, 10, tzinfo=timezone.utc),
            )
        )

        updated = await SQLAnalyticsStore(db).update_session("s-1", {"completion_percentage": 100})

        assert updated.completion_percentage == 100.0
        sql = str(db.execute.call_args.args[0].compile(dialect=postgresql.dialect()))
        assert sql.startswith("UPDATE learning_sessions SET")
        assert "RETURNING" in sql

    @pytest.mark.asyncio
    async def test_update_missing_session(self, db) -> None:
        """Test updating an unknown id returns None."""
        db.execute.return_value = result_with(one=None)

        updated = await SQLAnalyticsStore(db).update_session("nope", {"completion_percentage": 50})

        assert updated is None

    @pytest.mark.asyncio
    async def test_commit(self, db) -> None:
        """Test commit is forwarded to the session."""
        await SQLAnalyticsStore(db).commit()

        db.commit.assert_awaited_once()
