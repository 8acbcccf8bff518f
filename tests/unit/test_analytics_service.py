# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the analytics service facade."""

import asyncio
from datetime import date
from unittest.mock import AsyncMock

import pytest

from src.core.config.settings import AnalyticsSettings
from src.domains.analytics.exceptions import (
    ChildNotFoundError,
    InvalidRecordError,
    SessionNotFoundError,
)
from src.domains.analytics.service import AnalyticsService
from src.infrastructure.events import EventData, EventTypes

TODAY = date(2025, 3, 15)


@pytest.fixture
def service(store, clock) -> AnalyticsService:
    return AnalyticsService(store, clock=clock)


class TestRecording:
    """Tests for recording sessions and quizzes."""

    @pytest.mark.asyncio
    async def test_record_session(self, service, store, make_session) -> None:
        """Test a session is stored and aggregated."""
        daily = await service.record_session(make_session(duration=30))

        assert len(store.sessions) == 1
        assert store.sessions[0].id is not None
        assert daily.sessions_completed == 1
        assert daily.total_session_time_minutes == 30

    @pytest.mark.asyncio
    async def test_invalid_session_not_stored(self, service, store, make_session) -> None:
        """Test an invalid session is rejected before insertion."""
        with pytest.raises(InvalidRecordError):
            await service.record_session(make_session(duration=-5))

        assert store.sessions == []

    @pytest.mark.asyncio
    async def test_concurrent_services_share_daily_row(self, store, clock, make_session) -> None:
        """Test one service per request still counts every session."""
        services = [AnalyticsService(store, clock=clock) for _ in range(10)]

        await asyncio.gather(
            *(svc.record_session(make_session(duration=10)) for svc in services)
        )

        daily = store.daily[("child-1", TODAY)]
        assert daily.sessions_completed == 10
        assert daily.total_session_time_minutes == 100
        assert store.commit_count == 10

    @pytest.mark.asyncio
    async def test_update_session_reprocesses(self, service, store, make_session) -> None:
        """Test a completion update is stored and folded in a second time."""
        await service.record_session(make_session(duration=20, completion=40))
        session_id = store.sessions[0].id

        daily = await service.update_session(session_id, completion_percentage=100, points_earned=80)

        assert store.sessions[0].completion_percentage == 100
        assert store.sessions[0].points_earned == 80
        assert store.sessions[0].duration_minutes == 20
        assert daily.sessions_completed == 2
        assert daily.total_session_time_minutes == 40
        assert daily.average_score_percentage == 70.0

    @pytest.mark.asyncio
    async def test_update_unknown_session(self, service, store) -> None:
        """Test updating a missing session raises and aggregates nothing."""
        with pytest.raises(SessionNotFoundError) as exc_info:
            await service.update_session("missing", completion_percentage=90)

        assert exc_info.value.session_id == "missing"
        assert store.daily == {}

    @pytest.mark.asyncio
    async def test_update_out_of_range(self, service, store, make_session) -> None:
        """Test an invalid completion is rejected before the store is touched."""
        await service.record_session(make_session(completion=40))

        with pytest.raises(InvalidRecordError) as exc_info:
            await service.update_session(store.sessions[0].id, completion_percentage=140)

        assert exc_info.value.field == "completion_percentage"
        assert store.sessions[0].completion_percentage == 40

    @pytest.mark.asyncio
    async def test_record_quiz_result(self, service, store) -> None:
        """Test the score is derived from the answer counts."""
        received: list[EventData] = []

        async def handler(event: EventData) -> None:
            received.append(event)

        unsubscribe = service.subscribe(EventTypes.Analytics.QUIZ_RECORDED, handler)

        result = await service.record_quiz_result("child-1", "math", 9, 7)

        assert result.score_percentage == 78
        assert result.created_at.isoformat() == "2025-03-15T12:00:00+00:00"
        assert store.quizzes == [result]
        assert received[0].payload == {
            "child_id": "child-1",
            "quiz_type": "math",
            "score_percentage": 78,
        }
        assert unsubscribe() is True

    @pytest.mark.asyncio
    async def test_inconsistent_quiz_rejected(self, service, store) -> None:
        """Test more correct answers than questions is rejected."""
        with pytest.raises(InvalidRecordError) as exc_info:
            await service.record_quiz_result("child-1", "math", 5, 6)

        assert exc_info.value.field == "correct_answers"
        assert store.quizzes == []


class TestReports:
    """Tests for report generation through the service."""

    @pytest.mark.asyncio
    async def test_generate_all_reports(self, service, store, make_session, make_quiz) -> None:
        """Test all three reports are produced."""
        store.sessions.extend(make_session(days_ago=d) for d in range(3))
        store.quizzes.append(make_quiz(score=100))

        result = await service.generate_all_reports("child-1", "week")

        assert result.succeeded
        assert result.learning_report.performance_analysis.total_sessions == 3
        assert result.progress_report.achievement_system.current_streak == 3
        assert result.insights.child_id == "child-1"
        assert result.to_dict()["errors"] == []

    @pytest.mark.asyncio
    async def test_partial_failure_collected(self, service) -> None:
        """Test failures are listed while the other reports still succeed."""
        result = await service.generate_all_reports("nobody", "week")

        assert not result.succeeded
        assert result.learning_report is None
        assert result.progress_report is None
        assert result.insights is not None
        assert [e.report for e in result.errors] == ["learning_report", "progress_report"]
        assert all(isinstance(e.exception, ChildNotFoundError) for e in result.errors)
        payload = result.to_dict()
        assert payload["errors"][0] == {
            "report": "learning_report",
            "error": "Child profile not found: nobody",
        }

    @pytest.mark.asyncio
    async def test_store_failure_collected(self, service, store) -> None:
        """Test unexpected store errors are reported, not raised."""
        store.list_daily_analytics = AsyncMock(side_effect=RuntimeError("db down"))

        result = await service.generate_all_reports("child-1")

        assert len(result.errors) == 3
        assert {e.error for e in result.errors} == {"db down"}

    @pytest.mark.asyncio
    async def test_quiz_analytics_window(self, service, store, make_quiz) -> None:
        """Test quiz analytics cover the requested timeframe."""
        store.quizzes.extend([make_quiz(score=80, days_ago=3), make_quiz(score=60, days_ago=20)])

        week = await service.generate_quiz_analytics("child-1", "week")
        month = await service.generate_quiz_analytics("child-1")

        assert week.total_quizzes == 1
        assert month.total_quizzes == 2
        assert month.average_score == 70

    @pytest.mark.asyncio
    async def test_recommendations_disabled(self, store, clock) -> None:
        """Test the provider is not called when recommendations are off."""
        provider = AsyncMock()
        service = AnalyticsService(
            store,
            content_generator=provider,
            clock=clock,
            settings=AnalyticsSettings(recommendations_enabled=False),
        )

        report = await service.generate_learning_report("child-1")

        assert report.recommendations_source == "rules"
        provider.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_settings_applied(self, store, clock, make_session) -> None:
        """Test analytics settings reach the generators."""
        store.sessions.extend(make_session(days_ago=d % 4) for d in range(10))
        service = AnalyticsService(
            store, clock=clock, settings=AnalyticsSettings(timeline_limit=3)
        )

        report = await service.generate_progress_report("child-1", "month")

        assert len(report.activity_timeline) == 3
