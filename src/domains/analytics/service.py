# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Analytics service facade.

Wires the aggregator and the report generators to one store, one event
bus and one clock, and adds batch report generation.

Usage:
    async with get_session() as db:
        service = AnalyticsService(SQLAnalyticsStore(db), event_bus=get_event_bus())
        await service.record_session(session)
        reports = await service.generate_all_reports(child_id, "month")
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from src.core.config.settings import AnalyticsSettings
from src.domains.analytics.aggregator import SessionAggregator
from src.domains.analytics.exceptions import SessionNotFoundError
from src.domains.analytics.insights import InsightsGenerator, InsightsReport
from src.domains.analytics.learning_report import LearningReport, LearningReportGenerator
from src.domains.analytics.progress_report import ProgressReport, ProgressReportGenerator
from src.domains.analytics.quiz_analytics import QuizAnalytics, QuizAnalyticsCalculator
from src.domains.analytics.recommendations import RecommendationEngine
from src.domains.analytics.records import (
    DailyAnalyticsRecord,
    LearningSessionRecord,
    QuizResultRecord,
    Timeframe,
    validate_session_values,
)
from src.domains.analytics.store import AnalyticsStore, ContentGenerator
from src.infrastructure.events import EventBus, EventHandler, EventTypes, Unsubscribe
from src.utils.datetime import Clock, utc_now
from src.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ReportError:
    """A sub-report that failed during batch generation."""

    report: str
    error: str
    exception: BaseException = field(repr=False)

    def to_dict(self) -> dict[str, Any]:
        return {"report": self.report, "error": self.error}


@dataclass
class BatchReportResult:
    """Outcome of generating all reports; failed reports are None."""

    learning_report: LearningReport | None
    progress_report: ProgressReport | None
    insights: InsightsReport | None
    errors: list[ReportError] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "learning_report": self.learning_report.to_dict() if self.learning_report else None,
            "progress_report": self.progress_report.to_dict() if self.progress_report else None,
            "insights": self.insights.to_dict() if self.insights else None,
            "errors": [e.to_dict() for e in self.errors],
        }


class AnalyticsService:
    """Entry point for recording activity and generating reports."""

    def __init__(
        self,
        store: AnalyticsStore,
        event_bus: EventBus | None = None,
        content_generator: ContentGenerator | None = None,
        clock: Clock = utc_now,
        settings: AnalyticsSettings | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            store: Persistence collaborator.
            event_bus: Bus for "session processed" notifications. A private
                bus is created when omitted.
            content_generator: Provider for AI recommendations. Without one,
                or with recommendations disabled, rule-based ones are used.
            clock: Source of "now" for windows and processing days.
            settings: Analytics tunables; defaults are used when omitted.
        """
        self._settings = settings or AnalyticsSettings()
        self._store = store
        self._clock = clock
        self.event_bus = event_bus or EventBus()

        generator = content_generator if self._settings.recommendations_enabled else None
        self._aggregator = SessionAggregator(
            store,
            event_bus=self.event_bus,
            clock=clock,
            retention_days=self._settings.trend_retention_days,
        )
        self._learning = LearningReportGenerator(
            store,
            RecommendationEngine(generator, max_items=self._settings.max_recommendations),
            clock=clock,
        )
        self._progress = ProgressReportGenerator(
            store,
            clock=clock,
            timeline_limit=self._settings.timeline_limit,
            streak_lookback_days=self._settings.streak_lookback_days,
        )
        self._insights = InsightsGenerator(store, clock=clock)
        self._quizzes = QuizAnalyticsCalculator()

    def subscribe(self, event_type: str, handler: EventHandler) -> Unsubscribe:
        """Subscribe to analytics events; returns an unsubscribe callable."""
        return self.event_bus.subscribe(event_type, handler)

    async def process_session(self, session: LearningSessionRecord) -> DailyAnalyticsRecord:
        """Fold an already stored session into today's analytics."""
        return await self._aggregator.process_session(session)

    async def record_session(self, session: LearningSessionRecord) -> DailyAnalyticsRecord:
        """Store a new session and fold it into today's analytics.

        Raises:
            InvalidRecordError: If the session is out of range.
        """
        session.validate()
        stored = await self._store.insert_session(session)
        return await self._aggregator.process_session(stored)

    async def update_session(
        self,
        session_id: str,
        completion_percentage: float,
        duration_minutes: int | None = None,
        points_earned: int | None = None,
    ) -> DailyAnalyticsRecord:
        """Record a session's final completion and fold it in again.

        The daily row keeps running means, so the earlier contribution of
        this session is not removed: it counts twice in today's figures.

        Raises:
            InvalidRecordError: If a value is out of range.
            SessionNotFoundError: If no session has this id.
        """
        values: dict[str, Any] = {"completion_percentage": completion_percentage}
        if duration_minutes is not None:
            values["duration_minutes"] = duration_minutes
        if points_earned is not None:
            values["points_earned"] = points_earned
        validate_session_values(values)

        updated = await self._store.update_session(session_id, values)
        if updated is None:
            raise SessionNotFoundError(session_id)
        logger.info(
            "Updated learning session",
            session_id=session_id,
            child_id=updated.child_id,
            completion_percentage=updated.completion_percentage,
        )
        return await self._aggregator.process_session(updated)

    async def record_quiz_result(
        self,
        child_id: str,
        quiz_type: str,
        total_questions: int,
        correct_answers: int,
        created_at: datetime | None = None,
    ) -> QuizResultRecord:
        """Store a quiz attempt, deriving its score from the answer counts.

        Raises:
            InvalidRecordError: If the counts are inconsistent.
        """
        result = QuizResultRecord.from_answers(
            child_id=child_id,
            quiz_type=quiz_type,
            total_questions=total_questions,
            correct_answers=correct_answers,
            created_at=created_at or self._clock(),
        )
        stored = await self._store.insert_quiz_result(result)
        await self.event_bus.publish(
            EventTypes.Analytics.QUIZ_RECORDED,
            {
                "child_id": child_id,
                "quiz_type": quiz_type,
                "score_percentage": stored.score_percentage,
            },
        )
        return stored

    async def generate_learning_report(
        self, child_id: str, timeframe: Timeframe | str = Timeframe.WEEK
    ) -> LearningReport:
        return await self._learning.generate(child_id, timeframe)

    async def generate_progress_report(
        self, child_id: str, timeframe: Timeframe | str = Timeframe.WEEK
    ) -> ProgressReport:
        return await self._progress.generate(child_id, timeframe)

    async def generate_insights(self, child_id: str) -> InsightsReport:
        return await self._insights.generate(child_id)

    async def generate_quiz_analytics(
        self, child_id: str, timeframe: Timeframe | str = Timeframe.MONTH
    ) -> QuizAnalytics:
        """Summarize quiz results in the timeframe."""
        window = Timeframe.parse(timeframe)
        now = self._clock()
        results = await self._store.list_quiz_results(
            child_id, now - timedelta(days=window.days), now, newest_first=True
        )
        return self._quizzes.calculate(results)

    async def generate_all_reports(
        self, child_id: str, timeframe: Timeframe | str = Timeframe.WEEK
    ) -> BatchReportResult:
        """Generate learning, progress and insight reports concurrently.

        A failing report does not affect the others; its slot is None and
        the failure is listed in ``errors``.
        """
        names = ("learning_report", "progress_report", "insights")
        outcomes = await asyncio.gather(
            self._learning.generate(child_id, timeframe),
            self._progress.generate(child_id, timeframe),
            self._insights.generate(child_id),
            return_exceptions=True,
        )

        errors: list[ReportError] = []
        results: dict[str, Any] = {}
        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(
                    "Report generation failed",
                    child_id=child_id,
                    report=name,
                    error=str(outcome),
                    exc_info=outcome,
                )
                errors.append(ReportError(report=name, error=str(outcome), exception=outcome))
                results[name] = None
            else:
                results[name] = outcome

        logger.info("Generated reports", child_id=child_id, failed=len(errors))
        return BatchReportResult(errors=errors, **results)
