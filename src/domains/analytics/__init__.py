# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learning analytics for children.

Components:
- SessionAggregator: folds sessions into per-day analytics rows
- LearningReportGenerator: performance, trends, subjects, recommendations
- ProgressReportGenerator: volume, time, achievements, streaks, timeline
- InsightsGenerator: weekly roll-up, multi-week trends, engagement, subjects
- QuizAnalyticsCalculator: quiz totals and recent performance
- AnalyticsService: facade over all of the above

Usage:
    from src.domains.analytics import AnalyticsService, SQLAnalyticsStore

    service = AnalyticsService(SQLAnalyticsStore(db))
    report = await service.generate_learning_report(child_id, "month")
"""

from src.domains.analytics.aggregator import (
    DailyLocks,
    SessionAggregator,
    get_daily_locks,
    reset_daily_locks,
)
from src.domains.analytics.exceptions import (
    AnalyticsError,
    ChildNotFoundError,
    InvalidRecordError,
    SessionNotFoundError,
)
from src.domains.analytics.insights import InsightsGenerator, InsightsReport
from src.domains.analytics.learning_report import LearningReport, LearningReportGenerator
from src.domains.analytics.progress_report import ProgressReport, ProgressReportGenerator
from src.domains.analytics.quiz_analytics import QuizAnalytics, QuizAnalyticsCalculator
from src.domains.analytics.recommendations import (
    Recommendation,
    RecommendationEngine,
    parse_recommendations,
)
from src.domains.analytics.records import (
    ChildProfile,
    DailyAnalyticsRecord,
    InsufficientData,
    LearningSessionRecord,
    NoSessions,
    QuizResultRecord,
    Timeframe,
)
from src.domains.analytics.repository import SQLAnalyticsStore
from src.domains.analytics.service import AnalyticsService, BatchReportResult, ReportError
from src.domains.analytics.store import AnalyticsStore, ContentGenerator

__all__ = [
    # Service
    "AnalyticsService",
    "BatchReportResult",
    "ReportError",
    # Generators
    "SessionAggregator",
    "DailyLocks",
    "get_daily_locks",
    "reset_daily_locks",
    "LearningReportGenerator",
    "ProgressReportGenerator",
    "InsightsGenerator",
    "QuizAnalyticsCalculator",
    "RecommendationEngine",
    "parse_recommendations",
    # Reports
    "LearningReport",
    "ProgressReport",
    "InsightsReport",
    "QuizAnalytics",
    "Recommendation",
    # Records
    "ChildProfile",
    "DailyAnalyticsRecord",
    "LearningSessionRecord",
    "QuizResultRecord",
    "Timeframe",
    "InsufficientData",
    "NoSessions",
    # Persistence
    "AnalyticsStore",
    "ContentGenerator",
    "SQLAnalyticsStore",
    # Errors
    "AnalyticsError",
    "ChildNotFoundError",
    "InvalidRecordError",
    "SessionNotFoundError",
]
