# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learning report: how well a child is learning over a timeframe.

The report combines daily aggregates, raw sessions and quiz results into a
performance summary, a short-term trend, per-subject strengths,
achievements, improvement areas, engagement figures and recommendations.

Usage:
    generator = LearningReportGenerator(store, recommender)
    report = await generator.generate("child-1", Timeframe.MONTH)
    payload = report.to_dict()
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Literal

from src.domains.analytics.exceptions import ChildNotFoundError
from src.domains.analytics.recommendations import (
    Priority,
    Recommendation,
    RecommendationContext,
    RecommendationEngine,
)
from src.domains.analytics.records import (
    ChildProfile,
    DailyAnalyticsRecord,
    InsufficientData,
    LearningSessionRecord,
    QuizResultRecord,
    Timeframe,
    to_serializable,
)
from src.domains.analytics.stats import (
    mean,
    percent_change,
    pstdev,
    ratio_percent,
    round_half_up,
    round_to,
    split_halves,
)
from src.domains.analytics.store import AnalyticsStore
from src.utils.datetime import Clock, utc_date, utc_now

logger = logging.getLogger(__name__)

MIN_DAYS_FOR_CONSISTENCY = 3
RECENT_DAYS = 3
WEEK_WARRIOR_SESSIONS = 7


@dataclass
class PerformanceAnalysis:
    """Headline performance figures for the window."""

    total_learning_time: int
    total_sessions: int
    average_completion_rate: int
    average_quiz_score: int
    learning_consistency: int
    improvement_rate: int
    performance_level: str


@dataclass
class LearningTrend:
    """Recent (last three days) versus earlier daily scores."""

    trend: Literal["improving", "declining", "stable"]
    strength: Literal["strong", "moderate", "weak"]
    recent_average: int
    previous_average: int
    change_percentage: int


@dataclass
class SubjectPerformance:
    """Per-subject session and quiz figures."""

    sessions: int
    total_time: int
    total_completion: float
    quiz_scores: list[int]
    average_completion: float
    average_quiz_score: float
    time_per_session: float
    strength_level: str


@dataclass
class Achievement:
    """Something the child has earned in this window."""

    type: str
    title: str
    description: str
    icon: str
    count: int | None = None


@dataclass
class ImprovementArea:
    """A weakness worth the parent's attention."""

    area: str
    description: str
    priority: Priority
    suggestion: str


@dataclass
class EngagementMetrics:
    """Time and engagement figures for the window."""

    total_time_minutes: int
    average_session_time: int
    engagement_score: int
    engagement_level: Literal["high", "medium", "low"]
    time_distribution: dict[str, float]


@dataclass
class LearningReport:
    """Complete learning report for one child and timeframe."""

    child: ChildProfile
    timeframe: Timeframe
    generated_at: datetime
    performance_analysis: PerformanceAnalysis
    learning_trends: LearningTrend | InsufficientData
    subject_analysis: dict[str, SubjectPerformance]
    recommendations: list[Recommendation]
    recommendations_source: Literal["ai", "rules"]
    achievements: list[Achievement] = field(default_factory=list)
    areas_for_improvement: list[ImprovementArea] = field(default_factory=list)
    engagement_metrics: EngagementMetrics | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return to_serializable(self)


def performance_level(score: float) -> str:
    """Classify an overall score."""
    if score >= 90:
        return "excellent"
    if score >= 80:
        return "very_good"
    if score >= 70:
        return "good"
    if score >= 60:
        return "fair"
    return "needs_improvement"


def subject_strength(score: float) -> str:
    """Classify a subject's combined completion and quiz score."""
    if score >= 85:
        return "strong"
    if score >= 70:
        return "moderate"
    if score >= 55:
        return "developing"
    return "needs_focus"


def improvement_rate(quizzes: list[QuizResultRecord]) -> int:
    """Percent change between the earlier and later half of quiz scores."""
    if len(quizzes) < 2:
        return 0
    ordered = sorted(quizzes, key=lambda q: q.created_at)
    first, second = split_halves([q.score_percentage for q in ordered])
    return round_half_up(percent_change(mean(first), mean(second)))


def daily_consistency(daily: list[DailyAnalyticsRecord]) -> int:
    """100 minus the spread of daily scores, 0 with fewer than three days."""
    if len(daily) < MIN_DAYS_FOR_CONSISTENCY:
        return 0
    return max(0, round_half_up(100 - pstdev([d.average_score_percentage for d in daily])))


def analyze_performance(
    daily: list[DailyAnalyticsRecord],
    sessions: list[LearningSessionRecord],
    quizzes: list[QuizResultRecord],
) -> PerformanceAnalysis:
    avg_completion = mean([s.completion_percentage for s in sessions])
    avg_quiz = mean([q.score_percentage for q in quizzes])

    return PerformanceAnalysis(
        total_learning_time=sum(d.total_session_time_minutes for d in daily),
        total_sessions=len(sessions),
        average_completion_rate=round_half_up(avg_completion),
        average_quiz_score=round_half_up(avg_quiz),
        learning_consistency=daily_consistency(daily),
        improvement_rate=improvement_rate(quizzes),
        performance_level=performance_level((avg_quiz + avg_completion) / 2),
    )


def analyze_trends(daily: list[DailyAnalyticsRecord]) -> LearningTrend | InsufficientData:
    """Compare the last three days against everything before them.

    Args:
        daily: Daily rows ordered by date ascending.
    """
    if len(daily) < 2:
        return InsufficientData(message="At least two days of activity are needed for a trend")

    scores = [d.average_score_percentage for d in daily]
    recent = scores[-RECENT_DAYS:]
    earlier = scores[:-RECENT_DAYS]

    recent_avg = mean(recent)
    earlier_avg = mean(earlier) if earlier else recent_avg
    change = percent_change(earlier_avg, recent_avg)

    if recent_avg > earlier_avg:
        trend: Literal["improving", "declining", "stable"] = "improving"
    elif recent_avg < earlier_avg:
        trend = "declining"
    else:
        trend = "stable"

    # Strength is bucketed on score points, not on the relative change.
    magnitude = abs(recent_avg - earlier_avg)
    if magnitude > 10:
        strength: Literal["strong", "moderate", "weak"] = "strong"
    elif magnitude > 5:
        strength = "moderate"
    else:
        strength = "weak"

    return LearningTrend(
        trend=trend,
        strength=strength,
        recent_average=round_half_up(recent_avg),
        previous_average=round_half_up(earlier_avg),
        change_percentage=round_half_up(change),
    )


def analyze_subjects(
    sessions: list[LearningSessionRecord],
    quizzes: list[QuizResultRecord],
) -> dict[str, SubjectPerformance]:
    grouped: dict[str, list[LearningSessionRecord]] = {}
    for session in sessions:
        grouped.setdefault(session.subject, []).append(session)

    result: dict[str, SubjectPerformance] = {}
    for subject, subject_sessions in grouped.items():
        total_completion = sum(s.completion_percentage for s in subject_sessions)
        total_time = sum(s.duration_minutes for s in subject_sessions)
        quiz_scores = [q.score_percentage for q in quizzes if q.quiz_type == subject]

        avg_completion = total_completion / len(subject_sessions)
        avg_quiz = mean(quiz_scores)

        result[subject] = SubjectPerformance(
            sessions=len(subject_sessions),
            total_time=total_time,
            total_completion=total_completion,
            quiz_scores=quiz_scores,
            average_completion=round_to(avg_completion, 2),
            average_quiz_score=round_to(avg_quiz, 2),
            time_per_session=round_to(total_time / len(subject_sessions), 2),
            strength_level=subject_strength((avg_completion + avg_quiz) / 2),
        )
    return result


def identify_achievements(
    sessions: list[LearningSessionRecord],
    quizzes: list[QuizResultRecord],
) -> list[Achievement]:
    achievements: list[Achievement] = []

    if len(sessions) >= 10:
        achievements.append(
            Achievement(
                type="milestone",
                title="Learning Champion",
                description="Completed 10+ learning sessions",
                icon="🏆",
            )
        )

    perfect = sum(1 for q in quizzes if q.score_percentage == 100)
    if perfect > 0:
        achievements.append(
            Achievement(
                type="performance",
                title="Perfect Score",
                description=f"Achieved {perfect} perfect quiz score(s)",
                icon="⭐",
                count=perfect,
            )
        )

    if len(sessions) >= WEEK_WARRIOR_SESSIONS:
        achievements.append(
            Achievement(
                type="consistency",
                title="Week Warrior",
                description="Completed a week's worth of learning sessions",
                icon="🔥",
            )
        )

    return achievements


def identify_improvement_areas(
    sessions: list[LearningSessionRecord],
    quizzes: list[QuizResultRecord],
) -> list[ImprovementArea]:
    areas: list[ImprovementArea] = []

    low_completion = sum(1 for s in sessions if s.completion_percentage < 60)
    if low_completion > len(sessions) * 0.3:
        areas.append(
            ImprovementArea(
                area="Session Completion",
                description="Many sessions are not being completed",
                priority="high",
                suggestion="Try shorter sessions or adjust difficulty level",
            )
        )

    low_quiz = sum(1 for q in quizzes if q.score_percentage < 70)
    if low_quiz > len(quizzes) * 0.4:
        areas.append(
            ImprovementArea(
                area="Quiz Performance",
                description="Quiz scores could be improved",
                priority="medium",
                suggestion="Review material before taking quizzes",
            )
        )

    return areas


def engagement_metrics(
    daily: list[DailyAnalyticsRecord],
    sessions: list[LearningSessionRecord],
) -> EngagementMetrics:
    avg_engagement = mean([d.engagement_score for d in daily])
    session_minutes = sum(s.duration_minutes for s in sessions)

    time_by_subject: dict[str, int] = {}
    for session in sessions:
        time_by_subject[session.subject] = (
            time_by_subject.get(session.subject, 0) + session.duration_minutes
        )

    if avg_engagement >= 80:
        level: Literal["high", "medium", "low"] = "high"
    elif avg_engagement >= 60:
        level = "medium"
    else:
        level = "low"

    return EngagementMetrics(
        total_time_minutes=sum(d.total_session_time_minutes for d in daily),
        average_session_time=round_half_up(mean([s.duration_minutes for s in sessions])),
        engagement_score=round_half_up(avg_engagement),
        engagement_level=level,
        time_distribution={
            subject: round_to(ratio_percent(minutes, session_minutes), 2)
            for subject, minutes in time_by_subject.items()
        },
    )


class LearningReportGenerator:
    """Builds LearningReport objects from stored activity."""

    def __init__(
        self,
        store: AnalyticsStore,
        recommender: RecommendationEngine | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._recommender = recommender or RecommendationEngine()
        self._clock = clock

    async def generate(self, child_id: str, timeframe: Timeframe | str) -> LearningReport:
        """Generate the learning report for a child.

        Args:
            child_id: Child identifier.
            timeframe: Reporting window; unknown strings mean a quarter.

        Returns:
            The report.

        Raises:
            ChildNotFoundError: If the child has no profile.
        """
        window = Timeframe.parse(timeframe)
        now = self._clock()
        since = now - timedelta(days=window.days)

        profile, daily, sessions, quizzes = await asyncio.gather(
            self._store.get_child_profile(child_id),
            self._store.list_daily_analytics(child_id, utc_date(since), utc_date(now)),
            self._store.list_sessions(child_id, since, now, newest_first=True),
            self._store.list_quiz_results(child_id, since, now, newest_first=True),
        )
        if profile is None:
            raise ChildNotFoundError(child_id)

        performance = analyze_performance(daily, sessions, quizzes)
        recommendations = await self._recommender.recommend(
            RecommendationContext(
                age=profile.age,
                interests=profile.interests,
                total_sessions=performance.total_sessions,
                average_completion=performance.average_completion_rate,
                subjects=sorted({s.subject for s in sessions}),
            )
        )

        report = LearningReport(
            child=profile,
            timeframe=window,
            generated_at=now,
            performance_analysis=performance,
            learning_trends=analyze_trends(daily),
            subject_analysis=analyze_subjects(sessions, quizzes),
            recommendations=recommendations.items,
            recommendations_source=recommendations.source,
            achievements=identify_achievements(sessions, quizzes),
            areas_for_improvement=identify_improvement_areas(sessions, quizzes),
            engagement_metrics=engagement_metrics(daily, sessions),
        )

        logger.info(
            "Generated learning report: child=%s, timeframe=%s, sessions=%d",
            child_id,
            window.value,
            performance.total_sessions,
        )
        return report
