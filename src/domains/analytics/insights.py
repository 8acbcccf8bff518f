# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Insights: patterns and predictions over the last week and month.

Four analyses run over two windows:

- weekly analytics: last 7 days of daily rows
- performance trends: last 30 days of daily rows, chunked into weeks
- engagement analysis: last 30 days of sessions
- subject overview: last 30 days of sessions and quizzes

Each analysis returns an explicit InsufficientData or NoSessions variant
when there is not enough history. Summaries and recommendations are
derived only from analyses that produced data.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Literal

from src.domains.analytics.recommendations import Priority, Recommendation
from src.domains.analytics.records import (
    DailyAnalyticsRecord,
    InsufficientData,
    LearningSessionRecord,
    NoSessions,
    QuizResultRecord,
    to_serializable,
)
from src.domains.analytics.stats import (
    clamp,
    mean,
    percent_change,
    pstdev,
    round_half_up,
    round_to,
    split_halves,
)
from src.domains.analytics.store import AnalyticsStore
from src.utils.datetime import Clock, utc_date, utc_now

logger = logging.getLogger(__name__)

WEEKLY_WINDOW_DAYS = 7
MONTHLY_WINDOW_DAYS = 30
MIN_DAYS_FOR_TRENDS = 7
MIN_WEEKS_FOR_PREDICTION = 3

TimeSlot = Literal["morning", "afternoon", "evening"]
TIME_SLOTS: tuple[TimeSlot, ...] = ("morning", "afternoon", "evening")


# Weekly analytics


@dataclass
class DailyBreakdown:
    date: date
    time_spent: int
    sessions: int
    score: float
    engagement: float
    subjects: list[str]


@dataclass
class LearningPattern:
    type: Literal["morning_learner", "evening_learner"]
    consistency: Literal["consistent", "variable"]
    trend: Literal["improving", "stable"]


@dataclass
class PeakDay:
    date: date
    score: float


@dataclass
class WeeklyAnalytics:
    total_learning_time: int
    total_sessions: int
    average_score: int
    average_engagement: int
    days_active: int
    daily_breakdown: list[DailyBreakdown]
    learning_pattern: LearningPattern
    peak_performance_day: PeakDay
    consistency_rating: int


# Performance trends


@dataclass
class WeekSummary:
    week_start: date
    average_score: float
    total_time: int
    total_sessions: int
    engagement: float


@dataclass
class ImprovementArea:
    area: str
    issue: str
    recommendation: str
    priority: Priority


@dataclass
class Prediction:
    predicted_score: int
    confidence: Literal["high", "medium", "low"]
    trend: Literal["improving", "declining", "stable"]


@dataclass
class PerformanceTrends:
    weekly_averages: list[WeekSummary]
    trend_direction: Literal["improving", "declining", "stable"]
    trend_strength: int
    volatility_score: int
    performance_stability: Literal["stable", "moderate", "volatile"]
    best_week: WeekSummary | None
    improvement_areas: list[ImprovementArea]
    prediction: Prediction | None


# Engagement analysis


@dataclass
class EngagementBucket:
    sessions: int = 0
    total_engagement: float = 0.0
    average_engagement: float = 0.0


@dataclass
class SessionLengthAnalysis:
    optimal_length: int
    median_length: int
    average_length: int
    shortest_session: int
    longest_session: int


@dataclass
class EngagementTrend:
    trend: Literal["increasing", "decreasing", "stable"]
    change_percentage: int
    early_average: float
    recent_average: float


@dataclass
class EngagementAnalysis:
    overall_engagement: int
    engagement_by_time: dict[str, EngagementBucket]
    engagement_by_subject: dict[str, EngagementBucket]
    session_length_analysis: SessionLengthAnalysis
    engagement_trends: EngagementTrend
    recommendations: list[Recommendation]


# Subject overview


@dataclass
class SubjectInsight:
    sessions: int
    total_time: int
    completion_rates: list[float]
    quiz_scores: list[int]
    topics_covered: list[str]
    average_completion: float
    average_quiz_score: float
    proficiency_level: str
    progress_rate: int


@dataclass
class SubjectBalance:
    balanced: bool
    balance_score: float | None = None
    recommendation: str | None = None
    reason: str | None = None


@dataclass
class SubjectOverview:
    subjects: dict[str, SubjectInsight]
    strongest_subject: str | None
    subject_needing_focus: str | None
    balanced_learning: SubjectBalance
    subject_recommendations: list[Recommendation]


# Report


@dataclass
class Insight:
    type: Literal["positive", "concern", "info"]
    title: str
    message: str


@dataclass
class InsightsReport:
    """All insight analyses for one child."""

    child_id: str
    generated_at: datetime
    weekly_analytics: WeeklyAnalytics | InsufficientData
    performance_trends: PerformanceTrends | InsufficientData
    engagement_analysis: EngagementAnalysis | NoSessions
    subject_overview: SubjectOverview
    insights_summary: list[Insight] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return to_serializable(self)


def analyze_week(daily: list[DailyAnalyticsRecord]) -> WeeklyAnalytics | InsufficientData:
    """Summarize the last seven days of daily rows (ascending by date)."""
    if not daily:
        return InsufficientData(message="No learning activity in the last 7 days")

    times = [d.total_session_time_minutes for d in daily]
    scores = [d.average_score_percentage for d in daily]

    # Earlier days of the week versus the rest.
    pattern_type: Literal["morning_learner", "evening_learner"] = (
        "morning_learner" if sum(times[:3]) > sum(times[3:]) else "evening_learner"
    )
    pattern = LearningPattern(
        type=pattern_type,
        consistency="consistent" if max(times) - min(times) < 30 else "variable",
        trend="improving" if mean(scores[-3:]) > mean(scores[:3]) else "stable",
    )

    peak = max(daily, key=lambda d: d.average_score_percentage)

    return WeeklyAnalytics(
        total_learning_time=sum(times),
        total_sessions=sum(d.sessions_completed for d in daily),
        average_score=round_half_up(mean(scores)),
        average_engagement=round_half_up(mean([d.engagement_score for d in daily])),
        days_active=len(daily),
        daily_breakdown=[
            DailyBreakdown(
                date=d.analysis_date,
                time_spent=d.total_session_time_minutes,
                sessions=d.sessions_completed,
                score=d.average_score_percentage,
                engagement=d.engagement_score,
                subjects=list(d.subjects_studied),
            )
            for d in daily
        ],
        learning_pattern=pattern,
        peak_performance_day=PeakDay(date=peak.analysis_date, score=peak.average_score_percentage),
        consistency_rating=max(0, round_half_up(100 - pstdev(scores) * 2)),
    )


def weekly_averages(daily: list[DailyAnalyticsRecord]) -> list[WeekSummary]:
    """Chunk daily rows into weeks starting at the first row's date.

    A new week starts on the first row at least seven days after the
    current week's start, so gaps shift later week boundaries.
    """
    weeks: list[list[DailyAnalyticsRecord]] = []
    week_start: date | None = None
    for row in daily:
        if week_start is None or (row.analysis_date - week_start).days >= 7:
            week_start = row.analysis_date
            weeks.append([])
        weeks[-1].append(row)

    return [
        WeekSummary(
            week_start=rows[0].analysis_date,
            average_score=round_to(mean([r.average_score_percentage for r in rows]), 2),
            total_time=sum(r.total_session_time_minutes for r in rows),
            total_sessions=sum(r.sessions_completed for r in rows),
            engagement=round_to(mean([r.engagement_score for r in rows]), 2),
        )
        for rows in weeks
    ]


def _weekly_deltas(weeks: list[WeekSummary]) -> list[float]:
    return [b.average_score - a.average_score for a, b in zip(weeks, weeks[1:])]


def predict_next_week(weeks: list[WeekSummary]) -> Prediction | None:
    """Extrapolate next week's score from the last three week-over-week deltas."""
    if len(weeks) < MIN_WEEKS_FOR_PREDICTION:
        return None

    avg_delta = mean(_weekly_deltas(weeks)[-3:])
    predicted = clamp(weeks[-1].average_score + avg_delta, 0, 100)

    spread = pstdev([w.average_score for w in weeks])
    if spread < 10:
        confidence: Literal["high", "medium", "low"] = "high"
    elif spread < 20:
        confidence = "medium"
    else:
        confidence = "low"

    if avg_delta > 2:
        trend: Literal["improving", "declining", "stable"] = "improving"
    elif avg_delta < -2:
        trend = "declining"
    else:
        trend = "stable"

    return Prediction(predicted_score=round_half_up(predicted), confidence=confidence, trend=trend)


def analyze_performance_trends(
    daily: list[DailyAnalyticsRecord],
) -> PerformanceTrends | InsufficientData:
    """Multi-week trend analysis over 30 days of daily rows (ascending)."""
    if len(daily) < MIN_DAYS_FOR_TRENDS:
        return InsufficientData(message="At least 7 days of activity are needed for trends")

    weeks = weekly_averages(daily)
    week_scores = [w.average_score for w in weeks]

    direction: Literal["improving", "declining", "stable"] = "stable"
    if len(weeks) >= 2:
        first, second = split_halves(week_scores)
        change = percent_change(mean(first), mean(second))
        if change > 5:
            direction = "improving"
        elif change < -5:
            direction = "declining"

    deltas = _weekly_deltas(weeks)
    strength = round_half_up(mean([abs(d) for d in deltas]))

    volatility = round_half_up(pstdev([d.average_score_percentage for d in daily]))
    if volatility < 15:
        stability: Literal["stable", "moderate", "volatile"] = "stable"
    elif volatility < 30:
        stability = "moderate"
    else:
        stability = "volatile"

    areas: list[ImprovementArea] = []
    if volatility > 20:
        areas.append(
            ImprovementArea(
                area="Consistency",
                issue="Performance varies significantly day to day",
                recommendation="Establish a regular learning routine",
                priority="medium",
            )
        )
    if mean([d.engagement_score for d in daily]) < 70:
        areas.append(
            ImprovementArea(
                area="Engagement",
                issue="Engagement levels could be higher",
                recommendation="Try more interactive or game-based activities",
                priority="high",
            )
        )

    return PerformanceTrends(
        weekly_averages=weeks,
        trend_direction=direction,
        trend_strength=strength,
        volatility_score=volatility,
        performance_stability=stability,
        best_week=max(weeks, key=lambda w: w.average_score),
        improvement_areas=areas,
        prediction=predict_next_week(weeks),
    )


def session_engagement_value(session: LearningSessionRecord) -> float:
    """Per-session engagement used by the engagement analysis."""
    return session.completion_percentage + session.points_earned / 10


def time_slot(created_at: datetime) -> TimeSlot:
    """Bucket a timestamp by its UTC hour."""
    hour = created_at.hour
    if hour < 12:
        return "morning"
    if hour < 17:
        return "afternoon"
    return "evening"


def _bucket(values: list[float]) -> EngagementBucket:
    total = sum(values)
    return EngagementBucket(
        sessions=len(values),
        total_engagement=round_to(total, 2),
        average_engagement=round_to(mean(values), 2),
    )


def analyze_session_lengths(sessions: list[LearningSessionRecord]) -> SessionLengthAnalysis:
    lengths = sorted(s.duration_minutes for s in sessions if s.duration_minutes > 0)
    if not lengths:
        return SessionLengthAnalysis(
            optimal_length=0,
            median_length=0,
            average_length=0,
            shortest_session=0,
            longest_session=0,
        )

    median = lengths[len(lengths) // 2]
    average = mean(lengths)
    return SessionLengthAnalysis(
        optimal_length=round_half_up((median + average) / 2),
        median_length=median,
        average_length=round_half_up(average),
        shortest_session=lengths[0],
        longest_session=lengths[-1],
    )


def analyze_engagement(
    sessions: list[LearningSessionRecord],
) -> EngagementAnalysis | NoSessions:
    """Engagement breakdown over sessions ordered oldest first."""
    if not sessions:
        return NoSessions(message="No learning sessions in the last 30 days")

    values = [session_engagement_value(s) for s in sessions]

    by_time: dict[str, list[float]] = {slot: [] for slot in TIME_SLOTS}
    by_subject: dict[str, list[float]] = {}
    for session, value in zip(sessions, values):
        by_time[time_slot(session.created_at)].append(value)
        by_subject.setdefault(session.subject, []).append(value)

    engagement_by_time = {slot: _bucket(v) for slot, v in by_time.items()}
    engagement_by_subject = {subject: _bucket(v) for subject, v in by_subject.items()}

    early, recent = split_halves(values)
    early_avg, recent_avg = mean(early), mean(recent)
    change = percent_change(early_avg, recent_avg)
    if change > 10:
        trend: Literal["increasing", "decreasing", "stable"] = "increasing"
    elif change < -10:
        trend = "decreasing"
    else:
        trend = "stable"

    recommendations: list[Recommendation] = []
    active_slots = [s for s in TIME_SLOTS if engagement_by_time[s].sessions > 0]
    best_slot = max(active_slots, key=lambda s: engagement_by_time[s].average_engagement)
    recommendations.append(
        Recommendation(
            type="timing",
            title="Optimal Learning Time",
            description=f"Your child is most engaged during {best_slot} sessions",
            priority="medium",
            estimated_impact=f"Schedule important lessons in the {best_slot}",
        )
    )

    least_subject = min(
        engagement_by_subject, key=lambda s: engagement_by_subject[s].average_engagement
    )
    if engagement_by_subject[least_subject].average_engagement < 60:
        recommendations.append(
            Recommendation(
                type="subject_engagement",
                title=f"Boost {least_subject.capitalize()} Engagement",
                description=f"{least_subject.capitalize()} shows lower engagement levels",
                priority="high",
                estimated_impact="Try game-based or interactive activities for this subject",
            )
        )

    return EngagementAnalysis(
        overall_engagement=round_half_up(mean(values)),
        engagement_by_time=engagement_by_time,
        engagement_by_subject=engagement_by_subject,
        session_length_analysis=analyze_session_lengths(sessions),
        engagement_trends=EngagementTrend(
            trend=trend,
            change_percentage=round_half_up(change),
            early_average=round_to(early_avg, 2),
            recent_average=round_to(recent_avg, 2),
        ),
        recommendations=recommendations,
    )


def proficiency_level(score: float) -> str:
    """Classify a subject's mean of completion and quiz averages."""
    if score >= 90:
        return "expert"
    if score >= 80:
        return "proficient"
    if score >= 70:
        return "developing"
    if score >= 60:
        return "beginner"
    return "needs_support"


def progress_rate(completion_rates: list[float]) -> int:
    """Percent change of the last three completions over the earlier ones."""
    if len(completion_rates) < 2:
        return 0
    recent = completion_rates[-3:]
    earlier = completion_rates[:-3]
    recent_avg = mean(recent)
    earlier_avg = mean(earlier) if earlier else recent_avg
    return round_half_up(percent_change(earlier_avg, recent_avg))


def subject_balance(subjects: dict[str, SubjectInsight]) -> SubjectBalance:
    if len(subjects) < 2:
        return SubjectBalance(balanced=False, reason="insufficient_subjects")

    times = [s.total_time for s in subjects.values()]
    longest = max(times)
    score = min(times) / longest if longest > 0 else 0.0

    if score >= 0.6:
        recommendation = "well_balanced"
    elif score >= 0.4:
        recommendation = "slight_rebalancing_needed"
    else:
        recommendation = "focus_on_neglected_subjects"

    return SubjectBalance(
        balanced=score >= 0.6,
        balance_score=round_to(score, 2),
        recommendation=recommendation,
    )


def analyze_subjects(
    sessions: list[LearningSessionRecord],
    quizzes: list[QuizResultRecord],
) -> SubjectOverview:
    """Per-subject proficiency over sessions ordered oldest first."""
    subjects: dict[str, SubjectInsight] = {}
    for subject in sorted({s.subject for s in sessions}):
        subject_sessions = [s for s in sessions if s.subject == subject]
        rates = [s.completion_percentage for s in subject_sessions]
        quiz_scores = [q.score_percentage for q in quizzes if q.quiz_type == subject]
        avg_completion = mean(rates)
        avg_quiz = mean(quiz_scores)

        subjects[subject] = SubjectInsight(
            sessions=len(subject_sessions),
            total_time=sum(s.duration_minutes for s in subject_sessions),
            completion_rates=rates,
            quiz_scores=quiz_scores,
            topics_covered=sorted({s.topic for s in subject_sessions if s.topic}),
            average_completion=round_to(avg_completion, 2),
            average_quiz_score=round_to(avg_quiz, 2),
            proficiency_level=proficiency_level((avg_completion + avg_quiz) / 2),
            progress_rate=progress_rate(rates),
        )

    def combined(name: str) -> float:
        return (subjects[name].average_completion + subjects[name].average_quiz_score) / 2

    recommendations: list[Recommendation] = []
    for name, insight in subjects.items():
        label = name.capitalize()
        if insight.average_completion < 60:
            recommendations.append(
                Recommendation(
                    type="subject_focus",
                    title=f"Strengthen {label} Foundations",
                    description=f"{label} sessions are often left unfinished",
                    priority="high",
                    estimated_impact="Review basics with shorter, guided sessions",
                )
            )
        if insight.quiz_scores and insight.average_quiz_score < 70:
            recommendations.append(
                Recommendation(
                    type="quiz_practice",
                    title=f"Practice {label} Quizzes",
                    description=f"{label} quiz scores have room to grow",
                    priority="medium",
                    estimated_impact="Use practice quizzes before graded ones",
                )
            )

    return SubjectOverview(
        subjects=subjects,
        strongest_subject=max(subjects, key=combined) if subjects else None,
        subject_needing_focus=min(subjects, key=combined) if subjects else None,
        balanced_learning=subject_balance(subjects),
        subject_recommendations=recommendations,
    )


def summarize(
    weekly: WeeklyAnalytics | InsufficientData,
    trends: PerformanceTrends | InsufficientData,
    engagement: EngagementAnalysis | NoSessions,
) -> list[Insight]:
    insights: list[Insight] = []

    if isinstance(weekly, WeeklyAnalytics):
        if weekly.average_score >= 80:
            insights.append(
                Insight(
                    type="positive",
                    title="Strong Performance",
                    message=f"Averaging {weekly.average_score}% this week",
                )
            )
        elif weekly.average_score < 60:
            insights.append(
                Insight(
                    type="concern",
                    title="Performance Needs Attention",
                    message=f"Weekly average is {weekly.average_score}%",
                )
            )

    if isinstance(trends, PerformanceTrends):
        if trends.trend_direction == "improving":
            insights.append(
                Insight(
                    type="positive",
                    title="Improving Trend",
                    message="Scores have been rising over recent weeks",
                )
            )
        elif trends.trend_direction == "declining":
            insights.append(
                Insight(
                    type="concern",
                    title="Declining Trend",
                    message="Scores have been falling over recent weeks",
                )
            )

    if isinstance(engagement, EngagementAnalysis) and engagement.overall_engagement >= 80:
        insights.append(
            Insight(
                type="positive",
                title="Highly Engaged",
                message="Sessions show consistently high engagement",
            )
        )

    return insights


def overall_recommendations(
    weekly: WeeklyAnalytics | InsufficientData,
    trends: PerformanceTrends | InsufficientData,
) -> list[Recommendation]:
    recommendations: list[Recommendation] = []

    if isinstance(weekly, WeeklyAnalytics):
        if weekly.total_learning_time < 60:
            recommendations.append(
                Recommendation(
                    type="time_management",
                    title="Increase Learning Time",
                    description="Aim for at least 60 minutes of learning per week",
                    priority="medium",
                    estimated_impact="Better retention through regular practice",
                )
            )
        if weekly.consistency_rating < 60:
            recommendations.append(
                Recommendation(
                    type="consistency",
                    title="Improve Learning Consistency",
                    description="Daily performance varies a lot; a steady routine helps",
                    priority="high",
                    estimated_impact="More predictable progress",
                )
            )

    if isinstance(trends, PerformanceTrends) and trends.trend_direction == "declining":
        recommendations.append(
            Recommendation(
                type="intervention",
                title="Address Performance Decline",
                description="Review recent topics and adjust difficulty",
                priority="high",
                estimated_impact="Reverse the downward trend",
            )
        )

    return recommendations


class InsightsGenerator:
    """Builds InsightsReport objects from stored activity."""

    def __init__(self, store: AnalyticsStore, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    async def generate(self, child_id: str) -> InsightsReport:
        """Generate all insights for a child.

        Args:
            child_id: Child identifier.

        Returns:
            The insights report. Store failures propagate.
        """
        now = self._clock()
        today = utc_date(now)
        month_start = now - timedelta(days=MONTHLY_WINDOW_DAYS)

        week_daily, month_daily, sessions, quizzes = await asyncio.gather(
            self._store.list_daily_analytics(
                child_id, today - timedelta(days=WEEKLY_WINDOW_DAYS - 1), today
            ),
            self._store.list_daily_analytics(child_id, utc_date(month_start), today),
            self._store.list_sessions(child_id, month_start, now, newest_first=False),
            self._store.list_quiz_results(child_id, month_start, now, newest_first=False),
        )

        weekly = analyze_week(week_daily)
        trends = analyze_performance_trends(month_daily)
        engagement = analyze_engagement(sessions)

        report = InsightsReport(
            child_id=child_id,
            generated_at=now,
            weekly_analytics=weekly,
            performance_trends=trends,
            engagement_analysis=engagement,
            subject_overview=analyze_subjects(sessions, quizzes),
            insights_summary=summarize(weekly, trends, engagement),
            recommendations=overall_recommendations(weekly, trends),
        )

        logger.info(
            "Generated insights: child=%s, days=%d, sessions=%d",
            child_id,
            len(month_daily),
            len(sessions),
        )
        return report
