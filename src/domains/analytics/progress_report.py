# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Progress report: what a child has done and earned over a timeframe.

Where the learning report judges quality, this report tracks volume:
sessions by completion bucket, time spent, points, streaks, badges,
the next milestone and a recent activity timeline.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Literal

from src.domains.analytics.exceptions import ChildNotFoundError
from src.domains.analytics.records import (
    ChildProfile,
    DailyAnalyticsRecord,
    LearningSessionRecord,
    QuizResultRecord,
    Timeframe,
    to_serializable,
)
from src.domains.analytics.stats import (
    consecutive_active_days,
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

COMPLETED_THRESHOLD = 80
PARTIAL_THRESHOLD = 50

SKILLS = ("problem_solving", "critical_thinking", "creativity", "communication")

# (sessions needed, achievement type, title)
SESSION_ACHIEVEMENTS = (
    (5, "sessions_5", "Getting Started"),
    (10, "sessions_10", "Learning Enthusiast"),
    (25, "sessions_25", "Knowledge Seeker"),
)
PERFECT_SCORE_ACHIEVEMENTS = (
    (1, "perfect_score", "Perfect Score"),
    (5, "quiz_master", "Quiz Master"),
)
STREAK_ACHIEVEMENTS = (
    (3, "streak_3", "3-Day Streak"),
    (7, "streak_7", "Week Warrior"),
)


@dataclass(frozen=True)
class Milestone:
    """A target the child is working towards."""

    type: Literal["sessions", "points"]
    target: int
    title: str


# Checked in order; the first one not yet reached is reported.
MILESTONES = (
    Milestone(type="sessions", target=10, title="Learning Enthusiast"),
    Milestone(type="sessions", target=25, title="Knowledge Seeker"),
    Milestone(type="points", target=500, title="Point Master"),
    Milestone(type="sessions", target=50, title="Learning Expert"),
)
FINAL_MILESTONE = Milestone(type="sessions", target=100, title="Learning Legend")


@dataclass
class SessionTracking:
    total_sessions: int
    completed_sessions: int
    partial_sessions: int
    incomplete_sessions: int
    completion_rate: int
    average_completion: float
    subjects_covered: list[str]
    session_types: dict[str, int]


@dataclass
class TimeAnalysis:
    total_time_minutes: int
    total_time_hours: float
    average_session_time: int
    daily_average: int
    time_by_subject: dict[str, int]
    time_by_day: dict[str, int]
    optimal_session_length: int


@dataclass
class EarnedAchievement:
    type: str
    title: str
    earned: bool = True


@dataclass
class AchievementSystem:
    total_points: int
    achievements: list[EarnedAchievement]
    achievements_earned: int
    current_streak: int
    badges: list[str]
    next_milestone: Milestone


@dataclass
class ActivityEntry:
    """One session or quiz in the activity timeline."""

    type: Literal["session", "quiz"]
    date: datetime
    title: str
    subject: str
    completion: float | None = None
    points: int | None = None
    duration: int | None = None
    score: int | None = None
    questions: int | None = None
    correct: int | None = None


@dataclass
class SubjectProgress:
    sessions: int
    average_completion: float
    quiz_scores: list[int]
    average_quiz_score: float


@dataclass
class SkillScore:
    """Skill development score. Skills are not measured yet, so every
    score is reported as not computed rather than as a fabricated number."""

    status: Literal["not_computed", "computed"] = "not_computed"
    score: float | None = None


@dataclass
class WeeklyProgress:
    total_time: int
    total_sessions: int
    average_score: float


@dataclass
class ProgressMetrics:
    weekly_progress: WeeklyProgress
    subject_progress: dict[str, SubjectProgress]
    skill_development: dict[str, SkillScore]
    learning_velocity: float
    consistency_score: int
    improvement_trend: Literal["improving", "declining", "stable"]


@dataclass
class ProgressReport:
    """Complete progress report for one child and timeframe."""

    child: ChildProfile
    timeframe: Timeframe
    generated_at: datetime
    session_tracking: SessionTracking
    time_analysis: TimeAnalysis
    achievement_system: AchievementSystem
    activity_timeline: list[ActivityEntry] = field(default_factory=list)
    progress_metrics: ProgressMetrics | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return to_serializable(self)


def track_sessions(sessions: list[LearningSessionRecord]) -> SessionTracking:
    completed = sum(1 for s in sessions if s.completion_percentage >= COMPLETED_THRESHOLD)
    partial = sum(
        1 for s in sessions if PARTIAL_THRESHOLD <= s.completion_percentage < COMPLETED_THRESHOLD
    )

    session_types: dict[str, int] = {}
    for session in sessions:
        session_types[session.session_type] = session_types.get(session.session_type, 0) + 1

    return SessionTracking(
        total_sessions=len(sessions),
        completed_sessions=completed,
        partial_sessions=partial,
        incomplete_sessions=len(sessions) - completed - partial,
        completion_rate=round_half_up(ratio_percent(completed, len(sessions))),
        average_completion=round_to(mean([s.completion_percentage for s in sessions]), 2),
        subjects_covered=sorted({s.subject for s in sessions}),
        session_types=session_types,
    )


def analyze_time(
    sessions: list[LearningSessionRecord],
    daily: list[DailyAnalyticsRecord],
) -> TimeAnalysis:
    total_time = sum(s.duration_minutes for s in sessions)

    time_by_subject: dict[str, int] = {}
    time_by_day: dict[str, int] = {}
    for session in sessions:
        time_by_subject[session.subject] = (
            time_by_subject.get(session.subject, 0) + session.duration_minutes
        )
        day = utc_date(session.created_at).isoformat()
        time_by_day[day] = time_by_day.get(day, 0) + session.duration_minutes

    completed_durations = [
        s.duration_minutes for s in sessions if s.completion_percentage >= COMPLETED_THRESHOLD
    ]

    return TimeAnalysis(
        total_time_minutes=total_time,
        total_time_hours=round_to(total_time / 60, 1),
        average_session_time=round_half_up(mean([s.duration_minutes for s in sessions])),
        daily_average=round_half_up(mean([d.total_session_time_minutes for d in daily])),
        time_by_subject=time_by_subject,
        time_by_day=dict(sorted(time_by_day.items())),
        optimal_session_length=round_half_up(mean(completed_durations)),
    )


def next_milestone(total_sessions: int, total_points: int) -> Milestone:
    """First milestone in MILESTONES the child has not reached yet."""
    for milestone in MILESTONES:
        reached = total_points if milestone.type == "points" else total_sessions
        if reached < milestone.target:
            return milestone
    return FINAL_MILESTONE


def build_achievement_system(
    sessions: list[LearningSessionRecord],
    quizzes: list[QuizResultRecord],
    today: date,
    streak_lookback_days: int = 30,
) -> AchievementSystem:
    total_points = sum(s.points_earned for s in sessions)
    perfect_scores = sum(1 for q in quizzes if q.score_percentage == 100)
    streak = consecutive_active_days(
        {utc_date(s.created_at) for s in sessions},
        today,
        streak_lookback_days,
    )

    achievements: list[EarnedAchievement] = []
    for needed, kind, title in SESSION_ACHIEVEMENTS:
        if len(sessions) >= needed:
            achievements.append(EarnedAchievement(type=kind, title=title))
    for needed, kind, title in PERFECT_SCORE_ACHIEVEMENTS:
        if perfect_scores >= needed:
            achievements.append(EarnedAchievement(type=kind, title=title))
    for needed, kind, title in STREAK_ACHIEVEMENTS:
        if streak >= needed:
            achievements.append(EarnedAchievement(type=kind, title=title))

    sessions_by_subject: dict[str, int] = {}
    for session in sessions:
        sessions_by_subject[session.subject] = sessions_by_subject.get(session.subject, 0) + 1
    badges = [
        f"{subject.capitalize()} Explorer"
        for subject, count in sorted(sessions_by_subject.items())
        if count >= 5
    ]
    if quizzes and mean([q.score_percentage for q in quizzes]) >= 90:
        badges.append("Quiz Champion")

    return AchievementSystem(
        total_points=total_points,
        achievements=achievements,
        achievements_earned=len(achievements),
        current_streak=streak,
        badges=badges,
        next_milestone=next_milestone(len(sessions), total_points),
    )


def build_timeline(
    sessions: list[LearningSessionRecord],
    quizzes: list[QuizResultRecord],
    limit: int = 20,
) -> list[ActivityEntry]:
    entries = [
        ActivityEntry(
            type="session",
            date=s.created_at,
            title=s.topic or f"{s.subject.capitalize()} session",
            subject=s.subject,
            completion=s.completion_percentage,
            points=s.points_earned,
            duration=s.duration_minutes,
        )
        for s in sessions
    ]
    entries.extend(
        ActivityEntry(
            type="quiz",
            date=q.created_at,
            title=f"{q.quiz_type.capitalize()} Quiz",
            subject=q.quiz_type,
            score=q.score_percentage,
            questions=q.total_questions,
            correct=q.correct_answers,
        )
        for q in quizzes
    )
    entries.sort(key=lambda e: e.date, reverse=True)
    return entries[:limit]


def improvement_trend(quizzes: list[QuizResultRecord]) -> Literal["improving", "declining", "stable"]:
    if len(quizzes) < 2:
        return "stable"
    ordered = sorted(quizzes, key=lambda q: q.created_at)
    first, second = split_halves([q.score_percentage for q in ordered])
    change = percent_change(mean(first), mean(second))
    if change > 10:
        return "improving"
    if change < -10:
        return "declining"
    return "stable"


def calculate_progress_metrics(
    sessions: list[LearningSessionRecord],
    quizzes: list[QuizResultRecord],
    daily: list[DailyAnalyticsRecord],
) -> ProgressMetrics:
    subject_progress: dict[str, SubjectProgress] = {}
    for subject in sorted({s.subject for s in sessions}):
        subject_sessions = [s for s in sessions if s.subject == subject]
        quiz_scores = [q.score_percentage for q in quizzes if q.quiz_type == subject]
        subject_progress[subject] = SubjectProgress(
            sessions=len(subject_sessions),
            average_completion=round_to(
                mean([s.completion_percentage for s in subject_sessions]), 2
            ),
            quiz_scores=quiz_scores,
            average_quiz_score=round_to(mean(quiz_scores), 2),
        )

    total_minutes = sum(s.duration_minutes for s in sessions)
    if len(sessions) < 2 or total_minutes == 0:
        velocity = 0.0
    else:
        velocity = round_to(len(sessions) / (total_minutes / 60), 2)

    scores = [d.average_score_percentage for d in daily]
    consistency = 0 if len(daily) < 3 else max(0, round_half_up(100 - pstdev(scores)))

    return ProgressMetrics(
        weekly_progress=WeeklyProgress(
            total_time=sum(d.total_session_time_minutes for d in daily),
            total_sessions=sum(d.sessions_completed for d in daily),
            average_score=round_to(mean(scores), 2),
        ),
        subject_progress=subject_progress,
        skill_development={skill: SkillScore() for skill in SKILLS},
        learning_velocity=velocity,
        consistency_score=consistency,
        improvement_trend=improvement_trend(quizzes),
    )


class ProgressReportGenerator:
    """Builds ProgressReport objects from stored activity.

    Attributes:
        timeline_limit: Entries kept in the activity timeline.
        streak_lookback_days: Days inspected when counting the streak.
    """

    def __init__(
        self,
        store: AnalyticsStore,
        clock: Clock = utc_now,
        timeline_limit: int = 20,
        streak_lookback_days: int = 30,
    ) -> None:
        self._store = store
        self._clock = clock
        self.timeline_limit = timeline_limit
        self.streak_lookback_days = streak_lookback_days

    async def generate(self, child_id: str, timeframe: Timeframe | str) -> ProgressReport:
        """Generate the progress report for a child.

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

        profile, sessions, quizzes, daily = await asyncio.gather(
            self._store.get_child_profile(child_id),
            self._store.list_sessions(child_id, since, now, newest_first=True),
            self._store.list_quiz_results(child_id, since, now, newest_first=True),
            self._store.list_daily_analytics(child_id, utc_date(since), utc_date(now)),
        )
        if profile is None:
            raise ChildNotFoundError(child_id)

        report = ProgressReport(
            child=profile,
            timeframe=window,
            generated_at=now,
            session_tracking=track_sessions(sessions),
            time_analysis=analyze_time(sessions, daily),
            achievement_system=build_achievement_system(
                sessions, quizzes, utc_date(now), self.streak_lookback_days
            ),
            activity_timeline=build_timeline(sessions, quizzes, self.timeline_limit),
            progress_metrics=calculate_progress_metrics(sessions, quizzes, daily),
        )

        logger.info(
            "Generated progress report: child=%s, timeframe=%s, streak=%d",
            child_id,
            window.value,
            report.achievement_system.current_streak,
        )
        return report
