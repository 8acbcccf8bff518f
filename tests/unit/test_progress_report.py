# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the progress report generator."""

from datetime import date

import pytest

from src.domains.analytics.exceptions import ChildNotFoundError
from src.domains.analytics.progress_report import (
    FINAL_MILESTONE,
    SKILLS,
    ProgressReportGenerator,
    analyze_time,
    build_achievement_system,
    build_timeline,
    calculate_progress_metrics,
    improvement_trend,
    next_milestone,
    track_sessions,
)

TODAY = date(2025, 3, 15)


class TestSessionTracking:
    """Tests for track_sessions."""

    def test_completion_buckets(self, make_session) -> None:
        """Test completed (>=80), partial (50-79) and incomplete buckets."""
        sessions = [make_session(completion=c) for c in (90, 80, 79, 50, 49)]

        tracking = track_sessions(sessions)

        assert tracking.completed_sessions == 2
        assert tracking.partial_sessions == 2
        assert tracking.incomplete_sessions == 1
        assert tracking.completion_rate == 40
        assert tracking.average_completion == pytest.approx(69.6)

    def test_session_types_and_subjects(self, make_session) -> None:
        """Test session types are counted and subjects listed once."""
        sessions = [
            make_session(subject="reading", session_type="game"),
            make_session(subject="math", session_type="lesson"),
            make_session(subject="math", session_type="game"),
        ]

        tracking = track_sessions(sessions)

        assert tracking.session_types == {"game": 2, "lesson": 1}
        assert tracking.subjects_covered == ["math", "reading"]

    def test_no_sessions(self) -> None:
        """Test zero sessions produce zeros."""
        tracking = track_sessions([])

        assert tracking.total_sessions == 0
        assert tracking.completion_rate == 0
        assert tracking.average_completion == 0.0


class TestTimeAnalysis:
    """Tests for analyze_time."""

    def test_totals_and_breakdowns(self, make_session, make_daily) -> None:
        """Test time per subject and per day."""
        sessions = [
            make_session(days_ago=0, subject="math", duration=30, completion=90),
            make_session(days_ago=1, subject="reading", duration=15, completion=85),
            make_session(days_ago=1, subject="math", duration=45, completion=40),
        ]
        daily = [make_daily(minutes=30), make_daily(days_ago=1, minutes=60)]

        analysis = analyze_time(sessions, daily)

        assert analysis.total_time_minutes == 90
        assert analysis.total_time_hours == 1.5
        assert analysis.average_session_time == 30
        assert analysis.daily_average == 45
        assert analysis.time_by_subject == {"math": 75, "reading": 15}
        assert analysis.time_by_day == {"2025-03-14": 60, "2025-03-15": 30}
        assert analysis.optimal_session_length == 23

    def test_no_completed_sessions(self, make_session) -> None:
        """Test the optimal length is zero when nothing was completed."""
        analysis = analyze_time([make_session(completion=30, duration=40)], [])

        assert analysis.optimal_session_length == 0


class TestMilestones:
    """Tests for next_milestone."""

    @pytest.mark.parametrize(
        ("sessions", "points", "target", "kind"),
        [
            (0, 0, 10, "sessions"),
            (10, 0, 25, "sessions"),
            (25, 100, 500, "points"),
            (25, 500, 50, "sessions"),
        ],
    )
    def test_first_unreached(self, sessions: int, points: int, target: int, kind: str) -> None:
        """Test milestones are checked in order."""
        milestone = next_milestone(sessions, points)

        assert milestone.target == target
        assert milestone.type == kind

    def test_everything_reached(self) -> None:
        """Test the final milestone once all others are reached."""
        assert next_milestone(60, 1000) == FINAL_MILESTONE
        assert FINAL_MILESTONE.title == "Learning Legend"


class TestAchievementSystem:
    """Tests for build_achievement_system."""

    def test_three_day_streak(self, make_session) -> None:
        """Test sessions today and the two days before make a 3-day streak."""
        sessions = [make_session(days_ago=d) for d in (0, 1, 2)]

        system = build_achievement_system(sessions, [], TODAY)

        assert system.current_streak == 3
        assert "3-Day Streak" in [a.title for a in system.achievements]

    def test_lone_day_two_days_ago(self, make_session) -> None:
        """Test a single earlier active day is a streak of one."""
        system = build_achievement_system([make_session(days_ago=2)], [], TODAY)

        assert system.current_streak == 1
        assert system.achievements == []

    def test_session_and_quiz_achievements(self, make_session, make_quiz) -> None:
        """Test session counts and perfect scores unlock achievements."""
        sessions = [make_session(points=10) for _ in range(10)]
        quizzes = [make_quiz(score=100) for _ in range(5)]

        system = build_achievement_system(sessions, quizzes, TODAY)

        assert [a.type for a in system.achievements] == [
            "sessions_5",
            "sessions_10",
            "perfect_score",
            "quiz_master",
        ]
        assert system.achievements_earned == 4
        assert system.total_points == 100
        assert system.next_milestone.target == 25

    def test_badges(self, make_session, make_quiz) -> None:
        """Test subject explorer and quiz champion badges."""
        sessions = [make_session(subject="science") for _ in range(5)]
        sessions.append(make_session(subject="art"))
        quizzes = [make_quiz(score=90), make_quiz(score=100)]

        system = build_achievement_system(sessions, quizzes, TODAY)

        assert system.badges == ["Science Explorer", "Quiz Champion"]


class TestTimeline:
    """Tests for build_timeline."""

    def test_newest_first_and_limited(self, make_session, make_quiz) -> None:
        """Test entries are merged, sorted descending and truncated."""
        sessions = [make_session(days_ago=d) for d in range(15)]
        quizzes = [make_quiz(days_ago=d) for d in range(10)]

        timeline = build_timeline(sessions, quizzes, limit=20)

        assert len(timeline) == 20
        dates = [entry.date for entry in timeline]
        assert dates == sorted(dates, reverse=True)
        # Quizzes are at 11:00, sessions at 10:00 on the same day.
        assert timeline[0].type == "quiz"
        assert timeline[0].title == "Math Quiz"
        assert timeline[1].type == "session"

    def test_session_title_prefers_topic(self, make_session) -> None:
        """Test session entries are titled by topic when present."""
        timeline = build_timeline(
            [make_session(topic="Fractions"), make_session(subject="reading", hour=9)], []
        )

        assert [e.title for e in timeline] == ["Fractions", "Reading session"]


class TestProgressMetrics:
    """Tests for calculate_progress_metrics."""

    def test_skills_not_computed(self, make_session) -> None:
        """Test skill scores are explicitly not computed."""
        metrics = calculate_progress_metrics([make_session()], [], [])

        assert set(metrics.skill_development) == set(SKILLS)
        for score in metrics.skill_development.values():
            assert score.status == "not_computed"
            assert score.score is None

    def test_velocity_needs_two_sessions(self, make_session) -> None:
        """Test velocity is zero below two sessions."""
        assert calculate_progress_metrics([make_session()], [], []).learning_velocity == 0.0

        metrics = calculate_progress_metrics(
            [make_session(duration=30), make_session(duration=30)], [], []
        )
        assert metrics.learning_velocity == 2.0

    def test_improvement_trend(self, make_quiz) -> None:
        """Test quiz halves decide the trend."""
        rising = [make_quiz(score=60, days_ago=2), make_quiz(score=90, days_ago=0)]
        falling = [make_quiz(score=90, days_ago=2), make_quiz(score=60, days_ago=0)]

        assert improvement_trend(rising) == "improving"
        assert improvement_trend(falling) == "declining"
        assert improvement_trend([make_quiz()]) == "stable"

    def test_weekly_progress_from_daily_rows(self, make_daily) -> None:
        """Test weekly figures come from daily rows."""
        daily = [
            make_daily(days_ago=2, score=60, minutes=20, sessions=1),
            make_daily(days_ago=1, score=80, minutes=40, sessions=2),
            make_daily(days_ago=0, score=70, minutes=30, sessions=1),
        ]

        metrics = calculate_progress_metrics([], [], daily)

        assert metrics.weekly_progress.total_time == 90
        assert metrics.weekly_progress.total_sessions == 4
        assert metrics.weekly_progress.average_score == 70.0
        assert metrics.consistency_score == 92


class TestProgressReportGenerator:
    """Tests for ProgressReportGenerator.generate."""

    @pytest.mark.asyncio
    async def test_unknown_child(self, store, clock) -> None:
        """Test a missing profile raises ChildNotFoundError."""
        with pytest.raises(ChildNotFoundError):
            await ProgressReportGenerator(store, clock=clock).generate("nobody", "week")

    @pytest.mark.asyncio
    async def test_child_without_activity(self, store, clock) -> None:
        """Test a child with no sessions gets a zeroed report."""
        report = await ProgressReportGenerator(store, clock=clock).generate("child-1", "week")

        assert report.session_tracking.total_sessions == 0
        assert report.session_tracking.completion_rate == 0
        assert report.time_analysis.total_time_minutes == 0
        assert report.achievement_system.current_streak == 0
        assert report.achievement_system.next_milestone.target == 10
        assert report.activity_timeline == []
        assert report.progress_metrics.learning_velocity == 0.0

    @pytest.mark.asyncio
    async def test_timeline_limit_setting(self, store, clock, make_session) -> None:
        """Test the configured timeline limit is applied."""
        store.sessions.extend(make_session(days_ago=d % 5) for d in range(12))

        report = await ProgressReportGenerator(store, clock=clock, timeline_limit=5).generate(
            "child-1", "week"
        )
        payload = report.to_dict()

        assert len(report.activity_timeline) == 5
        assert payload["achievement_system"]["current_streak"] == 5
        assert payload["progress_metrics"]["skill_development"]["creativity"] == {
            "status": "not_computed",
            "score": None,
        }
