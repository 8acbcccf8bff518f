# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Quiz performance summary for a child."""

from dataclasses import dataclass
from typing import Any, Literal

from src.domains.analytics.records import QuizResultRecord, to_serializable
from src.domains.analytics.stats import mean, percent_change, round_half_up, split_halves

RECENT_QUIZZES = 5


@dataclass
class SubjectQuizPerformance:
    quizzes: int
    average_score: int
    best_score: int
    worst_score: int


@dataclass
class RecentQuizPerformance:
    average_score: int
    quiz_count: int
    trend: Literal["improving", "declining", "stable"]


@dataclass
class QuizAnalytics:
    """Aggregate quiz figures over a set of results."""

    total_quizzes: int
    average_score: int
    perfect_scores: int
    improvement_rate: int
    subject_performance: dict[str, SubjectQuizPerformance]
    recent_performance: RecentQuizPerformance | None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return to_serializable(self)


def recent_trend(newest_first: list[QuizResultRecord]) -> Literal["improving", "declining", "stable"]:
    """Compare the oldest and newest of the three most recent quizzes."""
    latest = newest_first[:3]
    if len(latest) < 3:
        return "stable"
    change = percent_change(latest[-1].score_percentage, latest[0].score_percentage)
    if change > 10:
        return "improving"
    if change < -10:
        return "declining"
    return "stable"


class QuizAnalyticsCalculator:
    """Computes QuizAnalytics from raw quiz results."""

    def calculate(self, results: list[QuizResultRecord]) -> QuizAnalytics:
        """Summarize quiz results in any order.

        Args:
            results: Quiz results to summarize.

        Returns:
            Zeroed analytics when there are no results.
        """
        ordered = sorted(results, key=lambda r: r.created_at)
        scores = [r.score_percentage for r in ordered]

        improvement = 0
        if len(scores) >= 2:
            first, second = split_halves(scores)
            improvement = round_half_up(percent_change(mean(first), mean(second)))

        by_subject: dict[str, list[int]] = {}
        for result in ordered:
            by_subject.setdefault(result.quiz_type, []).append(result.score_percentage)

        newest_first = ordered[::-1]
        recent = newest_first[:RECENT_QUIZZES]

        return QuizAnalytics(
            total_quizzes=len(scores),
            average_score=round_half_up(mean(scores)),
            perfect_scores=sum(1 for s in scores if s == 100),
            improvement_rate=improvement,
            subject_performance={
                subject: SubjectQuizPerformance(
                    quizzes=len(subject_scores),
                    average_score=round_half_up(mean(subject_scores)),
                    best_score=max(subject_scores),
                    worst_score=min(subject_scores),
                )
                for subject, subject_scores in sorted(by_subject.items())
            },
            recent_performance=(
                RecentQuizPerformance(
                    average_score=round_half_up(mean([r.score_percentage for r in recent])),
                    quiz_count=len(recent),
                    trend=recent_trend(newest_first),
                )
                if recent
                else None
            ),
        )
