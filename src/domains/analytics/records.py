# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain records consumed and produced by the analytics generators.

Raw inputs (sessions, quiz results) are append-only events. The daily
analytics row is the only record this package writes to; reports are
derived on demand and never persisted.
"""

import dataclasses
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Literal

from src.domains.analytics.exceptions import InvalidRecordError
from src.domains.analytics.stats import round_half_up
from src.utils.datetime import ensure_utc


class Timeframe(str, Enum):
    """Reporting window. Unknown values fall back to a quarter."""

    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"

    @property
    def days(self) -> int:
        """Length of the window in days."""
        return {Timeframe.WEEK: 7, Timeframe.MONTH: 30}.get(self, 90)

    @classmethod
    def parse(cls, value: "str | Timeframe | None") -> "Timeframe":
        """Map any string to a timeframe without failing."""
        if isinstance(value, Timeframe):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.QUARTER


@dataclass
class ChildProfile:
    """The child a report is generated for."""

    id: str
    name: str
    age: int
    interests: list[str] = field(default_factory=list)
    learning_preferences: dict[str, Any] = field(default_factory=dict)


def validate_session_values(values: dict[str, Any]) -> None:
    """Check the numeric session fields present in ``values``.

    Raises:
        InvalidRecordError: If any field is out of range.
    """
    if values.get("duration_minutes", 0) < 0:
        raise InvalidRecordError("duration_minutes", "must be >= 0")
    if not 0 <= values.get("completion_percentage", 0) <= 100:
        raise InvalidRecordError("completion_percentage", "must be between 0 and 100")
    if values.get("points_earned", 0) < 0:
        raise InvalidRecordError("points_earned", "must be >= 0")


@dataclass
class LearningSessionRecord:
    """One learning session.

    Attributes:
        child_id: Owner of the session.
        subject: Subject key, e.g. "math" or "reading".
        topic: Free-form topic within the subject.
        session_type: Kind of session, e.g. "lesson", "game", "quiz".
        duration_minutes: Time spent, non-negative.
        completion_percentage: 0 to 100.
        points_earned: Non-negative reward points.
        created_at: When the session ended, UTC.
        id: Store identifier, None before insertion.
    """

    child_id: str
    subject: str
    duration_minutes: int
    completion_percentage: float
    points_earned: int
    created_at: datetime
    topic: str = ""
    session_type: str = "lesson"
    id: str | None = None

    def __post_init__(self) -> None:
        self.created_at = ensure_utc(self.created_at)

    def validate(self) -> None:
        """Check value ranges.

        Raises:
            InvalidRecordError: If any field is out of range.
        """
        if not self.child_id:
            raise InvalidRecordError("child_id", "must not be empty")
        if not self.subject:
            raise InvalidRecordError("subject", "must not be empty")
        validate_session_values(
            {
                "duration_minutes": self.duration_minutes,
                "completion_percentage": self.completion_percentage,
                "points_earned": self.points_earned,
            }
        )


@dataclass
class QuizResultRecord:
    """One quiz attempt. ``quiz_type`` doubles as the subject key."""

    child_id: str
    quiz_type: str
    total_questions: int
    correct_answers: int
    score_percentage: int
    created_at: datetime
    id: str | None = None

    def __post_init__(self) -> None:
        self.created_at = ensure_utc(self.created_at)

    @classmethod
    def from_answers(
        cls,
        child_id: str,
        quiz_type: str,
        total_questions: int,
        correct_answers: int,
        created_at: datetime,
    ) -> "QuizResultRecord":
        """Build a validated result, deriving the score from the answer counts.

        Raises:
            InvalidRecordError: If the counts are inconsistent.
        """
        if total_questions <= 0:
            raise InvalidRecordError("total_questions", "must be > 0")
        if not 0 <= correct_answers <= total_questions:
            raise InvalidRecordError("correct_answers", "must be between 0 and total_questions")

        record = cls(
            child_id=child_id,
            quiz_type=quiz_type,
            total_questions=total_questions,
            correct_answers=correct_answers,
            score_percentage=round_half_up(correct_answers / total_questions * 100),
            created_at=created_at,
        )
        record.validate()
        return record

    def validate(self) -> None:
        """Check value ranges.

        Raises:
            InvalidRecordError: If any field is out of range.
        """
        if not self.child_id:
            raise InvalidRecordError("child_id", "must not be empty")
        if not self.quiz_type:
            raise InvalidRecordError("quiz_type", "must not be empty")
        if self.total_questions <= 0:
            raise InvalidRecordError("total_questions", "must be > 0")
        if not 0 <= self.correct_answers <= self.total_questions:
            raise InvalidRecordError("correct_answers", "must be between 0 and total_questions")
        if not 0 <= self.score_percentage <= 100:
            raise InvalidRecordError("score_percentage", "must be between 0 and 100")


@dataclass
class DailyAnalyticsRecord:
    """Running aggregate for one child on one UTC day.

    ``average_score_percentage`` and ``engagement_score`` are online means
    over the day's sessions.
    """

    child_id: str
    analysis_date: date
    total_session_time_minutes: int = 0
    sessions_completed: int = 0
    average_score_percentage: float = 0.0
    subjects_studied: list[str] = field(default_factory=list)
    learning_velocity: float = 0.0
    engagement_score: float = 0.0
    performance_trends: dict[str, Any] = field(default_factory=dict)
    weekly_progress: dict[str, Any] = field(default_factory=dict)
    id: str | None = None


@dataclass(frozen=True)
class InsufficientData:
    """Returned in place of an analysis when there is too little history."""

    message: str
    status: Literal["insufficient_data"] = "insufficient_data"


@dataclass(frozen=True)
class NoSessions:
    """Returned in place of an analysis when no sessions exist in the window."""

    message: str
    status: Literal["no_sessions"] = "no_sessions"


def to_serializable(value: Any) -> Any:
    """Convert report dataclasses into JSON-compatible structures.

    Dates become ISO strings and enums their values; dict and list
    ordering is preserved.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_serializable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_serializable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_serializable(v) for v in value]
    return value
