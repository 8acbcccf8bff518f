# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""ORM models for child learning activity and daily analytics.

Tables:
    child_profiles: One row per child.
    learning_sessions: Append-only session events.
    quiz_results: Append-only quiz attempts.
    learning_analytics: One aggregate row per (child, UTC day).
"""

from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class ChildProfileModel(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A child using the platform."""

    __tablename__ = "child_profiles"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    interests: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    learning_preferences: Mapped[dict[str, Any]] = mapped_column(
        JSONB, nullable=False, default=dict
    )


class LearningSessionModel(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """One completed (or abandoned) learning session."""

    __tablename__ = "learning_sessions"
    __table_args__ = (
        CheckConstraint(
            "completion_percentage BETWEEN 0 AND 100",
            name="ck_learning_sessions_completion",
        ),
        CheckConstraint("duration_minutes >= 0", name="ck_learning_sessions_duration"),
        CheckConstraint("points_earned >= 0", name="ck_learning_sessions_points"),
        Index("ix_learning_sessions_child_created", "child_id", "created_at"),
    )

    child_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("child_profiles.id", ondelete="CASCADE"), nullable=False
    )
    subject: Mapped[str] = mapped_column(String(50), nullable=False)
    topic: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    session_type: Mapped[str] = mapped_column(String(50), nullable=False, default="lesson")
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completion_percentage: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=0
    )
    points_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class QuizResultModel(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """One quiz attempt."""

    __tablename__ = "quiz_results"
    __table_args__ = (
        CheckConstraint("total_questions > 0", name="ck_quiz_results_total"),
        CheckConstraint(
            "correct_answers BETWEEN 0 AND total_questions",
            name="ck_quiz_results_correct",
        ),
        Index("ix_quiz_results_child_created", "child_id", "created_at"),
    )

    child_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("child_profiles.id", ondelete="CASCADE"), nullable=False
    )
    quiz_type: Mapped[str] = mapped_column(String(50), nullable=False)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    correct_answers: Mapped[int] = mapped_column(Integer, nullable=False)
    score_percentage: Mapped[int] = mapped_column(Integer, nullable=False)


class LearningAnalyticsModel(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Running daily aggregate per child, updated on every processed session."""

    __tablename__ = "learning_analytics"
    __table_args__ = (
        UniqueConstraint("child_id", "analysis_date", name="uq_learning_analytics_child_date"),
        Index("ix_learning_analytics_child_date", "child_id", "analysis_date"),
    )

    child_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("child_profiles.id", ondelete="CASCADE"), nullable=False
    )
    analysis_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_session_time_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sessions_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_score_percentage: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=0
    )
    subjects_studied: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    learning_velocity: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False, default=0)
    engagement_score: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=0)
    performance_trends: Mapped[dict[str, Any]] = mapped_column(
        JSONB, nullable=False, default=dict
    )
    weekly_progress: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
