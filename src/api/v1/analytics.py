# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Analytics API endpoints.

- POST /sessions - Record a learning session and update daily analytics
- PATCH /sessions/{session_id} - Update a session's completion and reprocess it
- POST /quiz-results - Record a quiz attempt
- GET /children/{child_id}/learning-report - Learning report
- GET /children/{child_id}/progress-report - Progress report
- GET /children/{child_id}/insights - Insights
- GET /children/{child_id}/quiz-analytics - Quiz summary
- GET /children/{child_id}/reports - All reports at once, partial on failure

Example:
    GET /api/v1/analytics/children/c-1/learning-report?timeframe=month
"""

import logging
from datetime import date, datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from src.api.dependencies import get_analytics_service
from src.domains.analytics import (
    AnalyticsService,
    ChildNotFoundError,
    DailyAnalyticsRecord,
    InvalidRecordError,
    LearningSessionRecord,
    SessionNotFoundError,
    Timeframe,
)
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()

ServiceDep = Annotated[AnalyticsService, Depends(get_analytics_service)]
TimeframeQuery = Annotated[
    str,
    Query(description="week, month or quarter; anything else means quarter"),
]


# ============================================================================
# Request / Response Models
# ============================================================================


class RecordSessionRequest(BaseModel):
    """A finished learning session."""

    child_id: str = Field(min_length=1, description="Child ID")
    subject: str = Field(min_length=1, max_length=50, description="Subject key")
    topic: str = Field(default="", max_length=200, description="Topic within the subject")
    session_type: str = Field(default="lesson", max_length=50, description="Session kind")
    duration_minutes: int = Field(ge=0, description="Time spent in minutes")
    completion_percentage: float = Field(ge=0, le=100, description="Completion 0-100")
    points_earned: int = Field(default=0, ge=0, description="Points earned")
    created_at: datetime | None = Field(default=None, description="Session end time")


class UpdateSessionRequest(BaseModel):
    """Final figures of a session that was recorded before it finished."""

    completion_percentage: float = Field(ge=0, le=100, description="Completion 0-100")
    duration_minutes: int | None = Field(default=None, ge=0, description="Time spent in minutes")
    points_earned: int | None = Field(default=None, ge=0, description="Points earned")


class DailyAnalyticsResponse(BaseModel):
    """Today's aggregate after the session was folded in."""

    child_id: str = Field(description="Child ID")
    analysis_date: date = Field(description="UTC day of the aggregate")
    total_session_time_minutes: int = Field(description="Minutes learned today")
    sessions_completed: int = Field(description="Sessions today")
    average_score_percentage: float = Field(description="Mean completion today")
    subjects_studied: list[str] = Field(description="Subjects studied today")
    learning_velocity: float = Field(description="Sessions per hour today")
    engagement_score: float = Field(description="Mean engagement today")
    weekly_progress: dict[str, Any] = Field(description="Trailing 7 day roll-up")


class RecordQuizRequest(BaseModel):
    """A finished quiz."""

    child_id: str = Field(min_length=1, description="Child ID")
    quiz_type: str = Field(min_length=1, max_length=50, description="Subject key of the quiz")
    total_questions: int = Field(gt=0, description="Number of questions")
    correct_answers: int = Field(ge=0, description="Number answered correctly")
    created_at: datetime | None = Field(default=None, description="Quiz end time")


class QuizResultResponse(BaseModel):
    """Stored quiz attempt."""

    id: str | None = Field(description="Quiz result ID")
    child_id: str = Field(description="Child ID")
    quiz_type: str = Field(description="Subject key")
    total_questions: int = Field(description="Number of questions")
    correct_answers: int = Field(description="Correct answers")
    score_percentage: int = Field(description="Score 0-100")
    created_at: datetime = Field(description="When the quiz ended")


def _daily_response(daily: DailyAnalyticsRecord) -> DailyAnalyticsResponse:
    return DailyAnalyticsResponse(
        child_id=daily.child_id,
        analysis_date=daily.analysis_date,
        total_session_time_minutes=daily.total_session_time_minutes,
        sessions_completed=daily.sessions_completed,
        average_score_percentage=daily.average_score_percentage,
        subjects_studied=daily.subjects_studied,
        learning_velocity=daily.learning_velocity,
        engagement_score=daily.engagement_score,
        weekly_progress=daily.weekly_progress,
    )


def _not_found(error: ChildNotFoundError | SessionNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=error.message)


def _invalid(error: InvalidRecordError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=error.message)


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "/sessions",
    response_model=DailyAnalyticsResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record learning session",
    description="Store a session and fold it into today's analytics.",
)
async def record_session(
    request: RecordSessionRequest,
    service: ServiceDep,
) -> DailyAnalyticsResponse:
    """Record a learning session.

    Raises:
        HTTPException: 422 if the session values are inconsistent.
    """
    session = LearningSessionRecord(
        child_id=request.child_id,
        subject=request.subject,
        topic=request.topic,
        session_type=request.session_type,
        duration_minutes=request.duration_minutes,
        completion_percentage=request.completion_percentage,
        points_earned=request.points_earned,
        created_at=request.created_at or utc_now(),
    )
    try:
        daily = await service.record_session(session)
    except InvalidRecordError as e:
        raise _invalid(e) from e

    return _daily_response(daily)


@router.patch(
    "/sessions/{session_id}",
    response_model=DailyAnalyticsResponse,
    summary="Update learning session",
    description=(
        "Record a session's final completion and fold it into today's analytics again. "
        "The earlier contribution stays in the running means."
    ),
)
async def update_session(
    session_id: str,
    request: UpdateSessionRequest,
    service: ServiceDep,
) -> DailyAnalyticsResponse:
    """Update a learning session's completion.

    Raises:
        HTTPException: 404 if the session does not exist, 422 if a value is
            out of range.
    """
    try:
        daily = await service.update_session(
            session_id,
            completion_percentage=request.completion_percentage,
            duration_minutes=request.duration_minutes,
            points_earned=request.points_earned,
        )
    except SessionNotFoundError as e:
        raise _not_found(e) from e
    except InvalidRecordError as e:
        raise _invalid(e) from e

    return _daily_response(daily)


@router.post(
    "/quiz-results",
    response_model=QuizResultResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record quiz result",
)
async def record_quiz_result(
    request: RecordQuizRequest,
    service: ServiceDep,
) -> QuizResultResponse:
    """Record a quiz attempt.

    Raises:
        HTTPException: 422 if correct answers exceed total questions.
    """
    try:
        result = await service.record_quiz_result(
            child_id=request.child_id,
            quiz_type=request.quiz_type,
            total_questions=request.total_questions,
            correct_answers=request.correct_answers,
            created_at=request.created_at,
        )
    except InvalidRecordError as e:
        raise _invalid(e) from e

    return QuizResultResponse(
        id=result.id,
        child_id=result.child_id,
        quiz_type=result.quiz_type,
        total_questions=result.total_questions,
        correct_answers=result.correct_answers,
        score_percentage=result.score_percentage,
        created_at=result.created_at,
    )


@router.get(
    "/children/{child_id}/learning-report",
    summary="Get learning report",
)
async def get_learning_report(
    child_id: str,
    service: ServiceDep,
    timeframe: TimeframeQuery = "week",
) -> dict[str, Any]:
    """Get the learning report for a child.

    Raises:
        HTTPException: 404 if the child does not exist.
    """
    logger.info("Getting learning report: child=%s, timeframe=%s", child_id, timeframe)
    try:
        report = await service.generate_learning_report(child_id, Timeframe.parse(timeframe))
    except ChildNotFoundError as e:
        raise _not_found(e) from e
    return report.to_dict()


@router.get(
    "/children/{child_id}/progress-report",
    summary="Get progress report",
)
async def get_progress_report(
    child_id: str,
    service: ServiceDep,
    timeframe: TimeframeQuery = "week",
) -> dict[str, Any]:
    """Get the progress report for a child.

    Raises:
        HTTPException: 404 if the child does not exist.
    """
    logger.info("Getting progress report: child=%s, timeframe=%s", child_id, timeframe)
    try:
        report = await service.generate_progress_report(child_id, Timeframe.parse(timeframe))
    except ChildNotFoundError as e:
        raise _not_found(e) from e
    return report.to_dict()


@router.get(
    "/children/{child_id}/insights",
    summary="Get insights",
)
async def get_insights(child_id: str, service: ServiceDep) -> dict[str, Any]:
    """Get weekly, trend, engagement and subject insights for a child."""
    report = await service.generate_insights(child_id)
    return report.to_dict()


@router.get(
    "/children/{child_id}/quiz-analytics",
    summary="Get quiz analytics",
)
async def get_quiz_analytics(
    child_id: str,
    service: ServiceDep,
    timeframe: TimeframeQuery = "month",
) -> dict[str, Any]:
    """Get quiz totals and recent quiz performance for a child."""
    analytics = await service.generate_quiz_analytics(child_id, Timeframe.parse(timeframe))
    return analytics.to_dict()


@router.get(
    "/children/{child_id}/reports",
    summary="Get all reports",
    description="Generate all reports concurrently. Failed reports are null and listed in errors.",
)
async def get_all_reports(
    child_id: str,
    service: ServiceDep,
    timeframe: TimeframeQuery = "week",
) -> dict[str, Any]:
    """Get learning, progress and insight reports in one call."""
    result = await service.generate_all_reports(child_id, Timeframe.parse(timeframe))
    return result.to_dict()
