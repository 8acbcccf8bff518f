# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""ORM models."""

from src.infrastructure.database.models.analytics import (
    ChildProfileModel,
    LearningAnalyticsModel,
    LearningSessionModel,
    QuizResultModel,
)
from src.infrastructure.database.models.base import Base

__all__ = [
    "Base",
    "ChildProfileModel",
    "LearningAnalyticsModel",
    "LearningSessionModel",
    "QuizResultModel",
]
