# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Analytics domain exceptions.

Insufficient data is never an exception; generators return an explicit
InsufficientData or NoSessions variant instead.
"""


class AnalyticsError(Exception):
    """Base exception for analytics operations.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ChildNotFoundError(AnalyticsError):
    """Raised when a report is requested for an unknown child."""

    def __init__(self, child_id: str) -> None:
        super().__init__(f"Child profile not found: {child_id}")
        self.child_id = child_id


class InvalidRecordError(AnalyticsError):
    """Raised when a session or quiz record violates its value ranges.

    Attributes:
        field: Name of the offending field.
    """

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"Invalid {field}: {message}")
        self.field = field


class SessionNotFoundError(AnalyticsError):
    """Raised when a learning session to update does not exist."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Learning session not found: {session_id}")
        self.session_id = session_id
