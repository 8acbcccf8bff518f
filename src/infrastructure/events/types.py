# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Centralized event type definitions.

Publishers and subscribers use these constants instead of string
literals. Pattern subscribers (``"analytics.*"``) pick up new events
without changes.
"""


class EventTypes:
    """Event types organized by domain."""

    class Analytics:
        """Analytics domain events."""

        SESSION_PROCESSED = "analytics.session.processed"
        QUIZ_RECORDED = "analytics.quiz.recorded"


class EventPatterns:
    """Wildcard patterns for subscribing to groups of events."""

    ALL_ANALYTICS = "analytics.*"
    ALL = "*"
