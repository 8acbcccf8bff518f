# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Event infrastructure: in-memory pub/sub with wildcard patterns.

Quick Start:
    from src.infrastructure.events import get_event_bus, EventTypes

    bus = get_event_bus()
    unsubscribe = bus.subscribe(EventTypes.Analytics.SESSION_PROCESSED, handler)
"""

from src.infrastructure.events.bus import (
    EventBus,
    EventData,
    EventHandler,
    Unsubscribe,
    get_event_bus,
    reset_event_bus,
)
from src.infrastructure.events.types import EventPatterns, EventTypes

__all__ = [
    "EventBus",
    "EventData",
    "EventHandler",
    "Unsubscribe",
    "get_event_bus",
    "reset_event_bus",
    "EventTypes",
    "EventPatterns",
]
