# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package.

Example:
    >>> from src.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.environment
    'development'
"""

from src.core.config.settings import (
    AnalyticsSettings,
    CORSSettings,
    DatabaseSettings,
    LLMSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "clear_settings_cache",
    "AnalyticsSettings",
    "CORSSettings",
    "DatabaseSettings",
    "LLMSettings",
]
