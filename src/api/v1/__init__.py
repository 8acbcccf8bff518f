# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

Modules:
    analytics: Session recording and learning, progress and insight reports.
"""

from fastapi import APIRouter

from src.api.v1 import analytics

router = APIRouter(prefix="/api/v1")

router.include_router(analytics.router, prefix="/analytics", tags=["Analytics"])

__all__ = ["router"]
