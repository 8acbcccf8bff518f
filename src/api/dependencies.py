# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

Example:
    @router.get("/children/{child_id}/insights")
    async def get_insights(
        child_id: str,
        service: AnalyticsService = Depends(get_analytics_service),
    ):
        ...
"""

import logging
from functools import lru_cache
from typing import Annotated, AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import get_settings
from src.core.intelligence.llm import LLMClient
from src.domains.analytics import AnalyticsService, SQLAnalyticsStore
from src.infrastructure.database.connection import close_database, get_session, init_database
from src.infrastructure.events import get_event_bus

logger = logging.getLogger(__name__)


async def init_db() -> None:
    """Initialize the database connection pool."""
    await init_database(get_settings())


async def close_db() -> None:
    """Close the database connection pool."""
    await close_database()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get a request-scoped database session.

    Commits when the request handler returns, rolls back on error.

    Yields:
        AsyncSession for the analytics database.
    """
    async with get_session() as session:
        yield session


@lru_cache(maxsize=1)
def get_llm_client() -> LLMClient | None:
    """Get the shared LLM client, or None when recommendations are disabled."""
    settings = get_settings()
    if not settings.analytics.recommendations_enabled:
        return None
    return LLMClient(model=settings.analytics.recommendation_model)


def get_analytics_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AnalyticsService:
    """Build an AnalyticsService bound to the request's session."""
    settings = get_settings()
    return AnalyticsService(
        SQLAnalyticsStore(db),
        event_bus=get_event_bus(),
        content_generator=get_llm_client(),
        settings=settings.analytics,
    )
