# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Personalised learning recommendations.

Recommendations are first requested from a generative content provider.
Its free-text answer goes through a validating parse that returns a
tagged result; anything other than a well-formed list falls back to a
small set of deterministic rules. Provider failures never abort a report.
"""

import logging
from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from src.domains.analytics.store import ContentGenerator

logger = logging.getLogger(__name__)

Priority = Literal["high", "medium", "low"]


@dataclass
class Recommendation:
    """A suggested next step for the child or their parent."""

    type: str
    title: str
    description: str
    priority: Priority
    estimated_impact: str = ""


class RecommendationSchema(BaseModel):
    """Shape each AI-provided recommendation must satisfy."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    type: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    priority: Priority
    estimated_impact: str = ""


_SCHEMA_LIST = TypeAdapter(list[RecommendationSchema])


@dataclass
class RecommendationParseResult:
    """Outcome of parsing provider output.

    Attributes:
        status: "ok" when at least one valid recommendation was found.
        recommendations: Parsed items, empty unless status is "ok".
        error: Why parsing failed, None on success.
    """

    status: Literal["ok", "malformed"]
    recommendations: list[Recommendation] = field(default_factory=list)
    error: str | None = None


@dataclass
class RecommendationContext:
    """Facts about the child the prompt is built from."""

    age: int
    interests: list[str]
    total_sessions: int
    average_completion: int
    subjects: list[str]


@dataclass
class RecommendationSet:
    """Recommendations together with where they came from."""

    items: list[Recommendation]
    source: Literal["ai", "rules"]


def parse_recommendations(text: str, max_items: int = 5) -> RecommendationParseResult:
    """Extract and validate a JSON array of recommendations.

    The provider may wrap the array in prose or code fences, so the outermost
    ``[...]`` span is parsed. Items beyond ``max_items`` are dropped.

    Args:
        text: Raw provider output.
        max_items: Maximum number of recommendations to keep.

    Returns:
        A tagged parse result; never raises for malformed input.
    """
    start = text.find("[")
    end = text.rfind("]")
    if start == -1 or end < start:
        return RecommendationParseResult(status="malformed", error="no JSON array in response")

    try:
        items = _SCHEMA_LIST.validate_json(text[start : end + 1])
    except ValidationError as e:
        return RecommendationParseResult(
            status="malformed",
            error=f"{e.error_count()} validation error(s)",
        )

    if not items:
        return RecommendationParseResult(status="malformed", error="empty recommendation list")

    return RecommendationParseResult(
        status="ok",
        recommendations=[Recommendation(**item.model_dump()) for item in items[:max_items]],
    )


def build_prompt(context: RecommendationContext) -> str:
    """Build the provider prompt for a child's learning statistics."""
    interests = ", ".join(context.interests) or "none listed"
    subjects = ", ".join(context.subjects) or "none yet"
    return (
        "Based on this child's learning data, provide 3-5 specific, actionable "
        "learning recommendations:\n\n"
        f"Child Profile:\n- Age: {context.age}\n- Interests: {interests}\n\n"
        f"Learning Stats:\n- Total Sessions: {context.total_sessions}\n"
        f"- Average Completion Rate: {context.average_completion}%\n"
        f"- Subjects Studied: {subjects}\n\n"
        "Respond with only a JSON array. Each item must have the keys "
        '"type", "title", "description", "priority" (one of "high", "medium", '
        '"low") and "estimated_impact".'
    )


def rule_based_recommendations(total_sessions: int, average_completion: float) -> list[Recommendation]:
    """Deterministic recommendations used when the provider is unavailable."""
    recommendations: list[Recommendation] = []

    if total_sessions < 5:
        recommendations.append(
            Recommendation(
                type="engagement",
                title="Build Learning Routine",
                description="Establish a consistent daily learning schedule to build momentum",
                priority="high",
                estimated_impact="Increased engagement and retention",
            )
        )

    if average_completion < 70:
        recommendations.append(
            Recommendation(
                type="difficulty_adjustment",
                title="Focus on Fundamentals",
                description="Review basic concepts before moving to advanced topics",
                priority="high",
                estimated_impact="Improved completion rates and confidence",
            )
        )

    return recommendations


class RecommendationEngine:
    """Produces recommendations from a provider with a rule-based fallback."""

    def __init__(self, generator: ContentGenerator | None = None, max_items: int = 5) -> None:
        self._generator = generator
        self._max_items = max_items

    async def recommend(self, context: RecommendationContext) -> RecommendationSet:
        """Return provider recommendations, or rule-based ones on any failure."""
        fallback = RecommendationSet(
            items=rule_based_recommendations(context.total_sessions, context.average_completion),
            source="rules",
        )
        if self._generator is None:
            return fallback

        try:
            text = await self._generator.generate(build_prompt(context))
        except Exception as e:
            logger.warning("Recommendation provider failed, using rules: %s", str(e))
            return fallback

        parsed = parse_recommendations(text, self._max_items)
        if parsed.status != "ok":
            logger.warning("Malformed recommendation response, using rules: %s", parsed.error)
            return fallback

        return RecommendationSet(items=parsed.recommendations, source="ai")
