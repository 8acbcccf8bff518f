# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Intelligence module for AI-powered operations.

Example:
    >>> from src.core.intelligence import LLMClient
    >>> client = LLMClient()
"""

from src.core.intelligence.llm import LLMClient, LLMError

__all__ = [
    "LLMClient",
    "LLMError",
]
