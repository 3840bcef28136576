"""
Sage Router - Reasoning Module

Multi-turn reasoning pass with marketing-aspect focus.
"""

from .engine import ReasoningPass, draft_similarity
from .patterns import (
    MARKETING_PATTERNS,
    QueryType,
    aspects_for,
    extract_entities,
    identify_query_type,
)
from .prompts import DEFAULT_SYSTEM_PROMPT, compose_refinement_prompt, compose_user_prompt

__all__ = [
    "ReasoningPass",
    "draft_similarity",
    "MARKETING_PATTERNS",
    "QueryType",
    "aspects_for",
    "extract_entities",
    "identify_query_type",
    "DEFAULT_SYSTEM_PROMPT",
    "compose_refinement_prompt",
    "compose_user_prompt",
]
