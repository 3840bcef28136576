"""
Sage Router - Routing Module

Request routing with:
- Phrase-set classification into routing profiles
- Health-ordered provider chains
- Sequential fallback with per-call timeouts
- Canonical routing validation
"""

from .health import ProviderHealthLedger, ProviderTracker
from .profiles import (
    DEFAULT_MODELS,
    PHRASE_SETS,
    PROFILE_TABLE,
    STAGE_PROFILE_HINTS,
    Classification,
    PhraseSet,
    ProfileConfig,
    classify,
)
from .engine import RoutingEngine
from .fallback import FallbackExecutor
from .service import RouterService
from .validation import RoutingValidator, ValidationResult

__all__ = [
    # Health
    "ProviderHealthLedger",
    "ProviderTracker",
    # Profiles
    "DEFAULT_MODELS",
    "PHRASE_SETS",
    "PROFILE_TABLE",
    "STAGE_PROFILE_HINTS",
    "Classification",
    "PhraseSet",
    "ProfileConfig",
    "classify",
    # Engine
    "RoutingEngine",
    # Fallback
    "FallbackExecutor",
    # Service
    "RouterService",
    # Validation
    "RoutingValidator",
    "ValidationResult",
]
