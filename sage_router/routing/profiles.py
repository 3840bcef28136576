"""
Sage Router - Routing Profiles

Static classification table mapping request text to a routing profile,
and each profile to a preferred provider order, per-provider models and
generation parameters.

Classification walks PHRASE_SETS in order:
1. Research phrases, in the query or the auxiliary context
2. Creative phrases, in the query only
3. Precision phrases, in the query only
4. Reasoning phrases, in the query or the auxiliary context
Then the workflow stage label through STAGE_PROFILE_HINTS, then baseline.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Pattern, Sequence, Tuple

from ..core.models import (
    GenerationParams,
    ProviderIdentity,
    RoutingProfile,
    RoutingRequest,
)


# Default model per provider when a profile does not name one
DEFAULT_MODELS: Dict[ProviderIdentity, str] = {
    ProviderIdentity.OPENAI: "gpt-4o",
    ProviderIdentity.ANTHROPIC: "claude-sonnet-4-20250514",
    ProviderIdentity.GEMINI: "gemini-1.5-pro-002",
}


@dataclass
class PhraseSet:
    """
    Phrases that select one profile.

    A phrase must start on a word boundary and may run on into a suffix,
    so "research" matches "researching" and "analyze" matches "analyzed".
    Text inside a word never matches: "data" does not match "metadata".
    Irregular forms ("studies", "wrote") are not matched.

    scan_context: also match against the auxiliary context when the
    query has no match.
    """
    profile: RoutingProfile
    phrases: Sequence[str]
    scan_context: bool = False
    _patterns: List[Tuple[str, Pattern]] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self):
        for phrase in self.phrases:
            words = [re.escape(w) for w in phrase.lower().split()]
            pattern = re.compile(r"\b" + r"\s+".join(words) + r"\w*", re.IGNORECASE)
            self._patterns.append((phrase, pattern))

    def match(self, text: str) -> Optional[str]:
        """First phrase found in text, or None."""
        if not text:
            return None
        for phrase, pattern in self._patterns:
            if pattern.search(text):
                return phrase
        return None


@dataclass(frozen=True)
class ProfileConfig:
    """Provider preference and generation settings for one profile."""
    profile: RoutingProfile
    preferred_order: Tuple[ProviderIdentity, ...]
    models: Dict[ProviderIdentity, str]
    # None means "use the configured defaults"
    params: Optional[GenerationParams] = None

    def model_for(self, provider: ProviderIdentity) -> str:
        return self.models.get(provider) or DEFAULT_MODELS[provider]


# Order matters: the first set with a match decides the profile
PHRASE_SETS: List[PhraseSet] = [
    PhraseSet(
        RoutingProfile.DEEP_ANALYSIS,
        [
            "market analysis", "deep dive",
            "research", "analyze", "analyse", "study", "investigate", "examine",
            "competitive", "trends", "insights", "comprehensive", "detailed",
            "thorough",
        ],
        scan_context=True,
    ),
    PhraseSet(
        RoutingProfile.FAST_CREATIVE,
        [
            "creative brief",
            "create", "write", "generate", "design", "brainstorm",
            "campaign", "content", "copy", "headline", "slogan",
            "story", "narrative", "image",
        ],
    ),
    PhraseSet(
        RoutingProfile.PRECISION,
        [
            "data", "metrics", "analytics", "performance", "roi",
            "calculate", "measure", "optimize", "algorithm",
            "technical", "implementation", "integration",
        ],
    ),
    # Strategy questions with no creative or technical ask still get a reasoning pass
    PhraseSet(
        RoutingProfile.DEEP_ANALYSIS,
        [
            "deep research", "complete analysis", "competitive analysis",
            "insights into", "why did", "what made",
            "comprehensive", "detailed", "compare", "versus", "strategy",
            "driving",
        ],
        scan_context=True,
    ),
]


PROFILE_TABLE: Dict[RoutingProfile, ProfileConfig] = {
    RoutingProfile.DEEP_ANALYSIS: ProfileConfig(
        profile=RoutingProfile.DEEP_ANALYSIS,
        preferred_order=(
            ProviderIdentity.ANTHROPIC,
            ProviderIdentity.OPENAI,
            ProviderIdentity.GEMINI,
        ),
        models={
            ProviderIdentity.ANTHROPIC: "claude-sonnet-4-20250514",
            ProviderIdentity.OPENAI: "gpt-4o",
            ProviderIdentity.GEMINI: "gemini-1.5-pro-002",
        },
        params=GenerationParams(temperature=0.7, max_tokens=4000),
    ),
    RoutingProfile.FAST_CREATIVE: ProfileConfig(
        profile=RoutingProfile.FAST_CREATIVE,
        preferred_order=(
            ProviderIdentity.OPENAI,
            ProviderIdentity.GEMINI,
            ProviderIdentity.ANTHROPIC,
        ),
        models={
            ProviderIdentity.OPENAI: "gpt-4o",
            ProviderIdentity.GEMINI: "gemini-2.0-flash",
            ProviderIdentity.ANTHROPIC: "claude-sonnet-4-20250514",
        },
        params=GenerationParams(temperature=0.9, max_tokens=2000),
    ),
    RoutingProfile.PRECISION: ProfileConfig(
        profile=RoutingProfile.PRECISION,
        preferred_order=(
            ProviderIdentity.GEMINI,
            ProviderIdentity.OPENAI,
            ProviderIdentity.ANTHROPIC,
        ),
        models={
            ProviderIdentity.GEMINI: "gemini-1.5-pro-002",
            ProviderIdentity.OPENAI: "gpt-4o",
            ProviderIdentity.ANTHROPIC: "claude-sonnet-4-20250514",
        },
        params=GenerationParams(temperature=0.3, max_tokens=2000),
    ),
    RoutingProfile.BASELINE: ProfileConfig(
        profile=RoutingProfile.BASELINE,
        preferred_order=(
            ProviderIdentity.ANTHROPIC,
            ProviderIdentity.OPENAI,
            ProviderIdentity.GEMINI,
        ),
        models=dict(DEFAULT_MODELS),
    ),
}


# Workflow stage label -> profile, consulted only when no phrase matched
STAGE_PROFILE_HINTS: Dict[str, RoutingProfile] = {
    "research": RoutingProfile.DEEP_ANALYSIS,
    "strategic_brief": RoutingProfile.DEEP_ANALYSIS,
    "content": RoutingProfile.FAST_CREATIVE,
    "visuals": RoutingProfile.FAST_CREATIVE,
}


@dataclass(frozen=True)
class Classification:
    """Profile chosen for a request and the rule that chose it."""
    profile: RoutingProfile
    rule: str
    matched: Optional[str] = None

    @property
    def rule_kind(self) -> str:
        return self.rule.split(":", 1)[0]


def normalize_stage(stage: Optional[str]) -> Optional[str]:
    if not stage:
        return None
    return re.sub(r"[\s\-]+", "_", stage.strip().lower())


def classify(
    request: RoutingRequest,
    phrase_sets: Sequence[PhraseSet] = PHRASE_SETS,
    stage_hints: Dict[str, RoutingProfile] = STAGE_PROFILE_HINTS,
) -> Classification:
    """
    Pick the routing profile for a request.

    Phrase sets are tried in order. Within one set the query is checked
    before the auxiliary context, so a research phrase in the context
    still outranks a creative phrase in the query. The workflow stage is
    consulted only when no phrase set matched.
    """
    auxiliary = request.auxiliary_text
    for phrase_set in phrase_sets:
        phrase = phrase_set.match(request.query)
        if phrase is not None:
            return Classification(
                phrase_set.profile, f"phrase:{phrase_set.profile.value}:{phrase}", phrase
            )
        if phrase_set.scan_context:
            phrase = phrase_set.match(auxiliary)
            if phrase is not None:
                return Classification(
                    phrase_set.profile, f"context:{phrase_set.profile.value}:{phrase}", phrase
                )

    stage = normalize_stage(request.workflow_stage)
    if stage and stage in stage_hints:
        return Classification(stage_hints[stage], f"stage:{stage}", stage)

    return Classification(RoutingProfile.BASELINE, f"default:{RoutingProfile.BASELINE.value}")
