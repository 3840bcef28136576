"""
Sage Router - Routing Decision Engine

Chooses provider, model and reasoning flag for a request before any
network call is made.

Precedence:
1. Manual override naming a provider (even an unhealthy one)
2. Phrase-set classification (research, creative, precision, reasoning),
   then the workflow stage
3. Ledger ordering of the profile's preferred providers
"""

from typing import Dict, List, Optional

from ..config import RouterSettings
from ..core.errors import InvalidRequestError
from ..core.models import (
    GenerationParams,
    ProviderIdentity,
    RoutingDecision,
    RoutingProfile,
    RoutingRequest,
    TurnRole,
)
from ..observability.logging import get_logger
from .health import ProviderHealthLedger
from .profiles import (
    PHRASE_SETS,
    PROFILE_TABLE,
    STAGE_PROFILE_HINTS,
    ProfileConfig,
    classify,
)

logger = get_logger(__name__)


class RoutingEngine:
    """
    Routing decision engine.

    Reads the health ledger, never writes it. A decision is always
    produced for a non-empty query.
    """

    def __init__(
        self,
        ledger: ProviderHealthLedger,
        settings: Optional[RouterSettings] = None,
        profile_table: Optional[Dict[RoutingProfile, ProfileConfig]] = None,
    ):
        self.ledger = ledger
        self.settings = settings or RouterSettings()
        self.profile_table = profile_table or PROFILE_TABLE

    def is_follow_up(self, request: RoutingRequest) -> bool:
        """
        Short query answering a recent long assistant turn.

        Such requests continue an existing analysis and do not need a
        fresh reasoning pass.
        """
        if len(request.query.strip()) >= self.settings.follow_up_max_query_chars:
            return False
        window = request.history[-self.settings.follow_up_history_window:]
        return any(
            turn.role == TurnRole.ASSISTANT
            and len(turn.content) >= self.settings.follow_up_min_assistant_chars
            for turn in window
        )

    def _params_for(self, config: ProfileConfig) -> GenerationParams:
        if config.params is not None:
            return config.params
        return GenerationParams(
            temperature=self.settings.default_temperature,
            max_tokens=self.settings.default_max_tokens,
        )

    def route(self, request: RoutingRequest) -> RoutingDecision:
        """
        Produce the routing decision for a request.

        Raises:
            InvalidRequestError: query is empty
        """
        if not request.query or not request.query.strip():
            raise InvalidRequestError(
                "query must not be empty",
                param="query",
                request_id=request.request_id,
            )

        classification = classify(request, PHRASE_SETS, STAGE_PROFILE_HINTS)
        config = self.profile_table[classification.profile]
        override = request.override if request.override and not request.override.is_empty else None

        rule = classification.rule
        override_applied = False
        reasons: List[str] = []

        if override and override.provider is not None:
            rest = [p for p in config.preferred_order if p != override.provider]
            chain = [override.provider] + self.ledger.best_fallback_chain(rest)
            rule = "override:provider"
            override_applied = True
            reasons.append(f"manual override to {override.provider.value}")
        else:
            chain = self.ledger.best_fallback_chain(config.preferred_order)
            reasons.append(f"{classification.profile.value} via {classification.rule}")

        models: Dict[ProviderIdentity, str] = {p: config.model_for(p) for p in chain}
        provider = chain[0]
        if override and override.model:
            models[provider] = override.model
            override_applied = True
            reasons.append(f"model override {override.model}")

        follow_up = self.is_follow_up(request)
        use_reasoning = classification.profile == RoutingProfile.DEEP_ANALYSIS and not follow_up
        if follow_up and classification.profile == RoutingProfile.DEEP_ANALYSIS:
            reasons.append("follow-up suppressed reasoning")
        if override and override.reasoning is not None:
            use_reasoning = override.reasoning
            override_applied = True
            reasons.append("reasoning forced on" if use_reasoning else "reasoning forced off")

        if rule != "override:provider":
            if provider != config.preferred_order[0]:
                reasons.append(f"{config.preferred_order[0].value} deprioritized by health")

        decision = RoutingDecision(
            provider=provider,
            model=models[provider],
            use_reasoning=use_reasoning,
            rationale="; ".join(reasons),
            profile=classification.profile,
            fallback_chain=tuple(chain),
            models=tuple((p, models[p]) for p in chain),
            rule=rule,
            override_applied=override_applied,
            params=self._params_for(config),
        )

        logger.info(
            "Routing decision",
            provider=decision.provider.value,
            model=decision.model,
            profile=decision.profile.value,
            rule=decision.rule,
            use_reasoning=decision.use_reasoning,
            fallback_chain=[p.value for p in decision.fallback_chain],
        )
        return decision
