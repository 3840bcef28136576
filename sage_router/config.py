"""
Sage Router - Configuration

Environment-driven settings for the routing layer.

Every tunable has a default; invalid values fail at load time.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional


class RunMode(str, Enum):
    """Deployment mode."""

    LOCAL = "local"  # Stub backends allowed, text logs
    PROD = "prod"
    TEST = "test"    # Deterministic stub backends


def get_run_mode() -> RunMode:
    """
    Get the current run mode.

    MODE must be one of: local, prod/production, test.
    """
    mode = os.getenv("MODE", "prod").lower().strip()
    if mode in {"prod", "production"}:
        return RunMode.PROD
    if mode == "local":
        return RunMode.LOCAL
    if mode == "test":
        return RunMode.TEST
    raise ValueError("Invalid MODE. Use one of: local, prod, production, test")


def _is_truthy(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.lower().strip() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _env_float(name: str, default: float, minimum: float = 0.0) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


@dataclass
class RouterSettings:
    """Settings for the routing and resilience layer."""
    mode: RunMode = RunMode.PROD

    # Health ledger
    failure_threshold: int = 3

    # Fallback loop
    call_timeout_seconds: float = 60.0
    strict_override: bool = False
    fallback_backoff_seconds: float = 0.0

    # Reasoning pass
    reasoning_max_iterations: int = 3
    reasoning_convergence: float = 0.92
    reasoning_budget_seconds: float = 90.0

    # Follow-up detection
    follow_up_max_query_chars: int = 60
    follow_up_min_assistant_chars: int = 500
    follow_up_history_window: int = 4

    # Generation defaults
    default_temperature: float = 0.7
    default_max_tokens: int = 2000

    # Backends
    use_stub_adapters: bool = False
    provider_keys: Dict[str, Optional[str]] = field(default_factory=dict)

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"
    otlp_endpoint: Optional[str] = None
    otel_console_export: bool = False

    def __post_init__(self):
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if self.follow_up_history_window < 1:
            raise ValueError("follow_up_history_window must be >= 1")
        if not 0.0 < self.reasoning_convergence <= 1.0:
            raise ValueError("reasoning_convergence must be in (0, 1]")
        if self.call_timeout_seconds <= 0:
            raise ValueError("call_timeout_seconds must be > 0")


def get_provider_keys() -> Dict[str, Optional[str]]:
    """Provider API keys from the environment."""
    return {
        "openai": os.getenv("OPENAI_API_KEY"),
        "anthropic": os.getenv("ANTHROPIC_API_KEY"),
        "gemini": os.getenv("GOOGLE_API_KEY"),
    }


def load_settings() -> RouterSettings:
    """Build settings from the environment."""
    mode = get_run_mode()
    return RouterSettings(
        mode=mode,
        failure_threshold=_env_int("SAGE_FAILURE_THRESHOLD", 3, minimum=1),
        call_timeout_seconds=_env_float("SAGE_CALL_TIMEOUT_SECONDS", 60.0, minimum=0.001),
        strict_override=_is_truthy(os.getenv("SAGE_STRICT_OVERRIDE")),
        fallback_backoff_seconds=_env_float("SAGE_FALLBACK_BACKOFF_SECONDS", 0.0),
        reasoning_max_iterations=_env_int("SAGE_REASONING_MAX_ITERATIONS", 3),
        reasoning_convergence=_env_float("SAGE_REASONING_CONVERGENCE", 0.92),
        reasoning_budget_seconds=_env_float("SAGE_REASONING_BUDGET_SECONDS", 90.0),
        follow_up_max_query_chars=_env_int("SAGE_FOLLOW_UP_MAX_QUERY_CHARS", 60),
        follow_up_min_assistant_chars=_env_int("SAGE_FOLLOW_UP_MIN_ASSISTANT_CHARS", 500),
        follow_up_history_window=_env_int("SAGE_FOLLOW_UP_HISTORY_WINDOW", 4, minimum=1),
        default_temperature=_env_float("SAGE_DEFAULT_TEMPERATURE", 0.7),
        default_max_tokens=_env_int("SAGE_DEFAULT_MAX_TOKENS", 2000, minimum=1),
        use_stub_adapters=(
            mode == RunMode.TEST or _is_truthy(os.getenv("USE_STUB_ADAPTERS"))
        ),
        provider_keys=get_provider_keys(),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_format=os.getenv("LOG_FORMAT", "json").lower(),
        otlp_endpoint=os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT"),
        otel_console_export=_is_truthy(os.getenv("OTEL_CONSOLE_EXPORT")),
    )
