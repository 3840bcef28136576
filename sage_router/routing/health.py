"""
Sage Router - Provider Health Ledger

Process-wide record of per-provider reliability:
- Consecutive failure streaks
- Most recent error and success
- Derived healthy/degraded/unhealthy status

Status derivation:
- failures == 0                 -> healthy
- 1 <= failures < threshold     -> degraded
- failures >= threshold         -> unhealthy

One success resets the streak, so a provider recovers immediately.
"""

import time
from threading import Lock
from typing import Callable, Dict, Iterable, List, Optional

from ..core.models import (
    HealthStatus,
    ProviderError,
    ProviderHealthState,
    ProviderIdentity,
)

HealthListener = Callable[[ProviderIdentity, HealthStatus], None]


class ProviderTracker:
    """
    Tracks health for a single provider.

    All mutation happens under this tracker's own lock; no lock is ever
    held across providers.
    """

    def __init__(self, provider: ProviderIdentity):
        self.provider = provider
        self._lock = Lock()

        self._consecutive_failures = 0
        self._total_successes = 0
        self._total_failures = 0

        self._last_error: Optional[ProviderError] = None
        self._last_success_at: Optional[float] = None
        self._last_latency_ms: Optional[int] = None

    def record_success(self, timestamp: float, latency_ms: Optional[int] = None):
        with self._lock:
            self._consecutive_failures = 0
            self._total_successes += 1
            self._last_success_at = timestamp
            if latency_ms is not None:
                self._last_latency_ms = latency_ms

    def record_failure(self, message: str, timestamp: float):
        with self._lock:
            self._consecutive_failures += 1
            self._total_failures += 1
            self._last_error = ProviderError(message=message, timestamp=timestamp)

    def status(self, threshold: int) -> HealthStatus:
        with self._lock:
            return _derive_status(self._consecutive_failures, threshold)

    def last_failure_at(self) -> Optional[float]:
        with self._lock:
            return self._last_error.timestamp if self._last_error else None

    def snapshot(self, threshold: int) -> ProviderHealthState:
        with self._lock:
            return ProviderHealthState(
                provider=self.provider,
                status=_derive_status(self._consecutive_failures, threshold),
                consecutive_failures=self._consecutive_failures,
                last_error=self._last_error,
                last_success_at=self._last_success_at,
                total_successes=self._total_successes,
                total_failures=self._total_failures,
                last_latency_ms=self._last_latency_ms,
            )


def _derive_status(consecutive_failures: int, threshold: int) -> HealthStatus:
    if consecutive_failures == 0:
        return HealthStatus.HEALTHY
    if consecutive_failures < threshold:
        return HealthStatus.DEGRADED
    return HealthStatus.UNHEALTHY


class ProviderHealthLedger:
    """
    Registry of provider trackers.

    Never performs I/O and never raises for a known or unknown provider;
    unknown providers are tracked lazily and start healthy.

    Usage:
        ledger = ProviderHealthLedger(failure_threshold=3)
        ledger.record_failure(ProviderIdentity.OPENAI, "timeout")
        chain = ledger.best_fallback_chain([ProviderIdentity.OPENAI, ProviderIdentity.GEMINI])
    """

    def __init__(
        self,
        failure_threshold: int = 3,
        listener: Optional[HealthListener] = None,
    ):
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        self.failure_threshold = failure_threshold
        self._listener = listener
        self._trackers: Dict[ProviderIdentity, ProviderTracker] = {}
        # Guards lazy tracker creation only
        self._registry_lock = Lock()

    def _tracker(self, provider: ProviderIdentity) -> ProviderTracker:
        tracker = self._trackers.get(provider)
        if tracker is not None:
            return tracker
        with self._registry_lock:
            if provider not in self._trackers:
                self._trackers[provider] = ProviderTracker(provider)
            return self._trackers[provider]

    def _notify(self, provider: ProviderIdentity):
        if self._listener is not None:
            self._listener(provider, self.status(provider))

    def record_success(
        self,
        provider: ProviderIdentity,
        timestamp: Optional[float] = None,
        latency_ms: Optional[int] = None,
    ):
        """Reset the failure streak and stamp the success time."""
        self._tracker(provider).record_success(
            timestamp if timestamp is not None else time.time(),
            latency_ms,
        )
        self._notify(provider)

    def record_failure(
        self,
        provider: ProviderIdentity,
        message: str,
        timestamp: Optional[float] = None,
    ):
        """Extend the failure streak and keep the error message."""
        self._tracker(provider).record_failure(
            message,
            timestamp if timestamp is not None else time.time(),
        )
        self._notify(provider)

    def status(self, provider: ProviderIdentity) -> HealthStatus:
        return self._tracker(provider).status(self.failure_threshold)

    def best_fallback_chain(
        self,
        preferred_order: Iterable[ProviderIdentity],
    ) -> List[ProviderIdentity]:
        """
        Reorder candidates healthy -> degraded -> unhealthy.

        The sort is stable, so providers with equal status keep their
        preferred order. When every candidate is unhealthy the one whose
        last failure is oldest moves to the front.
        """
        candidates: List[ProviderIdentity] = []
        for provider in preferred_order:
            if provider not in candidates:
                candidates.append(provider)
        if not candidates:
            return []

        statuses = {p: self.status(p) for p in candidates}
        chain = sorted(candidates, key=lambda p: statuses[p].rank)

        if all(s == HealthStatus.UNHEALTHY for s in statuses.values()):
            failed_at = {p: self._tracker(p).last_failure_at() or 0.0 for p in chain}
            # min() returns the first of equal values, preserving order on ties
            oldest = min(chain, key=lambda p: failed_at[p])
            chain.remove(oldest)
            chain.insert(0, oldest)

        return chain

    def snapshot(self, provider: ProviderIdentity) -> ProviderHealthState:
        return self._tracker(provider).snapshot(self.failure_threshold)

    def snapshot_all(
        self,
        providers: Optional[Iterable[ProviderIdentity]] = None,
    ) -> Dict[ProviderIdentity, ProviderHealthState]:
        """Snapshots for the given providers, or every tracked provider."""
        if providers is None:
            with self._registry_lock:
                providers = list(self._trackers.keys())
        return {p: self.snapshot(p) for p in providers}

    def reset(self):
        """Forget all history; every provider is healthy again."""
        with self._registry_lock:
            providers = list(self._trackers.keys())
            self._trackers = {}
        for provider in providers:
            self._notify(provider)
