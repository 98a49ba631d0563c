"""
Click deduplication gate.

Caps clicks per (identity, resource) pair at ``max_clicks`` per fixed window
so reload storms and prefetch duplicates do not inflate counts, while the
common prefetch + navigation double-fire is still counted.

The gate only suppresses in hosted deployments. When the counting store is
unreachable it fails open: the redirect matters more than exact counts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from config import DeploymentContext
from shared.logging import get_logger

log = get_logger(__name__)

DEFAULT_WINDOW_SECONDS = 3600
DEFAULT_MAX_CLICKS = 2


class WindowCounter(Protocol):
    async def increment_and_check(
        self, key: str, window_seconds: int, cap: int
    ) -> bool: ...


@dataclass(frozen=True)
class DedupDecision:
    admitted: bool
    # True when the counting store failed and the gate admitted by default
    degraded: bool = False


class DedupGate:
    def __init__(
        self,
        counter: WindowCounter,
        deployment: DeploymentContext,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        max_clicks: int = DEFAULT_MAX_CLICKS,
        key_prefix: str = "recordClick",
    ) -> None:
        self._counter = counter
        self._deployment = deployment
        self.window_seconds = window_seconds
        self.max_clicks = max_clicks
        self._key_prefix = key_prefix

    def key(self, identity_hash: str, resource_id: str) -> str:
        return f"{self._key_prefix}:{identity_hash}:{resource_id}"

    async def admit(self, identity_hash: str, resource_id: str) -> DedupDecision:
        if self._deployment is not DeploymentContext.HOSTED:
            return DedupDecision(admitted=True)
        try:
            admitted = await self._counter.increment_and_check(
                self.key(identity_hash, resource_id),
                self.window_seconds,
                self.max_clicks,
            )
        except Exception as e:
            log.warning(
                "dedup_store_unavailable",
                resource_id=resource_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return DedupDecision(admitted=True, degraded=True)
        return DedupDecision(admitted=admitted)
