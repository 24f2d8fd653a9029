import math
import time
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple
from eventauth.cache.store import EphemeralStore
from eventauth.cache.utils import build_key
from eventauth.rate_limiting.constants import RATE_LIMIT_PREFIX
from eventauth.common.logging_setup import get_logger

logger = get_logger("eventauth.rate_limiting")


def retry_minutes(seconds: Optional[int]) -> int:
    return max(1, -(-(seconds or 0) // 60))


@dataclass(frozen=True)
class RateLimitPolicy:
    max_attempts: int
    window_seconds: int


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    scope: str
    limit: int
    count: int
    remaining: int
    retry_after: Optional[int] = None   # seconds, only set when rejected
    reset_ts: Optional[int] = None      # unix seconds


class RateLimiter:
    """
    Fixed-window counters keyed by (scope, key).

    Every check increments the window atomically. A rejected attempt is not
    rolled back, so hammering a limited key never restarts its window.
    """

    def __init__(self, store: EphemeralStore, policies: Dict[str, RateLimitPolicy]):
        self.store = store
        self.policies = dict(policies)

    def policy(self, scope: str) -> RateLimitPolicy:
        try:
            return self.policies[scope]
        except KeyError:
            raise ValueError(f"no rate limit policy configured for scope '{scope}'") from None

    @staticmethod
    def window_key(key: str, scope: str) -> str:
        return build_key(RATE_LIMIT_PREFIX, scope, key)

    async def check(self, key: str, scope: str) -> RateLimitDecision:
        policy = self.policy(scope)
        count, ttl_ms = await self.store.incr(self.window_key(key, scope), policy.window_seconds)

        now = int(time.time())
        remaining_window = math.ceil(ttl_ms / 1000) if ttl_ms > 0 else policy.window_seconds
        reset_ts = now + remaining_window
        allowed = count <= policy.max_attempts

        if not allowed:
            logger.warning("rate_limit.exceeded", extra={"scope": scope, "count": count,
                                                         "limit": policy.max_attempts})
            return RateLimitDecision(allowed=False, scope=scope, limit=policy.max_attempts, count=count,
                                     remaining=0, retry_after=remaining_window, reset_ts=reset_ts)

        return RateLimitDecision(allowed=True, scope=scope, limit=policy.max_attempts, count=count,
                                 remaining=max(0, policy.max_attempts - count), reset_ts=reset_ts)

    async def check_all(self, checks: Iterable[Tuple[str, str]]) -> RateLimitDecision:
        """
        Evaluate every (key, scope) pair; all of them must pass.
        Each axis is counted even when an earlier one already rejected.
        """
        decisions = [await self.check(key, scope) for key, scope in checks]
        if not decisions:
            raise ValueError("check_all needs at least one (key, scope) pair")

        rejected = [d for d in decisions if not d.allowed]
        if rejected:
            return max(rejected, key=lambda d: d.retry_after or 0)
        return min(decisions, key=lambda d: d.remaining)

    async def reset(self, key: str, scope: str) -> bool:
        self.policy(scope)
        removed = await self.store.delete(self.window_key(key, scope))
        if removed:
            logger.info("rate_limit.reset", extra={"scope": scope})
        return removed > 0

    async def current_count(self, key: str, scope: str) -> int:
        self.policy(scope)
        value = await self.store.get(self.window_key(key, scope))
        return int(value) if value is not None else 0
