import time
from typing import Callable, Optional
from eventauth.auth.constants import FAILED_ATTEMPTS_KEY_PREFIX, SUSPENSION_KEY_PREFIX, logger
from eventauth.auth.models import SuspensionStatus
from eventauth.cache.store import EphemeralStore
from eventauth.cache.utils import build_key


class SuspensionTracker:
    """
    Counts failed verifications per identity and locks the identity once
    `threshold` failures have accumulated.

        Normal --failure x (threshold-1)--> Normal
        Normal --failure x threshold--> Suspended
        Suspended --any gated attempt--> Suspended
        {Normal, Suspended} --success/clear--> Normal

    With `suspension_ttl_seconds=None` a suspension lasts until cleared.
    """

    def __init__(self, store: EphemeralStore, threshold: int = 5,
                 failure_window_seconds: Optional[int] = 900,
                 suspension_ttl_seconds: Optional[int] = None,
                 clock: Callable[[], float] = time.time):
        self.store = store
        self.threshold = max(1, int(threshold))
        self.failure_window_seconds = failure_window_seconds
        self.suspension_ttl_seconds = suspension_ttl_seconds
        self._clock = clock

    @staticmethod
    def failures_key(identity: str) -> str:
        return build_key(FAILED_ATTEMPTS_KEY_PREFIX, identity)

    @staticmethod
    def suspension_key(identity: str) -> str:
        return build_key(SUSPENSION_KEY_PREFIX, identity)

    async def record_failure(self, identity: str) -> int:
        """
        Count one failure. Reaching the threshold writes the suspension record
        in the same store operation as the increment, so a concurrent success
        either clears both or runs before the failure counts.
        """
        now_ms = int(self._clock() * 1000)
        until_ms = now_ms + self.suspension_ttl_seconds * 1000 if self.suspension_ttl_seconds else None
        attempts, suspended = await self.store.incr_and_flag(
            self.failures_key(identity),
            self.failure_window_seconds,
            self.threshold,
            self.suspension_key(identity),
            {
                "identity": identity,
                "suspended_at_ms": now_ms,
                "suspended_until_ms": until_ms,
                "reason": "failed_attempts_exceeded",
            },
            flag_ttl_seconds=self.suspension_ttl_seconds,
        )

        if suspended:
            logger.warning("suspension.suspended", extra={"email": identity, "attempts": attempts})
        else:
            logger.info("suspension.failure_recorded", extra={"email": identity, "attempts": attempts})
        return attempts

    async def record_success(self, identity: str):
        await self._reset(identity)

    async def clear(self, identity: str) -> bool:
        removed = await self._reset(identity)
        logger.info("suspension.cleared", extra={"email": identity, "removed": removed})
        return removed > 0

    async def _reset(self, identity: str) -> int:
        return await self.store.delete(self.suspension_key(identity), self.failures_key(identity))

    async def is_suspended(self, identity: str) -> bool:
        return await self.store.get(self.suspension_key(identity)) is not None

    async def get_failed_attempts(self, identity: str) -> int:
        value = await self.store.get(self.failures_key(identity))
        return int(value) if value is not None else 0

    async def status(self, identity: str) -> SuspensionStatus:
        record = await self.store.get(self.suspension_key(identity))
        attempts = await self.get_failed_attempts(identity)
        if record is None:
            return SuspensionStatus(identity=identity, suspended=False, failed_attempts=attempts)
        return SuspensionStatus(
            identity=identity,
            suspended=True,
            failed_attempts=attempts,
            suspended_at_ms=record.get("suspended_at_ms"),
            suspended_until_ms=record.get("suspended_until_ms"),
        )
