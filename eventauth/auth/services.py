import asyncio
from dataclasses import replace
import time
from typing import Callable, Optional, Union
from eventauth.auth.constants import INVALID_CODE_MESSAGE, OTP_KEY_PREFIX, SUSPENDED_MESSAGE, logger
from eventauth.auth.models import CodeIssued, Credential, OTPRecord
from eventauth.auth.suspension import SuspensionTracker
from eventauth.auth.utils import codes_match, generate_otp, normalize_email_address
from eventauth.cache.store import EphemeralStore
from eventauth.cache.utils import build_key
from eventauth.common.results import AuthErrorCode, AuthFailure
from eventauth.notifications.email import DeliveryResult, EmailTransport
from eventauth.rate_limiting.constants import IDENTITY_SCOPE, ORIGIN_SCOPE, UNKNOWN_ORIGIN
from eventauth.rate_limiting.limiter import RateLimiter, retry_minutes


class OTPAuthenticator:
    """
    Issues and verifies one-time codes for email identities.

    At most one code is live per identity: issuing a new one overwrites the
    previous record. A code verifies once; the record is removed on success.
    `allow_test_bypass` is fixed at construction. Only with it set is the
    sentinel code honoured, and the issued code echoed back when the
    transport did not actually mail it.
    """

    def __init__(self, *, store: EphemeralStore, rate_limiter: RateLimiter,
                 suspensions: SuspensionTracker, transport: EmailTransport,
                 mint_credential: Callable[[str], Credential], allow_test_bypass: bool,
                 otp_ttl_seconds: int = 600, otp_length: int = 6,
                 sentinel_code: Optional[str] = "123456", delivery_timeout: float = 10.0,
                 clock: Callable[[], float] = time.time):
        self.store = store
        self.rate_limiter = rate_limiter
        self.suspensions = suspensions
        self.transport = transport
        self.mint_credential = mint_credential
        self.allow_test_bypass = allow_test_bypass
        self.otp_ttl_seconds = otp_ttl_seconds
        self.otp_length = otp_length
        self.sentinel_code = sentinel_code
        self.delivery_timeout = delivery_timeout
        self._clock = clock

    @staticmethod
    def otp_key(identity: str) -> str:
        return build_key(OTP_KEY_PREFIX, identity)

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def sentinel_enabled(self) -> bool:
        return self.allow_test_bypass and bool(self.sentinel_code)

    def echoes_code(self) -> bool:
        return self.allow_test_bypass and not self.transport.sends_mail

    async def request_code(self, email: str, origin: Optional[str] = None) -> Union[CodeIssued, AuthFailure]:
        identity = normalize_email_address(email)
        if identity is None:
            return AuthFailure(AuthErrorCode.INVALID_EMAIL, "Invalid email address format")

        if await self.suspensions.is_suspended(identity):
            logger.warning("otp.request.suspended", extra={"email": identity})
            return AuthFailure(AuthErrorCode.SUSPENDED, SUSPENDED_MESSAGE)

        decision = await self.rate_limiter.check_all([
            (identity, IDENTITY_SCOPE),
            (origin or UNKNOWN_ORIGIN, ORIGIN_SCOPE),
        ])
        if not decision.allowed:
            logger.warning("otp.request.rate_limited", extra={"email": identity, "scope": decision.scope})
            return AuthFailure(
                AuthErrorCode.RATE_LIMITED,
                f"Rate limit exceeded. Please try again in {retry_minutes(decision.retry_after)} minute(s).",
                retry_after=decision.retry_after,
            )

        code = generate_otp(self.otp_length)
        issued_at_ms = self._now_ms()
        record = OTPRecord(
            identity=identity,
            code=code,
            issued_at_ms=issued_at_ms,
            expires_at_ms=issued_at_ms + self.otp_ttl_seconds * 1000,
        )
        # overwrite: any earlier code for this identity stops verifying here
        await self.store.set(self.otp_key(identity), record.to_dict(), ttl_seconds=self.otp_ttl_seconds)

        delivery = await self._deliver(identity, code)
        if not delivery.success:
            # the stored record stays; the next request overwrites it
            logger.error("otp.request.delivery_failed", extra={"email": identity, "error": delivery.error})
            return AuthFailure(AuthErrorCode.DELIVERY_FAILED, "Failed to send the code. Please try again later.")

        logger.info("otp.request.issued", extra={"email": identity})
        return CodeIssued(
            identity=identity,
            expires_in_seconds=self.otp_ttl_seconds,
            dev_code=code if self.echoes_code() else None,
        )

    async def _deliver(self, identity: str, code: str) -> DeliveryResult:
        try:
            return await asyncio.wait_for(
                self.transport.send_otp(identity, code, self.otp_ttl_seconds),
                timeout=self.delivery_timeout,
            )
        except asyncio.TimeoutError:
            return DeliveryResult(success=False, error="delivery timed out")

    async def verify_code(self, email: str, submitted_code: Optional[str]) -> Union[Credential, AuthFailure]:
        identity = normalize_email_address(email)
        if identity is None:
            return AuthFailure(AuthErrorCode.INVALID_EMAIL, "Invalid email address format")

        if await self.suspensions.is_suspended(identity):
            logger.warning("otp.verify.suspended", extra={"email": identity})
            return AuthFailure(AuthErrorCode.SUSPENDED, SUSPENDED_MESSAGE)

        submitted = (submitted_code or "").strip()

        if self.sentinel_enabled() and codes_match(self.sentinel_code, submitted):
            await self.suspensions.record_success(identity)
            logger.info("otp.verify.sentinel_accepted", extra={"email": identity})
            return self._issue_credential(identity, via_sentinel=True)

        key = self.otp_key(identity)
        raw = await self.store.get(key)
        if raw is None:
            return await self._fail(identity, AuthErrorCode.NOT_FOUND)

        record = OTPRecord.from_dict(raw)
        if self._now_ms() >= record.expires_at_ms:
            await self.store.compare_and_delete(key, raw)
            return await self._fail(identity, AuthErrorCode.EXPIRED)

        if not codes_match(record.code, submitted):
            return await self._fail(identity, AuthErrorCode.INVALID_CODE)

        # single use: only the caller that removes this exact record wins
        if not await self.store.compare_and_delete(key, raw):
            return await self._fail(identity, AuthErrorCode.NOT_FOUND)

        await self.suspensions.record_success(identity)
        logger.info("otp.verify.success", extra={"email": identity})
        return self._issue_credential(identity)

    async def _fail(self, identity: str, code: AuthErrorCode) -> AuthFailure:
        attempts = await self.suspensions.record_failure(identity)
        logger.warning("otp.verify.failed", extra={"email": identity, "reason": code.value, "attempts": attempts})
        if attempts >= self.suspensions.threshold:
            return AuthFailure(AuthErrorCode.SUSPENDED, SUSPENDED_MESSAGE)
        return AuthFailure(code, INVALID_CODE_MESSAGE)

    def _issue_credential(self, identity: str, via_sentinel: bool = False) -> Credential:
        credential = self.mint_credential(identity)
        if via_sentinel:
            return replace(credential, via_sentinel=True)
        return credential

    async def invalidate_code(self, email: str) -> bool:
        identity = normalize_email_address(email)
        if identity is None:
            return False
        return await self.store.delete(self.otp_key(identity)) > 0
