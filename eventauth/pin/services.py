import time
from typing import Callable, Optional, Union

from eventauth.cache.store import EphemeralStore
from eventauth.cache.utils import build_key
from eventauth.common.results import AuthErrorCode, AuthFailure
from eventauth.events.repository import EventRepository, is_administrator, is_valid_event_id
from eventauth.pin.constants import PIN_EPOCH_KEY_PREFIX, PIN_SESSION_KEY_PREFIX, SESSION_INVALID_MESSAGE, logger
from eventauth.pin.models import PINSession, PinRegenerated, PinSessionCheck, PinSessionGrant
from eventauth.pin.utils import (client_signature, constant_time_equals, generate_pin, generate_session_id,
                                 is_valid_pin_format)
from eventauth.rate_limiting.constants import PIN_SCOPE, UNKNOWN_ORIGIN
from eventauth.rate_limiting.limiter import RateLimiter, retry_minutes


class PINSessionManager:
    """
    Shared-PIN access to a single event.

    A verified PIN yields an opaque session id valid only for that event.
    With fingerprint binding on, the session also carries a signature of the
    creating client's origin address and user agent. Regenerating an event's
    PIN bumps the event epoch, which retires every session issued before it.
    """

    def __init__(self, *, store: EphemeralStore, rate_limiter: RateLimiter, events: EventRepository,
                 session_ttl_seconds: int = 8 * 3600, fingerprint_binding: bool = True,
                 fingerprint_secret: str = "", clock: Callable[[], float] = time.time):
        self.store = store
        self.rate_limiter = rate_limiter
        self.events = events
        self.session_ttl_seconds = session_ttl_seconds
        self.fingerprint_binding = fingerprint_binding
        self.fingerprint_secret = fingerprint_secret
        self._clock = clock

    @staticmethod
    def session_key(session_id: str) -> str:
        return build_key(PIN_SESSION_KEY_PREFIX, session_id)

    @staticmethod
    def epoch_key(event_id: str) -> str:
        return build_key(PIN_EPOCH_KEY_PREFIX, event_id)

    @staticmethod
    def attempts_key(event_id: str, origin: Optional[str]) -> str:
        return build_key(event_id, origin or UNKNOWN_ORIGIN)

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _signature(self, origin: Optional[str], user_agent: Optional[str]) -> str:
        return client_signature(self.fingerprint_secret, origin, user_agent)

    async def _current_epoch(self, event_id: str) -> int:
        value = await self.store.get(self.epoch_key(event_id))
        return int(value) if value is not None else 0

    async def verify_pin(self, event_id: str, pin: Optional[str], origin: Optional[str],
                         user_agent: Optional[str] = None) -> Union[PinSessionGrant, AuthFailure]:
        if not is_valid_pin_format(pin):
            return AuthFailure(AuthErrorCode.INVALID_FORMAT, "PIN must be exactly 6 digits")

        decision = await self.rate_limiter.check(self.attempts_key(event_id, origin), PIN_SCOPE)
        if not decision.allowed:
            logger.warning("pin.verify.rate_limited", extra={"event_id": event_id, "origin": origin})
            return AuthFailure(
                AuthErrorCode.RATE_LIMITED,
                f"Too many attempts for this event. Please try again in {retry_minutes(decision.retry_after)} minute(s).",
                retry_after=decision.retry_after,
            )

        # read before the PIN: a regeneration landing after this must void the session
        epoch = await self._current_epoch(event_id)
        event = await self.events.get_event(event_id) if is_valid_event_id(event_id) else None
        if event is None:
            return AuthFailure(AuthErrorCode.EVENT_NOT_FOUND, "Event not found")

        if not event.pin:
            logger.warning("pin.verify.not_configured", extra={"event_id": event_id})
            return AuthFailure(
                AuthErrorCode.PIN_NOT_CONFIGURED,
                "This event does not have a PIN configured. Please contact the event administrator.",
            )

        if not constant_time_equals(event.pin, pin):
            logger.warning("pin.verify.mismatch", extra={"event_id": event_id, "origin": origin})
            return AuthFailure(AuthErrorCode.INVALID_PIN, "Invalid PIN. Please check the PIN and try again.")

        grant = await self.create_session(event_id, origin, user_agent, epoch=epoch)
        logger.info("pin.verify.success", extra={"event_id": event_id, "origin": origin})
        return grant

    async def create_session(self, event_id: str, origin: Optional[str],
                             user_agent: Optional[str] = None, epoch: Optional[int] = None) -> PinSessionGrant:
        if epoch is None:
            epoch = await self._current_epoch(event_id)
        created_at_ms = self._now_ms()
        session = PINSession(
            session_id=generate_session_id(),
            event_id=event_id,
            origin=origin or UNKNOWN_ORIGIN,
            signature=self._signature(origin, user_agent) if self.fingerprint_binding else None,
            epoch=epoch,
            created_at_ms=created_at_ms,
            expires_at_ms=created_at_ms + self.session_ttl_seconds * 1000,
        )
        await self.store.set(self.session_key(session.session_id), session.to_dict(),
                             ttl_seconds=self.session_ttl_seconds)
        return PinSessionGrant(session_id=session.session_id, event_id=event_id,
                               expires_in_seconds=self.session_ttl_seconds)

    async def check_pin_session(self, event_id: str, session_id: Optional[str],
                                origin: Optional[str] = None,
                                user_agent: Optional[str] = None) -> PinSessionCheck:
        if not event_id or not session_id:
            return self._invalid(event_id)

        raw = await self.store.get(self.session_key(session_id))
        if raw is None:
            return self._invalid(event_id)

        session = PINSession.from_dict(raw)
        if self._now_ms() >= session.expires_at_ms:
            await self.store.delete(self.session_key(session_id))
            return self._invalid(event_id)

        if session.event_id != event_id:
            logger.warning("pin.session.event_mismatch", extra={"event_id": event_id})
            return self._invalid(event_id)

        if session.epoch != await self._current_epoch(event_id):
            await self.store.delete(self.session_key(session_id))
            return self._invalid(event_id)

        fingerprint_presented = origin is not None or user_agent is not None
        if self.fingerprint_binding and fingerprint_presented and session.signature:
            if not constant_time_equals(session.signature, self._signature(origin, user_agent)):
                logger.warning("pin.session.fingerprint_mismatch", extra={"event_id": event_id, "origin": origin})
                return self._invalid(event_id)

        return PinSessionCheck(valid=True, event_id=event_id)

    @staticmethod
    def _invalid(event_id: Optional[str]) -> PinSessionCheck:
        return PinSessionCheck(valid=False, event_id=event_id, error=AuthErrorCode.SESSION_INVALID,
                               message=SESSION_INVALID_MESSAGE)

    async def invalidate_session(self, session_id: str) -> bool:
        return await self.store.delete(self.session_key(session_id)) > 0

    async def invalidate_event_sessions(self, event_id: str) -> int:
        epoch, _ = await self.store.incr(self.epoch_key(event_id))
        logger.info("pin.sessions.invalidated", extra={"event_id": event_id, "epoch": epoch})
        return epoch

    async def regenerate_pin(self, event_id: str, admin_email: str) -> Union[PinRegenerated, AuthFailure]:
        event = await self.events.get_event(event_id) if is_valid_event_id(event_id) else None
        if event is None:
            return AuthFailure(AuthErrorCode.EVENT_NOT_FOUND, "Event not found")

        if not is_administrator(event, admin_email):
            logger.warning("pin.regenerate.forbidden", extra={"event_id": event_id, "email": admin_email})
            return AuthFailure(AuthErrorCode.FORBIDDEN, "Only the event administrator can regenerate PINs")

        updated = await self.events.update_pin(event_id, generate_pin())
        if updated is None:
            return AuthFailure(AuthErrorCode.EVENT_NOT_FOUND, "Event not found")

        await self.invalidate_event_sessions(event_id)
        logger.info("pin.regenerate.success", extra={"event_id": event_id, "email": admin_email})
        return PinRegenerated(event_id=event_id, pin=updated.pin, pin_generated_at=updated.pin_generated_at)
