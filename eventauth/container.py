import time
from dataclasses import dataclass
from typing import Callable, Optional
from fastapi import Request
from eventauth.auth.models import Credential
from eventauth.auth.services import OTPAuthenticator
from eventauth.auth.suspension import SuspensionTracker
from eventauth.auth.utils import create_access_token
from eventauth.cache._cache import make_redis_client
from eventauth.cache.store import EphemeralStore, MemoryStore, RedisStore
from eventauth.common.logging_setup import get_logger
from eventauth.config.admin_config import AdminSettings
from eventauth.config.settings import Settings
from eventauth.events.repository import EventRepository, FileEventRepository
from eventauth.notifications.email import EmailTransport, build_email_transport
from eventauth.pin.services import PINSessionManager
from eventauth.rate_limiting.constants import IDENTITY_SCOPE, ORIGIN_SCOPE, PIN_SCOPE
from eventauth.rate_limiting.limiter import RateLimiter, RateLimitPolicy

logger = get_logger("eventauth.container")


@dataclass
class ServiceContainer:
    settings: Settings
    admin: AdminSettings
    allow_test_bypass: bool
    store: EphemeralStore
    rate_limiter: RateLimiter
    suspensions: SuspensionTracker
    otp: OTPAuthenticator
    pins: PINSessionManager
    events: EventRepository
    transport: EmailTransport

    async def close(self):
        await self.store.close()


def build_store(settings: Settings) -> EphemeralStore:
    backend = settings.STORE_BACKEND.lower()
    if backend == "redis":
        return RedisStore(make_redis_client(settings), prefix=settings.STORE_KEY_PREFIX)
    if backend == "memory":
        return MemoryStore(prefix=settings.STORE_KEY_PREFIX)
    raise ValueError(f"unknown STORE_BACKEND '{settings.STORE_BACKEND}'")


def credential_minter(settings: Settings) -> Callable[[str], Credential]:
    def mint(identity: str) -> Credential:
        token = create_access_token(identity, settings.JWT_SECRET, settings.JWT_ALGO,
                                    settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        return Credential(identity=identity, access_token=token,
                          expires_in_seconds=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60)
    return mint


def build_container(settings: Settings, admin: AdminSettings, *,
                    store: Optional[EphemeralStore] = None,
                    transport: Optional[EmailTransport] = None,
                    events: Optional[EventRepository] = None,
                    clock: Callable[[], float] = time.time) -> ServiceContainer:
    """
    Wire every service once. Whether the dev/test bypasses apply is resolved
    here from ENV and handed to the components that depend on it.
    """
    allow_test_bypass = admin.allows_test_bypass
    store = store or build_store(settings)
    transport = transport or build_email_transport(settings, allow_test_bypass)
    events = events or FileEventRepository(settings.EVENTS_DATA_DIR)

    rate_limiter = RateLimiter(store, {
        IDENTITY_SCOPE: RateLimitPolicy(settings.OTP_IDENTITY_LIMIT, settings.OTP_WINDOW_SECONDS),
        ORIGIN_SCOPE: RateLimitPolicy(settings.OTP_ORIGIN_LIMIT, settings.OTP_WINDOW_SECONDS),
        PIN_SCOPE: RateLimitPolicy(settings.PIN_LIMIT, settings.PIN_WINDOW_SECONDS),
    })
    suspensions = SuspensionTracker(
        store,
        threshold=settings.SUSPENSION_THRESHOLD,
        failure_window_seconds=settings.FAILED_ATTEMPTS_WINDOW_SECONDS,
        suspension_ttl_seconds=settings.SUSPENSION_TTL_SECONDS,
        clock=clock,
    )
    otp = OTPAuthenticator(
        store=store,
        rate_limiter=rate_limiter,
        suspensions=suspensions,
        transport=transport,
        mint_credential=credential_minter(settings),
        allow_test_bypass=allow_test_bypass,
        otp_ttl_seconds=settings.OTP_TTL_SECONDS,
        otp_length=settings.OTP_LENGTH,
        sentinel_code=settings.OTP_SENTINEL_CODE,
        delivery_timeout=settings.EMAIL_TIMEOUT_SECONDS,
        clock=clock,
    )
    pins = PINSessionManager(
        store=store,
        rate_limiter=rate_limiter,
        events=events,
        session_ttl_seconds=settings.PIN_SESSION_TTL_SECONDS,
        fingerprint_binding=settings.PIN_FINGERPRINT_BINDING,
        fingerprint_secret=settings.FINGERPRINT_SECRET,
        clock=clock,
    )

    logger.info("container.built", extra={"store": type(store).__name__, "transport": type(transport).__name__,
                                           "allow_test_bypass": allow_test_bypass})
    return ServiceContainer(settings=settings, admin=admin, allow_test_bypass=allow_test_bypass, store=store,
                            rate_limiter=rate_limiter,
                            suspensions=suspensions, otp=otp, pins=pins, events=events, transport=transport)


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services
