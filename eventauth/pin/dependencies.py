from typing import Optional
from fastapi import Depends, Header, Request, status
from fastapi.params import Cookie
from eventauth.auth.dependencies import optional_identity
from eventauth.common.http_errors import AuthHTTPException
from eventauth.common.results import AuthErrorCode
from eventauth.container import ServiceContainer, get_services
from eventauth.pin.constants import PIN_SESSION_COOKIE, PIN_SESSION_HEADER, SESSION_INVALID_MESSAGE, logger
from eventauth.pin.models import EventAccess
from eventauth.rate_limiting.utils import client_origin, client_user_agent


def pin_session_id(session_header: Optional[str] = Header(None, alias=PIN_SESSION_HEADER),
                   session_cookie: Optional[str] = Cookie(None, alias=PIN_SESSION_COOKIE)) -> Optional[str]:
    return session_header or session_cookie


def _session_rejected(message: Optional[str] = None) -> AuthHTTPException:
    return AuthHTTPException(status.HTTP_401_UNAUTHORIZED, AuthErrorCode.SESSION_INVALID.value,
                             message or SESSION_INVALID_MESSAGE)


async def _check(request: Request, event_id: str, session_id: Optional[str], services: ServiceContainer):
    return await services.pins.check_pin_session(
        event_id,
        session_id,
        origin=client_origin(request, services.settings.TRUST_PROXY_HEADERS),
        user_agent=client_user_agent(request),
    )


async def require_pin_session(event_id: str, request: Request,
                              session_id: Optional[str] = Depends(pin_session_id),
                              services: ServiceContainer = Depends(get_services)) -> EventAccess:
    """Gate a route on a PIN session valid for the `event_id` path parameter."""
    if not session_id:
        raise _session_rejected("PIN verification required")

    check = await _check(request, event_id, session_id, services)
    if not check.valid:
        logger.info("pin.session.rejected", extra={"event_id": event_id})
        raise _session_rejected(check.message)
    return EventAccess(event_id=event_id, pin_session_id=session_id)


async def require_event_access(event_id: str, request: Request,
                               session_id: Optional[str] = Depends(pin_session_id),
                               identity: Optional[str] = Depends(optional_identity),
                               services: ServiceContainer = Depends(get_services)) -> EventAccess:
    """A valid PIN session for the event or an authenticated email."""
    if session_id:
        check = await _check(request, event_id, session_id, services)
        if check.valid:
            return EventAccess(event_id=event_id, pin_session_id=session_id, identity=identity)
        if identity is None:
            raise _session_rejected(check.message)

    if identity is None:
        raise _session_rejected("PIN verification or sign-in required")
    return EventAccess(event_id=event_id, identity=identity)
