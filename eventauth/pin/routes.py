from fastapi import APIRouter, Depends, Request, status
from eventauth.auth.dependencies import current_identity
from eventauth.common.http_errors import AuthHTTPException, failure_to_http
from eventauth.common.results import AuthErrorCode, is_failure
from eventauth.common.utils import success_response
from eventauth.container import ServiceContainer, get_services
from eventauth.events.repository import is_administrator, is_valid_event_id
from eventauth.pin.constants import PIN_SESSION_COOKIE, logger
from eventauth.pin.dependencies import require_event_access, require_pin_session
from eventauth.pin.models import EventAccess, PinVerifyIn
from eventauth.rate_limiting.utils import client_origin, client_user_agent

events_router = APIRouter()


def _event_not_found() -> AuthHTTPException:
    return AuthHTTPException(status.HTTP_404_NOT_FOUND, AuthErrorCode.EVENT_NOT_FOUND.value, "Event not found")


@events_router.post("/{event_id}/verify-pin")
async def verify_pin(event_id: str, payload: PinVerifyIn, request: Request,
                     services: ServiceContainer = Depends(get_services)):

    result = await services.pins.verify_pin(
        event_id,
        payload.pin,
        origin=client_origin(request, services.settings.TRUST_PROXY_HEADERS),
        user_agent=client_user_agent(request),
    )
    if is_failure(result):
        raise failure_to_http(result)

    response = success_response({"sessionId": result.session_id, "eventId": result.event_id,
                                 "expires_in": result.expires_in_seconds}, 200)
    response.set_cookie(PIN_SESSION_COOKIE, result.session_id, httponly=True, secure=not services.allow_test_bypass,
                        path="/", max_age=result.expires_in_seconds, samesite="Lax")
    return response


@events_router.get("/{event_id}")
async def get_event(event_id: str, access: EventAccess = Depends(require_event_access),
                    services: ServiceContainer = Depends(get_services)):

    event = await services.events.get_event(event_id) if is_valid_event_id(event_id) else None
    if event is None:
        raise _event_not_found()

    data = event.public_view()
    if access.identity and is_administrator(event, access.identity):
        data["pin"] = event.pin
        data["pin_generated_at"] = event.pin_generated_at.isoformat() if event.pin_generated_at else None
    return success_response({"event": data}, 200)


@events_router.delete("/{event_id}/pin-session")
async def end_pin_session(event_id: str, access: EventAccess = Depends(require_pin_session),
                          services: ServiceContainer = Depends(get_services)):

    await services.pins.invalidate_session(access.pin_session_id)
    logger.info("pin.session.ended", extra={"event_id": event_id})

    res = success_response({"message": "PIN session ended."}, 200)
    res.delete_cookie(key=PIN_SESSION_COOKIE, path="/")
    return res


@events_router.post("/{event_id}/regenerate-pin")
async def regenerate_pin(event_id: str, identity: str = Depends(current_identity),
                         services: ServiceContainer = Depends(get_services)):

    result = await services.pins.regenerate_pin(event_id, identity)
    if is_failure(result):
        raise failure_to_http(result)

    return success_response({
        "eventId": result.event_id,
        "pin": result.pin,
        "pin_generated_at": result.pin_generated_at.isoformat() if result.pin_generated_at else None,
    }, 200)
