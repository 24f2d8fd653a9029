from fastapi import APIRouter, Depends, HTTPException, status
from eventauth.admin.dependencies import logger, require_admin_secret
from eventauth.auth.utils import normalize_email_address
from eventauth.common.utils import success_response
from eventauth.container import ServiceContainer, get_services
from eventauth.rate_limiting.constants import IDENTITY_SCOPE

admin_router = APIRouter(dependencies=[Depends(require_admin_secret)])


def _identity_or_400(email: str) -> str:
    identity = normalize_email_address(email)
    if identity is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid email address format")
    return identity


@admin_router.get("/suspensions/{email}")
async def suspension_status(email: str, services: ServiceContainer = Depends(get_services)):

    st = await services.suspensions.status(_identity_or_400(email))
    return success_response({
        "email": st.identity,
        "suspended": st.suspended,
        "failed_attempts": st.failed_attempts,
        "suspended_at_ms": st.suspended_at_ms,
        "suspended_until_ms": st.suspended_until_ms,
    }, 200)


@admin_router.delete("/suspensions/{email}")
async def clear_suspension(email: str, services: ServiceContainer = Depends(get_services)):

    identity = _identity_or_400(email)
    cleared = await services.suspensions.clear(identity)
    logger.info("admin.suspension_cleared", extra={"email": identity, "cleared": cleared})
    return success_response({"email": identity, "cleared": cleared}, 200)


@admin_router.delete("/rate-limits/{scope}/{key}")
async def reset_rate_limit(scope: str, key: str, services: ServiceContainer = Depends(get_services)):

    if scope == IDENTITY_SCOPE:
        key = _identity_or_400(key)
    try:
        removed = await services.rate_limiter.reset(key, scope)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info("admin.rate_limit_reset", extra={"scope": scope, "removed": removed})
    return success_response({"scope": scope, "key": key, "reset": removed}, 200)
