from fastapi import APIRouter, Depends, Request
from eventauth.auth.constants import ACCESS_COOKIE_NAME, logger
from eventauth.auth.dependencies import current_identity
from eventauth.auth.models import OtpRequestIn, OtpVerifyIn
from eventauth.common.http_errors import failure_to_http
from eventauth.common.results import is_failure
from eventauth.common.utils import success_response
from eventauth.container import ServiceContainer, get_services
from eventauth.rate_limiting.utils import client_origin

auth_router = APIRouter()


@auth_router.post("/otp/request")
async def request_otp(request: Request, payload: OtpRequestIn,
                      services: ServiceContainer = Depends(get_services)):

    origin = client_origin(request, services.settings.TRUST_PROXY_HEADERS)
    result = await services.otp.request_code(payload.email, origin)
    if is_failure(result):
        raise failure_to_http(result)

    resp = {"success": True, "message": "OTP sent to your email", "expires_in": result.expires_in_seconds}
    if result.dev_code is not None:
        resp["otp"] = result.dev_code
    return success_response(resp, 200)


@auth_router.post("/otp/verify")
async def verify_otp(payload: OtpVerifyIn, services: ServiceContainer = Depends(get_services)):

    result = await services.otp.verify_code(payload.email, payload.otp)
    if is_failure(result):
        raise failure_to_http(result)

    response = success_response({
        "success": True,
        "credential": {
            "email": result.identity,
            "access_token": result.access_token,
            "token_type": result.token_type,
            "expires_in": result.expires_in_seconds,
        },
    }, 200)

    response.set_cookie(ACCESS_COOKIE_NAME, result.access_token, httponly=True, secure=not services.allow_test_bypass,
                        path="/", max_age=result.expires_in_seconds, samesite="Lax")
    return response


@auth_router.get("/me")
async def me(identity: str = Depends(current_identity)):
    return success_response({"email": identity}, 200)


@auth_router.post("/logout")
async def logout(identity: str = Depends(current_identity)):

    res = success_response({"message": "Logged out successfully."}, 200)
    res.delete_cookie(key=ACCESS_COOKIE_NAME, path="/")

    logger.info("logout.success", extra={"email": identity})
    return res
