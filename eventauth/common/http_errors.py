from typing import Dict, Optional
from fastapi import status
from starlette.exceptions import HTTPException
from eventauth.common.results import AuthErrorCode, AuthFailure

FAILURE_STATUS: Dict[AuthErrorCode, int] = {
    AuthErrorCode.INVALID_EMAIL: status.HTTP_400_BAD_REQUEST,
    AuthErrorCode.INVALID_CODE: status.HTTP_400_BAD_REQUEST,
    AuthErrorCode.EXPIRED: status.HTTP_400_BAD_REQUEST,
    AuthErrorCode.NOT_FOUND: status.HTTP_400_BAD_REQUEST,
    AuthErrorCode.INVALID_FORMAT: status.HTTP_400_BAD_REQUEST,
    AuthErrorCode.PIN_NOT_CONFIGURED: status.HTTP_400_BAD_REQUEST,
    AuthErrorCode.INVALID_PIN: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.SESSION_INVALID: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.SUSPENDED: status.HTTP_403_FORBIDDEN,
    AuthErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    AuthErrorCode.EVENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AuthErrorCode.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    AuthErrorCode.DELIVERY_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class AuthHTTPException(HTTPException):
    """HTTPException whose envelope code is the business error code."""

    def __init__(self, status_code: int, error_code: str, message: str,
                 headers: Optional[Dict[str, str]] = None):
        super().__init__(status_code=status_code, detail={"message": message}, headers=headers)
        self.error_code = error_code


def failure_to_http(failure: AuthFailure) -> AuthHTTPException:
    status_code = FAILURE_STATUS.get(failure.code, status.HTTP_400_BAD_REQUEST)
    headers = None
    if failure.code == AuthErrorCode.RATE_LIMITED and failure.retry_after:
        headers = {"Retry-After": str(failure.retry_after)}
    return AuthHTTPException(status_code, failure.code.value, failure.message, headers=headers)
