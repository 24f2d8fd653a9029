from dataclasses import dataclass
from enum import Enum
from typing import Optional


class AuthErrorCode(str, Enum):
    INVALID_EMAIL = "INVALID_EMAIL"
    INVALID_CODE = "INVALID_CODE"
    EXPIRED = "EXPIRED"
    NOT_FOUND = "NOT_FOUND"
    SUSPENDED = "SUSPENDED"
    RATE_LIMITED = "RATE_LIMITED"
    DELIVERY_FAILED = "DELIVERY_FAILED"
    INVALID_FORMAT = "INVALID_FORMAT"
    INVALID_PIN = "INVALID_PIN"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    PIN_NOT_CONFIGURED = "PIN_NOT_CONFIGURED"
    SESSION_INVALID = "SESSION_INVALID"
    FORBIDDEN = "FORBIDDEN"


@dataclass(frozen=True)
class AuthFailure:
    """An expected business-rule failure, returned instead of raised."""
    code: AuthErrorCode
    message: str
    retry_after: Optional[int] = None

    ok = False


def is_failure(result) -> bool:
    return isinstance(result, AuthFailure)
