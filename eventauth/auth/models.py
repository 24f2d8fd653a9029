from dataclasses import asdict, dataclass
from typing import Optional
from pydantic import BaseModel, Field


class OtpRequestIn(BaseModel):
    email: str = Field(..., examples=["participant@example.com"])


class OtpVerifyIn(BaseModel):
    email: str = Field(..., examples=["participant@example.com"])
    otp: str = Field(..., examples=["042917"])


@dataclass(frozen=True)
class OTPRecord:
    identity: str
    code: str
    issued_at_ms: int
    expires_at_ms: int

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "OTPRecord":
        return cls(
            identity=data["identity"],
            code=data["code"],
            issued_at_ms=int(data["issued_at_ms"]),
            expires_at_ms=int(data["expires_at_ms"]),
        )


@dataclass(frozen=True)
class CodeIssued:
    identity: str
    expires_in_seconds: int
    dev_code: Optional[str] = None   # dev/test with an unmailed code only

    ok = True


@dataclass(frozen=True)
class Credential:
    identity: str
    access_token: str
    expires_in_seconds: int
    token_type: str = "bearer"
    via_sentinel: bool = False

    ok = True


@dataclass(frozen=True)
class SuspensionStatus:
    identity: str
    suspended: bool
    failed_attempts: int
    suspended_at_ms: Optional[int] = None
    suspended_until_ms: Optional[int] = None   # None while suspended means until cleared
