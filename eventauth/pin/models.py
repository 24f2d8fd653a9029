from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field
from eventauth.common.results import AuthErrorCode


class PinVerifyIn(BaseModel):
    pin: str = Field(..., examples=["123456"])


@dataclass(frozen=True)
class PINSession:
    session_id: str
    event_id: str
    origin: str
    signature: Optional[str]
    epoch: int
    created_at_ms: int
    expires_at_ms: int

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "PINSession":
        return cls(
            session_id=data["session_id"],
            event_id=data["event_id"],
            origin=data.get("origin", ""),
            signature=data.get("signature"),
            epoch=int(data.get("epoch", 0)),
            created_at_ms=int(data["created_at_ms"]),
            expires_at_ms=int(data["expires_at_ms"]),
        )


@dataclass(frozen=True)
class PinSessionGrant:
    session_id: str
    event_id: str
    expires_in_seconds: int

    ok = True


@dataclass(frozen=True)
class PinSessionCheck:
    valid: bool
    event_id: Optional[str] = None
    error: Optional[AuthErrorCode] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class PinRegenerated:
    event_id: str
    pin: str
    pin_generated_at: Optional[datetime]

    ok = True


@dataclass(frozen=True)
class EventAccess:
    """Who is allowed in: a PIN session holder, an authenticated email, or both."""
    event_id: str
    pin_session_id: Optional[str] = None
    identity: Optional[str] = None
