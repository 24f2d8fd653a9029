import hashlib
import hmac
import re
import secrets
from typing import Optional
from eventauth.pin.constants import PIN_LENGTH

PIN_PATTERN = re.compile(rf"[0-9]{{{PIN_LENGTH}}}")


def is_valid_pin_format(pin: Optional[str]) -> bool:
    return isinstance(pin, str) and PIN_PATTERN.fullmatch(pin) is not None


def generate_pin() -> str:
    # 100000..999999, never a leading zero
    return str(secrets.randbelow(900000) + 100000)


def generate_session_id(nbytes: int = 32) -> str:
    return secrets.token_urlsafe(nbytes)


def client_signature(secret: str, origin: Optional[str], user_agent: Optional[str]) -> str:
    """Keyed digest of origin address + user agent binding a session to its client."""
    message = f"{origin or ''}|{user_agent or ''}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def constant_time_equals(expected: str, presented: str) -> bool:
    return hmac.compare_digest(expected.encode(), presented.encode())
