import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional
from email_validator import EmailNotValidError, validate_email
from jose import JWTError, jwt


def normalize_email_address(email: Optional[str]) -> Optional[str]:
    """
    Trimmed, lowercased email or None when the syntax is invalid.
    The normalized form is the identity used for every store key.
    """
    if not email or not isinstance(email, str):
        return None
    candidate = email.strip()
    if not candidate:
        return None
    try:
        v = validate_email(candidate, check_deliverability=False)
    except EmailNotValidError:
        return None
    return v.normalized.lower()


def generate_otp(length: int = 6) -> str:
    # uniform over 0..10**length-1, zero padded
    return f"{secrets.randbelow(10 ** length):0{length}d}"


def codes_match(stored: str, submitted: str) -> bool:
    """Exact string comparison; "012345" and "12345" never match."""
    return hmac.compare_digest(stored.encode(), submitted.encode())


def create_access_token(identity: str, secret: str, algorithm: str, expires_minutes: int) -> str:
    now = datetime.now(timezone.utc)
    expiry = now + timedelta(minutes=expires_minutes)

    payload = {
        "sub": identity,
        "iat": int(now.timestamp()),
        "exp": int(expiry.timestamp()),
        "jti": secrets.token_hex(16),
    }
    return jwt.encode(claims=payload, key=secret, algorithm=algorithm)


def decode_token(token: str, secret: str, algorithm: str) -> Optional[dict]:
    """To verify the signature, expiration and claims of a token"""
    try:
        return jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError:
        return None
