from typing import Optional
from fastapi import Depends, Header, HTTPException, status
from fastapi.params import Cookie
from eventauth.auth.constants import ACCESS_COOKIE_NAME, logger
from eventauth.auth.utils import decode_token
from eventauth.container import ServiceContainer, get_services


def access_token(authorization: Optional[str] = Header(None),
                 access_cookie: Optional[str] = Cookie(None, alias=ACCESS_COOKIE_NAME)) -> Optional[str]:
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()
    return access_cookie


def optional_identity(token: Optional[str] = Depends(access_token),
                      services: ServiceContainer = Depends(get_services)) -> Optional[str]:
    if not token:
        return None
    claims = decode_token(token, services.settings.JWT_SECRET, services.settings.JWT_ALGO)
    if not claims or not claims.get("sub"):
        logger.warning("auth.token_invalid")
        return None
    return claims["sub"]


def current_identity(identity: Optional[str] = Depends(optional_identity)) -> str:
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid access token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity
