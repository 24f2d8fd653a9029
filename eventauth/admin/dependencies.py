import hmac
from typing import Optional
from fastapi import Depends, Header, HTTPException, status
from eventauth.common.logging_setup import get_logger
from eventauth.container import ServiceContainer, get_services

logger = get_logger("eventauth.admin")


def require_admin_secret(admin_secret: Optional[str] = Header(None, alias="X-Admin-Secret"),
                         services: ServiceContainer = Depends(get_services)):
    """
    With ADMIN_SECRET unset the admin routes are open only in dev.
    Otherwise the X-Admin-Secret header must match it.
    """
    expected = services.admin.ADMIN_SECRET
    if not expected:
        if services.admin.ENV.lower() == "dev":
            return
        logger.warning("admin.secret_not_configured")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access is not configured")

    if not admin_secret or not hmac.compare_digest(admin_secret.encode(), expected.encode()):
        logger.warning("admin.secret_rejected")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid admin secret")
