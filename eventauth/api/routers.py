from fastapi import APIRouter
from eventauth.admin.routes import admin_router
from eventauth.api import version_prefix
from eventauth.auth.routes import auth_router
from eventauth.common.routes import home_router
from eventauth.pin.routes import events_router


public_routers = APIRouter(prefix=version_prefix)

public_routers.include_router(auth_router, prefix="/auth", tags=["auth"])
public_routers.include_router(events_router, prefix="/events", tags=["events"])
public_routers.include_router(home_router, tags=["home"])

#--------------------------------------------------------------------------------------------------------

admin_routers = APIRouter(prefix=f"{version_prefix}/admin")

admin_routers.include_router(admin_router, tags=["admin"])
