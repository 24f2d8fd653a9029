from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from eventauth.api import cur_version
from eventauth.api.routers import admin_routers, public_routers
from eventauth.common.custom_exceptions import register_all_exceptions
from eventauth.common.logging_setup import setup_logging, stop_logging
from eventauth.config.admin_config import AdminSettings, admin_config
from eventauth.config.settings import Settings, config_settings
from eventauth.container import ServiceContainer, build_container
from eventauth.middlewares.request_id_middleware import RequestIdMiddleware


def create_app(container: Optional[ServiceContainer] = None, settings: Optional[Settings] = None,
               admin: Optional[AdminSettings] = None):
    settings = settings or config_settings
    admin = admin or admin_config

    @asynccontextmanager
    async def app_lifespan(app: FastAPI):
        setup_logging()
        app.state.services = container or build_container(settings, admin)
        try:
            yield
        finally:
            await app.state.services.close()
            stop_logging()

    app = FastAPI(
        title="EventAuth",
        version=cur_version,
        lifespan=app_lifespan)

    app.include_router(public_routers)

    if admin.ENABLE_ADMIN:
        app.include_router(admin_routers)      # mounts /api/v1/admin

    app.add_middleware(RequestIdMiddleware)
    register_all_exceptions(app)

    return app


app = create_app()
