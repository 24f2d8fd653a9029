from fastapi import APIRouter, Depends, HTTPException, status
from redis.exceptions import RedisError
from eventauth.common.logging_setup import get_logger
from eventauth.common.utils import success_response
from eventauth.container import ServiceContainer, get_services

logger = get_logger("eventauth.health")

home_router = APIRouter()


@home_router.get("/health")
async def health_check(services: ServiceContainer = Depends(get_services)):
    try:
        healthy = await services.store.ping()
    except (RedisError, OSError) as e:
        logger.error("health.store_unreachable", extra={"error": str(e)})
        healthy = False

    if not healthy:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Store connection error")
    return success_response({"status": "healthy", "store": type(services.store).__name__}, 200)
