import redis.asyncio as redis
from eventauth.config.settings import Settings


def make_redis_client(settings: Settings) -> redis.Redis:
    return redis.Redis(
        host=settings.REDIS_HOST, port=settings.REDIS_PORT, db=settings.REDIS_DB,
        decode_responses=False)
