import logging
from typing import Any, Dict, Optional

from redis.asyncio import Redis

from export_certificate_service.app.config import AppSettings

logger = logging.getLogger(__name__)


def get_redis_options(settings: AppSettings) -> Dict[str, Any]:
    options: Dict[str, Any] = {
        "host": settings.REDIS_HOST,
        "port": settings.REDIS_PORT,
    }

    if settings.REDIS_PASSWORD:
        options["password"] = settings.REDIS_PASSWORD

    if settings.REDIS_TLS_ENABLED:
        options["ssl"] = True

    return options


def create_redis_client(settings: AppSettings) -> Redis:
    options = get_redis_options(settings)
    logger.info(f"Attempt to initialize redis cache connection to {options['host']}:{options['port']}")
    client = Redis(**options)
    logger.info("Redis cache connection initialized")
    return client


async def close_redis_client(client: Optional[Redis]):
    if client:
        logger.info("Attempt to close redis cache connection")
        await client.aclose()
        logger.info("Redis cache connection is closed")
