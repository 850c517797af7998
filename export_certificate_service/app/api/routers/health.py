# API Router for Health Checks
import logging

from fastapi import APIRouter, Request

from export_certificate_service.app.config import settings

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/health", tags=["Monitoring"])
async def health_check(request: Request):
    mongodb_status = "connected"
    try:
        await request.app.state.db.command("ping")
    except Exception as e:
        logger.error(f"MongoDB health check ping failed: {e}")
        mongodb_status = "disconnected"

    redis_status = "connected"
    try:
        await request.app.state.redis.ping()
    except Exception as e:
        logger.error(f"Redis health check ping failed: {e}")
        redis_status = "disconnected"

    return {
        "status": "ok",
        "components": {"mongodb": mongodb_status, "redis": redis_status},
        "service_name": settings.SERVICE_NAME_API,
    }
