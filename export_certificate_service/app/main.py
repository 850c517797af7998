# FastAPI Application Entry Point: owns the lifecycle of the store and cache clients
from fastapi import FastAPI

from export_certificate_service.app.config import settings
from export_certificate_service.app.observability import setup_opentelemetry, logger

# Initialize OpenTelemetry
setup_opentelemetry(service_name=settings.SERVICE_NAME_API)

# Import instrumentors after OTel SDK is initialized
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.pymongo import PymongoInstrumentor

from export_certificate_service.infrastructure.database.connection import (
    connect_to_mongo,
    close_mongo_connection,
    get_database,
)
from export_certificate_service.infrastructure.cache.connection import create_redis_client, close_redis_client
from export_certificate_service.app.dependencies.services import build_document_services
from export_certificate_service.app.api.routers import health as health_router

app = FastAPI(
    title="Export Certificate Service",
    description="Document lifecycle and draft cache engine for export certificates.",
    version="0.1.0"
)


@app.on_event("startup")
async def startup_event():
    logger.info("FastAPI application startup...")
    try:
        PymongoInstrumentor().instrument()
        app.state.mongo_client = await connect_to_mongo(settings)
        app.state.db = get_database(app.state.mongo_client, settings)

        app.state.redis = create_redis_client(settings)

        app.state.document_services = build_document_services(app.state.db, app.state.redis, settings)
        logger.info(f"Document services initialised for journeys: {[j.value for j in app.state.document_services]}")
    except Exception as e:
        logger.error(f"Failed during startup: {e}", exc_info=True)
        raise


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("FastAPI application shutdown...")

    await close_redis_client(getattr(app.state, "redis", None))
    close_mongo_connection(getattr(app.state, "mongo_client", None))


FastAPIInstrumentor.instrument_app(app)
logger.info("FastAPI instrumentation complete.")

app.include_router(health_router.router)

logger.info("API routers included. Application setup complete.")

# To run (with an ASGI server such as uvicorn): uvicorn export_certificate_service.app.main:app --port 8000
