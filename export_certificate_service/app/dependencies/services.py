from typing import Dict

from fastapi import HTTPException, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from export_certificate_service.app.config import AppSettings
from export_certificate_service.app.models.journey import Journey
from export_certificate_service.app.service.documents import DocumentService
from export_certificate_service.infrastructure.cache.draft_cache import CacheClient, DraftCache
from export_certificate_service.infrastructure.database.document_store import MongoDocumentStore
from export_certificate_service.infrastructure.numbering.document_number import DocumentNumberAuthority


def build_document_services(
    db: AsyncIOMotorDatabase,
    cache_client: CacheClient,
    settings: AppSettings,
) -> Dict[Journey, DocumentService]:
    """One DocumentService per journey, all sharing the same cache client."""
    cache = DraftCache(cache_client)
    services = {}
    for journey in Journey:
        store = MongoDocumentStore(db[journey.collection_name])
        authority = DocumentNumberAuthority(
            store,
            country=settings.DOCUMENT_NUMBER_COUNTRY,
            max_attempts=settings.DOCUMENT_NUMBER_MAX_ATTEMPTS,
        )
        services[journey] = DocumentService(
            journey,
            store,
            cache,
            authority,
            maximum_concurrent_drafts=settings.MAXIMUM_CONCURRENT_DRAFTS,
        )
    return services


def get_document_service(request: Request, journey: Journey) -> DocumentService:
    """
    FastAPI dependency provider for the DocumentService of a journey.
    Services are built at startup and kept on `request.app.state.document_services`.
    """
    services = getattr(request.app.state, "document_services", None)
    if not services:
        raise HTTPException(status_code=503, detail="Document services are not initialised")
    return services[journey]
