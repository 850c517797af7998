# Allocation of unique document numbers, e.g. GBR-2024-CC-3F9A0B12C
import datetime
import logging
import uuid
from typing import Optional

from export_certificate_service.app.service.exceptions import DocumentNumberAllocationError
from export_certificate_service.infrastructure.database.document_store import MongoDocumentStore

logger = logging.getLogger(__name__)

RANDOM_PART_LENGTH = 9


def generate_document_number(service_code: str, country: str = "GBR", year: Optional[int] = None) -> str:
    year = year or datetime.datetime.now(datetime.UTC).year
    random_part = uuid.uuid4().hex[:RANDOM_PART_LENGTH].upper()
    return f"{country}-{year}-{service_code}-{random_part}"


class DocumentNumberAuthority:
    """
    Hands out numbers that do not yet exist in the journey's collection. The
    random part makes collisions between concurrent callers negligible; the
    existence check guards against reuse of a persisted number.
    """

    def __init__(self, store: MongoDocumentStore, country: str = "GBR", max_attempts: int = 10):
        self.store = store
        self.country = country
        self.max_attempts = max_attempts

    async def allocate(self, service_code: str) -> str:
        for attempt in range(1, self.max_attempts + 1):
            document_number = generate_document_number(service_code, self.country)
            if not await self.store.exists({"documentNumber": document_number}):
                return document_number
            logger.warning(f"[DOCUMENT-NUMBER][DUPLICATE][{document_number}][ATTEMPT][{attempt}]")

        raise DocumentNumberAllocationError(service_code, self.max_attempts)
