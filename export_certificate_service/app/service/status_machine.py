# Status transitions for export documents
import datetime
import logging
from typing import Optional

from export_certificate_service.app.models.document_status import (
    DocumentStatus,
    MUTABLE_STATUSES,
    COMPLETABLE_STATUSES,
    status_values,
)
from export_certificate_service.app.models.journey import Journey
from export_certificate_service.app.observability import tracer, dropped_writes_counter
from export_certificate_service.infrastructure.cache.draft_cache import (
    DraftCache,
    draft_headers_key,
    completed_headers_key,
)
from export_certificate_service.infrastructure.database.document_store import MongoDocumentStore

from .exceptions import InvalidStatusTransitionError
from .ownership import Owner, apply_owned_update, owner_filter

logger = logging.getLogger(__name__)


class StatusStateMachine:
    """
    Every transition is one conditional update: the filter pins the document
    number, the owner and the set of statuses the transition may start from.
    A caller that loses a race to the same target status matches nothing and
    still gets ``True`` back, never an exception. No transition leaves
    COMPLETE, VOID or BLOCKED except the administrative void of a COMPLETE
    document.
    """

    def __init__(self, journey: Journey, store: MongoDocumentStore, cache: DraftCache):
        self.journey = journey
        self.store = store
        self.cache = cache

    async def _already_in(self, owner: Owner, document_number: str, status: DocumentStatus) -> bool:
        document = await self.store.find_one(owner_filter(owner, documentNumber=document_number), {"status": 1})
        return bool(document) and document.get("status") == status.value

    async def set_status(self, owner: Owner, document_number: str, target: DocumentStatus) -> bool:
        target = DocumentStatus(target)
        if target == DocumentStatus.COMPLETE:
            raise InvalidStatusTransitionError(target.value, "completion must go through complete()")

        # Excluding the target itself makes a repeated transition a zero-match no-op.
        from_statuses = [s for s in MUTABLE_STATUSES if s != target]
        query = owner_filter(owner, documentNumber=document_number, status={"$in": status_values(from_statuses)})

        with tracer.start_as_current_span("status_machine.set_status") as span:
            span.set_attribute("document.number", document_number)
            span.set_attribute("document.target_status", target.value)

            matched, owner_ids = await apply_owned_update(
                self.store, query, {"$set": {"status": target.value}}, document_number
            )
            await self.cache.invalidate(
                owner, document_number, draft_headers_key(self.journey), co_owner_ids=owner_ids
            )

        if matched is None:
            dropped_writes_counter.add(1, {"operation": "set_status", "journey": self.journey.value})
            if await self._already_in(owner, document_number, target):
                logger.info(f"[UPDATE-STATUS][DOCUMENT-NUMBER][{document_number}][TARGET][{target.value}][ALREADY-SET]")
                return True
            logger.info(f"[UPDATE-STATUS][DOCUMENT-NUMBER][{document_number}][TARGET][{target.value}][NO-MATCH]")
            return False

        logger.info(f"[UPDATE-STATUS][DOCUMENT-NUMBER][{document_number}][TARGET][{target.value}][SUCCESS]")
        return True

    async def complete(self, owner: Owner, document_number: str, document_uri: str, created_by_email: str) -> bool:
        now = datetime.datetime.now(datetime.UTC)
        query = owner_filter(owner, documentNumber=document_number, status={"$in": status_values(COMPLETABLE_STATUSES)})
        update = {
            "$set": {
                "createdByEmail": created_by_email,
                "status": DocumentStatus.COMPLETE.value,
                "documentUri": document_uri,
                "createdAt": now,
            }
        }

        with tracer.start_as_current_span("status_machine.complete") as span:
            span.set_attribute("document.number", document_number)

            matched, owner_ids = await apply_owned_update(self.store, query, update, document_number)
            # The document now belongs to the completed bucket of this month
            await self.cache.invalidate(
                owner,
                document_number,
                draft_headers_key(self.journey),
                completed_headers_key(self.journey, now.month, now.year),
                co_owner_ids=owner_ids,
            )

        if matched is None:
            dropped_writes_counter.add(1, {"operation": "complete", "journey": self.journey.value})
            if await self._already_in(owner, document_number, DocumentStatus.COMPLETE):
                # The first completion's uri and email stand
                logger.info(f"[COMPLETE-DRAFT][DOCUMENT-NUMBER][{document_number}][ALREADY-COMPLETE]")
                return True
            logger.info(f"[COMPLETE-DRAFT][DOCUMENT-NUMBER][{document_number}][NO-MATCH]")
            return False

        logger.info(f"[COMPLETE-DRAFT][DOCUMENT-NUMBER][{document_number}][SUCCESS]")
        return True

    async def void(self, owner: Owner, document_number: str) -> bool:
        """Administrative void of a completed document."""
        query = owner_filter(owner, documentNumber=document_number, status=DocumentStatus.COMPLETE.value)
        document, owner_ids = await apply_owned_update(
            self.store, query, {"$set": {"status": DocumentStatus.VOID.value}}, document_number, {"createdAt": 1}
        )
        if document is None:
            dropped_writes_counter.add(1, {"operation": "void", "journey": self.journey.value})
            logger.info(f"[DOCUMENT-VOID][DOCUMENT-NUMBER][{document_number}][NO-MATCH]")
            return False

        keys = [document_number, draft_headers_key(self.journey)]
        created_at: Optional[datetime.datetime] = document.get("createdAt")
        if isinstance(created_at, datetime.datetime):
            keys.append(completed_headers_key(self.journey, created_at.month, created_at.year))
        await self.cache.invalidate(owner, *keys, co_owner_ids=owner_ids)

        logger.info(f"[DOCUMENT-VOID][DOCUMENT-NUMBER][{document_number}][SUCCESS]")
        return True
