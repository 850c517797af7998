# Partial updates against documents that are still drafts
import logging
from typing import Any, Dict, List, Optional

from export_certificate_service.app.models.document_status import MUTABLE_STATUSES, status_values
from export_certificate_service.app.models.journey import Journey, LandingsEntryOption
from export_certificate_service.app.observability import tracer, dropped_writes_counter
from export_certificate_service.infrastructure.cache.draft_cache import DraftCache, draft_headers_key
from export_certificate_service.infrastructure.database.document_store import MongoDocumentStore

from .ownership import Owner, apply_owned_update, owner_filter
from .updates import DocumentUpdate, FieldPaths

logger = logging.getLogger(__name__)


class DraftMutationEngine:
    """
    Applies a DocumentUpdate to one document, provided the caller owns it and
    it is still in a mutable status. Anything else matches zero documents and
    the edit is dropped without an error.
    """

    def __init__(self, journey: Journey, store: MongoDocumentStore, cache: DraftCache):
        self.journey = journey
        self.store = store
        self.cache = cache

    async def patch(self, owner: Owner, document_number: str, update: DocumentUpdate) -> bool:
        if update.is_empty():
            logger.debug(f"[UPSERT-DRAFT-DATA][DOCUMENT-NUMBER][{document_number}][EMPTY-UPDATE]")
            return False

        mongo_update = update.to_mongo()
        query = owner_filter(owner, documentNumber=document_number, status={"$in": status_values(MUTABLE_STATUSES)})
        logger.debug(f"[UPSERT-DRAFT-DATA][CONTACT-ID][{owner.contact_id}][DOCUMENT-NUMBER][{document_number}][UPDATE][{mongo_update}]")

        with tracer.start_as_current_span("mutation_engine.patch") as span:
            span.set_attribute("document.number", document_number)
            span.set_attribute("document.update_paths", ",".join(op.path for op in update.operations))

            matched, owner_ids = await apply_owned_update(self.store, query, mongo_update, document_number)
            await self.cache.invalidate(
                owner, document_number, draft_headers_key(self.journey), co_owner_ids=owner_ids
            )

        if matched is None:
            dropped_writes_counter.add(1, {"operation": "patch", "journey": self.journey.value})
            logger.info(f"[UPSERT-DRAFT-DATA][DOCUMENT-NUMBER][{document_number}][DROPPED]")
            return False
        return True

    # Form page setters

    async def set_user_reference(self, owner: Owner, document_number: str, user_reference: Optional[str]) -> bool:
        return await self.patch(owner, document_number, DocumentUpdate().set(FieldPaths.USER_REFERENCE, user_reference))

    async def set_conservation(self, owner: Owner, document_number: str, conservation: Dict[str, Any]) -> bool:
        return await self.patch(owner, document_number, DocumentUpdate().set(FieldPaths.CONSERVATION, conservation))

    async def set_products(self, owner: Owner, document_number: str, products: List[Dict[str, Any]]) -> bool:
        return await self.patch(owner, document_number, DocumentUpdate().set(FieldPaths.PRODUCTS, products))

    async def add_product(self, owner: Owner, document_number: str, product: Dict[str, Any]) -> bool:
        return await self.patch(owner, document_number, DocumentUpdate().push(FieldPaths.PRODUCTS, product))

    async def delete_product(self, owner: Owner, document_number: str, species_id: str) -> bool:
        return await self.patch(owner, document_number, DocumentUpdate().pull(FieldPaths.PRODUCTS, {"speciesId": species_id}))

    async def set_transportation(self, owner: Owner, document_number: str, transportation: Dict[str, Any]) -> bool:
        return await self.patch(owner, document_number, DocumentUpdate().set(FieldPaths.TRANSPORTATION, transportation))

    async def delete_transportation(self, owner: Owner, document_number: str) -> bool:
        return await self.patch(owner, document_number, DocumentUpdate().unset(FieldPaths.TRANSPORTATION))

    async def set_exporter_details(self, owner: Owner, document_number: str, exporter_details: Dict[str, Any]) -> bool:
        return await self.patch(owner, document_number, DocumentUpdate().set(FieldPaths.EXPORTER_DETAILS, exporter_details))

    async def set_export_location(
        self,
        owner: Owner,
        document_number: str,
        exported_from: Optional[str],
        exported_to: Any,
        point_of_destination: Optional[str] = None,
    ) -> bool:
        update = (
            DocumentUpdate()
            .set(FieldPaths.EXPORTED_FROM, exported_from)
            .set(FieldPaths.EXPORTED_TO, exported_to)
            .set(FieldPaths.POINT_OF_DESTINATION, point_of_destination)
        )
        return await self.patch(owner, document_number, update)

    async def set_landings_entry_option(self, owner: Owner, document_number: str, option: LandingsEntryOption) -> bool:
        value = LandingsEntryOption(option).value
        return await self.patch(owner, document_number, DocumentUpdate().set(FieldPaths.LANDINGS_ENTRY_OPTION, value))
