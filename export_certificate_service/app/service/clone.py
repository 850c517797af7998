# Copies of existing documents under a new document number
import datetime
import logging
from typing import Any, Dict, Optional

from export_certificate_service.app.models.document_status import DocumentStatus
from export_certificate_service.app.models.journey import Journey
from export_certificate_service.app.observability import tracer, documents_cloned_counter
from export_certificate_service.infrastructure.cache.draft_cache import DraftCache, draft_headers_key
from export_certificate_service.infrastructure.database.document_store import MongoDocumentStore
from export_certificate_service.infrastructure.numbering.document_number import DocumentNumberAuthority

from .exceptions import DocumentNotFoundError
from .ownership import OWNER_IDS_PROJECTION, Owner, document_owner_ids, owner_filter

logger = logging.getLogger(__name__)

LINKED_RECORDS_FIELD = "caughtBy"


def renamespace(value: Any, source_number: str, target_number: str) -> Any:
    """
    Rebuilds ``value`` container by container, replacing the source document
    number prefix of every string with the target number. The result shares
    no list or dict with the input.
    """
    if isinstance(value, dict):
        return {key: renamespace(item, source_number, target_number) for key, item in value.items()}
    if isinstance(value, list):
        return [renamespace(item, source_number, target_number) for item in value]
    if isinstance(value, str) and source_number and value.startswith(source_number):
        return target_number + value[len(source_number):]
    return value


def clone_product(product: Dict[str, Any], source_number: str, target_number: str, exclude_linked_data: bool) -> Dict[str, Any]:
    copy = renamespace(product, source_number, target_number)
    # Products without linked records are copied as they are
    if exclude_linked_data and copy.get(LINKED_RECORDS_FIELD):
        del copy[LINKED_RECORDS_FIELD]
    return copy


def clone_export_data(
    export_data: Optional[Dict[str, Any]],
    source_number: str,
    target_number: str,
    exclude_linked_data: bool,
) -> Dict[str, Any]:
    copy = renamespace(export_data or {}, source_number, target_number)

    products = copy.get("products")
    if isinstance(products, list):
        copy["products"] = [
            clone_product(product, source_number, target_number, exclude_linked_data) if isinstance(product, dict) else product
            for product in products
        ]

    transportation = copy.get("transportation")
    if isinstance(transportation, dict) and isinstance(transportation.get("exportedTo"), str):
        transportation["exportedTo"] = {"officialCountryName": transportation["exportedTo"]}

    return copy


def clone_document(
    source: Dict[str, Any],
    target_number: str,
    owner: Owner,
    exclude_linked_data: bool,
    requested_by_admin: bool,
    void_original: bool,
) -> Dict[str, Any]:
    """Builds the stored form of a fresh DRAFT copied from ``source``."""
    source_number = source["documentNumber"]
    document = {
        "documentNumber": target_number,
        "status": DocumentStatus.DRAFT.value,
        "createdBy": source.get("createdBy"),
        "createdByEmail": source.get("createdByEmail"),
        "contactId": owner.contact_id,
        "createdAt": datetime.datetime.now(datetime.UTC),
        "userReference": source.get("userReference"),
        "exportData": clone_export_data(source.get("exportData"), source_number, target_number, exclude_linked_data),
        "requestByAdmin": requested_by_admin,
        "clonedFrom": source_number,
        "landingsCloned": not exclude_linked_data,
        "parentDocumentVoid": void_original,
    }
    return {key: value for key, value in document.items() if value is not None}


class CloneEngine:
    def __init__(
        self,
        journey: Journey,
        store: MongoDocumentStore,
        cache: DraftCache,
        authority: DocumentNumberAuthority,
    ):
        self.journey = journey
        self.store = store
        self.cache = cache
        self.authority = authority

    async def clone(
        self,
        source_document_number: str,
        owner: Owner,
        exclude_linked_data: bool = False,
        requested_by_admin: bool = False,
        void_original: bool = False,
    ) -> str:
        with tracer.start_as_current_span("clone_engine.clone") as span:
            span.set_attribute("document.source_number", source_document_number)

            source = await self.store.find_one(owner_filter(owner, documentNumber=source_document_number))
            if not source:
                logger.error(f"[GET-COPY][DOCUMENT-NUMBER][{source_document_number}][NOT-FOUND]")
                raise DocumentNotFoundError(source_document_number, owner.user_principal or owner.contact_id)

            target_number = await self.authority.allocate(self.journey.service_name.value)
            span.set_attribute("document.number", target_number)

            copy = clone_document(source, target_number, owner, exclude_linked_data, requested_by_admin, void_original)
            await self.store.insert_one(copy)

            if void_original:
                # Flags the parent only; its status is left alone
                await self.store.find_one_and_update(
                    owner_filter(owner, documentNumber=source_document_number),
                    {"$set": {"isVoidedParent": True}},
                    OWNER_IDS_PROJECTION,
                )

            owner_ids = document_owner_ids(source)
            owner_ids += [owner_id for owner_id in document_owner_ids(copy) if owner_id not in owner_ids]
            await self.cache.invalidate(
                owner,
                source_document_number,
                target_number,
                draft_headers_key(self.journey),
                co_owner_ids=owner_ids,
            )

        documents_cloned_counter.add(1, {"journey": self.journey.value})
        logger.info(f"[GET-COPY][DOCUMENT-NUMBER][{source_document_number}][NEW-DOCUMENT-NUMBER][{target_number}]")
        return target_number
