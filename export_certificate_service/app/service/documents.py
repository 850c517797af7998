# Document Service: the per-journey entry point for reads and writes
import datetime
import logging
from typing import Any, Dict, List, Optional, Tuple

from export_certificate_service.app.models.document_status import DocumentStatus, MUTABLE_STATUSES, status_values
from export_certificate_service.app.models.export_document_db import ExportDocumentDB
from export_certificate_service.app.models.headers import DraftHeader, CompletedDocumentHeader
from export_certificate_service.app.models.journey import Journey, LandingsEntryOption
from export_certificate_service.app.observability import tracer
from export_certificate_service.infrastructure.cache.draft_cache import (
    DraftCache,
    draft_headers_key,
    completed_headers_key,
)
from export_certificate_service.infrastructure.database.document_store import MongoDocumentStore
from export_certificate_service.infrastructure.numbering.document_number import DocumentNumberAuthority

from .clone import CloneEngine
from .mutation import DraftMutationEngine
from .ownership import OWNER_IDS_PROJECTION, Owner, document_owner_ids, owner_filter
from .status_machine import StatusStateMachine
from .updates import DocumentUpdate

logger = logging.getLogger(__name__)

HEADER_DATE_FORMAT = "%d %b %Y"
COMPLETED_HEADER_PROJECTION = {
    "_id": 0,
    "documentNumber": 1,
    "status": 1,
    "documentUri": 1,
    "createdAt": 1,
    "userReference": 1,
}
DRAFT_HEADER_PROJECTION = {"_id": 0, "documentNumber": 1, "status": 1, "userReference": 1, "createdAt": 1}


def _started_at(created_at: Any) -> Optional[str]:
    if isinstance(created_at, datetime.datetime):
        return created_at.strftime(HEADER_DATE_FORMAT)
    return None


def parse_month_and_year(month_and_year: Optional[str]) -> Tuple[int, int]:
    """'3-2024' -> (3, 2024). Missing parts default to the current UTC month and year."""
    now = datetime.datetime.now(datetime.UTC)
    month_part, _, year_part = (month_and_year or "").partition("-")
    month = int(month_part) if month_part.strip() else now.month
    year = int(year_part) if year_part.strip() else now.year
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month '{month_part}' in '{month_and_year}'")
    return month, year


def month_bounds(month: int, year: int) -> Tuple[datetime.datetime, datetime.datetime]:
    # Naive bounds; the store keeps datetimes as naive UTC
    start = datetime.datetime(year, month, 1)
    end = datetime.datetime(year + 1, 1, 1) if month == 12 else datetime.datetime(year, month + 1, 1)
    return start, end


class DocumentService:
    """
    Reads go through the Draft Cache where a cached view exists, writes go
    through the state machine, the mutation engine or the clone engine. All of
    them are scoped to the calling owner.
    """

    def __init__(
        self,
        journey: Journey,
        store: MongoDocumentStore,
        cache: DraftCache,
        authority: DocumentNumberAuthority,
        maximum_concurrent_drafts: int = 50,
    ):
        self.journey = journey
        self.store = store
        self.cache = cache
        self.authority = authority
        self.maximum_concurrent_drafts = maximum_concurrent_drafts

        self.status_machine = StatusStateMachine(journey, store, cache)
        self.mutation_engine = DraftMutationEngine(journey, store, cache)
        self.clone_engine = CloneEngine(journey, store, cache, authority)

    # Reads

    async def get_document(self, owner: Owner, document_number: str) -> Optional[ExportDocumentDB]:
        document = await self.store.find_one(owner_filter(owner, documentNumber=document_number))
        return ExportDocumentDB.from_store(document) if document else None

    async def get_draft(self, owner: Owner, document_number: str) -> Optional[ExportDocumentDB]:
        logger.info(f"[GET-DRAFT][DOCUMENT-NUMBER][{document_number}][CONTACT-ID][{owner.contact_id}]")

        async def load() -> Optional[Dict[str, Any]]:
            query = owner_filter(owner, documentNumber=document_number, status={"$in": status_values(MUTABLE_STATUSES)})
            document = await self.store.find_one(query)
            return ExportDocumentDB.from_store(document).to_cache() if document else None

        with tracer.start_as_current_span("document_service.get_draft") as span:
            span.set_attribute("document.number", document_number)
            # Not-found is cached too, until the next write invalidates it
            value = await self.cache.read_through(owner, document_number, load, cache_empty=True)

        return ExportDocumentDB.model_validate(value) if value else None

    async def get_status(self, owner: Owner, document_number: str) -> Optional[DocumentStatus]:
        draft = await self.get_draft(owner, document_number)
        return DocumentStatus(draft.status) if draft else None

    async def get_draft_headers(self, owner: Owner) -> List[DraftHeader]:
        async def load() -> List[Dict[str, Any]]:
            documents = await self.store.find_many(
                owner_filter(owner, status={"$in": status_values(MUTABLE_STATUSES)}),
                sort=[("createdAt", -1)],
                projection=DRAFT_HEADER_PROJECTION,
            )
            headers = [
                DraftHeader(
                    document_number=d["documentNumber"],
                    status=d["status"],
                    user_reference=d.get("userReference"),
                    started_at=_started_at(d.get("createdAt")),
                )
                for d in documents
            ]
            return [h.model_dump(mode="json", by_alias=True) for h in headers]

        value = await self.cache.read_through(owner, draft_headers_key(self.journey), load, cache_empty=False)
        return [DraftHeader.model_validate(h) for h in value or []]

    async def get_completed_documents(self, owner: Owner, limit: int, page: int = 1) -> List[CompletedDocumentHeader]:
        skip = (page - 1) * limit if page > 1 else 0
        documents = await self.store.find_many(
            owner_filter(owner, status=DocumentStatus.COMPLETE.value),
            sort=[("createdAt", -1)],
            limit=limit,
            skip=skip,
            projection=COMPLETED_HEADER_PROJECTION,
        )
        return [CompletedDocumentHeader.model_validate(d) for d in documents]

    async def count_completed_documents(self, owner: Owner) -> int:
        return await self.store.count(owner_filter(owner, status=DocumentStatus.COMPLETE.value))

    async def get_completed_for_month(self, owner: Owner, month_and_year: Optional[str] = None) -> List[CompletedDocumentHeader]:
        month, year = parse_month_and_year(month_and_year)
        key = completed_headers_key(self.journey, month, year)

        async def load() -> List[Dict[str, Any]]:
            logger.info(f"[GET-COMPLETED-HEADERS-FROM-MONGO][{self.journey.value}][YEAR-MONTH][{month}-{year}]")
            start, end = month_bounds(month, year)
            documents = await self.store.find_many(
                owner_filter(owner, status=DocumentStatus.COMPLETE.value, createdAt={"$gte": start, "$lt": end}),
                sort=[("createdAt", -1)],
                projection=COMPLETED_HEADER_PROJECTION,
            )
            return [
                CompletedDocumentHeader.model_validate(d).model_dump(mode="json", by_alias=True, exclude_none=True)
                for d in documents
            ]

        value = await self.cache.read_through(owner, key, load, cache_empty=False)
        return [CompletedDocumentHeader.model_validate(h) for h in value or []]

    async def can_create_draft(self, owner: Owner) -> bool:
        drafts = await self.store.count(
            owner_filter(owner, status=DocumentStatus.DRAFT.value),
            limit=self.maximum_concurrent_drafts,
        )
        result = drafts < self.maximum_concurrent_drafts
        logger.info(f"[CHECKING-USER-CAN-CREATE-DRAFT][{self.journey.value}][{result}]")
        return result

    # Writes

    async def create_draft(self, owner: Owner, email: Optional[str], requested_by_admin: bool = False) -> str:
        document_number = await self.authority.allocate(self.journey.service_name.value)
        document = ExportDocumentDB(
            document_number=document_number,
            status=DocumentStatus.DRAFT,
            created_by=owner.user_principal,
            created_by_email=email,
            contact_id=owner.contact_id,
            created_at=datetime.datetime.now(datetime.UTC),
            request_by_admin=requested_by_admin,
        )
        await self.store.insert_one(document.to_store())
        # A not-found result may already be cached under this number
        await self.cache.invalidate(owner, document_number, draft_headers_key(self.journey))

        logger.info(f"[CREATE-DRAFT][{self.journey.value}][DOCUMENT-NUMBER][{document_number}]")
        return document_number

    async def delete_draft(self, owner: Owner, document_number: str) -> bool:
        deleted = await self.store.find_one_and_delete(
            owner_filter(owner, documentNumber=document_number, status=DocumentStatus.DRAFT.value),
            OWNER_IDS_PROJECTION,
        )
        await self.cache.invalidate(
            owner, document_number, draft_headers_key(self.journey), co_owner_ids=document_owner_ids(deleted)
        )
        logger.info(f"[DELETE-DRAFT][DOCUMENT-NUMBER][{document_number}][DELETED][{deleted is not None}]")
        return deleted is not None

    async def patch(self, owner: Owner, document_number: str, update: DocumentUpdate) -> bool:
        return await self.mutation_engine.patch(owner, document_number, update)

    async def set_user_reference(self, owner: Owner, document_number: str, user_reference: Optional[str]) -> bool:
        return await self.mutation_engine.set_user_reference(owner, document_number, user_reference)

    async def set_conservation(self, owner: Owner, document_number: str, conservation: Dict[str, Any]) -> bool:
        return await self.mutation_engine.set_conservation(owner, document_number, conservation)

    async def set_products(self, owner: Owner, document_number: str, products: List[Dict[str, Any]]) -> bool:
        return await self.mutation_engine.set_products(owner, document_number, products)

    async def add_product(self, owner: Owner, document_number: str, product: Dict[str, Any]) -> bool:
        return await self.mutation_engine.add_product(owner, document_number, product)

    async def delete_product(self, owner: Owner, document_number: str, species_id: str) -> bool:
        return await self.mutation_engine.delete_product(owner, document_number, species_id)

    async def set_transportation(self, owner: Owner, document_number: str, transportation: Dict[str, Any]) -> bool:
        return await self.mutation_engine.set_transportation(owner, document_number, transportation)

    async def delete_transportation(self, owner: Owner, document_number: str) -> bool:
        return await self.mutation_engine.delete_transportation(owner, document_number)

    async def set_exporter_details(self, owner: Owner, document_number: str, exporter_details: Dict[str, Any]) -> bool:
        return await self.mutation_engine.set_exporter_details(owner, document_number, exporter_details)

    async def set_export_location(
        self,
        owner: Owner,
        document_number: str,
        exported_from: Optional[str],
        exported_to: Any,
        point_of_destination: Optional[str] = None,
    ) -> bool:
        return await self.mutation_engine.set_export_location(
            owner, document_number, exported_from, exported_to, point_of_destination
        )

    async def set_landings_entry_option(self, owner: Owner, document_number: str, option: LandingsEntryOption) -> bool:
        return await self.mutation_engine.set_landings_entry_option(owner, document_number, option)

    async def set_status(self, owner: Owner, document_number: str, status: DocumentStatus) -> bool:
        return await self.status_machine.set_status(owner, document_number, status)

    async def complete(self, owner: Owner, document_number: str, document_uri: str, created_by_email: str) -> bool:
        return await self.status_machine.complete(owner, document_number, document_uri, created_by_email)

    async def void_document(self, owner: Owner, document_number: str) -> bool:
        return await self.status_machine.void(owner, document_number)

    async def clone(
        self,
        source_document_number: str,
        owner: Owner,
        exclude_linked_data: bool = False,
        requested_by_admin: bool = False,
        void_original: bool = False,
    ) -> str:
        return await self.clone_engine.clone(
            source_document_number, owner, exclude_linked_data, requested_by_admin, void_original
        )
