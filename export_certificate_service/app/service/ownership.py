# Ownership predicates and owner-aware conditional writes
import logging
from typing import Optional, List, Dict, Any, Tuple

from pydantic import BaseModel, ConfigDict

from export_certificate_service.infrastructure.database.document_store import MongoDocumentStore

from .exceptions import InvalidOwnershipContextError

logger = logging.getLogger(__name__)

EXPORTER_CONTACT_ID_PATH = "exportData.exporterDetails.contactId"


class Owner(BaseModel):
    """The calling principal. Either identifier may be missing, never both."""
    model_config = ConfigDict(frozen=True)

    user_principal: Optional[str] = None
    contact_id: Optional[str] = None

    @property
    def cache_identity(self) -> str:
        # contactId wins over the principal when both are known
        identity = self.contact_id or self.user_principal
        if not identity:
            raise InvalidOwnershipContextError()
        return identity


def construct_owner_query(user_principal: Optional[str], contact_id: Optional[str]) -> List[Dict[str, Any]]:
    """
    Builds the disjunction of equality clauses that identifies the documents
    visible to a caller.

    Args:
        user_principal: Identifier of the signed-in principal (matches createdBy).
        contact_id: Identifier of the organisational contact.

    Returns:
        The clauses to place under ``$or`` in a store filter.

    Raises:
        InvalidOwnershipContextError: If both identifiers are missing.
    """
    if user_principal and contact_id:
        return [
            {"createdBy": user_principal},
            {"contactId": contact_id},
            {EXPORTER_CONTACT_ID_PATH: contact_id},
        ]

    if contact_id:
        return [
            {"contactId": contact_id},
            {EXPORTER_CONTACT_ID_PATH: contact_id},
        ]

    if user_principal:
        return [{"createdBy": user_principal}]

    logger.error("[CONSTRUCT-OWNER-QUERY][NO-OWNER-IDENTIFIERS]")
    raise InvalidOwnershipContextError()


def owner_filter(owner: Owner, **conditions: Any) -> Dict[str, Any]:
    """An ownership-scoped store filter with extra equality/operator conditions."""
    query: Dict[str, Any] = {"$or": construct_owner_query(owner.user_principal, owner.contact_id)}
    query.update(conditions)
    return query


OWNER_IDS_PROJECTION = {"_id": 0, "createdBy": 1, "contactId": 1, EXPORTER_CONTACT_ID_PATH: 1}


def document_owner_ids(document: Optional[Dict[str, Any]]) -> List[str]:
    """The owner identifiers held on ``document``. Each co-owner caches its own view under one of them."""
    if not document:
        return []

    exporter_contact_id = (
        (document.get("exportData") or {}).get("exporterDetails") or {}
    ).get("contactId")

    owner_ids: List[str] = []
    for owner_id in (document.get("createdBy"), document.get("contactId"), exporter_contact_id):
        if isinstance(owner_id, str) and owner_id and owner_id not in owner_ids:
            owner_ids.append(owner_id)
    return owner_ids


async def apply_owned_update(
    store: MongoDocumentStore,
    query: Dict[str, Any],
    update: Dict[str, Any],
    document_number: str,
    projection: Optional[Dict[str, Any]] = None,
) -> Tuple[Optional[Dict[str, Any]], List[str]]:
    """
    Runs one conditional update.

    Returns:
        The matched document as it was before the write (None when nothing
        matched), plus the owner ids it held before or after the write.
    """
    before = await store.find_one_and_update(query, update, dict(OWNER_IDS_PROJECTION, **(projection or {})))
    if before is None:
        return None, []

    # The write itself may have changed who owns the document
    after = await store.find_one({"documentNumber": document_number}, OWNER_IDS_PROJECTION)
    owner_ids = document_owner_ids(before)
    owner_ids += [owner_id for owner_id in document_owner_ids(after) if owner_id not in owner_ids]
    return before, owner_ids
