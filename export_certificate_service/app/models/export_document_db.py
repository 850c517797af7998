import datetime
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .document_status import DocumentStatus


class ExportDocumentDB(BaseModel):
    # Stored with camelCase keys; unknown legacy keys are kept as-is.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow", use_enum_values=True)

    document_number: str
    status: DocumentStatus = DocumentStatus.DRAFT
    created_by: Optional[str] = None # Absent on some admin-created records
    created_by_email: Optional[str] = None
    contact_id: Optional[str] = None
    created_at: Optional[datetime.datetime] = None
    document_uri: Optional[str] = None
    user_reference: Optional[str] = None
    request_by_admin: Optional[bool] = None

    export_data: Dict[str, Any] = Field(default_factory=dict) # Opaque payload, addressed by dotted paths
    audit: List[Dict[str, Any]] = Field(default_factory=list)

    # Clone lineage
    cloned_from: Optional[str] = None
    landings_cloned: Optional[bool] = None
    parent_document_void: Optional[bool] = None
    is_voided_parent: Optional[bool] = None

    @classmethod
    def from_store(cls, document: Dict[str, Any]) -> "ExportDocumentDB":
        data = {k: v for k, v in document.items() if k != "_id"}
        return cls.model_validate(data)

    def to_store(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_cache(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
