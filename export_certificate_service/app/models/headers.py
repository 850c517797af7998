import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .document_status import DocumentStatus


class DraftHeader(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    document_number: str
    status: DocumentStatus
    user_reference: Optional[str] = None
    started_at: Optional[str] = None # e.g. "05 Mar 2024"


class CompletedDocumentHeader(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    document_number: str
    status: DocumentStatus
    document_uri: Optional[str] = None
    created_at: Optional[datetime.datetime] = None
    user_reference: Optional[str] = None
