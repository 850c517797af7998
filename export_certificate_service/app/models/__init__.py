from .document_status import DocumentStatus, MUTABLE_STATUSES, COMPLETABLE_STATUSES
from .journey import Journey, ServiceName, LandingsEntryOption
from .export_document_db import ExportDocumentDB
from .headers import DraftHeader, CompletedDocumentHeader

__all__ = [
    "DocumentStatus",
    "MUTABLE_STATUSES",
    "COMPLETABLE_STATUSES",
    "Journey",
    "ServiceName",
    "LandingsEntryOption",
    "ExportDocumentDB",
    "DraftHeader",
    "CompletedDocumentHeader",
]
