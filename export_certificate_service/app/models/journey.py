from enum import Enum


class ServiceName(str, Enum):
    CC = "CC"
    PS = "PS"
    SD = "SD"


class Journey(str, Enum):
    CATCH_CERTIFICATE = "catchCertificate"
    PROCESSING_STATEMENT = "processingStatement"
    STORAGE_NOTES = "storageNotes"

    @property
    def service_name(self) -> ServiceName:
        return _SERVICE_NAMES[self]

    @property
    def collection_name(self) -> str:
        return _COLLECTIONS[self]


_SERVICE_NAMES = {
    Journey.CATCH_CERTIFICATE: ServiceName.CC,
    Journey.PROCESSING_STATEMENT: ServiceName.PS,
    Journey.STORAGE_NOTES: ServiceName.SD,
}

_COLLECTIONS = {
    Journey.CATCH_CERTIFICATE: "catchCerts",
    Journey.PROCESSING_STATEMENT: "processingStatements",
    Journey.STORAGE_NOTES: "storageDocuments",
}


class LandingsEntryOption(str, Enum):
    DIRECT_LANDING = "directLanding"
    MANUAL_ENTRY = "manualEntry"
    UPLOAD_ENTRY = "uploadEntry"
