"""
Custom exceptions for the Export Certificate service.

Absence of a document and an ownership mismatch are not exceptions: both
surface as ``None``. Writes against a terminal document are dropped silently.
"""

class BaseExportCertificateError(Exception):
    """Base class for exceptions in this module."""
    pass

class InvalidOwnershipContextError(BaseExportCertificateError):
    """Raised when neither a user principal nor a contact id is supplied."""
    def __init__(self):
        super().__init__("UserPrincipal and ContactId are both undefined")

class DocumentNotFoundError(BaseExportCertificateError):
    """Raised when the source of a clone cannot be found for the requesting owner."""
    def __init__(self, document_number: str, owner_id: str):
        self.document_number = document_number
        self.owner_id = owner_id
        super().__init__(f"Document {document_number} not found for user {owner_id}")

class InvalidStatusTransitionError(BaseExportCertificateError):
    """Raised when a caller asks for a transition the engine never performs."""
    def __init__(self, target_status: str, reason: str):
        self.target_status = target_status
        self.reason = reason
        super().__init__(f"Cannot transition to '{target_status}': {reason}")

class DocumentNumberAllocationError(BaseExportCertificateError):
    """Raised when no unique document number could be allocated."""
    def __init__(self, service_code: str, attempts: int):
        self.service_code = service_code
        self.attempts = attempts
        super().__init__(
            f"[getUniqueDocumentNumber][service: {service_code}][ERROR] "
            f"Failed to create a unique document number after {attempts} attempts."
        )

class InvalidUpdateError(BaseExportCertificateError):
    """Raised when a partial update targets an invalid or protected field path."""
    pass
