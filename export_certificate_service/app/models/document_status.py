from enum import Enum
from typing import Iterable, List


class DocumentStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    LOCKED = "LOCKED"
    COMPLETE = "COMPLETE"
    VOID = "VOID"
    BLOCKED = "BLOCKED"


# A "draft" is any document in one of these statuses.
MUTABLE_STATUSES = (DocumentStatus.DRAFT, DocumentStatus.PENDING, DocumentStatus.LOCKED)

# complete() only ever moves a document out of these.
COMPLETABLE_STATUSES = (DocumentStatus.DRAFT, DocumentStatus.PENDING)


def status_values(statuses: Iterable[DocumentStatus]) -> List[str]:
    """Literal strings for use inside store filters."""
    return [DocumentStatus(s).value for s in statuses]
