# Partial-update builder for draft documents
from typing import Annotated, Any, Dict, List, Literal, Union

from pydantic import BaseModel, Field, field_validator

from .exceptions import InvalidUpdateError


class FieldPaths:
    """Dotted paths written by the form pages."""
    USER_REFERENCE = "userReference"
    PRODUCTS = "exportData.products"
    CONSERVATION = "exportData.conservation"
    TRANSPORTATION = "exportData.transportation"
    EXPORTER_DETAILS = "exportData.exporterDetails"
    EXPORTED_FROM = "exportData.exportedFrom"
    EXPORTED_TO = "exportData.exportedTo"
    POINT_OF_DESTINATION = "exportData.pointOfDestination"
    LANDINGS_ENTRY_OPTION = "exportData.landingsEntryOption"
    CONSERVATION_REFERENCE = "exportData.conservation.conservationReference"


# Never writable through a patch: identity and status have their own operations.
PROTECTED_PATHS = ("_id", "documentNumber", "status")


class _PathOperation(BaseModel):
    path: str

    @field_validator("path")
    @classmethod
    def _check_path(cls, path: str) -> str:
        segments = path.split(".")
        if not path or any(not segment for segment in segments):
            raise ValueError(f"Invalid field path '{path}'")
        if segments[0] in PROTECTED_PATHS:
            raise ValueError(f"Field path '{path}' cannot be patched")
        return path


class SetField(_PathOperation):
    op: Literal["set"] = "set"
    value: Any


class UnsetField(_PathOperation):
    op: Literal["unset"] = "unset"


class PushItem(_PathOperation):
    op: Literal["push"] = "push"
    value: Any


class PullItems(_PathOperation):
    op: Literal["pull"] = "pull"
    match: Dict[str, Any]


UpdateOperation = Annotated[Union[SetField, UnsetField, PushItem, PullItems], Field(discriminator="op")]

_MONGO_OPERATORS = {"set": "$set", "unset": "$unset", "push": "$push", "pull": "$pull"}


def paths_conflict(first: str, second: str) -> bool:
    """True when one path equals the other or lies inside it, which MongoDB refuses in one update."""
    return first == second or first.startswith(second + ".") or second.startswith(first + ".")


def _check_conflicts(earlier: List[_PathOperation], operation: _PathOperation) -> None:
    for existing in earlier:
        if paths_conflict(existing.path, operation.path):
            raise InvalidUpdateError(
                f"Field path '{operation.path}' conflicts with '{existing.path}' in the same update"
            )


class DocumentUpdate(BaseModel):
    operations: List[UpdateOperation] = Field(default_factory=list)

    def _add(self, operation_cls, **kwargs) -> "DocumentUpdate":
        try:
            operation = operation_cls(**kwargs)
        except ValueError as e:
            raise InvalidUpdateError(str(e)) from e

        _check_conflicts(self.operations, operation)
        self.operations.append(operation)
        return self

    def set(self, path: str, value: Any) -> "DocumentUpdate":
        return self._add(SetField, path=path, value=value)

    def unset(self, path: str) -> "DocumentUpdate":
        return self._add(UnsetField, path=path)

    def push(self, path: str, value: Any) -> "DocumentUpdate":
        return self._add(PushItem, path=path, value=value)

    def pull(self, path: str, match: Dict[str, Any]) -> "DocumentUpdate":
        return self._add(PullItems, path=path, match=match)

    def is_empty(self) -> bool:
        return not self.operations

    def to_mongo(self) -> Dict[str, Dict[str, Any]]:
        """Renders the operations as a MongoDB update document."""
        update: Dict[str, Dict[str, Any]] = {}
        for index, operation in enumerate(self.operations):
            # Operations parsed from a payload never went through _add
            _check_conflicts(self.operations[:index], operation)
            section = update.setdefault(_MONGO_OPERATORS[operation.op], {})
            if isinstance(operation, SetField):
                section[operation.path] = operation.value
            elif isinstance(operation, UnsetField):
                section[operation.path] = ""
            elif isinstance(operation, PushItem):
                section[operation.path] = operation.value
            else:
                section[operation.path] = operation.match
        return update
