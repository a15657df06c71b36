"""Exceptions raised by the hospital administration core."""
from __future__ import annotations

from typing import Any, Iterable, List, Optional, Sequence


class HospitalError(RuntimeError):
    """Base exception for every failure a view is expected to report."""


class ValidationFailed(HospitalError):
    """Raised when form data fails validation; nothing was written."""

    def __init__(self, messages: Iterable[str]) -> None:
        self.messages: List[str] = list(messages)
        super().__init__("; ".join(self.messages) or "Validation failed")


class RecordNotFound(HospitalError):
    """Raised when an update or delete targets a missing id."""

    def __init__(self, collection: str, record_id: Any) -> None:
        super().__init__(f"No record {record_id!r} in {collection}")
        self.collection = collection
        self.record_id = record_id


class PersistenceFailed(HospitalError):
    """Raised when the store reported that a write did not happen."""

    def __init__(self, collection: str, action: str) -> None:
        super().__init__(f"Could not {action} record in {collection}")
        self.collection = collection
        self.action = action


class OperationRefused(HospitalError):
    """Raised when a business rule forbids the requested mutation."""


class ScheduleConflict(HospitalError):
    """Raised when an appointment overlaps another one for the same doctor."""

    def __init__(self, conflicts: Sequence[Any]) -> None:
        super().__init__(f"{len(conflicts)} overlapping appointment(s) for this doctor")
        self.conflicts = list(conflicts)


class UnknownFieldError(ValueError):
    """Raised when a partial update names fields the entity does not declare."""

    def __init__(self, collection: str, fields: Iterable[str]) -> None:
        self.collection = collection
        self.fields = sorted(fields)
        super().__init__(f"Unknown field(s) for {collection}: {', '.join(self.fields)}")


class UnknownCollectionError(KeyError):
    """Raised when a collection name is not part of the data model."""

    def __init__(self, collection: Optional[str]) -> None:
        super().__init__(collection)
        self.collection = collection

    def __str__(self) -> str:
        return f"Unknown collection: {self.collection!r}"


__all__ = [
    "HospitalError",
    "ValidationFailed",
    "RecordNotFound",
    "PersistenceFailed",
    "OperationRefused",
    "ScheduleConflict",
    "UnknownFieldError",
    "UnknownCollectionError",
]
