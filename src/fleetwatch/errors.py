"""Error taxonomy shared by the storage, repository and contract layers."""

from __future__ import annotations

from typing import Dict, List, Optional


class FleetError(Exception):
    """Base class for every error raised by the fleet core."""


class NotFoundError(FleetError, LookupError):
    """Raised when an entity id is absent from the store."""

    def __init__(self, entity: str, entity_id: object) -> None:
        super().__init__(f"{entity} with id {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class ValidationError(FleetError, ValueError):
    """Raised when caller input fails schema constraints; never persisted."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, str]]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = list(errors or [])


class CodecError(FleetError, ValueError):
    """Raised when a stored hash cannot be decoded into an entity."""


class StorageError(FleetError):
    """Base class for key-value backend failures."""


class BackendUnavailable(StorageError):
    """The networked driver could not be reached or timed out."""


class InvalidKeyError(StorageError, ValueError):
    """A malformed key was passed to a backend."""


class WrongTypeError(StorageError):
    """Operation against a key holding a value of another kind."""


class BatchOperationError(StorageError):
    """A queued batch operation failed while the caller needed it to succeed."""

    def __init__(self, index: int, operation: str, cause: BaseException) -> None:
        super().__init__(f"batch operation #{index} ({operation}) failed: {cause}")
        self.index = index
        self.operation = operation
        self.cause = cause


__all__ = [
    "BackendUnavailable",
    "BatchOperationError",
    "CodecError",
    "FleetError",
    "InvalidKeyError",
    "NotFoundError",
    "StorageError",
    "ValidationError",
    "WrongTypeError",
]
