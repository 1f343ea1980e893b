"""Key-value backend contract shared by the networked and in-memory drivers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Protocol, Sequence, Set, Tuple, Union

from fleetwatch.errors import BatchOperationError, InvalidKeyError, StorageError

HashFields = Union[str, Mapping[str, object]]

BATCHABLE_OPERATIONS = frozenset(
    {
        "exists",
        "delete",
        "hash_set",
        "hash_get_all",
        "set_add",
        "set_remove",
        "set_members",
        "list_push_front",
        "list_range",
        "list_trim",
        "hash_increment_by",
    }
)


@dataclass(frozen=True)
class BatchOperation:
    name: str
    args: Tuple[Any, ...]


class BatchResult(NamedTuple):
    """Outcome of one queued operation; ``error`` is None on success."""

    error: Optional[BaseException]
    result: Any

    @property
    def ok(self) -> bool:
        return self.error is None


class BatchExecutor(Protocol):
    def execute_batch(self, operations: Sequence[BatchOperation]) -> List[BatchResult]:
        ...


class Batch:
    """Queues backend operations and runs them as one best-effort unit.

    Each queued call returns the batch so calls can be chained. ``execute``
    returns one ``(error, result)`` pair per operation, in submission order;
    a failing operation never prevents its siblings from running.
    """

    def __init__(self, executor: BatchExecutor) -> None:
        self._executor = executor
        self._operations: List[BatchOperation] = []

    def __len__(self) -> int:
        return len(self._operations)

    def exists(self, key: str) -> "Batch":
        return self._queue("exists", key)

    def delete(self, key: str) -> "Batch":
        return self._queue("delete", key)

    def hash_set(self, key: str, field_or_mapping: HashFields, value: object = None) -> "Batch":
        return self._queue("hash_set", key, field_or_mapping, value)

    def hash_get_all(self, key: str) -> "Batch":
        return self._queue("hash_get_all", key)

    def hash_increment_by(self, key: str, field: str, delta: int) -> "Batch":
        return self._queue("hash_increment_by", key, field, delta)

    def set_add(self, key: str, member: object) -> "Batch":
        return self._queue("set_add", key, member)

    def set_remove(self, key: str, member: object) -> "Batch":
        return self._queue("set_remove", key, member)

    def set_members(self, key: str) -> "Batch":
        return self._queue("set_members", key)

    def list_push_front(self, key: str, value: object) -> "Batch":
        return self._queue("list_push_front", key, value)

    def list_range(self, key: str, start: int, stop: int) -> "Batch":
        return self._queue("list_range", key, start, stop)

    def list_trim(self, key: str, start: int, stop: int) -> "Batch":
        return self._queue("list_trim", key, start, stop)

    def execute(self) -> List[BatchResult]:
        operations = list(self._operations)
        self._operations.clear()
        if not operations:
            return []
        return self._executor.execute_batch(operations)

    def execute_strict(self) -> List[Any]:
        """Execute and return plain results, raising on the first failed operation."""

        operations = list(self._operations)
        results = self.execute()
        values: List[Any] = []
        for index, (operation, outcome) in enumerate(zip(operations, results)):
            if outcome.error is not None:
                raise BatchOperationError(index, operation.name, outcome.error)
            values.append(outcome.result)
        return values

    def _queue(self, name: str, *args: Any) -> "Batch":
        self._operations.append(BatchOperation(name=name, args=args))
        return self


class KeyValueBackend(ABC):
    """String-keyed store with hash, set, list and counter primitives.

    All stored values are strings; callers own type coercion.
    """

    name = "abstract"

    @abstractmethod
    def exists(self, key: str) -> bool:
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        ...

    @abstractmethod
    def hash_set(self, key: str, field_or_mapping: HashFields, value: object = None) -> int:
        """Set one field or a mapping of fields; returns the number of new fields."""

    @abstractmethod
    def hash_get_all(self, key: str) -> Dict[str, str]:
        ...

    @abstractmethod
    def hash_increment_by(self, key: str, field: str, delta: int) -> int:
        ...

    @abstractmethod
    def set_add(self, key: str, member: object) -> bool:
        ...

    @abstractmethod
    def set_remove(self, key: str, member: object) -> bool:
        ...

    @abstractmethod
    def set_members(self, key: str) -> Set[str]:
        ...

    @abstractmethod
    def list_push_front(self, key: str, value: object) -> int:
        ...

    @abstractmethod
    def list_range(self, key: str, start: int, stop: int) -> List[str]:
        ...

    @abstractmethod
    def list_trim(self, key: str, start: int, stop: int) -> None:
        ...

    @abstractmethod
    def execute_batch(self, operations: Sequence[BatchOperation]) -> List[BatchResult]:
        ...

    def batch(self) -> Batch:
        return Batch(self)

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        return None


def check_key(key: object) -> str:
    if not isinstance(key, str) or not key.strip():
        raise InvalidKeyError(f"Malformed key: {key!r}")
    return key


def normalize_hash_fields(field_or_mapping: HashFields, value: object = None) -> Dict[str, str]:
    if isinstance(field_or_mapping, Mapping):
        fields = {str(name): _encode_value(item) for name, item in field_or_mapping.items()}
    else:
        if value is None:
            raise StorageError(f"hash_set field {field_or_mapping!r} requires a value")
        fields = {str(field_or_mapping): _encode_value(value)}
    if not fields:
        raise StorageError("hash_set requires at least one field")
    return fields


def _encode_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


__all__ = [
    "BATCHABLE_OPERATIONS",
    "Batch",
    "BatchOperation",
    "BatchResult",
    "HashFields",
    "KeyValueBackend",
    "check_key",
    "normalize_hash_fields",
]
