"""In-process emulation of the networked key-value store."""

from __future__ import annotations

import threading
from typing import Dict, List, Sequence, Set, Tuple, Type, TypeVar, Union

from fleetwatch.errors import StorageError, WrongTypeError
from fleetwatch.storage.base import (
    BATCHABLE_OPERATIONS,
    BatchOperation,
    BatchResult,
    HashFields,
    KeyValueBackend,
    check_key,
    normalize_hash_fields,
)

_Value = Union[Dict[str, str], Set[str], List[str]]
_T = TypeVar("_T", dict, set, list)

_KIND_NAMES = {dict: "hash", set: "set", list: "list"}


class MemoryBackend(KeyValueBackend):
    """Dictionary-backed driver with the same observable behavior as the remote store.

    Every key holds exactly one kind of value (hash, set or list). Empty
    containers are removed, as the remote store does. A single re-entrant lock
    makes each operation atomic, including ``hash_increment_by``.
    """

    name = "memory"

    def __init__(self) -> None:
        self._data: Dict[str, _Value] = {}
        self._lock = threading.RLock()

    def exists(self, key: str) -> bool:
        check_key(key)
        with self._lock:
            return key in self._data

    def delete(self, key: str) -> bool:
        check_key(key)
        with self._lock:
            return self._data.pop(key, None) is not None

    def hash_set(self, key: str, field_or_mapping: HashFields, value: object = None) -> int:
        check_key(key)
        fields = normalize_hash_fields(field_or_mapping, value)
        with self._lock:
            target = self._container(key, dict, create=True)
            added = sum(1 for name in fields if name not in target)
            target.update(fields)
            return added

    def hash_get_all(self, key: str) -> Dict[str, str]:
        check_key(key)
        with self._lock:
            target = self._container(key, dict)
            return dict(target) if target is not None else {}

    def hash_increment_by(self, key: str, field: str, delta: int) -> int:
        check_key(key)
        with self._lock:
            target = self._container(key, dict, create=True)
            raw = target.get(field, "0")
            try:
                current = int(raw)
            except ValueError as exc:
                raise StorageError(f"hash value at {key}.{field} is not an integer") from exc
            updated = current + int(delta)
            target[field] = str(updated)
            return updated

    def set_add(self, key: str, member: object) -> bool:
        check_key(key)
        with self._lock:
            target = self._container(key, set, create=True)
            encoded = str(member)
            if encoded in target:
                return False
            target.add(encoded)
            return True

    def set_remove(self, key: str, member: object) -> bool:
        check_key(key)
        with self._lock:
            target = self._container(key, set)
            encoded = str(member)
            if target is None or encoded not in target:
                return False
            target.discard(encoded)
            if not target:
                del self._data[key]
            return True

    def set_members(self, key: str) -> Set[str]:
        check_key(key)
        with self._lock:
            target = self._container(key, set)
            return set(target) if target is not None else set()

    def list_push_front(self, key: str, value: object) -> int:
        check_key(key)
        with self._lock:
            target = self._container(key, list, create=True)
            target.insert(0, str(value))
            return len(target)

    def list_range(self, key: str, start: int, stop: int) -> List[str]:
        check_key(key)
        with self._lock:
            target = self._container(key, list)
            if target is None:
                return []
            begin, end = _inclusive_bounds(len(target), start, stop)
            return target[begin:end]

    def list_trim(self, key: str, start: int, stop: int) -> None:
        check_key(key)
        with self._lock:
            target = self._container(key, list)
            if target is None:
                return
            begin, end = _inclusive_bounds(len(target), start, stop)
            kept = target[begin:end]
            if kept:
                self._data[key] = kept
            else:
                del self._data[key]

    def execute_batch(self, operations: Sequence[BatchOperation]) -> List[BatchResult]:
        results: List[BatchResult] = []
        with self._lock:
            for operation in operations:
                if operation.name not in BATCHABLE_OPERATIONS:
                    results.append(BatchResult(StorageError(f"Unsupported batch operation: {operation.name}"), None))
                    continue
                try:
                    outcome = getattr(self, operation.name)(*operation.args)
                except StorageError as exc:
                    results.append(BatchResult(exc, None))
                except Exception as exc:  # pylint: disable=broad-exception-caught
                    error = StorageError(f"{operation.name} failed: {exc.__class__.__name__}: {exc}")
                    error.__cause__ = exc
                    results.append(BatchResult(error, None))
                else:
                    results.append(BatchResult(None, outcome))
        return results

    def _container(self, key: str, kind: Type[_T], *, create: bool = False):
        current = self._data.get(key)
        if current is None:
            if not create:
                return None
            current = kind()
            self._data[key] = current
            return current
        if not isinstance(current, kind):
            raise WrongTypeError(
                f"WRONGTYPE key {key} holds a {_KIND_NAMES[type(current)]}, not a {_KIND_NAMES[kind]}"
            )
        return current


def _inclusive_bounds(length: int, start: int, stop: int) -> Tuple[int, int]:
    """Translate inclusive start/stop (negative counts from the end) to slice bounds."""

    if start < 0:
        start = max(length + start, 0)
    if stop < 0:
        stop = length + stop
    stop = min(stop, length - 1)
    if start > stop or start >= length:
        return 0, 0
    return start, stop + 1


__all__ = ["MemoryBackend"]
