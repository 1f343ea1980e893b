"""Networked driver backed by a Redis server."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Set, TypeVar
from urllib.parse import urlsplit, urlunsplit

import redis

from fleetwatch.errors import BackendUnavailable, StorageError, WrongTypeError
from fleetwatch.storage.base import (
    BATCHABLE_OPERATIONS,
    BatchOperation,
    BatchResult,
    HashFields,
    KeyValueBackend,
    check_key,
    normalize_hash_fields,
)

LOGGER = logging.getLogger(__name__)

_R = TypeVar("_R")

_CONVERTERS: Dict[str, Callable[[Any], Any]] = {
    "exists": lambda raw: int(raw) > 0,
    "delete": lambda raw: int(raw) > 0,
    "hash_set": int,
    "hash_get_all": lambda raw: dict(raw or {}),
    "hash_increment_by": int,
    "set_add": lambda raw: int(raw) == 1,
    "set_remove": lambda raw: int(raw) == 1,
    "set_members": lambda raw: set(raw or ()),
    "list_push_front": int,
    "list_range": lambda raw: list(raw or ()),
    "list_trim": lambda raw: None,
}


class RedisBackend(KeyValueBackend):
    """Maps the backend contract onto redis-py commands.

    Connection failures and timeouts surface as ``BackendUnavailable`` so the
    owning handle can fall back to the in-memory driver.
    """

    name = "redis"

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        connect_timeout_ms: int = 5000,
        command_timeout_ms: int = 3000,
    ) -> "RedisBackend":
        client = redis.Redis.from_url(
            url,
            socket_connect_timeout=max(connect_timeout_ms, 1) / 1000.0,
            socket_timeout=max(command_timeout_ms, 1) / 1000.0,
            decode_responses=True,
            retry_on_timeout=False,
        )
        return cls(client)

    def ping(self) -> bool:
        return bool(self._guard(self._client.ping))

    def close(self) -> None:
        try:
            self._client.close()
        except redis.RedisError as exc:
            LOGGER.debug("Ignoring error while closing Redis client: %s", exc)

    def exists(self, key: str) -> bool:
        return self._run("exists", key)

    def delete(self, key: str) -> bool:
        return self._run("delete", key)

    def hash_set(self, key: str, field_or_mapping: HashFields, value: object = None) -> int:
        return self._run("hash_set", key, field_or_mapping, value)

    def hash_get_all(self, key: str) -> Dict[str, str]:
        return self._run("hash_get_all", key)

    def hash_increment_by(self, key: str, field: str, delta: int) -> int:
        return self._run("hash_increment_by", key, field, delta)

    def set_add(self, key: str, member: object) -> bool:
        return self._run("set_add", key, member)

    def set_remove(self, key: str, member: object) -> bool:
        return self._run("set_remove", key, member)

    def set_members(self, key: str) -> Set[str]:
        return self._run("set_members", key)

    def list_push_front(self, key: str, value: object) -> int:
        return self._run("list_push_front", key, value)

    def list_range(self, key: str, start: int, stop: int) -> List[str]:
        return self._run("list_range", key, start, stop)

    def list_trim(self, key: str, start: int, stop: int) -> None:
        self._run("list_trim", key, start, stop)

    def execute_batch(self, operations: Sequence[BatchOperation]) -> List[BatchResult]:
        pipeline = self._client.pipeline(transaction=False)
        results: List[Optional[BatchResult]] = []
        queued: List[int] = []
        for index, operation in enumerate(operations):
            try:
                if operation.name not in BATCHABLE_OPERATIONS:
                    raise StorageError(f"Unsupported batch operation: {operation.name}")
                _issue(pipeline, operation.name, operation.args)
            except (StorageError, redis.RedisError, TypeError, ValueError) as exc:
                results.append(BatchResult(_translate(exc), None))
                continue
            results.append(None)
            queued.append(index)

        if queued:
            raw_results = self._guard(lambda: pipeline.execute(raise_on_error=False))
            for index, raw in zip(queued, raw_results):
                if isinstance(raw, Exception):
                    results[index] = BatchResult(_translate(raw), None)
                else:
                    results[index] = BatchResult(None, _CONVERTERS[operations[index].name](raw))
        return [result for result in results if result is not None]

    def _run(self, name: str, *args: Any) -> Any:
        raw = self._guard(lambda: _issue(self._client, name, args))
        return _CONVERTERS[name](raw)

    def _guard(self, call: Callable[[], _R]) -> _R:
        try:
            return call()
        except redis.RedisError as exc:
            raise _translate(exc) from exc


def _issue(target: Any, name: str, args: Sequence[Any]) -> Any:
    """Send one contract operation to a client or pipeline."""

    key = check_key(args[0])
    if name == "exists":
        return target.exists(key)
    if name == "delete":
        return target.delete(key)
    if name == "hash_set":
        return target.hset(key, mapping=normalize_hash_fields(*args[1:]))
    if name == "hash_get_all":
        return target.hgetall(key)
    if name == "hash_increment_by":
        return target.hincrby(key, args[1], int(args[2]))
    if name == "set_add":
        return target.sadd(key, str(args[1]))
    if name == "set_remove":
        return target.srem(key, str(args[1]))
    if name == "set_members":
        return target.smembers(key)
    if name == "list_push_front":
        return target.lpush(key, str(args[1]))
    if name == "list_range":
        return target.lrange(key, int(args[1]), int(args[2]))
    if name == "list_trim":
        return target.ltrim(key, int(args[1]), int(args[2]))
    raise StorageError(f"Unsupported operation: {name}")


def _translate(exc: BaseException) -> StorageError:
    if isinstance(exc, StorageError):
        return exc
    if isinstance(exc, (redis.ConnectionError, redis.TimeoutError)):
        return BackendUnavailable(f"{exc.__class__.__name__}: {exc}")
    message = str(exc)
    if message.startswith("WRONGTYPE"):
        return WrongTypeError(message)
    return StorageError(f"{exc.__class__.__name__}: {message}")


def redact_url(url: str) -> str:
    """Hide credentials before a backend URL reaches the logs."""

    parts = urlsplit(url)
    if parts.password is None:
        return url
    host = parts.hostname or ""
    if parts.port is not None:
        host = f"{host}:{parts.port}"
    user = parts.username or ""
    netloc = f"{user}:***@{host}" if user else f":***@{host}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


__all__ = ["RedisBackend", "redact_url"]
