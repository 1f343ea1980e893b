"""Single indirection point that owns the active backend driver."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Sequence, Set

from fleetwatch.errors import BackendUnavailable
from fleetwatch.storage.base import BatchOperation, BatchResult, HashFields, KeyValueBackend
from fleetwatch.storage.memory import MemoryBackend
from fleetwatch.storage.redis_backend import RedisBackend, redact_url

LOGGER = logging.getLogger(__name__)

DegradeCallback = Callable[["BackendHandle"], None]


class BackendHandle(KeyValueBackend):
    """Delegates every call to the current driver and degrades it at most once.

    When the networked driver raises ``BackendUnavailable`` the handle swaps
    in a fresh in-memory driver for the rest of the process lifetime and
    retries the failed call there, so callers never observe the outage.
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        *,
        fallback_factory: Callable[[], KeyValueBackend] = MemoryBackend,
        on_degrade: Optional[DegradeCallback] = None,
        degraded_reason: Optional[str] = None,
    ) -> None:
        self._backend = backend
        self._fallback_factory = fallback_factory
        self._on_degrade = on_degrade
        self._lock = threading.Lock()
        self._degraded = degraded_reason is not None
        self._degrade_reason = degraded_reason

    @property
    def name(self) -> str:  # type: ignore[override]
        return self._backend.name

    @property
    def backend(self) -> KeyValueBackend:
        return self._backend

    @property
    def degraded(self) -> bool:
        return self._degraded

    @property
    def degrade_reason(self) -> Optional[str]:
        return self._degrade_reason

    def set_degrade_callback(self, callback: Optional[DegradeCallback]) -> None:
        self._on_degrade = callback

    def degrade(self, failed: KeyValueBackend, reason: str) -> KeyValueBackend:
        """Replace ``failed`` with the fallback driver unless another caller already did."""

        with self._lock:
            if self._backend is not failed or self._degraded:
                return self._backend
            replacement = self._fallback_factory()
            self._backend = replacement
            self._degraded = True
            self._degrade_reason = reason
        LOGGER.warning(
            "Backend %s unavailable (%s); continuing on ephemeral %s store",
            failed.name,
            reason,
            replacement.name,
        )
        failed.close()
        if self._on_degrade is not None:
            self._on_degrade(self)
        return replacement

    def ping(self) -> bool:
        return self._call("ping")

    def close(self) -> None:
        self._backend.close()

    def exists(self, key: str) -> bool:
        return self._call("exists", key)

    def delete(self, key: str) -> bool:
        return self._call("delete", key)

    def hash_set(self, key: str, field_or_mapping: HashFields, value: object = None) -> int:
        return self._call("hash_set", key, field_or_mapping, value)

    def hash_get_all(self, key: str) -> Dict[str, str]:
        return self._call("hash_get_all", key)

    def hash_increment_by(self, key: str, field: str, delta: int) -> int:
        return self._call("hash_increment_by", key, field, delta)

    def set_add(self, key: str, member: object) -> bool:
        return self._call("set_add", key, member)

    def set_remove(self, key: str, member: object) -> bool:
        return self._call("set_remove", key, member)

    def set_members(self, key: str) -> Set[str]:
        return self._call("set_members", key)

    def list_push_front(self, key: str, value: object) -> int:
        return self._call("list_push_front", key, value)

    def list_range(self, key: str, start: int, stop: int) -> List[str]:
        return self._call("list_range", key, start, stop)

    def list_trim(self, key: str, start: int, stop: int) -> None:
        self._call("list_trim", key, start, stop)

    def execute_batch(self, operations: Sequence[BatchOperation]) -> List[BatchResult]:
        return self._call("execute_batch", operations)

    def _call(self, name: str, *args: Any) -> Any:
        backend = self._backend
        try:
            return getattr(backend, name)(*args)
        except BackendUnavailable as exc:
            replacement = self.degrade(backend, str(exc))
            if replacement is backend:
                raise
            return getattr(replacement, name)(*args)


def open_backend(
    url: Optional[str],
    *,
    connect_timeout_ms: int = 5000,
    command_timeout_ms: int = 3000,
    on_degrade: Optional[DegradeCallback] = None,
) -> BackendHandle:
    """Select the driver once at startup: Redis when reachable, otherwise in-memory."""

    if not url:
        LOGGER.info("No backend URL configured; using in-memory storage")
        return BackendHandle(MemoryBackend(), on_degrade=on_degrade)

    safe_url = redact_url(url)
    try:
        backend = RedisBackend.from_url(
            url,
            connect_timeout_ms=connect_timeout_ms,
            command_timeout_ms=command_timeout_ms,
        )
        backend.ping()
    except (BackendUnavailable, ValueError) as exc:
        LOGGER.warning("Redis at %s unavailable (%s); using in-memory storage", safe_url, exc)
        return BackendHandle(MemoryBackend(), on_degrade=on_degrade, degraded_reason=str(exc))

    LOGGER.info("Connected to Redis at %s", safe_url)
    return BackendHandle(backend, on_degrade=on_degrade)


__all__ = ["BackendHandle", "DegradeCallback", "open_backend"]
