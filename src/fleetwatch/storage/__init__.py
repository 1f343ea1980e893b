"""Key-value backend drivers."""

from fleetwatch.storage.base import Batch, BatchResult, KeyValueBackend
from fleetwatch.storage.handle import BackendHandle, open_backend
from fleetwatch.storage.memory import MemoryBackend
from fleetwatch.storage.redis_backend import RedisBackend

__all__ = [
    "BackendHandle",
    "Batch",
    "BatchResult",
    "KeyValueBackend",
    "MemoryBackend",
    "RedisBackend",
    "open_backend",
]
