from __future__ import annotations

import threading

import pytest

from fleetwatch.errors import BatchOperationError, InvalidKeyError, StorageError, WrongTypeError
from fleetwatch.storage.memory import MemoryBackend


def test_hash_roundtrip_and_absent_key() -> None:
    backend = MemoryBackend()
    assert backend.hash_get_all("device:1") == {}

    added = backend.hash_set("device:1", {"name": "Pump", "enabled": True, "count": 3})
    assert added == 3
    assert backend.hash_set("device:1", "name", "Pump 2") == 0
    assert backend.hash_get_all("device:1") == {"name": "Pump 2", "enabled": "true", "count": "3"}
    assert backend.exists("device:1")


def test_delete_reports_whether_something_was_removed() -> None:
    backend = MemoryBackend()
    backend.set_add("devices:all", 1)
    assert backend.delete("devices:all") is True
    assert backend.delete("devices:all") is False
    assert not backend.exists("devices:all")


def test_set_membership_semantics() -> None:
    backend = MemoryBackend()
    assert backend.set_add("devices:all", 1) is True
    assert backend.set_add("devices:all", "1") is False
    assert backend.set_add("devices:all", 2) is True
    assert backend.set_members("devices:all") == {"1", "2"}

    assert backend.set_remove("devices:all", 1) is True
    assert backend.set_remove("devices:all", 1) is False
    backend.set_remove("devices:all", 2)
    # empty containers disappear like on the remote store
    assert not backend.exists("devices:all")


def test_list_push_range_and_trim_use_inclusive_bounds() -> None:
    backend = MemoryBackend()
    for value in range(1, 6):
        length = backend.list_push_front("telemetry:device:1", value)
    assert length == 5
    assert backend.list_range("telemetry:device:1", 0, -1) == ["5", "4", "3", "2", "1"]
    assert backend.list_range("telemetry:device:1", 0, 1) == ["5", "4"]
    assert backend.list_range("telemetry:device:1", -2, -1) == ["2", "1"]
    assert backend.list_range("telemetry:device:1", 3, 100) == ["2", "1"]
    assert backend.list_range("telemetry:device:1", 10, -1) == []

    backend.list_trim("telemetry:device:1", 0, 2)
    assert backend.list_range("telemetry:device:1", 0, -1) == ["5", "4", "3"]

    backend.list_trim("telemetry:device:1", 5, -1)
    assert not backend.exists("telemetry:device:1")


def test_increment_is_atomic_across_threads() -> None:
    backend = MemoryBackend()
    seen: list[int] = []
    lock = threading.Lock()

    def _worker() -> None:
        for _ in range(200):
            value = backend.hash_increment_by("counters", "deviceId", 1)
            with lock:
                seen.append(value)

    threads = [threading.Thread(target=_worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(seen) == list(range(1, 1601))
    assert backend.hash_get_all("counters") == {"deviceId": "1600"}


def test_wrong_kind_and_malformed_keys_raise() -> None:
    backend = MemoryBackend()
    backend.set_add("devices:all", 1)
    with pytest.raises(WrongTypeError):
        backend.hash_get_all("devices:all")
    with pytest.raises(InvalidKeyError):
        backend.exists("  ")
    with pytest.raises(InvalidKeyError):
        backend.set_members(None)  # type: ignore[arg-type]

    backend.hash_set("counters", "deviceId", "abc")
    with pytest.raises(StorageError):
        backend.hash_increment_by("counters", "deviceId", 1)


def test_batch_isolates_failing_operations() -> None:
    backend = MemoryBackend()
    backend.set_add("devices:all", 1)

    results = (
        backend.batch()
        .hash_set("device:1", {"name": "Pump"})
        .hash_get_all("devices:all")
        .set_members("devices:all")
        .execute()
    )

    assert [outcome.ok for outcome in results] == [True, False, True]
    assert isinstance(results[1].error, WrongTypeError)
    assert results[2].result == {"1"}
    assert backend.hash_get_all("device:1") == {"name": "Pump"}


def test_batch_isolates_non_storage_failures() -> None:
    backend = MemoryBackend()
    backend.list_push_front("telemetry:device:1", 5)

    results = (
        backend.batch()
        .set_add("devices:all", 1)
        .hash_increment_by("counters", "deviceId", "x")
        .list_range("telemetry:device:1", None, -1)
        .set_add("devices:all", 2)
        .execute()
    )

    assert len(results) == 4
    assert [outcome.ok for outcome in results] == [True, False, False, True]
    assert isinstance(results[1].error, StorageError)
    assert isinstance(results[1].error.__cause__, ValueError)
    assert isinstance(results[2].error, StorageError)
    assert results[0].result is True and results[3].result is True
    assert backend.set_members("devices:all") == {"1", "2"}


def test_execute_strict_raises_with_operation_index() -> None:
    backend = MemoryBackend()
    backend.list_push_front("alerts:all", 1)
    batch = backend.batch().set_add("alerts:all", 2).delete("device:9")
    batch.hash_set("device:9", {"name": "x"})

    with pytest.raises(BatchOperationError) as exc:
        batch.execute_strict()

    assert exc.value.index == 0
    assert exc.value.operation == "set_add"
    # the later, independent operation still ran
    assert backend.hash_get_all("device:9") == {"name": "x"}


def test_empty_batch_returns_no_results() -> None:
    assert MemoryBackend().batch().execute() == []
