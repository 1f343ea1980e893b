from __future__ import annotations

from fleetwatch.app import build_app
from fleetwatch.config.loader import default_config
from fleetwatch.config.settings import Settings
from fleetwatch.storage.handle import open_backend
from fleetwatch.storage.memory import MemoryBackend

# nothing listens on the discard port, so connects are refused immediately
UNREACHABLE_URL = "redis://127.0.0.1:9/0"


def test_unreachable_redis_falls_back_to_memory(caplog) -> None:
    with caplog.at_level("WARNING"):
        handle = open_backend(UNREACHABLE_URL, connect_timeout_ms=200, command_timeout_ms=200)

    assert isinstance(handle.backend, MemoryBackend)
    assert handle.degraded
    assert "using in-memory storage" in caplog.text
    assert handle.hash_increment_by("counters", "devices", 1) == 1


def test_app_boots_seeded_without_redis() -> None:
    settings = Settings(_env_file=None, REDIS_URL=UNREACHABLE_URL, REDIS_HOST=None)
    app = build_app(default_config(), settings)
    try:
        assert app.backend.degraded
        response = app.dashboard.call("stats")
        assert response.status_code == 200
        assert response.body["totalDevices"] == 5
        report = app.engine.tick()
        assert report.sampled == 4
        assert report.skipped == 1
    finally:
        app.stop()
