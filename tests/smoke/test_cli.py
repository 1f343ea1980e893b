from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from fleetwatch.cli import fleet, simulate


def _config(tmp_path: Path) -> str:
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.safe_dump({"config_version": "smoke", "simulation": {"seed": 11}, "demo": {"with_history": True}}),
        encoding="utf-8",
    )
    return str(path)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("FLEETWATCH_CONFIG", "REDIS_URL", "REDIS_HOST", "REDIS_PASSWORD"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(Path(__file__).resolve().parent)


def test_fleet_stats_prints_json(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert fleet.main(["--config", _config(tmp_path), "stats"]) == 0

    body = json.loads(capsys.readouterr().out)
    assert body["totalDevices"] == 5
    assert body["dataPointsLabel"] == "720"


def test_fleet_reports_missing_device_on_stderr(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert fleet.main(["--config", _config(tmp_path), "device", "42"]) == 1

    captured = capsys.readouterr()
    assert json.loads(captured.err) == {"message": "Device not found"}


def test_fleet_telemetry_for_one_device(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert fleet.main(["--config", _config(tmp_path), "telemetry", "--device", "1", "--hours", "6"]) == 0

    samples = json.loads(capsys.readouterr().out)
    assert 1 <= len(samples) <= 7
    assert {sample["deviceId"] for sample in samples} == {1}


def test_simulate_runs_fixed_ticks(tmp_path: Path) -> None:
    assert simulate.main(["--config", _config(tmp_path), "--ticks", "2", "--seed", "3"]) == 0


def test_simulate_rejects_bad_arguments(tmp_path: Path) -> None:
    with pytest.raises(SystemExit):
        simulate.main(["--config", _config(tmp_path), "--ticks", "-1"])
