from __future__ import annotations

import json
from datetime import date

import pytest

from presence_core import runner
from presence_core.interfaces import InterfaceInfo
from presence_core.poller import Poller
from presence_core.provider import ServiceHandle
from presence_core.runner import count_office_days, main, reload_settings, settings_listener
from presence_core.service import build_service
from presence_core.settings import SettingsManager

CSV_DATA = (
    "Date,IsOffice,IsDayOff\n"
    "2024-12-31,True,False\n"
    "2025-01-02,True,False\n"
    "2025-01-03,False,False\n"
    "2025-01-06,True,False\n"
    "2025-01-06,False,False\n"
    "2025-01-07,True,False\n"
)


@pytest.fixture
def data_file(tmp_path):
    path = tmp_path / "attendance.csv"
    path.write_text(CSV_DATA, encoding="utf-8")
    return path


def test_count_office_days_for_month(data_file):
    # The later 2025-01-06 row wins, so only the 2nd and 7th count
    assert count_office_days(data_file, date(2025, 1, 1)) == 2
    assert count_office_days(data_file, date(2024, 12, 1)) == 1
    assert count_office_days(data_file, date(2025, 2, 1)) == 0


def test_count_command_prints_total(data_file, capsys):
    assert main(["count", str(data_file), "2025-01"]) == 0
    assert capsys.readouterr().out.strip() == "2"


def test_count_command_rejects_bad_month(data_file):
    with pytest.raises(SystemExit) as exc:
        main(["count", str(data_file), "January"])
    assert exc.value.code == 2


def test_count_missing_file_is_an_error(tmp_path, capsys):
    assert main(["count", str(tmp_path / "missing.csv"), "2025-01"]) == 1
    assert "Error" in capsys.readouterr().err


def test_count_malformed_file_is_an_error(tmp_path, capsys):
    path = tmp_path / "bad.csv"
    path.write_text("Date,IsOffice,IsDayOff\nyesterday,True,False\n", encoding="utf-8")

    assert main(["count", str(path), "2025-01"]) == 1
    assert "Malformed" in capsys.readouterr().err


def test_convert_csv_to_json(data_file, tmp_path, capsys):
    target = tmp_path / "attendance.json"

    assert main(["convert", str(data_file), str(target)]) == 0

    rows = json.loads(target.read_text(encoding="utf-8"))
    assert [r["Date"] for r in rows] == ["2024-12-31", "2025-01-02", "2025-01-03", "2025-01-06", "2025-01-07"]
    assert rows[3] == {"Date": "2025-01-06", "IsOffice": False, "IsDayOff": False}
    assert "Wrote 5 records" in capsys.readouterr().out


def test_convert_to_unsupported_extension_fails(data_file, tmp_path, capsys):
    target = tmp_path / "attendance.xlsx"

    assert main(["convert", str(data_file), str(target)]) == 1
    assert not target.exists()
    assert ".xlsx" in capsys.readouterr().err


def test_discover_prints_candidates(monkeypatch, capsys):
    monkeypatch.setattr(runner, "discover_candidates", lambda: ["10.8.1.0/24", "172.16.0.0/16"])

    assert main(["discover"]) == 0
    assert capsys.readouterr().out.split() == ["10.8.1.0/24", "172.16.0.0/16"]


def test_discover_with_no_networks(monkeypatch, capsys):
    monkeypatch.setattr(runner, "discover_candidates", lambda: [])

    assert main(["discover"]) == 1
    assert "No active IPv4 networks" in capsys.readouterr().out


def test_status_with_invalid_settings_exits_with_error(tmp_path, capsys):
    settings = tmp_path / "user-settings.json"
    settings.write_text(json.dumps({"networks": ["10.8.1.0/33"]}), encoding="utf-8")

    assert main(["--settings", str(settings), "status"]) == 1
    assert "10.8.1.0/33" in capsys.readouterr().err


def test_run_exits_when_worker_disabled(tmp_path, monkeypatch):
    settings = tmp_path / "user-settings.json"
    settings.write_text(json.dumps({"enableBackgroundWorker": False}), encoding="utf-8")
    monkeypatch.setattr(runner, "configure_logging", lambda: None)
    monkeypatch.setattr(runner, "ensure_single_instance", lambda: True)

    assert main(["--settings", str(settings), "run"]) == 0


@pytest.fixture
def running(tmp_path, fake_network, clock):
    """Settings file, manager, handle and poller wired the way `run` wires them."""
    path = tmp_path / "user-settings.json"
    base = {
        "networks": ["10.8.1.0/24"], "pollIntervalMs": 60000,
        "dataFilePath": str(tmp_path), "dataFileName": "a.csv",
    }
    path.write_text(json.dumps(base), encoding="utf-8")
    manager = SettingsManager(path)
    handle = ServiceHandle(
        manager.current,
        factory=lambda s: build_service(s, clock=clock, provider=fake_network, autosave_interval=0),
    )
    poller = Poller(handle, manager.current.poll_interval_ms)
    manager.subscribe(settings_listener(handle, poller))

    def change(**values):
        path.write_text(json.dumps(dict(base, **values)), encoding="utf-8")

    yield manager, handle, poller, change
    handle.close()


def test_reload_applies_new_settings(running, tmp_path):
    manager, handle, poller, change = running
    change(dataFileName="b.json", pollIntervalMs=1000)

    assert reload_settings(manager) is True

    assert handle.current.store.path == tmp_path / "b.json"
    assert poller.interval_ms == 1000
    assert manager.current.data_file_name == "b.json"


def test_reload_pointing_at_malformed_data_file_keeps_previous_service(running, tmp_path, fake_network):
    manager, handle, poller, change = running
    before = handle.current
    (tmp_path / "b.csv").write_text("Date,IsOffice,IsDayOff\nnot-a-date,True,False\n", encoding="utf-8")
    change(dataFileName="b.csv", pollIntervalMs=1000)

    assert reload_settings(manager) is False

    assert handle.current is before
    assert manager.current.data_file_name == "a.csv"
    assert poller.interval_ms == 60000
    fake_network.nics = [InterfaceInfo("eth0", True, addresses=[("10.8.1.20", "255.255.255.0")])]
    assert poller.poll_once() is True
    assert "2025-01-15,True,False" in (tmp_path / "a.csv").read_text(encoding="utf-8")


def test_reload_with_unwritable_data_directory_keeps_previous_service(running, tmp_path):
    manager, handle, poller, change = running
    before = handle.current
    # A regular file where the data directory should be
    change(dataFilePath=str(tmp_path / "a.csv"))

    assert reload_settings(manager) is False

    assert handle.current is before
    assert manager.current.data_file_path == str(tmp_path)
