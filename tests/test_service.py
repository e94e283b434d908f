from __future__ import annotations

import threading
from datetime import date

import pytest

from presence_core.compliance import ComplianceStatus
from presence_core.exceptions import ConfigurationError, StoreClosedError
from presence_core.interfaces import InterfaceInfo
from presence_core.network import NetworkPresenceDetector
from presence_core.poller import Poller
from presence_core.provider import ServiceHandle
from presence_core.service import AttendanceService, build_service
from presence_core.settings import Settings


@pytest.fixture
def service(make_store, fake_network, clock):
    detector = NetworkPresenceDetector(["10.8.1.0/24"], provider=fake_network)
    return AttendanceService(make_store(), detector, clock=clock, threshold=0.5)


def _in_office(fake_network):
    fake_network.nics = [InterfaceInfo("eth0", True, addresses=[("10.8.1.20", "255.255.255.0")])]


def _away(fake_network):
    fake_network.nics = [InterfaceInfo("wlan0", True, addresses=[("192.168.0.20", "255.255.255.0")])]


def test_take_attendance_records_absence(service, fake_network, clock):
    _away(fake_network)

    assert service.take_attendance() is False

    record = service.store.get(clock.today())
    assert record is not None and record.is_office is False
    assert not service.store.is_dirty


def test_take_attendance_records_presence_and_persists(service, fake_network, clock, tmp_path):
    _in_office(fake_network)

    assert service.take_attendance() is True

    assert service.store.get(clock.today()).is_office is True
    assert f"{clock.today():%Y-%m-%d},True,False" in (tmp_path / "attendance.csv").read_text(encoding="utf-8")


def test_presence_is_sticky_within_a_day(service, fake_network, clock):
    _in_office(fake_network)
    service.take_attendance()
    _away(fake_network)
    service.take_attendance()

    assert service.store.get(clock.today()).is_office is True
    assert len(service.store.get_all()) == 1


def test_new_day_starts_absent(service, fake_network, clock):
    _in_office(fake_network)
    service.take_attendance()
    clock.set(date(2025, 1, 16))
    _away(fake_network)
    service.take_attendance()

    assert [(r.date.day, r.is_office) for r in service.store.get_all()] == [(15, True), (16, False)]


def test_current_month_attendance_counts_office_days_only(service):
    store = service.store
    store.upsert(True, date(2024, 12, 30))
    store.upsert(True, date(2025, 1, 2))
    store.upsert(False, date(2025, 1, 3))
    store.upsert(True, date(2025, 1, 6))
    store.upsert(True, date(2025, 1, 7))

    assert service.current_month_attendance() == 3


def test_compliance_status_from_store(service):
    # 11 business days elapsed of 23: rolling target 6, month target 12
    for day in (2, 3, 6, 7, 8, 9):
        service.store.upsert(True, date(2025, 1, day))
    assert service.compliance_status() is ComplianceStatus.COMPLIANT

    service.store.upsert(False, date(2025, 1, 9))
    assert service.compliance_status() is ComplianceStatus.WARNING


def test_summary_reports_plain_data(service):
    service.store.upsert(True, date(2025, 1, 2))

    assert service.summary() == {
        "month": "2025-01",
        "attendance": 1,
        "businessDaysUpToToday": 11,
        "businessDaysInMonth": 23,
        "requiredForMonth": 12,
        "requiredForRolling": 6,
        "status": "Warning",
        "ready": True,
    }


def test_unconfigured_service_is_not_ready(make_store, fake_network, clock):
    _in_office(fake_network)
    detector = NetworkPresenceDetector([], provider=fake_network)
    service = AttendanceService(make_store(), detector, clock=clock)

    assert service.is_ready is False
    assert service.take_attendance() is False
    assert service.store.get(clock.today()).is_office is False


def test_build_service_from_settings(tmp_path, fake_network, clock):
    _in_office(fake_network)
    settings = Settings(
        networks=["10.8.1.0/24"], compliance_threshold=0.4,
        data_file_path=str(tmp_path), data_file_name="days.json",
    )

    service = build_service(settings, clock=clock, provider=fake_network, autosave_interval=0)
    try:
        assert service.take_attendance() is True
        assert service.threshold == 0.4
        assert (tmp_path / "days.json").exists()
    finally:
        service.close()


def test_build_service_rejects_bad_networks_before_touching_disk(tmp_path, fake_network):
    settings = Settings(networks=["10.8.1.0/40"], data_file_path=str(tmp_path))

    with pytest.raises(ConfigurationError):
        build_service(settings, provider=fake_network, autosave_interval=0)
    assert not (tmp_path / "attendance.csv").exists()


def _handle(tmp_path, fake_network, clock):
    settings = Settings(networks=["10.8.1.0/24"], data_file_path=str(tmp_path))
    return ServiceHandle(
        settings,
        factory=lambda s: build_service(s, clock=clock, provider=fake_network, autosave_interval=0),
    )


def test_replaced_service_cannot_write_stale_records(tmp_path, fake_network, clock):
    handle = _handle(tmp_path, fake_network, clock)
    old = handle()
    old.take_attendance()
    handle.replace(Settings(networks=["10.8.1.0/24"], data_file_path=str(tmp_path)))
    before = (tmp_path / "attendance.csv").read_text(encoding="utf-8")

    _in_office(fake_network)
    with pytest.raises(StoreClosedError):
        old.take_attendance()

    assert (tmp_path / "attendance.csv").read_text(encoding="utf-8") == before
    handle.close()


class _GatedNetwork:
    """Network facts whose interface scan blocks until released."""

    def __init__(self):
        self.nics = []
        self.entered = threading.Event()
        self.release = threading.Event()

    def host_name(self):
        return "workstation"

    def host_addresses(self, host_name):
        return []

    def interfaces(self):
        self.entered.set()
        assert self.release.wait(5)
        return list(self.nics)


def test_swap_waits_for_cycle_in_flight(tmp_path, clock):
    network = _GatedNetwork()
    _in_office(network)
    handle = _handle(tmp_path, network, clock)
    poller = Poller(handle, interval_ms=60_000)

    cycle = threading.Thread(target=poller.poll_once)
    cycle.start()
    assert network.entered.wait(5)

    swap = threading.Thread(
        target=handle.replace,
        args=(Settings(networks=["10.8.1.0/24"], data_file_path=str(tmp_path)),),
    )
    swap.start()
    swap.join(0.2)
    assert swap.is_alive()

    network.release.set()
    cycle.join(5)
    swap.join(5)

    # The new store loaded the file after the cycle wrote today's presence.
    assert handle.current.store.get(clock.today()).is_office is True
    clock.set(date(2025, 1, 16))
    _away(network)
    handle.current.take_attendance()
    assert "2025-01-15,True,False" in (tmp_path / "attendance.csv").read_text(encoding="utf-8")
    handle.close()
