"""
AttendanceService — one poll cycle plus the monthly numbers built on it.

Ties together the record store, the presence detector and the clock.
build_service() wires all three from a Settings snapshot.
"""

from .clock import SystemClock
from .compliance import (
    business_days_in_month, business_days_up_to, evaluate, required_days,
)
from .config import log
from .network import NetworkPresenceDetector
from .store import RecordStore


class AttendanceService:

    def __init__(self, store, detector, clock=None, threshold=0.5):
        self.store = store
        self.detector = detector
        self.clock = clock or SystemClock()
        self.threshold = threshold

    @property
    def is_ready(self) -> bool:
        """False while no office networks are configured."""
        return self.detector.is_configured()

    def check_attendance(self) -> bool:
        return self.detector.is_present()

    def take_attendance(self) -> bool:
        """Sample presence once and persist today's record."""
        today = self.clock.today()
        if self.store.get(today) is None:
            log.info("Saving first record for %s", today)
            self.store.upsert(False, today)

        present = self.check_attendance()
        if present:
            log.info("Detected in office")
        else:
            log.info("Not detected in office now")

        record = self.store.set_present(today, present)
        self.store.flush()
        log.debug("Record for %s: is_office=%s", record.date, record.is_office)
        return present

    # ─── Monthly figures ──────────────────────────────────────

    def current_month_attendance(self) -> int:
        return sum(1 for r in self.store.get_month(self.clock.today()) if r.is_office)

    def business_days_in_month(self) -> int:
        return business_days_in_month(self.clock.today())

    def business_days_up_to_today(self) -> int:
        return business_days_up_to(self.clock.today())

    def compliance_status(self):
        return evaluate(
            self.current_month_attendance(),
            self.business_days_up_to_today(),
            self.business_days_in_month(),
            self.threshold,
        )

    def summary(self):
        """Plain-data snapshot for whoever displays status."""
        today = self.clock.today()
        total = self.business_days_in_month()
        elapsed = self.business_days_up_to_today()
        return {
            "month": today.strftime("%Y-%m"),
            "attendance": self.current_month_attendance(),
            "businessDaysUpToToday": elapsed,
            "businessDaysInMonth": total,
            "requiredForMonth": required_days(total, self.threshold),
            "requiredForRolling": required_days(elapsed, self.threshold),
            "status": self.compliance_status().value,
            "ready": self.is_ready,
        }

    # ─── Lifecycle ────────────────────────────────────────────

    def reload(self):
        self.store.reload()

    def close(self):
        self.store.close()


def build_service(settings, clock=None, provider=None, autosave_interval=None):
    """Create and initialize store, detector and service from settings.

    Configuration problems raise before the store touches the disk.
    """
    clock = clock or SystemClock()
    detector = NetworkPresenceDetector(settings.networks, provider=provider)

    kwargs = {}
    if autosave_interval is not None:
        kwargs["autosave_interval"] = autosave_interval
    store = RecordStore(settings.data_file, clock=clock, **kwargs)
    store.initialize()

    log.info(
        "Attendance service built (networks=%d, threshold=%.2f, file=%s)",
        len(detector.networks), settings.compliance_threshold, settings.data_file,
    )
    return AttendanceService(store, detector, clock=clock, threshold=settings.compliance_threshold)
