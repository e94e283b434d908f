"""
Poller — takes attendance on a fixed cadence in a background thread.

The wait between cycles ends early for two reasons:
  stop()            → the loop exits (always wins)
  update_interval() → the loop runs a cycle right away, then waits with
                      the new interval

A failing cycle is logged and followed by POLL_ERROR_BACKOFF_SEC of quiet
before the next attempt; it never ends the loop.
"""

import threading

from .config import log
from .constants import POLL_ERROR_BACKOFF_SEC


class Poller:

    def __init__(self, service_source, interval_ms, backoff_sec=POLL_ERROR_BACKOFF_SEC):
        """
        Args:
            service_source: zero-arg callable returning the current
                AttendanceService. A ServiceHandle is held through its
                lease() for the whole cycle.
            interval_ms: time between cycles.
        """
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        self._service_source = service_source
        self._interval_ms = interval_ms
        self._backoff_sec = backoff_sec

        self._cond = threading.Condition()
        self._stopped = False
        self._interval_changed = False
        self._thread = None
        self.cycles = 0
        self.failures = 0

    @property
    def interval_ms(self):
        with self._cond:
            return self._interval_ms

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # ─── Control ──────────────────────────────────────────────

    def start(self):
        with self._cond:
            if self.is_running:
                return
            self._stopped = False
            self._thread = threading.Thread(target=self.run, name="attendance-poller", daemon=True)
            self._thread.start()

    def stop(self, timeout=None):
        with self._cond:
            self._stopped = True
            self._cond.notify_all()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def update_interval(self, interval_ms):
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        with self._cond:
            if interval_ms == self._interval_ms:
                return
            log.info("Updating poll interval from %dms to %dms", self._interval_ms, interval_ms)
            self._interval_ms = interval_ms
            self._interval_changed = True
            self._cond.notify_all()

    # ─── Loop ─────────────────────────────────────────────────

    def run(self):
        """Blocking loop; start() runs it on a daemon thread."""
        log.info("Poller started. Polling interval is: %dms", self.interval_ms)

        while not self._is_stopped():
            # A change that arrives while the cycle runs re-runs it right after.
            with self._cond:
                self._interval_changed = False

            try:
                self.poll_once()
            except Exception as e:
                with self._cond:
                    self.failures += 1
                log.error("Error in poll cycle: %s", e, exc_info=True)
                if self._wait_for_stop(self._backoff_sec):
                    break
                continue

            with self._cond:
                interval = self._interval_ms
                self._cond.wait_for(
                    lambda: self._stopped or self._interval_changed,
                    timeout=interval / 1000.0,
                )
                if self._interval_changed and not self._stopped:
                    log.info("Poll wait interrupted for interval change")

        log.info("Poller stopped")

    def poll_once(self) -> bool:
        lease = getattr(self._service_source, "lease", None)
        if lease is None:
            present = self._take(self._service_source())
        else:
            with lease() as service:
                present = self._take(service)
        with self._cond:
            self.cycles += 1
        return present

    def _take(self, service):
        if not service.is_ready:
            log.warning("Office networks not configured; today is recorded as not in office")
        return service.take_attendance()

    # ─── Helpers ──────────────────────────────────────────────

    def _is_stopped(self) -> bool:
        with self._cond:
            return self._stopped

    def _wait_for_stop(self, seconds) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: self._stopped, timeout=seconds)
