"""
ServiceHandle — the one place that knows which AttendanceService is live.

Settings changes rebuild the whole service. The handle swaps the new one
in under its lock, tells subscribers, and only then closes the old store,
so a reader never receives a service whose store is already closed.

A poll cycle runs inside lease(), which holds the same lock: a swap waits
for the cycle in flight, and the new store loads the file only after that
cycle has written it.
"""

import threading
from contextlib import contextmanager

from .config import log
from .service import build_service


class ServiceHandle:

    def __init__(self, settings, factory=None):
        self._factory = factory or build_service
        self._lock = threading.RLock()
        self._listeners = []
        self._current = self._factory(settings)

    @property
    def current(self):
        with self._lock:
            return self._current

    def __call__(self):
        return self.current

    @contextmanager
    def lease(self):
        """Hold the current service; replace() blocks until the block exits."""
        with self._lock:
            yield self._current

    def subscribe(self, callback):
        """callback(service) runs after each successful replace()."""
        with self._lock:
            self._listeners.append(callback)

    def replace(self, settings):
        """Build a service for `settings` and make it current.

        If building fails the previous service stays current and the error
        propagates to the caller.
        """
        with self._lock:
            log.info("Recreating attendance service with new configuration")
            old = self._current
            new = self._factory(settings)
            self._current = new
            try:
                for callback in list(self._listeners):
                    callback(new)
            finally:
                if old is not None and old is not new:
                    old.close()
            log.info("Attendance service recreated")
            return new

    def close(self):
        with self._lock:
            if self._current is not None:
                self._current.close()
                self._current = None
