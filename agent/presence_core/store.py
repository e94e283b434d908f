"""
RecordStore — durable, deduplicated collection of AttendanceRecords.

One record per calendar date, kept in ascending date order. Mutations only
mark the store dirty; flush() writes the file, and a background thread
flushes every AUTOSAVE_INTERVAL_SEC while something is pending.

Saves are atomic: rows go to a temp file next to the target which is then
renamed over it. The previous file is copied aside first and copied back
if anything fails, so a crash mid-save never leaves a truncated or missing
data file behind.

Every public method runs under one re-entrant lock per store.
"""

import bisect
import os
import shutil
import threading
from datetime import date
from pathlib import Path

from .clock import SystemClock
from .formats import codec_for
from .config import log
from .constants import AUTOSAVE_INTERVAL_SEC
from .exceptions import RecordFileError, StoreClosedError, StoreNotInitializedError
from .records import AttendanceRecord, as_day


class RecordStore:
    """File-backed attendance store with pluggable encoding."""

    def __init__(self, path, codec=None, clock=None, autosave_interval=AUTOSAVE_INTERVAL_SEC):
        self.path = Path(path)
        self._codec = codec or codec_for(self.path)
        self._clock = clock or SystemClock()
        self._autosave_interval = autosave_interval

        self._lock = threading.RLock()
        self._records = []          # sorted by date
        self._by_date = {}          # date → record (same instances as _records)
        self._dirty = False
        self._initialized = False
        self._closed = False

        self._stop = threading.Event()
        self._autosave_thread = None

    # ─── Lifecycle ────────────────────────────────────────────

    def initialize(self):
        """Load the data file (creating it if absent) and start autosave."""
        with self._lock:
            if self._closed:
                raise StoreClosedError(f"RecordStore for {self.path} is closed")
            if self._initialized:
                return
            self._load()
            self._initialized = True

        if self._autosave_interval and self._autosave_interval > 0:
            self._stop.clear()
            self._autosave_thread = threading.Thread(
                target=self._autosave_loop, name="attendance-autosave", daemon=True,
            )
            self._autosave_thread.start()
        log.info("Record store ready: %s (%d records)", self.path, len(self._records))

    def close(self):
        """Stop autosave and make one last best-effort flush. Never raises.

        A closed store rejects every later call, so a caller still holding
        it cannot write over a file another store has since loaded.
        """
        self._stop.set()
        thread = self._autosave_thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=5)
        self._autosave_thread = None

        with self._lock:
            was_open = self._initialized
            self._initialized = False
            self._closed = True
            if not was_open:
                return
            try:
                self._flush_locked()
            except Exception as e:
                log.warning("Final flush of %s failed: %s", self.path, e)

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def is_dirty(self) -> bool:
        with self._lock:
            return self._dirty

    # ─── Mutations ────────────────────────────────────────────

    def upsert(self, is_office, day) -> AttendanceRecord:
        """Insert a record for `day` or update the existing one in place."""
        day = as_day(day)
        is_office = bool(is_office)
        with self._lock:
            self._require_initialized()
            record = self._by_date.get(day)
            if record is None:
                record = AttendanceRecord(date=day, is_office=is_office)
                self._insert(record)
                self._dirty = True
            elif record.is_office != is_office:
                record.is_office = is_office
                self._dirty = True
            return record

    def set_present(self, day, is_office=True) -> AttendanceRecord:
        """Record an observation without ever turning a present day absent."""
        day = as_day(day)
        with self._lock:
            self._require_initialized()
            record = self._by_date.get(day)
            if record is not None and record.is_office and not is_office:
                return record
            return self.upsert(is_office, day)

    def clear(self):
        """Drop every record and persist the empty file immediately."""
        with self._lock:
            self._require_initialized()
            self._records = []
            self._by_date = {}
            self._dirty = True
            self._flush_locked()

    def reload(self):
        """Discard in-memory state and re-read the data file."""
        with self._lock:
            self._require_initialized()
            self._load()

    def flush(self) -> bool:
        """Write pending changes. Returns True if anything was written."""
        with self._lock:
            self._require_initialized()
            return self._flush_locked()

    # ─── Queries ──────────────────────────────────────────────

    def get(self, day):
        with self._lock:
            self._require_initialized()
            return self._by_date.get(as_day(day))

    def get_today(self):
        return self.get(self._clock.today())

    def get_month(self, month=None):
        """Records in the calendar month containing `month` (default: today)."""
        month = as_day(month) if month is not None else self._clock.today()
        start = month.replace(day=1)
        if start.month == 12:
            end = date(start.year + 1, 1, 1)
        else:
            end = date(start.year, start.month + 1, 1)
        with self._lock:
            self._require_initialized()
            return self._slice(start, end, inclusive_end=False)

    def get_range(self, start, end):
        """Records with start <= date <= end."""
        start, end = as_day(start), as_day(end)
        with self._lock:
            self._require_initialized()
            if end < start:
                return []
            return self._slice(start, end, inclusive_end=True)

    def get_all(self):
        with self._lock:
            self._require_initialized()
            return list(self._records)

    def __len__(self):
        with self._lock:
            return len(self._records)

    # ─── Internals ────────────────────────────────────────────

    def _require_initialized(self):
        if self._closed:
            raise StoreClosedError(f"RecordStore for {self.path} used after close()")
        if not self._initialized:
            raise StoreNotInitializedError(
                f"RecordStore for {self.path} used before initialize()"
            )

    def _insert(self, record):
        keys = [r.date for r in self._records]
        self._records.insert(bisect.bisect_left(keys, record.date), record)
        self._by_date[record.date] = record

    def _slice(self, start, end, inclusive_end):
        keys = [r.date for r in self._records]
        lo = bisect.bisect_left(keys, start)
        hi = bisect.bisect_right(keys, end) if inclusive_end else bisect.bisect_left(keys, end)
        return self._records[lo:hi]

    def _load(self):
        if not self.path.exists():
            log.info("No data file at %s, creating an empty one", self.path)
            self._records = []
            self._by_date = {}
            self._dirty = True
            self._flush_locked()
            return

        self._records = read_records(self.path, self._codec)
        self._by_date = {r.date: r for r in self._records}
        self._dirty = False

    def _flush_locked(self):
        if not self._dirty:
            return False
        atomic_write(self.path, self._codec, self._records)
        self._dirty = False
        return True

    def _autosave_loop(self):
        while not self._stop.wait(self._autosave_interval):
            try:
                with self._lock:
                    if self._initialized and self._flush_locked():
                        log.debug("Autosaved %s", self.path)
            except Exception as e:
                log.warning("Autosave of %s failed (will retry): %s", self.path, e)


def read_records(path, codec=None):
    """Read a data file: last row per date wins, result sorted by date."""
    path = Path(path)
    codec = codec or codec_for(path)
    try:
        with open(path, "r", encoding="utf-8", newline="") as fh:
            rows = codec.load(fh)
    except ValueError as e:
        raise RecordFileError(path, e) from e

    latest = {}
    for row in rows:
        latest[row.date] = row
    if len(latest) != len(rows):
        log.info("Collapsed %d duplicate rows in %s", len(rows) - len(latest), path)
    return sorted(latest.values(), key=lambda r: r.date)


def atomic_write(path, codec, records):
    """Write records to `path` via temp file + rename, restoring on failure."""
    path = Path(path)
    directory = path.parent
    directory.mkdir(parents=True, exist_ok=True)

    temp_path = directory / f"{path.name}.tmp"
    backup_path = directory / f"{path.name}.bak"
    backed_up = False
    replaced = False

    try:
        with open(temp_path, "w", encoding="utf-8", newline="") as fh:
            codec.dump(records, fh)
            fh.flush()
            os.fsync(fh.fileno())

        if path.exists():
            shutil.copy2(path, backup_path)
            backed_up = True

        os.replace(temp_path, path)
        replaced = True
    except BaseException:
        # Only a backup taken by this call, and only while the new file is not in place.
        if backed_up and not replaced:
            try:
                shutil.copyfile(backup_path, path)
            except OSError as restore_error:
                log.error("Could not restore %s from backup: %s", path, restore_error)
        raise
    finally:
        _remove_quietly(temp_path)
        if backed_up:
            _remove_quietly(backup_path)


def _remove_quietly(path):
    try:
        if path.exists():
            path.unlink()
    except OSError as e:
        log.debug("Could not remove %s: %s", path, e)
