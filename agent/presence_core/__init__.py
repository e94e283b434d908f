"""
presence_core — Office Attendance Tracker v1.0
==============================================
Architecture: one poller thread + one autosave thread around a locked store.

  constants.py    → Version, intervals, defaults, file format names
  exceptions.py   → ConfigurationError, StoreNotInitializedError, ...
  config.py       → Paths, logging, raw settings load/save, safe_print
  settings.py     → Settings snapshot + SettingsManager (save/reload/notify)
  clock.py        → SystemClock / FixedClock ("today")
  records.py      → AttendanceRecord dataclass
  formats.py      → csv / json codecs, chosen by file extension
  store.py        → RecordStore (dedup, dirty flag, autosave, atomic write)
  interfaces.py   → NetworkInfoProvider (socket + psutil, default routes)
  platform_win.py → Windows: single instance, Get-NetRoute
  discovery.py    → CIDR syntax check + candidate network discovery
  network.py      → NetworkPresenceDetector
  compliance.py   → Business days + ComplianceStatus decision table
  service.py      → AttendanceService + build_service()
  provider.py     → ServiceHandle (swap service on settings change)
  poller.py       → Poller (stop / interval-changed wait)
  runner.py       → main() CLI + auto-restart wrapper
"""
