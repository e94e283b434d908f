"""
Entry point, command-line tools, and auto-restart wrapper.

  run       poll in the background until stopped (default)
  status    take one sample and print this month's summary
  discover  print CIDRs for the networks this machine is on now
  count     office days in a month of a data file
  convert   re-encode a data file between .csv and .json
"""

import argparse
import json
import signal
import sys
import threading
import time
from datetime import datetime

from .clock import SystemClock
from .config import configure_logging, log, safe_print
from .constants import AGENT_VERSION, APP_NAME
from .discovery import discover_candidates
from .exceptions import AttendanceError, ConfigurationError
from .formats import codec_for
from .platform_win import ensure_single_instance
from .poller import Poller
from .provider import ServiceHandle
from .service import build_service
from .settings import SettingsManager
from .store import atomic_write, read_records


# ─── run ─────────────────────────────────────────────────────────

def run_agent(settings_path=None):
    """Poll until SIGINT/SIGTERM. SIGHUP re-reads the settings file."""
    safe_print(f"{APP_NAME} v{AGENT_VERSION}")
    safe_print()

    if not ensure_single_instance():
        safe_print("Already running. Exiting.")
        return 0

    manager = SettingsManager(settings_path)
    settings = manager.current
    if not settings.enable_background_worker:
        log.info("Background worker disabled in settings, nothing to run")
        return 0

    handle = ServiceHandle(settings)
    poller = Poller(handle, settings.poll_interval_ms)
    manager.subscribe(settings_listener(handle, poller))

    stop_requested = threading.Event()
    reload_requested = threading.Event()
    _install_signal_handlers(stop_requested, reload_requested)

    poller.start()
    log.info(
        "v%s started (interval=%dms, networks=%d, file=%s)",
        AGENT_VERSION, settings.poll_interval_ms, len(settings.networks), settings.data_file,
    )
    safe_print("Service running.\n")

    try:
        while not stop_requested.wait(1.0):
            if reload_requested.is_set():
                reload_requested.clear()
                reload_settings(manager)
            if not poller.is_running:
                log.error("Poller thread exited unexpectedly")
                break
    finally:
        poller.stop(timeout=10)
        handle.close()
        log.info("Office attendance tracker shut down.")
    return 0


def settings_listener(handle, poller):
    """Settings subscriber that rebuilds the service, then retimes the poller."""
    def on_settings_changed(new_settings):
        handle.replace(new_settings)
        poller.update_interval(new_settings.poll_interval_ms)
    return on_settings_changed


def reload_settings(manager) -> bool:
    """Re-read the settings file; False if the change was rejected."""
    try:
        manager.reload()
    except (AttendanceError, OSError) as e:
        log.error("Settings change rejected, keeping previous configuration: %s", e)
        return False
    return True


def _install_signal_handlers(stop_requested, reload_requested):
    if threading.current_thread() is not threading.main_thread():
        return

    def on_stop(signum, frame):
        log.info("Received signal %d, stopping", signum)
        stop_requested.set()

    signal.signal(signal.SIGINT, on_stop)
    signal.signal(signal.SIGTERM, on_stop)
    if hasattr(signal, "SIGHUP"):
        signal.signal(signal.SIGHUP, lambda signum, frame: reload_requested.set())


# ─── Tools ───────────────────────────────────────────────────────

def show_status(settings_path=None):
    settings = SettingsManager(settings_path).current
    service = build_service(settings, autosave_interval=0)
    try:
        service.take_attendance()
        safe_print(json.dumps(service.summary(), indent=2))
    finally:
        service.close()
    return 0


def show_candidates():
    candidates = discover_candidates()
    if not candidates:
        safe_print("No active IPv4 networks found.")
        return 1
    for cidr in candidates:
        safe_print(cidr)
    return 0


def count_office_days(path, month=None):
    """Number of office days in `month` (a date; default current month)."""
    month = month or SystemClock().today()
    return sum(
        1 for r in read_records(path)
        if r.is_office and r.date.year == month.year and r.date.month == month.month
    )


def convert_file(source, target):
    """Re-encode records from `source` into `target` (format by extension)."""
    records = read_records(source)
    atomic_write(target, codec_for(target), records)
    return len(records)


def _parse_month(text):
    try:
        return datetime.strptime(text, "%Y-%m").date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid month {text!r}, expected YYYY-MM") from None


def build_parser():
    parser = argparse.ArgumentParser(prog="office-attendance", description=APP_NAME)
    parser.add_argument("--version", action="version", version=f"%(prog)s {AGENT_VERSION}")
    parser.add_argument("--settings", help="path to the settings file")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("run", help="poll for office presence until stopped")
    sub.add_parser("status", help="take one sample and print this month's summary")
    sub.add_parser("discover", help="print candidate office networks (CIDR)")

    count = sub.add_parser("count", help="count office days in a month")
    count.add_argument("file")
    count.add_argument("month", nargs="?", type=_parse_month, help="YYYY-MM (default: current)")

    convert = sub.add_parser("convert", help="convert a data file between csv and json")
    convert.add_argument("source")
    convert.add_argument("target")
    return parser


def main(argv=None):
    """Primary entry point. Returns a process exit code."""
    args = build_parser().parse_args(argv)
    command = args.command or "run"

    try:
        if command == "run":
            configure_logging()
            return run_agent(args.settings)
        if command == "status":
            return show_status(args.settings)
        if command == "discover":
            return show_candidates()
        if command == "count":
            safe_print(count_office_days(args.file, args.month))
            return 0
        if command == "convert":
            written = convert_file(args.source, args.target)
            safe_print(f"Wrote {written} records to {args.target}")
            return 0
    except ConfigurationError as e:
        log.error("%s", e)
        safe_print(str(e), file=sys.stderr)
        return 1
    except AttendanceError as e:
        log.error("%s", e)
        safe_print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        if command == "run":
            raise
        safe_print(f"Error: {e}", file=sys.stderr)
        return 1
    return 2


def run_with_auto_restart(argv=None):
    """
    Wrapper that auto-restarts on crash. Never gives up on runtime errors;
    configuration errors exit at once since a restart cannot fix them.
    Crash counter resets if the tracker ran for 2+ minutes (not a boot-loop).
    """
    crash_count = 0
    crash_window = 120
    max_rapid_crashes = 10

    while True:
        start_time = time.time()
        try:
            return main(argv)
        except KeyboardInterrupt:
            safe_print("\nStopped by user.")
            return 0
        except Exception as e:
            elapsed = time.time() - start_time
            log.error("Tracker crashed after %.0fs: %s", elapsed, e, exc_info=True)

            if elapsed > crash_window:
                crash_count = 0
            crash_count += 1

            if crash_count >= max_rapid_crashes:
                wait = 120
                log.warning("Many rapid crashes (%d). Waiting %ds...", crash_count, wait)
            else:
                wait = min(10 * crash_count, 60)

            log.info("Restarting in %ds (crash %d)...", wait, crash_count)
            time.sleep(wait)
