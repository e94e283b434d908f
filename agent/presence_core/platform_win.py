"""
Windows-specific functionality:
  - Single instance enforcement (named mutex)
  - IPv4 default routes with metrics (Get-NetRoute via PowerShell)
"""

import ctypes
import json
import subprocess
import sys

from .config import log

_MUTEX_NAME = "Local\\OfficeAttendanceTracker_5c1e"
_ERROR_ALREADY_EXISTS = 183

_ROUTE_QUERY = (
    "Get-NetRoute -AddressFamily IPv4 -DestinationPrefix '0.0.0.0/0' "
    "| Select-Object InterfaceAlias,NextHop,RouteMetric,InterfaceMetric "
    "| ConvertTo-Json -Compress"
)


# ─── Single Instance Lock ────────────────────────────────────────

_instance_mutex = None


def ensure_single_instance():
    """Return False if another tracker already holds the mutex.

    Two trackers polling into the same data file would fight over it.
    Always True off Windows.
    """
    global _instance_mutex
    if sys.platform != "win32":
        return True

    try:
        _instance_mutex = ctypes.windll.kernel32.CreateMutexW(None, False, _MUTEX_NAME)
        if ctypes.windll.kernel32.GetLastError() == _ERROR_ALREADY_EXISTS:
            log.info("Another instance is already running.")
            return False
        return True
    except Exception as e:
        log.warning("Single-instance check unavailable: %s", e)
        return True


# ─── Default routes ──────────────────────────────────────────────

def windows_default_routes():
    """Map interface alias → [(gateway, metric)] from the IPv4 route table.

    Effective metric = route metric + interface metric, as Windows uses it
    to pick the primary route.
    """
    result = subprocess.run(
        ["powershell", "-NoProfile", "-NonInteractive", "-Command", _ROUTE_QUERY],
        capture_output=True, text=True, timeout=15,
    )
    if result.returncode != 0:
        log.warning("Get-NetRoute failed: %s", result.stderr.strip()[:200])
        return {}
    return parse_netroute_json(result.stdout)


def parse_netroute_json(text):
    text = (text or "").strip()
    if not text:
        return {}
    data = json.loads(text)
    if isinstance(data, dict):
        data = [data]

    routes = {}
    for entry in data:
        alias = entry.get("InterfaceAlias")
        gateway = entry.get("NextHop")
        if not alias or not gateway or gateway == "0.0.0.0":
            continue
        metric = (entry.get("RouteMetric") or 0) + (entry.get("InterfaceMetric") or 0)
        routes.setdefault(alias, []).append((gateway, metric))
    return routes
