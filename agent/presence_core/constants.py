"""
Constants, defaults, and on-disk format details.
"""

AGENT_VERSION = "1.0.0"
APP_NAME = "Office Attendance Tracker"

# ─── Polling ─────────────────────────────────────────────────────
DEFAULT_POLL_INTERVAL_MS = 1_800_000   # 30 minutes
POLL_ERROR_BACKOFF_SEC = 30            # Wait after a failed poll cycle
AUTOSAVE_INTERVAL_SEC = 60             # Background flush period (only when dirty)

# ─── Compliance ──────────────────────────────────────────────────
DEFAULT_COMPLIANCE_THRESHOLD = 0.5     # 50% of business days

# ─── Record file ─────────────────────────────────────────────────
DEFAULT_DATA_FILE_NAME = "attendance.csv"
DATE_FORMAT = "%Y-%m-%d"
RECORD_FIELDS = ("Date", "IsOffice", "IsDayOff")
SUPPORTED_EXTENSIONS = (".csv", ".json")

# ─── Settings ────────────────────────────────────────────────────
SETTINGS_FILE_NAME = "user-settings.json"
LOG_FILE_NAME = "office-attendance.log"
LOG_MAX_BYTES = 1_000_000

# ─── Network discovery ───────────────────────────────────────────
LINK_LOCAL_CIDR = "169.254.0.0/16"
TUNNEL_NAME_PREFIXES = ("tun", "tap", "wg", "utun", "ppp", "isatap", "teredo")
