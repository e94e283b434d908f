"""
Paths, logging setup, raw config load/save, safe_print.
"""

import os
import json
import sys
import logging
from pathlib import Path

from .constants import LOG_FILE_NAME, LOG_MAX_BYTES, SETTINGS_FILE_NAME


# ─── Paths ───────────────────────────────────────────────────────
# One settings file and one log per user per machine.
_FOLDER_NAME = "OfficeAttendance"

if os.environ.get("OFFICE_ATTENDANCE_HOME"):
    BASE_DIR = Path(os.environ["OFFICE_ATTENDANCE_HOME"])
elif sys.platform == "win32":
    BASE_DIR = Path(os.environ.get("PROGRAMDATA", "C:\\ProgramData")) / _FOLDER_NAME
else:
    BASE_DIR = Path(__file__).parent.parent

CONFIG_FILE = BASE_DIR / SETTINGS_FILE_NAME
LOG_FILE = BASE_DIR / LOG_FILE_NAME


# ─── Safe print (no crash when --noconsole) ──────────────────────

def safe_print(*args, **kwargs):
    try:
        print(*args, **kwargs)
    except Exception:
        pass


# ─── Logging ─────────────────────────────────────────────────────

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

log = logging.getLogger("attendance")


def configure_logging(log_file=None, level=logging.INFO):
    """Attach the file + console handlers. Safe to call more than once."""
    log_file = Path(log_file or LOG_FILE)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    try:
        if log_file.exists() and log_file.stat().st_size > LOG_MAX_BYTES:
            log_file.write_text("")
    except OSError:
        pass

    for handler in list(log.handlers):
        log.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setFormatter(formatter)
    log.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    log.addHandler(console_handler)

    log.setLevel(level)
    log.propagate = False
    return log


# ─── Config Management ──────────────────────────────────────────

def load_config(path=None):
    """Load the raw settings dict from disk. Returns dict or None."""
    path = Path(path or CONFIG_FILE)
    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            log.warning("Could not read settings file %s: %s", path, e)
            return None
        if isinstance(data, dict):
            return data
        log.warning("Settings file %s does not contain a JSON object", path)
    return None


def save_config(config, path=None):
    """Save the raw settings dict to disk."""
    path = Path(path or CONFIG_FILE)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config, f, indent=2)
    log.info("Config saved to %s", path)
