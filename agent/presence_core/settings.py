"""
Settings — validated snapshot of the user settings file.

SettingsManager owns the file: first-run defaults, save, reload, and
change notification. Components never read the file themselves; they are
rebuilt from a fresh snapshot when it changes.
"""

import threading
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Optional

from .config import BASE_DIR, CONFIG_FILE, log, load_config, save_config
from .constants import (
    DEFAULT_COMPLIANCE_THRESHOLD, DEFAULT_DATA_FILE_NAME,
    DEFAULT_POLL_INTERVAL_MS, SUPPORTED_EXTENSIONS,
)
from .discovery import is_valid_cidr
from .exceptions import ConfigurationError

_KEYS = {
    "networks": "networks",
    "pollintervalms": "poll_interval_ms",
    "enablebackgroundworker": "enable_background_worker",
    "compliancethreshold": "compliance_threshold",
    "datafilepath": "data_file_path",
    "datafilename": "data_file_name",
}


@dataclass
class Settings:
    networks: List[str] = field(default_factory=list)
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    enable_background_worker: bool = True
    compliance_threshold: float = DEFAULT_COMPLIANCE_THRESHOLD
    data_file_path: Optional[str] = None
    data_file_name: str = DEFAULT_DATA_FILE_NAME

    @property
    def data_file(self) -> Path:
        directory = Path(self.data_file_path) if self.data_file_path else BASE_DIR
        return directory / self.data_file_name

    @property
    def poll_interval_sec(self) -> float:
        return self.poll_interval_ms / 1000.0

    def copy(self):
        return replace(self, networks=list(self.networks))

    def problems(self):
        """Every reason this snapshot is unusable (empty when valid)."""
        found = []

        if not isinstance(self.networks, list) or not all(isinstance(n, str) for n in self.networks):
            found.append("networks must be a list of CIDR strings")
        else:
            for cidr in self.networks:
                if cidr.strip() and not is_valid_cidr(cidr):
                    found.append(f"Invalid network CIDR: {cidr!r} (expected X.X.X.X/Y)")

        if isinstance(self.poll_interval_ms, bool) or not isinstance(self.poll_interval_ms, int):
            found.append(f"pollIntervalMs must be an integer, got {self.poll_interval_ms!r}")
        elif self.poll_interval_ms <= 0:
            found.append(f"pollIntervalMs must be positive, got {self.poll_interval_ms}")

        if not isinstance(self.enable_background_worker, bool):
            found.append(f"enableBackgroundWorker must be true or false, got {self.enable_background_worker!r}")

        threshold = self.compliance_threshold
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
            found.append(f"complianceThreshold must be a number, got {threshold!r}")
        elif not 0.0 <= threshold <= 1.0:
            found.append(f"complianceThreshold must be within [0, 1], got {threshold}")

        if self.data_file_path is not None and not isinstance(self.data_file_path, str):
            found.append(f"dataFilePath must be a string, got {self.data_file_path!r}")

        name = self.data_file_name
        if not isinstance(name, str) or not name.strip():
            found.append("dataFileName is required")
        elif Path(name).suffix.lower() not in SUPPORTED_EXTENSIONS:
            found.append(
                f"Unsupported dataFileName extension in {name!r} "
                f"(supported: {', '.join(SUPPORTED_EXTENSIONS)})"
            )
        return found

    def validate(self):
        found = self.problems()
        if found:
            raise ConfigurationError(found, hint=f"Fix the settings file ({CONFIG_FILE}) or delete it to reset.")
        return self

    # ─── (De)serialization ────────────────────────────────────

    @classmethod
    def from_dict(cls, raw):
        """Build and validate settings; key match is case-insensitive."""
        values = {}
        for key, value in (raw or {}).items():
            attr = _KEYS.get(str(key).lower())
            if attr is None:
                log.debug("Ignoring unknown setting %r", key)
                continue
            values[attr] = value

        if values.get("networks") is None:
            values.pop("networks", None)
        if "poll_interval_ms" in values and isinstance(values["poll_interval_ms"], str):
            text = values["poll_interval_ms"].strip()
            if text.isdigit():
                values["poll_interval_ms"] = int(text)
        if values.get("data_file_path") == "":
            values["data_file_path"] = None

        return cls(**values).validate()

    def to_dict(self):
        return {
            "networks": list(self.networks),
            "pollIntervalMs": self.poll_interval_ms,
            "enableBackgroundWorker": self.enable_background_worker,
            "complianceThreshold": self.compliance_threshold,
            "dataFilePath": self.data_file_path,
            "dataFileName": self.data_file_name,
        }


class SettingsManager:
    """Loads, saves and broadcasts the user settings file."""

    def __init__(self, path=None):
        self.path = Path(path or CONFIG_FILE)
        self._lock = threading.RLock()
        self._listeners = []

        self.is_first_run = not self.path.exists()
        self._current = self._load()
        if self.is_first_run:
            save_config(self._current.to_dict(), self.path)
            log.info("First run: default settings written to %s", self.path)

    @property
    def current(self) -> Settings:
        with self._lock:
            return self._current.copy()

    def subscribe(self, callback):
        """callback(settings) runs on every save() / reload().

        A callback that raises rejects the change: `current` keeps the
        previous snapshot and the error reaches the caller.
        """
        with self._lock:
            self._listeners.append(callback)

    def unsubscribe(self, callback):
        with self._lock:
            if callback in self._listeners:
                self._listeners.remove(callback)

    def save(self, settings):
        settings.validate()
        with self._lock:
            save_config(settings.to_dict(), self.path)
            self._apply(settings.copy())

    def reload(self):
        with self._lock:
            self._apply(self._load())

    def _load(self):
        raw = load_config(self.path)
        if raw is None:
            return Settings()
        return Settings.from_dict(raw)

    def _apply(self, settings):
        for callback in list(self._listeners):
            callback(settings.copy())
        self._current = settings
