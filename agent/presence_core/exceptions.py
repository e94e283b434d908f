"""
Exception types raised by the attendance core.
"""


class AttendanceError(Exception):
    """Base class for all errors raised by presence_core."""


class ConfigurationError(AttendanceError):
    """One or more configuration values are unusable.

    All offending values are collected before raising so the user can fix
    the settings file in one pass.
    """

    def __init__(self, problems, hint=None):
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        self.hint = hint
        message = "Invalid configuration:\n" + "\n".join(f"  - {p}" for p in self.problems)
        if hint:
            message += f"\n\n{hint}"
        super().__init__(message)


class StoreNotInitializedError(AttendanceError, RuntimeError):
    """A RecordStore was used before initialize() was called."""


class RecordFileError(AttendanceError):
    """The attendance data file could not be parsed."""

    def __init__(self, path, reason):
        self.path = path
        self.reason = reason
        super().__init__(f"Malformed attendance file {path}: {reason}")


class StoreClosedError(StoreNotInitializedError):
    """A RecordStore was used after close()."""
