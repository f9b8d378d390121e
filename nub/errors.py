"""
Exception hierarchy for nub.

Every error the CLI is expected to report to the operator derives from
NubError, so the command layer can turn it into a message and a non-zero
exit status without catching unrelated exceptions.
"""

from __future__ import annotations


class NubError(Exception):
    """Base error for nub operations."""


class ConfigError(NubError):
    """A required setting is missing or a config operation is invalid."""


class FetchError(NubError):
    """Fetching a source failed (transport error or non-success status)."""


class LLMError(NubError):
    """An LLM round trip failed or returned no usable content."""


class StorageError(NubError):
    """Reading or writing the data directory failed."""


class DaemonError(NubError):
    """Base error for daemon lifecycle operations."""


class AlreadyRunningError(DaemonError):
    def __init__(self, pid: int):
        super().__init__(f"daemon already running (PID: {pid})")
        self.pid = pid


class NotRunningError(DaemonError):
    def __init__(self) -> None:
        super().__init__("daemon is not running")
