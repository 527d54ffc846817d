## countwatch/errors.py

from __future__ import annotations
from typing import FrozenSet, Iterable, Optional


class BootstrapError(Exception):
    """Preconditions the agent cannot run without. Always ends the process."""


class LogSinkError(BootstrapError):
    pass


class ConfigError(BootstrapError):
    def __init__(self, missing: Iterable[str] = (), reason: Optional[str] = None):
        self.missing: FrozenSet[str] = frozenset(missing)
        self.reason = reason
        super().__init__(self.describe())

    def describe(self) -> str:
        parts = []
        if self.missing:
            parts.append("missing required configuration: " + ", ".join(sorted(self.missing)))
        if self.reason:
            parts.append(self.reason)
        return "; ".join(parts) or "configuration could not be loaded"


class OperationalError(Exception):
    """Per-file failures. Logged, the file is discarded, the loop keeps going."""


class IngestError(OperationalError):
    pass


class WriteError(OperationalError):
    pass


class CountShapeError(RuntimeError):
    """A location slice does not fit its ped/bike layout (location table misconfigured)."""
