"""Exception hierarchy for the harness."""

from __future__ import annotations


class HarnessError(Exception):
    """Base class for all harness errors."""


class ConfigError(HarnessError, ValueError):
    """Raised for malformed run payloads or settings."""


class EngineError(HarnessError):
    """Raised when the job-execution engine rejects or fails a call."""


class LaunchError(HarnessError):
    """Raised when not a single job of a run could be submitted."""
