"""Exception types raised by the harness."""

from __future__ import annotations


class HarnessError(Exception):
    """Base class for all harness errors."""


class ConfigurationError(HarnessError):
    """Pre-flight problem (bad config id, missing credentials).

    Raised before any sandbox is created.
    """


class ConfigNotFound(ConfigurationError):
    """Unknown hook configuration id."""

    def __init__(self, config_id: str, known: list[str] | None = None):
        self.config_id = config_id
        message = f"Unknown hook config: {config_id}"
        if known:
            message += f" (expected one of: {', '.join(known)})"
        super().__init__(message)


class ProvisionError(HarnessError):
    """Sandbox creation or setup failed for one configuration run."""


class TestExecutionError(HarnessError):
    """A single test case could not be executed in the sandbox."""

    __test__ = False
