"""Custom exception classes for LedgerFlow."""
from typing import Optional, Sequence


class LedgerFlowError(Exception):
    """Base exception for LedgerFlow."""
    pass


class ConfigError(LedgerFlowError):
    """Configuration-related errors."""
    pass


class ValidationError(LedgerFlowError):
    """Caller-supplied credentials or options are invalid."""
    pass


# Telemetry capture stage
class TelemetryError(LedgerFlowError):
    """Base class for browser-driven telemetry capture failures."""
    pass


class NavigationError(TelemetryError):
    """Public site or private-area entry control did not load in time."""
    pass


class LoginFrameError(TelemetryError):
    """Embedded login frame did not appear in time."""
    pass


class LoginFormError(TelemetryError):
    """Every selector candidate for a login form field failed."""

    def __init__(self, field: str, tried: Sequence[str] = ()):
        self.field = field
        self.tried = list(tried)
        super().__init__(
            f"Could not interact with login field '{field}' "
            f"(tried: {', '.join(self.tried) or 'none'})"
        )


class TelemetryNotCapturedError(TelemetryError):
    """No outgoing request carried the telemetry header."""
    pass


# Network stages
class NetworkError(LedgerFlowError):
    """Network and upstream API errors."""
    pass


class AuthError(NetworkError):
    """Token exchange was rejected or returned an unusable body."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class FetchError(NetworkError):
    """Ledger endpoint returned a non-success response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class PipelineTimeoutError(LedgerFlowError):
    """End-to-end pipeline deadline expired."""

    def __init__(self, stage: str):
        self.stage = stage
        super().__init__(f"Pipeline deadline exceeded before stage '{stage}'")
