"""Utility modules."""
from .logger import get_logger, configure_logging, set_run_context, mask_identifier
from .exceptions import (
    LedgerFlowError,
    ConfigError,
    ValidationError,
    TelemetryError,
    NavigationError,
    LoginFrameError,
    LoginFormError,
    TelemetryNotCapturedError,
    NetworkError,
    AuthError,
    FetchError,
    PipelineTimeoutError
)
from .retry import retry_with_backoff
from .deadline import Deadline

__all__ = [
    "get_logger",
    "configure_logging",
    "set_run_context",
    "mask_identifier",
    "LedgerFlowError",
    "ConfigError",
    "ValidationError",
    "TelemetryError",
    "NavigationError",
    "LoginFrameError",
    "LoginFormError",
    "TelemetryNotCapturedError",
    "NetworkError",
    "AuthError",
    "FetchError",
    "PipelineTimeoutError",
    "retry_with_backoff",
    "Deadline"
]
