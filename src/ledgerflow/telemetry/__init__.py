"""Browser-driven telemetry capture module."""
from .capture import TelemetryCapture
from .selectors import SelectorAttempt, AttemptResult, try_in_order

__all__ = ["TelemetryCapture", "SelectorAttempt", "AttemptResult", "try_in_order"]
