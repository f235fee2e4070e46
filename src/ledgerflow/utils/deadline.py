"""End-to-end deadline shared by every pipeline stage."""
import time
from typing import Optional

from .exceptions import PipelineTimeoutError


class Deadline:
    """Monotonic deadline; ``None`` seconds means unbounded."""

    def __init__(self, seconds: Optional[float] = None):
        self._expires_at = None if seconds is None else time.monotonic() + seconds

    @property
    def bounded(self) -> bool:
        return self._expires_at is not None

    def remaining(self) -> Optional[float]:
        """Seconds left, never negative; ``None`` when unbounded."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self, stage: str) -> None:
        """Raise PipelineTimeoutError if the deadline passed before ``stage``."""
        if self.expired():
            raise PipelineTimeoutError(stage)

    def clamp(self, seconds: float) -> float:
        """Bound a per-step timeout (seconds) by the time remaining."""
        remaining = self.remaining()
        if remaining is None:
            return seconds
        # Zero would disable the timeout in Playwright and requests
        return max(0.001, min(seconds, remaining))

    def clamp_ms(self, milliseconds: int) -> int:
        """Bound a per-step browser timeout (milliseconds) by the time remaining."""
        return max(1, int(self.clamp(milliseconds / 1000) * 1000))
