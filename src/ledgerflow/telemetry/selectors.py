"""Ordered selector fallback for fragile login pages."""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from playwright.sync_api import Error as PlaywrightError

from ledgerflow.utils.logger import get_logger

logger = get_logger()


@dataclass(frozen=True)
class SelectorAttempt:
    """One candidate selector and how long to wait for it."""
    selector: str
    timeout_ms: int = 2000

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SelectorAttempt":
        return cls(selector=data["selector"], timeout_ms=int(data.get("timeout_ms", 2000)))


@dataclass
class AttemptResult:
    """Outcome of walking a candidate list."""
    success: bool
    selector: Optional[str] = None
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def tried(self) -> List[str]:
        return list(self.errors) + ([self.selector] if self.selector else [])


def build_attempts(candidates: Iterable[Mapping[str, Any]]) -> List[SelectorAttempt]:
    return [SelectorAttempt.from_dict(candidate) for candidate in candidates]


def try_in_order(
    attempts: Sequence[SelectorAttempt],
    action: Callable[[SelectorAttempt], None],
    label: str = "element"
) -> AttemptResult:
    """
    Run ``action`` against each candidate until one succeeds.

    Browser errors (including timeouts) on a candidate are recorded and
    the next candidate is tried; nothing is raised from here.

    Args:
        attempts: Candidates in priority order
        action: Callable that waits for and acts on one candidate
        label: Field name for diagnostics

    Returns:
        AttemptResult naming the winning selector, or failure with per-selector errors
    """
    errors: Dict[str, str] = {}
    for attempt in attempts:
        try:
            action(attempt)
        except PlaywrightError as e:
            errors[attempt.selector] = str(e).splitlines()[0] if str(e) else type(e).__name__
            logger.debug(f"Selector {attempt.selector!r} failed for {label}: {errors[attempt.selector]}")
            continue
        return AttemptResult(success=True, selector=attempt.selector, errors=errors)

    return AttemptResult(success=False, errors=errors)
