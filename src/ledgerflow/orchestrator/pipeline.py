"""Pipeline orchestrator for the end-to-end extraction workflow."""
import threading
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import requests

from ledgerflow.auth.token import TokenExchanger
from ledgerflow.config.credentials import Credentials, PipelineOptions
from ledgerflow.config.settings import AppSettings, get_settings
from ledgerflow.ledger.aggregator import Aggregator
from ledgerflow.ledger.fetcher import LedgerFetcher
from ledgerflow.ledger.models import DailyLedger, LedgerTotals
from ledgerflow.ledger.parser import TransactionParser
from ledgerflow.telemetry.capture import TelemetryCapture
from ledgerflow.utils.deadline import Deadline
from ledgerflow.utils.exceptions import LedgerFlowError, PipelineTimeoutError
from ledgerflow.utils.logger import get_logger, mask_identifier, set_run_context

logger = get_logger()


class Stage(str, Enum):
    """Pipeline states, in order."""
    START = "start"
    TELEMETRY_CAPTURED = "telemetry_captured"
    TOKEN_OBTAINED = "token_obtained"
    RECORDS_FETCHED = "records_fetched"
    DONE = "done"


@dataclass
class _Progress:
    """Last state reached by one run."""
    stage: Stage = Stage.START


@dataclass
class PipelineResult:
    """Outcome of one pipeline run. Failures carry no partial data."""
    success: bool
    run_id: str
    stage: Stage
    duration_seconds: float
    error: Optional[str] = None
    error_type: Optional[str] = None
    token: Optional[str] = None
    ledger: Optional[DailyLedger] = None
    totals: Optional[LedgerTotals] = None

    def to_dict(self) -> Dict[str, Any]:
        """Render the result envelope."""
        if not self.success:
            return {"success": False, "error": self.error or "Unknown error"}

        data: Dict[str, Any] = {
            "token": self.token,
            "movimientos": self.ledger.to_dict() if self.ledger is not None else {},
        }
        if self.totals is not None:
            data["totales"] = self.totals.to_dict()
        return {"success": True, "data": data}


class PipelineOrchestrator:
    """Sequences telemetry capture, token exchange, record fetch and aggregation."""

    def __init__(self, settings: Optional[AppSettings] = None, parser: Optional[TransactionParser] = None):
        """
        Initialize orchestrator.

        Args:
            settings: Application settings (defaults to the global settings)
            parser: Transaction parser (defaults to the built-in rule table)
        """
        self.settings = settings or get_settings()
        self.parser = parser or TransactionParser()

        # Each run holds a live browser session; bound how many run at once
        self._admission = threading.BoundedSemaphore(max(1, self.settings.max_concurrent_sessions))

        logger.debug(
            f"Pipeline orchestrator initialized "
            f"(max concurrent sessions: {self.settings.max_concurrent_sessions})"
        )

    def run(self, credentials: Credentials, options: Optional[PipelineOptions] = None) -> PipelineResult:
        """
        Run the full pipeline once.

        Args:
            credentials: Login identifier, secret and client identifiers
            options: Call-time options

        Returns:
            PipelineResult; never raises for stage failures
        """
        options = options or PipelineOptions()
        run_id = uuid.uuid4().hex[:8]
        set_run_context(run_id)

        start_time = time.time()
        deadline = Deadline(options.deadline_seconds)
        progress = _Progress()

        try:
            if not self._admission.acquire(timeout=deadline.remaining()):
                raise PipelineTimeoutError("admission")
            try:
                token, ledger, totals = self._run_stages(credentials, options, deadline, progress)
            finally:
                self._admission.release()

            duration = time.time() - start_time
            logger.info(
                f"Pipeline complete: {ledger.entry_count()} entries across "
                f"{len(ledger)} dates in {duration:.1f}s"
            )
            return PipelineResult(
                success=True,
                run_id=run_id,
                stage=progress.stage,
                duration_seconds=duration,
                token=token,
                ledger=ledger,
                totals=totals
            )

        except LedgerFlowError as e:
            return self._failure(run_id, progress.stage, e, start_time)
        except Exception as e:
            logger.exception(f"Unexpected pipeline error: {e}")
            return self._failure(run_id, progress.stage, e, start_time)
        finally:
            set_run_context(None)

    def _run_stages(
        self,
        credentials: Credentials,
        options: PipelineOptions,
        deadline: Deadline,
        progress: _Progress
    ):
        step = logger.info if options.verbose else logger.debug

        step(f"STEP 1: Capturing telemetry for {mask_identifier(credentials.username)}...")
        deadline.check("telemetry_capture")
        capture = TelemetryCapture(self.settings, headless=options.headless, verbose=options.verbose)
        telemetry = capture.capture(credentials.username, credentials.password, deadline=deadline)
        progress.stage = Stage.TELEMETRY_CAPTURED

        # One connection pool for both HTTP stages, released when the run ends
        with requests.Session() as session:
            step("STEP 2: Exchanging telemetry for access token...")
            deadline.check("token_exchange")
            token = TokenExchanger(self.settings, session=session).exchange(
                credentials.username,
                credentials.password,
                credentials.client_id,
                telemetry,
                timeout=deadline.clamp(self.settings.http_timeout_seconds)
            )
            progress.stage = Stage.TOKEN_OBTAINED
            step(f"Token obtained: type={token.token_type}, expires in {token.expires_in}s")

            step("STEP 3: Fetching ledger records...")
            deadline.check("record_fetch")
            ledger = LedgerFetcher(self.settings, session=session).fetch_ledger(
                token.access_token,
                credentials.api_client_id,
                credentials.username,
                limit=options.limit,
                parser=self.parser,
                deadline=deadline
            )
        progress.stage = Stage.RECORDS_FETCHED
        step(f"Records fetched: {ledger.entry_count()} entries, {len(ledger)} dates")

        totals = Aggregator(ledger).aggregate() if options.include_totals else None
        progress.stage = Stage.DONE

        return token.access_token, ledger, totals

    def _failure(self, run_id: str, stage: Stage, error: Exception, start_time: float) -> PipelineResult:
        message = str(error) or type(error).__name__
        logger.error(f"Pipeline failed after stage '{stage.value}': {type(error).__name__}: {message}")
        return PipelineResult(
            success=False,
            run_id=run_id,
            stage=stage,
            duration_seconds=time.time() - start_time,
            error=message,
            error_type=type(error).__name__
        )
