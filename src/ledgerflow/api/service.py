"""Façade operations: movements only, totals only, everything."""
from typing import Any, Dict, Mapping, Optional, Tuple

from ledgerflow.config.credentials import Credentials, PipelineOptions, validate_credentials
from ledgerflow.config.settings import AppSettings, get_settings
from ledgerflow.orchestrator.pipeline import PipelineOrchestrator, PipelineResult
from ledgerflow.utils.exceptions import ValidationError
from ledgerflow.utils.logger import get_logger

logger = get_logger()

Response = Tuple[int, Dict[str, Any]]


def _error(status: int, message: str) -> Response:
    return status, {"success": False, "error": message}


class LedgerService:
    """Validates requests, runs the pipeline and shapes response payloads."""

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        orchestrator: Optional[PipelineOrchestrator] = None
    ):
        self.settings = settings or get_settings()
        self.orchestrator = orchestrator or PipelineOrchestrator(self.settings)

    def get_movements(self, body: Optional[Mapping[str, Any]]) -> Response:
        """Ledger only."""
        rejected, result = self._run(body, include_totals=False)
        if rejected:
            return rejected
        if not result.success:
            return 500, result.to_dict()
        return 200, {"success": True, "data": result.ledger.to_dict()}

    def get_totals(self, body: Optional[Mapping[str, Any]]) -> Response:
        """Global and per-date totals only."""
        rejected, result = self._run(body, include_totals=True)
        if rejected:
            return rejected
        if not result.success:
            return 500, result.to_dict()
        return 200, {"success": True, "data": result.totals.to_dict()}

    def get_everything(self, body: Optional[Mapping[str, Any]]) -> Response:
        """Token, ledger and totals."""
        rejected, result = self._run(body, include_totals=True)
        if rejected:
            return rejected
        return (200 if result.success else 500), result.to_dict()

    def _run(
        self,
        body: Optional[Mapping[str, Any]],
        include_totals: bool
    ) -> Tuple[Optional[Response], Optional[PipelineResult]]:
        """Validate the request, then run the pipeline. Invalid requests never reach it."""
        credentials = Credentials.from_mapping(body)
        is_valid, message = validate_credentials(credentials)
        if not is_valid:
            logger.warning(f"Rejected request: {message}")
            return _error(400, message), None

        try:
            options = PipelineOptions.from_mapping(body, self.settings, include_totals=include_totals)
        except ValidationError as e:
            logger.warning(f"Rejected request: {e}")
            return _error(400, str(e)), None

        return None, self.orchestrator.run(credentials, options)
