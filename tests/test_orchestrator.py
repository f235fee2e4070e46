"""Tests for the pipeline orchestrator."""
import threading
import unittest
from unittest import mock

from ledgerflow.auth.models import AccessToken
from ledgerflow.config.credentials import Credentials, PipelineOptions
from ledgerflow.config.settings import AppSettings
from ledgerflow.ledger.models import Category, DailyLedger, LedgerEntry
from ledgerflow.orchestrator.pipeline import PipelineOrchestrator, Stage
from ledgerflow.utils.exceptions import AuthError, FetchError, TelemetryNotCapturedError

PIPELINE = "ledgerflow.orchestrator.pipeline"


def sample_ledger():
    ledger = DailyLedger()
    ledger.add("01-05-2024", LedgerEntry(Category.CREDIT, "$ 10.000", "Transferencia recibida"))
    ledger.add("01-05-2024", LedgerEntry(Category.DEBIT_EXPENSE, "$ 2.000", "KIOSKO"))
    return ledger


class TestPipelineOrchestrator(unittest.TestCase):
    """Test PipelineOrchestrator functionality."""

    def setUp(self):
        """Set up test fixtures."""
        self.settings = AppSettings()
        self.credentials = Credentials("11111111-1", "secret", "client-1", "api-client-1")

        patchers = {
            "capture": mock.patch(f"{PIPELINE}.TelemetryCapture"),
            "exchanger": mock.patch(f"{PIPELINE}.TokenExchanger"),
            "fetcher": mock.patch(f"{PIPELINE}.LedgerFetcher"),
        }
        self.mocks = {name: patcher.start() for name, patcher in patchers.items()}
        for patcher in patchers.values():
            self.addCleanup(patcher.stop)

        self.capture = self.mocks["capture"].return_value
        self.capture.capture.return_value = "telemetry-blob"
        self.exchanger = self.mocks["exchanger"].return_value
        self.exchanger.exchange.return_value = AccessToken(access_token="tok-123", expires_in=300)
        self.fetcher = self.mocks["fetcher"].return_value
        self.fetcher.fetch_ledger.return_value = sample_ledger()

        self.orchestrator = PipelineOrchestrator(self.settings)

    def test_successful_run_without_totals(self):
        result = self.orchestrator.run(self.credentials, PipelineOptions(limit=10))

        self.assertTrue(result.success)
        self.assertEqual(result.stage, Stage.DONE)
        self.assertEqual(result.token, "tok-123")
        self.assertIsNone(result.totals)

        payload = result.to_dict()
        self.assertEqual(payload["data"]["token"], "tok-123")
        self.assertIn("01-05-2024", payload["data"]["movimientos"])
        self.assertNotIn("totales", payload["data"])

    def test_stage_inputs_flow_through(self):
        """Test each stage receives the previous stage's output."""
        self.orchestrator.run(self.credentials, PipelineOptions(headless=False, limit=10))

        self.mocks["capture"].assert_called_once_with(self.settings, headless=False, verbose=False)
        args, kwargs = self.capture.capture.call_args
        self.assertEqual(args, ("11111111-1", "secret"))

        args, _ = self.exchanger.exchange.call_args
        self.assertEqual(args, ("11111111-1", "secret", "client-1", "telemetry-blob"))

        args, kwargs = self.fetcher.fetch_ledger.call_args
        self.assertEqual(args, ("tok-123", "api-client-1", "11111111-1"))
        self.assertEqual(kwargs["limit"], 10)
        self.assertIs(kwargs["parser"], self.orchestrator.parser)

    @mock.patch(f"{PIPELINE}.requests.Session")
    def test_http_stages_share_one_closed_session(self, session_cls):
        """Test both HTTP stages use one session that is closed when the run ends."""
        session = session_cls.return_value.__enter__.return_value

        self.orchestrator.run(self.credentials)

        self.mocks["exchanger"].assert_called_once_with(self.settings, session=session)
        self.mocks["fetcher"].assert_called_once_with(self.settings, session=session)
        session_cls.return_value.__exit__.assert_called_once()

    @mock.patch(f"{PIPELINE}.requests.Session")
    def test_session_closed_on_failure(self, session_cls):
        self.fetcher.fetch_ledger.side_effect = FetchError("HTTP error: 500", 500)

        result = self.orchestrator.run(self.credentials)

        self.assertFalse(result.success)
        session_cls.return_value.__exit__.assert_called_once()

    def test_fetch_receives_run_deadline(self):
        self.orchestrator.run(self.credentials, PipelineOptions(deadline_seconds=30))

        deadline = self.fetcher.fetch_ledger.call_args[1]["deadline"]
        self.assertTrue(deadline.bounded)
        self.assertLessEqual(deadline.remaining(), 30)

    def test_totals_when_requested(self):
        result = self.orchestrator.run(self.credentials, PipelineOptions(include_totals=True))

        totals = result.to_dict()["data"]["totales"]
        self.assertEqual(totals["totalAbonos"], 10000)
        self.assertEqual(totals["totalGastos"], 2000)
        self.assertEqual(totals["balance"], 8000)

    def test_telemetry_failure_short_circuits(self):
        self.capture.capture.side_effect = TelemetryNotCapturedError("no header")

        result = self.orchestrator.run(self.credentials)

        self.assertFalse(result.success)
        self.assertEqual(result.stage, Stage.START)
        self.assertEqual(result.error_type, "TelemetryNotCapturedError")
        self.exchanger.exchange.assert_not_called()
        self.fetcher.fetch_ledger.assert_not_called()
        self.assertEqual(result.to_dict(), {"success": False, "error": "no header"})

    def test_auth_failure_carries_no_partial_data(self):
        self.exchanger.exchange.side_effect = AuthError("Authentication error: 401 - denied", 401)

        result = self.orchestrator.run(self.credentials, PipelineOptions(include_totals=True))

        self.assertFalse(result.success)
        self.assertEqual(result.stage, Stage.TELEMETRY_CAPTURED)
        self.assertIsNone(result.token)
        self.assertIsNone(result.ledger)
        self.assertIn("401", result.error)
        self.fetcher.fetch_ledger.assert_not_called()

    def test_fetch_failure(self):
        self.fetcher.fetch_ledger.side_effect = FetchError("HTTP error: 500", 500)

        result = self.orchestrator.run(self.credentials)

        self.assertFalse(result.success)
        self.assertEqual(result.stage, Stage.TOKEN_OBTAINED)
        self.assertIsNone(result.token)
        self.assertEqual(result.error, "HTTP error: 500")

    def test_unexpected_error_is_reported(self):
        self.capture.capture.side_effect = RuntimeError("browser crashed")

        result = self.orchestrator.run(self.credentials)

        self.assertFalse(result.success)
        self.assertEqual(result.error, "browser crashed")
        self.assertEqual(result.error_type, "RuntimeError")

    def test_expired_deadline_stops_before_next_stage(self):
        def slow_capture(username, password, deadline=None):
            deadline._expires_at = 0
            return "telemetry-blob"

        self.capture.capture.side_effect = slow_capture

        result = self.orchestrator.run(self.credentials, PipelineOptions(deadline_seconds=30))

        self.assertFalse(result.success)
        self.assertEqual(result.error_type, "PipelineTimeoutError")
        self.assertIn("token_exchange", result.error)
        self.exchanger.exchange.assert_not_called()

    def test_admission_is_bounded(self):
        """Test runs beyond the session limit wait and time out with the deadline."""
        self.settings.max_concurrent_sessions = 1
        orchestrator = PipelineOrchestrator(self.settings)
        release = threading.Event()
        entered = threading.Event()

        def blocking_capture(username, password, deadline=None):
            entered.set()
            release.wait(5)
            return "telemetry-blob"

        self.capture.capture.side_effect = blocking_capture
        first = threading.Thread(target=orchestrator.run, args=(self.credentials,))
        first.start()
        try:
            self.assertTrue(entered.wait(5))
            result = orchestrator.run(self.credentials, PipelineOptions(deadline_seconds=0.05))
        finally:
            release.set()
            first.join(5)

        self.assertFalse(result.success)
        self.assertEqual(result.error_type, "PipelineTimeoutError")
        self.assertIn("admission", result.error)


if __name__ == "__main__":
    unittest.main()
