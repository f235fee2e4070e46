"""Tests for the ledger record fetcher."""
import unittest
from unittest import mock

import requests

from ledgerflow.config.settings import AppSettings
from ledgerflow.ledger.fetcher import LedgerFetcher, extract_records
from ledgerflow.utils.deadline import Deadline
from ledgerflow.utils.exceptions import FetchError, PipelineTimeoutError

from fakes import FakeResponse, FakeSession


def payload(contents, more=False):
    return {
        "DATA": {
            "ns2:listContentsResponse": {
                "return": {"contents": contents, "moreElements": more}
            }
        }
    }


SAMPLE_CONTENTS = [
    {"id": 1, "publicContentText": "Transferencia hacia cuenta 12345, $ 10.000 el 01-05-2024"},
    {"id": 2, "publicContentText": "Compra con Tarjeta de Débito por $ 2.000 en KIOSKO el 01-05-2024"},
]


class TestExtractRecords(unittest.TestCase):
    """Test walking the response body."""

    def test_records_and_more_flag(self):
        result = extract_records(payload(SAMPLE_CONTENTS, more=True))

        self.assertFalse(result.degraded)
        self.assertEqual([r.id for r in result.records], [1, 2])
        self.assertTrue(result.more_elements)

    def test_each_missing_level_is_named(self):
        """Test the diagnostic names the first missing key."""
        cases = [
            ({}, "DATA"),
            ({"DATA": {}}, "ns2:listContentsResponse"),
            ({"DATA": {"ns2:listContentsResponse": {}}}, "return"),
            ({"DATA": {"ns2:listContentsResponse": {"return": {}}}}, "contents"),
        ]
        for body, key in cases:
            with self.subTest(key=key):
                result = extract_records(body)
                self.assertEqual(result.records, [])
                self.assertEqual(result.missing_key, key)

    def test_non_list_contents_is_degraded(self):
        result = extract_records(payload({"id": 1}))
        self.assertEqual(result.missing_key, "contents")

    def test_empty_contents_is_not_degraded(self):
        result = extract_records(payload([]))

        self.assertFalse(result.degraded)
        self.assertEqual(result.records, [])

    def test_non_dict_body(self):
        self.assertEqual(extract_records([1, 2]).missing_key, "DATA")


class TestLedgerFetcher(unittest.TestCase):
    """Test LedgerFetcher functionality."""

    def setUp(self):
        """Set up test fixtures."""
        self.settings = AppSettings(ledger_url="https://ledger.test/api")

    def test_request_shape(self):
        """Test headers and body sent to the ledger endpoint."""
        session = FakeSession([FakeResponse(payload=payload([]))])
        fetcher = LedgerFetcher(self.settings, session=session)

        fetcher.fetch_records("tok", "api-client", "11111111-1", limit=10, timeout=5)

        url, kwargs = session.calls[0]
        self.assertEqual(url, "https://ledger.test/api")
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer tok")
        self.assertEqual(kwargs["headers"]["x-santander-client-id"], "api-client")
        self.assertEqual(kwargs["headers"]["Content-Type"], "application/json")
        self.assertEqual(kwargs["timeout"], 5)

        body = kwargs["json"]
        self.assertEqual(body["Cabecera"]["RutCliente"], "11111111-1")
        self.assertEqual(body["Cabecera"]["HOST"]["CANAL-ID"], "078")
        params = body["Entrada"]["listContents"]["params"]
        self.assertEqual(params["keyValue"], "11111111-1")
        self.assertEqual(params["limit"], "10")
        self.assertIsNone(params["read"])

    def test_default_limit(self):
        body = LedgerFetcher(self.settings, session=FakeSession([])).build_body("1")
        self.assertEqual(body["Entrada"]["listContents"]["params"]["limit"], "25")

    def test_fetch_ledger(self):
        session = FakeSession([FakeResponse(payload=payload(SAMPLE_CONTENTS))])

        ledger = LedgerFetcher(self.settings, session=session).fetch_ledger("tok", "c", "1")

        bucket = ledger["01-05-2024"]
        self.assertEqual(len(bucket.credit), 1)
        self.assertEqual(bucket.debit_expense[0].description, "KIOSKO")

    def test_missing_contents_returns_empty_ledger(self):
        """Test a body missing the record list yields an empty ledger, not an error."""
        body = {"DATA": {"ns2:listContentsResponse": {"return": {"moreElements": False}}}}
        session = FakeSession([FakeResponse(payload=body)])

        ledger = LedgerFetcher(self.settings, session=session).fetch_ledger("tok", "c", "1")

        self.assertEqual(len(ledger), 0)

    def test_non_json_body_is_degraded(self):
        session = FakeSession([FakeResponse(payload=None, text="<html>")])

        result = LedgerFetcher(self.settings, session=session).fetch_records("tok", "c", "1")

        self.assertEqual(result.records, [])
        self.assertEqual(result.missing_key, "DATA")

    def test_http_error_raises_fetch_error(self):
        session = FakeSession([FakeResponse(status_code=503)])

        with self.assertRaises(FetchError) as ctx:
            LedgerFetcher(self.settings, session=session).fetch_records("tok", "c", "1")

        self.assertEqual(ctx.exception.status_code, 503)
        self.assertIn("503", str(ctx.exception))
        self.assertEqual(len(session.calls), 1)

    def test_transport_error_raises_fetch_error(self):
        session = FakeSession([requests.ConnectionError("connection refused")])

        with self.assertRaises(FetchError) as ctx:
            LedgerFetcher(self.settings, session=session).fetch_records("tok", "c", "1")

        self.assertIsNone(ctx.exception.status_code)

    @mock.patch("ledgerflow.utils.retry.time.sleep")
    def test_retries_server_errors_when_enabled(self, sleep):
        self.settings.fetch_max_retries = 2
        session = FakeSession([
            FakeResponse(status_code=502),
            FakeResponse(payload=payload(SAMPLE_CONTENTS)),
        ])

        result = LedgerFetcher(self.settings, session=session).fetch_records("tok", "c", "1")

        self.assertEqual(len(result.records), 2)
        self.assertEqual(len(session.calls), 2)
        sleep.assert_called_once_with(1.0)

    @mock.patch("ledgerflow.utils.retry.time.sleep")
    def test_client_errors_are_not_retried(self, sleep):
        self.settings.fetch_max_retries = 2
        session = FakeSession([FakeResponse(status_code=401)])

        with self.assertRaises(FetchError):
            LedgerFetcher(self.settings, session=session).fetch_records("tok", "c", "1")

        self.assertEqual(len(session.calls), 1)
        sleep.assert_not_called()

    def test_deadline_bounds_http_timeout(self):
        session = FakeSession([FakeResponse(payload=payload([]))])

        LedgerFetcher(self.settings, session=session).fetch_records("tok", "c", "1", deadline=Deadline(2))

        self.assertLessEqual(session.calls[0][1]["timeout"], 2)

    @mock.patch("ledgerflow.utils.retry.time.sleep")
    def test_no_backoff_past_deadline(self, sleep):
        """Test a retry whose backoff would outlast the deadline is not attempted."""
        self.settings.fetch_max_retries = 3
        session = FakeSession([FakeResponse(status_code=502), FakeResponse(payload=payload([]))])

        with self.assertRaises(FetchError):
            LedgerFetcher(self.settings, session=session).fetch_records(
                "tok", "c", "1", deadline=Deadline(0.5)
            )

        self.assertEqual(len(session.calls), 1)
        sleep.assert_not_called()

    @mock.patch("ledgerflow.utils.retry.time.sleep")
    def test_deadline_checked_before_each_retry(self, sleep):
        deadline = Deadline(60)

        def expire(seconds):
            deadline._expires_at = 0

        sleep.side_effect = expire
        self.settings.fetch_max_retries = 3
        session = FakeSession([FakeResponse(status_code=502), FakeResponse(payload=payload([]))])

        with self.assertRaises(PipelineTimeoutError) as ctx:
            LedgerFetcher(self.settings, session=session).fetch_records("tok", "c", "1", deadline=deadline)

        self.assertEqual(ctx.exception.stage, "record_fetch")
        self.assertEqual(len(session.calls), 1)


if __name__ == "__main__":
    unittest.main()
