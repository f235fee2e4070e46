"""Retrieval of raw notification records from the ledger endpoint."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from .models import DailyLedger, RawRecord
from .parser import TransactionParser
from ledgerflow.config.settings import AppSettings
from ledgerflow.utils.deadline import Deadline
from ledgerflow.utils.exceptions import FetchError
from ledgerflow.utils.logger import get_logger, mask_identifier
from ledgerflow.utils.retry import retry_with_backoff

logger = get_logger()

# Nesting of the record list inside the response body
RECORDS_PATH = ("DATA", "ns2:listContentsResponse", "return", "contents")


@dataclass
class FetchResult:
    """Records extracted from one response, plus why extraction stopped early."""
    records: List[RawRecord] = field(default_factory=list)
    missing_key: Optional[str] = None
    more_elements: bool = False

    @property
    def degraded(self) -> bool:
        return self.missing_key is not None


def extract_records(payload: Any) -> FetchResult:
    """
    Walk the response body down to the record list.

    A missing level yields an empty result naming the missing key;
    it is never an error.
    """
    node = payload
    parent: Any = None
    for key in RECORDS_PATH:
        if not isinstance(node, dict) or node.get(key) is None:
            return FetchResult(missing_key=key)
        parent, node = node, node[key]

    if not isinstance(node, list):
        return FetchResult(missing_key=RECORDS_PATH[-1])

    records = [RawRecord.from_dict(item) for item in node if isinstance(item, dict)]
    return FetchResult(records=records, more_elements=bool(parent.get("moreElements", False)))


class LedgerFetcher:
    """Fetches push-notification records using a bearer token."""

    def __init__(self, settings: AppSettings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()

    def build_body(self, account_id: str, limit: Optional[int] = None) -> Dict[str, Any]:
        """Build the legacy integration envelope for a listContents request."""
        s = self.settings
        limit = limit if limit is not None else s.ledger_default_limit
        return {
            "Cabecera": {
                "HOST": {
                    "USUARIO-ALT": s.ledger_usuario_alt,
                    "TERMINAL-ALT": s.ledger_terminal_alt,
                    "CANAL-ID": s.ledger_canal_id,
                },
                "CanalFisico": s.ledger_canal_fisico,
                "CanalLogico": s.ledger_canal_logico,
                "RutCliente": account_id,
                "RutUsuario": account_id,
                "IpCliente": s.ledger_ip_cliente,
                "InfoDispositivo": s.ledger_info_dispositivo,
            },
            "Entrada": {
                "RutCliente": account_id,
                "listContents": {
                    "params": {
                        "keyValue": account_id,
                        "limit": str(limit),
                        "read": None,
                        "refApp": s.ledger_ref_app,
                        "refCompany": s.ledger_ref_company,
                    }
                },
            },
        }

    def fetch_records(
        self,
        access_token: str,
        api_client_id: str,
        account_id: str,
        limit: Optional[int] = None,
        timeout: Optional[float] = None,
        deadline: Optional[Deadline] = None
    ) -> FetchResult:
        """
        Retrieve raw records for an account.

        Args:
            access_token: Bearer token from the token exchange
            api_client_id: Client identifier for the ledger endpoint
            account_id: Account (customer) identifier
            limit: Maximum number of records requested
            timeout: HTTP timeout in seconds (defaults to settings)
            deadline: Optional end-to-end deadline bounding every attempt and backoff

        Returns:
            FetchResult; empty with ``missing_key`` set when the body is malformed

        Raises:
            FetchError: On non-success HTTP status or transport failure
            PipelineTimeoutError: If the deadline expires before an attempt
        """
        body = self.build_body(account_id, limit)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {access_token}",
            "x-santander-client-id": api_client_id,
        }
        timeout = timeout if timeout is not None else self.settings.http_timeout_seconds

        post = retry_with_backoff(
            max_retries=self.settings.fetch_max_retries,
            initial_delay=self.settings.retry_initial_delay_seconds,
            backoff_factor=self.settings.retry_backoff_factor,
            retryable_exceptions=(FetchError,),
            deadline=deadline
        )(self._post)

        logger.debug(
            f"Requesting up to {body['Entrada']['listContents']['params']['limit']} records "
            f"for account {mask_identifier(account_id)}"
        )
        response = post(headers, body, timeout, deadline)

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Ledger response body is not JSON; returning empty result")
            return FetchResult(missing_key=RECORDS_PATH[0])

        result = extract_records(payload)
        if result.degraded:
            logger.warning(
                f"Ledger response missing '{result.missing_key}'; returning empty result"
            )
            if isinstance(payload, dict) and isinstance(payload.get("DATA"), dict):
                logger.debug(f"DATA keys: {list(payload['DATA'].keys())}")
        else:
            logger.debug(
                f"Received {len(result.records)} records (more available: {result.more_elements})"
            )
        return result

    def fetch_ledger(
        self,
        access_token: str,
        api_client_id: str,
        account_id: str,
        limit: Optional[int] = None,
        parser: Optional[TransactionParser] = None,
        timeout: Optional[float] = None,
        deadline: Optional[Deadline] = None
    ) -> DailyLedger:
        """Retrieve records and fold them into a per-date ledger."""
        result = self.fetch_records(access_token, api_client_id, account_id, limit, timeout, deadline)
        return (parser or TransactionParser()).build_ledger(result.records)

    def _post(
        self,
        headers: Dict[str, str],
        body: Dict[str, Any],
        timeout: float,
        deadline: Optional[Deadline] = None
    ) -> requests.Response:
        if deadline is not None:
            deadline.check("record_fetch")
            timeout = deadline.clamp(timeout)

        try:
            response = self.session.post(
                self.settings.ledger_url,
                json=body,
                headers=headers,
                timeout=timeout
            )
        except requests.RequestException as e:
            raise FetchError(f"Ledger request failed: {e}") from e

        if not response.ok:
            raise FetchError(f"HTTP error: {response.status_code}", status_code=response.status_code)
        return response
