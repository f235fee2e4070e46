"""Exchange of a telemetry credential and login secret for a bearer token."""
from typing import Dict, Optional

import requests
from pydantic import ValidationError as PydanticValidationError

from .models import AccessToken
from ledgerflow.config.settings import AppSettings
from ledgerflow.utils.exceptions import AuthError
from ledgerflow.utils.logger import get_logger, mask_identifier

logger = get_logger()


class TokenExchanger:
    """Performs the single authentication handshake. Never retried."""

    def __init__(self, settings: AppSettings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()

    def build_headers(self, telemetry: str) -> Dict[str, str]:
        s = self.settings
        return {
            "referrer": s.token_referrer,
            "Content-Type": "application/x-www-form-urlencoded",
            "accept": "application/json",
            s.telemetry_header: telemetry,
            "app": s.token_app,
            "canal": s.token_canal,
            "nro_ser": s.token_nro_ser,
        }

    def exchange(
        self,
        username: str,
        password: str,
        client_id: str,
        telemetry: str,
        timeout: Optional[float] = None
    ) -> AccessToken:
        """
        Trade credentials and telemetry for an access token.

        Args:
            username: Login identifier
            password: Login secret
            client_id: Client identifier for the token endpoint
            telemetry: Telemetry header value captured from the browser
            timeout: HTTP timeout in seconds (defaults to settings)

        Returns:
            AccessToken

        Raises:
            AuthError: On non-success status, transport failure or a body without a token
        """
        form = {
            "scope": self.settings.token_scope,
            "username": username,
            "password": password,
            "client_id": client_id,
        }
        timeout = timeout if timeout is not None else self.settings.http_timeout_seconds

        logger.debug(
            f"Exchanging telemetry ({len(telemetry)} chars) for token, "
            f"user {mask_identifier(username)}"
        )

        try:
            response = self.session.post(
                self.settings.token_url,
                data=form,
                headers=self.build_headers(telemetry),
                timeout=timeout
            )
        except requests.RequestException as e:
            raise AuthError(f"Authentication request failed: {e}") from e

        if not response.ok:
            raise AuthError(
                f"Authentication error: {response.status_code} - {response.text}",
                status_code=response.status_code,
                body=response.text
            )

        try:
            token = AccessToken.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            logger.error(f"Token response rejected: {e}")
            raise AuthError(
                "Authentication response did not contain an access token",
                status_code=response.status_code,
                body=response.text
            ) from e

        logger.debug(f"Token obtained: type={token.token_type}, expires_in={token.expires_in}s")
        return token
