"""Per-invocation credentials and pipeline options."""
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ledgerflow.utils.exceptions import ValidationError
from ledgerflow.utils.logger import mask_identifier
from .settings import AppSettings

# Wire name -> attribute name
CREDENTIAL_FIELDS = {
    "username": "username",
    "password": "password",
    "clientId": "client_id",
    "apiClientId": "api_client_id",
}

SECRET_FIELDS = ("password",)


@dataclass(repr=False)
class Credentials:
    """Login identifier, login secret and the two client identifiers."""
    username: str
    password: str
    client_id: str
    api_client_id: str

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "Credentials":
        """Build credentials from a request body (camelCase or snake_case keys)."""
        data = data or {}
        values = {}
        for wire_name, attr in CREDENTIAL_FIELDS.items():
            value = data.get(wire_name)
            if value is None:
                value = data.get(attr)
            value = str(value) if value is not None else ""
            # Secrets are kept verbatim; only identifiers are trimmed
            values[attr] = value if attr in SECRET_FIELDS else value.strip()
        return cls(**values)

    def __repr__(self) -> str:
        return (
            f"Credentials(username={mask_identifier(self.username)!r}, password='***', "
            f"client_id={mask_identifier(self.client_id)!r}, "
            f"api_client_id={mask_identifier(self.api_client_id)!r})"
        )


def validate_credentials(credentials: Credentials) -> tuple[bool, str]:
    """Check that all four credential fields are present."""
    missing = [
        wire_name
        for wire_name, attr in CREDENTIAL_FIELDS.items()
        if not getattr(credentials, attr).strip()
    ]
    if missing:
        return False, (
            f"Missing credentials: {', '.join(missing)}. "
            "username, password, clientId and apiClientId are required"
        )
    return True, "Credentials are valid"


@dataclass
class PipelineOptions:
    """Call-time options for one pipeline run."""
    headless: bool = True
    verbose: bool = False
    limit: int = 50
    include_totals: bool = False
    deadline_seconds: Optional[float] = None

    @classmethod
    def from_mapping(
        cls,
        data: Optional[Mapping[str, Any]],
        settings: AppSettings,
        include_totals: bool = False
    ) -> "PipelineOptions":
        """Build options from a request body, falling back to settings defaults."""
        data = data or {}

        headless = data.get("headless")
        verbose = data.get("verbose")
        limit = data.get("limit") or settings.default_limit
        deadline = data.get("deadlineSeconds", data.get("deadline_seconds"))

        try:
            limit = int(limit)
        except (TypeError, ValueError):
            raise ValidationError(f"limit must be a positive integer, got {limit!r}")
        if limit < 1:
            raise ValidationError(f"limit must be a positive integer, got {limit}")

        if deadline is not None:
            try:
                deadline = float(deadline)
            except (TypeError, ValueError):
                raise ValidationError(f"deadlineSeconds must be a number, got {deadline!r}")
            if deadline <= 0:
                raise ValidationError("deadlineSeconds must be greater than zero")

        return cls(
            headless=settings.default_headless if headless is None else _as_bool(headless),
            verbose=settings.default_verbose if verbose is None else _as_bool(verbose),
            limit=limit,
            include_totals=include_totals,
            deadline_seconds=deadline
        )


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)
