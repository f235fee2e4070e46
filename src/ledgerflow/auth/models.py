"""Data models for the token exchange."""
from typing import Optional

from pydantic import BaseModel, Field


class AccessToken(BaseModel):
    """Bearer token returned by the token endpoint."""
    access_token: str = Field(min_length=1, description="Bearer token")
    token_type: str = Field(default="Bearer", description="Token type, usually Bearer")
    expires_in: int = Field(default=0, description="Time-to-live in seconds")
    refresh_token: Optional[str] = None
    scope: Optional[str] = None

    def __repr__(self) -> str:
        return (
            f"AccessToken(token_type={self.token_type!r}, expires_in={self.expires_in}, "
            f"access_token='{self.access_token[:6]}...')"
        )

    __str__ = __repr__
