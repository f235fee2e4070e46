"""Token exchange module."""
from .models import AccessToken
from .token import TokenExchanger

__all__ = ["AccessToken", "TokenExchanger"]
