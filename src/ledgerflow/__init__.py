"""LedgerFlow: transaction history extraction from a retail bank's digital channel."""

__version__ = "1.0.0"
