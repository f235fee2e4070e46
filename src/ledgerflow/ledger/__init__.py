"""Ledger retrieval, classification and aggregation."""
from .models import (
    Category,
    RawRecord,
    LedgerEntry,
    DailyBucket,
    DailyLedger,
    Totals,
    LedgerTotals,
    parse_amount
)
from .parser import TransactionParser, ClassificationRule, ParsedTransaction, DEFAULT_RULES
from .aggregator import Aggregator
from .fetcher import LedgerFetcher, FetchResult, extract_records

__all__ = [
    "Category",
    "RawRecord",
    "LedgerEntry",
    "DailyBucket",
    "DailyLedger",
    "Totals",
    "LedgerTotals",
    "parse_amount",
    "TransactionParser",
    "ClassificationRule",
    "ParsedTransaction",
    "DEFAULT_RULES",
    "Aggregator",
    "LedgerFetcher",
    "FetchResult",
    "extract_records"
]
