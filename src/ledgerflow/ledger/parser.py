"""Rule-based classification of free-text transaction notifications."""
import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple

from .models import Category, DailyLedger, LedgerEntry, RawRecord
from ledgerflow.utils.logger import get_logger

logger = get_logger()

DATE_PATTERN = re.compile(r"(\d{2}-\d{2}-\d{4})")
AMOUNT_PATTERN = re.compile(r"\$\s*(\d+(?:\.\d{3})*(?:,\d+)?)")
ACCOUNT_PATTERN = re.compile(r"cuenta (\d+)")
MERCHANT_PATTERN = re.compile(r"en ([A-Z\s*.]+?),?\s+el\s+\d")


def _account_description(template: str, fallback: str) -> Callable[[str], str]:
    def describe(text: str) -> str:
        match = ACCOUNT_PATTERN.search(text)
        return template.format(match.group(1)) if match else fallback
    return describe


def _merchant_description(fallback: str) -> Callable[[str], str]:
    def describe(text: str) -> str:
        match = MERCHANT_PATTERN.search(text)
        if match:
            merchant = match.group(1).strip()
            if merchant:
                return merchant
        return fallback
    return describe


def _fixed_description(description: str) -> Callable[[str], str]:
    return lambda text: description


@dataclass(frozen=True)
class ClassificationRule:
    """Substring predicate, target category and description extractor."""
    name: str
    keyword: Optional[str]  # None matches any text
    category: Category
    describe: Callable[[str], str]

    def matches(self, text: str) -> bool:
        return self.keyword is None or self.keyword in text


# Evaluated in order; the first matching rule wins.
DEFAULT_RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule(
        "incoming_transfer", "Transferencia hacia", Category.CREDIT,
        _account_description("Transferencia recibida en cuenta {}", "Transferencia recibida"),
    ),
    ClassificationRule(
        "debit_card_purchase", "Tarjeta de Débito", Category.DEBIT_EXPENSE,
        _merchant_description("Compra con tarjeta de débito"),
    ),
    ClassificationRule(
        "credit_card_purchase", "Tarjeta de Crédito", Category.CREDIT_CARD_EXPENSE,
        _merchant_description("Compra con tarjeta de crédito"),
    ),
    ClassificationRule(
        "outgoing_transfer", "Transferencia desde", Category.DEBIT_EXPENSE,
        _account_description("Transferencia enviada desde cuenta {}", "Transferencia enviada"),
    ),
    ClassificationRule(
        "credit_card_payment", "pago de tu TC", Category.DEBIT_EXPENSE,
        _fixed_description("Pago de tarjeta de crédito"),
    ),
    ClassificationRule(
        "fallback", None, Category.DEBIT_EXPENSE,
        _fixed_description("Movimiento"),
    ),
)


@dataclass
class ParsedTransaction:
    """A dated ledger entry produced from one record."""
    date: str
    entry: LedgerEntry
    rule: str


class TransactionParser:
    """Turns notification text into dated ledger entries."""

    def __init__(self, rules: Iterable[ClassificationRule] = DEFAULT_RULES):
        self.rules: List[ClassificationRule] = list(rules)
        if not self.rules or self.rules[-1].keyword is not None:
            raise ValueError("Rule table must end with a catch-all rule")

    def parse(self, text: str) -> Optional[ParsedTransaction]:
        """
        Parse one notification body.

        Args:
            text: Free-text notification body

        Returns:
            ParsedTransaction, or None when the text has no date or no amount
        """
        if not text:
            return None

        date_match = DATE_PATTERN.search(text)
        if not date_match:
            return None

        amount_match = AMOUNT_PATTERN.search(text)
        if not amount_match:
            return None

        rule = self.classify(text)
        entry = LedgerEntry(
            category=rule.category,
            amount=f"$ {amount_match.group(1)}",
            description=rule.describe(text)
        )
        return ParsedTransaction(date=date_match.group(1), entry=entry, rule=rule.name)

    def classify(self, text: str) -> ClassificationRule:
        for rule in self.rules:
            if rule.matches(text):
                return rule
        # Unreachable: the table ends with a catch-all
        return self.rules[-1]

    def build_ledger(self, records: Iterable[RawRecord]) -> DailyLedger:
        """Fold records into a per-date ledger, preserving arrival order."""
        ledger = DailyLedger()
        skipped = 0

        for record in records:
            parsed = self.parse(record.public_text)
            if parsed is None:
                skipped += 1
                logger.debug(f"Skipped record {record.id}: no date or amount in text")
                continue
            ledger.add(parsed.date, parsed.entry)

        logger.debug(
            f"Parsed {ledger.entry_count()} entries across {len(ledger)} dates "
            f"({skipped} records skipped)"
        )
        return ledger
