"""Ledger aggregation module."""
from decimal import Decimal

from .models import Category, DailyBucket, DailyLedger, LedgerTotals, Totals
from ledgerflow.utils.logger import get_logger

logger = get_logger()


def _sum(bucket: DailyBucket, category: Category) -> Decimal:
    return sum((entry.magnitude for entry in bucket.entries(category)), Decimal("0"))


class Aggregator:
    """Sums ledger entries per date and globally."""

    def __init__(self, ledger: DailyLedger):
        self.ledger = ledger

    def totals_for(self, date: str) -> Totals:
        """Totals for a single date; zero totals for unknown dates."""
        bucket = self.ledger.get(date)
        if bucket is None:
            return Totals()
        return Totals(
            total_credit=_sum(bucket, Category.CREDIT),
            total_debit=_sum(bucket, Category.DEBIT_EXPENSE),
            total_credit_card=_sum(bucket, Category.CREDIT_CARD_EXPENSE)
        )

    def total_credit(self, date: str) -> Decimal:
        return self.totals_for(date).total_credit

    def total_debit(self, date: str) -> Decimal:
        return self.totals_for(date).total_debit

    def total_credit_card(self, date: str) -> Decimal:
        return self.totals_for(date).total_credit_card

    def total_expenses(self, date: str) -> Decimal:
        return self.totals_for(date).total_expenses

    def aggregate(self) -> LedgerTotals:
        """
        Aggregate the whole ledger.

        Returns:
            LedgerTotals with global and per-date sums
        """
        by_date = {date: self.totals_for(date) for date in self.ledger.dates}

        overall = Totals()
        for totals in by_date.values():
            overall.total_credit += totals.total_credit
            overall.total_debit += totals.total_debit
            overall.total_credit_card += totals.total_credit_card

        logger.debug(
            f"Aggregated {len(by_date)} dates: credit={overall.total_credit} "
            f"expenses={overall.total_expenses} balance={overall.balance}"
        )

        return LedgerTotals(overall=overall, by_date=by_date)
