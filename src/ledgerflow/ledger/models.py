"""Data models for ledger extraction."""
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from ledgerflow.utils.exceptions import ValidationError


class Category(str, Enum):
    """Ledger entry category; the sign of the amount is implied by it."""
    CREDIT = "credit"
    DEBIT_EXPENSE = "debitExpense"
    CREDIT_CARD_EXPENSE = "creditCardExpense"

    @property
    def wire_key(self) -> str:
        return _WIRE_KEYS[self]


_WIRE_KEYS = {
    Category.CREDIT: "abonos",
    Category.DEBIT_EXPENSE: "gastosDebito",
    Category.CREDIT_CARD_EXPENSE: "gastosCredito",
}


def parse_amount(amount: str) -> Decimal:
    """
    Convert a localized currency string to a Decimal magnitude.

    "$ 1.234.567,89" -> Decimal("1234567.89"). Dots are thousands
    separators and the comma is the decimal separator.
    """
    cleaned = amount.replace("$", "").strip().replace(".", "").replace(",", ".")
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        raise ValidationError(f"Unparseable amount: {amount!r}")
    return abs(value)


def to_number(value: Decimal):
    """Render a Decimal for JSON: int when integral, float otherwise."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


@dataclass
class RawRecord:
    """One upstream push-notification record."""
    id: int
    public_text: str
    private_text: str = ""
    id_msg_ext: str = ""
    id_transaction: str = ""
    id_user: Optional[int] = None
    ref_user: str = ""
    read: bool = False
    read_by_device: bool = False
    received: bool = False
    received_by_device: bool = False
    deleted: bool = False
    hidden: bool = False
    device_found: bool = False
    ts_create: Optional[int] = None
    ts_update: Optional[int] = None
    ts_expire: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RawRecord":
        """Build a record from the upstream JSON object."""
        return cls(
            id=data.get("id", 0),
            public_text=data.get("publicContentText") or "",
            private_text=data.get("privateContentText") or "",
            id_msg_ext=data.get("idMsgExt") or "",
            id_transaction=data.get("idTransaction") or "",
            id_user=data.get("idUser"),
            ref_user=data.get("refUser") or "",
            read=bool(data.get("read", False)),
            read_by_device=bool(data.get("readByDevice", False)),
            received=bool(data.get("received", False)),
            received_by_device=bool(data.get("receivedByDevice", False)),
            deleted=bool(data.get("deleted", False)),
            hidden=bool(data.get("hidden", False)),
            device_found=bool(data.get("deviceFound", False)),
            ts_create=data.get("tsCreate"),
            ts_update=data.get("tsUpdate"),
            ts_expire=data.get("tsExpire")
        )


@dataclass
class LedgerEntry:
    """One classified transaction."""
    category: Category
    amount: str  # display form, e.g. "$ 10.000"
    description: str

    @property
    def magnitude(self) -> Decimal:
        return parse_amount(self.amount)

    def to_dict(self) -> Dict[str, str]:
        return {"mov": self.amount, "descripcion": self.description}


@dataclass
class DailyBucket:
    """Entries for a single date, one ordered list per category."""
    credit: List[LedgerEntry] = field(default_factory=list)
    debit_expense: List[LedgerEntry] = field(default_factory=list)
    credit_card_expense: List[LedgerEntry] = field(default_factory=list)

    def entries(self, category: Category) -> List[LedgerEntry]:
        if category is Category.CREDIT:
            return self.credit
        if category is Category.DEBIT_EXPENSE:
            return self.debit_expense
        return self.credit_card_expense

    def append(self, entry: LedgerEntry) -> None:
        self.entries(entry.category).append(entry)

    def __len__(self) -> int:
        return len(self.credit) + len(self.debit_expense) + len(self.credit_card_expense)

    def to_dict(self) -> Dict[str, List[Dict[str, str]]]:
        return {
            category.wire_key: [entry.to_dict() for entry in self.entries(category)]
            for category in Category
        }


class DailyLedger:
    """Entries grouped by literal date string (DD-MM-YYYY), in first-seen order."""

    def __init__(self):
        self._buckets: "OrderedDict[str, DailyBucket]" = OrderedDict()

    def add(self, date: str, entry: LedgerEntry) -> None:
        bucket = self._buckets.get(date)
        if bucket is None:
            bucket = self._buckets[date] = DailyBucket()
        bucket.append(entry)

    @property
    def dates(self) -> List[str]:
        return list(self._buckets)

    def items(self) -> Iterator[Tuple[str, DailyBucket]]:
        return iter(self._buckets.items())

    def get(self, date: str) -> Optional[DailyBucket]:
        return self._buckets.get(date)

    def entry_count(self) -> int:
        return sum(len(bucket) for bucket in self._buckets.values())

    def __getitem__(self, date: str) -> DailyBucket:
        return self._buckets[date]

    def __contains__(self, date: object) -> bool:
        return date in self._buckets

    def __len__(self) -> int:
        return len(self._buckets)

    def to_dict(self) -> Dict[str, Dict[str, List[Dict[str, str]]]]:
        return {date: bucket.to_dict() for date, bucket in self._buckets.items()}


@dataclass
class Totals:
    """Sums of the three categories for one date or the whole ledger."""
    total_credit: Decimal = Decimal("0")
    total_debit: Decimal = Decimal("0")
    total_credit_card: Decimal = Decimal("0")

    @property
    def total_expenses(self) -> Decimal:
        return self.total_debit + self.total_credit_card

    @property
    def balance(self) -> Decimal:
        return self.total_credit - self.total_expenses

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalAbonos": to_number(self.total_credit),
            "totalGastosDebito": to_number(self.total_debit),
            "totalGastosCredito": to_number(self.total_credit_card),
            "totalGastos": to_number(self.total_expenses),
            "balance": to_number(self.balance),
        }


@dataclass
class LedgerTotals:
    """Global totals plus per-date totals."""
    overall: Totals
    by_date: Dict[str, Totals] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result = self.overall.to_dict()
        result["porFecha"] = {date: totals.to_dict() for date, totals in self.by_date.items()}
        return result
