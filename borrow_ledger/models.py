"""
Obligation Models Module

Defines borrowed/lent money records, drafts and aggregate statistics, and
their conversion to and from the persisted JSON blob. Amounts are Decimal and
are stored as Decimal strings; dates are timezone-aware datetimes stored as
ISO-8601 strings.
"""

from decimal import Decimal, InvalidOperation
from datetime import datetime, timezone
from dataclasses import dataclass, field, fields, replace
from typing import Dict, List, Optional, Any
from enum import Enum


class ObligationType(Enum):
    """Direction of an obligation"""
    BORROWED = "borrowed"  # Ledger owner owes the counterparty
    LENT = "lent"          # Counterparty owes the ledger owner


# Python attribute name -> persisted blob key
BLOB_KEYS = {
    "id": "id",
    "type": "type",
    "person_name": "personName",
    "amount": "amount",
    "reason": "reason",
    "borrowed_date": "borrowedDate",
    "due_date": "dueDate",
    "is_paid": "isPaid",
    "wallet_id": "walletId",
    "notes": "notes",
}
ATTRIBUTE_NAMES = {blob_key: name for name, blob_key in BLOB_KEYS.items()}


def parse_datetime(value: Any) -> datetime:
    """Parse an ISO-8601 string (or datetime) into an aware UTC-based datetime"""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Cannot parse date from {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_amount(value: Any) -> Decimal:
    """Convert a stored amount (Decimal string or JSON number) to Decimal"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Invalid amount {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Invalid amount {value!r}")


def _coerce_type(value: Any) -> ObligationType:
    if isinstance(value, ObligationType):
        return value
    return ObligationType(value)


@dataclass
class BorrowedMoneyDraft:
    """An obligation that has not been assigned an id yet"""
    type: ObligationType
    person_name: str
    amount: Decimal
    reason: str
    borrowed_date: datetime
    due_date: datetime
    wallet_id: str
    is_paid: bool = False
    notes: Optional[str] = None

    def __post_init__(self):
        self.type = _coerce_type(self.type)
        self.amount = parse_amount(self.amount)
        if self.amount < 0:
            raise ValueError("Amount must not be negative")
        self.borrowed_date = parse_datetime(self.borrowed_date)
        self.due_date = parse_datetime(self.due_date)

    @property
    def is_lent(self) -> bool:
        return self.type == ObligationType.LENT


@dataclass
class BorrowedMoney:
    """
    A single borrowed or lent money obligation.

    Only ``is_paid`` and fields touched by an explicit update change after
    creation; ``id`` never does.
    """
    id: str
    type: ObligationType
    person_name: str
    amount: Decimal
    reason: str
    borrowed_date: datetime
    due_date: datetime
    wallet_id: str
    is_paid: bool = False
    notes: Optional[str] = None

    # Blob keys this version does not know about, written back unchanged
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_lent(self) -> bool:
        return self.type == ObligationType.LENT

    def is_overdue(self, now: datetime) -> bool:
        """Unpaid and due strictly before ``now``"""
        return not self.is_paid and self.due_date < now

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on person name, reason or notes"""
        needle = query.lower()
        return (
            needle in self.person_name.lower() or
            needle in self.reason.lower() or
            bool(self.notes and needle in self.notes.lower())
        )

    def copy(self) -> 'BorrowedMoney':
        return replace(self, extra=dict(self.extra))

    @classmethod
    def from_draft(cls, record_id: str, draft: BorrowedMoneyDraft) -> 'BorrowedMoney':
        return cls(
            id=record_id,
            type=draft.type,
            person_name=draft.person_name,
            amount=draft.amount,
            reason=draft.reason,
            borrowed_date=draft.borrowed_date,
            due_date=draft.due_date,
            wallet_id=draft.wallet_id,
            is_paid=draft.is_paid,
            notes=draft.notes,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted blob representation"""
        result = dict(self.extra)
        result.update({
            "id": self.id,
            "type": self.type.value,
            "personName": self.person_name,
            "amount": str(self.amount),
            "reason": self.reason,
            "borrowedDate": self.borrowed_date.isoformat(),
            "dueDate": self.due_date.isoformat(),
            "isPaid": self.is_paid,
            "walletId": self.wallet_id,
        })
        if self.notes is not None:
            result["notes"] = self.notes
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BorrowedMoney':
        """
        Create instance from the persisted blob representation.

        Records written before obligations had a direction default to
        ``borrowed``.
        """
        extra = {k: v for k, v in data.items() if k not in ATTRIBUTE_NAMES}
        return cls(
            id=str(data["id"]),
            type=_coerce_type(data.get("type") or ObligationType.BORROWED.value),
            person_name=data.get("personName", ""),
            amount=parse_amount(data["amount"]),
            reason=data.get("reason", ""),
            borrowed_date=parse_datetime(data["borrowedDate"]),
            due_date=parse_datetime(data["dueDate"]),
            wallet_id=data.get("walletId", ""),
            is_paid=bool(data.get("isPaid", False)),
            notes=data.get("notes"),
            extra=extra,
        )

    def with_changes(self, changes: Dict[str, Any]) -> 'BorrowedMoney':
        """
        Return a copy with ``changes`` merged in (shallow overwrite).

        Keys may be attribute names or blob keys. ``id`` is ignored.
        """
        known = {f.name for f in fields(self)} - {"id", "extra"}
        normalized = {}
        for key, value in changes.items():
            name = ATTRIBUTE_NAMES.get(key, key)
            if name == "id":
                continue
            if name not in known:
                raise ValueError(f"Unknown borrowed money field: {key}")
            normalized[name] = value

        if "type" in normalized:
            normalized["type"] = _coerce_type(normalized["type"])
        if "amount" in normalized:
            normalized["amount"] = parse_amount(normalized["amount"])
            if normalized["amount"] < 0:
                raise ValueError("Amount must not be negative")
        for name in ("borrowed_date", "due_date"):
            if name in normalized:
                normalized[name] = parse_datetime(normalized[name])
        if "is_paid" in normalized:
            normalized["is_paid"] = bool(normalized["is_paid"])

        return replace(self, extra=dict(self.extra), **normalized)


def records_from_blob(items: List[Dict[str, Any]]) -> List[BorrowedMoney]:
    """Deserialize a decoded blob array"""
    if not isinstance(items, list):
        raise ValueError("Borrowed money blob must be a JSON array")
    return [BorrowedMoney.from_dict(item) for item in items]


def records_to_blob(records: List[BorrowedMoney]) -> List[Dict[str, Any]]:
    return [record.to_dict() for record in records]


@dataclass
class LedgerStatistics:
    """Aggregate balances partitioned by obligation type"""
    total_borrowed: Decimal = Decimal('0')
    total_lent: Decimal = Decimal('0')
    total_borrowed_paid: Decimal = Decimal('0')
    total_lent_paid: Decimal = Decimal('0')
    total_borrowed_pending: Decimal = Decimal('0')
    total_lent_pending: Decimal = Decimal('0')
    total_overdue_borrowed: Decimal = Decimal('0')
    total_overdue_lent: Decimal = Decimal('0')
    total_records: int = 0

    @property
    def net_balance(self) -> Decimal:
        """Pending amount owed to the owner minus pending amount the owner owes"""
        return self.total_lent_pending - self.total_borrowed_pending

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalBorrowed": str(self.total_borrowed),
            "totalLent": str(self.total_lent),
            "totalBorrowedPaid": str(self.total_borrowed_paid),
            "totalLentPaid": str(self.total_lent_paid),
            "totalBorrowedPending": str(self.total_borrowed_pending),
            "totalLentPending": str(self.total_lent_pending),
            "totalOverdueBorrowed": str(self.total_overdue_borrowed),
            "totalOverdueLent": str(self.total_overdue_lent),
            "totalRecords": self.total_records,
        }

    @classmethod
    def from_records(cls, records: List[BorrowedMoney], now: datetime) -> 'LedgerStatistics':
        stats = cls(total_records=len(records))
        for record in records:
            overdue = record.is_overdue(now)
            if record.type == ObligationType.BORROWED:
                stats.total_borrowed += record.amount
                if record.is_paid:
                    stats.total_borrowed_paid += record.amount
                else:
                    stats.total_borrowed_pending += record.amount
                if overdue:
                    stats.total_overdue_borrowed += record.amount
            else:
                stats.total_lent += record.amount
                if record.is_paid:
                    stats.total_lent_paid += record.amount
                else:
                    stats.total_lent_pending += record.amount
                if overdue:
                    stats.total_overdue_lent += record.amount
        return stats
