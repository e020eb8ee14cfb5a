"""
Wallet Transaction Module

Defines the seam to the wallet transaction ledger. The borrow ledger only
produces transactions (one when an obligation is recorded, one when it is
repaid); it never reads transaction state back.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass, field
from typing import Dict, List, Any
from enum import Enum
import uuid

from .logging_config import get_logger, log_action


class TransactionType(Enum):
    """Direction of a wallet transaction"""
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


@dataclass
class TransactionRequest:
    """Fields sent to the transaction recorder"""
    amount: Decimal
    description: str
    type: TransactionType
    wallet_id: str
    date: str  # ISO-8601 timestamp of the call
    notes: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amount": str(self.amount),
            "description": self.description,
            "type": self.type.value,
            "walletId": self.wallet_id,
            "date": self.date,
            "notes": self.notes,
        }


@dataclass
class TransactionRecord:
    """A transaction as returned by the recorder"""
    id: str
    request: TransactionRequest
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def amount(self) -> Decimal:
        return self.request.amount

    @property
    def type(self) -> TransactionType:
        return self.request.type

    @property
    def wallet_id(self) -> str:
        return self.request.wallet_id


class TransactionRecorder(ABC):
    """Abstract interface for the wallet transaction collaborator"""

    @abstractmethod
    async def create_transaction(self, request: TransactionRequest) -> TransactionRecord:
        """Record a monetary movement; failures are raised to the caller"""
        pass


class InMemoryTransactionRecorder(TransactionRecorder):
    """Keeps created transactions in call order (testing, standalone use)"""

    def __init__(self):
        self.transactions: List[TransactionRecord] = []
        self.logger = get_logger("borrow_ledger.transactions")

    async def create_transaction(self, request: TransactionRequest) -> TransactionRecord:
        record = TransactionRecord(id=str(uuid.uuid4()), request=request)
        self.transactions.append(record)

        log_action(
            self.logger, "info", f"Transaction recorded: {request.type.value}",
            action="create_transaction", resource=f"wallet:{request.wallet_id}",
            extra={"transaction_id": record.id, "amount": str(request.amount)}
        )
        return record

    def for_wallet(self, wallet_id: str) -> List[TransactionRecord]:
        return [t for t in self.transactions if t.wallet_id == wallet_id]

    def wallet_balance(self, wallet_id: str) -> Decimal:
        """Net of INCOME minus EXPENSE recorded against a wallet"""
        balance = Decimal('0')
        for transaction in self.for_wallet(wallet_id):
            if transaction.type == TransactionType.INCOME:
                balance += transaction.amount
            else:
                balance -= transaction.amount
        return balance
