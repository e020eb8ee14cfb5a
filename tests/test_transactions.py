"""
Tests for the wallet transaction seam
"""

import pytest
from decimal import Decimal

from borrow_ledger.transactions import (
    TransactionRecorder, TransactionRequest, TransactionType,
    InMemoryTransactionRecorder
)


def make_request(**overrides) -> TransactionRequest:
    values = dict(
        amount=Decimal('50'),
        description="Lent money to Alex",
        type=TransactionType.EXPENSE,
        wallet_id="wallet-1",
        date="2024-06-01T12:00:00+00:00",
        notes="Lent for: lunch",
    )
    values.update(overrides)
    return TransactionRequest(**values)


class TestTransactionRequest:
    def test_to_dict(self):
        assert make_request().to_dict() == {
            "amount": "50",
            "description": "Lent money to Alex",
            "type": "EXPENSE",
            "walletId": "wallet-1",
            "date": "2024-06-01T12:00:00+00:00",
            "notes": "Lent for: lunch",
        }


class TestInMemoryTransactionRecorder:
    """Test the in-memory transaction recorder"""

    @pytest.mark.asyncio
    async def test_records_in_call_order(self):
        recorder = InMemoryTransactionRecorder()
        assert isinstance(recorder, TransactionRecorder)

        first = await recorder.create_transaction(make_request())
        second = await recorder.create_transaction(make_request(type=TransactionType.INCOME))

        assert [t.id for t in recorder.transactions] == [first.id, second.id]
        assert first.id != second.id
        assert second.type == TransactionType.INCOME
        assert first.amount == Decimal('50')

    @pytest.mark.asyncio
    async def test_wallet_balance(self):
        recorder = InMemoryTransactionRecorder()
        await recorder.create_transaction(make_request(type=TransactionType.INCOME, amount=Decimal('100')))
        await recorder.create_transaction(make_request(type=TransactionType.EXPENSE, amount=Decimal('30.25')))
        await recorder.create_transaction(make_request(wallet_id="wallet-2", amount=Decimal('5')))

        assert recorder.wallet_balance("wallet-1") == Decimal('69.75')
        assert recorder.wallet_balance("wallet-2") == Decimal('-5')
        assert len(recorder.for_wallet("wallet-1")) == 2
        assert recorder.wallet_balance("unknown") == Decimal('0')
