"""
Borrowed Money Service Module

Keeps the ledger of money borrowed from and lent to other people. The full
record set is cached in memory and persisted as one JSON blob: every read
entry point reloads the blob first, every write persists the whole set.
Recording or repaying an obligation also records a wallet transaction.

Operations run on a single event loop without locking; interleaved
read-modify-write sequences may lose updates.
"""

from decimal import Decimal
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Union
import json
import time

from .models import (
    BorrowedMoney, BorrowedMoneyDraft, LedgerStatistics, ObligationType,
    records_from_blob, records_to_blob
)
from .storage import AsyncBlobStore, create_blob_store
from .transactions import (
    TransactionRecorder, TransactionRequest, TransactionType,
    InMemoryTransactionRecorder
)
from .translation import Translator, resolve_translator
from .events import EventDispatcher, EventPayload, LedgerEvent, get_global_dispatcher
from .config import get_config
from .exceptions import RecordNotFoundError, AlreadyPaidError
from .logging_config import get_logger, log_action, setup_logging


BORROWED_MONEY_KEY = "borrowed_money"

TranslatorLike = Union[Translator, Callable[[str, Dict[str, Any]], str], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BorrowedMoneyService:
    """
    Query, mutation and aggregation over borrowed/lent money records.

    Storage failures never reach the caller: reads degrade to an empty set,
    writes leave the in-memory set authoritative. Both are logged and
    published as STORAGE_*_FAILED events.
    """

    def __init__(
        self,
        store: AsyncBlobStore,
        transaction_recorder: TransactionRecorder,
        storage_key: str = BORROWED_MONEY_KEY,
        translator: TranslatorLike = None,
        event_dispatcher: Optional[EventDispatcher] = None,
        clock: Callable[[], datetime] = _utcnow
    ):
        self.store = store
        self.transaction_recorder = transaction_recorder
        self.storage_key = storage_key
        self.translator = resolve_translator(translator)
        self._event_dispatcher = event_dispatcher
        self._clock = clock
        self.logger = get_logger("borrow_ledger.service")

        self._records: List[BorrowedMoney] = []
        self._loaded = False
        self._last_id = 0

    # ===== PERSISTENCE =====

    async def refresh(self) -> None:
        """
        Reload the record set from the store.

        An absent blob leaves the in-memory set unchanged, so deleting the key
        externally is not picked up. Any failure empties the set instead of
        raising.
        """
        try:
            blob = await self.store.get(self.storage_key)
            if blob is not None:
                self._records = records_from_blob(json.loads(blob))
        except Exception as e:
            self.logger.error(f"Error loading borrowed money from storage: {e}", exc_info=True)
            self._records = []
            self._publish(LedgerEvent.STORAGE_READ_FAILED, "storage", self.storage_key,
                          {"error": str(e)})
        self._loaded = True

    async def flush(self) -> bool:
        """Persist the full record set; returns False if the write failed"""
        try:
            blob = json.dumps(records_to_blob(self._records))
            await self.store.set(self.storage_key, blob)
            return True
        except Exception as e:
            self.logger.error(f"Error saving borrowed money to storage: {e}", exc_info=True)
            self._publish(LedgerEvent.STORAGE_WRITE_FAILED, "storage", self.storage_key,
                          {"error": str(e), "record_count": len(self._records)})
            return False

    async def _ensure_loaded(self) -> None:
        if not self._loaded:
            await self.refresh()

    def _publish(self, event_type: LedgerEvent, entity_type: str, entity_id: str,
                 data: Dict[str, Any]) -> None:
        if self._event_dispatcher:
            self._event_dispatcher.publish(EventPayload(
                event_type=event_type,
                entity_type=entity_type,
                entity_id=entity_id,
                data=data
            ))

    def _generate_id(self) -> str:
        """Millisecond timestamp, bumped to stay increasing and unused"""
        candidate = max(int(time.time() * 1000), self._last_id + 1)
        existing = {record.id for record in self._records}
        while str(candidate) in existing:
            candidate += 1
        self._last_id = candidate
        return str(candidate)

    def _find_index(self, record_id: str) -> int:
        for index, record in enumerate(self._records):
            if record.id == record_id:
                return index
        return -1

    # ===== QUERIES =====

    async def list_all(self) -> List[BorrowedMoney]:
        """All records, newest borrowed first"""
        await self.refresh()
        return _newest_first(self._records)

    async def list_unpaid(self) -> List[BorrowedMoney]:
        """Unpaid records, earliest due first"""
        await self.refresh()
        return _earliest_due_first(r for r in self._records if not r.is_paid)

    async def list_paid(self) -> List[BorrowedMoney]:
        await self.refresh()
        return _newest_first(r for r in self._records if r.is_paid)

    async def list_overdue(self) -> List[BorrowedMoney]:
        """Unpaid records due strictly before now, earliest due first"""
        await self.refresh()
        now = self._clock()
        return _earliest_due_first(r for r in self._records if r.is_overdue(now))

    async def get_by_id(self, record_id: str) -> Optional[BorrowedMoney]:
        await self.refresh()
        index = self._find_index(record_id)
        if index == -1:
            return None
        return self._records[index].copy()

    async def find_by_person(self, name_part: str) -> List[BorrowedMoney]:
        """Case-insensitive substring match on the counterparty name"""
        await self.refresh()
        needle = name_part.lower()
        return _newest_first(r for r in self._records if needle in r.person_name.lower())

    async def search(self, query: str) -> List[BorrowedMoney]:
        """Case-insensitive substring match on person name, reason or notes"""
        await self.refresh()
        return _newest_first(r for r in self._records if r.matches(query))

    async def get_statistics(self) -> LedgerStatistics:
        await self.refresh()
        return LedgerStatistics.from_records(self._records, self._clock())

    async def _sum_amounts(self, obligation_type: ObligationType, is_paid: bool) -> Decimal:
        await self.refresh()
        return sum(
            (r.amount for r in self._records
             if r.type == obligation_type and r.is_paid == is_paid),
            Decimal('0')
        )

    async def get_total_borrowed_amount(self) -> Decimal:
        """Outstanding amount the owner still owes"""
        return await self._sum_amounts(ObligationType.BORROWED, is_paid=False)

    async def get_total_lent_amount(self) -> Decimal:
        """Outstanding amount still owed to the owner"""
        return await self._sum_amounts(ObligationType.LENT, is_paid=False)

    async def get_total_paid_borrowed_amount(self) -> Decimal:
        return await self._sum_amounts(ObligationType.BORROWED, is_paid=True)

    async def get_total_paid_lent_amount(self) -> Decimal:
        return await self._sum_amounts(ObligationType.LENT, is_paid=True)

    async def export_data(self) -> List[BorrowedMoney]:
        await self.refresh()
        return [record.copy() for record in self._records]

    # ===== MUTATIONS =====

    async def add(self, draft: BorrowedMoneyDraft,
                  translator: TranslatorLike = None) -> BorrowedMoney:
        """
        Record a new obligation and its wallet transaction.

        Lending is an EXPENSE from the draft's wallet, borrowing an INCOME.
        The transaction is recorded first; if it fails the error propagates
        and nothing is added.

        Args:
            draft: The obligation to record
            translator: Per-call translator (or i18n callable) overriding
                the service default for transaction text

        Returns:
            Copy of the stored record with its assigned id
        """
        await self._ensure_loaded()
        t = resolve_translator(translator) if translator is not None else self.translator
        record = BorrowedMoney.from_draft(self._generate_id(), draft)

        if record.is_lent:
            description = t.translate("lent_money_to", name=record.person_name)
            notes = t.translate("lent_for", reason=record.reason)
            transaction_type = TransactionType.EXPENSE
        else:
            description = t.translate("borrowed_money_from", name=record.person_name)
            notes = t.translate("borrowed_for", reason=record.reason)
            transaction_type = TransactionType.INCOME

        await self.transaction_recorder.create_transaction(TransactionRequest(
            amount=record.amount,
            description=description,
            type=transaction_type,
            wallet_id=record.wallet_id,
            date=self._clock().isoformat(),
            notes=notes
        ))

        self._records.append(record)
        await self.flush()

        log_action(
            self.logger, "info", f"Borrowed money recorded: {record.type.value}",
            action="add_borrowed_money", resource=f"borrowed_money:{record.id}",
            extra={"amount": str(record.amount), "wallet_id": record.wallet_id}
        )
        self._publish(LedgerEvent.RECORD_CREATED, "borrowed_money", record.id, record.to_dict())
        return record.copy()

    async def update(self, record_id: str, changes: Dict[str, Any]) -> Optional[BorrowedMoney]:
        """
        Merge ``changes`` into the record with ``record_id``.

        Works on the in-memory set without reloading. Returns None, without
        persisting, when the id is unknown.
        """
        await self._ensure_loaded()
        index = self._find_index(record_id)
        if index == -1:
            return None

        updated = self._records[index].with_changes(changes)
        self._records[index] = updated
        await self.flush()

        log_action(
            self.logger, "info", "Borrowed money updated",
            action="update_borrowed_money", resource=f"borrowed_money:{record_id}",
            extra={"fields": sorted(changes)}
        )
        self._publish(LedgerEvent.RECORD_UPDATED, "borrowed_money", record_id,
                      {"fields": sorted(changes)})
        return updated.copy()

    async def mark_as_paid(self, record_id: str, wallet_id: str,
                           translator: TranslatorLike = None) -> Optional[BorrowedMoney]:
        """
        Settle an obligation and record the reversing wallet transaction.

        A lent record is recovered as INCOME, a borrowed record is repaid as
        EXPENSE, both against ``wallet_id``.

        Raises:
            RecordNotFoundError: If no record has ``record_id``
            AlreadyPaidError: If the record is already paid
        """
        record = await self.get_by_id(record_id)
        if not record:
            raise RecordNotFoundError("Borrowed money record not found")

        if record.is_paid:
            raise AlreadyPaidError("This record is already marked as paid")

        t = resolve_translator(translator) if translator is not None else self.translator
        if record.is_lent:
            description = t.translate("recovered_loan_from", name=record.person_name)
            notes = f"{t.translate('loan_recovery')} - {record.reason}"
            transaction_type = TransactionType.INCOME
        else:
            description = t.translate("repaid_debt_to", name=record.person_name)
            notes = f"{t.translate('debt_repayment')} - {record.reason}"
            transaction_type = TransactionType.EXPENSE

        await self.transaction_recorder.create_transaction(TransactionRequest(
            amount=record.amount,
            description=description,
            type=transaction_type,
            wallet_id=wallet_id,
            date=self._clock().isoformat(),
            notes=notes
        ))

        updated = await self.update(record_id, {"is_paid": True})
        if updated:
            self._publish(LedgerEvent.RECORD_PAID, "borrowed_money", record_id,
                          {"wallet_id": wallet_id, "amount": str(record.amount)})
        return updated

    async def mark_as_unpaid(self, record_id: str) -> Optional[BorrowedMoney]:
        """Reopen an obligation; repayment transactions are not reversed"""
        updated = await self.update(record_id, {"is_paid": False})
        if updated:
            self._publish(LedgerEvent.RECORD_UNPAID, "borrowed_money", record_id, {})
        return updated

    async def delete(self, record_id: str) -> bool:
        await self._ensure_loaded()
        index = self._find_index(record_id)
        if index == -1:
            return False

        del self._records[index]
        await self.flush()

        log_action(
            self.logger, "info", "Borrowed money deleted",
            action="delete_borrowed_money", resource=f"borrowed_money:{record_id}"
        )
        self._publish(LedgerEvent.RECORD_DELETED, "borrowed_money", record_id, {})
        return True

    async def clear_all_data(self) -> None:
        self._records = []
        self._loaded = True
        await self.flush()

        log_action(self.logger, "info", "Borrowed money cleared", action="clear_borrowed_money")
        self._publish(LedgerEvent.DATA_CLEARED, "storage", self.storage_key, {})

    async def import_data(self, records: Iterable[Union[BorrowedMoney, Dict[str, Any]]]) -> None:
        """
        Replace the whole record set.

        Trusted bulk-load path: records are taken as given, blob dicts are
        deserialized, and no invariants are checked.
        """
        imported = []
        for item in records:
            if isinstance(item, BorrowedMoney):
                imported.append(item.copy())
            else:
                imported.append(BorrowedMoney.from_dict(item))

        self._records = imported
        self._loaded = True
        await self.flush()

        log_action(
            self.logger, "info", f"Imported {len(imported)} borrowed money records",
            action="import_borrowed_money", extra={"record_count": len(imported)}
        )
        self._publish(LedgerEvent.DATA_IMPORTED, "storage", self.storage_key,
                      {"record_count": len(imported)})


def _newest_first(records: Iterable[BorrowedMoney]) -> List[BorrowedMoney]:
    return [r.copy() for r in sorted(records, key=lambda r: r.borrowed_date, reverse=True)]


def _earliest_due_first(records: Iterable[BorrowedMoney]) -> List[BorrowedMoney]:
    return [r.copy() for r in sorted(records, key=lambda r: r.due_date)]


# Process-wide service handle
_service: Optional[BorrowedMoneyService] = None


def get_borrowed_money_service() -> BorrowedMoneyService:
    """Get the process-wide service, building it from configuration on first use"""
    global _service
    if _service is None:
        config = get_config()
        setup_logging(config.log_level, fmt=config.log_format, log_file=config.log_file)
        _service = BorrowedMoneyService(
            store=create_blob_store(config.storage_type, config.storage_path),
            transaction_recorder=InMemoryTransactionRecorder(),
            storage_key=config.storage_key,
            event_dispatcher=get_global_dispatcher() if config.enable_events else None
        )
    return _service


def set_borrowed_money_service(service: Optional[BorrowedMoneyService]) -> None:
    """Replace the process-wide service (None resets to lazy construction)"""
    global _service
    _service = service
