"""
Error taxonomy for the borrow ledger.

Storage errors are always recovered inside the service; domain-rule
violations are raised to the caller.
"""


class BorrowLedgerError(Exception):
    """Base class for all borrow ledger errors"""


class StorageError(BorrowLedgerError):
    """Blob store read or write failed"""


class RecordNotFoundError(BorrowLedgerError, LookupError):
    """No obligation record with the requested id"""


class AlreadyPaidError(BorrowLedgerError, ValueError):
    """Obligation record is already marked as paid"""
