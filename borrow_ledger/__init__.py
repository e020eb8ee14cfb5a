"""
Borrow Ledger

A personal ledger of money borrowed from, or lent to, other people, with
repayment tracking, aggregate balances, and wallet transactions recorded
for every obligation. All monetary values use Decimal.
"""

__version__ = "1.0.0"
