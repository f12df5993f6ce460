"""
Library Lending Models.

Pydantic models for the entities the lending engine reads and returns:

- User: Library members and their fee balance
- Book: Lendable titles with fee rate and borrowing period
- LibraryTransaction: Immutable ledger entries
- PaymentOutcome / RenewalOutcome: Results of operations that report
  rejection as a value rather than an error
"""

from .book import Book
from .outcomes import (
    PaymentOutcome,
    PaymentStatus,
    RenewalOutcome,
    RenewalStatus,
)
from .transaction import LibraryTransaction, TransactionType
from .user import User

__all__ = [
    "Book",
    "LibraryTransaction",
    "PaymentOutcome",
    "PaymentStatus",
    "RenewalOutcome",
    "RenewalStatus",
    "TransactionType",
    "User",
]
