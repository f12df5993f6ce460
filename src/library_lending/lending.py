"""
Lending engine for the Library Lending server.

This module holds the business rules of the library:

1. **Checkout**: a book can be lent to one user at a time
2. **Renewal**: a loan can be extended once, by one borrowing period
3. **Return**: late returns accrue ``overdue days x fee rate`` on the
   user's balance
4. **Payment**: the balance can only be settled in full
5. **Ledger**: every checkout, renewal and return is recorded as an
   immutable transaction, from which due dates are derived

Each mutating operation reads the current state, applies one rule and
writes the new state together with its ledger entry in a single commit.
``books.available`` is kept in lockstep with the ledger that way.
"""

import logging
from collections.abc import Callable, Generator, Iterable
from contextlib import contextmanager
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy.orm import Session

from .database.book_repository import BookRepository
from .database.exceptions import (
    InvalidReferenceError,
    LendingError,
    NoCheckoutRecordError,
    NotAvailableError,
    NotCheckedOutError,
    NotFoundError,
)
from .database.schema import Book as BookDB
from .database.schema import TransactionTypeEnum
from .database.schema import User as UserDB
from .database.session import safe_commit
from .database.transaction_repository import TransactionRepository
from .database.user_repository import UserRepository
from .models.outcomes import PaymentOutcome, RenewalOutcome
from .models.transaction import LibraryTransaction

logger = logging.getLogger(__name__)

CHECKOUT_SUCCESS_MESSAGE = "Checkout successful."
USER_NOT_FOUND_MESSAGE = "User not found."


def compute_due_date(checkout_date: datetime, borrowing_days: int, renewals: int = 0) -> datetime:
    """Due date of a loan: one borrowing period, plus one more per renewal."""
    return checkout_date + timedelta(days=borrowing_days * (1 + renewals))


def compute_overdue_days(due_date: datetime, returned_at: datetime) -> int:
    """Whole days between the due date and the return; zero when not late."""
    if returned_at <= due_date:
        return 0
    return (returned_at - due_date).days


def compute_late_fee(due_date: datetime, returned_at: datetime, fee_price: Decimal) -> Decimal:
    """Late fee for a return at ``returned_at``."""
    return compute_overdue_days(due_date, returned_at) * fee_price


class LendingEngine:
    """
    Checkout, renewal, return and fee settlement against one session.

    Args:
        session: SQLAlchemy session the operations run in
        clock: Returns the current time; every ledger entry is stamped with it
    """

    def __init__(self, session: Session, clock: Callable[[], datetime] = datetime.now):
        self.session = session
        self.clock = clock
        self.users = UserRepository(session)
        self.books = BookRepository(session)
        self.transactions = TransactionRepository(session)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _atomic(self, operation: str) -> Generator[None, None, None]:
        """Commit everything done in the block at once, or nothing."""
        try:
            yield
        except Exception:
            self.session.rollback()
            raise
        safe_commit(self.session, operation)

    def _require_user(self, user_id: int) -> UserDB:
        user = self.users.get(user_id)
        if user is None:
            raise NotFoundError(USER_NOT_FOUND_MESSAGE)
        return user

    def _require_loan_parties(self, user_id: int, book_id: str) -> tuple[UserDB, BookDB]:
        user = self.users.get(user_id)
        book = self.books.get(book_id, for_update=True)
        if user is None or book is None:
            raise InvalidReferenceError()
        return user, book

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_outstanding_fees(self, user_id: int) -> Decimal:
        """
        Return the user's unpaid fee balance.

        Raises:
            NotFoundError: If the user does not exist
        """
        return self._require_user(user_id).fees

    def get_user_library_transactions(self, user_id: int) -> list[LibraryTransaction]:
        """
        Return every ledger entry of the user, most recent first.

        Raises:
            NotFoundError: If the user does not exist
        """
        self._require_user(user_id)
        return self.transactions.list_for_user(user_id)

    # ------------------------------------------------------------------
    # Circulation
    # ------------------------------------------------------------------

    def check_out_book(self, user_id: int, book_id: str) -> bool:
        """
        Lend a book to a user.

        Returns:
            True. Failures are always raised, never returned.

        Raises:
            InvalidReferenceError: If the user or the book does not exist
            NotAvailableError: If the book is already on loan
        """
        with self._atomic("checkout book"):
            _, book = self._require_loan_parties(user_id, book_id)

            if not book.available:
                raise NotAvailableError()

            self.books.set_available(book, False)
            self.transactions.append(user_id, book_id, TransactionTypeEnum.CHECKOUT, self.clock())

        logger.info("User %s checked out book %s", user_id, book_id)
        return True

    def return_book(self, user_id: int, book_id: str) -> bool:
        """
        Take a book back and charge any late fee.

        The due date is the checkout date plus one borrowing period per
        checkout and renewal of the loan. Each whole day past it adds the
        book's fee rate to the user's balance.

        Raises:
            InvalidReferenceError: If the user or the book does not exist
            NotCheckedOutError: If the book is not on loan
            NoCheckoutRecordError: If this user has no open loan of the book
        """
        with self._atomic("return book"):
            user, book = self._require_loan_parties(user_id, book_id)

            if book.available:
                raise NotCheckedOutError()

            checkout = self.transactions.active_checkout(user_id, book_id)
            if checkout is None:
                raise NoCheckoutRecordError()

            renewals = self.transactions.renewal_count(checkout)
            due_date = compute_due_date(checkout.date, book.borrowing_days, renewals)

            returned_at = self.clock()
            late_fee = compute_late_fee(due_date, returned_at, book.fee_price)
            if late_fee > 0:
                balance = self.users.add_fees(user, late_fee)
                logger.info(
                    "Book %s returned late by user %s: charged %s, balance now %s",
                    book_id,
                    user_id,
                    late_fee,
                    balance,
                )

            self.books.set_available(book, True)
            self.transactions.append(user_id, book_id, TransactionTypeEnum.RETURN, returned_at)

        logger.info("User %s returned book %s", user_id, book_id)
        return True

    def renew_book(self, user_id: int, book_id: str) -> RenewalOutcome:
        """
        Extend an open loan by one borrowing period.

        A loan can be renewed once. The new due date is always the checkout
        date plus two borrowing periods, however late the renewal comes.

        Returns:
            ``RENEWED`` with the new due date, or ``ALREADY_RENEWED``

        Raises:
            InvalidReferenceError: If the user or the book does not exist
            NoCheckoutRecordError: If this user has no open loan of the book
        """
        with self._atomic("renew book"):
            _, book = self._require_loan_parties(user_id, book_id)

            checkout = self.transactions.active_checkout(user_id, book_id)
            if checkout is None:
                raise NoCheckoutRecordError()

            if self.transactions.renewal_count(checkout) > 0:
                logger.info("Renewal refused: user %s already renewed book %s", user_id, book_id)
                return RenewalOutcome.already_renewed()

            new_due_date = compute_due_date(checkout.date, book.borrowing_days, renewals=1)
            self.transactions.append(user_id, book_id, TransactionTypeEnum.RENEW, self.clock())

        logger.info("User %s renewed book %s until %s", user_id, book_id, new_due_date)
        return RenewalOutcome.renewed(new_due_date)

    def check_out_books(self, user_id: int, book_ids: Iterable[str]) -> dict[str, str]:
        """
        Check out several books, one at a time, in the given order.

        Each checkout is committed on its own; a failing book does not undo
        the ones before it. When an id appears twice, the mapping holds the
        outcome of its last attempt.

        Returns:
            Mapping of book id to ``"Checkout successful."`` or the failure message

        Raises:
            NotFoundError: If the user does not exist (nothing is attempted)
        """
        self._require_user(user_id)

        results: dict[str, str] = {}
        for book_id in book_ids:
            try:
                self.check_out_book(user_id, book_id)
                results[book_id] = CHECKOUT_SUCCESS_MESSAGE
            except LendingError as e:
                logger.info("Batch checkout of %s for user %s failed: %s", book_id, user_id, e)
                results[book_id] = str(e)
        return results

    # ------------------------------------------------------------------
    # Fees
    # ------------------------------------------------------------------

    def process_fee_payment(self, user_id: int, amount: Decimal) -> PaymentOutcome:
        """
        Settle the user's balance.

        Only a payment of exactly the outstanding amount is accepted; any
        other amount leaves the balance untouched.

        Returns:
            ``SETTLED``, or ``MISMATCH`` carrying the outstanding balance

        Raises:
            NotFoundError: If the user does not exist
        """
        with self._atomic("process fee payment"):
            user = self._require_user(user_id)

            if Decimal(amount) != user.fees:
                logger.info(
                    "Payment of %s by user %s rejected; outstanding %s", amount, user_id, user.fees
                )
                return PaymentOutcome.mismatch(user.fees)

            self.users.clear_fees(user)

        logger.info("User %s settled fees of %s", user_id, amount)
        return PaymentOutcome.settled()
