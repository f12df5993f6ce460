"""
Tests for the lending engine.

These tests cover the library's business rules:
1. Checkout eligibility and availability
2. Due dates, renewals and late fees on return
3. Fee settlement
4. Batch checkout with partial success
5. Ledger ordering
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from library_lending.database.exceptions import (
    InvalidReferenceError,
    InvalidStateError,
    NoCheckoutRecordError,
    NotAvailableError,
    NotCheckedOutError,
    NotFoundError,
)
from library_lending.database.schema import Book as BookDB
from library_lending.database.schema import LibraryTransaction as TransactionDB
from library_lending.database.schema import TransactionTypeEnum
from library_lending.database.schema import User as UserDB
from library_lending.lending import (
    compute_due_date,
    compute_late_fee,
    compute_overdue_days,
)
from library_lending.models import PaymentStatus, RenewalStatus


def _book(session, book_id: str) -> BookDB:
    session.expire_all()
    return session.get(BookDB, book_id)


def _user(session, user_id: int) -> UserDB:
    session.expire_all()
    return session.get(UserDB, user_id)


class TestDueDateArithmetic:
    """Pure helpers behind return and renewal."""

    def test_due_date_without_renewal(self):
        checkout = datetime(2024, 1, 1, 9, 30)
        assert compute_due_date(checkout, 14) == datetime(2024, 1, 15, 9, 30)

    def test_each_renewal_adds_one_period(self):
        checkout = datetime(2024, 1, 1)
        assert compute_due_date(checkout, 14, renewals=1) == datetime(2024, 1, 29)
        assert compute_due_date(checkout, 7, renewals=3) == datetime(2024, 1, 29)

    def test_overdue_days_are_whole_days(self):
        due = datetime(2024, 1, 15, 12, 0)
        assert compute_overdue_days(due, due) == 0
        assert compute_overdue_days(due, due - timedelta(days=3)) == 0
        assert compute_overdue_days(due, due + timedelta(hours=23)) == 0
        assert compute_overdue_days(due, due + timedelta(days=2, hours=23)) == 2

    def test_late_fee(self):
        due = datetime(2024, 1, 15)
        assert compute_late_fee(due, due + timedelta(days=2), Decimal("2.50")) == Decimal("5.00")
        assert compute_late_fee(due, due, Decimal("2.50")) == 0


class TestOutstandingFees:
    def test_new_user_owes_nothing(self, engine, sample_user):
        assert engine.get_outstanding_fees(sample_user.id) == Decimal("0")

    def test_returns_stored_balance(self, engine, indebted_user):
        assert engine.get_outstanding_fees(indebted_user.id) == Decimal("5.00")

    def test_unknown_user(self, engine):
        with pytest.raises(NotFoundError, match="User not found."):
            engine.get_outstanding_fees(999)


class TestCheckOutBook:
    def test_checkout_marks_book_unavailable(self, engine, test_db_session, sample_user, sample_book):
        assert engine.check_out_book(sample_user.id, "a") is True

        assert _book(test_db_session, "a").available is False
        entries = test_db_session.query(TransactionDB).filter_by(book_id="a").all()
        assert len(entries) == 1
        assert entries[0].transaction_type == TransactionTypeEnum.CHECKOUT
        assert entries[0].user_id == sample_user.id
        assert entries[0].date == datetime(2024, 3, 1, 10, 0, 0)

    def test_unknown_user_and_unknown_book_share_one_error(self, engine, sample_user, sample_book):
        with pytest.raises(InvalidReferenceError) as bad_user:
            engine.check_out_book(999, "a")
        with pytest.raises(InvalidReferenceError) as bad_book:
            engine.check_out_book(sample_user.id, "missing")

        assert str(bad_user.value) == str(bad_book.value) == "Invalid userId or bookId"
        assert isinstance(bad_user.value, NotFoundError)

    def test_book_on_loan_cannot_be_checked_out_again(
        self, engine, sample_user, indebted_user, sample_book
    ):
        engine.check_out_book(sample_user.id, "a")

        with pytest.raises(NotAvailableError, match="Book not available"):
            engine.check_out_book(indebted_user.id, "a")
        with pytest.raises(NotAvailableError):
            engine.check_out_book(sample_user.id, "a")

    def test_not_available_is_an_invalid_state(self, engine, sample_user, sample_book):
        engine.check_out_book(sample_user.id, "a")
        with pytest.raises(InvalidStateError):
            engine.check_out_book(sample_user.id, "a")

    def test_failure_during_write_leaves_book_available(
        self, engine, test_db_session, sample_user, sample_book, monkeypatch
    ):
        def broken_append(*args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(engine.transactions, "append", broken_append)

        with pytest.raises(RuntimeError):
            engine.check_out_book(sample_user.id, "a")

        assert _book(test_db_session, "a").available is True
        assert test_db_session.query(TransactionDB).count() == 0


class TestReturnBook:
    def test_immediate_return_charges_nothing(
        self, engine, test_db_session, clock, sample_user, sample_book
    ):
        engine.check_out_book(sample_user.id, "a")
        clock.advance(hours=1)

        assert engine.return_book(sample_user.id, "a") is True

        assert _book(test_db_session, "a").available is True
        assert _user(test_db_session, sample_user.id).fees == Decimal("0")
        last = (
            test_db_session.query(TransactionDB)
            .order_by(TransactionDB.date.desc())
            .first()
        )
        assert last.transaction_type == TransactionTypeEnum.RETURN

    def test_return_on_due_date_charges_nothing(
        self, engine, test_db_session, clock, sample_user, sample_book
    ):
        engine.check_out_book(sample_user.id, "a")
        clock.advance(days=14)

        engine.return_book(sample_user.id, "a")

        assert _user(test_db_session, sample_user.id).fees == Decimal("0")

    def test_two_days_late_charges_two_days(
        self, engine, test_db_session, clock, sample_user, sample_book
    ):
        engine.check_out_book(sample_user.id, "a")
        clock.advance(days=16)

        engine.return_book(sample_user.id, "a")

        assert _user(test_db_session, sample_user.id).fees == Decimal("5.00")

    def test_partial_days_are_not_charged(
        self, engine, test_db_session, clock, sample_user, sample_book
    ):
        engine.check_out_book(sample_user.id, "a")
        clock.advance(days=15, hours=20)

        engine.return_book(sample_user.id, "a")

        assert _user(test_db_session, sample_user.id).fees == Decimal("2.50")

    def test_late_fee_adds_to_existing_balance(
        self, engine, test_db_session, clock, indebted_user, sample_book
    ):
        engine.check_out_book(indebted_user.id, "a")
        clock.advance(days=17)

        engine.return_book(indebted_user.id, "a")

        assert _user(test_db_session, indebted_user.id).fees == Decimal("12.50")

    def test_fees_accumulate_across_loans(
        self, engine, test_db_session, clock, sample_user, sample_book, second_book
    ):
        engine.check_out_book(sample_user.id, "a")
        engine.check_out_book(sample_user.id, "b")
        clock.advance(days=16)

        engine.return_book(sample_user.id, "a")  # 2 days x 2.50
        engine.return_book(sample_user.id, "b")  # 9 days x 1.00

        assert _user(test_db_session, sample_user.id).fees == Decimal("14.00")

    def test_renewal_extends_window_used_for_fees(
        self, engine, test_db_session, clock, sample_user, sample_book
    ):
        engine.check_out_book(sample_user.id, "a")
        clock.advance(days=10)
        engine.renew_book(sample_user.id, "a")
        clock.advance(days=20)  # 30 days after checkout, due after 28

        engine.return_book(sample_user.id, "a")

        assert _user(test_db_session, sample_user.id).fees == Decimal("5.00")

    def test_renewals_of_earlier_loans_do_not_count(
        self, engine, test_db_session, clock, sample_user, sample_book
    ):
        engine.check_out_book(sample_user.id, "a")
        clock.advance(days=1)
        engine.renew_book(sample_user.id, "a")
        clock.advance(days=1)
        engine.return_book(sample_user.id, "a")

        clock.advance(days=1)
        engine.check_out_book(sample_user.id, "a")
        clock.advance(days=16)
        engine.return_book(sample_user.id, "a")

        assert _user(test_db_session, sample_user.id).fees == Decimal("5.00")

    def test_returning_available_book_fails(self, engine, sample_user, sample_book):
        with pytest.raises(NotCheckedOutError):
            engine.return_book(sample_user.id, "a")

    def test_returning_book_lent_to_someone_else_fails(
        self, engine, sample_user, indebted_user, sample_book
    ):
        engine.check_out_book(indebted_user.id, "a")

        with pytest.raises(NoCheckoutRecordError, match="No valid checkout record found"):
            engine.return_book(sample_user.id, "a")

    def test_returning_twice_fails(self, engine, clock, sample_user, sample_book):
        engine.check_out_book(sample_user.id, "a")
        clock.advance(days=1)
        engine.return_book(sample_user.id, "a")

        with pytest.raises(InvalidStateError):
            engine.return_book(sample_user.id, "a")

    def test_unknown_references(self, engine, sample_user, sample_book):
        with pytest.raises(InvalidReferenceError):
            engine.return_book(999, "a")
        with pytest.raises(InvalidReferenceError):
            engine.return_book(sample_user.id, "zzz")


class TestRenewBook:
    def test_renewal_doubles_period_from_checkout(
        self, engine, test_db_session, clock, sample_user, sample_book
    ):
        engine.check_out_book(sample_user.id, "a")
        clock.advance(days=12)

        outcome = engine.renew_book(sample_user.id, "a")

        assert outcome.status == RenewalStatus.RENEWED
        assert outcome.succeeded is True
        assert outcome.new_due_date == datetime(2024, 3, 29, 10, 0, 0)
        assert outcome.message == "Book renewed successfully. New due date: 2024-03-29"
        renewals = (
            test_db_session.query(TransactionDB)
            .filter_by(transaction_type=TransactionTypeEnum.RENEW)
            .all()
        )
        assert len(renewals) == 1
        assert renewals[0].date == datetime(2024, 3, 13, 10, 0, 0)

    def test_second_renewal_is_refused(self, engine, test_db_session, clock, sample_user, sample_book):
        engine.check_out_book(sample_user.id, "a")
        clock.advance(days=1)
        engine.renew_book(sample_user.id, "a")

        for _ in range(3):
            clock.advance(days=1)
            outcome = engine.renew_book(sample_user.id, "a")
            assert outcome.status == RenewalStatus.ALREADY_RENEWED
            assert outcome.new_due_date is None
            assert outcome.message.startswith("Renewal failed")

        assert (
            test_db_session.query(TransactionDB)
            .filter_by(transaction_type=TransactionTypeEnum.RENEW)
            .count()
            == 1
        )

    def test_second_renewal_refused_even_at_same_instant(self, engine, sample_user, sample_book):
        engine.check_out_book(sample_user.id, "a")
        engine.renew_book(sample_user.id, "a")

        assert engine.renew_book(sample_user.id, "a").status == RenewalStatus.ALREADY_RENEWED

    def test_new_loan_can_be_renewed_again(self, engine, clock, sample_user, sample_book):
        engine.check_out_book(sample_user.id, "a")
        clock.advance(days=1)
        engine.renew_book(sample_user.id, "a")
        clock.advance(days=1)
        engine.return_book(sample_user.id, "a")
        clock.advance(days=1)
        engine.check_out_book(sample_user.id, "a")
        clock.advance(days=1)

        assert engine.renew_book(sample_user.id, "a").succeeded is True

    def test_renewal_without_checkout_fails(self, engine, sample_user, sample_book):
        with pytest.raises(NoCheckoutRecordError):
            engine.renew_book(sample_user.id, "a")

    def test_renewal_after_return_fails(self, engine, clock, sample_user, sample_book):
        engine.check_out_book(sample_user.id, "a")
        clock.advance(days=1)
        engine.return_book(sample_user.id, "a")
        clock.advance(days=1)

        with pytest.raises(NoCheckoutRecordError):
            engine.renew_book(sample_user.id, "a")

    def test_unknown_references(self, engine, sample_user, sample_book):
        with pytest.raises(InvalidReferenceError):
            engine.renew_book(999, "a")
        with pytest.raises(InvalidReferenceError):
            engine.renew_book(sample_user.id, "nope")


class TestProcessFeePayment:
    def test_exact_payment_settles_balance(self, engine, test_db_session, indebted_user):
        outcome = engine.process_fee_payment(indebted_user.id, Decimal("5.00"))

        assert outcome.status == PaymentStatus.SETTLED
        assert outcome.message == (
            "Payment processed successfully. Outstanding fees have been cleared."
        )
        assert _user(test_db_session, indebted_user.id).fees == Decimal("0")

    @pytest.mark.parametrize("amount", ["4.99", "5.01", "0", "50", "-5.00"])
    def test_mismatched_payment_is_rejected(self, engine, test_db_session, indebted_user, amount):
        outcome = engine.process_fee_payment(indebted_user.id, Decimal(amount))

        assert outcome.status == PaymentStatus.MISMATCH
        assert outcome.succeeded is False
        assert outcome.message.startswith("Payment failed")
        assert "Outstanding Fees: 5.00" in outcome.message
        assert _user(test_db_session, indebted_user.id).fees == Decimal("5.00")

    def test_zero_payment_settles_zero_balance(self, engine, sample_user):
        assert engine.process_fee_payment(sample_user.id, Decimal("0")).succeeded is True

    def test_unknown_user(self, engine):
        with pytest.raises(NotFoundError, match="User not found."):
            engine.process_fee_payment(999, Decimal("1.00"))


class TestCheckOutBooks:
    def test_empty_batch(self, engine, sample_user):
        assert engine.check_out_books(sample_user.id, []) == {}

    def test_partial_success_is_kept(self, engine, test_db_session, sample_user, sample_book):
        results = engine.check_out_books(sample_user.id, ["a", "missing"])

        assert results == {
            "a": "Checkout successful.",
            "missing": "Invalid userId or bookId",
        }
        assert _book(test_db_session, "a").available is False

    def test_unavailable_book_reports_its_message(
        self, engine, sample_user, indebted_user, sample_book, second_book
    ):
        engine.check_out_book(indebted_user.id, "a")

        results = engine.check_out_books(sample_user.id, ["a", "b"])

        assert results == {"a": "Book not available", "b": "Checkout successful."}

    def test_results_follow_input_order(self, engine, sample_user, sample_book, second_book):
        results = engine.check_out_books(sample_user.id, ["b", "x", "a"])
        assert list(results) == ["b", "x", "a"]

    def test_unknown_user_aborts_whole_batch(self, engine, test_db_session, sample_book):
        with pytest.raises(NotFoundError, match="User not found."):
            engine.check_out_books(999, ["a"])

        assert _book(test_db_session, "a").available is True


class TestUserLibraryTransactions:
    def test_most_recent_first(self, engine, clock, sample_user, sample_book, second_book):
        engine.check_out_book(sample_user.id, "a")
        clock.advance(hours=2)
        engine.check_out_book(sample_user.id, "b")
        clock.advance(days=1)
        engine.renew_book(sample_user.id, "a")
        clock.advance(days=1)
        engine.return_book(sample_user.id, "b")

        transactions = engine.get_user_library_transactions(sample_user.id)

        assert [(t.book_id, t.transaction_type) for t in transactions] == [
            ("b", "Return"),
            ("a", "Renew"),
            ("b", "Checkout"),
            ("a", "Checkout"),
        ]
        dates = [t.date for t in transactions]
        assert all(earlier > later for earlier, later in zip(dates, dates[1:], strict=False))

    def test_only_the_users_entries(self, engine, clock, sample_user, indebted_user, sample_book):
        engine.check_out_book(indebted_user.id, "a")

        assert engine.get_user_library_transactions(sample_user.id) == []
        assert len(engine.get_user_library_transactions(indebted_user.id)) == 1

    def test_unknown_user(self, engine):
        with pytest.raises(NotFoundError):
            engine.get_user_library_transactions(999)
