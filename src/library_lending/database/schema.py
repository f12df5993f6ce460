"""
SQLAlchemy database schema for the Library Lending server.

Three tables back the lending engine:

1. ``users`` - borrowers and their outstanding fee balance
2. ``books`` - lendable titles with their fee rate and borrowing period
3. ``library_transactions`` - the append-only ledger of checkouts,
   renewals and returns

The ledger is the source of truth for loan state. ``books.available`` is a
denormalized copy of it that the engine updates in the same transaction as
the ledger entry it derives from.
"""

import enum
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import declarative_base, relationship, validates
from sqlalchemy.sql import func

# Base class for all SQLAlchemy models
Base = declarative_base()


class TransactionTypeEnum(str, enum.Enum):
    """Kinds of ledger entries."""

    CHECKOUT = "Checkout"
    RENEW = "Renew"
    RETURN = "Return"


class User(Base):
    """
    Users table - library members who borrow books.

    ``fees`` only changes when a late return accrues a fee or a payment
    settles the balance.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False, index=True)
    first_name = Column(String(200), nullable=True)
    fees = Column(Numeric(10, 2, asdecimal=True), nullable=False, default=Decimal("0.00"))

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    transactions = relationship("LibraryTransaction", back_populates="user")

    __table_args__ = (CheckConstraint("fees >= 0", name="check_fees_non_negative"),)


class Book(Base):
    """
    Books table - the lendable catalog.

    The identifier is a free-form string chosen by the library, not an ISBN.
    """

    __tablename__ = "books"

    id = Column(String(50), primary_key=True)
    title = Column(String(500), nullable=False, index=True)
    fee_price = Column(Numeric(10, 2, asdecimal=True), nullable=False, default=Decimal("0.00"))
    borrowing_days = Column(Integer, nullable=False, default=14)
    available = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=True, default=func.now(), onupdate=func.now())

    transactions = relationship("LibraryTransaction", back_populates="book")

    __table_args__ = (
        Index("idx_book_availability", "available"),
        CheckConstraint("fee_price >= 0", name="check_fee_price_non_negative"),
        CheckConstraint("borrowing_days > 0", name="check_borrowing_days_positive"),
    )


class LibraryTransaction(Base):
    """
    Ledger table - one row per checkout, renewal or return.

    Rows are inserted once and never updated or deleted, so there is no
    ``updated_at`` column.
    """

    __tablename__ = "library_transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    book_id = Column(String(50), ForeignKey("books.id"), nullable=False)
    transaction_type = Column(Enum(TransactionTypeEnum), nullable=False)
    date = Column(DateTime, nullable=False, default=func.now())

    user = relationship("User", back_populates="transactions")
    book = relationship("Book", back_populates="transactions")

    __table_args__ = (
        Index("idx_transaction_user", "user_id", "date"),
        Index("idx_transaction_loan", "user_id", "book_id", "transaction_type", "date"),
    )

    @validates("user_id", "book_id", "transaction_type", "date")
    def validate_immutable(self, key, value):
        """Refuse to rewrite a ledger entry once it has been persisted."""
        if self.id is not None and getattr(self, key) is not None:
            raise ValueError(f"Ledger entry {self.id} is immutable; cannot change {key}")
        return value
