"""
Database package for the Library Lending server.

This package provides:
- SQLAlchemy schema definitions (schema.py)
- Session management and connection handling (session.py)
- Repositories for users, books and the transaction ledger
- Demo data loading (seed.py)
"""

from .book_repository import BookCreateSchema, BookRepository
from .exceptions import (
    DuplicateError,
    InvalidReferenceError,
    InvalidStateError,
    LendingError,
    NoCheckoutRecordError,
    NotAvailableError,
    NotCheckedOutError,
    NotFoundError,
    RepositoryException,
)
from .repository import BaseRepository
from .schema import Base, Book, LibraryTransaction, TransactionTypeEnum, User
from .seed import seed_database
from .session import (
    DatabaseManager,
    get_db_manager,
    get_session,
    reset_db_manager,
    safe_commit,
    safe_query,
    session_scope,
)
from .transaction_repository import TransactionRepository
from .user_repository import UserCreateSchema, UserRepository

__all__ = [
    "Base",
    "BaseRepository",
    "Book",
    "BookCreateSchema",
    "BookRepository",
    "DatabaseManager",
    "DuplicateError",
    "InvalidReferenceError",
    "InvalidStateError",
    "LendingError",
    "LibraryTransaction",
    "NoCheckoutRecordError",
    "NotAvailableError",
    "NotCheckedOutError",
    "NotFoundError",
    "RepositoryException",
    "TransactionRepository",
    "TransactionTypeEnum",
    "User",
    "UserCreateSchema",
    "UserRepository",
    "get_db_manager",
    "get_session",
    "reset_db_manager",
    "safe_commit",
    "safe_query",
    "seed_database",
    "session_scope",
]
