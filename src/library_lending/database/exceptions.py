"""
Error kinds raised by the repositories and the lending engine.

The request layer maps them onto status codes:

- ``NotFoundError`` and its subclasses -> 404
- ``InvalidStateError`` and its subclasses -> 400
- anything else -> 500
"""


class RepositoryException(Exception):
    """Base exception for repository operations."""


class NotFoundError(RepositoryException):
    """Raised when an entity is not found."""


class InvalidReferenceError(NotFoundError):
    """Raised when a user or book referenced by a lending operation does not exist.

    The two cases share one message so callers cannot tell which side was missing.
    """

    def __init__(self, message: str = "Invalid userId or bookId"):
        super().__init__(message)


class InvalidStateError(RepositoryException):
    """Raised when an operation breaks a lending rule."""


class NotAvailableError(InvalidStateError):
    """Raised when checking out a book that is already on loan."""

    def __init__(self, message: str = "Book not available"):
        super().__init__(message)


class NotCheckedOutError(InvalidStateError):
    """Raised when returning a book that is not on loan."""

    def __init__(
        self,
        message: str = (
            "The book cannot be returned because it was not checked out by the current user."
        ),
    ):
        super().__init__(message)


class NoCheckoutRecordError(InvalidStateError):
    """Raised when no active checkout exists for a (user, book) pair."""

    def __init__(self, message: str = "No valid checkout record found for this book and user."):
        super().__init__(message)


class DuplicateError(RepositoryException):
    """Raised when attempting to create a duplicate entity."""


# Failures a batch checkout records per book instead of propagating
LendingError = (NotFoundError, InvalidStateError)
