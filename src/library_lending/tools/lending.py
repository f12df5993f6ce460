"""
Lending tools for the Library Lending server.

Each tool wraps one operation of the lending engine:

1. get_outstanding_fees: read a user's unpaid balance
2. checkout_book / checkout_books: lend one or several books
3. return_book: take a book back and charge late fees
4. renew_book: extend a loan once
5. get_user_transactions: list a user's ledger, most recent first
6. process_fee_payment: settle the balance in full

Every response carries an HTTP-style ``status`` alongside the text content:

- 200: success
- 404: the user or book does not exist
- 400: invalid arguments, a lending rule was broken, or a payment/renewal
  was rejected
- 500: anything else; the message never includes internal details
"""

import logging
from decimal import Decimal
from typing import Any, TypeVar

from pydantic import BaseModel, Field, ValidationError

from ..database.exceptions import InvalidStateError, NotFoundError
from ..database.session import get_session
from ..lending import CHECKOUT_SUCCESS_MESSAGE, LendingEngine

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

INTERNAL_ERROR_MESSAGE = "An internal error occurred. Please try again later."


# =============================================================================
# INPUT SCHEMAS
# =============================================================================


class UserInput(BaseModel):
    """Arguments of the tools that only need a user."""

    user_id: int = Field(
        ...,
        description="Identifier of the library user",
        ge=1,
        examples=[1, 2],
    )


class LoanInput(UserInput):
    """Arguments of the tools acting on one (user, book) loan."""

    book_id: str = Field(
        ...,
        description="Identifier of the book",
        min_length=1,
        max_length=50,
        examples=["a", "b"],
    )


class CheckoutBooksInput(UserInput):
    """Arguments of the batch checkout tool."""

    book_ids: list[str] = Field(
        default_factory=list,
        description="Books to check out, processed in this order",
        examples=[["a", "b"]],
    )


class FeePaymentInput(UserInput):
    """Arguments of the fee payment tool."""

    payment_amount: Decimal = Field(
        ...,
        description="Amount paid; must equal the outstanding balance exactly",
        examples=["5.00"],
    )


# =============================================================================
# RESPONSE HELPERS
# =============================================================================


def _response(status: int, text: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
    response: dict[str, Any] = {
        "status": status,
        "content": [{"type": "text", "text": text}],
    }
    if status >= 400:
        response["isError"] = True
    if data is not None:
        response["data"] = data
    return response


def _parse(schema: type[T], arguments: dict[str, Any]) -> T | dict[str, Any]:
    """Validate tool arguments, returning either the parsed input or a 400 response."""
    try:
        return schema.model_validate(arguments)
    except ValidationError as e:
        logger.warning("Invalid %s arguments: %s", schema.__name__, e)
        return _response(400, f"Invalid parameters: {e}")


def _failure(error: Exception, operation: str) -> dict[str, Any]:
    """Map an exception raised by the engine onto a status code."""
    if isinstance(error, NotFoundError):
        logger.info("%s failed - not found: %s", operation, error)
        return _response(404, str(error))
    if isinstance(error, InvalidStateError):
        logger.info("%s failed - lending rule: %s", operation, error)
        return _response(400, str(error))
    logger.error("%s failed unexpectedly", operation, exc_info=error)
    return _response(500, INTERNAL_ERROR_MESSAGE)


# =============================================================================
# HANDLERS
# =============================================================================


async def get_outstanding_fees_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Return a user's outstanding fee balance."""
    params = _parse(UserInput, arguments)
    if isinstance(params, dict):
        return params

    try:
        with get_session() as session:
            fees = LendingEngine(session).get_outstanding_fees(params.user_id)
    except Exception as e:
        return _failure(e, "get_outstanding_fees")

    return _response(
        200,
        f"User {params.user_id} owes {fees}",
        {"user_id": params.user_id, "outstanding_fees": str(fees)},
    )


async def checkout_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Check a single book out to a user."""
    params = _parse(LoanInput, arguments)
    if isinstance(params, dict):
        return params

    try:
        with get_session() as session:
            LendingEngine(session).check_out_book(params.user_id, params.book_id)
    except Exception as e:
        return _failure(e, "checkout_book")

    return _response(
        200,
        "Book checked out successfully.",
        {"user_id": params.user_id, "book_id": params.book_id},
    )


async def return_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Return a book, charging late fees when overdue."""
    params = _parse(LoanInput, arguments)
    if isinstance(params, dict):
        return params

    try:
        with get_session() as session:
            engine = LendingEngine(session)
            engine.return_book(params.user_id, params.book_id)
            fees = engine.get_outstanding_fees(params.user_id)
    except Exception as e:
        return _failure(e, "return_book")

    return _response(
        200,
        "Book returned successfully.",
        {"user_id": params.user_id, "book_id": params.book_id, "outstanding_fees": str(fees)},
    )


async def get_user_transactions_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """List a user's ledger entries, most recent first."""
    params = _parse(UserInput, arguments)
    if isinstance(params, dict):
        return params

    try:
        with get_session() as session:
            transactions = LendingEngine(session).get_user_library_transactions(params.user_id)
    except Exception as e:
        return _failure(e, "get_user_transactions")

    return _response(
        200,
        f"Found {len(transactions)} transactions for user {params.user_id}",
        {
            "user_id": params.user_id,
            "transactions": [
                {
                    "id": t.id,
                    "book_id": t.book_id,
                    "transaction_type": t.transaction_type,
                    "date": t.date.isoformat(),
                }
                for t in transactions
            ],
        },
    )


async def process_fee_payment_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Settle a user's balance; only the exact outstanding amount is accepted."""
    params = _parse(FeePaymentInput, arguments)
    if isinstance(params, dict):
        return params

    try:
        with get_session() as session:
            outcome = LendingEngine(session).process_fee_payment(
                params.user_id, params.payment_amount
            )
    except Exception as e:
        return _failure(e, "process_fee_payment")

    return _response(
        200 if outcome.succeeded else 400,
        outcome.message,
        {"user_id": params.user_id, "outstanding_fees": str(outcome.outstanding)},
    )


async def renew_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Extend a loan by one borrowing period, once per loan."""
    params = _parse(LoanInput, arguments)
    if isinstance(params, dict):
        return params

    try:
        with get_session() as session:
            outcome = LendingEngine(session).renew_book(params.user_id, params.book_id)
    except Exception as e:
        return _failure(e, "renew_book")

    data: dict[str, Any] = {"user_id": params.user_id, "book_id": params.book_id}
    if outcome.new_due_date is not None:
        data["due_date"] = outcome.new_due_date.isoformat()
    return _response(200 if outcome.succeeded else 400, outcome.message, data)


async def checkout_books_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Check out several books, reporting an outcome per book."""
    params = _parse(CheckoutBooksInput, arguments)
    if isinstance(params, dict):
        return params

    try:
        with get_session() as session:
            results = LendingEngine(session).check_out_books(params.user_id, params.book_ids)
    except Exception as e:
        return _failure(e, "checkout_books")

    succeeded = sum(1 for message in results.values() if message == CHECKOUT_SUCCESS_MESSAGE)
    return _response(
        200,
        f"Checked out {succeeded} of {len(results)} books",
        {"user_id": params.user_id, "results": results},
    )


# =============================================================================
# TOOL DEFINITIONS
# =============================================================================

get_outstanding_fees = {
    "name": "get_outstanding_fees",
    "description": "Get the late fees a user currently owes.",
    "inputSchema": UserInput.model_json_schema(),
    "handler": get_outstanding_fees_handler,
}

checkout_book = {
    "name": "checkout_book",
    "description": (
        "Check out an available book to a user. Fails when the user or book does not "
        "exist or the book is already on loan."
    ),
    "inputSchema": LoanInput.model_json_schema(),
    "handler": checkout_book_handler,
}

return_book = {
    "name": "return_book",
    "description": (
        "Return a checked out book. Each whole day past the due date adds the book's "
        "daily fee to the user's balance."
    ),
    "inputSchema": LoanInput.model_json_schema(),
    "handler": return_book_handler,
}

get_user_transactions = {
    "name": "get_user_transactions",
    "description": "List a user's checkouts, renewals and returns, most recent first.",
    "inputSchema": UserInput.model_json_schema(),
    "handler": get_user_transactions_handler,
}

process_fee_payment = {
    "name": "process_fee_payment",
    "description": (
        "Pay a user's outstanding fees. The amount must match the balance exactly; "
        "partial payments are rejected."
    ),
    "inputSchema": FeePaymentInput.model_json_schema(),
    "handler": process_fee_payment_handler,
}

renew_book = {
    "name": "renew_book",
    "description": (
        "Renew a loan once, extending the due date to two borrowing periods after checkout."
    ),
    "inputSchema": LoanInput.model_json_schema(),
    "handler": renew_book_handler,
}

checkout_books = {
    "name": "checkout_books",
    "description": (
        "Check out several books for one user. Each book succeeds or fails on its own; "
        "the result maps every book id to its outcome."
    ),
    "inputSchema": CheckoutBooksInput.model_json_schema(),
    "handler": checkout_books_handler,
}
