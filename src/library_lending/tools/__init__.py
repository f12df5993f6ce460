"""
Tools for the Library Lending server.

Tools are the operations clients invoke. Each one validates its arguments,
runs one lending engine operation in its own session, and reports the
outcome with an HTTP-style status code.
"""

from .lending import (
    checkout_book,
    checkout_books,
    get_outstanding_fees,
    get_user_transactions,
    process_fee_payment,
    renew_book,
    return_book,
)

# Registered by the server in this order
all_tools = [
    get_outstanding_fees,
    checkout_book,
    return_book,
    renew_book,
    checkout_books,
    get_user_transactions,
    process_fee_payment,
]

__all__ = [
    "all_tools",
    "checkout_book",
    "checkout_books",
    "get_outstanding_fees",
    "get_user_transactions",
    "process_fee_payment",
    "renew_book",
    "return_book",
]
