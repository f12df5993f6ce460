"""
Library Lending Server Package.

Tracks book lending for a library: checkouts, renewals, returns with
late-fee accrual, the transaction ledger, and fee settlement.

Key Components:
- lending: The lending engine holding the checkout, renewal, return and payment rules
- models: Pydantic models for users, books, ledger entries and outcomes
- database: SQLAlchemy schema, session management and repositories
- config: Configuration management with pydantic-settings
- tools: Tool handlers exposing the engine to clients
"""

__version__ = "0.1.0"

from . import database
from .lending import LendingEngine

__all__ = [
    "LendingEngine",
    "__version__",
    "database",
]
