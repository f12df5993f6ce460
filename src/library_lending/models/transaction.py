"""
Ledger entry model for the Library Lending server.

Entries are immutable: once recorded, a checkout, renewal or return is
never edited. Due dates and renewal counts are derived from them.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TransactionType(str, Enum):
    """Kind of ledger entry."""

    CHECKOUT = "Checkout"
    RENEW = "Renew"
    RETURN = "Return"


class LibraryTransaction(BaseModel):
    """Represents one entry of the lending ledger."""

    id: int = Field(
        ...,
        description="Unique identifier of the ledger entry",
        ge=1,
    )

    user_id: int = Field(
        ...,
        description="ID of the user the entry belongs to",
    )

    book_id: str = Field(
        ...,
        description="ID of the book the entry refers to",
    )

    transaction_type: TransactionType = Field(
        ...,
        description="Checkout, Renew or Return",
    )

    date: datetime = Field(
        ...,
        description="When the entry was recorded",
    )

    model_config = ConfigDict(
        from_attributes=True,
        frozen=True,
        use_enum_values=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "user_id": 1,
                "book_id": "a",
                "transaction_type": "Checkout",
                "date": "2024-01-15T10:30:00",
            }
        },
    )
