"""
Book model for the Library Lending server.

Books carry the two numbers the fee rules depend on: the standard
borrowing period and the per-day late fee.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Book(BaseModel):
    """
    Represents a lendable book.

    ``available`` mirrors the ledger: it is False exactly while a checkout
    for this book has not been followed by a return.
    """

    id: str = Field(
        ...,
        description="Library-assigned book identifier (free-form string)",
        min_length=1,
        max_length=50,
        examples=["a", "b", "cs-101"],
    )

    title: str = Field(
        ...,
        description="The title of the book",
        min_length=1,
        max_length=500,
        examples=["Introduction to C#", "ASP.NET Core in Action"],
    )

    fee_price: Decimal = Field(
        default=Decimal("0.00"),
        description="Late fee charged per overdue day",
        ge=0,
        examples=["1.50", "2.00"],
    )

    borrowing_days: int = Field(
        default=14,
        description="Standard loan period in days",
        gt=0,
        examples=[7, 14, 21],
    )

    available: bool = Field(
        default=True,
        description="Whether the book can currently be checked out",
    )

    created_at: datetime | None = Field(
        None,
        description="Timestamp when the book was added to the catalog",
    )

    @field_validator("id")
    @classmethod
    def strip_id(cls, v: str) -> str:
        """Book identifiers are compared verbatim, so reject surrounding spaces early."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("Book id must not be blank")
        return stripped

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "a",
                "title": "Introduction to C#",
                "fee_price": "1.50",
                "borrowing_days": 14,
                "available": True,
            }
        },
    )
