"""
User model for the Library Lending server.

A user is a library member who borrows books. The only mutable business
field is the outstanding fee balance.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class User(BaseModel):
    """Represents a library member and their outstanding fees."""

    id: int = Field(
        ...,
        description="Unique identifier of the user",
        ge=1,
        examples=[1, 42],
    )

    name: str = Field(
        ...,
        description="Display name (family name) of the user",
        min_length=1,
        max_length=200,
        examples=["Doe", "Smith"],
    )

    first_name: str | None = Field(
        None,
        description="Given name of the user",
        max_length=200,
        examples=["John", "Jane"],
    )

    fees: Decimal = Field(
        default=Decimal("0.00"),
        description="Accumulated late fees not yet paid",
        ge=0,
        examples=["0.00", "5.00"],
    )

    created_at: datetime | None = Field(
        None,
        description="When the account was created",
    )

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        """Trim surrounding whitespace from the display name."""
        return v.strip()

    @property
    def display_name(self) -> str:
        """Full name as shown in listings."""
        if self.first_name:
            return f"{self.first_name} {self.name}"
        return self.name

    @property
    def has_outstanding_fees(self) -> bool:
        """Check whether the user owes anything."""
        return self.fees > 0

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "name": "Doe",
                "first_name": "John",
                "fees": "0.00",
            }
        },
    )
