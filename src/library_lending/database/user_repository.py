"""
User repository for the Library Lending server.

Handles account creation for seeding and tests, and the two fee mutations
the lending engine performs: accruing a late fee and settling the balance.
"""

from decimal import Decimal

from pydantic import BaseModel, Field

from ..models.user import User as UserModel
from .repository import BaseRepository
from .schema import User as UserDB


class UserCreateSchema(BaseModel):
    """Schema for creating a new user."""

    name: str = Field(..., min_length=1, max_length=200)
    first_name: str | None = None
    fees: Decimal = Field(default=Decimal("0.00"), ge=0)


class UserRepository(BaseRepository[UserDB, UserModel]):
    """Repository for user data access."""

    @property
    def model_class(self):
        return UserDB

    @property
    def response_schema(self):
        return UserModel

    def create(self, data: UserCreateSchema) -> UserDB:
        """Insert a new user and return the flushed row (id populated)."""
        return self.add(UserDB(**data.model_dump()))

    def add_fees(self, user: UserDB, amount: Decimal) -> Decimal:
        """Add ``amount`` to the user's balance and return the new balance."""
        user.fees = (user.fees or Decimal("0")) + amount
        return user.fees

    def clear_fees(self, user: UserDB) -> None:
        """Zero the user's balance."""
        user.fees = Decimal("0.00")
