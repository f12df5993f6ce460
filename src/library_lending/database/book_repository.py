"""
Book repository for the Library Lending server.

Catalog management is not exposed to clients; ``create`` exists for
seeding and tests. The engine only reads books and flips availability.
"""

from decimal import Decimal

from pydantic import BaseModel, Field

from ..models.book import Book as BookModel
from .repository import BaseRepository
from .schema import Book as BookDB


class BookCreateSchema(BaseModel):
    """Schema for adding a book to the catalog."""

    id: str = Field(..., min_length=1, max_length=50)
    title: str = Field(..., min_length=1, max_length=500)
    fee_price: Decimal = Field(default=Decimal("0.00"), ge=0)
    borrowing_days: int = Field(default=14, gt=0)
    available: bool = True


class BookRepository(BaseRepository[BookDB, BookModel]):
    """Repository for book data access."""

    @property
    def model_class(self):
        return BookDB

    @property
    def response_schema(self):
        return BookModel

    def create(self, data: BookCreateSchema) -> BookDB:
        """Insert a new book and return the flushed row."""
        return self.add(BookDB(**data.model_dump()))

    def set_available(self, book: BookDB, available: bool) -> None:
        """Update the availability flag in place."""
        book.available = available
