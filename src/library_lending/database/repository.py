"""
Repository pattern implementation for the Library Lending server.

Repositories are the persistence collaborator of the lending engine. They
keep SQL out of the business rules and give every entity the same small
set of capabilities:

1. **Find by id**: return the ORM row (for in-place updates) or a
   Pydantic model (for responses)
2. **Insert**: add and flush a new row
3. **Error translation**: database failures surface as ``RepositoryException``

Commit boundaries belong to the engine, not the repositories, so that one
lending operation is always one transaction.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

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
from .schema import Base
from .session import safe_query

ModelType = TypeVar("ModelType", bound=Base)
ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)

__all__ = [
    "BaseRepository",
    "DuplicateError",
    "InvalidReferenceError",
    "InvalidStateError",
    "LendingError",
    "NoCheckoutRecordError",
    "NotAvailableError",
    "NotCheckedOutError",
    "NotFoundError",
    "RepositoryException",
]


class BaseRepository(ABC, Generic[ModelType, ResponseSchemaType]):
    """
    Abstract base repository providing lookups and inserts.

    All queries go through ``safe_query`` so that driver errors are logged
    and re-raised as ``RepositoryException``.
    """

    def __init__(self, session: Session):
        """Initialize repository with database session."""
        self.session = session

    @property
    @abstractmethod
    def model_class(self) -> type[ModelType]:
        """Return the SQLAlchemy model class."""

    @property
    @abstractmethod
    def response_schema(self) -> type[ResponseSchemaType]:
        """Return the Pydantic response schema."""

    def _to_response_model(self, db_obj: ModelType) -> ResponseSchemaType:
        """Convert database model to Pydantic response model."""
        return self.response_schema.model_validate(db_obj, from_attributes=True)

    def get(self, id: Any, *, for_update: bool = False) -> ModelType | None:
        """
        Fetch the ORM row for ``id``.

        Args:
            id: Primary key value
            for_update: Lock the row until the surrounding transaction ends

        Returns:
            The row, or None if not found
        """
        query = select(self.model_class).where(self.model_class.id == id)
        if for_update:
            query = query.with_for_update()
        return safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            f"Failed to get {self.model_class.__name__} by ID",
        )

    def get_by_id(self, id: Any) -> ResponseSchemaType | None:
        """Get entity by ID as a Pydantic model, or None if not found."""
        db_obj = self.get(id)
        if db_obj is None:
            return None
        return self._to_response_model(db_obj)

    def exists(self, id: Any) -> bool:
        """Check if entity exists by ID."""
        query = select(func.count()).select_from(self.model_class).where(self.model_class.id == id)
        count = safe_query(
            self.session, lambda s: s.execute(query).scalar(), "Failed to check existence"
        )
        return bool(count)

    def add(self, db_obj: ModelType) -> ModelType:
        """
        Stage a new row and flush it so generated keys are populated.

        Raises:
            DuplicateError: If the primary key is already taken
        """
        self.session.add(db_obj)
        try:
            self.session.flush()
        except IntegrityError as e:
            self.session.rollback()
            raise DuplicateError(f"{self.model_class.__name__} already exists: {e.orig}") from e
        return db_obj
