"""
Ledger repository for the Library Lending server.

The ledger is append-only: this repository can insert entries and query
them, but offers no update or delete. Loan state (is a loan active, how
many times was it renewed) is answered here from the entries alone.
"""

from datetime import datetime

from sqlalchemy import and_, asc, desc, func, or_, select

from ..models.transaction import LibraryTransaction as TransactionModel
from ..models.transaction import TransactionType
from .repository import BaseRepository
from .schema import LibraryTransaction as TransactionDB
from .schema import TransactionTypeEnum
from .session import safe_query


class TransactionRepository(BaseRepository[TransactionDB, TransactionModel]):
    """Repository for ledger entries."""

    @property
    def model_class(self):
        return TransactionDB

    @property
    def response_schema(self):
        return TransactionModel

    def _to_response_model(self, db_obj: TransactionDB) -> TransactionModel:
        return TransactionModel(
            id=db_obj.id,
            user_id=db_obj.user_id,
            book_id=db_obj.book_id,
            transaction_type=TransactionType(db_obj.transaction_type.value),
            date=db_obj.date,
        )

    def append(
        self,
        user_id: int,
        book_id: str,
        transaction_type: TransactionTypeEnum,
        date: datetime,
    ) -> TransactionDB:
        """Record a new ledger entry."""
        return self.add(
            TransactionDB(
                user_id=user_id,
                book_id=book_id,
                transaction_type=transaction_type,
                date=date,
            )
        )

    def _filtered(
        self,
        user_id: int | None,
        book_id: str | None,
        transaction_type: TransactionTypeEnum | None,
        after: TransactionDB | None,
    ):
        query = select(TransactionDB)
        if user_id is not None:
            query = query.where(TransactionDB.user_id == user_id)
        if book_id is not None:
            query = query.where(TransactionDB.book_id == book_id)
        if transaction_type is not None:
            query = query.where(TransactionDB.transaction_type == transaction_type)
        if after is not None:
            # Same-timestamp entries count as later when they were inserted later
            query = query.where(
                or_(
                    TransactionDB.date > after.date,
                    and_(TransactionDB.date == after.date, TransactionDB.id > after.id),
                )
            )
        return query

    def find(
        self,
        user_id: int | None = None,
        book_id: str | None = None,
        transaction_type: TransactionTypeEnum | None = None,
        after: TransactionDB | None = None,
        newest_first: bool = True,
    ) -> list[TransactionDB]:
        """
        Query ledger entries matching every given filter.

        Args:
            user_id: Only entries for this user
            book_id: Only entries for this book
            transaction_type: Only entries of this kind
            after: Only entries recorded after this entry
            newest_first: Sort by timestamp descending (ascending otherwise);
                ties are broken by insertion order in the same direction

        Returns:
            Matching ORM rows
        """
        order = desc if newest_first else asc
        query = self._filtered(user_id, book_id, transaction_type, after).order_by(
            order(TransactionDB.date), order(TransactionDB.id)
        )
        return safe_query(
            self.session,
            lambda s: list(s.execute(query).scalars().all()),
            "Failed to query ledger entries",
        )

    def latest(
        self,
        user_id: int | None = None,
        book_id: str | None = None,
        transaction_type: TransactionTypeEnum | None = None,
    ) -> TransactionDB | None:
        """Return the most recent matching entry, or None."""
        query = (
            self._filtered(user_id, book_id, transaction_type, None)
            .order_by(desc(TransactionDB.date), desc(TransactionDB.id))
            .limit(1)
        )
        return safe_query(
            self.session,
            lambda s: s.execute(query).scalars().first(),
            "Failed to get latest ledger entry",
        )

    def count(
        self,
        user_id: int | None = None,
        book_id: str | None = None,
        transaction_type: TransactionTypeEnum | None = None,
        after: TransactionDB | None = None,
    ) -> int:
        """Count matching entries."""
        subquery = self._filtered(user_id, book_id, transaction_type, after).subquery()
        query = select(func.count()).select_from(subquery)
        return (
            safe_query(
                self.session,
                lambda s: s.execute(query).scalar(),
                "Failed to count ledger entries",
            )
            or 0
        )

    def active_checkout(self, user_id: int, book_id: str) -> TransactionDB | None:
        """
        Return the checkout entry of the user's open loan of this book.

        A loan is open when its most recent checkout has no later return.
        """
        checkout = self.latest(user_id, book_id, TransactionTypeEnum.CHECKOUT)
        if checkout is None:
            return None
        returned = self.count(user_id, book_id, TransactionTypeEnum.RETURN, after=checkout)
        if returned:
            return None
        return checkout

    def renewal_count(self, checkout: TransactionDB) -> int:
        """Count renewals recorded after ``checkout`` for the same user and book."""
        return self.count(
            checkout.user_id,
            checkout.book_id,
            TransactionTypeEnum.RENEW,
            after=checkout,
        )

    def list_for_user(self, user_id: int) -> list[TransactionModel]:
        """All entries of a user, most recent first."""
        return [self._to_response_model(row) for row in self.find(user_id=user_id)]
