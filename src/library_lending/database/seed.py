"""
Demo data for the Library Lending server.

Loads the two users and two books the library starts with, and can add
extra generated users for manual testing of the tools.
"""

import logging
import random
from decimal import Decimal

from faker import Faker
from sqlalchemy.orm import Session

from .book_repository import BookCreateSchema, BookRepository
from .user_repository import UserCreateSchema, UserRepository

logger = logging.getLogger(__name__)

DEMO_USERS = [
    UserCreateSchema(name="Doe", first_name="John", fees=Decimal("0.00")),
    UserCreateSchema(name="Smith", first_name="Jane", fees=Decimal("5.00")),
]

DEMO_BOOKS = [
    BookCreateSchema(
        id="a",
        title="Introduction to C#",
        fee_price=Decimal("1.50"),
        borrowing_days=14,
    ),
    BookCreateSchema(
        id="b",
        title="ASP.NET Core in Action",
        fee_price=Decimal("2.00"),
        borrowing_days=14,
    ),
]


def generate_users(count: int, seed: int = 42) -> list[UserCreateSchema]:
    """Generate ``count`` users with realistic names and small balances."""
    fake = Faker()
    Faker.seed(seed)
    rng = random.Random(seed)

    return [
        UserCreateSchema(
            name=fake.last_name(),
            first_name=fake.first_name(),
            fees=Decimal(rng.choice([0, 0, 0, 150, 250, 500])) / 100,
        )
        for _ in range(count)
    ]


def seed_database(session: Session, extra_users: int = 0) -> dict[str, int]:
    """
    Insert the demo catalog and users, then commit.

    Args:
        session: Session bound to an initialized schema
        extra_users: Number of additional generated users

    Returns:
        Counts of inserted rows by table
    """
    user_repo = UserRepository(session)
    book_repo = BookRepository(session)

    users = [*DEMO_USERS, *generate_users(extra_users)] if extra_users else list(DEMO_USERS)
    for user in users:
        user_repo.create(user)
    for book in DEMO_BOOKS:
        book_repo.create(book)

    session.commit()
    logger.info("Seeded %d users and %d books", len(users), len(DEMO_BOOKS))
    return {"users": len(users), "books": len(DEMO_BOOKS)}
