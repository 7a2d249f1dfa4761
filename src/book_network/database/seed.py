"""
Sample data generation for local development.

Creates activated members who each own a few books, some of them shared,
and a handful of loans in every state so the listing tools have something
to show right after ``scripts/init_database.py --sample-data``.
"""

import logging
import random

from faker import Faker
from sqlalchemy.orm import Session

from ..security import hash_password
from .schema import Book, Loan, Role, User
from .session import seed_roles

logger = logging.getLogger(__name__)

SAMPLE_PASSWORD = "password123"


def generate_isbn13(rng: random.Random) -> str:
    """Generate a valid ISBN-13 number."""
    body = "978" + "".join(str(rng.randint(0, 9)) for _ in range(9))
    total = sum(int(digit) * (3 if i % 2 else 1) for i, digit in enumerate(body))
    return f"{body}{(10 - total % 10) % 10}"


def seed_sample_data(
    session: Session,
    num_users: int = 5,
    books_per_user: int = 4,
    seed: int = 42,
) -> dict[str, int]:
    """
    Populate the database with fake members, books and loans.

    Every sample user can log in with ``SAMPLE_PASSWORD``.

    Returns:
        Counts of created users, books and loans
    """
    fake = Faker()
    Faker.seed(seed)
    rng = random.Random(seed)

    seed_roles(session)
    user_role = session.query(Role).filter_by(name="USER").one()
    password_hash = hash_password(SAMPLE_PASSWORD)

    users: list[User] = []
    for _ in range(num_users):
        first_name = fake.first_name()
        last_name = fake.last_name()
        user = User(
            first_name=first_name,
            last_name=last_name,
            email=fake.unique.email(),
            password_hash=password_hash,
            date_of_birth=fake.date_of_birth(minimum_age=16, maximum_age=80),
            enabled=True,
            account_locked=False,
            roles=[user_role],
        )
        session.add(user)
        users.append(user)
    session.flush()

    books: list[Book] = []
    for owner in users:
        for _ in range(books_per_user):
            book = Book(
                title=fake.sentence(nb_words=4).rstrip("."),
                author_name=fake.name(),
                isbn=generate_isbn13(rng),
                synopsis=fake.paragraph(nb_sentences=3),
                shareable=rng.random() < 0.7,
                archived=rng.random() < 0.1,
                owner_id=owner.id,
            )
            session.add(book)
            books.append(book)
    session.flush()

    loans = 0
    borrowable = [b for b in books if b.shareable and not b.archived] if len(users) > 1 else []
    for book in borrowable:
        if rng.random() < 0.5:
            continue
        borrower = rng.choice([u for u in users if u.id != book.owner_id])
        returned = rng.random() < 0.5
        session.add(
            Loan(
                book_id=book.id,
                user_id=borrower.id,
                returned=returned,
                return_approved=returned and rng.random() < 0.5,
            )
        )
        loans += 1

    session.commit()
    logger.info("Seeded %d users, %d books, %d loans", len(users), len(books), loans)
    return {"users": len(users), "books": len(books), "loans": loans}
