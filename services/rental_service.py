"""
Rental ledger: tenant-scoped inventory reads plus rent/return.

Rent and return each run in a single transaction. The book row is read with
SELECT ... FOR UPDATE and every write is conditional (quantity > 0 on rent,
returned_at IS NULL on return), so Book.quantity and the number of open
rentals move together even where the store ignores FOR UPDATE.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import func, or_, update
from sqlalchemy.exc import IntegrityError

from models.book import Book
from models.db_storage import DBStorage
from models.rental import Rental
from models.user import User
from services.exceptions import (
    AlreadyRentedError,
    NoActiveRentalError,
    NotFoundError,
    UnavailableError,
)
from utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)

LIKE_ESCAPE = "\\"


def _like_pattern(query: str) -> str:
    """Lowercased %...% pattern with LIKE wildcards in the user input escaped."""
    q = query.strip().lower()
    for ch in (LIKE_ESCAPE, "%", "_"):
        q = q.replace(ch, LIKE_ESCAPE + ch)
    return f"%{q}%"


class RentalService:
    def __init__(self, storage: DBStorage, clock: Clock = utcnow):
        self.storage = storage
        self.clock = clock

    def list_books(self, user: User) -> List[Book]:
        """All books of the caller's bookstore."""
        with self.storage.transaction() as session:
            return (
                session.query(Book)
                .filter(Book.bookstore_id == user.bookstore_id)
                .order_by(Book.title.asc(), Book.id.asc())
                .populate_existing()
                .all()
            )

    def search_books(self, query: str, user: User) -> List[Book]:
        """Case-insensitive substring match on title or author, tenant-scoped."""
        pattern = _like_pattern(query)
        with self.storage.transaction() as session:
            return (
                session.query(Book)
                .filter(Book.bookstore_id == user.bookstore_id)
                .filter(
                    or_(
                        func.lower(Book.title).like(pattern, escape=LIKE_ESCAPE),
                        func.lower(Book.author).like(pattern, escape=LIKE_ESCAPE),
                    )
                )
                .order_by(Book.title.asc(), Book.id.asc())
                .populate_existing()
                .all()
            )

    def rent_book(self, book_id: str, user: User) -> Book:
        with self.storage.transaction() as session:
            book = self._load_book_for_update(session, book_id, user)
            if book.quantity == 0:
                logger.info("Book %s unavailable for user %s", book_id, user.id)
                raise UnavailableError()

            if self._find_open_rental(session, book_id, user.id) is not None:
                raise AlreadyRentedError()

            # Decrement only while stock remains; a concurrent rent may have taken the last copy
            result = session.execute(
                update(Book)
                .where(Book.id == book.id, Book.quantity > 0)
                .values(quantity=Book.quantity - 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                logger.info("Book %s sold out while renting for user %s", book_id, user.id)
                raise UnavailableError()

            session.add(Rental(book_id=book.id, user_id=user.id))
            try:
                session.flush()
            except IntegrityError:
                # uq_rentals_open_loan: a concurrent rent by the same user won
                raise AlreadyRentedError()

            session.refresh(book)

        logger.info("User %s rented book %s (%s left)", user.id, book.id, book.quantity)
        return book

    def return_book(self, book_id: str, user: User) -> Book:
        with self.storage.transaction() as session:
            book = self._load_book_for_update(session, book_id, user)

            rental = self._find_open_rental(session, book_id, user.id)
            if rental is None:
                raise NoActiveRentalError()

            closed = session.execute(
                update(Rental)
                .where(Rental.id == rental.id, Rental.returned_at.is_(None))
                .values(returned_at=self.clock())
                .execution_options(synchronize_session=False)
            )
            if closed.rowcount != 1:
                raise NoActiveRentalError()

            session.execute(
                update(Book)
                .where(Book.id == book.id)
                .values(quantity=Book.quantity + 1)
                .execution_options(synchronize_session=False)
            )
            session.refresh(book)

        logger.info("User %s returned book %s (%s left)", user.id, book.id, book.quantity)
        return book

    def get_open_rental(self, book_id: str, user: User) -> Optional[Rental]:
        with self.storage.transaction() as session:
            return self._find_open_rental(session, book_id, user.id)

    # ------------------------------------------------------------------ #
    # helpers
    # ------------------------------------------------------------------ #
    @staticmethod
    def _load_book_for_update(session, book_id: str, user: User) -> Book:
        book = (
            session.query(Book)
            .filter(Book.id == book_id, Book.bookstore_id == user.bookstore_id)
            .with_for_update()
            .populate_existing()
            .one_or_none()
        )
        if book is None:
            raise NotFoundError("Book not found")
        return book

    @staticmethod
    def _find_open_rental(session, book_id: str, user_id: str) -> Optional[Rental]:
        return (
            session.query(Rental)
            .filter(
                Rental.book_id == book_id,
                Rental.user_id == user_id,
                Rental.returned_at.is_(None),
            )
            .populate_existing()
            .first()
        )
