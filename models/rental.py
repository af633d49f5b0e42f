"""
Rental model: one row per loan of a book to a user.

- book_id, user_id (FKs)
- created_at (from BaseModel), returned_at (NULL while the loan is open)

The partial unique index lets the store itself reject a second open rental
for the same (book, user) pair. SQLite and PostgreSQL both honour it.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base

OPEN_RENTAL_PREDICATE = text("returned_at IS NULL")


class Rental(BaseModel, Base):
    __tablename__ = "rentals"

    book_id = Column(String(36), ForeignKey("books.id", ondelete="RESTRICT"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    returned_at = Column(DateTime(timezone=True), nullable=True)

    book = relationship("Book", back_populates="rentals")
    user = relationship("User", back_populates="rentals")

    __table_args__ = (
        Index(
            "uq_rentals_open_loan",
            "book_id",
            "user_id",
            unique=True,
            sqlite_where=OPEN_RENTAL_PREDICATE,
            postgresql_where=OPEN_RENTAL_PREDICATE,
        ),
        Index("ix_rentals_user_id", "user_id"),
    )

    @property
    def is_open(self) -> bool:
        return self.returned_at is None

    def __repr__(self):
        return f"<Rental book={self.book_id} user={self.user_id} returned_at={self.returned_at}>"
