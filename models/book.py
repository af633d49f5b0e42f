from sqlalchemy import (
    Column,
    String,
    Integer,
    ForeignKey,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base


class Book(BaseModel, Base):
    __tablename__ = "books"

    title = Column(String(255), nullable=False)
    author = Column(String(255), nullable=False)
    # Mutated only by rent/return, inside a transaction
    quantity = Column(Integer, nullable=False, default=0)

    bookstore_id = Column(String(36), ForeignKey("bookstores.id", ondelete="RESTRICT"), nullable=False)

    bookstore = relationship("Bookstore", back_populates="books")
    rentals = relationship("Rental", back_populates="book")

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_books_quantity_nonnegative"),
        Index("ix_books_title", "title"),
        Index("ix_books_bookstore_id", "bookstore_id"),
    )
