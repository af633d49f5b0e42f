from sqlalchemy import Column, String, Index
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base


class Bookstore(BaseModel, Base):
    """Tenant root. Created out-of-band; the services only reference it."""
    __tablename__ = "bookstores"

    name = Column(String(255), nullable=False)
    location = Column(String(255), nullable=False)

    users = relationship("User", back_populates="bookstore")
    books = relationship("Book", back_populates="bookstore")

    __table_args__ = (
        Index("ix_bookstores_name", "name"),
    )
