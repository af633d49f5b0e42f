from models.base_model import Base, BaseModel
from sqlalchemy import Column, String, ForeignKey
from sqlalchemy.orm import relationship


class User(BaseModel, Base):
    __tablename__ = "users"
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    # argon2 hash of the current refresh token; NULL once logged out
    hashed_refresh_token = Column(String(255), nullable=True)

    bookstore_id = Column(
        String(36),
        ForeignKey("bookstores.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    bookstore = relationship("Bookstore", back_populates="users")
    rentals = relationship("Rental", back_populates="user")

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")
