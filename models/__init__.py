"""Persistence layer: declarative models and the DBStorage engine wrapper."""
from models.base_model import Base, BaseModel
from models.bookstore import Bookstore
from models.book import Book
from models.rental import Rental
from models.user import User
from models.db_storage import DBStorage

__all__ = ["Base", "BaseModel", "Bookstore", "Book", "Rental", "User", "DBStorage"]
