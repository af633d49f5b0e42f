"""
Error kinds raised by the service layer.

Each carries a stable `code`; the HTTP layer (api/errors.py) decides which
status each kind maps to.
"""
from __future__ import annotations


class ServiceError(Exception):
    code = "SERVICE_ERROR"
    default_message = "Service error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ConflictError(ServiceError):
    """Duplicate email, unknown bookstore at signup, duplicate rental."""
    code = "CONFLICT"
    default_message = "Conflict"


class AlreadyRentedError(ConflictError):
    code = "ALREADY_RENTED"
    default_message = "You have already rented this book"


class AuthenticationError(ServiceError):
    code = "UNAUTHORIZED"
    default_message = "Access denied"


class NotFoundError(ServiceError):
    code = "NOT_FOUND"
    default_message = "Resource not found"


class UnavailableError(ServiceError):
    code = "BOOK_UNAVAILABLE"
    default_message = "Book not available"


class NoActiveRentalError(ServiceError):
    code = "NO_ACTIVE_RENTAL"
    default_message = "You have not rented this book"
