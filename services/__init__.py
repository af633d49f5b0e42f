"""Service layer: identity/token lifecycle and the rental ledger."""
from services.exceptions import (
    AlreadyRentedError,
    AuthenticationError,
    ConflictError,
    NoActiveRentalError,
    NotFoundError,
    ServiceError,
    UnavailableError,
)
from services.identity_service import IdentityService, TokenSettings, Tokens
from services.rental_service import RentalService

__all__ = [
    "AlreadyRentedError",
    "AuthenticationError",
    "ConflictError",
    "IdentityService",
    "NoActiveRentalError",
    "NotFoundError",
    "RentalService",
    "ServiceError",
    "TokenSettings",
    "Tokens",
    "UnavailableError",
]
