"""
Accessors for the objects create_app() wires into app.extensions.

Blueprints and decorators go through these instead of module-level
singletons, so every app instance (and every test) gets its own storage.
"""
from flask import current_app

from models.db_storage import DBStorage
from services.identity_service import IdentityService
from services.rental_service import RentalService

STORAGE_KEY = "storage"
IDENTITY_KEY = "identity_service"
RENTAL_KEY = "rental_service"


def get_storage() -> DBStorage:
    return current_app.extensions[STORAGE_KEY]


def get_identity_service() -> IdentityService:
    return current_app.extensions[IDENTITY_KEY]


def get_rental_service() -> RentalService:
    return current_app.extensions[RENTAL_KEY]
