"""
Identity & token service.

- signup / signin verify credentials and issue an access + refresh token pair
- only an argon2 hash of the current refresh token is stored, on the user row
- every signin/refresh rotates that hash, so older refresh tokens stop working
- logout clears the hash

Tokens are JWTs signed by TokenSigner; access and refresh tokens use separate
secrets and carry a `type` claim so one can never stand in for the other.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.attributes import set_committed_value

from models.bookstore import Bookstore
from models.db_storage import DBStorage
from models.user import User
from services.exceptions import AuthenticationError, ConflictError
from utils.clock import Clock, utcnow
from utils.security import SecretHasher, TokenError, TokenSigner

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"


@dataclass(frozen=True)
class TokenSettings:
    access_secret: str
    refresh_secret: str
    access_ttl: timedelta = timedelta(minutes=60)
    refresh_ttl: timedelta = timedelta(days=7)


@dataclass(frozen=True)
class Tokens:
    access_token: str
    refresh_token: str


def normalize_email(email: str) -> str:
    return email.strip().lower()


class IdentityService:
    def __init__(
        self,
        storage: DBStorage,
        hasher: SecretHasher,
        signer: TokenSigner,
        settings: TokenSettings,
        clock: Clock = utcnow,
    ):
        self.storage = storage
        self.hasher = hasher
        self.signer = signer
        self.settings = settings
        self.clock = clock

    # ------------------------------------------------------------------ #
    # Credential flows
    # ------------------------------------------------------------------ #
    def signup(self, email: str, password: str, bookstore_id: str) -> Tokens:
        """Register a user in `bookstore_id` and return its first token pair."""
        email = normalize_email(email)
        with self.storage.transaction() as session:
            if session.get(Bookstore, bookstore_id) is None:
                raise ConflictError(f"Bookstore with id {bookstore_id} does not exist.")
            if session.query(User.id).filter(User.email == email).first() is not None:
                raise ConflictError(f"User with email {email} already exist.")

            user = User(
                email=email,
                password_hash=self.hasher.hash(password),
                bookstore_id=bookstore_id,
            )
            tokens = self.issue_tokens(user.id, user.email)
            user.hashed_refresh_token = self.hasher.hash(tokens.refresh_token)

            session.add(user)
            try:
                session.flush()
            except IntegrityError:
                # Lost a race with a concurrent signup for the same email
                raise ConflictError(f"User with email {email} already exist.")

        logger.info("User %s signed up in bookstore %s", user.id, bookstore_id)
        return tokens

    def signin(self, email: str, password: str) -> Tokens:
        email = normalize_email(email)
        with self.storage.transaction() as session:
            user = session.query(User).filter(User.email == email).populate_existing().first()
            if user is None or not self.hasher.verify(password, user.password_hash):
                logger.warning("Rejected signin attempt")
                raise AuthenticationError()

            tokens = self.issue_tokens(user.id, user.email)
            user.hashed_refresh_token = self.hasher.hash(tokens.refresh_token)

        logger.info("User %s signed in", user.id)
        return tokens

    def logout(self, user_id: str) -> bool:
        """Forget the stored refresh token. Succeeds for unknown users too."""
        with self.storage.transaction() as session:
            session.execute(
                update(User)
                .where(User.id == user_id, User.hashed_refresh_token.isnot(None))
                .values(hashed_refresh_token=None)
                .execution_options(synchronize_session=False)
            )
        logger.info("User %s logged out", user_id)
        return True

    def refresh(self, user_id: str, refresh_token: str) -> Tokens:
        """
        Trade a refresh token for a new pair.

        The stored hash is swapped only if it still holds the value we verified
        against, so the same refresh token cannot be redeemed twice even by two
        concurrent requests.
        """
        with self.storage.transaction() as session:
            user = session.get(User, user_id, populate_existing=True)
            if user is None or not user.hashed_refresh_token:
                raise AuthenticationError()

            current_hash = user.hashed_refresh_token
            if not self.hasher.verify(refresh_token, current_hash):
                logger.warning("Refresh token mismatch for user %s", user_id)
                raise AuthenticationError()

            tokens = self.issue_tokens(user.id, user.email)
            new_hash = self.hasher.hash(tokens.refresh_token)
            result = session.execute(
                update(User)
                .where(User.id == user_id, User.hashed_refresh_token == current_hash)
                .values(hashed_refresh_token=new_hash)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise AuthenticationError()
            set_committed_value(user, "hashed_refresh_token", new_hash)

        logger.info("Rotated refresh token for user %s", user_id)
        return tokens

    # ------------------------------------------------------------------ #
    # Tokens
    # ------------------------------------------------------------------ #
    def issue_tokens(self, user_id: str, email: str) -> Tokens:
        now = self.clock()
        claims = {"sub": str(user_id), "email": email}
        access = self.signer.sign(
            {**claims, "type": ACCESS}, self.settings.access_secret, self.settings.access_ttl, now=now
        )
        refresh = self.signer.sign(
            {**claims, "type": REFRESH}, self.settings.refresh_secret, self.settings.refresh_ttl, now=now
        )
        return Tokens(access_token=access, refresh_token=refresh)

    def verify_access_token(self, token: str) -> Dict[str, Any]:
        return self._verify(token, self.settings.access_secret, ACCESS)

    def verify_refresh_token(self, token: str) -> Dict[str, Any]:
        return self._verify(token, self.settings.refresh_secret, REFRESH)

    def _verify(self, token: str, secret: str, expected_type: str) -> Dict[str, Any]:
        try:
            claims = self.signer.verify(token, secret)
        except TokenError as exc:
            raise AuthenticationError(str(exc))
        if claims.get("type") != expected_type:
            raise AuthenticationError("Wrong token type")
        return claims

    def get_user(self, user_id: str) -> Optional[User]:
        return self.storage.get(User, user_id)
