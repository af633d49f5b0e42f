"""
security helpers:
- Argon2 hashing for passwords and refresh tokens via argon2-cffi
- JWT signing/verification via PyJWT
- JTI generation for token identifiers
"""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Dict, Any, Optional

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError

from utils.clock import utcnow


class TokenError(Exception):
    """Raised when a JWT cannot be verified (bad signature, expired, malformed)."""


class SecretHasher:
    """
    Salted, slow one-way hash for secrets at rest (passwords, refresh tokens).

    Cost parameters come from configuration so tests can run with cheap ones.
    argon2's verify compares in constant time.
    """

    def __init__(self, time_cost: int = 3, memory_cost: int = 65536, parallelism: int = 4):
        self._ph = PasswordHasher(
            time_cost=time_cost, memory_cost=memory_cost, parallelism=parallelism
        )

    def hash(self, plaintext: str) -> str:
        """Hash a plaintext secret using Argon2
        """
        return self._ph.hash(plaintext)

    def verify(self, plaintext: str, hashed: Optional[str]) -> bool:
        """ Verify a plaintext secret against an Argon2 hash
        """
        if not hashed:
            return False
        try:
            return self._ph.verify(hashed, plaintext)
        except (VerificationError, InvalidHashError):
            return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


class TokenSigner:
    """Signs and verifies claim sets; each call names its own secret."""

    def __init__(self, algorithm: str = "HS256"):
        self.algorithm = algorithm

    def sign(self, claims: Dict[str, Any], secret: str, ttl: timedelta,
             now: Optional[datetime] = None) -> str:
        """
        Sign `claims` with `secret`, adding iat/exp (and a jti when absent).
        """
        now = now or utcnow()
        payload = dict(claims)
        payload.setdefault("jti", generate_jti())
        payload["iat"] = int(now.timestamp())
        payload["exp"] = int((now + ttl).timestamp())
        return jwt.encode(payload, secret, algorithm=self.algorithm)

    def verify(self, token: str, secret: str) -> Dict[str, Any]:
        """
        Decode and validate a JWT. Raises TokenError on invalid signature/expired jwt
        """
        try:
            return jwt.decode(
                token, secret, algorithms=[self.algorithm], options={"require": ["exp", "sub"]}
            )
        except jwt.ExpiredSignatureError:
            raise TokenError("Token expired")
        except jwt.InvalidTokenError as exc:
            raise TokenError(f"Invalid token: {exc}")
