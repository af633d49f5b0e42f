from __future__ import annotations
from functools import wraps
from flask import request, g, abort

from api.dependencies import get_identity_service
from services.exceptions import AuthenticationError


def _bearer_token() -> str:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        abort(401, description="Missing or invalid Authorization header")
    return auth.split(" ", 1)[1].strip()


def jwt_required():
    """Require a valid access token; exposes the caller as g.current_user."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = _bearer_token()
            identity = get_identity_service()
            decoded = identity.verify_access_token(token)

            user = identity.get_user(decoded["sub"])
            if not user:
                raise AuthenticationError("User not found")
            g.current_user = user
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def refresh_token_required():
    """
    Require a valid refresh token in the Authorization header.
    Only the signature/expiry/type is checked here; matching it against the
    stored hash is IdentityService.refresh's job.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = _bearer_token()
            decoded = get_identity_service().verify_refresh_token(token)
            g.current_user_id = decoded["sub"]
            g.refresh_token = token
            return fn(*args, **kwargs)

        return wrapper

    return decorator
