"""
Authentication blueprint, mounted at /api/v1/auth:
- POST /api/v1/auth/local/signup
- POST /api/v1/auth/local/signin
- POST /api/v1/auth/logout   (access token)
- POST /api/v1/auth/refresh  (refresh token)

Handlers only validate input and shape output; credential checks, token
issuance and rotation live in IdentityService.
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, g

from api.dependencies import get_identity_service
from models.schemas.user import SignupSchema, SigninSchema, TokensSchema
from utils.decorators import jwt_required, refresh_token_required

bp = Blueprint("auth", __name__)

signup_schema = SignupSchema()
signin_schema = SigninSchema()
tokens_schema = TokensSchema()


@bp.post("/local/signup")
def signup():
    """
    Register a new user in a bookstore and return its tokens.
    Body: { "email": str, "password": str, "bookstore_id": str }
    201 tokens | 409 email taken / unknown bookstore | 422 validation error
    """
    payload = request.get_json(silent=True) or {}
    data = signup_schema.load(payload)
    tokens = get_identity_service().signup(data["email"], data["password"], data["bookstore_id"])
    return jsonify(tokens_schema.dump(tokens)), 201


@bp.post("/local/signin")
def signin():
    """
    Login: return access_token and refresh_token
    Body: { "email": str, "password": str }
    200 tokens | 401 invalid credentials
    """
    payload = request.get_json(silent=True) or {}
    data = signin_schema.load(payload)
    tokens = get_identity_service().signin(data["email"], data["password"])
    return jsonify(tokens_schema.dump(tokens)), 200


@bp.post("/logout")
@jwt_required()
def logout():
    """Revoke the caller's refresh token. Always 200 with `true`."""
    return jsonify(get_identity_service().logout(g.current_user.id)), 200


@bp.post("/refresh")
@refresh_token_required()
def refresh():
    """
    Use the refresh token (Authorization: Bearer <refresh_token>) to obtain a new pair (rotation)
    200 tokens | 401 invalid, expired, revoked or already used refresh token
    """
    tokens = get_identity_service().refresh(g.current_user_id, g.refresh_token)
    return jsonify(tokens_schema.dump(tokens)), 200
