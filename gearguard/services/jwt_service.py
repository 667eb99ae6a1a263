"""
JWT Service — access token encoding and verification.

Access token:  1 hour (configurable via JWT_ACCESS_EXPIRES, seconds)
Algorithm:     HS256

Token payload:
{
    "sub": "<user_id>",
    "role": "MANAGER",
    "type": "access",
    "iat": <issued_at>,
    "exp": <expires_at>,
    "jti": <unique_id>
}

Login/refresh flows live outside this service; ``generate_access_token`` is
used by local tooling and the test suite.
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app

DEFAULT_ACCESS_EXPIRES = 3600
ALGORITHM = "HS256"


def _get_secret():
    """Get the JWT secret key from app config."""
    return current_app.config.get("JWT_SECRET_KEY") or current_app.config["SECRET_KEY"]


def _get_access_expires():
    return current_app.config.get("JWT_ACCESS_EXPIRES", DEFAULT_ACCESS_EXPIRES)


def generate_access_token(user_id: int, role: str | None = None) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "type": "access",
        "iat": now,
        "exp": now + timedelta(seconds=_get_access_expires()),
        "jti": str(uuid.uuid4()),
    }
    if role is not None:
        payload["role"] = role
    return jwt.encode(payload, _get_secret(), algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify an access token.

    Raises:
        jwt.ExpiredSignatureError: token expired
        jwt.InvalidTokenError: invalid signature, malformed, or wrong type
    """
    payload = jwt.decode(token, _get_secret(), algorithms=[ALGORITHM])
    if payload.get("type") != "access":
        raise jwt.InvalidTokenError("Not an access token")
    return payload
