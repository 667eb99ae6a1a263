"""
JWT Auth Middleware — Parses the Bearer token, loads the user into g.current_user.

  Authorization: Bearer <token>  →  g.current_user (User), g.jwt_user_id

An absent, expired or invalid token leaves g.current_user = None; the
blueprints answer 401 for protected endpoints (gearguard.blueprints.acting_user).
"""

import logging

import jwt as pyjwt
from flask import g, request

from gearguard.models import db
from gearguard.models.user import User
from gearguard.services.jwt_service import decode_access_token

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/health",
    "/static/",
)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.current_user = None
        g.jwt_user_id = None
        g.auth_error = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            g.auth_error = "No authentication token provided"
            return

        token = auth_header[7:]  # Strip "Bearer "

        try:
            payload = decode_access_token(token)
        except pyjwt.ExpiredSignatureError:
            g.auth_error = "Token expired"
            return
        except pyjwt.InvalidTokenError:
            g.auth_error = "Invalid token"
            return

        try:
            user_id = int(payload.get("sub"))
        except (TypeError, ValueError):
            g.auth_error = "Invalid token"
            return

        user = db.session.get(User, user_id)
        if user is None:
            logger.warning("Token for unknown user id=%s", user_id)
            g.auth_error = "User not found"
            return

        g.jwt_user_id = user.id
        g.current_user = user
