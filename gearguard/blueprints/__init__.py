"""
Shared blueprint plumbing: typed-error → HTTP mapping and request helpers.

    ValidationError     → 422
    NotFoundError       → 404
    AuthorizationError  → 403
    ConflictError       → 409
    no valid bearer     → 401
"""

import logging

from flask import abort, g, jsonify, request

from gearguard.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from gearguard.models import db
from gearguard.services.permission import ActingUser
from gearguard.services.store import SqlAlchemyStore

logger = logging.getLogger(__name__)


def acting_user() -> ActingUser:
    """The authenticated caller, or abort with 401."""
    user = getattr(g, "current_user", None)
    if user is None:
        abort(401, description=getattr(g, "auth_error", None) or "Authentication required")
    return ActingUser.from_user(user)


def current_store() -> SqlAlchemyStore:
    return SqlAlchemyStore(db.session)


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def listing(items, **serialize_kwargs):
    """Standard list envelope: {"items": [...], "total": n}."""
    return jsonify({
        "items": [item.to_dict(**serialize_kwargs) for item in items],
        "total": len(items),
    })


def register_error_handlers(app):
    """Translate service exceptions into JSON responses for every blueprint."""

    @app.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return jsonify({"error": str(error), "details": error.details}), 422

    @app.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return jsonify({"error": str(error)}), 404

    @app.errorhandler(AuthorizationError)
    def _handle_forbidden(error: AuthorizationError):
        logger.info("Denied %s: %s", error.action, error.reason,
                    extra={"user_id": getattr(g, "jwt_user_id", None)})
        return jsonify({"error": error.reason, "action": error.action}), 403

    @app.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        body = {"error": str(error)}
        if error.field:
            body["field"] = error.field
        return jsonify(body), 409

    @app.errorhandler(401)
    def _handle_unauthorized(error):
        return jsonify({"error": error.description or "Authentication required"}), 401
