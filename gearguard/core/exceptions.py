"""
Service-wide exception hierarchy.

Every service raises one of these four kinds; blueprints translate them to
HTTP status codes in one place (gearguard.blueprints.register_error_handlers).

    ValidationError     malformed or missing input            -> 422
    NotFoundError       referenced entity absent              -> 404
    AuthorizationError  role/team does not allow the action   -> 403
    ConflictError       current state precludes the action    -> 409

Usage:
    from gearguard.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Equipment", resource_id=42)
    raise ValidationError("subject is required", details={"subject": "missing"})
"""


class NotFoundError(Exception):
    """Raised when a referenced entity does not exist.

    Args:
        resource: Human-readable entity name (e.g. "Equipment", "MaintenanceRequest").
        resource_id: The PK that was looked up.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is missing or malformed.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown. Keys are field names.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class AuthorizationError(Exception):
    """Raised when the acting user's role or team does not permit an action.

    Args:
        reason: Why the action was denied (returned to the caller).
        action: Operation name, e.g. "request.set_stage".
    """

    def __init__(self, reason: str, action: str | None = None) -> None:
        self.reason = reason
        self.action = action
        super().__init__(reason)


class ConflictError(Exception):
    """Raised when the current state of an entity precludes the operation.

    Covers both state conflicts (scrapped equipment, terminal request) and
    duplicate unique values; use ``ConflictError.duplicate`` for the latter.
    """

    def __init__(
        self,
        message: str,
        resource: str | None = None,
        field: str | None = None,
        value: str | None = None,
    ) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(message)

    @classmethod
    def duplicate(cls, resource: str, field: str, value) -> "ConflictError":
        return cls(
            f"{resource} with {field}={value!r} already exists",
            resource=resource,
            field=field,
            value=value,
        )
