"""
Input coercion helpers shared by services and blueprints.

Each helper returns ``None`` for absent/blank input and raises
ValidationError (naming the field) for values that cannot be converted.
"""

from datetime import date, datetime

from gearguard.core.exceptions import ValidationError


def parse_date(value, field: str = "date") -> date | None:
    """Convert an ISO date/datetime string to ``date``; pass through None/date."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        for fmt in ("%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%dT%H:%M"):
            try:
                return datetime.strptime(value, fmt).date()
            except ValueError:
                continue
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        except ValueError:
            pass
    raise ValidationError(f"{field} must be an ISO date", details={field: "invalid date"})


def parse_str(value, field: str) -> str | None:
    """Strip a text field; blank becomes None, non-strings are rejected."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", details={field: "invalid string"})
    return value.strip() or None


def parse_int(value, field: str) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer", details={field: "invalid integer"})
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer", details={field: "invalid integer"}) from None


def parse_float(value, field: str) -> float | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", details={field: "invalid number"})
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number", details={field: "invalid number"}) from None


def parse_bool(value) -> bool | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")
