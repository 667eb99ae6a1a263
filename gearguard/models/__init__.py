"""
GearGuard — Maintenance Tracking Service
SQLAlchemy extension instance shared by every model module.

Usage:
    from gearguard.models import db
"""

from datetime import UTC, datetime

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def iso(value) -> str | None:
    return value.isoformat() if value else None
