"""
Shared pytest fixtures for the GearGuard test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - store: SqlAlchemyStore bound to the test session
    - team / other_team, manager, requester, technician, equipment:
      pre-created rows for the common cast
    - make_team / make_user / make_equipment / make_request: ORM factories
      that bypass the services to set arbitrary starting states
    - auth_headers: Bearer headers for a given user

Factories commit rather than flush: service operations roll the session
back on failure, and fixture rows must survive that.
"""

from datetime import UTC, date, datetime

import pytest

from gearguard import create_app
from gearguard.models import db as _db
from gearguard.models.equipment import Equipment
from gearguard.models.maintenance import STAGE_NEW, TYPE_CORRECTIVE, MaintenanceRequest
from gearguard.models.team import MaintenanceTeam
from gearguard.models.user import ROLE_MANAGER, ROLE_TECHNICIAN, ROLE_USER, User
from gearguard.services.jwt_service import generate_access_token
from gearguard.services.permission import ActingUser
from gearguard.services.store import SqlAlchemyStore

# Fixed "now" for clock-dependent tests.
NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def store():
    return SqlAlchemyStore(_db.session)


# ── ORM factories ────────────────────────────────────────────────────────


@pytest.fixture()
def make_team():
    def _make(name="Mechanics"):
        team = MaintenanceTeam(name=name)
        _db.session.add(team)
        _db.session.commit()
        return team
    return _make


@pytest.fixture()
def make_user():
    counter = {"n": 0}

    def _make(role=ROLE_USER, team=None, name=None, email=None):
        counter["n"] += 1
        user = User(
            email=email or f"{role.lower()}{counter['n']}@gearguard.test",
            name=name or f"{role.title()} {counter['n']}",
            role=role,
            team_id=team.id if team is not None else None,
        )
        _db.session.add(user)
        _db.session.commit()
        return user
    return _make


@pytest.fixture()
def make_equipment():
    counter = {"n": 0}

    def _make(team, is_scrapped=False, name="Hydraulic Press", department="Manufacturing", **fields):
        counter["n"] += 1
        equipment = Equipment(
            name=name,
            serial_number=fields.pop("serial_number", f"EQ-{counter['n']:04d}"),
            department=department,
            location=fields.pop("location", "Building A - Floor 1"),
            purchase_date=fields.pop("purchase_date", date(2024, 1, 15)),
            team_id=team.id,
            is_scrapped=is_scrapped,
            **fields,
        )
        _db.session.add(equipment)
        _db.session.commit()
        return equipment
    return _make


@pytest.fixture()
def make_request():
    """Create a MaintenanceRequest at any stage (bypasses lifecycle rules)."""
    def _make(equipment, created_by, stage=STAGE_NEW, request_type=TYPE_CORRECTIVE,
              priority=1, technician=None, created_at=None, subject="Strange noise", **fields):
        req = MaintenanceRequest(
            subject=subject,
            request_type=request_type,
            priority=priority,
            stage=stage,
            equipment_id=equipment.id,
            team_id=equipment.team_id,
            created_by_id=created_by.id,
            technician_id=technician.id if technician is not None else None,
            created_at=created_at or NOW,
            **fields,
        )
        _db.session.add(req)
        _db.session.commit()
        return req
    return _make


# ── Common cast ──────────────────────────────────────────────────────────


@pytest.fixture()
def team(make_team):
    return make_team("Mechanics")


@pytest.fixture()
def other_team(make_team):
    return make_team("Electricians")


@pytest.fixture()
def manager(make_user):
    return make_user(ROLE_MANAGER, name="Sarah Johnson", email="manager@gearguard.test")


@pytest.fixture()
def requester(make_user):
    return make_user(ROLE_USER, name="Bob Anderson", email="user@gearguard.test")


@pytest.fixture()
def technician(make_user, team):
    return make_user(ROLE_TECHNICIAN, team=team, name="Mike Chen", email="mike@gearguard.test")


@pytest.fixture()
def equipment(make_equipment, team):
    return make_equipment(team, name="CNC Milling Machine", serial_number="CNC-2024-001")


@pytest.fixture()
def actor():
    """ActingUser for a persisted User."""
    return ActingUser.from_user


@pytest.fixture()
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {generate_access_token(user.id, user.role)}"}
    return _headers
