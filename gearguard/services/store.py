"""
Persistence collaborator for the maintenance services.

Services receive a store instance explicitly (constructor argument) instead
of reaching for a module-level session, so the hosting application decides
which session/engine backs them and tests can hand in their own.

The store offers:
  - fetch-by-id for every entity (``get``), optionally row-locked
  - fetch-technician-by-id-and-team
  - add / delete
  - ``unit_of_work()``: commit everything done inside the block as one
    transaction, or roll all of it back on any exception
  - bulk request query with stage/team/type/date-range predicates

Usage:
    store = SqlAlchemyStore(db.session)
    with store.unit_of_work():
        req = store.get(MaintenanceRequest, 7, for_update=True)
        ...
"""

import logging
from contextlib import contextmanager
from datetime import date, datetime

from sqlalchemy import func, or_, select

from gearguard.models.equipment import Equipment
from gearguard.models.maintenance import MaintenanceRequest
from gearguard.models.team import MaintenanceTeam
from gearguard.models.user import ROLE_TECHNICIAN, User

logger = logging.getLogger(__name__)


class SqlAlchemyStore:
    """SQLAlchemy-session backed implementation of the persistence contract."""

    def __init__(self, session):
        self.session = session

    # ── Transactions ─────────────────────────────────────────────────────

    @contextmanager
    def unit_of_work(self):
        """Commit on success, roll back on any exception, then re-raise."""
        try:
            yield self
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def add(self, entity):
        self.session.add(entity)
        return entity

    def delete(self, entity):
        self.session.delete(entity)

    def flush(self):
        self.session.flush()

    # ── Single-entity lookups ────────────────────────────────────────────

    def get(self, model, pk, *, for_update: bool = False):
        """Fetch by PK or return None. ``for_update`` takes a row lock where supported."""
        if pk is None:
            return None
        return self.session.get(model, pk, with_for_update=for_update or None)

    def get_team_technician(self, user_id, team_id):
        """Return the user only if it is a TECHNICIAN of ``team_id``."""
        if user_id is None or team_id is None:
            return None
        stmt = select(User).where(
            User.id == user_id,
            User.team_id == team_id,
            User.role == ROLE_TECHNICIAN,
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def find_equipment_by_serial(self, serial_number: str):
        stmt = select(Equipment).where(Equipment.serial_number == serial_number)
        return self.session.execute(stmt).scalar_one_or_none()

    def find_team_by_name(self, name: str):
        stmt = select(MaintenanceTeam).where(MaintenanceTeam.name == name)
        return self.session.execute(stmt).scalar_one_or_none()

    def find_user_by_email(self, email: str):
        stmt = select(User).where(User.email == email)
        return self.session.execute(stmt).scalar_one_or_none()

    def find_request(self, subject: str, equipment_id: int):
        stmt = select(MaintenanceRequest).where(
            MaintenanceRequest.subject == subject,
            MaintenanceRequest.equipment_id == equipment_id,
        )
        return self.session.execute(stmt).scalars().first()

    # ── Bulk queries ─────────────────────────────────────────────────────

    def query_requests(
        self,
        *,
        stages=None,
        team_id: int | None = None,
        request_type: str | None = None,
        equipment_id: int | None = None,
        technician_id: int | None = None,
        priority: int | None = None,
        scheduled_from: date | None = None,
        scheduled_to: date | None = None,
        scheduled_only: bool = False,
        created_before: datetime | None = None,
    ) -> list[MaintenanceRequest]:
        """Requests matching every supplied predicate, newest-highest-priority first."""
        stmt = select(MaintenanceRequest)
        if stages:
            stmt = stmt.where(MaintenanceRequest.stage.in_(list(stages)))
        if team_id is not None:
            stmt = stmt.where(MaintenanceRequest.team_id == team_id)
        if request_type:
            stmt = stmt.where(MaintenanceRequest.request_type == request_type)
        if equipment_id is not None:
            stmt = stmt.where(MaintenanceRequest.equipment_id == equipment_id)
        if technician_id is not None:
            stmt = stmt.where(MaintenanceRequest.technician_id == technician_id)
        if priority is not None:
            stmt = stmt.where(MaintenanceRequest.priority == priority)
        if scheduled_only:
            stmt = stmt.where(MaintenanceRequest.scheduled_date.is_not(None))
        if scheduled_from is not None:
            stmt = stmt.where(MaintenanceRequest.scheduled_date >= scheduled_from)
        if scheduled_to is not None:
            stmt = stmt.where(MaintenanceRequest.scheduled_date <= scheduled_to)
        if created_before is not None:
            stmt = stmt.where(MaintenanceRequest.created_at < created_before)
        stmt = stmt.order_by(
            MaintenanceRequest.priority.desc(),
            MaintenanceRequest.created_at.desc(),
            MaintenanceRequest.id.desc(),
        )
        return list(self.session.execute(stmt).scalars())

    def count_requests(self, **filters) -> int:
        stmt = select(func.count(MaintenanceRequest.id))
        for field, value in filters.items():
            stmt = stmt.where(getattr(MaintenanceRequest, field) == value)
        return self.session.execute(stmt).scalar_one()

    def query_equipment(
        self,
        *,
        department: str | None = None,
        team_id: int | None = None,
        is_scrapped: bool | None = None,
        search: str | None = None,
    ) -> list[Equipment]:
        stmt = select(Equipment)
        if department:
            stmt = stmt.where(Equipment.department == department)
        if team_id is not None:
            stmt = stmt.where(Equipment.team_id == team_id)
        if is_scrapped is not None:
            stmt = stmt.where(Equipment.is_scrapped.is_(is_scrapped))
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(or_(
                func.lower(Equipment.name).like(pattern),
                func.lower(Equipment.serial_number).like(pattern),
                func.lower(Equipment.assigned_employee).like(pattern),
            ))
        stmt = stmt.order_by(Equipment.created_at.desc(), Equipment.id.desc())
        return list(self.session.execute(stmt).scalars())

    def list_departments(self) -> list[str]:
        stmt = select(Equipment.department).distinct().order_by(Equipment.department)
        return [row for row in self.session.execute(stmt).scalars() if row]

    def query_teams(self) -> list[MaintenanceTeam]:
        stmt = select(MaintenanceTeam).order_by(MaintenanceTeam.name)
        return list(self.session.execute(stmt).scalars())

    def query_users(self, *, role: str | None = None, team_id: int | None = None) -> list[User]:
        stmt = select(User)
        if role:
            stmt = stmt.where(User.role == role)
        if team_id is not None:
            stmt = stmt.where(User.team_id == team_id)
        stmt = stmt.order_by(User.name)
        return list(self.session.execute(stmt).scalars())
