"""
GearGuard — Maintenance Tracking Service
Equipment domain model.

``is_scrapped`` is monotonic: once an asset is scrapped it never comes back.
The validator below enforces that at attribute-set time so no service path
can resurrect a scrapped asset.
"""

from sqlalchemy.orm import validates

from gearguard.core.exceptions import ConflictError
from gearguard.models import db, iso, utcnow
from gearguard.models.maintenance import OPEN_STAGES


class Equipment(db.Model):
    """A maintained asset, owned by exactly one maintenance team."""

    __tablename__ = "equipment"
    __table_args__ = (
        db.Index("idx_equipment_team", "team_id"),
        db.Index("idx_equipment_department", "department"),
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    serial_number = db.Column(db.String(100), nullable=False, unique=True)
    department = db.Column(db.String(100), nullable=False)
    assigned_employee = db.Column(db.String(150), nullable=True)
    purchase_date = db.Column(db.Date, nullable=True)
    warranty_end_date = db.Column(db.Date, nullable=True)
    location = db.Column(db.String(200), nullable=False)
    team_id = db.Column(
        db.Integer,
        db.ForeignKey("maintenance_teams.id", ondelete="RESTRICT"),
        nullable=False,
    )
    is_scrapped = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
    )

    team = db.relationship("MaintenanceTeam", back_populates="equipment")
    requests = db.relationship(
        "MaintenanceRequest",
        back_populates="equipment",
        lazy="select",
        order_by="MaintenanceRequest.created_at.desc()",
    )

    @validates("is_scrapped")
    def _validate_is_scrapped(self, key, value):
        if self.is_scrapped and not value:
            raise ConflictError(f"Equipment {self.serial_number} is scrapped and cannot be restored")
        return bool(value)

    @property
    def open_requests_count(self) -> int:
        return sum(1 for r in self.requests if r.stage in OPEN_STAGES)

    def to_dict(self, include_requests=False):
        result = {
            "id": self.id,
            "name": self.name,
            "serial_number": self.serial_number,
            "department": self.department,
            "assigned_employee": self.assigned_employee,
            "purchase_date": iso(self.purchase_date),
            "warranty_end_date": iso(self.warranty_end_date),
            "location": self.location,
            "team_id": self.team_id,
            "team": self.team.to_summary() if self.team else None,
            "is_scrapped": self.is_scrapped,
            "open_requests_count": self.open_requests_count,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }
        if include_requests:
            result["requests"] = [r.to_summary() for r in self.requests]
        return result

    def to_summary(self):
        return {
            "id": self.id,
            "name": self.name,
            "serial_number": self.serial_number,
            "department": self.department,
            "location": self.location,
            "is_scrapped": self.is_scrapped,
        }

    def __repr__(self):
        return f"<Equipment {self.id}: {self.serial_number}>"
