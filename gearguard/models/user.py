"""
GearGuard — Maintenance Tracking Service
User domain model.

Roles:
    USER        files corrective requests
    MANAGER     administers equipment/teams, files preventive requests
    TECHNICIAN  member of exactly one team, works that team's requests
"""

from gearguard.models import db, iso, utcnow

ROLE_USER = "USER"
ROLE_MANAGER = "MANAGER"
ROLE_TECHNICIAN = "TECHNICIAN"

VALID_ROLES = frozenset({ROLE_USER, ROLE_MANAGER, ROLE_TECHNICIAN})


class User(db.Model):
    """Application user. ``team_id`` only matters for technicians."""

    __tablename__ = "users"

    SENSITIVE_FIELDS: frozenset[str] = frozenset({"password_hash"})

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    name = db.Column(db.String(150), nullable=False)
    password_hash = db.Column(db.String(255), nullable=True)
    role = db.Column(
        db.String(20),
        nullable=False,
        default=ROLE_USER,
        comment="USER | MANAGER | TECHNICIAN",
    )
    team_id = db.Column(
        db.Integer,
        db.ForeignKey("maintenance_teams.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    avatar = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    team = db.relationship("MaintenanceTeam", back_populates="members")

    @property
    def is_technician(self) -> bool:
        return self.role == ROLE_TECHNICIAN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "team_id": self.team_id,
            "team": self.team.to_summary() if self.team else None,
            "avatar": self.avatar,
            "created_at": iso(self.created_at),
        }

    def to_summary(self) -> dict:
        return {"id": self.id, "name": self.name, "role": self.role, "avatar": self.avatar}

    def __repr__(self):
        return f"<User {self.id}: {self.email} ({self.role})>"
