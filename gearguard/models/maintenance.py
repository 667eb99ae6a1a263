"""
GearGuard — Maintenance Tracking Service
Maintenance request domain model.

Models:
    - MaintenanceRequest: corrective or preventive work order against one asset.
    - RequestActivity: append-only, structured audit trail of a request.

Stage machine (STAGE_TRANSITIONS):
    NEW          -> NEW | IN_PROGRESS | REPAIRED | SCRAP
    IN_PROGRESS  -> IN_PROGRESS | REPAIRED | SCRAP
    REPAIRED     -> REPAIRED            (terminal)
    SCRAP        -> SCRAP               (terminal)

``notes`` is the rendered, human-readable log ("[timestamp] message" per
line); RequestActivity keeps the same entries with actor and action.
"""

from datetime import UTC, datetime, timedelta

from gearguard.models import as_utc, db, iso, utcnow

# ── Constants ────────────────────────────────────────────────────────────────

STAGE_NEW = "NEW"
STAGE_IN_PROGRESS = "IN_PROGRESS"
STAGE_REPAIRED = "REPAIRED"
STAGE_SCRAP = "SCRAP"

STAGES = (STAGE_NEW, STAGE_IN_PROGRESS, STAGE_REPAIRED, STAGE_SCRAP)
OPEN_STAGES = frozenset({STAGE_NEW, STAGE_IN_PROGRESS})
TERMINAL_STAGES = frozenset({STAGE_REPAIRED, STAGE_SCRAP})

TYPE_CORRECTIVE = "CORRECTIVE"
TYPE_PREVENTIVE = "PREVENTIVE"
REQUEST_TYPES = frozenset({TYPE_CORRECTIVE, TYPE_PREVENTIVE})

PRIORITY_LABELS = {1: "Low", 2: "Medium", 3: "High", 4: "Critical"}
DEFAULT_PRIORITY = 1

OVERDUE_AFTER = timedelta(days=2)

STAGE_TRANSITIONS = {
    STAGE_NEW: [STAGE_NEW, STAGE_IN_PROGRESS, STAGE_REPAIRED, STAGE_SCRAP],
    STAGE_IN_PROGRESS: [STAGE_IN_PROGRESS, STAGE_REPAIRED, STAGE_SCRAP],
    STAGE_REPAIRED: [STAGE_REPAIRED],
    STAGE_SCRAP: [STAGE_SCRAP],
}

ACTIVITY_ACTIONS = {
    "request.create",
    "request.stage",
    "request.scrap",
    "request.assign",
    "request.unassign",
    "request.complete",
    "request.update",
}


def validate_stage_transition(old_stage, new_stage):
    """Check if transition from old_stage to new_stage is allowed."""
    return new_stage in STAGE_TRANSITIONS.get(old_stage, [])


def is_overdue(stage: str, created_at: datetime | None, now: datetime) -> bool:
    """Open requests older than two days are overdue; terminal ones never are."""
    if stage not in OPEN_STAGES or created_at is None:
        return False
    return as_utc(now) - as_utc(created_at) > OVERDUE_AFTER


_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def list_order_key(request):
    """Sort key for (priority desc, created_at desc); use with reverse=True."""
    return (request.priority or 0, as_utc(request.created_at) or _EPOCH, request.id or 0)


def render_log_line(message: str, at: datetime) -> str:
    stamp = as_utc(at).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return f"[{stamp}] {message}"


# ── Models ───────────────────────────────────────────────────────────────────


class MaintenanceRequest(db.Model):
    """Maintenance work order. ``team_id`` is copied from the equipment at creation."""

    __tablename__ = "maintenance_requests"
    __table_args__ = (
        db.Index("idx_request_stage", "stage"),
        db.Index("idx_request_team_stage", "team_id", "stage"),
        db.Index("idx_request_scheduled", "scheduled_date"),
    )

    id = db.Column(db.Integer, primary_key=True)
    subject = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    request_type = db.Column(
        db.String(20), nullable=False, comment="CORRECTIVE | PREVENTIVE",
    )
    priority = db.Column(
        db.Integer, nullable=False, default=DEFAULT_PRIORITY,
        comment="1=Low 2=Medium 3=High 4=Critical",
    )
    stage = db.Column(
        db.String(20), nullable=False, default=STAGE_NEW,
        comment="NEW | IN_PROGRESS | REPAIRED | SCRAP",
    )
    equipment_id = db.Column(
        db.Integer,
        db.ForeignKey("equipment.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    team_id = db.Column(
        db.Integer,
        db.ForeignKey("maintenance_teams.id", ondelete="RESTRICT"),
        nullable=False,
    )
    created_by_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    technician_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    scheduled_date = db.Column(db.Date, nullable=True)
    duration = db.Column(db.Float, nullable=True, comment="Logged hours")
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
    )

    # Relationships
    equipment = db.relationship("Equipment", back_populates="requests")
    team = db.relationship("MaintenanceTeam", back_populates="requests")
    technician = db.relationship("User", foreign_keys=[technician_id])
    created_by = db.relationship("User", foreign_keys=[created_by_id])
    activities = db.relationship(
        "RequestActivity",
        back_populates="request",
        lazy="select",
        cascade="all, delete-orphan",
        order_by="RequestActivity.id",
    )

    @property
    def is_terminal(self) -> bool:
        return self.stage in TERMINAL_STAGES

    @property
    def priority_label(self) -> str | None:
        return PRIORITY_LABELS.get(self.priority)

    def overdue(self, now: datetime | None = None) -> bool:
        return is_overdue(self.stage, self.created_at, now or utcnow())

    def append_note(self, message: str, at: datetime) -> None:
        line = render_log_line(message, at)
        self.notes = f"{self.notes or ''}\n{line}".strip()

    def to_dict(self, now=None, include_activities=False):
        result = {
            "id": self.id,
            "subject": self.subject,
            "description": self.description,
            "request_type": self.request_type,
            "priority": self.priority,
            "priority_label": self.priority_label,
            "stage": self.stage,
            "equipment_id": self.equipment_id,
            "equipment": self.equipment.to_summary() if self.equipment else None,
            "team_id": self.team_id,
            "team": self.team.to_summary() if self.team else None,
            "created_by_id": self.created_by_id,
            "created_by": self.created_by.to_summary() if self.created_by else None,
            "technician_id": self.technician_id,
            "technician": self.technician.to_summary() if self.technician else None,
            "scheduled_date": iso(self.scheduled_date),
            "duration": self.duration,
            "notes": self.notes,
            "is_overdue": self.overdue(now),
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }
        if include_activities:
            result["activities"] = [a.to_dict() for a in self.activities]
        return result

    def to_summary(self):
        return {
            "id": self.id,
            "subject": self.subject,
            "request_type": self.request_type,
            "priority": self.priority,
            "stage": self.stage,
            "scheduled_date": iso(self.scheduled_date),
            "created_at": iso(self.created_at),
        }

    def __repr__(self):
        return f"<MaintenanceRequest {self.id}: {self.stage}>"


class RequestActivity(db.Model):
    """One immutable audit entry of a request (who did what, when)."""

    __tablename__ = "request_activities"
    __table_args__ = (
        db.Index("idx_activity_request", "request_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(
        db.Integer,
        db.ForeignKey("maintenance_requests.id", ondelete="CASCADE"),
        nullable=False,
    )
    actor_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    actor_name = db.Column(db.String(150), nullable=False, default="system")
    action = db.Column(db.String(40), nullable=False, comment="request.stage | request.scrap | …")
    message = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    request = db.relationship("MaintenanceRequest", back_populates="activities")

    def to_dict(self):
        return {
            "id": self.id,
            "request_id": self.request_id,
            "actor_id": self.actor_id,
            "actor_name": self.actor_name,
            "action": self.action,
            "message": self.message,
            "created_at": iso(self.created_at),
        }

    def __repr__(self):
        return f"<RequestActivity {self.id}: {self.action} on request/{self.request_id}>"
