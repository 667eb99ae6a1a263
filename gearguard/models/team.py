"""
GearGuard — Maintenance Tracking Service
Team domain model.

A maintenance team owns equipment and groups the technicians that are
allowed to work on that equipment's requests.
"""

from gearguard.models import db, iso, utcnow


class MaintenanceTeam(db.Model):
    """Group of technicians responsible for a set of equipment."""

    __tablename__ = "maintenance_teams"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    # Relationships
    members = db.relationship("User", back_populates="team", lazy="select")
    equipment = db.relationship("Equipment", back_populates="team", lazy="select")
    requests = db.relationship("MaintenanceRequest", back_populates="team", lazy="select")

    def to_dict(self, include_children=False):
        result = {
            "id": self.id,
            "name": self.name,
            "created_at": iso(self.created_at),
            "member_count": len(self.members),
            "equipment_count": len(self.equipment),
            "request_count": len(self.requests),
        }
        if include_children:
            result["members"] = [m.to_summary() for m in self.members]
            result["equipment"] = [e.to_summary() for e in self.equipment]
        return result

    def to_summary(self):
        return {"id": self.id, "name": self.name}

    def __repr__(self):
        return f"<MaintenanceTeam {self.id}: {self.name}>"
