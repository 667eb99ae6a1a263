"""
Equipment registry service.

Managers register and edit assets; scrapped assets are frozen and assets with
maintenance history are never hard-deleted (scrap them instead).
"""

import logging

from gearguard.core.exceptions import ConflictError, NotFoundError, ValidationError
from gearguard.models.equipment import Equipment
from gearguard.models.team import MaintenanceTeam
from gearguard.services.helpers.coerce import parse_bool, parse_date, parse_int, parse_str
from gearguard.services.permission import ActingUser, can_manage

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("name", "serial_number", "department", "location", "team_id", "purchase_date")
_TEXT_FIELDS = ("name", "serial_number", "department", "location", "assigned_employee")


class EquipmentService:
    def __init__(self, store):
        self._store = store

    def _require(self, equipment_id) -> Equipment:
        equipment = self._store.get(Equipment, parse_int(equipment_id, "equipment_id"))
        if equipment is None:
            raise NotFoundError(resource="Equipment", resource_id=equipment_id)
        return equipment

    def _require_team(self, team_id) -> MaintenanceTeam:
        team = self._store.get(MaintenanceTeam, parse_int(team_id, "team_id"))
        if team is None:
            raise NotFoundError(resource="MaintenanceTeam", resource_id=team_id)
        return team

    def list_equipment(self, *, department=None, team_id=None, is_scrapped=None, search=None):
        return self._store.query_equipment(
            department=department or None,
            team_id=parse_int(team_id, "team_id"),
            is_scrapped=parse_bool(is_scrapped),
            search=(search or "").strip() or None,
        )

    def get_equipment(self, equipment_id) -> Equipment:
        return self._require(equipment_id)

    def list_departments(self) -> list[str]:
        return self._store.list_departments()

    def create_equipment(self, data: dict, actor: ActingUser) -> Equipment:
        """Register an asset. Serial numbers are unique across the registry."""
        can_manage(actor, "equipment").enforce("equipment.create")

        text = {f: parse_str(data.get(f), f) for f in _TEXT_FIELDS}
        missing = [f for f in _REQUIRED_FIELDS if not text.get(f, data.get(f))]
        if missing:
            raise ValidationError(
                "name, serial_number, department, location, team_id and purchase_date are required",
                details={f: "required" for f in missing},
            )
        serial = text["serial_number"]
        purchase_date = parse_date(data["purchase_date"], "purchase_date")
        warranty_end = parse_date(data.get("warranty_end_date"), "warranty_end_date")

        with self._store.unit_of_work():
            if self._store.find_equipment_by_serial(serial) is not None:
                raise ConflictError.duplicate("Equipment", "serial_number", serial)
            team = self._require_team(data["team_id"])

            equipment = Equipment(
                name=text["name"],
                serial_number=serial,
                department=text["department"],
                assigned_employee=text["assigned_employee"],
                purchase_date=purchase_date,
                warranty_end_date=warranty_end,
                location=text["location"],
                team_id=team.id,
                is_scrapped=False,
            )
            self._store.add(equipment)
            self._store.flush()

        logger.info("Equipment %s registered serial=%s team=%s", equipment.id, serial, team.id,
                    extra={"user_id": actor.id})
        return equipment

    def update_equipment(self, equipment_id, data: dict, actor: ActingUser) -> Equipment:
        can_manage(actor, "equipment").enforce("equipment.update")

        with self._store.unit_of_work():
            equipment = self._require(equipment_id)
            if equipment.is_scrapped:
                raise ConflictError(
                    "Cannot update scrapped equipment",
                    resource="Equipment",
                    field="is_scrapped",
                )
            for field in ("name", "department", "location"):
                value = parse_str(data.get(field), field)
                if value:
                    setattr(equipment, field, value)
            if "assigned_employee" in data:
                equipment.assigned_employee = parse_str(data["assigned_employee"], "assigned_employee")
            if "warranty_end_date" in data:
                equipment.warranty_end_date = parse_date(data["warranty_end_date"], "warranty_end_date")
            if data.get("team_id"):
                equipment.team_id = self._require_team(data["team_id"]).id

        logger.info("Equipment %s updated", equipment.id, extra={"user_id": actor.id})
        return equipment

    def delete_equipment(self, equipment_id, actor: ActingUser) -> None:
        can_manage(actor, "equipment").enforce("equipment.delete")

        with self._store.unit_of_work():
            equipment = self._require(equipment_id)
            if self._store.count_requests(equipment_id=equipment.id) > 0:
                raise ConflictError(
                    "Cannot delete equipment with maintenance history. "
                    "Consider marking it as scrapped instead.",
                    resource="Equipment",
                )
            self._store.delete(equipment)

        logger.info("Equipment %s deleted", equipment_id, extra={"user_id": actor.id})
