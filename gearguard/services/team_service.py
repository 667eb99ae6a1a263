"""
Maintenance team service: team CRUD and technician membership.
"""

import logging

from gearguard.core.exceptions import ConflictError, NotFoundError, ValidationError
from gearguard.models.team import MaintenanceTeam
from gearguard.models.user import User
from gearguard.services.helpers.coerce import parse_int, parse_str
from gearguard.services.permission import ActingUser, can_manage

logger = logging.getLogger(__name__)


def _clean_name(data: dict) -> str:
    name = parse_str(data.get("name"), "name")
    if not name:
        raise ValidationError("Team name is required", details={"name": "required"})
    return name


class TeamService:
    def __init__(self, store):
        self._store = store

    def _require(self, team_id) -> MaintenanceTeam:
        team = self._store.get(MaintenanceTeam, parse_int(team_id, "team_id"))
        if team is None:
            raise NotFoundError(resource="MaintenanceTeam", resource_id=team_id)
        return team

    def list_teams(self) -> list[MaintenanceTeam]:
        return self._store.query_teams()

    def get_team(self, team_id) -> MaintenanceTeam:
        return self._require(team_id)

    def create_team(self, data: dict, actor: ActingUser) -> MaintenanceTeam:
        can_manage(actor, "teams").enforce("team.create")
        name = _clean_name(data)

        with self._store.unit_of_work():
            if self._store.find_team_by_name(name) is not None:
                raise ConflictError.duplicate("MaintenanceTeam", "name", name)
            team = self._store.add(MaintenanceTeam(name=name))
            self._store.flush()

        logger.info("Team %s created name=%s", team.id, name, extra={"user_id": actor.id})
        return team

    def update_team(self, team_id, data: dict, actor: ActingUser) -> MaintenanceTeam:
        can_manage(actor, "teams").enforce("team.update")
        name = _clean_name(data)

        with self._store.unit_of_work():
            team = self._require(team_id)
            other = self._store.find_team_by_name(name)
            if other is not None and other.id != team.id:
                raise ConflictError.duplicate("MaintenanceTeam", "name", name)
            team.name = name

        logger.info("Team %s renamed to %s", team.id, name, extra={"user_id": actor.id})
        return team

    def delete_team(self, team_id, actor: ActingUser) -> None:
        can_manage(actor, "teams").enforce("team.delete")

        with self._store.unit_of_work():
            team = self._require(team_id)
            if team.members or team.equipment:
                raise ConflictError(
                    "Cannot delete team with members or assigned equipment",
                    resource="MaintenanceTeam",
                )
            if team.requests:
                raise ConflictError(
                    "Cannot delete team with maintenance history",
                    resource="MaintenanceTeam",
                )
            self._store.delete(team)

        logger.info("Team %s deleted", team_id, extra={"user_id": actor.id})

    def add_member(self, team_id, user_id, actor: ActingUser) -> User:
        """Move a technician into this team (a technician belongs to one team)."""
        can_manage(actor, "team members").enforce("team.add_member")
        if user_id in (None, ""):
            raise ValidationError("user_id is required", details={"user_id": "required"})

        with self._store.unit_of_work():
            team = self._require(team_id)
            user = self._store.get(User, parse_int(user_id, "user_id"))
            if user is None:
                raise NotFoundError(resource="User", resource_id=user_id)
            if not user.is_technician:
                raise ValidationError(
                    "Only technicians can be added to maintenance teams",
                    details={"user_id": "not a technician"},
                )
            user.team_id = team.id

        logger.info("User %s joined team %s", user.id, team.id, extra={"user_id": actor.id})
        return user

    def remove_member(self, team_id, user_id, actor: ActingUser) -> None:
        can_manage(actor, "team members").enforce("team.remove_member")

        with self._store.unit_of_work():
            user = self._store.get(User, parse_int(user_id, "user_id"))
            if user is None or user.team_id != parse_int(team_id, "team_id"):
                raise NotFoundError(resource="TeamMember", resource_id=user_id)
            user.team_id = None

        logger.info("User %s left team %s", user_id, team_id, extra={"user_id": actor.id})
