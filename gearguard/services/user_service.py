"""
User directory service: listing, technician lookup and role management.

Registration and login are handled outside this service; ``create_user`` only
exists for seeding and local tooling.
"""

import logging

from werkzeug.security import generate_password_hash

from gearguard.core.exceptions import ConflictError, NotFoundError, ValidationError
from gearguard.models.team import MaintenanceTeam
from gearguard.models.user import ROLE_TECHNICIAN, ROLE_USER, VALID_ROLES, User
from gearguard.services.helpers.coerce import parse_int, parse_str
from gearguard.services.permission import ActingUser, can_manage

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, store):
        self._store = store

    def _require(self, user_id) -> User:
        user = self._store.get(User, parse_int(user_id, "user_id"))
        if user is None:
            raise NotFoundError(resource="User", resource_id=user_id)
        return user

    def list_users(self, *, role=None, team_id=None) -> list[User]:
        if role and (not isinstance(role, str) or role not in VALID_ROLES):
            raise ValidationError("Invalid role", details={"role": "invalid"})
        return self._store.query_users(role=role, team_id=parse_int(team_id, "team_id"))

    def list_technicians(self, *, team_id=None) -> list[User]:
        return self._store.query_users(role=ROLE_TECHNICIAN, team_id=parse_int(team_id, "team_id"))

    def get_user(self, user_id) -> User:
        return self._require(user_id)

    def create_user(self, *, email, name, password=None, role=ROLE_USER, team_id=None, avatar=None) -> User:
        email = parse_str(email, "email")
        name = parse_str(name, "name")
        if not email or not name:
            raise ValidationError("email and name are required")
        if not isinstance(role, str) or role not in VALID_ROLES:
            raise ValidationError("Invalid role", details={"role": "invalid"})
        email = email.lower()

        with self._store.unit_of_work():
            if self._store.find_user_by_email(email) is not None:
                raise ConflictError.duplicate("User", "email", email)
            if team_id is not None and self._store.get(MaintenanceTeam, team_id) is None:
                raise NotFoundError(resource="MaintenanceTeam", resource_id=team_id)
            user = self._store.add(User(
                email=email,
                name=name,
                password_hash=generate_password_hash(password) if password else None,
                role=role,
                team_id=team_id if role == ROLE_TECHNICIAN else None,
                avatar=avatar,
            ))
            self._store.flush()

        logger.info("User %s created role=%s", user.id, role)
        return user

    def update_role(self, user_id, role, actor: ActingUser, team_id=None) -> User:
        """Change a user's role; technicians keep or receive a team, others lose theirs."""
        can_manage(actor, "user roles").enforce("user.update_role")
        if not isinstance(role, str) or role not in VALID_ROLES:
            raise ValidationError("Invalid role", details={"role": "invalid"})

        with self._store.unit_of_work():
            user = self._require(user_id)
            if user.id == actor.id:
                raise ValidationError("Cannot change your own role", details={"role": "self"})

            team_pk = parse_int(team_id, "team_id")
            if role == ROLE_TECHNICIAN:
                team_pk = team_pk or user.team_id
                if team_pk is None:
                    raise ValidationError(
                        "Team is required for technicians",
                        details={"team_id": "required"},
                    )
                if self._store.get(MaintenanceTeam, team_pk) is None:
                    raise NotFoundError(resource="MaintenanceTeam", resource_id=team_pk)
            else:
                team_pk = None

            user.role = role
            user.team_id = team_pk

        logger.info("User %s role set to %s team=%s", user.id, role, team_pk,
                    extra={"user_id": actor.id})
        return user
