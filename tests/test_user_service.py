"""
User directory: listing, technician lookup, role management, and the
/api/v1/users endpoints.
"""

import pytest
from werkzeug.security import check_password_hash

from gearguard.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from gearguard.models.user import ROLE_MANAGER, ROLE_TECHNICIAN, ROLE_USER
from gearguard.services.user_service import UserService

BASE = "/api/v1/users"


@pytest.fixture()
def service(store):
    return UserService(store)


class TestCreateUser:
    def test_password_hashed_and_email_normalised(self, service):
        user = service.create_user(email=" Lisa@GearGuard.com ", name="Lisa Park", password="password123")
        assert user.email == "lisa@gearguard.com"
        assert user.role == ROLE_USER
        assert check_password_hash(user.password_hash, "password123")
        assert "password_hash" not in user.to_dict()

    def test_duplicate_email(self, service, requester):
        with pytest.raises(ConflictError):
            service.create_user(email=requester.email, name="Again")

    def test_non_string_name_rejected(self, service):
        with pytest.raises(ValidationError):
            service.create_user(email="x@gearguard.com", name=123)

    def test_unhashable_role_rejected(self, service):
        with pytest.raises(ValidationError):
            service.create_user(email="x@gearguard.com", name="X", role=["MANAGER"])

    def test_team_only_kept_for_technicians(self, service, team):
        user = service.create_user(email="x@gearguard.com", name="X", role=ROLE_USER, team_id=team.id)
        assert user.team_id is None


class TestDirectory:
    def test_list_filters(self, service, manager, requester, technician, make_user, other_team):
        make_user(ROLE_TECHNICIAN, team=other_team, name="Emma Wilson")
        assert {u.name for u in service.list_users(role=ROLE_TECHNICIAN)} == {"Mike Chen", "Emma Wilson"}
        assert [u.name for u in service.list_technicians(team_id=other_team.id)] == ["Emma Wilson"]
        assert len(service.list_users()) == 4

    def test_invalid_role_filter(self, service):
        with pytest.raises(ValidationError):
            service.list_users(role="ADMIN")

    def test_get_user(self, service, requester):
        assert service.get_user(requester.id).name == "Bob Anderson"
        with pytest.raises(NotFoundError):
            service.get_user(999)


class TestUpdateRole:
    def test_promote_to_technician_needs_team(self, service, actor, manager, requester, team):
        with pytest.raises(ValidationError):
            service.update_role(requester.id, ROLE_TECHNICIAN, actor(manager))
        user = service.update_role(requester.id, ROLE_TECHNICIAN, actor(manager), team_id=team.id)
        assert user.role == ROLE_TECHNICIAN
        assert user.team_id == team.id

    def test_unknown_team(self, service, actor, manager, requester):
        with pytest.raises(NotFoundError):
            service.update_role(requester.id, ROLE_TECHNICIAN, actor(manager), team_id=999)

    def test_demotion_clears_team(self, service, actor, manager, technician):
        user = service.update_role(technician.id, ROLE_USER, actor(manager))
        assert user.team_id is None

    def test_cannot_change_own_role(self, service, actor, manager):
        with pytest.raises(ValidationError):
            service.update_role(manager.id, ROLE_USER, actor(manager))

    def test_manager_only(self, service, actor, technician, requester):
        with pytest.raises(AuthorizationError):
            service.update_role(requester.id, ROLE_MANAGER, actor(technician))

    def test_invalid_role(self, service, actor, manager, requester):
        with pytest.raises(ValidationError):
            service.update_role(requester.id, "ROOT", actor(manager))
        with pytest.raises(ValidationError):
            service.update_role(requester.id, [ROLE_MANAGER], actor(manager))


class TestUserApi:
    def test_endpoints(self, client, manager, requester, technician, team, auth_headers):
        headers = auth_headers(requester)
        assert client.get(BASE, headers=headers).get_json()["total"] == 3
        techs = client.get(f"{BASE}/technicians?team_id={team.id}", headers=headers).get_json()
        assert [t["name"] for t in techs["items"]] == ["Mike Chen"]
        assert client.get(f"{BASE}/{technician.id}", headers=headers).get_json()["team"]["name"] == "Mechanics"

        res = client.patch(f"{BASE}/{requester.id}/role", json={"role": ROLE_MANAGER}, headers=headers)
        assert res.status_code == 403

        res = client.patch(f"{BASE}/{requester.id}/role", json={"role": ROLE_MANAGER},
                           headers=auth_headers(manager))
        assert res.status_code == 200
        assert res.get_json()["role"] == ROLE_MANAGER
