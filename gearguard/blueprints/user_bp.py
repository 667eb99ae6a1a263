"""
User directory Blueprint.

Endpoints:
  GET    /api/v1/users                 list (role, team_id)
  GET    /api/v1/users/technicians     technicians (team_id)
  GET    /api/v1/users/<id>            detail
  PATCH  /api/v1/users/<id>/role       change role  {"role": ..., "team_id": ...}
"""

from flask import Blueprint, jsonify, request

from gearguard.blueprints import acting_user, current_store, json_body, listing
from gearguard.services.user_service import UserService

user_bp = Blueprint("users", __name__, url_prefix="/api/v1/users")


@user_bp.route("", methods=["GET"])
def list_users():
    acting_user()
    items = UserService(current_store()).list_users(
        role=request.args.get("role"), team_id=request.args.get("team_id"),
    )
    return listing(items)


@user_bp.route("/technicians", methods=["GET"])
def list_technicians():
    acting_user()
    items = UserService(current_store()).list_technicians(team_id=request.args.get("team_id"))
    return listing(items)


@user_bp.route("/<int:user_id>", methods=["GET"])
def get_user(user_id):
    acting_user()
    return jsonify(UserService(current_store()).get_user(user_id).to_dict())


@user_bp.route("/<int:user_id>/role", methods=["PATCH"])
def update_role(user_id):
    actor = acting_user()
    data = json_body()
    user = UserService(current_store()).update_role(
        user_id, data.get("role"), actor, team_id=data.get("team_id"),
    )
    return jsonify(user.to_dict())
