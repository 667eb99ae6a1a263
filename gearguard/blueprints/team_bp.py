"""
Maintenance Team Blueprint.

Endpoints:
  GET    /api/v1/teams                           list with counts
  GET    /api/v1/teams/<id>                      detail (members, equipment)
  POST   /api/v1/teams                           create
  PUT    /api/v1/teams/<id>                      rename
  DELETE /api/v1/teams/<id>                      delete (empty teams only)
  POST   /api/v1/teams/<id>/members              add technician  {"user_id": ...}
  DELETE /api/v1/teams/<id>/members/<user_id>    remove technician
"""

from flask import Blueprint, jsonify

from gearguard.blueprints import acting_user, current_store, json_body, listing
from gearguard.services.team_service import TeamService

team_bp = Blueprint("teams", __name__, url_prefix="/api/v1/teams")


@team_bp.route("", methods=["GET"])
def list_teams():
    acting_user()
    return listing(TeamService(current_store()).list_teams())


@team_bp.route("/<int:team_id>", methods=["GET"])
def get_team(team_id):
    acting_user()
    team = TeamService(current_store()).get_team(team_id)
    return jsonify(team.to_dict(include_children=True))


@team_bp.route("", methods=["POST"])
def create_team():
    actor = acting_user()
    team = TeamService(current_store()).create_team(json_body(), actor)
    return jsonify(team.to_dict()), 201


@team_bp.route("/<int:team_id>", methods=["PUT"])
def update_team(team_id):
    actor = acting_user()
    team = TeamService(current_store()).update_team(team_id, json_body(), actor)
    return jsonify(team.to_dict())


@team_bp.route("/<int:team_id>", methods=["DELETE"])
def delete_team(team_id):
    TeamService(current_store()).delete_team(team_id, acting_user())
    return jsonify({"message": "Team deleted"}), 200


@team_bp.route("/<int:team_id>/members", methods=["POST"])
def add_member(team_id):
    actor = acting_user()
    user = TeamService(current_store()).add_member(team_id, json_body().get("user_id"), actor)
    return jsonify(user.to_dict()), 201


@team_bp.route("/<int:team_id>/members/<int:user_id>", methods=["DELETE"])
def remove_member(team_id, user_id):
    TeamService(current_store()).remove_member(team_id, user_id, acting_user())
    return jsonify({"message": "Member removed"}), 200
