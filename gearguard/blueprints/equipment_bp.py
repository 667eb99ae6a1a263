"""
Equipment Blueprint — asset registry.

Endpoints:
  GET    /api/v1/equipment                 list (department, team_id, is_scrapped, search)
  GET    /api/v1/equipment/departments     distinct departments
  GET    /api/v1/equipment/<id>            detail with request history
  POST   /api/v1/equipment                 register
  PUT    /api/v1/equipment/<id>            edit
  DELETE /api/v1/equipment/<id>            delete (no request history only)
"""

from flask import Blueprint, jsonify, request

from gearguard.blueprints import acting_user, current_store, json_body, listing
from gearguard.services.equipment_service import EquipmentService

equipment_bp = Blueprint("equipment", __name__, url_prefix="/api/v1/equipment")


@equipment_bp.route("", methods=["GET"])
def list_equipment():
    acting_user()
    items = EquipmentService(current_store()).list_equipment(
        department=request.args.get("department"),
        team_id=request.args.get("team_id"),
        is_scrapped=request.args.get("is_scrapped"),
        search=request.args.get("search"),
    )
    return listing(items)


@equipment_bp.route("/departments", methods=["GET"])
def list_departments():
    acting_user()
    return jsonify({"items": EquipmentService(current_store()).list_departments()})


@equipment_bp.route("/<int:equipment_id>", methods=["GET"])
def get_equipment(equipment_id):
    acting_user()
    equipment = EquipmentService(current_store()).get_equipment(equipment_id)
    return jsonify(equipment.to_dict(include_requests=True))


@equipment_bp.route("", methods=["POST"])
def create_equipment():
    actor = acting_user()
    equipment = EquipmentService(current_store()).create_equipment(json_body(), actor)
    return jsonify(equipment.to_dict()), 201


@equipment_bp.route("/<int:equipment_id>", methods=["PUT"])
def update_equipment(equipment_id):
    actor = acting_user()
    equipment = EquipmentService(current_store()).update_equipment(equipment_id, json_body(), actor)
    return jsonify(equipment.to_dict())


@equipment_bp.route("/<int:equipment_id>", methods=["DELETE"])
def delete_equipment(equipment_id):
    EquipmentService(current_store()).delete_equipment(equipment_id, acting_user())
    return jsonify({"message": "Equipment deleted"}), 200
