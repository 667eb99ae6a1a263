"""
Maintenance Request Blueprint — lifecycle and read views.

Endpoints:
  GET    /api/v1/requests                    list (filters: type, stage, team_id, equipment_id,
                                             technician_id, priority, scheduled_from,
                                             scheduled_to, overdue)
  GET    /api/v1/requests/kanban             stage board
  GET    /api/v1/requests/calendar           preventive calendar (start, end)
  GET    /api/v1/requests/stats              dashboard counters
  GET    /api/v1/requests/<id>               detail with activity log
  POST   /api/v1/requests                    create
  PUT    /api/v1/requests/<id>               edit details
  DELETE /api/v1/requests/<id>               delete (NEW only)
  PATCH  /api/v1/requests/<id>/stage         move stage
  PATCH  /api/v1/requests/<id>/assign        assign / unassign technician
  PATCH  /api/v1/requests/<id>/complete      mark repaired
"""

from flask import Blueprint, jsonify, request

from gearguard.blueprints import acting_user, current_store, json_body, listing
from gearguard.core.exceptions import ValidationError
from gearguard.services.helpers.coerce import parse_bool
from gearguard.services.request_lifecycle import UNSET, RequestLifecycle
from gearguard.services.request_query import RequestQueryService

request_bp = Blueprint("requests", __name__, url_prefix="/api/v1/requests")

_EDITABLE_FIELDS = ("subject", "description", "priority", "scheduled_date")


# ═════════════════════════════════════════════════════════════════════════════
# Read views
# ═════════════════════════════════════════════════════════════════════════════

@request_bp.route("", methods=["GET"])
def list_requests():
    actor = acting_user()
    args = request.args
    items = RequestQueryService(current_store()).list_requests(
        actor,
        request_type=args.get("type") or args.get("request_type"),
        stage=args.get("stage"),
        team_id=args.get("team_id"),
        equipment_id=args.get("equipment_id"),
        technician_id=args.get("technician_id"),
        priority=args.get("priority"),
        scheduled_from=args.get("scheduled_from"),
        scheduled_to=args.get("scheduled_to"),
        overdue_only=bool(parse_bool(args.get("overdue"))),
    )
    return listing(items)


@request_bp.route("/kanban", methods=["GET"])
def kanban():
    return jsonify(RequestQueryService(current_store()).kanban(acting_user()))


@request_bp.route("/calendar", methods=["GET"])
def calendar():
    actor = acting_user()
    events = RequestQueryService(current_store()).calendar(
        actor, start=request.args.get("start"), end=request.args.get("end"),
    )
    return jsonify({"items": events, "total": len(events)})


@request_bp.route("/stats", methods=["GET"])
def stats():
    return jsonify(RequestQueryService(current_store()).stats(acting_user()))


@request_bp.route("/<int:request_id>", methods=["GET"])
def get_request(request_id):
    acting_user()
    req = RequestQueryService(current_store()).get(request_id)
    return jsonify(req.to_dict(include_activities=True))


# ═════════════════════════════════════════════════════════════════════════════
# Lifecycle
# ═════════════════════════════════════════════════════════════════════════════

@request_bp.route("", methods=["POST"])
def create_request():
    actor = acting_user()
    data = json_body()
    req = RequestLifecycle(current_store()).create(
        actor,
        subject=data.get("subject"),
        request_type=data.get("request_type") or data.get("type"),
        equipment_id=data.get("equipment_id"),
        priority=data.get("priority"),
        description=data.get("description"),
        scheduled_date=data.get("scheduled_date"),
        technician_id=data.get("technician_id"),
    )
    return jsonify(req.to_dict()), 201


@request_bp.route("/<int:request_id>", methods=["PUT"])
def update_request(request_id):
    actor = acting_user()
    data = json_body()
    changes = {field: data[field] if field in data else UNSET for field in _EDITABLE_FIELDS}
    req = RequestLifecycle(current_store()).update_details(request_id, actor, **changes)
    return jsonify(req.to_dict())


@request_bp.route("/<int:request_id>", methods=["DELETE"])
def delete_request(request_id):
    RequestLifecycle(current_store()).delete(request_id, acting_user())
    return jsonify({"message": "Request deleted"}), 200


@request_bp.route("/<int:request_id>/stage", methods=["PATCH"])
def set_stage(request_id):
    actor = acting_user()
    stage = json_body().get("stage")
    if not stage:
        raise ValidationError("stage is required", details={"stage": "required"})
    req = RequestLifecycle(current_store()).set_stage(request_id, stage, actor)
    return jsonify(req.to_dict())


@request_bp.route("/<int:request_id>/assign", methods=["PATCH"])
def assign_technician(request_id):
    actor = acting_user()
    data = json_body()
    if "technician_id" not in data:
        raise ValidationError(
            "technician_id is required (null to unassign)",
            details={"technician_id": "required"},
        )
    req = RequestLifecycle(current_store()).assign_technician(request_id, data["technician_id"], actor)
    return jsonify(req.to_dict())


@request_bp.route("/<int:request_id>/complete", methods=["PATCH"])
def complete_request(request_id):
    actor = acting_user()
    data = json_body()
    req = RequestLifecycle(current_store()).complete(
        request_id, actor, duration=data.get("duration"), notes=data.get("notes"),
    )
    return jsonify(req.to_dict())
