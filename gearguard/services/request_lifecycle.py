"""
Maintenance Request Lifecycle Service

Owns the stage machine and the cross-entity side effects of maintenance
requests:
  - Creation rules (team derived from equipment, preventive needs a manager
    and a scheduled date, scrapped equipment takes no new requests)
  - Stage transitions (STAGE_TRANSITIONS) with the SCRAP cascade to equipment
  - Technician assignment (NEW auto-advances to IN_PROGRESS)
  - Completion (duration + notes)
  - Detail edits and deletion
  - Audit trail: RequestActivity rows + rendered ``notes`` lines

Role checks live in gearguard.services.permission; persistence comes in
through the injected store. Each operation runs inside one
``store.unit_of_work()`` so its effects (e.g. request SCRAP + equipment
scrap flag) are committed together or not at all.

Usage:
    from gearguard.services.request_lifecycle import RequestLifecycle

    lifecycle = RequestLifecycle(SqlAlchemyStore(db.session))
    req = lifecycle.create(actor, subject="Leak", request_type="CORRECTIVE", equipment_id=3)
    lifecycle.assign_technician(req.id, tech.id, actor)
"""

import logging

from gearguard.core.exceptions import ConflictError, NotFoundError, ValidationError
from gearguard.models import utcnow
from gearguard.models.equipment import Equipment
from gearguard.models.maintenance import (
    DEFAULT_PRIORITY,
    PRIORITY_LABELS,
    REQUEST_TYPES,
    STAGE_IN_PROGRESS,
    STAGE_NEW,
    STAGE_REPAIRED,
    STAGE_SCRAP,
    STAGES,
    TYPE_PREVENTIVE,
    MaintenanceRequest,
    RequestActivity,
    is_overdue,
    list_order_key,
    validate_stage_transition,
)
from gearguard.services.helpers.coerce import parse_date, parse_float, parse_int, parse_str
from gearguard.services.permission import (
    ActingUser,
    can_assign_technician,
    can_complete,
    can_create_request,
    can_delete_request,
    can_set_stage,
    can_update_details,
)

logger = logging.getLogger(__name__)


class _Unset:
    def __repr__(self):
        return "UNSET"


# Marks an update_details argument as "not supplied" (None means "clear").
UNSET = _Unset()


def overdue(request, now) -> bool:
    """True iff the request is still open and was created more than two days before ``now``."""
    return is_overdue(request.stage, request.created_at, now)


def sort_requests(requests) -> list:
    """Order by priority descending, then creation time descending."""
    return sorted(requests, key=list_order_key, reverse=True)


def kanban_grouping(requests) -> dict[str, list]:
    """Partition requests into the four stage buckets, each in list-view order."""
    board = {stage: [] for stage in STAGES}
    for req in sort_requests(requests):
        board[req.stage].append(req)
    return board


def _validate_priority(value) -> int:
    priority = parse_int(value, "priority")
    if priority is None:
        return DEFAULT_PRIORITY
    if priority not in PRIORITY_LABELS:
        raise ValidationError(
            "priority must be between 1 (Low) and 4 (Critical)",
            details={"priority": "out of range"},
        )
    return priority


class RequestLifecycle:
    """Stage machine and side effects of maintenance requests."""

    def __init__(self, store, clock=utcnow):
        self._store = store
        self._clock = clock

    # ── Internals ────────────────────────────────────────────────────────

    def _get_request(self, request_id) -> MaintenanceRequest:
        req = self._store.get(MaintenanceRequest, parse_int(request_id, "request_id"), for_update=True)
        if req is None:
            raise NotFoundError(resource="MaintenanceRequest", resource_id=request_id)
        return req

    def _record(self, req, actor: ActingUser, action: str, message: str, *, render: bool = False):
        """Append an activity row; ``render`` also writes the line into ``notes``."""
        now = self._clock()
        activity = RequestActivity(
            actor_id=actor.id,
            actor_name=actor.name or f"user-{actor.id}",
            action=action,
            message=message,
            created_at=now,
        )
        req.activities.append(activity)
        if render:
            req.append_note(message, now)
        return activity

    # ── Operations ───────────────────────────────────────────────────────

    def create(
        self,
        actor: ActingUser,
        *,
        subject,
        request_type,
        equipment_id,
        priority=None,
        description=None,
        scheduled_date=None,
        technician_id=None,
    ) -> MaintenanceRequest:
        """Open a new request against an asset; the asset's team becomes the request's team."""
        subject = parse_str(subject, "subject")
        missing = [
            name for name, value in (
                ("subject", subject),
                ("request_type", request_type),
                ("equipment_id", equipment_id),
            ) if not value
        ]
        if missing:
            raise ValidationError(
                "subject, request_type and equipment_id are required",
                details={name: "required" for name in missing},
            )
        if not isinstance(request_type, str) or request_type not in REQUEST_TYPES:
            raise ValidationError(
                "request_type must be CORRECTIVE or PREVENTIVE",
                details={"request_type": "invalid"},
            )

        can_create_request(actor, request_type).enforce("request.create")

        scheduled = parse_date(scheduled_date, "scheduled_date")
        if request_type == TYPE_PREVENTIVE and scheduled is None:
            raise ValidationError(
                "Preventive maintenance requires a scheduled date",
                details={"scheduled_date": "required"},
            )
        priority = _validate_priority(priority)
        equipment_pk = parse_int(equipment_id, "equipment_id")
        technician_pk = parse_int(technician_id, "technician_id")

        with self._store.unit_of_work():
            equipment = self._store.get(Equipment, equipment_pk)
            if equipment is None:
                raise NotFoundError(resource="Equipment", resource_id=equipment_id)
            if equipment.is_scrapped:
                raise ConflictError(
                    "Cannot create maintenance request for scrapped equipment",
                    resource="Equipment",
                    field="is_scrapped",
                )
            if technician_pk is not None and self._store.get_team_technician(
                technician_pk, equipment.team_id
            ) is None:
                raise ValidationError(
                    "Technician must be a member of the equipment's maintenance team",
                    details={"technician_id": "not a technician of this team"},
                )

            req = MaintenanceRequest(
                subject=subject,
                description=description or None,
                request_type=request_type,
                priority=priority,
                stage=STAGE_NEW,
                equipment_id=equipment.id,
                team_id=equipment.team_id,
                created_by_id=actor.id,
                technician_id=technician_pk,
                scheduled_date=scheduled,
                created_at=self._clock(),
            )
            self._store.add(req)
            self._record(req, actor, "request.create", f"{request_type.title()} request created")
            self._store.flush()

        logger.info(
            "Maintenance request %s created type=%s equipment=%s team=%s",
            req.id, request_type, equipment_pk, req.team_id,
            extra={"user_id": actor.id, "request_ref": req.id},
        )
        return req

    def set_stage(self, request_id, new_stage, actor: ActingUser) -> MaintenanceRequest:
        """Move a request to ``new_stage``; SCRAP also scraps the equipment."""
        if new_stage not in STAGES:
            raise ValidationError(
                f"stage must be one of: {', '.join(STAGES)}",
                details={"stage": "invalid"},
            )

        with self._store.unit_of_work():
            req = self._get_request(request_id)
            can_set_stage(actor, req).enforce("request.set_stage")

            previous = req.stage
            if not validate_stage_transition(previous, new_stage):
                raise ConflictError(
                    f"Cannot move request {req.id} from {previous} to {new_stage}",
                    resource="MaintenanceRequest",
                    field="stage",
                    value=previous,
                )

            req.stage = new_stage
            if new_stage == STAGE_SCRAP:
                equipment = self._store.get(Equipment, req.equipment_id, for_update=True)
                equipment.is_scrapped = True
                self._record(
                    req, actor, "request.scrap",
                    f"Equipment marked as scrapped by {actor.name}",
                    render=True,
                )
            elif previous != new_stage:
                self._record(req, actor, "request.stage", f"Stage changed from {previous} to {new_stage}")

        logger.info(
            "Maintenance request %s stage %s -> %s",
            req.id, previous, new_stage,
            extra={"user_id": actor.id, "request_ref": req.id},
        )
        return req

    def assign_technician(self, request_id, technician_id, actor: ActingUser) -> MaintenanceRequest:
        """Assign (or with ``None`` unassign) a technician of the request's team."""
        technician_pk = parse_int(technician_id, "technician_id")

        with self._store.unit_of_work():
            req = self._get_request(request_id)
            can_assign_technician(actor, req, technician_pk).enforce("request.assign")

            if technician_pk is not None:
                technician = self._store.get_team_technician(technician_pk, req.team_id)
                if technician is None:
                    raise ValidationError(
                        "Technician must be a member of the assigned maintenance team",
                        details={"technician_id": "not a technician of this team"},
                    )
                req.technician_id = technician.id
                if req.stage == STAGE_NEW:
                    req.stage = STAGE_IN_PROGRESS
                self._record(req, actor, "request.assign", f"Assigned to {technician.name}")
            else:
                req.technician_id = None
                self._record(req, actor, "request.unassign", "Technician unassigned")

        logger.info(
            "Maintenance request %s technician=%s stage=%s",
            req.id, technician_pk, req.stage,
            extra={"user_id": actor.id, "request_ref": req.id},
        )
        return req

    def complete(self, request_id, actor: ActingUser, *, duration=None, notes=None) -> MaintenanceRequest:
        """Mark repaired, optionally logging hours spent and a closing note."""
        with self._store.unit_of_work():
            req = self._get_request(request_id)
            can_complete(actor, req).enforce("request.complete")

            if not validate_stage_transition(req.stage, STAGE_REPAIRED):
                raise ConflictError(
                    f"Cannot complete request {req.id} in stage {req.stage}",
                    resource="MaintenanceRequest",
                    field="stage",
                    value=req.stage,
                )
            hours = parse_float(duration, "duration")
            if hours is not None and hours < 0:
                raise ValidationError("duration cannot be negative", details={"duration": "negative"})

            req.stage = STAGE_REPAIRED
            if hours is not None:
                req.duration = hours
            note = notes.strip() if isinstance(notes, str) else None
            if note:
                self._record(req, actor, "request.complete", note, render=True)
            else:
                self._record(req, actor, "request.complete", "Request completed")

        logger.info(
            "Maintenance request %s completed duration=%s",
            req.id, req.duration,
            extra={"user_id": actor.id, "request_ref": req.id},
        )
        return req

    def update_details(
        self,
        request_id,
        actor: ActingUser,
        *,
        subject=UNSET,
        description=UNSET,
        priority=UNSET,
        scheduled_date=UNSET,
    ) -> MaintenanceRequest:
        """Partial edit of an open request. Pass ``scheduled_date=None`` to clear it."""
        with self._store.unit_of_work():
            req = self._get_request(request_id)
            can_update_details(actor, req).enforce("request.update")
            if req.is_terminal:
                raise ConflictError(
                    f"Cannot update terminal request {req.id} (stage={req.stage})",
                    resource="MaintenanceRequest",
                    field="stage",
                    value=req.stage,
                )

            changed = []
            if subject is not UNSET:
                subject = parse_str(subject, "subject")
                if not subject:
                    raise ValidationError("subject cannot be empty", details={"subject": "required"})
                req.subject = subject
                changed.append("subject")
            if description is not UNSET:
                req.description = description or None
                changed.append("description")
            if priority is not UNSET and priority is not None:
                req.priority = _validate_priority(priority)
                changed.append("priority")
            if scheduled_date is not UNSET:
                scheduled = parse_date(scheduled_date, "scheduled_date")
                if scheduled is None and req.request_type == TYPE_PREVENTIVE:
                    raise ValidationError(
                        "Preventive maintenance requires a scheduled date",
                        details={"scheduled_date": "required"},
                    )
                req.scheduled_date = scheduled
                changed.append("scheduled_date")

            if changed:
                self._record(req, actor, "request.update", f"Updated {', '.join(changed)}")

        logger.info(
            "Maintenance request %s updated fields=%s",
            req.id, changed,
            extra={"user_id": actor.id, "request_ref": req.id},
        )
        return req

    def delete(self, request_id, actor: ActingUser) -> None:
        """Remove a request; managers only, and only while it is still NEW."""
        with self._store.unit_of_work():
            req = self._get_request(request_id)
            can_delete_request(actor, req).enforce("request.delete")
            if req.stage != STAGE_NEW:
                raise ConflictError(
                    f"Can only delete requests in NEW stage (stage={req.stage})",
                    resource="MaintenanceRequest",
                    field="stage",
                    value=req.stage,
                )
            self._store.delete(req)

        logger.info(
            "Maintenance request %s deleted", request_id,
            extra={"user_id": actor.id, "request_ref": request_id},
        )
