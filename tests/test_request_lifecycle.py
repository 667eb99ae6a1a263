"""
Maintenance request lifecycle tests.

Covers gearguard.services.request_lifecycle:
    - create: required fields, preventive rules, scrapped equipment, technician team check
    - set_stage: role gates, allowed transitions, SCRAP cascade + audit line
    - assign_technician: NEW auto-advance, technician self-assign rules
    - complete: role gates, duration/notes handling
    - update_details: terminal lock, partial edits, scheduled date clearing
    - delete: manager-only, NEW-only
    - overdue / kanban_grouping pure helpers
    - two end-to-end flows (corrective repair, preventive scrap)
"""

from datetime import UTC, date, datetime, timedelta

import pytest

from gearguard.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from gearguard.models import db
from gearguard.models.equipment import Equipment
from gearguard.models.maintenance import (
    STAGE_IN_PROGRESS,
    STAGE_NEW,
    STAGE_REPAIRED,
    STAGE_SCRAP,
    STAGES,
    TYPE_CORRECTIVE,
    TYPE_PREVENTIVE,
    MaintenanceRequest,
)
from gearguard.models.user import ROLE_TECHNICIAN
from gearguard.services.request_lifecycle import (
    RequestLifecycle,
    kanban_grouping,
    overdue,
)
from gearguard.services.request_query import RequestQueryService

# Same instant as the factories' default created_at (conftest.NOW).
NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


@pytest.fixture()
def lifecycle(store):
    return RequestLifecycle(store, clock=lambda: NOW)


def _reload(model, pk):
    db.session.expire_all()
    return db.session.get(model, pk)


# ═════════════════════════════════════════════════════════════════════════════
# overdue / kanban_grouping
# ═════════════════════════════════════════════════════════════════════════════


class _Req:
    def __init__(self, id, stage, created_at, priority=1):
        self.id = id
        self.stage = stage
        self.created_at = created_at
        self.priority = priority


class TestOverdue:
    @pytest.mark.parametrize("stage", [STAGE_NEW, STAGE_IN_PROGRESS])
    def test_open_request_older_than_two_days_is_overdue(self, stage):
        assert overdue(_Req(1, stage, NOW - timedelta(days=2, seconds=1)), NOW) is True

    @pytest.mark.parametrize("stage", [STAGE_NEW, STAGE_IN_PROGRESS])
    def test_exactly_two_days_is_not_overdue(self, stage):
        assert overdue(_Req(1, stage, NOW - timedelta(days=2)), NOW) is False

    @pytest.mark.parametrize("stage", [STAGE_REPAIRED, STAGE_SCRAP])
    def test_terminal_requests_are_never_overdue(self, stage):
        assert overdue(_Req(1, stage, NOW - timedelta(days=365)), NOW) is False

    def test_naive_timestamps_are_treated_as_utc(self):
        naive = (NOW - timedelta(days=3)).replace(tzinfo=None)
        assert overdue(_Req(1, STAGE_NEW, naive), NOW) is True


class TestKanbanGrouping:
    def test_every_stage_has_a_bucket(self):
        board = kanban_grouping([])
        assert list(board) == list(STAGES)
        assert all(items == [] for items in board.values())

    def test_buckets_sorted_by_priority_then_newest(self):
        old_low = _Req(1, STAGE_NEW, NOW - timedelta(days=3), priority=1)
        new_low = _Req(2, STAGE_NEW, NOW - timedelta(days=1), priority=1)
        critical = _Req(3, STAGE_NEW, NOW - timedelta(days=5), priority=4)
        repaired = _Req(4, STAGE_REPAIRED, NOW, priority=2)

        board = kanban_grouping([old_low, repaired, new_low, critical])

        assert [r.id for r in board[STAGE_NEW]] == [3, 2, 1]
        assert [r.id for r in board[STAGE_REPAIRED]] == [4]
        assert board[STAGE_IN_PROGRESS] == []


# ═════════════════════════════════════════════════════════════════════════════
# create
# ═════════════════════════════════════════════════════════════════════════════


class TestCreate:
    def test_corrective_by_user_derives_team_and_defaults(self, lifecycle, actor, requester, equipment, team):
        req = lifecycle.create(
            actor(requester), subject="Grinding noise", request_type=TYPE_CORRECTIVE,
            equipment_id=equipment.id,
        )
        assert req.stage == STAGE_NEW
        assert req.team_id == team.id
        assert req.priority == 1
        assert req.created_by_id == requester.id
        assert [a.action for a in req.activities] == ["request.create"]

    @pytest.mark.parametrize("missing", ["subject", "request_type", "equipment_id"])
    def test_missing_required_field(self, lifecycle, actor, requester, equipment, missing):
        kwargs = dict(subject="Leak", request_type=TYPE_CORRECTIVE, equipment_id=equipment.id)
        kwargs[missing] = None
        with pytest.raises(ValidationError) as exc:
            lifecycle.create(actor(requester), **kwargs)
        assert missing in exc.value.details

    def test_unknown_type(self, lifecycle, actor, requester, equipment):
        with pytest.raises(ValidationError):
            lifecycle.create(actor(requester), subject="Leak", request_type="EMERGENCY",
                             equipment_id=equipment.id)

    def test_preventive_by_non_manager_is_forbidden(self, lifecycle, actor, requester, technician, equipment):
        for user in (requester, technician):
            with pytest.raises(AuthorizationError):
                lifecycle.create(actor(user), subject="Service", request_type=TYPE_PREVENTIVE,
                                 equipment_id=equipment.id, scheduled_date="2026-03-17")

    def test_preventive_without_date_fails(self, lifecycle, actor, manager, equipment):
        with pytest.raises(ValidationError) as exc:
            lifecycle.create(actor(manager), subject="Service", request_type=TYPE_PREVENTIVE,
                             equipment_id=equipment.id)
        assert "scheduled_date" in exc.value.details

    def test_preventive_by_manager(self, lifecycle, actor, manager, equipment):
        req = lifecycle.create(actor(manager), subject="Service", request_type=TYPE_PREVENTIVE,
                               equipment_id=equipment.id, scheduled_date="2026-03-17", priority=2)
        assert req.scheduled_date == date(2026, 3, 17)
        assert req.team_id == equipment.team_id
        assert req.priority == 2

    @pytest.mark.parametrize("priority", [0, 5, "high"])
    def test_invalid_priority(self, lifecycle, actor, requester, equipment, priority):
        with pytest.raises(ValidationError):
            lifecycle.create(actor(requester), subject="Leak", request_type=TYPE_CORRECTIVE,
                             equipment_id=equipment.id, priority=priority)

    def test_unknown_equipment(self, lifecycle, actor, requester):
        with pytest.raises(NotFoundError):
            lifecycle.create(actor(requester), subject="Leak", request_type=TYPE_CORRECTIVE,
                             equipment_id=9999)

    def test_scrapped_equipment_rejected_for_every_role(
        self, lifecycle, actor, requester, manager, technician, make_equipment, team,
    ):
        scrapped = make_equipment(team, is_scrapped=True)
        for user in (requester, manager, technician):
            with pytest.raises(ConflictError):
                lifecycle.create(actor(user), subject="Leak", request_type=TYPE_CORRECTIVE,
                                 equipment_id=scrapped.id)
        assert MaintenanceRequest.query.count() == 0

    def test_technician_must_belong_to_equipment_team(
        self, lifecycle, actor, requester, equipment, make_user, other_team,
    ):
        outsider = make_user(ROLE_TECHNICIAN, team=other_team)
        with pytest.raises(ValidationError):
            lifecycle.create(actor(requester), subject="Leak", request_type=TYPE_CORRECTIVE,
                             equipment_id=equipment.id, technician_id=outsider.id)

    def test_non_technician_cannot_be_preassigned(self, lifecycle, actor, requester, manager, equipment):
        with pytest.raises(ValidationError):
            lifecycle.create(actor(requester), subject="Leak", request_type=TYPE_CORRECTIVE,
                             equipment_id=equipment.id, technician_id=manager.id)

    def test_preassigned_technician_keeps_stage_new(self, lifecycle, actor, requester, technician, equipment):
        req = lifecycle.create(actor(requester), subject="Leak", request_type=TYPE_CORRECTIVE,
                               equipment_id=equipment.id, technician_id=technician.id)
        assert req.technician_id == technician.id
        assert req.stage == STAGE_NEW


# ═════════════════════════════════════════════════════════════════════════════
# set_stage
# ═════════════════════════════════════════════════════════════════════════════


class TestSetStage:
    def test_invalid_stage_name(self, lifecycle, actor, manager, equipment, make_request):
        req = make_request(equipment, manager)
        with pytest.raises(ValidationError):
            lifecycle.set_stage(req.id, "DONE", actor(manager))

    def test_unknown_request(self, lifecycle, actor, manager):
        with pytest.raises(NotFoundError):
            lifecycle.set_stage(4242, STAGE_IN_PROGRESS, actor(manager))

    def test_user_cannot_change_stage(self, lifecycle, actor, requester, equipment, make_request):
        req = make_request(equipment, requester)
        with pytest.raises(AuthorizationError):
            lifecycle.set_stage(req.id, STAGE_IN_PROGRESS, actor(requester))

    def test_technician_of_other_team_is_forbidden(
        self, lifecycle, actor, requester, equipment, make_request, make_user, other_team,
    ):
        req = make_request(equipment, requester)
        outsider = make_user(ROLE_TECHNICIAN, team=other_team)
        with pytest.raises(AuthorizationError):
            lifecycle.set_stage(req.id, STAGE_IN_PROGRESS, actor(outsider))

    def test_technician_of_same_team_moves_stage(
        self, lifecycle, actor, requester, technician, equipment, make_request,
    ):
        req = make_request(equipment, requester)
        updated = lifecycle.set_stage(req.id, STAGE_IN_PROGRESS, actor(technician))
        assert updated.stage == STAGE_IN_PROGRESS
        assert updated.activities[-1].message == "Stage changed from NEW to IN_PROGRESS"

    @pytest.mark.parametrize("target", [STAGE_IN_PROGRESS, STAGE_REPAIRED, STAGE_SCRAP])
    def test_new_can_jump_to_any_stage(self, lifecycle, actor, manager, equipment, make_request, target):
        req = make_request(equipment, manager)
        assert lifecycle.set_stage(req.id, target, actor(manager)).stage == target

    @pytest.mark.parametrize("source,target", [
        (STAGE_IN_PROGRESS, STAGE_NEW),
        (STAGE_REPAIRED, STAGE_NEW),
        (STAGE_REPAIRED, STAGE_IN_PROGRESS),
        (STAGE_REPAIRED, STAGE_SCRAP),
        (STAGE_SCRAP, STAGE_NEW),
        (STAGE_SCRAP, STAGE_REPAIRED),
    ])
    def test_disallowed_transitions(self, lifecycle, actor, manager, equipment, make_request, source, target):
        req = make_request(equipment, manager, stage=source)
        with pytest.raises(ConflictError):
            lifecycle.set_stage(req.id, target, actor(manager))
        assert _reload(MaintenanceRequest, req.id).stage == source

    def test_same_stage_is_a_noop(self, lifecycle, actor, manager, equipment, make_request):
        req = make_request(equipment, manager, stage=STAGE_IN_PROGRESS)
        updated = lifecycle.set_stage(req.id, STAGE_IN_PROGRESS, actor(manager))
        assert updated.stage == STAGE_IN_PROGRESS
        assert updated.activities == []

    def test_scrap_cascades_to_equipment_and_notes(self, lifecycle, actor, manager, equipment, make_request):
        req = make_request(equipment, manager, stage=STAGE_IN_PROGRESS)

        updated = lifecycle.set_stage(req.id, STAGE_SCRAP, actor(manager))

        assert updated.stage == STAGE_SCRAP
        assert updated.equipment.is_scrapped is True
        assert _reload(Equipment, equipment.id).is_scrapped is True
        assert "Equipment marked as scrapped by Sarah Johnson" in updated.notes
        assert updated.notes.startswith("[2026-03-10T12:00:00.000Z] ")

    def test_scrap_rolls_back_when_equipment_fetch_fails(
        self, lifecycle, store, actor, manager, equipment, make_request, monkeypatch,
    ):
        req = make_request(equipment, manager, stage=STAGE_IN_PROGRESS, notes="[2026-03-01T08:00:00.000Z] Start")
        real_get = store.get

        def failing_get(model, pk, **kwargs):
            if model is Equipment:
                raise RuntimeError("database went away")
            return real_get(model, pk, **kwargs)

        monkeypatch.setattr(store, "get", failing_get)
        with pytest.raises(RuntimeError):
            lifecycle.set_stage(req.id, STAGE_SCRAP, actor(manager))

        reloaded = _reload(MaintenanceRequest, req.id)
        assert reloaded.stage == STAGE_IN_PROGRESS
        assert reloaded.notes == "[2026-03-01T08:00:00.000Z] Start"
        assert reloaded.activities == []
        assert _reload(Equipment, equipment.id).is_scrapped is False

    def test_scrap_rolls_back_equipment_flag_when_audit_fails(
        self, lifecycle, actor, manager, equipment, make_request, monkeypatch,
    ):
        req = make_request(equipment, manager, stage=STAGE_IN_PROGRESS)

        def failing_record(*args, **kwargs):
            raise RuntimeError("audit write failed")

        monkeypatch.setattr(lifecycle, "_record", failing_record)
        with pytest.raises(RuntimeError):
            lifecycle.set_stage(req.id, STAGE_SCRAP, actor(manager))

        assert _reload(MaintenanceRequest, req.id).stage == STAGE_IN_PROGRESS
        assert _reload(Equipment, equipment.id).is_scrapped is False

    def test_scrap_twice_is_idempotent_but_logs_again(self, lifecycle, actor, manager, equipment, make_request):
        req = make_request(equipment, manager)
        lifecycle.set_stage(req.id, STAGE_SCRAP, actor(manager))
        updated = lifecycle.set_stage(req.id, STAGE_SCRAP, actor(manager))

        assert updated.equipment.is_scrapped is True
        assert updated.notes.count("Equipment marked as scrapped by Sarah Johnson") == 2
        assert [a.action for a in updated.activities] == ["request.scrap", "request.scrap"]

    def test_scrap_keeps_existing_notes(self, lifecycle, actor, manager, equipment, make_request):
        req = make_request(equipment, manager, notes="[2026-03-01T08:00:00.000Z] Initial note")
        updated = lifecycle.set_stage(req.id, STAGE_SCRAP, actor(manager))
        lines = updated.notes.splitlines()
        assert lines[0] == "[2026-03-01T08:00:00.000Z] Initial note"
        assert lines[1].endswith("Equipment marked as scrapped by Sarah Johnson")

    def test_scrapped_equipment_cannot_be_restored(self, lifecycle, actor, manager, equipment, make_request):
        req = make_request(equipment, manager)
        lifecycle.set_stage(req.id, STAGE_SCRAP, actor(manager))
        scrapped = _reload(Equipment, equipment.id)
        with pytest.raises(ConflictError):
            scrapped.is_scrapped = False


# ═════════════════════════════════════════════════════════════════════════════
# assign_technician
# ═════════════════════════════════════════════════════════════════════════════


class TestAssignTechnician:
    def test_manager_assign_on_new_starts_work(self, lifecycle, actor, manager, technician, equipment, make_request):
        req = make_request(equipment, manager)
        updated = lifecycle.assign_technician(req.id, technician.id, actor(manager))
        assert updated.technician_id == technician.id
        assert updated.stage == STAGE_IN_PROGRESS
        assert updated.activities[-1].message == "Assigned to Mike Chen"

    @pytest.mark.parametrize("stage", [STAGE_IN_PROGRESS, STAGE_REPAIRED, STAGE_SCRAP])
    def test_assign_leaves_later_stages_unchanged(
        self, lifecycle, actor, manager, technician, equipment, make_request, stage,
    ):
        req = make_request(equipment, manager, stage=stage)
        updated = lifecycle.assign_technician(req.id, technician.id, actor(manager))
        assert updated.stage == stage

    def test_unassign_does_not_revert_stage(self, lifecycle, actor, manager, technician, equipment, make_request):
        req = make_request(equipment, manager, stage=STAGE_IN_PROGRESS, technician=technician)
        updated = lifecycle.assign_technician(req.id, None, actor(manager))
        assert updated.technician_id is None
        assert updated.stage == STAGE_IN_PROGRESS

    def test_unknown_request(self, lifecycle, actor, manager, technician):
        with pytest.raises(NotFoundError):
            lifecycle.assign_technician(4242, technician.id, actor(manager))

    def test_technician_self_assign(self, lifecycle, actor, requester, technician, equipment, make_request):
        req = make_request(equipment, requester)
        updated = lifecycle.assign_technician(req.id, technician.id, actor(technician))
        assert updated.technician_id == technician.id
        assert updated.stage == STAGE_IN_PROGRESS

    def test_technician_self_unassign(self, lifecycle, actor, requester, technician, equipment, make_request):
        req = make_request(equipment, requester, stage=STAGE_IN_PROGRESS, technician=technician)
        assert lifecycle.assign_technician(req.id, None, actor(technician)).technician_id is None

    def test_technician_cannot_assign_someone_else(
        self, lifecycle, actor, requester, technician, equipment, make_request, make_user, team,
    ):
        colleague = make_user(ROLE_TECHNICIAN, team=team)
        req = make_request(equipment, requester)
        with pytest.raises(AuthorizationError):
            lifecycle.assign_technician(req.id, colleague.id, actor(technician))

    def test_technician_cannot_self_assign_other_team(
        self, lifecycle, actor, requester, make_equipment, make_request, make_user, technician, other_team,
    ):
        foreign = make_equipment(other_team)
        req = make_request(foreign, requester)
        with pytest.raises(AuthorizationError):
            lifecycle.assign_technician(req.id, technician.id, actor(technician))

    def test_assignee_must_be_team_technician(
        self, lifecycle, actor, manager, requester, equipment, make_request, make_user, other_team,
    ):
        req = make_request(equipment, requester)
        outsider = make_user(ROLE_TECHNICIAN, team=other_team)
        for candidate in (outsider, requester):
            with pytest.raises(ValidationError):
                lifecycle.assign_technician(req.id, candidate.id, actor(manager))
        assert _reload(MaintenanceRequest, req.id).stage == STAGE_NEW


# ═════════════════════════════════════════════════════════════════════════════
# complete
# ═════════════════════════════════════════════════════════════════════════════


class TestComplete:
    def test_user_cannot_complete(self, lifecycle, actor, requester, equipment, make_request):
        req = make_request(equipment, requester, stage=STAGE_IN_PROGRESS)
        with pytest.raises(AuthorizationError):
            lifecycle.complete(req.id, actor(requester))

    def test_only_assigned_technician_completes(
        self, lifecycle, actor, requester, technician, equipment, make_request, make_user, team,
    ):
        colleague = make_user(ROLE_TECHNICIAN, team=team)
        req = make_request(equipment, requester, stage=STAGE_IN_PROGRESS, technician=technician)
        with pytest.raises(AuthorizationError):
            lifecycle.complete(req.id, actor(colleague))

    def test_unknown_request(self, lifecycle, actor, manager):
        with pytest.raises(NotFoundError):
            lifecycle.complete(4242, actor(manager))

    def test_manager_completes_without_extras_keeps_previous_values(
        self, lifecycle, actor, manager, equipment, make_request,
    ):
        req = make_request(equipment, manager, stage=STAGE_IN_PROGRESS, duration=1.5,
                           notes="[2026-03-09T10:00:00.000Z] Parts ordered")
        updated = lifecycle.complete(req.id, actor(manager))
        assert updated.stage == STAGE_REPAIRED
        assert updated.duration == 1.5
        assert updated.notes == "[2026-03-09T10:00:00.000Z] Parts ordered"

    def test_duration_and_notes_are_recorded(self, lifecycle, actor, manager, equipment, make_request):
        req = make_request(equipment, manager, stage=STAGE_IN_PROGRESS, duration=1.0)
        updated = lifecycle.complete(req.id, actor(manager), duration="3.25", notes="Belt replaced")
        assert updated.duration == 3.25
        assert updated.notes == "[2026-03-10T12:00:00.000Z] Belt replaced"

    def test_negative_duration(self, lifecycle, actor, manager, equipment, make_request):
        req = make_request(equipment, manager, stage=STAGE_IN_PROGRESS)
        with pytest.raises(ValidationError):
            lifecycle.complete(req.id, actor(manager), duration=-1)

    def test_repaired_request_accepts_more_notes(self, lifecycle, actor, manager, equipment, make_request):
        req = make_request(equipment, manager, stage=STAGE_REPAIRED)
        updated = lifecycle.complete(req.id, actor(manager), duration=4, notes="Follow-up check")
        assert updated.stage == STAGE_REPAIRED
        assert updated.duration == 4.0

    def test_scrapped_request_cannot_be_completed(self, lifecycle, actor, manager, equipment, make_request):
        req = make_request(equipment, manager, stage=STAGE_SCRAP)
        with pytest.raises(ConflictError):
            lifecycle.complete(req.id, actor(manager))


# ═════════════════════════════════════════════════════════════════════════════
# update_details
# ═════════════════════════════════════════════════════════════════════════════


class TestUpdateDetails:
    @pytest.mark.parametrize("stage", [STAGE_REPAIRED, STAGE_SCRAP])
    def test_terminal_requests_are_locked(self, lifecycle, actor, manager, equipment, make_request, stage):
        req = make_request(equipment, manager, stage=stage)
        with pytest.raises(ConflictError):
            lifecycle.update_details(req.id, actor(manager), subject="New subject")

    def test_unknown_request(self, lifecycle, actor, manager):
        with pytest.raises(NotFoundError):
            lifecycle.update_details(4242, actor(manager), subject="x")

    def test_partial_update_touches_only_supplied_fields(
        self, lifecycle, actor, requester, equipment, make_request,
    ):
        req = make_request(equipment, requester, description="Original", priority=2)
        updated = lifecycle.update_details(req.id, actor(requester), priority=4)
        assert updated.priority == 4
        assert updated.description == "Original"
        assert updated.subject == "Strange noise"
        assert updated.activities[-1].message == "Updated priority"

    def test_clearing_scheduled_date_on_corrective(self, lifecycle, actor, manager, equipment, make_request):
        req = make_request(equipment, manager, scheduled_date=date(2026, 3, 20))
        updated = lifecycle.update_details(req.id, actor(manager), scheduled_date=None)
        assert updated.scheduled_date is None

    def test_omitted_scheduled_date_is_kept(self, lifecycle, actor, manager, equipment, make_request):
        req = make_request(equipment, manager, scheduled_date=date(2026, 3, 20))
        updated = lifecycle.update_details(req.id, actor(manager), subject="Renamed")
        assert updated.scheduled_date == date(2026, 3, 20)

    def test_preventive_cannot_lose_its_date(self, lifecycle, actor, manager, equipment, make_request):
        req = make_request(equipment, manager, request_type=TYPE_PREVENTIVE,
                           scheduled_date=date(2026, 3, 20))
        with pytest.raises(ValidationError):
            lifecycle.update_details(req.id, actor(manager), scheduled_date="")

    def test_empty_subject_rejected(self, lifecycle, actor, manager, equipment, make_request):
        req = make_request(equipment, manager)
        with pytest.raises(ValidationError):
            lifecycle.update_details(req.id, actor(manager), subject="   ")


# ═════════════════════════════════════════════════════════════════════════════
# delete
# ═════════════════════════════════════════════════════════════════════════════


class TestDelete:
    def test_manager_deletes_new_request(self, lifecycle, actor, manager, equipment, make_request):
        req = make_request(equipment, manager)
        lifecycle.delete(req.id, actor(manager))
        assert _reload(MaintenanceRequest, req.id) is None

    @pytest.mark.parametrize("stage", [STAGE_IN_PROGRESS, STAGE_REPAIRED, STAGE_SCRAP])
    def test_non_new_request_conflicts(self, lifecycle, actor, manager, equipment, make_request, stage):
        req = make_request(equipment, manager, stage=stage)
        with pytest.raises(ConflictError):
            lifecycle.delete(req.id, actor(manager))

    @pytest.mark.parametrize("stage", STAGES)
    def test_non_manager_is_forbidden_regardless_of_stage(
        self, lifecycle, actor, requester, technician, equipment, make_request, stage,
    ):
        req = make_request(equipment, requester, stage=stage)
        for user in (requester, technician):
            with pytest.raises(AuthorizationError):
                lifecycle.delete(req.id, actor(user))


# ═════════════════════════════════════════════════════════════════════════════
# End-to-end flows
# ═════════════════════════════════════════════════════════════════════════════


class TestEndToEnd:
    def test_corrective_repair_flow(self, lifecycle, actor, requester, technician, equipment, team):
        req = lifecycle.create(actor(requester), subject="Conveyor jammed",
                               request_type=TYPE_CORRECTIVE, equipment_id=equipment.id)
        assert req.stage == STAGE_NEW
        assert req.team_id == team.id

        req = lifecycle.assign_technician(req.id, technician.id, actor(technician))
        assert req.stage == STAGE_IN_PROGRESS
        assert req.technician_id == technician.id

        req = lifecycle.complete(req.id, actor(technician), duration=2.5, notes="fixed")
        assert req.stage == STAGE_REPAIRED
        assert req.duration == 2.5
        assert "fixed" in req.notes

        with pytest.raises(ConflictError):
            lifecycle.update_details(req.id, actor(technician), subject="Too late")

    def test_preventive_scrap_flow(self, store, lifecycle, actor, manager, requester, make_equipment, other_team):
        pump = make_equipment(other_team, name="Coolant Pump")
        next_week = NOW.date() + timedelta(days=7)

        req = lifecycle.create(actor(manager), subject="Quarterly service",
                               request_type=TYPE_PREVENTIVE, equipment_id=pump.id,
                               scheduled_date=next_week.isoformat())
        assert req.team_id == other_team.id

        events = RequestQueryService(store, clock=lambda: NOW).calendar(
            actor(manager), start=next_week - timedelta(days=1), end=next_week + timedelta(days=1),
        )
        assert [e["id"] for e in events] == [req.id]

        lifecycle.set_stage(req.id, STAGE_SCRAP, actor(manager))
        assert _reload(Equipment, pump.id).is_scrapped is True

        with pytest.raises(ConflictError):
            lifecycle.create(actor(requester), subject="Still leaking",
                             request_type=TYPE_CORRECTIVE, equipment_id=pump.id)
