"""
Read-side views over maintenance requests: list, kanban board, preventive
calendar and dashboard statistics.

Technicians only ever see their own team's requests; every other role sees
all of them. ``is_overdue`` is computed at read time from the injected clock.
"""

import logging
from collections import Counter

from gearguard.core.exceptions import NotFoundError, ValidationError
from gearguard.models import utcnow
from gearguard.models.maintenance import (
    OPEN_STAGES,
    OVERDUE_AFTER,
    REQUEST_TYPES,
    STAGES,
    TYPE_PREVENTIVE,
    MaintenanceRequest,
)
from gearguard.services.helpers.coerce import parse_date, parse_int
from gearguard.services.permission import ActingUser, visible_team_id
from gearguard.services.request_lifecycle import kanban_grouping, overdue

logger = logging.getLogger(__name__)

STAGE_COLORS = {
    "NEW": "#3B82F6",
    "IN_PROGRESS": "#F59E0B",
    "REPAIRED": "#10B981",
    "SCRAP": "#EF4444",
}
DEFAULT_STAGE_COLOR = "#6B7280"


def stage_color(stage: str) -> str:
    return STAGE_COLORS.get(stage, DEFAULT_STAGE_COLOR)


class RequestQueryService:
    """List/kanban/calendar/stats queries for maintenance requests."""

    def __init__(self, store, clock=utcnow):
        self._store = store
        self._clock = clock

    def _scope(self, actor: ActingUser, team_id=None):
        return visible_team_id(actor) or team_id

    def get(self, request_id) -> MaintenanceRequest:
        req = self._store.get(MaintenanceRequest, parse_int(request_id, "request_id"))
        if req is None:
            raise NotFoundError(resource="MaintenanceRequest", resource_id=request_id)
        return req

    def list_requests(
        self,
        actor: ActingUser,
        *,
        request_type=None,
        stage=None,
        team_id=None,
        equipment_id=None,
        technician_id=None,
        priority=None,
        scheduled_from=None,
        scheduled_to=None,
        overdue_only: bool = False,
    ) -> list[MaintenanceRequest]:
        """Filtered list, ordered by priority then newest first."""
        if request_type and request_type not in REQUEST_TYPES:
            raise ValidationError("request_type must be CORRECTIVE or PREVENTIVE",
                                  details={"request_type": "invalid"})
        if stage and stage not in STAGES:
            raise ValidationError(f"stage must be one of: {', '.join(STAGES)}",
                                  details={"stage": "invalid"})

        stages = [stage] if stage else None
        created_before = None
        if overdue_only:
            stages = sorted(OPEN_STAGES)
            created_before = self._clock() - OVERDUE_AFTER

        return self._store.query_requests(
            stages=stages,
            team_id=self._scope(actor, parse_int(team_id, "team_id")),
            request_type=request_type,
            equipment_id=parse_int(equipment_id, "equipment_id"),
            technician_id=parse_int(technician_id, "technician_id"),
            priority=parse_int(priority, "priority"),
            scheduled_from=parse_date(scheduled_from, "scheduled_from"),
            scheduled_to=parse_date(scheduled_to, "scheduled_to"),
            created_before=created_before,
        )

    def kanban(self, actor: ActingUser) -> dict[str, list[dict]]:
        now = self._clock()
        requests = self._store.query_requests(team_id=self._scope(actor))
        board = kanban_grouping(requests)
        return {stage: [r.to_dict(now=now) for r in items] for stage, items in board.items()}

    def calendar(self, actor: ActingUser, start=None, end=None) -> list[dict]:
        """Preventive requests with a scheduled date in [start, end] as all-day events."""
        requests = self._store.query_requests(
            team_id=self._scope(actor),
            request_type=TYPE_PREVENTIVE,
            scheduled_only=True,
            scheduled_from=parse_date(start, "start"),
            scheduled_to=parse_date(end, "end"),
        )
        events = []
        for r in requests:
            color = stage_color(r.stage)
            events.append({
                "id": r.id,
                "title": r.subject,
                "start": r.scheduled_date.isoformat(),
                "end": r.scheduled_date.isoformat(),
                "all_day": True,
                "extended_props": {
                    "stage": r.stage,
                    "priority": r.priority,
                    "equipment": r.equipment.to_summary() if r.equipment else None,
                    "technician": r.technician.to_summary() if r.technician else None,
                },
                "background_color": color,
                "border_color": color,
            })
        return events

    def stats(self, actor: ActingUser) -> dict:
        now = self._clock()
        requests = self._store.query_requests(team_id=self._scope(actor))
        by_team = Counter(r.team.name if r.team else "Unknown" for r in requests)
        return {
            "by_stage": dict(Counter(r.stage for r in requests)),
            "by_type": dict(Counter(r.request_type for r in requests)),
            "by_team": [{"team": name, "count": count} for name, count in sorted(by_team.items())],
            "overdue": sum(1 for r in requests if overdue(r, now)),
            "total": len(requests),
        }
