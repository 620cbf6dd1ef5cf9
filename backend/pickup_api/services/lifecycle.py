# pickup_api/services/lifecycle.py
"""Pickup state machine.

    PENDING -> ACCEPTED -> IN_PROGRESS -> COMPLETED
    PENDING | ACCEPTED -> CANCELLED               (requester / operator)
    ACCEPTED | IN_PROGRESS -> CANCELLED           (assigned collector, only with allow_collector_abort)

Every mutation reads the pickup, checks the edge against the graph
(InvalidState / Forbidden) and then goes through
``JobStore.transition_if_current`` with the status and version it read, so a
concurrent change in between surfaces as Conflict instead of being
overwritten.
"""
import logging
import math
from typing import Optional

from sqlalchemy.orm import Session

from pickup_api.config import Settings
from pickup_api.schemas.auth import Caller
from pickup_api.schemas.common import (
    PENDING, ACCEPTED, IN_PROGRESS, COMPLETED, CANCELLED,
    PICKUP_STATUSES, TERMINAL_STATUSES, normalize_status,
)
from pickup_api.utils.clock import Clock, IdFactory, now_utc, new_id
from pickup_api.utils.geo import valid_coordinates
from .collectors import CollectorDirectory
from .dispatch import DispatchEngine, DispatchResult
from .job_store import JobStore
from . import errors

logger = logging.getLogger(__name__)

# target -> (required current status, audit action)
_PROGRESS = {
    IN_PROGRESS: (ACCEPTED, "PICKUP_STARTED"),
    COMPLETED: (IN_PROGRESS, "PICKUP_COMPLETED"),
}

_CANCELLABLE_BY_OWNER = frozenset({PENDING, ACCEPTED})
_ABORTABLE_BY_COLLECTOR = frozenset({ACCEPTED, IN_PROGRESS})


def _status_filter(status: Optional[str]) -> Optional[str]:
    if status is None or not status.strip():
        return None
    normalized = normalize_status(status)
    if normalized not in PICKUP_STATUSES:
        raise errors.ValidationError(f"Unknown status filter {status!r}")
    return normalized


class LifecycleController:
    def __init__(self, db: Session, settings: Settings,
                 clock: Clock = now_utc, id_factory: IdFactory = new_id):
        self.settings = settings
        self.jobs = JobStore(db, clock, id_factory)
        self.directory = CollectorDirectory(db, clock, id_factory)
        self.dispatcher = DispatchEngine(self.jobs, self.directory, settings, clock)

    # ---------- creation & reads ----------

    def create_job(self, requester_id: str, category: str, quantity_kg: float, scheduled_time,
                   lat: float, lng: float, note: Optional[str] = None) -> dict:
        if not requester_id:
            raise errors.ValidationError("requester_id is required")
        category = (category or "").strip()
        if not category:
            raise errors.ValidationError("category is required")
        try:
            quantity = float(quantity_kg)
        except (TypeError, ValueError):
            raise errors.ValidationError("quantity_kg must be a number")
        if not math.isfinite(quantity) or quantity <= 0:
            raise errors.ValidationError("quantity_kg must be > 0")
        if scheduled_time is None:
            raise errors.ValidationError("scheduled_time is required")
        if not valid_coordinates(lat, lng):
            raise errors.ValidationError("location is required: lat in [-90, 90], lng in [-180, 180]")

        note = (note or "").strip() or None
        return self.jobs.create(
            requester_id=requester_id,
            category=category,
            quantity_kg=quantity,
            scheduled_time=scheduled_time,
            lat=float(lat),
            lng=float(lng),
            note=note,
        )

    def get_job(self, pickup_id: str) -> dict:
        return self.jobs.get(pickup_id)

    def list_jobs(self, status: Optional[str] = None, collector_id: Optional[str] = None,
                  requester_id: Optional[str] = None) -> list[dict]:
        return self.jobs.list(
            status=_status_filter(status), collector_id=collector_id, requester_id=requester_id,
        )

    def collector_feed(self, collector_id: str, status: Optional[str] = None) -> list[dict]:
        self.directory.get(collector_id)
        return self.jobs.collector_feed(collector_id, status=_status_filter(status))

    # ---------- assignment ----------

    def accept_job(self, pickup_id: str, collector_id: str, *, actor: Optional[Caller] = None) -> dict:
        job = self.jobs.get(pickup_id)
        if not self.directory.exists(collector_id):
            raise errors.NotFound(f"Collector {collector_id} not found")
        if job["status"] != PENDING:
            raise errors.InvalidState(f"Only PENDING pickups can be accepted (pickup is {job['status']})")

        if self.settings.single_active_job_per_collector:
            active = self.jobs.count_active_for_collector(collector_id)
            if active:
                raise errors.InvalidState(f"Collector {collector_id} already has an active pickup")

        actor = actor or Caller(caller_id=collector_id, role="COLLECTOR")
        return self.jobs.transition_if_current(
            pickup_id, PENDING, ACCEPTED,
            expected_version=job["version"],
            actor_id=actor.caller_id,
            actor_role=actor.role,
            action="PICKUP_ACCEPTED",
            assigned_collector_id=collector_id,
        )

    def dispatch_nearest(self, pickup_id: str, lat: Optional[float] = None, lng: Optional[float] = None,
                         radius_km: Optional[float] = None, organization_id: Optional[str] = None,
                         *, actor: Optional[Caller] = None) -> DispatchResult:
        if lat is None or lng is None:
            job = self.jobs.get(pickup_id)
            lat = job["lat"] if lat is None else lat
            lng = job["lng"] if lng is None else lng
        return self.dispatcher.dispatch(
            pickup_id, lat, lng, radius_km, organization_id,
            actor_id=actor.caller_id if actor else None,
            actor_role=actor.role if actor else "OPERATOR",
        )

    # ---------- progress ----------

    def advance_status(self, pickup_id: str, collector_id: str, target_status: str) -> dict:
        target = normalize_status(target_status)
        if target == ACCEPTED:
            return self.accept_job(pickup_id, collector_id)
        if target == CANCELLED:
            return self.cancel_job(pickup_id, Caller(caller_id=collector_id, role="COLLECTOR"))
        if target not in _PROGRESS:
            raise errors.ValidationError(f"Cannot move a pickup to {target_status!r}")

        required, action = _PROGRESS[target]
        job = self.jobs.get(pickup_id)
        if job["status"] != required:
            raise errors.InvalidState(f"Pickup is {job['status']}; {target} requires {required}")
        if job["assigned_collector_id"] != collector_id:
            raise errors.Forbidden("Only the assigned collector can update this pickup")

        return self.jobs.transition_if_current(
            pickup_id, required, target,
            expected_version=job["version"],
            actor_id=collector_id,
            actor_role="COLLECTOR",
            action=action,
        )

    def cancel_job(self, pickup_id: str, requested_by: Caller) -> dict:
        job = self.jobs.get(pickup_id)
        status = job["status"]
        if status in TERMINAL_STATUSES:
            raise errors.InvalidState(f"Pickup is already {status}")

        if requested_by.role == "COLLECTOR":
            if not self.settings.allow_collector_abort:
                raise errors.Forbidden("Collectors cannot cancel pickups")
            if job["assigned_collector_id"] != requested_by.caller_id:
                raise errors.Forbidden("Only the assigned collector can abort this pickup")
            allowed = _ABORTABLE_BY_COLLECTOR
        elif requested_by.role == "REQUESTER":
            if job["requester_id"] != requested_by.caller_id:
                raise errors.Forbidden("Only the requester who created the pickup can cancel it")
            allowed = _CANCELLABLE_BY_OWNER
        else:
            allowed = _CANCELLABLE_BY_OWNER

        if status not in allowed:
            raise errors.InvalidState(f"A {status} pickup cannot be cancelled by {requested_by.role}")

        details = {}
        if job["assigned_collector_id"]:
            details["released_collector_id"] = job["assigned_collector_id"]
        return self.jobs.transition_if_current(
            pickup_id, status, CANCELLED,
            expected_version=job["version"],
            actor_id=requested_by.caller_id,
            actor_role=requested_by.role,
            action="PICKUP_CANCELLED",
            details=details,
        )

    # ---------- collectors ----------

    def report_collector_location(self, collector_id: str, lat: float, lng: float) -> dict:
        return self.directory.report_location(collector_id, lat, lng)
