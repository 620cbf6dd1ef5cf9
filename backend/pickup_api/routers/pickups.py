# pickup_api/routers/pickups.py
from fastapi import APIRouter, Depends, HTTPException
from typing import Optional

from pickup_api.deps import get_lifecycle
from pickup_api.schemas.auth import Caller
from pickup_api.schemas.common import PENDING
from pickup_api.schemas.pickups import (
    PickupCreate, PickupOut, AcceptIn, StatusUpdateIn, DispatchIn, DispatchOut,
)
from pickup_api.services.lifecycle import LifecycleController
from pickup_api.utils.security import get_current_caller, require_roles

router = APIRouter(prefix="/pickups", tags=["pickups"])


def _ensure_can_view(caller: Caller, job: dict) -> None:
    if caller.role == "OPERATOR":
        return
    if caller.role == "REQUESTER" and job["requester_id"] == caller.caller_id:
        return
    if caller.role == "COLLECTOR" and (
        job["status"] == PENDING or job["assigned_collector_id"] == caller.caller_id
    ):
        return
    # do not leak existence of other people's pickups
    raise HTTPException(status_code=404, detail="Pickup not found or not accessible")


# CREATE (REQUESTER)
@router.post("", status_code=201, response_model=PickupOut)
def create_pickup(
    payload: PickupCreate,
    caller: Caller = Depends(get_current_caller),
    lifecycle: LifecycleController = Depends(get_lifecycle),
):
    require_roles(caller, "REQUESTER")
    return lifecycle.create_job(
        requester_id=caller.caller_id,
        category=payload.category,
        quantity_kg=payload.quantity_kg,
        scheduled_time=payload.scheduled_time,
        lat=payload.lat,
        lng=payload.lng,
        note=payload.note,
    )


# LIST (OPERATOR: everything + filters; REQUESTER: own)
@router.get("", response_model=list[PickupOut])
def list_pickups(
    status: Optional[str] = None,
    collector_id: Optional[str] = None,
    requester_id: Optional[str] = None,
    caller: Caller = Depends(get_current_caller),
    lifecycle: LifecycleController = Depends(get_lifecycle),
):
    if caller.role == "REQUESTER":
        requester_id = caller.caller_id
    elif caller.role != "OPERATOR":
        raise HTTPException(status_code=403, detail="Collectors use /collectors/{id}/pickups")
    return lifecycle.list_jobs(status=status, collector_id=collector_id, requester_id=requester_id)


@router.get("/{pickup_id}", response_model=PickupOut)
def get_pickup(
    pickup_id: str,
    caller: Caller = Depends(get_current_caller),
    lifecycle: LifecycleController = Depends(get_lifecycle),
):
    job = lifecycle.get_job(pickup_id)
    _ensure_can_view(caller, job)
    return job


@router.get("/{pickup_id}/history")
def pickup_history(
    pickup_id: str,
    caller: Caller = Depends(get_current_caller),
    lifecycle: LifecycleController = Depends(get_lifecycle),
):
    require_roles(caller, "OPERATOR")
    lifecycle.get_job(pickup_id)
    return [
        {
            "action": r["action"],
            "actor_id": r["actor_id"],
            "actor_role": r["actor_role"],
            "details": r["details"] or {},
            "created_at": r["created_at"],
        }
        for r in lifecycle.jobs.audit_trail(pickup_id)
    ]


# ACCEPT (COLLECTOR for itself, OPERATOR on behalf of a collector)
@router.post("/{pickup_id}/accept", response_model=PickupOut)
def accept_pickup(
    pickup_id: str,
    payload: Optional[AcceptIn] = None,
    caller: Caller = Depends(get_current_caller),
    lifecycle: LifecycleController = Depends(get_lifecycle),
):
    require_roles(caller, "COLLECTOR", "OPERATOR")
    if caller.role == "COLLECTOR":
        collector_id = caller.caller_id
    else:
        collector_id = payload.collector_id if payload else None
        if not collector_id:
            raise HTTPException(status_code=422, detail="collector_id is required")
    return lifecycle.accept_job(pickup_id, collector_id, actor=caller)


# PROGRESS (assigned COLLECTOR)
@router.post("/{pickup_id}/status", response_model=PickupOut)
def update_pickup_status(
    pickup_id: str,
    payload: StatusUpdateIn,
    caller: Caller = Depends(get_current_caller),
    lifecycle: LifecycleController = Depends(get_lifecycle),
):
    require_roles(caller, "COLLECTOR")
    return lifecycle.advance_status(pickup_id, caller.caller_id, payload.status)


@router.post("/{pickup_id}/cancel", response_model=PickupOut)
def cancel_pickup(
    pickup_id: str,
    caller: Caller = Depends(get_current_caller),
    lifecycle: LifecycleController = Depends(get_lifecycle),
):
    return lifecycle.cancel_job(pickup_id, caller)


# DISPATCH (OPERATOR)
@router.post("/{pickup_id}/dispatch-nearest", response_model=DispatchOut)
def dispatch_nearest(
    pickup_id: str,
    payload: Optional[DispatchIn] = None,
    caller: Caller = Depends(get_current_caller),
    lifecycle: LifecycleController = Depends(get_lifecycle),
):
    require_roles(caller, "OPERATOR")
    payload = payload or DispatchIn()
    result = lifecycle.dispatch_nearest(
        pickup_id,
        lat=payload.lat,
        lng=payload.lng,
        radius_km=payload.radius_km,
        organization_id=payload.organization_id,
        actor=caller,
    )
    return {
        "assigned_collector_id": result.collector_id,
        "distance_km": result.distance_km,
        "note": None if result.geo_matched else "No collector position known; assigned first collector.",
        "pickup": result.pickup,
    }
