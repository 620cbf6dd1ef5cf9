# pickup_api/routers/collectors.py
from fastapi import APIRouter, Depends, HTTPException, Response
from typing import Optional

from pickup_api.deps import get_directory, get_lifecycle
from pickup_api.schemas.auth import Caller
from pickup_api.schemas.collectors import (
    CollectorCreate, CollectorUpdate, CollectorOut, LocationIn,
)
from pickup_api.schemas.pickups import PickupOut
from pickup_api.services.collectors import CollectorDirectory
from pickup_api.services.lifecycle import LifecycleController
from pickup_api.utils.security import get_current_caller, require_roles

router = APIRouter(prefix="/collectors", tags=["collectors"])


def _ensure_self_or_operator(caller: Caller, collector_id: str) -> None:
    if caller.role == "OPERATOR":
        return
    if caller.role == "COLLECTOR" and caller.caller_id == collector_id:
        return
    raise HTTPException(status_code=403, detail="Access denied")


@router.get("", response_model=list[CollectorOut])
def list_collectors(
    organization_id: Optional[str] = None,
    caller: Caller = Depends(get_current_caller),
    directory: CollectorDirectory = Depends(get_directory),
):
    return directory.list_by_organization(organization_id)


@router.post("", status_code=201, response_model=CollectorOut)
def create_collector(
    payload: CollectorCreate,
    caller: Caller = Depends(get_current_caller),
    directory: CollectorDirectory = Depends(get_directory),
):
    require_roles(caller, "OPERATOR")
    return directory.create(payload.organization_id, payload.full_name, payload.phone)


@router.get("/{collector_id}", response_model=CollectorOut)
def get_collector(
    collector_id: str,
    caller: Caller = Depends(get_current_caller),
    directory: CollectorDirectory = Depends(get_directory),
):
    return directory.get(collector_id)


@router.put("/{collector_id}", response_model=CollectorOut)
def update_collector(
    collector_id: str,
    payload: CollectorUpdate,
    caller: Caller = Depends(get_current_caller),
    directory: CollectorDirectory = Depends(get_directory),
):
    require_roles(caller, "OPERATOR")
    return directory.update(
        collector_id,
        organization_id=payload.organization_id,
        full_name=payload.full_name,
        phone=payload.phone,
    )


@router.delete("/{collector_id}", status_code=204)
def delete_collector(
    collector_id: str,
    caller: Caller = Depends(get_current_caller),
    directory: CollectorDirectory = Depends(get_directory),
):
    require_roles(caller, "OPERATOR")
    directory.delete(collector_id)
    return Response(status_code=204)


# GPS report from the collector app
@router.post("/{collector_id}/location", response_model=CollectorOut)
def report_location(
    collector_id: str,
    payload: LocationIn,
    caller: Caller = Depends(get_current_caller),
    lifecycle: LifecycleController = Depends(get_lifecycle),
):
    _ensure_self_or_operator(caller, collector_id)
    return lifecycle.report_collector_location(collector_id, payload.lat, payload.lng)


# "My jobs": open pickups plus the ones this collector holds
@router.get("/{collector_id}/pickups", response_model=list[PickupOut])
def collector_pickups(
    collector_id: str,
    status: Optional[str] = None,
    caller: Caller = Depends(get_current_caller),
    lifecycle: LifecycleController = Depends(get_lifecycle),
):
    _ensure_self_or_operator(caller, collector_id)
    return lifecycle.collector_feed(collector_id, status=status)
