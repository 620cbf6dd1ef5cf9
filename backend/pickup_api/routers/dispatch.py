# pickup_api/routers/dispatch.py
from fastapi import APIRouter, Depends

from pickup_api.deps import get_lifecycle
from pickup_api.schemas.auth import Caller
from pickup_api.schemas.common import PENDING
from pickup_api.services.lifecycle import LifecycleController
from pickup_api.utils.security import get_current_caller, require_roles

router = APIRouter(prefix="/dispatch", tags=["dispatch"])

# Live map for the dispatch screen: every collector with its last position + open pickups
@router.get("/live")
def live_map(
    caller: Caller = Depends(get_current_caller),
    lifecycle: LifecycleController = Depends(get_lifecycle),
):
    require_roles(caller, "OPERATOR")
    collectors = lifecycle.directory.list_by_organization()
    pending = lifecycle.list_jobs(status=PENDING)
    return {
        "collectors": [
            {
                "collector_id": c["collector_id"],
                "full_name": c["full_name"],
                "phone": c["phone"],
                "organization_id": c["organization_id"],
                "last_lat": c["last_lat"],
                "last_lng": c["last_lng"],
                "last_seen_at": c["last_seen_at"],
            }
            for c in collectors
        ],
        "pending_pickups": [
            {
                "pickup_id": p["pickup_id"],
                "category": p["category"],
                "quantity_kg": p["quantity_kg"],
                "lat": p["lat"],
                "lng": p["lng"],
                "scheduled_time": p["scheduled_time"],
                "created_at": p["created_at"],
                "requester_id": p["requester_id"],
            }
            for p in pending
        ],
    }
