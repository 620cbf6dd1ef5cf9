# pickup_api/schemas/common.py
from typing import Literal, Optional
from datetime import datetime, timezone

# Roles
Role = Literal["REQUESTER", "COLLECTOR", "OPERATOR"]

# Pickup lifecycle
PickupStatus = Literal["PENDING", "ACCEPTED", "IN_PROGRESS", "COMPLETED", "CANCELLED"]

PENDING = "PENDING"
ACCEPTED = "ACCEPTED"
IN_PROGRESS = "IN_PROGRESS"
COMPLETED = "COMPLETED"
CANCELLED = "CANCELLED"

PICKUP_STATUSES = frozenset({PENDING, ACCEPTED, IN_PROGRESS, COMPLETED, CANCELLED})
ASSIGNED_STATUSES = frozenset({ACCEPTED, IN_PROGRESS, COMPLETED})
ACTIVE_STATUSES = frozenset({ACCEPTED, IN_PROGRESS})
TERMINAL_STATUSES = frozenset({COMPLETED, CANCELLED})

# UTC helpers
def to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)

def to_utc_opt(dt: Optional[datetime]) -> Optional[datetime]:
    return to_utc(dt) if dt is not None else None

# Older clients send lower-case statuses and "InProgress"
def normalize_status(value: str) -> str:
    v = (value or "").strip().upper().replace("-", "_")
    return "IN_PROGRESS" if v == "INPROGRESS" else v
