# pickup_api/schemas/pickups.py
from __future__ import annotations
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from .common import PickupStatus, normalize_status


# ---- Request models ----

class PickupCreate(BaseModel):
    # requester_id comes from the token, never from the body
    category: str = Field(..., description="Scrap category, e.g. 'Cardboard'")
    quantity_kg: float = Field(..., description="Estimated quantity (kg), must be > 0")
    scheduled_time: datetime
    lat: float
    lng: float
    note: Optional[str] = None


class AcceptIn(BaseModel):
    # only operators may accept on behalf of a collector
    collector_id: Optional[str] = None


class StatusUpdateIn(BaseModel):
    status: PickupStatus

    @field_validator("status", mode="before")
    @classmethod
    def _v_status(cls, v):
        return normalize_status(v) if isinstance(v, str) else v


class DispatchIn(BaseModel):
    # origin defaults to the pickup location
    lat: Optional[float] = None
    lng: Optional[float] = None
    radius_km: Optional[float] = Field(None, gt=0)
    organization_id: Optional[str] = None


# ---- Response models ----

class PickupOut(BaseModel):
    pickup_id: str
    requester_id: str
    category: str
    quantity_kg: float
    scheduled_time: datetime
    note: Optional[str] = None
    lat: float
    lng: float
    status: PickupStatus
    assigned_collector_id: Optional[str] = None
    version: int
    created_at: datetime
    updated_at: datetime


class DispatchOut(BaseModel):
    assigned_collector_id: str
    # None means no collector had a usable position and the first candidate was taken
    distance_km: Optional[float] = None
    note: Optional[str] = None
    pickup: PickupOut
