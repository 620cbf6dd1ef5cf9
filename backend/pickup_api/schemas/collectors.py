from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class OrganizationCreate(BaseModel):
    name: str
    contact_phone: Optional[str] = None
    address: Optional[str] = None

class OrganizationOut(BaseModel):
    organization_id: str
    name: str
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    created_at: datetime

class CollectorCreate(BaseModel):
    organization_id: str
    full_name: str
    phone: str

class CollectorUpdate(BaseModel):
    organization_id: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None

class LocationIn(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

class CollectorOut(BaseModel):
    collector_id: str
    organization_id: str
    full_name: str
    phone: str
    last_lat: Optional[float] = None
    last_lng: Optional[float] = None
    last_seen_at: Optional[datetime] = None
    created_at: datetime
