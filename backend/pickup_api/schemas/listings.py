from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class ListingCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    price_per_kg: float = Field(..., ge=0)
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)

class ListingOut(BaseModel):
    listing_id: str
    title: str
    description: str
    price_per_kg: float
    lat: Optional[float] = None
    lng: Optional[float] = None
    created_at: datetime
    distance_km: Optional[float] = None
