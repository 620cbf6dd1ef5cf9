# pickup_api/routers/listings.py
from fastapi import APIRouter, Depends, Query
from typing import Optional

from pickup_api.deps import get_catalog
from pickup_api.schemas.auth import Caller
from pickup_api.schemas.listings import ListingCreate, ListingOut
from pickup_api.services.listings import ListingCatalog
from pickup_api.utils.security import get_current_caller

router = APIRouter(prefix="/listings", tags=["listings"])

@router.get("", response_model=list[ListingOut])
def list_listings(
    caller: Caller = Depends(get_current_caller),
    catalog: ListingCatalog = Depends(get_catalog),
):
    return catalog.list()

@router.post("", status_code=201, response_model=ListingOut)
def create_listing(
    payload: ListingCreate,
    caller: Caller = Depends(get_current_caller),
    catalog: ListingCatalog = Depends(get_catalog),
):
    return catalog.create(payload.title, payload.description, payload.price_per_kg, payload.lat, payload.lng)

# keyword + radius search; the radius filter only applies when lat, lng and radius_km are all given
@router.get("/search", response_model=list[ListingOut])
def search_listings(
    q: Optional[str] = None,
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    radius_km: Optional[float] = Query(None, gt=0),
    top: Optional[int] = None,
    caller: Caller = Depends(get_current_caller),
    catalog: ListingCatalog = Depends(get_catalog),
):
    return catalog.search(q=q, lat=lat, lng=lng, radius_km=radius_km, top=top)
