# pickup_api/services/listings.py
from __future__ import annotations

from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Session

from pickup_api.tables import listings
from pickup_api.schemas.common import to_utc
from pickup_api.utils.clock import Clock, IdFactory, now_utc, new_id
from pickup_api.utils.geo import haversine_km
from . import errors

# how many recent listings are scanned before the radius filter
SCAN_LIMIT = 1000
DEFAULT_TOP = 100
MAX_TOP = 200


def _listing_dict(row) -> dict:
    return {
        "listing_id": str(row["listing_id"]),
        "title": row["title"],
        "description": row["description"],
        "price_per_kg": float(row["price_per_kg"]),
        "lat": row["lat"],
        "lng": row["lng"],
        "created_at": to_utc(row["created_at"]),
    }


class ListingCatalog:
    def __init__(self, db: Session, clock: Clock = now_utc, id_factory: IdFactory = new_id):
        self.db = db
        self.clock = clock
        self.id_factory = id_factory

    def create(self, title: str, description: str, price_per_kg: float,
               lat: Optional[float] = None, lng: Optional[float] = None) -> dict:
        title = (title or "").strip()
        if not title:
            raise errors.ValidationError("title is required")
        if (lat is None) != (lng is None):
            raise errors.ValidationError("lat and lng must be given together")

        listing_id = self.id_factory()
        self.db.execute(
            sa.insert(listings).values(
                listing_id=listing_id,
                title=title,
                description=description or "",
                price_per_kg=float(price_per_kg),
                lat=lat,
                lng=lng,
                created_at=self.clock(),
            )
        )
        self.db.commit()
        row = self.db.execute(
            sa.select(listings).where(listings.c.listing_id == listing_id)
        ).mappings().first()
        return _listing_dict(row)

    def list(self) -> list[dict]:
        rows = self.db.execute(
            sa.select(listings).order_by(listings.c.created_at.desc())
        ).mappings().all()
        return [_listing_dict(r) for r in rows]

    def search(self, q: Optional[str] = None, lat: Optional[float] = None, lng: Optional[float] = None,
               radius_km: Optional[float] = None, top: Optional[int] = None) -> list[dict]:
        """Keyword filter on title/description, then an optional radius filter sorted by distance."""
        limit = top if top is not None and 0 < top <= MAX_TOP else DEFAULT_TOP

        query = sa.select(listings)
        if q and q.strip():
            needle = f"%{q.strip().lower()}%"
            query = query.where(sa.or_(
                sa.func.lower(listings.c.title).like(needle),
                sa.func.lower(listings.c.description).like(needle),
            ))
        rows = self.db.execute(
            query.order_by(listings.c.created_at.desc()).limit(SCAN_LIMIT)
        ).mappings().all()
        items = [_listing_dict(r) for r in rows]

        if lat is None or lng is None or radius_km is None:
            return items[:limit]

        hits = []
        for item in items:
            if item["lat"] is None or item["lng"] is None:
                continue
            d = haversine_km(lat, lng, item["lat"], item["lng"])
            if d <= radius_km:
                hits.append({**item, "distance_km": round(d, 3)})
        hits.sort(key=lambda it: it["distance_km"])
        return hits[:limit]
