# pickup_api/services/collectors.py
import logging
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Session

from pickup_api.tables import collectors, organizations, pickups
from pickup_api.schemas.common import to_utc, to_utc_opt
from pickup_api.utils.clock import Clock, IdFactory, now_utc, new_id
from pickup_api.utils.geo import valid_coordinates
from . import errors

logger = logging.getLogger(__name__)


def _collector_dict(row) -> dict:
    return {
        "collector_id": str(row["collector_id"]),
        "organization_id": str(row["organization_id"]),
        "full_name": row["full_name"],
        "phone": row["phone"],
        "last_lat": row["last_lat"],
        "last_lng": row["last_lng"],
        "last_seen_at": to_utc_opt(row["last_seen_at"]),
        "created_at": to_utc(row["created_at"]),
    }


def _organization_dict(row) -> dict:
    return {
        "organization_id": str(row["organization_id"]),
        "name": row["name"],
        "contact_phone": row["contact_phone"],
        "address": row["address"],
        "created_at": to_utc(row["created_at"]),
    }


def _required(value: Optional[str], label: str) -> str:
    v = (value or "").strip()
    if not v:
        raise errors.ValidationError(f"{label} is required")
    return v


class CollectorDirectory:
    """Known collectors and where they last reported from."""

    def __init__(self, db: Session, clock: Clock = now_utc, id_factory: IdFactory = new_id):
        self.db = db
        self.clock = clock
        self.id_factory = id_factory

    # ---------- organizations ----------

    def create_organization(self, name: str, contact_phone: Optional[str] = None,
                            address: Optional[str] = None) -> dict:
        name = _required(name, "name")
        exists = self.db.execute(
            sa.select(organizations.c.organization_id).where(organizations.c.name == name)
        ).scalar()
        if exists:
            raise errors.ValidationError(f"Organization '{name}' already exists")

        organization_id = self.id_factory()
        self.db.execute(
            sa.insert(organizations).values(
                organization_id=organization_id,
                name=name,
                contact_phone=contact_phone,
                address=address,
                created_at=self.clock(),
            )
        )
        self.db.commit()
        return self.get_organization(organization_id)

    def get_organization(self, organization_id: str) -> dict:
        row = self.db.execute(
            sa.select(organizations).where(organizations.c.organization_id == organization_id)
        ).mappings().first()
        if not row:
            raise errors.NotFound(f"Organization {organization_id} not found")
        return _organization_dict(row)

    def list_organizations(self) -> list[dict]:
        rows = self.db.execute(
            sa.select(organizations).order_by(organizations.c.name)
        ).mappings().all()
        return [_organization_dict(r) for r in rows]

    # ---------- collectors ----------

    def get(self, collector_id: str) -> dict:
        row = self.db.execute(
            sa.select(collectors).where(collectors.c.collector_id == collector_id)
        ).mappings().first()
        if not row:
            raise errors.NotFound(f"Collector {collector_id} not found")
        return _collector_dict(row)

    def exists(self, collector_id: str) -> bool:
        return bool(self.db.execute(
            sa.select(collectors.c.collector_id).where(collectors.c.collector_id == collector_id)
        ).scalar())

    def list_by_organization(self, organization_id: Optional[str] = None) -> list[dict]:
        q = sa.select(collectors)
        if organization_id is not None:
            q = q.where(collectors.c.organization_id == organization_id)
        q = q.order_by(collectors.c.collector_id)
        return [_collector_dict(r) for r in self.db.execute(q).mappings().all()]

    def create(self, organization_id: str, full_name: str, phone: str) -> dict:
        full_name = _required(full_name, "full_name")
        phone = _required(phone, "phone")
        self.get_organization(organization_id)

        collector_id = self.id_factory()
        self.db.execute(
            sa.insert(collectors).values(
                collector_id=collector_id,
                organization_id=organization_id,
                full_name=full_name,
                phone=phone,
                last_lat=None,
                last_lng=None,
                last_seen_at=None,
                created_at=self.clock(),
            )
        )
        self.db.commit()
        logger.info("collector %s registered in organization %s", collector_id, organization_id)
        return self.get(collector_id)

    def update(self, collector_id: str, organization_id: Optional[str] = None,
               full_name: Optional[str] = None, phone: Optional[str] = None) -> dict:
        self.get(collector_id)

        values: dict = {}
        if organization_id is not None:
            self.get_organization(organization_id)
            values["organization_id"] = organization_id
        if full_name is not None and full_name.strip():
            values["full_name"] = full_name.strip()
        if phone is not None and phone.strip():
            values["phone"] = phone.strip()

        if values:
            self.db.execute(
                sa.update(collectors).where(collectors.c.collector_id == collector_id).values(**values)
            )
            self.db.commit()
        return self.get(collector_id)

    def delete(self, collector_id: str) -> None:
        self.get(collector_id)
        referenced = self.db.execute(
            sa.select(sa.func.count()).select_from(pickups)
              .where(pickups.c.assigned_collector_id == collector_id)
        ).scalar()
        if referenced:
            raise errors.InvalidState(
                f"Collector {collector_id} is referenced by {referenced} pickup(s) and cannot be deleted"
            )
        self.db.execute(sa.delete(collectors).where(collectors.c.collector_id == collector_id))
        self.db.commit()
        logger.info("collector %s deleted", collector_id)

    def report_location(self, collector_id: str, lat: float, lng: float) -> dict:
        """Last write wins; stamps ``last_seen_at`` on every report."""
        if not valid_coordinates(lat, lng):
            raise errors.ValidationError("lat must be in [-90, 90] and lng in [-180, 180]")

        res = self.db.execute(
            sa.update(collectors)
              .where(collectors.c.collector_id == collector_id)
              .values(last_lat=float(lat), last_lng=float(lng), last_seen_at=self.clock())
        )
        if res.rowcount != 1:
            self.db.rollback()
            raise errors.NotFound(f"Collector {collector_id} not found")
        self.db.commit()
        return self.get(collector_id)
