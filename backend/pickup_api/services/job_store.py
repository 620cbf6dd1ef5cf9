# pickup_api/services/job_store.py
"""Pickup records and the guarded state transition.

``JobStore.transition_if_current`` is the only place in the code base that
changes ``pickups.status``. It issues a single conditional UPDATE keyed on
the expected status *and* the row version, so two callers racing out of the
same starting state cannot both succeed: the database applies one write and
the other matches zero rows and gets :class:`Conflict`.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Session

from pickup_api.tables import pickups, audit_logs
from pickup_api.schemas.common import (
    PENDING, ACTIVE_STATUSES, ASSIGNED_STATUSES, to_utc,
)
from pickup_api.utils.clock import Clock, IdFactory, now_utc, new_id
from . import errors

logger = logging.getLogger(__name__)

# columns a transition may touch besides status/version/updated_at
_TRANSITION_FIELDS = frozenset({"assigned_collector_id"})


def _pickup_dict(row) -> dict:
    return {
        "pickup_id": str(row["pickup_id"]),
        "requester_id": str(row["requester_id"]),
        "category": row["category"],
        "quantity_kg": float(row["quantity_kg"]),
        "scheduled_time": to_utc(row["scheduled_time"]),
        "note": row["note"],
        "lat": float(row["lat"]),
        "lng": float(row["lng"]),
        "status": row["status"],
        "assigned_collector_id": row["assigned_collector_id"],
        "version": int(row["version"]),
        "created_at": to_utc(row["created_at"]),
        "updated_at": to_utc(row["updated_at"]),
    }


class JobStore:
    def __init__(self, db: Session, clock: Clock = now_utc, id_factory: IdFactory = new_id):
        self.db = db
        self.clock = clock
        self.id_factory = id_factory

    # ---------- reads ----------

    def get(self, pickup_id: str) -> dict:
        row = self.db.execute(
            sa.select(pickups).where(pickups.c.pickup_id == pickup_id)
        ).mappings().first()
        if not row:
            raise errors.NotFound(f"Pickup {pickup_id} not found")
        return _pickup_dict(row)

    def list(
        self,
        status: Optional[str] = None,
        collector_id: Optional[str] = None,
        requester_id: Optional[str] = None,
    ) -> list[dict]:
        q = sa.select(pickups)
        if status is not None:
            q = q.where(pickups.c.status == status)
        if collector_id is not None:
            q = q.where(pickups.c.assigned_collector_id == collector_id)
        if requester_id is not None:
            q = q.where(pickups.c.requester_id == requester_id)
        q = q.order_by(pickups.c.created_at.desc(), pickups.c.pickup_id)
        return [_pickup_dict(r) for r in self.db.execute(q).mappings().all()]

    def collector_feed(self, collector_id: str, status: Optional[str] = None) -> list[dict]:
        """Open pickups nobody holds yet, plus everything assigned to ``collector_id``."""
        q = sa.select(pickups).where(
            sa.or_(
                sa.and_(pickups.c.status == PENDING, pickups.c.assigned_collector_id.is_(None)),
                pickups.c.assigned_collector_id == collector_id,
            )
        )
        if status is not None:
            q = q.where(pickups.c.status == status)
        q = q.order_by(pickups.c.created_at.desc(), pickups.c.pickup_id)
        return [_pickup_dict(r) for r in self.db.execute(q).mappings().all()]

    def count_active_for_collector(self, collector_id: str) -> int:
        return int(self.db.execute(
            sa.select(sa.func.count())
              .select_from(pickups)
              .where(pickups.c.assigned_collector_id == collector_id)
              .where(pickups.c.status.in_(sorted(ACTIVE_STATUSES)))
        ).scalar() or 0)

    def busy_collector_ids(self) -> set[str]:
        rows = self.db.execute(
            sa.select(pickups.c.assigned_collector_id)
              .where(pickups.c.status.in_(sorted(ACTIVE_STATUSES)))
              .distinct()
        ).scalars().all()
        return {str(r) for r in rows if r is not None}

    # ---------- writes ----------

    def create(
        self,
        *,
        requester_id: str,
        category: str,
        quantity_kg: float,
        scheduled_time,
        lat: float,
        lng: float,
        note: Optional[str] = None,
        actor_role: str = "REQUESTER",
    ) -> dict:
        pickup_id = self.id_factory()
        now = self.clock()
        self.db.execute(
            sa.insert(pickups).values(
                pickup_id=pickup_id,
                requester_id=requester_id,
                category=category,
                quantity_kg=quantity_kg,
                scheduled_time=to_utc(scheduled_time),
                note=note,
                lat=lat,
                lng=lng,
                status=PENDING,
                assigned_collector_id=None,
                version=1,
                created_at=now,
                updated_at=now,
            )
        )
        self._audit(requester_id, actor_role, "PICKUP_CREATED", pickup_id,
                    {"category": category, "quantity_kg": quantity_kg}, now)
        self.db.commit()
        logger.info("pickup %s created by requester %s", pickup_id, requester_id)
        return self.get(pickup_id)

    def transition_if_current(
        self,
        pickup_id: str,
        expected_status: str,
        next_status: str,
        *,
        expected_version: int,
        actor_id: Optional[str],
        actor_role: Optional[str],
        action: str,
        details: Optional[dict] = None,
        **fields: Any,
    ) -> dict:
        """Move ``pickup_id`` from ``expected_status`` to ``next_status``.

        The write only applies while the stored row still has
        ``expected_status`` and ``expected_version``; otherwise nothing is
        written and :class:`errors.Conflict` is raised (or
        :class:`errors.NotFound` if the row is gone).

        The assignment invariant is kept here: leaving the assigned states
        clears ``assigned_collector_id``, entering them from an unassigned
        state requires one.
        """
        unknown = set(fields) - _TRANSITION_FIELDS
        if unknown:
            raise TypeError(f"unsupported transition fields: {sorted(unknown)}")

        if next_status in ASSIGNED_STATUSES:
            if "assigned_collector_id" in fields and not fields["assigned_collector_id"]:
                raise ValueError("assigned states need a collector")
            if expected_status not in ASSIGNED_STATUSES and not fields.get("assigned_collector_id"):
                raise ValueError(f"{expected_status} -> {next_status} needs assigned_collector_id")
        else:
            fields["assigned_collector_id"] = None

        now = self.clock()
        res = self.db.execute(
            sa.update(pickups)
              .where(pickups.c.pickup_id == pickup_id)
              .where(pickups.c.status == expected_status)
              .where(pickups.c.version == expected_version)
              .values(
                  status=next_status,
                  version=pickups.c.version + 1,
                  updated_at=now,
                  **fields,
              )
        )
        if res.rowcount != 1:
            self.db.rollback()
            current = self.get(pickup_id)  # NotFound if the row vanished
            logger.warning(
                "guarded transition lost on pickup %s: wanted %s@v%s -> %s, found %s@v%s",
                pickup_id, expected_status, expected_version, next_status,
                current["status"], current["version"],
            )
            raise errors.Conflict(
                f"Pickup {pickup_id} changed concurrently "
                f"(now {current['status']}, version {current['version']})"
            )

        audit = {"from": expected_status, "to": next_status, "version": expected_version + 1}
        if fields.get("assigned_collector_id"):
            audit["collector_id"] = fields["assigned_collector_id"]
        audit.update(details or {})
        self._audit(actor_id, actor_role, action, pickup_id, audit, now)
        self.db.commit()

        logger.info("pickup %s %s -> %s (v%s)", pickup_id, expected_status, next_status, expected_version + 1)
        return self.get(pickup_id)

    def audit_trail(self, pickup_id: str) -> list[dict]:
        rows = self.db.execute(
            sa.select(audit_logs)
              .where(audit_logs.c.pickup_id == pickup_id)
              .order_by(audit_logs.c.log_id)
        ).mappings().all()
        return [dict(r) for r in rows]

    def _audit(self, actor_id, actor_role, action: str, pickup_id: Optional[str], details: dict, at) -> None:
        self.db.execute(
            sa.insert(audit_logs).values(
                actor_id=actor_id,
                actor_role=actor_role,
                action=action,
                pickup_id=pickup_id,
                details=details,
                created_at=at,
            )
        )
