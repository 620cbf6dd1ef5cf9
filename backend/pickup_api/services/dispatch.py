# pickup_api/services/dispatch.py
"""Nearest-collector dispatch.

Picks the closest collector with a usable position and assigns the pickup
through the guarded PENDING -> ACCEPTED transition. When nobody has a usable
position the lowest-id candidate is assigned "blind"; that outcome is
reported with ``distance_km=None`` so callers can flag it for review.
"""
import datetime as dt
import logging
import math
from dataclasses import dataclass
from typing import Iterable, Optional

from pickup_api.config import Settings
from pickup_api.schemas.common import PENDING, ACCEPTED, to_utc
from pickup_api.utils.clock import Clock, now_utc
from pickup_api.utils.geo import haversine_km, valid_coordinates
from .collectors import CollectorDirectory
from .job_store import JobStore
from . import errors

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchResult:
    collector_id: str
    distance_km: Optional[float]
    pickup: dict

    @property
    def geo_matched(self) -> bool:
        return self.distance_km is not None


def has_usable_position(collector: dict, now: dt.datetime, max_age_seconds: Optional[int] = None) -> bool:
    if collector.get("last_lat") is None or collector.get("last_lng") is None:
        return False
    if max_age_seconds is None:
        return True
    seen = collector.get("last_seen_at")
    if seen is None:
        return False
    return to_utc(now) - to_utc(seen) <= dt.timedelta(seconds=max_age_seconds)


def choose_collector(
    candidates: Iterable[dict],
    origin_lat: float,
    origin_lng: float,
    radius_km: float,
    now: dt.datetime,
    max_age_seconds: Optional[int] = None,
) -> tuple[dict, Optional[float]]:
    """Return ``(collector, distance_km)`` for the best candidate.

    Raises NoCandidates for an empty set and OutOfRange when the closest
    located collector is farther than ``radius_km``. ``distance_km`` is None
    for the fallback pick.
    """
    candidates = list(candidates)
    if not candidates:
        raise errors.NoCandidates("No collectors available")

    located = [c for c in candidates if has_usable_position(c, now, max_age_seconds)]
    if not located:
        return min(candidates, key=lambda c: c["collector_id"]), None

    ranked = sorted(
        (
            (haversine_km(origin_lat, origin_lng, c["last_lat"], c["last_lng"]), c["collector_id"], c)
            for c in located
        ),
        key=lambda t: (t[0], t[1]),
    )
    distance, _, nearest = ranked[0]
    if distance > radius_km:
        raise errors.OutOfRange(
            f"Nearest collector is {distance:.2f} km away (> {radius_km:g} km)",
            distance_km=distance,
            radius_km=radius_km,
        )
    return nearest, distance


class DispatchEngine:
    def __init__(self, jobs: JobStore, directory: CollectorDirectory, settings: Settings,
                 clock: Clock = now_utc):
        self.jobs = jobs
        self.directory = directory
        self.settings = settings
        self.clock = clock

    def dispatch(
        self,
        pickup_id: str,
        origin_lat: float,
        origin_lng: float,
        radius_km: Optional[float] = None,
        organization_id: Optional[str] = None,
        *,
        actor_id: Optional[str] = None,
        actor_role: Optional[str] = "OPERATOR",
    ) -> DispatchResult:
        radius = self.settings.dispatch_default_radius_km if radius_km is None else float(radius_km)
        if not math.isfinite(radius) or radius <= 0:
            raise errors.ValidationError("radius_km must be > 0")
        if not valid_coordinates(origin_lat, origin_lng):
            raise errors.ValidationError("lat must be in [-90, 90] and lng in [-180, 180]")

        job = self.jobs.get(pickup_id)
        if job["status"] != PENDING:
            raise errors.InvalidState(f"Only PENDING pickups can be dispatched (pickup is {job['status']})")

        candidates = self.directory.list_by_organization(organization_id)
        if not candidates:
            raise errors.NoCandidates(
                "No collectors available" if organization_id is None
                else f"No collectors available in organization {organization_id}"
            )
        if self.settings.single_active_job_per_collector:
            busy = self.jobs.busy_collector_ids()
            candidates = [c for c in candidates if c["collector_id"] not in busy]
            if not candidates:
                raise errors.NoCandidates("Every candidate collector already has an active pickup")

        chosen, distance = choose_collector(
            candidates, float(origin_lat), float(origin_lng), radius,
            now=self.clock(),
            max_age_seconds=self.settings.max_location_age_seconds,
        )
        collector_id = chosen["collector_id"]

        details = {"radius_km": radius, "distance_km": distance, "fallback": distance is None}
        if organization_id is not None:
            details["organization_id"] = organization_id

        updated = self.jobs.transition_if_current(
            pickup_id, PENDING, ACCEPTED,
            expected_version=job["version"],
            actor_id=actor_id,
            actor_role=actor_role,
            action="PICKUP_DISPATCHED",
            details=details,
            assigned_collector_id=collector_id,
        )

        if distance is None:
            logger.warning(
                "pickup %s dispatched blind to collector %s: no candidate has a usable position",
                pickup_id, collector_id,
            )
        else:
            logger.info("pickup %s dispatched to collector %s at %.2f km", pickup_id, collector_id, distance)
        return DispatchResult(collector_id=collector_id, distance_km=distance, pickup=updated)
