"""Tracker service factory — wires the service from config."""

from __future__ import annotations

from moffittboard.config import settings
from moffittboard.core.daily_reset import ResetBoundary
from moffittboard.core.geofence import Geofence, GeoPoint
from moffittboard.core.tracker_service import TrackerService
from moffittboard.ports.record_store import RecordStore


def create_tracker_service(store: RecordStore | None = None) -> TrackerService:
    """Return a TrackerService built from settings.

    Args:
        store: Record store to use. Defaults to a UserStore at DATABASE_PATH.
    """
    if store is None:
        from moffittboard.data.db import UserStore

        store = UserStore()

    geofence = None
    if settings.GEOFENCE_ENABLED:
        geofence = Geofence(
            center=GeoPoint(settings.GEOFENCE_LAT, settings.GEOFENCE_LON),
            radius_meters=settings.GEOFENCE_RADIUS_METERS,
        )

    return TrackerService(
        store=store,
        boundary=ResetBoundary(timezone=settings.RESET_TIMEZONE, hour=settings.RESET_HOUR),
        allowed_domain=settings.ALLOWED_EMAIL_DOMAIN,
        geofence=geofence,
    )
