"""Tests for the tracker service factory."""

from unittest.mock import patch

from moffittboard.adapters.tracker_factory import create_tracker_service
from moffittboard.core.tracker_service import TrackerService


class TestCreateTrackerService:
    @patch("moffittboard.adapters.tracker_factory.settings")
    def test_builds_from_settings(self, mock_settings, user_store):
        mock_settings.GEOFENCE_ENABLED = False
        mock_settings.RESET_TIMEZONE = "America/New_York"
        mock_settings.RESET_HOUR = 4
        mock_settings.ALLOWED_EMAIL_DOMAIN = "berkeley.edu"

        service = create_tracker_service(store=user_store)
        assert isinstance(service, TrackerService)
        assert service._boundary.timezone == "America/New_York"
        assert service._boundary.hour == 4
        assert service._geofence is None
        assert service._store is user_store

    @patch("moffittboard.adapters.tracker_factory.settings")
    def test_geofence_enabled(self, mock_settings, user_store):
        mock_settings.GEOFENCE_ENABLED = True
        mock_settings.GEOFENCE_LAT = 37.8726
        mock_settings.GEOFENCE_LON = -122.2607
        mock_settings.GEOFENCE_RADIUS_METERS = 200.0
        mock_settings.RESET_TIMEZONE = "America/Los_Angeles"
        mock_settings.RESET_HOUR = 0
        mock_settings.ALLOWED_EMAIL_DOMAIN = "berkeley.edu"

        service = create_tracker_service(store=user_store)
        assert service._geofence.radius_meters == 200.0
        assert service._geofence.center.lat == 37.8726

    @patch("moffittboard.adapters.tracker_factory.settings")
    def test_default_store_uses_database_path(self, mock_settings, tmp_db_path):
        mock_settings.GEOFENCE_ENABLED = False
        mock_settings.RESET_TIMEZONE = "America/Los_Angeles"
        mock_settings.RESET_HOUR = 0
        mock_settings.ALLOWED_EMAIL_DOMAIN = "berkeley.edu"

        with patch("moffittboard.config.settings.DATABASE_PATH", tmp_db_path):
            service = create_tracker_service()
        assert service._store._db_path == tmp_db_path
