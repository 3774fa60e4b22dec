"""Tests for URL builder utilities."""

from unittest.mock import patch


class TestBuildUrls:
    def test_builds_activities_url(self):
        from core.notifications.urls import build_activities_url

        with patch(
            "core.notifications.urls.get_frontend_url",
            return_value="https://courses.example.com",
        ):
            url = build_activities_url()

        assert url == "https://courses.example.com/activities"

    def test_builds_offering_url(self):
        from core.notifications.urls import build_offering_url

        with patch(
            "core.notifications.urls.get_frontend_url",
            return_value="https://courses.example.com",
        ):
            url = build_offering_url(42)

        assert url == "https://courses.example.com/courses/offerings/42"

    def test_frontend_url_strips_trailing_slash(self):
        from core.config import get_frontend_url

        with patch.dict("os.environ", {"FRONTEND_URL": "https://courses.example.com/"}):
            assert get_frontend_url() == "https://courses.example.com"
