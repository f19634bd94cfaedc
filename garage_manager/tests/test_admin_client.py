"""
Tests for the admin client module.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from garage_manager.admin_client import GarageAdminClient


def _response(content=b"", headers=None, json_data=None, text=""):
    response = MagicMock()
    response.content = content
    response.headers = headers or {}
    response.json.return_value = json_data
    response.text = text
    return response


class TestGarageAdminClient:
    """Tests for GarageAdminClient class."""

    def test_init(self):
        """Test client initialization."""
        client = GarageAdminClient(
            admin_endpoint="http://localhost:3903/",
            admin_token="test-token",
        )
        assert client.admin_endpoint == "http://localhost:3903"
        assert client.session.headers["Authorization"] == "Bearer test-token"

    def test_init_without_token(self):
        client = GarageAdminClient(admin_endpoint="http://localhost:3903")
        assert "Authorization" not in client.session.headers

    def test_health_check_plain_text(self):
        """Test that the plain-text health answer is wrapped."""
        client = GarageAdminClient(admin_endpoint="http://localhost:3903")
        client.session = MagicMock()
        client.session.request.return_value = _response(
            content=b"Garage is fully operational",
            headers={"Content-Type": "text/plain"},
            text="Garage is fully operational\n",
        )

        result = client.health_check()

        assert result == {"message": "Garage is fully operational"}
        call_args = client.session.request.call_args
        assert call_args[1]["url"] == "http://localhost:3903/health"

    def test_cluster_health_json(self):
        client = GarageAdminClient(admin_endpoint="http://localhost:3903", admin_token="t")
        client.session = MagicMock()
        client.session.request.return_value = _response(
            content=b"{}",
            headers={"Content-Type": "application/json"},
            json_data={"status": "healthy", "knownNodes": 1, "connectedNodes": 1},
        )

        result = client.get_cluster_health()

        assert result["status"] == "healthy"
        assert client.session.request.call_args[1]["url"] == "http://localhost:3903/v2/GetClusterHealth"

    def test_empty_body(self):
        client = GarageAdminClient(admin_endpoint="http://localhost:3903")
        client.session = MagicMock()
        client.session.request.return_value = _response()

        assert client.health_check() == {}


class TestClientRetry:
    """Tests for retry behavior."""

    @patch("time.sleep")
    def test_retry_on_failure(self, mock_sleep):
        """Test that requests are retried on failure."""
        client = GarageAdminClient(admin_endpoint="http://localhost:3903", retry_attempts=3)
        client.session = MagicMock()
        client.session.request.side_effect = [
            requests.ConnectionError("refused"),
            requests.ConnectionError("refused"),
            _response(content=b"ok", text="ok"),
        ]

        result = client.health_check()

        assert client.session.request.call_count == 3
        assert result == {"message": "ok"}
        assert mock_sleep.call_count == 2

    @patch("time.sleep")
    def test_raises_after_last_attempt(self, mock_sleep):
        client = GarageAdminClient(admin_endpoint="http://localhost:3903", retry_attempts=2)
        client.session = MagicMock()
        client.session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(requests.RequestException):
            client.health_check()

        assert client.session.request.call_count == 2
