"""
Garage Admin API Client

Minimal client for the Garage admin API, used to report node health
from the host side.
"""

import logging
import time
from typing import Any, Dict, Optional
from urllib.parse import urljoin

import requests

logger = logging.getLogger(__name__)


class GarageAdminClient:
    """Client for the Garage admin API."""

    def __init__(
        self,
        admin_endpoint: str,
        admin_token: Optional[str] = None,
        timeout: int = 10,
        retry_attempts: int = 2,
        retry_delay: float = 1.0,
    ):
        """
        Initialize the Garage admin client.

        Args:
            admin_endpoint: The URL of the Garage admin API (e.g., http://localhost:3903)
            admin_token: The admin token; only needed for authenticated endpoints
            timeout: Request timeout in seconds
            retry_attempts: Number of attempts for failed requests
            retry_delay: Delay between retries in seconds
        """
        self.admin_endpoint = admin_endpoint.rstrip("/")
        self.admin_token = admin_token
        self.timeout = timeout
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.session = requests.Session()
        if admin_token:
            self.session.headers.update({"Authorization": f"Bearer {admin_token}"})

    def _request(self, method: str, endpoint: str) -> Dict[str, Any]:
        """
        Make a request to the admin API with retries.

        Returns:
            The JSON body, or {"message": <text>} for plain-text responses

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        url = urljoin(self.admin_endpoint + "/", endpoint.lstrip("/"))

        for attempt in range(self.retry_attempts):
            try:
                response = self.session.request(method=method, url=url, timeout=self.timeout)
                response.raise_for_status()

                if not response.content:
                    return {}
                if "json" in response.headers.get("Content-Type", ""):
                    return response.json()
                return {"message": response.text.strip()}

            except requests.RequestException as e:
                if attempt < self.retry_attempts - 1:
                    logger.debug(f"Request to {url} failed (attempt {attempt + 1}): {e}")
                    time.sleep(self.retry_delay * (attempt + 1))
                else:
                    logger.debug(f"Request to {url} failed after {self.retry_attempts} attempts")
                    raise

    def health_check(self) -> Dict[str, Any]:
        """
        Check whether the node considers itself operational.

        Garage answers this endpoint without authentication.
        """
        return self._request("GET", "/health")

    def get_cluster_health(self) -> Dict[str, Any]:
        """
        Get the cluster health summary (nodes, partitions, status).

        Requires the admin token.
        """
        return self._request("GET", "/v2/GetClusterHealth")
