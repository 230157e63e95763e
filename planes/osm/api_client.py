"""
OSM network clients

Handles communication with the Overpass API (read-only viewing) and the
OSM API (editor downloads and changeset uploads) including:
- Rate limiting
- Retry logic
- Error handling
"""

import time
from typing import Any, Dict, Optional, Tuple

import requests
from loguru import logger

from ..config import get_config
from ..exceptions import UploadError


BBox = Tuple[float, float, float, float]  # south, west, north, east


class _RetryingClient:
    """Shared rate limiting and retry loop"""

    def __init__(self):
        self.config = get_config()
        self._last_request_time = 0.0
        self._min_request_interval = self.config.api.min_request_interval

    def _rate_limit(self):
        """Ensure we don't exceed rate limits"""
        elapsed = time.time() - self._last_request_time
        if elapsed < self._min_request_interval:
            time.sleep(self._min_request_interval - elapsed)
        self._last_request_time = time.time()

    def _headers(self, content_type: Optional[str] = None) -> Dict[str, str]:
        headers = {"User-Agent": self.config.api.user_agent}
        if content_type:
            headers["Content-Type"] = content_type
        return headers

    def _request(
        self,
        method: str,
        url: str,
        retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        timeout: Optional[int] = None,
        **kwargs
    ) -> requests.Response:
        """
        Send a request, retrying timeouts, 429 and 504 with growing delays

        Raises:
            RuntimeError: if the request fails after all retries
        """
        retries = retries or self.config.api.max_retries
        retry_delay = retry_delay if retry_delay is not None else self.config.api.retry_delay
        timeout = timeout or self.config.api.request_timeout
        self._rate_limit()

        for attempt in range(retries):
            try:
                response = requests.request(method, url, timeout=timeout, **kwargs)
                response.raise_for_status()
                return response
            except requests.exceptions.Timeout:
                wait_time = retry_delay * (attempt + 1)
                logger.warning(f"{method} {url} timed out (attempt {attempt + 1}/{retries}). Retrying in {wait_time}s...")
                if attempt < retries - 1:
                    time.sleep(wait_time)
                else:
                    raise RuntimeError(f"{method} {url} timed out after {retries} attempts")
            except requests.exceptions.HTTPError as e:
                status = e.response.status_code if e.response is not None else None
                if status in [429, 504] and attempt < retries - 1:
                    wait_time = retry_delay * (attempt + 1)
                    logger.warning(f"{method} {url}: HTTP {status} (attempt {attempt + 1}/{retries}). Retrying in {wait_time}s...")
                    time.sleep(wait_time)
                else:
                    raise
            except requests.exceptions.RequestException as e:
                logger.warning(f"{method} {url} failed (attempt {attempt + 1}): {e}")
                if attempt < retries - 1:
                    time.sleep(retry_delay * (attempt + 1))
                else:
                    raise RuntimeError(f"{method} {url} failed after {retries} attempts: {e}") from e

        raise RuntimeError(f"{method} {url} failed after {retries} attempts")


class OverpassAPIClient(_RetryingClient):
    """Client for the Overpass API"""

    def query(self, query: str) -> Dict[str, Any]:
        """
        Execute Overpass API query with retry logic

        Args:
            query: Overpass QL query string

        Returns:
            JSON response from Overpass API

        Raises:
            RuntimeError: If query fails after all retries
        """
        try:
            response = self._request(
                "POST",
                self.config.api.overpass_url,
                data={"data": query},
                headers=self._headers("application/x-www-form-urlencoded"),
                timeout=self.config.api.overpass_timeout,
            )
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            logger.error(f"Overpass API failed: HTTP {status}")
            raise RuntimeError(f"Overpass API HTTP error {status}") from e
        return response.json()


class OsmApiClient(_RetryingClient):
    """Client for the OSM editing API (0.6)"""

    @property
    def base_url(self) -> str:
        return self.config.api.osm_api_url.rstrip("/")

    def _auth_headers(self, content_type: Optional[str] = None) -> Dict[str, str]:
        token = self.config.api.access_token
        if not token:
            raise UploadError("No OSM access token configured")
        headers = self._headers(content_type)
        headers["Authorization"] = f"Bearer {token}"
        return headers

    def get_map(self, bbox: BBox) -> Dict[str, Any]:
        """Download all entities in a bounding box with current versions"""
        south, west, north, east = bbox
        try:
            response = self._request(
                "GET",
                f"{self.base_url}/map.json",
                params={"bbox": f"{west},{south},{east},{north}"},
                headers=self._headers(),
            )
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            logger.error(f"OSM API map download failed: HTTP {status}")
            raise RuntimeError(f"OSM API HTTP error {status}") from e
        return response.json()

    def create_changeset(self, changeset_xml: bytes) -> int:
        response = self._write("PUT", f"{self.base_url}/changeset/create", changeset_xml)
        return int(response.text.strip())

    def upload_diff(self, changeset_id: int, osmchange_xml: bytes) -> str:
        response = self._write("POST", f"{self.base_url}/changeset/{changeset_id}/upload", osmchange_xml)
        return response.text

    def close_changeset(self, changeset_id: int) -> None:
        self._write("PUT", f"{self.base_url}/changeset/{changeset_id}/close", b"")

    def _write(self, method: str, url: str, body: bytes) -> requests.Response:
        # Writes are not idempotent, so they are sent once
        try:
            return self._request(method, url, retries=1, data=body, headers=self._auth_headers("text/xml"))
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            text = e.response.text if e.response is not None else ""
            logger.error(f"OSM API {method} {url} failed: HTTP {status} {text}")
            raise UploadError(f"OSM API rejected {method} {url}: HTTP {status}", status_code=status, body=text) from e
        except RuntimeError as e:
            raise UploadError(str(e)) from e
