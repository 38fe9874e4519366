"""HTTP client for the remote licensing and versions service.

Every call either returns the decoded JSON payload or raises one of the
typed errors from ``addon_updates.errors``:

- network failures and timeouts -> TransportError
- empty or undecodable bodies -> InvalidResponse
- ``{"code": ..., "message": ...}`` envelopes -> ApplicationError
"""

import asyncio
import json
import logging
from typing import Any, Optional
from urllib.parse import quote

import aiohttp

from addon_updates.config import UpdaterConfig
from addon_updates.errors import ApplicationError, InvalidResponse, TransportError

logger = logging.getLogger(__name__)


def process_api_response(status: int, body: str) -> Any:
    """Decode a remote response body.

    Args:
        status: HTTP status code.
        body: Raw response text.

    Returns:
        The decoded JSON payload.

    Raises:
        InvalidResponse: If the body is empty, not JSON, null or an empty
            list. An empty object is a valid payload.
        ApplicationError: If the body is an error envelope, or the status
            is an error without one.
    """
    try:
        payload = json.loads(body) if body else None
    except json.JSONDecodeError:
        payload = None

    if isinstance(payload, dict) and "code" in payload and "message" in payload:
        data = payload.get("data")
        raise ApplicationError(
            str(payload["code"]),
            str(payload["message"]),
            data if isinstance(data, dict) else {},
        )

    if status >= 400:
        raise ApplicationError(f"http_{status}", f"The server responded with HTTP {status}.")

    if payload is None or payload in ([], ""):
        raise InvalidResponse()

    return payload


class RemoteClient:
    """Client for the license and versions endpoints.

    Manages a shared aiohttp.ClientSession for connection reuse. Use as an
    async context manager or call close() when done.

    Attributes:
        config: Updater configuration (endpoint URLs, headers, timeout).
    """

    def __init__(self, config: UpdaterConfig) -> None:
        self.config = config
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session.

        Returns:
            The shared aiohttp ClientSession.
        """
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout)
            )
        return self._session

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "RemoteClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    def _headers(self) -> dict[str, str]:
        return {"Accept": "application/json", **self.config.api_headers}

    async def _request(
        self,
        method: str,
        url: str,
        params: Optional[dict[str, str]] = None,
        data: Optional[dict[str, str]] = None,
    ) -> Any:
        logger.debug("%s %s", method, url)
        session = await self._get_session()

        try:
            async with session.request(
                method, url, params=params, data=data, headers=self._headers()
            ) as response:
                body = await response.text()
                status = response.status
        except asyncio.TimeoutError as e:
            raise TransportError(f"Request to {url} timed out.") from e
        except aiohttp.ClientError as e:
            raise TransportError(f"Could not reach {url}: {e}") from e

        return process_api_response(status, body)

    def _license_url(self, license_key: str, action: str = "") -> str:
        url = f"{self.config.license_api_url}/{quote(license_key, safe='')}/"
        return url + action if action else url

    async def fetch_license(
        self, license_key: str, downloads: Optional[list[str]] = None
    ) -> Any:
        """Fetch the remote details of a license key for this site."""
        params = {"website": self.config.site_url}
        if downloads:
            params["downloads"] = ",".join(downloads)
        return await self._request("GET", self._license_url(license_key), params=params)

    async def activate_license(
        self, license_key: str, downloads: Optional[list[str]] = None
    ) -> Any:
        """Activate a license key for this site."""
        data = {"website": self.config.site_url}
        if downloads:
            data["downloads"] = ",".join(downloads)
        return await self._request(
            "POST", self._license_url(license_key, "activate"), data=data
        )

    async def deactivate_license(self, license_key: str) -> Any:
        """Deactivate a license key for this site."""
        return await self._request(
            "POST",
            self._license_url(license_key, "deactivate"),
            data={"website": self.config.site_url},
        )

    def versions_params(
        self,
        identifiers: list[str],
        license_key: Optional[str],
        fingerprint: Optional[str] = None,
    ) -> dict[str, str]:
        """Build the query of a versions request.

        The license parameters are omitted entirely when no key is active.
        """
        params: dict[str, str] = {}
        if license_key:
            params["hizzle_license"] = license_key
            params["hizzle_license_url"] = self.config.site_url
        params["downloads"] = ",".join(identifiers)
        if fingerprint:
            params["hash"] = fingerprint
        return params

    async def fetch_versions(
        self,
        identifiers: list[str],
        license_key: Optional[str],
        fingerprint: Optional[str] = None,
    ) -> dict[str, Any]:
        """Fetch latest version data for a batch of identifiers.

        Returns:
            Mapping identifier -> version data or ``{"error": ...}``.

        Raises:
            InvalidResponse: If the payload is not a JSON object.
        """
        payload = await self._request(
            "GET",
            self.config.versions_api_url,
            params=self.versions_params(identifiers, license_key, fingerprint),
        )
        if not isinstance(payload, dict):
            raise InvalidResponse()
        return payload
