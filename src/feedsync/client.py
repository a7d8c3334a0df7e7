"""Miniflux API client: authenticated transport over the v1 REST API."""

import json
import logging
from typing import Any

import httpx

from .config import Config

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class MinifluxClient:
    """Async transport for the Miniflux v1 API.

    Designed for single-instance lifecycle: create once at startup and
    reuse for every sync cycle. The config object is shared with the
    service layer, which advances its cursor.
    """

    def __init__(self, config: Config):
        self.config = config
        self.api_url = self._api_base(config.endpoint)
        self._client = httpx.AsyncClient(
            base_url=self.api_url,
            timeout=config.request_timeout,
            follow_redirects=True,
        )

    @staticmethod
    def _api_base(endpoint: str) -> str:
        """Normalize the endpoint so it always ends with ``/v1/``."""
        base = endpoint if endpoint.endswith("/") else endpoint + "/"
        if not base.endswith("/v1/"):
            base += "v1/"
        return base

    def _get_headers(self) -> dict[str, str]:
        """Fixed content type plus exactly one authentication header."""
        key = self.config.auth_key.get_secret_value()
        headers = {"Content-Type": FORM_CONTENT_TYPE}
        if self.config.api_key_auth:
            headers["X-Auth-Token"] = key
        else:
            headers["Authorization"] = f"Basic {key}"
        return headers

    async def call(
        self,
        path: str = "",
        method: str = "GET",
        body: Any = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Issue one request against the API base.

        Status codes are returned to the caller untouched; only transport
        level failures are raised.

        Raises:
            ServiceFailure: If the request could not be completed
        """
        content = json.dumps(body) if body is not None else None
        logger.debug("%s %s%s params=%s", method, self.api_url, path, params)
        try:
            return await self._client.request(
                method,
                path,
                params=params,
                content=content,
                headers=self._get_headers(),
            )
        except httpx.HTTPError as e:
            logger.warning("Request %s %s failed: %s", method, path, e)
            raise ServiceFailure(f"Service request failed: {e}") from e

    async def authenticate(self) -> bool:
        """Probe the ``me`` endpoint to check the configured credentials.

        Returns:
            False when the service rejects the credentials, True otherwise

        Raises:
            ServiceFailure: Only on transport failure
        """
        response = await self.call("me")
        try:
            data = response.json()
        except ValueError:
            logger.warning("Unreadable response from %sme (HTTP %d)", self.api_url, response.status_code)
            return False
        if not isinstance(data, dict) or data.get("error_message"):
            logger.info("Credentials rejected by %s", self.api_url)
            return False
        logger.info("Authentication successful")
        return True

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()


class ServiceFailure(Exception):
    """Raised when the remote service cannot be reached or answers garbage."""
