"""
Async ClickUp API Client - aiohttp client used for the hierarchy walk.

Each call is a single request; retry and timeout policy is applied by the
caller (see RetryEnvelope), so this client only translates HTTP outcomes
into typed errors.

ClickUp REST API documentation:
https://clickup.com/api
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import aiohttp

from tracktree.adapters.http_base import get_retry_after
from tracktree.core.domain.enums import CollectionKind
from tracktree.core.exceptions import (
    AccessDeniedError,
    ApiResponseError,
    AuthenticationError,
    RateLimitError,
    ResourceNotFoundError,
    TrackerError,
    TransientError,
    TransportError,
)
from tracktree.core.ports.collection_client import CollectionClientPort


DEFAULT_BASE_URL = "https://api.clickup.com/api/v2"

# Query parameters sent with every collection listing
COLLECTION_PARAMS: dict[CollectionKind, dict[str, str]] = {
    CollectionKind.SPACES: {"archived": "false"},
    CollectionKind.FOLDERS: {"archived": "false"},
    CollectionKind.SPACE_LISTS: {"archived": "false"},
    CollectionKind.FOLDER_LISTS: {"archived": "false"},
    CollectionKind.TASKS: {
        "archived": "false",
        "include_markdown_description": "false",
        "subtasks": "true",
        "include_closed": "false",
    },
}


class AsyncClickUpApiClient(CollectionClientPort):
    """
    Async ClickUp REST API v2 client.

    The aiohttp session is created lazily on first use; use the client as an
    async context manager (or call close()) to release it.
    """

    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        api_token: str,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
    ):
        """
        Initialize the client.

        Args:
            api_token: Personal API token
            base_url: Override the ClickUp API URL
            timeout: Socket-level timeout in seconds
            session: Pre-built session (for testing); not closed by close()
        """
        self.api_token = api_token
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None
        self.logger = logging.getLogger("AsyncClickUpApiClient")

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": self.api_token,
            "Content-Type": "application/json",
        }

    def _build_url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    # -------------------------------------------------------------------------
    # Session Management
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        """Create the HTTP session if there is none yet."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                headers=self.headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
            self._owns_session = True

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
            self.logger.debug("Closed HTTP session")
        self._session = None

    async def __aenter__(self) -> AsyncClickUpApiClient:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: Any) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    async def request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Make one authenticated request.

        Raises:
            TransportError: On connection failures and timeouts
            TrackerError: On error responses (typed by status code)
        """
        await self.connect()
        session = self._session
        if session is None:
            raise TransportError(f"No HTTP session for {endpoint}", resource=endpoint)
        url = self._build_url(endpoint)

        try:
            async with session.request(
                method, url, params=params, json=json_body, headers=self.headers
            ) as response:
                status = response.status
                text = await response.text()
                if status >= 400:
                    self._raise_for_status(status, text, response.headers, endpoint)
        except aiohttp.ClientError as e:
            raise TransportError(f"Connection failed for {endpoint}", resource=endpoint, cause=e) from e
        except asyncio.TimeoutError as e:
            raise TransportError(f"Request timed out for {endpoint}", resource=endpoint, cause=e) from e

        self.logger.debug(f"{method} {endpoint} -> {status}")
        return self._parse_body(text, endpoint)

    def _parse_body(self, text: str, endpoint: str) -> dict[str, Any]:
        if not text:
            return {}
        try:
            payload = json.loads(text)
        except ValueError as e:
            raise ApiResponseError(f"Invalid JSON from {endpoint}", resource=endpoint, cause=e) from e
        if not isinstance(payload, dict):
            raise ApiResponseError(f"Unexpected payload from {endpoint}", resource=endpoint)
        # Some endpoints report failures in the body with a 200 status
        if payload.get("err"):
            raise ApiResponseError(f"ClickUp error for {endpoint}: {payload['err']}", resource=endpoint)
        return payload

    def _raise_for_status(
        self,
        status: int,
        text: str,
        headers: Any,
        endpoint: str,
    ) -> None:
        error_body = text[:500] if text else ""
        if status == 401:
            raise AuthenticationError("ClickUp authentication failed. Check your token.")
        if status == 403:
            raise AccessDeniedError(f"Permission denied for {endpoint}", resource=endpoint)
        if status == 404:
            raise ResourceNotFoundError(f"Not found: {endpoint}", resource=endpoint)
        if status == 429:
            raise RateLimitError(
                f"ClickUp rate limit exceeded for {endpoint}",
                retry_after=get_retry_after(headers),
                resource=endpoint,
            )
        if status >= 500:
            raise TransientError(f"ClickUp server error {status} for {endpoint}", resource=endpoint)
        raise TrackerError(f"ClickUp API error {status}: {error_body}", resource=endpoint)

    # -------------------------------------------------------------------------
    # Collections
    # -------------------------------------------------------------------------

    async def fetch_collection(
        self,
        kind: CollectionKind,
        parent_id: str,
        page: int | None = None,
    ) -> list[dict[str, Any]]:
        params = dict(COLLECTION_PARAMS[kind])
        if page is not None:
            params["page"] = str(page)

        endpoint = kind.path(parent_id)
        payload = await self.request("GET", endpoint, params=params)
        records = payload.get(kind.response_key) or []
        if not isinstance(records, list):
            raise ApiResponseError(
                f"Expected a list under '{kind.response_key}' from {endpoint}", resource=endpoint
            )
        return records
