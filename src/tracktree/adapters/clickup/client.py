"""
ClickUp API Client - Synchronous HTTP client for the ClickUp REST API.

Used for everything outside the hierarchy walk: token checks, users,
single tasks and time entries.

ClickUp REST API documentation:
https://clickup.com/api
"""

import logging
import time
from typing import Any

import requests
from requests.adapters import HTTPAdapter

from tracktree.adapters.http_base import (
    RETRYABLE_STATUS_CODES,
    calculate_delay,
    get_retry_after,
)
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


DEFAULT_BASE_URL = "https://api.clickup.com/api/v2"


class ClickUpApiClient:
    """
    Low-level ClickUp REST API client.

    Features:
    - Personal token authentication
    - Automatic retry with exponential backoff for transient failures
    - Connection pooling
    - Dry-run mode for write operations
    """

    # Default retry configuration
    DEFAULT_MAX_RETRIES = 3
    DEFAULT_INITIAL_DELAY = 1.0
    DEFAULT_MAX_DELAY = 60.0
    DEFAULT_BACKOFF_FACTOR = 2.0
    DEFAULT_JITTER = 0.1

    # Connection pool settings
    DEFAULT_POOL_CONNECTIONS = 10
    DEFAULT_POOL_MAXSIZE = 10
    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        api_token: str,
        team_id: str | None = None,
        base_url: str | None = None,
        dry_run: bool = False,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        max_delay: float = DEFAULT_MAX_DELAY,
        backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
        jitter: float = DEFAULT_JITTER,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initialize the ClickUp client.

        Args:
            api_token: Personal API token
            team_id: Team (workspace) id used by team-scoped endpoints
            base_url: Override the ClickUp API URL
            dry_run: If True, don't make write operations
            max_retries: Maximum retry attempts for transient failures
            initial_delay: Initial retry delay in seconds
            max_delay: Maximum retry delay in seconds
            backoff_factor: Multiplier for exponential backoff
            jitter: Random jitter factor (0.1 = 10%)
            timeout: Request timeout in seconds
        """
        self.api_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.api_token = api_token
        self.team_id = team_id
        self.dry_run = dry_run
        self.timeout = timeout
        self.logger = logging.getLogger("ClickUpApiClient")

        # Retry configuration
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.backoff_factor = backoff_factor
        self.jitter = jitter

        self.headers = {
            "Authorization": api_token,
            "Content-Type": "application/json",
        }

        self._session = requests.Session()
        self._session.headers.update(self.headers)

        adapter = HTTPAdapter(
            pool_connections=self.DEFAULT_POOL_CONNECTIONS,
            pool_maxsize=self.DEFAULT_POOL_MAXSIZE,
        )
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)

        self._current_user: dict[str, Any] | None = None

    # -------------------------------------------------------------------------
    # Core Request Methods
    # -------------------------------------------------------------------------

    def request(self, method: str, endpoint: str, **kwargs: Any) -> dict[str, Any]:
        """
        Make an authenticated request with retry.

        Args:
            method: HTTP method
            endpoint: API endpoint relative to the API URL (e.g. 'user')
            **kwargs: Additional arguments for requests

        Returns:
            Parsed JSON body

        Raises:
            TrackerError: On API errors after all retries are exhausted
        """
        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        kwargs.setdefault("timeout", self.timeout)
        last_exception: Exception | None = None

        for attempt in range(self.max_retries + 1):
            try:
                response = self._session.request(method, url, **kwargs)

                if response.status_code in RETRYABLE_STATUS_CODES:
                    retry_after = get_retry_after(response.headers)
                    if attempt < self.max_retries:
                        delay = self._delay(attempt, retry_after)
                        self.logger.warning(
                            f"Retryable error {response.status_code} on {method} {endpoint}, "
                            f"attempt {attempt + 1}/{self.max_retries + 1}, "
                            f"retrying in {delay:.2f}s"
                        )
                        time.sleep(delay)
                        continue

                    if response.status_code == 429:
                        raise RateLimitError(
                            f"ClickUp rate limit exceeded for {endpoint}",
                            retry_after=retry_after,
                            resource=endpoint,
                        )
                    raise TransientError(
                        f"ClickUp server error {response.status_code} for {endpoint}",
                        resource=endpoint,
                    )

                return self._handle_response(response, endpoint)

            except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
                last_exception = e
                if attempt < self.max_retries:
                    delay = self._delay(attempt)
                    self.logger.warning(
                        f"{type(e).__name__} on {method} {endpoint}, retrying in {delay:.2f}s"
                    )
                    time.sleep(delay)
                    continue
                raise TransportError(f"Request failed: {e}", resource=endpoint, cause=e) from e

        raise TransportError(
            f"Request failed after {self.max_retries + 1} attempts",
            resource=endpoint,
            cause=last_exception,
        )

    def _delay(self, attempt: int, retry_after: float | None = None) -> float:
        return calculate_delay(
            attempt,
            initial_delay=self.initial_delay,
            max_delay=self.max_delay,
            backoff_factor=self.backoff_factor,
            jitter=self.jitter,
            retry_after=retry_after,
        )

    def get(self, endpoint: str, **kwargs: Any) -> dict[str, Any]:
        """Perform a GET request."""
        return self.request("GET", endpoint, **kwargs)

    def post(self, endpoint: str, json: dict[str, Any] | None = None, **kwargs: Any) -> dict[str, Any]:
        """Perform a POST request. Respects dry_run mode."""
        if self.dry_run:
            self.logger.info(f"[DRY-RUN] Would POST to {endpoint}")
            return {}
        return self.request("POST", endpoint, json=json, **kwargs)

    def put(self, endpoint: str, json: dict[str, Any] | None = None, **kwargs: Any) -> dict[str, Any]:
        """Perform a PUT request. Respects dry_run mode."""
        if self.dry_run:
            self.logger.info(f"[DRY-RUN] Would PUT to {endpoint}")
            return {}
        return self.request("PUT", endpoint, json=json, **kwargs)

    def delete(self, endpoint: str, **kwargs: Any) -> dict[str, Any]:
        """Perform a DELETE request. Respects dry_run mode."""
        if self.dry_run:
            self.logger.info(f"[DRY-RUN] Would DELETE {endpoint}")
            return {}
        return self.request("DELETE", endpoint, **kwargs)

    # -------------------------------------------------------------------------
    # Response Handling
    # -------------------------------------------------------------------------

    def _handle_response(self, response: requests.Response, endpoint: str) -> dict[str, Any]:
        """Handle API response and convert errors to typed exceptions."""
        if response.ok:
            if not response.text:
                return {}
            try:
                data = response.json()
            except ValueError as e:
                raise ApiResponseError(f"Invalid JSON from {endpoint}", resource=endpoint, cause=e) from e
            if not isinstance(data, dict):
                raise ApiResponseError(f"Unexpected payload from {endpoint}", resource=endpoint)
            # The API sometimes reports failures in the body of a 200
            if data.get("err"):
                raise ApiResponseError(f"ClickUp error for {endpoint}: {data['err']}", resource=endpoint)
            return data

        status = response.status_code
        error_body = response.text[:500] if response.text else ""

        if status == 401:
            raise AuthenticationError("ClickUp authentication failed. Check your token.")
        if status == 403:
            raise AccessDeniedError(f"Permission denied for {endpoint}", resource=endpoint)
        if status == 404:
            raise ResourceNotFoundError(f"Not found: {endpoint}", resource=endpoint)

        raise TrackerError(f"ClickUp API error {status}: {error_body}", resource=endpoint)

    # -------------------------------------------------------------------------
    # Users & Teams
    # -------------------------------------------------------------------------

    def get_user(self) -> dict[str, Any]:
        """Get the user the token belongs to."""
        if self._current_user is None:
            user = self.get("user").get("user")
            if not isinstance(user, dict):
                raise ApiResponseError("Invalid response from user endpoint", resource="user")
            self._current_user = user
        return self._current_user

    def validate_token(self, token: str | None = None) -> bool:
        """
        Check whether a token is accepted by the API.

        Args:
            token: Token to check; defaults to this client's token
        """
        headers = {"Authorization": token} if token else None
        try:
            user = self.get("user", headers=headers).get("user")
        except TrackerError as e:
            self.logger.debug(f"Token rejected: {e}")
            return False
        return isinstance(user, dict)

    def test_connection(self) -> bool:
        """Test if the API connection and credentials are valid."""
        try:
            self.get_user()
            return True
        except TrackerError:
            return False

    @property
    def is_connected(self) -> bool:
        return self._current_user is not None

    def get_teams(self) -> list[dict[str, Any]]:
        """Get all teams (workspaces) the token can see, with their members."""
        teams = self.get("team").get("teams") or []
        return teams if isinstance(teams, list) else []

    # -------------------------------------------------------------------------
    # Tasks
    # -------------------------------------------------------------------------

    def get_task(self, task_id: str) -> dict[str, Any]:
        """Get a single task without subtasks."""
        return self.get(
            f"task/{task_id}",
            params={"include_subtasks": "false", "include_markdown_description": "false"},
        )

    # -------------------------------------------------------------------------
    # Time Entries
    # -------------------------------------------------------------------------

    def _team_endpoint(self, path: str) -> str:
        if not self.team_id:
            raise TrackerError("A team id is required for time entries")
        return f"team/{self.team_id}/{path}"

    def get_time_entries(
        self,
        start_ms: int,
        end_ms: int,
        assignee: str | None = None,
    ) -> list[dict[str, Any]]:
        """
        Get time entries within a range.

        Args:
            start_ms: Range start, epoch milliseconds
            end_ms: Range end, epoch milliseconds
            assignee: Only entries of this user id (defaults to the token owner)
        """
        params: dict[str, Any] = {
            "start_date": start_ms,
            "end_date": end_ms,
            "include_location_names": "true",
        }
        if assignee:
            params["assignee"] = assignee
        data = self.get(self._team_endpoint("time_entries"), params=params).get("data") or []
        return data if isinstance(data, list) else []

    def create_time_entry(
        self,
        task_id: str,
        description: str,
        start_ms: int,
        duration_ms: int,
    ) -> dict[str, Any]:
        """Create a time entry against a task."""
        body = {
            "description": description,
            "tid": task_id,
            "start": start_ms,
            "duration": duration_ms,
        }
        result = self.post(self._team_endpoint("time_entries"), json=body)
        data = result.get("data")
        return data if isinstance(data, dict) else {}

    def update_time_entry(
        self,
        entry_id: str,
        description: str,
        start_ms: int,
        duration_ms: int,
    ) -> dict[str, Any]:
        """Update an existing time entry."""
        body = {"description": description, "start": start_ms, "duration": duration_ms}
        result = self.put(self._team_endpoint(f"time_entries/{entry_id}"), json=body)
        return _first(result.get("data"))

    def delete_time_entry(self, entry_id: str) -> dict[str, Any]:
        """Delete a time entry."""
        result = self.delete(self._team_endpoint(f"time_entries/{entry_id}"))
        return _first(result.get("data"))

    # -------------------------------------------------------------------------
    # Resource Cleanup
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close the client and release connection pool resources."""
        self._session.close()
        self.logger.debug("Closed HTTP session")

    def __enter__(self) -> "ClickUpApiClient":
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: Any) -> None:
        self.close()


def _first(data: Any) -> dict[str, Any]:
    if isinstance(data, list):
        return data[0] if data and isinstance(data[0], dict) else {}
    return data if isinstance(data, dict) else {}
