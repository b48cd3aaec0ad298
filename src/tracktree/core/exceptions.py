"""
Exceptions - Centralized exception hierarchy for tracktree.

Hierarchy:
- TrackTreeError
  - TrackerError: errors talking to the remote service
    - AuthenticationError
    - AccessDeniedError
    - ResourceNotFoundError
    - RateLimitError
    - TransientError
    - TransportError: network failures and timeouts
    - ApiResponseError: payload could not be used
    - HierarchyFetchError: the top-level space listing failed
  - ModelError: malformed construction input
    - InvalidItemError
    - InvalidKindError
    - InvalidChildError
    - OrphanSubtaskError
  - ConfigError
    - ConfigFileError
    - MissingConfigError
"""

from __future__ import annotations


__all__ = [
    "AccessDeniedError",
    "ApiResponseError",
    "AuthenticationError",
    "ConfigError",
    "ConfigFileError",
    "HierarchyFetchError",
    "InvalidChildError",
    "InvalidItemError",
    "InvalidKindError",
    "MissingConfigError",
    "ModelError",
    "OrphanSubtaskError",
    "RateLimitError",
    "ResourceNotFoundError",
    "TrackTreeError",
    "TrackerError",
    "TransientError",
    "TransportError",
    "is_retryable",
]


class TrackTreeError(Exception):
    """Base exception for all tracktree errors."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message} (caused by {type(self.cause).__name__}: {self.cause})"
        return self.message


# =============================================================================
# Remote Service Errors
# =============================================================================


class TrackerError(TrackTreeError):
    """
    Error returned by, or while talking to, the remote tracker.

    Attributes:
        resource: The endpoint or item id the error relates to, if known.
    """

    def __init__(
        self,
        message: str,
        resource: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.resource = resource


class AuthenticationError(TrackerError):
    """The access token was rejected."""


class AccessDeniedError(TrackerError):
    """The token is valid but may not access the resource."""


class ResourceNotFoundError(TrackerError):
    """The requested space, folder, list, task or entry does not exist."""


class RateLimitError(TrackerError):
    """The service throttled the request."""

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        resource: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, resource=resource, cause=cause)
        self.retry_after = retry_after


class TransientError(TrackerError):
    """Server-side failure (5xx) that may succeed on retry."""


class TransportError(TrackerError):
    """Network failure or timeout; no usable response was received."""


class ApiResponseError(TrackerError):
    """The response arrived but could not be used (error payload, bad JSON)."""


class HierarchyFetchError(TrackerError):
    """The space listing failed, so there is nothing to aggregate."""


# =============================================================================
# Model Errors
# =============================================================================


class ModelError(TrackTreeError):
    """Malformed input while building hierarchy nodes."""


class InvalidItemError(ModelError):
    """A raw record is not a structured record or lacks an id."""


class InvalidKindError(ModelError):
    """The requested node kind is not one of the recognized kinds."""


class InvalidChildError(ModelError):
    """Something other than a HierarchyNode was attached as a child."""


class OrphanSubtaskError(ModelError):
    """
    A subtask whose parent is not part of the same batch.

    Never raised by the reconciler; instances are collected for diagnostics.
    """

    def __init__(self, task_id: str, parent_id: str) -> None:
        super().__init__(f"Subtask {task_id} references missing parent {parent_id}")
        self.task_id = task_id
        self.parent_id = parent_id


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigError(TrackTreeError):
    """Invalid or unusable configuration."""


class ConfigFileError(ConfigError):
    """A settings file could not be read or parsed."""

    def __init__(self, message: str, path: str | None = None, cause: BaseException | None = None):
        super().__init__(message, cause=cause)
        self.path = path


class MissingConfigError(ConfigError):
    """A required setting is absent."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Missing required setting: {key}")
        self.key = key


def is_retryable(exc: BaseException) -> bool:
    """
    Decide whether a failed fetch is worth another attempt.

    Authentication, permission and not-found errors will not change on retry;
    neither will malformed input. Everything else (timeouts, connection
    failures, throttling, server errors, unknown exceptions) is retried.
    """
    if isinstance(exc, (AuthenticationError, AccessDeniedError, ResourceNotFoundError)):
        return False
    if isinstance(exc, (ModelError, ConfigError)):
        return False
    return True
