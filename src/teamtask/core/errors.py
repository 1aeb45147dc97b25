# src/teamtask/core/errors.py

"""teamtask exception hierarchy."""

from __future__ import annotations

from typing import Any


class TeamTaskError(Exception):
    """Base exception for all teamtask errors."""


class ConfigError(TeamTaskError):
    """Raised when the configuration is invalid."""


class ClientError(TeamTaskError):
    """
    Base for failures a store records in its `error` field.

    `message` is always human-readable; views show it as-is.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ApiError(ClientError):
    """Structured API failure: status 0 means no response reached the client."""

    def __init__(self, status: int, message: str, data: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.data = data

    @property
    def is_unauthorized(self) -> bool:
        return self.status == 401

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status!r}, message={self.message!r})"


class NetworkFailure(ApiError):
    """No response reached the client (DNS, refused connection, timeout)."""

    def __init__(self, message: str = "Network error. Please check your connection.") -> None:
        super().__init__(0, message)


class RequestRejected(ApiError):
    """The server answered with a 4xx/5xx status."""


class MalformedResponse(ApiError):
    """The server answered 2xx but the payload lacks the expected shape."""


class ValidationFailure(ClientError):
    """A client-side precondition failed (weak password, missing scope, bad key)."""


class StateInvariantViolation(ClientError):
    """The action would break a local invariant; rejected without a round-trip."""
