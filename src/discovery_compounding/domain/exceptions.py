"""Domain exceptions for the discovery compounding orchestrator.

All domain-specific exceptions inherit from ``DiscoveryCompoundingError`` so
callers can catch the full family with a single ``except`` clause when needed.
"""

from __future__ import annotations

from typing import Any


class DiscoveryCompoundingError(Exception):
    """Base exception for all discovery compounding errors."""

    def __init__(self, message: str = "", details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = details or {}


class UpstreamTimeout(DiscoveryCompoundingError):
    """Raised when the reasoning capability does not answer before its deadline.

    Only the one call fails; sibling calls in the same cycle are unaffected.
    """

    def __init__(
        self,
        message: str = "Reasoning call timed out",
        timeout: float = 0.0,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.timeout = timeout


class UpstreamError(DiscoveryCompoundingError):
    """Raised when the reasoning capability is unreachable or rejects a call."""

    def __init__(
        self,
        message: str = "Reasoning capability failed",
        cause: BaseException | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.cause = cause


class MalformedResponse(DiscoveryCompoundingError):
    """Raised when a response expected to hold structured data cannot be parsed."""

    def __init__(
        self,
        message: str = "Malformed response",
        raw: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.raw = raw


class NotFound(DiscoveryCompoundingError):
    """Raised for an unknown topic, thread or discovery id."""

    def __init__(
        self,
        message: str = "",
        kind: str = "",
        identifier: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message or f"Unknown {kind} {identifier!r}", details)
        self.kind = kind
        self.identifier = identifier


class AlreadyInState(DiscoveryCompoundingError):
    """Raised when a transition targets the state an object is already in.

    Starting a running orchestrator, stopping a stopped one, or resolving an
    already-resolved discovery.  The orchestrator treats the lifecycle case
    as benign and reports it instead of propagating.
    """

    def __init__(
        self,
        message: str = "",
        state: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message or f"already {state}", details)
        self.state = state
