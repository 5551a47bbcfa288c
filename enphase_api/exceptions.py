"""Exceptions raised by the Enphase Entrez / Envoy client.

Every remote failure is reported as one of the classes below so that callers
can decide whether to re-authenticate, retry or give up.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import GatewayBinding


class EnphaseError(Exception):
    """Base exception for Enphase client errors."""


class EnphaseAuthError(EnphaseError):
    """Base exception for authentication errors."""


class InvalidCredentialsError(EnphaseAuthError):
    """Exception raised when the cloud service rejects the credentials."""


class MissingCredentialsError(EnphaseAuthError):
    """Exception raised when credentials are not configured."""


class NotAuthenticatedError(EnphaseAuthError):
    """Exception raised when an operation needs a session that does not exist."""


class DeviceNotCommissionedError(EnphaseAuthError):
    """Exception raised when a token is refused for an uncommissioned device."""


class TokenExpiredError(EnphaseAuthError):
    """Exception raised when a token is expired or no longer accepted.

    Attributes:
        binding: The gateway binding the failing request was made through,
            if any.

    """

    def __init__(
        self, message: str, binding: GatewayBinding | None = None
    ) -> None:
        super().__init__(message)
        self.binding = binding


class TokenRejectedError(EnphaseAuthError):
    """Exception raised when the gateway refuses a token."""


class AuthNetworkError(EnphaseAuthError):
    """Exception raised when an authentication request cannot be delivered."""


class UnexpectedStatusError(EnphaseAuthError):
    """Exception raised for an unexpected authentication response.

    Attributes:
        status: HTTP status code of the response.

    """

    def __init__(self, status: int, message: str | None = None) -> None:
        super().__init__(message or f"Unexpected response status: {status}")
        self.status = status


class EnphaseTransportError(EnphaseError):
    """Base exception for transport errors."""


class RetriableError(EnphaseTransportError):
    """Exception raised for server errors that may succeed when retried.

    Attributes:
        status: HTTP status code, or None when no response was received.

    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class RequestTimeoutError(RetriableError):
    """Exception raised when a request times out."""


class ConnectionFailedError(EnphaseTransportError):
    """Exception raised when the gateway cannot be reached."""


class EnphaseRequestError(EnphaseError):
    """Base exception for request errors."""


class RequestRejectedError(EnphaseRequestError):
    """Exception raised when the gateway rejects a request.

    Attributes:
        status: HTTP status code of the response.
        excerpt: Beginning of the response body.

    """

    def __init__(self, status: int, excerpt: str) -> None:
        super().__init__(f"Request rejected: {status} {excerpt}".rstrip())
        self.status = status
        self.excerpt = excerpt


class DecodeError(EnphaseRequestError):
    """Exception raised when a response does not match the expected schema.

    Attributes:
        reason: Why decoding failed.

    """

    def __init__(self, reason: str) -> None:
        super().__init__(f"Failed to decode response: {reason}")
        self.reason = reason
