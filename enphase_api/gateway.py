"""Session manager binding Entrez tokens to a local Envoy gateway.

The gateway only knows tokens, never credentials: when a token stops being
accepted the binding is marked stale and the caller must mint a new token
and authenticate again.

State machine::

    UNAUTHENTICATED -> AUTHENTICATED -> STALE
                            ^              |
                            +--------------+  (only via async_authenticate)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum

import httpx

from .const import CHECK_JWT_PATH, VALID_TOKEN_MARKER
from .exceptions import (
    AuthNetworkError,
    NotAuthenticatedError,
    TokenExpiredError,
    TokenRejectedError,
    UnexpectedStatusError,
)
from .http_client import create_headers
from .models import GatewayBinding, Token

_LOGGER = logging.getLogger(__name__)

HTTP_OK = 200
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403


class GatewayState(StrEnum):
    """Authentication state of an Envoy gateway session."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    STALE = "stale"


def build_base_url(host: str) -> str:
    """Return the base URL for a gateway host, defaulting to HTTPS."""
    if "://" in host:
        return host.rstrip("/")
    return f"https://{host}"


@dataclass(frozen=True)
class _GatewaySnapshot:
    """Binding and state, always replaced together."""

    binding: GatewayBinding | None = None
    state: GatewayState = GatewayState.UNAUTHENTICATED


class EnvoyGateway:
    """Holds the single active token binding for one Envoy gateway.

    Binding and state live in one immutable snapshot that is replaced
    wholesale, never mutated. Replacement involves no await, so readers
    always see a whole snapshot and an in-flight request keeps using the
    binding it started with.
    """

    def __init__(self, host: str, client: httpx.AsyncClient) -> None:
        """Initialize the gateway session.

        Args:
            host: Hostname, IP address or base URL of the gateway.
            client: HTTP client used for the verification request.

        """
        self._host = host
        self._base_url = build_base_url(host)
        self._client = client
        self._snapshot = _GatewaySnapshot()

    @property
    def host(self) -> str:
        """The configured gateway host."""
        return self._host

    @property
    def base_url(self) -> str:
        """The base URL requests are sent to."""
        return self._base_url

    @property
    def state(self) -> GatewayState:
        """The current authentication state."""
        return self._snapshot.state

    @property
    def binding(self) -> GatewayBinding:
        """The active binding.

        Raises:
            NotAuthenticatedError: If no token has been bound yet.
            TokenExpiredError: If the binding was marked stale.

        """
        snapshot = self._snapshot
        binding = snapshot.binding
        if binding is None:
            msg = "Envoy gateway is not authenticated"
            raise NotAuthenticatedError(msg)
        if snapshot.state is GatewayState.STALE:
            msg = "Envoy token is no longer accepted, authenticate again"
            raise TokenExpiredError(msg, binding)
        return binding

    async def async_authenticate(self, token: Token) -> GatewayBinding:
        """Verify a token against the gateway and bind it.

        Args:
            token: Token issued by Entrez for this gateway.

        Returns:
            The new binding, which replaces any previous one.

        Raises:
            TokenExpiredError: If the token is already expired. No request
                is sent in that case.
            TokenRejectedError: If the gateway refuses the token.
            AuthNetworkError: If the gateway cannot be reached.
            UnexpectedStatusError: On any other response.

        """
        if token.is_expired():
            msg = f"Token for {token.device_serial} expired at {token.expires_at}"
            raise TokenExpiredError(msg)

        url = f"{self._base_url}{CHECK_JWT_PATH}"
        _LOGGER.debug("Verifying token with Envoy at %s", self._host)
        try:
            response = await self._client.get(url, headers=create_headers(token.raw))
        except httpx.RequestError as err:
            msg = f"Connection error while verifying token: {err}"
            raise AuthNetworkError(msg) from err
        _LOGGER.debug("Token check status code: %s", response.status_code)

        status = response.status_code
        if status in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN) or (
            status == HTTP_OK and VALID_TOKEN_MARKER not in response.text
        ):
            body = response.text.strip()
            _LOGGER.warning("Envoy at %s rejected token (%s)", self._host, status)
            msg = f"JWT check failed: {body}" if body else "Invalid token"
            raise TokenRejectedError(msg)
        if status != HTTP_OK:
            raise UnexpectedStatusError(status)

        binding = GatewayBinding(
            host=self._host, token=token, bound_at=datetime.now(UTC)
        )
        self._snapshot = _GatewaySnapshot(binding, GatewayState.AUTHENTICATED)
        _LOGGER.info("Authenticated with Envoy at %s", self._host)
        return binding

    def mark_stale(self, binding: GatewayBinding) -> bool:
        """Mark the binding stale after the gateway refused its token.

        Only the current binding can be marked; a late failure from a
        superseded binding is ignored.

        Returns:
            True if the state changed to STALE.

        """
        snapshot = self._snapshot
        if snapshot.binding is not binding or snapshot.state is GatewayState.STALE:
            return False
        self._snapshot = _GatewaySnapshot(binding, GatewayState.STALE)
        _LOGGER.warning("Envoy binding for %s is stale", self._host)
        return True
