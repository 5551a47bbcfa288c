"""Request dispatcher shared by every Envoy endpoint call.

The dispatcher sends one request through a gateway binding and turns the
response into a typed payload or a classified exception. It keeps no state
between calls and never loops: a single retry of idempotent reads is left to
the retry transport of the HTTP client, and writes are sent exactly once.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import httpx

from .const import EXCERPT_LENGTH, READ_METHODS
from .exceptions import (
    ConnectionFailedError,
    DecodeError,
    RequestRejectedError,
    RequestTimeoutError,
    RetriableError,
    TokenExpiredError,
)
from .gateway import build_base_url
from .http_client import create_headers
from .models import GatewayBinding

_LOGGER = logging.getLogger(__name__)

HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403

T = TypeVar("T")
Decoder = Callable[[Any], T]


@dataclass(frozen=True)
class EndpointDescriptor:
    """Describes one call to a gateway endpoint.

    Attributes:
        method: HTTP method.
        path: Path below the gateway base URL.
        body: Optional request body, sent as JSON text.
        content_type: Optional Content-Type header for the body.
        name: Short name used in log messages.

    """

    method: str
    path: str
    body: Any = None
    content_type: str | None = None
    name: str = ""

    @property
    def idempotent(self) -> bool:
        """Return True for reads that may be retried safely."""
        return self.method.upper() in READ_METHODS


def is_auth_failure(status: int) -> bool:
    """Check if HTTP status code indicates an expired or refused token."""
    return status in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN)


def excerpt(text: str, limit: int = EXCERPT_LENGTH) -> str:
    """Return the first characters of a response body."""
    text = text.strip()
    return text if len(text) <= limit else f"{text[:limit]}..."


def parse_body(response: httpx.Response) -> Any:
    """Parse a successful response body.

    Empty bodies (e.g. 204 No Content) yield None.

    Raises:
        DecodeError: If the body is not valid JSON.

    """
    if not response.content.strip():
        return None
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as err:
        msg = f"response body is not valid JSON: {err}"
        raise DecodeError(msg) from err


class RequestDispatcher:
    """Executes endpoint calls against a bound Envoy gateway."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        auth: httpx.Auth | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            client: HTTP client used for the requests.
            auth: Optional extra HTTP authentication, e.g. digest auth with
                local installer credentials.

        """
        self._client = client
        self._auth = auth

    async def async_dispatch(
        self,
        descriptor: EndpointDescriptor,
        binding: GatewayBinding,
        decoder: Decoder[T],
    ) -> T:
        """Send one request and decode the response.

        Args:
            descriptor: The endpoint to call.
            binding: The gateway binding whose token authorizes the call.
            decoder: Turns the parsed JSON body (None if empty) into T.

        Returns:
            The decoded payload.

        Raises:
            TokenExpiredError: On 401/403. Never retried here.
            RetriableError: On 5xx responses.
            RequestTimeoutError: If the request timed out.
            ConnectionFailedError: If the gateway cannot be reached.
            RequestRejectedError: On other 4xx responses.
            DecodeError: If the body does not match the expected schema.

        """
        url = f"{build_base_url(binding.host)}{descriptor.path}"
        headers = create_headers(binding.token.raw)
        content = None
        if descriptor.body is not None:
            content = (
                descriptor.body
                if isinstance(descriptor.body, str)
                else json.dumps(descriptor.body, separators=(",", ":"))
            )
            headers["content-type"] = descriptor.content_type or "application/json"

        _LOGGER.debug("%s %s", descriptor.method, url)
        try:
            response = await self._client.request(
                descriptor.method,
                url,
                headers=headers,
                content=content,
                auth=self._auth if self._auth is not None else httpx.USE_CLIENT_DEFAULT,
            )
        except httpx.TimeoutException as err:
            msg = f"Timeout calling {descriptor.name or descriptor.path}: {err}"
            raise RequestTimeoutError(msg) from err
        except httpx.ConnectError as err:
            msg = f"Cannot connect to {binding.host}: {err}"
            raise ConnectionFailedError(msg) from err
        except httpx.RequestError as err:
            msg = f"Network error calling {descriptor.name or descriptor.path}: {err}"
            raise RetriableError(msg) from err

        _LOGGER.debug(
            "%s %s status code: %s", descriptor.method, url, response.status_code
        )
        self._raise_for_status(response, descriptor, binding)

        try:
            return decoder(parse_body(response))
        except DecodeError:
            _LOGGER.debug("Failed to decode %s response", descriptor.name)
            raise
        except (KeyError, TypeError, ValueError, OverflowError, OSError) as err:
            msg = f"{descriptor.name or descriptor.path}: {err!r}"
            raise DecodeError(msg) from err

    def _raise_for_status(
        self,
        response: httpx.Response,
        descriptor: EndpointDescriptor,
        binding: GatewayBinding,
    ) -> None:
        status = response.status_code
        if httpx.codes.is_success(status):
            return

        if is_auth_failure(status):
            msg = f"Envoy refused token for {descriptor.name or descriptor.path}"
            raise TokenExpiredError(msg, binding)

        if httpx.codes.is_server_error(status):
            msg = f"Server error {status} from {descriptor.name or descriptor.path}"
            raise RetriableError(msg, status)

        raise RequestRejectedError(status, excerpt(response.text))
