"""HTTP client helpers shared by the Entrez and Envoy clients."""

import httpx
from httpx_retries import Retry, RetryTransport

from .const import (
    DEFAULT_ENVOY_TIMEOUT,
    DEFAULT_TIMEOUT,
    READ_METHODS,
    READ_RETRY_BACKOFF,
    READ_RETRY_TOTAL,
    RETRYABLE_STATUS_CODES,
    USER_AGENT,
)


def create_headers(token: str | None = None) -> dict[str, str]:
    """Create HTTP headers for Entrez and Envoy requests.

    Args:
        token: Optional bearer token to include in headers.

    Returns:
        Dictionary containing HTTP headers.

    """
    headers = {
        "accept": "application/json, text/html, */*",
        "user-agent": USER_AGENT,
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def create_read_retry() -> Retry:
    """Create the retry policy for idempotent reads.

    Reads are retried at most once with backoff, on server errors, timeouts
    and network errors. Other methods are never retried.
    """
    return Retry(
        total=READ_RETRY_TOTAL,
        allowed_methods=READ_METHODS,
        status_forcelist=RETRYABLE_STATUS_CODES,
        backoff_factor=READ_RETRY_BACKOFF,
    )


def create_session_client(timeout: float = DEFAULT_TIMEOUT) -> httpx.AsyncClient:
    """Create HTTP client for the Entrez cloud service.

    Args:
        timeout: Request timeout in seconds.

    Returns:
        httpx AsyncClient with a cookie jar and retry transport.

    """
    transport = RetryTransport(
        transport=httpx.AsyncHTTPTransport(),
        retry=create_read_retry(),
    )
    return httpx.AsyncClient(
        transport=transport,
        timeout=timeout,
        headers={"user-agent": USER_AGENT},
    )


def create_envoy_client(
    timeout: float = DEFAULT_ENVOY_TIMEOUT,
    *,
    verify_ssl: bool = False,
) -> httpx.AsyncClient:
    """Create HTTP client for a local Envoy gateway.

    Envoy gateways serve a self-signed certificate, so verification is off
    unless requested.

    Args:
        timeout: Request timeout in seconds.
        verify_ssl: Whether to verify the gateway certificate.

    Returns:
        httpx AsyncClient with retry transport.

    """
    transport = RetryTransport(
        transport=httpx.AsyncHTTPTransport(verify=verify_ssl),
        retry=create_read_retry(),
    )
    return httpx.AsyncClient(
        transport=transport,
        timeout=timeout,
        verify=verify_ssl,
        headers={"user-agent": USER_AGENT},
    )
