"""Client for the Enphase Entrez cloud service.

Entrez authenticates an Enphase account and issues JWT tokens that are each
scoped to one site and one Envoy gateway. The session lives in the client's
cookie jar; tokens are never cached and every call mints a new one.
"""

from __future__ import annotations

import logging
import re
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, Self

import httpx

from .const import (
    AUTH_FLOW,
    DEFAULT_ENTREZ_URL,
    ENTREZ_PASSWORD_ENV,
    ENTREZ_USERNAME_ENV,
    LOGIN_PATH,
    NOT_COMMISSIONED_MARKER,
    TOKENS_PATH,
)
from .exceptions import (
    AuthNetworkError,
    DecodeError,
    DeviceNotCommissionedError,
    InvalidCredentialsError,
    NotAuthenticatedError,
    UnexpectedStatusError,
)
from .http_client import create_headers, create_session_client
from .models import CloudSession, Credentials, Token
from .tokens import epoch_to_datetime, is_number

if TYPE_CHECKING:
    from types import TracebackType

_LOGGER = logging.getLogger(__name__)

HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403

_TOKEN_TEXTAREA = re.compile(
    r'id="JWTToken"[^>]*>(?P<token>.*?)</textarea>', re.DOTALL | re.IGNORECASE
)


def is_success(status: int) -> bool:
    """Check if HTTP status code indicates success."""
    return httpx.codes.is_success(status)


def is_auth_failure(status: int) -> bool:
    """Check if HTTP status code indicates an authentication failure."""
    return status in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN)


def normalize_site(site_id: str) -> str:
    """Normalize a site name the way the Entrez token form expects."""
    return site_id.lower().replace(" ", "+")


def extract_token(response: httpx.Response) -> tuple[str, datetime | None] | None:
    """Extract the token and optional out-of-band expiry from a response.

    Two shapes are understood: the HTML token page with a textarea whose id
    is "JWTToken", and a JSON object with a "token" field and an optional
    "expires_at" (epoch seconds) or "expires_in" (seconds) field.

    Args:
        response: Token generation response.

    Returns:
        Tuple of (raw token, expires_at), or None if no token was found.

    """
    if "json" in response.headers.get("content-type", ""):
        return _extract_json_token(response)

    match = _TOKEN_TEXTAREA.search(response.text)
    if match is None:
        return None
    raw = match.group("token").strip()
    return (raw, None) if raw else None


def _extract_json_token(
    response: httpx.Response,
) -> tuple[str, datetime | None] | None:
    try:
        data: Any = response.json()
    except ValueError as err:
        msg = f"Token response is not valid JSON: {err}"
        raise DecodeError(msg) from err

    if not isinstance(data, dict) or not data.get("token"):
        return None

    expires_at = None
    if data.get("expires_at") is not None:
        expires_at = epoch_to_datetime(data["expires_at"], "Token expires_at")
    elif data.get("expires_in") is not None:
        expires_in = data["expires_in"]
        if not is_number(expires_in):
            msg = "Token expires_in is not a number of seconds"
            raise DecodeError(msg)
        try:
            expires_at = datetime.now(UTC) + timedelta(seconds=expires_in)
        except (OverflowError, ValueError) as err:
            msg = f"Token expires_in is out of range: {err}"
            raise DecodeError(msg) from err
    return str(data["token"]), expires_at


class Entrez:
    """Cloud session manager for the Enphase Entrez service.

    Knows the account credentials and mints device-scoped tokens. It never
    talks to a gateway itself.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        base_url: str = DEFAULT_ENTREZ_URL,
    ) -> None:
        """Initialize the Entrez client.

        Args:
            client: HTTP client to use. It must keep cookies between
                requests. A client with retry transport is created if None.
            base_url: Base URL of the Entrez service.

        """
        self._owns_client = client is None
        self._client = client or create_session_client()
        self._base_url = base_url.rstrip("/")
        self._session: CloudSession | None = None

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.async_close()

    @property
    def session(self) -> CloudSession | None:
        """The current cloud session, None when logged out."""
        return self._session

    @property
    def is_logged_in(self) -> bool:
        """Return True if a cloud session is held."""
        return self._session is not None

    async def async_login(self, credentials: Credentials) -> CloudSession:
        """Log in to Entrez, replacing any previous session.

        Args:
            credentials: Enphase account email and password.

        Returns:
            The new cloud session.

        Raises:
            InvalidCredentialsError: If the credentials are rejected.
            AuthNetworkError: If the request cannot be delivered.
            UnexpectedStatusError: On any other non-2xx response.

        """
        url = f"{self._base_url}{LOGIN_PATH}"
        form = {
            "username": credentials.identifier,
            "password": credentials.secret,
            "authFlow": AUTH_FLOW,
        }

        self._drop_session()
        _LOGGER.debug("Logging in to Entrez as %s", credentials.identifier)
        try:
            response = await self._client.post(
                url, data=form, headers=create_headers()
            )
        except httpx.RequestError as err:
            msg = f"Connection error during Entrez login: {err}"
            raise AuthNetworkError(msg) from err
        _LOGGER.debug("Login status code: %s", response.status_code)

        if is_auth_failure(response.status_code):
            msg = f"Entrez rejected credentials for {credentials.identifier}"
            raise InvalidCredentialsError(msg)
        if not is_success(response.status_code):
            raise UnexpectedStatusError(response.status_code)

        self._session = CloudSession(
            identifier=credentials.identifier,
            created_at=datetime.now(UTC),
            cookies=dict(self._client.cookies.items()),
        )
        _LOGGER.info("Logged in to Entrez as %s", credentials.identifier)
        return self._session

    async def async_login_with_env(self) -> CloudSession:
        """Log in with credentials from ENTREZ_USERNAME and ENTREZ_PASSWORD.

        Raises:
            MissingCredentialsError: If either variable is unset.

        """
        credentials = Credentials.from_env(ENTREZ_USERNAME_ENV, ENTREZ_PASSWORD_ENV)
        return await self.async_login(credentials)

    async def async_generate_token(
        self,
        site_id: str,
        device_serial: str,
        commissioned: bool,  # noqa: FBT001
    ) -> Token:
        """Generate a token for one Envoy gateway of one site.

        Args:
            site_id: Name of the site.
            device_serial: Serial number of the Envoy gateway.
            commissioned: Whether the gateway is already commissioned.

        Returns:
            A fresh token scoped to the site and gateway.

        Raises:
            ValueError: If site_id or device_serial is empty.
            NotAuthenticatedError: If there is no valid session.
            DeviceNotCommissionedError: If the gateway is not commissioned.
            AuthNetworkError: If the request cannot be delivered.
            UnexpectedStatusError: On any other failure.

        """
        if not site_id:
            msg = "site_id must not be empty"
            raise ValueError(msg)
        if not device_serial:
            msg = "device_serial must not be empty"
            raise ValueError(msg)
        if self._session is None:
            msg = "Not logged in to Entrez"
            raise NotAuthenticatedError(msg)

        url = f"{self._base_url}{TOKENS_PATH}"
        form = {
            "uncommissioned": "on" if commissioned else "off",
            "Site": normalize_site(site_id),
            "serialNum": device_serial,
        }

        _LOGGER.debug("Generating token for site %s, serial %s", site_id, device_serial)
        try:
            response = await self._client.post(
                url, data=form, headers=create_headers()
            )
        except httpx.RequestError as err:
            msg = f"Connection error during token generation: {err}"
            raise AuthNetworkError(msg) from err
        _LOGGER.debug("Token status code: %s", response.status_code)

        self._raise_for_token_status(response, device_serial, commissioned)

        try:
            extracted = extract_token(response)
        except DecodeError as err:
            raise UnexpectedStatusError(response.status_code, str(err)) from err
        if extracted is None:
            if NOT_COMMISSIONED_MARKER in response.text.lower():
                msg = f"Device {device_serial} is not commissioned"
                raise DeviceNotCommissionedError(msg)
            raise UnexpectedStatusError(
                response.status_code, "Failed to extract token from response"
            )

        raw, expires_at = extracted
        try:
            token = Token.from_raw(
                raw,
                site_id,
                device_serial,
                commissioned=commissioned,
                expires_at=expires_at,
            )
        except (DecodeError, ValueError) as err:
            msg = f"Entrez returned an unusable token: {err}"
            raise UnexpectedStatusError(response.status_code, msg) from err

        _LOGGER.debug("Token generated, expires at %s", token.expires_at)
        return token

    async def async_logout(self) -> None:
        """Forget the current session. No request is sent."""
        if self._session is not None:
            _LOGGER.debug("Logging out of Entrez as %s", self._session.identifier)
        self._drop_session()

    async def async_close(self) -> None:
        """Close the HTTP client if it was created by this instance."""
        self._drop_session()
        if self._owns_client:
            await self._client.aclose()

    def _drop_session(self) -> None:
        self._session = None
        self._client.cookies.clear()

    def _raise_for_token_status(
        self,
        response: httpx.Response,
        device_serial: str,
        commissioned: bool,  # noqa: FBT001
    ) -> None:
        status = response.status_code
        if is_success(status):
            return

        if is_auth_failure(status):
            _LOGGER.warning("Entrez session rejected, session invalidated")
            self._drop_session()
            msg = "Entrez session is no longer valid"
            raise NotAuthenticatedError(msg)

        if httpx.codes.is_client_error(status) and (
            not commissioned or NOT_COMMISSIONED_MARKER in response.text.lower()
        ):
            msg = f"Device {device_serial} is not commissioned"
            raise DeviceNotCommissionedError(msg)

        raise UnexpectedStatusError(status)
