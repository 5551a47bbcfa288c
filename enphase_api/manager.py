"""Caller-driven token renewal for an Envoy gateway.

EnvoyTokenManager owns both sides of the capability split: the Entrez
credentials that mint tokens and the Envoy that consumes them. Renewal only
happens when a call asks for it; there is no background timer.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import TYPE_CHECKING, TypeVar

from .const import DEFAULT_REFRESH_MARGIN
from .exceptions import (
    NotAuthenticatedError,
    TokenExpiredError,
    TokenRejectedError,
)
from .gateway import GatewayState

if TYPE_CHECKING:
    from .entrez import Entrez
    from .envoy import Envoy
    from .models import Credentials, GatewayBinding, Token

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class EnvoyTokenManager:
    """Keeps an Envoy authenticated with tokens minted on demand."""

    def __init__(  # noqa: PLR0913
        self,
        entrez: Entrez,
        envoy: Envoy,
        credentials: Credentials,
        site_id: str,
        device_serial: str,
        *,
        commissioned: bool = True,
        token: Token | None = None,
        on_token: Callable[[Token], None] | None = None,
        refresh_margin: timedelta = DEFAULT_REFRESH_MARGIN,
    ) -> None:
        """Initialize the token manager.

        Args:
            entrez: Cloud session manager used to mint tokens.
            envoy: Gateway client the tokens are bound to.
            credentials: Enphase account credentials.
            site_id: Site the gateway belongs to.
            device_serial: Serial number of the gateway.
            commissioned: Whether the gateway is commissioned.
            token: Previously persisted token to try first.
            on_token: Called with every newly minted token, e.g. to persist it.
            refresh_margin: Tokens expiring within this margin are replaced.

        """
        self._entrez = entrez
        self._envoy = envoy
        self._credentials = credentials
        self._site_id = site_id
        self._device_serial = device_serial
        self._commissioned = commissioned
        self._token = token
        self._on_token = on_token
        self._refresh_margin = refresh_margin

    @property
    def token(self) -> Token | None:
        """The token currently held."""
        return self._token

    async def async_ensure_authenticated(self) -> GatewayBinding:
        """Return a usable binding, minting a token first if needed."""
        if (
            self._envoy.state is GatewayState.AUTHENTICATED
            and self._token is not None
            and not self._token.needs_refresh(self._refresh_margin)
        ):
            return self._envoy.gateway.binding

        token = self._token
        if (
            token is not None
            and self._envoy.state is GatewayState.UNAUTHENTICATED
            and not token.needs_refresh(self._refresh_margin)
        ):
            try:
                return await self._envoy.async_authenticate(token)
            except (TokenRejectedError, TokenExpiredError) as err:
                _LOGGER.debug("Stored token not accepted, minting a new one: %s", err)

        return await self.async_renew()

    async def async_renew(self) -> GatewayBinding:
        """Mint a new token and bind it, logging in again if needed."""
        if not self._entrez.is_logged_in:
            await self._entrez.async_login(self._credentials)

        try:
            token = await self._entrez.async_generate_token(
                self._site_id, self._device_serial, self._commissioned
            )
        except NotAuthenticatedError:
            _LOGGER.info("Entrez session expired, logging in again")
            await self._entrez.async_login(self._credentials)
            token = await self._entrez.async_generate_token(
                self._site_id, self._device_serial, self._commissioned
            )

        binding = await self._envoy.async_authenticate(token)
        self._token = token
        if self._on_token is not None:
            self._on_token(token)
        _LOGGER.info("Renewed Envoy token for %s", self._device_serial)
        return binding

    async def async_call(
        self,
        operation: Callable[[Envoy], Awaitable[T]],
        *,
        idempotent: bool = True,
    ) -> T:
        """Run an Envoy operation, renewing the token once if it has expired.

        Reads are run again with the renewed token. Writes are never sent a
        second time: the token is renewed and the expiry is raised so the
        caller decides whether to repeat the write.

        Args:
            operation: Coroutine function taking the Envoy client.
            idempotent: False for operations that change gateway state, such
                as async_set_power_state.

        Returns:
            The operation's result.

        Raises:
            TokenExpiredError: If a write hit an expired token, or if a read
                fails again after renewal.

        """
        await self.async_ensure_authenticated()
        try:
            return await operation(self._envoy)
        except TokenExpiredError:
            _LOGGER.warning("Envoy token expired, renewing")
            await self.async_renew()
            if not idempotent:
                raise
        return await operation(self._envoy)
