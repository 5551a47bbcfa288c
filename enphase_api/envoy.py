"""Client for the Enphase Envoy local gateway.

The Envoy exposes production, consumption and inverter data and lets the
owner switch power production of individual devices. Requests are
authorized with a token minted by Entrez and bound through EnvoyGateway.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Self

import httpx

from . import endpoints
from .dispatcher import EndpointDescriptor, RequestDispatcher
from .exceptions import TokenExpiredError
from .gateway import EnvoyGateway, GatewayState
from .http_client import create_envoy_client

if TYPE_CHECKING:
    from types import TracebackType

    from .dispatcher import Decoder, T
    from .models import (
        ConsumptionSnapshot,
        Credentials,
        GatewayBinding,
        InverterReading,
        PowerState,
        PowerStatus,
        ProductionSnapshot,
        SystemInfo,
        Token,
    )

_LOGGER = logging.getLogger(__name__)


class Envoy:
    """Typed access to the endpoints of one Envoy gateway."""

    def __init__(
        self,
        host: str,
        client: httpx.AsyncClient | None = None,
        local_credentials: Credentials | None = None,
    ) -> None:
        """Initialize the Envoy client.

        Args:
            host: Hostname, IP address or base URL of the gateway.
            client: HTTP client to use. A client accepting the gateway's
                self-signed certificate is created if None.
            local_credentials: Optional installer username and password,
                sent as digest auth for older firmware.

        """
        self._owns_client = client is None
        self._client = client or create_envoy_client()
        auth = None
        if local_credentials is not None:
            auth = httpx.DigestAuth(
                local_credentials.identifier, local_credentials.secret
            )
        self._gateway = EnvoyGateway(host, self._client)
        self._dispatcher = RequestDispatcher(self._client, auth=auth)

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
    def gateway(self) -> EnvoyGateway:
        """The gateway session holding the token binding."""
        return self._gateway

    @property
    def state(self) -> GatewayState:
        """The gateway authentication state."""
        return self._gateway.state

    async def async_authenticate(self, token: Token) -> GatewayBinding:
        """Bind a token to this gateway. See EnvoyGateway.async_authenticate."""
        return await self._gateway.async_authenticate(token)

    async def async_production(self) -> ProductionSnapshot:
        """Fetch current production totals."""
        return await self._async_request(
            endpoints.PRODUCTION, endpoints.extract_production
        )

    async def async_consumption(self) -> ConsumptionSnapshot:
        """Fetch current consumption totals."""
        return await self._async_request(
            endpoints.CONSUMPTION, endpoints.extract_consumption
        )

    async def async_inverters(self) -> list[InverterReading]:
        """Fetch the latest report of every microinverter."""
        return await self._async_request(
            endpoints.INVERTERS, endpoints.extract_inverters
        )

    async def async_system(self) -> SystemInfo:
        """Fetch gateway system status."""
        return await self._async_request(endpoints.SYSTEM, endpoints.extract_system)

    async def async_get_power_state(self, device_serial: str) -> PowerStatus:
        """Fetch the power production mode of a device.

        Args:
            device_serial: Serial number of the device.

        """
        if not device_serial:
            msg = "device_serial must not be empty"
            raise ValueError(msg)
        return await self._async_request(
            endpoints.power_mode_descriptor(device_serial),
            endpoints.extract_power_status,
        )

    async def async_set_power_state(
        self, device_serial: str, state: PowerState
    ) -> PowerState:
        """Switch power production of a device on or off.

        The change is sent exactly once and never retried. Callers must not
        issue concurrent writes for the same device.

        Args:
            device_serial: Serial number of the device.
            state: Requested power state.

        Returns:
            The state confirmed by the gateway.

        Raises:
            DecodeError: If the gateway does not confirm the requested state.

        """
        if not device_serial:
            msg = "device_serial must not be empty"
            raise ValueError(msg)
        _LOGGER.debug("Setting power state of %s to %s", device_serial, state)
        confirmed = await self._async_request(
            endpoints.set_power_mode_descriptor(device_serial, state),
            endpoints.power_state_confirmation(state),
        )
        _LOGGER.info("Power state of %s set to %s", device_serial, confirmed)
        return confirmed

    async def async_close(self) -> None:
        """Close the HTTP client if it was created by this instance."""
        if self._owns_client:
            await self._client.aclose()

    async def _async_request(
        self, descriptor: EndpointDescriptor, decoder: Decoder[T]
    ) -> T:
        binding = self._gateway.binding
        try:
            return await self._dispatcher.async_dispatch(descriptor, binding, decoder)
        except TokenExpiredError:
            self._gateway.mark_stale(binding)
            raise
