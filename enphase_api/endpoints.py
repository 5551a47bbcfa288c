"""Endpoint descriptors and payload decoders for Envoy telemetry and control.

Unknown fields are ignored; a missing required field raises DecodeError.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

from .const import (
    CONSUMPTION_PATH,
    INVERTERS_PATH,
    POWER_MODE_PATH,
    PRODUCTION_PATH,
    SYSTEM_PATH,
)
from .dispatcher import EndpointDescriptor
from .exceptions import DecodeError
from .models import (
    ConsumptionSnapshot,
    InverterReading,
    PowerState,
    PowerStatus,
    ProductionSnapshot,
    SystemInfo,
)
from .tokens import epoch_to_datetime, is_number

_LOGGER = logging.getLogger(__name__)

_SnapshotT = TypeVar("_SnapshotT", ProductionSnapshot, ConsumptionSnapshot)

POWER_MODE_CONTENT_TYPE = "application/x-www-form-urlencoded; charset=UTF-8"

PRODUCTION = EndpointDescriptor("GET", PRODUCTION_PATH, name="production")
CONSUMPTION = EndpointDescriptor("GET", CONSUMPTION_PATH, name="consumption")
INVERTERS = EndpointDescriptor("GET", INVERTERS_PATH, name="inverters")
SYSTEM = EndpointDescriptor("GET", SYSTEM_PATH, name="system")


def power_mode_descriptor(device_serial: str) -> EndpointDescriptor:
    """Describe a read of a device's power production mode."""
    return EndpointDescriptor(
        "GET", POWER_MODE_PATH.format(serial=device_serial), name="power_mode"
    )


def set_power_mode_descriptor(
    device_serial: str, state: PowerState
) -> EndpointDescriptor:
    """Describe a change of a device's power production mode."""
    return EndpointDescriptor(
        "PUT",
        POWER_MODE_PATH.format(serial=device_serial),
        body={"length": 1, "arr": [state.payload_value]},
        content_type=POWER_MODE_CONTENT_TYPE,
        name="set_power_mode",
    )


def _require_object(data: Any, what: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        msg = f"{what}: expected a JSON object"
        raise DecodeError(msg)
    return data


def _require(data: dict[str, Any], key: str, what: str) -> Any:
    if key not in data or data[key] is None:
        msg = f"{what}: missing required field '{key}'"
        raise DecodeError(msg)
    return data[key]


def _number(data: dict[str, Any], key: str, what: str) -> float:
    value = _require(data, key, what)
    if not is_number(value):
        msg = f"{what}: field '{key}' is not a number"
        raise DecodeError(msg)
    return float(value)


def _decode_totals(data: Any, what: str, cls: Callable[..., _SnapshotT]) -> _SnapshotT:
    payload = _require_object(data, what)
    return cls(
        watts_now=_number(payload, "wattsNow", what),
        watt_hours_today=_number(payload, "wattHoursToday", what),
        watt_hours_seven_days=_number(payload, "wattHoursSevenDays", what),
        watt_hours_lifetime=_number(payload, "wattHoursLifetime", what),
    )


def extract_production(data: Any) -> ProductionSnapshot:
    """Decode the production endpoint payload."""
    return _decode_totals(data, "production", ProductionSnapshot)


def extract_consumption(data: Any) -> ConsumptionSnapshot:
    """Decode the consumption endpoint payload."""
    return _decode_totals(data, "consumption", ConsumptionSnapshot)


def extract_inverters(data: Any) -> list[InverterReading]:
    """Decode the inverters endpoint payload.

    Args:
        data: JSON list with one object per microinverter.

    Returns:
        List of InverterReading objects.

    """
    what = "inverters"
    if not isinstance(data, list):
        msg = f"{what}: expected a JSON list"
        raise DecodeError(msg)

    readings = []
    for item in data:
        inverter = _require_object(item, what)
        dev_type = inverter.get("devType")
        readings.append(
            InverterReading(
                serial_number=str(_require(inverter, "serialNumber", what)),
                last_report_date=epoch_to_datetime(
                    _require(inverter, "lastReportDate", what),
                    f"{what}: field 'lastReportDate'",
                ),
                dev_type=int(dev_type) if dev_type is not None else None,
                last_report_watts=_number(inverter, "lastReportWatts", what),
                max_report_watts=_number(inverter, "maxReportWatts", what),
            )
        )
    _LOGGER.debug("Decoded %d inverter readings", len(readings))
    return readings


def extract_system(data: Any) -> SystemInfo:
    """Decode the home.json payload."""
    what = "system"
    payload = _require_object(data, what)
    return SystemInfo(
        software_build_epoch=int(_number(payload, "software_build_epoch", what)),
        timezone=str(_require(payload, "timezone", what)),
        current_date=str(_require(payload, "current_date", what)),
        current_time=str(_require(payload, "current_time", what)),
        raw=payload,
    )


def extract_power_status(data: Any) -> PowerStatus:
    """Decode a power mode read ({"powerForcedOff": bool})."""
    what = "power_mode"
    payload = _require_object(data, what)
    forced_off = _require(payload, "powerForcedOff", what)
    if not isinstance(forced_off, bool):
        msg = f"{what}: field 'powerForcedOff' is not a boolean"
        raise DecodeError(msg)
    return PowerStatus(
        state=PowerState.from_forced_off(forced_off), forced_off=forced_off
    )


def power_state_confirmation(requested: PowerState) -> Callable[[Any], PowerState]:
    """Build a decoder confirming a power mode change.

    An empty body (204 No Content) confirms the requested state. A body with
    a "state" field must name the requested state; anything else is treated
    as an unconfirmed change.
    """

    def _decode(data: Any) -> PowerState:
        if data is None:
            return requested
        what = "set_power_mode"
        payload = _require_object(data, what)
        try:
            reported = PowerState(str(_require(payload, "state", what)).lower())
        except ValueError as err:
            msg = f"{what}: unknown power state {payload['state']!r}"
            raise DecodeError(msg) from err
        if reported is not requested:
            msg = f"{what}: gateway reports {reported}, requested {requested}"
            raise DecodeError(msg)
        return reported

    return _decode
