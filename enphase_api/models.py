"""Data models for the Enphase Entrez / Envoy client."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Any

from .exceptions import MissingCredentialsError
from .tokens import decode_jwt_claims, looks_like_jwt, token_lifetime

REDACTED = "********"


@dataclass(frozen=True)
class Credentials:
    """Account or local device credentials.

    The secret is kept out of repr() so credentials can be logged safely.
    """

    identifier: str
    secret: str = field(repr=False)

    def __post_init__(self) -> None:
        if not self.identifier:
            msg = "Credentials identifier must not be empty"
            raise ValueError(msg)
        if not self.secret:
            msg = "Credentials secret must not be empty"
            raise ValueError(msg)

    def redacted(self) -> str:
        """Return a display string that does not reveal the secret."""
        return f"{self.identifier}/{REDACTED}"

    @classmethod
    def from_env(cls, identifier_var: str, secret_var: str) -> Credentials:
        """Read credentials from two environment variables.

        Args:
            identifier_var: Name of the variable holding the identifier.
            secret_var: Name of the variable holding the secret.

        Returns:
            Credentials built from the environment.

        Raises:
            MissingCredentialsError: If either variable is unset or empty.

        """
        identifier = os.environ.get(identifier_var, "")
        secret = os.environ.get(secret_var, "")
        missing = [
            name
            for name, value in ((identifier_var, identifier), (secret_var, secret))
            if not value
        ]
        if missing:
            msg = f"Environment variable(s) not set: {', '.join(missing)}"
            raise MissingCredentialsError(msg)
        return cls(identifier=identifier, secret=secret)


@dataclass(frozen=True)
class CloudSession:
    """An authenticated Entrez session."""

    identifier: str
    created_at: datetime
    cookies: dict[str, str] = field(default_factory=dict, repr=False)


@dataclass(frozen=True)
class Token:
    """A site and device scoped bearer token.

    Attributes:
        raw: The bearer string sent to the gateway.
        site_id: Site the token was requested for.
        device_serial: Serial number of the gateway the token is valid for.
        issued_at: When the token was issued.
        expires_at: When the token expires, None if the lifetime is managed
            by the caller.
        commissioned: Whether the device was commissioned when requested.

    """

    raw: str = field(repr=False)
    site_id: str
    device_serial: str
    issued_at: datetime
    expires_at: datetime | None = None
    commissioned: bool = True

    def __post_init__(self) -> None:
        if not self.raw:
            msg = "Token must not be empty"
            raise ValueError(msg)
        if self.expires_at is not None and self.expires_at <= self.issued_at:
            msg = "Token expires_at must be after issued_at"
            raise ValueError(msg)

    @classmethod
    def from_raw(  # noqa: PLR0913
        cls,
        raw: str,
        site_id: str,
        device_serial: str,
        *,
        commissioned: bool = True,
        expires_at: datetime | None = None,
        now: datetime | None = None,
    ) -> Token:
        """Build a Token, normalizing expiry from claims or out-of-band data.

        An explicit expires_at wins over the 'exp' claim. Opaque tokens
        without either never expire.

        Raises:
            DecodeError: If a JWT-shaped token has unreadable claims.
            ValueError: If the resulting lifetime is inconsistent.

        """
        now = now or datetime.now(UTC)
        claim_issued_at, claim_expires_at = token_lifetime(raw)
        expires_at = expires_at or claim_expires_at

        issued_at = claim_issued_at
        if issued_at is None:
            issued_at = now
            # Unknown issue time must still precede the expiry
            if expires_at is not None and expires_at <= issued_at:
                issued_at = expires_at - timedelta(seconds=1)

        return cls(
            raw=raw,
            site_id=site_id,
            device_serial=device_serial,
            issued_at=issued_at,
            expires_at=expires_at,
            commissioned=commissioned,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Token:
        """Restore a Token saved with as_dict()."""
        expires_at = data.get("expires_at")
        return cls(
            raw=data["token"],
            site_id=data["site_id"],
            device_serial=data["device_serial"],
            issued_at=datetime.fromtimestamp(data["issued_at"], UTC),
            expires_at=(
                datetime.fromtimestamp(expires_at, UTC)
                if expires_at is not None
                else None
            ),
            commissioned=data.get("commissioned", True),
        )

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation for persistence."""
        return {
            "token": self.raw,
            "site_id": self.site_id,
            "device_serial": self.device_serial,
            "issued_at": int(self.issued_at.timestamp()),
            "expires_at": (
                int(self.expires_at.timestamp())
                if self.expires_at is not None
                else None
            ),
            "commissioned": self.commissioned,
        }

    @property
    def claims(self) -> dict[str, Any]:
        """Decoded JWT claims, empty for opaque tokens."""
        if not looks_like_jwt(self.raw):
            return {}
        return decode_jwt_claims(self.raw)

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether the token has expired."""
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or datetime.now(UTC))

    def expires_in(self, now: datetime | None = None) -> timedelta | None:
        """Return the remaining lifetime, None for non-expiring tokens."""
        if self.expires_at is None:
            return None
        return self.expires_at - (now or datetime.now(UTC))

    def needs_refresh(self, margin: timedelta, now: datetime | None = None) -> bool:
        """Check whether the token expires within the given margin."""
        remaining = self.expires_in(now)
        return remaining is not None and remaining <= margin


@dataclass(frozen=True)
class GatewayBinding:
    """Association of one token with one gateway address."""

    host: str
    token: Token
    bound_at: datetime


class PowerState(StrEnum):
    """Power production mode of an inverter or device."""

    ON = "on"
    OFF = "off"

    @property
    def payload_value(self) -> int:
        """Value of the 'arr' element sent to the gateway."""
        return 0 if self is PowerState.ON else 1

    @classmethod
    def from_forced_off(cls, forced_off: bool) -> PowerState:  # noqa: FBT001
        """Map the gateway's 'powerForcedOff' flag to a state."""
        return cls.OFF if forced_off else cls.ON


@dataclass(frozen=True, slots=True)
class ProductionSnapshot:
    """Production totals reported by the gateway."""

    watts_now: float
    watt_hours_today: float
    watt_hours_seven_days: float
    watt_hours_lifetime: float


@dataclass(frozen=True, slots=True)
class ConsumptionSnapshot:
    """Consumption totals reported by the gateway."""

    watts_now: float
    watt_hours_today: float
    watt_hours_seven_days: float
    watt_hours_lifetime: float


@dataclass(frozen=True, slots=True)
class InverterReading:
    """Latest report of a single microinverter."""

    serial_number: str
    last_report_date: datetime
    dev_type: int | None
    last_report_watts: float
    max_report_watts: float


@dataclass(frozen=True, slots=True)
class SystemInfo:
    """Gateway system status from home.json."""

    software_build_epoch: int
    timezone: str
    current_date: str
    current_time: str
    raw: dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass(frozen=True, slots=True)
class PowerStatus:
    """Power production mode of a device."""

    state: PowerState
    forced_off: bool
