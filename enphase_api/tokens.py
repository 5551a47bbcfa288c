"""JWT helpers for Entrez-issued tokens.

The signature is never verified here: the gateway does that. The claims are
only read to learn when a token was issued and when it expires.
"""

import base64
import binascii
import json
import logging
from datetime import UTC, datetime
from typing import Any

from .exceptions import DecodeError

_LOGGER = logging.getLogger(__name__)

JWT_PARTS_COUNT = 3
BASE64_PADDING_MOD = 4


def looks_like_jwt(raw: str) -> bool:
    """Check whether a token string has the three-segment JWT shape.

    Args:
        raw: Token string.

    Returns:
        True if the string has three non-empty dot-separated parts.

    """
    parts = raw.split(".")
    return len(parts) == JWT_PARTS_COUNT and all(parts)


def decode_jwt_claims(raw: str) -> dict[str, Any]:
    """Decode the payload segment of a JWT.

    Args:
        raw: JWT token string.

    Returns:
        The claims dictionary.

    Raises:
        DecodeError: If the token is malformed.

    """
    parts = raw.split(".")
    if len(parts) != JWT_PARTS_COUNT:
        msg = "Invalid JWT format: expected 3 parts"
        raise DecodeError(msg)

    payload_encoded = parts[1]
    padding = len(payload_encoded) % BASE64_PADDING_MOD
    if padding:
        payload_encoded += "=" * (BASE64_PADDING_MOD - padding)

    try:
        payload = json.loads(base64.urlsafe_b64decode(payload_encoded).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as err:
        msg = f"Invalid JWT payload: {err}"
        raise DecodeError(msg) from err

    if not isinstance(payload, dict):
        msg = "Invalid JWT payload: expected an object"
        raise DecodeError(msg)
    return payload


def is_number(value: Any) -> bool:
    """Check for an int or float that is not a bool."""
    return isinstance(value, int | float) and not isinstance(value, bool)


def epoch_to_datetime(value: Any, what: str) -> datetime:
    """Convert epoch seconds to a timezone-aware datetime.

    Args:
        value: Seconds since the epoch, as found in a response.
        what: Name of the value, used in error messages.

    Raises:
        DecodeError: If the value is not a number or out of range.

    """
    if not is_number(value):
        msg = f"{what} is not a timestamp"
        raise DecodeError(msg)
    try:
        return datetime.fromtimestamp(value, tz=UTC)
    except (OverflowError, OSError, ValueError) as err:
        msg = f"{what} is out of range: {err}"
        raise DecodeError(msg) from err


def claim_timestamp(claims: dict[str, Any], name: str) -> datetime | None:
    """Read a numeric date claim such as 'exp' or 'iat'.

    Args:
        claims: Decoded JWT claims.
        name: Claim name.

    Returns:
        Timezone-aware datetime, or None if the claim is absent.

    Raises:
        DecodeError: If the claim is present but not a usable timestamp.

    """
    value = claims.get(name)
    if value is None:
        return None
    return epoch_to_datetime(value, f"JWT claim '{name}'")


def token_lifetime(raw: str) -> tuple[datetime | None, datetime | None]:
    """Extract (issued_at, expires_at) from a token string.

    Opaque, non-JWT tokens carry no lifetime and yield (None, None).

    Raises:
        DecodeError: If the token looks like a JWT but cannot be decoded.

    """
    if not looks_like_jwt(raw):
        _LOGGER.debug("Token is not a JWT, lifetime is caller-managed")
        return None, None

    claims = decode_jwt_claims(raw)
    return claim_timestamp(claims, "iat"), claim_timestamp(claims, "exp")
