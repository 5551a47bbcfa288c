"""Pytest configuration and fixtures for enphase_api tests."""

import base64
import json
from datetime import UTC, datetime, timedelta

import pytest

from enphase_api.const import DEFAULT_ENTREZ_URL
from enphase_api.models import Credentials, Token

ENTREZ_URL = DEFAULT_ENTREZ_URL
ENVOY_HOST = "envoy.local"
ENVOY_URL = f"https://{ENVOY_HOST}"
SITE_ID = "My Site"
DEVICE_SERIAL = "121212121212"


def create_test_jwt(
    exp_timestamp: int | None = None,
    iat_timestamp: int | None = None,
) -> str:
    """Create a test JWT token shaped like the ones Entrez issues.

    Args:
        exp_timestamp: Optional expiration timestamp. If None, defaults to
            1 hour from now.
        iat_timestamp: Optional issue timestamp. If None, defaults to now.

    Returns:
        A JWT token string with header, payload, and signature.

    """
    now = int(datetime.now(UTC).timestamp())
    if exp_timestamp is None:
        exp_timestamp = now + 3600
    if iat_timestamp is None:
        iat_timestamp = min(now, exp_timestamp - 60)

    header = {"alg": "ES256", "typ": "JWT"}
    payload = {
        "aud": DEVICE_SERIAL,
        "iss": "Entrez",
        "enphaseUser": "owner",
        "exp": exp_timestamp,
        "iat": iat_timestamp,
        "username": "user@example.com",
    }

    header_encoded = (
        base64.urlsafe_b64encode(json.dumps(header).encode()).decode().rstrip("=")
    )
    payload_encoded = (
        base64.urlsafe_b64encode(json.dumps(payload).encode()).decode().rstrip("=")
    )

    return f"{header_encoded}.{payload_encoded}.signature"


def create_token_page(raw: str) -> str:
    """Create an Entrez token page carrying the given token."""
    return (
        "<!DOCTYPE html><html><body><form>"
        f'<textarea id="JWTToken" rows="10" cols="60">\n{raw}\n</textarea>'
        "</form></body></html>"
    )


@pytest.fixture
def credentials() -> Credentials:
    """Fixture providing Enphase account credentials."""
    return Credentials("user@example.com", "password123")


@pytest.fixture
def sample_jwt() -> str:
    """Fixture providing a JWT valid for one hour."""
    return create_test_jwt()


@pytest.fixture
def token(sample_jwt: str) -> Token:
    """Fixture providing a valid token for the test gateway."""
    return Token.from_raw(sample_jwt, SITE_ID, DEVICE_SERIAL)


@pytest.fixture
def other_token() -> Token:
    """Fixture providing a second valid token for the test gateway."""
    now = datetime.now(UTC)
    raw = create_test_jwt(int((now + timedelta(hours=2)).timestamp()))
    return Token.from_raw(raw, SITE_ID, DEVICE_SERIAL)


@pytest.fixture
def expired_token() -> Token:
    """Fixture providing a token that expired an hour ago."""
    now = datetime.now(UTC)
    return Token(
        raw=create_test_jwt(
            int((now - timedelta(hours=1)).timestamp()),
            int((now - timedelta(hours=2)).timestamp()),
        ),
        site_id=SITE_ID,
        device_serial=DEVICE_SERIAL,
        issued_at=now - timedelta(hours=2),
        expires_at=now - timedelta(hours=1),
    )


@pytest.fixture
def sample_token_page(sample_jwt: str) -> str:
    """Fixture providing an Entrez token page."""
    return create_token_page(sample_jwt)


@pytest.fixture
def sample_production_response() -> dict:
    """Fixture providing a sample production response."""
    return {
        "wattHoursToday": 21674,
        "wattHoursSevenDays": 72291,
        "wattHoursLifetime": 12985472,
        "wattsNow": 2043,
    }


@pytest.fixture
def sample_inverters_response() -> list[dict]:
    """Fixture providing a sample inverters response."""
    return [
        {
            "serialNumber": "482222021511",
            "lastReportDate": 1700000000,
            "devType": 1,
            "lastReportWatts": 245,
            "maxReportWatts": 296,
        },
        {
            "serialNumber": "482222021512",
            "lastReportDate": 1700000010,
            "devType": 1,
            "lastReportWatts": 241,
            "maxReportWatts": 295,
        },
    ]


@pytest.fixture
def sample_system_response() -> dict:
    """Fixture providing a sample home.json response."""
    return {
        "software_build_epoch": 1719503966,
        "is_nonvoy": False,
        "db_size": 20,
        "timezone": "Europe/Amsterdam",
        "current_date": "10/17/2026",
        "current_time": "12:01",
        "network": {"web_comm": True, "ever_reported_to_enlighten": True},
    }
